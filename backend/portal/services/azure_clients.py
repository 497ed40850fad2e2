"""Azure credential and management client construction."""

import asyncio
import functools
from concurrent.futures import Executor
from typing import Any, Callable, TypeVar

import structlog
from azure.identity import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.automation import AutomationClient
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.resource import SubscriptionClient
from azure.mgmt.web import WebSiteManagementClient
from azure.monitor.query import LogsQueryClient, MetricsQueryClient

from portal.core.config import Settings
from portal.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

R = TypeVar("R")


async def run_blocking(
    fn: Callable[..., R], *args: Any, executor: Executor | None = None, **kwargs: Any
) -> R:
    """
    Run a blocking SDK call in a worker thread.

    The management SDK clients are synchronous; running them off the event
    loop is what lets batch members proceed concurrently. ``executor`` defaults
    to the loop's shared pool.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(executor, functools.partial(fn, *args, **kwargs))


class AzureClientFactory:
    """
    Builds and reuses management clients for the lifetime of the process.

    Authentication uses a Service Principal (AZURE_TENANT_ID / ENTRA_CLIENT_ID /
    ENTRA_CLIENT_SECRET) when configured; otherwise DefaultAzureCredential
    (managed identity, CLI login). The credential is created once so its token
    cache is shared by every request.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._credential: ClientSecretCredential | DefaultAzureCredential | None = None
        self._clients: dict[tuple[str, str], Any] = {}

    @property
    def credential(self) -> ClientSecretCredential | DefaultAzureCredential:
        """
        Raises:
            ConfigurationError: If a client secret is configured without a tenant
        """
        if self._credential is None:
            if self.settings.uses_service_principal:
                if not self.settings.AZURE_TENANT_ID:
                    raise ConfigurationError("Missing AZURE_TENANT_ID configuration")
                self._credential = ClientSecretCredential(
                    tenant_id=self.settings.AZURE_TENANT_ID,
                    client_id=self.settings.ENTRA_CLIENT_ID,
                    client_secret=self.settings.ENTRA_CLIENT_SECRET,
                )
            else:
                self._credential = DefaultAzureCredential()
        return self._credential

    def _client(self, kind: str, scope: str, build: Callable[[], Any]) -> Any:
        key = (kind, scope)
        if key not in self._clients:
            self._clients[key] = build()
        return self._clients[key]

    def compute(self, subscription_id: str) -> ComputeManagementClient:
        return self._client(
            "compute", subscription_id, lambda: ComputeManagementClient(self.credential, subscription_id)
        )

    def web(self, subscription_id: str) -> WebSiteManagementClient:
        return self._client(
            "web", subscription_id, lambda: WebSiteManagementClient(self.credential, subscription_id)
        )

    def automation(self, subscription_id: str) -> AutomationClient:
        return self._client(
            "automation", subscription_id, lambda: AutomationClient(self.credential, subscription_id)
        )

    def subscriptions(self) -> SubscriptionClient:
        return self._client("subscriptions", "", lambda: SubscriptionClient(self.credential))

    def metrics(self) -> MetricsQueryClient:
        return self._client("metrics", "", lambda: MetricsQueryClient(self.credential))

    def logs(self) -> LogsQueryClient:
        return self._client("logs", "", lambda: LogsQueryClient(self.credential))

    def close(self) -> None:
        """Close every client built so far, then the credential."""
        for (kind, scope), client in self._clients.items():
            try:
                client.close()
            except Exception as e:
                logger.warning("azure.client.close_failed", kind=kind, scope=scope, error=str(e))
        self._clients.clear()
        if self._credential is not None:
            self._credential.close()
            self._credential = None
