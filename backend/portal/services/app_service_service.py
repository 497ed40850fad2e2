"""App Service discovery and lifecycle across accessible subscriptions."""

from enum import Enum
from typing import Any

import structlog
from azure.core.exceptions import AzureError
from azure.mgmt.web.models import StringDictionary

from portal.core.config import Settings
from portal.core.exceptions import (
    FeatureNotImplementedError,
    RemoteOperationError,
    describe_remote_error,
)
from portal.schemas.app_service import (
    AppServiceInfo,
    AppServiceListResponse,
    FailedSubscription,
    SkuSpec,
)
from portal.services.aggregation import extract_resource_group, group_by_resource_group
from portal.services.azure_clients import AzureClientFactory, run_blocking

logger = structlog.get_logger(__name__)


class AppServiceAction(str, Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"

    @property
    def past_tense(self) -> str:
        return {
            AppServiceAction.START: "started",
            AppServiceAction.STOP: "stopped",
            AppServiceAction.RESTART: "restarted",
        }[self]


def _site_to_info(site: Any, subscription_id: str, subscription_name: str) -> AppServiceInfo:
    return AppServiceInfo(
        name=site.name,
        id=site.id,
        subscription_id=subscription_id,
        subscription_name=subscription_name,
        resource_group=extract_resource_group(site.id),
        location=site.location or "unknown",
        state=site.state or "Unknown",
        sku=None,
        kind=site.kind or None,
    )


class AppServiceService:
    """Lists web apps everywhere the identity can see and acts on one at a time."""

    def __init__(self, clients: AzureClientFactory, settings: Settings) -> None:
        self.clients = clients
        self.settings = settings

    async def list_app_services(self) -> AppServiceListResponse:
        """
        Enumerate subscriptions and collect their web apps.

        A subscription whose listing fails is recorded in ``failed_subscriptions``
        and skipped; the others are still reported.

        Raises:
            RemoteOperationError: If subscriptions cannot be enumerated at all
        """
        subscription_client = self.clients.subscriptions()
        try:
            subscriptions = await run_blocking(lambda: list(subscription_client.subscriptions.list()))
        except AzureError as e:
            logger.error("appservice.list.failed", error=describe_remote_error(e))
            raise RemoteOperationError("Failed to list App Services", describe_remote_error(e)) from e

        items: list[AppServiceInfo] = []
        scanned: list[str] = []
        failed: list[FailedSubscription] = []

        for subscription in subscriptions:
            subscription_id = subscription.subscription_id
            subscription_name = subscription.display_name
            if not subscription_id or not subscription_name:
                continue

            scanned.append(subscription_id)
            web = self.clients.web(subscription_id)
            try:
                sites = await run_blocking(lambda: list(web.web_apps.list()))
            except AzureError as e:
                logger.warning(
                    "appservice.list.subscription_failed",
                    subscription_id=subscription_id,
                    subscription_name=subscription_name,
                    error=describe_remote_error(e),
                )
                failed.append(FailedSubscription(id=subscription_id, error=describe_remote_error(e)))
                continue

            items.extend(
                _site_to_info(site, subscription_id, subscription_name)
                for site in sites
                if site.name and site.id
            )

        logger.info(
            "appservice.list.completed",
            count=len(items),
            subscriptions_scanned=len(scanned),
            subscriptions_failed=len(failed),
        )

        return AppServiceListResponse(
            items=items,
            count=len(items),
            groups=group_by_resource_group(items),
            subscriptions_scanned=scanned,
            failed_subscriptions=failed,
        )

    async def power_action(
        self,
        name: str,
        action: AppServiceAction,
        subscription_id: str,
        resource_group: str,
    ) -> str:
        """
        Start, stop or restart one App Service.

        Returns:
            Success message
        """
        web = self.clients.web(subscription_id)
        operation = getattr(web.web_apps, action.value)

        logger.info(
            f"appservice.{action.value}.requested",
            app_service=name,
            subscription_id=subscription_id,
            resource_group=resource_group,
        )
        try:
            await run_blocking(operation, resource_group, name)
        except AzureError as e:
            logger.error(f"appservice.{action.value}.failed", app_service=name, error=describe_remote_error(e))
            raise RemoteOperationError(
                f"Failed to {action.value} App Service", describe_remote_error(e)
            ) from e

        return f"App Service {name} {action.past_tense} successfully"

    async def configure(
        self,
        name: str,
        subscription_id: str,
        resource_group: str,
        app_settings: dict[str, str],
    ) -> list[str]:
        """
        Merge ``app_settings`` onto the current application settings and write them back.

        Keys present in ``app_settings`` override existing values; other keys are kept.

        Returns:
            The keys that were written
        """
        web = self.clients.web(subscription_id)

        def _merge_and_write() -> None:
            current = web.web_apps.list_application_settings(resource_group, name)
            merged = dict(current.properties or {})
            merged.update(app_settings)
            web.web_apps.update_application_settings(
                resource_group, name, StringDictionary(properties=merged)
            )

        try:
            await run_blocking(_merge_and_write)
        except AzureError as e:
            logger.error("appservice.configure.failed", app_service=name, error=describe_remote_error(e))
            raise RemoteOperationError("Failed to configure App Service", describe_remote_error(e)) from e

        logger.info("appservice.configure.completed", app_service=name, keys=list(app_settings))
        return list(app_settings)

    async def scale(self, name: str, subscription_id: str, resource_group: str, sku: SkuSpec) -> None:
        """
        Change the App Service Plan SKU.

        Raises:
            FeatureNotImplementedError: Always; the plan update is not wired up yet
        """
        logger.warning(
            "appservice.scale.not_implemented",
            app_service=name,
            subscription_id=subscription_id,
            resource_group=resource_group,
            sku=sku.model_dump(exclude_none=True),
        )
        raise FeatureNotImplementedError(
            "Scaling not implemented",
            "Scale feature not yet implemented - requires App Service Plan integration",
            extra={"success": False, "name": name},
        )
