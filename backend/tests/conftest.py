"""Pytest configuration and fixtures for VM Portal tests."""

import base64
import json
import os
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Callable, Generator
from unittest.mock import MagicMock

# Must be set before portal modules read settings
os.environ["APP_ENV"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"

import pytest
from fastapi.testclient import TestClient

from portal.api.deps import get_azure_clients
from portal.core.config import Settings, get_settings
from portal.main import app
from portal.services.azure_clients import AzureClientFactory

VM_RESOURCE_GROUP = "rg-vms"
VM_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every Azure scope configured."""
    return Settings(
        APP_ENV="test",
        VM_SUBSCRIPTION_ID=VM_SUBSCRIPTION_ID,
        VM_RESOURCE_GROUP=VM_RESOURCE_GROUP,
        AUTOMATION_SUBSCRIPTION_ID=VM_SUBSCRIPTION_ID,
        AUTOMATION_RESOURCE_GROUP="rg-vmportal",
        AUTOMATION_ACCOUNT_NAME="aa-vmportal",
        APP_INSIGHTS_RESOURCE_ID=(
            f"/subscriptions/{VM_SUBSCRIPTION_ID}/resourceGroups/rg-monitoring"
            "/providers/microsoft.insights/components/appi-vmportal"
        ),
        ALLOWED_RUNBOOKS=["Start-ScheduledVMs", "Stop-ScheduledVMs"],
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
def azure_clients() -> MagicMock:
    """
    Fake client factory.

    Each accessor returns the same MagicMock client so tests can configure
    ``azure_clients.compute.return_value.virtual_machines`` and friends.
    """
    return MagicMock(spec=AzureClientFactory)


@pytest.fixture
def compute_client(azure_clients: MagicMock) -> MagicMock:
    return azure_clients.compute.return_value


@pytest.fixture
def metrics_client(azure_clients: MagicMock) -> MagicMock:
    return azure_clients.metrics.return_value


@pytest.fixture
def automation_client(azure_clients: MagicMock) -> MagicMock:
    return azure_clients.automation.return_value


@pytest.fixture
def client(test_settings: Settings, azure_clients: MagicMock) -> Generator[TestClient, None, None]:
    """Create a test client with settings and Azure clients overridden."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_azure_clients] = lambda: azure_clients

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def server_error_client(client: TestClient) -> Generator[TestClient, None, None]:
    """
    Same overrides as ``client``, but unhandled errors are returned as responses.

    TestClient re-raises server exceptions by default, which hides what the
    catch-all handler sends back.
    """
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def make_vm() -> Callable[..., SimpleNamespace]:
    """Build a VM as returned by ``virtual_machines.list``."""

    def _make_vm(name: str, os_type: str = "Linux", vm_size: str = "Standard_B2s") -> SimpleNamespace:
        return SimpleNamespace(
            name=name,
            id=(
                f"/subscriptions/{VM_SUBSCRIPTION_ID}/resourceGroups/{VM_RESOURCE_GROUP}"
                f"/providers/Microsoft.Compute/virtualMachines/{name}"
            ),
            location="westeurope",
            provisioning_state="Succeeded",
            hardware_profile=SimpleNamespace(vm_size=vm_size),
            storage_profile=SimpleNamespace(os_disk=SimpleNamespace(os_type=os_type)),
        )

    return _make_vm


@pytest.fixture
def make_instance_view() -> Callable[[str], SimpleNamespace]:
    """Build an instance view reporting the given power state."""

    def _make_instance_view(power_state: str) -> SimpleNamespace:
        return SimpleNamespace(
            statuses=[
                SimpleNamespace(code="ProvisioningState/succeeded"),
                SimpleNamespace(code=f"PowerState/{power_state}"),
            ]
        )

    return _make_instance_view


@pytest.fixture
def make_metric() -> Callable[..., SimpleNamespace]:
    """Build a metric with one time series of (average, maximum, minimum) points."""

    def _make_metric(name: str, averages: list[float | None]) -> SimpleNamespace:
        data = [
            SimpleNamespace(
                timestamp=datetime(2026, 1, 1, 12, index * 5, tzinfo=timezone.utc),
                average=average,
                maximum=average,
                minimum=average,
            )
            for index, average in enumerate(averages)
        ]
        return SimpleNamespace(name=name, timeseries=[SimpleNamespace(data=data)])

    return _make_metric


@pytest.fixture
def encode_principal() -> Callable[[dict], str]:
    """Encode a client principal the way the auth gateway does."""

    def _encode(principal: dict) -> str:
        return base64.b64encode(json.dumps(principal).encode("utf-8")).decode("ascii")

    return _encode
