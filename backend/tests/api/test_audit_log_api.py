"""Tests for the audit log endpoint."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ServiceRequestError
from azure.monitor.query import LogsQueryStatus
from fastapi.testclient import TestClient

from portal.core.config import Settings, get_settings
from portal.main import app

COLUMNS = ["timestamp", "operation", "vmName", "user", "status", "message", "duration"]


@pytest.fixture
def logs_client(azure_clients: MagicMock) -> MagicMock:
    logs = azure_clients.logs.return_value
    logs.query_resource.return_value = SimpleNamespace(
        status=LogsQueryStatus.SUCCESS,
        tables=[
            SimpleNamespace(
                columns=COLUMNS,
                rows=[
                    [
                        datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc),
                        "POST /api/vms/{name}/start",
                        "vm-a",
                        "ops@example.com",
                        "Success",
                        "200",
                        1532.7,
                    ],
                    ["2026-01-01T08:00:00Z", "PATCH /api/schedules/{name}", "", None, "Error", "500", None],
                ],
            )
        ],
    )
    return logs


class TestAuditLog:
    """GET /api/audit-log"""

    def test_returns_entries(self, client: TestClient, logs_client):
        response = client.get("/api/audit-log")

        assert response.status_code == 200
        data = response.json()
        assert data["hours"] == 24
        assert data["limit"] == 100
        assert data["count"] == 2

        first, second = data["items"]
        assert first["timestamp"].startswith("2026-01-01T09:30:00")
        assert first["vmName"] == "vm-a"
        assert first["user"] == "ops@example.com"
        assert first["status"] == "Success"
        assert first["duration"] == 1532.7
        assert second["vmName"] is None
        assert second["user"] is None
        assert second["status"] == "Error"

        resource_id, query = logs_client.query_resource.call_args.args
        assert resource_id.endswith("/components/appi-vmportal")
        assert "ago(24h)" in query
        assert "take 100" in query
        assert logs_client.query_resource.call_args.kwargs["timespan"] == timedelta(hours=24)

    def test_limit_is_capped(self, client: TestClient, logs_client):
        response = client.get("/api/audit-log?hours=168&limit=5000")

        assert response.status_code == 200
        assert response.json()["limit"] == 500
        assert "take 500" in logs_client.query_resource.call_args.args[1]

    @pytest.mark.parametrize("hours", ["0", "169", "-1", "abc"])
    def test_hours_out_of_range(self, client: TestClient, logs_client, hours):
        response = client.get(f"/api/audit-log?hours={hours}")

        assert response.status_code == 400
        logs_client.query_resource.assert_not_called()

    def test_partial_result_uses_partial_data(self, client: TestClient, azure_clients):
        azure_clients.logs.return_value.query_resource.return_value = SimpleNamespace(
            status=LogsQueryStatus.PARTIAL,
            partial_error="query timed out",
            partial_data=[SimpleNamespace(columns=COLUMNS, rows=[["t", "POST x", None, None, "Success", "200", 1]])],
        )

        response = client.get("/api/audit-log")

        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_query_failure_is_500(self, client: TestClient, azure_clients):
        azure_clients.logs.return_value.query_resource.side_effect = HttpResponseError(message="PathNotFoundError")

        response = client.get("/api/audit-log")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to get audit log"

    def test_network_failure_is_500(self, client: TestClient, azure_clients):
        azure_clients.logs.return_value.query_resource.side_effect = ServiceRequestError(
            message="Connection reset by peer"
        )

        response = client.get("/api/audit-log")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to get audit log", "message": "Connection reset by peer"}

    def test_missing_app_insights_configuration(self, client: TestClient, azure_clients):
        app.dependency_overrides[get_settings] = lambda: Settings(APP_ENV="test", APP_INSIGHTS_RESOURCE_ID="")

        response = client.get("/api/audit-log")

        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error"
        azure_clients.logs.assert_not_called()
