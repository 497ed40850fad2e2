"""Audit trail: structured audit events and the Application Insights query behind /audit-log."""

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import structlog
from azure.core.exceptions import AzureError
from azure.monitor.query import LogsQueryStatus

from portal.core.config import Settings
from portal.core.exceptions import (
    ConfigurationError,
    RemoteOperationError,
    describe_remote_error,
)
from portal.core.security import Caller
from portal.schemas.audit import AuditLogEntry
from portal.services.azure_clients import AzureClientFactory, run_blocking

audit_logger = structlog.get_logger("audit")
logger = structlog.get_logger(__name__)

MIN_HOURS = 1
MAX_HOURS = 168  # one week
DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def record_audit_event(action: str, caller: Caller, **details: Any) -> None:
    """
    Emit one audit event for a mutating operation.

    Args:
        action: Operation name (e.g. "vm.start", "appservice.configure")
        caller: Identity forwarded by the auth gateway
        **details: Target names, scope and parameters of the operation
    """
    audit_logger.info(
        f"audit.{action}",
        action=action,
        user_id=caller.user_id,
        user_email=caller.user_email,
        timestamp=datetime.now(timezone.utc).isoformat(),
        **details,
    )


def build_audit_query(hours: int, limit: int) -> str:
    """KQL over the requests table, restricted to mutating API calls."""
    return f"""
requests
| where timestamp > ago({hours}h)
| where name startswith "POST" or name startswith "PATCH"
| where url !endswith "/roles" and url !endswith "/GetRoles"
| extend vmName = extract("/vms/([^/]+)/", 1, url)
| project
    timestamp,
    operation = name,
    vmName,
    user = user_AuthenticatedId,
    status = iff(success == true, "Success", "Error"),
    message = resultCode,
    duration
| order by timestamp desc
| take {limit}
"""


def rows_to_entries(columns: list[str], rows: Iterable[Iterable[Any]]) -> list[AuditLogEntry]:
    """Turn a query result table into audit log entries."""
    entries = []
    for row in rows:
        record = dict(zip(columns, list(row)))

        timestamp = record.get("timestamp")
        if isinstance(timestamp, datetime):
            timestamp = timestamp.isoformat()

        duration = record.get("duration")
        entries.append(
            AuditLogEntry(
                timestamp=str(timestamp or ""),
                operation=str(record.get("operation") or ""),
                vm_name=str(record["vmName"]) if record.get("vmName") else None,
                user=str(record["user"]) if record.get("user") else None,
                status=str(record.get("status") or "Info"),
                message=str(record["message"]) if record.get("message") else None,
                duration=float(duration) if isinstance(duration, (int, float)) else None,
            )
        )
    return entries


class AuditLogService:
    """Reads past operations back from Application Insights."""

    def __init__(self, clients: AzureClientFactory, settings: Settings) -> None:
        self.clients = clients
        self.settings = settings

    async def query(self, hours: int, limit: int) -> list[AuditLogEntry]:
        """
        Fetch mutating API calls from the last ``hours`` hours.

        Raises:
            ConfigurationError: If APP_INSIGHTS_RESOURCE_ID is not set
            RemoteOperationError: If the query fails
        """
        if not self.settings.APP_INSIGHTS_RESOURCE_ID:
            raise ConfigurationError("Missing APP_INSIGHTS_RESOURCE_ID configuration")

        client = self.clients.logs()
        try:
            result = await run_blocking(
                client.query_resource,
                self.settings.APP_INSIGHTS_RESOURCE_ID,
                build_audit_query(hours, limit),
                timespan=timedelta(hours=hours),
            )
        except AzureError as e:
            logger.error("audit_log.query_failed", error=describe_remote_error(e))
            raise RemoteOperationError("Failed to get audit log", describe_remote_error(e)) from e

        if result.status == LogsQueryStatus.SUCCESS:
            tables = result.tables
        elif result.status == LogsQueryStatus.PARTIAL:
            logger.warning("audit_log.partial_result", error=str(result.partial_error))
            tables = result.partial_data
        else:
            tables = []

        if not tables:
            return []

        table = tables[0]
        return rows_to_entries(list(table.columns), table.rows)
