"""Azure Automation schedules and runbook jobs."""

import uuid
from typing import Any

import structlog
from azure.core.exceptions import AzureError
from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError
from azure.mgmt.automation.models import (
    JobCreateParameters,
    RunbookAssociationProperty,
    ScheduleUpdateParameters,
)

from portal.core.config import Settings
from portal.core.exceptions import (
    InvalidRequestError,
    RemoteOperationError,
    ResourceNotFoundError,
    describe_remote_error,
)
from portal.schemas.automation import RunbookJobResponse, ScheduleInfo, ScheduleState
from portal.services.azure_clients import AzureClientFactory, run_blocking

logger = structlog.get_logger(__name__)


def _enum_text(value: Any) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", None) or str(value)


def schedule_to_info(schedule: Any) -> ScheduleInfo:
    advanced = schedule.advanced_schedule
    week_days = list(advanced.week_days) if advanced and advanced.week_days else None
    return ScheduleInfo(
        name=schedule.name or "",
        description=schedule.description or None,
        is_enabled=bool(schedule.is_enabled),
        frequency=_enum_text(schedule.frequency) or "Unknown",
        interval=schedule.interval,
        start_time=schedule.start_time,
        next_run=schedule.next_run,
        time_zone=schedule.time_zone or None,
        week_days=week_days,
    )


class AutomationService:
    """Schedules and runbooks of the configured Automation account."""

    def __init__(self, clients: AzureClientFactory, settings: Settings) -> None:
        self.clients = clients
        self.settings = settings

    def _client(self) -> tuple[Any, str, str]:
        subscription_id, resource_group, account = self.settings.require_automation_scope()
        return self.clients.automation(subscription_id), resource_group, account

    async def list_schedules(self) -> list[ScheduleInfo]:
        client, resource_group, account = self._client()
        try:
            schedules = await run_blocking(
                lambda: list(client.schedule.list_by_automation_account(resource_group, account))
            )
        except AzureError as e:
            logger.error("automation.schedules.list_failed", account=account, error=describe_remote_error(e))
            raise RemoteOperationError("Failed to list schedules", describe_remote_error(e)) from e

        items = [schedule_to_info(schedule) for schedule in schedules]
        logger.info("automation.schedules.listed", account=account, count=len(items))
        return items

    async def set_schedule_enabled(self, name: str, is_enabled: bool) -> ScheduleState:
        """
        Enable or disable a schedule, keeping its description.

        Raises:
            ResourceNotFoundError: If the schedule does not exist
            RemoteOperationError: If the provider call fails
        """
        client, resource_group, account = self._client()

        def _update() -> Any:
            current = client.schedule.get(resource_group, account, name)
            return client.schedule.update(
                resource_group,
                account,
                name,
                ScheduleUpdateParameters(
                    name=name,
                    is_enabled=is_enabled,
                    description=current.description,
                ),
            )

        try:
            updated = await run_blocking(_update)
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError("Schedule not found") from e
        except AzureError as e:
            logger.error("automation.schedule.update_failed", schedule=name, error=describe_remote_error(e))
            raise RemoteOperationError("Failed to update schedule", describe_remote_error(e)) from e

        logger.info("automation.schedule.updated", schedule=name, is_enabled=is_enabled)
        return ScheduleState(
            name=updated.name or name,
            is_enabled=updated.is_enabled,
            next_run=updated.next_run,
        )

    def ensure_runbook_allowed(self, runbook: str) -> None:
        if runbook not in self.settings.ALLOWED_RUNBOOKS:
            raise InvalidRequestError(
                "Invalid runbook name",
                extra={"allowedRunbooks": list(self.settings.ALLOWED_RUNBOOKS)},
            )

    async def trigger_runbook(self, runbook: str, vm_names: str | None = None) -> RunbookJobResponse:
        """
        Start a job for an allowed runbook.

        Args:
            runbook: Runbook name, must be in ALLOWED_RUNBOOKS
            vm_names: Optional comma separated VM names passed as the VMNames parameter

        Raises:
            InvalidRequestError: If the runbook is not allowed
            RemoteOperationError: If the job cannot be created
        """
        self.ensure_runbook_allowed(runbook)

        client, resource_group, account = self._client()
        job_name = f"{runbook}-{uuid.uuid4()}"
        parameters = JobCreateParameters(
            runbook=RunbookAssociationProperty(name=runbook),
            parameters={"VMNames": vm_names} if vm_names else None,
        )

        try:
            job = await run_blocking(client.job.create, resource_group, account, job_name, parameters)
        except AzureError as e:
            logger.error("automation.runbook.trigger_failed", runbook=runbook, error=describe_remote_error(e))
            raise RemoteOperationError("Failed to trigger runbook", describe_remote_error(e)) from e

        job_id = str(job.job_id) if job.job_id else None
        logger.info("automation.runbook.triggered", runbook=runbook, job_name=job_name, job_id=job_id)
        return RunbookJobResponse(
            success=True,
            message=f"Runbook {runbook} triggered successfully",
            job_id=job_id,
            status=_enum_text(job.status),
        )
