"""Azure Automation schedule endpoints."""

from fastapi import APIRouter, Request

from portal.api.deps import AutomationServiceDep, CallerDep, SettingsDep
from portal.core.exceptions import FeatureNotImplementedError, InvalidRequestError
from portal.core.rate_limit import action_limit, read_limit
from portal.schemas.automation import (
    ScheduleListResponse,
    ScheduleUpdateRequest,
    ScheduleUpdateResponse,
)
from portal.services.audit_service import record_audit_event
from portal.services.validators import ResourceKind, require_valid_name

router = APIRouter()


@router.get("", response_model=ScheduleListResponse)
@read_limit
async def list_schedules(
    request: Request,
    service: AutomationServiceDep,
    settings: SettingsDep,
) -> ScheduleListResponse:
    """List schedules of the configured Automation account."""
    items = await service.list_schedules()
    return ScheduleListResponse(
        items=items,
        count=len(items),
        automation_account=settings.AUTOMATION_ACCOUNT_NAME,
    )


@router.patch("/{name}", response_model=ScheduleUpdateResponse)
@action_limit
async def update_schedule(
    request: Request,
    name: str,
    service: AutomationServiceDep,
    caller: CallerDep,
    body: ScheduleUpdateRequest | None = None,
) -> ScheduleUpdateResponse:
    """
    Enable or disable a schedule.

    Only ``isEnabled`` can be changed. Requests that also carry start time,
    frequency, interval, time zone or week days are answered with 501.
    """
    require_valid_name(name, ResourceKind.SCHEDULE)
    if body is None or body.is_enabled is None:
        raise InvalidRequestError("isEnabled is required")
    if body.changes_timing():
        raise FeatureNotImplementedError(
            "Schedule timing changes not implemented",
            "Only isEnabled can be updated; start time, frequency, interval, "
            "time zone and week days must be changed in the Automation account",
        )

    record_audit_event("schedule.update", caller, schedule=name, is_enabled=body.is_enabled)

    schedule = await service.set_schedule_enabled(name, body.is_enabled)
    return ScheduleUpdateResponse(
        success=True,
        message=f"Schedule {name} {'enabled' if body.is_enabled else 'disabled'}",
        schedule=schedule,
    )
