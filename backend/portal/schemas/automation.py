"""Azure Automation (schedules, runbooks) Pydantic schemas."""

from datetime import datetime

from pydantic import Field, StrictBool

from portal.schemas.common import PortalModel


class ScheduleInfo(PortalModel):
    name: str
    description: str | None = None
    is_enabled: bool = Field(default=False, alias="isEnabled")
    frequency: str = "Unknown"
    interval: int | None = None
    start_time: datetime | None = Field(default=None, alias="startTime")
    next_run: datetime | None = Field(default=None, alias="nextRun")
    time_zone: str | None = Field(default=None, alias="timeZone")
    week_days: list[str] | None = Field(default=None, alias="weekDays")


class ScheduleListResponse(PortalModel):
    items: list[ScheduleInfo]
    count: int
    automation_account: str = Field(alias="automationAccount")


class ScheduleUpdateRequest(PortalModel):
    """
    Enable or disable a schedule.

    Time and day fields are accepted so they can be rejected explicitly:
    changing them is not supported through the management SDK.
    """

    is_enabled: StrictBool | None = Field(default=None, alias="isEnabled")
    start_time: datetime | None = Field(default=None, alias="startTime")
    frequency: str | None = None
    interval: int | None = None
    time_zone: str | None = Field(default=None, alias="timeZone")
    week_days: list[str] | None = Field(default=None, alias="weekDays")

    def changes_timing(self) -> bool:
        return any(
            value is not None
            for value in (self.start_time, self.frequency, self.interval, self.time_zone, self.week_days)
        )


class ScheduleState(PortalModel):
    name: str
    is_enabled: bool | None = Field(default=None, alias="isEnabled")
    next_run: datetime | None = Field(default=None, alias="nextRun")


class ScheduleUpdateResponse(PortalModel):
    success: bool
    message: str
    schedule: ScheduleState


class RunbookJobResponse(PortalModel):
    success: bool
    message: str
    job_id: str | None = Field(default=None, alias="jobId")
    status: str | None = None
