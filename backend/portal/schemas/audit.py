"""Audit log and identity Pydantic schemas."""

from pydantic import Field

from portal.schemas.common import PortalModel


class AuditLogEntry(PortalModel):
    timestamp: str
    operation: str
    vm_name: str | None = Field(default=None, alias="vmName")
    user: str | None = None
    status: str = "Info"
    message: str | None = None
    duration: float | None = None


class AuditLogResponse(PortalModel):
    items: list[AuditLogEntry]
    count: int
    hours: int
    limit: int


class RolesResponse(PortalModel):
    roles: list[str]
