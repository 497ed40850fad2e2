"""Pydantic request/response schemas."""

from portal.schemas.app_service import (
    AppServiceInfo,
    AppServiceListResponse,
    ConfigureAppServiceRequest,
    ScaleAppServiceRequest,
)
from portal.schemas.audit import AuditLogEntry, AuditLogResponse, RolesResponse
from portal.schemas.automation import (
    ScheduleInfo,
    ScheduleListResponse,
    ScheduleUpdateRequest,
)
from portal.schemas.common import ActionResponse, ErrorResponse
from portal.schemas.vm import BatchRequest, BatchResponse, VMInfo, VMListResponse

__all__ = [
    "ActionResponse",
    "AppServiceInfo",
    "AppServiceListResponse",
    "AuditLogEntry",
    "AuditLogResponse",
    "BatchRequest",
    "BatchResponse",
    "ConfigureAppServiceRequest",
    "ErrorResponse",
    "RolesResponse",
    "ScaleAppServiceRequest",
    "ScheduleInfo",
    "ScheduleListResponse",
    "ScheduleUpdateRequest",
    "VMInfo",
    "VMListResponse",
]
