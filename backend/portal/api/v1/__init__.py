"""API router configuration."""

from fastapi import APIRouter

from portal.api.v1 import app_services, audit_log, roles, runbooks, schedules, vms
from portal.schemas.common import ErrorResponse

api_router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "Configuration or provider error"},
    }
)

api_router.include_router(vms.router, prefix="/vms", tags=["virtual-machines"])
api_router.include_router(app_services.router, prefix="/appservices", tags=["app-services"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["automation"])
api_router.include_router(runbooks.router, prefix="/runbooks", tags=["automation"])
api_router.include_router(audit_log.router, prefix="/audit-log", tags=["audit"])
api_router.include_router(roles.router, prefix="", tags=["identity"])
