"""Audit log endpoint."""

from fastapi import APIRouter, Query, Request

from portal.api.deps import AuditLogServiceDep
from portal.core.exceptions import InvalidRequestError
from portal.core.rate_limit import read_limit
from portal.schemas.audit import AuditLogResponse
from portal.services.audit_service import DEFAULT_LIMIT, MAX_HOURS, MAX_LIMIT, MIN_HOURS

router = APIRouter()


@router.get("", response_model=AuditLogResponse)
@read_limit
async def get_audit_log(
    request: Request,
    service: AuditLogServiceDep,
    hours: int = Query(24, description=f"Look-back window, {MIN_HOURS}-{MAX_HOURS}"),
    limit: int = Query(DEFAULT_LIMIT, description=f"Maximum entries, capped at {MAX_LIMIT}"),
) -> AuditLogResponse:
    """Recent start/stop/configure operations, newest first."""
    if not MIN_HOURS <= hours <= MAX_HOURS:
        raise InvalidRequestError(f"hours must be between {MIN_HOURS} and {MAX_HOURS}")
    if limit < 1:
        limit = DEFAULT_LIMIT
    limit = min(limit, MAX_LIMIT)

    items = await service.query(hours, limit)
    return AuditLogResponse(items=items, count=len(items), hours=hours, limit=limit)
