"""Runbook endpoints."""

import json

import structlog
from fastapi import APIRouter, Request, status

from portal.api.deps import AutomationServiceDep, CallerDep
from portal.core.rate_limit import action_limit
from portal.schemas.automation import RunbookJobResponse
from portal.services.audit_service import record_audit_event

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _read_vm_names(request: Request) -> str | None:
    """
    Optional ``vmNames`` from the request body.

    The body is optional; an unreadable one is treated as empty.
    """
    raw = await request.body()
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("runbook.body_ignored", reason="malformed JSON")
        return None
    if not isinstance(body, dict):
        return None

    vm_names = body.get("vmNames")
    if isinstance(vm_names, list):
        vm_names = ",".join(str(name) for name in vm_names)
    return vm_names if isinstance(vm_names, str) and vm_names else None


@router.post(
    "/{name}/run",
    response_model=RunbookJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@action_limit
async def run_runbook(
    request: Request,
    name: str,
    service: AutomationServiceDep,
    caller: CallerDep,
) -> RunbookJobResponse:
    """
    Start a job for one of the allowed runbooks.

    Body (optional): ``{"vmNames": "vm-a,vm-b"}``, passed to the runbook as VMNames.
    """
    service.ensure_runbook_allowed(name)
    vm_names = await _read_vm_names(request)

    record_audit_event("runbook.run", caller, runbook=name, vm_names=vm_names)

    return await service.trigger_runbook(name, vm_names)
