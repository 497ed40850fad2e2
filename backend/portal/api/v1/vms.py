"""Virtual machine API endpoints."""

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from portal.api.deps import CallerDep, SettingsDep, VMServiceDep
from portal.core.config import Settings
from portal.core.rate_limit import action_limit, read_limit
from portal.core.security import Caller
from portal.schemas.vm import (
    BatchItemResult,
    BatchRequest,
    BatchResponse,
    VMActionResponse,
    VMListResponse,
    VMMetricsResponse,
    VMSummaryResponse,
)
from portal.services.audit_service import record_audit_event
from portal.services.batch import classify, validate_batch
from portal.services.validators import ResourceKind, require_valid_name
from portal.services.vm_service import VMAction, VMService

router = APIRouter()


@router.get("", response_model=VMListResponse)
@read_limit
async def list_vms(request: Request, service: VMServiceDep, settings: SettingsDep) -> VMListResponse:
    """List VMs in the target resource group with their power state."""
    items = await service.list_vms()
    return VMListResponse(
        items=items,
        count=len(items),
        resource_group=settings.VM_RESOURCE_GROUP,
        subscription_id=settings.VM_SUBSCRIPTION_ID,
    )


@router.get("/summary", response_model=VMSummaryResponse)
@read_limit
async def get_vms_summary(
    request: Request,
    service: VMServiceDep,
    timespan: str | None = Query(None, description="Metrics window, default PT1H"),
) -> VMSummaryResponse:
    """
    Fleet overview: power state and latest CPU / network per VM.

    ``avgCpu`` averages only the VMs that reported CPU; it is null when none did.
    """
    return await service.get_summary(timespan)


async def _run_batch(
    body: BatchRequest | None,
    action: VMAction,
    service: VMService,
    caller: Caller,
    settings: Settings,
) -> JSONResponse:
    names = validate_batch(
        body.names if body else None,
        ResourceKind.VM,
        max_size=settings.MAX_BATCH_SIZE,
    )
    settings.require_vm_scope()

    record_audit_event(
        f"vm.batch.{action.value}",
        caller,
        vm_names=names,
        count=len(names),
        resource_group=settings.VM_RESOURCE_GROUP,
    )

    result = await service.batch_action(names, action)
    verdict = classify(result)

    response = BatchResponse(
        success=verdict.success,
        message=f"{action.batch_verb} {result.succeeded_count}/{result.requested_count} VMs",
        results=[
            BatchItemResult(name=outcome.name, success=outcome.success, message=outcome.message)
            for outcome in result.outcomes
        ],
        succeeded=result.succeeded_count,
        failed=result.failed_count,
        resource_group=settings.VM_RESOURCE_GROUP,
    )
    return JSONResponse(
        status_code=verdict.http_status,
        content=response.model_dump(by_alias=True, mode="json"),
    )


@router.post("/batch/start", response_model=BatchResponse)
@action_limit
async def batch_start_vms(
    request: Request,
    service: VMServiceDep,
    caller: CallerDep,
    settings: SettingsDep,
    body: BatchRequest | None = None,
) -> JSONResponse:
    """
    Start up to MAX_BATCH_SIZE VMs concurrently.

    Returns 500 only when every VM failed; partial failures return 200 with
    ``success: false`` and per-VM results.
    """
    return await _run_batch(body, VMAction.START, service, caller, settings)


@router.post("/batch/stop", response_model=BatchResponse)
@action_limit
async def batch_stop_vms(
    request: Request,
    service: VMServiceDep,
    caller: CallerDep,
    settings: SettingsDep,
    body: BatchRequest | None = None,
) -> JSONResponse:
    """Deallocate up to MAX_BATCH_SIZE VMs concurrently."""
    return await _run_batch(body, VMAction.STOP, service, caller, settings)


async def _power_action(
    name: str,
    action: VMAction,
    service: VMService,
    caller: Caller,
    settings: Settings,
) -> VMActionResponse:
    require_valid_name(name, ResourceKind.VM)
    settings.require_vm_scope()

    record_audit_event(
        f"vm.{action.value}",
        caller,
        vm_name=name,
        resource_group=settings.VM_RESOURCE_GROUP,
    )

    message = await service.power_action(name, action)
    return VMActionResponse(
        success=True,
        message=message,
        name=name,
        resource_group=settings.VM_RESOURCE_GROUP,
    )


@router.post("/{name}/start", response_model=VMActionResponse)
@action_limit
async def start_vm(
    request: Request,
    name: str,
    service: VMServiceDep,
    caller: CallerDep,
    settings: SettingsDep,
) -> VMActionResponse:
    """Start a VM and wait for the operation to finish."""
    return await _power_action(name, VMAction.START, service, caller, settings)


@router.post("/{name}/stop", response_model=VMActionResponse)
@action_limit
async def stop_vm(
    request: Request,
    name: str,
    service: VMServiceDep,
    caller: CallerDep,
    settings: SettingsDep,
) -> VMActionResponse:
    """Deallocate a VM (stops compute billing)."""
    return await _power_action(name, VMAction.STOP, service, caller, settings)


@router.post("/{name}/restart", response_model=VMActionResponse)
@action_limit
async def restart_vm(
    request: Request,
    name: str,
    service: VMServiceDep,
    caller: CallerDep,
    settings: SettingsDep,
) -> VMActionResponse:
    return await _power_action(name, VMAction.RESTART, service, caller, settings)


@router.get("/{name}/metrics", response_model=VMMetricsResponse)
@read_limit
async def get_vm_metrics(
    request: Request,
    name: str,
    service: VMServiceDep,
    timespan: str = Query("PT1H", description="PT1H, PT6H, PT12H, PT24H, P1D or P7D"),
) -> VMMetricsResponse:
    """CPU, network and disk time series for one VM."""
    require_valid_name(name, ResourceKind.VM)
    metrics, timespan, interval = await service.get_metrics(name, timespan)
    return VMMetricsResponse(metrics=metrics, timespan=timespan, interval=interval)
