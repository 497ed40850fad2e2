"""App Service API endpoints."""

from fastapi import APIRouter, Request

from portal.api.deps import AppServiceServiceDep, CallerDep
from portal.core.exceptions import InvalidRequestError
from portal.core.rate_limit import action_limit, read_limit
from portal.core.security import Caller
from portal.schemas.app_service import (
    AppServiceActionResponse,
    AppServiceListResponse,
    AppServiceScope,
    ConfigureAppServiceRequest,
    ConfigureAppServiceResponse,
    ScaleAppServiceRequest,
)
from portal.services.app_service_service import AppServiceAction, AppServiceService
from portal.services.audit_service import record_audit_event
from portal.services.validators import ResourceKind, require_valid_name

router = APIRouter()


def _require_scope(body: AppServiceScope | None, message: str) -> tuple[str, str]:
    if body is None or not body.subscription_id or not body.resource_group:
        raise InvalidRequestError(message)
    return body.subscription_id, body.resource_group


@router.get("", response_model=AppServiceListResponse)
@read_limit
async def list_app_services(request: Request, service: AppServiceServiceDep) -> AppServiceListResponse:
    """
    List web apps in every subscription the identity can read.

    Subscriptions that fail are listed in ``failedSubscriptions``; the rest are
    still returned.
    """
    return await service.list_app_services()


async def _power_action(
    name: str,
    action: AppServiceAction,
    body: AppServiceScope | None,
    service: AppServiceService,
    caller: Caller,
) -> AppServiceActionResponse:
    require_valid_name(name, ResourceKind.APP_SERVICE)
    subscription_id, resource_group = _require_scope(
        body, "subscriptionId and resourceGroup are required"
    )

    record_audit_event(
        f"appservice.{action.value}",
        caller,
        app_service=name,
        subscription_id=subscription_id,
        resource_group=resource_group,
    )

    message = await service.power_action(name, action, subscription_id, resource_group)
    return AppServiceActionResponse(success=True, message=message, name=name)


@router.post("/{name}/start", response_model=AppServiceActionResponse)
@action_limit
async def start_app_service(
    request: Request,
    name: str,
    service: AppServiceServiceDep,
    caller: CallerDep,
    body: AppServiceScope | None = None,
) -> AppServiceActionResponse:
    return await _power_action(name, AppServiceAction.START, body, service, caller)


@router.post("/{name}/stop", response_model=AppServiceActionResponse)
@action_limit
async def stop_app_service(
    request: Request,
    name: str,
    service: AppServiceServiceDep,
    caller: CallerDep,
    body: AppServiceScope | None = None,
) -> AppServiceActionResponse:
    return await _power_action(name, AppServiceAction.STOP, body, service, caller)


@router.post("/{name}/restart", response_model=AppServiceActionResponse)
@action_limit
async def restart_app_service(
    request: Request,
    name: str,
    service: AppServiceServiceDep,
    caller: CallerDep,
    body: AppServiceScope | None = None,
) -> AppServiceActionResponse:
    return await _power_action(name, AppServiceAction.RESTART, body, service, caller)


@router.patch("/{name}/configure", response_model=ConfigureAppServiceResponse)
@action_limit
async def configure_app_service(
    request: Request,
    name: str,
    service: AppServiceServiceDep,
    caller: CallerDep,
    body: ConfigureAppServiceRequest | None = None,
) -> ConfigureAppServiceResponse:
    """
    Merge application settings into the App Service configuration.

    Existing keys not named in ``appSettings`` are left untouched.
    """
    require_valid_name(name, ResourceKind.APP_SERVICE)
    message = "subscriptionId, resourceGroup, and appSettings are required"
    subscription_id, resource_group = _require_scope(body, message)
    if body.app_settings is None:
        raise InvalidRequestError(message)

    # Keys only: values may be secrets
    record_audit_event(
        "appservice.configure",
        caller,
        app_service=name,
        subscription_id=subscription_id,
        resource_group=resource_group,
        setting_keys=list(body.app_settings),
    )

    updated = await service.configure(name, subscription_id, resource_group, body.app_settings)
    return ConfigureAppServiceResponse(
        success=True,
        message=f"App Service {name} configured successfully",
        name=name,
        updated_settings=updated,
    )


@router.patch(
    "/{name}/scale",
    responses={501: {"description": "Plan scaling is not available yet"}},
)
@action_limit
async def scale_app_service(
    request: Request,
    name: str,
    service: AppServiceServiceDep,
    caller: CallerDep,
    body: ScaleAppServiceRequest | None = None,
) -> None:
    """Validate a scale request. Scaling itself answers 501."""
    require_valid_name(name, ResourceKind.APP_SERVICE)
    message = "subscriptionId, resourceGroup, and sku (with name and tier) are required"
    subscription_id, resource_group = _require_scope(body, message)
    if body.sku is None or not body.sku.name or not body.sku.tier:
        raise InvalidRequestError(message)

    record_audit_event(
        "appservice.scale",
        caller,
        app_service=name,
        subscription_id=subscription_id,
        resource_group=resource_group,
        sku=body.sku.model_dump(exclude_none=True),
    )

    await service.scale(name, subscription_id, resource_group, body.sku)
