"""API dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from portal.core.config import Settings, get_settings
from portal.core.security import Caller, get_caller
from portal.services.app_service_service import AppServiceService
from portal.services.audit_service import AuditLogService
from portal.services.automation_service import AutomationService
from portal.services.azure_clients import AzureClientFactory
from portal.services.vm_service import VMService

SettingsDep = Annotated[Settings, Depends(get_settings)]


@lru_cache()
def get_azure_clients() -> AzureClientFactory:
    """Process-wide client factory; closed on application shutdown."""
    return AzureClientFactory(get_settings())


ClientsDep = Annotated[AzureClientFactory, Depends(get_azure_clients)]


def get_request_caller(request: Request) -> Caller:
    """Identity forwarded by the auth gateway."""
    return get_caller(request.headers)


CallerDep = Annotated[Caller, Depends(get_request_caller)]


def get_vm_service(clients: ClientsDep, settings: SettingsDep) -> VMService:
    return VMService(clients, settings)


def get_app_service_service(clients: ClientsDep, settings: SettingsDep) -> AppServiceService:
    return AppServiceService(clients, settings)


def get_automation_service(clients: ClientsDep, settings: SettingsDep) -> AutomationService:
    return AutomationService(clients, settings)


def get_audit_log_service(clients: ClientsDep, settings: SettingsDep) -> AuditLogService:
    return AuditLogService(clients, settings)


VMServiceDep = Annotated[VMService, Depends(get_vm_service)]
AppServiceServiceDep = Annotated[AppServiceService, Depends(get_app_service_service)]
AutomationServiceDep = Annotated[AutomationService, Depends(get_automation_service)]
AuditLogServiceDep = Annotated[AuditLogService, Depends(get_audit_log_service)]
