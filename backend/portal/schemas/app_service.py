"""App Service Pydantic schemas."""

from pydantic import Field

from portal.schemas.common import ActionResponse, PortalModel


class AppServiceInfo(PortalModel):
    """A web app discovered in one of the accessible subscriptions."""

    name: str
    id: str
    subscription_id: str = Field(alias="subscriptionId")
    subscription_name: str = Field(alias="subscriptionName")
    resource_group: str = Field(alias="resourceGroup")
    location: str = "unknown"
    state: str = "Unknown"
    sku: str | None = None  # Lives on the App Service Plan, not the site
    kind: str | None = None


class FailedSubscription(PortalModel):
    id: str
    error: str


class AppServiceListResponse(PortalModel):
    items: list[AppServiceInfo]
    count: int
    groups: dict[str, list[AppServiceInfo]] = Field(
        description="App Services keyed by resource group, in discovery order"
    )
    subscriptions_scanned: list[str] = Field(alias="subscriptionsScanned")
    failed_subscriptions: list[FailedSubscription] = Field(
        default_factory=list, alias="failedSubscriptions"
    )


class AppServiceScope(PortalModel):
    """Where the App Service lives; both fields must be given together."""

    subscription_id: str | None = Field(default=None, alias="subscriptionId")
    resource_group: str | None = Field(default=None, alias="resourceGroup")


class ConfigureAppServiceRequest(AppServiceScope):
    app_settings: dict[str, str] | None = Field(default=None, alias="appSettings")


class SkuSpec(PortalModel):
    name: str | None = Field(default=None, description='e.g. "B1", "S1", "P1V2"')
    tier: str | None = Field(default=None, description='e.g. "Basic", "Standard"')
    capacity: int | None = Field(default=None, ge=1, description="Instance count")


class ScaleAppServiceRequest(AppServiceScope):
    sku: SkuSpec | None = None


class AppServiceActionResponse(ActionResponse):
    pass


class ConfigureAppServiceResponse(ActionResponse):
    updated_settings: list[str] = Field(alias="updatedSettings")
