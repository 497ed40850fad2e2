"""Virtual machine Pydantic schemas."""

from datetime import datetime

from pydantic import AliasChoices, Field

from portal.schemas.common import ActionResponse, PortalModel


class VMInfo(PortalModel):
    """A VM in the target resource group."""

    name: str
    id: str
    location: str
    vm_size: str = Field(default="unknown", alias="vmSize")
    power_state: str = Field(default="unknown", alias="powerState")
    os_type: str = Field(default="unknown", alias="osType")
    provisioning_state: str = Field(default="unknown", alias="provisioningState")


class VMListResponse(PortalModel):
    items: list[VMInfo]
    count: int
    resource_group: str = Field(alias="resourceGroup")
    subscription_id: str = Field(alias="subscriptionId")


class VMActionResponse(ActionResponse):
    resource_group: str = Field(alias="resourceGroup")


class BatchRequest(PortalModel):
    """Names of the VMs to act on; ``vmNames`` is accepted for older clients."""

    names: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("names", "vmNames"),
        description="VM names (1-10)",
    )


class BatchItemResult(PortalModel):
    name: str
    success: bool
    message: str


class BatchResponse(PortalModel):
    success: bool
    message: str
    results: list[BatchItemResult]
    succeeded: int
    failed: int
    resource_group: str = Field(alias="resourceGroup")


class VMSummaryItem(PortalModel):
    name: str
    power_state: str = Field(alias="powerState")
    cpu_percent: float | None = Field(default=None, alias="cpuPercent")
    network_in_mb: float | None = Field(default=None, alias="networkInMB")
    network_out_mb: float | None = Field(default=None, alias="networkOutMB")


class VMSummaryResponse(PortalModel):
    items: list[VMSummaryItem]
    total_running: int = Field(alias="totalRunning")
    total_stopped: int = Field(alias="totalStopped")
    avg_cpu: float | None = Field(alias="avgCpu")
    timespan: str
    timestamp: datetime


class MetricDataPoint(PortalModel):
    timestamp: datetime | None
    average: float | None = None
    maximum: float | None = None
    minimum: float | None = None


class VMMetrics(PortalModel):
    name: str
    cpu_percent: list[MetricDataPoint] = Field(default_factory=list, alias="cpuPercent")
    network_in: list[MetricDataPoint] = Field(default_factory=list, alias="networkIn")
    network_out: list[MetricDataPoint] = Field(default_factory=list, alias="networkOut")
    disk_read_bytes: list[MetricDataPoint] = Field(default_factory=list, alias="diskReadBytes")
    disk_write_bytes: list[MetricDataPoint] = Field(default_factory=list, alias="diskWriteBytes")


class VMMetricsResponse(PortalModel):
    metrics: VMMetrics
    timespan: str
    interval: str
