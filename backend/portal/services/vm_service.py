"""Virtual machine operations in the configured subscription / resource group."""

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import structlog
from azure.core.exceptions import AzureError
from azure.monitor.query import MetricAggregationType

from portal.core.config import Settings
from portal.core.exceptions import (
    InvalidRequestError,
    RemoteOperationError,
    describe_remote_error,
)
from portal.schemas.vm import (
    MetricDataPoint,
    VMInfo,
    VMMetrics,
    VMSummaryItem,
    VMSummaryResponse,
)
from portal.services.aggregation import (
    UNKNOWN_STATE,
    is_running,
    power_state_from_statuses,
    provisioning_state_from_statuses,
    summarize,
)
from portal.services.azure_clients import AzureClientFactory, run_blocking
from portal.services.batch import BatchResult, OperationOutcome, execute_batch

logger = structlog.get_logger(__name__)

CPU_METRIC = "Percentage CPU"
NETWORK_IN_METRIC = "Network In Total"
NETWORK_OUT_METRIC = "Network Out Total"
DISK_READ_METRIC = "Disk Read Bytes"
DISK_WRITE_METRIC = "Disk Write Bytes"

SUMMARY_METRICS = [CPU_METRIC, NETWORK_IN_METRIC, NETWORK_OUT_METRIC]
DETAIL_METRICS = [CPU_METRIC, NETWORK_IN_METRIC, NETWORK_OUT_METRIC, DISK_READ_METRIC, DISK_WRITE_METRIC]

BYTES_PER_MB = 1024 * 1024

# Accepted timespans -> (window, ISO interval, interval)
TIMESPANS: dict[str, tuple[timedelta, str, timedelta]] = {
    "PT1H": (timedelta(hours=1), "PT5M", timedelta(minutes=5)),
    "PT6H": (timedelta(hours=6), "PT15M", timedelta(minutes=15)),
    "PT12H": (timedelta(hours=12), "PT30M", timedelta(minutes=30)),
    "PT24H": (timedelta(hours=24), "PT1H", timedelta(hours=1)),
    "P1D": (timedelta(days=1), "PT1H", timedelta(hours=1)),
    "P7D": (timedelta(days=7), "PT6H", timedelta(hours=6)),
}
DEFAULT_TIMESPAN = "PT1H"


class VMAction(str, Enum):
    """Power actions a caller may request."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"

    @property
    def sdk_method(self) -> str:
        # Stop deallocates so compute is no longer billed
        return {
            VMAction.START: "begin_start",
            VMAction.STOP: "begin_deallocate",
            VMAction.RESTART: "begin_restart",
        }[self]

    @property
    def past_tense(self) -> str:
        return {
            VMAction.START: "started",
            VMAction.STOP: "stopped",
            VMAction.RESTART: "restarted",
        }[self]

    @property
    def batch_verb(self) -> str:
        return {
            VMAction.START: "Started",
            VMAction.STOP: "Stopped",
            VMAction.RESTART: "Restarted",
        }[self]


def resolve_timespan(timespan: str | None) -> tuple[str, timedelta, str, timedelta]:
    """
    Validate a metrics timespan and derive its sampling interval.

    Raises:
        InvalidRequestError: If the timespan is not one of TIMESPANS
    """
    timespan = timespan or DEFAULT_TIMESPAN
    if timespan not in TIMESPANS:
        raise InvalidRequestError(f"Invalid timespan. Use {', '.join(TIMESPANS)}")
    window, interval, granularity = TIMESPANS[timespan]
    return timespan, window, interval, granularity


def latest_average(metric: Any) -> float | None:
    """Most recent non-null average of a metric's first time series."""
    if not metric.timeseries:
        return None
    for point in reversed(metric.timeseries[0].data or []):
        if point.average is not None:
            return point.average
    return None


class VMService:
    """VM listing, power actions, summaries and metrics."""

    def __init__(self, clients: AzureClientFactory, settings: Settings) -> None:
        self.clients = clients
        self.settings = settings

    @property
    def resource_group(self) -> str:
        return self.settings.VM_RESOURCE_GROUP

    def resource_uri(self, name: str) -> str:
        subscription_id, resource_group = self.settings.require_vm_scope()
        return (
            f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
            f"/providers/Microsoft.Compute/virtualMachines/{name}"
        )

    async def _list_raw(self, compute: Any) -> list[Any]:
        _, resource_group = self.settings.require_vm_scope()
        try:
            return await run_blocking(lambda: list(compute.virtual_machines.list(resource_group)))
        except AzureError as e:
            logger.error("vm.list.failed", resource_group=resource_group, error=describe_remote_error(e))
            raise RemoteOperationError("Failed to list VMs", describe_remote_error(e)) from e

    async def _instance_statuses(self, compute: Any, name: str) -> list[Any] | None:
        try:
            view = await run_blocking(
                compute.virtual_machines.instance_view, self.resource_group, name
            )
        except AzureError as e:
            logger.warning("vm.instance_view.failed", vm_name=name, error=describe_remote_error(e))
            return None
        return list(view.statuses or [])

    async def list_vms(self) -> list[VMInfo]:
        """
        List VMs in the target resource group with their current power state.

        A VM whose instance view cannot be read is reported with "unknown" states.

        Returns:
            VMs sorted by name
        """
        subscription_id, _ = self.settings.require_vm_scope()
        compute = self.clients.compute(subscription_id)
        vms = [vm for vm in await self._list_raw(compute) if vm.name]

        statuses = await asyncio.gather(*(self._instance_statuses(compute, vm.name) for vm in vms))

        items = []
        for vm, vm_statuses in zip(vms, statuses):
            provisioning_state = provisioning_state_from_statuses(vm_statuses) or vm.provisioning_state
            hardware = vm.hardware_profile
            os_disk = vm.storage_profile.os_disk if vm.storage_profile else None
            items.append(
                VMInfo(
                    name=vm.name,
                    id=vm.id,
                    location=vm.location,
                    vm_size=str(hardware.vm_size) if hardware and hardware.vm_size else "unknown",
                    power_state=power_state_from_statuses(vm_statuses),
                    os_type=str(os_disk.os_type) if os_disk and os_disk.os_type else "unknown",
                    provisioning_state=provisioning_state or UNKNOWN_STATE,
                )
            )

        items.sort(key=lambda item: item.name.lower())
        logger.info("vm.list.completed", resource_group=self.resource_group, count=len(items))
        return items

    async def _perform(
        self, compute: Any, name: str, action: VMAction, executor: Executor | None = None
    ) -> None:
        begin = getattr(compute.virtual_machines, action.sdk_method)

        def _run() -> None:
            poller = begin(self.resource_group, name)
            poller.result()

        await run_blocking(_run, executor=executor)

    async def power_action(self, name: str, action: VMAction) -> str:
        """
        Start, stop (deallocate) or restart one VM and wait for completion.

        Returns:
            Success message

        Raises:
            RemoteOperationError: If the provider call fails
        """
        subscription_id, resource_group = self.settings.require_vm_scope()
        compute = self.clients.compute(subscription_id)

        logger.info(f"vm.{action.value}.requested", vm_name=name, resource_group=resource_group)
        try:
            await self._perform(compute, name, action)
        except AzureError as e:
            logger.error(f"vm.{action.value}.failed", vm_name=name, error=describe_remote_error(e))
            raise RemoteOperationError(
                f"Failed to {action.value} VM",
                describe_remote_error(e),
                extra={"name": name},
            ) from e

        logger.info(f"vm.{action.value}.completed", vm_name=name)
        return f"VM {name} {action.past_tense} successfully"

    async def batch_action(self, names: list[str], action: VMAction) -> BatchResult:
        """
        Apply ``action`` to every named VM concurrently.

        Each member gets its own worker thread for the whole long-running
        operation, so a full batch never queues behind other requests.
        A member's provider failure becomes a failed outcome for that name.
        """
        subscription_id, resource_group = self.settings.require_vm_scope()
        compute = self.clients.compute(subscription_id)

        logger.info(
            f"vm.batch.{action.value}.requested",
            vm_names=names,
            count=len(names),
            resource_group=resource_group,
        )

        async def act(name: str) -> OperationOutcome:
            try:
                await self._perform(compute, name, action, executor)
            except AzureError as e:
                reason = describe_remote_error(e)
                logger.error(f"vm.batch.{action.value}.item_failed", vm_name=name, error=reason)
                return OperationOutcome.failed(name, reason)
            return OperationOutcome.succeeded(name, f"VM {name} {action.past_tense} successfully")

        with ThreadPoolExecutor(
            max_workers=max(len(names), 1), thread_name_prefix="vm_batch"
        ) as executor:
            return await execute_batch(names, act, max_size=self.settings.MAX_BATCH_SIZE)

    async def _summary_row(
        self, compute: Any, metrics_client: Any, name: str, window: timedelta, granularity: timedelta
    ) -> dict[str, Any]:
        power_state = power_state_from_statuses(await self._instance_statuses(compute, name))
        row: dict[str, Any] = {
            "name": name,
            "power_state": power_state,
            "cpu_percent": None,
            "network_in_mb": None,
            "network_out_mb": None,
        }

        # Stopped VMs have no recent samples
        if not is_running(power_state):
            return row

        try:
            response = await run_blocking(
                metrics_client.query_resource,
                self.resource_uri(name),
                metric_names=SUMMARY_METRICS,
                timespan=window,
                granularity=granularity,
                aggregations=[MetricAggregationType.AVERAGE],
            )
        except AzureError as e:
            logger.warning("vm.metrics.failed", vm_name=name, error=describe_remote_error(e))
            return row

        for metric in response.metrics or []:
            value = latest_average(metric)
            if metric.name == CPU_METRIC:
                row["cpu_percent"] = value
            elif metric.name == NETWORK_IN_METRIC:
                row["network_in_mb"] = value / BYTES_PER_MB if value is not None else None
            elif metric.name == NETWORK_OUT_METRIC:
                row["network_out_mb"] = value / BYTES_PER_MB if value is not None else None

        return row

    async def get_summary(self, timespan: str | None = None) -> VMSummaryResponse:
        """
        Power state and latest load figures for every VM, plus fleet totals.

        Metrics are only queried for running VMs; a failed metrics query leaves
        that VM's figures null without failing the summary.
        """
        timespan, window, _, granularity = resolve_timespan(timespan)
        subscription_id, _ = self.settings.require_vm_scope()
        compute = self.clients.compute(subscription_id)
        metrics_client = self.clients.metrics()

        vms = [vm for vm in await self._list_raw(compute) if vm.name]
        rows = await asyncio.gather(
            *(self._summary_row(compute, metrics_client, vm.name, window, granularity) for vm in vms)
        )

        stats = summarize(rows, metric="cpu_percent", state="power_state")

        items = [
            VMSummaryItem(
                name=row["name"],
                power_state=row["power_state"],
                cpu_percent=round(row["cpu_percent"], 1) if row["cpu_percent"] is not None else None,
                network_in_mb=round(row["network_in_mb"], 2) if row["network_in_mb"] is not None else None,
                network_out_mb=round(row["network_out_mb"], 2) if row["network_out_mb"] is not None else None,
            )
            for row in rows
        ]

        return VMSummaryResponse(
            items=items,
            total_running=stats.total_running,
            total_stopped=stats.total_stopped,
            avg_cpu=stats.average_metric,
            timespan=timespan,
            timestamp=datetime.now(timezone.utc),
        )

    async def get_metrics(self, name: str, timespan: str | None = None) -> tuple[VMMetrics, str, str]:
        """
        Time series for CPU, network and disk of one VM.

        Returns:
            (metrics, timespan, interval)

        Raises:
            InvalidRequestError: On an unsupported timespan
            RemoteOperationError: If the metrics query fails
        """
        timespan, window, interval, granularity = resolve_timespan(timespan)
        resource_uri = self.resource_uri(name)
        metrics_client = self.clients.metrics()

        try:
            response = await run_blocking(
                metrics_client.query_resource,
                resource_uri,
                metric_names=DETAIL_METRICS,
                timespan=window,
                granularity=granularity,
                aggregations=[
                    MetricAggregationType.AVERAGE,
                    MetricAggregationType.MAXIMUM,
                    MetricAggregationType.MINIMUM,
                ],
            )
        except AzureError as e:
            logger.error("vm.metrics.failed", vm_name=name, error=describe_remote_error(e))
            raise RemoteOperationError("Failed to get VM metrics", describe_remote_error(e)) from e

        series_field = {
            CPU_METRIC: "cpu_percent",
            NETWORK_IN_METRIC: "network_in",
            NETWORK_OUT_METRIC: "network_out",
            DISK_READ_METRIC: "disk_read_bytes",
            DISK_WRITE_METRIC: "disk_write_bytes",
        }

        metrics = VMMetrics(name=name)
        for metric in response.metrics or []:
            field_name = series_field.get(metric.name)
            if field_name is None or not metric.timeseries:
                continue
            points = [
                MetricDataPoint(
                    timestamp=point.timestamp,
                    average=point.average,
                    maximum=point.maximum,
                    minimum=point.minimum,
                )
                for point in metric.timeseries[0].data or []
            ]
            setattr(metrics, field_name, points)

        return metrics, timespan, interval
