"""Grouping and summary statistics over resource listings."""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, TypeVar

T = TypeVar("T")

UNKNOWN_GROUP = "unknown"
UNKNOWN_STATE = "unknown"

# /subscriptions/{sub}/resourceGroups/{rg}/providers/...
_RESOURCE_GROUP_PATTERN = re.compile(r"/resourceGroups/([^/]+)(?:/|$)", re.IGNORECASE)

# Power states as reported by the provider. The portal only observes them.
KNOWN_POWER_STATES = frozenset(
    {
        "starting",
        "running",
        "stopping",
        "stopped",
        "deallocating",
        "deallocated",
        "restarting",
        "unknown",
    }
)


@dataclass(frozen=True)
class SummaryStats:
    """Running/not-running counts and the mean of a metric where it is defined."""

    total_running: int
    total_stopped: int
    average_metric: float | None


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def extract_resource_group(resource_id: str | None) -> str:
    """
    Extract the resource group segment of a fully qualified resource id.

    Matching is case-insensitive; ids without the segment map to "unknown".
    """
    if not resource_id:
        return UNKNOWN_GROUP
    match = _RESOURCE_GROUP_PATTERN.search(resource_id)
    return match.group(1) if match else UNKNOWN_GROUP


def group_by_resource_group(
    items: Iterable[T],
    id_of: Callable[[T], str | None] | None = None,
) -> dict[str, list[T]]:
    """
    Group items by the resource group in their id.

    Groups appear in first-seen order and keep discovery order inside each group.

    Args:
        items: Resources carrying a fully qualified id
        id_of: Accessor for the id (defaults to an ``id`` key or attribute)

    Returns:
        Mapping of resource group name to its resources
    """
    get_id = id_of or (lambda item: _field(item, "id"))
    grouped: dict[str, list[T]] = {}

    for item in items:
        key = extract_resource_group(get_id(item))
        grouped.setdefault(key, []).append(item)

    return grouped


def normalize_power_state(state: object) -> str:
    """Lower-case a provider power state; anything unrecognised becomes "unknown"."""
    if not isinstance(state, str):
        return UNKNOWN_STATE
    normalized = state.strip().lower()
    return normalized if normalized in KNOWN_POWER_STATES else UNKNOWN_STATE


def power_state_from_statuses(statuses: Iterable[Any] | None) -> str:
    """Pick the ``PowerState/<state>`` code out of an instance view's statuses."""
    for status in statuses or []:
        code = getattr(status, "code", None)
        if code and code.startswith("PowerState/"):
            return normalize_power_state(code[len("PowerState/"):])
    return UNKNOWN_STATE


def provisioning_state_from_statuses(statuses: Iterable[Any] | None) -> str | None:
    for status in statuses or []:
        code = getattr(status, "code", None)
        if code and code.startswith("ProvisioningState/"):
            return code[len("ProvisioningState/"):]
    return None


def is_running(state: object) -> bool:
    return isinstance(state, str) and state.strip().lower() == "running"


def summarize(
    items: Iterable[Any],
    metric: str = "cpu_percent",
    state: str = "power_state",
    precision: int | None = 1,
) -> SummaryStats:
    """
    Count running vs. not-running items and average a metric.

    The average only covers items whose metric is not None. With no such item
    the average is None, never 0.

    Args:
        items: Resources with a state and an optional numeric metric
        metric: Name of the metric field
        state: Name of the state field
        precision: Decimal places to round the average to (None keeps it raw)

    Returns:
        SummaryStats
    """
    total_running = 0
    total_stopped = 0
    values: list[float] = []

    for item in items:
        if is_running(_field(item, state)):
            total_running += 1
        else:
            total_stopped += 1

        value = _field(item, metric)
        if value is not None:
            values.append(float(value))

    average = sum(values) / len(values) if values else None
    if average is not None and precision is not None:
        average = round(average, precision)

    return SummaryStats(
        total_running=total_running,
        total_stopped=total_stopped,
        average_metric=average,
    )
