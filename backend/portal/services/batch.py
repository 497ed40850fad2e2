"""Batch execution of independent remote operations.

A batch fans out one operation per name, waits for all of them and reports one
outcome per name in request order. A failing member never fails its siblings
and successes are not rolled back.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

import structlog
from fastapi import status

from portal.core.exceptions import InvalidRequestError, describe_remote_error
from portal.services.validators import ResourceKind, is_valid_name, kind_label

logger = structlog.get_logger(__name__)

DEFAULT_MAX_BATCH_SIZE = 10


@dataclass(frozen=True)
class OperationOutcome:
    """Result of one remote operation attempt."""

    name: str
    success: bool
    message: str

    @classmethod
    def succeeded(cls, name: str, message: str) -> "OperationOutcome":
        return cls(name=name, success=True, message=message)

    @classmethod
    def failed(cls, name: str, reason: str) -> "OperationOutcome":
        return cls(name=name, success=False, message=reason)


@dataclass
class BatchResult:
    """Ordered outcomes of a batch; ``outcomes[i]`` belongs to the i-th requested name."""

    outcomes: list[OperationOutcome] = field(default_factory=list)

    @property
    def requested_count(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)

    @property
    def overall_success(self) -> bool:
        return self.failed_count == 0


@dataclass(frozen=True)
class Classification:
    """Endpoint-level verdict for a batch."""

    http_status: int
    success: bool


OperationAction = Callable[[str], Awaitable[OperationOutcome]]


def validate_batch(
    names: object,
    kind: ResourceKind,
    max_size: int = DEFAULT_MAX_BATCH_SIZE,
) -> list[str]:
    """
    Check batch preconditions before anything is dispatched.

    Args:
        names: Requested names (expected to be a list of strings)
        kind: Resource kind used for name validation
        max_size: Maximum number of names per batch

    Returns:
        The names, unchanged (duplicates are kept)

    Raises:
        InvalidRequestError: On an empty, oversized or malformed batch
    """
    if not isinstance(names, list) or len(names) == 0:
        raise InvalidRequestError("names must be a non-empty array")

    if len(names) > max_size:
        raise InvalidRequestError(f"Maximum {max_size} {kind_label(kind)}s per batch operation")

    invalid = [str(name) for name in names if not is_valid_name(name, kind)]
    if invalid:
        raise InvalidRequestError(f"Invalid {kind_label(kind)} names: {', '.join(invalid)}")

    return names


async def execute_batch(
    names: Sequence[str],
    action: OperationAction,
    max_size: int = DEFAULT_MAX_BATCH_SIZE,
    max_concurrency: int | None = None,
) -> BatchResult:
    """
    Run ``action`` for every name concurrently and collect outcomes in request order.

    Actions are expected to turn their own remote failures into failed outcomes;
    an action that raises anyway is recorded as a failed outcome for its name.

    Args:
        names: Names to act on, in request order
        action: Coroutine function producing an outcome for one name
        max_size: Maximum cardinality accepted
        max_concurrency: Optional cap on in-flight operations (default: all at once)

    Returns:
        BatchResult with one outcome per name

    Raises:
        InvalidRequestError: If the batch is empty or larger than ``max_size``
    """
    if len(names) == 0:
        raise InvalidRequestError("names must be a non-empty array")
    if len(names) > max_size:
        raise InvalidRequestError(f"Maximum {max_size} items per batch operation")

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def run(name: str) -> OperationOutcome:
        if semaphore is None:
            return await action(name)
        async with semaphore:
            return await action(name)

    results = await asyncio.gather(*(run(name) for name in names), return_exceptions=True)

    outcomes: list[OperationOutcome] = []
    for name, result in zip(names, results):
        if isinstance(result, OperationOutcome):
            outcomes.append(result)
        elif isinstance(result, Exception):
            logger.error("batch.operation.raised", name=name, error=describe_remote_error(result))
            outcomes.append(OperationOutcome.failed(name, describe_remote_error(result)))
        else:
            # CancelledError and other BaseExceptions are not outcomes
            raise result

    batch = BatchResult(outcomes=outcomes)
    logger.info(
        "batch.completed",
        requested=batch.requested_count,
        succeeded=batch.succeeded_count,
        failed=batch.failed_count,
    )
    return batch


def classify(result: BatchResult, requested_count: int | None = None) -> Classification:
    """
    Map a batch result to an HTTP status and success flag.

    All failed -> 500; otherwise 200 with success only when nothing failed.
    Partial failures are therefore visible only in the per-item results.
    """
    requested = result.requested_count if requested_count is None else requested_count

    if requested > 0 and result.failed_count == requested:
        return Classification(http_status=status.HTTP_500_INTERNAL_SERVER_ERROR, success=False)

    return Classification(http_status=status.HTTP_200_OK, success=result.failed_count == 0)
