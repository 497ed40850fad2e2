"""Unit tests for the batch executor and result classifier."""

import asyncio

import pytest

from portal.core.exceptions import InvalidRequestError
from portal.services.batch import (
    BatchResult,
    OperationOutcome,
    classify,
    execute_batch,
    validate_batch,
)
from portal.services.validators import ResourceKind


def outcomes(*flags: bool) -> BatchResult:
    return BatchResult(
        outcomes=[
            OperationOutcome(name=f"vm-{i}", success=flag, message="ok" if flag else "boom")
            for i, flag in enumerate(flags)
        ]
    )


class TestValidateBatch:
    """Preconditions checked before anything is dispatched."""

    @pytest.mark.parametrize("names", [None, [], "vm-a", {"vm-a": 1}])
    def test_rejects_missing_or_empty(self, names):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_batch(names, ResourceKind.VM)

        assert exc_info.value.error == "names must be a non-empty array"

    def test_rejects_more_than_max(self):
        names = [f"vm-{i}" for i in range(11)]

        with pytest.raises(InvalidRequestError) as exc_info:
            validate_batch(names, ResourceKind.VM, max_size=10)

        assert exc_info.value.error == "Maximum 10 VMs per batch operation"

    def test_accepts_exactly_max(self):
        names = [f"vm-{i}" for i in range(10)]

        assert validate_batch(names, ResourceKind.VM, max_size=10) == names

    def test_lists_every_invalid_name(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_batch(["vm-a", "-bad", "ok", "bad name"], ResourceKind.VM)

        assert exc_info.value.error == "Invalid VM names: -bad, bad name"

    def test_keeps_duplicates(self):
        assert validate_batch(["vm-a", "vm-a"], ResourceKind.VM) == ["vm-a", "vm-a"]


class TestExecuteBatch:
    """Concurrent fan-out with per-member failure isolation."""

    @pytest.mark.asyncio
    async def test_results_follow_request_order(self):
        delays = {"vm-a": 0.03, "vm-b": 0.0, "vm-c": 0.01}

        async def action(name: str) -> OperationOutcome:
            await asyncio.sleep(delays[name])
            return OperationOutcome.succeeded(name, f"{name} done")

        result = await execute_batch(["vm-a", "vm-b", "vm-c"], action)

        assert [o.name for o in result.outcomes] == ["vm-a", "vm-b", "vm-c"]
        assert result.succeeded_count == 3
        assert result.overall_success

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_siblings(self):
        async def action(name: str) -> OperationOutcome:
            if name == "vm-b":
                return OperationOutcome.failed(name, "quota exceeded")
            return OperationOutcome.succeeded(name, "started")

        result = await execute_batch(["vm-a", "vm-b", "vm-c"], action)

        assert [o.success for o in result.outcomes] == [True, False, True]
        assert result.outcomes[1].message == "quota exceeded"
        assert result.succeeded_count == 2
        assert result.failed_count == 1
        assert not result.overall_success

    @pytest.mark.asyncio
    async def test_raising_action_becomes_failed_outcome(self):
        async def action(name: str) -> OperationOutcome:
            if name == "vm-b":
                raise RuntimeError("connection reset")
            return OperationOutcome.succeeded(name, "started")

        result = await execute_batch(["vm-a", "vm-b"], action)

        assert result.outcomes[0].success
        assert result.outcomes[1] == OperationOutcome(name="vm-b", success=False, message="connection reset")

    @pytest.mark.asyncio
    async def test_members_run_concurrently(self):
        in_flight = 0
        peak = 0

        async def action(name: str) -> OperationOutcome:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return OperationOutcome.succeeded(name, "ok")

        await execute_batch([f"vm-{i}" for i in range(5)], action)

        assert peak == 5

    @pytest.mark.asyncio
    async def test_max_concurrency_caps_in_flight(self):
        in_flight = 0
        peak = 0

        async def action(name: str) -> OperationOutcome:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return OperationOutcome.succeeded(name, "ok")

        result = await execute_batch([f"vm-{i}" for i in range(6)], action, max_concurrency=2)

        assert peak == 2
        assert result.succeeded_count == 6

    @pytest.mark.asyncio
    async def test_duplicates_are_dispatched_twice(self):
        calls: list[str] = []

        async def action(name: str) -> OperationOutcome:
            calls.append(name)
            return OperationOutcome.succeeded(name, "ok")

        result = await execute_batch(["vm-a", "vm-a"], action)

        assert calls == ["vm-a", "vm-a"]
        assert result.requested_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 11])
    async def test_out_of_range_batches_dispatch_nothing(self, count):
        calls: list[str] = []

        async def action(name: str) -> OperationOutcome:
            calls.append(name)
            return OperationOutcome.succeeded(name, "ok")

        with pytest.raises(InvalidRequestError):
            await execute_batch([f"vm-{i}" for i in range(count)], action, max_size=10)

        assert calls == []


class TestClassify:
    """All failed -> 500, anything else -> 200."""

    def test_all_succeeded(self):
        verdict = classify(outcomes(True, True, True))

        assert verdict.http_status == 200
        assert verdict.success is True

    def test_partial_failure_is_200_but_not_success(self):
        verdict = classify(outcomes(True, False, True))

        assert verdict.http_status == 200
        assert verdict.success is False

    def test_all_failed_is_500(self):
        verdict = classify(outcomes(False, False))

        assert verdict.http_status == 500
        assert verdict.success is False

    def test_single_failure_is_500(self):
        assert classify(outcomes(False)).http_status == 500

    def test_counts_partition_requested(self):
        result = outcomes(True, False, False, True, False)

        assert result.succeeded_count + result.failed_count == result.requested_count
        assert result.succeeded_count == 2
