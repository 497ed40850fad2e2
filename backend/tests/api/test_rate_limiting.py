"""Tests for rate limiting of mutating endpoints."""

from typing import Generator

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from portal.core.config import get_settings
from portal.core.rate_limit import limiter


def parse_rate_limit(limit_str: str) -> tuple[int, int]:
    """
    Parse rate limit string like "30/minute" into (count, seconds).

    Args:
        limit_str: Rate limit string (e.g., "30/minute", "100/hour")

    Returns:
        Tuple of (max_requests, time_window_seconds)
    """
    count, period = limit_str.split("/")

    period_map = {
        "second": 1,
        "minute": 60,
        "hour": 3600,
        "day": 86400,
    }

    return int(count), period_map.get(period, 60)


@pytest.fixture
def rate_limited() -> Generator[None, None, None]:
    """Turn the limiter on for one test with empty counters."""
    previous = limiter.enabled
    limiter.enabled = True
    limiter.reset()
    yield
    limiter.reset()
    limiter.enabled = previous


@pytest.mark.usefixtures("rate_limited")
class TestActionRateLimiting:
    """Power actions share the RATE_LIMIT_ACTIONS budget per caller."""

    def test_start_vm_rate_limit(self, client: TestClient, compute_client) -> None:
        max_requests, _ = parse_rate_limit(get_settings().RATE_LIMIT_ACTIONS)
        headers = {"x-ms-client-principal-id": "operator-1"}

        for i in range(max_requests):
            response = client.post("/api/vms/vm-a/start", headers=headers)
            assert response.status_code == status.HTTP_200_OK, (
                f"Request {i + 1}/{max_requests} failed with unexpected status"
            )

        response = client.post("/api/vms/vm-a/start", headers=headers)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["error"].startswith("Rate limit exceeded")
        assert compute_client.virtual_machines.begin_start.call_count == max_requests

    def test_limits_are_tracked_per_caller(self, client: TestClient, compute_client) -> None:
        max_requests, _ = parse_rate_limit(get_settings().RATE_LIMIT_ACTIONS)

        for _ in range(max_requests + 1):
            client.post("/api/vms/vm-a/stop", headers={"x-ms-client-principal-id": "operator-1"})

        response = client.post("/api/vms/vm-a/stop", headers={"x-ms-client-principal-id": "operator-2"})

        assert response.status_code == status.HTTP_200_OK
