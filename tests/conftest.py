"""
Pytest Configuration and Fixtures.

Provides fake provider clients, a controllable clock and isolated
settings for testing HazardCast components without network access.
"""

import os
from collections.abc import Mapping, Sequence
from typing import Any, Optional

import pytest

# Keep the environment from leaking real credentials or a shared cache into tests
os.environ["ENVIRONMENT"] = "testing"
os.environ["REDIS_URL"] = ""
for _var in ("FEMA_API_KEY", "NOAA_API_TOKEN", "CLIMATE_CHECK_API_KEY", "FIRST_STREET_API_KEY"):
    os.environ.pop(_var, None)

from hazardcast.config import Settings  # noqa: E402
from hazardcast.exceptions import ExternalSourceError  # noqa: E402
from hazardcast.schemas.hazards import HazardType  # noqa: E402
from hazardcast.services.cache import InMemoryResultCache  # noqa: E402


# ============================================================================
# FAKE CLIENTS
# ============================================================================


class StaticClient:
    """Returns fixed raw scores for whichever requested hazards it knows."""

    def __init__(self, scores: Mapping[str, Optional[float]], api_calls: int = 1):
        self.scores = dict(scores)
        self.api_calls = api_calls
        self.calls: list[dict[str, Any]] = []

    async def get_risk_data(
        self,
        latitude: float,
        longitude: float,
        hazard_types: Sequence[HazardType],
        options: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        self.calls.append({
            "latitude": latitude,
            "longitude": longitude,
            "hazard_types": list(hazard_types),
            "options": dict(options or {}),
        })
        return {
            "risks": {
                h.value: {"score": self.scores.get(h.value)}
                for h in hazard_types
            },
            "api_calls": self.api_calls,
            "cache_hits": 0,
            "cache_misses": 1,
        }

    @property
    def call_count(self) -> int:
        return len(self.calls)


class FailingClient:
    """Raises the given exception on every call."""

    def __init__(self, exc: Optional[BaseException] = None):
        self.exc = exc or ExternalSourceError("fake", "HTTP 503", status=503)
        self.call_count = 0

    async def get_risk_data(self, latitude, longitude, hazard_types, options=None):
        self.call_count += 1
        raise self.exc


class FakeClock:
    """Manually advanced clock, usable as time.time / time.monotonic."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep stand-in that records delays and advances a clock."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.delays: list[float] = []
        self.clock = clock

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with fast retries and no credentials."""
    return Settings(
        client_max_retries=2,
        client_retry_base_delay=0.001,
        client_retry_max_delay=0.01,
        redis_url="",
    )


@pytest.fixture
def result_cache(clock) -> InMemoryResultCache:
    return InMemoryResultCache(ttl_seconds=3600, max_entries=1000, clock=clock)
