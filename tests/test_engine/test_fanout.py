"""
Fan-Out Orchestrator Tests — settle-all concurrency and failure isolation.
"""

import asyncio

import pytest
from structlog.testing import capture_logs

from conftest import FailingClient, StaticClient
from hazardcast.engine.fanout import CLIENT_UNAVAILABLE, FanOutOrchestrator
from hazardcast.engine.registry import SKIP_PREMIUM_NOT_CONFIGURED, default_registry
from hazardcast.engine.validation import validate_coordinate
from hazardcast.exceptions import ExternalSourceError
from hazardcast.schemas.hazards import ALL_HAZARD_TYPES, HazardType

HOUSTON = validate_coordinate(29.7604, -95.3698)


class SlowClient(StaticClient):
    """Records overlap between concurrent calls."""

    active = 0
    peak = 0

    async def get_risk_data(self, latitude, longitude, hazard_types, options=None):
        SlowClient.active += 1
        SlowClient.peak = max(SlowClient.peak, SlowClient.active)
        await asyncio.sleep(0.01)
        SlowClient.active -= 1
        return await super().get_risk_data(latitude, longitude, hazard_types, options)


@pytest.mark.asyncio
class TestFanOut:
    """Test concurrent provider calls."""

    async def test_all_eligible_sources_called(self):
        """Every non-skipped source receives only its relevant hazards."""
        fema = StaticClient({"flood": 60})
        noaa = StaticClient({"heat": 1.0})
        usgs = StaticClient({"earthquake": 20})
        orchestrator = FanOutOrchestrator({"fema": fema, "noaa": noaa, "usgs": usgs}, default_registry)

        result = await orchestrator.run(default_registry.plan(ALL_HAZARD_TYPES, {}), HOUSTON)

        assert sorted(result.successful_sources) == ["fema", "noaa", "usgs"]
        assert noaa.calls[0]["hazard_types"] == [HazardType.HEAT, HazardType.HURRICANE, HazardType.DROUGHT]
        assert usgs.calls[0]["hazard_types"] == [HazardType.EARTHQUAKE]
        assert result.performance.external_api_calls == 3
        assert not result.degraded

    async def test_skipped_sources_recorded(self):
        """Premium sources without credentials appear as skipped, not failed."""
        orchestrator = FanOutOrchestrator({"fema": StaticClient({})}, default_registry)
        plans = default_registry.plan([HazardType.FLOOD], {})

        result = await orchestrator.run(plans, HOUSTON)

        assert result.outcomes["first_street"].skipped is True
        assert result.outcomes["first_street"].reason == SKIP_PREMIUM_NOT_CONFIGURED
        assert "first_street" not in [f.source for f in result.failures]

    async def test_failure_isolated(self):
        """One failing source does not abort the others."""
        clients = {
            "fema": FailingClient(ExternalSourceError("fema", "HTTP 503", status=503)),
            "noaa": StaticClient({"heat": 2.0}),
        }
        orchestrator = FanOutOrchestrator(clients, default_registry)

        result = await orchestrator.run(default_registry.plan([HazardType.FLOOD, HazardType.HEAT], {}), HOUSTON)

        assert result.successful_sources == ["noaa"]
        assert result.degraded
        fema = result.outcomes["fema"]
        assert fema.success is False
        assert fema.retryable is True
        assert fema.status == 503

    async def test_generic_exception_retryable_by_default(self):
        """Errors without a retryable flag are treated as transient."""
        orchestrator = FanOutOrchestrator({"fema": FailingClient(RuntimeError("boom"))}, default_registry)
        result = await orchestrator.run(default_registry.plan([HazardType.FLOOD], {}), HOUSTON)
        assert result.outcomes["fema"].retryable is True
        assert "boom" in result.outcomes["fema"].error

    async def test_non_retryable_flag_kept(self):
        exc = ExternalSourceError("fema", "HTTP 401", status=401)
        orchestrator = FanOutOrchestrator({"fema": FailingClient(exc)}, default_registry)
        result = await orchestrator.run(default_registry.plan([HazardType.FLOOD], {}), HOUSTON)
        assert result.outcomes["fema"].retryable is False

    async def test_missing_client(self):
        """An eligible source without a client fails non-retryably."""
        orchestrator = FanOutOrchestrator({}, default_registry)
        result = await orchestrator.run(default_registry.plan([HazardType.EARTHQUAKE], {}), HOUSTON)
        assert result.outcomes["usgs"].reason == CLIENT_UNAVAILABLE
        assert result.outcomes["usgs"].retryable is False
        assert result.successful_sources == []

    async def test_invalid_payload(self):
        """A non-mapping payload is a failure, not a crash."""

        class BadClient:
            async def get_risk_data(self, *args, **kwargs):
                return ["not", "a", "mapping"]

        orchestrator = FanOutOrchestrator({"fema": BadClient()}, default_registry)
        result = await orchestrator.run(default_registry.plan([HazardType.FLOOD], {}), HOUSTON)
        assert result.outcomes["fema"].success is False

    async def test_required_source_warning(self):
        """Losing FEMA degrades the result and logs a warning."""
        orchestrator = FanOutOrchestrator(
            {"fema": FailingClient(), "noaa": StaticClient({"heat": 1.0})}, default_registry,
        )
        with capture_logs() as logs:
            await orchestrator.run(default_registry.plan([HazardType.FLOOD, HazardType.HEAT], {}), HOUSTON)
        events = [entry["event"] for entry in logs]
        assert "required_source_unavailable" in events
        assert "source_failed" in events

    async def test_calls_run_concurrently(self):
        """Calls overlap instead of running one after another."""
        SlowClient.active = SlowClient.peak = 0
        clients = {
            "fema": SlowClient({"flood": 10}),
            "noaa": SlowClient({"heat": 1.0}),
            "usgs": SlowClient({"earthquake": 5}),
        }
        orchestrator = FanOutOrchestrator(clients, default_registry)
        result = await orchestrator.run(default_registry.plan(ALL_HAZARD_TYPES, {}), HOUSTON)
        assert SlowClient.peak == 3
        assert len(result.successes) == 3

    async def test_options_forwarded(self):
        fema = StaticClient({"flood": 10})
        orchestrator = FanOutOrchestrator({"fema": fema}, default_registry)
        await orchestrator.run(default_registry.plan([HazardType.FLOOD], {}), HOUSTON, {"force_refresh": True})
        assert fema.calls[0]["options"] == {"force_refresh": True}

    async def test_cancellation_propagates(self):
        """Cancellation is not swallowed as a source failure."""

        class CancellingClient:
            async def get_risk_data(self, *args, **kwargs):
                raise asyncio.CancelledError()

        orchestrator = FanOutOrchestrator({"fema": CancellingClient()}, default_registry)
        with pytest.raises(asyncio.CancelledError):
            await orchestrator.run(default_registry.plan([HazardType.FLOOD], {}), HOUSTON)
