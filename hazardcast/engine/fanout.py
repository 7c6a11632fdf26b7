"""
Fan-Out Orchestrator — concurrent provider calls with a settle-all join.

Every eligible source is called at once; the join waits for all of them
to resolve or fail, so latency is bounded by the slowest single source.
A source's exception is converted to a SourceFailure at this boundary and
never aborts the other calls. Missing the required source only degrades
the result.
"""

import asyncio
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from hazardcast.engine.registry import SourcePlan, SourceRegistry
from hazardcast.engine.results import (
    SourceFailure,
    SourceResult,
    SourceSuccess,
    success_from_payload,
)
from hazardcast.schemas.assessment import PerformanceStats, SourceOutcome
from hazardcast.schemas.hazards import Coordinate

logger = structlog.get_logger(__name__)

CLIENT_UNAVAILABLE = "client_unavailable"


@dataclass
class FanOutResult:
    """Everything the composer and the observability fields need."""

    successes: list[SourceSuccess] = field(default_factory=list)
    failures: list[SourceFailure] = field(default_factory=list)
    outcomes: dict[str, SourceOutcome] = field(default_factory=dict)
    performance: PerformanceStats = field(default_factory=PerformanceStats)

    @property
    def successful_sources(self) -> list[str]:
        return [s.source for s in self.successes]

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


class FanOutOrchestrator:
    """Issues one call per eligible source and settles them all."""

    def __init__(
        self,
        clients: Mapping[str, Any],
        registry: SourceRegistry,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.clients = clients
        self.registry = registry
        self._clock = clock

    def _elapsed_ms(self, started: float) -> float:
        return round((self._clock() - started) * 1000, 2)

    async def _call_source(
        self,
        plan: SourcePlan,
        coordinate: Coordinate,
        options: Mapping[str, Any],
    ) -> SourceResult:
        started = self._clock()
        client = self.clients.get(plan.name)
        if client is None:
            return SourceFailure(
                source=plan.name,
                error=f"Client not available for source: {plan.name}",
                retryable=False,
                reason=CLIENT_UNAVAILABLE,
                risks_covered=plan.relevant_hazards,
                elapsed_ms=self._elapsed_ms(started),
            )

        try:
            payload = await client.get_risk_data(
                coordinate.latitude,
                coordinate.longitude,
                list(plan.relevant_hazards),
                dict(options),
            )
        except Exception as exc:
            elapsed = self._elapsed_ms(started)
            logger.warning(
                "source_failed",
                source=plan.name,
                error_type=type(exc).__name__,
                error=str(exc)[:200],
                elapsed_ms=elapsed,
            )
            return SourceFailure(
                source=plan.name,
                error=str(exc),
                retryable=getattr(exc, "retryable", None) is not False,
                status=getattr(exc, "status", None),
                risks_covered=plan.relevant_hazards,
                elapsed_ms=elapsed,
            )

        elapsed = self._elapsed_ms(started)
        if not isinstance(payload, Mapping):
            logger.warning("source_invalid_payload", source=plan.name, payload_type=type(payload).__name__)
            return SourceFailure(
                source=plan.name,
                error=f"Invalid payload from source: {plan.name}",
                retryable=False,
                risks_covered=plan.relevant_hazards,
                elapsed_ms=elapsed,
            )
        logger.debug("source_succeeded", source=plan.name, elapsed_ms=elapsed)
        return success_from_payload(plan.name, payload, plan.relevant_hazards, elapsed)

    async def run(
        self,
        plans: Sequence[SourcePlan],
        coordinate: Coordinate,
        options: Optional[Mapping[str, Any]] = None,
    ) -> FanOutResult:
        """Call every non-skipped source concurrently and collect outcomes."""
        options = options or {}
        result = FanOutResult()

        active: list[SourcePlan] = []
        for plan in plans:
            if plan.skipped:
                logger.debug("source_skipped", source=plan.name, reason=plan.skip_reason)
                result.outcomes[plan.name] = SourceOutcome(
                    source=plan.name, skipped=True, reason=plan.skip_reason,
                )
            else:
                active.append(plan)

        settled = await asyncio.gather(
            *(self._call_source(plan, coordinate, options) for plan in active),
            return_exceptions=True,
        )

        for plan, outcome in zip(active, settled):
            if isinstance(outcome, BaseException):
                # _call_source converts Exceptions; anything else is cancellation
                if not isinstance(outcome, Exception):
                    raise outcome
                outcome = SourceFailure(
                    source=plan.name,
                    error=str(outcome),
                    risks_covered=plan.relevant_hazards,
                )
            self._record(result, outcome)

        for capability in self.registry.required_sources():
            if capability.name in result.outcomes and capability.name not in result.successful_sources:
                outcome = result.outcomes[capability.name]
                if not outcome.skipped:
                    logger.warning(
                        "required_source_unavailable",
                        source=capability.name,
                        error=outcome.error,
                        fallback_sources=result.successful_sources,
                    )

        return result

    def _record(self, result: FanOutResult, outcome: SourceResult) -> None:
        perf = result.performance
        perf.source_response_times[outcome.source] = outcome.elapsed_ms

        if isinstance(outcome, SourceSuccess):
            result.successes.append(outcome)
            perf.external_api_calls += outcome.api_calls
            perf.cache_hits += outcome.cache_hits
            perf.cache_misses += outcome.cache_misses
            result.outcomes[outcome.source] = SourceOutcome(
                source=outcome.source,
                success=True,
                risks_covered=list(outcome.risks_covered),
                response_time_ms=outcome.elapsed_ms,
                raw_scores={h.value: v for h, v in outcome.scores.items()},
            )
        else:
            result.failures.append(outcome)
            result.outcomes[outcome.source] = SourceOutcome(
                source=outcome.source,
                success=False,
                reason=outcome.reason,
                error=outcome.error,
                retryable=outcome.retryable,
                status=outcome.status,
                risks_covered=list(outcome.risks_covered),
                response_time_ms=outcome.elapsed_ms,
            )
