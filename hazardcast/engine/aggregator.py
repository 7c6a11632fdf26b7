"""
Climate Risk Aggregator — the engine's entry point.

Pipeline:
    validate → cache lookup → fan-out (settle-all) → normalize/aggregate
    per hazard → compose overall score, confidence, primary risks → cache
    store → return

Source failures never raise; they are absorbed into confidence and
data_sources. Only bad input (ValidationError) or an unexpected failure
while composing (AggregationError) surface to the caller.
"""

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from hazardcast.config import Settings, settings as default_settings
from hazardcast.engine.aggregation import aggregate_hazard_scores
from hazardcast.engine.composer import (
    calculate_confidence,
    calculate_overall_risk,
    identify_primary_risks,
)
from hazardcast.engine.fanout import FanOutOrchestrator, FanOutResult
from hazardcast.engine.registry import SourceRegistry, default_registry
from hazardcast.engine.validation import (
    HazardSelection,
    normalize_hazard_types,
    validate_coordinate,
)
from hazardcast.exceptions import AggregationError, HazardCastError, ValidationError
from hazardcast.schemas.assessment import (
    AssessOptions,
    RiskAssessment,
    RiskData,
)
from hazardcast.schemas.hazards import Coordinate, HazardType
from hazardcast.services.cache import (
    CacheEntry,
    InMemoryResultCache,
    RedisResultCache,
    ResultCache,
    build_cache_key,
)

logger = structlog.get_logger(__name__)

OptionsInput = Union[AssessOptions, Mapping[str, Any], None]


def _parse_options(options: OptionsInput) -> AssessOptions:
    if options is None:
        return AssessOptions()
    if isinstance(options, AssessOptions):
        return options
    if not isinstance(options, Mapping):
        raise ValidationError(
            "options must be a mapping",
            field="options",
            details={"value": repr(options)},
        )
    try:
        return AssessOptions.model_validate(dict(options))
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid assessment options",
            field="options",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def build_result_cache(settings: Settings, clock: Callable[[], float] = time.time) -> ResultCache:
    """Redis when REDIS_URL is configured, otherwise process-local."""
    if settings.redis_url:
        return RedisResultCache(
            url=settings.redis_url,
            ttl_seconds=settings.result_cache_ttl_seconds,
            clock=clock,
        )
    return InMemoryResultCache(
        ttl_seconds=settings.result_cache_ttl_seconds,
        max_entries=settings.result_cache_max_entries,
        eviction_batch=settings.result_cache_eviction_batch,
        clock=clock,
    )


class ClimateRiskAggregator:
    """
    Multi-source climate risk aggregation.

    Usage:
        aggregator = ClimateRiskAggregator(clients={"fema": FEMAClient()})
        assessment = await aggregator.assess(29.7604, -95.3698, ["flood"])
        assessment.overall_risk_score, assessment.confidence
    """

    def __init__(
        self,
        clients: Optional[Mapping[str, Any]] = None,
        registry: Optional[SourceRegistry] = None,
        cache: Optional[ResultCache] = None,
        settings: Optional[Settings] = None,
        credentials: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or default_settings
        self._owns_clients = clients is None
        if clients is None:
            from hazardcast.clients import build_default_clients

            clients = build_default_clients(self.settings)
            # Only plan sources that have a binding here
            if registry is None:
                registry = default_registry.restricted_to(clients)
        self.registry = registry if registry is not None else default_registry
        self.clients = dict(clients)
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else build_result_cache(self.settings, clock)
        self.credentials = dict(credentials) if credentials is not None else self.settings.credentials()
        self._clock = clock
        self._fanout = FanOutOrchestrator(self.clients, self.registry)

    async def aclose(self) -> None:
        """Close clients and the cache connection this aggregator created."""
        if self._owns_clients:
            for client in self.clients.values():
                close = getattr(client, "close", None)
                if close is not None:
                    await close()
        if self._owns_cache and isinstance(self.cache, RedisResultCache):
            await self.cache.close()

    def cache_key(self, coordinate: Coordinate, hazards: tuple[HazardType, ...]) -> str:
        return build_cache_key(coordinate, hazards, self.settings.cache_coordinate_precision)

    async def assess(
        self,
        latitude: float,
        longitude: float,
        hazard_types: HazardSelection = "all",
        options: OptionsInput = None,
    ) -> RiskAssessment:
        """
        Assess climate risk for one coordinate.

        Args:
            latitude: Decimal degrees in [-90, 90]
            longitude: Decimal degrees in [-180, 180]
            hazard_types: "all", a comma-separated string or a list of names
            options: AssessOptions or dict (force_refresh, client_options)

        Returns:
            RiskAssessment, annotated cached=True on a cache hit

        Raises:
            ValidationError: Bad coordinates or hazard selection
            AggregationError: Composition failed unexpectedly
        """
        started = time.perf_counter()
        logger.info(
            "assessment_started",
            latitude=latitude,
            longitude=longitude,
            hazard_types=hazard_types,
        )

        coordinate = validate_coordinate(latitude, longitude)
        hazards = normalize_hazard_types(hazard_types)
        opts = _parse_options(options)
        key = self.cache_key(coordinate, hazards)

        if not opts.force_refresh:
            cached = await self._cache_get(key)
            if cached is not None:
                return cached

        try:
            fanout = await self._fanout.run(
                self.registry.plan(hazards, self.credentials),
                coordinate,
                {"force_refresh": opts.force_refresh, **opts.client_options},
            )
            assessment = self._compose(coordinate, hazards, fanout, started)
        except HazardCastError:
            raise
        except Exception as exc:
            logger.error(
                "assessment_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
            )
            raise AggregationError(f"Climate data aggregation failed: {exc}", cause=exc) from exc

        await self._cache_set(key, assessment)

        logger.info(
            "assessment_completed",
            overall_risk=assessment.overall_risk_score,
            primary_risks=[h.value for h in assessment.risk_data.primary_risks],
            data_sources=len(assessment.data_sources),
            processing_time_ms=assessment.processing_time_ms,
            confidence=assessment.confidence,
            degraded=fanout.degraded,
        )
        return assessment.model_copy(deep=True)

    async def _cache_get(self, key: str) -> Optional[RiskAssessment]:
        # A broken cache backend or a stale entry degrades to a miss
        try:
            entry = await self.cache.get(key)
        except Exception as e:
            logger.warning("result_cache_get_error", key=key, error=str(e))
            return None
        if entry is None:
            return None

        value = entry.value
        if not isinstance(value, RiskAssessment):
            try:
                value = RiskAssessment.model_validate(value)
            except PydanticValidationError as e:
                logger.warning(
                    "result_cache_get_error",
                    key=key,
                    error="entry does not validate",
                    errors=e.error_count(),
                )
                await self._cache_delete(key)
                return None
        return self._from_cache(entry, value)

    async def _cache_set(self, key: str, assessment: RiskAssessment) -> None:
        try:
            await self.cache.set(key, assessment)
        except Exception as e:
            logger.warning("result_cache_set_error", key=key, error=str(e))

    async def _cache_delete(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except Exception as e:
            logger.warning("result_cache_delete_error", key=key, error=str(e))

    def _from_cache(self, entry: CacheEntry, value: RiskAssessment) -> RiskAssessment:
        age = entry.age_seconds(self._clock())
        logger.info("assessment_cache_hit", key=entry.key, age_seconds=round(age, 1))
        return value.model_copy(
            deep=True,
            update={
                "cached": True,
                "cache_age_seconds": round(age, 3),
                "cache_age_hours": round(age / 3600),
            },
        )

    def _compose(
        self,
        coordinate: Coordinate,
        hazards: tuple[HazardType, ...],
        fanout: FanOutResult,
        started: float,
    ) -> RiskAssessment:
        hazard_assessments = aggregate_hazard_scores(fanout.successes, self.registry, hazards)
        scores = {h: a.score for h, a in hazard_assessments.items()}
        successful = fanout.successful_sources

        risk_data = RiskData(
            overall_risk_score=calculate_overall_risk(scores),
            confidence_level=calculate_confidence(successful, self.registry),
            data_sources=successful,
            primary_risks=identify_primary_risks(scores),
            last_updated=datetime.now(timezone.utc).isoformat(),
            **{f"{h.value}_risk_score": s for h, s in scores.items()},
        )

        return RiskAssessment(
            coordinates=coordinate.to_dict(),
            hazard_types=list(hazards),
            risk_data=risk_data,
            hazards=hazard_assessments,
            sources=fanout.outcomes,
            performance=fanout.performance,
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            cached=False,
        )


_default_aggregator: Optional[ClimateRiskAggregator] = None


def get_default_aggregator() -> ClimateRiskAggregator:
    """Lazily created process-wide aggregator with the default clients."""
    global _default_aggregator
    if _default_aggregator is None:
        _default_aggregator = ClimateRiskAggregator()
    return _default_aggregator


async def assess(
    latitude: float,
    longitude: float,
    hazard_types: HazardSelection = "all",
    options: OptionsInput = None,
) -> RiskAssessment:
    """Convenience wrapper around the default aggregator."""
    return await get_default_aggregator().assess(latitude, longitude, hazard_types, options)
