"""
Assessment Schemas — the engine's produced shape.

RiskAssessment carries the composed scores plus per-source outcome and
performance metadata for observability.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from hazardcast.schemas.hazards import HazardType


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AssessOptions(BaseModel):
    """Per-call options. Never part of the cache key."""

    model_config = ConfigDict(extra="ignore")

    force_refresh: bool = Field(
        default=False,
        validation_alias=AliasChoices("force_refresh", "forceRefresh"),
    )
    client_options: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("client_options", "clientOptions"),
    )


class HazardAssessment(BaseModel):
    """Trust-weighted score for one hazard."""

    hazard: HazardType
    score: Optional[int] = Field(default=None, ge=0, le=100)
    contributing_sources: list[str] = Field(default_factory=list)


class SourceOutcome(BaseModel):
    """What happened when one source was considered for a request."""

    source: str
    success: bool = False
    skipped: bool = False
    reason: Optional[str] = None
    error: Optional[str] = None
    retryable: Optional[bool] = None
    status: Optional[int] = None
    risks_covered: list[HazardType] = Field(default_factory=list)
    response_time_ms: Optional[float] = None
    raw_scores: dict[str, Optional[float]] = Field(default_factory=dict)


class PerformanceStats(BaseModel):
    """Aggregated fan-out counters."""

    external_api_calls: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    source_response_times: dict[str, float] = Field(default_factory=dict)


class RiskData(BaseModel):
    """Flat score view consumed by the request-handling layer."""

    overall_risk_score: int = Field(default=0, ge=0, le=100)
    flood_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    wildfire_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    heat_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    tornado_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    hurricane_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    earthquake_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    drought_risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    confidence_level: float = Field(default=0.0, ge=0.0, le=1.0)
    data_sources: list[str] = Field(default_factory=list)
    primary_risks: list[HazardType] = Field(default_factory=list)
    last_updated: str = Field(default_factory=_utcnow_iso)


class RiskAssessment(BaseModel):
    """Engine output for one coordinate and hazard set."""

    success: bool = True
    timestamp: str = Field(default_factory=_utcnow_iso)
    coordinates: dict[str, float]
    hazard_types: list[HazardType]
    risk_data: RiskData
    hazards: dict[HazardType, HazardAssessment] = Field(default_factory=dict)
    sources: dict[str, SourceOutcome] = Field(default_factory=dict)
    performance: PerformanceStats = Field(default_factory=PerformanceStats)
    processing_time_ms: float = 0.0
    cached: bool = False
    cache_age_seconds: Optional[float] = None
    cache_age_hours: Optional[int] = None

    @property
    def overall_risk_score(self) -> int:
        return self.risk_data.overall_risk_score

    @property
    def confidence(self) -> float:
        return self.risk_data.confidence_level

    @property
    def data_sources(self) -> list[str]:
        return self.risk_data.data_sources

    def score_for(self, hazard: HazardType) -> Optional[int]:
        """Aggregated score for a hazard, None when unresolved."""
        return getattr(self.risk_data, f"{HazardType(hazard).value}_risk_score")
