"""Data model for the aggregation engine."""

from hazardcast.schemas.assessment import (
    AssessOptions,
    HazardAssessment,
    PerformanceStats,
    RiskAssessment,
    RiskData,
    SourceOutcome,
)
from hazardcast.schemas.hazards import ALL_HAZARD_TYPES, Coordinate, HazardType

__all__ = [
    "ALL_HAZARD_TYPES",
    "AssessOptions",
    "Coordinate",
    "HazardAssessment",
    "HazardType",
    "PerformanceStats",
    "RiskAssessment",
    "RiskData",
    "SourceOutcome",
]
