"""
HazardCast — multi-source climate risk aggregation.

Architecture:
    hazardcast/
    ├── schemas/    # HazardType, Coordinate, RiskAssessment models
    ├── engine/     # Validation, registry, fan-out, normalization, composition
    ├── services/   # Result cache, retry + throttle helpers
    └── clients/    # Uniform provider contract and HTTP bindings

Data Flow:
    caller → validate → result cache → fan-out to providers (settle-all)
    → normalize → aggregate per hazard → compose → cache → caller

Version: 1.0.0
"""

from hazardcast.engine.aggregator import ClimateRiskAggregator, assess
from hazardcast.exceptions import (
    AggregationError,
    ExternalSourceError,
    HazardCastError,
    RateLimitError,
    ValidationError,
)
from hazardcast.schemas import HazardType, RiskAssessment

__version__ = "1.0.0"

__all__ = [
    "AggregationError",
    "ClimateRiskAggregator",
    "ExternalSourceError",
    "HazardCastError",
    "HazardType",
    "RateLimitError",
    "RiskAssessment",
    "ValidationError",
    "assess",
]
