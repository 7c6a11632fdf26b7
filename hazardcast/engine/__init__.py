"""
HazardCast Aggregation Engine.

Components:
- validation: coordinate bounds, hazard-type selection
- registry: per-source capabilities, trust weights, eligibility
- fanout: concurrent provider calls with a settle-all join
- normalizer: provider scales onto 0-100
- aggregation: trust-weighted per-hazard scores
- composer: overall score, confidence, primary risks
- aggregator: the assess() entry point
"""

from hazardcast.engine.aggregator import ClimateRiskAggregator, assess, get_default_aggregator
from hazardcast.engine.registry import DEFAULT_SOURCES, SourceCapability, SourceRegistry

__all__ = [
    "ClimateRiskAggregator",
    "DEFAULT_SOURCES",
    "SourceCapability",
    "SourceRegistry",
    "assess",
    "get_default_aggregator",
]
