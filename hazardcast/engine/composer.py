"""
Overall Risk Composer.

Pure functions over aggregated hazard scores:
- calculate_overall_risk: importance-weighted composite across hazards
- calculate_confidence: additive coverage heuristic over contributing sources
- identify_primary_risks: ordered list of the hazards that matter most

Confidence is a tuned heuristic rewarding source authority and diversity,
not a statistical error bound. Tuning lives in the constants below.
"""

from collections.abc import Iterable, Mapping
from typing import Optional

from hazardcast.engine.aggregation import weighted_average
from hazardcast.engine.normalizer import round_half_up
from hazardcast.engine.registry import SourceRegistry, default_registry
from hazardcast.schemas.hazards import HazardType

# ── Hazard importance (impact potential) ──────────────────────────────────

HAZARD_IMPORTANCE_WEIGHTS: dict[HazardType, float] = {
    HazardType.FLOOD: 0.25,
    HazardType.WILDFIRE: 0.20,
    HazardType.HURRICANE: 0.20,
    HazardType.EARTHQUAKE: 0.15,
    HazardType.TORNADO: 0.10,
    HazardType.HEAT: 0.05,
    HazardType.DROUGHT: 0.05,
}
DEFAULT_HAZARD_WEIGHT: float = 0.1

# ── Confidence heuristic ──────────────────────────────────────────────────

CONFIDENCE_BASE: float = 0.3
CONFIDENCE_BONUS_THREE_SOURCES: float = 0.10
CONFIDENCE_BONUS_FOUR_SOURCES: float = 0.05

# ── Primary risk selection ────────────────────────────────────────────────

HIGH_RISK_THRESHOLD: int = 70
SECONDARY_RISK_FLOOR: int = 30


def _resolved(scores: Mapping[HazardType, Optional[int]]) -> dict[HazardType, int]:
    return {h: s for h, s in scores.items() if s is not None}


def calculate_overall_risk(
    scores: Mapping[HazardType, Optional[int]],
    weights: Mapping[HazardType, float] = HAZARD_IMPORTANCE_WEIGHTS,
) -> int:
    """
    Importance-weighted average of resolved hazard scores.

    Weights renormalize over resolved hazards only; 0 when none resolved.
    """
    resolved = _resolved(scores)
    average = weighted_average(
        (score, weights.get(hazard, DEFAULT_HAZARD_WEIGHT))
        for hazard, score in resolved.items()
    )
    if average is None:
        return 0
    return max(0, min(100, round_half_up(average)))


def calculate_confidence(
    successful_sources: Iterable[str],
    registry: SourceRegistry = default_registry,
) -> float:
    """
    Confidence in [0, 1] from the set of sources that returned data.

    0.0 when nothing contributed. Otherwise a base value plus each source's
    authority-ranked increment, with bonuses once three and four sources
    contribute. Non-decreasing as sources are added.
    """
    sources = list(dict.fromkeys(successful_sources))
    if not sources:
        return 0.0

    confidence = CONFIDENCE_BASE
    for name in sources:
        confidence += registry.confidence_increment(name)

    if len(sources) >= 3:
        confidence += CONFIDENCE_BONUS_THREE_SOURCES
    if len(sources) >= 4:
        confidence += CONFIDENCE_BONUS_FOUR_SOURCES

    return round(min(1.0, max(0.0, confidence)), 2)


def identify_primary_risks(
    scores: Mapping[HazardType, Optional[int]],
    high_threshold: int = HIGH_RISK_THRESHOLD,
    secondary_floor: int = SECONDARY_RISK_FLOOR,
) -> list[HazardType]:
    """
    Hazards to headline, highest score first.

    Every hazard at or above high_threshold; if none qualify, the single
    highest plus the runner-up when it exceeds secondary_floor.
    """
    ranked = sorted(_resolved(scores).items(), key=lambda item: item[1], reverse=True)
    if not ranked:
        return []

    primary = [hazard for hazard, score in ranked if score >= high_threshold]
    if primary:
        return primary

    primary = [ranked[0][0]]
    if len(ranked) > 1 and ranked[1][1] > secondary_floor:
        primary.append(ranked[1][0])
    return primary
