"""
Hazard Aggregator — trust-weighted average per hazard across sources.

For each hazard:
  score = round( Σ(score_i × w_i) / Σ(w_i) )

over contributing sources only, so weights renormalize to 1 across the
sources that actually produced data. A hazard with a single contributor
gets that contributor's normalized score unchanged; a hazard with none is
None.

Strongly disagreeing sources are averaged, not reconciled.
"""

from collections.abc import Iterable
from typing import Optional

import structlog

from hazardcast.engine.normalizer import ScoreScale, normalize_score, round_half_up
from hazardcast.engine.registry import SourceRegistry
from hazardcast.engine.results import SourceSuccess
from hazardcast.schemas.assessment import HazardAssessment
from hazardcast.schemas.hazards import HazardType

logger = structlog.get_logger(__name__)


def weighted_average(pairs: Iterable[tuple[float, float]]) -> Optional[float]:
    """Σ(value·weight)/Σ(weight) over the given pairs, None if total weight is 0."""
    weighted_sum = 0.0
    total_weight = 0.0
    for value, weight in pairs:
        weighted_sum += value * weight
        total_weight += weight
    if total_weight <= 0:
        return None
    return weighted_sum / total_weight


def aggregate_hazard_scores(
    successes: Iterable[SourceSuccess],
    registry: SourceRegistry,
    hazards: Iterable[HazardType],
) -> dict[HazardType, HazardAssessment]:
    """
    Combine normalized source scores into one HazardAssessment per hazard.

    Args:
        successes: Successful source results
        registry: Supplies trust weights and native scales
        hazards: Requested hazards; others are ignored

    Returns:
        Mapping of every requested hazard to its assessment
    """
    successes = list(successes)
    assessments: dict[HazardType, HazardAssessment] = {}

    for hazard in hazards:
        pairs: list[tuple[float, float]] = []
        contributors: list[str] = []

        for result in successes:
            raw = result.scores.get(hazard)
            capability = registry.get(result.source)
            scale = capability.scale_for(hazard) if capability else ScoreScale.UNKNOWN
            normalized = normalize_score(raw, scale)
            if normalized is None:
                continue
            weight = registry.trust_weight(result.source)
            pairs.append((float(normalized), weight))
            contributors.append(result.source)

        average = weighted_average(pairs)
        if average is None and pairs:
            # Every contributor has zero trust weight; fall back to plain mean
            average = weighted_average((value, 1.0) for value, _ in pairs)

        assessments[hazard] = HazardAssessment(
            hazard=hazard,
            score=round_half_up(average) if average is not None else None,
            contributing_sources=contributors,
        )

        logger.debug(
            "hazard_aggregated",
            hazard=hazard.value,
            score=assessments[hazard].score,
            contributors=contributors,
        )

    return assessments
