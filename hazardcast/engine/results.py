"""
Per-source call results.

A SourceResult is either a SourceSuccess carrying raw hazard scores in the
uniform {hazard -> raw score} shape, or a SourceFailure, never both.
Provider-specific response parsing happens before this point, inside the
client bindings.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from hazardcast.schemas.hazards import HazardType


@dataclass(frozen=True)
class SourceSuccess:
    source: str
    scores: Mapping[HazardType, Optional[float]]
    risks_covered: tuple[HazardType, ...] = ()
    elapsed_ms: float = 0.0
    api_calls: int = 1
    cache_hits: int = 0
    cache_misses: int = 1
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class SourceFailure:
    source: str
    error: str
    retryable: bool = True
    status: Optional[int] = None
    reason: Optional[str] = None
    risks_covered: tuple[HazardType, ...] = ()
    elapsed_ms: float = 0.0
    success: bool = field(default=False, init=False)


SourceResult = Union[SourceSuccess, SourceFailure]


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def extract_raw_scores(payload: Mapping[str, Any]) -> dict[HazardType, Optional[float]]:
    """
    Pull {hazard -> raw score} out of a client payload.

    Entries without a numeric "score" are dropped; unknown hazard names are
    ignored.
    """
    risks = payload.get("risks") if isinstance(payload, Mapping) else None
    if not isinstance(risks, Mapping):
        return {}

    scores: dict[HazardType, Optional[float]] = {}
    for name, entry in risks.items():
        try:
            hazard = HazardType(str(name).lower())
        except ValueError:
            continue
        score = entry.get("score") if isinstance(entry, Mapping) else None
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            continue
        scores[hazard] = float(score)
    return scores


def success_from_payload(
    source: str,
    payload: Mapping[str, Any],
    risks_covered: tuple[HazardType, ...],
    elapsed_ms: float,
) -> SourceSuccess:
    """Build a SourceSuccess from a client's get_risk_data() return value."""
    return SourceSuccess(
        source=source,
        scores=extract_raw_scores(payload),
        risks_covered=risks_covered,
        elapsed_ms=elapsed_ms,
        api_calls=_as_int(payload.get("api_calls"), 1),
        cache_hits=_as_int(payload.get("cache_hits"), 0),
        cache_misses=_as_int(payload.get("cache_misses"), 1),
    )
