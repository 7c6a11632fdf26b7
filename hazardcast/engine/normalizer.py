"""
Score Normalizer — maps provider-native scales onto 0-100.

Each source declares the scale its raw scores are expressed in; the
mapping is a pure function of (value, scale). None stays None: a missing
score means "no opinion", never zero risk.
"""

import math
from enum import StrEnum
from typing import Optional

# 0°C anomaly maps to a moderate baseline; +5°C saturates near the top
ANOMALY_BASELINE: float = 30.0
ANOMALY_SLOPE: float = 14.0


class ScoreScale(StrEnum):
    PERCENTILE = "percentile"                # already 0-100 (percentiles, ratings)
    DECILE = "decile"                        # 1-10 integer bands
    TEMPERATURE_ANOMALY = "temperature_anomaly"  # delta in °C
    UNKNOWN = "unknown"


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    # Half-up rounding, not banker's rounding
    return int(math.floor(value + 0.5))


def normalize_score(
    value: Optional[float],
    scale: ScoreScale = ScoreScale.UNKNOWN,
) -> Optional[float]:
    """
    Normalize one raw provider score into [0, 100].

    Percentile, decile and unknown scales round to an integer. Temperature
    anomalies stay fractional; the aggregator rounds once after averaging.
    Returns None for None or non-finite input.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None

    if scale == ScoreScale.DECILE:
        normalized = (value - 1.0) / 9.0 * 100.0
    elif scale == ScoreScale.TEMPERATURE_ANOMALY:
        return _clamp(ANOMALY_BASELINE + value * ANOMALY_SLOPE)
    else:
        normalized = value

    return round_half_up(_clamp(normalized))
