"""
Score Normalizer Tests.
"""

import math

import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from hazardcast.engine.normalizer import ScoreScale, normalize_score, round_half_up


class TestNormalizeScore:
    """Test provider-scale mapping onto 0-100."""

    def test_none_stays_none(self):
        """Missing data is never zero risk."""
        for scale in ScoreScale:
            assert normalize_score(None, scale) is None

    def test_percentile_passthrough(self):
        """0-100 values pass through, rounded."""
        assert normalize_score(75, ScoreScale.PERCENTILE) == 75
        assert normalize_score(42.5, ScoreScale.PERCENTILE) == 43

    def test_percentile_clamped(self):
        """Out-of-range values are clamped."""
        assert normalize_score(130, ScoreScale.PERCENTILE) == 100
        assert normalize_score(-5, ScoreScale.PERCENTILE) == 0

    def test_decile_endpoints(self):
        """1 maps to 0, 10 maps to 100."""
        assert normalize_score(1, ScoreScale.DECILE) == 0
        assert normalize_score(10, ScoreScale.DECILE) == 100

    def test_decile_midpoint(self):
        """7 of 10 maps to (6/9)*100 = 66.67 → 67."""
        assert normalize_score(7, ScoreScale.DECILE) == 67

    def test_temperature_anomaly(self):
        """0°C → baseline 30; +2.5°C → 65; large anomalies saturate."""
        assert normalize_score(0, ScoreScale.TEMPERATURE_ANOMALY) == 30
        assert normalize_score(2.5, ScoreScale.TEMPERATURE_ANOMALY) == 65
        assert normalize_score(10, ScoreScale.TEMPERATURE_ANOMALY) == 100
        assert normalize_score(-5, ScoreScale.TEMPERATURE_ANOMALY) == 0

    def test_temperature_anomaly_not_rounded(self):
        """Anomalies keep their fraction until after averaging."""
        assert normalize_score(0.25, ScoreScale.TEMPERATURE_ANOMALY) == pytest.approx(33.5)

    def test_unknown_scale_treated_as_percentile(self):
        """Unknown scale clamps like a percentile."""
        assert normalize_score(55.4) == 55

    @pytest.mark.parametrize("value", ["high", math.nan, math.inf, True])
    def test_unusable_values(self, value):
        """Non-numeric, non-finite and boolean values are dropped."""
        assert normalize_score(value, ScoreScale.PERCENTILE) is None

    @given(
        value=st.floats(allow_nan=False, allow_infinity=False, min_value=-1e6, max_value=1e6),
        scale=st.sampled_from(list(ScoreScale)),
    )
    @hyp_settings(max_examples=50)
    def test_always_in_bounds(self, value, scale):
        """Every finite input normalizes into [0, 100]."""
        result = normalize_score(value, scale)
        assert 0 <= result <= 100
        if scale != ScoreScale.TEMPERATURE_ANOMALY:
            assert isinstance(result, int)


class TestRoundHalfUp:
    """Half-up rounding, not banker's rounding."""

    def test_half_rounds_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(75.5) == 76

    def test_below_half_rounds_down(self):
        assert round_half_up(75.49) == 75
