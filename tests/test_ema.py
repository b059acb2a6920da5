"""Tests for the EMA weight trend with missing day handling."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from metabolic.tracking.ema import (
    DEFAULT_SMOOTHING,
    calculate_trend,
    implied_daily_balance,
    time_scaled_alpha,
    update_trend,
)
from metabolic.units import KCAL_PER_KG


class TestTimeScaledAlpha:
    """Tests for time_scaled_alpha function."""

    def test_daily_unchanged(self) -> None:
        """Alpha should be unchanged for daily measurements."""
        assert time_scaled_alpha(0.1, 1) == pytest.approx(0.1)

    def test_three_day_gap(self) -> None:
        """After 3 days, alpha should be 1 - 0.9^3 ≈ 0.271."""
        assert time_scaled_alpha(0.1, 3) == pytest.approx(1 - 0.9**3)

    def test_zero_days_treated_as_one(self) -> None:
        """Zero or negative days should be treated as 1."""
        assert time_scaled_alpha(0.1, 0) == pytest.approx(0.1)
        assert time_scaled_alpha(0.1, -2) == pytest.approx(0.1)

    def test_large_gap_approaches_one(self) -> None:
        """Very large gaps should result in alpha near 1."""
        assert time_scaled_alpha(0.1, 30) > 0.95


class TestUpdateTrend:
    """Tests for update_trend function."""

    def test_daily_update(self) -> None:
        """A daily reading moves the trend 10% of the way."""
        assert update_trend(80.0, 79.0) == pytest.approx(79.9)

    def test_multi_day_gap_gives_more_weight(self) -> None:
        """Longer gaps should give more weight to the new reading."""
        daily = update_trend(80.0, 79.0, days_elapsed=1)
        three_day = update_trend(80.0, 79.0, days_elapsed=3)
        assert three_day < daily


class TestCalculateTrend:
    """Tests for calculate_trend function."""

    def test_empty(self) -> None:
        assert calculate_trend([]) == []

    def test_first_reading_seeds_trend(self) -> None:
        trends = calculate_trend([(date(2025, 1, 1), 82.0), (date(2025, 1, 2), 81.0)])
        assert trends[0] == 82.0
        assert trends[1] == pytest.approx(82.0 + DEFAULT_SMOOTHING * (81.0 - 82.0))

    def test_gap_uses_time_scaled_alpha(self) -> None:
        """A 3-day gap should use the 3-day alpha."""
        trends = calculate_trend([(date(2025, 1, 1), 82.0), (date(2025, 1, 4), 81.0)])
        assert trends[1] == pytest.approx(82.0 + time_scaled_alpha(0.1, 3) * -1.0)

    def test_smooths_noise(self) -> None:
        """Alternating readings should produce a much flatter trend."""
        start = date(2025, 1, 1)
        readings = [(start + timedelta(days=i), 80.0 + (1.0 if i % 2 else -1.0)) for i in range(30)]
        trends = calculate_trend(readings)
        assert max(trends[20:]) - min(trends[20:]) < 0.5


class TestImpliedDailyBalance:
    """Tests for implied_daily_balance function."""

    def test_one_kg_loss_over_a_week(self) -> None:
        """Losing 1 kg in 7 days implies a deficit of KCAL_PER_KG / 7 per day."""
        assert implied_daily_balance(80.0, 79.0, 7) == pytest.approx(-KCAL_PER_KG / 7)

    def test_no_change(self) -> None:
        assert implied_daily_balance(80.0, 80.0, 7) == 0.0

    def test_rejects_non_positive_days(self) -> None:
        with pytest.raises(ValueError):
            implied_daily_balance(80.0, 79.0, 0)
