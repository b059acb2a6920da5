"""Tests for weight and goal-date prediction."""

from __future__ import annotations

from datetime import date

import pytest

from conftest import make_estimate

from metabolic.config.settings import PredictionConfig
from metabolic.errors import InvalidInputError
from metabolic.tracking.prediction import (
    confidence_half_width_kg,
    predict_goal_date,
    predict_weight,
    predict_weights,
    required_daily_calories,
    tdee_sigma,
)


class TestPredictWeight:
    """Tests for predict_weight function."""

    def test_worked_example(self) -> None:
        """180 lb at 500 kcal under a 2500 TDEE for 30 days loses ~4.3 lb."""
        prediction = predict_weight(180.0, make_estimate(2500.0), 2000.0, 30, unit="lb")

        assert prediction.predicted_weight == pytest.approx(175.714, abs=0.001)
        assert prediction.predicted_change == pytest.approx(-4.286, abs=0.001)
        assert prediction.unit == "lb"
        assert prediction.assumed_daily_calories == 2000.0

    def test_kilogram_units(self) -> None:
        """The same plan in kg loses the same mass."""
        prediction = predict_weight(80.0, make_estimate(2500.0, unit="kg"), 2000.0, 30, unit="kg")
        assert prediction.predicted_change == pytest.approx(-4.286 * 0.45359237, abs=0.001)

    def test_zero_imbalance_keeps_weight(self) -> None:
        prediction = predict_weight(180.0, make_estimate(2500.0), 2500.0, 30)
        low, high = prediction.confidence_range

        assert prediction.predicted_weight == pytest.approx(180.0, abs=1e-9)
        assert low < 180.0 < high
        assert high - low < 1.0

    def test_range_contains_prediction(self) -> None:
        prediction = predict_weight(180.0, make_estimate(2500.0), 2200.0, 60)
        low, high = prediction.confidence_range
        assert low < prediction.predicted_weight < high

    @pytest.mark.parametrize("target", [1800.0, 2500.0, 3000.0])
    @pytest.mark.parametrize("score", [0, 20, 60, 100])
    def test_width_non_decreasing_in_days(self, target: float, score: int) -> None:
        estimate = make_estimate(2500.0, confidence_score=score)
        widths = []
        for days in [0, 1, 7, 14, 30, 60, 90, 180]:
            low, high = predict_weight(180.0, estimate, target, days).confidence_range
            widths.append(high - low)
        assert widths == sorted(widths)

    def test_higher_confidence_narrows_range(self) -> None:
        wide = predict_weight(180.0, make_estimate(confidence_score=20), 2000.0, 30)
        narrow = predict_weight(180.0, make_estimate(confidence_score=90), 2000.0, 30)
        assert (narrow.confidence_range[1] - narrow.confidence_range[0]) < (
            wide.confidence_range[1] - wide.confidence_range[0]
        )

    def test_target_date(self) -> None:
        prediction = predict_weight(
            180.0, make_estimate(), 2000.0, 14, start_date=date(2025, 3, 1)
        )
        assert prediction.target_date == date(2025, 3, 15)
        assert predict_weight(180.0, make_estimate(), 2000.0, 14).target_date is None

    def test_negative_days_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            predict_weight(180.0, make_estimate(), 2000.0, -1)


class TestUncertainty:
    """Tests for interval helpers."""

    def test_sigma_interpolates_with_score(self) -> None:
        cfg = PredictionConfig()
        assert tdee_sigma(0, cfg) == cfg.max_tdee_sigma
        assert tdee_sigma(100, cfg) == cfg.min_tdee_sigma
        assert tdee_sigma(150, cfg) == cfg.min_tdee_sigma

    def test_zero_days_has_no_width(self) -> None:
        assert confidence_half_width_kg(0, 0.0, 50, PredictionConfig()) == 0.0


class TestPredictWeights:
    """Tests for predict_weights function."""

    def test_default_horizons(self) -> None:
        predictions = predict_weights(180.0, make_estimate(), 2000.0)
        assert [p.days_from_now for p in predictions] == [7, 14, 30, 60, 90]

    def test_custom_horizons(self) -> None:
        predictions = predict_weights(180.0, make_estimate(), 2000.0, horizons=[3, 10])
        assert [p.days_from_now for p in predictions] == [3, 10]


class TestPredictGoalDate:
    """Tests for predict_goal_date function."""

    def test_days_to_goal(self) -> None:
        # 10 lb at 500 kcal/day = 70 days
        goal = predict_goal_date(
            180.0, 170.0, make_estimate(2500.0), 2000.0, start_date=date(2025, 1, 1)
        )
        assert goal.days_required == 70
        assert goal.estimated_date == date(2025, 3, 12)
        assert goal.days_range[0] <= 70 <= goal.days_range[1]
        assert goal.date_range[0] <= goal.estimated_date <= goal.date_range[1]

    def test_gain_goal(self) -> None:
        goal = predict_goal_date(150.0, 155.0, make_estimate(2500.0), 2750.0)
        assert goal.days_required == 70
        assert goal.estimated_date is None

    def test_wrong_direction_returns_none(self) -> None:
        assert predict_goal_date(180.0, 170.0, make_estimate(2500.0), 2800.0) is None

    def test_maintenance_returns_none(self) -> None:
        assert predict_goal_date(180.0, 170.0, make_estimate(2500.0), 2500.0) is None


class TestRequiredDailyCalories:
    """Tests for required_daily_calories function."""

    def test_loss(self) -> None:
        """10 lb in 70 days needs a 500 kcal daily deficit."""
        calories = required_daily_calories(180.0, 170.0, 70, make_estimate(2500.0))
        assert calories == pytest.approx(2000.0)

    def test_gain_in_kg(self) -> None:
        calories = required_daily_calories(
            80.0, 82.0, 140, make_estimate(2600.0, unit="kg"), unit="kg"
        )
        assert calories == pytest.approx(2600.0 + 2.0 * 3500.0 / 0.45359237 / 140)

    def test_consistent_with_goal_date(self) -> None:
        estimate = make_estimate(2500.0)
        calories = required_daily_calories(180.0, 170.0, 70, estimate)
        assert predict_goal_date(180.0, 170.0, estimate, calories).days_required == 70

    @pytest.mark.parametrize("days", [0, -7])
    def test_rejects_non_positive_days(self, days) -> None:
        with pytest.raises(InvalidInputError):
            required_daily_calories(180.0, 170.0, days, make_estimate())
