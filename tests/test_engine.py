"""Tests for the engine facade."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from conftest import generate_logs, make_scans

from metabolic.composition.models import ChangeDirection
from metabolic.composition.p_ratio import base_p_ratio
from metabolic.engine import EngineInputs, build_p_ratio_inputs, run_engine
from metabolic.tracking.models import EstimateSource, TDEEConfidence, UserProfile


@pytest.fixture
def cutting_inputs(cutting_logs, male_profile) -> EngineInputs:
    weights, nutrition = cutting_logs
    return EngineInputs(
        weight_logs=weights,
        nutrition_logs=nutrition,
        profile=replace(male_profile, target_weight=160.0),
    )


class TestRunEngine:
    """Tests for run_engine with complete inputs."""

    def test_full_report(self, cutting_inputs) -> None:
        report = run_engine(cutting_inputs)

        assert report.quality.is_valid
        assert report.tdee_estimate.source == EstimateSource.REGRESSION
        assert report.active_estimate is report.tdee_estimate
        assert report.formula_estimate.source == EstimateSource.FORMULA
        assert report.comparison is not None
        assert report.unit == "lb"
        assert report.current_weight == pytest.approx(cutting_inputs.weight_logs[-1].weight)

    def test_predictions_and_projections_aligned(self, cutting_inputs) -> None:
        report = run_engine(cutting_inputs)

        assert [p.days_from_now for p in report.predictions] == [7, 14, 30, 60, 90]
        assert len(report.projections) == len(report.predictions)
        for prediction, projection in zip(report.predictions, report.projections):
            assert projection is not None
            assert projection.days_from_now == prediction.days_from_now
            assert prediction.target_date == date(2025, 3, 11) + timedelta(
                days=prediction.days_from_now
            )

    def test_planned_deficit_is_a_loss(self, cutting_inputs) -> None:
        report = run_engine(cutting_inputs)

        assert report.p_ratio.direction == ChangeDirection.LOSS
        assert all(p.predicted_change < 0 for p in report.predictions)
        assert report.projections[-1].body_fat_percent.expected < 18.0

    def test_goal_prediction(self, cutting_inputs) -> None:
        goal = run_engine(cutting_inputs).goal_prediction
        assert goal is not None
        assert goal.target_weight == 160.0
        assert goal.days_required > 0

    def test_custom_horizons(self, cutting_inputs) -> None:
        report = run_engine(replace(cutting_inputs, horizons=[10, 20]))
        assert [p.days_from_now for p in report.predictions] == [10, 20]

    def test_regression_fit_reported(self, cutting_inputs) -> None:
        report = run_engine(cutting_inputs)
        regression = report.regression

        assert regression is not None
        assert regression.unit == "lb"
        assert regression.estimated_tdee == report.tdee_estimate.estimated_tdee
        assert len(regression.points) + regression.excluded_points == (
            report.tdee_estimate.data_points_used - 1
        )

    def test_idempotent(self, cutting_inputs) -> None:
        assert run_engine(cutting_inputs) == run_engine(cutting_inputs)


class TestPartialResults:
    """Missing data yields None or empty outputs, never an exception."""

    def test_sparse_logs_fall_back_to_formula(self, male_profile) -> None:
        weights, nutrition = generate_logs(5)
        report = run_engine(EngineInputs(weights, nutrition, male_profile))

        assert report.tdee_estimate is None
        assert report.active_estimate.source == EstimateSource.FORMULA
        assert report.regression is None
        assert report.active_estimate.confidence != TDEEConfidence.STABLE
        assert len(report.predictions) == 5

    def test_no_height_skips_projections_only(self, cutting_logs, male_profile) -> None:
        report = run_engine(
            EngineInputs(*cutting_logs, replace(male_profile, height_cm=None))
        )

        assert report.formula_estimate is None
        assert report.active_estimate.source == EstimateSource.REGRESSION
        assert len(report.predictions) == 5
        assert report.projections == (None,) * 5

    def test_no_body_fat_skips_p_ratio(self, cutting_logs, male_profile) -> None:
        report = run_engine(
            EngineInputs(*cutting_logs, replace(male_profile, body_fat_percent=None))
        )
        assert report.p_ratio is None
        assert report.projections == (None,) * 5

    def test_no_target_calories(self, cutting_logs, male_profile) -> None:
        report = run_engine(
            EngineInputs(*cutting_logs, replace(male_profile, target_calories=None))
        )

        assert report.active_estimate is not None
        assert report.predictions == ()
        assert report.projections == ()
        assert report.p_ratio is None
        assert report.goal_prediction is None

    def test_no_logs(self, male_profile) -> None:
        report = run_engine(EngineInputs([], [], male_profile))

        assert report.quality.issues == ("No data available",)
        assert report.current_weight is None
        assert report.active_estimate is None
        assert report.predictions == ()


class TestDexaHistory:
    """Tests for DEXA samples flowing into the P-ratio."""

    def test_latest_scan_body_fat_and_history(self, cutting_logs, male_profile) -> None:
        scans = make_scans(
            [(42, -2.4, -0.6), (42, -2.4, -0.6), (42, -2.4, -0.6)],
            start=date(2024, 6, 1),
        )
        report = run_engine(EngineInputs(*cutting_logs, male_profile, dexa_samples=scans))

        assert report.calibration.data_points == 3
        assert report.calibration.learned_p_ratio == pytest.approx(0.8)
        assert report.p_ratio.personal_weight > 0
        assert report.p_ratio.base_p_ratio == pytest.approx(
            base_p_ratio(scans[-1].body_fat_percent, ChangeDirection.LOSS)
        )

    def test_gain_history_ignored_for_a_cut(self, cutting_logs, male_profile) -> None:
        """Well-partitioned bulks must not drag a cut's P-ratio down."""
        scans = make_scans([(42, 1.6, 2.4)] * 3, start=date(2024, 6, 1))
        with_scans = run_engine(EngineInputs(*cutting_logs, male_profile, dexa_samples=scans))
        without = run_engine(
            EngineInputs(
                *cutting_logs,
                replace(male_profile, body_fat_percent=scans[-1].body_fat_percent),
            )
        )

        assert with_scans.p_ratio.direction == ChangeDirection.LOSS
        assert with_scans.p_ratio.personal_weight == 0.0
        assert with_scans.p_ratio.factors["personal_history"] == 0.0
        assert with_scans.p_ratio.final_p_ratio == pytest.approx(without.p_ratio.final_p_ratio)
        assert with_scans.calibration is None


class TestUnits:
    def test_kilogram_profile(self, cutting_logs, male_profile) -> None:
        profile = replace(male_profile, unit="kg", target_weight=None)
        report = run_engine(EngineInputs(*cutting_logs, profile))

        assert report.unit == "kg"
        assert report.current_weight == pytest.approx(
            cutting_logs[0][-1].weight * 0.45359237
        )
        assert report.predictions[0].unit == "kg"


class TestBuildPRatioInputs:
    def test_protein_and_balance(self, cutting_logs) -> None:
        profile = UserProfile(sex="female", age=40, avg_weekly_training_sets=8.0)
        _, nutrition = cutting_logs
        window = (nutrition[0].date, nutrition[-1].date)
        inputs = build_p_ratio_inputs(profile, nutrition, window, 80.0, 25.0, 2500.0, 2000.0)

        assert inputs.avg_daily_protein_grams == pytest.approx(160.0)
        assert inputs.avg_daily_protein_per_kg == pytest.approx(2.0)
        assert inputs.energy_balance_percent == pytest.approx(-20.0)
        assert inputs.current_lean_mass_kg == pytest.approx(60.0)
        assert inputs.biological_sex == "female"
        assert inputs.chronological_age == 40

    def test_history_matches_planned_direction(self, cutting_logs) -> None:
        profile = UserProfile(sex="male", age=30)
        _, nutrition = cutting_logs
        window = (nutrition[0].date, nutrition[-1].date)
        scans = make_scans([(42, -2.4, -0.6), (42, 1.6, 2.4), (42, -2.4, -0.6)])

        cut = build_p_ratio_inputs(profile, nutrition, window, 80.0, 20.0, 2500.0, 2000.0, scans)
        bulk = build_p_ratio_inputs(profile, nutrition, window, 80.0, 20.0, 2500.0, 2800.0, scans)

        assert cut.personal_p_ratio_history == pytest.approx((0.8, 0.8))
        assert bulk.personal_p_ratio_history == pytest.approx((0.4,))
