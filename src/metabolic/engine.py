"""
Engine facade: logs and a profile in, structured results out.

``run_engine`` wires the components leaf-first:

1. Data quality check over the lookback window
2. Formula TDEE from the profile (also the prior for step 3)
3. Adaptive TDEE from the logs, falling back to the formula estimate,
   with the per-day regression fit behind it
4. Weight predictions at each horizon for the planned intake
5. P-ratio for the direction of that change, calibrated by DEXA history
6. Body composition projections aligned with the predictions

The engine performs no I/O and keeps no state between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

import numpy as np

from metabolic.composition.calibration import calibrate_p_ratio, personal_p_ratio_history
from metabolic.composition.models import (
    BodyCompProjection,
    CalibrationResult,
    ChangeDirection,
    DexaSample,
    PRatioInputs,
    PRatioResult,
)
from metabolic.composition.p_ratio import calculate_p_ratio
from metabolic.composition.projector import project_body_composition
from metabolic.config.settings import Settings
from metabolic.profiles.body_calc import calculate_lean_mass, formula_tdee_estimate
from metabolic.tracking.daily import merge_daily_records
from metabolic.tracking.models import (
    GoalDatePrediction,
    NutritionLogEntry,
    RegressionAnalysis,
    TDEEComparison,
    TDEEEstimate,
    UserProfile,
    WeightLogEntry,
    WeightPrediction,
)
from metabolic.tracking.prediction import predict_goal_date, predict_weights
from metabolic.tracking.quality import DataQualityCheck, check_data_quality
from metabolic.tracking.tdee_filter import (
    compare_tdee_estimates,
    estimate_adaptive_tdee,
    regression_analysis,
    select_active_estimate,
)
from metabolic.units import from_kg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineInputs:
    """One user's logs and profile as fetched from storage.

    ``horizons`` defaults to the configured prediction horizons.
    ``as_of`` defaults to the latest logged date.
    """

    weight_logs: tuple[WeightLogEntry, ...]
    nutrition_logs: tuple[NutritionLogEntry, ...]
    profile: UserProfile
    dexa_samples: tuple[DexaSample, ...] = field(default_factory=tuple)
    horizons: Optional[tuple[int, ...]] = None
    as_of: Optional[date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "weight_logs", tuple(self.weight_logs))
        object.__setattr__(self, "nutrition_logs", tuple(self.nutrition_logs))
        object.__setattr__(self, "dexa_samples", tuple(self.dexa_samples))
        if self.horizons is not None:
            object.__setattr__(self, "horizons", tuple(self.horizons))


@dataclass(frozen=True)
class EngineReport:
    """Everything the presentation layer needs for one user.

    ``projections`` is index-aligned with ``predictions``; an entry is
    None when height or body fat is unknown.
    """

    quality: DataQualityCheck
    tdee_estimate: Optional[TDEEEstimate]
    formula_estimate: Optional[TDEEEstimate]
    active_estimate: Optional[TDEEEstimate]
    comparison: Optional[TDEEComparison]
    current_weight: Optional[float]
    unit: str
    predictions: tuple[WeightPrediction, ...]
    projections: tuple[Optional[BodyCompProjection], ...]
    p_ratio: Optional[PRatioResult]
    goal_prediction: Optional[GoalDatePrediction]
    calibration: Optional[CalibrationResult]
    regression: Optional[RegressionAnalysis] = None


def latest_weight_kg(
    weight_logs: Sequence[WeightLogEntry],
    quality: DataQualityCheck,
) -> Optional[float]:
    """Most recent logged weight in the window that is not an outlier."""
    if quality.window is None:
        return None
    outliers = set(quality.outlier_dates)
    weighed = [
        r
        for r in merge_daily_records(weight_logs, [], *quality.window)
        if r.weight_kg is not None and r.date not in outliers
    ]
    return weighed[-1].weight_kg if weighed else None


def current_body_fat_percent(
    profile: UserProfile,
    dexa_samples: Sequence[DexaSample],
) -> Optional[float]:
    """Latest DEXA body fat, else the profile value."""
    if dexa_samples:
        return max(dexa_samples, key=lambda s: s.date).body_fat_percent
    return profile.body_fat_percent


def average_daily_protein(
    nutrition_logs: Sequence[NutritionLogEntry],
    window: Optional[tuple[date, date]],
) -> float:
    """Mean protein (g) over complete logged days in the window."""
    if window is None:
        return 0.0
    start, end = window
    protein = [
        e.protein
        for e in nutrition_logs
        if start <= e.date <= end and e.is_complete and e.protein > 0
    ]
    return float(np.mean(protein)) if protein else 0.0


def planned_direction(estimated_tdee: float, target_calories: float) -> ChangeDirection:
    """Gain for a surplus, otherwise loss."""
    return ChangeDirection.GAIN if target_calories > estimated_tdee else ChangeDirection.LOSS


def build_p_ratio_inputs(
    profile: UserProfile,
    nutrition_logs: Sequence[NutritionLogEntry],
    window: Optional[tuple[date, date]],
    current_weight_kg: float,
    body_fat_percent: float,
    estimated_tdee: float,
    target_calories: float,
    dexa_samples: Sequence[DexaSample] = (),
) -> PRatioInputs:
    """Assemble P-ratio inputs from logs, profile and the active TDEE.

    Only scan pairs that moved in the planned direction feed the personal
    history.
    """
    protein = average_daily_protein(nutrition_logs, window)
    imbalance = target_calories - estimated_tdee
    direction = planned_direction(estimated_tdee, target_calories)
    return PRatioInputs(
        avg_daily_protein_grams=protein,
        avg_daily_protein_per_kg=protein / current_weight_kg,
        avg_weekly_training_sets=profile.avg_weekly_training_sets,
        avg_daily_energy_imbalance=imbalance,
        energy_balance_percent=imbalance / estimated_tdee * 100,
        current_body_fat_percent=body_fat_percent,
        current_lean_mass_kg=calculate_lean_mass(current_weight_kg, body_fat_percent),
        training_age=profile.training_age,
        is_enhanced=profile.is_enhanced,
        biological_sex=profile.sex,
        chronological_age=profile.age,
        personal_p_ratio_history=tuple(personal_p_ratio_history(dexa_samples, direction)),
    )


def run_engine(inputs: EngineInputs, settings: Optional[Settings] = None) -> EngineReport:
    """
    Run every estimator for one user.

    Insufficient data never raises: outputs that cannot be computed are
    None or empty while the rest of the report is still filled in.

    Args:
        inputs: Logs, profile and optional DEXA history
        settings: Engine settings

    Returns:
        EngineReport
    """
    settings = settings or Settings()
    profile = inputs.profile
    unit = profile.weight_unit

    quality = check_data_quality(inputs.weight_logs, inputs.nutrition_logs, inputs.as_of, settings)
    weight_kg = latest_weight_kg(inputs.weight_logs, quality)

    formula = formula_tdee_estimate(profile, weight_kg, settings=settings)
    prior = formula.estimated_tdee / weight_kg if formula is not None and weight_kg else None
    adaptive = estimate_adaptive_tdee(
        inputs.weight_logs,
        inputs.nutrition_logs,
        unit=unit.value,
        as_of=inputs.as_of,
        quality=quality,
        prior_burn_rate_per_kg=prior,
        settings=settings,
    )
    active = select_active_estimate(adaptive, formula)
    comparison = compare_tdee_estimates(adaptive, formula) if formula is not None else None
    regression = None
    if adaptive is not None:
        regression = regression_analysis(
            inputs.weight_logs, inputs.nutrition_logs, adaptive, quality=quality, settings=settings
        )

    current_weight = from_kg(weight_kg, unit) if weight_kg is not None else None
    start_date = quality.window[1] if quality.window else None
    target_calories = profile.target_calories
    horizons = inputs.horizons if inputs.horizons is not None else settings.prediction.horizons

    predictions: list[WeightPrediction] = []
    goal = None
    if active is not None and current_weight is not None and target_calories is not None:
        predictions = predict_weights(
            current_weight,
            active,
            target_calories,
            horizons,
            unit=unit.value,
            start_date=start_date,
            settings=settings,
        )
        if profile.target_weight is not None:
            goal = predict_goal_date(
                current_weight,
                profile.target_weight,
                active,
                target_calories,
                unit=unit.value,
                start_date=start_date,
                settings=settings,
            )

    direction = None
    if active is not None and target_calories is not None:
        direction = planned_direction(active.estimated_tdee, target_calories)
    calibration = calibrate_p_ratio(inputs.dexa_samples, direction)
    body_fat = current_body_fat_percent(profile, inputs.dexa_samples)

    p_ratio = None
    if (
        active is not None
        and weight_kg is not None
        and target_calories is not None
        and body_fat is not None
    ):
        p_inputs = build_p_ratio_inputs(
            profile,
            inputs.nutrition_logs,
            quality.window,
            weight_kg,
            body_fat,
            active.estimated_tdee,
            target_calories,
            inputs.dexa_samples,
        )
        p_ratio = calculate_p_ratio(p_inputs, direction, settings=settings)

    projections = [
        project_body_composition(prediction, p_ratio, body_fat, profile.height_cm, settings)
        if p_ratio is not None
        else None
        for prediction in predictions
    ]

    logger.debug(
        "Engine run: %d usable days, source=%s, %d predictions",
        quality.usable_days,
        active.source.value if active is not None else None,
        len(predictions),
    )

    return EngineReport(
        quality=quality,
        tdee_estimate=adaptive,
        formula_estimate=formula,
        active_estimate=active,
        comparison=comparison,
        current_weight=current_weight,
        unit=unit.value,
        predictions=tuple(predictions),
        projections=tuple(projections),
        p_ratio=p_ratio,
        goal_prediction=goal,
        calibration=calibration,
        regression=regression,
    )
