"""Weight projection from a TDEE estimate and a planned calorie target."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional, Sequence

from scipy.stats import norm

from metabolic.config.settings import PredictionConfig, Settings
from metabolic.errors import InvalidInputError
from metabolic.tracking.models import GoalDatePrediction, TDEEEstimate, WeightPrediction
from metabolic.units import KCAL_PER_KG, from_kg, parse_unit, to_kg


def tdee_sigma(confidence_score: int, cfg: PredictionConfig) -> float:
    """
    Standard deviation of the TDEE estimate implied by its confidence score.

    Linear from ``max_tdee_sigma`` at score 0 to ``min_tdee_sigma`` at 100.
    """
    score = min(100, max(0, confidence_score)) / 100
    return cfg.max_tdee_sigma - (cfg.max_tdee_sigma - cfg.min_tdee_sigma) * score


def confidence_half_width_kg(
    days: int,
    predicted_change_kg: float,
    confidence_score: int,
    cfg: PredictionConfig,
) -> float:
    """
    Half-width of the prediction interval in kg.

    Two terms: TDEE uncertainty accumulated over the horizon, which grows
    with sqrt(days), and a share of the predicted change itself for
    adaptation the energy-balance model ignores. Both shrink as the
    confidence score rises. With no imbalance only the first term remains.
    """
    z = float(norm.ppf(0.5 + cfg.confidence_level / 2))
    uncertainty = 1 - min(100, max(0, confidence_score)) / 100
    energy_term = z * tdee_sigma(confidence_score, cfg) * math.sqrt(days) / KCAL_PER_KG
    change_term = cfg.relative_spread * uncertainty * abs(predicted_change_kg)
    return energy_term + change_term


def predict_weight(
    current_weight: float,
    estimate: TDEEEstimate,
    target_calories: float,
    days: int,
    unit: str = "lb",
    start_date: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> WeightPrediction:
    """
    Predict bodyweight ``days`` from now at a constant daily intake.

    predicted change = (target calories - TDEE) × days / energy density

    Args:
        current_weight: Current bodyweight in ``unit``
        estimate: Active TDEE estimate (adaptive or formula)
        target_calories: Assumed daily intake
        days: Horizon in days
        unit: Weight unit of ``current_weight`` and of the result
        start_date: Date the horizon counts from; the target date is None without it
        settings: Engine settings

    Returns:
        WeightPrediction in ``unit``
    """
    if days < 0:
        raise InvalidInputError(f"days must be non-negative, got {days}")

    settings = settings or Settings()
    weight_unit = parse_unit(unit)

    current_kg = to_kg(current_weight, weight_unit)
    change_kg = (target_calories - estimate.estimated_tdee) * days / KCAL_PER_KG
    predicted_kg = current_kg + change_kg
    half_width_kg = confidence_half_width_kg(
        days, change_kg, estimate.confidence_score, settings.prediction
    )

    return WeightPrediction(
        target_date=start_date + timedelta(days=days) if start_date else None,
        days_from_now=days,
        predicted_weight=from_kg(predicted_kg, weight_unit),
        confidence_range=(
            from_kg(predicted_kg - half_width_kg, weight_unit),
            from_kg(predicted_kg + half_width_kg, weight_unit),
        ),
        assumed_daily_calories=target_calories,
        current_weight=current_weight,
        unit=weight_unit.value,
    )


def predict_weights(
    current_weight: float,
    estimate: TDEEEstimate,
    target_calories: float,
    horizons: Optional[Sequence[int]] = None,
    unit: str = "lb",
    start_date: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> list[WeightPrediction]:
    """One prediction per horizon, in the order given."""
    settings = settings or Settings()
    if horizons is None:
        horizons = settings.prediction.horizons
    return [
        predict_weight(
            current_weight,
            estimate,
            target_calories,
            days,
            unit=unit,
            start_date=start_date,
            settings=settings,
        )
        for days in horizons
    ]


def predict_goal_date(
    current_weight: float,
    target_weight: float,
    estimate: TDEEEstimate,
    target_calories: float,
    unit: str = "lb",
    start_date: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> Optional[GoalDatePrediction]:
    """
    Estimate when ``target_weight`` will be reached at ``target_calories``.

    Returns:
        GoalDatePrediction, or None if the planned intake does not move
        weight toward the target
    """
    settings = settings or Settings()
    weight_unit = parse_unit(unit)

    daily_change_kg = (target_calories - estimate.estimated_tdee) / KCAL_PER_KG
    to_change_kg = to_kg(target_weight, weight_unit) - to_kg(current_weight, weight_unit)

    if daily_change_kg == 0 or to_change_kg * daily_change_kg < 0:
        return None

    # Rounded first so float noise from unit conversion cannot add a day
    days_required = math.ceil(round(abs(to_change_kg / daily_change_kg), 6))
    spread = settings.prediction.goal_date_spread
    earliest = math.floor(days_required * (1 - spread))
    latest = math.ceil(days_required * (1 + spread))

    return GoalDatePrediction(
        target_weight=target_weight,
        days_required=days_required,
        estimated_date=start_date + timedelta(days=days_required) if start_date else None,
        days_range=(earliest, latest),
        date_range=(
            (start_date + timedelta(days=earliest), start_date + timedelta(days=latest))
            if start_date
            else None
        ),
        required_daily_calories=target_calories,
    )


def required_daily_calories(
    current_weight: float,
    target_weight: float,
    days: int,
    estimate: TDEEEstimate,
    unit: str = "lb",
) -> float:
    """
    Daily intake that reaches ``target_weight`` in ``days`` at the estimated TDEE.

    Below the TDEE for a loss, above it for a gain.

    Raises:
        InvalidInputError: If days is not positive
    """
    if days <= 0:
        raise InvalidInputError(f"days must be positive, got {days}")
    change_kg = to_kg(target_weight, unit) - to_kg(current_weight, unit)
    return estimate.estimated_tdee + change_kg * KCAL_PER_KG / days
