"""Adaptive TDEE estimation from logged intake and weight change.

The physics:

    weight change × energy density = calories in - TDEE
    TDEE = burn rate × bodyweight

Each day with a weigh-in and a calorie log yields an observation of the
burn rate: over the trailing bucket of days, average intake minus the
energy equivalent of the smoothed trend change, divided by bodyweight.

Observations feed a scalar recursive estimator (a Kalman filter with a
forgetting factor). Before each update the variance is inflated by
1/λ per elapsed day, which down-weights older observations
exponentially, so every new day nudges the running burn rate instead of
requiring a batch refit. The sequence of running estimates is the
convergence history shown to the user.

Everything is computed in kg; results are converted to the requested
unit on the way out.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence

import numpy as np

from metabolic.config.settings import AdaptiveConfig, Settings
from metabolic.tracking.daily import log_window, merge_daily_records
from metabolic.tracking.ema import calculate_trend, implied_daily_balance
from metabolic.tracking.models import (
    BurnRateHistoryPoint,
    DailyRecord,
    EstimateSource,
    NutritionLogEntry,
    RegressionAnalysis,
    RegressionPoint,
    TDEEComparison,
    TDEEConfidence,
    TDEEEstimate,
    WeightLogEntry,
)
from metabolic.tracking.quality import DataQualityCheck, check_data_quality
from metabolic.units import (
    KCAL_PER_KG,
    burn_rate_from_per_kg,
    burn_rate_to_per_kg,
    from_kg,
    parse_unit,
)

logger = logging.getLogger(__name__)

# Spreads below this (kg/day) are floating point noise
NEGLIGIBLE_CHANGE_KG = 1e-9


@dataclass
class BurnRateFilter:
    """
    Scalar recursive estimator for burn rate (kcal per kg per day).

    State: burn_rate
    Process model: exponential forgetting (variance /= λ per day)
    Observation: burn rate implied by one bucket of intake and trend change

    Attributes:
        burn_rate: Current estimate (kcal/kg/day)
        variance: Current uncertainty ((kcal/kg/day)²)
        forgetting_factor: Per-day retention of past information, λ in (0, 1]
        obs_noise: Observation noise variance
    """

    burn_rate: float = 29.8
    variance: float = 25.0
    forgetting_factor: float = 0.95
    obs_noise: float = 16.0

    def predict(self, days: int = 1) -> None:
        """
        Predict step: older information loses weight as days pass.

        Args:
            days: Days since the previous observation
        """
        days = max(1, days)
        self.variance /= self.forgetting_factor ** days

    def update(self, observed_burn_rate: float) -> float:
        """
        Update step: blend in one observation.

        Args:
            observed_burn_rate: Burn rate implied by the latest bucket

        Returns:
            Residual (observed - predicted) before the update
        """
        residual = observed_burn_rate - self.burn_rate
        gain = self.variance / (self.variance + self.obs_noise)
        self.burn_rate += gain * residual
        self.variance *= 1 - gain
        return residual

    def predict_and_update(self, observed_burn_rate: float, days: int = 1) -> float:
        """Combined predict + update step for daily observations."""
        self.predict(days)
        return self.update(observed_burn_rate)

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    Standard deviation over mean of recent burn-rate estimates.

    Fewer than two values carry no information about convergence and
    return 1.0 (maximally unsettled).
    """
    if len(values) < 2:
        return 1.0
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    if mean <= 0:
        return 1.0
    return float(arr.std()) / mean


def calculate_confidence_score(data_points: int, cv: float, cfg: AdaptiveConfig) -> int:
    """
    Score from 0-100.

    Up to 50 points for data volume (linear until ``stable_data_points``)
    and up to 50 points for stability (linear, zero at ``cv_unstable``).
    Non-decreasing in ``data_points`` for a fixed CV.
    """
    data_score = min(max(data_points, 0) / cfg.stable_data_points, 1.0) * 50
    stability_score = max(0.0, 1.0 - cv / cfg.cv_unstable) * 50
    return int(min(100, max(0, round(data_score + stability_score))))


def classify_confidence(data_points: int, cv: float, cfg: AdaptiveConfig) -> TDEEConfidence:
    """Map data volume and estimate variability to a confidence tier."""
    if data_points < cfg.min_data_points or cv > cfg.cv_unstable:
        return TDEEConfidence.UNSTABLE
    if data_points >= cfg.stable_data_points and cv < cfg.cv_stable:
        return TDEEConfidence.STABLE
    return TDEEConfidence.STABILIZING


def clamp_burn_rate(burn_rate_per_kg: float, cfg: AdaptiveConfig) -> float:
    """Clamp to the physiologically typical band."""
    return min(cfg.max_burn_rate_per_kg, max(cfg.min_burn_rate_per_kg, burn_rate_per_kg))


def usable_records(
    records: Sequence[DailyRecord],
    quality: DataQualityCheck,
) -> list[DailyRecord]:
    """Days with both a weight and a calorie log that quality checks did not exclude."""
    excluded = set(quality.excluded_dates)
    return [r for r in records if r.has_both and r.date not in excluded]


def _is_degenerate(records: Sequence[DailyRecord]) -> bool:
    """Constant weight with constant intake carries no signal to regress on."""
    weights = np.array([r.weight_kg for r in records], dtype=float)
    calories = np.array([r.calories for r in records], dtype=float)
    if not (np.all(np.isfinite(weights)) and np.all(np.isfinite(calories))):
        return True
    return float(np.ptp(weights)) == 0.0 and float(np.ptp(calories)) == 0.0


def _bucket_start(records: Sequence[DailyRecord], end_index: int, bucket_days: int) -> int:
    """Index of the earliest record within ``bucket_days`` before ``records[end_index]``."""
    earliest = records[end_index].date - timedelta(days=bucket_days)
    start = end_index
    while start > 0 and records[start - 1].date >= earliest:
        start -= 1
    return start


def run_burn_rate_filter(
    records: Sequence[DailyRecord],
    cfg: AdaptiveConfig,
    prior_burn_rate_per_kg: Optional[float] = None,
) -> Optional[tuple[BurnRateFilter, list[tuple[date, float, int]]]]:
    """
    Feed daily bucket observations through a BurnRateFilter.

    Args:
        records: Usable daily records, ascending by date
        cfg: Adaptive estimator configuration
        prior_burn_rate_per_kg: Starting estimate, e.g. from the formula

    Returns:
        (filter, history) where history holds (date, clamped burn rate per kg,
        confidence score) after each observation, or None if no observation
        could be formed or a non-finite value appeared
    """
    trend = calculate_trend([(r.date, r.weight_kg) for r in records], cfg.smoothing)
    burn_filter = BurnRateFilter(
        burn_rate=prior_burn_rate_per_kg or cfg.initial_burn_rate_per_kg,
        variance=cfg.initial_variance,
        forgetting_factor=cfg.forgetting_factor,
        obs_noise=cfg.obs_noise,
    )

    history: list[tuple[date, float, int]] = []
    rates: list[float] = []
    last_date: Optional[date] = None

    for i, record in enumerate(records):
        start = _bucket_start(records, i, cfg.bucket_days)
        span = (record.date - records[start].date).days
        if span < cfg.min_bucket_span or i - start < 2:
            continue

        # Intake on the days between the two weigh-ins drives the change
        avg_calories = float(np.mean([r.calories for r in records[start:i]]))
        balance = implied_daily_balance(trend[start], trend[i], span)
        avg_weight = float(np.mean(trend[start : i + 1]))
        observed = (avg_calories - balance) / avg_weight

        if not math.isfinite(observed):
            logger.debug("Non-finite burn rate observation on %s", record.date)
            return None

        days = 1 if last_date is None else (record.date - last_date).days
        burn_filter.predict_and_update(observed, days)
        last_date = record.date

        rate = clamp_burn_rate(burn_filter.burn_rate, cfg)
        rates.append(rate)
        cv = coefficient_of_variation(rates[-cfg.cv_window :])
        history.append((record.date, rate, calculate_confidence_score(i + 1, cv, cfg)))

    if not history or not math.isfinite(burn_filter.burn_rate):
        return None
    return burn_filter, history


def estimate_adaptive_tdee(
    weight_logs: Sequence[WeightLogEntry],
    nutrition_logs: Sequence[NutritionLogEntry],
    unit: str = "lb",
    as_of: Optional[date] = None,
    quality: Optional[DataQualityCheck] = None,
    prior_burn_rate_per_kg: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> Optional[TDEEEstimate]:
    """
    Derive a personalized TDEE from logged intake and weight change.

    Returns None (never raises) when there are fewer than
    ``min_regression_points`` usable days, when weight and intake are both
    constant, or when the computation would produce a non-finite value.
    Callers then fall back to the formula estimate.

    Args:
        weight_logs: Weight entries
        nutrition_logs: Nutrition entries
        unit: Weight unit for the returned burn rate and current weight
        as_of: Last day of the analysis window (defaults to latest log)
        quality: Precomputed quality check for the same logs and window
        prior_burn_rate_per_kg: Starting burn rate for the filter
        settings: Engine settings

    Returns:
        TDEEEstimate with source=regression, or None
    """
    settings = settings or Settings()
    cfg = settings.adaptive
    out_unit = parse_unit(unit)

    if quality is None:
        quality = check_data_quality(weight_logs, nutrition_logs, as_of, settings)
    window = quality.window or log_window(
        weight_logs, nutrition_logs, settings.quality.lookback_days, as_of
    )
    if window is None:
        return None

    records = usable_records(merge_daily_records(weight_logs, nutrition_logs, *window), quality)
    data_points = len(records)

    if data_points < cfg.min_regression_points:
        logger.debug(
            "Insufficient data for regression: %d usable days (need %d)",
            data_points,
            cfg.min_regression_points,
        )
        return None

    if _is_degenerate(records):
        logger.debug("Degenerate input (constant weight and intake); using formula")
        return None

    result = run_burn_rate_filter(records, cfg, prior_burn_rate_per_kg)
    if result is None:
        return None
    burn_filter, history = result

    burn_rate_per_kg = clamp_burn_rate(burn_filter.burn_rate, cfg)
    if burn_rate_per_kg != burn_filter.burn_rate:
        logger.debug(
            "Burn rate %.2f kcal/kg clamped to %.2f", burn_filter.burn_rate, burn_rate_per_kg
        )

    current_weight_kg = records[-1].weight_kg
    estimated_tdee = burn_rate_per_kg * current_weight_kg

    cv = coefficient_of_variation([rate for _, rate, _ in history][-cfg.cv_window :])
    confidence = classify_confidence(data_points, cv, cfg)
    score = calculate_confidence_score(data_points, cv, cfg)

    return TDEEEstimate(
        estimated_tdee=estimated_tdee,
        burn_rate_per_unit_weight=burn_rate_from_per_kg(burn_rate_per_kg, out_unit),
        confidence=confidence,
        confidence_score=score,
        data_points_used=data_points,
        estimate_history=tuple(
            BurnRateHistoryPoint(
                date=day,
                burn_rate=burn_rate_from_per_kg(rate, out_unit),
                confidence=point_score,
            )
            for day, rate, point_score in history
        ),
        source=EstimateSource.REGRESSION,
        unit=out_unit.value,
        standard_error=burn_filter.std * current_weight_kg,
        coefficient_of_variation=cv,
        current_weight=from_kg(current_weight_kg, out_unit),
    )


def regression_analysis(
    weight_logs: Sequence[WeightLogEntry],
    nutrition_logs: Sequence[NutritionLogEntry],
    estimate: TDEEEstimate,
    as_of: Optional[date] = None,
    quality: Optional[DataQualityCheck] = None,
    settings: Optional[Settings] = None,
) -> Optional[RegressionAnalysis]:
    """
    Compare each day's actual weight change with the one the burn rate predicts.

    For consecutive usable days the predicted change is
    (calories - burn rate × weight) / energy density. Pairs whose residual
    lies more than ``residual_outlier_sd`` standard deviations from the
    mean residual are dropped before R² and the standard error are computed.

    Args:
        weight_logs: Weight entries
        nutrition_logs: Nutrition entries
        estimate: TDEE estimate whose burn rate is evaluated
        as_of: Last day of the analysis window (defaults to latest log)
        quality: Precomputed quality check for the same logs and window
        settings: Engine settings

    Returns:
        RegressionAnalysis in the estimate's unit, or None with fewer than
        two day pairs
    """
    settings = settings or Settings()
    out_unit = parse_unit(estimate.unit)

    if quality is None:
        quality = check_data_quality(weight_logs, nutrition_logs, as_of, settings)
    if quality.window is None:
        return None

    records = usable_records(
        merge_daily_records(weight_logs, nutrition_logs, *quality.window), quality
    )
    burn_rate_per_kg = burn_rate_to_per_kg(estimate.burn_rate_per_unit_weight, out_unit)

    pairs = list(zip(records, records[1:]))
    if len(pairs) < 2:
        logger.debug("Insufficient data for regression analysis: %d day pairs", len(pairs))
        return None

    actual = np.array(
        [
            (following.weight_kg - current.weight_kg) / (following.date - current.date).days
            for current, following in pairs
        ]
    )
    predicted = np.array(
        [(c.calories - burn_rate_per_kg * c.weight_kg) / KCAL_PER_KG for c, _ in pairs]
    )
    residuals = actual - predicted

    spread = float(residuals.std())
    keep = np.ones(len(residuals), dtype=bool)
    if spread > NEGLIGIBLE_CHANGE_KG:
        limit = settings.adaptive.residual_outlier_sd * spread
        keep = np.abs(residuals - residuals.mean()) <= limit
    excluded = int((~keep).sum())
    if excluded:
        logger.debug("Excluded %d residual outlier(s) from regression analysis", excluded)

    actual, predicted, residuals = actual[keep], predicted[keep], residuals[keep]
    kept_pairs = [pair for pair, kept in zip(pairs, keep) if kept]
    if len(kept_pairs) < 2:
        return None

    ss_res = float(np.sum(residuals**2))
    r_squared = None
    if float(actual.std()) > NEGLIGIBLE_CHANGE_KG:
        r_squared = 1 - ss_res / float(np.sum((actual - actual.mean()) ** 2))
    # One fitted parameter, the burn rate
    standard_error_kg = math.sqrt(ss_res / (len(kept_pairs) - 1))

    return RegressionAnalysis(
        points=tuple(
            RegressionPoint(
                date=current.date,
                weight=from_kg(current.weight_kg, out_unit),
                calories=current.calories,
                actual_change=from_kg(float(a), out_unit),
                predicted_change=from_kg(float(p), out_unit),
                residual=from_kg(float(r), out_unit),
            )
            for (current, _), a, p, r in zip(kept_pairs, actual, predicted, residuals)
        ),
        burn_rate_per_unit_weight=estimate.burn_rate_per_unit_weight,
        estimated_tdee=estimate.estimated_tdee,
        r_squared=r_squared,
        standard_error=from_kg(standard_error_kg, out_unit),
        excluded_points=excluded,
        unit=out_unit.value,
    )


def select_active_estimate(
    adaptive: Optional[TDEEEstimate],
    formula: Optional[TDEEEstimate],
) -> Optional[TDEEEstimate]:
    """The adaptive estimate when one exists, otherwise the formula estimate."""
    return adaptive if adaptive is not None else formula


def compare_tdee_estimates(
    adaptive: Optional[TDEEEstimate],
    formula: TDEEEstimate,
) -> TDEEComparison:
    """Compare adaptive vs formula TDEE for explaining the difference."""
    formula_tdee = formula.estimated_tdee
    adaptive_tdee = adaptive.estimated_tdee if adaptive is not None else None
    difference = adaptive_tdee - formula_tdee if adaptive_tdee is not None else 0.0
    percent = round(difference / formula_tdee * 100) if formula_tdee else 0

    if adaptive_tdee is None:
        recommendation = "Keep logging weight and calories to unlock personalized estimates."
    elif abs(percent) < 5:
        recommendation = "Your personal metabolism closely matches the formula estimate."
    elif difference > 0:
        recommendation = (
            f"Your actual burn rate is {percent}% higher than formulas predict. "
            "You may be able to eat more."
        )
    else:
        recommendation = (
            f"Your actual burn rate is {abs(percent)}% lower than formulas predict. "
            "Adjust your targets accordingly."
        )

    return TDEEComparison(
        difference=difference,
        percent_difference=percent,
        adaptive=adaptive_tdee,
        formula=formula_tdee,
        recommendation=recommendation,
    )
