"""
P-ratio (partition ratio) model.

The P-ratio is the fraction of a body-mass change that is fat:

- Loss: P = 0.80 means 80% of the weight lost is fat and 20% lean tissue.
  Higher is better.
- Gain: P = 0.40 means 40% of the weight gained is fat and 60% lean tissue.
  Lower is better.

A base ratio keyed to body fat is adjusted by bounded favorability factors
(protein, training volume, size of the deficit or surplus, training age,
enhanced status, sex, age). A favorable factor raises P for a loss and
lowers it for a gain. Each factor is clamped individually and the total
is clamped again so that extreme inputs cannot compound.

Research on trained people in a moderate deficit with adequate protein
puts typical loss P-ratios around 0.75-0.85.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from metabolic.composition.models import ChangeDirection, PRatioInputs, PRatioResult
from metabolic.config.settings import PRatioConfig, Settings

logger = logging.getLogger(__name__)

# Base fat fraction of a loss by body fat %: leaner people lose more lean tissue
LOSS_BASE_CURVE = ((6.0, 10.0, 15.0, 25.0, 35.0), (0.55, 0.62, 0.68, 0.78, 0.85))

# Base fat fraction of a gain by body fat %: leaner people gain more lean tissue
GAIN_BASE_CURVE = ((8.0, 12.0, 18.0, 25.0, 35.0), (0.45, 0.50, 0.58, 0.66, 0.75))

# Women carry more essential fat; curves are keyed to male-equivalent body fat
FEMALE_BODY_FAT_OFFSET = 8.0

# Favorability curves (positive = better partitioning)
PROTEIN_CURVE = ((0.8, 1.2, 1.6, 1.8, 2.2), (-0.10, -0.05, 0.0, 0.04, 0.08))
TRAINING_CURVE = ((0.0, 5.0, 10.0, 15.0, 20.0), (-0.10, -0.05, 0.0, 0.04, 0.06))
DEFICIT_CURVE = ((10.0, 15.0, 20.0, 25.0, 30.0, 40.0), (0.03, 0.0, -0.03, -0.06, -0.10, -0.12))
SURPLUS_CURVE = ((5.0, 10.0, 15.0, 25.0), (0.03, 0.0, -0.04, -0.10))
AGE_CURVE = ((35.0, 40.0, 50.0, 65.0), (0.0, -0.02, -0.05, -0.07))

TRAINING_AGE_FAVORABILITY = {
    "beginner": 0.05,
    "intermediate": 0.0,
    "advanced": -0.03,
}
ENHANCED_FAVORABILITY = 0.10
FEMALE_FAVORABILITY = 0.02


def _interp(x: float, curve: tuple[tuple[float, ...], tuple[float, ...]]) -> float:
    xs, ys = curve
    return float(np.interp(x, xs, ys))


def resolve_direction(
    inputs: PRatioInputs,
    direction: Optional[Union[ChangeDirection, str]] = None,
) -> ChangeDirection:
    """Direction of the mass change; inferred from the energy balance if not given."""
    if direction is not None:
        return ChangeDirection(direction)
    balance = inputs.energy_balance_percent or inputs.avg_daily_energy_imbalance
    return ChangeDirection.GAIN if balance > 0 else ChangeDirection.LOSS


def base_p_ratio(body_fat_percent: float, direction: ChangeDirection, sex: str = "male") -> float:
    """Base fat fraction of a change before favorability adjustments."""
    reference_bf = body_fat_percent
    if sex == "female":
        reference_bf -= FEMALE_BODY_FAT_OFFSET
    curve = LOSS_BASE_CURVE if direction == ChangeDirection.LOSS else GAIN_BASE_CURVE
    return _interp(reference_bf, curve)


def favorability_factors(inputs: PRatioInputs, direction: ChangeDirection) -> dict[str, float]:
    """Unclamped favorability of each factor (positive = better partitioning)."""
    imbalance = abs(inputs.energy_balance_percent)
    imbalance_curve = DEFICIT_CURVE if direction == ChangeDirection.LOSS else SURPLUS_CURVE

    return {
        "protein": _interp(inputs.avg_daily_protein_per_kg, PROTEIN_CURVE),
        "training_volume": _interp(inputs.avg_weekly_training_sets, TRAINING_CURVE),
        "energy_imbalance": _interp(imbalance, imbalance_curve),
        "training_age": TRAINING_AGE_FAVORABILITY[inputs.training_age],
        "enhanced": ENHANCED_FAVORABILITY if inputs.is_enhanced else 0.0,
        "sex": FEMALE_FAVORABILITY if inputs.biological_sex == "female" else 0.0,
        "age": (
            _interp(inputs.chronological_age, AGE_CURVE)
            if inputs.chronological_age is not None
            else 0.0
        ),
    }


def bound_factors(factors: dict[str, float], cfg: PRatioConfig) -> dict[str, float]:
    """
    Clamp each factor, then scale all of them down if their sum exceeds
    the total bound.
    """
    limit = cfg.max_factor_magnitude
    bounded = {name: min(limit, max(-limit, value)) for name, value in factors.items()}

    total = sum(bounded.values())
    if abs(total) > cfg.max_total_adjustment:
        scale = cfg.max_total_adjustment / abs(total)
        bounded = {name: value * scale for name, value in bounded.items()}
    return bounded


def uncertainty_half_width(
    inputs: PRatioInputs,
    direction: ChangeDirection,
    personal_samples: int,
    cfg: PRatioConfig,
) -> float:
    """
    Half-width of the confidence range.

    Wider for larger imbalances and for gains; narrower with each personal
    calibration sample.
    """
    half = cfg.base_uncertainty * (1 + abs(inputs.energy_balance_percent) / 100)
    if direction == ChangeDirection.GAIN:
        half *= cfg.gain_uncertainty_multiplier
    return half / (1 + cfg.personal_shrink_per_sample * personal_samples)


def _range_around(p: float, half_width: float, cfg: PRatioConfig) -> tuple[float, float]:
    """
    Interval of width 2 × half_width containing ``p`` inside [p_floor, 1].

    The interval is shifted rather than clipped at the bounds so its width
    depends only on the uncertainty.
    """
    width = min(2 * half_width, 1.0 - cfg.p_floor)
    low = p - width / 2
    high = p + width / 2
    if high > 1.0:
        low -= high - 1.0
        high = 1.0
    if low < cfg.p_floor:
        high += cfg.p_floor - low
        low = cfg.p_floor
    return max(cfg.p_floor, min(low, p)), min(1.0, max(high, p))


def calculate_p_ratio(
    inputs: PRatioInputs,
    direction: Optional[Union[ChangeDirection, str]] = None,
    settings: Optional[Settings] = None,
) -> PRatioResult:
    """
    Estimate the fat fraction of a mass change.

    Args:
        inputs: Nutrition, training and body composition inputs
        direction: 'loss' or 'gain'; inferred from energy_balance_percent if omitted
        settings: Engine settings

    Returns:
        PRatioResult with P in (0, 1] and a range containing it. ``factors``
        holds each adjustment's signed contribution to P, so
        base_p_ratio + sum(factors) equals final_p_ratio before clipping.
    """
    settings = settings or Settings()
    cfg = settings.p_ratio
    direction = resolve_direction(inputs, direction)
    sign = 1.0 if direction == ChangeDirection.LOSS else -1.0

    base = base_p_ratio(inputs.current_body_fat_percent, direction, inputs.biological_sex)
    bounded = bound_factors(favorability_factors(inputs, direction), cfg)
    contributions = {name: sign * value for name, value in bounded.items()}
    model_p = min(1.0, max(cfg.p_floor, base + sum(contributions.values())))

    history = [
        p for p in inputs.personal_p_ratio_history if np.isfinite(p) and p > 0
    ]
    personal_weight = 0.0
    p = model_p
    if history:
        n = len(history)
        personal_mean = min(1.0, max(cfg.p_floor, float(np.mean(history))))
        personal_weight = min(cfg.max_personal_weight, n / (n + cfg.personal_prior_strength))
        p = model_p + personal_weight * (personal_mean - model_p)
        logger.debug(
            "Blending model P-ratio %.3f with personal mean %.3f (n=%d, weight %.2f)",
            model_p,
            personal_mean,
            n,
            personal_weight,
        )
    contributions["personal_history"] = p - model_p

    final_p = min(1.0, max(cfg.p_floor, p))
    half = uncertainty_half_width(inputs, direction, len(history), cfg)

    return PRatioResult(
        final_p_ratio=final_p,
        confidence_range=_range_around(final_p, half, cfg),
        factors=contributions,
        direction=direction,
        base_p_ratio=base,
        personal_weight=personal_weight,
    )


def get_p_ratio_quality(p_ratio: float) -> str:
    """Quality label for a loss P-ratio."""
    if p_ratio >= 0.85:
        return "excellent"
    if p_ratio >= 0.75:
        return "good"
    if p_ratio >= 0.65:
        return "fair"
    return "poor"


def get_p_ratio_description(p_ratio: float) -> str:
    """Plain-language meaning of a loss P-ratio."""
    if p_ratio >= 0.9:
        return "Excellent - almost all weight loss is from fat"
    if p_ratio >= 0.8:
        return "Good - mostly fat loss with minimal muscle loss"
    if p_ratio >= 0.7:
        return "Fair - some muscle loss expected"
    if p_ratio >= 0.6:
        return "Poor - significant muscle loss expected"
    return "Very poor - high risk of muscle loss"


def explain_p_ratio_factors(result: PRatioResult) -> list[str]:
    """Explanations for the factors that moved P the most."""
    sign = 1.0 if result.direction == ChangeDirection.LOSS else -1.0
    favorability = {name: sign * value for name, value in result.factors.items()}
    explanations: list[str] = []

    if favorability.get("protein", 0.0) >= 0.04:
        explanations.append("High protein intake is optimizing muscle retention")
    elif favorability.get("protein", 0.0) <= -0.04:
        explanations.append("Protein intake could be improved for better results")

    if favorability.get("training_volume", 0.0) >= 0.04:
        explanations.append("Training volume is providing a strong muscle stimulus")
    elif favorability.get("training_volume", 0.0) <= -0.04:
        explanations.append("More training volume would help preserve and build muscle")

    imbalance = favorability.get("energy_imbalance", 0.0)
    if imbalance >= 0.02:
        explanations.append(
            "Conservative deficit is favorable for body composition"
            if result.direction == ChangeDirection.LOSS
            else "Lean surplus keeps fat gain low"
        )
    elif imbalance <= -0.05:
        explanations.append(
            "Aggressive deficit may increase muscle loss"
            if result.direction == ChangeDirection.LOSS
            else "Large surplus will add proportionally more fat"
        )

    if result.direction == ChangeDirection.LOSS and result.base_p_ratio < 0.65:
        explanations.append("Lower body fat makes muscle preservation more challenging")

    if favorability.get("enhanced", 0.0) > 0:
        explanations.append("Enhanced status significantly improves partitioning")

    if result.personal_weight > 0:
        explanations.append("Personal scan history is calibrating this estimate")

    return explanations
