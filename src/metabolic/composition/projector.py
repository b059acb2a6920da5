"""
Body composition projection.

Combines a predicted weight change with a P-ratio to give pessimistic,
expected and optimistic body fat %, FFMI and fat and lean mass. Every branch runs through
the same ``_project_branch``; only the P-ratio passed in differs.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence

from metabolic.composition.models import (
    BodyCompProjection,
    ChangeDirection,
    PRatioResult,
    ProjectionConfidence,
    ScenarioValues,
)
from metabolic.config.settings import PRatioConfig, Settings
from metabolic.profiles.body_calc import (
    calculate_fat_mass,
    calculate_ffmi,
    calculate_lean_mass,
)
from metabolic.tracking.models import WeightPrediction
from metabolic.units import to_kg


def scenario_p_ratios(direction: ChangeDirection, result: PRatioResult) -> ScenarioValues:
    """
    Assign P-ratio bounds to scenario labels.

    P is the fat fraction of the change, so the meaning of a high bound
    flips with direction:

    - Loss: the low bound loses the most lean tissue (pessimistic) and the
      high bound loses the most fat (optimistic).
    - Gain: the high bound adds the most fat (pessimistic) and the low
      bound adds the most lean tissue (optimistic).
    """
    low, high = result.confidence_range
    if direction == ChangeDirection.LOSS:
        return ScenarioValues(pessimistic=low, expected=result.final_p_ratio, optimistic=high)
    return ScenarioValues(pessimistic=high, expected=result.final_p_ratio, optimistic=low)


def classify_projection_confidence(result: PRatioResult, cfg: PRatioConfig) -> ProjectionConfidence:
    """Confidence from the width of the P-ratio range."""
    if result.spread < cfg.high_confidence_spread:
        return ProjectionConfidence.HIGH
    if result.spread < cfg.reasonable_confidence_spread:
        return ProjectionConfidence.REASONABLE
    return ProjectionConfidence.LOW


class _Branch(NamedTuple):
    fat_mass_kg: float
    lean_mass_kg: float
    body_fat_percent: float
    ffmi: float


def _project_branch(
    fat_kg: float,
    lean_kg: float,
    change_kg: float,
    p_ratio: float,
    height_cm: float,
) -> _Branch:
    """
    Tissue masses, body fat % and normalized FFMI after a change
    partitioned at ``p_ratio``.

    Fat mass cannot go below zero; whatever part of a loss the fat could
    not cover is taken from lean mass so the masses still add up to the
    new weight.
    """
    new_fat = fat_kg + change_kg * p_ratio
    new_lean = lean_kg + change_kg * (1 - p_ratio)
    if new_fat < 0:
        new_lean += new_fat
        new_fat = 0.0
    new_lean = max(0.0, new_lean)
    total = new_fat + new_lean
    body_fat_percent = new_fat / total * 100 if total > 0 else 0.0
    return _Branch(
        fat_mass_kg=new_fat,
        lean_mass_kg=new_lean,
        body_fat_percent=body_fat_percent,
        ffmi=calculate_ffmi(new_lean, height_cm).normalized_ffmi,
    )


def _scenario(branches: dict[str, _Branch], field: str) -> ScenarioValues:
    return ScenarioValues(**{label: getattr(branch, field) for label, branch in branches.items()})


def project_weight_change(
    current_weight_kg: float,
    change_kg: float,
    p_ratio: PRatioResult,
    current_body_fat_percent: Optional[float],
    height_cm: Optional[float],
    days_from_now: int = 0,
    settings: Optional[Settings] = None,
) -> Optional[BodyCompProjection]:
    """
    Project body composition after a mass change of ``change_kg``.

    Returns:
        BodyCompProjection, or None when height or body fat is unknown
    """
    if height_cm is None or height_cm <= 0 or current_body_fat_percent is None:
        return None
    settings = settings or Settings()

    if change_kg < 0:
        direction = ChangeDirection.LOSS
    elif change_kg > 0:
        direction = ChangeDirection.GAIN
    else:
        direction = p_ratio.direction

    fat_kg = calculate_fat_mass(current_weight_kg, current_body_fat_percent)
    lean_kg = calculate_lean_mass(current_weight_kg, current_body_fat_percent)
    scenarios = scenario_p_ratios(direction, p_ratio)

    branches = {
        label: _project_branch(fat_kg, lean_kg, change_kg, p, height_cm)
        for label, p in (
            ("pessimistic", scenarios.pessimistic),
            ("expected", scenarios.expected),
            ("optimistic", scenarios.optimistic),
        )
    }

    return BodyCompProjection(
        ffmi=_scenario(branches, "ffmi"),
        body_fat_percent=_scenario(branches, "body_fat_percent"),
        fat_mass_kg=_scenario(branches, "fat_mass_kg"),
        lean_mass_kg=_scenario(branches, "lean_mass_kg"),
        p_ratio_used=p_ratio.final_p_ratio,
        confidence_level=classify_projection_confidence(p_ratio, settings.p_ratio),
        factors=dict(p_ratio.factors),
        direction=direction,
        days_from_now=days_from_now,
    )


def project_body_composition(
    prediction: WeightPrediction,
    p_ratio: PRatioResult,
    current_body_fat_percent: Optional[float],
    height_cm: Optional[float],
    settings: Optional[Settings] = None,
) -> Optional[BodyCompProjection]:
    """
    Project body composition at a weight prediction's horizon.

    Args:
        prediction: Weight prediction giving the change at the horizon
        p_ratio: P-ratio for the direction of that change
        current_body_fat_percent: Current body fat %
        height_cm: Height, required for FFMI
        settings: Engine settings

    Returns:
        BodyCompProjection, or None when height or body fat is unknown
    """
    return project_weight_change(
        to_kg(prediction.current_weight, prediction.unit),
        to_kg(prediction.predicted_change, prediction.unit),
        p_ratio,
        current_body_fat_percent,
        height_cm,
        days_from_now=prediction.days_from_now,
        settings=settings,
    )


def weight_change_scenarios(
    current_weight_kg: float,
    p_ratio: PRatioResult,
    current_body_fat_percent: Optional[float],
    height_cm: Optional[float],
    changes_kg: Sequence[float] = (-2.5, -5.0, -7.5, -10.0),
    settings: Optional[Settings] = None,
) -> list[Optional[BodyCompProjection]]:
    """Projections for a set of fixed weight changes, e.g. "what if I lose 5 kg"."""
    return [
        project_weight_change(
            current_weight_kg,
            change,
            p_ratio,
            current_body_fat_percent,
            height_cm,
            settings=settings,
        )
        for change in changes_kg
    ]
