"""Formula-based energy expenditure and body composition helpers.

Baseline TDEE uses the Mifflin-St Jeor equation for BMR (or Katch-McArdle
when body fat is known) times a Harris-Benedict activity multiplier. It
needs no logs, so it is always available as the fallback and as a
comparison point for the adaptive estimate.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from metabolic.config.settings import Settings
from metabolic.tracking.models import (
    EstimateSource,
    TDEEConfidence,
    TDEEEstimate,
    UserProfile,
)
from metabolic.units import burn_rate_from_per_kg, from_kg, parse_unit


class Sex(Enum):
    """Biological sex for BMR calculation."""
    MALE = "male"
    FEMALE = "female"


class ActivityLevel(Enum):
    """Activity level multipliers for TDEE calculation."""
    SEDENTARY = "sedentary"          # Little or no exercise
    LIGHT = "light"                  # Light exercise 1-3 days/week
    MODERATE = "moderate"            # Moderate exercise 3-5 days/week
    ACTIVE = "active"                # Hard exercise 6-7 days/week
    VERY_ACTIVE = "very_active"      # Very hard exercise, physical job


# Activity level multipliers (Harris-Benedict activity factors)
ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

# Generally accepted natural limit for normalized FFMI
NATURAL_FFMI_LIMIT = 25.0


@dataclass(frozen=True)
class FFMIResult:
    """Fat-free mass index for a given lean mass and height."""

    ffmi: float
    normalized_ffmi: float  # adjusted to a 1.8 m reference height
    classification: str


def calculate_bmr(
    age: int,
    sex: Sex,
    height_cm: float,
    weight_kg: float,
    body_fat_percent: Optional[float] = None,
) -> float:
    """Calculate Basal Metabolic Rate.

    Uses Katch-McArdle (370 + 21.6 × lean mass) when body fat is known,
    otherwise Mifflin-St Jeor.

    Args:
        age: Age in years
        sex: Biological sex
        height_cm: Height in centimetres
        weight_kg: Weight in kilograms
        body_fat_percent: Optional body fat percentage

    Returns:
        BMR in calories per day
    """
    if body_fat_percent is not None and body_fat_percent > 0:
        lean_mass_kg = calculate_lean_mass(weight_kg, body_fat_percent)
        return 370 + 21.6 * lean_mass_kg

    if sex == Sex.MALE:
        return (10 * weight_kg) + (6.25 * height_cm) - (5 * age) + 5
    return (10 * weight_kg) + (6.25 * height_cm) - (5 * age) - 161


def calculate_tdee(bmr: float, activity_level: ActivityLevel) -> float:
    """Calculate Total Daily Energy Expenditure from BMR."""
    return bmr * ACTIVITY_MULTIPLIERS[activity_level]


def formula_tdee_estimate(
    profile: UserProfile,
    current_weight_kg: Optional[float],
    unit: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Optional[TDEEEstimate]:
    """
    Baseline TDEE estimate from the user's profile.

    Returns None when the profile lacks age or height, or when no current
    weight is known. That is an "insufficient profile" state for the
    caller to handle, not an error.

    Args:
        profile: User profile
        current_weight_kg: Most recent bodyweight in kg
        unit: Output weight unit; defaults to the profile unit
        settings: Engine settings

    Returns:
        TDEEEstimate with source=formula, or None
    """
    settings = settings or Settings()
    if (
        profile.age is None
        or profile.height_cm is None
        or current_weight_kg is None
        or current_weight_kg <= 0
    ):
        return None

    out_unit = parse_unit(unit or profile.unit)
    bmr = calculate_bmr(
        profile.age,
        Sex(profile.sex),
        profile.height_cm,
        current_weight_kg,
        profile.body_fat_percent,
    )
    tdee = calculate_tdee(bmr, ActivityLevel(profile.activity_level))
    burn_rate_per_kg = tdee / current_weight_kg

    return TDEEEstimate(
        estimated_tdee=tdee,
        burn_rate_per_unit_weight=burn_rate_from_per_kg(burn_rate_per_kg, out_unit),
        confidence=TDEEConfidence.UNSTABLE,
        confidence_score=settings.formula.confidence_score,
        data_points_used=0,
        estimate_history=(),
        source=EstimateSource.FORMULA,
        unit=out_unit.value,
        standard_error=settings.formula.standard_error,
        coefficient_of_variation=None,
        current_weight=from_kg(current_weight_kg, out_unit),
    )


def calculate_lean_mass(weight_kg: float, body_fat_percent: float) -> float:
    """Lean (fat-free) mass from total weight and body fat percentage."""
    return weight_kg * (1 - body_fat_percent / 100)


def calculate_fat_mass(weight_kg: float, body_fat_percent: float) -> float:
    """Fat mass from total weight and body fat percentage."""
    return weight_kg * (body_fat_percent / 100)


def calculate_ffmi(lean_mass_kg: float, height_cm: float) -> FFMIResult:
    """
    Calculate FFMI = lean mass (kg) / height (m)².

    The normalized value adds 6.1 × (1.8 - height in m) so that tall and
    short people are comparable.
    """
    if height_cm <= 0:
        raise ValueError(f"height_cm must be positive, got {height_cm}")
    height_m = height_cm / 100
    ffmi = lean_mass_kg / (height_m * height_m)
    normalized = ffmi + 6.1 * (1.8 - height_m)
    return FFMIResult(
        ffmi=ffmi,
        normalized_ffmi=normalized,
        classification=classify_ffmi(normalized),
    )


def classify_ffmi(normalized_ffmi: float) -> str:
    """Classify a normalized FFMI into a descriptive band."""
    if normalized_ffmi < 18:
        return "below_average"
    if normalized_ffmi < 20:
        return "average"
    if normalized_ffmi < 22:
        return "above_average"
    if normalized_ffmi < 23:
        return "excellent"
    if normalized_ffmi < NATURAL_FFMI_LIMIT:
        return "superior"
    return "suspicious"
