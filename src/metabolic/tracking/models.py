"""Data models for weight/nutrition logs and TDEE estimation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from metabolic.errors import InvalidInputError
from metabolic.units import WeightUnit, parse_unit, to_kg

VALID_SEXES = ("male", "female")
VALID_ACTIVITY_LEVELS = ("sedentary", "light", "moderate", "active", "very_active")
VALID_TRAINING_AGES = ("beginner", "intermediate", "advanced")


class TDEEConfidence(Enum):
    """Convergence tier of an adaptive estimate."""
    UNSTABLE = "unstable"
    STABILIZING = "stabilizing"
    STABLE = "stable"


class EstimateSource(Enum):
    """Where a TDEE estimate came from."""
    REGRESSION = "regression"
    FORMULA = "formula"


@dataclass(frozen=True)
class WeightLogEntry:
    """A single logged bodyweight."""

    date: date
    weight: float
    unit: str = "lb"

    def __post_init__(self) -> None:
        parse_unit(self.unit)
        if self.weight <= 0:
            raise InvalidInputError(f"weight must be positive, got {self.weight}")

    @property
    def weight_kg(self) -> float:
        return to_kg(self.weight, self.unit)


@dataclass(frozen=True)
class NutritionLogEntry:
    """A single day of logged intake."""

    date: date
    calories_consumed: float
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    is_complete: bool = True  # all meals logged that day

    def __post_init__(self) -> None:
        if self.calories_consumed < 0:
            raise InvalidInputError(
                f"calories_consumed must be non-negative, got {self.calories_consumed}"
            )


@dataclass(frozen=True)
class UserProfile:
    """Profile data needed by the formula estimator and body composition models."""

    sex: str  # 'male' or 'female'
    age: Optional[int] = None
    height_cm: Optional[float] = None
    activity_level: str = "moderate"
    training_age: str = "intermediate"
    is_enhanced: bool = False
    body_fat_percent: Optional[float] = None
    target_weight: Optional[float] = None  # in `unit`
    target_calories: Optional[float] = None
    avg_weekly_training_sets: float = 0.0
    unit: str = "lb"

    def __post_init__(self) -> None:
        if self.sex not in VALID_SEXES:
            raise InvalidInputError(f"sex must be 'male' or 'female', got '{self.sex}'")
        if self.activity_level not in VALID_ACTIVITY_LEVELS:
            raise InvalidInputError(
                f"activity_level must be one of {VALID_ACTIVITY_LEVELS}, "
                f"got '{self.activity_level}'"
            )
        if self.training_age not in VALID_TRAINING_AGES:
            raise InvalidInputError(
                f"training_age must be one of {VALID_TRAINING_AGES}, "
                f"got '{self.training_age}'"
            )
        if self.height_cm is not None and self.height_cm <= 0:
            raise InvalidInputError(f"height_cm must be positive, got {self.height_cm}")
        if self.body_fat_percent is not None and not 0 < self.body_fat_percent < 100:
            raise InvalidInputError(
                f"body_fat_percent must be in (0, 100), got {self.body_fat_percent}"
            )
        parse_unit(self.unit)

    @property
    def weight_unit(self) -> WeightUnit:
        return parse_unit(self.unit)


@dataclass(frozen=True)
class DailyRecord:
    """Weight and nutrition logs merged onto one calendar day (internal units)."""

    date: date
    weight_kg: Optional[float]
    calories: Optional[float]
    protein_g: Optional[float] = None
    is_complete: bool = True

    @property
    def has_both(self) -> bool:
        return self.weight_kg is not None and self.calories is not None


@dataclass(frozen=True)
class BurnRateHistoryPoint:
    """Running burn-rate estimate after a given day, for convergence charts."""

    date: date
    burn_rate: float  # kcal per unit weight per day
    confidence: int


@dataclass(frozen=True)
class TDEEEstimate:
    """A TDEE estimate, either learned from logs or computed from a formula."""

    estimated_tdee: float
    burn_rate_per_unit_weight: float
    confidence: TDEEConfidence
    confidence_score: int
    data_points_used: int
    estimate_history: tuple[BurnRateHistoryPoint, ...]
    source: EstimateSource
    unit: str = "lb"
    standard_error: float = 0.0  # kcal/day
    coefficient_of_variation: Optional[float] = None
    current_weight: Optional[float] = None  # in `unit`


@dataclass(frozen=True)
class TDEEComparison:
    """Adaptive versus formula TDEE, for explaining the difference to a user."""

    difference: float
    percent_difference: float
    adaptive: Optional[float]
    formula: float
    recommendation: str


@dataclass(frozen=True)
class WeightPrediction:
    """Projected weight at one horizon."""

    target_date: Optional[date]
    days_from_now: int
    predicted_weight: float
    confidence_range: tuple[float, float]
    assumed_daily_calories: float
    current_weight: float
    unit: str = "lb"

    @property
    def predicted_change(self) -> float:
        return self.predicted_weight - self.current_weight


@dataclass(frozen=True)
class GoalDatePrediction:
    """Estimated time to reach a target weight."""

    target_weight: float
    days_required: int
    estimated_date: Optional[date]
    days_range: tuple[int, int]  # (earliest, latest)
    date_range: Optional[tuple[date, date]]
    required_daily_calories: float


@dataclass(frozen=True)
class RegressionPoint:
    """Actual versus model-predicted weight change for one logged day."""

    date: date
    weight: float
    calories: float
    actual_change: float  # per day, in the analysis unit
    predicted_change: float
    residual: float


@dataclass(frozen=True)
class RegressionAnalysis:
    """How well the burn-rate model explains day-to-day weight changes.

    ``r_squared`` is None when the actual changes do not vary; it can be
    negative when the model does worse than their mean.
    """

    points: tuple[RegressionPoint, ...]
    burn_rate_per_unit_weight: float
    estimated_tdee: float
    r_squared: Optional[float]
    standard_error: float  # per day, in `unit`
    excluded_points: int
    unit: str = "lb"
