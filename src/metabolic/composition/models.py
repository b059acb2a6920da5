"""Data models for P-ratio partitioning and body composition projection."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from metabolic.errors import InvalidInputError
from metabolic.tracking.models import VALID_SEXES, VALID_TRAINING_AGES

VALID_SCAN_TIMES = ("morning_fasted", "morning_fed", "afternoon", "evening")
VALID_HYDRATION_STATUSES = ("normal", "dehydrated", "overhydrated", "unknown")


class ChangeDirection(Enum):
    """Whether a mass change is a loss or a gain."""
    LOSS = "loss"
    GAIN = "gain"


class ProjectionConfidence(Enum):
    """Confidence in a body composition projection, from the P-ratio spread."""
    HIGH = "high"
    REASONABLE = "reasonable"
    LOW = "low"


@dataclass(frozen=True)
class DexaSample:
    """One body composition scan used as ground truth for calibration."""

    date: date
    body_fat_percent: float
    lean_mass_kg: float
    fat_mass_kg: float

    def __post_init__(self) -> None:
        if not 0 < self.body_fat_percent < 100:
            raise InvalidInputError(
                f"body_fat_percent must be in (0, 100), got {self.body_fat_percent}"
            )
        if self.lean_mass_kg <= 0:
            raise InvalidInputError(f"lean_mass_kg must be positive, got {self.lean_mass_kg}")
        if self.fat_mass_kg < 0:
            raise InvalidInputError(f"fat_mass_kg must be non-negative, got {self.fat_mass_kg}")

    @property
    def total_mass_kg(self) -> float:
        return self.lean_mass_kg + self.fat_mass_kg


@dataclass(frozen=True)
class ScanConditions:
    """Circumstances of a scan that affect how far its reading can be trusted."""

    time_of_day: str = "morning_fasted"
    hydration_status: str = "unknown"
    recent_workout: bool = False  # trained within 24h
    same_provider_as_previous: bool = False

    def __post_init__(self) -> None:
        if self.time_of_day not in VALID_SCAN_TIMES:
            raise InvalidInputError(
                f"time_of_day must be one of {VALID_SCAN_TIMES}, got '{self.time_of_day}'"
            )
        if self.hydration_status not in VALID_HYDRATION_STATUSES:
            raise InvalidInputError(
                f"hydration_status must be one of {VALID_HYDRATION_STATUSES}, "
                f"got '{self.hydration_status}'"
            )


@dataclass(frozen=True)
class PRatioInputs:
    """Everything the P-ratio model needs about the person and their plan."""

    avg_daily_protein_grams: float
    avg_daily_protein_per_kg: float
    avg_weekly_training_sets: float
    avg_daily_energy_imbalance: float  # kcal/day, negative = deficit
    energy_balance_percent: float  # of TDEE, e.g. -20 for a 20% deficit
    current_body_fat_percent: float
    current_lean_mass_kg: float
    training_age: str = "intermediate"  # 'beginner', 'intermediate', 'advanced'
    is_enhanced: bool = False
    biological_sex: str = "male"
    chronological_age: Optional[float] = None
    personal_p_ratio_history: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.training_age not in VALID_TRAINING_AGES:
            raise InvalidInputError(
                f"training_age must be one of {VALID_TRAINING_AGES}, got '{self.training_age}'"
            )
        if self.biological_sex not in VALID_SEXES:
            raise InvalidInputError(
                f"biological_sex must be 'male' or 'female', got '{self.biological_sex}'"
            )
        if not 0 < self.current_body_fat_percent < 100:
            raise InvalidInputError(
                f"current_body_fat_percent must be in (0, 100), "
                f"got {self.current_body_fat_percent}"
            )
        # Accept lists from callers while keeping the value immutable
        object.__setattr__(
            self, "personal_p_ratio_history", tuple(self.personal_p_ratio_history)
        )


@dataclass(frozen=True)
class PRatioResult:
    """Fraction of a mass change that is fat, with a confidence range.

    ``factors`` maps each adjustment to its signed contribution to
    ``final_p_ratio``.
    """

    final_p_ratio: float
    confidence_range: tuple[float, float]
    factors: dict[str, float]
    direction: ChangeDirection
    base_p_ratio: float
    personal_weight: float = 0.0

    @property
    def spread(self) -> float:
        return self.confidence_range[1] - self.confidence_range[0]


@dataclass(frozen=True)
class ScenarioValues:
    """One value per projection branch."""

    pessimistic: float
    expected: float
    optimistic: float


@dataclass(frozen=True)
class BodyCompProjection:
    """Projected body fat, FFMI and tissue masses at one horizon.

    In every branch ``fat_mass_kg + lean_mass_kg`` equals the projected weight.
    """

    ffmi: ScenarioValues
    body_fat_percent: ScenarioValues
    fat_mass_kg: ScenarioValues
    lean_mass_kg: ScenarioValues
    p_ratio_used: float
    confidence_level: ProjectionConfidence
    factors: dict[str, float]
    direction: ChangeDirection
    days_from_now: int


@dataclass(frozen=True)
class ScanPairAnalysis:
    """Fat and lean changes between two consecutive scans."""

    start: DexaSample
    end: DexaSample
    weight_change_kg: float
    fat_change_kg: float
    lean_change_kg: float
    calculated_p_ratio: Optional[float]
    duration_days: int
    is_valid: bool
    invalid_reason: Optional[str] = None

    @property
    def direction(self) -> ChangeDirection:
        """Loss or gain, from the sign of the mass change."""
        return ChangeDirection.GAIN if self.weight_change_kg > 0 else ChangeDirection.LOSS


@dataclass(frozen=True)
class CalibrationResult:
    """Personal P-ratio learned from scan history."""

    learned_p_ratio: float
    confidence: str  # 'high', 'medium', 'low'
    data_points: int
    scan_pairs: tuple[ScanPairAnalysis, ...]
