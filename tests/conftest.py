"""Pytest fixtures for metabolic engine tests."""

from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Callable, Optional

import pytest

from metabolic.composition.models import DexaSample
from metabolic.tracking.models import (
    EstimateSource,
    NutritionLogEntry,
    TDEEConfidence,
    TDEEEstimate,
    UserProfile,
    WeightLogEntry,
)

START_DATE = date(2025, 1, 1)

LogPair = tuple[list[WeightLogEntry], list[NutritionLogEntry]]


def generate_logs(
    days: int,
    start_weight: float = 180.0,
    tdee: float = 2500.0,
    intake: float = 2000.0,
    weight_noise: float = 0.0,
    calorie_noise: float = 0.0,
    protein: float = 160.0,
    seed: int = 42,
    start: date = START_DATE,
) -> LogPair:
    """Synthetic daily logs (lb) that obey 3500 kcal/lb energy balance.

    The true weight moves by (intake - tdee) / 3500 lb each day; scale
    readings add Gaussian noise on top.
    """
    rng = random.Random(seed)
    weight_logs: list[WeightLogEntry] = []
    nutrition_logs: list[NutritionLogEntry] = []
    true_weight = start_weight

    for i in range(days):
        day = start + timedelta(days=i)
        calories = intake + (rng.gauss(0, calorie_noise) if calorie_noise else 0.0)
        reading = true_weight + (rng.gauss(0, weight_noise) if weight_noise else 0.0)
        weight_logs.append(WeightLogEntry(date=day, weight=reading, unit="lb"))
        nutrition_logs.append(
            NutritionLogEntry(date=day, calories_consumed=calories, protein=protein)
        )
        true_weight += (calories - tdee) / 3500.0

    return weight_logs, nutrition_logs


@pytest.fixture
def make_logs() -> Callable[..., LogPair]:
    """Factory for synthetic weight and nutrition logs."""
    return generate_logs


@pytest.fixture
def cutting_logs() -> LogPair:
    """Ten weeks of a noiseless 500 kcal/day deficit from 180 lb."""
    return generate_logs(70, start_weight=180.0, tdee=2500.0, intake=2000.0)


@pytest.fixture
def noisy_maintenance_logs() -> LogPair:
    """Eight weeks at maintenance with realistic scale and intake noise."""
    return generate_logs(
        56,
        start_weight=170.0,
        tdee=2400.0,
        intake=2400.0,
        weight_noise=0.4,
        calorie_noise=150.0,
        seed=7,
    )


@pytest.fixture
def male_profile() -> UserProfile:
    """A complete profile for a 30 year old man planning a cut."""
    return UserProfile(
        sex="male",
        age=30,
        height_cm=180.0,
        activity_level="moderate",
        training_age="intermediate",
        body_fat_percent=18.0,
        target_weight=170.0,
        target_calories=2000.0,
        avg_weekly_training_sets=12.0,
        unit="lb",
    )


def make_estimate(
    tdee: float = 2500.0,
    confidence_score: int = 80,
    source: EstimateSource = EstimateSource.REGRESSION,
    unit: str = "lb",
) -> TDEEEstimate:
    """A TDEE estimate with only the fields the predictor reads filled in."""
    return TDEEEstimate(
        estimated_tdee=tdee,
        burn_rate_per_unit_weight=tdee / 180.0,
        confidence=TDEEConfidence.STABILIZING,
        confidence_score=confidence_score,
        data_points_used=21,
        estimate_history=(),
        source=source,
        unit=unit,
    )


@pytest.fixture
def estimate() -> TDEEEstimate:
    return make_estimate()


def make_scans(
    changes: list[tuple[int, float, float]],
    start_fat: float = 18.0,
    start_lean: float = 64.0,
    start: date = START_DATE,
) -> list[DexaSample]:
    """DEXA history from (days after previous scan, fat change, lean change) steps."""
    fat, lean, day = start_fat, start_lean, start
    scans = [_scan(day, fat, lean)]
    for days, fat_change, lean_change in changes:
        fat += fat_change
        lean += lean_change
        day += timedelta(days=days)
        scans.append(_scan(day, fat, lean))
    return scans


def _scan(day: date, fat_kg: float, lean_kg: float, bf: Optional[float] = None) -> DexaSample:
    return DexaSample(
        date=day,
        body_fat_percent=bf if bf is not None else fat_kg / (fat_kg + lean_kg) * 100,
        lean_mass_kg=lean_kg,
        fat_mass_kg=fat_kg,
    )
