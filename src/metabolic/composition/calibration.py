"""
Personal P-ratio calibration from DEXA scans.

Consecutive scan pairs give measured fat and lean changes. Pairs with a
meaningful change over a meaningful interval yield a personal P-ratio;
their median becomes the learned value and the list feeds
``PRatioInputs.personal_p_ratio_history``.

P means opposite things for a loss and a gain, so ratios are only ever
pooled with pairs that moved in the same direction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Union

import numpy as np

from metabolic.composition.models import (
    CalibrationResult,
    ChangeDirection,
    DexaSample,
    ScanConditions,
    ScanPairAnalysis,
)
from metabolic.composition.p_ratio import get_p_ratio_quality

logger = logging.getLogger(__name__)

MIN_WEIGHT_CHANGE_KG = 1.0
MIN_SCAN_INTERVAL_DAYS = 14
# Above 1.0 is possible when muscle is gained while fat is lost
PLAUSIBLE_P_RATIO = (0.3, 1.1)

SCAN_TIME_POINTS = {"morning_fasted": 3, "morning_fed": 2, "afternoon": 1, "evening": 1}
HYDRATION_POINTS = {"normal": 2, "unknown": 1, "dehydrated": 0, "overhydrated": 0}


@dataclass(frozen=True)
class BodyCompChangeSummary:
    """Measured change between two scans."""

    start_date: date
    end_date: date
    weight_change_kg: float
    fat_change_kg: float
    lean_change_kg: float
    body_fat_change: float
    calculated_p_ratio: Optional[float]
    p_ratio_quality: Optional[str]


@dataclass(frozen=True)
class PredictionAccuracy:
    """How a composition prediction compared with the scan that followed it."""

    predicted_body_fat: float
    actual_body_fat: float
    body_fat_error: float
    within_range: bool
    predicted_p_ratio: float
    actual_p_ratio: Optional[float]


def calculate_scan_confidence(conditions: ScanConditions) -> str:
    """
    Rate how reliable a scan is from the conditions it was taken under.

    Points: fasted morning 3, fed morning 2, later 1; normal hydration 2,
    unknown 1; no workout in the last day 1; same provider as the previous
    scan 2. Seven or more is 'high', four or more 'medium', else 'low'.
    """
    score = SCAN_TIME_POINTS[conditions.time_of_day]
    score += HYDRATION_POINTS[conditions.hydration_status]
    if not conditions.recent_workout:
        score += 1
    if conditions.same_provider_as_previous:
        score += 2

    if score >= 7:
        return "high"
    if score >= 4:
        return "medium"
    return "low"


def analyze_scan_pair(start: DexaSample, end: DexaSample) -> ScanPairAnalysis:
    """
    Measure fat and lean change between two scans.

    A pair is valid when mass changed by at least 1 kg, the scans are at
    least 14 days apart, and the resulting P-ratio is plausible.
    """
    weight_change = end.total_mass_kg - start.total_mass_kg
    fat_change = end.fat_mass_kg - start.fat_mass_kg
    lean_change = end.lean_mass_kg - start.lean_mass_kg
    duration_days = (end.date - start.date).days

    invalid_reason = None
    p_ratio = None
    if abs(weight_change) < MIN_WEIGHT_CHANGE_KG:
        invalid_reason = "Weight change too small for reliable P-ratio calculation"
    else:
        p_ratio = fat_change / weight_change
        low, high = PLAUSIBLE_P_RATIO
        if not low <= p_ratio <= high:
            invalid_reason = f"Calculated P-ratio ({p_ratio:.2f}) outside expected range"

    if duration_days < MIN_SCAN_INTERVAL_DAYS:
        invalid_reason = "Scans too close together for reliable measurement"

    return ScanPairAnalysis(
        start=start,
        end=end,
        weight_change_kg=weight_change,
        fat_change_kg=fat_change,
        lean_change_kg=lean_change,
        calculated_p_ratio=p_ratio,
        duration_days=duration_days,
        is_valid=invalid_reason is None,
        invalid_reason=invalid_reason,
    )


def analyze_scan_history(samples: Sequence[DexaSample]) -> list[ScanPairAnalysis]:
    """Analyze every consecutive pair of scans in date order."""
    ordered = sorted(samples, key=lambda s: s.date)
    return [analyze_scan_pair(a, b) for a, b in zip(ordered, ordered[1:])]


def _valid_ratios(
    pairs: Sequence[ScanPairAnalysis],
    direction: Optional[Union[ChangeDirection, str]],
) -> list[float]:
    wanted = ChangeDirection(direction) if direction is not None else None
    return [
        pair.calculated_p_ratio
        for pair in pairs
        if pair.is_valid
        and pair.calculated_p_ratio is not None
        and (wanted is None or pair.direction == wanted)
    ]


def personal_p_ratio_history(
    samples: Sequence[DexaSample],
    direction: Optional[Union[ChangeDirection, str]] = None,
) -> list[float]:
    """P-ratios from the valid scan pairs, oldest first.

    Pass ``direction`` to keep only pairs that lost (or gained) mass.
    """
    return _valid_ratios(analyze_scan_history(samples), direction)


def calibrate_p_ratio(
    samples: Sequence[DexaSample],
    direction: Optional[Union[ChangeDirection, str]] = None,
) -> Optional[CalibrationResult]:
    """
    Learn a personal P-ratio from scan history.

    Uses the median of valid pair ratios. Confidence is 'high' with at
    least four pairs and a sample SD under 0.08, 'medium' with at least
    two pairs and SD under 0.12, otherwise 'low'. With ``direction`` only
    pairs that moved that way count; every pair is still returned in
    ``scan_pairs``.

    Returns:
        CalibrationResult, or None with fewer than two scans or no valid pair
        in the requested direction
    """
    if len(samples) < 2:
        return None

    pairs = analyze_scan_history(samples)
    ratios = _valid_ratios(pairs, direction)
    if not ratios:
        logger.debug("No valid scan pairs among %d scans", len(samples))
        return None

    values = np.asarray(ratios, dtype=float)
    std = float(values.std(ddof=1)) if len(values) > 1 else 0.0

    if len(values) >= 4 and std < 0.08:
        confidence = "high"
    elif len(values) >= 2 and std < 0.12:
        confidence = "medium"
    else:
        confidence = "low"

    return CalibrationResult(
        learned_p_ratio=float(np.median(values)),
        confidence=confidence,
        data_points=len(values),
        scan_pairs=tuple(pairs),
    )


def scans_needed_for_confidence(data_points: int, target_confidence: str) -> int:
    """Additional valid scan pairs needed to reach a confidence level."""
    required = {"low": 1, "medium": 2, "high": 4}
    if target_confidence not in required:
        raise ValueError(f"unknown confidence level '{target_confidence}'")
    return max(0, required[target_confidence] - data_points)


def body_comp_change_summary(start: DexaSample, end: DexaSample) -> BodyCompChangeSummary:
    pair = analyze_scan_pair(start, end)
    return BodyCompChangeSummary(
        start_date=start.date,
        end_date=end.date,
        weight_change_kg=pair.weight_change_kg,
        fat_change_kg=pair.fat_change_kg,
        lean_change_kg=pair.lean_change_kg,
        body_fat_change=end.body_fat_percent - start.body_fat_percent,
        calculated_p_ratio=pair.calculated_p_ratio,
        p_ratio_quality=(
            get_p_ratio_quality(pair.calculated_p_ratio)
            if pair.calculated_p_ratio is not None
            else None
        ),
    )


def compare_prediction_vs_actual(
    predicted_body_fat: float,
    body_fat_range: tuple[float, float],
    predicted_p_ratio: float,
    start: DexaSample,
    actual: DexaSample,
) -> PredictionAccuracy:
    """
    Score a body fat prediction against the scan taken at its horizon.

    Args:
        predicted_body_fat: Expected body fat %
        body_fat_range: (lowest, highest) predicted body fat %
        predicted_p_ratio: P-ratio the prediction assumed
        start: Scan the prediction started from
        actual: Scan taken at the prediction horizon
    """
    low, high = min(body_fat_range), max(body_fat_range)
    return PredictionAccuracy(
        predicted_body_fat=predicted_body_fat,
        actual_body_fat=actual.body_fat_percent,
        body_fat_error=actual.body_fat_percent - predicted_body_fat,
        within_range=low <= actual.body_fat_percent <= high,
        predicted_p_ratio=predicted_p_ratio,
        actual_p_ratio=analyze_scan_pair(start, actual).calculated_p_ratio,
    )
