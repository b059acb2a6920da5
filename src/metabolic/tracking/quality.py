"""Data quality detection for weight and nutrition logs.

Inspects the analysis window for logging gaps, implausible weight jumps,
half-logged days and unusual intake, and reports them as paired
issue/suggestion strings. Problem days are excluded from the regression
rather than failing the computation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

import numpy as np

from metabolic.config.settings import Settings
from metabolic.tracking.daily import find_gaps, log_window, merge_daily_records
from metabolic.tracking.models import DailyRecord, NutritionLogEntry, WeightLogEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataQualityCheck:
    """Result of validating a log window.

    ``issues`` and ``suggestions`` are index-aligned.
    """

    days_with_data: int
    issues: tuple[str, ...]
    suggestions: tuple[str, ...]
    days_with_gaps: int = 0
    complete_days: int = 0
    usable_days: int = 0  # days with weight and calories that the regression may use
    outlier_dates: tuple[date, ...] = ()
    excluded_dates: tuple[date, ...] = ()
    window: Optional[tuple[date, date]] = None
    min_usable_days: int = 7

    @property
    def is_valid(self) -> bool:
        """True when there is enough clean data to attempt a regression."""
        return self.usable_days >= self.min_usable_days


def detect_weight_outliers(
    records: Sequence[DailyRecord],
    max_daily_change_fraction: float,
) -> list[date]:
    """
    Flag days whose weight jumps implausibly from the last accepted reading.

    The allowed change is ``max_daily_change_fraction`` of bodyweight per
    elapsed day. Each day is compared with the last non-outlier weight so
    that one bad entry does not also flag the day after it. The first
    reading is checked against the window median instead.

    Returns:
        Dates of outlier weights, ascending
    """
    weighed = [r for r in records if r.weight_kg is not None]
    if len(weighed) < 2:
        return []

    outliers: list[date] = []
    median = float(np.median([r.weight_kg for r in weighed]))

    first = weighed[0]
    # No predecessor for the first reading: allow three days of drift from the median
    if abs(first.weight_kg - median) > max_daily_change_fraction * median * 3:
        outliers.append(first.date)
        reference = None
    else:
        reference = first

    for record in weighed[1:]:
        if reference is None:
            reference = record
            continue
        days = max(1, (record.date - reference.date).days)
        allowed = max_daily_change_fraction * reference.weight_kg * days
        if abs(record.weight_kg - reference.weight_kg) > allowed:
            logger.debug(
                "Weight outlier on %s: %.1f kg vs %.1f kg on %s",
                record.date,
                record.weight_kg,
                reference.weight_kg,
                reference.date,
            )
            outliers.append(record.date)
        else:
            reference = record

    return outliers


def detect_low_calorie_outliers(
    records: Sequence[DailyRecord],
    sd_threshold: float = 2.5,
    percentile: float = 0.10,
) -> list[date]:
    """
    Flag complete days with unusually low intake.

    A day is excluded only when it falls below both (mean - sd_threshold × SD)
    and the given percentile of complete-day calories.
    """
    calories = np.array(
        [r.calories for r in records if r.calories is not None and r.calories > 0 and r.is_complete]
    )
    if len(calories) < 3:
        return []

    mean = float(calories.mean())
    sd = float(calories.std())
    sorted_calories = np.sort(calories)
    percentile_value = float(sorted_calories[int(len(sorted_calories) * percentile)])
    threshold = min(mean - sd_threshold * sd, percentile_value)

    outliers = [
        r.date
        for r in records
        if r.calories is not None and 0 < r.calories < threshold
    ]
    if outliers:
        logger.debug(
            "Detected %d low-calorie outlier days (threshold %.0f kcal, mean %.0f, SD %.0f)",
            len(outliers),
            threshold,
            mean,
            sd,
        )
    return outliers


def check_data_quality(
    weight_logs: Sequence[WeightLogEntry],
    nutrition_logs: Sequence[NutritionLogEntry],
    as_of: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> DataQualityCheck:
    """Validate the logs inside the lookback window.

    Checks for:
    1. Too few logged days
    2. Logging gaps longer than the allowed run of missing days
    3. Implausible day-to-day weight changes (excluded as outliers)
    4. Days with weight but no calories, or calories but no weight
    5. Days marked as incompletely logged (excluded)
    6. Unusually low-calorie days (excluded)
    7. Very large calorie variation
    8. Suspiciously constant weight

    Args:
        weight_logs: Weight entries
        nutrition_logs: Nutrition entries
        as_of: Last day of the window; defaults to the latest logged date
        settings: Engine settings

    Returns:
        DataQualityCheck with index-aligned issues and suggestions
    """
    settings = settings or Settings()
    cfg = settings.quality
    min_usable = settings.adaptive.min_regression_points

    window = log_window(weight_logs, nutrition_logs, cfg.lookback_days, as_of)
    records = merge_daily_records(weight_logs, nutrition_logs, *window) if window else []

    if not records:
        return DataQualityCheck(
            days_with_data=0,
            issues=("No data available",),
            suggestions=("Start logging your weight and calories daily",),
            window=window,
            min_usable_days=min_usable,
        )

    issues: list[str] = []
    suggestions: list[str] = []

    def report(issue: str, suggestion: str) -> None:
        issues.append(issue)
        suggestions.append(suggestion)

    days_with_data = len(records)
    if days_with_data < cfg.min_data_points:
        report(
            f"Only {days_with_data} days logged (at least {cfg.min_data_points} needed)",
            "Keep logging daily; personalized estimates unlock after two weeks",
        )

    gaps = find_gaps([r.date for r in records])
    long_gaps = [g for g in gaps if g > cfg.max_gap_days]
    days_with_gaps = sum(gaps)
    if long_gaps:
        report(
            f"{len(long_gaps)} logging gap(s) longer than {cfg.max_gap_days} days "
            f"({days_with_gaps} missing days in total)",
            "Log weight and calories daily for best accuracy",
        )

    weight_outliers = detect_weight_outliers(records, cfg.max_daily_change_fraction)
    if weight_outliers:
        report(
            f"{len(weight_outliers)} implausible day-to-day weight change(s) excluded",
            "Check those entries for typos or unit mix-ups",
        )

    weight_only = sum(1 for r in records if r.weight_kg is not None and r.calories is None)
    calories_only = sum(1 for r in records if r.weight_kg is None and r.calories is not None)
    if weight_only:
        report(
            f"{weight_only} day(s) with a weigh-in but no calorie log",
            "Log calories on every day you weigh in",
        )
    if calories_only:
        report(
            f"{calories_only} day(s) with calories but no weigh-in",
            "Weigh in daily, ideally each morning before eating",
        )

    incomplete = [r.date for r in records if r.calories is not None and not r.is_complete]
    if incomplete:
        report(
            f"{len(incomplete)} day(s) marked as incompletely logged",
            "Mark a day complete only when every meal is logged",
        )

    low_calorie = detect_low_calorie_outliers(
        records, cfg.low_calorie_sd, cfg.low_calorie_percentile
    )
    if low_calorie:
        report(
            f"{len(low_calorie)} unusually low-calorie day(s) excluded",
            "Make sure all meals were logged on those days",
        )

    calories = [r.calories for r in records if r.calories is not None and r.calories > 0]
    if len(calories) >= 3 and float(np.std(calories)) > cfg.max_calorie_std:
        report(
            "Large calorie variations detected",
            "Try to log all meals consistently",
        )

    weights = [r.weight_kg for r in records if r.weight_kg is not None]
    if len(weights) >= 5 and float(np.std(weights)) < cfg.min_weight_std_kg:
        report(
            "Weight appears unusually stable",
            "Weigh at the same time daily, before eating",
        )

    excluded = sorted(set(weight_outliers) | set(incomplete) | set(low_calorie))
    excluded_set = set(excluded)
    usable_days = sum(1 for r in records if r.has_both and r.date not in excluded_set)
    complete_days = sum(1 for r in records if r.calories is not None and r.is_complete)

    return DataQualityCheck(
        days_with_data=days_with_data,
        issues=tuple(issues),
        suggestions=tuple(suggestions),
        days_with_gaps=days_with_gaps,
        complete_days=complete_days,
        usable_days=usable_days,
        outlier_dates=tuple(weight_outliers),
        excluded_dates=tuple(excluded),
        window=window,
        min_usable_days=min_usable,
    )


def format_quality_warnings(check: DataQualityCheck) -> list[str]:
    """Format issues and suggestions as human-readable lines."""
    return [f"{issue}. {suggestion}." for issue, suggestion in zip(check.issues, check.suggestions)]
