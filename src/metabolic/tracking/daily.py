"""Merge weight and nutrition logs onto a daily calendar."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Sequence

import pandas as pd

from metabolic.tracking.models import DailyRecord, NutritionLogEntry, WeightLogEntry


def log_window(
    weight_logs: Sequence[WeightLogEntry],
    nutrition_logs: Sequence[NutritionLogEntry],
    lookback_days: int,
    as_of: Optional[date] = None,
) -> Optional[tuple[date, date]]:
    """
    Return the inclusive (start, end) window to analyze.

    The window ends at ``as_of`` or, when not given, at the latest logged
    date. It never depends on the wall clock.

    Returns:
        (start, end) or None if there are no logs at all
    """
    if as_of is None:
        all_dates = [e.date for e in weight_logs] + [e.date for e in nutrition_logs]
        if not all_dates:
            return None
        as_of = max(all_dates)
    return as_of - timedelta(days=lookback_days - 1), as_of


def merge_daily_records(
    weight_logs: Sequence[WeightLogEntry],
    nutrition_logs: Sequence[NutritionLogEntry],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[DailyRecord]:
    """
    Outer-join weight and nutrition logs by date.

    Weights are converted to kg. If a date appears twice in one log the
    last entry wins.

    Args:
        weight_logs: Weight entries in any order
        nutrition_logs: Nutrition entries in any order
        start: Optional inclusive lower date bound
        end: Optional inclusive upper date bound

    Returns:
        One DailyRecord per logged day, ascending by date
    """
    weights = pd.DataFrame(
        {
            "date": [e.date for e in weight_logs],
            "weight_kg": [e.weight_kg for e in weight_logs],
        },
        columns=["date", "weight_kg"],
    ).drop_duplicates("date", keep="last")

    nutrition = pd.DataFrame(
        {
            "date": [e.date for e in nutrition_logs],
            "calories": [e.calories_consumed for e in nutrition_logs],
            "protein_g": [e.protein for e in nutrition_logs],
            "is_complete": [e.is_complete for e in nutrition_logs],
        },
        columns=["date", "calories", "protein_g", "is_complete"],
    ).drop_duplicates("date", keep="last")

    merged = weights.merge(nutrition, on="date", how="outer").sort_values("date")

    if start is not None:
        merged = merged[merged["date"] >= start]
    if end is not None:
        merged = merged[merged["date"] <= end]

    records = []
    for row in merged.itertuples(index=False):
        records.append(
            DailyRecord(
                date=row.date,
                weight_kg=None if pd.isna(row.weight_kg) else float(row.weight_kg),
                calories=None if pd.isna(row.calories) else float(row.calories),
                protein_g=None if pd.isna(row.protein_g) else float(row.protein_g),
                is_complete=True if pd.isna(row.is_complete) else bool(row.is_complete),
            )
        )
    return records


def find_gaps(dates: Sequence[date]) -> list[int]:
    """
    Lengths of runs of missing days between consecutive logged dates.

    Example:
        Logged on Jan 1, Jan 2 and Jan 6 -> [3]
    """
    if len(dates) < 2:
        return []
    series = pd.Series(pd.to_datetime(sorted(dates)))
    missing = series.diff().dt.days.dropna() - 1
    return [int(m) for m in missing if m > 0]
