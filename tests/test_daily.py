"""Tests for merging logs onto a daily calendar."""

from __future__ import annotations

from datetime import date

import pytest

from metabolic.tracking.daily import find_gaps, log_window, merge_daily_records
from metabolic.tracking.models import NutritionLogEntry, WeightLogEntry


class TestLogWindow:
    """Tests for log_window function."""

    def test_no_logs(self) -> None:
        assert log_window([], [], 90) is None

    def test_defaults_to_latest_log(self) -> None:
        weights = [WeightLogEntry(date(2025, 1, 1), 180.0)]
        nutrition = [NutritionLogEntry(date(2025, 3, 1), 2000.0)]
        assert log_window(weights, nutrition, 30) == (date(2025, 1, 31), date(2025, 3, 1))

    def test_explicit_as_of(self) -> None:
        window = log_window([], [], 7, as_of=date(2025, 2, 7))
        assert window == (date(2025, 2, 1), date(2025, 2, 7))


class TestMergeDailyRecords:
    """Tests for merge_daily_records function."""

    def test_outer_join_by_date(self) -> None:
        weights = [
            WeightLogEntry(date(2025, 1, 2), 80.0, unit="kg"),
            WeightLogEntry(date(2025, 1, 1), 176.0, unit="lb"),
        ]
        nutrition = [
            NutritionLogEntry(date(2025, 1, 1), 2100.0, protein=150.0),
            NutritionLogEntry(date(2025, 1, 3), 1900.0, is_complete=False),
        ]
        records = merge_daily_records(weights, nutrition)

        assert [r.date for r in records] == [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]
        assert records[0].weight_kg == pytest.approx(176.0 * 0.45359237)
        assert records[0].calories == 2100.0
        assert records[0].protein_g == 150.0
        assert records[1].calories is None
        assert records[1].is_complete is True
        assert records[2].weight_kg is None
        assert records[2].is_complete is False

    def test_last_duplicate_wins(self) -> None:
        weights = [
            WeightLogEntry(date(2025, 1, 1), 80.0, unit="kg"),
            WeightLogEntry(date(2025, 1, 1), 81.0, unit="kg"),
        ]
        records = merge_daily_records(weights, [])
        assert len(records) == 1
        assert records[0].weight_kg == 81.0

    def test_date_bounds(self) -> None:
        weights = [WeightLogEntry(date(2025, 1, d), 80.0, unit="kg") for d in range(1, 11)]
        records = merge_daily_records(weights, [], date(2025, 1, 3), date(2025, 1, 5))
        assert [r.date.day for r in records] == [3, 4, 5]

    def test_empty(self) -> None:
        assert merge_daily_records([], []) == []


class TestFindGaps:
    """Tests for find_gaps function."""

    def test_consecutive_days(self) -> None:
        assert find_gaps([date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]) == []

    def test_gap_lengths(self) -> None:
        dates = [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 6), date(2025, 1, 8)]
        assert find_gaps(dates) == [3, 1]

    def test_unsorted_input(self) -> None:
        assert find_gaps([date(2025, 1, 5), date(2025, 1, 1)]) == [3]
