"""Exponentially smoothed weight trend.

Daily scale readings swing by a kilogram or more with water, sodium and
gut contents. The adaptive estimator works on a trend line instead:

    T_n = T_{n-1} + α × (W_n - T_{n-1})

With α = 0.1 this behaves like a low-pass filter with a ~10 day time
constant. When days are skipped the smoothing factor is scaled to the
elapsed time,

    α_t = 1 - (1 - α)^t

which treats the discrete EWMA as a sampled continuous exponential
smoother, so a reading after a gap pulls the trend further.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from metabolic.units import KCAL_PER_KG

DEFAULT_SMOOTHING = 0.1


def time_scaled_alpha(base_alpha: float, days_elapsed: int) -> float:
    """
    Adjust the smoothing factor for the number of days since the last reading.

    Example:
        >>> round(time_scaled_alpha(0.1, 3), 3)
        0.271
    """
    if days_elapsed <= 0:
        days_elapsed = 1
    return 1 - (1 - base_alpha) ** days_elapsed


def update_trend(
    prev_trend: float,
    weight: float,
    smoothing: float = DEFAULT_SMOOTHING,
    days_elapsed: int = 1,
) -> float:
    """Advance the trend by one reading."""
    alpha = time_scaled_alpha(smoothing, days_elapsed)
    return prev_trend + alpha * (weight - prev_trend)


def calculate_trend(
    dated_weights: Sequence[tuple[date, float]],
    smoothing: float = DEFAULT_SMOOTHING,
) -> list[float]:
    """
    Calculate trend values for a dated weight series.

    The first reading seeds the trend. Gaps between dates are detected and
    the smoothing factor is scaled accordingly.

    Args:
        dated_weights: (date, weight) pairs in ascending date order
        smoothing: Base smoothing factor

    Returns:
        Trend values, one per input pair
    """
    if not dated_weights:
        return []

    trends = [dated_weights[0][1]]
    for (prev_date, _), (curr_date, weight) in zip(dated_weights, dated_weights[1:]):
        days_elapsed = (curr_date - prev_date).days
        trends.append(update_trend(trends[-1], weight, smoothing, days_elapsed))
    return trends


def implied_daily_balance(trend_start_kg: float, trend_end_kg: float, days: int) -> float:
    """
    Daily energy balance implied by a trend change.

    Returns:
        kcal/day, negative for a deficit
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")
    return (trend_end_kg - trend_start_kg) * KCAL_PER_KG / days
