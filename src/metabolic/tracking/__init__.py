"""Weight tracking, data quality and adaptive TDEE learning.

Key components:
- EMA weight trend (10% smoothing, ~10 day time constant)
- Data quality validation with outlier exclusion
- Burn-rate filter that learns a personal TDEE from intake and trend change
- Weight and goal-date prediction from the active estimate
"""

from __future__ import annotations

from metabolic.tracking.ema import calculate_trend, update_trend
from metabolic.tracking.models import (
    EstimateSource,
    GoalDatePrediction,
    NutritionLogEntry,
    RegressionAnalysis,
    TDEEConfidence,
    TDEEEstimate,
    UserProfile,
    WeightLogEntry,
    WeightPrediction,
)
from metabolic.tracking.prediction import (
    predict_goal_date,
    predict_weight,
    predict_weights,
    required_daily_calories,
)
from metabolic.tracking.quality import DataQualityCheck, check_data_quality
from metabolic.tracking.tdee_filter import (
    BurnRateFilter,
    estimate_adaptive_tdee,
    regression_analysis,
)

__all__ = [
    "BurnRateFilter",
    "DataQualityCheck",
    "EstimateSource",
    "GoalDatePrediction",
    "NutritionLogEntry",
    "RegressionAnalysis",
    "TDEEConfidence",
    "TDEEEstimate",
    "UserProfile",
    "WeightLogEntry",
    "WeightPrediction",
    "calculate_trend",
    "check_data_quality",
    "estimate_adaptive_tdee",
    "predict_goal_date",
    "predict_weight",
    "predict_weights",
    "regression_analysis",
    "required_daily_calories",
    "update_trend",
]
