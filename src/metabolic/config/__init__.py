"""Configuration for the metabolic engine."""

from metabolic.config.settings import (
    AdaptiveConfig,
    FormulaConfig,
    PRatioConfig,
    PredictionConfig,
    QualityConfig,
    Settings,
)

__all__ = [
    "AdaptiveConfig",
    "FormulaConfig",
    "PRatioConfig",
    "PredictionConfig",
    "QualityConfig",
    "Settings",
]
