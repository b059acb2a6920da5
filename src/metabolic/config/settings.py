"""Engine settings and configuration management.

Every threshold used by the estimators lives here so that callers can
tune behavior from a YAML file. Settings are passed explicitly to each
operation; there is no process-wide instance.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from metabolic.errors import ConfigError


@dataclass
class QualityConfig:
    """Data quality validation thresholds."""

    lookback_days: int = 90
    max_gap_days: int = 2
    max_daily_change_fraction: float = 0.02  # 2% of bodyweight per day
    min_data_points: int = 14
    max_calorie_std: float = 800.0
    min_weight_std_kg: float = 0.15
    low_calorie_sd: float = 2.5
    low_calorie_percentile: float = 0.10


@dataclass
class AdaptiveConfig:
    """Adaptive TDEE estimator configuration."""

    min_regression_points: int = 7
    min_data_points: int = 14  # below this the estimate is "unstable"
    stable_data_points: int = 28
    bucket_days: int = 7
    min_bucket_span: int = 3
    smoothing: float = 0.1  # EMA trend smoothing
    forgetting_factor: float = 0.95  # per-day down-weighting of older observations
    initial_burn_rate_per_kg: float = 29.8  # ~13.5 kcal/lb
    initial_variance: float = 25.0  # (kcal/kg/day)^2
    obs_noise: float = 16.0  # (kcal/kg/day)^2
    min_burn_rate_per_kg: float = 24.25  # ~11 kcal/lb
    max_burn_rate_per_kg: float = 39.7  # ~18 kcal/lb
    cv_window: int = 7
    cv_unstable: float = 0.08
    cv_stable: float = 0.03
    residual_outlier_sd: float = 2.0  # regression chart drops residuals beyond this


@dataclass
class FormulaConfig:
    """Formula (Mifflin-St Jeor / Katch-McArdle) fallback configuration."""

    confidence_score: int = 20
    standard_error: float = 300.0


@dataclass
class PredictionConfig:
    """Weight prediction configuration."""

    horizons: list[int] = field(default_factory=lambda: [7, 14, 30, 60, 90])
    confidence_level: float = 0.95
    max_tdee_sigma: float = 300.0  # kcal/day at confidence score 0
    min_tdee_sigma: float = 50.0  # kcal/day at confidence score 100
    relative_spread: float = 0.10  # fraction of predicted change at score 0
    goal_date_spread: float = 0.15


@dataclass
class PRatioConfig:
    """P-ratio partition model configuration."""

    max_factor_magnitude: float = 0.12
    max_total_adjustment: float = 0.30
    p_floor: float = 0.05
    base_uncertainty: float = 0.15
    gain_uncertainty_multiplier: float = 1.3
    personal_prior_strength: float = 2.0
    max_personal_weight: float = 0.8
    personal_shrink_per_sample: float = 0.25
    high_confidence_spread: float = 0.12
    reasonable_confidence_spread: float = 0.18


@dataclass
class Settings:
    """Main engine settings."""

    quality: QualityConfig = field(default_factory=QualityConfig)
    adaptive: AdaptiveConfig = field(default_factory=AdaptiveConfig)
    formula: FormulaConfig = field(default_factory=FormulaConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    p_ratio: PRatioConfig = field(default_factory=PRatioConfig)

    def validate(self) -> "Settings":
        """Check cross-field consistency.

        Raises:
            ConfigError: If any value is out of range
        """
        adaptive = self.adaptive
        if not 0 < adaptive.forgetting_factor <= 1:
            raise ConfigError(
                f"forgetting_factor must be in (0, 1], got {adaptive.forgetting_factor}"
            )
        if adaptive.min_regression_points < 2:
            raise ConfigError("min_regression_points must be at least 2")
        if not (
            adaptive.min_regression_points
            <= adaptive.min_data_points
            <= adaptive.stable_data_points
        ):
            raise ConfigError(
                "expected min_regression_points <= min_data_points <= stable_data_points"
            )
        if adaptive.min_burn_rate_per_kg >= adaptive.max_burn_rate_per_kg:
            raise ConfigError("min_burn_rate_per_kg must be below max_burn_rate_per_kg")
        if adaptive.cv_stable >= adaptive.cv_unstable:
            raise ConfigError("cv_stable must be below cv_unstable")
        if adaptive.residual_outlier_sd <= 0:
            raise ConfigError("residual_outlier_sd must be positive")
        if self.quality.lookback_days < 1:
            raise ConfigError("lookback_days must be positive")
        if not 0 < self.prediction.confidence_level < 1:
            raise ConfigError("confidence_level must be in (0, 1)")
        if self.prediction.min_tdee_sigma > self.prediction.max_tdee_sigma:
            raise ConfigError("min_tdee_sigma must not exceed max_tdee_sigma")
        if any(h < 0 for h in self.prediction.horizons):
            raise ConfigError("prediction horizons must be non-negative")
        p_ratio = self.p_ratio
        if not 0 < p_ratio.p_floor < 1:
            raise ConfigError("p_floor must be in (0, 1)")
        if p_ratio.high_confidence_spread > p_ratio.reasonable_confidence_spread:
            raise ConfigError(
                "high_confidence_spread must not exceed reasonable_confidence_spread"
            )
        return self

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from a YAML file or return defaults.

        Args:
            config_path: Path to a YAML file. If None or missing, defaults are used.

        Returns:
            Validated Settings instance
        """
        settings = cls()
        if config_path is None or not Path(config_path).exists():
            return settings

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path}: expected a mapping at top level")

        for section_name in ("quality", "adaptive", "formula", "prediction", "p_ratio"):
            if section_name in data:
                _apply_section(getattr(settings, section_name), data[section_name], section_name)

        return settings.validate()

    def save(self, config_path: Path) -> None:
        """Save current settings to a YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)


def _apply_section(section: Any, values: Any, name: str) -> None:
    """Copy known keys from a YAML mapping onto a config section."""
    if not isinstance(values, dict):
        raise ConfigError(f"section '{name}' must be a mapping")

    for f in fields(section):
        if f.name not in values:
            continue
        raw = values[f.name]
        current = getattr(section, f.name)
        try:
            if isinstance(current, bool):
                value: Any = bool(raw)
            elif isinstance(current, int):
                value = int(raw)
            elif isinstance(current, float):
                value = float(raw)
            elif isinstance(current, list):
                value = [int(v) for v in raw]
            else:
                value = raw
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid value for {name}.{f.name}: {raw!r}") from e
        setattr(section, f.name, value)
