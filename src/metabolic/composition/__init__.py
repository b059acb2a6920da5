"""Fat versus lean partitioning of weight change and body composition projection."""

from metabolic.composition.calibration import (
    calculate_scan_confidence,
    calibrate_p_ratio,
    personal_p_ratio_history,
)
from metabolic.composition.models import (
    BodyCompProjection,
    ChangeDirection,
    DexaSample,
    PRatioInputs,
    PRatioResult,
    ProjectionConfidence,
    ScanConditions,
    ScenarioValues,
)
from metabolic.composition.p_ratio import calculate_p_ratio
from metabolic.composition.projector import (
    project_body_composition,
    project_weight_change,
    scenario_p_ratios,
)

__all__ = [
    "BodyCompProjection",
    "ChangeDirection",
    "DexaSample",
    "PRatioInputs",
    "PRatioResult",
    "ProjectionConfidence",
    "ScanConditions",
    "ScenarioValues",
    "calculate_p_ratio",
    "calculate_scan_confidence",
    "calibrate_p_ratio",
    "personal_p_ratio_history",
    "project_body_composition",
    "project_weight_change",
    "scenario_p_ratios",
]
