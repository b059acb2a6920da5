"""Serialization utilities for engine inputs and reports.

Reports become plain JSON-compatible dicts for the presentation layer.
Inputs can be serialized and deserialized back to equivalent
EngineInputs, which also gives a stable form for content hashing.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from enum import Enum
from typing import Any

from metabolic.composition.models import DexaSample
from metabolic.engine import EngineInputs, EngineReport
from metabolic.errors import InvalidInputError
from metabolic.tracking.models import NutritionLogEntry, UserProfile, WeightLogEntry


def to_serializable(value: Any) -> Any:
    """Convert dataclasses, enums, dates and tuples to JSON-compatible values.

    Dataclass properties are not included, only fields.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_serializable(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(v) for v in value]
    return value


def serialize_report(report: EngineReport) -> dict[str, Any]:
    """Convert an EngineReport to a JSON-serializable dict.

    Derived values that are properties rather than fields (quality
    validity, predicted change) are added so the presentation layer does
    not need to recompute them.
    """
    data = to_serializable(report)
    data["quality"]["is_valid"] = report.quality.is_valid
    for item, prediction in zip(data["predictions"], report.predictions):
        item["predicted_change"] = prediction.predicted_change
    return data


def serialize_inputs(inputs: EngineInputs) -> dict[str, Any]:
    """Convert EngineInputs to a JSON-serializable dict.

    Logs are sorted by date so that the same data in a different order
    serializes identically.
    """
    data = to_serializable(inputs)
    data["weight_logs"].sort(key=lambda e: e["date"])
    data["nutrition_logs"].sort(key=lambda e: e["date"])
    data["dexa_samples"].sort(key=lambda e: e["date"])
    return data


def _parse_date(raw: Any, field_name: str) -> date:
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw))
    except ValueError as e:
        raise InvalidInputError(f"invalid date for {field_name}: {raw!r}") from e


def deserialize_inputs(data: dict[str, Any]) -> EngineInputs:
    """Convert a dict (e.g. from JSON) back to EngineInputs.

    Args:
        data: Dictionary as produced by serialize_inputs()

    Returns:
        EngineInputs

    Raises:
        InvalidInputError: If a required field is missing or malformed
    """
    if "profile" not in data:
        raise InvalidInputError("inputs must include a profile")

    weight_logs = [
        WeightLogEntry(
            date=_parse_date(e["date"], "weight_logs.date"),
            weight=float(e["weight"]),
            unit=e.get("unit", "lb"),
        )
        for e in data.get("weight_logs", [])
    ]
    nutrition_logs = [
        NutritionLogEntry(
            date=_parse_date(e["date"], "nutrition_logs.date"),
            calories_consumed=float(e["calories_consumed"]),
            protein=float(e.get("protein", 0.0)),
            carbs=float(e.get("carbs", 0.0)),
            fat=float(e.get("fat", 0.0)),
            is_complete=bool(e.get("is_complete", True)),
        )
        for e in data.get("nutrition_logs", [])
    ]
    dexa_samples = [
        DexaSample(
            date=_parse_date(s["date"], "dexa_samples.date"),
            body_fat_percent=float(s["body_fat_percent"]),
            lean_mass_kg=float(s["lean_mass_kg"]),
            fat_mass_kg=float(s["fat_mass_kg"]),
        )
        for s in data.get("dexa_samples", [])
    ]

    known = {f.name for f in dataclasses.fields(UserProfile)}
    profile = UserProfile(**{k: v for k, v in data["profile"].items() if k in known})

    horizons = data.get("horizons")
    as_of = data.get("as_of")

    return EngineInputs(
        weight_logs=weight_logs,
        nutrition_logs=nutrition_logs,
        profile=profile,
        dexa_samples=dexa_samples,
        horizons=tuple(int(h) for h in horizons) if horizons is not None else None,
        as_of=_parse_date(as_of, "as_of") if as_of is not None else None,
    )
