"""Unit handling at the engine boundary.

Everything inside the engine is kilograms, centimetres and kcal. Log
entries are converted on the way in and results on the way out.

The kcal/kg density is derived from the 3500 kcal/lb rule so that a
computation done in kg and converted back to lb reproduces the
pound-based arithmetic exactly.
"""

from __future__ import annotations

from enum import Enum

from metabolic.errors import InvalidInputError

KG_PER_LB = 0.45359237
CM_PER_INCH = 2.54

# Standard approximation: 3500 kcal = 1 lb of body weight
KCAL_PER_LB = 3500.0
KCAL_PER_KG = KCAL_PER_LB / KG_PER_LB


class WeightUnit(Enum):
    """Weight unit used by a log entry or a result."""
    LB = "lb"
    KG = "kg"


def parse_unit(unit: str | WeightUnit) -> WeightUnit:
    """Coerce a string like ``"lbs"`` or ``"kg"`` to a WeightUnit."""
    if isinstance(unit, WeightUnit):
        return unit
    normalized = str(unit).lower().strip()
    if normalized in ("lb", "lbs", "pound", "pounds"):
        return WeightUnit.LB
    if normalized in ("kg", "kgs", "kilogram", "kilograms"):
        return WeightUnit.KG
    raise InvalidInputError(f"unit must be 'lb' or 'kg', got '{unit}'")


def to_kg(value: float, unit: str | WeightUnit) -> float:
    """Convert a weight to kilograms."""
    if parse_unit(unit) is WeightUnit.LB:
        return value * KG_PER_LB
    return value


def from_kg(value_kg: float, unit: str | WeightUnit) -> float:
    """Convert a weight in kilograms to ``unit``."""
    if parse_unit(unit) is WeightUnit.LB:
        return value_kg / KG_PER_LB
    return value_kg


def energy_density(unit: str | WeightUnit) -> float:
    """Return kcal per one unit of body weight."""
    if parse_unit(unit) is WeightUnit.LB:
        return KCAL_PER_LB
    return KCAL_PER_KG


def inches_to_cm(height_inches: float) -> float:
    return height_inches * CM_PER_INCH


def burn_rate_from_per_kg(burn_rate_per_kg: float, unit: str | WeightUnit) -> float:
    """Convert kcal/kg/day to kcal per ``unit`` per day."""
    if parse_unit(unit) is WeightUnit.LB:
        return burn_rate_per_kg * KG_PER_LB
    return burn_rate_per_kg


def burn_rate_to_per_kg(burn_rate: float, unit: str | WeightUnit) -> float:
    """Convert kcal per ``unit`` per day to kcal/kg/day."""
    if parse_unit(unit) is WeightUnit.LB:
        return burn_rate / KG_PER_LB
    return burn_rate
