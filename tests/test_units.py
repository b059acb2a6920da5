"""Tests for unit conversion at the engine boundary."""

from __future__ import annotations

import pytest

from metabolic.errors import InvalidInputError
from metabolic.units import (
    KCAL_PER_KG,
    KCAL_PER_LB,
    WeightUnit,
    burn_rate_from_per_kg,
    burn_rate_to_per_kg,
    energy_density,
    from_kg,
    inches_to_cm,
    parse_unit,
    to_kg,
)


class TestParseUnit:
    """Tests for parse_unit function."""

    @pytest.mark.parametrize("raw", ["lb", "lbs", "LB", " pounds "])
    def test_pound_aliases(self, raw: str) -> None:
        assert parse_unit(raw) is WeightUnit.LB

    @pytest.mark.parametrize("raw", ["kg", "KG", "kgs", "kilograms"])
    def test_kilogram_aliases(self, raw: str) -> None:
        assert parse_unit(raw) is WeightUnit.KG

    def test_enum_passthrough(self) -> None:
        assert parse_unit(WeightUnit.KG) is WeightUnit.KG

    def test_unknown_unit_raises(self) -> None:
        with pytest.raises(InvalidInputError):
            parse_unit("stone")


class TestConversions:
    """Tests for weight and energy conversions."""

    def test_pound_to_kg(self) -> None:
        assert to_kg(100.0, "lb") == pytest.approx(45.359237)
        assert to_kg(70.0, "kg") == 70.0

    def test_kg_back_to_pounds(self) -> None:
        assert from_kg(to_kg(180.0, "lb"), "lb") == pytest.approx(180.0)

    def test_energy_density_is_consistent(self) -> None:
        """One pound of change is 3500 kcal whichever unit computes it."""
        assert energy_density("lb") == KCAL_PER_LB
        assert energy_density("kg") == pytest.approx(7716.18, abs=0.01)
        assert to_kg(1.0, "lb") * KCAL_PER_KG == pytest.approx(3500.0)

    def test_burn_rate_round_trip(self) -> None:
        per_lb = burn_rate_from_per_kg(30.0, "lb")
        assert per_lb == pytest.approx(13.6, abs=0.01)
        assert burn_rate_to_per_kg(per_lb, "lb") == pytest.approx(30.0)

    def test_inches_to_cm(self) -> None:
        assert inches_to_cm(70) == pytest.approx(177.8)
