"""Tests for pint-backed input normalization."""

import pytest

from core.units import (
    AREA,
    DIMENSIONLESS,
    EXPANSION,
    LENGTH,
    LOAD,
    STRESS,
    TEMPERATURE,
    UnitField,
    coerce_fields,
    get_unit_registry,
    u,
)


def test_registry_is_singleton():
    assert get_unit_registry() is get_unit_registry()


def test_plain_numbers_are_taken_as_canonical():
    assert UnitField("bolt_length", LENGTH).validate(80) == 80.0
    assert UnitField("yield_strength", STRESS).validate({"value": 640}) == 640.0


@pytest.mark.parametrize(
    "canonical, value, units, expected",
    [
        (LENGTH, 2.0, "cm", 20.0),
        (LENGTH, 1.0, "inch", 25.4),
        (AREA, 2.45, "cm^2", 245.0),
        (STRESS, 200.0, "GPa", 2.0e5),
        (LOAD, 160000.0, "N", 160.0),
        (TEMPERATURE, 77.0, "K", -196.15),
        (EXPANSION, 12.0, "ppm_per_kelvin", 12.0e-6),
        (DIMENSIONLESS, 60.0, "percent", 0.6),
    ],
)
def test_quantities_converted(canonical, value, units, expected):
    converted = UnitField("field", canonical).validate({"value": value, "units": units})
    assert converted == pytest.approx(expected, rel=1e-9)


def test_pint_quantity_accepted():
    assert UnitField("clamped_length", LENGTH).validate(u(0.05, "m")) == pytest.approx(50.0)


def test_missing_value_rejected():
    with pytest.raises(ValueError, match="requires a numeric value"):
        UnitField("bolt_area", AREA).validate({"units": "mm^2"})


def test_non_numeric_value_rejected():
    with pytest.raises(ValueError, match="must be a number"):
        UnitField("bolt_area", AREA).validate("245")


def test_unknown_units_rejected():
    with pytest.raises(ValueError, match="unknown units"):
        UnitField("bolt_area", AREA).validate({"value": 1.0, "units": "furlongs_squared_ish"})


def test_incompatible_units_rejected():
    with pytest.raises(ValueError, match="compatible with megapascal"):
        UnitField("yield_strength", STRESS).validate({"value": 1.0, "units": "meter"})


def test_u_requires_units_for_numbers():
    with pytest.raises(ValueError, match="Units must be provided"):
        u(1.0)


def test_coerce_fields_prefixes_key():
    fields = {"bolt_length": UnitField("length", LENGTH)}

    assert coerce_fields({"bolt_length": {"value": 8, "units": "cm"}}, fields) == {"bolt_length": pytest.approx(80.0)}
    with pytest.raises(ValueError, match="bolt_length: length must use units"):
        coerce_fields({"bolt_length": {"value": 8, "units": "kg"}}, fields)


def test_coerce_fields_leaves_other_payloads():
    assert coerce_fields(["not", "a", "mapping"], {}) == ["not", "a", "mapping"]
