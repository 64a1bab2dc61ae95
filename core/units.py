"""Unit handling for joint inputs, built on top of pint.

The preload formulas work in a fixed unit set (mm, mm², MPa, 1/K, °C, kN).
Callers may hand in plain numbers, which are taken to already be in that
set, or ``{"value": ..., "units": ...}`` mappings that pint converts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pint import Quantity, UnitRegistry
from pint.errors import DimensionalityError, UndefinedUnitError


@lru_cache(maxsize=1)
def get_unit_registry() -> UnitRegistry:
    """Return a singleton :class:`~pint.UnitRegistry` instance.

    Memoized so quantities created in different modules stay comparable.
    Offset temperatures are converted to kelvin when they enter products,
    which keeps ``degC`` inputs usable for the installation and service
    temperatures.
    """

    registry = UnitRegistry(autoconvert_offset_to_baseunit=True)
    registry.default_format = ".5gP"
    # Thermal expansion coefficients are commonly quoted per million
    registry.define("ppm_per_kelvin = 1e-6 / kelvin = ppm_K")
    return registry


def u(value: Any, units: str | None = None) -> Quantity:
    """Create a :class:`~pint.Quantity` coerced to the provided units.

    Parameters
    ----------
    value:
        Numeric value or a :class:`~pint.Quantity`.
    units:
        Unit string interpretable by pint. If ``value`` is already a quantity
        the quantity is converted to the requested units.
    """

    registry = get_unit_registry()
    if isinstance(value, Quantity):
        return value.to(units) if units else value
    if units is None:
        raise ValueError("Units must be provided when creating a quantity from a plain number.")
    return registry.Quantity(value, units)


@dataclass(frozen=True)
class UnitField:
    """Normalizes one joint input to the fixed unit used by the formulas."""

    name: str
    canonical: str

    def validate(self, value: Any) -> float:
        """Return ``value`` as a float expressed in :attr:`canonical` units."""

        if isinstance(value, Quantity):
            return self._convert(value)

        if isinstance(value, dict):
            magnitude = value.get("value")
            units = value.get("units")
        else:
            magnitude, units = value, None

        if magnitude is None:
            raise ValueError(f"{self.name} requires a numeric value.")
        if isinstance(magnitude, bool) or not isinstance(magnitude, (int, float)):
            raise ValueError(f"{self.name} must be a number, got {type(magnitude).__name__}.")

        if units is None or units == self.canonical:
            return float(magnitude)

        try:
            quantity = u(magnitude, units)
        except UndefinedUnitError as exc:
            raise ValueError(f"{self.name} uses unknown units '{units}'.") from exc
        return self._convert(quantity)

    def _convert(self, quantity: Quantity) -> float:
        try:
            magnitude = quantity.to(self.canonical).magnitude
        except DimensionalityError as exc:
            raise ValueError(f"{self.name} must use units compatible with {self.canonical}.") from exc
        magnitude = float(magnitude)
        if not math.isfinite(magnitude):
            raise ValueError(f"{self.name} converts to a non-finite value.")
        return magnitude


LENGTH = "millimeter"
AREA = "millimeter ** 2"
STRESS = "megapascal"
EXPANSION = "1 / kelvin"
TEMPERATURE = "degree_Celsius"
LOAD = "kilonewton"
DIMENSIONLESS = "dimensionless"


def coerce_fields(values: Any, fields: dict[str, UnitField]) -> Any:
    """Apply :meth:`UnitField.validate` to every mapped key present in ``values``.

    Non-mapping payloads are returned untouched so pydantic can report them.
    """

    if not isinstance(values, dict):
        return values
    parsed = dict(values)
    for key, unit_field in fields.items():
        raw = parsed.get(key)
        if raw is None:
            continue
        try:
            parsed[key] = unit_field.validate(raw)
        except ValueError as exc:
            raise ValueError(f"{key}: {exc}") from exc
    return parsed
