"""Room-temperature preload of a bolted joint in cryogenic service.

The joint is reduced to axial springs: bolt shank, nut, bolt head, washer and
the clamped flange/gasket stack. The clamped-stack spring depends on how wide
the stack is compared with the bearing diameter under the head, so it is
evaluated in one of three regimes (slender cylinder, semi-infinite plate, or
an exponential bridge between the two). The combined joint stiffness sets how
a differential thermal contraction between bolt and stack is shared, which
gives the preload correction applied on top of the yield-based targets.

Units are fixed: millimetres, MPa, 1/K, °C, with the external load in kN.
Stiffnesses come out in N/mm and forces in N.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

from core.state import Step, Substitution
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
)


TOOL_NAME = "cryogenic_preload"

# kcmax and kc0 closer than this leave no usable transition interval
DEGENERATE_REL_TOL = 1e-9

NEWTONS_PER_KILONEWTON = 1000.0


class PreloadError(ValueError):
    """Base class for every failure raised by the preload calculation."""


class InvalidInput(PreloadError):
    """Inputs violate a physical or modelling precondition."""


class DegenerateGeometry(PreloadError):
    """The transition regime has no width between its two limits."""


class NumericOverflow(PreloadError):
    """An intermediate value left the finite floating-point range."""


_LENGTH_FIELD = UnitField("length", LENGTH)
_AREA_FIELD = UnitField("area", AREA)
_STRESS_FIELD = UnitField("stress", STRESS)
_EXPANSION_FIELD = UnitField("thermal_expansion", EXPANSION)
_TEMPERATURE_FIELD = UnitField("temperature", TEMPERATURE)
_LOAD_FIELD = UnitField("external_load", LOAD)
_RATIO_FIELD = UnitField("ratio", DIMENSIONLESS)


class _Record(BaseModel):
    """Frozen input record; direct construction reports problems as :class:`InvalidInput`."""

    model_config = {"frozen": True, "allow_inf_nan": False, "extra": "forbid"}

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise InvalidInput("; ".join(_describe_errors(type(self).__name__, exc))) from exc

    def revalidated(self):
        """Re-run field and cross-field checks on a record built without them.

        ``model_copy(update=...)`` and ``model_construct`` skip validation, so
        calculations call this before trusting a record.
        """

        try:
            return type(self).model_validate(self.model_dump())
        except ValidationError as exc:
            raise InvalidInput("; ".join(_describe_errors(type(self).__name__, exc))) from exc


class Geometry(_Record):
    """Bolt, nut, head, washer and clamped-stack dimensions (mm, mm²)."""

    bolt_diameter: float = Field(gt=0)
    bolt_area: float = Field(gt=0)
    nut_area: float = Field(gt=0)
    head_area: float = Field(gt=0)
    washer_area: float = Field(gt=0)
    bolt_length: float = Field(gt=0)
    nut_length: float = Field(gt=0)
    head_length: float = Field(gt=0)
    washer_length: float = Field(gt=0)
    clamped_diameter: float = Field(gt=0)
    clamped_length: float = Field(gt=0)
    bore_ratio: float = Field(gt=0)
    bearing_ratio: float = Field(gt=0)

    @model_validator(mode="before")
    @classmethod
    def _coerce_units(cls, values: Any) -> Any:
        mapping = {
            "bolt_diameter": _LENGTH_FIELD,
            "bolt_length": _LENGTH_FIELD,
            "nut_length": _LENGTH_FIELD,
            "head_length": _LENGTH_FIELD,
            "washer_length": _LENGTH_FIELD,
            "clamped_diameter": _LENGTH_FIELD,
            "clamped_length": _LENGTH_FIELD,
            "bolt_area": _AREA_FIELD,
            "nut_area": _AREA_FIELD,
            "head_area": _AREA_FIELD,
            "washer_area": _AREA_FIELD,
            "bore_ratio": _RATIO_FIELD,
            "bearing_ratio": _RATIO_FIELD,
        }
        return coerce_fields(values, mapping)

    @model_validator(mode="after")
    def _validate_geometry(self) -> "Geometry":
        if self.bore_ratio >= self.bearing_ratio:
            raise ValueError("Bore ratio alpha must be smaller than bearing ratio beta")
        if self.clamped_diameter <= self.bore_diameter:
            raise ValueError("Clamped outer diameter must exceed the bore diameter alpha * d")
        return self

    @property
    def bore_diameter(self) -> float:
        return self.bore_ratio * self.bolt_diameter

    @property
    def bearing_diameter(self) -> float:
        return self.bearing_ratio * self.bolt_diameter


class Material(_Record):
    """Elastic moduli and yield strength (MPa), expansion coefficients (1/K)."""

    bolt_modulus: float = Field(gt=0)
    nut_modulus: float = Field(gt=0)
    head_modulus: float = Field(gt=0)
    washer_modulus: float = Field(gt=0)
    clamped_modulus: float = Field(gt=0)
    bolt_cte: float
    clamped_cte: float
    yield_strength: float = Field(gt=0)

    @model_validator(mode="before")
    @classmethod
    def _coerce_units(cls, values: Any) -> Any:
        mapping = {
            "bolt_modulus": _STRESS_FIELD,
            "nut_modulus": _STRESS_FIELD,
            "head_modulus": _STRESS_FIELD,
            "washer_modulus": _STRESS_FIELD,
            "clamped_modulus": _STRESS_FIELD,
            "yield_strength": _STRESS_FIELD,
            "bolt_cte": _EXPANSION_FIELD,
            "clamped_cte": _EXPANSION_FIELD,
        }
        return coerce_fields(values, mapping)


class Condition(_Record):
    """Temperatures (°C), external load (kN) and the design ratios x, a, b."""

    room_temperature: float = Field(ge=-273.15)
    service_temperature: float = Field(ge=-273.15)
    external_load: float = Field(ge=0)
    target_ratio: float = Field(gt=0, lt=1)
    stress_concentration: float = Field(gt=1)
    min_preload_ratio: float = Field(gt=0, lt=1)

    @model_validator(mode="before")
    @classmethod
    def _coerce_units(cls, values: Any) -> Any:
        mapping = {
            "room_temperature": _TEMPERATURE_FIELD,
            "service_temperature": _TEMPERATURE_FIELD,
            "external_load": _LOAD_FIELD,
            "target_ratio": _RATIO_FIELD,
            "stress_concentration": _RATIO_FIELD,
            "min_preload_ratio": _RATIO_FIELD,
        }
        return coerce_fields(values, mapping)

    @model_validator(mode="after")
    def _validate_ratios(self) -> "Condition":
        if self.min_preload_ratio >= self.target_ratio:
            raise ValueError("Minimum preload ratio b must be smaller than target ratio x")
        return self


class ClampedRegime(str, Enum):
    """Which closed form produced the clamped-stack stiffness."""

    CYLINDER = "cylinder"
    PLATE = "plate"
    TRANSITION = "transition"

    @property
    def label(self) -> str:
        return _REGIME_LABELS[self]


_REGIME_LABELS = {
    ClampedRegime.CYLINDER: "Uniform/cone cylinder (da <= beta*d)",
    ClampedRegime.PLATE: "Semi-infinite plate limit (da >= beta*d + L)",
    ClampedRegime.TRANSITION: "Transition zone, exponential interpolation",
}


@dataclass(frozen=True, slots=True)
class ClampedStackStiffness:
    """Clamped-stack stiffness together with the regime that produced it.

    Only the transition variant carries ``cylinder_limit`` (kc0),
    ``plate_limit`` (kcmax) and the interpolation ``exponent``.
    """

    regime: ClampedRegime
    stiffness: float
    bearing_diameter: float
    cylinder_limit: Optional[float] = None
    plate_limit: Optional[float] = None
    exponent: Optional[float] = None


@dataclass(frozen=True, slots=True)
class PreloadBounds:
    delta_t: float
    thermal_force: float
    nominal: float
    minimum: float
    maximum: float


@dataclass(frozen=True, slots=True)
class PreloadResult:
    bolt_stiffness: float
    nut_stiffness: float
    head_stiffness: float
    washer_stiffness: float
    clamped_stiffness: float
    joint_stiffness: float
    sharing_coefficient: float
    delta_t: float
    thermal_force: float
    nominal_preload: float
    min_preload: float
    max_preload: float
    clamped_regime: ClampedRegime

    @property
    def has_admissible_window(self) -> bool:
        return self.min_preload <= self.max_preload

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["clamped_regime"] = self.clamped_regime.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreloadResult":
        values = dict(data)
        values["clamped_regime"] = ClampedRegime(values["clamped_regime"])
        return cls(**values)


RESULT_UNITS: Dict[str, str] = {
    "bolt_stiffness": "N/mm",
    "nut_stiffness": "N/mm",
    "head_stiffness": "N/mm",
    "washer_stiffness": "N/mm",
    "clamped_stiffness": "N/mm",
    "joint_stiffness": "N/mm",
    "sharing_coefficient": "",
    "delta_t": "°C",
    "thermal_force": "N",
    "nominal_preload": "N",
    "min_preload": "N",
    "max_preload": "N",
    "clamped_regime": "",
}


# ----------------------------------------------------------------------
# Stage 1: component stiffness
# ----------------------------------------------------------------------


def component_stiffness(modulus: float, area: float, length: float) -> float:
    """Axial stiffness ``E * A / L`` of a prismatic bar in N/mm."""

    if length <= 0:
        raise InvalidInput(f"Component length must be positive, got {length}")
    return modulus * area / length


# ----------------------------------------------------------------------
# Stage 2: clamped-stack stiffness
# ----------------------------------------------------------------------


def cylinder_stiffness(modulus: float, outer_diameter: float, bore_diameter: float, length: float) -> float:
    """Annular column: ``pi * E * (da^2 - (alpha*d)^2) / (4 * L)``."""

    return math.pi * modulus * (outer_diameter ** 2 - bore_diameter ** 2) / (4.0 * length)


def plate_stiffness(
    modulus: float,
    bolt_diameter: float,
    length: float,
    bore_ratio: float,
    bearing_ratio: float,
) -> float:
    """Empirical stiffness of a stack too wide for its outer diameter to matter."""

    spread = 0.59 * (bearing_ratio ** 2 - bore_ratio ** 2) * (bolt_diameter / length)
    rim = 0.2 * (bearing_ratio + bore_ratio)
    return modulus * bolt_diameter * (spread + rim)


def clamped_stack_stiffness(
    modulus: float,
    clamped_diameter: float,
    clamped_length: float,
    bolt_diameter: float,
    bore_ratio: float,
    bearing_ratio: float,
) -> ClampedStackStiffness:
    """Select the clamped-stack regime and evaluate its stiffness.

    The regimes are split on the bearing diameter ``bd = beta * d``:

    * ``da <= bd``: the stack behaves as an annular cylinder.
    * ``da >= bd + L``: the plate limit applies and ``da`` drops out.
    * otherwise the stiffness is bridged exponentially from the cylinder
      value at ``da = bd`` (kc0) towards the plate value (kcmax).

    Raises :class:`DegenerateGeometry` when kc0 and kcmax coincide inside the
    transition band, since the interpolation exponent is then undefined.
    """

    bearing_diameter = bearing_ratio * bolt_diameter
    bore_diameter = bore_ratio * bolt_diameter

    if clamped_diameter <= bearing_diameter:
        stiffness = cylinder_stiffness(modulus, clamped_diameter, bore_diameter, clamped_length)
        return ClampedStackStiffness(ClampedRegime.CYLINDER, stiffness, bearing_diameter)

    if clamped_diameter >= bearing_diameter + clamped_length:
        stiffness = plate_stiffness(modulus, bolt_diameter, clamped_length, bore_ratio, bearing_ratio)
        return ClampedStackStiffness(ClampedRegime.PLATE, stiffness, bearing_diameter)

    kc0 = cylinder_stiffness(modulus, bearing_diameter, bore_diameter, clamped_length)
    kcmax = plate_stiffness(modulus, bolt_diameter, clamped_length, bore_ratio, bearing_ratio)
    if math.isclose(kcmax, kc0, rel_tol=DEGENERATE_REL_TOL, abs_tol=0.0):
        raise DegenerateGeometry(
            f"Transition regime is degenerate: plate limit {kcmax:.6g} N/mm equals "
            f"cylinder limit {kc0:.6g} N/mm"
        )

    exponent = (
        math.pi * modulus * bolt_diameter * (clamped_diameter - bearing_diameter)
        / (2.0 * clamped_length * (kcmax - kc0))
    )
    try:
        decay = math.exp(-exponent)
    except OverflowError as exc:
        raise NumericOverflow(f"Transition exponent {exponent:.6g} overflows the interpolation") from exc
    stiffness = (kc0 - kcmax) * decay + kcmax

    logger.debug("Transition regime: kc0={} kcmax={} x={} kc={}", kc0, kcmax, exponent, stiffness)
    return ClampedStackStiffness(
        ClampedRegime.TRANSITION,
        stiffness,
        bearing_diameter,
        cylinder_limit=kc0,
        plate_limit=kcmax,
        exponent=exponent,
    )


# ----------------------------------------------------------------------
# Stage 3: system combination
# ----------------------------------------------------------------------


def combine_joint_stiffness(clamped: float, nut: float, head: float, washer: float) -> float:
    """Series combination ``1/kc' = 1/kc + 1/kn + 1/kh + 1/kw``."""

    members = {"clamped stack": clamped, "nut": nut, "head": head, "washer": washer}
    for name, stiffness in members.items():
        if not math.isfinite(stiffness):
            raise NumericOverflow(f"{name} stiffness is not finite")
        if stiffness <= 0:
            raise InvalidInput(f"{name} stiffness must be positive to combine in series, got {stiffness}")
    compliance = sum(1.0 / stiffness for stiffness in members.values())
    return 1.0 / compliance


def sharing_coefficient(joint_stiffness: float, bolt_stiffness: float) -> float:
    """Deformation-sharing coefficient ``m = kc' / (kc' + kb)``."""

    return joint_stiffness / (joint_stiffness + bolt_stiffness)


# ----------------------------------------------------------------------
# Stage 4: thermal correction and preload figures
# ----------------------------------------------------------------------


def preload_bounds(
    *,
    sharing: float,
    bolt_stiffness: float,
    bolt_length: float,
    bolt_area: float,
    material: Material,
    condition: Condition,
) -> PreloadBounds:
    """Nominal, minimum and maximum room-temperature preload in N.

    The thermal term is positive when the stack contracts more than the bolt
    on cooling, i.e. when the joint would lose preload in service.
    """

    delta_t = condition.service_temperature - condition.room_temperature
    thermal_force = (
        sharing * (material.bolt_cte - material.clamped_cte) * delta_t * bolt_length * bolt_stiffness
    )
    external_load = condition.external_load * NEWTONS_PER_KILONEWTON
    yield_load = material.yield_strength * bolt_area

    nominal = condition.target_ratio * material.yield_strength * bolt_area + thermal_force
    minimum = condition.min_preload_ratio * material.yield_strength * bolt_area + thermal_force
    maximum = yield_load / condition.stress_concentration + thermal_force - external_load

    return PreloadBounds(
        delta_t=delta_t,
        thermal_force=thermal_force,
        nominal=nominal,
        minimum=minimum,
        maximum=maximum,
    )


def _require_finite(stage: str, **values: float) -> None:
    for name, value in values.items():
        if not math.isfinite(value):
            raise NumericOverflow(f"{stage}: {name} is not finite ({value!r})")


def _evaluate(
    geometry: Geometry, material: Material, condition: Condition
) -> Tuple[PreloadResult, ClampedStackStiffness]:
    kb = component_stiffness(material.bolt_modulus, geometry.bolt_area, geometry.bolt_length)
    kn = component_stiffness(material.nut_modulus, geometry.nut_area, geometry.nut_length)
    kh = component_stiffness(material.head_modulus, geometry.head_area, geometry.head_length)
    kw = component_stiffness(material.washer_modulus, geometry.washer_area, geometry.washer_length)
    _require_finite("component stiffness", kb=kb, kn=kn, kh=kh, kw=kw)

    stack = clamped_stack_stiffness(
        material.clamped_modulus,
        geometry.clamped_diameter,
        geometry.clamped_length,
        geometry.bolt_diameter,
        geometry.bore_ratio,
        geometry.bearing_ratio,
    )
    _require_finite("clamped stack", kc=stack.stiffness)
    logger.debug("Clamped stack regime {} gives kc={}", stack.regime.value, stack.stiffness)

    kc_prime = combine_joint_stiffness(stack.stiffness, kn, kh, kw)
    m = sharing_coefficient(kc_prime, kb)
    _require_finite("system combination", kc_prime=kc_prime, m=m)

    bounds = preload_bounds(
        sharing=m,
        bolt_stiffness=kb,
        bolt_length=geometry.bolt_length,
        bolt_area=geometry.bolt_area,
        material=material,
        condition=condition,
    )
    _require_finite(
        "preload",
        thermal_force=bounds.thermal_force,
        nominal=bounds.nominal,
        minimum=bounds.minimum,
        maximum=bounds.maximum,
    )

    result = PreloadResult(
        bolt_stiffness=kb,
        nut_stiffness=kn,
        head_stiffness=kh,
        washer_stiffness=kw,
        clamped_stiffness=stack.stiffness,
        joint_stiffness=kc_prime,
        sharing_coefficient=m,
        delta_t=bounds.delta_t,
        thermal_force=bounds.thermal_force,
        nominal_preload=bounds.nominal,
        min_preload=bounds.minimum,
        max_preload=bounds.maximum,
        clamped_regime=stack.regime,
    )
    return result, stack


def compute_preload(geometry: Geometry, material: Material, condition: Condition) -> PreloadResult:
    """Run the four calculation stages for one joint.

    Pure and deterministic: the same records always give the same result.
    Records are checked again before any stage runs, so copies made with
    ``model_copy(update=...)`` cannot bypass validation. Raises
    :class:`InvalidInput`, :class:`DegenerateGeometry` or
    :class:`NumericOverflow`.
    """

    result, _ = _evaluate(geometry.revalidated(), material.revalidated(), condition.revalidated())
    return result


def build_records(raw_inputs: Dict[str, Any]) -> Tuple[Geometry, Material, Condition]:
    """Split a flat input mapping into validated records.

    Raises :class:`InvalidInput` listing every problem found across the three
    records, or naming any key that belongs to none of them.
    """

    remaining = dict(raw_inputs)
    payloads: Dict[type[BaseModel], Dict[str, Any]] = {}
    for model in (Geometry, Material, Condition):
        payloads[model] = {key: remaining.pop(key) for key in list(remaining) if key in model.model_fields}
    if remaining:
        raise InvalidInput(f"Unknown inputs: {', '.join(sorted(remaining))}")

    records: List[BaseModel] = []
    problems: List[str] = []
    for model, payload in payloads.items():
        try:
            records.append(model.model_validate(payload))
        except ValidationError as exc:
            problems.extend(_describe_errors(model.__name__, exc))
    if problems:
        raise InvalidInput("; ".join(problems))

    geometry, material, condition = records
    return geometry, material, condition


def _describe_errors(record: str, exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        prefix = f"{record}.{location}" if location else record
        messages.append(f"{prefix}: {error['msg']}")
    return messages


REFERENCE_GEOMETRY = Geometry(
    bolt_diameter=20.0,
    bolt_area=245.0,
    nut_area=350.0,
    head_area=350.0,
    washer_area=300.0,
    bolt_length=80.0,
    nut_length=18.0,
    head_length=12.0,
    washer_length=3.0,
    clamped_diameter=60.0,
    clamped_length=50.0,
    bore_ratio=1.09375,
    bearing_ratio=1.642188,
)

# SiC815 bolt hardware on a 304 stainless flange, grade 8.8 yield strength
REFERENCE_MATERIAL = Material(
    bolt_modulus=2.0e5,
    nut_modulus=2.0e5,
    head_modulus=2.0e5,
    washer_modulus=2.0e5,
    clamped_modulus=1.95e5,
    bolt_cte=12.0e-6,
    clamped_cte=16.5e-6,
    yield_strength=640.0,
)

REFERENCE_CONDITION = Condition(
    room_temperature=25.0,
    service_temperature=-100.0,
    external_load=160.0,
    target_ratio=0.6,
    stress_concentration=1.67,
    min_preload_ratio=0.3,
)


def reference_inputs() -> Dict[str, Any]:
    """Flat input mapping for the reference joint, suitable for :func:`run`."""

    return {
        **REFERENCE_GEOMETRY.model_dump(),
        **REFERENCE_MATERIAL.model_dump(),
        **REFERENCE_CONDITION.model_dump(),
    }


def run(raw_inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Compute the recommended preload window with a step-by-step derivation."""

    geometry, material, condition = build_records(raw_inputs)
    result, stack = _evaluate(geometry, material, condition)

    warnings = _collect_warnings(result, stack, geometry, material)
    for warning in warnings:
        logger.warning("{}: {}", TOOL_NAME, warning)

    steps = _build_steps(
        geometry=geometry,
        material=material,
        condition=condition,
        result=result,
        stack=stack,
    )

    return {
        "inputs": {
            "geometry": geometry.model_dump(),
            "material": material.model_dump(),
            "condition": condition.model_dump(),
        },
        "results": result.to_dict(),
        "units": dict(RESULT_UNITS),
        "steps": steps,
        "warnings": warnings,
        "metadata": {
            "clamped_regime_label": stack.regime.label,
            "bearing_diameter": stack.bearing_diameter,
            "transition_end_diameter": stack.bearing_diameter + geometry.clamped_length,
            "cylinder_limit": stack.cylinder_limit,
            "plate_limit": stack.plate_limit,
            "interpolation_exponent": stack.exponent,
            "preload_window": result.max_preload - result.min_preload,
        },
    }


def _collect_warnings(
    result: PreloadResult,
    stack: ClampedStackStiffness,
    geometry: Geometry,
    material: Material,
) -> List[str]:
    warnings: List[str] = []
    if result.max_preload <= 0:
        warnings.append("External load exhausts the allowable bolt load; maximum preload is not positive.")
    if not result.has_admissible_window:
        warnings.append("Maximum preload is below minimum preload; no admissible preload window.")
    elif result.nominal_preload > result.max_preload:
        warnings.append("Nominal preload exceeds the maximum allowable preload.")

    if result.nominal_preload / geometry.bolt_area > material.yield_strength:
        warnings.append("Nominal preload stresses the bolt beyond its yield strength.")

    if (
        stack.regime is ClampedRegime.TRANSITION
        and stack.plate_limit is not None
        and stack.cylinder_limit is not None
        and stack.plate_limit < stack.cylinder_limit
    ):
        warnings.append(
            "Plate limit is below the cylinder limit; transition stiffness grows away from the plate value."
        )

    if result.thermal_force < 0:
        warnings.append("Thermal mismatch tightens the joint in service; preload correction is negative.")
    return warnings


def _build_steps(
    *,
    geometry: Geometry,
    material: Material,
    condition: Condition,
    result: PreloadResult,
    stack: ClampedStackStiffness,
) -> List[Step]:
    steps: List[Step] = []

    components = [
        ("Bolt shank", "k_b", "E_b", "A_b", "L_b", material.bolt_modulus, geometry.bolt_area, geometry.bolt_length, result.bolt_stiffness),
        ("Nut", "k_n", "E_n", "A_n", "L_n", material.nut_modulus, geometry.nut_area, geometry.nut_length, result.nut_stiffness),
        ("Bolt head", "k_h", "E_h", "A_h", "L_h", material.head_modulus, geometry.head_area, geometry.head_length, result.head_stiffness),
        ("Washer", "k_w", "E_w", "A_w", "L_w", material.washer_modulus, geometry.washer_area, geometry.washer_length, result.washer_stiffness),
    ]
    for index, (name, k, e, a, length, modulus, area, length_value, stiffness) in enumerate(components, start=1):
        steps.append(
            Step(
                index=index,
                description=f"{name} axial stiffness",
                equation_tex=rf"{k} = \frac{{{e} {a}}}{{{length}}}",
                substitutions=[
                    Substitution(e, modulus, "MPa"),
                    Substitution(a, area, "mm^2"),
                    Substitution(length, length_value, "mm"),
                ],
                result_value=stiffness,
                result_units="N/mm",
            )
        )

    common = [
        Substitution("E_c", material.clamped_modulus, "MPa"),
        Substitution("d", geometry.bolt_diameter, "mm"),
        Substitution("d_a", geometry.clamped_diameter, "mm"),
        Substitution("L", geometry.clamped_length, "mm"),
        Substitution(r"\alpha", geometry.bore_ratio, ""),
        Substitution(r"\beta", geometry.bearing_ratio, ""),
    ]
    if stack.regime is ClampedRegime.CYLINDER:
        equation = r"k_c = \frac{\pi E_c (d_a^2 - (\alpha d)^2)}{4 L}"
        substitutions = common
    elif stack.regime is ClampedRegime.PLATE:
        equation = r"k_c = E_c d \left(0.59(\beta^2 - \alpha^2)\frac{d}{L} + 0.2(\beta + \alpha)\right)"
        substitutions = common
    else:
        equation = r"k_c = \frac{k_{c0} - k_{c,max}}{e^{x}} + k_{c,max},\ x = \frac{\pi E_c d (d_a - \beta d)}{2 L (k_{c,max} - k_{c0})}"
        substitutions = common + [
            Substitution("k_{c0}", stack.cylinder_limit, "N/mm", expression="cylinder at d_a = beta d"),
            Substitution("k_{c,max}", stack.plate_limit, "N/mm", expression="plate limit"),
            Substitution("x", stack.exponent, ""),
        ]
    steps.append(
        Step(
            index=5,
            description=f"Clamped stack stiffness: {stack.regime.label}",
            equation_tex=equation,
            substitutions=substitutions,
            result_value=result.clamped_stiffness,
            result_units="N/mm",
        )
    )

    steps.append(
        Step(
            index=6,
            description="Joint stiffness of clamped stack, nut, head and washer in series",
            equation_tex=r"\frac{1}{k_c'} = \frac{1}{k_c} + \frac{1}{k_n} + \frac{1}{k_h} + \frac{1}{k_w}",
            substitutions=[
                Substitution("k_c", result.clamped_stiffness, "N/mm"),
                Substitution("k_n", result.nut_stiffness, "N/mm"),
                Substitution("k_h", result.head_stiffness, "N/mm"),
                Substitution("k_w", result.washer_stiffness, "N/mm"),
            ],
            result_value=result.joint_stiffness,
            result_units="N/mm",
        )
    )

    steps.append(
        Step(
            index=7,
            description="Deformation-sharing coefficient",
            equation_tex=r"m = \frac{k_c'}{k_c' + k_b}",
            substitutions=[
                Substitution("k_c'", result.joint_stiffness, "N/mm"),
                Substitution("k_b", result.bolt_stiffness, "N/mm"),
            ],
            result_value=result.sharing_coefficient,
        )
    )

    steps.append(
        Step(
            index=8,
            description="Thermal mismatch force",
            equation_tex=r"F_T = m (\alpha_b - \alpha_c) \Delta T L_b k_b",
            substitutions=[
                Substitution("m", result.sharing_coefficient, ""),
                Substitution(r"\alpha_b", material.bolt_cte, "1/K"),
                Substitution(r"\alpha_c", material.clamped_cte, "1/K"),
                Substitution(
                    r"\Delta T",
                    result.delta_t,
                    "°C",
                    expression=f"{condition.service_temperature:g} - {condition.room_temperature:g}",
                ),
                Substitution("L_b", geometry.bolt_length, "mm"),
                Substitution("k_b", result.bolt_stiffness, "N/mm"),
            ],
            result_value=result.thermal_force,
            result_units="N",
        )
    )

    yield_subs = [
        Substitution(r"\sigma_s", material.yield_strength, "MPa"),
        Substitution("A_b", geometry.bolt_area, "mm^2"),
        Substitution("F_T", result.thermal_force, "N"),
    ]
    steps.append(
        Step(
            index=9,
            description="Nominal recommended preload",
            equation_tex=r"F_n = x \sigma_s A_b + F_T",
            substitutions=[Substitution("x", condition.target_ratio, "")] + yield_subs,
            result_value=result.nominal_preload,
            result_units="N",
        )
    )
    steps.append(
        Step(
            index=10,
            description="Minimum preload keeping the joint seated",
            equation_tex=r"F_{n,min} = b \sigma_s A_b + F_T",
            substitutions=[Substitution("b", condition.min_preload_ratio, "")] + yield_subs,
            result_value=result.min_preload,
            result_units="N",
        )
    )
    steps.append(
        Step(
            index=11,
            description="Maximum preload within the concentrated yield limit",
            equation_tex=r"F_{n,max} = \frac{\sigma_s A_b}{a} + F_T - P",
            substitutions=[Substitution("a", condition.stress_concentration, "")]
            + yield_subs
            + [
                Substitution(
                    "P",
                    condition.external_load * NEWTONS_PER_KILONEWTON,
                    "N",
                    expression=f"{condition.external_load:g} kN",
                )
            ],
            result_value=result.max_preload,
            result_units="N",
        )
    )

    return steps
