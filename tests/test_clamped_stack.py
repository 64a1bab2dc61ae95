"""Tests for the three-regime clamped-stack stiffness model."""

import math

import pytest

from tools.cryogenic_preload import (
    REFERENCE_CONDITION,
    REFERENCE_GEOMETRY,
    REFERENCE_MATERIAL,
    ClampedRegime,
    DegenerateGeometry,
    NumericOverflow,
    clamped_stack_stiffness,
    compute_preload,
    cylinder_stiffness,
    plate_stiffness,
    reference_inputs,
    run,
)


EC = 2.0e5
D = 20.0
L = 50.0
ALPHA = 1.09375
BETA = 1.642188
BD = BETA * D


def stack(da, length=L, alpha=ALPHA, beta=BETA, d=D, modulus=EC):
    return clamped_stack_stiffness(modulus, da, length, d, alpha, beta)


class TestRegimeSelection:
    def test_cylinder_below_bearing_diameter(self):
        result = stack(30.0)

        assert result.regime is ClampedRegime.CYLINDER
        expected = math.pi * EC * (30.0 ** 2 - (ALPHA * D) ** 2) / (4 * L)
        assert result.stiffness == pytest.approx(expected, rel=1e-12)
        assert result.cylinder_limit is None
        assert result.exponent is None

    def test_boundary_at_bearing_diameter_is_cylinder(self):
        assert stack(BD).regime is ClampedRegime.CYLINDER

    def test_plate_beyond_transition(self):
        result = stack(BD + L + 10.0)

        assert result.regime is ClampedRegime.PLATE
        expected = EC * D * (0.59 * (BETA ** 2 - ALPHA ** 2) * (D / L) + 0.2 * (BETA + ALPHA))
        assert result.stiffness == pytest.approx(expected, rel=1e-12)

    def test_boundary_at_transition_end_is_plate(self):
        assert stack(BD + L).regime is ClampedRegime.PLATE

    def test_plate_ignores_outer_diameter(self):
        assert stack(100.0).stiffness == stack(400.0).stiffness

    def test_transition_carries_limits(self):
        result = stack(60.0)

        assert result.regime is ClampedRegime.TRANSITION
        assert result.cylinder_limit == pytest.approx(cylinder_stiffness(EC, BD, ALPHA * D, L))
        assert result.plate_limit == pytest.approx(plate_stiffness(EC, D, L, ALPHA, BETA))
        assert result.exponent > 0
        assert result.bearing_diameter == pytest.approx(BD)


class TestContinuity:
    def test_continuous_at_bearing_diameter(self):
        eps = 1e-6
        below = stack(BD - eps)
        above = stack(BD + eps)

        assert below.regime is ClampedRegime.CYLINDER
        assert above.regime is ClampedRegime.TRANSITION
        assert above.stiffness == pytest.approx(below.stiffness, rel=1e-6)

    def test_approaches_plate_limit_at_transition_end(self):
        eps = 1e-9
        inside = stack(BD + L - eps)
        outside = stack(BD + L)

        kc0, kcmax = inside.cylinder_limit, inside.plate_limit
        x_end = math.pi * EC * D / (2 * (kcmax - kc0))
        residual = (kcmax - kc0) * math.exp(-x_end)

        assert inside.stiffness < outside.stiffness
        assert outside.stiffness - inside.stiffness == pytest.approx(residual, rel=1e-6)

    def test_monotonic_over_transition(self):
        samples = [BD + L * k / 50.0 for k in range(1, 50)]
        values = [stack(da) for da in samples]

        assert all(v.regime is ClampedRegime.TRANSITION for v in values)
        stiffnesses = [v.stiffness for v in values]
        assert stiffnesses == sorted(stiffnesses)
        kc0, kcmax = values[0].cylinder_limit, values[0].plate_limit
        assert all(kc0 <= k <= kcmax for k in stiffnesses)


class TestFailureModes:
    def test_degenerate_transition_raises(self):
        alpha, beta = 1.0, 2.0
        # Length at which the plate and cylinder limits coincide
        length = D * (beta - alpha) * (math.pi / 4 - 0.59) / 0.2
        da = beta * D + length / 2

        with pytest.raises(DegenerateGeometry, match="degenerate"):
            stack(da, length=length, alpha=alpha, beta=beta)

    def test_degenerate_geometry_propagates_from_compute(self):
        alpha, beta = 1.0, 2.0
        length = D * (beta - alpha) * (math.pi / 4 - 0.59) / 0.2
        geometry = REFERENCE_GEOMETRY.model_copy(
            update={
                "bore_ratio": alpha,
                "bearing_ratio": beta,
                "clamped_length": length,
                "clamped_diameter": beta * D + length / 2,
            }
        )

        with pytest.raises(DegenerateGeometry):
            compute_preload(geometry, REFERENCE_MATERIAL, REFERENCE_CONDITION)

    def test_degenerate_geometry_same_in_plate_regime_is_fine(self):
        alpha, beta = 1.0, 2.0
        length = D * (beta - alpha) * (math.pi / 4 - 0.59) / 0.2

        result = stack(beta * D + length, length=length, alpha=alpha, beta=beta)
        assert result.regime is ClampedRegime.PLATE

    def test_transition_exponent_overflow_reported(self):
        alpha, beta = 1.0, 2.0
        # Slightly shorter than the degenerate length: kcmax sits just below kc0
        length = D * (beta - alpha) * (math.pi / 4 - 0.59) / 0.2 * (1 - 1e-5)
        da = beta * D + length / 2

        kc0 = cylinder_stiffness(EC, beta * D, alpha * D, length)
        kcmax = plate_stiffness(EC, D, length, alpha, beta)
        assert kcmax < kc0
        assert not math.isclose(kcmax, kc0, rel_tol=1e-9)

        with pytest.raises(NumericOverflow, match="exponent"):
            stack(da, length=length, alpha=alpha, beta=beta)

    def test_overflowing_stiffness_reported(self):
        inputs = reference_inputs()
        inputs["bolt_modulus"] = 1e308

        with pytest.raises(NumericOverflow, match="not finite"):
            run(inputs)

    def test_overflowing_clamped_stack_reported(self):
        inputs = reference_inputs()
        inputs["clamped_modulus"] = 1e308
        inputs["clamped_diameter"] = 30.0

        with pytest.raises(NumericOverflow, match="clamped stack"):
            run(inputs)
