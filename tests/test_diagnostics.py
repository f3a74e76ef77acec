"""Tests for the deformation gradient, the FTLE kernel and the FTLE field."""

import math

import numpy as np
import jax.numpy as jnp
import pytest

import lcsgrid as lcs
from tests.flows import LinearStrain, UniformDrift


def strain_flow(a=1.0, n=5):
    flow = lcs.ContinuousFlowField(n, n, LinearStrain(a))
    flow.initial_position.set_linspace(-1.0, 1.0, -1.0, 1.0)
    flow.set_delta(0.1)
    flow.set_step(10)
    return flow


class TestDeformationGradient:
    """Finite differences of the flow map."""

    def test_identity_map(self):
        pos = lcs.Position(4, 3)
        pos.set_linspace(0.0, 3.0, 0.0, 2.0)
        DF = lcs.deformation_gradient(pos.values, pos.values)
        assert DF.shape == (4, 3, 2, 2)
        np.testing.assert_allclose(DF, jnp.broadcast_to(jnp.eye(2), (4, 3, 2, 2)))

    def test_linear_map_including_edges(self):
        pos = lcs.Position(4, 4)
        pos.set_linspace(-1.0, 2.0, 0.0, 3.0)
        A = jnp.array([[2.0, 0.5], [-1.0, 3.0]])
        mapped = jnp.einsum('ab,ijb->ija', A, pos.values)
        DF = lcs.deformation_gradient(pos.values, mapped)
        np.testing.assert_allclose(DF, jnp.broadcast_to(A, (4, 4, 2, 2)), rtol=1e-12)

    def test_single_point_axis(self):
        x0 = jnp.zeros((1, 3, 2)).at[..., 1].set(jnp.arange(3.0))
        with pytest.raises(ZeroDivisionError):
            lcs.deformation_gradient(x0, x0)

    def test_repeated_coordinates(self):
        pos = lcs.Position(3, 3)
        pos.set_ranges([0.0, 0.0, 1.0], [0.0, 1.0, 2.0])
        with pytest.raises(ZeroDivisionError):
            lcs.deformation_gradient(pos.values, pos.values)


class TestFTLEKernel:
    """Largest Cauchy-Green eigenvalue to exponent."""

    def test_identity(self):
        assert float(lcs.ftle(jnp.eye(2), 1.0)) == 0.0

    def test_stretch(self):
        DF = jnp.diag(jnp.array([math.e, 1.0]))
        assert float(lcs.ftle(DF, 1.0)) == pytest.approx(1.0)
        assert float(lcs.ftle(DF, 2.0)) == pytest.approx(0.5)

    def test_sign_follows_time(self):
        DF = jnp.diag(jnp.array([1.0, math.e ** 2]))
        assert float(lcs.ftle(DF, -1.0)) == pytest.approx(-2.0)

    def test_shear(self):
        # C = [[1, 1], [1, 2]], eigenvalues (3 +- sqrt(5)) / 2
        DF = jnp.array([[1.0, 1.0], [0.0, 1.0]])
        expected = 0.5 * math.log((3 + math.sqrt(5)) / 2)
        assert float(lcs.ftle(DF, 1.0)) == pytest.approx(expected, rel=1e-12)

    def test_batched_and_reshape(self):
        DF = jnp.broadcast_to(jnp.eye(2), (6, 2, 2))
        result = lcs.ftle(DF, 1.0, reshape=(2, 3))
        assert result.shape == (2, 3)
        np.testing.assert_array_equal(result, jnp.zeros((2, 3)))


class TestFTLEField:
    """FTLE fields computed from flow fields."""

    def test_rigid_translation_is_zero(self):
        flow = lcs.ContinuousFlowField(5, 4, UniformDrift(u0=0.3, du=0.0, v0=-0.2, dv=0.0))
        flow.initial_position.set_linspace(0.0, 2.0, 0.0, 1.0)
        flow.set_delta(0.1)
        flow.set_step(10)
        flow.run()

        field = lcs.FTLE(flow)
        field.calculate()

        assert field.shape == (5, 4)
        np.testing.assert_allclose(field.values, 0.0, atol=1e-10)

    def test_linear_strain(self):
        flow = strain_flow()
        flow.run()

        field = lcs.FTLE(flow)
        field.calculate()

        expected = math.log(1.1) / 0.1
        np.testing.assert_allclose(field.values, expected, rtol=1e-9)
        assert field.get(0, 0) == pytest.approx(expected, rel=1e-9)
        assert field.time == pytest.approx(1.0)
        assert field.initial_time == 0.0

    def test_forward_then_backward(self):
        flow = strain_flow()
        flow.run()
        field = lcs.FTLE(flow)
        field.calculate()
        forward = np.asarray(field.values)

        flow.set_direction(lcs.Direction.BACKWARD)
        flow.set_initial_time(1.0)
        flow.run()
        field.calculate()

        # the same stretching happens along y, with negative integration time
        assert field.initial_time == 1.0
        assert field.time == pytest.approx(0.0, abs=1e-12)
        np.testing.assert_allclose(field.values, -forward, rtol=1e-9)

    def test_calculate_before_run(self):
        flow = strain_flow()
        field = lcs.FTLE(flow)
        with pytest.raises(ValueError):
            field.calculate()

    def test_double_gyre(self, double_gyre_flow):
        double_gyre_flow.run()
        field = lcs.FTLE(double_gyre_flow)
        field.calculate()
        assert field.values.shape == (4, 4)
        assert jnp.all(jnp.isfinite(field.values))

    def test_write_and_read(self, tmp_path):
        flow = strain_flow()
        flow.run()
        field = lcs.FTLE(flow)
        field.calculate()
        field.write_to_file(str(tmp_path / "ftle.txt"))

        other = lcs.Field(5, 5, size=1)
        other.read_from_file(str(tmp_path / "ftle.txt"))
        assert other.time == field.time
        np.testing.assert_array_equal(other.values, field.values)

    def test_discrete_flow(self, drift_snapshots):
        model, prefix = drift_snapshots
        flow = lcs.DiscreteFlowField(4, 4, 5, 5)
        flow.data_position.set_linspace(-5.0, 5.0, -5.0, 5.0)
        flow.initial_position.set_linspace(0.0, 1.0, 0.0, 1.0)
        flow.velocity_file_prefix = prefix
        flow.set_data_delta(1.0)
        flow.set_data_time_range(0.0, 3.0)
        flow.set_delta(0.25)
        flow.set_step(4)
        flow.run()

        field = lcs.FTLE(flow)
        field.calculate()
        np.testing.assert_allclose(field.values, 0.0, atol=1e-10)
