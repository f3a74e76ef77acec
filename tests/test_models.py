"""Tests for the analytic velocity models and their diffrax wrappers."""

import math

import numpy as np
import jax.numpy as jnp
import diffrax
import pytest

import lcsgrid as lcs


class TestDoubleGyreModel:
    """Double-gyre velocity function."""

    def test_default_parameters(self):
        model = lcs.DoubleGyreModel()
        assert model.epsilon == 0.1
        assert model.a == 0.1
        assert model.omega == pytest.approx(4 * math.atan(1) / 5)

    def test_custom_parameters(self):
        model = lcs.DoubleGyreModel([0.25, 0.2, 1.0])
        assert (model.epsilon, model.a, model.omega) == (0.25, 0.2, 1.0)

    @pytest.mark.parametrize("parameters", [[], [0.1, 0.1], [0.1, 0.1, 0.1, 0.1]])
    def test_wrong_parameter_count(self, parameters):
        with pytest.raises(ValueError):
            lcs.DoubleGyreModel(parameters)

    def test_values_at_t0(self):
        model = lcs.DoubleGyreModel()
        u, v = model(0.5, 0.0, 0.0)
        assert float(u) == pytest.approx(-math.pi * 0.1)
        assert float(v) == pytest.approx(0.0, abs=1e-15)

        u, v = model(1.0, 0.5, 0.0)
        assert float(u) == pytest.approx(0.0, abs=1e-15)
        assert float(v) == pytest.approx(-math.pi * 0.1)

    def test_time_dependence(self):
        model = lcs.DoubleGyreModel()
        t, x, y = 2.5, 0.3, 0.7
        eps, A, omega = 0.1, 0.1, math.pi / 5
        at = eps * math.sin(omega * t)
        bt = 1 - 2 * eps * math.sin(omega * t)
        f = at * x * x + bt * x
        u_expected = -math.pi * A * math.sin(math.pi * f) * math.cos(math.pi * y)
        v_expected = math.pi * A * math.cos(math.pi * f) * math.sin(math.pi * y) * (2 * at * x + bt)

        u, v = model(x, y, t)
        assert float(u) == pytest.approx(u_expected, rel=1e-12)
        assert float(v) == pytest.approx(v_expected, rel=1e-12)

    def test_vectorized(self):
        model = lcs.DoubleGyreModel()
        x = jnp.linspace(0.0, 2.0, 7)
        y = jnp.linspace(0.0, 1.0, 7)
        u, v = model(x, y, 1.0)
        assert u.shape == (7,) and v.shape == (7,)


class TestBowerModel:
    """Meandering jet velocity function."""

    def test_default_parameters(self):
        model = lcs.BowerModel()
        assert (model.sc, model.a, model.l, model.cx, model.lam) == (50, 50, 400, 10, 40)

    @pytest.mark.parametrize("parameters", [[1.0], [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]])
    def test_wrong_parameter_count(self, parameters):
        with pytest.raises(ValueError):
            lcs.BowerModel(parameters)

    def test_jet_center(self):
        model = lcs.BowerModel()
        k = 2 * math.pi / 400
        dyc = 50 * k
        alpha0 = 40 * math.sqrt(dyc * dyc + 1)
        phi0 = 50 * 40

        u, v = model(0.0, 0.0)
        assert float(u) == pytest.approx(-10 + phi0 / alpha0, rel=1e-12)
        assert float(v) == pytest.approx(phi0 * dyc / alpha0, rel=1e-12)

    def test_steady(self):
        model = lcs.BowerModel()
        u0, v0 = model(30.0, -20.0, 0.0)
        u1, v1 = model(30.0, -20.0, 100.0)
        assert float(u0) == float(u1) and float(v0) == float(v1)

    def test_far_field_is_phase_speed(self):
        u, v = lcs.BowerModel()(0.0, 2000.0)
        assert float(u) == pytest.approx(-10.0)
        assert float(v) == pytest.approx(0.0, abs=1e-12)


class TestVectorField:
    """diffrax-compatible wrapping and grid sampling."""

    def test_vector_field_signature(self):
        vf = lcs.vector_field(lcs.DoubleGyreModel())
        dy = vf(0.0, jnp.array([0.5, 0.0]), None)
        assert dy.shape == (2,)
        assert float(dy[0]) == pytest.approx(-math.pi * 0.1)

    def test_sample_velocity(self, unit_position):
        model = lcs.DoubleGyreModel()
        term = diffrax.ODETerm(lcs.vector_field(model))
        vel = lcs.sample_velocity(term, unit_position, 1.5)

        assert vel.time == 1.5
        assert vel.position is unit_position
        for i in range(3):
            for j in range(3):
                x, y = unit_position.get(i, j)
                u, v = model(x, y, 1.5)
                assert vel.get(i, j) == pytest.approx((float(u), float(v)), rel=1e-12, abs=1e-15)

    def test_write_velocity_snapshots(self, tmp_path, unit_position):
        model = lcs.DoubleGyreModel()
        prefix = str(tmp_path / "gyre_")
        file_names = lcs.write_velocity_snapshots(model, unit_position, [0, 1, 2], prefix)

        assert file_names == [prefix + "0.txt", prefix + "1.txt", prefix + "2.txt"]

        vel = lcs.Velocity(3, 3, unit_position)
        vel.read_from_file(prefix + "2.txt")
        assert vel.time == 2.0
        term = diffrax.ODETerm(lcs.vector_field(model))
        expected = lcs.sample_velocity(term, unit_position, 2.0)
        np.testing.assert_array_equal(vel.values, expected.values)
