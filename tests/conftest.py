"""Shared fixtures for the lcsgrid tests."""

import pytest

import lcsgrid as lcs
from tests.flows import UniformDrift


@pytest.fixture
def double_gyre_flow():
    flow = lcs.ContinuousFlowField(4, 4, lcs.DoubleGyreModel())
    flow.initial_position.set_linspace(0.0, 2.0, 0.0, 1.0)
    flow.set_delta(0.1)
    flow.set_step(5)
    return flow


@pytest.fixture
def unit_position():
    pos = lcs.Position(3, 3)
    pos.set_linspace(0.0, 1.0, 0.0, 1.0)
    return pos


@pytest.fixture
def drift_snapshots(tmp_path):
    """Velocity files of UniformDrift at t = 0..3 on a 5 x 5 grid over [-5, 5]^2."""
    model = UniformDrift()
    data_pos = lcs.Position(5, 5)
    data_pos.set_linspace(-5.0, 5.0, -5.0, 5.0)
    prefix = str(tmp_path / "drift_")
    lcs.write_velocity_snapshots(model, data_pos, range(4), prefix)
    return model, prefix
