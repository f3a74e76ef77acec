"""
Top-level package for lcsgrid.
"""

import jax

# particle advection and the text file layout rely on double precision
jax.config.update("jax_enable_x64", True)

from ._errors import ShapeMismatchError, InvalidStateError
from ._tensor import Tensor, interpolate
from ._field import Field, Position, Velocity
from ._vector_field import vector_field, sample_velocity, write_velocity_snapshots
from ._flowfield import (
    Direction,
    FlowConfig,
    FlowField,
    ContinuousFlowField,
    DiscreteFlowField,
)
from ._diagnostics import FTLE, deformation_gradient, ftle
from .models import DoubleGyreModel, BowerModel

__author__ = """Albert Jarvis"""
__version__ = "0.1.0"
