from __future__ import annotations
import logging
from functools import partial
import jax
import jax.numpy as jnp
from jaxtyping import Float, Array
from typing import Tuple, Union
from ._field import Field
from .utils import Clock, neighbor_views

logger = logging.getLogger(__name__)


@jax.jit
def _deformation_gradient_kernel(
        x0: Float[Array, "nx ny 2"],
        x: Float[Array, "nx ny 2"]
) -> Float[Array, "nx ny 2 2"]:
    """Kernel function computing centered differences of the flow map on the clamped stencil."""
    f0 = neighbor_views(x0, mode='edge')
    f = neighbor_views(x, mode='edge')

    dx0 = f0['east'][..., 0] - f0['west'][..., 0]
    dy0 = f0['north'][..., 1] - f0['south'][..., 1]

    dxdx = (f['east'][..., 0] - f['west'][..., 0]) / dx0
    dxdy = (f['north'][..., 0] - f['south'][..., 0]) / dy0
    dydx = (f['east'][..., 1] - f['west'][..., 1]) / dx0
    dydy = (f['north'][..., 1] - f['south'][..., 1]) / dy0

    return jnp.stack(
        [jnp.stack([dxdx, dxdy], axis=-1), jnp.stack([dydx, dydy], axis=-1)], axis=-2
    )


def deformation_gradient(
        x0: Float[Array, "nx ny 2"],
        x: Float[Array, "nx ny 2"]
) -> Float[Array, "nx ny 2 2"]:
    """
    Finite difference derivative of the flow map x0 -> x on a rectilinear particle grid.

    Differences are centered in the interior. At the grid edges the missing neighbor is replaced
    by the cell itself, so the difference becomes one-sided there and is less accurate.

    Parameters
    ----------
    x0 : jnp.array, shape=(nx, ny, 2)
        initial particle positions ('ij' indexing).
    x : jnp.array, shape=(nx, ny, 2)
        advected particle positions.

    Raises
    ------
    ZeroDivisionError
        error raised if two neighboring initial positions share a coordinate along their axis
        (including grids with a single point along an axis).

    Returns
    -------
    jnp.array, shape=(nx, ny, 2, 2)
        DF[..., a, b] = d x_a / d x0_b.

    """
    f0 = neighbor_views(x0, mode='edge')
    if jnp.any(f0['east'][..., 0] == f0['west'][..., 0]) \
            or jnp.any(f0['north'][..., 1] == f0['south'][..., 1]):
        raise ZeroDivisionError(
            "initial positions have zero spacing, the deformation gradient is undefined"
        )

    return _deformation_gradient_kernel(x0, x)


@partial(jax.jit, static_argnames=['reshape'])
def ftle(
        DF: Float[Array, "... 2 2"],
        T: float,
        reshape: Union[None, Tuple] = None
) -> Float[Array, "..."]:
    """
    Batched function for computing FTLE from derivative of flowmap DF for integration time T. Can
    reshape the output into shape=reshape.

    The largest eigenvalue of the Cauchy-Green tensor C = DF^T DF is computed in closed form. T is
    signed, so a backward integration (T < 0) gives the negative of the backward-time exponent.

    Parameters
    ----------
    DF : jnp.array
        array containing a single, or all DFs for computing FTLE.
    T : float
        integration time, final time minus initial time.
    reshape : None or tuple, optional
        desired shape of output. If None passed, ftle will be returned with the leading shape of
        DF. The default is None.

    Returns
    -------
    jnp.array
        ftle value(s), 0.5 * log(eigval_max) / T.

    """

    dxdx = DF[..., 0, 0]
    dxdy = DF[..., 0, 1]
    dydx = DF[..., 1, 0]
    dydy = DF[..., 1, 1]

    a1 = dxdx**2 + dydx**2
    a2 = dxdx*dxdy + dydx*dydy
    a3 = dxdy**2 + dydy**2

    eigval_max = 0.5*(a1 + a3 + jnp.sqrt((a1 - a3)**2 + 4*a2**2))

    ftle_ = 0.5 * jnp.log(eigval_max) / T

    if reshape is not None:
        return ftle_.reshape(reshape)
    else:
        return ftle_


class FTLE(Field):
    """
    Finite-time Lyapunov exponent field of a FlowField.

    The field takes the shape of the flow field's particle grid and is computed from its initial
    and current positions by calculate(), which can be called again after every run (for example
    once after a forward run and once after a backward run).

    Parameters
    ----------
    flow_field : FlowField
        the flow field the exponents are computed from. It is referenced, not copied.

    """

    def __init__(self, flow_field):
        nx, ny = flow_field.current_position.shape
        super().__init__(nx, ny, 1)
        self._flow_field = flow_field
        self._initial_time = flow_field.initial_position.time
        self.update_time(flow_field.time)

    @property
    def flow_field(self):
        return self._flow_field

    @property
    def initial_time(self) -> float:
        return self._initial_time

    def get(self, i: int, j: int) -> float:
        return float(self._data.get(i, j))

    def calculate(self):
        """
        Compute the FTLE of every particle from the flow field's latest run, using the
        integration time dt = current time - initial time of that run.

        Raises
        ------
        ValueError
            error raised if dt is zero, i.e. the flow field has not been advected.
        ZeroDivisionError
            error raised if the initial particle grid has zero spacing.

        """
        flow_field = self._flow_field
        self._initial_time = flow_field.initial_position.time
        self.update_time(flow_field.time)
        dt = self._time - self._initial_time
        if dt == 0:
            raise ValueError("integration time is zero, run the flow field before calculating")

        direction = flow_field.direction.value.capitalize()
        clock = Clock()
        clock.begin()
        logger.info("%s FTLE calculation begins", direction)

        DF = deformation_gradient(
            flow_field.initial_position.values, flow_field.current_position.values
        )
        self.set_all(ftle(DF, dt))

        clock.end()
        logger.info(
            "%s FTLE calculation ends (Execution time: %.4gs)", direction, clock.total_elapsed_time
        )
