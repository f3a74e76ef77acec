# This module turns analytic velocity models (callables of x, y, t returning u, v) into vector
# fields compatible with diffrax, and evaluates them over the particle grid of a Position to produce
# Velocity fields. It also writes sampled snapshots of a model in the file layout read back by
# DiscreteFlowField.

import logging
import jax
import jax.numpy as jnp
from jaxtyping import Float, Array
from collections.abc import Callable, Iterable
from diffrax import AbstractTerm, ODETerm
from ._field import Position, Velocity

logger = logging.getLogger(__name__)


def vector_field(model: Callable) -> Callable:
    """
    Wrap a velocity model into a function with the diffrax vector field signature.

    Parameters
    ----------
    model : callable
        a function that takes x, y, t and returns the velocity components u, v.

    Returns
    -------
    callable
        a function that takes args t, y, args (y = jnp.array([x, y])) and returns jnp.array([u, v]).

    """

    def vf(t, y, args=None):
        u, v = model(y[0], y[1], t)
        return jnp.array([u, v])

    return vf


def sample_velocity(
    term: AbstractTerm,
    pos: Position,
    time: float,
    args=None
) -> Velocity:
    """
    Evaluate the vector field of a diffrax term at every particle of pos.

    Parameters
    ----------
    term : diffrax.AbstractTerm
        term whose vector field gives the velocity, e.g. diffrax.ODETerm(vector_field(model)).
    pos : Position
        particle coordinates at which the velocity is sampled.
    time : float
        time at which the velocity is sampled.
    args : optional
        extra arguments forwarded to the vector field. The default is None.

    Returns
    -------
    Velocity
        velocity field referencing pos, stamped with time.

    """
    nx, ny = pos.shape
    points: Float[Array, "N 2"] = pos.values.reshape(-1, 2)

    vf_over_points = jax.vmap(term.vf, in_axes=(None, 0, None))
    vel_values = vf_over_points(jnp.asarray(time, dtype=points.dtype), points, args)

    vel = Velocity(nx, ny, pos)
    vel.set_all(vel_values.reshape(nx, ny, 2))
    vel.update_time(time)

    return vel


def write_velocity_snapshots(
    model: Callable,
    pos: Position,
    times: Iterable[float],
    prefix: str,
    suffix: str = '.txt'
) -> list:
    """
    Sample a velocity model on the grid of pos at each of times and write one file per time,
    named prefix + str(int(time)) + suffix, i.e. the names DiscreteFlowField looks for.

    Returns
    -------
    list
        the names of the files written.

    """
    term = ODETerm(vector_field(model))
    file_names = []
    for t in times:
        file_name = f"{prefix}{int(t)}{suffix}"
        sample_velocity(term, pos, t).write_to_file(file_name)
        file_names.append(file_name)

    logger.info("Wrote %d velocity snapshots with prefix %s", len(file_names), prefix)

    return file_names
