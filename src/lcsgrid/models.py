"""
Analytic velocity models.

A velocity model is any callable taking (x, y, t) and returning the velocity (u, v) at that point.
The models here are written with jax.numpy so they can be vmapped over particle grids and wrapped
into diffrax terms with `lcsgrid.vector_field`.
"""

import jax.numpy as jnp
from jaxtyping import ArrayLike
from typing import Optional, Sequence


class DoubleGyreModel:
    """
    Double-gyre model: a pair of counter-rotating gyres in [0, 2] x [0, 1] (Shadden et al., 2005).

    u = -pi A sin(pi f) cos(pi y)
    v =  pi A cos(pi f) sin(pi y) df/dx

    with f(x, t) = a(t) x^2 + b(t) x, a(t) = epsilon sin(omega t), b(t) = 1 - 2 epsilon sin(omega t).

    Parameters
    ----------
    parameters : sequence of float, optional
        (epsilon, A, omega). The default is (0.1, 0.1, pi / 5).

    Raises
    ------
    ValueError
        error raised if parameters does not have exactly 3 entries.

    """

    def __init__(self, parameters: Optional[Sequence[float]] = None):
        if parameters is None:
            parameters = (0.1, 0.1, jnp.pi / 5)
        if len(parameters) != 3:
            raise ValueError(
                f"DoubleGyreModel takes 3 parameters (epsilon, A, omega), got {len(parameters)}"
            )
        self.epsilon, self.a, self.omega = (float(p) for p in parameters)

    def __call__(self, x: ArrayLike, y: ArrayLike, t: ArrayLike):
        at = self.epsilon * jnp.sin(self.omega * t)
        bt = 1 - 2 * self.epsilon * jnp.sin(self.omega * t)
        f = at * x * x + bt * x
        dfdx = 2 * at * x + bt

        u = -jnp.pi * self.a * jnp.sin(jnp.pi * f) * jnp.cos(jnp.pi * y)
        v = jnp.pi * self.a * jnp.cos(jnp.pi * f) * jnp.sin(jnp.pi * y) * dfdx

        return u, v


class BowerModel:
    """
    Bower model of a meandering jet (Bower, 1991), in the frame moving with the meander.

    The streamfunction is Psi = Psi0 [1 - tanh((y - yc) / (lambda / cos(alpha)))] with
    yc = A sin(k x), k = 2 pi / L, alpha = arctan(A k cos(k x)) and Psi0 = sc * lambda, and the
    velocity is (u, v) = (-dPsi/dy, dPsi/dx) minus the phase speed cx along x. The flow is steady
    in this frame, so t is ignored.

    Parameters
    ----------
    parameters : sequence of float, optional
        (sc, A, L, cx, lambda): downstream speed at the jet center (km/day), wave amplitude (km),
        wave length (km), phase speed (km/day) and jet width (km). The default is
        (50, 50, 400, 10, 40).

    Raises
    ------
    ValueError
        error raised if parameters does not have exactly 5 entries.

    """

    def __init__(self, parameters: Optional[Sequence[float]] = None):
        if parameters is None:
            parameters = (50.0, 50.0, 400.0, 10.0, 40.0)
        if len(parameters) != 5:
            raise ValueError(
                f"BowerModel takes 5 parameters (sc, A, L, cx, lambda), got {len(parameters)}"
            )
        self.sc, self.a, self.l, self.cx, self.lam = (float(p) for p in parameters)

    def __call__(self, x: ArrayLike, y: ArrayLike, t: ArrayLike = 0.0):
        phi0 = self.sc * self.lam
        k = 2 * jnp.pi / self.l

        yc = self.a * jnp.sin(k * x)
        dyc = self.a * k * jnp.cos(k * x)
        alpha0 = self.lam * jnp.sqrt(dyc * dyc + 1)
        sech2 = 1 / jnp.cosh((y - yc) / alpha0) ** 2

        u = -self.cx + phi0 * sech2 / alpha0
        v = -phi0 * (
            (yc * dyc * k * k * (y - yc)) / (self.lam * (dyc * dyc + 1) ** 1.5) - dyc / alpha0
        ) * sech2

        return u, v
