# This module defines the dense grid container every field is built on. A Tensor stores an nx by ny
# grid of scalar or vector elements in a single JAX array of shape (nx, ny, *element_shape), cell
# (i, j) being row-major (i major, j minor). JAX arrays are immutable, so cell updates replace the
# backing array and nothing handed out by a Tensor can alias its storage.

import jax.numpy as jnp
from jaxtyping import Array, ArrayLike
from typing import Tuple
from ._errors import ShapeMismatchError
from .utils import neighbor_views


class Tensor:
    """
    Fixed-shape dense 2-D grid of elements.

    Parameters
    ----------
    nx : int
        number of cells along the x axis (index i).
    ny : int
        number of cells along the y axis (index j).
    element_shape : tuple, optional
        shape of a single element, () for scalars and (2,) for 2-D vectors. The default is ().
    dtype : optional
        element dtype. The default is jnp.float64.

    """

    def __init__(self, nx: int, ny: int, element_shape: Tuple = (), dtype=jnp.float64):
        self._nx = nx
        self._ny = ny
        self._element_shape = tuple(element_shape)
        self._data = jnp.zeros((nx, ny) + self._element_shape, dtype=dtype)

    @property
    def size(self) -> Tuple[int, int]:
        return self._nx, self._ny

    @property
    def element_shape(self) -> Tuple:
        return self._element_shape

    @property
    def dtype(self):
        return self._data.dtype

    def _check_index(self, i, j):
        if not (0 <= i < self._nx and 0 <= j < self._ny):
            raise IndexError(
                f"index ({i}, {j}) out of range for tensor of size ({self._nx}, {self._ny})"
            )

    def get(self, i: int, j: int) -> Array:
        self._check_index(i, j)
        return self._data[i, j]

    def set(self, i: int, j: int, value: ArrayLike):
        self._check_index(i, j)
        self._data = self._data.at[i, j].set(value)

    def get_all(self) -> Array:
        return self._data

    def set_all(self, data: ArrayLike):
        """Replace every element; data must have shape (nx, ny, *element_shape)."""
        data = jnp.asarray(data, dtype=self._data.dtype)
        if data.shape != self._data.shape:
            raise ShapeMismatchError(
                f"sizes do not match: expected {self._data.shape}, got {data.shape}"
            )
        self._data = data

    def copy(self) -> "Tensor":
        other = Tensor(self._nx, self._ny, self._element_shape, self._data.dtype)
        other._data = self._data
        return other

    def get_nearby(self, i: int, j: int) -> Tuple[Array, Array, Array, Array]:
        """
        Axis-neighbors of cell (i, j). A neighbor that falls outside the grid is replaced by the
        cell itself.

        Returns
        -------
        tuple
            (x_pre, x_next, y_pre, y_next), the elements at (i-1, j), (i+1, j), (i, j-1), (i, j+1).

        """
        self._check_index(i, j)
        x_pre = self._data[i - 1, j] if i != 0 else self._data[i, j]
        x_next = self._data[i + 1, j] if i != self._nx - 1 else self._data[i, j]
        y_pre = self._data[i, j - 1] if j != 0 else self._data[i, j]
        y_next = self._data[i, j + 1] if j != self._ny - 1 else self._data[i, j]

        return x_pre, x_next, y_pre, y_next

    def nearby(self) -> dict:
        """The get_nearby stencil for every cell at once, see utils.neighbor_views."""
        return neighbor_views(self._data, mode='edge')

    def __repr__(self):
        return (
            f"Tensor(nx={self._nx}, ny={self._ny}, element_shape={self._element_shape}, "
            f"dtype={self._data.dtype})"
        )


def interpolate(x1, x2, y1, y2, xm):
    """
    Linear interpolation through (x1, y1) and (x2, y2), evaluated at xm.

    Parameters
    ----------
    x1, x2 : float
        abscissae of the two known points, must differ.
    y1, y2 : float or jnp.array
        values at x1 and x2.
    xm : float
        abscissa to evaluate at.

    Raises
    ------
    ZeroDivisionError
        raised if x1 == x2.

    Returns
    -------
    float or jnp.array
        y1 + (xm - x1) * (y2 - y1) / (x2 - x1)

    """
    if x2 == x1:
        raise ZeroDivisionError(f"cannot interpolate between coincident abscissae x1 = x2 = {x1}")

    return y1 + (xm - x1) * (y2 - y1) / (x2 - x1)
