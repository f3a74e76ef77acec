# This module defines the time-stamped fields that live on a Tensor: the generic Field with its text
# file layout, the Position field holding particle coordinates (with out-of-bound tracking for
# particles that leave a data domain), and the Velocity field sampled at the coordinates of a
# Position. Velocity.interpolate_from wraps interpax.interp2d, whose linear method uses the same
# clamped upper-bound bracket as a hand-written bilinear interpolation on a rectilinear grid.

import logging
import numpy as np
import jax.numpy as jnp
import interpax
from jaxtyping import Array, ArrayLike, Float
from typing import Optional, Tuple, Union
from ._errors import InvalidStateError, ShapeMismatchError
from ._tensor import Tensor

logger = logging.getLogger(__name__)


class Field:
    """
    A Tensor of `size`-component elements on an nx by ny grid, plus a time stamp.

    Parameters
    ----------
    nx : int
        number of cells along x.
    ny : int
        number of cells along y.
    size : int, optional
        number of components per cell, 1 for scalar fields. The default is 2.

    """

    def __init__(self, nx: int, ny: int, size: int = 2):
        self._nx = nx
        self._ny = ny
        self._size = size
        element_shape = () if size == 1 else (size,)
        self._data = Tensor(nx, ny, element_shape)
        self._time = 0.0

    @property
    def shape(self) -> Tuple[int, int]:
        return self._nx, self._ny

    @property
    def size(self) -> int:
        return self._size

    @property
    def time(self) -> float:
        return self._time

    @property
    def values(self) -> Array:
        return self._data.get_all()

    def get_all(self) -> Tensor:
        return self._data

    def set_all(self, data: Union[Tensor, ArrayLike]):
        if isinstance(data, Tensor):
            data = data.get_all()
        self._data.set_all(data)

    def update_time(self, time: float):
        self._time = float(time)

    def write_to_file(self, file_name: str):
        """
        Write the field as text: nx, ny and the time stamp on the first three lines, followed by
        the values one per line. Vector fields are written component by component (all x values
        row-major, then all y values).
        """
        values = np.asarray(self.values)
        if self._size == 1:
            stream = values.reshape(-1)
        else:
            stream = np.moveaxis(values, -1, 0).reshape(-1)

        with open(file_name, 'w') as file:
            file.write(f"{self._nx}\n{self._ny}\n{self._time:.17g}\n")
            np.savetxt(file, stream, fmt='%.17g')

    def read_from_file(self, file_name: str):
        """
        Read a field written by write_to_file. The stored grid shape must match this field, in
        which case the time stamp and values are replaced; otherwise ShapeMismatchError is raised
        and the field is left untouched.
        """
        with open(file_name, 'r') as file:
            nx = int(file.readline())
            ny = int(file.readline())
            if nx != self._nx or ny != self._ny:
                raise ShapeMismatchError(
                    f"sizes do not match: {file_name} holds a ({nx}, {ny}) field, "
                    f"expected ({self._nx}, {self._ny})"
                )
            time = float(file.readline())
            stream = np.array(file.read().split(), dtype=np.float64)

        if stream.size != nx * ny * self._size:
            raise ShapeMismatchError(
                f"sizes do not match: {file_name} holds {stream.size} values, "
                f"expected {nx * ny * self._size}"
            )

        if self._size == 1:
            values = stream.reshape(nx, ny)
        else:
            values = np.moveaxis(stream.reshape(self._size, nx, ny), 0, -1)

        self.set_all(values)
        self._time = time

    def __repr__(self):
        return f"{type(self).__name__}(nx={self._nx}, ny={self._ny}, time={self._time})"


class Position(Field):
    """
    Particle coordinates on an nx by ny grid.

    Besides the coordinates, a Position remembers the per-axis coordinate ranges it was built
    from (needed when it serves as the sample grid of an interpolated velocity) and can track
    particles that leave a rectangular bound. Tracking is opt-in: it only happens once both
    initialize_out_of_bound and set_bound have been called, and a particle that has been marked
    stays marked.
    """

    def __init__(self, nx: int, ny: int):
        super().__init__(nx, ny, 2)
        self._xrange = None
        self._yrange = None
        self._out_of_bound = None
        self._bound = None

    def set_ranges(self, xrange: ArrayLike, yrange: ArrayLike):
        """
        Set the coordinates to the Cartesian product of xrange and yrange, i.e. cell (i, j) is
        (xrange[i], yrange[j]). The ranges must be sorted for interpolation lookups to work.
        """
        xrange = jnp.asarray(xrange, dtype=jnp.float64)
        yrange = jnp.asarray(yrange, dtype=jnp.float64)
        if xrange.shape != (self._nx,) or yrange.shape != (self._ny,):
            raise ShapeMismatchError(
                f"sizes do not match: ranges of lengths ({xrange.size}, {yrange.size}) "
                f"for a ({self._nx}, {self._ny}) grid"
            )

        X, Y = jnp.meshgrid(xrange, yrange, indexing='ij')
        self.set_all(jnp.stack([X, Y], axis=-1))
        self._xrange = xrange
        self._yrange = yrange

    def set_linspace(self, xmin: float, xmax: float, ymin: float, ymax: float):
        """Uniformly spaced coordinates covering [xmin, xmax] x [ymin, ymax], end points included."""
        if self._nx < 2 or self._ny < 2:
            raise ValueError(
                f"a uniform grid needs at least two points per axis, got ({self._nx}, {self._ny})"
            )
        xrange = xmin + jnp.arange(self._nx) * ((xmax - xmin) / (self._nx - 1))
        yrange = ymin + jnp.arange(self._ny) * ((ymax - ymin) / (self._ny - 1))
        self.set_ranges(xrange, yrange)

    def set_ranges_from(self, other: "Position"):
        """Copy coordinates, coordinate ranges and time stamp from another Position."""
        if other.shape != self.shape:
            raise ShapeMismatchError(
                f"sizes do not match: position {other.shape}, expected {self.shape}"
            )
        self._data = other.get_all().copy()
        self._xrange = other._xrange
        self._yrange = other._yrange
        self.update_time(other.time)

    def get(self, i: int, j: int) -> Tuple[float, float]:
        x, y = self._data.get(i, j)
        return float(x), float(y)

    def get_range(self, axis: int) -> Float[Array, " N"]:
        if axis not in (0, 1):
            raise ValueError(f"axis must be 0 (x) or 1 (y), got {axis}")
        coord_range = self._xrange if axis == 0 else self._yrange
        if coord_range is None:
            raise InvalidStateError("coordinate ranges not set")
        return coord_range

    def update(self, vel: "Velocity", delta: float):
        """
        Advance every particle by one explicit Euler step, pos + vel * delta, and mark the
        particles that end up outside the bound if tracking is enabled.
        """
        if vel.shape != self.shape:
            raise ShapeMismatchError(
                f"sizes do not match: velocity {vel.shape}, position {self.shape}"
            )
        points = self.values + vel.values * delta
        self.set_all(points)

        if self._out_of_bound is not None and self._bound is not None:
            xmin, xmax, ymin, ymax = self._bound
            x = points[..., 0]
            y = points[..., 1]
            outside = (x < xmin) | (x > xmax) | (y < ymin) | (y > ymax)
            self._out_of_bound.set_all(self._out_of_bound.get_all() | outside)

    def initialize_out_of_bound(self):
        self._out_of_bound = Tensor(self._nx, self._ny, dtype=jnp.bool_)
        logger.debug("Out-of-bound tracking initialized for a (%d, %d) grid", self._nx, self._ny)

    @property
    def out_of_bound(self) -> Optional[Tensor]:
        return self._out_of_bound

    def is_out_of_bound(self, i: int, j: int) -> bool:
        if self._out_of_bound is None:
            return False
        return bool(self._out_of_bound.get(i, j))

    def set_bound(self, xmin: float, xmax: float, ymin: float, ymax: float):
        self._bound = (float(xmin), float(xmax), float(ymin), float(ymax))

    @property
    def bound(self) -> Optional[Tuple[float, float, float, float]]:
        return self._bound


class Velocity(Field):
    """
    Velocity samples at the coordinates of a Position. The Position is referenced, not owned.
    """

    def __init__(self, nx: int, ny: int, pos: Position):
        super().__init__(nx, ny, 2)
        self._pos = pos

    @property
    def position(self) -> Position:
        return self._pos

    def get(self, i: int, j: int) -> Tuple[float, float]:
        vx, vy = self._data.get(i, j)
        return float(vx), float(vy)

    def interpolate_from(self, ref_vel: "Velocity"):
        """
        Bilinearly interpolate ref_vel onto the coordinates of this velocity's position.

        ref_vel must be sampled on an axis-aligned rectilinear grid whose coordinate ranges are
        set. Points outside the reference grid are extrapolated from the nearest grid interval.
        Cells marked out of bound in this velocity's position keep their current value.

        Parameters
        ----------
        ref_vel : Velocity
            velocity sampled on a rectilinear grid (its position needs coordinate ranges).

        """
        ref_x = ref_vel.position.get_range(0)
        ref_y = ref_vel.position.get_range(1)

        points = self._pos.values
        vq = interpax.interp2d(
            points[..., 0].reshape(-1),
            points[..., 1].reshape(-1),
            ref_x,
            ref_y,
            ref_vel.values,
            method='linear',
            extrap=True,
        )
        vq = vq.reshape(self._nx, self._ny, 2)

        out_of_bound = self._pos.out_of_bound
        if out_of_bound is not None:
            vq = jnp.where(out_of_bound.get_all()[..., None], self.values, vq)

        self.set_all(vq)
