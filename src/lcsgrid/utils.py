import time
import jax.numpy as jnp
from jaxtyping import Array


def neighbor_views(arr: Array, mode: str = 'edge') -> dict:
    """
    Get axis-neighbor views of a gridded array for fast finite differencing. The grid axes are
    the two leading axes of arr (shape=(nx, ny, ...)), with 'ij' indexing.

    With the default 'edge' mode a missing neighbor at the grid boundary is replaced by the cell
    itself, so differences at the edges are one-sided.

    Parameters
    ----------
    arr : jnp.array, shape=(nx, ny, ...)
        array we wish to perform finite differencing on.
    mode : str, optional
        pad mode passed to jnp.pad. The default is 'edge'.

    Returns
    -------
    nhbr_views : dict (pytree)
        dict containing views of the array for finite differencing, keyed by 'center', 'west'
        (i - 1), 'east' (i + 1), 'south' (j - 1) and 'north' (j + 1).

    """

    pad_width = [(1, 1)] * 2 + [(0, 0)] * (arr.ndim - 2)

    pad_arr = jnp.pad(arr, pad_width, mode=mode)

    nhbr_views = {
        'center': pad_arr[1:-1, 1:-1],
        'west': pad_arr[:-2, 1:-1],
        'east': pad_arr[2:, 1:-1],
        'south': pad_arr[1:-1, :-2],
        'north': pad_arr[1:-1, 2:],
    }

    return nhbr_views


class Clock:
    """Wall clock accumulating the elapsed time of repeated begin/end intervals."""

    def __init__(self):
        self.elapsed_time = 0.0
        self.total_elapsed_time = 0.0
        self._begin_time = None

    def begin(self):
        if self._begin_time is None:
            self._begin_time = time.perf_counter()

    def end(self):
        if self._begin_time is not None:
            self.elapsed_time = time.perf_counter() - self._begin_time
            self.total_elapsed_time += self.elapsed_time
            self._begin_time = None
