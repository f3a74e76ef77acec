# This module advects a grid of particles through a time-dependent velocity field with fixed-step
# explicit Euler integration. FlowField holds the state shared by both strategies (initial and
# current positions, the current velocity, time step, time and direction); ContinuousFlowField
# samples an analytic model through a diffrax term, DiscreteFlowField interpolates velocity
# snapshots read from files, in time between the two snapshots bracketing the current time and
# then in space onto the particles.

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
from collections.abc import Callable
from diffrax import ODETerm
from ._errors import InvalidStateError
from ._field import Position, Velocity
from ._tensor import interpolate
from ._vector_field import vector_field, sample_velocity
from .utils import Clock

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Direction of time for particle advection."""
    FORWARD = 'forward'
    BACKWARD = 'backward'


@dataclass
class FlowConfig:
    """
    Run settings for a FlowField, applied with FlowField.configure.

    Attributes:
        delta: integration time step, must be positive
        step: number of integration steps per run
        initial_time: time at which particles start
        direction: direction of time
        data_delta: time between two adjacent velocity data files (discrete flows only)
        data_time_range: first and last time covered by the data files (discrete flows only)
        velocity_file_prefix: data file name prefix (discrete flows only, kept if None)
        velocity_file_suffix: data file name suffix (discrete flows only, kept if None)
    """
    delta: float = 0.1
    step: int = 0
    initial_time: float = 0.0
    direction: Direction = Direction.FORWARD
    data_delta: Optional[float] = None
    data_time_range: Optional[Tuple[float, float]] = None
    velocity_file_prefix: Optional[str] = None
    velocity_file_suffix: Optional[str] = None


class FlowField(ABC):
    """
    Base class for particle advection on an nx by ny grid.

    Subclasses decide where velocities come from by implementing set_current_velocity and
    copy_initial_to_current.
    """

    def __init__(self, nx: int, ny: int):
        self._nx = nx
        self._ny = ny
        self._delta = None
        self._step = 0
        self._initial_time = 0.0
        self._current_time = 0.0
        self._direction = Direction.FORWARD
        self._initial_pos = Position(nx, ny)
        self._current_pos = Position(nx, ny)
        self._current_vel = None

    @property
    def shape(self) -> Tuple[int, int]:
        return self._nx, self._ny

    @property
    def initial_position(self) -> Position:
        return self._initial_pos

    @property
    def current_position(self) -> Position:
        return self._current_pos

    @property
    def current_velocity(self) -> Velocity:
        if self._current_vel is None:
            raise InvalidStateError("current velocity not set")
        return self._current_vel

    @property
    def time(self) -> float:
        return self._current_time

    @property
    def initial_time(self) -> float:
        return self._initial_time

    @property
    def delta(self) -> Optional[float]:
        return self._delta

    @property
    def step(self) -> int:
        return self._step

    @property
    def direction(self) -> Direction:
        return self._direction

    def set_delta(self, delta: float):
        if not delta > 0:
            raise ValueError(f"time step must be positive, got {delta}")
        self._delta = float(delta)

    def set_step(self, step: int):
        if step < 0:
            raise ValueError(f"number of steps must be non-negative, got {step}")
        self._step = int(step)

    def set_direction(self, direction: Direction):
        self._direction = Direction(direction)

    def set_initial_time(self, time: float):
        self._initial_time = float(time)
        self._initial_pos.update_time(time)
        self.update_time(time)

    def update_time(self, time: Optional[float] = None):
        """Move the current time to time, or one signed time step on if time is None."""
        if time is None:
            self._current_time += self._signed_delta()
        else:
            self._current_time = float(time)

        self._current_pos.update_time(self._current_time)
        if self._current_vel is not None:
            self._current_vel.update_time(self._current_time)

    def configure(self, config: FlowConfig):
        self.set_delta(config.delta)
        self.set_step(config.step)
        self.set_direction(config.direction)
        self.set_initial_time(config.initial_time)

    def _signed_delta(self) -> float:
        if self._delta is None:
            raise InvalidStateError("time step not set")
        return self._delta if self._direction == Direction.FORWARD else -self._delta

    @abstractmethod
    def set_current_velocity(self):
        """Sample the velocity at the current positions and time into the current velocity."""
        pass

    @abstractmethod
    def copy_initial_to_current(self):
        """Reset the current positions to the initial positions before a run."""
        pass

    def run(self):
        """
        Advect the particles from the initial position: step times, sample the velocity at the
        current positions and time, move the particles by one signed time step and advance the
        time.
        """
        signed_delta = self._signed_delta()

        logger.info("Particle advection begins")
        self.update_time(self._initial_time)
        self.copy_initial_to_current()

        clock = Clock()
        for i in range(self._step):
            clock.begin()
            logger.info("Step %d (time = %g) begins", i, self._current_time)

            self.set_current_velocity()
            self._current_pos.update(self._current_vel, signed_delta)
            self.update_time()

            logger.info("Step %d (time = %g) ends", i, self._current_time)
            clock.end()
            logger.info(
                "Step executing time: %.4gs  Total executing time: %.4gs",
                clock.elapsed_time, clock.total_elapsed_time
            )

        logger.info("Particle advection ends")


class ContinuousFlowField(FlowField):
    """
    Flow field driven by an analytic velocity model.

    Parameters
    ----------
    nx : int
        number of particles along x.
    ny : int
        number of particles along y.
    model : callable
        velocity model taking x, y, t and returning u, v (see lcsgrid.models).

    """

    def __init__(self, nx: int, ny: int, model: Callable):
        super().__init__(nx, ny)
        self._model = model
        self._term = ODETerm(vector_field(model))

    @property
    def model(self) -> Callable:
        return self._model

    def set_current_velocity(self):
        self._current_vel = sample_velocity(self._term, self._current_pos, self._current_time)

    def copy_initial_to_current(self):
        self._current_pos.set_ranges_from(self._initial_pos)


class DiscreteFlowField(FlowField):
    """
    Flow field driven by velocity snapshots stored in files.

    Snapshots live on a rectilinear data grid (data_position) at times spaced by data_delta over
    data_time_range, one file per time named velocity_file_prefix + str(int(time)) +
    velocity_file_suffix. During a run the two snapshots bracketing the current time are kept in
    memory, interpolated linearly in time, and then bilinearly onto the particles. Particles that
    leave the data grid are marked out of bound and keep the last velocity they had.

    Parameters
    ----------
    nx : int
        number of particles along x.
    ny : int
        number of particles along y.
    data_nx : int, optional
        number of data grid points along x. The default is nx.
    data_ny : int, optional
        number of data grid points along y. The default is ny.

    """

    def __init__(self, nx: int, ny: int, data_nx: Optional[int] = None,
                 data_ny: Optional[int] = None):
        super().__init__(nx, ny)
        self._data_nx = nx if data_nx is None else data_nx
        self._data_ny = ny if data_ny is None else data_ny
        self._data_delta = None
        self._data_time_range = None
        self._begin_data_time = None
        self._end_data_time = None
        self._current_data_time = None
        self._window_ready = False
        self.velocity_file_prefix = ''
        self.velocity_file_suffix = '.txt'

        self._data_pos = Position(self._data_nx, self._data_ny)
        self._previous_data_vel = Velocity(self._data_nx, self._data_ny, self._data_pos)
        self._next_data_vel = Velocity(self._data_nx, self._data_ny, self._data_pos)
        self._current_data_vel = Velocity(self._data_nx, self._data_ny, self._data_pos)

    @property
    def data_position(self) -> Position:
        return self._data_pos

    @property
    def previous_data_velocity(self) -> Velocity:
        return self._previous_data_vel

    @property
    def next_data_velocity(self) -> Velocity:
        return self._next_data_vel

    @property
    def current_data_velocity(self) -> Velocity:
        return self._current_data_vel

    @property
    def data_delta(self) -> Optional[float]:
        return self._data_delta

    @property
    def data_time_window(self) -> Tuple[Optional[float], Optional[float]]:
        """First and last data time in the direction of travel."""
        return self._begin_data_time, self._end_data_time

    def set_data_delta(self, delta: float):
        if not delta > 0:
            raise ValueError(f"data time step must be positive, got {delta}")
        self._data_delta = float(delta)

    def set_data_time_range(self, t1: float, t2: float):
        self._data_time_range = (float(t1), float(t2))
        self._update_data_time_window()

    def set_direction(self, direction: Direction):
        super().set_direction(direction)
        self._update_data_time_window()

    def configure(self, config: FlowConfig):
        super().configure(config)
        if config.data_delta is not None:
            self.set_data_delta(config.data_delta)
        if config.data_time_range is not None:
            self.set_data_time_range(*config.data_time_range)
        if config.velocity_file_prefix is not None:
            self.velocity_file_prefix = config.velocity_file_prefix
        if config.velocity_file_suffix is not None:
            self.velocity_file_suffix = config.velocity_file_suffix

    def _update_data_time_window(self):
        if self._data_time_range is None:
            return
        begin_time, end_time = min(self._data_time_range), max(self._data_time_range)
        if self._direction == Direction.FORWARD:
            self._begin_data_time, self._end_data_time = begin_time, end_time
        else:
            self._begin_data_time, self._end_data_time = end_time, begin_time

    def _signed_data_delta(self) -> float:
        if self._data_delta is None or self._data_time_range is None:
            raise InvalidStateError("data time step and data time range not set")
        return self._data_delta if self._direction == Direction.FORWARD else -self._data_delta

    def _passed_next_data_time(self, data_time: float) -> bool:
        # the window only moves while its next snapshot is still short of the last data time
        next_time = data_time + self._signed_data_delta()
        if self._direction == Direction.FORWARD:
            return self._current_time >= next_time and self._end_data_time > next_time
        return self._current_time <= next_time and self._end_data_time < next_time

    def read_data_velocity(self, data_vel: Velocity):
        """Read the snapshot at data_vel's time stamp into data_vel."""
        file_name = (
            f"{self.velocity_file_prefix}{int(data_vel.time)}{self.velocity_file_suffix}"
        )
        data_vel.read_from_file(file_name)
        logger.info("Read velocity data at time = %g from %s", data_vel.time, file_name)

    def _load_data_window(self):
        self._previous_data_vel.update_time(self._current_data_time)
        self._next_data_vel.update_time(self._current_data_time + self._signed_data_delta())

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [
                executor.submit(self.read_data_velocity, data_vel)
                for data_vel in (self._previous_data_vel, self._next_data_vel)
            ]
            for future in futures:
                future.result()

    def set_current_velocity(self):
        """
        Interpolate the data snapshots at the current time onto the particles. The snapshot
        window is placed on the first call of a run and moved (re-reading both files) whenever
        the current time has passed its next snapshot.
        """
        if self._current_vel is None:
            self._current_vel = Velocity(self._nx, self._ny, self._current_pos)

        if not self._window_ready:
            self._current_data_time = self._begin_data_time
            while self._passed_next_data_time(self._current_data_time):
                self._current_data_time += self._signed_data_delta()
            self._load_data_window()
            self._window_ready = True
        elif self._passed_next_data_time(self._current_data_time):
            while self._passed_next_data_time(self._current_data_time):
                self._current_data_time += self._signed_data_delta()
            logger.debug("Data window moved to time %g", self._current_data_time)
            self._load_data_window()

        previous_time = self._previous_data_vel.time
        next_time = self._next_data_vel.time
        if previous_time == next_time:
            data_values = self._previous_data_vel.values
        else:
            data_values = interpolate(
                previous_time, next_time,
                self._previous_data_vel.values, self._next_data_vel.values,
                self._current_time
            )
        self._current_data_vel.set_all(data_values)
        self._current_data_vel.update_time(self._current_time)

        self._current_vel.interpolate_from(self._current_data_vel)
        self._current_vel.update_time(self._current_time)

    def copy_initial_to_current(self):
        self._current_pos.set_ranges_from(self._initial_pos)
        self._current_pos.initialize_out_of_bound()

        xmin, ymin = self._data_pos.get(0, 0)
        xmax, ymax = self._data_pos.get(self._data_nx - 1, self._data_ny - 1)
        self._current_pos.set_bound(xmin, xmax, ymin, ymax)

        self._current_vel = Velocity(self._nx, self._ny, self._current_pos)
        self._window_ready = False
