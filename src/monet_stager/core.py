"""
Core staging classes for monet-stager.

An :class:`InputData` instance keeps two time-bracketing frames of an external
dataset interpolated onto the simulation grid and produces time-interpolated
values for every model step. The kind-specific work (reading grids, sizes and
frames) is delegated to an :class:`InputSource`.

This file is part of monet-stager.

Copyright (c) 2025 monet-stager Developers.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import xarray as xr

from monet_stager.config import StagingConfig
from monet_stager.constants import AXIS_DIMS, SLOT_NEXT, SLOT_PREV, ShapeCategory, StagingState
from monet_stager.grid import MeshGrid, SourceGrid
from monet_stager.interpolation import SpatialInterpolator
from monet_stager.shapes import ShapeCounts, ShapeDescriptor, SourceSize, check_singletons
from monet_stager.storage import BufferStore, Frame
from monet_stager.utils import StagingError, date_increment, ensure_monotonic, find_last_date

logger = logging.getLogger(__name__)


class InputSource(abc.ABC):
    """Kind-specific operations an input dataset needs from its data source.

    Every method receives the owning :class:`InputData` so it can consult the
    current reference dates, cadence and source location.
    """

    @abc.abstractmethod
    def load_grid(self, data: InputData) -> SourceGrid:
        """Read the source coordinates of the dataset.

        Args:
            data: The dataset being set up

        Returns:
            Plaid source coordinates, one vector per axis
        """
        pass

    @abc.abstractmethod
    def load_size(self, data: InputData) -> SourceSize:
        """Discover source axis extents and the number of quantities per category.

        Args:
            data: The dataset being set up

        Returns:
            Source extents and shape counts
        """
        pass

    @abc.abstractmethod
    def set_coordsi(
        self, data: InputData, config: StagingConfig, grid: MeshGrid
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Compute the destination sites in the source coordinate system.

        Args:
            data: The dataset being refreshed for the first time
            config: Run configuration
            grid: Simulation grid

        Returns:
            Three flat vectors of length ``lx1*lx2*lx3`` (C order)
        """
        pass

    @abc.abstractmethod
    def load_data(self, data: InputData, t: float, dt_model: float) -> tuple[Frame, pd.Timestamp]:
        """Read the next on-cadence frame.

        Implementations normally load the frame dated :meth:`InputData.next_frame_date`.

        Args:
            data: The dataset being refreshed
            t: Model time of the step that triggered the refresh
            dt_model: Model time step

        Returns:
            A mapping of shape category to raw array, and the frame's timestamp

        Raises:
            InputDataLoadError: If the frame cannot be read.
        """
        pass


class InputData:
    """An externally sourced dataset staged in space and time for a simulation.

    Lifecycle: :meth:`init` (or the individual steps it calls) once, then
    :meth:`update` every model step. :meth:`release` frees all buffers.
    """

    def __init__(self, source: InputSource, name: str = "inputdata"):
        """Initialize an empty dataset.

        Args:
            source: Provider of the kind-specific load operations
            name: Human readable description used in log messages
        """
        self.source = source
        self.name = name
        self.source_dir: Path | None = None
        self.dt: float = 0.0

        self.flag_datasize = False
        self.flag_sizes = False
        self.flag_alloc = False
        self.flag_primed = False
        self.flag_cadence = False
        self.flag_source = False
        self.flag_coordsi = False

        self.source_extents: tuple[int, int, int] | None = None
        self.shape: ShapeDescriptor | None = None
        self.storage: BufferStore | None = None
        self.interpolator = SpatialInterpolator()

        self.coord1: np.ndarray | None = None
        self.coord2: np.ndarray | None = None
        self.coord3: np.ndarray | None = None
        self.coord1i: np.ndarray | None = None
        self.coord2i: np.ndarray | None = None
        self.coord3i: np.ndarray | None = None

        # model times (seconds) of the previous and next frames, and their calendar dates
        self.tref = [0.0, 0.0]
        self.refdate: list[pd.Timestamp | None] = [None, None]
        self.tnow = 0.0
        self.n_loaded = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, state={self.state.value}, tref={self.tref})"

    # ------------------------------------------------------------------
    # top-level lifecycle

    def init(
        self,
        config: StagingConfig,
        source_dir: str | Path,
        grid: MeshGrid,
        dt_model: float,
        dt_data: float,
        when: pd.Timestamp,
    ) -> None:
        """Set the dataset up for the first model step.

        Reads the source grid and sizes, allocates storage and primes both
        time slots so the first step interpolates between two real frames.

        Args:
            config: Run configuration
            source_dir: Location of the source data
            grid: Simulation grid
            dt_model: Model time step (seconds)
            dt_data: Input data cadence (seconds)
            when: Time of the first model step (differs from ``config.start`` on restart)
        """
        self.set_source(source_dir)
        self.set_cadence(dt_data)

        source_grid = self.source.load_grid(self)
        size = self.source.load_size(self)
        self.set_source_extents(*size.extents)
        self.set_sizes(size.counts, grid)
        self.init_storage()
        self.set_coords(*source_grid.coords)

        self.prime_data(config, grid, dt_model, when, stacklevel=2)

    def update(
        self,
        config: StagingConfig,
        dt_model: float,
        t: float,
        grid: MeshGrid,
        when: pd.Timestamp,
        stacklevel: int = 1,
    ) -> None:
        """Advance the dataset to model time ``t``.

        Loads and interpolates a new frame when the next reference time has been
        reached (or ``t`` is negative, which forces a load while priming), then
        interpolates in time.

        Args:
            config: Run configuration
            dt_model: Model time step (seconds)
            t: Model time (seconds since the current run started)
            grid: Simulation grid
            when: Calendar time corresponding to ``t``
            stacklevel: Frames above this call that warnings are attributed to
        """
        if not self.flag_alloc:
            raise StagingError("inputdata:update() - must allocate array space prior to update")
        if not self.flag_cadence:
            raise StagingError("inputdata:update() - must define cadence first")
        if not self.flag_source:
            raise StagingError("inputdata:update() - must define source data location")

        if self.needs_refresh(t, dt_model):
            self._refresh(config, dt_model, t, grid, pd.Timestamp(when), stacklevel=stacklevel + 1)

        self.timeinterp(t, dt_model)

    def prime_data(
        self,
        config: StagingConfig,
        grid: MeshGrid,
        dt_model: float,
        when: pd.Timestamp,
        stacklevel: int = 1,
    ) -> None:
        """Load both time slots before the first model step.

        The frame preceding ``when`` is loaded twice removed: first at a negative
        model time that forces a load, then at time zero, which moves that frame
        into the previous slot and loads its successor into the next slot. The
        first step therefore interpolates between two distinct, correctly dated
        frames, which matters for restarts.

        Args:
            config: Run configuration providing the simulation start time
            grid: Simulation grid
            dt_model: Model time step (seconds)
            when: Time of the first model step of this run
            stacklevel: Frames above this call that warnings are attributed to
        """
        if not self.flag_alloc:
            raise StagingError("inputdata:prime_data() - must allocate data arrays prior to priming")
        if not self.flag_cadence:
            raise StagingError("inputdata:prime_data() - must specify data cadence before priming")
        logger.info("Priming dataset: %s", self.name)

        when = pd.Timestamp(when)
        last = find_last_date(config.start, when, self.dt)
        offset = (last - when).total_seconds()

        self.tref = [offset - 2 * self.dt, offset - self.dt]
        self.update(
            config, dt_model, self.tref[1] + self.dt / 2, grid, date_increment(last, -self.dt), stacklevel=stacklevel + 1
        )
        self.update(config, dt_model, 0.0, grid, last, stacklevel=stacklevel + 1)

        self.flag_primed = True

    def release(self) -> None:
        """Free all buffers and reset the allocation, priming and coordinate flags."""
        self.storage = None
        self.coord1 = self.coord2 = self.coord3 = None
        self.coord1i = self.coord2i = self.coord3i = None
        self.interpolator.reset()
        self.n_loaded = 0

        self.flag_alloc = False
        self.flag_primed = False
        self.flag_coordsi = False

    # ------------------------------------------------------------------
    # fine-grained setup

    def set_cadence(self, dt_data: float) -> None:
        if dt_data <= 0:
            raise StagingError(f"inputdata:set_cadence() - cadence must be positive, got {dt_data}")
        self.dt = float(dt_data)
        self.flag_cadence = True

    def set_source(self, source_dir: str | Path) -> None:
        self.source_dir = Path(source_dir)
        self.flag_source = True

    def set_source_extents(self, lc1: int, lc2: int, lc3: int) -> None:
        """Record the source axis extents discovered by the input source."""
        extents = (int(lc1), int(lc2), int(lc3))
        if min(extents) < 1:
            raise StagingError(f"inputdata:set_source_extents() - extents must be positive, got {extents}")
        self.source_extents = extents
        self.flag_datasize = True

    def set_sizes(self, counts: ShapeCounts, grid: MeshGrid) -> None:
        """Record the quantity counts and take destination extents from the grid.

        Args:
            counts: Number of quantities per shape category
            grid: Simulation grid supplying the destination extents

        Raises:
            StagingError: If source extents are unknown or singleton axes differ
                between source and destination.
        """
        if not self.flag_datasize or self.source_extents is None:
            raise StagingError("inputdata:set_sizes() - must set input datasize first using load_size()")

        dest_extents = (grid.lx1, grid.lx2, grid.lx3)
        check_singletons(self.source_extents, dest_extents)

        self.shape = ShapeDescriptor(counts=counts, source_extents=self.source_extents, dest_extents=dest_extents)
        self.flag_sizes = True

    def init_storage(self) -> None:
        """Allocate every buffer once sizes are known."""
        if not self.flag_sizes or self.shape is None:
            raise StagingError("inputdata:init_storage() - must set sizes before allocations")

        self.storage = BufferStore(self.shape)
        n_sites = self.shape.n_sites
        self.coord1, self.coord2, self.coord3 = (np.empty(lc) for lc in self.shape.source_extents)
        self.coord1i, self.coord2i, self.coord3i = (np.empty(n_sites) for _ in range(3))
        self.interpolator.reset()
        self.flag_alloc = True

    def set_coords(self, c1: np.ndarray, c2: np.ndarray, c3: np.ndarray) -> None:
        """Store the (plaid) source coordinates."""
        if not self.flag_alloc or self.shape is None:
            raise StagingError("inputdata:set_coords() - must allocate space prior to setting interpolant coordinates")

        coords = []
        for axis, (coord, lc) in enumerate(zip((c1, c2, c3), self.shape.source_extents, strict=True), start=1):
            coord = ensure_monotonic(np.atleast_1d(coord), f"coord{axis}")
            if coord.size != lc:
                raise StagingError(
                    f"inputdata:set_coords() - coord{axis} has {coord.size} entries, source extent is {lc}"
                )
            coords.append(coord)
        self.coord1, self.coord2, self.coord3 = coords
        self.interpolator.reset()

    def set_coordsi_values(self, c1i: np.ndarray, c2i: np.ndarray, c3i: np.ndarray) -> None:
        """Store the flat destination coordinates computed by the input source."""
        if not self.flag_alloc or self.shape is None:
            raise StagingError("inputdata:set_coordsi() - must allocate space prior to setting destination coordinates")

        n_sites = self.shape.n_sites
        coords = []
        for axis, coord in enumerate((c1i, c2i, c3i), start=1):
            coord = np.ascontiguousarray(coord, dtype=np.float64).ravel()
            if coord.size != n_sites:
                raise StagingError(
                    f"inputdata:set_coordsi() - coord{axis}i has {coord.size} entries, expected {n_sites}"
                )
            coords.append(coord)
        self.coord1i, self.coord2i, self.coord3i = coords
        self.interpolator.reset()
        self.flag_coordsi = True

    # ------------------------------------------------------------------
    # refresh and interpolation

    def needs_refresh(self, t: float, dt_model: float) -> bool:
        """Whether a new frame is due at model time ``t``; negative ``t`` always loads."""
        return t + dt_model / 2 >= self.tref[1] or t < 0

    def next_frame_date(self) -> pd.Timestamp:
        """Timestamp of the frame following the current next slot."""
        if self.refdate[1] is None:
            raise StagingError("inputdata:next_frame_date() - reference dates are set on the first refresh")
        return date_increment(self.refdate[1], self.dt)

    def _refresh(
        self,
        config: StagingConfig,
        dt_model: float,
        t: float,
        grid: MeshGrid,
        when: pd.Timestamp,
        stacklevel: int = 1,
    ) -> None:
        first_load = not self.flag_coordsi
        if first_load:
            self.refdate = [when, when]
            self.interpolator = SpatialInterpolator(config.interp_method, config.fill_method)
            self.set_coordsi_values(*self.source.set_coordsi(self, config, grid))

        frame, loaded = self.source.load_data(self, t, dt_model)
        logger.debug("Loaded frame for dataset %s dated %s", self.name, loaded)
        if first_load:
            missing = set(self.shape.counts.populated()) - {ShapeCategory(key) for key in frame}
            if missing:
                labels = ", ".join(sorted(category.value for category in missing))
                msg = f"inputdata:update() - first frame must supply every populated category, missing {labels}"
                raise StagingError(msg)

        self.storage.store_frame(frame)
        self.storage.shift()
        self.spaceinterp(stacklevel=stacklevel + 1)
        if first_load:
            self.storage.shift()
        self.n_loaded += 1

        self.tref = [self.tref[1], self.tref[1] + self.dt]
        self.refdate = [self.refdate[1], pd.Timestamp(loaded)]

    def spaceinterp(self, stacklevel: int = 1) -> None:
        """Interpolate the raw frame onto the destination sites (next slot)."""
        if not self.interpolator.is_built:
            self.interpolator.build_structures(
                self.shape,
                (self.coord1, self.coord2, self.coord3),
                (self.coord1i, self.coord2i, self.coord3i),
                stacklevel=stacklevel + 1,
            )
        self.interpolator.interpolate_into(self.storage)

    def timeinterp(self, t: float, dt_model: float) -> None:
        """Linearly interpolate the two slots to the middle of the current step."""
        tnow = t + dt_model / 2
        span = self.tref[1] - self.tref[0]
        for category in self.shape.counts.populated():
            dual = self.storage.dual[category]
            prev = dual[..., SLOT_PREV]
            slope = (dual[..., SLOT_NEXT] - prev) / span
            self.storage.now[category][...] = prev + slope * (tnow - self.tref[0])
        self.tnow = tnow

    # ------------------------------------------------------------------
    # read accessors

    @property
    def state(self) -> StagingState:
        return StagingState.LOADED if self.n_loaded >= 2 else StagingState.UNPRIMED

    def now(self, category: ShapeCategory | str) -> np.ndarray:
        """Read-only view of the time-interpolated values for ``category``."""
        if self.storage is None:
            raise StagingError("inputdata:now() - storage is not allocated")
        return self.storage.now_view(ShapeCategory(category))

    @property
    def now_0d(self) -> np.ndarray:
        return self.now(ShapeCategory.SCALAR)

    @property
    def now_1d_ax1(self) -> np.ndarray:
        return self.now(ShapeCategory.AX1)

    @property
    def now_1d_ax2(self) -> np.ndarray:
        return self.now(ShapeCategory.AX2)

    @property
    def now_1d_ax3(self) -> np.ndarray:
        return self.now(ShapeCategory.AX3)

    @property
    def now_2d_ax23(self) -> np.ndarray:
        return self.now(ShapeCategory.AX23)

    @property
    def now_2d_ax12(self) -> np.ndarray:
        return self.now(ShapeCategory.AX12)

    @property
    def now_2d_ax13(self) -> np.ndarray:
        return self.now(ShapeCategory.AX13)

    @property
    def now_3d(self) -> np.ndarray:
        return self.now(ShapeCategory.VOLUME)

    def info(self) -> dict[str, Any]:
        """Get information about the dataset instance.

        Returns:
            Dictionary containing dataset metadata and staging status
        """
        return {
            "name": self.name,
            "source": type(self.source).__name__,
            "source_dir": str(self.source_dir) if self.source_dir is not None else None,
            "cadence": self.dt,
            "state": self.state.value,
            "primed": self.flag_primed,
            "tref": list(self.tref),
            "tnow": self.tnow,
            "counts": {c.value: self.shape.counts[c] for c in ShapeCategory} if self.shape is not None else {},
            "source_extents": self.source_extents,
            "dest_extents": self.shape.dest_extents if self.shape is not None else None,
        }

    def to_dataset(self) -> xr.Dataset:
        """Current time-interpolated values as an xarray Dataset.

        Each populated category becomes one variable with dimensions drawn from
        ``x1, x2, x3`` plus a quantity dimension ``q_<category>``.
        """
        if self.storage is None:
            raise StagingError("inputdata:to_dataset() - storage is not allocated")

        data_vars = {}
        for category in self.shape.counts.populated():
            dims = (*category.dims, f"q_{category.value}")
            data_vars[f"data{category.value}"] = (dims, self.storage.now[category].copy())

        ds = xr.Dataset(data_vars)
        for dim, coord in zip(AXIS_DIMS, self._dest_axes(), strict=True):
            if dim in ds.dims and coord is not None:
                ds = ds.assign_coords({dim: coord})

        ds.attrs["name"] = self.name
        ds.attrs["tnow"] = self.tnow
        if self.refdate[0] is not None:
            ds.attrs["refdate_prev"] = self.refdate[0].isoformat()
            ds.attrs["refdate_next"] = self.refdate[1].isoformat()
        ds.attrs["history"] = f"Staged by InputData '{self.name}' at tnow={self.tnow}"
        return ds

    def _dest_axes(self) -> list[np.ndarray | None]:
        """Destination axis vectors when the destination grid is plaid, else None per axis."""
        if not self.flag_coordsi:
            return [None, None, None]
        extents = self.shape.dest_extents
        axes: list[np.ndarray | None] = []
        for ax, coord in enumerate((self.coord1i, self.coord2i, self.coord3i)):
            cube = coord.reshape(extents)
            line = np.moveaxis(cube, ax, 0)
            axis_values = line[(slice(None), 0, 0)]
            plaid = np.all(line == axis_values[:, np.newaxis, np.newaxis])
            axes.append(axis_values.copy() if plaid else None)
        return axes
