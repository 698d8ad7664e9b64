"""
In-memory input sources and grids shared by the tests.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pandas as pd

from monet_stager.config import StagingConfig
from monet_stager.constants import ShapeCategory
from monet_stager.core import InputData, InputSource
from monet_stager.grid import MeshGrid, SourceGrid
from monet_stager.shapes import ShapeCounts, SourceSize
from monet_stager.utils import InputDataLoadError

START = pd.Timestamp("2016-09-07 00:00:00")


class MemorySource(InputSource):
    """A source serving frames from memory.

    Frames come either from a dict keyed by timestamp or from a callable
    ``frame_fn(when) -> frame``. Every loaded timestamp is recorded.
    """

    def __init__(
        self,
        source_grid: SourceGrid,
        counts: ShapeCounts,
        frames: dict[pd.Timestamp, dict] | None = None,
        frame_fn: Callable[[pd.Timestamp], dict] | None = None,
    ):
        self.source_grid = source_grid
        self.counts = counts
        self.frames = frames or {}
        self.frame_fn = frame_fn
        self.loaded: list[pd.Timestamp] = []
        self.coordsi_calls = 0

    def load_grid(self, data):
        return self.source_grid

    def load_size(self, data):
        return SourceSize(*self.source_grid.extents, counts=self.counts)

    def set_coordsi(self, data, config, grid):
        self.coordsi_calls += 1
        return grid.flat_coordinates()

    def load_data(self, data, t, dt_model):
        when = data.next_frame_date()
        if self.frame_fn is not None:
            frame = self.frame_fn(when)
        elif when in self.frames:
            frame = self.frames[when]
        else:
            raise InputDataLoadError(f"no frame for {when}")
        self.loaded.append(when)
        return frame, when


def profile_source(frames: dict[pd.Timestamp, list[float]], coord=(0.0, 1.0, 2.0, 3.0)) -> MemorySource:
    """Source with a single 1-D profile along axis 1."""
    source_grid = SourceGrid(np.asarray(coord), [0.0], [0.0])
    counts = ShapeCounts(l1d_ax1=1)
    memory = {
        when: {ShapeCategory.AX1: np.asarray(values, dtype=np.float64)[:, np.newaxis]}
        for when, values in frames.items()
    }
    return MemorySource(source_grid, counts, frames=memory)


def ramp_source(source_grid: SourceGrid, counts: ShapeCounts, start=START, rate=1.0) -> MemorySource:
    """Source whose every value equals ``rate`` times the seconds elapsed since ``start``.

    Spatially constant fields make the time dependence easy to check after
    interpolation.
    """

    def frame_fn(when):
        value = rate * (when - start).total_seconds()
        shape = _shapes(source_grid.extents, counts)
        return {category: np.full(shape[category], value) for category in counts.populated()}

    return MemorySource(source_grid, counts, frame_fn=frame_fn)


def _shapes(extents, counts: ShapeCounts) -> dict[ShapeCategory, tuple[int, ...]]:
    return {c: (*(extents[ax] for ax in c.axes), counts[c]) for c in ShapeCategory}


def line_grid(*x1) -> MeshGrid:
    """Destination grid with sites only along axis 1."""
    return MeshGrid(np.asarray(x1, dtype=np.float64), [0.0], [0.0])


def make_config(**kwargs) -> StagingConfig:
    return StagingConfig(start=kwargs.pop("start", START), **kwargs)


def primed(source: InputSource, grid: MeshGrid, dt_data=60.0, dt_model=0.0, when=START, **config_kwargs) -> InputData:
    """An InputData run through the full init sequence."""
    data = InputData(source, name="test data")
    data.init(make_config(**config_kwargs), "memory", grid, dt_model, dt_data, when)
    return data
