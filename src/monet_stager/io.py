"""
NetCDF-backed input source for monet-stager.

Reads a directory holding one grid file plus one netCDF file per frame, named
``YYYYMMDD_SSSSS.SSSSSS.nc`` after the frame time. Data variables are assigned
to shape categories from the axis dimensions they span.

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

import warnings
from collections.abc import Hashable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import cf_xarray  # noqa: F401
import numpy as np
import pandas as pd
import xarray as xr

from monet_stager.constants import ShapeCategory
from monet_stager.core import InputSource
from monet_stager.grid import MeshGrid, SourceGrid
from monet_stager.shapes import ShapeCounts, SourceSize
from monet_stager.utils import InputDataLoadError, date_filename

if TYPE_CHECKING:
    from monet_stager.config import StagingConfig
    from monet_stager.core import InputData


class NetCDFSource(InputSource):
    """Input source reading one netCDF file per frame.

    Args:
        axis_names: For each of the three axes, either the name of its
            coordinate variable or a cf-xarray key such as ``"X"``.
        grid_file: Name of the file holding the source coordinates.
        suffix: File extension of frame files.
        engine: xarray backend used for reading.
    """

    def __init__(
        self,
        axis_names: Sequence[str] = ("x1", "x2", "x3"),
        grid_file: str = "simgrid.nc",
        suffix: str = ".nc",
        engine: str = "h5netcdf",
    ):
        if len(axis_names) != 3:
            msg = f"axis_names must name three axes, got {axis_names}"
            raise ValueError(msg)
        self.axis_names = tuple(axis_names)
        self.grid_file = grid_file
        self.suffix = suffix
        self.engine = engine

        self.axis_dims: tuple[Hashable, Hashable, Hashable] | None = None
        self.extents: tuple[int, int, int] | None = None
        self.variables: dict[ShapeCategory, list[str]] = {}

    @staticmethod
    def _resolve_axis(ds: xr.Dataset, key: str) -> xr.DataArray:
        """Find an axis coordinate by variable name, else through cf-xarray."""
        if key in ds.variables:
            return ds[key]
        try:
            return ds.cf[key]
        except KeyError as e:
            raise InputDataLoadError(f"Coordinate for axis {key!r} not found in source grid") from e

    def _source_dir(self, data: InputData) -> Path:
        if data.source_dir is None:
            raise InputDataLoadError(f"No source location set for dataset {data.name}")
        return data.source_dir

    def frame_path(self, data: InputData, when: pd.Timestamp) -> Path:
        return self._source_dir(data) / f"{date_filename(when)}{self.suffix}"

    def load_grid(self, data: InputData) -> SourceGrid:
        path = self._source_dir(data) / self.grid_file
        if not path.is_file():
            raise InputDataLoadError(f"Source grid file {path} not found")

        with xr.open_dataset(path, engine=self.engine) as ds:
            axes = [self._resolve_axis(ds, key) for key in self.axis_names]
            coords = []
            dims = []
            for key, axis in zip(self.axis_names, axes, strict=True):
                if axis.ndim != 1:
                    raise InputDataLoadError(f"Coordinate for axis {key!r} must be one dimensional")
                coords.append(np.asarray(axis.values, dtype=np.float64))
                dims.append(axis.dims[0])

        self.axis_dims = tuple(dims)  # type: ignore[assignment]
        source_grid = SourceGrid(*coords)
        self.extents = source_grid.extents
        return source_grid

    def load_size(self, data: InputData) -> SourceSize:
        if self.axis_dims is None or self.extents is None:
            self.load_grid(data)

        frames = sorted(p for p in self._source_dir(data).glob(f"*{self.suffix}") if p.name != self.grid_file)
        if not frames:
            raise InputDataLoadError(f"No frame files matching *{self.suffix} in {self._source_dir(data)}")

        with xr.open_dataset(frames[0], engine=self.engine) as ds:
            self.variables = self._classify(ds)

        counts = ShapeCounts.from_mapping({category: len(names) for category, names in self.variables.items()})
        return SourceSize(*self.extents, counts=counts)

    def _classify(self, ds: xr.Dataset) -> dict[ShapeCategory, list[str]]:
        """Group data variables by the axis dimensions they span."""
        variables: dict[ShapeCategory, list[str]] = {}
        for name in sorted(str(v) for v in ds.data_vars):
            dims = ds[name].dims
            if not set(dims) <= set(self.axis_dims):
                warnings.warn(
                    f"Variable {name!r} has dimensions {dims} outside the source axes and is ignored.",
                    stacklevel=2,
                )
                continue
            category = ShapeCategory.from_axes(tuple(self.axis_dims.index(d) for d in dims))
            variables.setdefault(category, []).append(name)
        return variables

    def set_coordsi(
        self, data: InputData, config: StagingConfig, grid: MeshGrid
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return grid.flat_coordinates()

    def load_data(self, data: InputData, t: float, dt_model: float) -> tuple[dict[ShapeCategory, np.ndarray], pd.Timestamp]:
        when = data.next_frame_date()
        path = self.frame_path(data, when)
        if not path.is_file():
            raise InputDataLoadError(f"Frame file {path} for {when} not found")

        frame: dict[ShapeCategory, np.ndarray] = {}
        with xr.open_dataset(path, engine=self.engine) as ds:
            for category, names in self.variables.items():
                dims = [self.axis_dims[ax] for ax in category.axes]
                arrays = []
                for name in names:
                    if name not in ds.data_vars:
                        raise InputDataLoadError(f"Variable {name!r} missing from frame file {path}")
                    arrays.append(np.asarray(ds[name].transpose(*dims).values, dtype=np.float64))
                frame[category] = np.stack(arrays, axis=-1)
        return frame, when


def write_source_grid(
    source_dir: str | Path,
    coord1: np.ndarray,
    coord2: np.ndarray,
    coord3: np.ndarray,
    axis_names: Sequence[str] = ("x1", "x2", "x3"),
    axis_attrs: Sequence[dict[str, Any]] | None = None,
    grid_file: str = "simgrid.nc",
    engine: str = "h5netcdf",
) -> Path:
    """Write source coordinates in the layout :class:`NetCDFSource` reads.

    Args:
        source_dir: Directory to write into (created if missing).
        coord1: Coordinate vector of axis 1, likewise ``coord2`` and ``coord3``.
        axis_names: Coordinate (and dimension) names of the three axes.
        axis_attrs: Optional attributes per axis, e.g. ``{"axis": "X"}``.
        grid_file: File name of the grid file.
        engine: xarray backend used for writing.

    Returns:
        Path of the written file.
    """
    source_dir = Path(source_dir)
    source_dir.mkdir(parents=True, exist_ok=True)
    attrs = axis_attrs if axis_attrs is not None else ({}, {}, {})
    ds = xr.Dataset(
        coords={
            name: (name, np.atleast_1d(np.asarray(coord, dtype=np.float64)), dict(attr))
            for name, coord, attr in zip(axis_names, (coord1, coord2, coord3), attrs, strict=True)
        }
    )
    path = source_dir / grid_file
    ds.to_netcdf(path, engine=engine)
    return path


def write_frame(
    source_dir: str | Path,
    when: pd.Timestamp,
    variables: dict[str, tuple[Sequence[str], np.ndarray]],
    suffix: str = ".nc",
    engine: str = "h5netcdf",
) -> Path:
    """Write one frame file named after its timestamp.

    Args:
        source_dir: Directory to write into (created if missing).
        when: Frame time.
        variables: Mapping of variable name to ``(dims, values)``.
        suffix: File extension.
        engine: xarray backend used for writing.

    Returns:
        Path of the written file.
    """
    source_dir = Path(source_dir)
    source_dir.mkdir(parents=True, exist_ok=True)
    ds = xr.Dataset({name: (tuple(dims), np.asarray(values, dtype=np.float64)) for name, (dims, values) in variables.items()})
    ds.attrs["frame_time"] = pd.Timestamp(when).isoformat()
    path = source_dir / f"{date_filename(when)}{suffix}"
    ds.to_netcdf(path, engine=engine)
    return path
