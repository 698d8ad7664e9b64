"""
Source and destination grid containers.

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

from dataclasses import dataclass

import numpy as np
import xarray as xr

from monet_stager.constants import AXIS_DIMS


class InvalidGridError(ValueError): ...


@dataclass
class SourceGrid:
    """Plaid coordinates of an input dataset, one vector per axis."""

    coord1: np.ndarray
    coord2: np.ndarray
    coord3: np.ndarray

    def __post_init__(self) -> None:
        self.coord1 = np.atleast_1d(np.asarray(self.coord1, dtype=np.float64))
        self.coord2 = np.atleast_1d(np.asarray(self.coord2, dtype=np.float64))
        self.coord3 = np.atleast_1d(np.asarray(self.coord3, dtype=np.float64))
        for name, coord in zip(("coord1", "coord2", "coord3"), self.coords, strict=True):
            if coord.ndim != 1:
                msg = f"{name} must be one dimensional, got shape {coord.shape}"
                raise InvalidGridError(msg)

    @property
    def coords(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.coord1, self.coord2, self.coord3

    @property
    def extents(self) -> tuple[int, int, int]:
        return self.coord1.size, self.coord2.size, self.coord3.size


@dataclass
class MeshGrid:
    """Destination (simulation) grid onto which input data are interpolated.

    The grid is either plaid, given by three 1-d axis vectors, or curvilinear,
    given by three arrays of identical shape ``(lx1, lx2, lx3)`` holding the
    coordinate of every site.
    """

    x1: np.ndarray
    x2: np.ndarray
    x3: np.ndarray

    def __post_init__(self) -> None:
        """Validate the grid arrays."""
        self.x1 = np.atleast_1d(np.asarray(self.x1, dtype=np.float64))
        self.x2 = np.atleast_1d(np.asarray(self.x2, dtype=np.float64))
        self.x3 = np.atleast_1d(np.asarray(self.x3, dtype=np.float64))
        ndims = {self.x1.ndim, self.x2.ndim, self.x3.ndim}
        msg = None
        if ndims == {1}:
            pass
        elif ndims == {3}:
            if not self.x1.shape == self.x2.shape == self.x3.shape:
                msg = "Curvilinear grid arrays must share one (lx1, lx2, lx3) shape."
        else:
            msg = "Grid arrays must be either all 1-d axes or all 3-d site arrays."
        if msg is not None:
            raise InvalidGridError(msg)

    @property
    def is_plaid(self) -> bool:
        return self.x1.ndim == 1

    @property
    def shape(self) -> tuple[int, int, int]:
        if self.is_plaid:
            return self.x1.size, self.x2.size, self.x3.size
        return self.x1.shape  # type: ignore[return-value]

    @property
    def lx1(self) -> int:
        return self.shape[0]

    @property
    def lx2(self) -> int:
        return self.shape[1]

    @property
    def lx3(self) -> int:
        return self.shape[2]

    def flat_coordinates(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Coordinates of every grid site as flat (C-ordered) vectors."""
        if self.is_plaid:
            grids = np.meshgrid(self.x1, self.x2, self.x3, indexing="ij")
        else:
            grids = [self.x1, self.x2, self.x3]
        return tuple(np.ascontiguousarray(g).ravel() for g in grids)  # type: ignore[return-value]

    def to_dataset(self) -> xr.Dataset:
        """Create a coordinate-only dataset describing the grid.

        Plaid grids get dimension coordinates ``x1, x2, x3``; curvilinear grids
        get ``grid_x1, grid_x2, grid_x3`` spanning all three dimensions.
        """
        if self.is_plaid:
            return xr.Dataset(coords={dim: (dim, values) for dim, values in zip(AXIS_DIMS, (self.x1, self.x2, self.x3))})
        return xr.Dataset(
            coords={
                f"grid_{dim}": (AXIS_DIMS, values) for dim, values in zip(AXIS_DIMS, (self.x1, self.x2, self.x3))
            }
        )
