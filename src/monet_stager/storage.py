"""
Buffer allocation for staged input data.

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

from collections.abc import Mapping

import numpy as np

from monet_stager.constants import SLOT_NEXT, SLOT_PREV, ShapeCategory
from monet_stager.shapes import ShapeDescriptor
from monet_stager.utils import StagingError

Frame = Mapping[ShapeCategory | str, np.ndarray]


class BufferStore:
    """Owns every raw, dual and "now" buffer of one input dataset.

    All buffers are allocated in one pass from a :class:`ShapeDescriptor` and
    are not zero filled; the input source fills the entries it uses.

    - ``raw[category]``: most recently loaded frame at source resolution,
      ``[source extents..., count]``.
    - ``dual[category]``: frames interpolated onto the destination sites,
      ``[destination extents..., count, 2]`` where the last axis holds the
      previous and next time slots.
    - ``now[category]``: time-interpolated snapshot, ``[destination extents..., count]``.
    """

    def __init__(self, shape: ShapeDescriptor, dtype: np.dtype | type = np.float64):
        self.shape = shape
        self.dtype = np.dtype(dtype)
        self.raw: dict[ShapeCategory, np.ndarray] = {}
        self.dual: dict[ShapeCategory, np.ndarray] = {}
        self.now: dict[ShapeCategory, np.ndarray] = {}
        for category in ShapeCategory:
            self.raw[category] = np.empty(shape.raw_shape(category), dtype=self.dtype)
            self.dual[category] = np.empty(shape.dual_shape(category), dtype=self.dtype)
            self.now[category] = np.empty(shape.now_shape(category), dtype=self.dtype)

    @property
    def nbytes(self) -> int:
        return sum(arr.nbytes for buffers in (self.raw, self.dual, self.now) for arr in buffers.values())

    def store_frame(self, frame: Frame) -> None:
        """Copy a freshly loaded frame into the raw buffers.

        Args:
            frame: Mapping of category (or its label, e.g. ``"2d_ax23"``) to an
                array shaped like that category's raw buffer. Categories absent
                from the mapping keep their current raw contents.
        """
        for key, values in frame.items():
            category = ShapeCategory(key)
            values = np.asarray(values, dtype=self.dtype)
            expected = self.raw[category].shape
            if values.shape != expected:
                msg = f"frame data for {category.value} has shape {values.shape}, expected {expected}"
                raise StagingError(msg)
            self.raw[category][...] = values

    def shift(self) -> None:
        """Move the next slot into the previous slot for every category."""
        for dual in self.dual.values():
            dual[..., SLOT_PREV] = dual[..., SLOT_NEXT]

    def now_view(self, category: ShapeCategory) -> np.ndarray:
        """Read-only view of the time-interpolated buffer for ``category``."""
        view = self.now[category].view()
        view.flags.writeable = False
        return view
