"""
Enumerations shared across monet-stager.

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

from enum import Enum

# Slot indices along the last axis of the dual (time-bracketing) buffers
SLOT_PREV = 0
SLOT_NEXT = 1

AXIS_DIMS = ("x1", "x2", "x3")


class ShapeCategory(Enum):
    """Dimensionality class of a staged quantity.

    The value is the short label used for variable names and count fields,
    ``axes`` lists the (0-based) coordinate axes spanned by the category.
    """

    SCALAR = "0d"
    AX1 = "1d_ax1"
    AX2 = "1d_ax2"
    AX3 = "1d_ax3"
    AX23 = "2d_ax23"
    AX12 = "2d_ax12"
    AX13 = "2d_ax13"
    VOLUME = "3d"

    @property
    def axes(self) -> tuple[int, ...]:
        return _CATEGORY_AXES[self]

    @property
    def count_field(self) -> str:
        """Name of the matching field on :class:`monet_stager.shapes.ShapeCounts`."""
        return f"l{self.value}"

    @property
    def dims(self) -> tuple[str, ...]:
        return tuple(AXIS_DIMS[ax] for ax in self.axes)

    @classmethod
    def from_axes(cls, axes: tuple[int, ...]) -> ShapeCategory:
        """Look up the category spanning exactly ``axes`` (in any order)."""
        key = tuple(sorted(axes))
        for category, category_axes in _CATEGORY_AXES.items():
            if category_axes == key:
                return category
        msg = f"No shape category spans axes {axes}"
        raise ValueError(msg)


_CATEGORY_AXES: dict[ShapeCategory, tuple[int, ...]] = {
    ShapeCategory.SCALAR: (),
    ShapeCategory.AX1: (0,),
    ShapeCategory.AX2: (1,),
    ShapeCategory.AX3: (2,),
    ShapeCategory.AX23: (1, 2),
    ShapeCategory.AX12: (0, 1),
    ShapeCategory.AX13: (0, 2),
    ShapeCategory.VOLUME: (0, 1, 2),
}


class StagingState(Enum):
    """Refresh state of an input dataset."""

    UNPRIMED = "unprimed"
    LOADED = "loaded"
