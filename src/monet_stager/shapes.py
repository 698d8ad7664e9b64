"""
Shape bookkeeping for staged input data.

Records how many quantities of each dimensionality a dataset carries and the
extents of its source and destination coordinate axes.

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

from dataclasses import dataclass, field, fields

from monet_stager.constants import ShapeCategory
from monet_stager.utils import StagingError


@dataclass(frozen=True)
class ShapeCounts:
    """Number of quantities in each shape category."""

    l0d: int = 0
    l1d_ax1: int = 0
    l1d_ax2: int = 0
    l1d_ax3: int = 0
    l2d_ax23: int = 0
    l2d_ax12: int = 0
    l2d_ax13: int = 0
    l3d: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if int(value) != value or value < 0:
                msg = f"{f.name} must be a non-negative integer, got {value!r}"
                raise StagingError(msg)

    def __getitem__(self, category: ShapeCategory) -> int:
        return int(getattr(self, category.count_field))

    @classmethod
    def from_mapping(cls, counts: dict[ShapeCategory, int]) -> ShapeCounts:
        return cls(**{category.count_field: int(n) for category, n in counts.items()})

    def populated(self) -> list[ShapeCategory]:
        """Categories holding at least one quantity, in declaration order."""
        return [category for category in ShapeCategory if self[category] > 0]


@dataclass(frozen=True)
class SourceSize:
    """Result of discovering an input source's layout."""

    lc1: int
    lc2: int
    lc3: int
    counts: ShapeCounts = field(default_factory=ShapeCounts)

    @property
    def extents(self) -> tuple[int, int, int]:
        return self.lc1, self.lc2, self.lc3


def check_singletons(source_extents: tuple[int, int, int], dest_extents: tuple[int, int, int]) -> None:
    """Require singleton axes to agree between source and destination.

    Raises:
        StagingError: If an axis has extent 1 on one side and not the other.
    """
    for axis, (lc, lci) in enumerate(zip(source_extents, dest_extents, strict=True), start=1):
        if (lc == 1) != (lci == 1):
            msg = (
                f"singleton dimensions must be same for source and destination "
                f"(axis {axis}: source extent {lc}, destination extent {lci})"
            )
            raise StagingError(msg)


@dataclass(frozen=True)
class ShapeDescriptor:
    """Counts plus source/destination extents; defines every buffer shape."""

    counts: ShapeCounts
    source_extents: tuple[int, int, int]
    dest_extents: tuple[int, int, int]

    @property
    def n_sites(self) -> int:
        n1, n2, n3 = self.dest_extents
        return n1 * n2 * n3

    def source_shape(self, category: ShapeCategory) -> tuple[int, ...]:
        return tuple(self.source_extents[ax] for ax in category.axes)

    def dest_shape(self, category: ShapeCategory) -> tuple[int, ...]:
        return tuple(self.dest_extents[ax] for ax in category.axes)

    def raw_shape(self, category: ShapeCategory) -> tuple[int, ...]:
        return (*self.source_shape(category), self.counts[category])

    def dual_shape(self, category: ShapeCategory) -> tuple[int, ...]:
        return (*self.dest_shape(category), self.counts[category], 2)

    def now_shape(self, category: ShapeCategory) -> tuple[int, ...]:
        return (*self.dest_shape(category), self.counts[category])
