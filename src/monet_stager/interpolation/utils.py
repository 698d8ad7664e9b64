"""
Utility functions for interpolation.
"""

import numpy as np

from monet_stager.constants import ShapeCategory
from monet_stager.utils import StagingError

__all__ = [
    "destination_sites",
    "resolve_active_axes",
    "select_active",
]


def resolve_active_axes(category: ShapeCategory, source_extents: tuple[int, int, int]) -> tuple[int, ...]:
    """Pick the axes a category is interpolated along.

    1-D categories always use their own axis. 2-D categories fall back to 1-D
    along the non-singleton axis, 3-D categories fall back to 2-D when one axis
    is singleton. Any other pattern cannot be interpolated.
    """
    axes = category.axes
    active = tuple(ax for ax in axes if source_extents[ax] > 1)

    if len(axes) == 1:
        return axes
    if len(axes) == 2 and len(active) >= 1:
        return active
    if len(axes) == 3 and len(active) >= 2:
        return active

    msg = (
        f"cannot determine type of interpolation for data{category.value} "
        f"(source extents {source_extents})"
    )
    raise StagingError(msg)


def destination_sites(
    category: ShapeCategory,
    axes: tuple[int, ...],
    dest_coords: tuple[np.ndarray, np.ndarray, np.ndarray],
    dest_extents: tuple[int, int, int],
) -> list[np.ndarray]:
    """Destination coordinates of a category's sites along ``axes``.

    The flat destination vectors are viewed as ``dest_extents`` arrays and
    sliced at index 0 along every axis the category does not span.
    """
    index = tuple(slice(None) if ax in category.axes else 0 for ax in range(3))
    return [np.ascontiguousarray(dest_coords[ax].reshape(dest_extents)[index]).ravel() for ax in axes]


def select_active(raw: np.ndarray, category: ShapeCategory, axes: tuple[int, ...]) -> np.ndarray:
    """Drop the singleton axes of a raw frame that take no part in interpolation."""
    index = tuple(slice(None) if ax in axes else 0 for ax in category.axes)
    return np.ascontiguousarray(raw[(*index, Ellipsis)])
