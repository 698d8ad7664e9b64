"""
Spatial interpolation engine with precomputed weights.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Literal

import numpy as np

from monet_stager.constants import SLOT_NEXT, ShapeCategory
from monet_stager.interpolation.utils import destination_sites, resolve_active_axes, select_active
from monet_stager.methods._numba_kernels import (
    apply_weights_1d,
    apply_weights_2d,
    apply_weights_3d,
    compute_axis_weights,
)
from monet_stager.shapes import ShapeDescriptor
from monet_stager.storage import BufferStore
from monet_stager.utils import ensure_monotonic


@dataclass
class AxisWeights:
    """Bracketing indices and fractions locating targets along one source axis."""

    lower: np.ndarray
    frac: np.ndarray
    valid: np.ndarray
    n_outside: int = 0


@dataclass
class InterpolationPlan:
    """Precomputed weights for one shape category."""

    category: ShapeCategory
    axes: tuple[int, ...]
    weights: tuple[AxisWeights, ...]
    out_shape: tuple[int, ...]

    @property
    def valid(self) -> np.ndarray:
        valid = self.weights[0].valid.copy()
        for w in self.weights[1:]:
            valid &= w.valid
        return valid


def axis_weights(
    coord: np.ndarray,
    targets: np.ndarray,
    method: Literal["linear", "nearest"] = "linear",
    fill_method: Literal["clamp", "nan"] = "clamp",
) -> AxisWeights:
    """Compute interpolation weights of ``targets`` along a monotonic ``coord``.

    Args:
        coord: Source coordinate, strictly increasing or strictly decreasing
        targets: Destination coordinates
        method: 'linear' or 'nearest'
        fill_method: 'clamp' holds boundary values outside the source range,
            'nan' marks those targets invalid

    Returns:
        Weights usable by the apply kernels.
    """
    coord = ensure_monotonic(coord)
    targets = np.ascontiguousarray(targets, dtype=np.float64).ravel()

    descending = coord.size > 1 and coord[0] > coord[-1]
    if descending:
        coord = np.ascontiguousarray(coord[::-1])

    lower, frac, valid = compute_axis_weights(coord, targets, fill_method == "clamp")

    if method == "nearest":
        frac = np.where(frac >= 0.5, 1.0, 0.0)

    if descending:
        lower = coord.size - 2 - lower
        frac = 1.0 - frac

    n_outside = 0
    if coord.size > 1:
        n_outside = int(np.count_nonzero((targets < coord[0]) | (targets > coord[-1])))

    return AxisWeights(lower=lower, frac=frac, valid=valid, n_outside=n_outside)


def _as_stack(values: np.ndarray, ndim: int) -> tuple[np.ndarray, bool]:
    """Add a trailing quantity axis when a single field is given."""
    values = np.asarray(values, dtype=np.float64)
    if values.ndim == ndim:
        return np.ascontiguousarray(values[..., np.newaxis]), True
    if values.ndim == ndim + 1:
        return np.ascontiguousarray(values), False
    msg = f"Expected a {ndim}-d field or a stack of them, got shape {values.shape}"
    raise ValueError(msg)


def _apply(values: np.ndarray, weights: tuple[AxisWeights, ...], valid: np.ndarray) -> np.ndarray:
    if len(weights) == 1:
        (wa,) = weights
        return apply_weights_1d(values, wa.lower, wa.frac, valid)
    if len(weights) == 2:
        wa, wb = weights
        return apply_weights_2d(values, wa.lower, wa.frac, wb.lower, wb.frac, valid)
    if len(weights) == 3:
        wa, wb, wc = weights
        return apply_weights_3d(values, wa.lower, wa.frac, wb.lower, wb.frac, wc.lower, wc.frac, valid)
    msg = f"Unsupported interpolation rank: {len(weights)}"
    raise ValueError(msg)


def interp1(coord1, values, coord1i, method="linear", fill_method="clamp") -> np.ndarray:
    """Linear interpolation of a profile (or stack of profiles) onto ``coord1i``."""
    stack, single = _as_stack(values, 1)
    w1 = axis_weights(coord1, coord1i, method, fill_method)
    result = _apply(stack, (w1,), w1.valid)
    return result[:, 0] if single else result


def interp2(coord1, coord2, values, coord1i, coord2i, method="linear", fill_method="clamp") -> np.ndarray:
    """Bilinear interpolation onto the paired sites ``(coord1i[k], coord2i[k])``."""
    stack, single = _as_stack(values, 2)
    w1 = axis_weights(coord1, coord1i, method, fill_method)
    w2 = axis_weights(coord2, coord2i, method, fill_method)
    result = _apply(stack, (w1, w2), w1.valid & w2.valid)
    return result[:, 0] if single else result


def interp3(
    coord1, coord2, coord3, values, coord1i, coord2i, coord3i, method="linear", fill_method="clamp"
) -> np.ndarray:
    """Trilinear interpolation onto the paired sites ``(coord1i[k], coord2i[k], coord3i[k])``."""
    stack, single = _as_stack(values, 3)
    w1 = axis_weights(coord1, coord1i, method, fill_method)
    w2 = axis_weights(coord2, coord2i, method, fill_method)
    w3 = axis_weights(coord3, coord3i, method, fill_method)
    result = _apply(stack, (w1, w2, w3), w1.valid & w2.valid & w3.valid)
    return result[:, 0] if single else result


class SpatialInterpolator:
    """Projects raw frames onto destination sites for every shape category.

    Weights depend only on the source and destination coordinates, so they are
    built once (:meth:`build_structures`) and applied to every loaded frame
    (:meth:`interpolate`).
    """

    def __init__(
        self,
        method: Literal["linear", "nearest"] = "linear",
        fill_method: Literal["clamp", "nan"] = "clamp",
    ):
        """Initialize the interpolator.

        Args:
            method: Interpolation method ('linear', 'nearest')
            fill_method: How to handle destination sites outside the source range ('clamp' or 'nan')
        """
        if method not in ("linear", "nearest"):
            msg = f"Unsupported method: {method}"
            raise ValueError(msg)
        if fill_method not in ("clamp", "nan"):
            msg = f"Unsupported fill_method: {fill_method}"
            raise ValueError(msg)
        self.method = method
        self.fill_method = fill_method
        self.plans: dict[ShapeCategory, InterpolationPlan] | None = None

    @property
    def is_built(self) -> bool:
        return self.plans is not None

    def reset(self) -> None:
        """Discard precomputed weights, e.g. after coordinates change."""
        self.plans = None

    def build_structures(
        self,
        shape: ShapeDescriptor,
        source_coords: tuple[np.ndarray, np.ndarray, np.ndarray],
        dest_coords: tuple[np.ndarray, np.ndarray, np.ndarray],
        stacklevel: int = 1,
    ) -> None:
        """Precompute weights for every populated, non-scalar category.

        Args:
            shape: Counts and extents of the dataset
            source_coords: Plaid source coordinates, one vector per axis
            dest_coords: Flat destination coordinates of length ``lc1i*lc2i*lc3i``
            stacklevel: Frames above this call that the out-of-range warning is
                attributed to

        Raises:
            StagingError: If a category's singleton pattern has no supported
                interpolation rank.
        """
        plans: dict[ShapeCategory, InterpolationPlan] = {}
        n_outside = 0
        for category in shape.counts.populated():
            if category is ShapeCategory.SCALAR:
                continue
            axes = resolve_active_axes(category, shape.source_extents)
            sites = destination_sites(category, axes, dest_coords, shape.dest_extents)
            weights = tuple(
                axis_weights(source_coords[ax], site, self.method, self.fill_method)
                for ax, site in zip(axes, sites, strict=True)
            )
            n_outside += sum(w.n_outside for w in weights)
            plans[category] = InterpolationPlan(category, axes, weights, shape.dest_shape(category))

        if n_outside:
            fill = "held at the boundary value" if self.fill_method == "clamp" else "set to NaN"
            warnings.warn(
                f"{n_outside} destination coordinate(s) fall outside the source range and will be {fill}.",
                stacklevel=stacklevel + 1,
            )
        self.plans = plans

    def interpolate(self, category: ShapeCategory, raw: np.ndarray) -> np.ndarray:
        """Interpolate one category's raw frame onto its destination sites.

        Args:
            category: Shape category of ``raw``
            raw: Frame shaped ``[source extents..., count]``

        Returns:
            Array shaped ``[destination extents..., count]``
        """
        if category is ShapeCategory.SCALAR:
            return np.array(raw, dtype=np.float64, copy=True)
        if self.plans is None or category not in self.plans:
            msg = f"Weights not precomputed for {category.value}; call build_structures() first."
            raise RuntimeError(msg)

        plan = self.plans[category]
        values = select_active(raw, category, plan.axes)
        result = _apply(values, plan.weights, plan.valid)
        return result.reshape(*plan.out_shape, values.shape[-1])

    def interpolate_into(self, store: BufferStore) -> None:
        """Fill the next slot of every populated dual buffer from the raw buffers."""
        for category in store.shape.counts.populated():
            store.dual[category][..., SLOT_NEXT] = self.interpolate(category, store.raw[category])


__all__ = [
    "AxisWeights",
    "InterpolationPlan",
    "SpatialInterpolator",
    "axis_weights",
    "interp1",
    "interp2",
    "interp3",
]
