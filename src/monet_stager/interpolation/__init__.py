"""
Spatial interpolation of input frames onto destination sites.
"""

from monet_stager.interpolation.core import (
    AxisWeights,
    InterpolationPlan,
    SpatialInterpolator,
    axis_weights,
    interp1,
    interp2,
    interp3,
)

__all__ = [
    "AxisWeights",
    "InterpolationPlan",
    "SpatialInterpolator",
    "axis_weights",
    "interp1",
    "interp2",
    "interp3",
]
