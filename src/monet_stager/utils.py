"""
Errors, coordinate checks and calendar helpers for monet-stager.

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

from collections.abc import Sequence

import numpy as np
import pandas as pd


class StagingError(RuntimeError):
    """A staging contract was violated (call order, sizes, shapes).

    These represent programming or configuration errors and are not meant to be
    caught by a host simulation.
    """


class InputDataLoadError(Exception):
    """An input source could not produce a frame (missing or malformed data)."""


def ensure_monotonic(coord: np.ndarray, name: str = "coordinate") -> np.ndarray:
    """Validate that a source coordinate vector is strictly monotonic.

    Args:
        coord: 1-d coordinate array.
        name: Label used in the error message.

    Returns:
        The coordinate as a contiguous float64 array.
    """
    coord = np.ascontiguousarray(coord, dtype=np.float64)
    if coord.ndim != 1:
        msg = f"{name} must be one dimensional, got shape {coord.shape}"
        raise StagingError(msg)
    if coord.size > 1:
        steps = np.diff(coord)
        if not (np.all(steps > 0) or np.all(steps < 0)):
            msg = f"{name} must be strictly increasing or strictly decreasing"
            raise StagingError(msg)
    return coord


def to_timestamp(ymd: Sequence[int], utsec: float) -> pd.Timestamp:
    """Combine a (year, month, day) date and UT seconds into a timestamp."""
    year, month, day = (int(v) for v in ymd)
    return pd.Timestamp(year=year, month=month, day=day) + pd.Timedelta(seconds=float(utsec))


def split_timestamp(when: pd.Timestamp) -> tuple[tuple[int, int, int], float]:
    """Split a timestamp into its (year, month, day) date and UT seconds."""
    when = pd.Timestamp(when)
    midnight = when.normalize()
    return (midnight.year, midnight.month, midnight.day), (when - midnight).total_seconds()


def date_increment(when: pd.Timestamp, seconds: float) -> pd.Timestamp:
    """Advance ``when`` by ``seconds``, rolling the calendar date as needed."""
    return pd.Timestamp(when) + pd.Timedelta(seconds=float(seconds))


def find_last_date(start: pd.Timestamp, target: pd.Timestamp, cadence: float) -> pd.Timestamp:
    """Find the last on-cadence frame time at or before ``target``.

    Frames are assumed to exist at ``start + n * cadence`` for integer ``n``.

    Args:
        start: Simulation start (first frame time).
        target: Time for which the preceding frame is wanted, e.g. a restart time.
        cadence: Frame cadence in seconds, must be positive.

    Returns:
        Timestamp of the frame preceding (or coinciding with) ``target``.
    """
    if cadence <= 0:
        msg = f"cadence must be positive, got {cadence}"
        raise ValueError(msg)
    step = pd.Timedelta(seconds=float(cadence))
    elapsed = (pd.Timestamp(target) - pd.Timestamp(start)) / step
    # tolerate float roundoff when target sits exactly on a frame
    n_frames = int(np.floor(elapsed + 1e-9))
    return pd.Timestamp(start) + n_frames * step


def date_filename(when: pd.Timestamp) -> str:
    """File stem for a frame time, formatted as ``YYYYMMDD_SSSSS.SSSSSS``."""
    _, utsec = split_timestamp(when)
    return f"{pd.Timestamp(when):%Y%m%d}_{utsec:012.6f}"
