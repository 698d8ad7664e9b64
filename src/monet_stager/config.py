"""
Run configuration for staged input data.

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

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import pandas as pd

from monet_stager.utils import to_timestamp

INTERP_METHODS = ("linear", "nearest")
FILL_METHODS = ("clamp", "nan")


@dataclass
class StagingConfig:
    """Settings shared by every input dataset of a simulation.

    Attributes:
        start: Simulation start time. Input frames are assumed to fall on
            ``start + n * cadence``.
        interp_method: Spatial interpolation scheme ('linear' or 'nearest').
        fill_method: Treatment of destination sites outside the source
            coordinate range: 'clamp' holds the boundary value, 'nan' marks them
            missing.
    """

    start: pd.Timestamp
    interp_method: Literal["linear", "nearest"] = "linear"
    fill_method: Literal["clamp", "nan"] = "clamp"

    def __post_init__(self) -> None:
        """Validate the configuration values."""
        self.start = pd.Timestamp(self.start)
        if self.interp_method not in INTERP_METHODS:
            msg = f"Unsupported interp_method: {self.interp_method}. Supported methods are: {', '.join(INTERP_METHODS)}"
            raise ValueError(msg)
        if self.fill_method not in FILL_METHODS:
            msg = f"Unsupported fill_method: {self.fill_method}. Supported methods are: {', '.join(FILL_METHODS)}"
            raise ValueError(msg)

    @classmethod
    def from_ymd(cls, ymd: Sequence[int], utsec: float, **kwargs: Any) -> StagingConfig:
        """Build a configuration from a (year, month, day) start date and UT seconds."""
        return cls(start=to_timestamp(ymd, utsec), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "interp_method": self.interp_method,
            "fill_method": self.fill_method,
        }

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> StagingConfig:
        return cls(
            start=pd.Timestamp(values["start"]),
            interp_method=values.get("interp_method", "linear"),
            fill_method=values.get("fill_method", "clamp"),
        )

    def to_file(self, filepath: str | Path) -> None:
        """Save the configuration as JSON.

        Args:
            filepath: Path to save the configuration.
        """
        Path(filepath).write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def from_file(cls, filepath: str | Path) -> StagingConfig:
        """Load a configuration written by :meth:`to_file`.

        Args:
            filepath: Path to the JSON file.

        Returns:
            The reconstructed configuration.
        """
        config_str = Path(filepath).read_text()
        if not config_str.strip():
            raise ValueError(f"Configuration file {filepath} is empty.")
        return cls.from_dict(json.loads(config_str))
