"""
monet-stager: staging of external input data in space and time.

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

from monet_stager.config import StagingConfig
from monet_stager.constants import ShapeCategory, StagingState
from monet_stager.core import InputData, InputSource
from monet_stager.grid import InvalidGridError, MeshGrid, SourceGrid
from monet_stager.io import NetCDFSource, write_frame, write_source_grid
from monet_stager.shapes import ShapeCounts, ShapeDescriptor, SourceSize
from monet_stager.utils import InputDataLoadError, StagingError

__version__ = "0.1.0"

__all__ = [
    "InputData",
    "InputDataLoadError",
    "InputSource",
    "InvalidGridError",
    "MeshGrid",
    "NetCDFSource",
    "ShapeCategory",
    "ShapeCounts",
    "ShapeDescriptor",
    "SourceGrid",
    "SourceSize",
    "StagingConfig",
    "StagingError",
    "StagingState",
    "write_frame",
    "write_source_grid",
]
