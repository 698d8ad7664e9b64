"""
Unit tests for the netCDF input source.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from helpers import START, make_config
from monet_stager.constants import ShapeCategory
from monet_stager.core import InputData
from monet_stager.grid import MeshGrid
from monet_stager.io import NetCDFSource, write_frame, write_source_grid
from monet_stager.utils import InputDataLoadError

X1 = np.array([0.0, 1.0, 2.0, 3.0])
X2 = np.array([0.0, 1.0, 2.0])
X3 = np.array([0.0])


def _field(scale: float) -> np.ndarray:
    g1, g2, _ = np.meshgrid(X1, X2, X3, indexing="ij")
    return scale * (g1 + 10 * g2)


def _write_frames(source_dir: Path, n_frames: int = 3, dims=("x1", "x2", "x3")) -> None:
    for k in range(n_frames):
        scale = float(k + 1)
        volume = _field(scale)
        write_frame(
            source_dir,
            START + pd.Timedelta(seconds=60 * k),
            {
                "temp": (dims, volume),
                "surface": ((dims[1], dims[0]), volume[..., 0].T),
                "column": ((dims[0],), scale * X1),
                "total": ((), scale * 100.0),
            },
        )


@pytest.fixture
def grid():
    return MeshGrid([0.5, 2.5], [0.0, 0.5, 2.0], [0.0])


def test_frame_file_names(tmp_path: Path) -> None:
    path = write_frame(tmp_path, START + pd.Timedelta(seconds=90), {"total": ((), 1.0)})
    assert path.name == "20160907_00090.000000.nc"


def test_netcdf_source_roundtrip(tmp_path: Path, grid: MeshGrid) -> None:
    """Test staging data read from netCDF files."""
    write_source_grid(tmp_path, X1, X2, X3)
    _write_frames(tmp_path)

    source = NetCDFSource()
    data = InputData(source, name="netcdf")
    data.init(make_config(), tmp_path, grid, 0.0, 60.0, START)

    assert source.variables == {
        ShapeCategory.AX1: ["column"],
        ShapeCategory.AX12: ["surface"],
        ShapeCategory.VOLUME: ["temp"],
        ShapeCategory.SCALAR: ["total"],
    }
    assert data.shape.source_extents == (4, 3, 1)

    g1, g2, _ = np.meshgrid(grid.x1, grid.x2, grid.x3, indexing="ij")
    expected = g1 + 10 * g2
    np.testing.assert_allclose(data.now_3d[..., 0], expected)
    np.testing.assert_allclose(data.now_2d_ax12[..., 0], expected[..., 0])
    np.testing.assert_allclose(data.now_1d_ax1[:, 0], grid.x1)
    np.testing.assert_allclose(data.now_0d, [100.0])

    # halfway to the second frame, which doubles every value
    data.update(make_config(), 0.0, 30.0, grid, START + pd.Timedelta(seconds=30))
    np.testing.assert_allclose(data.now_3d[..., 0], 1.5 * expected)

    # the third frame is loaded once the second is reached
    data.update(make_config(), 0.0, 60.0, grid, START + pd.Timedelta(seconds=60))
    assert data.refdate[1] == START + pd.Timedelta(seconds=120)
    np.testing.assert_allclose(data.now_0d, [200.0])


def test_cf_axis_lookup(tmp_path: Path) -> None:
    """Test resolving axes through their CF axis attributes."""
    write_source_grid(
        tmp_path,
        X1,
        X2,
        X3,
        axis_names=("lon", "lat", "lev"),
        axis_attrs=({"axis": "X"}, {"axis": "Y"}, {"axis": "Z"}),
    )
    _write_frames(tmp_path, n_frames=2, dims=("lon", "lat", "lev"))

    source = NetCDFSource(axis_names=("X", "Y", "Z"))
    data = InputData(source)
    data.init(make_config(), tmp_path, MeshGrid([1.0, 1.5], [1.5, 2.0], [0.0]), 0.0, 60.0, START)

    assert source.axis_dims == ("lon", "lat", "lev")
    np.testing.assert_allclose(data.now_3d[:, 0, 0, 0], [16.0, 16.5])


def test_missing_frame(tmp_path: Path, grid: MeshGrid) -> None:
    """Test that a gap in the frame sequence raises a load error."""
    write_source_grid(tmp_path, X1, X2, X3)
    _write_frames(tmp_path, n_frames=1)

    data = InputData(NetCDFSource())
    with pytest.raises(InputDataLoadError, match="not found"):
        data.init(make_config(), tmp_path, grid, 0.0, 60.0, START)


def test_missing_grid(tmp_path: Path, grid: MeshGrid) -> None:
    data = InputData(NetCDFSource())
    with pytest.raises(InputDataLoadError, match="Source grid file"):
        data.init(make_config(), tmp_path, grid, 0.0, 60.0, START)


def test_no_frames(tmp_path: Path, grid: MeshGrid) -> None:
    write_source_grid(tmp_path, X1, X2, X3)
    data = InputData(NetCDFSource())
    with pytest.raises(InputDataLoadError, match="No frame files"):
        data.init(make_config(), tmp_path, grid, 0.0, 60.0, START)


def test_unknown_dimensions_are_ignored(tmp_path: Path) -> None:
    write_source_grid(tmp_path, X1, X2, X3)
    write_frame(tmp_path, START, {"total": ((), 1.0), "spectrum": (("band",), np.ones(5))})

    source = NetCDFSource()
    data = InputData(source)
    data.set_source(tmp_path)
    with pytest.warns(UserWarning, match="spectrum"):
        size = source.load_size(data)
    assert size.counts.l0d == 1
    assert size.extents == (4, 3, 1)
