"""
Tests for buffer allocation and frame handling.
"""

import numpy as np
import pytest

from monet_stager.constants import SLOT_NEXT, SLOT_PREV, ShapeCategory
from monet_stager.shapes import ShapeCounts, ShapeDescriptor
from monet_stager.storage import BufferStore
from monet_stager.utils import StagingError


@pytest.fixture
def store():
    shape = ShapeDescriptor(
        counts=ShapeCounts(l0d=1, l1d_ax1=2, l3d=1),
        source_extents=(3, 4, 5),
        dest_extents=(6, 7, 8),
    )
    return BufferStore(shape)


def test_allocation(store):
    """Test that every category is allocated with its descriptor shape."""
    for category in ShapeCategory:
        assert store.raw[category].shape == store.shape.raw_shape(category)
        assert store.dual[category].shape == store.shape.dual_shape(category)
        assert store.now[category].shape == store.shape.now_shape(category)
        assert store.raw[category].dtype == np.float64
    assert store.nbytes > 0


def test_store_frame(store):
    """Test copying a frame, including string keys and absent categories."""
    profile = np.arange(6.0).reshape(3, 2)
    store.store_frame({"0d": np.array([1.5]), ShapeCategory.AX1: profile})
    np.testing.assert_array_equal(store.raw[ShapeCategory.SCALAR], [1.5])
    np.testing.assert_array_equal(store.raw[ShapeCategory.AX1], profile)

    store.store_frame({ShapeCategory.SCALAR: np.array([2.5])})
    np.testing.assert_array_equal(store.raw[ShapeCategory.AX1], profile)

    # the store owns a copy
    profile[:] = -1
    assert store.raw[ShapeCategory.AX1][0, 0] == 0.0


def test_store_frame_shape_mismatch(store):
    with pytest.raises(StagingError, match="expected"):
        store.store_frame({ShapeCategory.AX1: np.zeros((3, 1))})


def test_shift(store):
    """Test that shifting copies the next slot into the previous slot."""
    dual = store.dual[ShapeCategory.AX1]
    dual[..., SLOT_PREV] = 1.0
    dual[..., SLOT_NEXT] = 2.0
    store.shift()
    np.testing.assert_array_equal(dual[..., SLOT_PREV], 2.0)
    np.testing.assert_array_equal(dual[..., SLOT_NEXT], 2.0)


def test_now_view_is_read_only(store):
    store.now[ShapeCategory.SCALAR][...] = 3.0
    view = store.now_view(ShapeCategory.SCALAR)
    np.testing.assert_array_equal(view, [3.0])
    with pytest.raises(ValueError):
        view[0] = 1.0
    # the owner can still write
    store.now[ShapeCategory.SCALAR][...] = 4.0
    assert view[0] == 4.0
