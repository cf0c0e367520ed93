# tests/test_tensor.py
import numpy as np
import pytest

from tinyconv.errors import InvalidShape
from tinyconv.tensor import Tensor3D


def test_plane_major_layout():
    t = Tensor3D(2, 3, 4, cells=np.arange(24))
    assert t.index(1, 2, 3) == 23
    assert t.get(1, 0, 1) == 13
    assert t.as_array()[1, 0, 1] == 13


def test_from_array_and_flatten():
    arr = np.arange(12, dtype=np.float32).reshape(1, 3, 4)
    t = Tensor3D.from_array(arr)
    assert t.shape == (1, 3, 4)
    flat = t.flatten()
    flat[0] = 99
    assert t.get(0, 0, 0) == 0


def test_from_2d_array_is_single_plane():
    assert Tensor3D.from_array(np.zeros((5, 6))).shape == (1, 5, 6)


def test_set():
    t = Tensor3D(1, 2, 2)
    t.set(0, 1, 0, 2.5)
    np.testing.assert_array_equal(t.cells, [0, 0, 2.5, 0])


def test_cell_count_mismatch():
    with pytest.raises(InvalidShape):
        Tensor3D(2, 2, 2, cells=np.zeros(7))
    with pytest.raises(InvalidShape):
        Tensor3D.from_array(np.zeros((1, 2, 2, 2)))
