# tests/conftest.py
import numpy as np
import pytest

from tinyconv.layers import Conv2D, Dense


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_conv(rng):
    """Conv2D loaded with random weights (or the given ones)."""
    def _make(o, i, kh, kw, kernel=None, bias=None, **kw_):
        conv = Conv2D(o, i, kh, kw, **kw_)
        if kernel is None: kernel = rng.standard_normal((o, i, kh, kw)).astype(np.float32)
        if bias is None: bias = rng.standard_normal(o).astype(np.float32)
        conv.load_arrays(kernel, bias)
        return conv
    return _make


@pytest.fixture
def make_dense(rng):
    def _make(o, i, kernel=None, bias=None, **kw):
        dense = Dense(o, i, **kw)
        if kernel is None: kernel = rng.standard_normal((o, i)).astype(np.float32)
        if bias is None: bias = rng.standard_normal(o).astype(np.float32)
        dense.load_arrays(kernel, bias)
        return dense
    return _make
