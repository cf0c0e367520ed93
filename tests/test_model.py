# tests/test_model.py
import numpy as np
import pytest

from tinyconv.errors import InvalidShape, ReadError
from tinyconv.layers import Conv2D, Dense
from tinyconv.model import ConvNet, lenet_lite, load_weight_dir, save_weight_dir
from tinyconv.profiler import fmt_size, latency_ms, weight_bytes
from tinyconv.tensor import Tensor3D


@pytest.fixture
def small_net(make_conv, make_dense):
    c1, c2 = make_conv(4, 2, 3, 3), make_conv(3, 4, 3, 3)
    return ConvNet((2, 8, 7), [c1, c2], make_dense(5, 3 * 4 * 3))


def test_intermediate_shapes(small_net):
    assert small_net.shapes == [(2, 8, 7), (4, 6, 5), (3, 4, 3)]


def test_forward_matches_layer_by_layer(small_net, rng):
    x = rng.standard_normal((2, 8, 7)).astype(np.float32)
    h = small_net.convs[1](small_net.convs[0](Tensor3D.from_array(x)))
    expected = small_net.dense(h.flatten())
    np.testing.assert_array_equal(small_net.forward(x), expected)
    assert abs(small_net.forward(x).sum() - 1.0) < 1e-5
    assert small_net.predict(x) == int(np.argmax(expected))


def test_forward_batch(small_net, rng):
    xs = rng.standard_normal((3, 2, 8, 7))
    probs = small_net.forward_batch(xs)
    assert probs.shape == (3, 5)
    np.testing.assert_array_equal(probs[2], small_net.forward(xs[2]))


def test_plane_mismatch_between_convs():
    with pytest.raises(InvalidShape):
        ConvNet((1, 8, 8), [Conv2D(4, 1, 3, 3), Conv2D(2, 3, 3, 3)], Dense(2, 2 * 4 * 4))


def test_dense_width_mismatch():
    with pytest.raises(InvalidShape, match="input cells"):
        ConvNet((1, 8, 8), [Conv2D(4, 1, 3, 3)], Dense(2, 100))


def test_weight_dir_round_trip(small_net, tmp_path, rng):
    n = save_weight_dir(small_net, tmp_path)
    assert n == weight_bytes(small_net)
    assert (tmp_path / "c1_kernel.bin").stat().st_size == 4 * 2 * 3 * 3 * 4
    assert (tmp_path / "fc_bias.bin").stat().st_size == 5 * 4

    fresh = ConvNet((2, 8, 7), [Conv2D(4, 2, 3, 3), Conv2D(3, 4, 3, 3)], Dense(5, 36))
    load_weight_dir(fresh, tmp_path)
    x = rng.standard_normal((2, 8, 7))
    np.testing.assert_array_equal(fresh.forward(x), small_net.forward(x))


def test_weight_dir_truncated_file(small_net, tmp_path):
    save_weight_dir(small_net, tmp_path)
    path = tmp_path / "c2_bias.bin"
    path.write_bytes(path.read_bytes()[:-4])
    fresh = ConvNet((2, 8, 7), [Conv2D(4, 2, 3, 3), Conv2D(3, 4, 3, 3)], Dense(5, 36))
    with pytest.raises(ReadError, match="c2_bias.bin"):
        load_weight_dir(fresh, tmp_path)
    assert not fresh.convs[1].loaded


def test_state_dict_round_trip(small_net, rng):
    sd = small_net.state_dict()
    assert sorted(sd) == ["c1.W", "c1.b", "c2.W", "c2.b", "fc.W", "fc.b"]
    assert sd["c2.W"].shape == (3, 4, 3, 3)
    fresh = ConvNet((2, 8, 7), [Conv2D(4, 2, 3, 3), Conv2D(3, 4, 3, 3)], Dense(5, 36))
    fresh.load_state_dict(sd)
    x = rng.standard_normal((2, 8, 7))
    np.testing.assert_array_equal(fresh.forward(x), small_net.forward(x))


def test_lenet_lite_topology():
    net = lenet_lite()
    assert net.shapes[-1] == (16, 20, 20)
    assert net.dense.input_cells == 6400
    assert weight_bytes(net) == 4 * (8 * 25 + 8 + 16 * 8 * 25 + 16 + 10 * 6400 + 10)


def test_profiler_helpers():
    lat = latency_ms(lambda: None, warmup=1, reps=5)
    assert set(lat) == {"mean", "p50", "p90", "max"}
    assert fmt_size(512) == "512.00 B"
    assert fmt_size(2048) == "2.00 KB"
