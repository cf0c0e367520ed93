# tinyconv/model.py
import logging
import os

import numpy as np

from . import config
from .errors import InvalidShape
from .layers import Conv2D, Dense
from .tensor import Tensor3D
from .weights import save_weights

logger = logging.getLogger(__name__)


class ConvNet:
    """conv -> conv -> ... -> flatten -> dense(softmax), for a fixed input shape."""

    def __init__(self, input_shape, convs, dense, names=None):
        self.input_shape = tuple(input_shape)
        self.convs, self.dense = list(convs), dense
        self.names = list(names) if names else [f"c{i+1}" for i in range(len(self.convs))] + ["fc"]
        if len(self.names) != len(self.convs) + 1:
            raise ValueError(f"expected {len(self.convs) + 1} layer names, got {len(self.names)}")
        # shape of every intermediate tensor, checked once up front
        self.shapes = [self.input_shape]
        for c in self.convs:
            if c.input_planes != self.shapes[-1][0]:
                raise InvalidShape(f"{c!r} input planes", self.shapes[-1][0], c.input_planes)
            self.shapes.append(c.output_shape(self.shapes[-1]))
        flat = int(np.prod(self.shapes[-1]))
        if dense.input_cells != flat:
            raise InvalidShape(f"{dense!r} input cells", flat, dense.input_cells)

    def layers(self):
        return list(zip(self.names, self.convs + [self.dense]))

    def forward(self, x):
        t = x if isinstance(x, Tensor3D) else Tensor3D.from_array(x)
        for c, shape in zip(self.convs, self.shapes[1:]):
            t = c.calc(Tensor3D(*shape), t)
        return self.dense.calc(np.zeros(self.dense.output_cells, dtype=config.DTYPE), t.flatten())

    def forward_batch(self, xs):
        return np.stack([self.forward(x) for x in xs])

    def predict(self, x):
        return int(np.argmax(self.forward(x)))

    def state_dict(self):
        sd = {}
        for name, layer in self.layers():
            sd[f"{name}.W"] = layer.kernel.view().copy(); sd[f"{name}.b"] = layer.bias.view().copy()
        return sd

    def load_state_dict(self, sd):
        for name, layer in self.layers():
            layer.load_arrays(sd[f"{name}.W"], sd[f"{name}.b"])


def weight_paths(directory, name):
    return (os.path.join(directory, name + config.KERNEL_SUFFIX),
            os.path.join(directory, name + config.BIAS_SUFFIX))


def load_weight_dir(net, directory, strict=config.STRICT_LOAD):
    for name, layer in net.layers():
        layer.load_weights(*weight_paths(directory, name), strict=strict)
    logger.info("loaded %d layers from %s", len(net.convs) + 1, directory)
    return net


def save_weight_dir(net, directory):
    os.makedirs(directory, exist_ok=True)
    n = 0
    for name, layer in net.layers():
        kpath, bpath = weight_paths(directory, name)
        n += save_weights(kpath, layer.kernel.values) + save_weights(bpath, layer.bias.values)
    logger.info("wrote %d bytes of weights to %s", n, directory)
    return n


def lenet_lite(height=28, width=28, classes=10):
    """1 -> 8 -> 16 planes with 5x5 kernels, then dense to `classes`."""
    c1, c2 = Conv2D(8, 1, 5, 5), Conv2D(16, 8, 5, 5)
    flat = 16 * (height - 8) * (width - 8)
    return ConvNet((1, height, width), [c1, c2], Dense(classes, flat))
