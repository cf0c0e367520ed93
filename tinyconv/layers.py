# tinyconv/layers.py
import logging
from dataclasses import dataclass

import numpy as np

from . import config
from .errors import InvalidShape, StateError
from .tensor import Tensor3D
from .weights import WeightTensor

logger = logging.getLogger(__name__)


def relu(x):
    # x > 0 ? x : 0, so NaN maps to 0 as well
    x[~(x > 0)] = 0
    return x


def softmax(cells, stable=config.STABLE_SOFTMAX):
    """In-place softmax over a 1-D array.

    stable=False exponentiates the raw logits, which overflows for large
    inputs but matches reference models that skip the max subtraction.
    """
    if stable:
        cells -= cells.max()
    np.exp(cells, out=cells)
    cells /= cells.sum()
    return cells


@dataclass(frozen=True)
class ConvConfig:
    stride: int = 1
    padding: str = "valid"
    dilation: int = 1
    groups: int = 1
    # out = in - 2*(k//2) instead of in - k + 1; only differs for even k
    legacy_even_size: bool = False

    def validate(self):
        unsupported = []
        if self.stride != 1: unsupported.append(f"stride={self.stride}")
        if self.padding != "valid": unsupported.append(f"padding={self.padding!r}")
        if self.dilation != 1: unsupported.append(f"dilation={self.dilation}")
        if self.groups != 1: unsupported.append(f"groups={self.groups}")
        if unsupported:
            raise ValueError("unsupported Conv2D options: " + ", ".join(unsupported))


class _Layer:
    kernel: WeightTensor
    bias: WeightTensor

    @property
    def loaded(self):
        return self.kernel.loaded and self.bias.loaded

    def load_weights(self, kernel_source, bias_source, strict=config.STRICT_LOAD):
        """Read kernel then bias; nothing is committed unless both reads succeed."""
        if self.loaded:
            raise StateError(f"{self!r}: weights are already loaded")
        k = self.kernel.read(kernel_source, strict=strict)
        b = self.bias.read(bias_source, strict=strict)
        self.kernel.assign(k); self.bias.assign(b)
        logger.info("%r: loaded %d kernel + %d bias values", self, k.size, b.size)

    def load_arrays(self, kernel, bias):
        if self.loaded:
            raise StateError(f"{self!r}: weights are already loaded")
        k = np.asarray(kernel, dtype=config.DTYPE); b = np.asarray(bias, dtype=config.DTYPE)
        for w, a, what in ((self.kernel, k, "kernel"), (self.bias, b, "bias")):
            if a.shape != w.shape and a.shape != (w.size,):
                raise InvalidShape(what, w.shape, a.shape)
        self.kernel.assign(k); self.bias.assign(b)

    def _require_loaded(self):
        if not self.loaded:
            raise StateError(f"{self!r}: calc called before weights were loaded")


class Conv2D(_Layer):
    """Valid 2D cross-correlation + bias + ReLU, stride 1, one group."""

    def __init__(self, output_planes, input_planes, kernel_height, kernel_width, options=None):
        self.config = options or ConvConfig()
        self.config.validate()
        self.output_planes, self.input_planes = output_planes, input_planes
        self.kernel_height, self.kernel_width = kernel_height, kernel_width
        self.kernel = WeightTensor(output_planes, input_planes, kernel_height, kernel_width)
        self.bias = WeightTensor(output_planes)
        if (kernel_height % 2 == 0 or kernel_width % 2 == 0) and self.config.legacy_even_size:
            logger.warning("%r: even kernel with legacy sizing drops the last row/column", self)

    def __repr__(self):
        return (f"Conv2D({self.output_planes}, {self.input_planes}, "
                f"{self.kernel_height}, {self.kernel_width})")

    def _out_len(self, n, k):
        return n - 2 * (k // 2) if self.config.legacy_even_size else n - k + 1

    def output_size(self, height, width):
        oh, ow = self._out_len(height, self.kernel_height), self._out_len(width, self.kernel_width)
        if oh < 1 or ow < 1:
            raise InvalidShape("input size", f">= {self.kernel_height}x{self.kernel_width}",
                               f"{height}x{width}")
        return oh, ow

    def output_shape(self, input_shape):
        _, h, w = input_shape
        return (self.output_planes,) + self.output_size(h, w)

    def calc(self, output, input):
        """output[o,y,x] = relu(sum_i sum_ky sum_kx K[o,i,ky,kx]*in[i,y+ky,x+kx] + b[o])

        Each output cell accumulates in float32, input plane outermost, then
        kernel row, then kernel column, with the bias added last. Shapes are
        checked before `output` is touched.
        """
        self._require_loaded()
        if input.planes != self.input_planes:
            raise InvalidShape("input planes", self.input_planes, input.planes)
        if output.planes != self.output_planes:
            raise InvalidShape("output planes", self.output_planes, output.planes)
        oh, ow = self.output_size(input.height, input.width)
        if output.width != ow:
            raise InvalidShape("output width", ow, output.width)
        if output.height != oh:
            raise InvalidShape("output height", oh, output.height)

        x = input.as_array(); K = self.kernel.view()
        acc = np.zeros((self.output_planes, oh, ow), dtype=config.DTYPE)
        for i in range(self.input_planes):
            for ky in range(self.kernel_height):
                for kx in range(self.kernel_width):
                    acc += K[:, i, ky, kx][:, None, None] * x[i, ky:ky + oh, kx:kx + ow]
        acc += self.bias.values[:, None, None]
        output.cells[:] = relu(acc).reshape(-1)
        logger.debug("%r: %r -> %r", self, input, output)
        return output

    def __call__(self, input):
        return self.calc(Tensor3D(*self.output_shape(input.shape)), input)

    def describe(self):
        lines = [f"Number of Output Planes = {self.output_planes}",
                 f"Number of Input Planes = {self.input_planes}"]
        K = self.kernel.view()
        for o in range(self.output_planes):
            for i in range(self.input_planes):
                lines.append(f"Kernel {i} -> {o}")
                lines += [", ".join(f"{w:g}" for w in row) for row in K[o, i]]
        lines.append("Bias")
        lines.append(", ".join(f"{b:g}" for b in self.bias.values))
        return "\n".join(lines)


class Dense(_Layer):
    """Affine transform + bias + softmax over a flat vector."""

    def __init__(self, output_cells, input_cells, stable_softmax=config.STABLE_SOFTMAX):
        self.output_cells, self.input_cells = output_cells, input_cells
        self.stable_softmax = stable_softmax
        self.kernel = WeightTensor(output_cells, input_cells)
        self.bias = WeightTensor(output_cells)

    def __repr__(self):
        return f"Dense({self.output_cells}, {self.input_cells})"

    def calc(self, output, input):
        self._require_loaded()
        x = np.asarray(input)
        if x.ndim != 1 or x.shape[0] != self.input_cells:
            raise InvalidShape("input cells", self.input_cells, x.shape)
        if not isinstance(output, np.ndarray):
            raise TypeError(f"output must be a numpy array, got {type(output).__name__}")
        if not np.issubdtype(output.dtype, np.floating):
            raise TypeError(f"output must have a floating dtype, got {output.dtype}")
        if output.ndim != 1 or output.shape[0] != self.output_cells:
            raise InvalidShape("output cells", self.output_cells, output.shape)

        x = x.astype(config.DTYPE, copy=False); K = self.kernel.view()
        acc = np.zeros(self.output_cells, dtype=config.DTYPE)
        for i in range(self.input_cells):
            acc += K[:, i] * x[i]
        acc += self.bias.values
        output[:] = acc
        softmax(output, stable=self.stable_softmax)
        logger.debug("%r: logits max=%g", self, float(acc.max()))
        return output

    def __call__(self, input):
        return self.calc(np.zeros(self.output_cells, dtype=config.DTYPE), input)

    def describe(self):
        lines = [f"Number of Output Cells = {self.output_cells}",
                 f"Number of Input Cells = {self.input_cells}", "Kernel"]
        lines += [", ".join(f"{w:g}" for w in row) for row in self.kernel.view()]
        lines.append("Bias")
        lines.append(", ".join(f"{b:g}" for b in self.bias.values))
        return "\n".join(lines)
