# tinyconv/weights.py
import logging
import os

import numpy as np

from . import config
from .errors import InvalidShape, ReadError, StateError

logger = logging.getLogger(__name__)


def _source_name(source):
    if isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    return getattr(source, "name", f"<{type(source).__name__}>")


def _read_exact(f, n):
    # raw streams and pipes may return short reads before EOF
    chunks, got = [], 0
    while got < n:
        chunk = f.read(n - got)
        if not chunk:
            break
        chunks.append(chunk); got += len(chunk)
    return b"".join(chunks)


def _peek_trailing(f, strict):
    if strict:
        return _read_exact(f, 1)
    if not (hasattr(f, "seekable") and f.seekable()):
        return b""
    extra = _read_exact(f, 1)
    if extra: f.seek(-len(extra), os.SEEK_CUR)
    return extra


def read_floats(source, count, strict=config.STRICT_LOAD):
    """Read exactly `count` little-endian float32 values.

    `source` is a path, a binary file object or anything bytes-like. Short
    streams raise ReadError; extra data raises ReadError when `strict`,
    otherwise it is left unread (a seekable stream is rewound after the
    one-byte look-ahead).
    """
    need = count * config.FILE_DTYPE.itemsize
    name = _source_name(source)
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            data = _read_exact(f, need); extra = _read_exact(f, 1)
    elif hasattr(source, "read"):
        data = _read_exact(source, need); extra = _peek_trailing(source, strict)
    else:
        buf = memoryview(source).cast("B")
        data, extra = bytes(buf[:need]), bytes(buf[need:need + 1])
    if len(data) < need:
        raise ReadError(name, count, len(data) // config.FILE_DTYPE.itemsize)
    if extra:
        if strict:
            raise ReadError(name, count, None, trailing=True)
        logger.warning("%s: ignoring data after %d float32 values", name, count)
    return np.frombuffer(data, dtype=config.FILE_DTYPE).astype(config.DTYPE)


def save_weights(target, array):
    """Write `array` in the weight-file format (flat, row-major, <f4)."""
    data = np.ascontiguousarray(array, dtype=config.FILE_DTYPE).tobytes()
    if isinstance(target, (str, os.PathLike)):
        with open(target, "wb") as f:
            f.write(data)
    else:
        target.write(data)
    return len(data)


class WeightTensor:
    """Fixed-shape flat float32 storage for a kernel or bias.

    Addressing is row-major over the declared shape, so a 4-D conv kernel
    (o, i, kh, kw) lives at ((o*i_n + i)*kh_n + ky)*kw_n + kx and a dense
    matrix (out, in) at j*in_n + i. Storage is zero until loaded once, then
    read-only.
    """

    def __init__(self, *shape):
        if not shape or any(int(d) <= 0 for d in shape):
            raise ValueError(f"invalid weight shape {shape}")
        self.shape = tuple(int(d) for d in shape)
        self.size = int(np.prod(self.shape))
        self.values = np.zeros(self.size, dtype=config.DTYPE)
        self.loaded = False

    def __len__(self):
        return self.size

    def __repr__(self):
        return f"WeightTensor(shape={self.shape}, loaded={self.loaded})"

    def index(self, *coords):
        if len(coords) != len(self.shape):
            raise IndexError(f"expected {len(self.shape)} coordinates, got {len(coords)}")
        idx = 0
        for c, d in zip(coords, self.shape):
            if not 0 <= c < d:
                raise IndexError(f"coordinate {coords} out of range for shape {self.shape}")
            idx = idx * d + c
        return idx

    def get(self, *coords):
        return self.values[self.index(*coords)]

    def view(self):
        return self.values.reshape(self.shape)

    def read(self, source, strict=config.STRICT_LOAD):
        return read_floats(source, self.size, strict=strict)

    def assign(self, values):
        if self.loaded:
            raise StateError("weights are already loaded")
        values = np.asarray(values, dtype=config.DTYPE)
        if values.shape != self.shape and values.shape != (self.size,):
            raise InvalidShape("weight array", self.shape, values.shape)
        self.values = values.reshape(-1).copy()
        self.values.setflags(write=False)
        self.loaded = True

    def load(self, source, strict=config.STRICT_LOAD):
        self.assign(self.read(source, strict=strict))

    def load_array(self, array):
        self.assign(array)
