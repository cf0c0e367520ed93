# tinyconv/tensor.py
import numpy as np

from . import config
from .errors import InvalidShape


class Tensor3D:
    """planes x height x width cells, stored flat (plane, row, column)."""

    def __init__(self, planes, height, width, cells=None):
        self.planes, self.height, self.width = int(planes), int(height), int(width)
        n = self.planes * self.height * self.width
        if cells is None:
            self.cells = np.zeros(n, dtype=config.DTYPE)
        else:
            cells = np.asarray(cells, dtype=config.DTYPE).reshape(-1)
            if cells.size != n:
                raise InvalidShape("tensor cells", n, cells.size)
            self.cells = cells

    @classmethod
    def from_array(cls, arr):
        arr = np.asarray(arr, dtype=config.DTYPE)
        if arr.ndim == 2: arr = arr[None]
        if arr.ndim != 3:
            raise InvalidShape("tensor rank", 3, arr.ndim)
        return cls(*arr.shape, cells=arr.copy())

    @property
    def shape(self):
        return (self.planes, self.height, self.width)

    def __repr__(self):
        return f"Tensor3D{self.shape}"

    def index(self, p, y, x):
        return (p * self.height + y) * self.width + x

    def get(self, p, y, x):
        return self.cells[self.index(p, y, x)]

    def set(self, p, y, x, v):
        self.cells[self.index(p, y, x)] = v

    def as_array(self):
        return self.cells.reshape(self.shape)

    def flatten(self):
        return self.cells.copy()
