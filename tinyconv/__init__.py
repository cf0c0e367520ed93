# tinyconv/__init__.py
from .errors import LayerError, InvalidShape, ReadError, StateError
from .tensor import Tensor3D
from .weights import WeightTensor, read_floats, save_weights
from .layers import Conv2D, ConvConfig, Dense, relu, softmax
from .model import ConvNet, lenet_lite, load_weight_dir, save_weight_dir

__version__ = "0.1.0"
