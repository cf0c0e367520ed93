# tinyconv/config.py
import numpy as np

DTYPE = np.float32
# weight files: raw IEEE-754 single precision, little-endian, no header
FILE_DTYPE = np.dtype("<f4")

STRICT_LOAD = True       # reject weight streams longer than the declared shape
STABLE_SOFTMAX = True    # subtract the max logit before exp

KERNEL_SUFFIX = "_kernel.bin"
BIAS_SUFFIX = "_bias.bin"
