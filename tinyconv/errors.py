# tinyconv/errors.py


class LayerError(Exception):
    pass


class InvalidShape(LayerError, ValueError):
    """A tensor or vector handed to a layer has the wrong dimensions."""

    def __init__(self, what, expected, actual):
        self.what, self.expected, self.actual = what, expected, actual
        super().__init__(f"{what}: expected {expected}, got {actual}")


class ReadError(LayerError, IOError):
    """A weight stream held fewer (or, when strict, more) floats than required."""

    def __init__(self, source, expected, actual, trailing=False):
        self.source, self.expected, self.actual = source, expected, actual
        self.trailing = trailing
        if trailing:
            msg = f"{source}: trailing data after {expected} float32 values"
        else:
            msg = f"{source}: expected {expected} float32 values, got {actual}"
        super().__init__(msg)


class StateError(LayerError, RuntimeError):
    pass
