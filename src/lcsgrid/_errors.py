# Exception types raised by lcsgrid. I/O failures are left to the builtin OSError family raised by
# open(), so they stay distinct from the structural errors defined here.


class ShapeMismatchError(ValueError):
    """Raised when data does not fit the configured grid shape."""


class InvalidStateError(RuntimeError):
    """Raised when reading state that has not been set yet."""
