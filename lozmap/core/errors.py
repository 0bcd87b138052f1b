"""Exceptions raised while reading ROM tables and decoding rooms."""


class LozMapError(ValueError):
    """Base class for malformed or unsupported input."""


class HeapTableError(LozMapError):
    """Heap table or sparse stream does not fit its buffer."""


class RomFormatError(LozMapError):
    """A fixed ROM region lies outside the image."""


class LayoutDecodeError(LozMapError):
    """Column data could not be expanded into a room."""
