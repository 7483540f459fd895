"""Exception and warning types shared by the LMP converter modules."""


class ConversionError(Exception):
    """Base exception for conversion errors."""


class FormatError(ConversionError):
    """Raised when a buffer cannot be read as an LMP picture at all."""


class PaletteError(ConversionError):
    """Raised when a palette resource is missing, short, or has no such page."""


class TruncatedLumpWarning(RuntimeWarning):
    """Issued when column data ends before its terminator."""
