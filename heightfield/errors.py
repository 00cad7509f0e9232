# heightfield/errors.py

"""Exception types raised by the heightfield core."""


class HeightfieldError(Exception):
    """Base class for every error raised by this package."""


class InvalidConfig(HeightfieldError, ValueError):
    """A grid, octave or service parameter is outside its valid range."""


class SeedSourceUnavailable(HeightfieldError, RuntimeError):
    """The implicit (clock based) seed source could not be read."""
