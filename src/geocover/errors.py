"""
Exceptions raised by the geohash codec and the coverage engine.

Every failure is an argument problem detected before any work is done, so
all of them derive from ValueError.
"""


class GeoCoverError(ValueError):
    """Base class for all geocover errors."""


class InvalidArgumentError(GeoCoverError):
    """Out-of-range coordinates or lengths, malformed rings, bad geohash characters."""


class UnsupportedRegionError(GeoCoverError):
    """Input the coverage engine cannot handle reliably (vertices near the poles)."""
