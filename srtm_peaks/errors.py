"""
Exceptions raised while interpreting bounds options and extracting peaks.
"""


class BoundsError(ValueError):
    """Base class for configuration errors in bounds specifications."""


class DegenerateBounds(BoundsError):
    """Minimum and maximum are equal on one axis."""


class CoordinateOutOfRange(BoundsError):
    """Resolved rectangle falls outside the +/-90 latitude or +/-180 longitude range."""


class InvalidArgument(BoundsError):
    """Non-positive size, unsupported zoom level or non-numeric parameter."""


class InvalidMapLink(BoundsError):
    """URL matches neither recognized slippy map encoding."""


class NoBoundsSpecified(BoundsError):
    """No rectangle was resolved from the supplied options."""


class RegionDataUnavailable(Exception):
    """Elevation source has no data for a region. Non-fatal: the region yields zero peaks."""


class ElevationSourceError(Exception):
    """Elevation source answered with something other than a raster. Fatal for the run."""
