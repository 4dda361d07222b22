"""
Distance and zoom level conversions for geographic bounds.
"""
import math
from typing import Tuple

from srtm_peaks.errors import InvalidArgument

EARTH_RADIUS_M = 6360000
EARTH_CIRCUMFERENCE_M = EARTH_RADIUS_M * 2 * math.pi

# Physical screen width assumed when a slippy map view is turned into a box
SCREEN_WIDTH_CM = 30.0

# Ground distance in meters covered by a screen at each zoom level.
# Levels 0 and 1 are reserved and not supported.
ZOOM_LEVELS_M = (
    0, 0, 111000000, 55000000, 28000000, 14000000, 7000000, 3000000, 2000000, 867000,
    433000, 217000, 108000, 54000, 27000, 14000, 6771, 3385, 1693,
)

MIN_ZOOM = 2
MAX_ZOOM = len(ZOOM_LEVELS_M) - 1


def km_to_degrees(size_km: float, at_latitude_deg: float) -> Tuple[float, float]:
    """
    Convert a box size in kilometers to latitude and longitude deltas.

    The longitude delta is stretched by 1/cos(latitude) since meridians
    converge toward the poles.

    Args:
        size_km: Box size in kilometers
        at_latitude_deg: Latitude at which the box is centered

    Returns:
        Tuple of (lat_delta_deg, lng_delta_deg)
    """
    if size_km <= 0:
        raise InvalidArgument("Box size must be a positive number.")

    lat_delta = size_km / 2 * 1000 / EARTH_CIRCUMFERENCE_M * 360
    lng_delta = lat_delta / math.cos(at_latitude_deg * math.pi / 180.0)
    return lat_delta, lng_delta


def zoom_to_ground_distance_m(zoom: int) -> int:
    """Look up the ground distance covered by a screen at a zoom level."""
    if zoom < MIN_ZOOM or zoom > MAX_ZOOM:
        raise InvalidArgument(f"Zoom level is out of range: {zoom} (supported {MIN_ZOOM}-{MAX_ZOOM})")
    return ZOOM_LEVELS_M[zoom]


def zoom_to_box_size_km(zoom: int) -> float:
    """Box size in kilometers for a map view at the given zoom level."""
    return zoom_to_ground_distance_m(zoom) * SCREEN_WIDTH_CM / 100 / 1000
