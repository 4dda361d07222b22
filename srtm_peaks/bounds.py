"""
Resolution of user bounds specifications into validated rectangles.
"""
import logging
from typing import Iterable, List, Sequence, Tuple

from srtm_peaks.errors import CoordinateOutOfRange, DegenerateBounds, InvalidArgument, NoBoundsSpecified
from srtm_peaks.geomath import km_to_degrees
from srtm_peaks.model import BoundsSpec, CenterRadius, Corners, MapLink, Rectangle
from srtm_peaks.slippy_map import parse_map_link
from srtm_peaks.utils import parse_decimal

# Option name -> expected parameter count
BOUNDS_OPTIONS = {
    'bounds1': 4,  # minLat minLng maxLat maxLng
    'bounds2': 3,  # lat lng boxSizeKm
    'bounds3': 1,  # slippy map URL
}


def _validated(min_lng: float, min_lat: float, max_lng: float, max_lat: float) -> Rectangle:
    if min_lat <= -90 or max_lat > 90:
        raise CoordinateOutOfRange(f"Latitude is out of range: {min_lat} .. {max_lat}")
    if min_lng <= -180 or max_lng > 180:
        raise CoordinateOutOfRange(f"Longitude is out of range: {min_lng} .. {max_lng}")
    return Rectangle(min_lng, min_lat, max_lng, max_lat)


def _resolve_corners(spec: Corners) -> Rectangle:
    min_lat, max_lat = spec.min_lat, spec.max_lat
    min_lng, max_lng = spec.min_lng, spec.max_lng

    if min_lat == max_lat:
        raise DegenerateBounds("Minimum and maximum latitude should not have the same value.")
    if min_lng == max_lng:
        raise DegenerateBounds("Minimum and maximum longitude should not have the same value.")

    if min_lat > max_lat:
        min_lat, max_lat = max_lat, min_lat
    if min_lng > max_lng:
        min_lng, max_lng = max_lng, min_lng

    return _validated(min_lng, min_lat, max_lng, max_lat)


def _resolve_center(spec: CenterRadius) -> Rectangle:
    if spec.size_km <= 0:
        raise InvalidArgument("Box size must be a positive number.")
    if not -90 < spec.lat < 90:
        raise CoordinateOutOfRange(f"Center latitude is out of range: {spec.lat}")

    lat_delta, lng_delta = km_to_degrees(spec.size_km, spec.lat)

    return _validated(
        spec.lng - lng_delta / 2,
        spec.lat - lat_delta / 2,
        spec.lng + lng_delta / 2,
        spec.lat + lat_delta / 2,
    )


def resolve(spec: BoundsSpec) -> Rectangle:
    """
    Resolve any bounds specification to a validated rectangle.

    Args:
        spec: Corners, CenterRadius or MapLink

    Returns:
        Rectangle satisfying min < max and the +/-90, +/-180 ranges

    Raises:
        BoundsError subclass describing the first problem found
    """
    if isinstance(spec, Corners):
        return _resolve_corners(spec)
    if isinstance(spec, CenterRadius):
        return _resolve_center(spec)
    if isinstance(spec, MapLink):
        return resolve(parse_map_link(spec.url))
    raise TypeError(f"Unsupported bounds specification: {spec!r}")


def spec_from_option(option: str, params: Sequence[str]) -> BoundsSpec:
    """
    Build a bounds specification from the raw parameters of a bounds option.

    Args:
        option: 'bounds1', 'bounds2' or 'bounds3'
        params: Parameter strings as given on the command line
    """
    expected = BOUNDS_OPTIONS.get(option)
    if expected is None:
        raise InvalidArgument(f"Unknown bounds option: {option}")
    if len(params) != expected:
        raise InvalidArgument(f"-{option} expects {expected} parameters, got {len(params)}")

    if option == 'bounds1':
        min_lat, min_lng, max_lat, max_lng = (parse_decimal(p, option) for p in params)
        return Corners(min_lat=min_lat, min_lng=min_lng, max_lat=max_lat, max_lng=max_lng)
    if option == 'bounds2':
        lat, lng, size_km = (parse_decimal(p, option) for p in params)
        return CenterRadius(lat=lat, lng=lng, size_km=size_km)
    return MapLink(url=params[0])


def resolve_all(options: Iterable[Tuple[str, Sequence[str]]]) -> List[Rectangle]:
    """
    Resolve every bounds option, keeping the order of appearance.

    Args:
        options: (option name, parameters) pairs

    Returns:
        List of rectangles, one per option

    Raises:
        NoBoundsSpecified: if no option was supplied
    """
    rectangles = []
    for option, params in options:
        rectangle = resolve(spec_from_option(option, params))
        logging.debug(f"Resolved -{option} {' '.join(params)} -> {rectangle}")
        rectangles.append(rectangle)

    if not rectangles:
        raise NoBoundsSpecified("No bounds specified.")
    return rectangles
