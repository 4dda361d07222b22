"""
Bounds extraction from slippy map share links.

Two encodings are recognized, tried in this order:

- fragment: ``https://www.openstreetmap.org/#map=18/50.07499/10.21574``
- query: ``?lat=50.07&lon=10.21&zoom=12`` or ``?bbox=minLng,minLat,maxLng,maxLat``

Note that ``bbox`` lists longitude first, unlike the corner options.
"""
import re
import logging
from typing import Union
from urllib.parse import urlsplit, parse_qs

from srtm_peaks.errors import InvalidArgument, InvalidMapLink
from srtm_peaks.geomath import zoom_to_box_size_km
from srtm_peaks.model import CenterRadius, Corners
from srtm_peaks.utils import parse_decimal, parse_integer

FRAGMENT_PATTERN = re.compile(r'map=(\d+)/([-.\d]+)/([-.\d]+)')


def _center_from_zoom(lat_text: str, lng_text: str, zoom_text: str) -> CenterRadius:
    try:
        zoom = parse_integer(zoom_text, "zoom")
        lat = parse_decimal(lat_text, "lat")
        lng = parse_decimal(lng_text, "lon")
    except InvalidArgument as e:
        raise InvalidMapLink(f"Invalid slippymap URL: {e}") from e

    return CenterRadius(lat=lat, lng=lng, size_km=zoom_to_box_size_km(zoom))


def parse_bbox(bbox: str) -> Corners:
    """
    Parse a ``minLng,minLat,maxLng,maxLat`` bounding box.

    Args:
        bbox: Comma separated bounding box, longitude first

    Returns:
        Corners spec with the four values unchanged
    """
    if not bbox:
        raise InvalidMapLink("Bounding box is empty.")

    parts = bbox.split(',')
    if len(parts) != 4:
        raise InvalidMapLink(f"Bounding box has not exactly four parts: {bbox!r}")

    try:
        min_lng, min_lat, max_lng, max_lat = (parse_decimal(p, "bbox") for p in parts)
    except InvalidArgument as e:
        raise InvalidMapLink(f"Bounding box was not parseable: {bbox!r}") from e

    return Corners(min_lat=min_lat, min_lng=min_lng, max_lat=max_lat, max_lng=max_lng)


def parse_map_link(url: str) -> Union[CenterRadius, Corners]:
    """
    Extract a center+zoom or an explicit bounding box from a slippy map URL.

    A non-empty fragment must match the ``map=zoom/lat/lon`` form; the query
    string is only consulted when the fragment is empty.

    Args:
        url: Share link copied from a web map viewer

    Returns:
        CenterRadius for center+zoom links, Corners for bbox links

    Raises:
        InvalidMapLink: if neither encoding matches or keys are missing
        InvalidArgument: if the zoom level is not supported
    """
    try:
        parts = urlsplit(url.strip())
    except (AttributeError, ValueError) as e:
        raise InvalidMapLink(f"Invalid slippymap URL: {url!r}") from e

    if parts.fragment:
        match = FRAGMENT_PATTERN.search(parts.fragment)
        if not match:
            raise InvalidMapLink(f"Invalid slippymap URL: {url}")
        logging.debug(f"Slippymap fragment: zoom={match.group(1)} lat={match.group(2)} lon={match.group(3)}")
        return _center_from_zoom(match.group(2), match.group(3), match.group(1))

    if parts.query:
        params = {key: values[0] for key, values in parse_qs(parts.query, keep_blank_values=True).items()}

        if all(key in params for key in ('lat', 'lon', 'zoom')):
            return _center_from_zoom(params['lat'], params['lon'], params['zoom'])
        if 'bbox' in params:
            return parse_bbox(params['bbox'])

    raise InvalidMapLink(f"Invalid slippymap URL: {url}")
