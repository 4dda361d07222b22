"""
KML output of peak markers.
"""
import logging
from pathlib import Path
from typing import Iterable, TextIO, Union
from xml.sax.saxutils import escape

import numpy as np

from srtm_peaks.model import PeakMarker

KML_HEADER = '<?xml version="1.0" encoding="utf-8"?> <kml xmlns="http://earth.google.com/kml/2.2" ><Document>'
KML_FOOTER = '</Document></kml>'


def format_coordinate(value: float) -> str:
    """Positional decimal with a period separator, never an exponent."""
    return np.format_float_positional(float(value), trim='-')


def placemark(marker: PeakMarker) -> str:
    return (
        f"<Placemark><name>{escape(marker.label)}</name><Point><coordinates>"
        f"{format_coordinate(marker.longitude)},{format_coordinate(marker.latitude)}"
        f"</coordinates></Point></Placemark>"
    )


def _write_markers(markers: Iterable[PeakMarker], stream: TextIO) -> int:
    count = 0
    stream.write(KML_HEADER + "\n")
    for marker in markers:
        stream.write(placemark(marker) + "\n")
        count += 1
    stream.write(KML_FOOTER + "\n")
    return count


def write_kml(markers: Iterable[PeakMarker], destination: Union[str, Path, TextIO]) -> None:
    """
    Write peak markers as KML placemarks, in order.

    Args:
        markers: Peak markers to write
        destination: Output path or an open text stream
    """
    if isinstance(destination, (str, Path)):
        with open(destination, 'w', encoding='utf-8') as f:
            count = _write_markers(markers, f)
        logging.info(f"Saved {count} peaks to: {destination}")
    else:
        count = _write_markers(markers, destination)
        logging.debug(f"Wrote {count} peaks")
