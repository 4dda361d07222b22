"""
Value types shared by bounds resolution, the extraction pipeline and KML output.
"""
from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class Rectangle:
    """
    Axis-aligned geographic bounding box in degrees.
    """
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    @property
    def center(self) -> Tuple[float, float]:
        """(lat, lng) of the midpoint of the corners."""
        return (self.min_lat + self.max_lat) / 2, (self.min_lng + self.max_lng) / 2

    def shifted(self, dx: float, dy: float) -> "Rectangle":
        """Return a copy with (dx, dy) subtracted from every coordinate."""
        return Rectangle(self.min_lng - dx, self.min_lat - dy, self.max_lng - dx, self.max_lat - dy)

    def __str__(self) -> str:
        return f"[{self.min_lng}, {self.min_lat}, {self.max_lng}, {self.max_lat}]"


@dataclass(frozen=True)
class Corners:
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float


@dataclass(frozen=True)
class CenterRadius:
    lat: float
    lng: float
    size_km: float


@dataclass(frozen=True)
class MapLink:
    url: str


BoundsSpec = Union[Corners, CenterRadius, MapLink]


@dataclass(frozen=True)
class CorrectionOffset:
    """Shift in degrees compensating a systematic offset of the elevation source."""
    dx: float = 0.0
    dy: float = 0.0


@dataclass(frozen=True)
class PeakMarker:
    label: str
    longitude: float
    latitude: float
