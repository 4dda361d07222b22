"""
Elevation data access: provider contract and ImageServer-backed implementation.
"""
import math
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlencode

import numpy as np
import requests
import rasterio

from srtm_peaks.config import (
    DEFAULT_CACHE_DIR, DEFAULT_ELEVATION_SOURCE, DOWNLOAD_TIMEOUT_S,
    EXPORT_MAX_PIXELS, EXPORT_MIN_PIXELS, EXPORT_PIXELS_PER_DEGREE
)
from srtm_peaks.errors import ElevationSourceError
from srtm_peaks.model import Rectangle

TIFF_SIGNATURES = (b'II*\x00', b'MM\x00*')


@dataclass
class ElevationSurface:
    """Elevation grid in meters; missing samples are NaN."""
    data: np.ndarray
    transform: object  # rasterio affine transform

    @property
    def data_points_count(self) -> int:
        return int(self.data.size)


@dataclass(frozen=True)
class ElevationStatistics:
    min_elevation: Optional[float]
    max_elevation: Optional[float]
    point_count: int
    has_missing_points: bool


def calculate_statistics(surface: ElevationSurface) -> ElevationStatistics:
    """
    Summarize an elevation surface for diagnostics.

    Args:
        surface: Loaded elevation surface

    Returns:
        ElevationStatistics; min/max are None when every sample is missing
    """
    data = surface.data
    missing = np.isnan(data)
    valid_data = data[~missing]

    if valid_data.size == 0:
        return ElevationStatistics(None, None, int(data.size), True)

    return ElevationStatistics(
        min_elevation=float(np.min(valid_data)),
        max_elevation=float(np.max(valid_data)),
        point_count=int(data.size),
        has_missing_points=bool(missing.any()),
    )


class ElevationProvider(ABC):
    """
    Source of elevation surfaces for rectangular areas.
    """

    @abstractmethod
    def load_surface_for_area(self, rectangle: Rectangle) -> Optional[ElevationSurface]:
        """
        Load the elevation surface covering a rectangle.

        Returns:
            ElevationSurface, or None when the source has no data for the area
        """

    def calculate_statistics(self, surface: ElevationSurface) -> ElevationStatistics:
        return calculate_statistics(surface)

    def close(self) -> None:
        """Release retained surfaces. The provider may still be used afterwards."""


def export_image_size(rectangle: Rectangle) -> Tuple[int, int]:
    """Pixel (width, height) of the exported raster for a rectangle."""
    def clamp(span_deg: float) -> int:
        # Rounded first so float noise in the span does not add a pixel
        pixels = math.ceil(round(span_deg * EXPORT_PIXELS_PER_DEGREE, 6))
        return max(EXPORT_MIN_PIXELS, min(EXPORT_MAX_PIXELS, pixels))

    return (clamp(rectangle.max_lng - rectangle.min_lng),
            clamp(rectangle.max_lat - rectangle.min_lat))


def build_export_url(source_url: str, rectangle: Rectangle) -> str:
    """
    Build the ImageServer exportImage URL for a rectangle.

    Args:
        source_url: ImageServer base URL
        rectangle: Area to export, in WGS84 degrees

    Returns:
        Complete exportImage query URL
    """
    width, height = export_image_size(rectangle)
    bbox = f"{rectangle.min_lng},{rectangle.min_lat},{rectangle.max_lng},{rectangle.max_lat}"

    params = {
        'bbox': bbox,
        'bboxSR': '4326',  # WGS84
        'size': f"{width},{height}",
        'imageSR': '4326',
        'format': 'tiff',
        'pixelType': 'F32',  # 32-bit float
        'noDataInterpretation': 'esriNoDataMatchAny',
        'interpolation': '+RSP_BilinearInterpolation',
        'f': 'image'
    }

    return f"{source_url.rstrip('/')}/exportImage?{urlencode(params)}"


def read_elevation_file(elevation_file: Path) -> ElevationSurface:
    """
    Read band 1 of a raster file, converting nodata to NaN.
    """
    with rasterio.open(elevation_file) as src:
        data = src.read(1).astype(np.float32)
        nodata = src.nodata
        transform = src.transform

    if nodata is not None and not np.isnan(nodata):
        data[data == np.float32(nodata)] = np.nan

    logging.debug(f"Loaded elevation data: {data.shape}")
    return ElevationSurface(data=data, transform=transform)


class ImageServerElevationProvider(ElevationProvider):
    """
    Elevation provider exporting GeoTIFFs from an ArcGIS ImageServer.

    Downloaded files are kept in ``cache_dir`` and reused on later runs
    unless ``refresh`` is set. Only the most recently loaded surface is kept
    in memory, until the next load or :meth:`close`.
    """

    def __init__(self, source_url: str = DEFAULT_ELEVATION_SOURCE, cache_dir: Path = DEFAULT_CACHE_DIR,
                 refresh: bool = False, timeout: float = DOWNLOAD_TIMEOUT_S):
        self.source_url = source_url
        self.cache_dir = Path(cache_dir)
        self.refresh = refresh
        self.timeout = timeout
        self._last: Optional[Tuple[Rectangle, Optional[ElevationSurface]]] = None

    @property
    def retained_surfaces(self) -> int:
        return 0 if self._last is None or self._last[1] is None else 1

    def cached_file(self, rectangle: Rectangle) -> Path:
        """Cache filename for the elevation export of a rectangle."""
        return self.cache_dir / (
            f"elev_{rectangle.min_lng:.6f}_{rectangle.min_lat:.6f}"
            f"_{rectangle.max_lng:.6f}_{rectangle.max_lat:.6f}.tif"
        )

    def download(self, rectangle: Rectangle) -> Path:
        """
        Download the elevation export for a rectangle, reusing the cache.

        Raises:
            ElevationSourceError: if the server answers with something other than a TIFF
            requests.RequestException: on HTTP or connection failures
        """
        cached_file = self.cached_file(rectangle)
        if cached_file.exists() and not self.refresh:
            logging.debug(f"Using cached elevation data: {cached_file}")
            return cached_file

        url = build_export_url(self.source_url, rectangle)
        logging.info(f"Downloading elevation data for {rectangle}")
        logging.debug(f"  Query URL: {url}")

        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()

        # ImageServer reports failures as HTTP 200 with a JSON body
        if not response.content.startswith(TIFF_SIGNATURES):
            excerpt = response.content[:200]
            logging.error(f"Elevation source did not return a TIFF: {excerpt!r}")
            raise ElevationSourceError(f"Elevation source did not return a TIFF for {rectangle}: {excerpt!r}")

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(cached_file, 'wb') as f:
            f.write(response.content)

        logging.info(f"  Saved elevation data: {cached_file}")
        return cached_file

    def load_surface_for_area(self, rectangle: Rectangle) -> Optional[ElevationSurface]:
        if self._last is not None and self._last[0] == rectangle:
            return self._last[1]

        self._last = None
        surface = read_elevation_file(self.download(rectangle))
        if np.isnan(surface.data).all():
            logging.warning(f"Elevation data for {rectangle} contains no valid samples")
            surface = None

        self._last = (rectangle, surface)
        return surface

    def close(self) -> None:
        if self._last is not None:
            logging.debug(f"Releasing retained elevation surface for {self._last[0]}")
        self._last = None
