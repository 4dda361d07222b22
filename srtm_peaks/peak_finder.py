"""
Peak detection over elevation surfaces.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np
from rasterio import transform as rio_transform
from skimage.feature import peak_local_max

from srtm_peaks.config import PEAK_MIN_DISTANCE_PX
from srtm_peaks.elevation import ElevationSurface
from srtm_peaks.model import PeakMarker


class PeakFinder(ABC):
    @abstractmethod
    def find_peaks(self, surface: ElevationSurface, max_count: Optional[int]) -> List[PeakMarker]:
        """
        Find up to max_count peaks, strongest first. None means no limit.
        """


class LocalMaximaPeakFinder(PeakFinder):
    """
    Reports local elevation maxima separated by at least ``min_distance`` cells.
    """

    def __init__(self, min_distance: int = PEAK_MIN_DISTANCE_PX):
        self.min_distance = min_distance

    def find_peaks(self, surface: ElevationSurface, max_count: Optional[int]) -> List[PeakMarker]:
        data = surface.data
        valid = ~np.isnan(data)
        if not valid.any() or max_count == 0:
            return []

        # Missing samples sit below real terrain; peaks must rise above the lowest real sample
        lowest = float(np.nanmin(data))
        filled = np.where(valid, data, lowest - 1.0)

        coordinates = peak_local_max(
            filled,
            min_distance=self.min_distance,
            threshold_abs=lowest,
            exclude_border=False,
            num_peaks=max_count if max_count is not None else np.inf,
        )
        if len(coordinates) == 0:
            logging.debug("No local maxima found")
            return []

        rows, cols = coordinates[:, 0], coordinates[:, 1]
        lons, lats = rio_transform.xy(surface.transform, rows, cols)
        lons, lats = np.atleast_1d(lons), np.atleast_1d(lats)

        return [
            PeakMarker(label=f"{data[row, col]:.0f}", longitude=float(lon), latitude=float(lat))
            for row, col, lon, lat in zip(rows, cols, lons, lats)
        ]
