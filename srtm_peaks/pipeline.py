"""
Sequential peak extraction over resolved bounds.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from srtm_peaks.elevation import ElevationProvider, ElevationStatistics
from srtm_peaks.errors import RegionDataUnavailable
from srtm_peaks.model import CorrectionOffset, PeakMarker, Rectangle
from srtm_peaks.peak_finder import PeakFinder


@dataclass
class RegionDiagnostics:
    rectangle: Rectangle  # corrected rectangle actually queried
    statistics: Optional[ElevationStatistics]
    peak_count: int

    @property
    def has_data(self) -> bool:
        return self.statistics is not None


@dataclass
class PipelineRunResult:
    markers: List[PeakMarker] = field(default_factory=list)
    diagnostics: List[RegionDiagnostics] = field(default_factory=list)


def log_region_diagnostics(diagnostics: RegionDiagnostics) -> None:
    statistics = diagnostics.statistics
    if statistics is None:
        logging.info("DEM data points count: no data")
        return

    logging.info(f"DEM data points count: {statistics.point_count}")
    logging.info(f"DEM minimum elevation: {statistics.min_elevation}")
    logging.info(f"DEM maximum elevation: {statistics.max_elevation}")
    logging.info(f"DEM has missing points: {statistics.has_missing_points}")


def run_pipeline(rectangles: Sequence[Rectangle], correction: CorrectionOffset,
                 max_peaks_per_region: Optional[int], elevation_provider: ElevationProvider,
                 peak_finder: PeakFinder) -> PipelineRunResult:
    """
    Extract peaks for each rectangle, strictly in input order.

    Each rectangle is shifted by the correction offset before elevation
    lookup; returned peak coordinates are not shifted back. A region without
    elevation data contributes zero peaks and the run continues. Any other
    collaborator failure propagates and aborts the run.

    When exactly one rectangle is processed, the provider is closed right
    after use since nothing will reuse its retained data.

    Args:
        rectangles: Resolved bounds, in order of appearance
        correction: Offset subtracted from every coordinate before lookup
        max_peaks_per_region: Peak budget per region (None for no limit)
        elevation_provider: Source of elevation surfaces
        peak_finder: Peak detection over a surface

    Returns:
        PipelineRunResult with markers in region order, then finder order
    """
    result = PipelineRunResult()
    single_region = len(rectangles) == 1

    for i, bound in enumerate(rectangles, 1):
        corrected = bound.shifted(correction.dx, correction.dy)
        logging.info(f"[{i}/{len(rectangles)}] Calculating peak data for bound {corrected}...")

        try:
            surface = elevation_provider.load_surface_for_area(corrected)
        except RegionDataUnavailable as e:
            logging.warning(f"  {e}")
            surface = None

        peaks = []
        if surface is None:
            logging.warning(f"  No elevation data for bound {corrected}, skipping peak extraction")
        else:
            peaks = peak_finder.find_peaks(surface, max_peaks_per_region)
            result.markers.extend(peaks)
            logging.info(f"  Found {len(peaks)} peaks")

        if single_region:
            elevation_provider.close()

        statistics = elevation_provider.calculate_statistics(surface) if surface is not None else None
        diagnostics = RegionDiagnostics(rectangle=corrected, statistics=statistics, peak_count=len(peaks))
        log_region_diagnostics(diagnostics)
        result.diagnostics.append(diagnostics)

    return result
