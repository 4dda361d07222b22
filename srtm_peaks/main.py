"""
Main entry point for peak extraction.
Handles argument parsing, logging setup, and the extraction run.
"""
import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlsplit

import requests
from rasterio.errors import RasterioError

from srtm_peaks.bounds import BOUNDS_OPTIONS, resolve_all
from srtm_peaks.config import (
    DEFAULT_CACHE_DIR, DEFAULT_ELEVATION_SOURCE, DEFAULT_OUTPUT_FILE, SUPPORTED_SOURCE_SCHEMES
)
from srtm_peaks.elevation import ImageServerElevationProvider
from srtm_peaks.errors import BoundsError, ElevationSourceError, InvalidArgument
from srtm_peaks.kml import write_kml
from srtm_peaks.model import CorrectionOffset
from srtm_peaks.peak_finder import LocalMaximaPeakFinder
from srtm_peaks.pipeline import run_pipeline
from srtm_peaks.utils import log_file_for_output, parse_decimal, parse_integer, setup_logging

BOUNDS_METAVARS = {
    'bounds1': ('minLat', 'minLng', 'maxLat', 'maxLng'),
    'bounds2': ('lat', 'lng', 'boxsize_km'),
    'bounds3': ('slippymap_url',),
}


class BoundsAction(argparse.Action):
    """Collect (option, parameters) pairs from all bounds options in command line order."""

    def __call__(self, parser, namespace, values, option_string=None):
        bounds = list(getattr(namespace, self.dest, None) or [])
        bounds.append((self.const, list(values)))
        setattr(namespace, self.dest, bounds)


def validate_source_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise InvalidArgument("The source URL is not valid.")
    if parts.scheme not in SUPPORTED_SOURCE_SCHEMES:
        raise InvalidArgument(f"The source's scheme ('{parts.scheme}') is not supported.")
    return url


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="srtm-peaks",
        description="Uses elevation data to find peaks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Corners: minLat minLng maxLat maxLng
  srtm-peaks -bounds1 46.2 13.6 46.5 14.0

  # Center and box size in kilometers
  srtm-peaks -bounds2 46.37 13.84 10 -howmany 5

  # Slippy map link (fragment or query form)
  srtm-peaks -bounds3 "https://www.openstreetmap.org/#map=12/46.37/13.84"

All bound parameters can be specified more than once.
        """
    )

    for option, count in BOUNDS_OPTIONS.items():
        parser.add_argument(
            f'-{option}', f'--{option}',
            dest='bounds',
            nargs=count,
            action=BoundsAction,
            const=option,
            metavar=BOUNDS_METAVARS[option],
            help='specifies the area to cover (repeatable)'
        )
    parser.add_argument(
        '-o', '--output',
        default=DEFAULT_OUTPUT_FILE,
        help=f"output KML file (default: '{DEFAULT_OUTPUT_FILE}')"
    )
    parser.add_argument(
        '-d', '--cache-dir',
        type=Path,
        default=DEFAULT_CACHE_DIR,
        help=f"elevation cache directory (default: '{DEFAULT_CACHE_DIR}')"
    )
    parser.add_argument(
        '-i', '--refresh',
        action='store_true',
        help='re-download elevation data even if cached'
    )
    parser.add_argument(
        '-corrxy', '--corrxy',
        nargs=2,
        metavar=('corrLng', 'corrLat'),
        help='correction values to shift the queried area'
    )
    parser.add_argument(
        '-source', '--source',
        default=DEFAULT_ELEVATION_SOURCE,
        help=f"elevation ImageServer base URL (default '{DEFAULT_ELEVATION_SOURCE}')"
    )
    parser.add_argument(
        '-howmany', '--howmany',
        metavar='count',
        help='how many peaks to return per region'
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Suppress stdout output (logs will still be written to file)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='show debug messages (export URLs, cache hits) on stdout'
    )
    parser.add_argument(
        '--log-file',
        help='log file path (default: <output stem>_<timestamp>.log beside the output file)'
    )
    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate command line arguments.

    Bounds are resolved here; any configuration error ends the program
    through ``parser.error`` before elevation data is touched.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.rectangles = resolve_all(args.bounds or [])

        args.correction = CorrectionOffset()
        if args.corrxy:
            args.correction = CorrectionOffset(
                dx=parse_decimal(args.corrxy[0], "corrLng"),
                dy=parse_decimal(args.corrxy[1], "corrLat"),
            )

        args.max_peaks = None
        if args.howmany is not None:
            args.max_peaks = parse_integer(args.howmany, "howmany")
            if args.max_peaks <= 0:
                raise InvalidArgument("howmany must be a positive number.")

        validate_source_url(args.source)
    except BoundsError as e:
        parser.error(str(e))

    return args


def run(args: argparse.Namespace) -> int:
    """Run the extraction for parsed arguments. Returns the process exit code."""
    args.cache_dir.mkdir(parents=True, exist_ok=True)

    provider = ImageServerElevationProvider(source_url=args.source, cache_dir=args.cache_dir,
                                            refresh=args.refresh)
    peak_finder = LocalMaximaPeakFinder()

    try:
        result = run_pipeline(args.rectangles, args.correction, args.max_peaks, provider, peak_finder)
    except (requests.exceptions.RequestException, RasterioError, ElevationSourceError) as e:
        logging.error(f"Error retrieving elevation data: {e}")
        return 1

    logging.info("Saving Peaks to file...")
    write_kml(result.markers, args.output)

    no_data = [d for d in result.diagnostics if not d.has_data]
    if no_data:
        logging.warning(f"{len(no_data)} of {len(result.diagnostics)} regions had no elevation data")

    logging.info("Done.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main processing function"""
    args = parse_arguments(argv)

    log_file = args.log_file or log_file_for_output(args.output)
    setup_logging(log_file, args.quiet, args.verbose)

    logging.info("Peak extraction from elevation data")
    logging.info("=" * 50)
    logging.info(f"Log file: {log_file}")
    logging.info(f"Regions: {len(args.rectangles)}")
    logging.info(f"Elevation source: {args.source}")
    logging.info(f"Output file: {args.output}")

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
