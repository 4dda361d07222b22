"""
Configuration constants and defaults for peak extraction.
"""
from pathlib import Path

# === OUTPUT / CACHE DEFAULTS ===
DEFAULT_OUTPUT_FILE = "peaks.kml"
DEFAULT_CACHE_DIR = Path("srtm")

# === ELEVATION SOURCE ===
# ArcGIS ImageServer exposing an elevation mosaic in meters
DEFAULT_ELEVATION_SOURCE = "https://elevation.nationalmap.gov/arcgis/rest/services/3DEPElevation/ImageServer"
SUPPORTED_SOURCE_SCHEMES = ("http", "https", "ftp")
DOWNLOAD_TIMEOUT_S = 120

# Export raster density: SRTM3 resolution is 3 arc-seconds (1200 samples per degree)
EXPORT_PIXELS_PER_DEGREE = 1200
EXPORT_MIN_PIXELS = 16
EXPORT_MAX_PIXELS = 4000

# === PEAK DETECTION ===
PEAK_MIN_DISTANCE_PX = 10  # Minimum separation between reported peaks, in raster cells

# === LOGGING ===
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
QUIET_LOGGERS = ('rasterio', 'urllib3')
