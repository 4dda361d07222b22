"""Shared utility functions for the peak extraction tool.

- Run log naming beside the KML output
- Logging setup
- Locale-independent number parsing for option and URL parameters
"""
from __future__ import annotations

import re
import math
import sys
import logging
from datetime import datetime, timezone
from pathlib import Path

from srtm_peaks.config import LOG_FORMAT, LOG_DATE_FORMAT, QUIET_LOGGERS
from srtm_peaks.errors import InvalidArgument

__all__ = [
    "log_file_for_output",
    "setup_logging",
    "parse_decimal",
    "parse_integer",
]

# Period is the only decimal separator; no grouping
_DECIMAL_RE = re.compile(r'^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$')
_INTEGER_RE = re.compile(r'^[-+]?\d+$')


def log_file_for_output(output_file: str | Path) -> Path:
    """Timestamped log path beside the KML output, named after its stem."""
    output = Path(output_file)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return output.with_name(f"{output.stem}_{timestamp}.log")


def setup_logging(log_file: str | Path | None = None, quiet: bool = False, verbose: bool = False):
    """Route records to the run log and the console.

    The log file always receives DEBUG records, so export URLs and cache hits
    are on record for every run. The console shows INFO, or DEBUG when
    ``verbose`` is set, and is dropped by ``quiet`` unless there is no file.
    Debug chatter from rasterio and urllib3 is held back to WARNING.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers = []
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)
    if not quiet or not handlers:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(logging.DEBUG if verbose else logging.INFO)
        handlers.append(console)

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def parse_decimal(text: str, name: str = "value") -> float:
    """Parse a decimal number written with a period separator.

    Raises:
        InvalidArgument: if the text is not a plain decimal number, or
            overflows to infinity (e.g. ``1e400``)
    """
    value = text.strip() if isinstance(text, str) else text
    if not isinstance(value, str) or not _DECIMAL_RE.match(value):
        raise InvalidArgument(f"{name} is not a valid number: {text!r}")

    number = float(value)
    if not math.isfinite(number):
        raise InvalidArgument(f"{name} is out of range: {text!r}")
    return number


def parse_integer(text: str, name: str = "value") -> int:
    """Parse a base-10 integer."""
    value = text.strip() if isinstance(text, str) else text
    if not isinstance(value, str) or not _INTEGER_RE.match(value):
        raise InvalidArgument(f"{name} is not a valid integer: {text!r}")
    return int(value)
