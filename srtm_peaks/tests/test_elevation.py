#!/usr/bin/env python3
"""
Test suite for the ImageServer elevation provider

Covers:
1. exportImage URL construction
2. Download, caching and refresh behavior (HTTP mocked)
3. Non-TIFF responses (fatal) and rasters without valid samples (no data)
4. Only the most recent surface is held in memory
5. Statistics over surfaces with missing samples
"""

import logging
from pathlib import Path
from unittest.mock import patch, MagicMock
from urllib.parse import parse_qs, urlsplit

import numpy as np
import pytest
import rasterio
import requests
from rasterio.transform import from_bounds

from srtm_peaks.elevation import (
    ElevationSurface, ImageServerElevationProvider, build_export_url,
    calculate_statistics, export_image_size, read_elevation_file
)
from srtm_peaks.errors import ElevationSourceError
from srtm_peaks.model import CorrectionOffset, Rectangle
from srtm_peaks.pipeline import run_pipeline

SOURCE = "https://example.org/arcgis/rest/services/DEM/ImageServer"
RECT = Rectangle(13.6, 46.2, 14.0, 46.5)


def write_geotiff(path: Path, data: np.ndarray, rect: Rectangle, nodata=None) -> bytes:
    """Write a single band float32 GeoTIFF covering rect and return its bytes."""
    rows, cols = data.shape
    with rasterio.open(
        path, 'w', driver='GTiff', height=rows, width=cols, count=1, dtype='float32',
        crs='EPSG:4326', transform=from_bounds(rect.min_lng, rect.min_lat, rect.max_lng, rect.max_lat, cols, rows),
        nodata=nodata,
    ) as dst:
        dst.write(data.astype(np.float32), 1)
    return path.read_bytes()


def mock_response(content: bytes) -> MagicMock:
    response = MagicMock()
    response.content = content
    response.raise_for_status.return_value = None
    return response


class TestExportUrl:

    def test_query_parameters(self):
        url = build_export_url(SOURCE + "/", RECT)
        parts = urlsplit(url)
        params = {k: v[0] for k, v in parse_qs(parts.query).items()}

        assert parts.path.endswith("/ImageServer/exportImage")
        assert params['bbox'] == "13.6,46.2,14.0,46.5"
        assert params['bboxSR'] == '4326'
        assert params['format'] == 'tiff'
        assert params['pixelType'] == 'F32'
        assert params['size'] == "480,360"

    def test_size_is_clamped(self):
        assert export_image_size(Rectangle(0, 0, 0.0001, 10)) == (16, 4000)


class TestProvider:

    @pytest.fixture
    def surface_bytes(self, tmp_path):
        data = np.array([[10, 20, 30], [40, -9999, 60]], dtype=np.float32)
        return write_geotiff(tmp_path / "source.tif", data, RECT, nodata=-9999)

    def test_download_and_load(self, tmp_path, surface_bytes, caplog):
        provider = ImageServerElevationProvider(SOURCE, tmp_path / "cache")

        with patch('srtm_peaks.elevation.requests.get', return_value=mock_response(surface_bytes)) as get, \
                caplog.at_level(logging.INFO):
            surface = provider.load_surface_for_area(RECT)

        get.assert_called_once()
        assert "Downloading elevation data" in caplog.text
        assert provider.cached_file(RECT).exists()
        assert surface.data.shape == (2, 3)
        assert surface.data.dtype == np.float32
        assert np.isnan(surface.data[1, 1]), "nodata should be converted to NaN"

    def test_cached_file_reused(self, tmp_path, surface_bytes):
        provider = ImageServerElevationProvider(SOURCE, tmp_path)
        provider.cached_file(RECT).write_bytes(surface_bytes)

        with patch('srtm_peaks.elevation.requests.get') as get:
            surface = provider.load_surface_for_area(RECT)

        get.assert_not_called()
        assert surface is not None

    def test_refresh_ignores_cache(self, tmp_path, surface_bytes):
        provider = ImageServerElevationProvider(SOURCE, tmp_path, refresh=True)
        provider.cached_file(RECT).write_bytes(surface_bytes)

        with patch('srtm_peaks.elevation.requests.get', return_value=mock_response(surface_bytes)) as get:
            provider.load_surface_for_area(RECT)

        get.assert_called_once()

    def test_surfaces_retained_until_close(self, tmp_path, surface_bytes):
        provider = ImageServerElevationProvider(SOURCE, tmp_path)

        with patch('srtm_peaks.elevation.requests.get', return_value=mock_response(surface_bytes)) as get:
            first = provider.load_surface_for_area(RECT)
            second = provider.load_surface_for_area(RECT)
            provider.close()
            third = provider.load_surface_for_area(RECT)

        assert first is second
        assert third is not first
        assert get.call_count == 1, "Second load after close should come from the file cache"

    def test_non_tiff_response(self, tmp_path):
        provider = ImageServerElevationProvider(SOURCE, tmp_path)
        error_body = b'{"error":{"code":400,"message":"Unable to complete operation."}}'

        with patch('srtm_peaks.elevation.requests.get', return_value=mock_response(error_body)):
            with pytest.raises(ElevationSourceError, match="did not return a TIFF"):
                provider.load_surface_for_area(RECT)

        assert not provider.cached_file(RECT).exists()

    def test_only_last_surface_retained(self, tmp_path, surface_bytes):
        provider = ImageServerElevationProvider(SOURCE, tmp_path)
        other = Rectangle(10.0, 45.0, 10.5, 45.5)

        with patch('srtm_peaks.elevation.requests.get', return_value=mock_response(surface_bytes)) as get:
            first = provider.load_surface_for_area(RECT)
            provider.load_surface_for_area(other)
            assert provider.retained_surfaces == 1
            again = provider.load_surface_for_area(RECT)

        assert again is not first, "Earlier surface should have been released"
        assert get.call_count == 2, "Reloading a released surface should come from the file cache"

    def test_bounded_retention_across_regions(self, tmp_path):
        rects = [Rectangle(10.0 + i, 45.0, 10.5 + i, 45.5) for i in range(5)]
        provider = ImageServerElevationProvider(SOURCE, tmp_path)
        for i, rect in enumerate(rects):
            write_geotiff(provider.cached_file(rect), np.full((8, 8), 100.0 * (i + 1)), rect)

        retained = []

        def find_peaks(surface, max_count):
            retained.append(provider.retained_surfaces)
            return []

        peak_finder = MagicMock()
        peak_finder.find_peaks.side_effect = find_peaks

        with patch('srtm_peaks.elevation.requests.get') as get:
            result = run_pipeline(rects, CorrectionOffset(), None, provider, peak_finder)

        get.assert_not_called()
        assert retained == [1] * len(rects)
        assert provider.retained_surfaces == 1
        assert [d.statistics.max_elevation for d in result.diagnostics] == [100.0, 200.0, 300.0, 400.0, 500.0]

    def test_all_nodata_raster(self, tmp_path, caplog):
        data = np.full((4, 4), -9999, dtype=np.float32)
        content = write_geotiff(tmp_path / "empty.tif", data, RECT, nodata=-9999)
        provider = ImageServerElevationProvider(SOURCE, tmp_path / "cache")

        with patch('srtm_peaks.elevation.requests.get', return_value=mock_response(content)), \
                caplog.at_level(logging.WARNING):
            assert provider.load_surface_for_area(RECT) is None

        assert "contains no valid samples" in caplog.text

    def test_http_error_propagates(self, tmp_path):
        provider = ImageServerElevationProvider(SOURCE, tmp_path)
        response = mock_response(b'')
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("503 Server Error")

        with patch('srtm_peaks.elevation.requests.get', return_value=response):
            with pytest.raises(requests.exceptions.HTTPError):
                provider.load_surface_for_area(RECT)


class TestStatistics:

    def test_read_and_summarize(self, tmp_path):
        data = np.array([[5, 15], [25, 35]], dtype=np.float32)
        path = tmp_path / "dem.tif"
        write_geotiff(path, data, RECT)

        statistics = calculate_statistics(read_elevation_file(path))

        assert statistics.point_count == 4
        assert statistics.min_elevation == 5.0
        assert statistics.max_elevation == 35.0
        assert statistics.has_missing_points is False

    def test_all_missing(self):
        surface = ElevationSurface(data=np.full((2, 2), np.nan), transform=from_bounds(0, 0, 1, 1, 2, 2))
        statistics = calculate_statistics(surface)

        assert statistics.min_elevation is None
        assert statistics.max_elevation is None
        assert statistics.has_missing_points is True
