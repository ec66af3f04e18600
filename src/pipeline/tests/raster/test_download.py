"""Tests for Sentinel-2 band loading and grid alignment."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import numpy as np
import rioxarray  # noqa: F401 - needed for .rio accessor on DataArrays
import xarray as xr

from geodamage.raster.download import load_band_from_url, load_scene_bands
from geodamage.stac.search import SceneInfo

KHARTOUM_BBOX = (32.52, 15.48, 32.56, 15.52)


def make_utm_band(values: np.ndarray, res: float, origin=(440000.0, 1720000.0)) -> xr.DataArray:
    """2D band in UTM zone 36N with ``res`` metre pixels from a top-left origin."""
    rows, cols = values.shape
    da = xr.DataArray(
        values.astype(np.float32),
        dims=["y", "x"],
        coords={
            "y": origin[1] - res / 2 - res * np.arange(rows),
            "x": origin[0] + res / 2 + res * np.arange(cols),
        },
    )
    return da.rio.write_crs("EPSG:32636")


def make_scene(bands: list[str]) -> SceneInfo:
    return SceneInfo(
        scene_id="S2A_TEST",
        datetime=datetime(2024, 3, 5, 8, 30, tzinfo=timezone.utc),
        cloud_cover=1.0,
        bbox=(32.0, 15.0, 33.0, 16.0),
        assets={b: {"href": f"https://example.com/{b}.tif"} for b in bands},
    )


class TestLoadBandFromUrl:

    def test_bbox_is_clipped_in_wgs84(self):
        raster = MagicMock()
        raster.shape = (1, 10, 10)
        with patch("geodamage.raster.download.rxr.open_rasterio", return_value=raster):
            load_band_from_url("https://example.com/B04.tif", KHARTOUM_BBOX)

        raster.rio.clip_box.assert_called_once_with(*KHARTOUM_BBOX, crs="EPSG:4326")

    def test_no_bbox_returns_squeezed_band(self):
        band = make_utm_band(np.ones((3, 3)), 10.0).expand_dims(band=[1])
        with patch("geodamage.raster.download.rxr.open_rasterio", return_value=band):
            result = load_band_from_url("https://example.com/B04.tif")

        assert result.dims == ("y", "x")


class TestLoadSceneBands:

    def test_same_shape_coarser_band_is_resampled(self):
        """A 20 m SCL window with the same shape as the 10 m window is still regridded."""
        red = make_utm_band(1000 + np.arange(16).reshape(4, 4), 10.0)
        scl = np.arange(1, 17).reshape(4, 4)
        urls = {
            "https://example.com/B04.tif": red,
            "https://example.com/SCL.tif": make_utm_band(scl, 20.0),
        }

        with patch(
            "geodamage.raster.download.load_band_from_url",
            side_effect=lambda url, bbox: urls[url],
        ):
            stacked = load_scene_bands(make_scene(["B04", "SCL"]), KHARTOUM_BBOX, ("B4", "SCL"))

        assert stacked.shape == (2, 4, 4)
        np.testing.assert_array_equal(stacked.x.values, red.x.values)
        np.testing.assert_array_equal(stacked.y.values, red.y.values)
        expected = scl[np.arange(4) // 2][:, np.arange(4) // 2]
        np.testing.assert_array_equal(stacked.sel(band="SCL").values, expected)

    def test_scl_nodata_masks_every_band(self):
        red = make_utm_band(np.full((2, 2), 1000), 10.0)
        scl = make_utm_band(np.array([[4, 0], [5, 6]]), 10.0)
        urls = {"https://example.com/B04.tif": red, "https://example.com/SCL.tif": scl}

        with patch(
            "geodamage.raster.download.load_band_from_url",
            side_effect=lambda url, bbox: urls[url],
        ):
            stacked = load_scene_bands(make_scene(["B04", "SCL"]), KHARTOUM_BBOX, ("B4", "SCL"))

        assert np.isnan(stacked.sel(band="B4").values[0, 1])
        assert stacked.sel(band="B4").values[1, 1] == 1000
