"""Tests for visualization parameters and local rendering."""

import numpy as np
import pytest
from PIL import Image

from geodamage.config import VisualizationConfig
from geodamage.raster.render import RasterOverlay, build_map, colorize, render_overlay, rgb_composite
from geodamage.visualization import (
    HOMOGENEITY_LAYER,
    difference_params,
    mosaic_params,
    params_with_max,
)


# ---------------------------------------------------------------------------
# Parameter builders
# ---------------------------------------------------------------------------

class TestParamsWithMax:

    @pytest.mark.parametrize("max_value", [0.27, 0.85, 1.0])
    def test_structure(self, max_value):
        assert params_with_max(max_value) == {
            "min": 0,
            "max": max_value,
            "palette": ["blue", "white", "red"],
        }

    def test_returns_fresh_palette_list(self):
        first = params_with_max(0.27)
        first["palette"].append("green")

        assert params_with_max(0.27)["palette"] == ["blue", "white", "red"]


class TestLayerParams:

    def test_difference_maxima(self):
        assert difference_params("homogeneity")["max"] == 0.27
        assert difference_params("dissimilarity")["max"] == 0.85

    def test_difference_maxima_from_config(self):
        vis = VisualizationConfig(homogeneity_max=0.5, palette=("black", "white"))

        params = difference_params("homogeneity", vis)

        assert params == {"min": 0, "max": 0.5, "palette": ["black", "white"]}

    def test_unknown_metric_raises(self):
        with pytest.raises(ValueError, match="contrast"):
            difference_params("contrast")

    def test_mosaic_params(self):
        assert mosaic_params() == {"bands": ["B4", "B3", "B2"], "min": 0, "max": 8000.0}


# ---------------------------------------------------------------------------
# Local rendering
# ---------------------------------------------------------------------------

class TestColorize:

    def test_palette_ends(self):
        rgba = colorize(np.array([[0.0, 0.27]]), params_with_max(0.27))

        # blue at the minimum, red at the maximum
        assert tuple(rgba[0, 0]) == (0, 0, 255, 255)
        assert tuple(rgba[0, 1]) == (255, 0, 0, 255)

    def test_values_above_max_saturate(self):
        rgba = colorize(np.array([[0.27, 5.0]]), params_with_max(0.27))

        assert tuple(rgba[0, 0]) == tuple(rgba[0, 1])

    def test_nan_is_transparent(self):
        rgba = colorize(np.array([[np.nan, 0.1]]), params_with_max(0.27))

        assert rgba[0, 0, 3] == 0
        assert rgba[0, 1, 3] == 255

    def test_invalid_range_raises(self):
        with pytest.raises(ValueError):
            colorize(np.zeros((1, 1)), {"min": 0, "max": 0, "palette": ["blue", "red"]})


class TestRgbComposite:

    def test_stretch_and_transparency(self, image_factory):
        image = image_factory({
            "B2": np.array([[0.0, 8000.0]]),
            "B3": np.array([[4000.0, 8000.0]]),
            "B4": np.array([[8000.0, np.nan]]),
        })

        rgba = rgb_composite(image, mosaic_params())

        assert tuple(rgba[0, 0]) == (255, 127, 0, 255)
        assert rgba[0, 1, 3] == 0


class TestRenderAndMap:

    def test_render_overlay_writes_png(self, image_factory, tmp_path):
        image = image_factory({"B2": np.random.default_rng(1).uniform(0, 0.3, (8, 8))})
        diff = image.sel(band="B2", drop=True)

        overlay = render_overlay(diff, HOMOGENEITY_LAYER, params_with_max(0.27), tmp_path / "h.png")

        assert overlay.png_path.exists()
        min_lon, min_lat, max_lon, max_lat = overlay.bounds
        assert min_lon < max_lon
        assert min_lat < max_lat

    def test_build_map_contains_layers(self, square_aoi, tmp_path):
        png = tmp_path / "layer.png"
        Image.fromarray(np.zeros((2, 2, 4), dtype=np.uint8)).save(png)
        overlays = [RasterOverlay(name=HOMOGENEITY_LAYER, png_path=png, bounds=square_aoi.bbox)]

        m = build_map(square_aoi, overlays, zoom=15)
        html_path = tmp_path / "map.html"
        m.save(str(html_path))

        html = html_path.read_text()
        assert HOMOGENEITY_LAYER in html
        assert "Area of interest" in html
