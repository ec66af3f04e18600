"""Tests for Earth Engine session handling and pipeline wiring."""

from unittest.mock import MagicMock, patch

import pytest

from geodamage.assessment import NoImageryError, TextureMetric
from geodamage.config import Config
from geodamage.earthengine import session
from geodamage.earthengine.pipeline import assess_with_earthengine, count_buildings_with_earthengine
from geodamage.visualization import BUILDINGS_LAYER, DISSIMILARITY_LAYER, HOMOGENEITY_LAYER


@pytest.fixture(autouse=True)
def reset_session():
    session.reset()
    yield
    session.reset()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class TestInitialize:

    def test_initializes_once(self):
        with patch("geodamage.earthengine.session.ee") as mock_ee:
            session.initialize("my-project")
            session.initialize("my-project")

        mock_ee.Initialize.assert_called_once_with(project="my-project")
        mock_ee.Authenticate.assert_not_called()

    def test_falls_back_to_authenticate(self):
        with patch("geodamage.earthengine.session.ee") as mock_ee:
            mock_ee.Initialize.side_effect = [Exception("no credentials"), None]

            session.initialize("my-project")

        mock_ee.Authenticate.assert_called_once_with()
        assert mock_ee.Initialize.call_count == 2

    def test_second_failure_propagates(self):
        with patch("geodamage.earthengine.session.ee") as mock_ee:
            mock_ee.Initialize.side_effect = Exception("still no credentials")

            with pytest.raises(Exception, match="still no credentials"):
                session.initialize(None)


# ---------------------------------------------------------------------------
# Pipeline wiring
# ---------------------------------------------------------------------------

@pytest.fixture
def ee_stubs():
    """Patch every Earth Engine touch point used by the pipeline module."""
    targets = [
        "initialize",
        "period_mosaic",
        "mask_clouds_vegetation",
        "combined_texture",
        "texture_difference",
        "summarize_difference",
        "building_footprints",
        "count_footprints",
        "LayerMap",
    ]
    patchers = {name: patch(f"geodamage.earthengine.pipeline.{name}") for name in targets}
    mocks = {name: p.start() for name, p in patchers.items()}
    mocks["count_footprints"].return_value = 42
    yield mocks
    for p in patchers.values():
        p.stop()


class TestAssessWithEarthEngine:

    def test_builds_layers_in_order(self, ee_stubs, sample_region, tmp_path):
        with patch.object(type(sample_region.aoi), "to_ee_geometry", return_value="GEOMETRY"):
            assessment = assess_with_earthengine(sample_region, tmp_path, config=Config())

        layer_map = ee_stubs["LayerMap"].return_value
        names = [c.args[2] for c in layer_map.add_image.call_args_list]
        assert names == ["Pre-Event Mosaic", "Post-Event Mosaic", HOMOGENEITY_LAYER, DISSIMILARITY_LAYER]
        layer_map.add_features.assert_called_once()
        assert layer_map.add_features.call_args.args[1] == BUILDINGS_LAYER

        assert ee_stubs["period_mosaic"].call_count == 2
        assert ee_stubs["combined_texture"].call_count == 4
        ee_stubs["LayerMap"].assert_called_once_with("GEOMETRY", zoom=15)
        assert assessment.building_count == 42
        assert assessment.engine == "earthengine"
        assert assessment.outputs["map"] == layer_map.save.return_value

    def test_difference_params_per_metric(self, ee_stubs, sample_region, tmp_path):
        with patch.object(type(sample_region.aoi), "to_ee_geometry", return_value="GEOMETRY"):
            assess_with_earthengine(sample_region, tmp_path, config=Config())

        vis = {c.args[2]: c.args[1] for c in ee_stubs["LayerMap"].return_value.add_image.call_args_list}
        assert vis[HOMOGENEITY_LAYER]["max"] == 0.27
        assert vis[DISSIMILARITY_LAYER]["max"] == 0.85
        assert vis["Pre-Event Mosaic"] == {"bands": ["B4", "B3", "B2"], "min": 0, "max": 8000.0}

    def test_buildings_disabled(self, ee_stubs, sample_region, tmp_path):
        with patch.object(type(sample_region.aoi), "to_ee_geometry", return_value="GEOMETRY"):
            assessment = assess_with_earthengine(sample_region, tmp_path, config=Config(), include_buildings=False)

        ee_stubs["building_footprints"].assert_not_called()
        assert assessment.building_count is None

    def test_stats_only_when_requested(self, ee_stubs, sample_region, tmp_path):
        with patch.object(type(sample_region.aoi), "to_ee_geometry", return_value="GEOMETRY"):
            without = assess_with_earthengine(sample_region, tmp_path, config=Config())
            with_stats = assess_with_earthengine(sample_region, tmp_path, config=Config(), compute_stats=True)

        assert without.stats == {}
        assert set(with_stats.stats) == {TextureMetric.HOMOGENEITY, TextureMetric.DISSIMILARITY}

    def test_no_imagery_propagates(self, ee_stubs, sample_region, tmp_path):
        ee_stubs["period_mosaic"].side_effect = NoImageryError("No images")

        with patch.object(type(sample_region.aoi), "to_ee_geometry", return_value="GEOMETRY"):
            with pytest.raises(NoImageryError):
                assess_with_earthengine(sample_region, tmp_path, config=Config())

    def test_count_buildings(self, ee_stubs, square_aoi):
        with patch.object(type(square_aoi), "to_ee_geometry", return_value="GEOMETRY"):
            count = count_buildings_with_earthengine(square_aoi, Config())

        assert count == 42
        ee_stubs["building_footprints"].assert_called_once_with(
            "GOOGLE/Research/open-buildings/v3/polygons", "GEOMETRY"
        )
