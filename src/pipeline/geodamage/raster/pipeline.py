"""Local execution of the texture damage pipeline.

Scenes come from the STAC catalog and every step runs in memory with
numpy/xarray, so the AOI should stay small (a few km2).
"""

from pathlib import Path

import structlog
import xarray as xr

from geodamage.aoi import AreaOfInterest, DateRange
from geodamage.assessment import DamageAssessment, NoImageryError, TextureMetric
from geodamage.config import Config, get_config
from geodamage.footprints import load_building_footprints
from geodamage.raster.change import clip_to_aoi, difference_stats, save_raster, texture_difference
from geodamage.raster.download import align_to, load_scene_bands
from geodamage.raster.masking import mask_clouds_vegetation
from geodamage.raster.mosaic import first_valid_mosaic
from geodamage.raster.render import build_map, render_overlay
from geodamage.raster.texture import combined_texture
from geodamage.regions import Region
from geodamage.stac.search import search_scenes
from geodamage.visualization import (
    BUILDINGS_LAYER,
    DISSIMILARITY_LAYER,
    HOMOGENEITY_LAYER,
    POST_MOSAIC_LAYER,
    PRE_MOSAIC_LAYER,
    difference_params,
    mosaic_params,
)

logger = structlog.get_logger()

DIFFERENCE_LAYERS = {
    TextureMetric.HOMOGENEITY: HOMOGENEITY_LAYER,
    TextureMetric.DISSIMILARITY: DISSIMILARITY_LAYER,
}


def build_period_mosaic(
    aoi: AreaOfInterest,
    period: DateRange,
    config: Config | None = None,
) -> tuple[xr.DataArray, list[str]]:
    """Search, load and composite all scenes of one period.

    Returns:
        Tuple of (unscaled mosaic with texture bands and SCL, scene ids in
        compositing order).

    Raises:
        NoImageryError: If the catalog has no scene for the period.
    """
    config = config or get_config()
    bands = tuple(dict.fromkeys(config.texture.bands + config.visualization.rgb_bands + ("B4", "B8", "SCL")))

    scenes = search_scenes(
        bbox=aoi.bbox,
        period=period,
        max_cloud_cover=config.stac.max_cloud_cover,
        max_items=config.stac.max_items,
    )
    if not scenes:
        raise NoImageryError(f"No Sentinel-2 scenes for '{aoi.name}' in {period}")

    images = [load_scene_bands(scene, aoi.bbox, bands) for scene in scenes]
    return first_valid_mosaic(images), [scene.scene_id for scene in scenes]


def assess_locally(
    region: Region,
    output_dir: Path,
    config: Config | None = None,
    buildings_file: Path | None = None,
    include_buildings: bool = True,
) -> DamageAssessment:
    """Run the whole pre/post texture comparison for a region.

    Args:
        region: AOI and comparison periods.
        output_dir: Directory for GeoTIFFs, PNG overlays and the HTML map.
        config: Pipeline configuration. Defaults to the global config.
        buildings_file: Vector file with building footprints.
        include_buildings: Overlay and count footprints when a file is given.

    Returns:
        DamageAssessment with per-metric stats and output paths.
    """
    config = config or get_config()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    aoi = region.aoi

    aoi.check_size(config.aoi.max_area_km2)
    logger.info("Starting local assessment", region=region.region_id, pre=str(region.pre), post=str(region.post))

    pre_mosaic, pre_scenes = build_period_mosaic(aoi, region.pre, config)
    post_mosaic, post_scenes = build_period_mosaic(aoi, region.post, config)
    post_mosaic = align_to(post_mosaic, pre_mosaic)

    pre_masked = mask_clouds_vegetation(pre_mosaic, config.mask)
    post_masked = mask_clouds_vegetation(post_mosaic, config.mask)

    assessment = DamageAssessment(
        region_id=region.region_id,
        engine="local",
        pre=region.pre,
        post=region.post,
        scenes={"pre": pre_scenes, "post": post_scenes},
    )

    overlays = [
        render_overlay(
            clip_to_aoi(pre_mosaic, aoi),
            PRE_MOSAIC_LAYER,
            mosaic_params(config.visualization),
            output_dir / "pre_mosaic.png",
        ),
        render_overlay(
            clip_to_aoi(post_mosaic, aoi),
            POST_MOSAIC_LAYER,
            mosaic_params(config.visualization),
            output_dir / "post_mosaic.png",
        ),
    ]

    for metric, layer_name in DIFFERENCE_LAYERS.items():
        pre_texture = combined_texture(pre_masked, metric, config.texture)
        post_texture = combined_texture(post_masked, metric, config.texture)
        diff = clip_to_aoi(texture_difference(pre_texture, post_texture, metric.difference_name), aoi)

        assessment.stats[metric] = difference_stats(diff)
        assessment.outputs[metric.difference_name] = save_raster(diff, output_dir / f"{metric.difference_name}.tif")
        overlays.append(
            render_overlay(
                diff,
                layer_name,
                difference_params(metric.value, config.visualization),
                output_dir / f"{metric.difference_name}.png",
            )
        )

    footprints = None
    if include_buildings and buildings_file is not None:
        footprints = load_building_footprints(buildings_file, aoi)
        assessment.building_count = len(footprints)
    elif include_buildings:
        logger.warning("No building footprints file given; skipping overlay", region=region.region_id)

    m = build_map(
        aoi,
        overlays,
        zoom=region.zoom,
        footprints=footprints.__geo_interface__ if footprints is not None else None,
        footprints_name=BUILDINGS_LAYER,
    )
    map_path = output_dir / f"{region.region_id}_map.html"
    m.save(str(map_path))
    assessment.outputs["map"] = map_path

    logger.info("Local assessment complete", region=region.region_id, map=str(map_path))
    return assessment

