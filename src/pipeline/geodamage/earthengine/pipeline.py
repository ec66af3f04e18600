"""Earth Engine execution of the pre/post texture comparison."""

from pathlib import Path

import structlog

from geodamage.aoi import AreaOfInterest
from geodamage.assessment import DamageAssessment, TextureMetric
from geodamage.config import Config, get_config
from geodamage.earthengine.buildings import building_footprints, count_footprints
from geodamage.earthengine.imagery import (
    combined_texture,
    mask_clouds_vegetation,
    period_mosaic,
    summarize_difference,
    texture_difference,
)
from geodamage.earthengine.mapping import LayerMap
from geodamage.earthengine.session import initialize
from geodamage.regions import Region
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


def assess_with_earthengine(
    region: Region,
    output_dir: Path,
    config: Config | None = None,
    include_buildings: bool = True,
    compute_stats: bool = False,
) -> DamageAssessment:
    """Build the pipeline as Earth Engine expressions and save the map.

    Args:
        region: AOI and comparison periods.
        output_dir: Directory for the HTML map.
        config: Pipeline configuration. Defaults to the global config.
        include_buildings: Add the Open Buildings layer and count footprints.
        compute_stats: Reduce the difference images over the AOI.

    Returns:
        DamageAssessment; stats are only filled when ``compute_stats``.
    """
    config = config or get_config()
    ee_config = config.earthengine
    output_dir = Path(output_dir)

    region.aoi.check_size(config.aoi.max_area_km2)
    initialize(ee_config.project)
    geometry = region.aoi.to_ee_geometry()

    logger.info(
        "Starting Earth Engine assessment",
        region=region.region_id,
        collection=ee_config.collection,
        pre=str(region.pre),
        post=str(region.post),
    )

    pre_mosaic = period_mosaic(ee_config.collection, geometry, region.pre, ee_config.require_imagery)
    post_mosaic = period_mosaic(ee_config.collection, geometry, region.post, ee_config.require_imagery)

    pre_masked = mask_clouds_vegetation(pre_mosaic, config.mask)
    post_masked = mask_clouds_vegetation(post_mosaic, config.mask)

    assessment = DamageAssessment(
        region_id=region.region_id,
        engine="earthengine",
        pre=region.pre,
        post=region.post,
    )

    layer_map = LayerMap(geometry, zoom=region.zoom)
    layer_map.add_image(pre_mosaic, mosaic_params(config.visualization), PRE_MOSAIC_LAYER)
    layer_map.add_image(post_mosaic, mosaic_params(config.visualization), POST_MOSAIC_LAYER)

    for metric, layer_name in DIFFERENCE_LAYERS.items():
        diff = texture_difference(
            combined_texture(pre_masked, metric, config.texture),
            combined_texture(post_masked, metric, config.texture),
            metric.difference_name,
        )
        layer_map.add_image(diff, difference_params(metric.value, config.visualization), layer_name)

        if compute_stats:
            assessment.stats[metric] = summarize_difference(
                diff, geometry, metric.difference_name, scale=ee_config.stats_scale
            )

    if include_buildings:
        footprints = building_footprints(ee_config.buildings_collection, geometry)
        layer_map.add_features(footprints, BUILDINGS_LAYER)
        assessment.building_count = count_footprints(footprints)

    assessment.outputs["map"] = layer_map.save(output_dir / f"{region.region_id}_map.html")

    logger.info("Earth Engine assessment complete", region=region.region_id)
    return assessment


def count_buildings_with_earthengine(aoi: AreaOfInterest, config: Config | None = None) -> int:
    """Count Open Buildings footprints intersecting an AOI."""
    config = config or get_config()
    aoi.check_size(config.aoi.max_area_km2)
    initialize(config.earthengine.project)
    footprints = building_footprints(config.earthengine.buildings_collection, aoi.to_ee_geometry())
    return count_footprints(footprints)
