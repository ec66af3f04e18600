"""Earth Engine expressions for mosaics, masking and texture metrics.

Nothing here is evaluated client-side except the collection size check
and the optional statistics; the returned objects are lazy ``ee.Image``
expressions.
"""

from typing import Any

import ee
import structlog

from geodamage.aoi import DateRange
from geodamage.assessment import DifferenceStats, NoImageryError, TextureMetric
from geodamage.config import MaskConfig, TextureConfig

logger = structlog.get_logger()


def period_collection(collection_id: str, geometry: Any, period: DateRange) -> Any:
    """Images of one collection overlapping the AOI within a period."""
    start, end = period.ee_args()
    return ee.ImageCollection(collection_id).filterDate(start, end).filterBounds(geometry)


def period_mosaic(
    collection_id: str,
    geometry: Any,
    period: DateRange,
    require_imagery: bool = True,
) -> Any:
    """Mosaic of a period's images, the most recent on top.

    Args:
        collection_id: Earth Engine collection id, e.g. COPERNICUS/S2_SR.
        geometry: AOI as an ee.Geometry.
        period: Comparison period (end exclusive).
        require_imagery: Check the collection size first.

    Raises:
        NoImageryError: If ``require_imagery`` and the period is empty.
    """
    collection = period_collection(collection_id, geometry, period)

    if require_imagery:
        count = collection.size().getInfo()
        logger.info("Filtered collection", collection=collection_id, period=str(period), images=count)
        if count == 0:
            raise NoImageryError(f"No images in {collection_id} for {period}")

    return collection.mosaic()


def mask_clouds_vegetation(image: Any, config: MaskConfig | None = None) -> Any:
    """Keep clear non-vegetated pixels and scale to reflectance."""
    config = config or MaskConfig()

    scl = image.select("SCL")
    ndvi = image.normalizedDifference(["B8", "B4"])

    classes = list(config.keep_scl_classes)
    clear_mask = scl.eq(classes[0])
    for scl_class in classes[1:]:
        clear_mask = clear_mask.Or(scl.eq(scl_class))
    vegetation_mask = ndvi.lt(config.ndvi_threshold)

    return image.updateMask(clear_mask.And(vegetation_mask)).divide(config.reflectance_scale)


def combined_texture(image: Any, metric: TextureMetric, config: TextureConfig | None = None) -> Any:
    """Mean of a GLCM statistic across the texture bands."""
    config = config or TextureConfig()

    per_band = []
    for band in config.bands:
        quantized = image.select([band]).multiply(config.levels).toInt()
        glcm = quantized.glcmTexture(size=config.size, average=True)
        per_band.append(glcm.select([f"{band}_{metric.statistic}"]))

    return ee.Image.cat(per_band).reduce(ee.Reducer.mean()).rename(metric.band_name)


def texture_difference(pre: Any, post: Any, name: str) -> Any:
    """Absolute difference of two combined texture images."""
    return pre.subtract(post).abs().rename(name)


def summarize_difference(diff: Any, geometry: Any, band_name: str, scale: float = 10.0) -> DifferenceStats:
    """Mean, max and valid pixel count of a difference image in the AOI."""
    reducer = ee.Reducer.mean().combine(ee.Reducer.max(), sharedInputs=True).combine(
        ee.Reducer.count(), sharedInputs=True
    )
    values = diff.reduceRegion(
        reducer=reducer,
        geometry=geometry,
        scale=scale,
        maxPixels=1e9,
    ).getInfo()

    count = values.get(f"{band_name}_count") or 0
    return DifferenceStats(
        mean=values.get(f"{band_name}_mean"),
        max=values.get(f"{band_name}_max"),
        valid_pixels=int(count),
    )
