"""Google Open Buildings footprints on Earth Engine."""

from typing import Any

import ee
import structlog

logger = structlog.get_logger()


def building_footprints(collection_id: str, geometry: Any) -> Any:
    """Footprint polygons intersecting the AOI."""
    return ee.FeatureCollection(collection_id).filterBounds(geometry)


def count_footprints(footprints: Any) -> int:
    """Number of footprints in a filtered collection (one server request)."""
    count = int(footprints.size().getInfo())
    logger.info("Counted building footprints", count=count)
    return count
