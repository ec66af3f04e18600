"""Building footprints from a local vector dataset."""

from pathlib import Path

import geopandas as gpd
import structlog

from geodamage.aoi import AreaOfInterest

logger = structlog.get_logger()


def load_building_footprints(path: Path, aoi: AreaOfInterest) -> gpd.GeoDataFrame:
    """Read the footprints that intersect the AOI.

    Args:
        path: Any vector file geopandas can read (GeoJSON, GeoPackage,
            FlatGeobuf, ...), e.g. an Open Buildings extract.
        aoi: Area of interest.

    Returns:
        Footprints in EPSG:4326 intersecting the AOI polygon.
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Building footprints file not found: {path}")

    aoi_series = gpd.GeoSeries([aoi.polygon], crs="EPSG:4326")
    footprints = gpd.read_file(path, mask=aoi_series)

    if footprints.crs is None:
        footprints = footprints.set_crs("EPSG:4326")
    else:
        footprints = footprints.to_crs("EPSG:4326")

    footprints = footprints[footprints.intersects(aoi.polygon)]
    logger.info("Loaded building footprints", path=str(path), count=len(footprints))
    return footprints


def count_building_footprints(path: Path, aoi: AreaOfInterest) -> int:
    """Number of footprints intersecting the AOI."""
    return len(load_building_footprints(path, aoi))
