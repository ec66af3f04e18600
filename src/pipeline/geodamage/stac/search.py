"""High-level scene search functionality."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from geodamage.aoi import DateRange
from geodamage.stac.client import StacClient

logger = structlog.get_logger()


@dataclass
class SceneInfo:
    """Information about a satellite imagery scene."""

    scene_id: str
    datetime: datetime
    cloud_cover: float
    bbox: tuple[float, float, float, float]
    assets: dict[str, dict[str, str]]
    platform: str | None = None
    epsg: int | None = None
    mgrs_tile: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneInfo":
        """Create SceneInfo from a STAC item dictionary."""
        dt_str = data.get("datetime", "")
        if dt_str:
            # Handle ISO format with Z timezone
            dt_str = dt_str.replace("Z", "+00:00")
            dt = datetime.fromisoformat(dt_str)
        else:
            dt = datetime.now()

        properties = data.get("properties", {})
        return cls(
            scene_id=data["id"],
            datetime=dt,
            cloud_cover=data.get("cloud_cover", 0),
            bbox=tuple(data.get("bbox", [0, 0, 0, 0])),
            assets=data.get("assets", {}),
            platform=properties.get("platform"),
            epsg=properties.get("proj:epsg"),
            mgrs_tile=properties.get("s2:mgrs_tile"),
        )

    def get_band_url(self, band: str) -> str | None:
        """Get the URL for a specific band."""
        asset = self.assets.get(band)
        return asset.get("href") if asset else None


def search_scenes(
    bbox: tuple[float, float, float, float],
    period: DateRange,
    max_cloud_cover: float | None = None,
    max_items: int = 50,
) -> list[SceneInfo]:
    """Search for satellite imagery scenes covering a period.

    Args:
        bbox: Bounding box as (min_lon, min_lat, max_lon, max_lat).
        period: Comparison period (end exclusive).
        max_cloud_cover: Maximum cloud cover percentage.
        max_items: Maximum number of scenes to return.

    Returns:
        List of SceneInfo objects sorted by date (newest first).
    """
    start_date, end_date = period.stac_interval().split("/")

    client = StacClient()
    results = client.search(
        bbox=bbox,
        start_date=start_date,
        end_date=end_date,
        max_items=max_items,
        max_cloud_cover=max_cloud_cover,
    )

    scenes = [SceneInfo.from_dict(r) for r in results]
    scenes.sort(key=lambda s: s.datetime, reverse=True)

    logger.info(
        "Scene search complete",
        num_scenes=len(scenes),
        date_range=str(period),
    )

    return scenes
