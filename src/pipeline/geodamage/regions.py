"""Region definitions: an AOI plus its pre/post-event periods."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from geodamage.aoi import AreaOfInterest, DateRange
from geodamage.config import default_config_dir

logger = structlog.get_logger()


class UnknownRegionError(LookupError):
    """Raised when a region id is not defined in the regions file."""


@dataclass(frozen=True)
class Region:
    """A place to assess, with operator-chosen comparison dates."""

    region_id: str
    name: str
    aoi: AreaOfInterest
    pre: DateRange
    post: DateRange
    zoom: int = 15
    buildings: bool = True
    description: str = ""

    @classmethod
    def from_dict(cls, region_id: str, data: dict[str, Any]) -> "Region":
        """Create a Region from its YAML mapping."""
        try:
            return cls(
                region_id=region_id,
                name=data.get("name", region_id),
                aoi=AreaOfInterest(
                    vertices=tuple(tuple(v) for v in data["aoi"]),
                    name=region_id,
                ),
                pre=DateRange.from_dict(data["pre"]),
                post=DateRange.from_dict(data["post"]),
                zoom=int(data.get("zoom", 15)),
                buildings=bool(data.get("buildings", True)),
                description=data.get("description", ""),
            )
        except KeyError as e:
            raise ValueError(f"Region '{region_id}' is missing required field {e}") from e


def load_regions(path: Path | None = None) -> dict[str, Region]:
    """Load region definitions from a YAML file.

    Args:
        path: regions.yaml path. Defaults to the bundled config directory.

    Returns:
        Regions keyed by id, in file order.
    """
    if path is None or not path.exists():
        path = default_config_dir() / "regions.yaml"

    if not path.exists():
        logger.warning("No region definitions found", path=str(path))
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    regions = {
        region_id: Region.from_dict(region_id, body)
        for region_id, body in (data.get("regions") or {}).items()
    }
    logger.debug("Loaded regions", path=str(path), count=len(regions))
    return regions


def get_region(region_id: str, path: Path | None = None) -> Region:
    """Look up a single region by id."""
    regions = load_regions(path)
    if region_id not in regions:
        available = ", ".join(sorted(regions)) or "none"
        raise UnknownRegionError(f"Unknown region '{region_id}' (available: {available})")
    return regions[region_id]
