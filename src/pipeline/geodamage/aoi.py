"""Areas of interest and comparison periods."""

import json
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import structlog
from shapely.geometry import Point, Polygon, shape

from geodamage.geo_utils import polygon_area_m2

logger = structlog.get_logger()

Vertex = tuple[float, float]


@dataclass(frozen=True)
class AreaOfInterest:
    """A closed lon/lat polygon constraining every spatial query.

    The first vertex must repeat as the last one.
    """

    vertices: tuple[Vertex, ...]
    name: str = "aoi"

    def __post_init__(self) -> None:
        vertices = tuple((float(lon), float(lat)) for lon, lat in self.vertices)
        object.__setattr__(self, "vertices", vertices)

        if len(vertices) < 4:
            raise ValueError(
                f"AOI '{self.name}' needs at least 4 vertices (including the closing one), "
                f"got {len(vertices)}"
            )
        if vertices[0] != vertices[-1]:
            raise ValueError(
                f"AOI '{self.name}' is not closed: first vertex {vertices[0]} "
                f"differs from last vertex {vertices[-1]}"
            )
        for lon, lat in vertices:
            if not (-180 <= lon <= 180 and -90 <= lat <= 90):
                raise ValueError(f"AOI '{self.name}' vertex ({lon}, {lat}) is not a valid lon/lat")

    @classmethod
    def from_bbox(
        cls,
        bbox: tuple[float, float, float, float],
        name: str = "aoi",
    ) -> "AreaOfInterest":
        """Build a closed rectangle from (min_lon, min_lat, max_lon, max_lat)."""
        min_lon, min_lat, max_lon, max_lat = bbox
        return cls(
            vertices=(
                (min_lon, min_lat),
                (max_lon, min_lat),
                (max_lon, max_lat),
                (min_lon, max_lat),
                (min_lon, min_lat),
            ),
            name=name,
        )

    @classmethod
    def from_geojson(cls, path: Path, name: str | None = None) -> "AreaOfInterest":
        """Read the first Polygon from a GeoJSON file.

        Accepts a FeatureCollection, a Feature or a bare geometry.
        """
        with open(path) as f:
            data = json.load(f)

        geometry = _first_geometry(data)
        if geometry is None:
            raise ValueError(f"No geometry found in {path}")

        geom = shape(geometry)
        if geom.geom_type == "MultiPolygon":
            geom = max(geom.geoms, key=lambda g: g.area)
        if geom.geom_type != "Polygon":
            raise ValueError(f"AOI must be a Polygon, got {geom.geom_type} in {path}")

        # GeoJSON rings are closed by definition
        return cls(vertices=tuple(geom.exterior.coords), name=name or Path(path).stem)

    @property
    def polygon(self) -> Polygon:
        return Polygon(self.vertices)

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        """Bounding box as (min_lon, min_lat, max_lon, max_lat)."""
        return tuple(self.polygon.bounds)

    @property
    def centroid(self) -> Point:
        return self.polygon.centroid

    @property
    def area_m2(self) -> float:
        return polygon_area_m2(self.polygon)

    def check_size(self, max_area_km2: float) -> bool:
        """Warn when the AOI is larger than the configured limit.

        Returns:
            True if the AOI is within the limit.
        """
        area_km2 = self.area_m2 / 1e6
        if area_km2 > max_area_km2:
            logger.warning(
                "AOI is large; building footprints may fail to load",
                aoi=self.name,
                area_km2=round(area_km2, 2),
                max_area_km2=max_area_km2,
            )
            return False
        return True

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "properties": {"name": self.name},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[list(v) for v in self.vertices]],
            },
        }

    def to_ee_geometry(self) -> Any:
        """Earth Engine polygon for this AOI."""
        import ee

        return ee.Geometry.Polygon([[list(v) for v in self.vertices]])


def _first_geometry(data: dict[str, Any]) -> dict[str, Any] | None:
    kind = data.get("type")
    if kind == "FeatureCollection":
        for feature in data.get("features", []):
            if feature.get("geometry"):
                return feature["geometry"]
        return None
    if kind == "Feature":
        return data.get("geometry")
    return data if "coordinates" in data else None


@dataclass(frozen=True)
class DateRange:
    """A comparison period; start inclusive, end exclusive."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Date range start {self.start} must be before end {self.end}")

    @classmethod
    def parse(cls, value: str) -> "DateRange":
        """Parse a YYYY-MM-DD/YYYY-MM-DD range."""
        try:
            start, end = value.split("/")
            return cls(date.fromisoformat(start.strip()), date.fromisoformat(end.strip()))
        except ValueError as e:
            raise ValueError(f"Invalid date range '{value}' (expected YYYY-MM-DD/YYYY-MM-DD): {e}") from e

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DateRange":
        return cls(_as_date(data["start"]), _as_date(data["end"]))

    def ee_args(self) -> tuple[str, str]:
        """Arguments for ee.ImageCollection.filterDate."""
        return self.start.isoformat(), self.end.isoformat()

    def stac_interval(self) -> str:
        """Inclusive STAC datetime interval covering the same days."""
        last_day = self.end - timedelta(days=1)
        return f"{self.start.isoformat()}/{last_day.isoformat()}"

    def __str__(self) -> str:
        return f"{self.start.isoformat()}/{self.end.isoformat()}"


def _as_date(value: Any) -> date:
    # PyYAML already turns unquoted ISO dates into date objects
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
