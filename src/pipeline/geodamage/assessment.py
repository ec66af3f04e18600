"""Result types shared by the Earth Engine and local engines."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from geodamage.aoi import DateRange


class NoImageryError(LookupError):
    """No imagery matched a period and AOI."""


class TextureMetric(Enum):
    """GLCM statistics combined across bands."""

    HOMOGENEITY = "homogeneity"
    DISSIMILARITY = "dissimilarity"

    @property
    def statistic(self) -> str:
        """GLCM statistic name (Earth Engine band suffix)."""
        return {"homogeneity": "idm", "dissimilarity": "diss"}[self.value]

    @property
    def band_name(self) -> str:
        """Name of the combined per-period raster."""
        return f"combined_{self.value}"

    @property
    def difference_name(self) -> str:
        """Name of the pre/post difference raster."""
        return f"{self.value}_difference"


@dataclass
class DifferenceStats:
    """Summary of a difference raster inside the AOI."""

    mean: float | None
    max: float | None
    valid_pixels: int

    def to_dict(self) -> dict[str, Any]:
        return {"mean": self.mean, "max": self.max, "valid_pixels": self.valid_pixels}


@dataclass
class DamageAssessment:
    """Outcome of one pre/post comparison."""

    region_id: str
    engine: str
    pre: DateRange
    post: DateRange
    stats: dict[TextureMetric, DifferenceStats] = field(default_factory=dict)
    building_count: int | None = None
    scenes: dict[str, list[str]] = field(default_factory=dict)
    outputs: dict[str, Path] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable report."""
        return {
            "region": self.region_id,
            "engine": self.engine,
            "pre": str(self.pre),
            "post": str(self.post),
            "stats": {metric.value: s.to_dict() for metric, s in self.stats.items()},
            "building_count": self.building_count,
            "scenes": self.scenes,
            "outputs": {name: str(path) for name, path in self.outputs.items()},
        }
