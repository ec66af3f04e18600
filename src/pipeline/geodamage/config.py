"""Configuration management for the geodamage pipeline."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger()

# Visualization maxima are tuned for this quantization
DEFAULT_GLCM_LEVELS = 64


@dataclass
class EarthEngineConfig:
    """Google Earth Engine configuration."""

    project: str | None = None
    collection: str = "COPERNICUS/S2_SR"
    buildings_collection: str = "GOOGLE/Research/open-buildings/v3/polygons"
    require_imagery: bool = True
    stats_scale: float = 10.0


@dataclass
class StacConfig:
    """STAC catalog configuration (local engine)."""

    catalog_url: str = "https://planetarycomputer.microsoft.com/api/stac/v1"
    collection: str = "sentinel-2-l2a"
    max_cloud_cover: float = 100.0
    max_items: int = 20


@dataclass
class MaskConfig:
    """Cloud and vegetation masking configuration."""

    keep_scl_classes: tuple[int, ...] = (4, 5, 6)
    ndvi_threshold: float = 0.2
    reflectance_scale: float = 10000.0


@dataclass
class TextureConfig:
    """GLCM texture configuration."""

    bands: tuple[str, ...] = ("B2", "B3", "B4", "B8")
    levels: int = DEFAULT_GLCM_LEVELS
    size: int = 1


@dataclass
class VisualizationConfig:
    """Map rendering configuration."""

    rgb_bands: tuple[str, ...] = ("B4", "B3", "B2")
    rgb_max: float = 8000.0
    homogeneity_max: float = 0.27
    dissimilarity_max: float = 0.85
    palette: tuple[str, ...] = ("blue", "white", "red")


@dataclass
class AoiConfig:
    """Area of interest limits."""

    max_area_km2: float = 50.0


@dataclass
class Config:
    """Main configuration container."""

    engine: str = "earthengine"  # "earthengine" or "local"
    output_dir: Path = Path("output")
    earthengine: EarthEngineConfig = field(default_factory=EarthEngineConfig)
    stac: StacConfig = field(default_factory=StacConfig)
    mask: MaskConfig = field(default_factory=MaskConfig)
    texture: TextureConfig = field(default_factory=TextureConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)
    aoi: AoiConfig = field(default_factory=AoiConfig)
    config_dir: Path | None = None

    @classmethod
    def load(cls, config_dir: Path | None = None) -> "Config":
        """Load configuration from files and environment variables."""
        # Load .env file if present
        env_file = Path(__file__).parent.parent / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        config = cls()

        if config_dir and config_dir.exists():
            config.config_dir = config_dir
            processing_file = config_dir / "processing.yaml"
            if processing_file.exists():
                config._load_yaml(processing_file)

        # Override with environment variables
        config._load_from_env()

        if config.texture.levels != DEFAULT_GLCM_LEVELS:
            logger.warning(
                "GLCM quantization differs from the tuned default; "
                "difference visualization maxima may no longer fit",
                levels=config.texture.levels,
                tuned_levels=DEFAULT_GLCM_LEVELS,
            )

        return config

    @property
    def regions_file(self) -> Path | None:
        """Path of the region definitions file, if a config directory is set."""
        if self.config_dir is None:
            return None
        return self.config_dir / "regions.yaml"

    def _load_yaml(self, path: Path) -> None:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._apply_yaml_config(data)

    def _apply_yaml_config(self, data: dict[str, Any]) -> None:
        """Apply YAML configuration data."""
        if "engine" in data:
            self.engine = data["engine"]
        if "output_dir" in data:
            self.output_dir = Path(data["output_dir"])

        if "earthengine" in data:
            ee_cfg = data["earthengine"]
            if "project" in ee_cfg:
                self.earthengine.project = ee_cfg["project"]
            if "collection" in ee_cfg:
                self.earthengine.collection = ee_cfg["collection"]
            if "buildings_collection" in ee_cfg:
                self.earthengine.buildings_collection = ee_cfg["buildings_collection"]
            if "require_imagery" in ee_cfg:
                self.earthengine.require_imagery = bool(ee_cfg["require_imagery"])
            if "stats_scale" in ee_cfg:
                self.earthengine.stats_scale = float(ee_cfg["stats_scale"])

        if "stac" in data:
            stac = data["stac"]
            if "catalog_url" in stac:
                self.stac.catalog_url = stac["catalog_url"]
            if "collection" in stac:
                self.stac.collection = stac["collection"]
            if "max_cloud_cover" in stac:
                self.stac.max_cloud_cover = float(stac["max_cloud_cover"])
            if "max_items" in stac:
                self.stac.max_items = int(stac["max_items"])

        if "mask" in data:
            mask = data["mask"]
            if "keep_scl_classes" in mask:
                self.mask.keep_scl_classes = tuple(int(c) for c in mask["keep_scl_classes"])
            if "ndvi_threshold" in mask:
                self.mask.ndvi_threshold = float(mask["ndvi_threshold"])
            if "reflectance_scale" in mask:
                self.mask.reflectance_scale = float(mask["reflectance_scale"])

        if "texture" in data:
            texture = data["texture"]
            if "bands" in texture:
                self.texture.bands = tuple(texture["bands"])
            if "levels" in texture:
                self.texture.levels = int(texture["levels"])
            if "size" in texture:
                self.texture.size = int(texture["size"])

        if "visualization" in data:
            vis = data["visualization"]
            if "rgb_bands" in vis:
                self.visualization.rgb_bands = tuple(vis["rgb_bands"])
            if "rgb_max" in vis:
                self.visualization.rgb_max = float(vis["rgb_max"])
            if "homogeneity_max" in vis:
                self.visualization.homogeneity_max = float(vis["homogeneity_max"])
            if "dissimilarity_max" in vis:
                self.visualization.dissimilarity_max = float(vis["dissimilarity_max"])
            if "palette" in vis:
                self.visualization.palette = tuple(vis["palette"])

        if "aoi" in data:
            aoi = data["aoi"]
            if "max_area_km2" in aoi:
                self.aoi.max_area_km2 = float(aoi["max_area_km2"])

    def _load_from_env(self) -> None:
        """Override configuration from environment variables."""
        if engine := os.getenv("GEODAMAGE_ENGINE"):
            self.engine = engine
        if output_dir := os.getenv("GEODAMAGE_OUTPUT_DIR"):
            self.output_dir = Path(output_dir)

        # Earth Engine
        if project := os.getenv("EE_PROJECT") or os.getenv("GOOGLE_CLOUD_PROJECT"):
            self.earthengine.project = project
        if collection := os.getenv("S2_COLLECTION"):
            self.earthengine.collection = collection

        # STAC
        if url := os.getenv("STAC_CATALOG_URL"):
            self.stac.catalog_url = url
        if cloud := os.getenv("STAC_MAX_CLOUD_COVER"):
            self.stac.max_cloud_cover = float(cloud)

        # Processing
        if threshold := os.getenv("NDVI_THRESHOLD"):
            self.mask.ndvi_threshold = float(threshold)
        if max_area := os.getenv("MAX_AOI_AREA_KM2"):
            self.aoi.max_area_km2 = float(max_area)


# Global config instance
_config: Config | None = None


def default_config_dir() -> Path:
    """Directory holding the bundled processing and region files."""
    return Path(__file__).parent / "data"


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load(default_config_dir())
    return _config


def reload_config(config_dir: Path | None = None) -> Config:
    """Reload configuration (useful for testing)."""
    global _config
    _config = Config.load(config_dir)
    return _config
