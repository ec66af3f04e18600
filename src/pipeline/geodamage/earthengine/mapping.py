"""Interactive HTML maps for Earth Engine layers."""

from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()


class LayerMap:
    """Collects Earth Engine layers on a geemap folium map."""

    def __init__(self, geometry: Any, zoom: int = 15):
        import geemap.foliumap as geemap

        self.geometry = geometry
        self.map = geemap.Map(ee_initialize=False)
        self.map.centerObject(geometry, zoom)
        self.layer_names: list[str] = []

    def add_image(self, image: Any, vis_params: dict[str, Any], name: str, shown: bool = True) -> None:
        """Add an image clipped to the AOI."""
        self.map.addLayer(image.clip(self.geometry), vis_params, name, shown)
        self.layer_names.append(name)

    def add_features(self, features: Any, name: str, vis_params: dict[str, Any] | None = None) -> None:
        self.map.addLayer(features, vis_params or {}, name)
        self.layer_names.append(name)

    def save(self, output_path: Path) -> Path:
        """Write the map as a standalone HTML file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.map.addLayerControl()
        self.map.save(str(output_path))
        logger.info("Saved map", path=str(output_path), layers=self.layer_names)
        return output_path
