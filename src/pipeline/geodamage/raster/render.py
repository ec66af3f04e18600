"""Rendering of local rasters as PNG overlays on a folium map."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import folium
import numpy as np
import structlog
import xarray as xr
from matplotlib.colors import LinearSegmentedColormap
from PIL import Image

from geodamage.aoi import AreaOfInterest
from geodamage.geo_utils import wgs84_bounds

logger = structlog.get_logger()


@dataclass
class RasterOverlay:
    """A rendered PNG and the WGS84 bounds it covers."""

    name: str
    png_path: Path
    bounds: tuple[float, float, float, float]  # (min_lon, min_lat, max_lon, max_lat)
    shown: bool = True


def _normalize(values: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    span = vmax - vmin
    if span <= 0:
        raise ValueError(f"Visualization max ({vmax}) must exceed min ({vmin})")
    return np.clip((values - vmin) / span, 0.0, 1.0)


def colorize(values: np.ndarray, vis_params: dict[str, Any]) -> np.ndarray:
    """Map a single-band raster to RGBA with a linear palette.

    Args:
        values: 2D array, NaN where undefined.
        vis_params: {"min", "max", "palette"} as built by params_with_max.

    Returns:
        (H, W, 4) uint8 array; undefined pixels are fully transparent.
    """
    values = np.asarray(values, dtype=np.float64)
    cmap = LinearSegmentedColormap.from_list("palette", list(vis_params["palette"]))
    valid = np.isfinite(values)
    scaled = _normalize(np.where(valid, values, vis_params["min"]), vis_params["min"], vis_params["max"])
    rgba = cmap(scaled, bytes=True)
    rgba[..., 3] = np.where(valid, 255, 0)
    return rgba


def rgb_composite(image: xr.DataArray, vis_params: dict[str, Any]) -> np.ndarray:
    """Stretch three bands of a multi-band image into RGBA.

    Args:
        image: DataArray with dims (band, y, x).
        vis_params: {"bands", "min", "max"}.

    Returns:
        (H, W, 4) uint8 array; pixels undefined in any band are transparent.
    """
    bands = [np.asarray(image.sel(band=b).values, dtype=np.float64) for b in vis_params["bands"]]
    stacked = np.stack(bands, axis=-1)
    valid = np.isfinite(stacked).all(axis=-1)
    scaled = _normalize(np.where(np.isfinite(stacked), stacked, 0.0), vis_params["min"], vis_params["max"])

    rgba = np.zeros(stacked.shape[:2] + (4,), dtype=np.uint8)
    rgba[..., :3] = (scaled * 255).astype(np.uint8)
    rgba[..., 3] = np.where(valid, 255, 0)
    return rgba


def write_png(rgba: np.ndarray, output_path: Path) -> Path:
    """Write an RGBA array as PNG."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(rgba).save(output_path, "PNG", optimize=True)
    return output_path


def render_overlay(
    da: xr.DataArray,
    name: str,
    vis_params: dict[str, Any],
    output_path: Path,
) -> RasterOverlay:
    """Reproject a raster to WGS84 and render it as a PNG overlay.

    Multi-band rasters (with ``bands`` in vis_params) are drawn as a
    true-colour composite, single-band rasters through the palette.
    """
    geographic = da.rio.reproject("EPSG:4326", nodata=np.nan)

    if "bands" in vis_params:
        rgba = rgb_composite(geographic, vis_params)
    else:
        rgba = colorize(geographic.values, vis_params)

    write_png(rgba, output_path)
    bounds = wgs84_bounds(geographic)
    logger.info("Rendered layer", layer=name, path=str(output_path), bounds=bounds)
    return RasterOverlay(name=name, png_path=output_path, bounds=tuple(bounds))


def build_map(
    aoi: AreaOfInterest,
    overlays: list[RasterOverlay],
    zoom: int = 15,
    footprints: dict[str, Any] | None = None,
    footprints_name: str = "Building footprints",
) -> folium.Map:
    """Assemble overlays, the AOI outline and optional footprints on a map."""
    centroid = aoi.centroid
    m = folium.Map(location=[centroid.y, centroid.x], zoom_start=zoom, control_scale=True)

    for overlay in overlays:
        min_lon, min_lat, max_lon, max_lat = overlay.bounds
        folium.raster_layers.ImageOverlay(
            image=str(overlay.png_path),
            bounds=[[min_lat, min_lon], [max_lat, max_lon]],
            name=overlay.name,
            opacity=1.0,
            show=overlay.shown,
        ).add_to(m)

    if footprints is not None:
        folium.GeoJson(
            footprints,
            name=footprints_name,
            style_function=lambda _: {"color": "#000000", "weight": 1, "fillOpacity": 0.1},
        ).add_to(m)

    folium.GeoJson(
        aoi.to_geojson(),
        name="Area of interest",
        style_function=lambda _: {"color": "#ffff00", "weight": 2, "fill": False},
    ).add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)
    return m
