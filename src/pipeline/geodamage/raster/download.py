"""Raster loading utilities for Sentinel-2 COGs."""

import numpy as np
import rioxarray as rxr
import structlog
import xarray as xr
from rasterio.enums import Resampling

from geodamage.stac.search import SceneInfo

logger = structlog.get_logger()

# Earth Engine band names -> Sentinel-2 L2A STAC asset keys
STAC_BAND_NAMES = {
    "B2": "B02",
    "B3": "B03",
    "B4": "B04",
    "B8": "B08",
    "SCL": "SCL",
}

# Sentinel-2 L2A uses 0 for nodata in every band (SCL class 0 = no data)
S2_NODATA = 0


def load_band_from_url(url: str, bbox: tuple[float, float, float, float] | None = None) -> xr.DataArray:
    """Load a raster band directly from a URL, optionally clipping to bbox.

    Args:
        url: URL to the COG file.
        bbox: Optional bounding box to clip to (in WGS84/EPSG:4326).

    Returns:
        DataArray with the raster data.
    """
    da = rxr.open_rasterio(url)

    if bbox:
        # clip_box densifies the WGS84 bounds before projecting them
        da = da.rio.clip_box(*bbox, crs="EPSG:4326")

    # Squeeze single-band rasters
    if da.shape[0] == 1:
        da = da.squeeze("band", drop=True)

    return da


def load_scene_bands(
    scene: SceneInfo,
    bbox: tuple[float, float, float, float],
    bands: tuple[str, ...],
) -> xr.DataArray:
    """Load and align Sentinel-2 bands into a single multi-band DataArray.

    Every band is put on the grid of the first band; coarser bands (SCL is
    20 m) are resampled with nearest neighbour so class codes survive.
    Nodata pixels become NaN.

    Args:
        scene: SceneInfo with band URLs.
        bbox: WGS84 bounding box (min_lon, min_lat, max_lon, max_lat).
        bands: Earth Engine style band names, e.g. ("B2", "B3", "B4", "B8", "SCL").

    Returns:
        float32 DataArray with dims (band, y, x) and a ``band`` coordinate
        holding the requested names.
    """
    logger.info("Loading scene bands", scene_id=scene.scene_id, bands=list(bands))

    band_arrays = []
    reference = None
    for band_name in bands:
        url = scene.get_band_url(STAC_BAND_NAMES.get(band_name, band_name))
        if url is None:
            raise ValueError(f"Scene {scene.scene_id} is missing band {band_name}")

        band_data = load_band_from_url(url, bbox)
        if reference is None:
            reference = band_data
        else:
            band_data = align_to(band_data, reference)

        band_arrays.append(band_data.astype(np.float32))

    stacked = xr.concat(band_arrays, dim="band").assign_coords(band=list(bands))

    if "SCL" in bands:
        stacked = stacked.where(stacked.sel(band="SCL", drop=True) != S2_NODATA)
    else:
        stacked = stacked.where(stacked != S2_NODATA)

    stacked = stacked.rio.write_crs(reference.rio.crs)
    stacked = stacked.rio.write_nodata(np.nan, encoded=False)

    logger.debug("Scene bands loaded", scene_id=scene.scene_id, shape=stacked.shape)
    return stacked


def align_to(image: xr.DataArray, reference: xr.DataArray) -> xr.DataArray:
    """Put ``image`` on the grid of ``reference`` unless it already is."""
    same_grid = (
        image.shape[-2:] == reference.shape[-2:]
        and image.rio.crs == reference.rio.crs
        and image.rio.transform() == reference.rio.transform()
    )
    if same_grid:
        return image
    logger.debug("Reprojecting raster onto reference grid", shape=reference.shape[-2:])
    return image.rio.reproject_match(reference, resampling=Resampling.nearest)
