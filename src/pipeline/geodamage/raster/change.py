"""Change detection between pre- and post-event texture rasters."""

from pathlib import Path

import numpy as np
import structlog
import xarray as xr
from shapely.geometry import mapping

from geodamage.aoi import AreaOfInterest
from geodamage.assessment import DifferenceStats

logger = structlog.get_logger()


def texture_difference(pre: xr.DataArray, post: xr.DataArray, name: str | None = None) -> xr.DataArray:
    """Absolute pixel-wise difference of a texture metric between periods.

    Large values mark a large texture shift, the candidate damage signal.
    No normalisation or significance test is applied. A pixel undefined in
    either period is undefined in the result.

    Args:
        pre: Combined metric for the pre-event period.
        post: Combined metric for the post-event period, same grid.
        name: Name for the result. Defaults to the input name.

    Returns:
        |pre - post| on the input grid.
    """
    if pre.shape != post.shape:
        raise ValueError(f"Pre/post rasters differ in shape: {pre.shape} vs {post.shape}")

    diff = abs(pre - post.values)
    diff = diff.rename(name or pre.name)
    if pre.rio.crs is not None:
        diff = diff.rio.write_crs(pre.rio.crs)
    return diff


def clip_to_aoi(da: xr.DataArray, aoi: AreaOfInterest) -> xr.DataArray:
    """Clip a raster to the AOI polygon; outside pixels become NaN."""
    return da.rio.clip([mapping(aoi.polygon)], crs="EPSG:4326", drop=True, all_touched=True)


def difference_stats(diff: xr.DataArray) -> DifferenceStats:
    """Summarise a difference raster, skipping undefined pixels."""
    values = np.asarray(diff.values, dtype=np.float64)
    valid = np.isfinite(values)
    if not valid.any():
        return DifferenceStats(mean=None, max=None, valid_pixels=0)
    return DifferenceStats(
        mean=float(values[valid].mean()),
        max=float(values[valid].max()),
        valid_pixels=int(valid.sum()),
    )


def save_raster(da: xr.DataArray, output_path: Path) -> Path:
    """Save a raster to a GeoTIFF file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    da.rio.to_raster(output_path)
    logger.info("Saved raster", name=da.name, path=str(output_path))
    return output_path
