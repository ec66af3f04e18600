"""NDVI calculation from satellite imagery."""

from dataclasses import dataclass
from typing import Any

import numpy as np
import structlog
import xarray as xr

logger = structlog.get_logger()


@dataclass
class NdviResult:
    """Result of NDVI calculation."""

    data: xr.DataArray
    scene_id: str
    crs: Any
    min_value: float
    max_value: float
    mean_value: float


def calculate_ndvi(
    red_band: xr.DataArray,
    nir_band: xr.DataArray,
    scene_id: str = "unknown",
    nodata_value: float = np.nan,
) -> NdviResult:
    """Calculate NDVI from red and NIR bands.

    NDVI = (NIR - Red) / (NIR + Red)

    Pixels with a zero denominator or an undefined input are undefined
    (``nodata_value``, NaN by default) rather than zero.

    Args:
        red_band: Red band (B4) as DataArray.
        nir_band: NIR band (B8) as DataArray.
        scene_id: Scene identifier for tracking.
        nodata_value: Value for undefined pixels.

    Returns:
        NdviResult with calculated NDVI values.
    """
    logger.debug("Calculating NDVI", scene_id=scene_id)

    red_f = red_band.astype(np.float32)
    nir_f = nir_band.astype(np.float32)

    denominator = nir_f + red_f
    with np.errstate(divide="ignore", invalid="ignore"):
        ndvi = xr.where(
            (denominator != 0) & denominator.notnull(),
            (nir_f - red_f) / denominator,
            nodata_value,
        )

    # Clip to valid NDVI range [-1, 1]
    ndvi = ndvi.clip(-1, 1).rename("ndvi")

    crs = red_band.rio.crs
    if crs is not None:
        ndvi = ndvi.rio.write_crs(crs)

    # Statistics over defined pixels only
    if np.isnan(nodata_value):
        valid_mask = ndvi.notnull()
    else:
        valid_mask = ndvi != nodata_value
    valid_data = ndvi.where(valid_mask)
    has_valid = bool(valid_mask.any())

    result = NdviResult(
        data=ndvi,
        scene_id=scene_id,
        crs=crs,
        min_value=float(valid_data.min().values) if has_valid else -1,
        max_value=float(valid_data.max().values) if has_valid else 1,
        mean_value=float(valid_data.mean().values) if has_valid else 0,
    )

    logger.debug(
        "NDVI calculated",
        scene_id=scene_id,
        min=f"{result.min_value:.3f}",
        max=f"{result.max_value:.3f}",
        mean=f"{result.mean_value:.3f}",
    )

    return result
