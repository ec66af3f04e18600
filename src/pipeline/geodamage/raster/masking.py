"""Cloud, shadow and vegetation masking for Sentinel-2 mosaics."""

import numpy as np
import structlog
import xarray as xr

from geodamage.config import MaskConfig
from geodamage.raster.ndvi import calculate_ndvi

logger = structlog.get_logger()


def keep_mask(
    scl: np.ndarray,
    ndvi: np.ndarray,
    keep_classes: tuple[int, ...] = (4, 5, 6),
    ndvi_threshold: float = 0.2,
) -> np.ndarray:
    """Per-pixel keep predicate.

    A pixel is kept if and only if its scene classification is one of
    ``keep_classes`` and its NDVI is below ``ndvi_threshold``. Undefined
    NDVI (NaN) never passes.
    """
    scl = np.asarray(scl)
    ndvi = np.asarray(ndvi, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        below_threshold = ndvi < ndvi_threshold
    return np.isin(scl, keep_classes) & below_threshold


def mask_clouds_vegetation(image: xr.DataArray, config: MaskConfig | None = None) -> xr.DataArray:
    """Mask clouds, shadows and vegetation, then scale to reflectance.

    Uses the SCL band and NDVI (B8, B4) so that texture changes from
    vegetation phenology are not read as structural damage.

    Args:
        image: Mosaic with dims (band, y, x) holding at least SCL, B4 and B8.
        config: Mask settings. Defaults to MaskConfig().

    Returns:
        Image of the same shape where masked pixels are NaN and every band
        is divided by the reflectance scale.
    """
    config = config or MaskConfig()

    missing = {"SCL", "B4", "B8"} - set(image.coords["band"].values.tolist())
    if missing:
        raise ValueError(f"Image is missing bands required for masking: {sorted(missing)}")

    ndvi = calculate_ndvi(
        red_band=image.sel(band="B4", drop=True),
        nir_band=image.sel(band="B8", drop=True),
        scene_id="mosaic",
    )
    keep = keep_mask(
        image.sel(band="SCL", drop=True).values,
        ndvi.data.values,
        keep_classes=config.keep_scl_classes,
        ndvi_threshold=config.ndvi_threshold,
    )

    masked = image.where(xr.DataArray(keep, dims=image.dims[-2:])) / config.reflectance_scale
    if image.rio.crs is not None:
        masked = masked.rio.write_crs(image.rio.crs)

    kept = int(keep.sum())
    logger.info(
        "Applied cloud/vegetation mask",
        kept_pixels=kept,
        total_pixels=int(keep.size),
        kept_percent=f"{kept / keep.size * 100:.1f}%" if keep.size else "n/a",
    )
    return masked
