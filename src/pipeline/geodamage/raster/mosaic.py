"""First-valid-pixel compositing of a period's scenes."""

from collections.abc import Sequence

import numpy as np
import structlog
import xarray as xr

from geodamage.assessment import NoImageryError
from geodamage.raster.download import align_to

logger = structlog.get_logger()


def _valid_pixels(data: np.ndarray) -> np.ndarray:
    """Pixels where every band holds a value."""
    return np.isfinite(data).all(axis=0)


def first_valid_mosaic(images: Sequence[xr.DataArray]) -> xr.DataArray:
    """Composite images by taking, per pixel, the first valid value.

    Images are visited in order; later images only fill pixels that are
    still empty. Every image is aligned to the grid of the first one.

    Args:
        images: DataArrays with dims (band, y, x), NaN where undefined.

    Returns:
        Mosaic on the grid of ``images[0]``.

    Raises:
        NoImageryError: If ``images`` is empty.
    """
    if not images:
        raise NoImageryError("Cannot build a mosaic from an empty collection")

    reference = images[0]
    data = reference.values.astype(np.float32, copy=True)
    filled = _valid_pixels(data)

    for image in images[1:]:
        if filled.all():
            break
        aligned = align_to(image, reference)
        if aligned.shape != reference.shape:
            raise ValueError(
                f"Image shape {aligned.shape} does not match mosaic shape {reference.shape}"
            )
        values = aligned.values
        take = _valid_pixels(values) & ~filled
        data[:, take] = values[:, take]
        filled |= take

    logger.info(
        "Built mosaic",
        num_images=len(images),
        filled_percent=f"{filled.mean() * 100:.1f}%" if filled.size else "n/a",
    )
    return reference.copy(data=data)
