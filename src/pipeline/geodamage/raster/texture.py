"""Grey-level co-occurrence texture metrics.

Each pixel gets the GLCM statistics of the square neighbourhood of radius
``size`` around it, computed for four directions and averaged. The
direction offsets follow Earth Engine's ``glcmTexture`` default kernel:
(dx, dy) = (-1, -1), (0, -1), (1, -1), (-1, 0).

Only statistics that depend on the grey-level difference of each pair are
supported, so the co-occurrence matrix never has to be materialised: the
normalised sum over the matrix is the mean over the contributing pairs.
"""

import numpy as np
import structlog
import xarray as xr

from geodamage.assessment import TextureMetric
from geodamage.config import TextureConfig

logger = structlog.get_logger()

# (dy, dx) in array order
GLCM_OFFSETS = ((-1, -1), (-1, 0), (-1, 1), (0, -1))

PAIR_STATISTICS = {
    # inverse difference moment (homogeneity)
    "idm": lambda diff: 1.0 / (1.0 + diff**2),
    "diss": lambda diff: diff,
}


def quantize(reflectance: np.ndarray, levels: int = 64) -> tuple[np.ndarray, np.ndarray]:
    """Quantize reflectance into integer grey levels.

    Values are multiplied by ``levels`` and truncated, then kept within
    ``0..levels - 1`` so a reflectance of 1.0 or brighter lands in the top
    level.

    Returns:
        Tuple of (int32 levels, bool validity). Undefined inputs are invalid
        and hold level 0.
    """
    values = np.asarray(reflectance, dtype=np.float64)
    valid = np.isfinite(values)
    scaled = np.trunc(np.where(valid, values, 0.0) * levels)
    quantized = np.clip(scaled, 0, levels - 1).astype(np.int32)
    return np.where(valid, quantized, 0).astype(np.int32), valid


def _shift(arr: np.ndarray, dy: int, dx: int, fill) -> np.ndarray:
    """Return ``out[y, x] = arr[y + dy, x + dx]``, filled outside the grid."""
    out = np.full_like(arr, fill)
    h, w = arr.shape
    if abs(dy) >= h or abs(dx) >= w:
        return out
    out[max(0, -dy):h - max(0, dy), max(0, -dx):w - max(0, dx)] = arr[
        max(0, dy):h - max(0, -dy), max(0, dx):w - max(0, -dx)
    ]
    return out


def glcm_texture(
    levels: np.ndarray,
    valid: np.ndarray | None = None,
    size: int = 1,
    statistics: tuple[str, ...] = ("idm", "diss"),
    offsets: tuple[tuple[int, int], ...] = GLCM_OFFSETS,
) -> dict[str, np.ndarray]:
    """Compute direction-averaged GLCM statistics for every pixel.

    Args:
        levels: 2D integer grey levels.
        valid: 2D mask of defined pixels. All pixels are valid if omitted.
        size: Neighbourhood radius; 1 gives a 3x3 window.
        statistics: Names from PAIR_STATISTICS.
        offsets: (dy, dx) pair offsets, one GLCM per offset.

    Returns:
        Mapping of statistic name to a float64 array, NaN where the pixel
        is undefined or no valid pair exists in its window.
    """
    unknown = set(statistics) - set(PAIR_STATISTICS)
    if unknown:
        raise ValueError(f"Unsupported GLCM statistics: {sorted(unknown)}")

    levels = np.asarray(levels, dtype=np.int64)
    valid = np.ones(levels.shape, dtype=bool) if valid is None else np.asarray(valid, dtype=bool)

    direction_sum = {name: np.zeros(levels.shape) for name in statistics}
    direction_count = {name: np.zeros(levels.shape) for name in statistics}

    for dy, dx in offsets:
        partner = _shift(levels, dy, dx, 0)
        pair_valid = valid & _shift(valid, dy, dx, False)
        diff = np.abs(levels - partner).astype(np.float64)
        pair_values = {name: np.where(pair_valid, PAIR_STATISTICS[name](diff), 0.0) for name in statistics}
        pair_weight = pair_valid.astype(np.float64)

        # Anchors whose pair stays inside the window of the output pixel
        count = np.zeros(levels.shape)
        sums = {name: np.zeros(levels.shape) for name in statistics}
        for oy in range(-size + max(0, -dy), size - max(0, dy) + 1):
            for ox in range(-size + max(0, -dx), size - max(0, dx) + 1):
                count += _shift(pair_weight, oy, ox, 0.0)
                for name in statistics:
                    sums[name] += _shift(pair_values[name], oy, ox, 0.0)

        has_pairs = count > 0
        for name in statistics:
            with np.errstate(divide="ignore", invalid="ignore"):
                direction_stat = np.where(has_pairs, sums[name] / count, 0.0)
            direction_sum[name] += direction_stat
            direction_count[name] += has_pairs

    results = {}
    for name in statistics:
        with np.errstate(divide="ignore", invalid="ignore"):
            averaged = np.where(direction_count[name] > 0, direction_sum[name] / direction_count[name], np.nan)
        results[name] = np.where(valid, averaged, np.nan)
    return results


def combined_texture(
    image: xr.DataArray,
    metric: TextureMetric,
    config: TextureConfig | None = None,
) -> xr.DataArray:
    """Average a GLCM statistic across the texture bands.

    Args:
        image: Masked reflectance image with dims (band, y, x).
        metric: Statistic to combine.
        config: Bands, quantization levels and window size.

    Returns:
        2D DataArray named ``combined_homogeneity`` or
        ``combined_dissimilarity`` on the image grid.
    """
    config = config or TextureConfig()

    available = set(image.coords["band"].values.tolist())
    missing = [b for b in config.bands if b not in available]
    if missing:
        raise ValueError(f"Image is missing texture bands: {missing}")

    per_band = []
    for band in config.bands:
        levels, valid = quantize(image.sel(band=band).values, config.levels)
        stats = glcm_texture(levels, valid, size=config.size, statistics=(metric.statistic,))
        per_band.append(stats[metric.statistic])

    stacked = np.stack(per_band)
    defined = np.isfinite(stacked)
    n_defined = defined.sum(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        combined = np.where(n_defined > 0, np.where(defined, stacked, 0.0).sum(axis=0) / n_defined, np.nan)

    template = image.sel(band=config.bands[0], drop=True)
    result = template.copy(data=combined.astype(np.float32)).rename(metric.band_name)

    logger.info(
        "Computed combined texture",
        metric=metric.value,
        bands=list(config.bands),
        mean=f"{float(np.nanmean(combined)):.4f}" if n_defined.any() else "n/a",
    )
    return result
