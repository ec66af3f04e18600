"""Visualization parameters and layer names shared by both engines."""

from typing import Any

from geodamage.config import VisualizationConfig

DEFAULT_PALETTE = ("blue", "white", "red")

PRE_MOSAIC_LAYER = "Pre-Event Mosaic"
POST_MOSAIC_LAYER = "Post-Event Mosaic"
HOMOGENEITY_LAYER = "Combined Enhanced Homogeneity Difference"
DISSIMILARITY_LAYER = "Combined Enhanced Dissimilarity Difference"
BUILDINGS_LAYER = "Google Open Buildings Footprints"


def params_with_max(max_value: float, palette: tuple[str, ...] = DEFAULT_PALETTE) -> dict[str, Any]:
    """Build visualization parameters for a texture difference layer.

    Args:
        max_value: Upper end of the colour ramp.
        palette: Colour ramp from low to high values.

    Returns:
        Parameters with minimum 0, the given maximum and the palette.
    """
    return {"min": 0, "max": max_value, "palette": list(palette)}


def mosaic_params(vis: VisualizationConfig | None = None) -> dict[str, Any]:
    """True-colour parameters for the unscaled mosaics."""
    vis = vis or VisualizationConfig()
    return {"bands": list(vis.rgb_bands), "min": 0, "max": vis.rgb_max}


def difference_params(metric_name: str, vis: VisualizationConfig | None = None) -> dict[str, Any]:
    """Parameters for the homogeneity or dissimilarity difference layer."""
    vis = vis or VisualizationConfig()
    maxima = {
        "homogeneity": vis.homogeneity_max,
        "dissimilarity": vis.dissimilarity_max,
    }
    if metric_name not in maxima:
        raise ValueError(f"Unknown texture metric: {metric_name}")
    return params_with_max(maxima[metric_name], tuple(vis.palette))
