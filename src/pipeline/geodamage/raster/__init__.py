"""Raster processing modules for masking, texture metrics and change detection."""

from geodamage.raster.change import clip_to_aoi, difference_stats, texture_difference
from geodamage.raster.download import load_scene_bands
from geodamage.raster.masking import keep_mask, mask_clouds_vegetation
from geodamage.raster.mosaic import first_valid_mosaic
from geodamage.raster.ndvi import NdviResult, calculate_ndvi
from geodamage.raster.texture import combined_texture, glcm_texture, quantize

__all__ = [
    "calculate_ndvi",
    "NdviResult",
    "load_scene_bands",
    "first_valid_mosaic",
    "keep_mask",
    "mask_clouds_vegetation",
    # Texture
    "quantize",
    "glcm_texture",
    "combined_texture",
    # Change detection
    "texture_difference",
    "difference_stats",
    "clip_to_aoi",
]
