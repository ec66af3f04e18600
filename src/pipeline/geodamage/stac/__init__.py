"""STAC catalog client for satellite imagery discovery."""

from geodamage.stac.client import StacClient
from geodamage.stac.search import SceneInfo, search_scenes

__all__ = ["StacClient", "search_scenes", "SceneInfo"]
