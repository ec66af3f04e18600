"""Earth Engine execution of the texture damage pipeline."""

from geodamage.earthengine.pipeline import assess_with_earthengine, count_buildings_with_earthengine
from geodamage.earthengine.session import initialize

__all__ = ["assess_with_earthengine", "count_buildings_with_earthengine", "initialize"]
