"""Shared geospatial utility functions."""

import xarray as xr
from pyproj import CRS, Transformer
from shapely.geometry import Polygon
from shapely.ops import transform as shapely_transform


def get_utm_crs(lon: float, lat: float) -> CRS:
    """Get the appropriate UTM CRS for a given WGS84 coordinate.

    Args:
        lon: Longitude in degrees (-180 to 180).
        lat: Latitude in degrees (-90 to 90).

    Returns:
        pyproj CRS object for the appropriate UTM zone.
    """
    utm_zone = int((lon + 180) / 6) + 1
    utm_zone = max(1, min(60, utm_zone))
    hemisphere = "north" if lat >= 0 else "south"
    return CRS.from_string(f"+proj=utm +zone={utm_zone} +{hemisphere} +datum=WGS84")


def get_utm_transformer(lon: float, lat: float) -> Transformer:
    """Get a WGS84 -> UTM transformer for a given coordinate."""
    utm_crs = get_utm_crs(lon, lat)
    return Transformer.from_crs(4326, utm_crs, always_xy=True)


def polygon_area_m2(polygon: Polygon) -> float:
    """Area of a WGS84 polygon in square meters, measured in its UTM zone."""
    centroid = polygon.centroid
    transformer = get_utm_transformer(centroid.x, centroid.y)
    return shapely_transform(transformer.transform, polygon).area


def wgs84_bounds(da: xr.DataArray) -> tuple[float, float, float, float]:
    """Get WGS84 bounding box from a DataArray in any CRS.

    Args:
        da: DataArray with CRS information.

    Returns:
        Tuple of (min_lon, min_lat, max_lon, max_lat) in WGS84.
    """
    bounds = da.rio.bounds()  # (minx, miny, maxx, maxy) in native CRS
    crs = da.rio.crs

    if crs and crs.to_epsg() != 4326:
        transformer = Transformer.from_crs(crs, 4326, always_xy=True)
        # Transform all four corners to handle non-rectangular projections
        corners = [
            (bounds[0], bounds[1]),
            (bounds[0], bounds[3]),
            (bounds[2], bounds[1]),
            (bounds[2], bounds[3]),
        ]
        transformed = [transformer.transform(x, y) for x, y in corners]
        lons = [c[0] for c in transformed]
        lats = [c[1] for c in transformed]
        return (min(lons), min(lats), max(lons), max(lats))

    return bounds
