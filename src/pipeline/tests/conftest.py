"""Shared test fixtures for geodamage pipeline tests."""

from datetime import date

import numpy as np
import pytest
import rioxarray  # noqa: F401 - needed for .rio accessor on DataArrays
import xarray as xr

from geodamage.aoi import AreaOfInterest, DateRange
from geodamage.regions import Region

# Origin of synthetic rasters, inside the Khartoum AOI
ORIGIN_LON = 32.52
ORIGIN_LAT = 15.50
PIXEL_DEG = 0.0001


def make_image(bands: dict[str, np.ndarray]) -> xr.DataArray:
    """Create a multi-band (band, y, x) DataArray on a small EPSG:4326 grid.

    Args:
        bands: Mapping of band name to 2D array, all the same shape.

    Returns:
        float32 DataArray with a ``band`` coordinate, CRS and transform.
    """
    names = list(bands)
    data = np.stack([np.asarray(bands[b], dtype=np.float32) for b in names])
    rows, cols = data.shape[1:]
    da = xr.DataArray(
        data,
        dims=["band", "y", "x"],
        coords={
            "band": names,
            "y": ORIGIN_LAT - (np.arange(rows) + 0.5) * PIXEL_DEG,
            "x": ORIGIN_LON + (np.arange(cols) + 0.5) * PIXEL_DEG,
        },
    )
    da = da.rio.write_crs("EPSG:4326")
    da = da.rio.write_transform()
    return da


@pytest.fixture
def image_factory():
    """Factory for synthetic multi-band images."""
    return make_image


@pytest.fixture
def square_aoi() -> AreaOfInterest:
    """A ~1 km square AOI in Khartoum."""
    return AreaOfInterest.from_bbox((32.52, 15.49, 32.53, 15.50), name="square")


@pytest.fixture
def sample_region(square_aoi) -> Region:
    """Region with March pre/post periods, one year apart."""
    return Region(
        region_id="square",
        name="Square test region",
        aoi=square_aoi,
        pre=DateRange(date(2023, 3, 1), date(2023, 3, 31)),
        post=DateRange(date(2024, 3, 1), date(2024, 3, 31)),
        zoom=15,
        buildings=True,
    )


@pytest.fixture
def regions_file(tmp_path):
    """A regions.yaml with two regions."""
    path = tmp_path / "regions.yaml"
    path.write_text(
        """
regions:
  khartoum:
    name: Khartoum
    zoom: 15
    buildings: true
    pre: {start: "2023-03-01", end: "2023-03-31"}
    post: {start: "2024-03-01", end: "2024-03-31"}
    aoi:
      - [32.49934598377152, 15.510298479854654]
      - [32.50398716711848, 15.483361349961328]
      - [32.550733835538836, 15.490515774446791]
      - [32.55239943011833, 15.518720602273746]
      - [32.49934598377152, 15.510298479854654]
  square:
    name: Square
    zoom: 16
    buildings: false
    pre: {start: 2022-04-01, end: 2022-04-30}
    post: {start: 2023-04-01, end: 2023-04-30}
    aoi:
      - [32.52, 15.49]
      - [32.53, 15.49]
      - [32.53, 15.50]
      - [32.52, 15.50]
      - [32.52, 15.49]
"""
    )
    return path
