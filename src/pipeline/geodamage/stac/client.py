"""STAC catalog client for Microsoft Planetary Computer."""

import planetary_computer
import pystac_client
import structlog

from geodamage.config import get_config

logger = structlog.get_logger()

# Sentinel-2 L2A assets used by the texture pipeline
SCENE_ASSETS = ["B02", "B03", "B04", "B08", "SCL"]


class StacClient:
    """Client for searching Sentinel-2 imagery in Planetary Computer."""

    def __init__(self, catalog_url: str | None = None):
        """Initialize the STAC client.

        Args:
            catalog_url: STAC catalog URL. Defaults to Planetary Computer.
        """
        config = get_config()
        self.catalog_url = catalog_url or config.stac.catalog_url
        self.collection = config.stac.collection
        self.max_cloud_cover = config.stac.max_cloud_cover

        self._client: pystac_client.Client | None = None

    @property
    def client(self) -> pystac_client.Client:
        """Get or create the STAC client."""
        if self._client is None:
            self._client = pystac_client.Client.open(
                self.catalog_url,
                modifier=planetary_computer.sign_inplace,
            )
            logger.info("Connected to STAC catalog", url=self.catalog_url)
        return self._client

    def search(
        self,
        bbox: tuple[float, float, float, float],
        start_date: str,
        end_date: str,
        max_items: int = 100,
        max_cloud_cover: float | None = None,
    ) -> list[dict]:
        """Search for Sentinel-2 scenes within a bounding box and date range.

        Args:
            bbox: Bounding box as (min_lon, min_lat, max_lon, max_lat).
            start_date: Start date in ISO format (YYYY-MM-DD), inclusive.
            end_date: End date in ISO format (YYYY-MM-DD), inclusive.
            max_items: Maximum number of items to return.
            max_cloud_cover: Maximum cloud cover percentage (0-100).

        Returns:
            List of scene metadata dictionaries, newest first.
        """
        cloud_cover = max_cloud_cover if max_cloud_cover is not None else self.max_cloud_cover

        logger.info(
            "Searching STAC catalog",
            bbox=bbox,
            date_range=f"{start_date}/{end_date}",
            max_cloud_cover=cloud_cover,
        )

        search_kwargs = {
            "collections": [self.collection],
            "bbox": bbox,
            "datetime": f"{start_date}/{end_date}",
            "max_items": max_items,
            "sortby": [{"field": "properties.datetime", "direction": "desc"}],
        }
        # A 100% limit means no cloud filter, as in the Earth Engine scripts
        if cloud_cover < 100:
            search_kwargs["query"] = {"eo:cloud_cover": {"lt": cloud_cover}}

        search = self.client.search(**search_kwargs)

        items = list(search.items())
        logger.info("Search complete", num_results=len(items))

        return [self._item_to_dict(item) for item in items]

    def _item_to_dict(self, item) -> dict:
        """Convert a STAC item to a metadata dictionary."""
        props = item.properties

        assets = {}
        for band_name in SCENE_ASSETS:
            if band_name in item.assets:
                asset = item.assets[band_name]
                assets[band_name] = {
                    "href": asset.href,
                    "type": asset.media_type,
                }

        return {
            "id": item.id,
            "datetime": props.get("datetime"),
            "cloud_cover": props.get("eo:cloud_cover", 0),
            "bbox": item.bbox,
            "geometry": item.geometry,
            "assets": assets,
            "properties": {
                "platform": props.get("platform"),
                "proj:epsg": props.get("proj:epsg"),
                "s2:mgrs_tile": props.get("s2:mgrs_tile"),
            },
        }
