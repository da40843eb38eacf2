"""STAC item creation for COGs following the VEDA item conventions"""

from pathlib import PurePosixPath
from typing import Any, Dict, Optional

import pystac
import rasterio
from rasterio.warp import transform_bounds

from veda_client.validators import extract_dates

DEFAULT_ASSET = "cog_default"


def _footprint(href: str):
    with rasterio.open(href) as src:
        bbox = list(
            transform_bounds(src.crs, "EPSG:4326", *src.bounds, densify_pts=21)
        )
        proj = {"proj:epsg": src.crs.to_epsg(), "proj:shape": [src.height, src.width]}
    west, south, east, north = bbox
    geometry = {
        "type": "Polygon",
        "coordinates": [
            [[west, south], [east, south], [east, north], [west, north], [west, south]]
        ],
    }
    return bbox, geometry, proj


def create_item(
    href: str,
    collection: str,
    datetime_range: Optional[str] = None,
    asset_name: str = DEFAULT_ASSET,
    item_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a STAC item for a COG, dated from its filename.

    Raises ValueError when no date can be extracted from the filename.
    """
    filename = PurePosixPath(href.split("://", 1)[-1]).name
    start, end, single = extract_dates(filename, datetime_range)
    if not (single or (start and end)):
        raise ValueError(f"Could not extract a datetime from {filename}")

    bbox, geometry, proj = _footprint(href)
    item = pystac.Item(
        id=item_id or filename.rsplit(".tif", 1)[0],
        geometry=geometry,
        bbox=bbox,
        datetime=single,
        start_datetime=start,
        end_datetime=end,
        properties={k: v for k, v in proj.items() if v is not None},
        collection=collection,
    )
    item.add_asset(
        asset_name,
        pystac.Asset(
            href=href,
            media_type=pystac.MediaType.COG,
            roles=["data", "layer"],
            title="Default COG Layer",
            description="Cloud optimized default layer to display on map",
        ),
    )
    return item.to_dict(include_self_link=False)
