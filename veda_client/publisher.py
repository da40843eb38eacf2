"""Local preview of the STAC collection created when a dataset is published"""

import copy
from typing import Any, Dict, Union

from veda_client.schemas import COGDataset, ZarrDataset

STAC_VERSION = "1.0.0"

GLOBAL_EXTENT = {
    "spatial": {"bbox": [[-180, -90, 180, 90]]},
    "temporal": {"interval": [[None, None]]},
}

COG_DEFAULT_ASSET = {
    "type": "image/tiff; application=geotiff; profile=cloud-optimized",
    "roles": ["data", "layer"],
    "title": "Default COG Layer",
    "description": "Cloud optimized default layer to display on map",
}

ZARR_MEDIA_TYPE = "application/vnd+zarr"


class Publisher:
    """Builds the STAC collection a dataset definition will be published as"""

    copied_fields = ("title", "description", "license")
    dashboard_prefix = "dashboard:"
    dashboard_fields = ("is_periodic", "time_density")

    def base_collection(self, dataset: Union[COGDataset, ZarrDataset]) -> Dict[str, Any]:
        values = dataset.model_dump(mode="json")
        collection = {
            "type": "Collection",
            "stac_version": STAC_VERSION,
            "id": values["collection"],
            "extent": copy.deepcopy(GLOBAL_EXTENT),
            "links": values.get("links") or [],
        }
        collection.update((name, values[name]) for name in self.copied_fields)
        collection.update(
            (f"{self.dashboard_prefix}{name}", values[name])
            for name in self.dashboard_fields
        )
        return collection

    def cog_collection(self, dataset: COGDataset) -> Dict[str, Any]:
        collection = self.base_collection(dataset)
        collection["extent"] = {
            "spatial": {"bbox": [dataset.spatial_extent.as_bbox()]},
            "temporal": {"interval": [dataset.temporal_extent.as_interval()]},
        }
        collection["item_assets"] = {"cog_default": dict(COG_DEFAULT_ASSET)}
        return collection

    def zarr_collection(self, dataset: ZarrDataset) -> Dict[str, Any]:
        """
        Collection exposing the zarr store as a single asset.

        The store is not opened here, so the extent stays global.
        """
        source = dataset.discovery_items[0]
        open_kwargs = {"engine": "zarr", "chunks": {}}
        open_kwargs.update(dataset.xarray_kwargs or {})

        collection = self.base_collection(dataset)
        collection["assets"] = {
            "zarr": {
                "href": f"s3://{source.bucket}/{source.prefix}{source.zarr_store}",
                "type": ZARR_MEDIA_TYPE,
                "roles": ["data", "zarr"],
                "title": "Zarr Array Store",
                "description": "Zarr array store with one or several arrays (variables)",
                "xarray:open_kwargs": open_kwargs,
            }
        }
        return collection

    def generate_stac(self, dataset: Union[COGDataset, ZarrDataset]) -> Dict[str, Any]:
        if isinstance(dataset, ZarrDataset):
            return self.zarr_collection(dataset)
        return self.cog_collection(dataset)
