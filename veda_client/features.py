"""Client for the VEDA features API (OGC API Features, served by tipg)"""

from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from veda_client.client import BaseClient
from veda_client.monitoring import logger
from veda_client.search import BBox, validate_bbox, validate_datetime


class FeaturesQuery(BaseModel):
    """Query parameters of `/collections/{id}/items`"""

    bbox: Optional[BBox] = None
    datetime: Optional[str] = None
    limit: Optional[int] = Field(None, gt=0)
    offset: Optional[int] = Field(None, ge=0)
    properties: Optional[List[str]] = None
    sortby: Optional[str] = None

    @field_validator("bbox")
    @classmethod
    def check_bbox(cls, v):
        return validate_bbox(v)

    @field_validator("datetime")
    @classmethod
    def check_datetime(cls, v):
        if v is None:
            return v
        return validate_datetime(v)

    def to_params(self) -> List[Tuple[str, str]]:
        params = []
        if self.bbox:
            params.append(("bbox", ",".join(f"{v:g}" for v in self.bbox)))
        if self.datetime:
            params.append(("datetime", self.datetime))
        if self.limit is not None:
            params.append(("limit", str(self.limit)))
        if self.offset is not None:
            params.append(("offset", str(self.offset)))
        if self.properties:
            params.append(("properties", ",".join(self.properties)))
        if self.sortby:
            params.append(("sortby", self.sortby))
        return params


def _next_href(page: Dict[str, Any]) -> Optional[str]:
    return next(
        (link["href"] for link in page.get("links", []) if link.get("rel") == "next"),
        None,
    )


class FeaturesClient(BaseClient):
    """Vector collections and their features"""

    api = "features"

    def list_collections(self) -> List[Dict[str, Any]]:
        collections = []
        url = self.url("collections")
        while url:
            page = self.request("GET", url).json()
            collections.extend(page.get("collections", []))
            url = _next_href(page)
        return collections

    def get_collection(self, collection_id: str) -> Dict[str, Any]:
        return self.get_json("collections", collection_id)

    def get_items(
        self,
        collection_id: str,
        query: Union[FeaturesQuery, Dict[str, Any], None] = None,
    ) -> Dict[str, Any]:
        """One page of features as a GeoJSON FeatureCollection"""
        if not isinstance(query, FeaturesQuery):
            query = FeaturesQuery.model_validate(query or {})
        page = self.get_json(
            "collections", collection_id, "items", params=query.to_params()
        )
        logger.info(
            "Fetched features",
            extra={
                "collection": collection_id,
                "returned": page.get("numberReturned", len(page.get("features", []))),
            },
        )
        return page

    def iter_items(
        self,
        collection_id: str,
        query: Union[FeaturesQuery, Dict[str, Any], None] = None,
        max_items: Optional[int] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Yield features across pages, following `next` links"""
        page = self.get_items(collection_id, query)
        count = 0
        while True:
            for feature in page.get("features", []):
                if max_items is not None and count >= max_items:
                    return
                yield feature
                count += 1

            if max_items is not None and count >= max_items:
                return
            href = _next_href(page)
            if not href or not page.get("features"):
                return
            page = self.request("GET", href).json()

    def get_item(self, collection_id: str, item_id: str) -> Dict[str, Any]:
        return self.get_json("collections", collection_id, "items", item_id)
