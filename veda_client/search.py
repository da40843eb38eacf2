"""STAC item search: CQL2-JSON filter builders, search request model and client"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from cql2 import Expr, ValidationError
from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from veda_client.client import BaseClient
from veda_client.monitoring import logger
from veda_client.schema_helpers import isoformat_z

Filter = Dict[str, Any]
DateLike = Union[datetime, str, None]
BBox = List[float]


def _prop(name: str) -> Dict[str, str]:
    return {"property": name}


def _op(op: str, *args: Any) -> Filter:
    return {"op": op, "args": list(args)}


def eq(prop: str, value: Any) -> Filter:
    return _op("=", _prop(prop), value)


def in_(prop: str, values: Sequence[Any]) -> Filter:
    return _op("in", _prop(prop), list(values))


def lt(prop: str, value: Any) -> Filter:
    return _op("<", _prop(prop), value)


def lte(prop: str, value: Any) -> Filter:
    return _op("<=", _prop(prop), value)


def gt(prop: str, value: Any) -> Filter:
    return _op(">", _prop(prop), value)


def gte(prop: str, value: Any) -> Filter:
    return _op(">=", _prop(prop), value)


def collection_filter(*collections: str) -> Filter:
    """Restrict to one or several collections"""
    if len(collections) == 1:
        return eq("collection", collections[0])
    return in_("collection", collections)


def intersects(geometry: Union[Dict[str, Any], BBox]) -> Filter:
    """Spatial predicate from a GeoJSON geometry, Feature or a bbox"""
    if isinstance(geometry, dict) and geometry.get("type") == "Feature":
        geometry = geometry["geometry"]
    if isinstance(geometry, (list, tuple)):
        geometry = {"bbox": list(geometry)}
    return _op("s_intersects", _prop("geometry"), geometry)


def _date(value: DateLike) -> str:
    if value is None or value == "..":
        return ".."
    if isinstance(value, datetime):
        return isoformat_z(value)
    return value


def anyinteracts(start: DateLike = None, end: DateLike = None) -> Filter:
    """Temporal predicate on item datetime, open ends allowed"""
    return _op(
        "t_intersects", _prop("datetime"), {"interval": [_date(start), _date(end)]}
    )


def and_(*filters: Optional[Filter]) -> Filter:
    args = [f for f in filters if f]
    if len(args) == 1:
        return args[0]
    return _op("and", *args)


def or_(*filters: Filter) -> Filter:
    return _op("or", *filters)


def not_(filter: Filter) -> Filter:
    return _op("not", filter)


def validate_filter(filter: Filter) -> Filter:
    """Check a CQL2-JSON document, raising ValueError when invalid"""
    try:
        Expr(filter).validate()
    except (ValidationError, ValueError) as e:
        raise ValueError(f"Invalid CQL2 filter: {e}")
    return filter


def validate_datetime(value: str) -> str:
    """Check an RFC 3339 datetime or interval, raising ValueError when invalid"""
    values = value.split("/") if "/" in value else [value]
    if len(values) > 2:
        raise ValueError(
            "Invalid datetime range, must match format (begin_date, end_date)"
        )
    dates = []
    for part in values:
        if part in ("..", ""):
            dates.append(None)
            continue
        # raises ValueError if not RFC 3339
        date = isoparse(part)
        # naive values are UTC
        dates.append(date if date.tzinfo else date.replace(tzinfo=timezone.utc))
    if len(dates) == 2:
        if dates[0] is None and dates[1] is None:
            raise ValueError(
                "Invalid datetime range, both ends of range may not be open"
            )
        if None not in dates and dates[0] > dates[1]:
            raise ValueError(
                "Invalid datetime range, must match format (begin_date, end_date)"
            )
    elif dates[0] is None:
        raise ValueError("Invalid datetime, expected an RFC 3339 date or interval")
    return value


def validate_bbox(v: Optional[BBox]) -> Optional[BBox]:
    """Check order of supplied bbox coordinates."""
    if not v:
        return v
    if len(v) == 4:
        xmin, ymin, xmax, ymax = v
    elif len(v) == 6:
        xmin, ymin, min_elev, xmax, ymax, max_elev = v
        if max_elev < min_elev:
            raise ValueError("Maximum elevation must greater than minimum elevation")
    else:
        raise ValueError("Bounding box must have 4 or 6 coordinates")

    if xmax < xmin:
        raise ValueError("Maximum longitude must be greater than minimum longitude")

    if ymax < ymin:
        raise ValueError("Maximum latitude must be greater than minimum latitude")

    # Validate against WGS84
    if xmin < -180 or ymin < -90 or xmax > 180 or ymax > 90:
        raise ValueError("Bounding box must be within (-180, -90, 180, 90)")
    return v


class SearchRequest(BaseModel):
    """Body of a STAC API POST /search request"""

    collections: Optional[List[str]] = None
    ids: Optional[List[str]] = None
    bbox: Optional[BBox] = None
    intersects: Optional[Dict[str, Any]] = None
    datetime: Optional[str] = None
    filter: Optional[Filter] = None
    filter_lang: str = Field("cql2-json", alias="filter-lang")
    limit: Optional[int] = Field(None, gt=0)
    sortby: Optional[List[Dict[str, str]]] = None
    fields: Optional[Dict[str, List[str]]] = None

    model_config = ConfigDict(populate_by_name=True)

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

    @field_validator("filter")
    @classmethod
    def check_filter(cls, v):
        if v is None:
            return v
        return validate_filter(v)

    @model_validator(mode="after")
    def check_spatial(self):
        if self.bbox and self.intersects:
            raise ValueError("intersects and bbox parameters are mutually exclusive")
        return self

    def to_body(self) -> Dict[str, Any]:
        body = self.model_dump(by_alias=True, exclude_none=True)
        if "filter" not in body:
            body.pop("filter-lang")
        return body


class ItemCollection(BaseModel):
    """Search response, tolerant of both `numberMatched` and `context` styles"""

    type: str = "FeatureCollection"
    features: List[Dict[str, Any]] = []
    links: List[Dict[str, Any]] = []
    numberMatched: Optional[int] = None
    numberReturned: Optional[int] = None
    context: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="allow")

    @property
    def matched(self) -> Optional[int]:
        if self.numberMatched is not None:
            return self.numberMatched
        return (self.context or {}).get("matched")

    @property
    def returned(self) -> int:
        if self.numberReturned is not None:
            return self.numberReturned
        return (self.context or {}).get("returned", len(self.features))

    @property
    def next_link(self) -> Optional[Dict[str, Any]]:
        return next((link for link in self.links if link.get("rel") == "next"), None)


class StacClient(BaseClient):
    """Client for the VEDA STAC API"""

    api = "stac"

    def list_collections(self) -> List[Dict[str, Any]]:
        """All collections, following pagination links"""
        collections = []
        url = self.url("collections")
        while url:
            page = self.request("GET", url).json()
            collections.extend(page.get("collections", []))
            url = next(
                (
                    link["href"]
                    for link in page.get("links", [])
                    if link.get("rel") == "next"
                ),
                None,
            )
        return collections

    def get_collection(self, collection_id: str) -> Dict[str, Any]:
        return self.get_json("collections", collection_id)

    def get_item(self, collection_id: str, item_id: str) -> Dict[str, Any]:
        return self.get_json("collections", collection_id, "items", item_id)

    def search(self, request: Union[SearchRequest, Dict[str, Any]]) -> ItemCollection:
        """POST a search and return the first page of results"""
        if isinstance(request, dict):
            request = SearchRequest.model_validate(request)
        body = request.to_body()
        logger.debug("Searching items", extra={"search": body})
        results = ItemCollection.model_validate(self.post_json("search", body=body))
        logger.info(
            "Search complete",
            extra={"matched": results.matched, "returned": results.returned},
        )
        return results

    def iter_search(
        self,
        request: Union[SearchRequest, Dict[str, Any]],
        max_items: Optional[int] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Yield items across result pages"""
        if isinstance(request, dict):
            request = SearchRequest.model_validate(request)
        body = request.to_body()
        page = ItemCollection.model_validate(self.post_json("search", body=body))
        count = 0
        while True:
            for feature in page.features:
                if max_items is not None and count >= max_items:
                    return
                yield feature
                count += 1

            if max_items is not None and count >= max_items:
                return
            link = page.next_link
            if not link or not page.features:
                return
            if link.get("method", "GET").upper() == "POST":
                next_body = link.get("body", {})
                body = {**body, **next_body} if link.get("merge") else next_body
                response = self.request("POST", link["href"], json=body)
            else:
                response = self.request("GET", link["href"])
            page = ItemCollection.model_validate(response.json())
