"""Raster API client: mosaic registration, tile URLs and COG statistics"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from veda_client.client import BaseClient
from veda_client.monitoring import logger
from veda_client.search import SearchRequest

TILE_TEMPLATE = "{z}/{x}/{y}"


def _tile_template(params: Optional["TileParams"]) -> str:
    if params and params.tile_format:
        return f"{TILE_TEMPLATE}.{params.tile_format}"
    return TILE_TEMPLATE


class TileParams(BaseModel):
    """Rendering options understood by titiler tile and tilejson endpoints"""

    assets: List[str] = []
    expression: Optional[str] = Field(None, description="Band math expression")
    asset_as_band: Optional[bool] = None
    bidx: List[int] = []
    rescale: List[Tuple[float, float]] = []
    colormap_name: Optional[str] = None
    nodata: Optional[Union[float, str]] = None
    resampling: Optional[str] = None
    tile_format: Optional[str] = None

    @field_validator("rescale", mode="before")
    @classmethod
    def parse_rescale(cls, v):
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple)) and len(v) == 2 and not any(
            isinstance(x, (list, tuple, str)) for x in v
        ):
            v = [v]
        return [
            tuple(float(x) for x in r.split(",")) if isinstance(r, str) else r
            for r in v
        ]

    @field_validator("rescale")
    @classmethod
    def check_rescale(cls, v):
        for low, high in v:
            if low >= high:
                raise ValueError(f"Invalid rescale {low},{high} - min must be below max")
        return v

    @model_validator(mode="after")
    def check_expression(self):
        # expressions referencing asset names need assets mapped to bands
        if (
            self.expression
            and self.assets
            and any(asset in self.expression for asset in self.assets)
            and self.asset_as_band is None
        ):
            self.asset_as_band = True
        return self

    def to_query(self) -> List[Tuple[str, str]]:
        """Query parameters, repeating keys for multi-valued options"""
        query: List[Tuple[str, str]] = [("assets", a) for a in self.assets]
        if self.expression:
            query.append(("expression", self.expression))
        if self.asset_as_band is not None:
            query.append(("asset_as_band", str(self.asset_as_band).lower()))
        query.extend(("bidx", str(b)) for b in self.bidx)
        query.extend(("rescale", f"{low:g},{high:g}") for low, high in self.rescale)
        if self.colormap_name:
            query.append(("colormap_name", self.colormap_name))
        if self.nodata is not None:
            query.append(("nodata", str(self.nodata)))
        if self.resampling:
            query.append(("resampling", self.resampling))
        return query


def _with_query(url: str, params: Optional[TileParams]) -> str:
    query = params.to_query() if params else []
    if not query:
        return url
    sep = "&" if "?" in url else "?"
    # keep {z}/{x}/{y} placeholders and commas readable
    return f"{url}{sep}{urlencode(query, safe=',{}')}"


class RegisteredMosaic(BaseModel):
    """Response of a mosaic registration"""

    searchid: str = Field(..., alias="id")
    links: List[Dict[str, Any]] = []

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def accept_searchid(cls, data):
        if isinstance(data, dict) and "searchid" in data and "id" not in data:
            data = {**data, "id": data["searchid"]}
        return data

    def link(self, rel: str) -> Optional[str]:
        return next(
            (link["href"] for link in self.links if link.get("rel") == rel), None
        )

    def tiles_url(
        self,
        params: Optional[TileParams] = None,
        tile_matrix_set: str = "WebMercatorQuad",
    ) -> str:
        """XYZ tile template derived from the registration's tilejson link"""
        href = self.link("tilejson")
        if not href:
            raise ValueError(f"Mosaic {self.searchid} has no tilejson link")
        base = href.split("?")[0].split(f"/{self.searchid}/")[0]
        return _with_query(
            f"{base}/{self.searchid}/tiles/{tile_matrix_set}/{_tile_template(params)}",
            params,
        )


class RasterClient(BaseClient):
    """Client for the VEDA raster API (titiler-pgstac)"""

    api = "raster"

    def register_mosaic(
        self,
        request: Union[SearchRequest, Dict[str, Any]],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RegisteredMosaic:
        """
        Store a search on the tiler and return its id. The stored search is
        evaluated for each tile, so the filter is not run at registration.
        """
        if isinstance(request, dict):
            request = SearchRequest.model_validate(request)
        body = request.to_body()
        # paging and field selection don't apply to mosaics
        for key in ("limit", "fields"):
            body.pop(key, None)
        body["metadata"] = {"type": "mosaic", **(metadata or {})}
        response = self.post_json(self.settings.mosaic_route, "register", body=body)
        mosaic = RegisteredMosaic.model_validate(response)
        logger.info("Registered mosaic", extra={"searchid": mosaic.searchid})
        return mosaic

    def mosaic_info(self, searchid: str) -> Dict[str, Any]:
        return self.get_json(self.settings.mosaic_route, searchid, "info")

    def mosaic_tile_url(
        self,
        searchid: str,
        params: Optional[TileParams] = None,
        tile_matrix_set: Optional[str] = None,
    ) -> str:
        """XYZ tile template for a registered mosaic"""
        url = self.url(
            self.settings.mosaic_route,
            searchid,
            "tiles",
            tile_matrix_set or self.settings.tile_matrix_set,
            _tile_template(params),
        )
        return _with_query(url, params)

    def mosaic_tilejson(
        self,
        searchid: str,
        params: Optional[TileParams] = None,
        tile_matrix_set: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = self.url(
            self.settings.mosaic_route,
            searchid,
            tile_matrix_set or self.settings.tile_matrix_set,
            "tilejson.json",
        )
        return self.request(
            "GET", url, params=params.to_query() if params else None
        ).json()

    def cog_tile_url(
        self,
        url: str,
        params: Optional[TileParams] = None,
        tile_matrix_set: Optional[str] = None,
    ) -> str:
        """XYZ tile template for a single COG"""
        base = self.url(
            "cog",
            "tiles",
            tile_matrix_set or self.settings.tile_matrix_set,
            _tile_template(params),
        )
        query = [("url", url)] + (params.to_query() if params else [])
        return f"{base}?{urlencode(query, safe=',{}')}"

    def cog_tilejson(
        self,
        url: str,
        params: Optional[TileParams] = None,
        tile_matrix_set: Optional[str] = None,
    ) -> Dict[str, Any]:
        query = [("url", url)] + (params.to_query() if params else [])
        return self.get_json(
            "cog",
            tile_matrix_set or self.settings.tile_matrix_set,
            "tilejson.json",
            params=query,
        )

    def cog_statistics(
        self,
        url: str,
        geojson: Optional[Dict[str, Any]] = None,
        params: Optional[TileParams] = None,
    ) -> Dict[str, Any]:
        """Statistics of a COG, over a GeoJSON Feature when given"""
        query = [("url", url)] + (params.to_query() if params else [])
        if geojson is None:
            return self.get_json("cog", "statistics", params=query)
        return self.post_json("cog", "statistics", body=geojson, params=query)

    def timeseries(
        self,
        items: Sequence[Dict[str, Any]],
        geojson: Dict[str, Any],
        asset: str = "cog_default",
        params: Optional[TileParams] = None,
    ) -> List[Dict[str, Any]]:
        """
        Per-item statistics over an area, one request per item.

        Each entry holds the item datetime and the statistics of the first
        band, ordered by datetime.
        """
        if geojson.get("type") == "FeatureCollection":
            raise ValueError("timeseries takes a single Feature or geometry")
        if geojson.get("type") != "Feature":
            geojson = {"type": "Feature", "properties": {}, "geometry": geojson}

        series = []
        for item in items:
            href = item["assets"][asset]["href"]
            stats = self.cog_statistics(href, geojson, params)
            properties = stats.get("properties", {}).get("statistics", {})
            band_stats = next(iter(properties.values()), {})
            props = item.get("properties", {})
            series.append(
                {
                    "id": item.get("id"),
                    "datetime": props.get("datetime")
                    or props.get("start_datetime"),
                    **band_stats,
                }
            )
        return sorted(series, key=lambda entry: entry["datetime"] or "")
