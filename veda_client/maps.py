"""Map rendering of tile layers with folium"""

from typing import Any, Dict, Optional, Sequence, Tuple, Union

import folium

DEFAULT_ATTRIBUTION = "VEDA"

TileLayers = Union[str, Dict[str, str], Sequence[str]]


def tilejson_layer(
    tilejson: Dict[str, Any],
    name: Optional[str] = None,
    attribution: str = DEFAULT_ATTRIBUTION,
    opacity: float = 1.0,
) -> folium.TileLayer:
    """Tile layer from a TileJSON document"""
    return folium.TileLayer(
        tiles=tilejson["tiles"][0],
        attr=tilejson.get("attribution") or attribution,
        name=name or tilejson.get("name") or "tiles",
        overlay=True,
        opacity=opacity,
        min_zoom=tilejson.get("minzoom", 0),
        max_zoom=tilejson.get("maxzoom", 18),
    )


def make_map(
    tiles: TileLayers = (),
    center: Tuple[float, float] = (0, 0),
    zoom: int = 3,
    attribution: str = DEFAULT_ATTRIBUTION,
    bounds: Optional[Sequence[float]] = None,
    opacity: float = 1.0,
) -> folium.Map:
    """
    Folium map with one overlay per tile URL template.

    `tiles` may be a single template, a list of templates or a mapping of
    layer name to template. `bounds` is a [west, south, east, north] box the
    map is fitted to.
    """
    m = folium.Map(location=list(center), zoom_start=zoom)

    if isinstance(tiles, str):
        tiles = {"tiles": tiles}
    elif not isinstance(tiles, dict):
        tiles = {f"layer {i}": url for i, url in enumerate(tiles)}

    for name, url in tiles.items():
        folium.TileLayer(
            tiles=url, attr=attribution, name=name, overlay=True, opacity=opacity
        ).add_to(m)

    if bounds:
        west, south, east, north = bounds
        m.fit_bounds([[south, west], [north, east]])

    if tiles:
        folium.LayerControl(collapsed=False).add_to(m)
    return m


def tilejson_map(
    tilejson: Dict[str, Any], zoom: Optional[int] = None, name: Optional[str] = None
) -> folium.Map:
    """Map centered on a TileJSON document's bounds"""
    west, south, east, north = tilejson.get("bounds", [-180, -90, 180, 90])
    m = folium.Map(
        location=[(south + north) / 2, (west + east) / 2],
        zoom_start=zoom or tilejson.get("minzoom", 3),
    )
    tilejson_layer(tilejson, name=name).add_to(m)
    folium.LayerControl(collapsed=False).add_to(m)
    return m
