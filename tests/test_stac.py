"""Test suite for STAC item creation."""

import numpy as np
import pytest

rasterio = pytest.importorskip("rasterio")
pytest.importorskip("pystac")

from rasterio.transform import from_origin  # noqa: E402

from veda_client.stac import create_item  # noqa: E402


@pytest.fixture
def geotiff(tmp_path):
    """Small EPSG:4326 GeoTIFF covering 10x10 degrees"""

    def write(name):
        path = tmp_path / name
        with rasterio.open(
            path,
            "w",
            driver="GTiff",
            height=10,
            width=10,
            count=1,
            dtype="float32",
            crs="EPSG:4326",
            transform=from_origin(-100, 40, 1, 1),
        ) as dst:
            dst.write(np.ones((1, 10, 10), dtype="float32"))
        return str(path)

    return write


def test_create_item_with_range(geotiff):
    href = geotiff("no2_202103.tif")
    item = create_item(href, "no2-monthly", datetime_range="month")
    assert item["id"] == "no2_202103"
    assert item["collection"] == "no2-monthly"
    assert item["bbox"] == pytest.approx([-100, 30, -90, 40])
    props = item["properties"]
    assert props["start_datetime"] == "2021-03-01T00:00:00Z"
    assert props["end_datetime"] == "2021-03-31T23:59:59Z"
    assert props["datetime"] is None
    assert props["proj:epsg"] == 4326
    assert props["proj:shape"] == [10, 10]
    assert item["assets"]["cog_default"]["href"] == href
    assert item["assets"]["cog_default"]["roles"] == ["data", "layer"]


def test_create_item_single_date(geotiff):
    item = create_item(geotiff("no2_2021-03-15.tif"), "no2-daily", item_id="custom")
    assert item["id"] == "custom"
    assert item["properties"]["datetime"] == "2021-03-15T00:00:00Z"


def test_create_item_without_date(geotiff):
    with pytest.raises(ValueError, match="Could not extract a datetime"):
        create_item(geotiff("no2.tif"), "no2-monthly")
