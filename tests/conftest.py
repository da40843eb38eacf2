"""
Test fixtures and data for the VEDA client.

HTTP calls are served by an in-process `httpx.MockTransport` router so no
request leaves the test process.
"""

import copy
import json
import os
from typing import Callable, Dict, Optional, Tuple

import httpx
import pytest

from veda_client.config import Settings, get_settings

STAC_API_URL = "https://veda.test/api/stac"
RASTER_API_URL = "https://veda.test/api/raster"
FEATURES_API_URL = "https://veda.test/api/features"
WORKFLOWS_API_URL = "https://veda.test/api/workflows"

VALID_DATASET = {
    "collection": "no2-monthly-test",
    "title": "NO2 (Monthly)",
    "description": "Monthly mean tropospheric NO2 column density",
    "license": "CC0-1.0",
    "data_type": "cog",
    "is_periodic": True,
    "time_density": "month",
    "spatial_extent": {"xmin": -180, "ymin": -90, "xmax": 180, "ymax": 90},
    "temporal_extent": {
        "startdate": "2016-01-01T00:00:00Z",
        "enddate": "2022-12-31T23:59:59Z",
    },
    "sample_files": [
        "s3://veda-data-store-staging/no2-monthly/OMI_trno2_0.10x0.10_201604_Col3_V4.nc.tif"
    ],
    "discovery_items": [
        {
            "discovery": "s3",
            "cogify": False,
            "upload": False,
            "dry_run": False,
            "prefix": "no2-monthly/",
            "bucket": "veda-data-store-staging",
            "filename_regex": "^(.*).tif$",
            "datetime_range": "month",
        }
    ],
}

VALID_ITEM = {
    "type": "Feature",
    "stac_version": "1.0.0",
    "id": "OMI_trno2_0.10x0.10_201604_Col3_V4.nc",
    "collection": "no2-monthly",
    "geometry": {
        "type": "Polygon",
        "coordinates": [
            [[-180, -90], [180, -90], [180, 90], [-180, 90], [-180, -90]]
        ],
    },
    "bbox": [-180, -90, 180, 90],
    "properties": {
        "start_datetime": "2016-04-01T00:00:00Z",
        "end_datetime": "2016-04-30T23:59:59Z",
        "datetime": None,
    },
    "links": [],
    "assets": {
        "cog_default": {
            "href": "s3://veda-data-store-staging/no2-monthly/OMI_trno2_0.10x0.10_201604_Col3_V4.nc.tif",
            "type": "image/tiff; application=geotiff; profile=cloud-optimized",
            "roles": ["data", "layer"],
        }
    },
}

Handler = Callable[[httpx.Request], httpx.Response]


class MockApi:
    """Routes (method, path) pairs to canned responses and records requests"""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests = []

    def add(
        self,
        method: str,
        path: str,
        json: Optional[object] = None,
        status_code: int = 200,
        handler: Optional[Handler] = None,
    ) -> None:
        self.routes[(method, path)] = handler or (
            lambda request: httpx.Response(status_code, json=json)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last_request.content)


@pytest.fixture(autouse=True)
def test_environ(monkeypatch):
    """
    Set up the test environment with mocked AWS credentials and no VEDA
    configuration leaking in from the developer's shell.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
    for key in list(os.environ):
        if key.startswith("VEDA_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """
    Fixture providing settings pointing at the mocked APIs.

    Returns:
        Settings: client settings
    """
    return Settings(
        stac_api_url=STAC_API_URL,
        raster_api_url=RASTER_API_URL,
        features_api_url=FEATURES_API_URL,
        workflows_api_url=WORKFLOWS_API_URL,
        _env_file=None,
    )


@pytest.fixture
def api():
    """
    Fixture providing the mocked API router.

    Returns:
        MockApi: router whose `transport` is handed to the clients
    """
    return MockApi()


@pytest.fixture
def valid_dataset():
    """
    Fixture providing a valid COG dataset definition.

    Returns:
        dict: A dataset definition
    """
    return copy.deepcopy(VALID_DATASET)


@pytest.fixture
def valid_item():
    """
    Fixture providing a valid STAC item.

    Returns:
        dict: A STAC item
    """
    return copy.deepcopy(VALID_ITEM)
