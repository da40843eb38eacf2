"""HTTP plumbing shared by the STAC, raster and workflows clients"""

from typing import Any, Optional

import httpx

from veda_client.config import Settings, get_settings
from veda_client.exceptions import raise_for_status
from veda_client.monitoring import EVENT_HOOKS, logger


class BaseClient:
    """Thin wrapper around an httpx.Client bound to one of the VEDA APIs"""

    api: str = ""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        auth: Optional[httpx.Auth] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.http = httpx.Client(
            auth=auth,
            timeout=self.settings.timeout,
            transport=transport,
            event_hooks=EVENT_HOOKS,
            follow_redirects=True,
        )

    @property
    def base_url(self) -> str:
        return self.settings.api_url(self.api)

    def url(self, *parts: str) -> str:
        return self.settings.api_url(self.api, *parts)

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, raising APIError on non-success responses"""
        return raise_for_status(self.http.request(method, url, **kwargs))

    def get_json(self, *parts: str, **kwargs: Any) -> Any:
        return self.request("GET", self.url(*parts), **kwargs).json()

    def post_json(self, *parts: str, body: Any = None, **kwargs: Any) -> Any:
        return self.request("POST", self.url(*parts), json=body, **kwargs).json()

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()


class VedaClient:
    """Entry point bundling the STAC, raster, features and workflows clients"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        auth: Optional[httpx.Auth] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        from veda_client.auth import auth_from_settings
        from veda_client.features import FeaturesClient
        from veda_client.ingest import WorkflowsClient
        from veda_client.raster import RasterClient
        from veda_client.search import StacClient

        self.settings = settings or get_settings()
        if self.settings.stage:
            logger.append_keys(stage=self.settings.stage)
        auth = auth or auth_from_settings(self.settings)
        self.stac = StacClient(self.settings, transport=transport)
        self.raster = RasterClient(self.settings, transport=transport)
        self.features = FeaturesClient(self.settings, transport=transport)
        self.workflows = WorkflowsClient(self.settings, auth=auth, transport=transport)

    def close(self) -> None:
        for client in (self.stac, self.raster, self.features, self.workflows):
            client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()
