"""Client settings."""

import functools
from typing import Optional

from pydantic import AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """VEDA client settings"""

    stac_api_url: AnyHttpUrl = Field(
        "https://openveda.cloud/api/stac", description="URL of STAC API"
    )
    raster_api_url: AnyHttpUrl = Field(
        "https://openveda.cloud/api/raster", description="URL of raster (tiler) API"
    )
    features_api_url: AnyHttpUrl = Field(
        "https://openveda.cloud/api/features",
        description="URL of OGC API Features (vector) API",
    )
    workflows_api_url: AnyHttpUrl = Field(
        "https://openveda.cloud/api/workflows",
        description="URL of the workflows API used for dataset publication",
    )

    username: Optional[str] = Field(None, description="Workflows API username")
    password: Optional[SecretStr] = Field(None, description="Workflows API password")

    cognito_userpool_id: Optional[str] = Field(
        None, description="Cognito user pool used for direct login"
    )
    cognito_client_id: Optional[str] = None
    cognito_client_secret: Optional[SecretStr] = None

    mosaic_route: str = Field(
        "mosaic",
        description="Route of the mosaic endpoints, `searches` on newer titiler-pgstac",
    )
    tile_matrix_set: str = "WebMercatorQuad"
    timeout: float = Field(30.0, description="HTTP timeout in seconds")
    stage: Optional[str] = Field(None, description="Deployment stage being targeted")

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="VEDA_", extra="ignore"
    )

    @field_validator("mosaic_route")
    @classmethod
    def strip_route(cls, v: str) -> str:
        """Store route without surrounding slashes."""
        return v.strip("/")

    def api_url(self, name: str, *parts: str) -> str:
        """Join an API base URL with path parts."""
        base = getattr(self, f"{name}_api_url")
        return "/".join(
            str(part).strip("/") for part in [base, *parts] if str(part).strip("/")
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Return cached settings loaded from the environment."""
    return Settings()
