"""veda_client: publish, search and visualize datasets through the VEDA APIs."""

__version__ = "0.1.0"

from veda_client.client import VedaClient  # noqa: F401
from veda_client.config import Settings, get_settings  # noqa: F401
from veda_client.exceptions import (  # noqa: F401
    APIError,
    AuthenticationError,
    DatasetValidationError,
    VedaClientError,
)
