"""Client exceptions."""

from typing import List, Optional

import httpx
from pydantic import ValidationError


class VedaClientError(Exception):
    """Base exception for the VEDA client."""


class AuthenticationError(VedaClientError):
    """Unable to obtain an access token."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "Couldn't obtain the token. Make sure the username and password are correct."
        )


class APIError(VedaClientError):
    """Non-success response from one of the VEDA APIs."""

    def __init__(self, status_code: int, detail, url: str = ""):
        self.status_code = status_code
        self.detail = detail
        self.url = url
        super().__init__(f"{status_code} response from {url}: {detail}")


class DatasetValidationError(VedaClientError):
    """Dataset definition failed validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("Invalid dataset definition:\n" + "\n".join(errors))

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "DatasetValidationError":
        """Flatten pydantic errors into `location: message` strings."""
        errors = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err["loc"])
            errors.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        return cls(errors)


def raise_for_status(response: httpx.Response) -> httpx.Response:
    """Return the response if successful, raise APIError otherwise."""
    if response.is_success:
        return response

    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail", body) if isinstance(body, dict) else body
    raise APIError(
        status_code=response.status_code,
        detail=detail if detail is not None else response.text,
        url=str(response.request.url),
    )
