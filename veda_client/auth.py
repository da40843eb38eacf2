"""Authentication helpers for the VEDA workflows API"""

import base64
import hashlib
import hmac
import time
from typing import Callable, Generator, Optional

import boto3
import httpx
from pydantic import BaseModel, Field

from veda_client.exceptions import AuthenticationError
from veda_client.monitoring import logger


class AuthResponse(BaseModel):
    AccessToken: str = Field(..., description="Token used to authenticate the user.")
    ExpiresIn: int = Field(
        3600, description="Number of seconds before the AccessToken expires."
    )
    TokenType: str = Field(
        "Bearer", description="Type of token being returned (e.g. 'Bearer')."
    )
    RefreshToken: Optional[str] = Field(
        None, description="Token used to refresh the AccessToken when it expires."
    )
    IdToken: Optional[str] = Field(
        None, description="Token containing information about the authenticated user."
    )


def get_token(
    workflows_api_url: str,
    username: str,
    password: str,
    client: Optional[httpx.Client] = None,
) -> AuthResponse:
    """Exchange username and password for a token at the workflows API"""
    url = f"{str(workflows_api_url).rstrip('/')}/token"
    http = client or httpx
    response = http.post(url, data={"username": username, "password": password})
    if not response.is_success:
        logger.warning(
            "Token request failed", extra={"status_code": response.status_code}
        )
        raise AuthenticationError()
    try:
        return AuthResponse.model_validate(response.json())
    except ValueError as e:
        raise AuthenticationError(f"Unexpected token response: {e}") from e


class CognitoAuth:
    """Direct login against the Cognito user pool backing the workflows API"""

    def __init__(self, client=None) -> None:
        self.client = client or boto3.client("cognito-idp")

    def _get_secret_hash(
        self, username: str, client_id: str, client_secret: str
    ) -> str:
        # A keyed-hash message authentication code (HMAC) calculated using
        # the secret key of a user pool client and username plus the client
        # ID in the message.
        message = username + client_id
        dig = hmac.new(
            bytearray(client_secret, "utf-8"),
            msg=message.encode("UTF-8"),
            digestmod=hashlib.sha256,
        ).digest()
        return base64.b64encode(dig).decode()

    def authenticate_and_get_token(
        self,
        username: str,
        password: str,
        user_pool_id: str,
        app_client_id: str,
        app_client_secret: Optional[str] = None,
    ) -> AuthResponse:
        """Authenticates the credentials and returns token"""
        auth_params = {
            "USERNAME": username,
            "PASSWORD": password,
        }
        if app_client_secret:
            auth_params["SECRET_HASH"] = self._get_secret_hash(
                username, app_client_id, app_client_secret
            )
        try:
            resp = self.client.admin_initiate_auth(
                UserPoolId=user_pool_id,
                ClientId=app_client_id,
                AuthFlow="ADMIN_USER_PASSWORD_AUTH",
                AuthParameters=auth_params,
            )
        except self.client.exceptions.NotAuthorizedException as e:
            raise AuthenticationError(
                "Login failed, please make sure the credentials are correct."
            ) from e
        return AuthResponse.model_validate(resp["AuthenticationResult"])


class BearerAuth(httpx.Auth):
    """httpx auth flow attaching a bearer token, fetched lazily and renewed on expiry"""

    def __init__(
        self,
        token_supplier: Callable[[], AuthResponse],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.token_supplier = token_supplier
        self.clock = clock
        self._token: Optional[AuthResponse] = None
        self._expires_at = 0.0

    @classmethod
    def from_token(cls, access_token: str) -> "BearerAuth":
        """Auth for an already obtained access token."""
        return cls(lambda: AuthResponse(AccessToken=access_token))

    @property
    def token(self) -> str:
        """Current access token, obtaining a new one when missing or expired."""
        now = self.clock()
        if self._token is None or now >= self._expires_at:
            logger.debug("Obtaining access token")
            self._token = self.token_supplier()
            self._expires_at = now + self._token.ExpiresIn
        return self._token.AccessToken

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        """Attach the Authorization header."""
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


def auth_from_settings(settings) -> Optional[BearerAuth]:
    """Build bearer auth from configured credentials, if any."""
    if not (settings.username and settings.password):
        return None

    password = settings.password.get_secret_value()
    if settings.cognito_userpool_id and settings.cognito_client_id:
        secret = (
            settings.cognito_client_secret.get_secret_value()
            if settings.cognito_client_secret
            else None
        )
        return BearerAuth(
            lambda: CognitoAuth().authenticate_and_get_token(
                settings.username,
                password,
                settings.cognito_userpool_id,
                settings.cognito_client_id,
                secret,
            )
        )

    return BearerAuth(
        lambda: get_token(
            str(settings.workflows_api_url), settings.username, password
        )
    )
