"""Test suite for authentication helpers."""

import base64
import hashlib
import hmac
from unittest.mock import MagicMock
from urllib.parse import parse_qs

import httpx
import pytest

from veda_client.auth import (
    AuthResponse,
    BearerAuth,
    CognitoAuth,
    auth_from_settings,
    get_token,
)
from veda_client.config import Settings
from veda_client.exceptions import AuthenticationError

from conftest import WORKFLOWS_API_URL

TOKEN_RESPONSE = {
    "AccessToken": "access-token",
    "ExpiresIn": 3600,
    "TokenType": "Bearer",
    "RefreshToken": "refresh-token",
    "IdToken": "id-token",
}


class TestGetToken:
    def test_token(self, api):
        api.add("POST", "/api/workflows/token", json=TOKEN_RESPONSE)
        with httpx.Client(transport=api.transport) as client:
            token = get_token(WORKFLOWS_API_URL, "user", "secret", client=client)
        assert token.AccessToken == "access-token"
        assert parse_qs(api.last_request.content.decode()) == {
            "username": ["user"],
            "password": ["secret"],
        }

    def test_bad_credentials(self, api):
        api.add("POST", "/api/workflows/token", json={"detail": "nope"}, status_code=401)
        with httpx.Client(transport=api.transport) as client:
            with pytest.raises(AuthenticationError, match="Couldn't obtain the token"):
                get_token(WORKFLOWS_API_URL, "user", "wrong", client=client)


class TestBearerAuth:
    def test_header_and_renewal(self, api):
        """The token is fetched once, then again after it expires."""
        api.add("GET", "/", json={})
        now = [0.0]
        calls = []

        def supplier():
            calls.append(1)
            return AuthResponse(AccessToken=f"token-{len(calls)}", ExpiresIn=60)

        auth = BearerAuth(supplier, clock=lambda: now[0])
        with httpx.Client(transport=api.transport, auth=auth) as client:
            client.get("https://veda.test/")
            client.get("https://veda.test/")
            assert api.last_request.headers["Authorization"] == "Bearer token-1"
            now[0] = 61.0
            client.get("https://veda.test/")
        assert api.last_request.headers["Authorization"] == "Bearer token-2"
        assert len(calls) == 2

    def test_from_token(self):
        assert BearerAuth.from_token("abc").token == "abc"

    def test_no_credentials_no_auth(self, settings):
        assert auth_from_settings(settings) is None

    def test_credentials_use_token_endpoint(self, monkeypatch):
        settings = Settings(username="user", password="secret", _env_file=None)
        monkeypatch.setattr(
            "veda_client.auth.get_token",
            lambda url, username, password: AuthResponse(AccessToken=f"{username}-t"),
        )
        assert auth_from_settings(settings).token == "user-t"


class TestCognitoAuth:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.client = MagicMock()
        self.client.exceptions.NotAuthorizedException = type(
            "NotAuthorizedException", (Exception,), {}
        )
        self.auth = CognitoAuth(client=self.client)

    def test_secret_hash(self):
        expected = base64.b64encode(
            hmac.new(b"secret", b"userclient", hashlib.sha256).digest()
        ).decode()
        assert self.auth._get_secret_hash("user", "client", "secret") == expected

    def test_login_with_secret(self):
        self.client.admin_initiate_auth.return_value = {
            "AuthenticationResult": TOKEN_RESPONSE
        }
        token = self.auth.authenticate_and_get_token(
            "user", "pw", "pool", "client", "secret"
        )
        assert token.AccessToken == "access-token"
        params = self.client.admin_initiate_auth.call_args.kwargs["AuthParameters"]
        assert set(params) == {"USERNAME", "PASSWORD", "SECRET_HASH"}

    def test_login_without_secret(self):
        self.client.admin_initiate_auth.return_value = {
            "AuthenticationResult": TOKEN_RESPONSE
        }
        self.auth.authenticate_and_get_token("user", "pw", "pool", "client")
        params = self.client.admin_initiate_auth.call_args.kwargs["AuthParameters"]
        assert "SECRET_HASH" not in params

    def test_not_authorized(self):
        self.client.admin_initiate_auth.side_effect = (
            self.client.exceptions.NotAuthorizedException()
        )
        with pytest.raises(AuthenticationError, match="Login failed"):
            self.auth.authenticate_and_get_token("user", "bad", "pool", "client")
