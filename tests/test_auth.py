"""Tests for the token manager."""

import json
import os
import time
from unittest.mock import patch
from urllib.parse import parse_qs

import httpx
import pytest

from pyclouddrive.auth import TokenManager, require_refresh_token
from pyclouddrive.exceptions import (
    CloudDriveAuthenticationError,
    CloudDriveConfigError,
    CloudDriveNetworkError,
)

REFRESH_URL = "https://auth.test/refresh"


class RefreshEndpoint:
    """Fake token exchange endpoint."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {
            "access_token": "new-token",
            "refresh_token": "refresh-me",
            "expires_in": 3600,
            "token_type": "bearer",
        }
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def token_file(tmp_path):
    return tmp_path / "tokens" / "token.json"


def make_manager(token_file, endpoint, refresh_token="refresh-me"):
    return TokenManager(
        refresh_token=refresh_token,
        token_file=token_file,
        refresh_url=REFRESH_URL,
        transport=httpx.MockTransport(endpoint),
    )


def write_token(token_file, token, age=0.0):
    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(json.dumps(token))
    if age:
        stamp = time.time() - age
        os.utime(token_file, (stamp, stamp))


class TestLoadStoredToken:
    """Tests for non-forced header requests."""

    def test_uses_stored_token_without_network(self, token_file):
        """Test that a valid stored token is used as is."""
        write_token(token_file, {"access_token": "stored", "expires_in": 3600})
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        header = manager.get_auth_header()

        assert header == {"Authorization": "Bearer stored"}
        assert endpoint.requests == []

    def test_token_without_expiry_is_used(self, token_file):
        """Test that a token without expires_in is not considered expired."""
        write_token(token_file, {"access_token": "stored"}, age=10 * 86400)
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        assert manager.get_auth_header() == {"Authorization": "Bearer stored"}
        assert endpoint.requests == []

    def test_header_is_cached_in_memory(self, token_file):
        """Test that the header is not reloaded from disk on every call."""
        write_token(token_file, {"access_token": "stored"})
        manager = make_manager(token_file, RefreshEndpoint())

        manager.get_auth_header()
        token_file.unlink()

        assert manager.get_auth_header() == {"Authorization": "Bearer stored"}

    def test_missing_file_escalates_to_refresh(self, token_file):
        """Test that a missing token file triggers a refresh."""
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        header = manager.get_auth_header()

        assert header == {"Authorization": "Bearer new-token"}
        assert len(endpoint.requests) == 1

    def test_malformed_file_escalates_to_refresh(self, token_file):
        """Test that an unparsable token file triggers a refresh."""
        token_file.parent.mkdir(parents=True)
        token_file.write_text("{not json")
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        assert manager.get_auth_header() == {"Authorization": "Bearer new-token"}
        assert len(endpoint.requests) == 1

    def test_file_without_access_token_escalates(self, token_file):
        """Test that a token file lacking access_token triggers a refresh."""
        write_token(token_file, {"token_type": "bearer"})
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        manager.get_auth_header()

        assert len(endpoint.requests) == 1

    def test_expired_token_escalates(self, token_file):
        """Test that an expired stored token triggers a refresh."""
        write_token(
            token_file, {"access_token": "old", "expires_in": 3600}, age=7200
        )
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        assert manager.get_auth_header() == {"Authorization": "Bearer new-token"}
        assert len(endpoint.requests) == 1


class TestRefresh:
    """Tests for forced refreshes."""

    def test_refresh_posts_form_encoded_refresh_token(self, token_file):
        """Test the token exchange request."""
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        manager.get_auth_header(force_refresh=True)

        request = endpoint.requests[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert parse_qs(request.content.decode()) == {"refresh_token": ["refresh-me"]}

    def test_refresh_persists_full_response_pretty_printed(self, token_file):
        """Test that the whole token response is written to the token file."""
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)

        manager.get_auth_header(force_refresh=True)

        text = token_file.read_text()
        assert "\n  " in text
        assert json.loads(text) == endpoint.payload

    def test_forced_refresh_ignores_stored_token(self, token_file):
        """Test that force_refresh bypasses a valid stored token."""
        write_token(token_file, {"access_token": "stored"})
        endpoint = RefreshEndpoint()
        manager = make_manager(token_file, endpoint)
        manager.get_auth_header()

        header = manager.get_auth_header(force_refresh=True)

        assert header == {"Authorization": "Bearer new-token"}
        assert manager.get_auth_header() == {"Authorization": "Bearer new-token"}
        assert manager.refresh_count == 1

    def test_refresh_failure_raises_authentication_error(self, token_file):
        """Test that a non-2xx exchange response is fatal."""
        endpoint = RefreshEndpoint(status_code=400, payload={"error": "invalid"})
        manager = make_manager(token_file, endpoint)

        with pytest.raises(CloudDriveAuthenticationError, match="400"):
            manager.get_auth_header(force_refresh=True)

        assert len(endpoint.requests) == 1
        assert not token_file.exists()

    def test_response_without_access_token(self, token_file):
        """Test that a 200 response without access_token is rejected."""
        endpoint = RefreshEndpoint(payload={"expires_in": 3600})
        manager = make_manager(token_file, endpoint)

        with pytest.raises(CloudDriveAuthenticationError, match="access_token"):
            manager.get_auth_header(force_refresh=True)

    def test_no_refresh_token(self, token_file):
        """Test that refreshing without a refresh token fails without a request."""
        endpoint = RefreshEndpoint()
        with patch("pyclouddrive.auth.config") as mock_config:
            mock_config.refresh_token = None
            manager = make_manager(token_file, endpoint, refresh_token=None)

        with pytest.raises(CloudDriveAuthenticationError, match="No refresh token"):
            manager.get_auth_header()
        assert endpoint.requests == []

    def test_network_error(self, token_file):
        """Test that transport failures map to CloudDriveNetworkError."""

        def handler(request):
            raise httpx.ConnectError("DNS failure", request=request)

        manager = make_manager(token_file, handler)

        with pytest.raises(CloudDriveNetworkError):
            manager.get_auth_header(force_refresh=True)


class TestRequireRefreshToken:
    """Tests for require_refresh_token."""

    def test_explicit_token(self):
        assert require_refresh_token("abc") == "abc"

    def test_falls_back_to_config(self):
        with patch("pyclouddrive.auth.config") as mock_config:
            mock_config.refresh_token = "from-config"
            assert require_refresh_token(None) == "from-config"

    def test_missing_token_raises(self):
        with patch("pyclouddrive.auth.config") as mock_config:
            mock_config.refresh_token = None
            with pytest.raises(CloudDriveConfigError):
                require_refresh_token(None)
