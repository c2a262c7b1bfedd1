"""Access token handling for the cloud drive API."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

import httpx

from .config import config
from .exceptions import (
    CloudDriveAuthenticationError,
    CloudDriveConfigError,
    CloudDriveNetworkError,
)

logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds before their real expiry
EXPIRY_MARGIN: float = 60.0


class TokenManager:
    """Owns the access token of one client.

    The token is loaded from the token file when it is still valid, and is
    otherwise obtained by exchanging the long-lived refresh token with the
    token exchange endpoint. Every refreshed token response is written back
    to the token file.
    """

    def __init__(
        self,
        refresh_token: str | None = None,
        token_file: Path | None = None,
        refresh_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the token manager.

        Args:
            refresh_token: Long-lived refresh token (uses config if not provided)
            token_file: Where the last token response is stored
                (uses config if not provided)
            refresh_url: Token exchange endpoint (uses config if not provided)
            timeout: Timeout of the exchange request in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.refresh_token = refresh_token or config.refresh_token
        self.token_file = Path(token_file or config.token_file)
        self.refresh_url = refresh_url or config.refresh_url
        self.timeout = timeout
        self._transport = transport
        self._header: dict[str, str] | None = None
        self.refresh_count = 0

    def get_auth_header(self, force_refresh: bool = False) -> dict[str, str]:
        """Return the Authorization header for the current access token.

        Args:
            force_refresh: Skip the cached and stored token and exchange the
                refresh token for a new one

        Returns:
            Header dict with the bearer token

        Raises:
            CloudDriveAuthenticationError: If the token exchange fails
            CloudDriveNetworkError: If the exchange endpoint is unreachable
        """
        if not force_refresh:
            if self._header is not None:
                return self._header
            token = self._load_token()
            if token is not None:
                logger.debug("Using stored access token from %s", self.token_file)
                self._header = self._make_header(token["access_token"])
                return self._header

        token = self.refresh()
        self._header = self._make_header(token["access_token"])
        return self._header

    def refresh(self) -> dict[str, Any]:
        """Exchange the refresh token for a new access token.

        Returns:
            The token response as returned by the exchange endpoint
        """
        if not self.refresh_token:
            raise CloudDriveAuthenticationError(
                "No refresh token configured. Run 'pyclouddrive init' or set "
                "CLOUDDRIVE_REFRESH_TOKEN."
            )

        logger.debug("Refreshing access token via %s", self.refresh_url)
        try:
            with httpx.Client(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = client.post(
                    self.refresh_url, data={"refresh_token": self.refresh_token}
                )
        except httpx.RequestError as e:
            raise CloudDriveNetworkError(
                f"Network error during token refresh: {e}"
            ) from e

        if not response.is_success:
            raise CloudDriveAuthenticationError(
                f"Token refresh failed with status {response.status_code}: "
                f"{response.text}"
            )

        try:
            token = response.json()
        except ValueError as e:
            raise CloudDriveAuthenticationError(
                "Token refresh returned invalid JSON"
            ) from e
        if not isinstance(token, dict) or not isinstance(
            token.get("access_token"), str
        ):
            raise CloudDriveAuthenticationError(
                "Token refresh response contains no access_token"
            )

        self.refresh_count += 1
        self._save_token(token)
        return token

    def _load_token(self) -> dict[str, Any] | None:
        """Read the stored token, or None if it is missing, malformed or expired."""
        try:
            with open(self.token_file, encoding="utf-8") as f:
                token = json.load(f)
            stored_at = self.token_file.stat().st_mtime
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.debug("Ignoring unreadable token file %s: %s", self.token_file, e)
            return None

        if not isinstance(token, dict) or not isinstance(
            token.get("access_token"), str
        ):
            logger.debug("Ignoring malformed token file %s", self.token_file)
            return None

        expires_in = token.get("expires_in")
        if isinstance(expires_in, (int, float)):
            if stored_at + expires_in - EXPIRY_MARGIN < time.time():
                logger.debug("Stored access token has expired")
                return None
        return token

    def _save_token(self, token: dict[str, Any]) -> None:
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.token_file, "w", encoding="utf-8") as f:
                json.dump(token, f, indent=2)
        except OSError as e:
            logger.warning("Could not save token to %s: %s", self.token_file, e)

    @staticmethod
    def _make_header(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}


def require_refresh_token(refresh_token: str | None = None) -> str:
    """Return the refresh token to use, raising if none is configured."""
    token = refresh_token or config.refresh_token
    if not token:
        raise CloudDriveConfigError(
            "Refresh token not configured. Run 'pyclouddrive init' or set "
            "CLOUDDRIVE_REFRESH_TOKEN."
        )
    return token
