"""Configuration management for pyclouddrive."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import CloudDriveConfigError
from .utils import (
    DEFAULT_CONTENT_TYPES,
    DEFAULT_ENDPOINT_URL,
    DEFAULT_REFRESH_URL,
    validate_content_types,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "pyclouddrive"
CONFIG_FILE_NAME = "config.json"
TOKEN_FILE_NAME = "token.json"


class Config:
    """Settings read from environment variables and the JSON config file.

    Environment variables take precedence over values from the file.
    """

    def __init__(self, config_file: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_file: Path of the JSON config file (defaults to
                $CLOUDDRIVE_CONFIG or ~/.config/pyclouddrive/config.json)
        """
        if config_file is None:
            env_file = os.environ.get("CLOUDDRIVE_CONFIG")
            config_file = Path(env_file) if env_file else CONFIG_DIR / CONFIG_FILE_NAME
        self.config_file = Path(config_file).expanduser()
        self._data: Optional[dict[str, Any]] = None

    @property
    def data(self) -> dict[str, Any]:
        """Parsed content of the config file (loaded on first access)."""
        if self._data is None:
            self._data = self._load()
        return self._data

    def _load(self) -> dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CloudDriveConfigError(
                f"Cannot read config file {self.config_file}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise CloudDriveConfigError(
                f"Config file {self.config_file} must contain a JSON object"
            )
        return data

    def _get(self, key: str, env: Optional[str] = None, default: Any = None) -> Any:
        if env and os.environ.get(env):
            return os.environ[env]
        return self.data.get(key, default)

    @property
    def refresh_token(self) -> Optional[str]:
        return self._get("refresh_token", "CLOUDDRIVE_REFRESH_TOKEN")

    @property
    def token_file(self) -> Path:
        value = self._get("token_file", "CLOUDDRIVE_TOKEN_FILE")
        if value:
            return Path(value).expanduser()
        return self.config_file.parent / TOKEN_FILE_NAME

    @property
    def refresh_url(self) -> str:
        return self._get("refresh_url", "CLOUDDRIVE_REFRESH_URL", DEFAULT_REFRESH_URL)

    @property
    def endpoint_url(self) -> str:
        return self._get("endpoint_url", default=DEFAULT_ENDPOINT_URL)

    @property
    def metadata_url(self) -> Optional[str]:
        return self._get("metadata_url", "CLOUDDRIVE_METADATA_URL")

    @property
    def content_url(self) -> Optional[str]:
        return self._get("content_url", "CLOUDDRIVE_CONTENT_URL")

    @property
    def extensions(self) -> dict[str, str]:
        """Extension to MIME type table of the tracked file types."""
        table = self.data.get("extensions")
        if table is None:
            return dict(DEFAULT_CONTENT_TYPES)
        if not isinstance(table, dict):
            raise CloudDriveConfigError("'extensions' must be a JSON object")
        return validate_content_types(table)

    @property
    def save_hashes(self) -> bool:
        return bool(self.data.get("save_hashes", False))

    def is_configured(self) -> bool:
        """Check whether a refresh token is available."""
        return bool(self.refresh_token)

    def save_refresh_token(self, refresh_token: str) -> None:
        """Store the refresh token in the config file."""
        self.data["refresh_token"] = refresh_token
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)
        try:
            self.config_file.chmod(0o600)
        except OSError as e:
            logger.warning(
                "Could not restrict permissions of %s: %s", self.config_file, e
            )


config = Config()
