"""Exceptions raised by pyclouddrive."""

from typing import Optional


class CloudDriveAPIError(Exception):
    """Base exception for all cloud drive errors."""


class CloudDriveConfigError(CloudDriveAPIError):
    """Raised when the configuration is missing or invalid."""


class CloudDriveNetworkError(CloudDriveAPIError):
    """Raised on connection, DNS, TLS or read failures."""


class CloudDriveAuthenticationError(CloudDriveAPIError):
    """Raised when the token exchange fails."""


class CloudDriveInvalidResponseError(CloudDriveAPIError):
    """Raised when the server returns a body that cannot be decoded."""


class CloudDriveRequestError(CloudDriveAPIError):
    """Raised for a non-2xx response that is not recovered by a retry."""

    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class CloudDriveNotFoundError(CloudDriveRequestError):
    """Raised when the requested node does not exist."""


class CloudDriveStreamExhaustedError(CloudDriveAPIError):
    """Raised when a streamed request body cannot be resent.

    The token has already been refreshed when this is raised; the caller
    must rebuild the body and restart the whole operation.
    """


class CloudDriveUploadError(CloudDriveAPIError):
    """Raised when an upload request cannot be built."""


class CloudDriveConflictError(CloudDriveAPIError):
    """Raised when a local entry and a remote node of the same name differ in kind."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
