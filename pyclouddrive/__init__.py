"""pyclouddrive - mirror local folders to a cloud drive."""

from .api import CloudDriveClient
from .auth import TokenManager
from .exceptions import (
    CloudDriveAPIError,
    CloudDriveAuthenticationError,
    CloudDriveConfigError,
    CloudDriveConflictError,
    CloudDriveInvalidResponseError,
    CloudDriveNetworkError,
    CloudDriveNotFoundError,
    CloudDriveRequestError,
    CloudDriveStreamExhaustedError,
    CloudDriveUploadError,
)
from .fingerprint import FingerprintCache, calculate_md5
from .models import NodeKind, RemoteNode
from .node_manager import NodeManager

__all__ = [
    "CloudDriveClient",
    "TokenManager",
    "NodeManager",
    "FingerprintCache",
    "NodeKind",
    "RemoteNode",
    "CloudDriveAPIError",
    "CloudDriveAuthenticationError",
    "CloudDriveConfigError",
    "CloudDriveConflictError",
    "CloudDriveInvalidResponseError",
    "CloudDriveNetworkError",
    "CloudDriveNotFoundError",
    "CloudDriveRequestError",
    "CloudDriveStreamExhaustedError",
    "CloudDriveUploadError",
    "calculate_md5",
]
