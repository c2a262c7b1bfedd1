"""Utility functions for pyclouddrive."""

import re
from typing import Optional

from .exceptions import CloudDriveConfigError

# =============================================================================
# Constants
# =============================================================================

# Chunk size used when streaming file content into an upload body (64 KB)
UPLOAD_CHUNK_SIZE: int = 64 * 1024

# Chunk size used when hashing files (1 MB)
HASH_CHUNK_SIZE: int = 1024 * 1024

# Boundary of the multipart upload body
MULTIPART_BOUNDARY: str = "WebKitFormBoundaryE19zNvXGzXaLvS5C"

DEFAULT_REFRESH_URL: str = "https://drivesink.appspot.com/refresh"
DEFAULT_ENDPOINT_URL: str = "https://drive.amazonaws.com/drive/v1/account/endpoint"

# Tracked file extensions and the Content-Type sent for each of them
DEFAULT_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".webp": "image/webp",
    ".heic": "image/heic",
}

_MIME_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


# =============================================================================
# Extension table utilities
# =============================================================================


def normalize_extension(extension: str) -> str:
    """Normalize an extension to lowercase with a leading dot.

    Examples:
        >>> normalize_extension("JPG")
        '.jpg'
        >>> normalize_extension(".Png")
        '.png'
    """
    extension = extension.strip().lower()
    if not extension.startswith("."):
        extension = "." + extension
    return extension


def validate_content_types(table: dict[str, str]) -> dict[str, str]:
    """Validate an extension to MIME type table.

    Args:
        table: Mapping of file extension to MIME type

    Returns:
        Normalized copy of the table

    Raises:
        CloudDriveConfigError: If the table is empty or contains an
            invalid extension or MIME type
    """
    if not table:
        raise CloudDriveConfigError("Extension table is empty")

    normalized: dict[str, str] = {}
    for extension, mime_type in table.items():
        ext = normalize_extension(extension)
        if ext == ".":
            raise CloudDriveConfigError("Empty extension in extension table")
        if not isinstance(mime_type, str) or not _MIME_RE.match(mime_type.strip()):
            raise CloudDriveConfigError(
                f"Invalid MIME type for extension '{ext}': {mime_type!r}"
            )
        normalized[ext] = mime_type.strip()
    return normalized


def parse_extension_option(value: str) -> tuple[str, str]:
    """Parse an ``.ext=mime/type`` command line value.

    Raises:
        CloudDriveConfigError: If the value has no ``=``
    """
    extension, sep, mime_type = value.partition("=")
    if not sep or not extension.strip() or not mime_type.strip():
        raise CloudDriveConfigError(
            f"Invalid extension mapping '{value}', expected .ext=mime/type"
        )
    return normalize_extension(extension), mime_type.strip()


def content_type_for(name: str, table: dict[str, str]) -> Optional[str]:
    """Look up the Content-Type for a file name, or None if untracked."""
    dot = name.rfind(".")
    if dot <= 0:
        return None
    return table.get(name[dot:].lower())


# =============================================================================
# Path utilities
# =============================================================================


def split_remote_path(remote_path: Optional[str]) -> list[str]:
    """Split a remote path into its folder names.

    Examples:
        >>> split_remote_path("/Backup/Photos/")
        ['Backup', 'Photos']
        >>> split_remote_path("/")
        []
    """
    if not remote_path:
        return []
    return [segment for segment in remote_path.split("/") if segment]


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
