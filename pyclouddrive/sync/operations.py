"""Upload pipeline used by the sync engine."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..api import CloudDriveClient
from ..exceptions import (
    CloudDriveAPIError,
    CloudDriveConfigError,
    CloudDriveStreamExhaustedError,
    CloudDriveUploadError,
)
from ..models import NodeKind, RemoteNode
from ..multipart import FileSource, MultipartBody, UploadSource
from ..utils import UPLOAD_CHUNK_SIZE, content_type_for
from .scanner import LocalEntry

logger = logging.getLogger(__name__)


@dataclass
class UploadOutcome:
    """Result of one logical upload."""

    name: str
    """Name of the uploaded file"""

    node: Optional[RemoteNode] = None
    """Node returned by the server on success"""

    error: Optional[Exception] = None
    """Error of the last attempt on failure"""

    attempts: int = 0
    """Number of attempts made"""

    bytes_sent: int = 0
    """Size of the uploaded content on success"""

    @property
    def ok(self) -> bool:
        return self.node is not None


class UploadPipeline:
    """Uploads files as multipart bodies, restarting a failed upload once."""

    def __init__(
        self,
        client: CloudDriveClient,
        content_types: dict[str, str],
        max_attempts: int = 2,
        chunk_size: int = UPLOAD_CHUNK_SIZE,
    ):
        """Initialize the upload pipeline.

        Args:
            client: Cloud drive API client
            content_types: Extension to MIME type table
            max_attempts: Attempts per upload, each with a fresh stream
            chunk_size: Bytes read from the source per chunk
        """
        self.client = client
        self.content_types = content_types
        self.max_attempts = max_attempts
        self.chunk_size = chunk_size

    def content_type_of(self, name: str) -> str:
        """Return the Content-Type for a file name.

        Raises:
            CloudDriveConfigError: If the extension is not in the table
        """
        content_type = content_type_for(name, self.content_types)
        if content_type is None:
            raise CloudDriveConfigError(
                f"No MIME type configured for '{name}'; add its extension "
                "to the extension table"
            )
        return content_type

    def upload(
        self, entry: LocalEntry, parent_id: str, is_replace: bool
    ) -> UploadOutcome:
        """Upload a local file.

        Args:
            entry: Local file to upload
            parent_id: ID of the remote folder the file belongs in
            is_replace: Replace the content of entry.remote_match instead of
                creating a new file

        Returns:
            UploadOutcome describing success or the final error
        """
        existing = entry.remote_match if is_replace else None
        if is_replace and existing is None:
            raise CloudDriveUploadError(
                f"Cannot replace '{entry.path}': no remote file to replace"
            )
        return self.upload_source(FileSource(entry.path), parent_id, existing)

    def upload_source(
        self,
        source: UploadSource,
        parent_id: Optional[str] = None,
        existing: Optional[RemoteNode] = None,
    ) -> UploadOutcome:
        """Upload any source, as a new file or over an existing one.

        Args:
            source: Bytes to upload
            parent_id: Parent folder ID (required for new files)
            existing: Node whose content is replaced, or None for a new file

        Returns:
            UploadOutcome describing success or the final error
        """
        content_type = self.content_type_of(source.name)
        metadata = None
        if existing is None:
            if parent_id is None:
                raise CloudDriveUploadError(
                    f"Cannot upload '{source.name}': no parent folder given"
                )
            metadata = {
                "name": source.name,
                "kind": NodeKind.FILE.value,
                "parents": [parent_id],
            }

        outcome = UploadOutcome(name=source.name)
        reauthenticated = False
        for attempt in range(1, self.max_attempts + 1):
            outcome.attempts = attempt
            # A new body per attempt, a consumed stream is never reused
            body = MultipartBody(
                source, content_type, metadata=metadata, chunk_size=self.chunk_size
            )
            try:
                if existing is None:
                    node = self.client.upload_new_file(
                        body, reauthenticated=reauthenticated
                    )
                else:
                    node = self.client.overwrite_file(
                        existing.id, body, reauthenticated=reauthenticated
                    )
            except (CloudDriveAPIError, OSError) as e:
                # The token was refreshed before this was raised
                if isinstance(e, CloudDriveStreamExhaustedError):
                    reauthenticated = True
                outcome.error = e
                logger.warning(
                    "Upload of %s failed (attempt %d/%d): %s",
                    source.name,
                    attempt,
                    self.max_attempts,
                    e,
                )
                continue

            outcome.node = node
            outcome.error = None
            outcome.bytes_sent = source.size
            logger.debug("Uploaded %s as node %s", source.name, node.id)
            break

        return outcome
