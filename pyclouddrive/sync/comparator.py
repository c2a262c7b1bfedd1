"""Decides what to do with each local entry during a sync."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import CloudDriveConflictError
from ..fingerprint import FingerprintCache
from ..models import NodeKind
from ..utils import content_type_for
from .scanner import LocalEntry

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken for a local entry."""

    CREATE_FOLDER = "create_folder"
    """Create the remote folder, then recurse into it"""

    RECURSE = "recurse"
    """Recurse into the existing remote folder"""

    UPLOAD = "upload"
    """Upload a file that does not exist remotely"""

    REPLACE = "replace"
    """Replace the content of the existing remote file"""

    ALREADY_PRESENT = "already_present"
    """Remote file already has the same content"""

    SKIP = "skip"
    """File type is not tracked"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync one local entry."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    entry: LocalEntry
    """Local entry the decision is about"""

    local_md5: Optional[str] = None
    """Local fingerprint, when it had to be computed"""


class EntryComparator:
    """Compares a local entry with its remote match."""

    def __init__(self, content_types: dict[str, str], fingerprints: FingerprintCache):
        """Initialize the comparator.

        Args:
            content_types: Extension to MIME type table of tracked files
            fingerprints: Fingerprint cache used for matched files
        """
        self.content_types = content_types
        self.fingerprints = fingerprints

    def is_tracked(self, name: str) -> bool:
        return content_type_for(name, self.content_types) is not None

    def decide(self, entry: LocalEntry) -> SyncDecision:
        """Determine the action for one local entry.

        Args:
            entry: Local entry with remote_match already set

        Returns:
            SyncDecision for the entry

        Raises:
            CloudDriveConflictError: If the entry and its remote match differ
                in kind
        """
        remote = entry.remote_match

        if entry.is_dir:
            if remote is None:
                return SyncDecision(
                    SyncAction.CREATE_FOLDER, "Folder missing remotely", entry
                )
            self._check_kind(entry, NodeKind.FOLDER)
            return SyncDecision(SyncAction.RECURSE, "Folder exists remotely", entry)

        if not self.is_tracked(entry.name):
            return SyncDecision(SyncAction.SKIP, "File type not tracked", entry)

        if remote is None:
            return SyncDecision(SyncAction.UPLOAD, "File missing remotely", entry)

        self._check_kind(entry, NodeKind.FILE)
        local_md5 = self.fingerprints.fingerprint_of(entry.path)

        if remote.md5 is None:
            return SyncDecision(
                SyncAction.REPLACE, "Remote file has no fingerprint", entry, local_md5
            )
        if remote.md5.lower() == local_md5:
            return SyncDecision(
                SyncAction.ALREADY_PRESENT, "Content unchanged", entry, local_md5
            )
        return SyncDecision(SyncAction.REPLACE, "Content changed", entry, local_md5)

    @staticmethod
    def _check_kind(entry: LocalEntry, expected: NodeKind) -> None:
        remote = entry.remote_match
        if remote is not None and remote.kind != expected:
            local_kind = "directory" if entry.is_dir else "file"
            raise CloudDriveConflictError(
                f"Local {local_kind} '{entry.path}' exists remotely as "
                f"{remote.kind.value} (node {remote.id})",
                path=str(entry.path),
            )
