"""Directory listing utilities for sync operations."""

import logging
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..fingerprint import FingerprintCache
from ..models import RemoteNode

logger = logging.getLogger(__name__)


@dataclass
class LocalEntry:
    """A file or directory found in a local folder."""

    name: str
    """Entry name"""

    parent_path: Path
    """Absolute path of the containing directory"""

    path: Path
    """Absolute path of the entry"""

    is_dir: bool
    """Whether the entry is a directory (symlinks are followed)"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    size: int = 0
    """File size in bytes"""

    creation_time: Optional[float] = None
    """Creation time (Unix timestamp) if available"""

    remote_match: Optional[RemoteNode] = None
    """Remote node with the same name in the corresponding remote folder"""

    @classmethod
    def from_path(cls, path: Path) -> "LocalEntry":
        """Create a LocalEntry by stat-ing a path.

        Args:
            path: Absolute path of the entry

        Returns:
            LocalEntry instance

        Raises:
            OSError: If the path cannot be stat-ed
        """
        st = path.stat()
        is_dir = stat.S_ISDIR(st.st_mode)

        # st_birthtime on macOS and BSD only
        creation_time: Optional[float] = None
        stat_any: Any = st
        if hasattr(stat_any, "st_birthtime"):
            creation_time = stat_any.st_birthtime

        return cls(
            name=path.name,
            parent_path=path.parent,
            path=path,
            is_dir=is_dir,
            mtime=st.st_mtime,
            size=0 if is_dir else st.st_size,
            creation_time=creation_time,
        )


class DirectoryScanner:
    """Lists the entries of one local directory.

    Entries are returned in directory-listing order. Fingerprint side-car
    files are hidden.
    """

    def __init__(self, hide_sidecars: bool = True):
        self.hide_sidecars = hide_sidecars

    def list_entries(self, directory: Path) -> list[LocalEntry]:
        """List the entries of a directory (not recursive).

        Args:
            directory: Directory to list

        Returns:
            List of LocalEntry objects; entries that cannot be stat-ed are
            logged and left out
        """
        entries: list[LocalEntry] = []
        for item in directory.iterdir():
            if self.hide_sidecars and FingerprintCache.is_sidecar(item):
                continue
            try:
                entries.append(LocalEntry.from_path(item))
            except OSError as e:
                logger.warning("Skipping unreadable entry %s: %s", item, e)
        return entries


def pair_entries(
    entries: list[LocalEntry], remote_children: list[RemoteNode]
) -> list[LocalEntry]:
    """Attach to each local entry the first remote child with the same name.

    Args:
        entries: Local entries of one directory
        remote_children: Children of the corresponding remote folder

    Returns:
        The same entries, with remote_match set where a match exists
    """
    by_name: dict[str, RemoteNode] = {}
    for node in remote_children:
        by_name.setdefault(node.name, node)

    for entry in entries:
        entry.remote_match = by_name.get(entry.name)
    return entries
