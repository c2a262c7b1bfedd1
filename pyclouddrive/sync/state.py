"""Counters collected during a sync run."""

from dataclasses import asdict, dataclass


@dataclass
class SyncStats:
    """Statistics of one sync run."""

    uploaded: int = 0
    """New files uploaded"""

    updated: int = 0
    """Existing remote files whose content was replaced"""

    already_present: int = 0
    """Files whose remote content already matched"""

    skipped: int = 0
    """Files with an untracked extension"""

    failed: int = 0
    """Uploads that failed after their retry"""

    folders_created: int = 0
    """Remote folders created"""

    folders_processed: int = 0
    """Local folders visited, including the sync root"""

    files_processed: int = 0
    """Local files visited"""

    bytes_uploaded: int = 0
    """Bytes of file content sent"""

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
