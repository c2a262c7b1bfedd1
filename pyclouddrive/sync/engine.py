"""Core sync engine for mirroring a local tree to the cloud drive."""

import logging
import time
from pathlib import Path
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from ..api import CloudDriveClient
from ..fingerprint import FingerprintCache
from ..models import RemoteNode
from ..node_manager import NodeManager
from ..output import OutputFormatter
from ..utils import (
    DEFAULT_CONTENT_TYPES,
    format_size,
    split_remote_path,
    validate_content_types,
)
from .comparator import EntryComparator, SyncAction, SyncDecision
from .operations import UploadPipeline
from .scanner import DirectoryScanner, pair_entries
from .state import SyncStats

logger = logging.getLogger(__name__)


class SyncEngine:
    """Mirrors a local directory tree into a remote folder.

    Entries of a directory are handled one at a time in directory-listing
    order, and each subdirectory is finished before the next entry starts.
    """

    def __init__(
        self,
        client: CloudDriveClient,
        output: Optional[OutputFormatter] = None,
        content_types: Optional[dict[str, str]] = None,
        fingerprints: Optional[FingerprintCache] = None,
        save_hashes: bool = False,
    ):
        """Initialize sync engine.

        Args:
            client: Cloud drive API client
            output: Output formatter for displaying progress/status
            content_types: Extension to MIME type table of tracked files
                (defaults to common image types)
            fingerprints: Fingerprint cache (a new one is created if not given)
            save_hashes: Persist computed fingerprints to side-car files
                (ignored when fingerprints is given)
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.content_types = validate_content_types(
            content_types or DEFAULT_CONTENT_TYPES
        )
        self.fingerprints = fingerprints or FingerprintCache(persist=save_hashes)
        self.manager = NodeManager(client)
        self.scanner = DirectoryScanner()
        self.comparator = EntryComparator(self.content_types, self.fingerprints)
        self.operations = UploadPipeline(client, self.content_types)
        self.stats = SyncStats()
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def sync(self, local_path: Path, remote_path: str = "/") -> SyncStats:
        """Sync a local directory into a remote folder.

        Missing remote folders on the way to remote_path are created.

        Args:
            local_path: Local directory to upload from
            remote_path: Remote folder path, relative to the drive root

        Returns:
            Statistics of the run

        Raises:
            ValueError: If local_path is not an existing directory
            CloudDriveConflictError: If a local entry and the remote node of
                the same name differ in kind
        """
        local_path = Path(local_path)
        if not local_path.exists():
            raise ValueError(f"Local directory does not exist: {local_path}")
        if not local_path.is_dir():
            raise ValueError(f"Local path is not a directory: {local_path}")

        self.stats = SyncStats()
        start_time = time.time()

        if not self.output.quiet:
            self.output.info(f"Syncing: {local_path} -> {remote_path or '/'}")
            self.output.print("")

        root = self.manager.get_root()
        target = self.manager.resolve_path(split_remote_path(remote_path), root)
        logger.debug("Remote target %s resolved to node %s", remote_path, target.id)

        if self.output.quiet or self.output.json_output:
            self.sync_folder(target, local_path)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True,
            ) as progress:
                self._progress = progress
                self._task = progress.add_task("Scanning...", total=None)
                try:
                    self.sync_folder(target, local_path)
                finally:
                    self._progress = None
                    self._task = None

        logger.debug("Sync finished in %.2fs", time.time() - start_time)
        if not self.output.quiet:
            self._display_summary(self.stats)
        return self.stats

    def sync_folder(self, remote_node: RemoteNode, local_path: Path) -> None:
        """Sync one local directory with its remote folder, recursively.

        Args:
            remote_node: Remote folder corresponding to local_path
            local_path: Local directory
        """
        self.stats.folders_processed += 1
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, description=f"Syncing {local_path}")

        try:
            local_entries = self.scanner.list_entries(local_path)
        except OSError as e:
            self.stats.failed += 1
            logger.warning("Cannot list %s: %s", local_path, e)
            self.output.error(f"Cannot list {local_path}: {e}")
            return

        remote_children = self.manager.get_all_children(remote_node.id)
        entries = pair_entries(local_entries, remote_children)
        logger.debug(
            "%s: %d local entries, %d remote children",
            local_path,
            len(entries),
            len(remote_children),
        )

        for entry in entries:
            try:
                decision = self.comparator.decide(entry)
            except OSError as e:
                # Unreadable file, the rest of the folder still syncs
                self.stats.files_processed += 1
                self.stats.failed += 1
                logger.error("Cannot read %s: %s", entry.path, e)
                self.output.error(f"Error reading {entry.path}: {e}")
                continue
            self._execute_decision(decision, remote_node)

    def _execute_decision(
        self, decision: SyncDecision, remote_node: RemoteNode
    ) -> None:
        """Carry out one decision and update the statistics.

        Args:
            decision: Decision for a local entry
            remote_node: Remote folder containing the entry
        """
        entry = decision.entry
        logger.debug("%s: %s (%s)", entry.path, decision.action.value, decision.reason)

        if decision.action == SyncAction.CREATE_FOLDER:
            folder = self.client.create_folder(entry.name, remote_node.id)
            self.stats.folders_created += 1
            self.sync_folder(folder, entry.path)
            return

        if decision.action == SyncAction.RECURSE and entry.remote_match is not None:
            self.sync_folder(entry.remote_match, entry.path)
            return

        self.stats.files_processed += 1

        if decision.action == SyncAction.SKIP:
            self.stats.skipped += 1
        elif decision.action == SyncAction.ALREADY_PRESENT:
            self.stats.already_present += 1
        elif decision.action in (SyncAction.UPLOAD, SyncAction.REPLACE):
            is_replace = decision.action == SyncAction.REPLACE
            outcome = self.operations.upload(entry, remote_node.id, is_replace)
            if not outcome.ok:
                self.stats.failed += 1
                logger.error("Upload of %s failed: %s", entry.path, outcome.error)
                self.output.error(f"Error uploading {entry.path}: {outcome.error}")
                return
            if is_replace:
                self.stats.updated += 1
            else:
                self.stats.uploaded += 1
            self.stats.bytes_uploaded += outcome.bytes_sent
            if not self.output.quiet:
                verb = "Updated" if is_replace else "Uploaded"
                self.output.info(f"{verb} {entry.path}")

    def _display_summary(self, stats: SyncStats) -> None:
        """Display sync summary.

        Args:
            stats: Statistics of the run
        """
        self.output.print("")
        if stats.failed:
            self.output.warning(f"Sync finished with {stats.failed} failed upload(s)")
        else:
            self.output.success("Sync complete!")

        self.output.info(
            f"Folders processed: {stats.folders_processed} "
            f"(created: {stats.folders_created})"
        )
        self.output.info(f"Files processed: {stats.files_processed}")
        if stats.uploaded > 0:
            self.output.info(f"  Uploaded: {stats.uploaded}")
        if stats.updated > 0:
            self.output.info(f"  Updated: {stats.updated}")
        if stats.already_present > 0:
            self.output.info(f"  Already present: {stats.already_present}")
        if stats.skipped > 0:
            self.output.info(f"  Skipped (untracked type): {stats.skipped}")
        if stats.failed > 0:
            self.output.info(f"  Failed: {stats.failed}")
        if stats.bytes_uploaded > 0:
            self.output.info(f"Data uploaded: {format_size(stats.bytes_uploaded)}")
