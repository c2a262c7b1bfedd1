"""Sync engine for pyclouddrive - one-way local to cloud synchronization."""

from .comparator import EntryComparator, SyncAction, SyncDecision
from .engine import SyncEngine
from .operations import UploadOutcome, UploadPipeline
from .scanner import DirectoryScanner, LocalEntry, pair_entries
from .state import SyncStats

__all__ = [
    "SyncEngine",
    "SyncStats",
    "SyncAction",
    "SyncDecision",
    "EntryComparator",
    "UploadPipeline",
    "UploadOutcome",
    "DirectoryScanner",
    "LocalEntry",
    "pair_entries",
]
