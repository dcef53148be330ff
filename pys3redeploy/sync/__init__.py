"""Sync engine for pys3redeploy - one-way local to S3 synchronization."""

from .comparator import FileComparator, detect_file_changes, policy_changed
from .concurrency import BoundedPool
from .engine import SyncEngine
from .hasher import LocalHasher, compute_file_record
from .operations import SyncOperations, invalidate
from .scanner import PathScanner
from .state import ManifestStore

__all__ = [
    "SyncEngine",
    "BoundedPool",
    "PathScanner",
    "LocalHasher",
    "compute_file_record",
    "ManifestStore",
    "FileComparator",
    "detect_file_changes",
    "policy_changed",
    "SyncOperations",
    "invalidate",
]
