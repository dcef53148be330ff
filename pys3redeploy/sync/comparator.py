"""Change detection between local fingerprints and remote state."""

import logging
from typing import Optional

from ..models import DiffResult, FileRecord, Manifest, SyncPolicy

logger = logging.getLogger(__name__)


def detect_file_changes(
    local_records: dict[str, FileRecord], remote_hashes: dict[str, str]
) -> DiffResult:
    """Compute the upload and delete sets in a single pass.

    Hash equality is the only criterion; sizes and timestamps are ignored.

    Args:
        local_records: Mapping of relative path to local FileRecord
        remote_hashes: Mapping of relative path to remote content hash

    Returns:
        DiffResult whose ``to_delete`` holds the remote-only paths

    Examples:
        >>> local = {"a.txt": FileRecord("a.txt", "h1", "")}
        >>> sorted(detect_file_changes(local, {"b.txt": "h2"}).to_delete)
        ['b.txt']
    """
    remaining = dict(remote_hashes)
    to_upload: dict[str, FileRecord] = {}
    unchanged = 0

    for path, record in local_records.items():
        remote_hash = remaining.pop(path, None)
        if remote_hash is None or remote_hash != record.content_hash:
            to_upload[path] = record
        else:
            unchanged += 1

    return DiffResult(to_upload=to_upload, to_delete=remaining, unchanged=unchanged)


def policy_changed(previous: Optional[SyncPolicy], current: SyncPolicy) -> bool:
    """Check whether the upload policy differs from the recorded one.

    An unknown previous policy (no manifest, or a manifest written without
    one) is not treated as a change.
    """
    if previous is None:
        return False
    return previous != current


class FileComparator:
    """Compares local records against remote state for a given policy."""

    def __init__(self, policy: SyncPolicy):
        """Initialize file comparator.

        Args:
            policy: Upload policy of the current run
        """
        self.policy = policy

    def compare(
        self, local_records: dict[str, FileRecord], remote_state: Manifest
    ) -> DiffResult:
        """Compare local records with the remote state.

        When the recorded policy differs from the current one, every local
        file is uploaded again so the new headers are applied.

        Args:
            local_records: Mapping of relative path to local FileRecord
            remote_state: Stored manifest or listing-derived state

        Returns:
            DiffResult for this run
        """
        diff = detect_file_changes(local_records, remote_state.hashes)

        if policy_changed(remote_state.policy, self.policy):
            logger.debug(
                "Upload policy changed from %s to %s, re-uploading all files",
                remote_state.policy,
                self.policy,
            )
            diff.to_upload = dict(local_records)
            diff.unchanged = 0
            diff.policy_changed = True

        logger.debug(
            "Diff: %d to upload, %d to delete, %d unchanged",
            len(diff.to_upload),
            len(diff.to_delete),
            diff.unchanged,
        )
        return diff
