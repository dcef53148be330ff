"""Core sync engine that runs the sync phases in order."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..api import CloudFrontClient, S3Client
from ..config import SyncParams
from ..models import DiffResult, Manifest
from ..output import OutputFormatter
from .comparator import FileComparator
from .hasher import LocalHasher
from .operations import SyncOperations
from .scanner import PathScanner
from .state import ManifestStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """Orchestrates a one-way sync from a local directory to S3.

    Phases run strictly one after another: scan, hash, remote state, diff,
    upload, delete, manifest write, invalidation. Each phase completes fully
    before the next starts, and the first failure aborts the run with the
    phase's error. Work already applied remotely is not rolled back.
    """

    def __init__(
        self,
        client: S3Client,
        output: Optional[OutputFormatter] = None,
        cdn_client: Optional[CloudFrontClient] = None,
    ):
        """Initialize sync engine.

        Args:
            client: S3 client bound to the target bucket
            output: Output formatter for displaying progress/status
            cdn_client: CloudFront client used for invalidations
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.cdn_client = cdn_client

    @contextmanager
    def _status(self, description: str) -> Iterator[None]:
        """Show a transient spinner while a phase runs."""
        if self.output.quiet:
            yield
            return
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description, total=None)
            yield

    def _create_empty_stats(self) -> dict[str, Any]:
        """Create an empty statistics dictionary."""
        return {
            "local_files": 0,
            "remote_files": 0,
            "uploads": 0,
            "deletes": 0,
            "skipped_deletes": 0,
            "unchanged": 0,
            "policy_changed": False,
            "manifest_written": False,
            "invalidation_id": None,
        }

    def run(self, params: SyncParams) -> dict[str, Any]:
        """Sync the local directory described by ``params``.

        Args:
            params: Resolved sync parameters

        Returns:
            Dictionary with sync statistics

        Raises:
            SyncStageError: Subclass naming the phase that failed

        Examples:
            >>> engine = SyncEngine(S3Client("my-bucket"))
            >>> stats = engine.run(build_sync_params("my-bucket", base_path="dist"))
            >>> print(f"Uploaded {stats['uploads']} files")
        """
        start_time = time.time()
        stats = self._create_empty_stats()
        store = ManifestStore(self.client, params)
        operations = SyncOperations(self.client, params, self.cdn_client)

        if not self.output.quiet:
            self.output.info(
                f"Syncing: {params.base_path} -> s3://{params.bucket}/{params.prefix}"
            )
            if params.dry_run:
                self.output.info("Dry run: No changes will be made")

        # Step 1: Expand the glob pattern
        with self._status("Searching local files..."):
            paths = PathScanner(params.base_path, params.pattern).scan()
        if not params.include_manifest:
            paths = [p for p in paths if p != params.manifest_key]
        if not paths:
            self.output.info("Found no files to process")
            return stats

        # Step 2: Fingerprint local files
        with self._status(f"Hashing {len(paths)} local path(s)..."):
            hasher = LocalHasher(params.base_path, params.compress, params.concurrency)
            local_records = hasher.hash_paths(paths)
        stats["local_files"] = len(local_records)
        self.output.info(f"Found {len(local_records)} local file(s)")

        # Step 3: Fetch remote state
        with self._status("Retrieving remote state..."):
            remote_state = store.get_remote_state()
        stats["remote_files"] = len(remote_state.hashes)
        self.output.info(f"Found {len(remote_state.hashes)} remote file(s)")

        # Step 4: Compute the difference
        diff = FileComparator(params.policy).compare(local_records, remote_state)
        stats["unchanged"] = diff.unchanged
        stats["policy_changed"] = diff.policy_changed
        self._display_sync_plan(diff, params)

        if params.dry_run:
            stats["uploads"] = len(diff.to_upload)
            stats["deletes"] = 0 if params.skip_delete else len(diff.to_delete)
            self._display_summary(stats, dry_run=True)
            return stats

        # Step 5: Upload new and changed files
        if diff.to_upload:
            with self._status(f"Uploading {len(diff.to_upload)} file(s)..."):
                stats["uploads"] = operations.upload_objects(diff.to_upload.values())
        else:
            logger.debug("No files to be uploaded")

        # Step 6: Remove remote-only objects
        manifest = Manifest.from_records(local_records, params.policy)
        if params.skip_delete:
            # Keep them in the manifest so they are not detected as new later
            manifest.hashes.update(diff.to_delete)
            stats["skipped_deletes"] = len(diff.to_delete)
            if diff.to_delete:
                logger.debug("Skipping removal as requested")
        elif diff.to_delete:
            with self._status(f"Removing {len(diff.to_delete)} file(s)..."):
                operations.delete_objects(diff.to_delete)
            stats["deletes"] = len(diff.to_delete)
        else:
            logger.debug("No files to be removed")

        # Step 7: Persist the manifest
        if not params.skip_manifest:
            with self._status("Saving manifest..."):
                store.save_manifest(manifest)
            stats["manifest_written"] = True

        # Step 8: Invalidate the CDN
        if params.distribution_id:
            with self._status("Creating CloudFront invalidation..."):
                stats["invalidation_id"] = operations.invalidate(
                    params.distribution_id, params.invalidation_paths
                )
            self.output.info(
                f"CloudFront invalidation created: {stats['invalidation_id']}"
            )

        logger.debug(f"Sync finished in {time.time() - start_time:.2f}s")
        self._display_summary(stats, dry_run=False)
        return stats

    def _display_sync_plan(self, diff: DiffResult, params: SyncParams) -> None:
        """Display sync plan to user."""
        if self.output.quiet:
            return

        self.output.info("Sync plan:")
        if diff.policy_changed:
            self.output.warning("Upload policy changed, re-uploading all files")
        self.output.info(f"  ↑ Upload: {len(diff.to_upload)} file(s)")
        if params.skip_delete:
            self.output.info(f"  = Keep remote-only: {len(diff.to_delete)} file(s)")
        else:
            self.output.info(f"  ✗ Delete remote: {len(diff.to_delete)} file(s)")
        self.output.info(f"  = Unchanged: {diff.unchanged} file(s)")
        self.output.print("")

    def _display_summary(self, stats: dict[str, Any], dry_run: bool) -> None:
        """Display sync summary."""
        if self.output.quiet:
            return

        if dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Sync complete!")

        if stats["uploads"] or stats["deletes"]:
            self.output.info(f"  Uploaded: {stats['uploads']}")
            self.output.info(f"  Deleted: {stats['deletes']}")
        else:
            self.output.info("No changes needed - everything is in sync!")
