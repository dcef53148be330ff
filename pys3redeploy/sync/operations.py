"""Remote operations: uploads, batched deletes and CDN invalidation."""

import logging
import mimetypes
import time
from collections.abc import Iterable
from typing import Any, Optional

from ..api import CloudFrontClient, S3Client
from ..config import SyncParams
from ..exceptions import DeleteError, InvalidationError, S3APIError, UploadError
from ..models import FileRecord
from ..utils import (
    DEFAULT_INVALIDATION_PATHS,
    DELETE_BATCH_SIZE,
    build_cache_control,
    chunked,
)
from .concurrency import BoundedPool
from .hasher import open_upload_body

logger = logging.getLogger(__name__)


def build_caller_reference(now: Optional[float] = None) -> str:
    """Build a time-derived caller reference for an invalidation request."""
    timestamp = int(now if now is not None else time.time())
    return f"pys3redeploy-{timestamp}"


def invalidate(
    cdn_client: CloudFrontClient,
    distribution_id: str,
    paths: Optional[Iterable[str]] = None,
) -> str:
    """Create a CloudFront invalidation.

    Args:
        cdn_client: CloudFront client
        distribution_id: Distribution to invalidate
        paths: Paths to invalidate (default: everything)

    Returns:
        Invalidation id

    Raises:
        InvalidationError: If the request fails
    """
    items = [p if p.startswith("/") else "/" + p for p in (paths or ())]
    if not items:
        items = list(DEFAULT_INVALIDATION_PATHS)
    logger.debug(f"Invalidating {items} on distribution {distribution_id}")
    try:
        return cdn_client.create_invalidation(
            distribution_id, items, build_caller_reference()
        )
    except S3APIError as e:
        raise InvalidationError(cause=e) from e


class SyncOperations:
    """Executes uploads, deletes and invalidations against remote services."""

    def __init__(
        self,
        client: S3Client,
        params: SyncParams,
        cdn_client: Optional[CloudFrontClient] = None,
    ):
        """Initialize sync operations.

        Args:
            client: S3 client bound to the target bucket
            params: Sync parameters
            cdn_client: CloudFront client (required only for invalidation)
        """
        self.client = client
        self.params = params
        self.cdn_client = cdn_client
        self.cache_control = build_cache_control(params.cache, params.immutable)

    def object_key(self, relative_path: str) -> str:
        """Return the full object key for a relative path."""
        return self.params.key_prefix + relative_path

    def upload_file(self, record: FileRecord) -> Any:
        """Upload a single local file.

        Args:
            record: FileRecord produced by the hasher

        Returns:
            Upload response from S3
        """
        content_type, _ = mimetypes.guess_type(record.path)
        file_path = self.params.base_path / record.path
        logger.debug(f"Uploading {record.path}...")
        with open_upload_body(file_path, compress=record.compress) as body:
            return self.client.put_object(
                self.object_key(record.path),
                body,
                content_type=content_type,
                content_encoding="gzip" if record.compress else None,
                content_md5=record.content_digest,
                cache_control=self.cache_control,
                acl=self.params.acl,
            )

    def upload_objects(self, records: Iterable[FileRecord]) -> int:
        """Upload files under the concurrency limit.

        Args:
            records: Records to upload

        Returns:
            Number of uploaded files

        Raises:
            UploadError: Wrapping the first failed upload
        """
        items = list(records)
        if not items:
            return 0
        pool = BoundedPool(self.params.concurrency, name="upload")
        try:
            pool.map(self.upload_file, items)
        except Exception as e:
            raise UploadError(cause=e) from e
        return len(items)

    def delete_objects(self, paths: Iterable[str]) -> int:
        """Delete remote objects in batches of at most 1000 keys.

        Args:
            paths: Relative paths to delete

        Returns:
            Number of batch requests issued

        Raises:
            DeleteError: Wrapping the first failed batch
        """
        keys = [self.object_key(path) for path in paths]
        if not keys:
            return 0
        batches = chunked(keys, DELETE_BATCH_SIZE)
        logger.debug(f"Deleting {len(keys)} object(s) in {len(batches)} batch(es)")
        pool = BoundedPool(self.params.concurrency, name="delete")
        try:
            pool.map(self.client.delete_objects, batches)
        except Exception as e:
            raise DeleteError(cause=e) from e
        return len(batches)

    def invalidate(
        self, distribution_id: str, paths: Optional[Iterable[str]] = None
    ) -> str:
        """Create a CloudFront invalidation with the configured CDN client.

        Raises:
            InvalidationError: If no CDN client is configured or the request
                fails
        """
        if self.cdn_client is None:
            raise InvalidationError("No CloudFront client configured")
        return invalidate(self.cdn_client, distribution_id, paths)
