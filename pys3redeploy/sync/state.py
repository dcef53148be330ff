"""Remote state management: manifest persistence and bucket listing.

The manifest is a gzip-compressed JSON object stored next to the synced
files. It records the content hash of every synced path plus the upload
policy, so later runs can skip listing the whole bucket and can detect
policy changes.
"""

import gzip
import json
import logging
import zlib
from typing import Optional

from ..api import S3Client
from ..config import SyncParams
from ..exceptions import (
    ManifestWriteError,
    RemoteStateError,
    S3APIError,
    S3NotFoundError,
)
from ..models import Manifest

logger = logging.getLogger(__name__)


class ManifestStore:
    """Reads and writes the manifest and enumerates remote objects."""

    def __init__(self, client: S3Client, params: SyncParams):
        """Initialize manifest store.

        Args:
            client: S3 client bound to the target bucket
            params: Sync parameters (prefix, manifest key, flags)
        """
        self.client = client
        self.params = params

    @property
    def manifest_key(self) -> str:
        """Full object key of the manifest."""
        return self.params.manifest_object_key

    def _decode(self, data: bytes, encoding: Optional[str]) -> Manifest:
        if encoding and encoding.lower() == "gzip":
            data = gzip.decompress(data)
        payload = json.loads(data.decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Manifest payload is not a JSON object")
        return Manifest.from_dict(payload)

    def get_manifest(self) -> Optional[Manifest]:
        """Fetch the stored manifest.

        Returns:
            Manifest, or None if no manifest object exists

        Raises:
            RemoteStateError: If the fetch fails for any other reason or the
                payload cannot be decoded
        """
        try:
            data, encoding = self.client.get_object(self.manifest_key)
        except S3NotFoundError:
            logger.debug(f"No manifest found at {self.manifest_key}")
            return None
        except S3APIError as e:
            raise RemoteStateError(cause=e) from e

        try:
            manifest = self._decode(data, encoding)
        except (OSError, EOFError, zlib.error, ValueError) as e:
            raise RemoteStateError("Stored manifest could not be decoded", e) from e

        logger.debug(
            f"Loaded manifest with {len(manifest.hashes)} entries "
            f"(policy recorded: {manifest.policy is not None})"
        )
        return manifest

    def list_remote_hashes(self) -> dict[str, str]:
        """Enumerate every object under the prefix.

        Pages are fetched sequentially, each one using the continuation token
        of the previous page.

        Returns:
            Mapping of path (relative to the prefix) to ETag hash

        Raises:
            RemoteStateError: If a list request fails
        """
        key_prefix = self.params.key_prefix
        hashes: dict[str, str] = {}
        token: Optional[str] = None
        page = 0

        try:
            while True:
                result = self.client.list_objects(key_prefix, token)
                page += 1
                for item in result["contents"]:
                    key = item["key"]
                    if (
                        key == self.manifest_key
                        and not self.params.include_manifest
                    ):
                        continue
                    relative_path = key[len(key_prefix) :]
                    if not relative_path or relative_path.endswith("/"):
                        # Folder placeholder objects
                        continue
                    hashes[relative_path] = item["etag"]
                if not result["is_truncated"]:
                    break
                token = result["next_token"]
        except S3APIError as e:
            raise RemoteStateError(cause=e) from e

        logger.debug(f"Listed {len(hashes)} remote object(s) in {page} page(s)")
        return hashes

    def get_remote_state(self) -> Manifest:
        """Return the remote hash state.

        Uses the stored manifest unless it is missing or ignored, in which
        case the bucket is listed and a manifest without policy is returned.

        Raises:
            RemoteStateError: If the remote state cannot be determined
        """
        if not self.params.ignore_manifest:
            manifest = self.get_manifest()
            if manifest is not None:
                return manifest
        else:
            logger.debug("Ignoring stored manifest, listing bucket")
        return Manifest(hashes=self.list_remote_hashes())

    def save_manifest(self, manifest: Manifest) -> None:
        """Store the manifest as gzip-compressed JSON.

        Raises:
            ManifestWriteError: If serialization or the upload fails
        """
        try:
            body = gzip.compress(
                json.dumps(manifest.to_dict(), sort_keys=True).encode("utf-8"),
                mtime=0,
            )
            self.client.put_object(
                self.manifest_key,
                body,
                content_type="application/json",
                content_encoding="gzip",
            )
        except (S3APIError, TypeError, ValueError) as e:
            raise ManifestWriteError(cause=e) from e

        logger.debug(
            f"Saved manifest with {len(manifest.hashes)} entries "
            f"to {self.manifest_key}"
        )
