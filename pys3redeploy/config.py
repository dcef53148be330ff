"""Sync configuration for pys3redeploy.

All recognized options are collected into one immutable ``SyncParams``
snapshot, which is built once and handed to every component.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ConfigError
from .models import SyncPolicy
from .utils import (
    DEFAULT_ACL,
    DEFAULT_CONCURRENCY,
    DEFAULT_PATTERN,
    CompressRule,
    default_manifest_key,
    is_positive_integer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncParams:
    """Resolved configuration for a single sync run."""

    bucket: str
    """Target S3 bucket name"""

    prefix: str = ""
    """Key prefix inside the bucket (no leading or trailing slash)"""

    pattern: str = DEFAULT_PATTERN
    """Glob pattern selecting local files, relative to ``base_path``"""

    base_path: Path = Path(".")
    """Local directory the pattern is applied to"""

    concurrency: int = DEFAULT_CONCURRENCY
    """Number of concurrent workers for hashing, uploads and deletes"""

    compress: CompressRule = False
    """Gzip rule: True for all files or a tuple of extensions"""

    cache: Optional[int] = None
    """Cache-Control max-age in seconds"""

    immutable: bool = False
    """Add ``immutable`` to Cache-Control"""

    manifest_key: str = ""
    """Manifest object name relative to the prefix"""

    acl: Optional[str] = DEFAULT_ACL
    """Canned ACL for uploaded objects (None to omit)"""

    skip_delete: bool = False
    """Do not delete remote-only objects"""

    skip_manifest: bool = False
    """Do not store the manifest after syncing"""

    ignore_manifest: bool = False
    """Always list the bucket instead of reading the manifest"""

    include_manifest: bool = False
    """Treat the manifest object like any other file when listing"""

    distribution_id: Optional[str] = None
    """CloudFront distribution to invalidate after syncing"""

    invalidation_paths: tuple[str, ...] = ()
    """Paths to invalidate (defaults to everything)"""

    region: Optional[str] = None
    """AWS region"""

    profile: Optional[str] = None
    """AWS shared credentials profile"""

    endpoint_url: Optional[str] = None
    """Custom S3 endpoint (for S3-compatible services)"""

    dry_run: bool = False
    """Only compute and display the plan"""

    def __post_init__(self) -> None:
        if not self.manifest_key:
            object.__setattr__(self, "manifest_key", default_manifest_key(self.bucket))

    @property
    def key_prefix(self) -> str:
        """Prefix prepended to every object key (empty or ending in ``/``)."""
        return f"{self.prefix}/" if self.prefix else ""

    @property
    def manifest_object_key(self) -> str:
        """Full S3 key of the manifest object."""
        return self.key_prefix + self.manifest_key

    @property
    def policy(self) -> SyncPolicy:
        """Policy snapshot recorded in the manifest."""
        return SyncPolicy(
            compress=self.compress, cache=self.cache, immutable=self.immutable
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert params to a JSON-friendly dictionary (for display)."""
        compress: Any = self.compress
        if not isinstance(compress, bool):
            compress = list(compress)
        return {
            "bucket": self.bucket,
            "prefix": self.prefix,
            "pattern": self.pattern,
            "base_path": str(self.base_path),
            "concurrency": self.concurrency,
            "compress": compress,
            "cache": self.cache,
            "immutable": self.immutable,
            "manifest_key": self.manifest_key,
            "acl": self.acl,
            "skip_delete": self.skip_delete,
            "skip_manifest": self.skip_manifest,
            "ignore_manifest": self.ignore_manifest,
            "include_manifest": self.include_manifest,
            "distribution_id": self.distribution_id,
            "invalidation_paths": list(self.invalidation_paths),
            "region": self.region,
            "profile": self.profile,
            "endpoint_url": self.endpoint_url,
            "dry_run": self.dry_run,
        }


def parse_compress_option(value: Union[None, bool, str]) -> CompressRule:
    """Parse the compression option into a compression rule.

    Examples:
        >>> parse_compress_option(None)
        False
        >>> parse_compress_option("true")
        True
        >>> parse_compress_option("HTML; css")
        ('css', 'html')
    """
    if value is None or value is False:
        return False
    if value is True:
        return True
    text = value.strip()
    if text.lower() in ("true", "all", "*"):
        return True
    if text.lower() in ("", "false", "none"):
        return False
    extensions = {
        ext.strip().lower().lstrip(".")
        for ext in text.replace(",", ";").split(";")
        if ext.strip()
    }
    return tuple(sorted(extensions))


def parse_invalidation_paths(value: Optional[str]) -> tuple[str, ...]:
    """Split a ``;``-separated list of paths, ensuring a leading slash.

    Examples:
        >>> parse_invalidation_paths("index.html;/css/*")
        ('/index.html', '/css/*')
    """
    if not value:
        return ()
    paths = [p.strip() for p in value.split(";") if p.strip()]
    return tuple(p if p.startswith("/") else "/" + p for p in paths)


def build_sync_params(
    bucket: Optional[str],
    *,
    concurrency: Union[int, str, None] = None,
    prefix: Optional[str] = None,
    pattern: Optional[str] = None,
    base_path: Union[str, Path, None] = None,
    compress: Union[None, bool, str] = None,
    cache: Union[int, str, None] = None,
    manifest_key: Optional[str] = None,
    invalidation_paths: Optional[str] = None,
    **kwargs: Any,
) -> SyncParams:
    """Validate raw option values and build a SyncParams snapshot.

    Args:
        bucket: S3 bucket name (required, without slashes)
        concurrency: Positive integer worker count (default: 5)
        prefix: Key prefix; surrounding slashes are stripped
        pattern: Glob pattern (default: ``./**``)
        base_path: Local base directory (default: current directory)
        compress: Compression option as given on the command line
        cache: Cache-Control max-age in seconds
        manifest_key: Manifest object name; a leading slash is stripped
        invalidation_paths: ``;``-separated CloudFront paths
        **kwargs: Remaining SyncParams fields passed through unchanged

    Returns:
        Validated SyncParams

    Raises:
        ConfigError: If a value is missing or invalid
    """
    if not bucket:
        raise ConfigError("Bucket name should be set")
    if "/" in bucket or "\\" in bucket:
        raise ConfigError("Bucket name should contain no slashes")

    if concurrency is None:
        concurrency_value = DEFAULT_CONCURRENCY
    elif is_positive_integer(concurrency):
        concurrency_value = int(concurrency)
    else:
        raise ConfigError("Concurrency value should be a positive integer")

    cache_value: Optional[int] = None
    if cache is not None and cache != "":
        if not is_positive_integer(cache):
            raise ConfigError("Cache max-age should be a positive integer")
        cache_value = int(cache)

    key = (manifest_key or "").lstrip("/")
    if key.endswith("/"):
        raise ConfigError("Manifest file name should not end with a slash")

    params = SyncParams(
        bucket=bucket,
        prefix=(prefix or "").strip("/"),
        pattern=pattern or DEFAULT_PATTERN,
        base_path=Path(base_path or "."),
        concurrency=concurrency_value,
        compress=parse_compress_option(compress),
        cache=cache_value,
        manifest_key=key,
        invalidation_paths=parse_invalidation_paths(invalidation_paths),
        **kwargs,
    )
    logger.debug("Resolved sync params: %s", params.to_dict())
    return params
