"""Data models for local fingerprints, manifests and diffs."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .utils import CompressRule


@dataclass(frozen=True)
class FileRecord:
    """Fingerprint of a local file as it will be transmitted."""

    path: str
    """Relative path (forward slashes), used as the object key suffix"""

    content_hash: str
    """Hex MD5 of the as-transmitted bytes (matches the S3 ETag)"""

    content_digest: str
    """Base64 MD5 of the as-transmitted bytes (sent as Content-MD5)"""

    compress: bool = False
    """Whether the file is gzip-compressed before upload"""


@dataclass(frozen=True)
class SyncPolicy:
    """Upload policy recorded with each manifest.

    A change in any of these values requires re-uploading every object so
    the new headers are applied.
    """

    compress: CompressRule = False
    """``True``/``False`` or a tuple of lowercase extensions"""

    cache: Optional[int] = None
    """Cache-Control max-age in seconds"""

    immutable: bool = False
    """Whether Cache-Control includes ``immutable``"""

    def __post_init__(self) -> None:
        # Canonical form so equal policies compare equal after a round trip
        if not isinstance(self.compress, bool):
            extensions = {str(ext).lower().lstrip(".") for ext in self.compress}
            object.__setattr__(self, "compress", tuple(sorted(extensions)))
        object.__setattr__(self, "cache", int(self.cache) if self.cache else None)
        object.__setattr__(self, "immutable", bool(self.immutable))

    def to_dict(self) -> dict[str, Any]:
        """Convert policy to dictionary for JSON serialization."""
        compress: Any = self.compress
        if not isinstance(compress, bool):
            compress = sorted(compress)
        return {
            "compress": compress,
            "cache": self.cache,
            "immutable": self.immutable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncPolicy":
        """Create SyncPolicy from dictionary.

        Raises:
            ValueError: If the data is not a mapping
        """
        if not isinstance(data, dict):
            raise ValueError("Manifest policy is not a JSON object")
        compress = data.get("compress", False)
        if not isinstance(compress, (list, tuple)):
            compress = bool(compress)
        return cls(
            compress=compress,
            cache=data.get("cache"),
            immutable=data.get("immutable", False),
        )


@dataclass
class Manifest:
    """Snapshot of path to content hash mappings plus the policy used."""

    hashes: dict[str, str] = field(default_factory=dict)
    """Mapping of relative path to hex content hash"""

    policy: Optional[SyncPolicy] = None
    """Policy of the run that produced this manifest (None if unknown)"""

    def to_dict(self) -> dict[str, Any]:
        """Convert manifest to dictionary for JSON serialization."""
        return {
            "hashes": dict(sorted(self.hashes.items())),
            "policy": self.policy.to_dict() if self.policy else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        """Create Manifest from dictionary.

        A flat ``{path: hash}`` mapping without a ``hashes`` section is
        accepted as hashes with no recorded policy.

        Raises:
            ValueError: If ``hashes`` or ``policy`` is not a JSON object
        """
        if "hashes" not in data:
            return cls(hashes={str(k): str(v) for k, v in data.items()})

        hashes = data.get("hashes") or {}
        if not isinstance(hashes, dict):
            raise ValueError("Manifest hashes are not a JSON object")
        policy_data = data.get("policy")
        return cls(
            hashes={str(k): str(v) for k, v in hashes.items()},
            policy=SyncPolicy.from_dict(policy_data) if policy_data else None,
        )

    @classmethod
    def from_records(
        cls, records: dict[str, FileRecord], policy: Optional[SyncPolicy] = None
    ) -> "Manifest":
        """Build a manifest from local file records."""
        return cls(
            hashes={path: record.content_hash for path, record in records.items()},
            policy=policy,
        )


@dataclass
class DiffResult:
    """Result of comparing local records against remote hashes."""

    to_upload: dict[str, FileRecord] = field(default_factory=dict)
    """Local records that are new or changed"""

    to_delete: dict[str, str] = field(default_factory=dict)
    """Remote-only paths mapped to their remote hash"""

    unchanged: int = 0
    """Number of paths present on both sides with equal hashes"""

    policy_changed: bool = False
    """Whether the upload set was forced by a policy change"""

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to upload or delete."""
        return not self.to_upload and not self.to_delete
