"""pys3redeploy - incremental deployment of a local directory to S3."""

from .api import CloudFrontClient, S3Client
from .config import SyncParams, build_sync_params
from .exceptions import (
    ConfigError,
    DeleteError,
    InvalidationError,
    LocalHashError,
    ManifestWriteError,
    RemoteStateError,
    S3APIError,
    S3NotFoundError,
    S3RedeployError,
    SearchError,
    SyncStageError,
    UploadError,
)
from .models import DiffResult, FileRecord, Manifest, SyncPolicy

__version__ = "0.1.0"

__all__ = [
    "S3Client",
    "CloudFrontClient",
    "SyncParams",
    "build_sync_params",
    "FileRecord",
    "Manifest",
    "SyncPolicy",
    "DiffResult",
    "S3RedeployError",
    "ConfigError",
    "S3APIError",
    "S3NotFoundError",
    "SyncStageError",
    "SearchError",
    "LocalHashError",
    "RemoteStateError",
    "UploadError",
    "DeleteError",
    "ManifestWriteError",
    "InvalidationError",
]
