"""Custom exceptions for pys3redeploy."""

from typing import Optional


class S3RedeployError(Exception):
    """Base exception for all pys3redeploy errors.

    Carries a human-readable message and, when the error wraps a lower-level
    failure, the original exception as ``cause``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ConfigError(S3RedeployError):
    """Raised when sync parameters are missing or invalid."""


# =============================================================================
# Remote client errors
# =============================================================================


class S3APIError(S3RedeployError):
    """Raised when a call to S3 or CloudFront fails."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, cause)
        self.code = code
        self.status_code = status_code


class S3NotFoundError(S3APIError):
    """Raised when a requested object does not exist."""


# =============================================================================
# Sync stage errors
# =============================================================================


class SyncStageError(S3RedeployError):
    """Base class for errors that abort a sync phase.

    ``stage`` holds the description of the failed phase.
    """

    stage = "Sync"

    def __init__(
        self,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message or self.stage, cause)


class SearchError(SyncStageError):
    """Raised when expanding the glob pattern fails."""

    stage = "Search files by glob operation failed"


class LocalHashError(SyncStageError):
    """Raised when reading, compressing or hashing a local file fails."""

    stage = "Local files hash map computation failed"


class RemoteStateError(SyncStageError):
    """Raised when the manifest fetch or remote listing fails."""

    stage = "Remote files hash map retrieval failed"


class UploadError(SyncStageError):
    """Raised when an object upload fails."""

    stage = "Files uploading failed"


class DeleteError(SyncStageError):
    """Raised when a batch delete fails."""

    stage = "Files removal failed"


class ManifestWriteError(SyncStageError):
    """Raised when storing the manifest fails."""

    stage = "Files hash map uploading failed"


class InvalidationError(SyncStageError):
    """Raised when creating a CloudFront invalidation fails."""

    stage = "CloudFront invalidation creation failed"
