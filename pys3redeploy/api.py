"""API clients for S3 and CloudFront."""

from __future__ import annotations

import logging
from typing import IO, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import S3APIError, S3NotFoundError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def _translate_error(exc: Exception, operation: str) -> S3APIError:
    """Convert a botocore exception into an S3APIError.

    Args:
        exc: Exception raised by botocore
        operation: Name of the failed operation (for the message)

    Returns:
        S3NotFoundError for missing objects, S3APIError otherwise
    """
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        status_code = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        message = error.get("Message") or code or "unknown error"
        # A missing bucket is a configuration error, not a missing object
        if code in _NOT_FOUND_CODES or (status_code == 404 and code != "NoSuchBucket"):
            return S3NotFoundError(
                f"{operation}: not found", exc, code=code, status_code=404
            )
        return S3APIError(
            f"{operation} failed ({code}): {message}",
            exc,
            code=code,
            status_code=status_code,
        )
    return S3APIError(f"{operation} failed: {exc}", exc)


def create_session(profile: str | None = None, region: str | None = None) -> Any:
    """Create a boto3 session from explicit settings.

    Credentials come from the profile, the environment or the instance role;
    nothing is written to process-wide SDK state.
    """
    session_kwargs: dict[str, Any] = {}
    if profile:
        session_kwargs["profile_name"] = profile
    if region:
        session_kwargs["region_name"] = region
    try:
        return boto3.session.Session(**session_kwargs)
    except BotoCoreError as e:
        raise S3APIError(f"Could not create AWS session: {e}", e) from e


class S3Client:
    """Client for the S3 operations used by the sync engine.

    The wrapped boto3 client is thread-safe and is shared by all workers.
    """

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        profile: str | None = None,
        endpoint_url: str | None = None,
        session: Any | None = None,
        client: Any | None = None,
    ):
        """Initialize S3 client.

        Args:
            bucket: Bucket all operations apply to
            region: Optional AWS region
            profile: Optional shared credentials profile
            endpoint_url: Optional endpoint for S3-compatible services
            session: Optional pre-built boto3 session
            client: Optional pre-built boto3 S3 client (mainly for tests)
        """
        self.bucket = bucket
        self.region = region
        self.profile = profile
        self.endpoint_url = endpoint_url
        self._session = session
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the boto3 S3 client."""
        if self._client is None:
            if self._session is None:
                self._session = create_session(self.profile, self.region)
            self._client = self._session.client("s3", endpoint_url=self.endpoint_url)
        return self._client

    def _call(self, operation: str, **kwargs: Any) -> Any:
        """Invoke a boto3 client method with the bucket filled in.

        Raises:
            S3NotFoundError: If the object or bucket does not exist
            S3APIError: For any other failure
        """
        client = self._get_client()
        try:
            return getattr(client, operation)(Bucket=self.bucket, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(e, operation) from e

    # =========================
    # Read Operations
    # =========================

    def list_objects(
        self, prefix: str = "", continuation_token: str | None = None
    ) -> dict[str, Any]:
        """List one page of objects under a prefix.

        Args:
            prefix: Key prefix to list
            continuation_token: Token returned by the previous page

        Returns:
            Dictionary with ``contents`` (list of {key, etag, size}),
            ``is_truncated`` and ``next_token``
        """
        kwargs: dict[str, Any] = {"Prefix": prefix}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token
        response = self._call("list_objects_v2", **kwargs)
        contents = [
            {
                "key": item["Key"],
                "etag": item.get("ETag", "").strip('"'),
                "size": item.get("Size", 0),
            }
            for item in response.get("Contents", [])
        ]
        return {
            "contents": contents,
            "is_truncated": bool(response.get("IsTruncated")),
            "next_token": response.get("NextContinuationToken"),
        }

    def get_object(self, key: str) -> tuple[bytes, str | None]:
        """Download an object into memory.

        Args:
            key: Object key

        Returns:
            Tuple of (body bytes, content encoding or None)

        Raises:
            S3NotFoundError: If the object does not exist
        """
        response = self._call("get_object", Key=key)
        body = response["Body"]
        try:
            data = body.read()
        except (BotoCoreError, OSError) as e:
            raise _translate_error(e, "get_object") from e
        finally:
            body.close()
        return data, response.get("ContentEncoding")

    # =========================
    # Write Operations
    # =========================

    def put_object(
        self,
        key: str,
        body: bytes | IO[bytes],
        content_type: str | None = None,
        content_encoding: str | None = None,
        content_md5: str | None = None,
        cache_control: str | None = None,
        acl: str | None = None,
    ) -> dict[str, Any]:
        """Store an object.

        Args:
            key: Object key
            body: Bytes or a seekable binary file object
            content_type: Optional Content-Type header
            content_encoding: Optional Content-Encoding header
            content_md5: Optional base64 MD5 of the body for integrity checks
            cache_control: Optional Cache-Control header
            acl: Optional canned ACL

        Returns:
            Raw put_object response
        """
        kwargs: dict[str, Any] = {"Key": key, "Body": body}
        if content_type:
            kwargs["ContentType"] = content_type
        if content_encoding:
            kwargs["ContentEncoding"] = content_encoding
        if content_md5:
            kwargs["ContentMD5"] = content_md5
        if cache_control:
            kwargs["CacheControl"] = cache_control
        if acl:
            kwargs["ACL"] = acl
        logger.debug("PUT s3://%s/%s", self.bucket, key)
        result: dict[str, Any] = self._call("put_object", **kwargs)
        return result

    def delete_objects(self, keys: list[str]) -> dict[str, Any]:
        """Delete up to 1000 objects in a single request.

        Raises:
            S3APIError: If the request fails or S3 reports per-key errors
        """
        logger.debug("DELETE %d object(s) from s3://%s", len(keys), self.bucket)
        response: dict[str, Any] = self._call(
            "delete_objects",
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
        )
        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            raise S3APIError(
                f"delete_objects failed for {len(errors)} key(s), "
                f"first: {first.get('Key')} ({first.get('Code')}): "
                f"{first.get('Message')}",
                code=first.get("Code"),
            )
        return response


class CloudFrontClient:
    """Client for CloudFront invalidations."""

    def __init__(
        self,
        profile: str | None = None,
        session: Any | None = None,
        client: Any | None = None,
    ):
        """Initialize CloudFront client.

        Args:
            profile: Optional shared credentials profile
            session: Optional pre-built boto3 session
            client: Optional pre-built boto3 CloudFront client
        """
        self.profile = profile
        self._session = session
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the boto3 CloudFront client."""
        if self._client is None:
            if self._session is None:
                self._session = create_session(self.profile)
            self._client = self._session.client("cloudfront")
        return self._client

    def create_invalidation(
        self, distribution_id: str, paths: list[str], caller_reference: str
    ) -> str:
        """Create an invalidation and return its id.

        Raises:
            S3APIError: If the request fails
        """
        client = self._get_client()
        try:
            response = client.create_invalidation(
                DistributionId=distribution_id,
                InvalidationBatch={
                    "CallerReference": caller_reference,
                    "Paths": {"Quantity": len(paths), "Items": list(paths)},
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(e, "create_invalidation") from e
        invalidation_id: str = response["Invalidation"]["Id"]
        return invalidation_id
