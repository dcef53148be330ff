"""Local file fingerprinting.

Files are streamed in chunks, optionally through a gzip transform, into an
MD5 accumulator. The digest always describes the bytes that will be sent,
so a compressed file is fingerprinted after compression.
"""

import base64
import hashlib
import logging
import os
import stat
import tempfile
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Optional

from ..exceptions import LocalHashError
from ..models import FileRecord
from ..utils import (
    DEFAULT_CONCURRENCY,
    READ_CHUNK_SIZE,
    CompressRule,
    should_compress,
)
from .concurrency import BoundedPool

logger = logging.getLogger(__name__)

GZIP_LEVEL = 9
# zlib window bits for a gzip container (header mtime is always zero)
GZIP_WBITS = 16 + zlib.MAX_WBITS

# Compressed upload bodies larger than this are spooled to disk
SPOOL_MAX_SIZE = 8 * 1024 * 1024


def iter_file_chunks(
    file_path: Path, compress: bool = False, chunk_size: int = READ_CHUNK_SIZE
) -> Iterator[bytes]:
    """Yield the as-transmitted bytes of a file in chunks.

    The file is closed when iteration ends, including on errors.

    Args:
        file_path: File to read
        compress: Gzip the content on the fly
        chunk_size: Read size in bytes
    """
    compressor = zlib.compressobj(GZIP_LEVEL, zlib.DEFLATED, GZIP_WBITS)
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            if compress:
                chunk = compressor.compress(chunk)
            if chunk:
                yield chunk
    if compress:
        tail = compressor.flush()
        if tail:
            yield tail


def open_upload_body(file_path: Path, compress: bool = False) -> IO[bytes]:
    """Open a seekable body for uploading a file.

    Uncompressed files are opened directly. Compressed content is produced
    with the same transform used for hashing, so the Content-MD5 computed
    earlier still matches.

    Returns:
        Binary file object positioned at the start; the caller closes it
    """
    if not compress:
        return open(file_path, "rb")

    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
    try:
        for chunk in iter_file_chunks(file_path, compress=True):
            spool.write(chunk)
        spool.seek(0)
    except BaseException:
        spool.close()
        raise
    return spool  # type: ignore[return-value]


def compute_file_record(
    base_path: Path, relative_path: str, compress: bool = False
) -> Optional[FileRecord]:
    """Fingerprint a single path.

    Args:
        base_path: Base directory
        relative_path: Path relative to ``base_path``
        compress: Fingerprint the gzip-compressed content

    Returns:
        FileRecord, or None if the path is not a regular file

    Raises:
        OSError: If the file cannot be read
        zlib.error: If compression fails
    """
    file_path = base_path / relative_path
    if not stat.S_ISREG(os.stat(file_path).st_mode):
        return None

    md5 = hashlib.md5(usedforsecurity=False)
    for chunk in iter_file_chunks(file_path, compress=compress):
        md5.update(chunk)
    digest = md5.digest()

    return FileRecord(
        path=relative_path,
        content_hash=digest.hex(),
        content_digest=base64.b64encode(digest).decode("ascii"),
        compress=compress,
    )


class LocalHasher:
    """Computes FileRecords for local paths under a concurrency limit."""

    def __init__(
        self,
        base_path: Path,
        compress_rule: CompressRule = False,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        """Initialize local hasher.

        Args:
            base_path: Directory that relative paths refer to
            compress_rule: Compression rule (see ``should_compress``)
            concurrency: Maximum number of files hashed at once
        """
        self.base_path = base_path
        self.compress_rule = compress_rule
        self.pool = BoundedPool(concurrency, name="hash")

    def _hash_one(self, relative_path: str) -> Optional[FileRecord]:
        compress = should_compress(relative_path, self.compress_rule)
        return compute_file_record(self.base_path, relative_path, compress)

    def hash_paths(self, paths: list[str]) -> dict[str, FileRecord]:
        """Fingerprint every regular file among ``paths``.

        Args:
            paths: Candidate relative paths (directories are skipped)

        Returns:
            Mapping of relative path to FileRecord, in input order

        Raises:
            LocalHashError: Wrapping the first read/compress/hash error
        """
        try:
            records = self.pool.map(self._hash_one, paths)
        except Exception as e:
            raise LocalHashError(cause=e) from e

        result = {record.path: record for record in records if record is not None}
        logger.debug(
            "Hashed %d file(s), skipped %d non-file path(s)",
            len(result),
            len(paths) - len(result),
        )
        return result
