"""Path scanning for sync operations."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from ..exceptions import SearchError
from ..utils import DEFAULT_PATTERN, glob_to_regex, normalize_relative_path

logger = logging.getLogger(__name__)


def _raise_walk_error(error: OSError) -> None:
    """os.walk error handler that aborts the traversal."""
    raise error


class PathScanner:
    """Expands a glob pattern under a base directory.

    Unlike ``glob.glob``, traversal errors (such as permission denied on a
    subdirectory) are not skipped: they abort the scan with SearchError.

    Examples:
        >>> scanner = PathScanner(Path("/site/build"), "**/*.html")
        >>> paths = scanner.scan()
        >>> # ['index.html', 'docs/intro.html', ...]
    """

    def __init__(self, base_path: Path, pattern: str = DEFAULT_PATTERN):
        """Initialize path scanner.

        Args:
            base_path: Directory the pattern is relative to
            pattern: Glob pattern (``*``, ``?``, ``[...]``, ``**``)
        """
        self.base_path = base_path
        self.pattern = pattern
        self._regex = glob_to_regex(pattern)

    def matches(self, relative_path: str) -> bool:
        """Check whether a relative POSIX path matches the pattern."""
        return self._regex.match(relative_path) is not None

    def iter_paths(self) -> Iterator[str]:
        """Lazily yield matching paths relative to the base directory.

        Both files and directories are yielded; empty and self-referential
        entries are filtered out.

        Raises:
            OSError: If the traversal fails
        """
        for root, dirs, files in os.walk(self.base_path, onerror=_raise_walk_error):
            dirs.sort()
            rel_root = Path(root).relative_to(self.base_path).as_posix()
            for name in [*dirs, *sorted(files)]:
                relative_path = normalize_relative_path(
                    name if rel_root == "." else f"{rel_root}/{name}"
                )
                if relative_path and self.matches(relative_path):
                    yield relative_path

    def scan(self) -> list[str]:
        """Expand the pattern into a complete list of relative paths.

        Returns:
            Matching relative paths (forward slashes)

        Raises:
            SearchError: If the filesystem traversal fails
        """
        logger.debug(f"Applying pattern {self.pattern!r} under {self.base_path}")
        try:
            paths = list(self.iter_paths())
        except OSError as e:
            raise SearchError(cause=e) from e
        logger.debug(f"Pattern matched {len(paths)} path(s)")
        return paths
