"""Utility functions for pys3redeploy."""

import posixpath
import re
from typing import Optional, Union

# =============================================================================
# Constants for sync operations
# =============================================================================

# Number of files processed concurrently by the hasher, uploader and deleter
DEFAULT_CONCURRENCY: int = 5

# Maximum number of keys accepted by a single S3 DeleteObjects request
DELETE_BATCH_SIZE: int = 1000

# Glob pattern applied when none is given (everything below the base path)
DEFAULT_PATTERN: str = "./**"

# Read size for streaming file hashing and compression (1 MB)
READ_CHUNK_SIZE: int = 1024 * 1024

# Object ACL applied to uploaded files
DEFAULT_ACL: str = "public-read"

# Paths invalidated when no explicit list is configured
DEFAULT_INVALIDATION_PATHS: tuple[str, ...] = ("/*",)

CompressRule = Union[bool, tuple[str, ...]]


def default_manifest_key(bucket: str) -> str:
    """Return the manifest object name used when none is configured.

    Examples:
        >>> default_manifest_key("my-site")
        '_s3-rd.my-site.json'
    """
    return f"_s3-rd.{bucket}.json"


# =============================================================================
# Glob matching utilities
# =============================================================================


def _split_alternatives(body: str) -> list[str]:
    """Split the inside of a brace group on commas outside nested groups."""
    options: list[str] = []
    depth = 0
    start = 0
    for i, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}" and depth:
            depth -= 1
        elif char == "," and depth == 0:
            options.append(body[start:i])
            start = i + 1
    options.append(body[start:])
    return options


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into separate patterns.

    Groups may be nested and may contain slashes. A group without a comma,
    or an unbalanced brace, is kept literally.

    Examples:
        >>> expand_braces("**/*.{html,css}")
        ['**/*.html', '**/*.css']
        >>> expand_braces("{a,b{1,2}}/x")
        ['a/x', 'b1/x', 'b2/x']
        >>> expand_braces("file{1}.txt")
        ['file{1}.txt']
    """
    depth = 0
    start = 0
    for i, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = i
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth:
                continue
            options = _split_alternatives(pattern[start + 1 : i])
            if len(options) < 2:
                continue
            prefix, suffix = pattern[:start], pattern[i + 1 :]
            expanded: list[str] = []
            for option in options:
                for result in expand_braces(prefix + option + suffix):
                    if result not in expanded:
                        expanded.append(result)
            return expanded
    return [pattern]


def _segment_to_regex(segment: str) -> str:
    """Translate a single path segment of a glob pattern into a regex."""
    parts: list[str] = []
    # Wildcards never match a leading dot (hidden files)
    if segment[:1] in ("*", "?", "["):
        parts.append(r"(?!\.)")

    i = 0
    n = len(segment)
    while i < n:
        char = segment[i]
        i += 1
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = i
            if end < n and segment[end] == "!":
                end += 1
            if end < n and segment[end] == "]":
                end += 1
            while end < n and segment[end] != "]":
                end += 1
            if end >= n:
                # Unterminated class, treat the bracket literally
                parts.append(re.escape(char))
                continue
            body = segment[i:end].replace("\\", "\\\\")
            i = end + 1
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
        else:
            parts.append(re.escape(char))
    return "".join(parts)


def _pattern_to_regex(pattern: str) -> str:
    """Translate a brace-free glob pattern into an unanchored regex."""
    while pattern.startswith("./"):
        pattern = pattern[2:]

    segments = [s for s in pattern.split("/") if s not in ("", ".")]
    regex = ""
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            if last and regex.endswith("/"):
                # dir/** matches the directory itself and everything below
                regex = regex[:-1] + r"(?:/(?!\.)[^/]+(?:/(?!\.)[^/]+)*)?"
            elif last:
                regex += r"(?:(?!\.)[^/]+(?:/(?!\.)[^/]+)*)?"
            else:
                regex += r"(?:(?!\.)[^/]+/)*"
        else:
            regex += _segment_to_regex(segment)
            if not last:
                regex += "/"
    return regex


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a path glob pattern into a regular expression.

    ``*``, ``?`` and bracket expressions match within one path segment,
    ``**`` as a whole segment matches zero or more segments and ``{a,b}``
    matches either alternative. A leading ``./`` is ignored.

    Args:
        pattern: Glob pattern using forward slashes

    Returns:
        Compiled regex matching full relative paths

    Examples:
        >>> bool(glob_to_regex("**/*.html").match("docs/index.html"))
        True
        >>> bool(glob_to_regex("*.html").match("docs/index.html"))
        False
        >>> bool(glob_to_regex("*.{js,css}").match("app.css"))
        True
    """
    alternatives = [_pattern_to_regex(p) for p in expand_braces(pattern)]
    return re.compile(r"\A(?:" + "|".join(alternatives) + r")\Z")


def normalize_relative_path(path: str) -> str:
    """Normalize a relative path to forward slashes without a leading ``./``.

    Returns an empty string for self-referential paths such as ``.``.
    """
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized == ".":
        return ""
    return normalized.lstrip("/")


# =============================================================================
# Upload policy utilities
# =============================================================================


def get_extension(path: str) -> str:
    """Return the lowercase file extension without the leading dot."""
    _, ext = posixpath.splitext(posixpath.basename(path))
    return ext[1:].lower()


def should_compress(path: str, rule: CompressRule) -> bool:
    """Check whether a file should be gzip-compressed before upload.

    Args:
        path: Relative file path
        rule: ``True`` to compress everything, ``False`` for nothing, or a
            collection of lowercase extensions (without dots)

    Examples:
        >>> should_compress("index.html", ("html", "css"))
        True
        >>> should_compress("logo.PNG", ("html", "css"))
        False
        >>> should_compress("logo.png", True)
        True
    """
    if isinstance(rule, bool):
        return rule
    if not rule:
        return False
    ext = get_extension(path)
    return bool(ext) and ext in rule


def build_cache_control(
    max_age: Optional[int] = None, immutable: bool = False
) -> Optional[str]:
    """Build a Cache-Control header value.

    Returns:
        Comma-joined directives, or None when no directive is set

    Examples:
        >>> build_cache_control(3600, True)
        'max-age=3600, immutable'
        >>> build_cache_control() is None
        True
    """
    directives = []
    if max_age:
        directives.append(f"max-age={max_age}")
    if immutable:
        directives.append("immutable")
    if not directives:
        return None
    return ", ".join(directives)


def chunked(items: list, size: int) -> list[list]:
    """Split a list into consecutive chunks of at most ``size`` elements."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return [items[i : i + size] for i in range(0, len(items), size)]


# =============================================================================
# Validation utilities
# =============================================================================


def is_positive_integer(value: object) -> bool:
    """Check whether a value represents a positive integer.

    Examples:
        >>> is_positive_integer("5")
        True
        >>> is_positive_integer("5.5")
        False
        >>> is_positive_integer(0)
        False
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, str) and value.isdigit():
        return str(int(value)) == value and int(value) > 0
    return False
