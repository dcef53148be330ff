"""Unit tests for utility functions."""

import pytest

from pys3redeploy.utils import (
    build_cache_control,
    chunked,
    default_manifest_key,
    expand_braces,
    get_extension,
    glob_to_regex,
    is_positive_integer,
    normalize_relative_path,
    should_compress,
)


def _matches(pattern, path):
    return glob_to_regex(pattern).match(path) is not None


class TestExpandBraces:
    """Tests for expand_braces function."""

    def test_no_braces(self):
        assert expand_braces("**/*.html") == ["**/*.html"]

    def test_simple_group(self):
        assert expand_braces("*.{html,css,js}") == ["*.html", "*.css", "*.js"]

    def test_nested_groups(self):
        assert expand_braces("{a,b{1,2}}/x") == ["a/x", "b1/x", "b2/x"]

    def test_multiple_groups(self):
        assert expand_braces("{a,b}.{x,y}") == ["a.x", "a.y", "b.x", "b.y"]

    def test_group_across_segments(self):
        assert expand_braces("{css/*,js/**}") == ["css/*", "js/**"]

    def test_group_without_comma_is_literal(self):
        assert expand_braces("file{1}.txt") == ["file{1}.txt"]

    def test_unbalanced_brace_is_literal(self):
        assert expand_braces("file{a,b.txt") == ["file{a,b.txt"]

    def test_duplicates_removed(self):
        assert expand_braces("{a,a}") == ["a"]


class TestGlobToRegex:
    """Tests for glob_to_regex."""

    def test_star_matches_within_segment(self):
        """Test that * does not cross directory boundaries."""
        assert _matches("*.txt", "file.txt") is True
        assert _matches("*.txt", "docs/file.txt") is False

    def test_double_star_matches_any_depth(self):
        """Test that ** matches nested paths."""
        assert _matches("**", "a") is True
        assert _matches("**", "a/b/c.txt") is True
        assert _matches("**/*.html", "index.html") is True
        assert _matches("**/*.html", "docs/guide/intro.html") is True
        assert _matches("**/*.html", "docs/style.css") is False

    def test_double_star_in_middle(self):
        """Test ** between fixed segments."""
        assert _matches("assets/**/*.png", "assets/logo.png") is True
        assert _matches("assets/**/*.png", "assets/img/icons/a.png") is True
        assert _matches("assets/**/*.png", "other/logo.png") is False

    def test_trailing_double_star_under_directory(self):
        """Test dir/** matches the directory and everything below it."""
        assert _matches("static/**", "static") is True
        assert _matches("static/**", "static/js/app.js") is True
        assert _matches("static/**", "staticfiles/a.js") is False

    def test_leading_dot_slash_ignored(self):
        """Test that ./ prefixes are stripped from the pattern."""
        assert _matches("./**", "a/b.txt") is True
        assert _matches("./*.txt", "file.txt") is True

    def test_question_mark(self):
        """Test ? matches exactly one character."""
        assert _matches("file?.txt", "file1.txt") is True
        assert _matches("file?.txt", "file10.txt") is False

    def test_character_class(self):
        """Test bracket expressions including negation."""
        assert _matches("file[abc].txt", "filea.txt") is True
        assert _matches("file[abc].txt", "filed.txt") is False
        assert _matches("file[!abc].txt", "filed.txt") is True
        assert _matches("file[!abc].txt", "filea.txt") is False

    def test_wildcards_skip_hidden_entries(self):
        """Test that wildcards never match a leading dot."""
        assert _matches("*", ".env") is False
        assert _matches("**", ".git/config") is False
        assert _matches("**", "docs/.hidden") is False
        assert _matches(".env", ".env") is True

    def test_special_characters_are_literal(self):
        """Test regex metacharacters in the pattern are escaped."""
        assert _matches("a+b(1).txt", "a+b(1).txt") is True
        assert _matches("a+b(1).txt", "aab1.txt") is False

    def test_regex_is_anchored(self):
        """Test that the compiled regex matches whole paths only."""
        regex = glob_to_regex("*.js")
        assert regex.match("app.js") is not None
        assert regex.match("app.json") is None

    def test_brace_alternatives(self):
        """Test {a,b} matches any of the listed alternatives."""
        assert _matches("**/*.{html,css}", "a/index.html") is True
        assert _matches("**/*.{html,css}", "style.css") is True
        assert _matches("**/*.{html,css}", "app.js") is False
        assert _matches("{css,js}/**", "js/app.js") is True
        assert _matches("{css,js}/**", "img/logo.png") is False

    def test_literal_braces(self):
        assert _matches("file{1}.txt", "file{1}.txt") is True
        assert _matches("file{1}.txt", "file1.txt") is False


class TestNormalizeRelativePath:
    """Tests for normalize_relative_path."""

    def test_strips_dot_prefix(self):
        assert normalize_relative_path("./a/b.txt") == "a/b.txt"

    def test_backslashes(self):
        assert normalize_relative_path("a\\b.txt") == "a/b.txt"

    def test_self_reference(self):
        """Test that '.' normalizes to an empty path."""
        assert normalize_relative_path(".") == ""


class TestShouldCompress:
    """Tests for should_compress function."""

    def test_boolean_rules(self):
        assert should_compress("a.png", True) is True
        assert should_compress("a.html", False) is False

    def test_extension_list(self):
        """Test extension matching is case-insensitive."""
        rule = ("css", "html")
        assert should_compress("index.html", rule) is True
        assert should_compress("INDEX.HTML", rule) is True
        assert should_compress("docs/style.css", rule) is True
        assert should_compress("logo.png", rule) is False

    def test_file_without_extension(self):
        assert should_compress("LICENSE", ("html",)) is False

    def test_empty_extension_list(self):
        assert should_compress("index.html", ()) is False

    def test_get_extension(self):
        assert get_extension("a/b/file.TAR.GZ") == "gz"
        assert get_extension(".bashrc") == ""


class TestBuildCacheControl:
    """Tests for build_cache_control function."""

    def test_max_age_and_immutable(self):
        assert build_cache_control(3600, True) == "max-age=3600, immutable"

    def test_max_age_only(self):
        assert build_cache_control(60) == "max-age=60"

    def test_immutable_only(self):
        assert build_cache_control(None, True) == "immutable"

    def test_nothing_set(self):
        """Test that no header value is produced without directives."""
        assert build_cache_control() is None


class TestChunked:
    """Tests for chunked function."""

    def test_exact_multiple(self):
        assert chunked(list(range(4)), 2) == [[0, 1], [2, 3]]

    def test_remainder(self):
        assert chunked(list(range(5)), 2) == [[0, 1], [2, 3], [4]]

    def test_empty(self):
        assert chunked([], 1000) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestIsPositiveInteger:
    """Tests for is_positive_integer function."""

    @pytest.mark.parametrize("value", [1, 5, "1", "20"])
    def test_valid(self, value):
        assert is_positive_integer(value) is True

    @pytest.mark.parametrize(
        "value", [0, -1, "0", "-3", "5.5", "05", "abc", "", None, 2.0, True]
    )
    def test_invalid(self, value):
        assert is_positive_integer(value) is False


class TestMisc:
    """Tests for small helpers."""

    def test_default_manifest_key(self):
        assert default_manifest_key("my-site") == "_s3-rd.my-site.json"
