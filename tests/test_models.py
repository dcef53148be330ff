"""Tests for data models."""

import pytest

from pys3redeploy.models import DiffResult, FileRecord, Manifest, SyncPolicy


class TestSyncPolicy:
    """Tests for SyncPolicy."""

    def test_extensions_canonicalized(self):
        """Test that extension order, case and dots do not matter."""
        a = SyncPolicy(compress=(".HTML", "css"))
        b = SyncPolicy(compress=("css", "html"))
        assert a == b
        assert a.compress == ("css", "html")

    def test_zero_cache_is_none(self):
        assert SyncPolicy(cache=0).cache is None

    def test_round_trip(self):
        policy = SyncPolicy(compress=("js", "css"), cache=3600, immutable=True)
        assert SyncPolicy.from_dict(policy.to_dict()) == policy

    def test_to_dict_uses_lists(self):
        data = SyncPolicy(compress=("js",)).to_dict()
        assert data == {"compress": ["js"], "cache": None, "immutable": False}

    def test_from_dict_boolean_compress(self):
        assert SyncPolicy.from_dict({"compress": True}).compress is True
        assert SyncPolicy.from_dict({}).compress is False


class TestManifest:
    """Tests for Manifest serialization."""

    def test_round_trip(self):
        manifest = Manifest(
            hashes={"b.txt": "h2", "a.txt": "h1"},
            policy=SyncPolicy(compress=True, cache=10),
        )
        restored = Manifest.from_dict(manifest.to_dict())
        assert restored == manifest

    def test_to_dict_sorted_hashes(self):
        data = Manifest(hashes={"b": "2", "a": "1"}).to_dict()
        assert list(data["hashes"]) == ["a", "b"]
        assert data["policy"] is None

    def test_flat_mapping_accepted(self):
        """Test a plain {path: hash} object is read without a policy."""
        manifest = Manifest.from_dict({"index.html": "abc", "app.js": "def"})
        assert manifest.hashes == {"index.html": "abc", "app.js": "def"}
        assert manifest.policy is None

    def test_null_policy(self):
        manifest = Manifest.from_dict({"hashes": {"a": "1"}, "policy": None})
        assert manifest.policy is None

    def test_hashes_must_be_object(self):
        with pytest.raises(ValueError, match="hashes"):
            Manifest.from_dict({"hashes": ["a.txt"]})

    def test_policy_must_be_object(self):
        with pytest.raises(ValueError, match="policy"):
            Manifest.from_dict({"hashes": {}, "policy": "gzip"})

    def test_from_records(self):
        records = {
            "a.txt": FileRecord("a.txt", "h1", "ZDE="),
            "b.txt": FileRecord("b.txt", "h2", "ZDI="),
        }
        manifest = Manifest.from_records(records, SyncPolicy())
        assert manifest.hashes == {"a.txt": "h1", "b.txt": "h2"}
        assert manifest.policy == SyncPolicy()


class TestDiffResult:
    """Tests for DiffResult."""

    def test_is_empty(self):
        assert DiffResult().is_empty is True
        assert DiffResult(to_delete={"a": "1"}).is_empty is False
