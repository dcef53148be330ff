"""Tests for manifest storage and remote listing."""

import gzip
import json
from unittest.mock import Mock

import pytest

from pys3redeploy.api import S3Client
from pys3redeploy.config import build_sync_params
from pys3redeploy.exceptions import (
    ManifestWriteError,
    RemoteStateError,
    S3APIError,
    S3NotFoundError,
)
from pys3redeploy.models import Manifest, SyncPolicy
from pys3redeploy.sync.state import ManifestStore

MANIFEST_GZIP = gzip.compress(b'{"hashes": {"a.txt": "h1"}}', mtime=0)

# Missing the end of the gzip trailer
TRUNCATED_GZIP = MANIFEST_GZIP[:-4]

# Valid gzip header followed by a deflate block of reserved type
CORRUPT_DEFLATE = MANIFEST_GZIP[:10] + b"\xff" * 16


def _page(keys, truncated=False, token=None):
    """Build a list_objects result page."""
    return {
        "contents": [{"key": k, "etag": f"etag-{k}", "size": 1} for k in keys],
        "is_truncated": truncated,
        "next_token": token,
    }


class TestManifestStore:
    """Test ManifestStore functionality."""

    @pytest.fixture
    def mock_client(self):
        """Create a mock S3 client."""
        return Mock(spec=S3Client)

    @pytest.fixture
    def params(self):
        return build_sync_params("site", prefix="www")

    @pytest.fixture
    def store(self, mock_client, params):
        return ManifestStore(mock_client, params)

    def test_manifest_key_includes_prefix(self, store):
        assert store.manifest_key == "www/_s3-rd.site.json"

    # =========================
    # get_manifest
    # =========================

    def test_get_manifest_missing(self, store, mock_client):
        """Test a missing manifest object is not an error."""
        mock_client.get_object.side_effect = S3NotFoundError("not found")
        assert store.get_manifest() is None
        mock_client.get_object.assert_called_once_with("www/_s3-rd.site.json")

    def test_get_manifest_other_error(self, store, mock_client):
        mock_client.get_object.side_effect = S3APIError("access denied")
        with pytest.raises(RemoteStateError) as exc_info:
            store.get_manifest()
        assert exc_info.value.message == "Remote files hash map retrieval failed"

    def test_get_manifest_gzip(self, store, mock_client):
        payload = {"hashes": {"a.txt": "h1"}, "policy": {"compress": ["css"]}}
        mock_client.get_object.return_value = (
            gzip.compress(json.dumps(payload).encode()),
            "gzip",
        )
        manifest = store.get_manifest()
        assert manifest.hashes == {"a.txt": "h1"}
        assert manifest.policy == SyncPolicy(compress=("css",))

    def test_get_manifest_plain_legacy(self, store, mock_client):
        """Test an uncompressed flat manifest is accepted."""
        mock_client.get_object.return_value = (b'{"a.txt": "h1"}', None)
        manifest = store.get_manifest()
        assert manifest.hashes == {"a.txt": "h1"}
        assert manifest.policy is None

    @pytest.mark.parametrize(
        "data,encoding",
        [
            (b"not json", None),
            (b"not gzip", "gzip"),
            (b"[1, 2]", None),
            (TRUNCATED_GZIP, "gzip"),
            (CORRUPT_DEFLATE, "gzip"),
            (b'{"hashes": ["a.txt"]}', None),
            (b'{"hashes": {}, "policy": "gzip"}', None),
        ],
    )
    def test_get_manifest_undecodable(self, store, mock_client, data, encoding):
        mock_client.get_object.return_value = (data, encoding)
        with pytest.raises(RemoteStateError, match="could not be decoded"):
            store.get_manifest()

    # =========================
    # list_remote_hashes
    # =========================

    def test_list_paginates(self, store, mock_client):
        """Test pages are fetched sequentially with continuation tokens."""
        mock_client.list_objects.side_effect = [
            _page(["www/a.txt"], truncated=True, token="t1"),
            _page(["www/b/c.txt"]),
        ]
        hashes = store.list_remote_hashes()

        assert hashes == {"a.txt": "etag-www/a.txt", "b/c.txt": "etag-www/b/c.txt"}
        calls = mock_client.list_objects.call_args_list
        assert calls[0].args == ("www/", None)
        assert calls[1].args == ("www/", "t1")

    def test_list_skips_manifest_and_folders(self, store, mock_client):
        mock_client.list_objects.return_value = _page(
            ["www/_s3-rd.site.json", "www/", "www/dir/", "www/a.txt"]
        )
        assert list(store.list_remote_hashes()) == ["a.txt"]

    def test_list_includes_manifest_when_requested(self, mock_client):
        params = build_sync_params("site", include_manifest=True)
        mock_client.list_objects.return_value = _page(["_s3-rd.site.json", "a.txt"])
        hashes = ManifestStore(mock_client, params).list_remote_hashes()
        assert set(hashes) == {"_s3-rd.site.json", "a.txt"}

    def test_list_error(self, store, mock_client):
        mock_client.list_objects.side_effect = [
            _page(["www/a.txt"], truncated=True, token="t1"),
            S3APIError("throttled"),
        ]
        with pytest.raises(RemoteStateError):
            store.list_remote_hashes()

    # =========================
    # get_remote_state
    # =========================

    def test_remote_state_uses_manifest(self, store, mock_client):
        mock_client.get_object.return_value = (b'{"a.txt": "h1"}', None)
        state = store.get_remote_state()
        assert state.hashes == {"a.txt": "h1"}
        mock_client.list_objects.assert_not_called()

    def test_remote_state_falls_back_to_listing(self, store, mock_client):
        mock_client.get_object.side_effect = S3NotFoundError("not found")
        mock_client.list_objects.return_value = _page(["www/a.txt"])
        state = store.get_remote_state()
        assert state.hashes == {"a.txt": "etag-www/a.txt"}
        assert state.policy is None

    def test_remote_state_ignores_manifest(self, mock_client):
        params = build_sync_params("site", ignore_manifest=True)
        mock_client.list_objects.return_value = _page(["a.txt"])
        state = ManifestStore(mock_client, params).get_remote_state()
        assert state.hashes == {"a.txt": "etag-a.txt"}
        mock_client.get_object.assert_not_called()

    # =========================
    # save_manifest
    # =========================

    def test_save_manifest(self, store, mock_client):
        """Test the manifest is stored gzipped with JSON headers."""
        manifest = Manifest(hashes={"a.txt": "h1"}, policy=SyncPolicy(cache=60))
        store.save_manifest(manifest)

        mock_client.put_object.assert_called_once()
        args, kwargs = mock_client.put_object.call_args
        assert args[0] == "www/_s3-rd.site.json"
        assert kwargs["content_type"] == "application/json"
        assert kwargs["content_encoding"] == "gzip"
        stored = json.loads(gzip.decompress(args[1]))
        assert Manifest.from_dict(stored) == manifest

    def test_save_manifest_is_deterministic(self, store, mock_client):
        manifest = Manifest(hashes={"b": "2", "a": "1"})
        store.save_manifest(manifest)
        store.save_manifest(manifest)
        first, second = mock_client.put_object.call_args_list
        assert first.args[1] == second.args[1]

    def test_save_manifest_error(self, store, mock_client):
        mock_client.put_object.side_effect = S3APIError("denied")
        with pytest.raises(ManifestWriteError) as exc_info:
            store.save_manifest(Manifest())
        assert exc_info.value.message == "Files hash map uploading failed"
