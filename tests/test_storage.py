"""
Tests for PatentVault content-addressed storage backends.

Tests cover:
- Memory backend addressing, pinning and lookups
- IPFS backend request building and error mapping (HTTP client mocked)
- Backend selection from configuration
"""

import os
import sys
from unittest.mock import MagicMock

import pytest
import requests

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from config import Config
from storage import (
    ContentNotFoundError,
    MemoryBackend,
    StorageError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
    compute_cid,
    get_storage_backend,
)
from storage.ipfs import IPFSBackend


class TestComputeCid:
    """Tests for CIDv1 computation."""

    def test_known_cid(self):
        """CIDv1 (raw, sha2-256) of b"hello" as reported by IPFS."""
        assert compute_cid(b"hello") == (
            "bafkreibm6jg3ux5qumhcn2b3flc3tyu6dmlb4xa7u5bf44yegnrjhc4yeq"
        )

    def test_deterministic(self):
        assert compute_cid(b"same") == compute_cid(b"same")

    def test_different_bytes_differ(self):
        assert compute_cid(b"a") != compute_cid(b"b")


class TestMemoryBackend:
    """Tests for in-memory backend."""

    @pytest.fixture
    def backend(self):
        return MemoryBackend()

    def test_is_available(self, backend):
        assert backend.is_available() is True

    def test_add_and_cat(self, backend):
        result = backend.add(b"patent bytes")
        assert result.size == len(b"patent bytes")
        assert result.path == result.cid
        assert backend.cat(result.cid) == b"patent bytes"

    def test_same_bytes_same_address(self, backend):
        first = backend.add(b"identical")
        second = backend.add(b"identical")
        assert first.cid == second.cid
        assert backend.object_count() == 1

    def test_cat_unknown(self, backend):
        with pytest.raises(ContentNotFoundError) as exc_info:
            backend.cat(compute_cid(b"never stored"))
        assert exc_info.value.status_code == 404

    def test_pin_on_add(self, backend):
        pinned = backend.add(b"pinned")
        unpinned = backend.add(b"unpinned", pin=False)
        assert backend.is_pinned(pinned.cid)
        assert not backend.is_pinned(unpinned.cid)

    def test_pin_unpin(self, backend):
        cid = backend.add(b"data", pin=False).cid
        assert backend.pin(cid) is True
        assert backend.is_pinned(cid)
        assert backend.unpin(cid) is True
        assert not backend.is_pinned(cid)

    def test_pin_unknown(self, backend):
        with pytest.raises(ContentNotFoundError):
            backend.pin("bafkunknown")

    def test_stat(self, backend):
        cid = backend.add(b"12345").cid
        stats = backend.stat(cid)
        assert stats["cid"] == cid
        assert stats["size"] == 5
        assert stats["type"] == "file"

    def test_get_info(self, backend):
        backend.add(b"abc")
        info = backend.get_info()
        assert info["backend_type"] == "MemoryBackend"
        assert info["available"] is True
        assert info["object_count"] == 1
        assert info["total_bytes"] == 3

    def test_clear(self, backend):
        backend.add(b"abc")
        backend.clear()
        assert backend.object_count() == 0

    def test_context_manager(self):
        with MemoryBackend() as backend:
            backend.add(b"x")


def _response(status=200, text="", content=b"", json_data=None):
    response = MagicMock()
    response.ok = status < 400
    response.status_code = status
    response.text = text
    response.content = content
    response.reason = "Error"
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("no json")
    return response


class TestIPFSBackend:
    """Tests for the IPFS RPC backend with a mocked HTTP session."""

    @pytest.fixture
    def session(self):
        session = MagicMock()
        session.headers = {}
        return session

    @pytest.fixture
    def backend(self, session):
        return IPFSBackend(api_url="http://ipfs.test:5001", timeout=12, session=session)

    def test_add(self, backend, session):
        session.post.return_value = _response(
            text='{"Name":"blob","Hash":"bafkreiabc","Size":"10"}\n'
        )

        result = backend.add(b"0123456789")

        assert result.cid == "bafkreiabc"
        assert result.size == 10
        args, kwargs = session.post.call_args
        assert args[0] == "http://ipfs.test:5001/api/v0/add"
        assert kwargs["params"]["pin"] == "true"
        assert kwargs["params"]["cid-version"] == 1
        assert kwargs["timeout"] == 12
        assert kwargs["files"]["file"][1] == b"0123456789"

    def test_add_uses_last_line(self, backend, session):
        session.post.return_value = _response(
            text='{"Hash":"first","Size":"1"}\n{"Hash":"root","Size":"2"}\n'
        )
        assert backend.add(b"xy").cid == "root"

    def test_add_empty_response(self, backend, session):
        session.post.return_value = _response(text="")
        with pytest.raises(StorageWriteError):
            backend.add(b"x")

    def test_cat(self, backend, session):
        session.post.return_value = _response(content=b"stored bytes")

        assert backend.cat("bafkreiabc") == b"stored bytes"
        args, kwargs = session.post.call_args
        assert args[0].endswith("/api/v0/cat")
        assert kwargs["params"] == {"arg": "bafkreiabc"}

    def test_connection_error_is_unavailable(self, backend, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(StorageUnavailableError) as exc_info:
            backend.cat("bafkreiabc")
        assert exc_info.value.status_code == 500

    def test_timeout_is_unavailable(self, backend, session):
        session.post.side_effect = requests.exceptions.Timeout("slow")
        with pytest.raises(StorageUnavailableError):
            backend.add(b"x")

    def test_not_found(self, backend, session):
        session.post.return_value = _response(
            status=500, json_data={"Message": "block was not found locally (offline)"}
        )
        with pytest.raises(ContentNotFoundError):
            backend.cat("bafkreimissing")

    def test_read_error(self, backend, session):
        session.post.return_value = _response(status=500, json_data={"Message": "invalid path"})
        with pytest.raises(StorageReadError):
            backend.cat("garbage")

    def test_write_error(self, backend, session):
        session.post.return_value = _response(status=500, text="disk full")
        with pytest.raises(StorageWriteError):
            backend.add(b"x")

    def test_pin_and_unpin(self, backend, session):
        session.post.return_value = _response(json_data={"Pins": ["bafkreiabc"]})

        assert backend.pin("bafkreiabc") is True
        assert session.post.call_args[0][0].endswith("/api/v0/pin/add")
        assert backend.unpin("bafkreiabc") is True
        assert session.post.call_args[0][0].endswith("/api/v0/pin/rm")

    def test_stat(self, backend, session):
        session.post.return_value = _response(json_data={
            "Hash": "bafkreiabc",
            "Size": 10,
            "CumulativeSize": 20,
            "Blocks": 1,
            "Type": "file",
        })

        assert backend.stat("bafkreiabc") == {
            "cid": "bafkreiabc",
            "size": 10,
            "cumulativeSize": 20,
            "blocks": 1,
            "type": "file",
        }
        assert session.post.call_args[1]["params"] == {"arg": "/ipfs/bafkreiabc"}

    def test_is_available(self, backend, session):
        session.post.return_value = _response(json_data={"Version": "0.24.0"})
        assert backend.is_available() is True
        assert session.post.call_args[1]["timeout"] == IPFSBackend.HEALTH_TIMEOUT

    def test_is_not_available(self, backend, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        assert backend.is_available() is False

    def test_get_info_counts_requests(self, backend, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        backend.is_available()

        info = backend.get_info()
        assert info["backend_type"] == "IPFSBackend"
        assert info["requests_failed"] >= 1

    def test_close(self, backend, session):
        backend.close()
        session.close.assert_called_once()


class TestGetStorageBackend:
    """Tests for backend selection."""

    def test_memory(self):
        assert isinstance(get_storage_backend(Config(storage_backend="memory")), MemoryBackend)

    def test_ipfs(self):
        backend = get_storage_backend(
            Config(storage_backend="ipfs", ipfs_api_url="http://node:5001", ipfs_timeout=7)
        )
        assert isinstance(backend, IPFSBackend)
        assert backend.api_url == "http://node:5001/"
        assert backend.timeout == 7
        backend.close()

    def test_unknown(self):
        with pytest.raises(StorageError):
            get_storage_backend(Config(storage_backend="floppy"))
