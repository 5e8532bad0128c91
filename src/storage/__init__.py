"""
Content-addressed storage layer for PatentVault.

This package provides pluggable backends that store opaque byte blobs and
address them by their content:

- IPFS (default, a Kubo node reached over its HTTP RPC API)
- Memory (for development and testing)

Usage:
    from storage import get_storage_backend

    backend = get_storage_backend(config)
    result = backend.add(b"document bytes")
    data = backend.cat(result.cid)
"""

from config import Config
from storage.base import (
    AddResult,
    ContentBackend,
    ContentNotFoundError,
    StorageError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)
from storage.memory import MemoryBackend, compute_cid

__all__ = [
    "AddResult",
    "ContentBackend",
    "ContentNotFoundError",
    "MemoryBackend",
    "StorageError",
    "StorageReadError",
    "StorageUnavailableError",
    "StorageWriteError",
    "compute_cid",
    "get_storage_backend",
]


def get_storage_backend(config: Config | None = None) -> ContentBackend:
    """
    Get the configured storage backend.

    Args:
        config: Configuration; read from the environment when omitted

    Returns:
        Configured ContentBackend instance
    """
    config = config or Config.from_env()
    backend_type = config.storage_backend

    if backend_type == "ipfs":
        # Lazy import keeps the memory backend usable without requests
        from storage.ipfs import IPFSBackend

        return IPFSBackend(api_url=config.ipfs_api_url, timeout=config.ipfs_timeout)

    elif backend_type == "memory":
        return MemoryBackend()

    else:
        raise StorageError(f"Unknown storage backend: {backend_type}", action="configure")
