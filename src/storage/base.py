"""
Abstract base class for content-addressed storage backends.

This module defines the interface that all backends must implement. A
backend stores opaque byte blobs and hands back an address derived from the
bytes themselves, so storing identical bytes twice yields the same address.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from exceptions import PatentVaultError


class StorageError(PatentVaultError):
    """Base exception for storage-related errors."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, component=kwargs.pop("component", "storage"),
                         action=kwargs.pop("action", "unknown"), **kwargs)


class StorageUnavailableError(StorageError):
    """Raised when the backend cannot be reached or does not answer in time."""
    pass


class StorageReadError(StorageError):
    """Raised when reading from storage fails."""
    pass


class StorageWriteError(StorageError):
    """Raised when writing to storage fails."""
    pass


class ContentNotFoundError(StorageReadError):
    """Raised when no object is stored under the requested address."""

    status_code = 404


@dataclass(frozen=True)
class AddResult:
    """Address and size of a freshly stored object."""

    cid: str
    size: int

    @property
    def path(self) -> str:
        return self.cid


class ContentBackend(ABC):
    """
    Abstract base class for content-addressed storage backends.

    Implementations must be safe to call from several request threads at
    once; uploads of identical bytes are idempotent by construction.
    """

    @abstractmethod
    def add(self, data: bytes, pin: bool = True) -> AddResult:
        """
        Store bytes and return their content address.

        Raises:
            StorageUnavailableError: If the backend is unreachable
            StorageWriteError: If the backend rejects the data
        """
        pass

    @abstractmethod
    def cat(self, cid: str) -> bytes:
        """
        Read back the full contents stored under ``cid``.

        Raises:
            StorageUnavailableError: If the backend is unreachable
            ContentNotFoundError: If nothing is stored under ``cid``
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the storage backend is available and ready.

        Returns:
            True if storage is accessible, False otherwise
        """
        pass

    # Optional methods with default implementations

    def pin(self, cid: str) -> bool:
        """Protect an object from garbage collection. No-op by default."""
        return True

    def unpin(self, cid: str) -> bool:
        """Allow an object to be garbage collected. No-op by default."""
        return True

    def stat(self, cid: str) -> dict[str, Any]:
        """
        Get statistics about a stored object.

        Default implementation reads the whole object - backends should
        override for efficiency.
        """
        data = self.cat(cid)
        return {
            "cid": cid,
            "size": len(data),
            "cumulativeSize": len(data),
            "blocks": 1,
            "type": "file",
        }

    def get_info(self) -> dict[str, Any]:
        """
        Get information about the storage backend.

        Returns:
            Dictionary with backend type and status
        """
        return {
            "backend_type": self.__class__.__name__,
            "available": self.is_available(),
        }

    def close(self) -> None:
        """
        Close the storage connection and release resources.

        Default implementation does nothing - backends with connections
        should override this.
        """
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes connection."""
        self.close()
        return False
