"""
In-memory content-addressed backend.

Objects are kept in process memory only, useful for:
- Unit testing
- Development without a running IPFS node

Addresses are CIDv1 strings (raw codec, sha2-256 multihash, base32
multibase), the same form an IPFS node returns for raw-leaf uploads of
small files, so they are a pure function of the stored bytes.
"""

import base64
import hashlib
import threading
from typing import Any

from storage.base import AddResult, ContentBackend, ContentNotFoundError

CID_VERSION = 0x01
RAW_CODEC = 0x55
SHA2_256 = 0x12
DIGEST_LENGTH = 0x20


def compute_cid(data: bytes) -> str:
    """Compute the CIDv1 (raw, sha2-256) of ``data``."""
    digest = hashlib.sha256(data).digest()
    binary = bytes([CID_VERSION, RAW_CODEC, SHA2_256, DIGEST_LENGTH]) + digest
    encoded = base64.b32encode(binary).decode("ascii").lower().rstrip("=")
    return "b" + encoded


class MemoryBackend(ContentBackend):
    """
    In-memory content-addressed backend.

    All data is lost when the process exits. Thread-safe operations.
    """

    def __init__(self):
        """Initialize empty memory storage."""
        self._objects: dict[str, bytes] = {}
        self._pins: set[str] = set()
        # RLock: get_info calls object_count while holding the lock
        self._lock = threading.RLock()

    def add(self, data: bytes, pin: bool = True) -> AddResult:
        data = bytes(data)
        cid = compute_cid(data)
        with self._lock:
            self._objects.setdefault(cid, data)
            if pin:
                self._pins.add(cid)
        return AddResult(cid=cid, size=len(data))

    def cat(self, cid: str) -> bytes:
        with self._lock:
            try:
                return self._objects[cid]
            except KeyError:
                raise ContentNotFoundError(f"Content not found: {cid}", action="cat") from None

    def pin(self, cid: str) -> bool:
        with self._lock:
            if cid not in self._objects:
                raise ContentNotFoundError(f"Content not found: {cid}", action="pin")
            self._pins.add(cid)
        return True

    def unpin(self, cid: str) -> bool:
        with self._lock:
            self._pins.discard(cid)
        return True

    def is_pinned(self, cid: str) -> bool:
        with self._lock:
            return cid in self._pins

    def is_available(self) -> bool:
        """Memory storage is always available."""
        return True

    def object_count(self) -> int:
        with self._lock:
            return len(self._objects)

    def get_info(self) -> dict[str, Any]:
        """Get storage backend information."""
        info = super().get_info()
        with self._lock:
            info.update(
                {
                    "object_count": self.object_count(),
                    "pinned_count": len(self._pins),
                    "total_bytes": sum(len(v) for v in self._objects.values()),
                }
            )
        return info

    def clear(self) -> None:
        """Clear all stored data."""
        with self._lock:
            self._objects.clear()
            self._pins.clear()
