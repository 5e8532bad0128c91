"""
PatentVault - Content Store

Uploads and downloads patent documents through a content-addressed backend,
encrypting them on the way out when asked to.

The store does not remember whether an object was encrypted: that flag is
only part of the StoredObject returned by ``upload``. Callers that need it
later must keep it themselves (the UI stores it next to the encryption key).

Downloads are buffered: the whole object is read before decryption, because
the GCM tag can only be checked once all ciphertext is available.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from encryption import EncryptedBlob, decrypt_data, encrypt_data, hash_content
from exceptions import ValidationError
from monitoring.metrics import metrics
from storage.base import ContentBackend

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ipfs.io/ipfs/"


@dataclass(frozen=True)
class StoredObject:
    """Result of an upload. Immutable: the address is a property of the stored bytes."""

    content_address: str
    size: int
    encrypted: bool
    encryption_key: str | None = None
    url: str | None = None

    @property
    def cid(self) -> str:
        return self.content_address

    def to_dict(self) -> dict[str, Any]:
        return {
            "ipfsHash": self.content_address,
            "cid": self.cid,
            "size": self.size,
            "encryptionKey": self.encryption_key,
            "encrypted": self.encrypted,
            "url": self.url,
        }


class ContentStore:
    """
    Encrypting front end for a content-addressed backend.

    Upload and download calls are independent and may run concurrently;
    the store itself holds no mutable state.
    """

    def __init__(self, backend: ContentBackend, gateway_url: str = DEFAULT_GATEWAY_URL):
        self.backend = backend
        self.gateway_url = gateway_url if gateway_url.endswith("/") else gateway_url + "/"

    def upload(self, data: str | bytes, encrypt: bool = True,
               password: str | None = None) -> StoredObject:
        """
        Store a document, optionally encrypting it first.

        Args:
            data: Document contents (strings are UTF-8 encoded)
            encrypt: Encrypt with AES-256-GCM before storing
            password: Password to encrypt with; generated when omitted

        Returns:
            StoredObject; ``encryption_key`` is None for plaintext uploads
        """
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        encryption_key = None

        if encrypt:
            result = encrypt_data(raw, password)
            payload = result.blob.to_bytes()
            encryption_key = result.encryption_key
        else:
            payload = raw

        added = self.backend.add(payload, pin=True)

        metrics.increment("content_uploads_total", labels={"encrypted": str(encrypt).lower()})
        metrics.increment("content_uploaded_bytes_total", len(payload))
        logger.info(
            "Stored %d bytes at %s",
            len(payload),
            added.cid,
            extra={"encrypted": encrypt},
        )

        return StoredObject(
            content_address=added.cid,
            size=added.size,
            encrypted=encrypt,
            encryption_key=encryption_key,
            url=f"{self.gateway_url}{added.cid}",
        )

    def download(self, content_address: str, password: str | None = None) -> bytes:
        """
        Retrieve a document; decrypt it when a password is supplied.

        Raises:
            ValidationError: If the address is empty
            IntegrityError: If decryption fails for any reason
        """
        if not content_address:
            raise ValidationError("Content address is required", field_name="hash")

        data = self.backend.cat(content_address)
        metrics.increment("content_downloads_total")

        if password:
            return decrypt_data(EncryptedBlob.from_bytes(data), password)
        return data

    def upload_metadata(self, metadata: dict[str, Any], encrypt: bool = True,
                        password: str | None = None) -> StoredObject:
        """Store patent metadata as pretty-printed JSON."""
        document = json.dumps(metadata, indent=2, ensure_ascii=False)
        return self.upload(document, encrypt=encrypt, password=password)

    def download_metadata(self, content_address: str, password: str | None = None) -> dict[str, Any]:
        data = self.download(content_address, password)
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"Stored object is not JSON metadata: {e}", cause=e) from e

    def pin(self, content_address: str) -> bool:
        return self.backend.pin(content_address)

    def unpin(self, content_address: str) -> bool:
        return self.backend.unpin(content_address)

    def stat(self, content_address: str) -> dict[str, Any]:
        return self.backend.stat(content_address)

    @staticmethod
    def content_hash(data: str | bytes) -> str:
        return hash_content(data)

    def verify_integrity(self, data: str | bytes, expected_hash: str) -> bool:
        """
        Recompute the hash of ``data`` and compare it with ``expected_hash``.

        Guards against accidental corruption; adversarial tampering of
        encrypted objects is already caught by the GCM tag.
        """
        return hash_content(data) == expected_hash
