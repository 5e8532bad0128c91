"""
PatentVault - Data Encryption Module

Hashing and authenticated encryption for documents before they leave the
trust boundary. Uses AES-256-GCM with scrypt key derivation.

Security Features:
- AES-256-GCM for encryption with authentication
- scrypt (N=2^14, r=8, p=1) for memory-hard key derivation
- Random salt and IV for each encryption operation
- Random 256-bit password when the caller does not supply one

Blob layout (base64 when it crosses the HTTP boundary):

    salt (16) || iv (16) || auth tag (16) || ciphertext

The layout is compatible with blobs produced by Node's ``crypto`` module
(``scryptSync`` + ``aes-256-gcm``) with the same parameters.
"""

import base64
import binascii
import hashlib
import json
import logging
import secrets
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from exceptions import IntegrityError, PatentVaultError

logger = logging.getLogger(__name__)

# Constants
SALT_SIZE = 16  # 128 bits
IV_SIZE = 16  # 128 bits
TAG_SIZE = 16  # GCM authentication tag
KEY_SIZE = 32  # 256 bits
HEADER_SIZE = SALT_SIZE + IV_SIZE + TAG_SIZE

SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

ALGORITHM = "aes-256-gcm"


class EncryptionError(PatentVaultError):
    """Raised when encryption fails for a reason other than authentication."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, component="encryption",
                         action=kwargs.pop("action", "encrypt"), **kwargs)


class KeyDerivationError(EncryptionError):
    """Raised when key derivation fails."""

    status_code = 400


# ============================================================
# Hashing
# ============================================================

def _to_bytes(data: str | bytes) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def hash_content(data: str | bytes) -> str:
    """
    SHA-256 over the exact input bytes.

    Text is UTF-8 encoded first; bytes are hashed as-is.

    Returns:
        64-character lowercase hex digest
    """
    return hashlib.sha256(_to_bytes(data)).hexdigest()


def _js_numbers(value: Any) -> Any:
    # JSON.stringify prints 1.0 as 1; below 1e21 it never switches to exponent form
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {key: _js_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_js_numbers(item) for item in value]
    return value


def serialize(value: Any) -> str:
    """
    Serialize a structured value the way ``JSON.stringify`` does.

    Compact separators, non-ASCII characters kept verbatim, key order
    preserved and integer-valued floats written without a fraction, so
    hashes agree with the ones computed by the browser UI. Other float
    formatting (exponents, very large values) is Python's.
    """
    return json.dumps(_js_numbers(value), separators=(",", ":"), ensure_ascii=False)


def is_content_hash(value: Any) -> bool:
    """Check whether a value looks like a hex SHA-256 digest."""
    if not isinstance(value, str) or len(value) != 64:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return True


# ============================================================
# Key management
# ============================================================

def derive_key(password: str, salt: bytes) -> bytes:
    """
    Derive a 256-bit encryption key from a password using scrypt.

    Args:
        password: The password/passphrase to derive the key from
        salt: 16-byte random salt

    Returns:
        32-byte derived key
    """
    if not password:
        raise KeyDerivationError("Password cannot be empty", action="derive_key")
    if len(salt) != SALT_SIZE:
        raise KeyDerivationError(f"Salt must be {SALT_SIZE} bytes", action="derive_key")

    kdf = Scrypt(salt=salt, length=KEY_SIZE, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(password.encode("utf-8"))


def generate_encryption_key() -> str:
    """
    Generate a random password for callers that did not supply one.

    Returns:
        Hex-encoded 256-bit random value
    """
    return secrets.token_hex(KEY_SIZE)


# ============================================================
# Blob container
# ============================================================

@dataclass(frozen=True)
class EncryptedBlob:
    """AES-256-GCM output split into its fixed-size fields."""

    salt: bytes
    iv: bytes
    auth_tag: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        return self.salt + self.iv + self.auth_tag + self.ciphertext

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptedBlob":
        """
        Split a serialized blob into its fields.

        Raises:
            IntegrityError: If the blob is too short to hold salt, IV and tag
        """
        if len(data) < HEADER_SIZE:
            raise IntegrityError(
                f"Invalid encrypted data: expected at least {HEADER_SIZE} bytes, got {len(data)}"
            )
        return cls(
            salt=data[:SALT_SIZE],
            iv=data[SALT_SIZE:SALT_SIZE + IV_SIZE],
            auth_tag=data[SALT_SIZE + IV_SIZE:HEADER_SIZE],
            ciphertext=data[HEADER_SIZE:],
        )

    @classmethod
    def from_base64(cls, encoded: str) -> "EncryptedBlob":
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise IntegrityError("Invalid encrypted data: not valid base64", cause=e) from e
        return cls.from_bytes(raw)

    def __len__(self) -> int:
        return HEADER_SIZE + len(self.ciphertext)


@dataclass(frozen=True)
class EncryptionResult:
    """An encrypted blob plus the password that opens it."""

    blob: EncryptedBlob
    encryption_key: str
    algorithm: str = ALGORITHM

    def to_dict(self) -> dict[str, str]:
        return {
            "encryptedData": self.blob.to_base64(),
            "encryptionKey": self.encryption_key,
            "algorithm": self.algorithm,
        }


# ============================================================
# Encrypt / decrypt
# ============================================================

def encrypt_data(data: str | bytes, password: str | None = None) -> EncryptionResult:
    """
    Encrypt data using AES-256-GCM.

    Args:
        data: Plaintext (strings are UTF-8 encoded)
        password: Optional password. A random one is generated and returned
            when omitted; no copy of it is kept.

    Returns:
        EncryptionResult holding the blob and the password

    Raises:
        EncryptionError: If encryption fails
    """
    encryption_key = password or generate_encryption_key()

    try:
        salt = secrets.token_bytes(SALT_SIZE)
        iv = secrets.token_bytes(IV_SIZE)
        derived_key = derive_key(encryption_key, salt)

        # AESGCM appends the tag to the ciphertext
        sealed = AESGCM(derived_key).encrypt(iv, _to_bytes(data), None)
    except EncryptionError:
        raise
    except Exception as e:
        raise EncryptionError(f"Encryption failed: {e}", cause=e) from e

    blob = EncryptedBlob(
        salt=salt,
        iv=iv,
        auth_tag=sealed[-TAG_SIZE:],
        ciphertext=sealed[:-TAG_SIZE],
    )
    return EncryptionResult(blob=blob, encryption_key=encryption_key)


def decrypt_data(blob: EncryptedBlob | bytes | str, password: str) -> bytes:
    """
    Decrypt an AES-256-GCM blob.

    Args:
        blob: EncryptedBlob, its serialized bytes, or their base64 form
        password: Password used for encryption

    Returns:
        Plaintext bytes

    Raises:
        IntegrityError: Malformed blob, wrong password or tampered data
    """
    if isinstance(blob, str):
        blob = EncryptedBlob.from_base64(blob)
    elif not isinstance(blob, EncryptedBlob):
        blob = EncryptedBlob.from_bytes(bytes(blob))

    derived_key = derive_key(password, blob.salt)

    try:
        return AESGCM(derived_key).decrypt(blob.iv, blob.ciphertext + blob.auth_tag, None)
    except InvalidTag as e:
        logger.warning("Authentication tag mismatch while decrypting %d-byte blob", len(blob))
        raise IntegrityError(cause=e) from e


__all__ = [
    "ALGORITHM",
    "EncryptedBlob",
    "EncryptionError",
    "EncryptionResult",
    "IntegrityError",
    "KeyDerivationError",
    "decrypt_data",
    "derive_key",
    "encrypt_data",
    "generate_encryption_key",
    "hash_content",
    "is_content_hash",
    "serialize",
]
