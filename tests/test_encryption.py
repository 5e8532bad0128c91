"""
Tests for PatentVault encryption module.

These tests verify that:
1. Hashing and serialization are deterministic and match the browser UI
2. Encryption and decryption round-trip with fresh salt and IV per call
3. Tampering, truncation and wrong passwords fail closed
4. Key derivation rejects invalid input
"""

import base64
import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from encryption import (
    HEADER_SIZE,
    SALT_SIZE,
    EncryptedBlob,
    KeyDerivationError,
    decrypt_data,
    derive_key,
    encrypt_data,
    generate_encryption_key,
    hash_content,
    is_content_hash,
    serialize,
)
from exceptions import IntegrityError


class TestHashing:
    """Tests for content hashing."""

    def test_known_digest(self):
        """SHA-256 of the empty string is a well-known constant."""
        assert hash_content("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_text_is_utf8_encoded(self):
        assert hash_content("héllo") == hash_content("héllo".encode("utf-8"))

    def test_deterministic(self):
        assert hash_content("patent") == hash_content("patent")

    def test_different_inputs_differ(self):
        assert hash_content("patent-a") != hash_content("patent-b")

    def test_is_content_hash(self):
        assert is_content_hash(hash_content("x"))
        assert not is_content_hash("not-a-hash")
        assert not is_content_hash("z" * 64)
        assert not is_content_hash(None)


class TestSerialize:
    """Tests for JSON.stringify-compatible serialization."""

    def test_compact_separators(self):
        assert serialize({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_key_order_preserved(self):
        assert serialize({"title": "T", "description": "D"}) == '{"title":"T","description":"D"}'

    def test_non_ascii_kept_verbatim(self):
        assert serialize("Größe") == '"Größe"'

    def test_primitives(self):
        assert serialize("abc") == '"abc"'
        assert serialize(42) == "42"
        assert serialize(True) == "true"
        assert serialize(None) == "null"

    def test_integer_valued_floats(self):
        assert serialize(1.0) == "1"
        assert serialize({"version": 2.0, "ratio": 0.5, "sizes": [3.0, -4.0]}) == \
            '{"version":2,"ratio":0.5,"sizes":[3,-4]}'

    def test_float_hash_matches_integer(self):
        assert hash_content(serialize({"claims": 3.0})) == hash_content(serialize({"claims": 3}))


class TestKeyDerivation:
    """Tests for scrypt key derivation."""

    def test_derived_key_length(self):
        key = derive_key("password", b"\x00" * SALT_SIZE)
        assert len(key) == 32

    def test_same_inputs_same_key(self):
        salt = os.urandom(SALT_SIZE)
        assert derive_key("password", salt) == derive_key("password", salt)

    def test_different_salt_different_key(self):
        assert derive_key("password", b"\x00" * SALT_SIZE) != derive_key("password", b"\x01" * SALT_SIZE)

    def test_empty_password_rejected(self):
        with pytest.raises(KeyDerivationError):
            derive_key("", b"\x00" * SALT_SIZE)

    def test_wrong_salt_length_rejected(self):
        with pytest.raises(KeyDerivationError):
            derive_key("password", b"short")

    def test_generate_encryption_key(self):
        key = generate_encryption_key()
        assert len(key) == 64
        assert int(key, 16) >= 0

    def test_generated_keys_unique(self):
        keys = [generate_encryption_key() for _ in range(10)]
        assert len(set(keys)) == 10


class TestEncryptDecrypt:
    """Tests for AES-256-GCM encryption and decryption."""

    def test_round_trip_with_password(self):
        result = encrypt_data(b"patent document", "s3cret")
        assert result.encryption_key == "s3cret"
        assert decrypt_data(result.blob, "s3cret") == b"patent document"

    def test_round_trip_with_generated_key(self):
        result = encrypt_data("generated key payload")
        assert len(result.encryption_key) == 64
        assert decrypt_data(result.blob, result.encryption_key) == b"generated key payload"

    def test_round_trip_serialized_forms(self):
        result = encrypt_data(b"\x00\x01\x02binary", "pw")
        assert decrypt_data(result.blob.to_bytes(), "pw") == b"\x00\x01\x02binary"
        assert decrypt_data(result.blob.to_base64(), "pw") == b"\x00\x01\x02binary"

    def test_empty_plaintext(self):
        result = encrypt_data(b"", "pw")
        assert len(result.blob.to_bytes()) == HEADER_SIZE
        assert decrypt_data(result.blob, "pw") == b""

    def test_fresh_salt_and_iv_per_call(self):
        first = encrypt_data(b"same plaintext", "pw")
        second = encrypt_data(b"same plaintext", "pw")

        assert first.blob.salt != second.blob.salt
        assert first.blob.iv != second.blob.iv
        assert first.blob.to_bytes() != second.blob.to_bytes()
        assert decrypt_data(first.blob, "pw") == decrypt_data(second.blob, "pw")

    def test_blob_layout(self):
        result = encrypt_data(b"0123456789", "pw")
        raw = result.blob.to_bytes()

        assert len(raw) == HEADER_SIZE + 10
        assert raw[:16] == result.blob.salt
        assert raw[16:32] == result.blob.iv
        assert raw[32:48] == result.blob.auth_tag

    def test_result_to_dict(self):
        result = encrypt_data(b"data", "pw")
        data = result.to_dict()
        assert data["algorithm"] == "aes-256-gcm"
        assert data["encryptionKey"] == "pw"
        assert base64.b64decode(data["encryptedData"]) == result.blob.to_bytes()


class TestTamperDetection:
    """Any modification must fail with IntegrityError, never return plaintext."""

    @pytest.fixture
    def sealed(self):
        return encrypt_data(b"confidential claims", "pw").blob.to_bytes()

    def test_wrong_password(self, sealed):
        with pytest.raises(IntegrityError):
            decrypt_data(sealed, "wrong")

    @pytest.mark.parametrize("offset", [0, 16, 32, 47, 48, -1])
    def test_flipped_byte(self, sealed, offset):
        tampered = bytearray(sealed)
        tampered[offset] ^= 0x01
        with pytest.raises(IntegrityError):
            decrypt_data(bytes(tampered), "pw")

    def test_truncated_ciphertext(self, sealed):
        with pytest.raises(IntegrityError):
            decrypt_data(sealed[:-1], "pw")

    def test_too_short_fails_fast(self):
        with pytest.raises(IntegrityError):
            EncryptedBlob.from_bytes(b"\x00" * (HEADER_SIZE - 1))

    def test_invalid_base64(self):
        with pytest.raises(IntegrityError):
            decrypt_data("not base64 !!!", "pw")

    def test_error_message(self, sealed):
        with pytest.raises(IntegrityError) as exc_info:
            decrypt_data(sealed, "wrong")
        assert "Decryption failed" in str(exc_info.value)
        assert exc_info.value.status_code == 400
