"""Tests for sync payload encryption."""

from __future__ import annotations

import base64
import json

import pytest

from scidigest.sync.cipher import (
    NONCE_BYTES,
    SALT_BYTES,
    DecryptionError,
    decrypt_data,
    derive_key,
    encrypt_data,
    generate_sync_key,
)

KEY = "0123456789abcdef0123456789abcdef"


class TestSyncKey:
    def test_generated_key_is_32_hex_chars(self):
        key = generate_sync_key()
        assert len(key) == 32
        assert all(c in "0123456789abcdef" for c in key)

    def test_keys_are_unique(self):
        assert generate_sync_key() != generate_sync_key()


class TestDeriveKey:
    def test_deterministic(self):
        salt = b"\x00" * SALT_BYTES
        assert derive_key(KEY, salt) == derive_key(KEY, salt)

    def test_length(self):
        assert len(derive_key(KEY, b"\x01" * SALT_BYTES)) == 32

    def test_salt_changes_key(self):
        assert derive_key(KEY, b"\x00" * SALT_BYTES) != derive_key(KEY, b"\x01" * SALT_BYTES)


class TestEncryptDecrypt:
    """AES-GCM envelope behaviour."""

    def test_round_trip(self):
        plaintext = json.dumps({"data": {"articles": []}, "interests": ["ML"]})
        assert decrypt_data(encrypt_data(plaintext, KEY), KEY) == plaintext

    def test_unicode_round_trip(self):
        text = "Schrödinger: 量子 🐈"
        assert decrypt_data(encrypt_data(text, KEY), KEY) == text

    def test_layout(self):
        """salt(16) + nonce(12) + ciphertext + tag(16)."""
        plaintext = "hello"
        raw = base64.b64decode(encrypt_data(plaintext, KEY))
        assert len(raw) == SALT_BYTES + NONCE_BYTES + len(plaintext) + 16

    def test_fresh_salt_and_nonce(self):
        first = encrypt_data("same", KEY)
        second = encrypt_data("same", KEY)
        assert first != second
        assert base64.b64decode(first)[:28] != base64.b64decode(second)[:28]

    def test_wrong_key_fails(self):
        encoded = encrypt_data("secret", KEY)
        with pytest.raises(DecryptionError):
            decrypt_data(encoded, "f" * 32)

    def test_tampered_payload_fails(self):
        raw = bytearray(base64.b64decode(encrypt_data("secret", KEY)))
        raw[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            decrypt_data(base64.b64encode(bytes(raw)).decode(), KEY)

    def test_not_base64(self):
        with pytest.raises(DecryptionError):
            decrypt_data("***not base64***", KEY)

    def test_too_short(self):
        with pytest.raises(DecryptionError):
            decrypt_data(base64.b64encode(b"\x00" * 20).decode(), KEY)

    def test_decryption_error_is_value_error(self):
        assert issubclass(DecryptionError, ValueError)

    def test_non_text_payload(self):
        with pytest.raises(DecryptionError):
            decrypt_data(123, KEY)
