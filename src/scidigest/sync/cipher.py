"""
Payload encryption for cloud sync.

Byte-compatible with the WebCrypto scheme used by earlier clients:

    secret (hex sync key)
      └── PBKDF2-HMAC-SHA256, 100,000 iterations, fresh 16-byte salt
          └── AES-256-GCM key, fresh 12-byte nonce

    payload = base64(salt[16] || nonce[12] || ciphertext || tag[16])

Decryption splits the decoded buffer at offsets 16 and 28.
"""

from __future__ import annotations

import base64
import binascii
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PBKDF2_ITERATIONS = 100_000
KEY_BYTES = 32
SALT_BYTES = 16
NONCE_BYTES = 12
SYNC_KEY_BYTES = 16


class DecryptionError(ValueError):
    """Raised when a payload cannot be decoded or authenticated."""


def generate_sync_key() -> str:
    """Fresh random sync key: 16 bytes, hex-encoded (32 characters)."""
    return secrets.token_hex(SYNC_KEY_BYTES)


def derive_key(secret: str, salt: bytes) -> bytes:
    """Derive the AES-256 key for *secret* and *salt* with PBKDF2-SHA256.

    Args:
        secret: The sync key (any string is accepted).
        salt: Per-message random salt.

    Returns:
        32 bytes of key material.
    """
    kdf = PBKDF2HMAC(
        algorithm=SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(secret.encode("utf-8"))


def encrypt_data(plaintext: str, secret: str) -> str:
    """Encrypt *plaintext* under *secret*.

    Args:
        plaintext: Text to protect, usually serialized JSON.
        secret: The sync key.

    Returns:
        Base64 of salt, nonce and ciphertext concatenated.
    """
    salt = os.urandom(SALT_BYTES)
    nonce = os.urandom(NONCE_BYTES)
    key = derive_key(secret, salt)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(salt + nonce + ciphertext).decode("ascii")


def decrypt_data(encoded: str, secret: str) -> str:
    """Reverse :func:`encrypt_data`.

    Raises:
        DecryptionError: If the payload is malformed, truncated, was
            encrypted under another secret, or was tampered with.
    """
    if not isinstance(encoded, (str, bytes)):
        raise DecryptionError(f"Payload must be text, got {type(encoded).__name__}")
    try:
        combined = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"Payload is not valid base64: {exc}") from exc

    if len(combined) <= SALT_BYTES + NONCE_BYTES:
        raise DecryptionError("Payload too short")

    salt = combined[:SALT_BYTES]
    nonce = combined[SALT_BYTES:SALT_BYTES + NONCE_BYTES]
    ciphertext = combined[SALT_BYTES + NONCE_BYTES:]

    key = derive_key(secret, salt)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise DecryptionError("Authentication failed: wrong sync key or corrupted payload") from exc

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionError("Decrypted payload is not UTF-8") from exc
