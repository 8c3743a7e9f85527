"""
AES-256-GCM cipher for fact values.

The key handle is a hex-encoded secret (for example a user's private key).
It is stretched with PBKDF2-SHA256 into a 256-bit AES key; every call uses a
fresh 12-byte IV and the 16-byte GCM tag is stored separately.
"""

import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import DecryptionError, InvalidKeyError
from .base import EncryptedBlob

KDF_SALT = b"temporal-facts-encryption"
DEFAULT_KDF_ITERATIONS = 100_000
IV_BYTES = 12
TAG_BYTES = 16
KEY_CACHE_SIZE = 32


class AesGcmCipher:
    def __init__(
        self,
        iterations: int = DEFAULT_KDF_ITERATIONS,
        cache_size: int = KEY_CACHE_SIZE,
    ) -> None:
        self.iterations = iterations
        # derived keys per key handle, least recently used evicted first
        self._derive_key = lru_cache(maxsize=cache_size)(self._derive)

    def _derive(self, key: str) -> bytes:
        try:
            secret = bytes.fromhex(key)
        except (TypeError, ValueError) as e:
            raise InvalidKeyError("Key handle must be a hex string") from e
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=KDF_SALT,
            iterations=self.iterations,
        )
        return kdf.derive(secret)

    def encrypt(self, key: str, plaintext: str) -> EncryptedBlob:
        iv = os.urandom(IV_BYTES)
        sealed = AESGCM(self._derive_key(key)).encrypt(iv, plaintext.encode("utf-8"), None)
        return EncryptedBlob(
            ciphertext=sealed[:-TAG_BYTES].hex(),
            iv=iv.hex(),
            auth_tag=sealed[-TAG_BYTES:].hex(),
        )

    def decrypt(self, key: str, blob: EncryptedBlob) -> str:
        try:
            sealed = bytes.fromhex(blob.ciphertext) + bytes.fromhex(blob.auth_tag)
            plaintext = AESGCM(self._derive_key(key)).decrypt(
                bytes.fromhex(blob.iv), sealed, None
            )
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as e:
            raise DecryptionError(f"Failed to decrypt value: {e!r}") from e
