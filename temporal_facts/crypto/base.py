from typing import Protocol

from pydantic import BaseModel


class EncryptedBlob(BaseModel):
    """Hex-encoded AEAD output; the auth tag is kept apart from the ciphertext."""

    ciphertext: str
    iv: str
    auth_tag: str


class Cipher(Protocol):
    """
    Symmetric encryption capability consumed by FactStore.

    `key` is an opaque key handle owned by the caller; the store never derives,
    rotates or persists keys itself.
    """

    def encrypt(self, key: str, plaintext: str) -> EncryptedBlob: ...

    def decrypt(self, key: str, blob: EncryptedBlob) -> str: ...
