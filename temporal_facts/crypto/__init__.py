# temporal_facts/crypto/__init__.py

from .aesgcm import AesGcmCipher
from .base import Cipher, EncryptedBlob

__all__ = ["AesGcmCipher", "Cipher", "EncryptedBlob"]
