"""Authenticated ciphers used by the encryption protocol.

Ciphertext layout (binary):
- 12 bytes: random nonce
- N bytes: AEAD ciphertext including the 16-byte tag

The associated data passed by the protocol is its version number, so a record
re-labelled with another version fails authentication even if the version
check were bypassed.
"""
import enum
import os
from typing import Callable, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from shadowcrypt.core.exceptions import (
    AuthenticationFailureError,
    DecryptionFailureError,
    EncryptionFailureError,
)


NONCE_LEN = 12
TAG_LEN = 16


class KeyStrength(enum.Enum):
    STANDARD = "standard"    # 128 bit
    HIGH = "high"            # 192 bit
    VERY_HIGH = "very_high"  # 256 bit


class AuthenticatedEncryption(Protocol):
    def encrypt(self, key: bytes, plaintext: bytes, associated_data: bytes) -> bytes:
        ...

    def decrypt(self, key: bytes, ciphertext: bytes, associated_data: bytes) -> bytes:
        ...

    def key_length_for(self, strength: KeyStrength) -> int:
        ...


class _NonceAead:
    """Shared nonce handling for ``nonce || ciphertext`` AEAD constructions."""

    def __init__(self, random_bytes: Callable[[int], bytes] = os.urandom):
        self._random_bytes = random_bytes

    def _cipher(self, key: bytes):
        raise NotImplementedError

    def encrypt(self, key: bytes, plaintext: bytes, associated_data: bytes) -> bytes:
        try:
            aead = self._cipher(bytes(key))
            nonce = self._random_bytes(NONCE_LEN)
            return nonce + aead.encrypt(nonce, bytes(plaintext), associated_data)
        except (ValueError, TypeError, OverflowError) as e:
            raise EncryptionFailureError(f"could not encrypt content: {e}") from e

    def decrypt(self, key: bytes, ciphertext: bytes, associated_data: bytes) -> bytes:
        if len(ciphertext) < NONCE_LEN + TAG_LEN:
            raise AuthenticationFailureError("ciphertext too short to contain nonce and tag")
        nonce, ct = bytes(ciphertext[:NONCE_LEN]), bytes(ciphertext[NONCE_LEN:])
        try:
            aead = self._cipher(bytes(key))
            return aead.decrypt(nonce, ct, associated_data)
        except InvalidTag as e:
            raise AuthenticationFailureError("content authentication failed (tag mismatch)") from e
        except (ValueError, TypeError, OverflowError) as e:
            raise DecryptionFailureError(f"could not decrypt content: {e}") from e


class AesGcmEncryption(_NonceAead):
    """AES-GCM with a fresh 96-bit random nonce per call."""

    _KEY_LENGTHS = {
        KeyStrength.STANDARD: 16,
        KeyStrength.HIGH: 24,
        KeyStrength.VERY_HIGH: 32,
    }

    def _cipher(self, key: bytes):
        return AESGCM(key)

    def key_length_for(self, strength: KeyStrength) -> int:
        return self._KEY_LENGTHS[strength]


class ChaCha20Poly1305Encryption(_NonceAead):
    """ChaCha20-Poly1305; only 256-bit keys exist, whatever strength is asked for."""

    def _cipher(self, key: bytes):
        return ChaCha20Poly1305(key)

    def key_length_for(self, strength: KeyStrength) -> int:
        return 32
