"""In-memory and at-rest obfuscation layers.

Two independent helpers live here:

- :class:`RuntimeObfuscator` scatters a secret (typically a password held for
  reuse) across several XOR layers so a single heap snapshot does not contain
  it as one contiguous buffer.
- :class:`HkdfXorObfuscator` masks AEAD output at rest. The mask key is
  ``HKDF-SHA512(ikm=key_material, salt=None, info=OBFUSCATOR_INFO, length=32)``
  and the keystream is ChaCha20 under that key with a 16-byte all-zero nonce
  (counter starts at 0), XORed over the whole buffer. Masking and unmasking are
  the same operation. Records written by this package depend on this exact
  scheme.
"""
from __future__ import annotations

import os
import secrets
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .memory import random_bytearray, wipe, xor_into


MAX_LAYERS = 9
OBFUSCATOR_INFO = b"shadowcrypt-data-obfuscator"
_MASK_KEY_LEN = 32
_MASK_NONCE = bytes(16)


class RuntimeObfuscator:
    """Secret held as ``[key_1, ..., key_n, secret ^ key_1 ^ ... ^ key_n]``.

    The array passed in is consumed: it is XORed in place and becomes the last
    stored layer, so the caller must not reuse it. :meth:`get_bytes` returns a
    fresh copy which the caller owns and should wipe after use.
    """

    __slots__ = ("_data", "_random_bytes")

    def __init__(self, array: bytearray, random_bytes: Callable[[int], bytes] = os.urandom):
        if not isinstance(array, bytearray):
            raise TypeError("RuntimeObfuscator requires a mutable bytearray")
        self._random_bytes = random_bytes
        layers = secrets.randbelow(MAX_LAYERS) + 1
        self._data: List[bytearray] = []
        for _ in range(layers):
            key = random_bytearray(len(array), random_bytes)
            xor_into(array, key)
            self._data.append(key)
        self._data.append(array)

    @classmethod
    def from_bytes(cls, data: bytes, random_bytes: Callable[[int], bytes] = os.urandom) -> "RuntimeObfuscator":
        return cls(bytearray(data), random_bytes)

    @property
    def wiped(self) -> bool:
        return not self._data

    @property
    def layer_count(self) -> int:
        # number of random key layers, not counting the mutated original
        return max(len(self._data) - 1, 0)

    def __len__(self) -> int:
        return len(self._data[-1]) if self._data else 0

    def get_bytes(self) -> bytearray:
        if not self._data:
            raise RuntimeError("secret has been wiped")
        out = bytearray(self._data[-1])
        for layer in self._data[:-1]:
            xor_into(out, layer)
        return out

    def wipe(self) -> None:
        for layer in self._data:
            wipe(layer, self._random_bytes)
        self._data = []

    def __enter__(self) -> "RuntimeObfuscator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"RuntimeObfuscator(length={len(self)}, wiped={self.wiped})"


class HkdfXorObfuscator:
    """Symmetric keystream mask for byte buffers, keyed by arbitrary material."""

    def __init__(self, key_material: bytes):
        hkdf = HKDF(
            algorithm=hashes.SHA512(),
            length=_MASK_KEY_LEN,
            salt=None,
            info=OBFUSCATOR_INFO,
        )
        self._key: Optional[bytearray] = bytearray(hkdf.derive(bytes(key_material)))

    def _apply(self, buf: bytearray) -> None:
        if self._key is None:
            raise RuntimeError("obfuscator key has been cleared")
        if not isinstance(buf, bytearray):
            raise TypeError("obfuscation works in place on a bytearray")
        if not buf:
            return
        cipher = Cipher(algorithms.ChaCha20(bytes(self._key), _MASK_NONCE), mode=None)
        buf[:] = cipher.encryptor().update(bytes(buf))

    def obfuscate(self, buf: bytearray) -> None:
        self._apply(buf)

    def deobfuscate(self, buf: bytearray) -> None:
        self._apply(buf)

    def clear_key(self) -> None:
        wipe(self._key)
        self._key = None


def create_data_obfuscator(key_material: bytes) -> HkdfXorObfuscator:
    """Default obfuscator factory used by the encryption protocol."""
    return HkdfXorObfuscator(key_material)


@contextmanager
def data_obfuscator(
    key_material: bytearray,
    factory: Callable[[bytes], HkdfXorObfuscator] = create_data_obfuscator,
) -> Iterator[HkdfXorObfuscator]:
    """Build an obfuscator for one masking step and clear every key copy on exit."""
    obfuscator = None
    try:
        obfuscator = factory(bytes(key_material))
        yield obfuscator
    finally:
        if obfuscator is not None:
            obfuscator.clear_key()
        wipe(key_material)
