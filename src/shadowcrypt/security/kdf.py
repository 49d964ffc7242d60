import unicodedata
from typing import Callable, Optional, Protocol

from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .cache import DerivedPasswordCache
from .memory import wiped


STRETCHED_PASSWORD_LENGTH = 32
PROTOCOL_KDF_INFO = b"DefaultEncryptionProtocol"


class KeyStretchingFunction(Protocol):
    def stretch(self, salt: bytes, password: bytes, output_length: int) -> bytes:
        ...


class Argon2StretchingFunction:
    """
    Stretch a password with Argon2id.
    Returns raw derived key bytes.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 1):
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    def stretch(self, salt: bytes, password: bytes, output_length: int) -> bytes:
        if isinstance(password, str):
            password = password.encode("utf-8")

        return hash_secret_raw(
            secret=bytes(password),
            salt=bytes(salt),
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=output_length,
            type=Type.ID,
        )

    def __repr__(self) -> str:
        return (
            f"Argon2StretchingFunction(time_cost={self.time_cost}, "
            f"memory_cost={self.memory_cost}, parallelism={self.parallelism})"
        )


class Pbkdf2StretchingFunction:
    """PBKDF2-HMAC-SHA256 stretching, for hosts where Argon2 memory costs are too high."""

    def __init__(self, iterations: int = 600_000):
        self.iterations = iterations

    def stretch(self, salt: bytes, password: bytes, output_length: int) -> bytes:
        if isinstance(password, str):
            password = password.encode("utf-8")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=output_length,
            salt=bytes(salt),
            iterations=self.iterations,
        )
        return kdf.derive(bytes(password))

    def __repr__(self) -> str:
        return f"Pbkdf2StretchingFunction(iterations={self.iterations})"


def stretch_password(
    salt: bytes,
    password: bytes,
    stretching_function: KeyStretchingFunction,
    cache: Optional[DerivedPasswordCache] = None,
    generation: Optional[int] = None,
) -> bytearray:
    """Return the 32-byte stretched password, consulting ``cache`` first."""
    if cache is not None:
        cached = cache.get(salt, password)
        if cached is not None:
            return cached

    stretched = bytearray(stretching_function.stretch(salt, password, STRETCHED_PASSWORD_LENGTH))
    if cache is not None:
        cache.put(salt, password, stretched, generation=generation)
    return stretched


def derive_protocol_key(
    identifier: str,
    fingerprint: bytes,
    content_salt: bytes,
    preference_salt: bytes,
    key_length: int,
    password: Optional[bytes] = None,
    stretch: Optional[Callable[[bytes, bytes], bytearray]] = None,
) -> bytearray:
    """
    Derive the per-entry symmetric key.

    The input keying material is ``fingerprint || content_salt || NFKD(identifier)``,
    followed by the 32-byte stretched password when a password is given.
    HKDF-SHA512 then extracts with ``preference_salt`` and expands with a fixed
    protocol label to ``key_length`` bytes. ``stretch(salt, password)`` supplies
    the stretched password (normally :func:`stretch_password` bound to the
    protocol's function and cache).
    """
    if password is not None and stretch is None:
        raise ValueError("a stretching callable is required when a password is given")

    with wiped(bytearray()) as ikm:
        ikm += fingerprint
        ikm += content_salt
        ikm += unicodedata.normalize("NFKD", identifier).encode("utf-8")
        if password is not None:
            with wiped(stretch(content_salt, password)) as stretched:
                ikm += stretched

        hkdf = HKDF(
            algorithm=hashes.SHA512(),
            length=key_length,
            salt=bytes(preference_salt) or None,
            info=PROTOCOL_KDF_INFO,
        )
        return bytearray(hkdf.derive(bytes(ikm)))
