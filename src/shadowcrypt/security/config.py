"""Protocol configuration, optionally read from ``SHADOWCRYPT_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .compression import Compressor, GzipCompressor, NoCompression
from .crypto import AesGcmEncryption, AuthenticatedEncryption, ChaCha20Poly1305Encryption, KeyStrength
from .kdf import Argon2StretchingFunction, KeyStretchingFunction, Pbkdf2StretchingFunction


ENV_PREFIX = "SHADOWCRYPT_"

CIPHERS = ("aes-gcm", "chacha20-poly1305")
COMPRESSIONS = ("gzip", "none")
STRETCHINGS = ("argon2id", "pbkdf2")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class ProtocolConfig:
    """Settings a protocol factory is built from."""

    protocol_version: int = 1
    key_strength: KeyStrength = KeyStrength.VERY_HIGH
    cipher: str = "aes-gcm"
    compression: str = "gzip"
    stretching: str = "argon2id"
    time_cost: int = 3
    memory_cost: int = 65536
    parallelism: int = 1
    pbkdf2_iterations: int = 600_000
    enable_derived_password_cache: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.protocol_version <= 0xFFFFFFFF:
            raise ValueError("protocol_version must fit in an unsigned 32-bit integer")
        if isinstance(self.key_strength, str):
            self.key_strength = KeyStrength(self.key_strength)
        if self.cipher not in CIPHERS:
            raise ValueError(f"unknown cipher {self.cipher!r}; expected one of {CIPHERS}")
        if self.compression not in COMPRESSIONS:
            raise ValueError(f"unknown compression {self.compression!r}; expected one of {COMPRESSIONS}")
        if self.stretching not in STRETCHINGS:
            raise ValueError(f"unknown stretching {self.stretching!r}; expected one of {STRETCHINGS}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProtocolConfig":
        """
        Build a config from environment variables, falling back to defaults.

        Recognised variables: ``SHADOWCRYPT_PROTOCOL_VERSION``,
        ``SHADOWCRYPT_KEY_STRENGTH``, ``SHADOWCRYPT_CIPHER``,
        ``SHADOWCRYPT_COMPRESSION``, ``SHADOWCRYPT_STRETCHING``,
        ``SHADOWCRYPT_ARGON2_TIME``, ``SHADOWCRYPT_ARGON2_MEMORY``,
        ``SHADOWCRYPT_ARGON2_PARALLELISM``, ``SHADOWCRYPT_PBKDF2_ITERATIONS``
        and ``SHADOWCRYPT_PASSWORD_CACHE``.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        def _int(name: str, default: int) -> int:
            raw = _get(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")

        def _bool(name: str, default: bool) -> bool:
            raw = _get(name)
            if raw is None:
                return default
            if raw.lower() in _TRUE:
                return True
            if raw.lower() in _FALSE:
                return False
            raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")

        return cls(
            protocol_version=_int("PROTOCOL_VERSION", defaults.protocol_version),
            key_strength=KeyStrength((_get("KEY_STRENGTH") or defaults.key_strength.value).lower()),
            cipher=(_get("CIPHER") or defaults.cipher).lower(),
            compression=(_get("COMPRESSION") or defaults.compression).lower(),
            stretching=(_get("STRETCHING") or defaults.stretching).lower(),
            time_cost=_int("ARGON2_TIME", defaults.time_cost),
            memory_cost=_int("ARGON2_MEMORY", defaults.memory_cost),
            parallelism=_int("ARGON2_PARALLELISM", defaults.parallelism),
            pbkdf2_iterations=_int("PBKDF2_ITERATIONS", defaults.pbkdf2_iterations),
            enable_derived_password_cache=_bool("PASSWORD_CACHE", defaults.enable_derived_password_cache),
        )

    def build_cipher(self) -> AuthenticatedEncryption:
        if self.cipher == "chacha20-poly1305":
            return ChaCha20Poly1305Encryption()
        return AesGcmEncryption()

    def build_compressor(self) -> Compressor:
        if self.compression == "none":
            return NoCompression()
        return GzipCompressor()

    def build_stretching_function(self) -> KeyStretchingFunction:
        if self.stretching == "pbkdf2":
            return Pbkdf2StretchingFunction(iterations=self.pbkdf2_iterations)
        return Argon2StretchingFunction(
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
        )
