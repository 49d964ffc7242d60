"""
The ShadowCrypt encryption protocol: turns a plaintext entry into an
authenticated, obfuscated record and back.

Write path::

    plaintext -> compress -> AEAD(key, aad=version) -> mask -> encode

The key is derived per entry from the installation fingerprint, a random
16-byte content salt, the NFKD-normalized content identifier and, when given,
the stretched user password (see :func:`shadowcrypt.security.kdf.derive_protocol_key`).
The mask is keyed by ``identifier || fingerprint``. See
:mod:`shadowcrypt.security.codec` for the record layout.

Every sensitive buffer (fingerprint, derived key, password copy, mask
key) is a ``bytearray`` that is wiped before the call returns, on success
and on failure. Lower-level faults never escape raw; they are re-raised as one
of the :class:`~shadowcrypt.core.exceptions.EncryptionProtocolError` kinds.
"""

from __future__ import annotations

import logging
import os
import struct
import threading
import time
from typing import Callable, Optional, Union

from shadowcrypt.core.exceptions import (
    DecryptionFailureError,
    EncryptionFailureError,
    EncryptionProtocolError,
)
from shadowcrypt.core.hashing import HkdfMessageDigest

from .cache import DerivedPasswordCache
from .codec import CONTENT_SALT_LENGTH, EncryptedRecord, decode_record, encode_record
from .compression import Compressor, GzipCompressor
from .config import ProtocolConfig
from .crypto import AesGcmEncryption, AuthenticatedEncryption, KeyStrength
from .fingerprint import EncryptionFingerprint
from .kdf import Argon2StretchingFunction, KeyStretchingFunction, derive_protocol_key, stretch_password
from .memory import wipe, wiped
from .obfuscation import HkdfXorObfuscator, RuntimeObfuscator, create_data_obfuscator, data_obfuscator


logger = logging.getLogger(__name__)

DEFAULT_DIGEST_SALT = b"shadowcrypt-content-key"
CONTENT_KEY_USAGE = "contentKey"

Password = Union[str, bytes, bytearray, RuntimeObfuscator, None]
_PASSWORD_TYPES = (str, bytes, bytearray, RuntimeObfuscator)


def _check_password_type(password: Password) -> None:
    if password is not None and not isinstance(password, _PASSWORD_TYPES):
        raise TypeError(f"unsupported password type: {type(password).__name__}")


def _password_bytes(password: Password) -> Optional[bytearray]:
    # Always returns a private copy the caller may wipe.
    _check_password_type(password)
    if password is None:
        return None
    if isinstance(password, RuntimeObfuscator):
        return password.get_bytes()
    if isinstance(password, str):
        return bytearray(password.encode("utf-8"))
    return bytearray(password)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class EncryptionProtocol:
    """
    One protocol instance per logical store.

    ``preference_salt`` is the store's persistent salt: it salts the storage
    key aliases from :meth:`derive_content_key` and is the HKDF extract salt
    for every content key. Instances are safe to share between threads.
    """

    def __init__(
        self,
        protocol_version: int,
        preference_salt: bytes,
        fingerprint: EncryptionFingerprint,
        digest: HkdfMessageDigest,
        cipher: AuthenticatedEncryption,
        key_strength: KeyStrength,
        stretching_function: KeyStretchingFunction,
        obfuscator_factory: Callable[[bytes], HkdfXorObfuscator] = create_data_obfuscator,
        random_bytes: Callable[[int], bytes] = os.urandom,
        enable_derived_password_cache: bool = True,
        compressor: Optional[Compressor] = None,
    ):
        if stretching_function is None:
            raise TypeError("stretching_function is required")
        self.protocol_version = protocol_version
        self._preference_salt = bytes(preference_salt)
        self._fingerprint = fingerprint
        self._digest = digest
        self._cipher = cipher
        self.key_strength = key_strength
        # fixed for the lifetime of the instance
        self.key_length = cipher.key_length_for(key_strength)
        self._stretching_function = stretching_function
        self._obfuscator_factory = obfuscator_factory
        self._random_bytes = random_bytes
        self._compressor = compressor if compressor is not None else GzipCompressor()
        self._associated_data = struct.pack(">I", protocol_version)
        self._stretch_lock = threading.Lock()
        self._cache = DerivedPasswordCache(enable_derived_password_cache, random_bytes)

    # ------------------------------------------------------------------
    # Content keys
    # ------------------------------------------------------------------

    def derive_content_key(self, identifier: str) -> str:
        """Return the opaque alias under which ``identifier`` is stored."""
        return self._digest.derive(identifier.encode("utf-8") + self._preference_salt, CONTENT_KEY_USAGE)

    # ------------------------------------------------------------------
    # Encrypt / decrypt
    # ------------------------------------------------------------------

    def encrypt(self, identifier: str, plaintext: bytes, password: Password = None) -> bytes:
        """
        Encrypt ``plaintext`` stored under ``identifier``.

        Raises :class:`EncryptionFailureError` if any collaborator (cipher,
        compressor, stretching function, fingerprint source) fails.
        """
        start = time.perf_counter()
        _check_password_type(password)
        pw = None
        try:
            # a wiped RuntimeObfuscator fails here and is wrapped below
            pw = _password_bytes(password)
            content_salt = bytes(self._random_bytes(CONTENT_SALT_LENGTH))
            with wiped(self._fingerprint_bytes()) as fingerprint:
                with wiped(self._derive_key(identifier, fingerprint, content_salt, pw)) as key:
                    compressed = self._compressor.compress(plaintext)
                    encrypted = bytearray(self._cipher.encrypt(key, compressed, self._associated_data))

                with data_obfuscator(self._mask_material(identifier, fingerprint), self._obfuscator_factory) as obfuscator:
                    obfuscator.obfuscate(encrypted)

            return encode_record(
                EncryptedRecord(
                    protocol_version=self.protocol_version,
                    content_salt=content_salt,
                    ciphertext=bytes(encrypted),
                )
            )
        except EncryptionProtocolError:
            raise
        except Exception as e:
            raise EncryptionFailureError(f"could not encrypt content: {e}") from e
        finally:
            wipe(pw)
            logger.debug("encrypt took %d ms", _elapsed_ms(start))

    def decrypt(self, identifier: str, data: bytes, password: Password = None) -> bytes:
        """
        Decrypt a record produced by :meth:`encrypt`.

        The embedded protocol version is checked before anything else; a
        mismatch raises :class:`ProtocolVersionMismatchError` and the record is
        rejected outright. Tampering or a wrong identifier, password or
        fingerprint surfaces as :class:`AuthenticationFailureError`.
        """
        start = time.perf_counter()
        _check_password_type(password)
        pw = None
        try:
            record = decode_record(data, expected_version=self.protocol_version)
            pw = _password_bytes(password)

            with wiped(self._fingerprint_bytes()) as fingerprint:
                encrypted = bytearray(record.ciphertext)
                with data_obfuscator(self._mask_material(identifier, fingerprint), self._obfuscator_factory) as obfuscator:
                    obfuscator.deobfuscate(encrypted)

                with wiped(self._derive_key(identifier, fingerprint, record.content_salt, pw)) as key:
                    compressed = self._cipher.decrypt(key, encrypted, self._associated_data)
            try:
                return self._compressor.decompress(compressed)
            except Exception as e:
                raise DecryptionFailureError(f"could not decompress content: {e}") from e
        except EncryptionProtocolError:
            raise
        except Exception as e:
            raise DecryptionFailureError(f"could not decrypt content: {e}") from e
        finally:
            wipe(pw)
            logger.debug("decrypt took %d ms", _elapsed_ms(start))

    # ------------------------------------------------------------------
    # Key derivation
    # ------------------------------------------------------------------

    def _fingerprint_bytes(self) -> bytearray:
        # keep the source's own buffer when it is mutable so that one gets wiped
        raw = self._fingerprint.get_bytes()
        return raw if isinstance(raw, bytearray) else bytearray(raw)

    @staticmethod
    def _mask_material(identifier: str, fingerprint: bytes) -> bytearray:
        material = bytearray(identifier.encode("utf-8"))
        material += fingerprint
        return material

    def _derive_key(
        self,
        identifier: str,
        fingerprint: bytes,
        content_salt: bytes,
        password: Optional[bytes],
    ) -> bytearray:
        stretch = None
        if password is not None:
            # snapshot function and cache generation together so a concurrent
            # set_key_stretching_function cannot leave a stale cache entry
            with self._stretch_lock:
                function = self._stretching_function
                generation = self._cache.generation

            def stretch(salt: bytes, pw: bytes) -> bytearray:
                return stretch_password(salt, pw, function, self._cache, generation)

        return derive_protocol_key(
            identifier,
            fingerprint,
            content_salt,
            self._preference_salt,
            self.key_length,
            password=password,
            stretch=stretch,
        )

    # ------------------------------------------------------------------
    # Stretching function & password cache
    # ------------------------------------------------------------------

    @property
    def key_stretching_function(self) -> KeyStretchingFunction:
        with self._stretch_lock:
            return self._stretching_function

    def set_key_stretching_function(self, function: KeyStretchingFunction) -> None:
        """Replace the stretching function; cached stretches of the old one are wiped."""
        if function is None:
            raise TypeError("stretching function must not be None")
        with self._stretch_lock:
            self._stretching_function = function
            self._cache.wipe()
        logger.debug("key stretching function replaced by %r", function)

    def wipe_derived_password_cache(self) -> None:
        self._cache.wipe()

    @property
    def derived_password_cache(self) -> DerivedPasswordCache:
        return self._cache

    # ------------------------------------------------------------------
    # Password obfuscation
    # ------------------------------------------------------------------

    def obfuscate_password(self, password: Union[str, bytes, None]) -> Optional[RuntimeObfuscator]:
        return _obfuscate_password(password, self._random_bytes)

    @staticmethod
    def deobfuscate_password(obfuscated: Optional[RuntimeObfuscator]) -> Optional[str]:
        if obfuscated is None:
            return None
        with wiped(obfuscated.get_bytes()) as raw:
            return raw.decode("utf-8")


def _obfuscate_password(
    password: Union[str, bytes, None],
    random_bytes: Callable[[int], bytes],
) -> Optional[RuntimeObfuscator]:
    if password is None:
        return None
    raw = _password_bytes(password)
    return RuntimeObfuscator(raw, random_bytes)


class EncryptionProtocolFactory:
    """
    Holds everything except the per-store preference salt, so one factory can
    open several independent stores via :meth:`create`.
    """

    def __init__(
        self,
        fingerprint: EncryptionFingerprint,
        protocol_version: int = 1,
        digest: Optional[HkdfMessageDigest] = None,
        cipher: Optional[AuthenticatedEncryption] = None,
        key_strength: KeyStrength = KeyStrength.VERY_HIGH,
        stretching_function: Optional[KeyStretchingFunction] = None,
        obfuscator_factory: Callable[[bytes], HkdfXorObfuscator] = create_data_obfuscator,
        random_bytes: Callable[[int], bytes] = os.urandom,
        enable_derived_password_cache: bool = True,
        compressor: Optional[Compressor] = None,
    ):
        self.fingerprint = fingerprint
        self.protocol_version = protocol_version
        self.digest = digest if digest is not None else HkdfMessageDigest(DEFAULT_DIGEST_SALT)
        self.cipher = cipher if cipher is not None else AesGcmEncryption()
        self.key_strength = key_strength
        self.stretching_function = stretching_function if stretching_function is not None else Argon2StretchingFunction()
        self.obfuscator_factory = obfuscator_factory
        self.random_bytes = random_bytes
        self.enable_derived_password_cache = enable_derived_password_cache
        self.compressor = compressor if compressor is not None else GzipCompressor()

    @classmethod
    def from_config(
        cls,
        config: ProtocolConfig,
        fingerprint: EncryptionFingerprint,
        digest: Optional[HkdfMessageDigest] = None,
    ) -> "EncryptionProtocolFactory":
        return cls(
            fingerprint=fingerprint,
            protocol_version=config.protocol_version,
            digest=digest,
            cipher=config.build_cipher(),
            key_strength=config.key_strength,
            stretching_function=config.build_stretching_function(),
            enable_derived_password_cache=config.enable_derived_password_cache,
            compressor=config.build_compressor(),
        )

    def create(self, preference_salt: bytes) -> EncryptionProtocol:
        return EncryptionProtocol(
            protocol_version=self.protocol_version,
            preference_salt=preference_salt,
            fingerprint=self.fingerprint,
            digest=self.digest,
            cipher=self.cipher,
            key_strength=self.key_strength,
            stretching_function=self.stretching_function,
            obfuscator_factory=self.obfuscator_factory,
            random_bytes=self.random_bytes,
            enable_derived_password_cache=self.enable_derived_password_cache,
            compressor=self.compressor,
        )

    def create_data_obfuscator(self) -> HkdfXorObfuscator:
        """Obfuscator keyed by the fingerprint alone, for host-level metadata."""
        with wiped(bytearray(self.fingerprint.get_bytes())) as fingerprint:
            return self.obfuscator_factory(bytes(fingerprint))

    def obfuscate_password(self, password: Union[str, bytes, None]) -> Optional[RuntimeObfuscator]:
        return _obfuscate_password(password, self.random_bytes)
