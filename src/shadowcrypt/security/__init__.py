"""Security package of ShadowCrypt: the entry encryption protocol and its parts.

This package provides:
- the encryption protocol (compress, AEAD, mask, encode) and its factory
- Argon2id / PBKDF2 password stretching with a thread-safe result cache
- a runtime obfuscator that scatters secrets across XOR layers in memory
- the binary record codec

Typical use::

    factory = EncryptionProtocolFactory.from_config(ProtocolConfig.from_env(), HostFingerprint())
    protocol = factory.create(preference_salt)
    record = protocol.encrypt("key1", b"value")
    protocol.decrypt("key1", record)
"""

from .codec import EncryptedRecord, encode_record, decode_record, read_version
from .cache import DerivedPasswordCache
from .compression import GzipCompressor, NoCompression
from .config import ProtocolConfig
from .crypto import AesGcmEncryption, ChaCha20Poly1305Encryption, KeyStrength
from .fingerprint import HostFingerprint, StaticFingerprint
from .kdf import (
    Argon2StretchingFunction,
    Pbkdf2StretchingFunction,
    derive_protocol_key,
)
from .obfuscation import RuntimeObfuscator, HkdfXorObfuscator
from .protocol import EncryptionProtocol, EncryptionProtocolFactory
from .session import PasswordSession, get_session

__all__ = [
    "EncryptedRecord",
    "encode_record",
    "decode_record",
    "read_version",
    "DerivedPasswordCache",
    "GzipCompressor",
    "NoCompression",
    "ProtocolConfig",
    "AesGcmEncryption",
    "ChaCha20Poly1305Encryption",
    "KeyStrength",
    "HostFingerprint",
    "StaticFingerprint",
    "Argon2StretchingFunction",
    "Pbkdf2StretchingFunction",
    "derive_protocol_key",
    "RuntimeObfuscator",
    "HkdfXorObfuscator",
    "EncryptionProtocol",
    "EncryptionProtocolFactory",
    "PasswordSession",
    "get_session",
]
