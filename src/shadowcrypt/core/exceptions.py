"""
Exceptions for ShadowCrypt
Every fault raised by the encryption protocol derives from ShadowCryptError
"""


class ShadowCryptError(Exception):
    # general container for errors
    pass


class EncryptionProtocolError(ShadowCryptError):
    # raised when a record cannot be produced or read back
    pass


class MalformedRecordError(EncryptionProtocolError):
    # raised when a record is truncated or its declared lengths are inconsistent
    pass


class ProtocolVersionMismatchError(EncryptionProtocolError):
    # raised when the embedded version differs from the configured one

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"illegal protocol version: expected {expected}, got {actual}")


class AuthenticationFailureError(EncryptionProtocolError):
    # raised when the AEAD tag does not verify (tamper, wrong password or fingerprint)
    pass


class EncryptionFailureError(EncryptionProtocolError):
    # raised on a lower-level fault while encrypting
    pass


class DecryptionFailureError(EncryptionProtocolError):
    # raised on a lower-level fault while decrypting
    pass
