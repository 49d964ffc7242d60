""" Digest utilities used to derive opaque storage-key aliases. """

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF


class HkdfMessageDigest:
    """One-way digest producing a hex string from a message and a usage label.

    The message is run through HKDF-SHA512 with ``salt`` as the extract salt and
    the usage label as the expand info, so the same message used for two
    different purposes never yields the same alias.
    """

    def __init__(self, salt: bytes = b"", length: int = 20):
        if length <= 0:
            raise ValueError("digest length must be positive")
        self.salt = bytes(salt)
        self.length = length

    def derive(self, message: bytes, usage: str) -> str:
        hkdf = HKDF(
            algorithm=hashes.SHA512(),
            length=self.length,
            salt=self.salt or None,
            info=usage.encode("utf-8"),
        )
        return hkdf.derive(bytes(message)).hex()
