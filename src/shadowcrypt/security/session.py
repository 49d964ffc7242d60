"""In-memory session holding a user password between protocol calls, with auto-lock.

The password is never kept as one plain buffer: it is scattered with a
:class:`~shadowcrypt.security.obfuscation.RuntimeObfuscator` and only
reconstructed on demand. Calling lock() wipes the scattered password and, when a
protocol is attached, flushes its derived-password cache (logout).
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Union

from .obfuscation import RuntimeObfuscator


logger = logging.getLogger(__name__)


class PasswordSession:
    """
    Session state is guarded by a lock, so one session may be shared between
    threads. A password handed out by get_password() can still be wiped by a
    concurrent lock(); protocol calls using it then fail with
    EncryptionFailureError or DecryptionFailureError.
    """

    def __init__(self, protocol=None):
        self._protocol = protocol
        self._password: Optional[RuntimeObfuscator] = None
        self._expires_at: Optional[float] = None
        self._lock = threading.Lock()

    def attach(self, protocol) -> None:
        """Attach the protocol whose password cache is flushed on lock()."""
        self._protocol = protocol

    def unlock(self, password: Union[bytes, str], ttl_seconds: int = 300) -> None:
        """Hold ``password`` in scattered form for ``ttl_seconds``.

        Args:
            password: the user password (str is UTF-8 encoded)
            ttl_seconds: time-to-live in seconds for the unlocked session
        """
        if isinstance(password, str):
            password = password.encode("utf-8")
        scattered = RuntimeObfuscator(bytearray(password))
        with self._lock:
            previous = self._password
            self._password = scattered
            self._expires_at = time.time() + float(ttl_seconds)
        if previous is not None:
            previous.wipe()

    @property
    def unlocked(self) -> bool:
        with self._lock:
            return self._password is not None and not self._expired()

    def _expired(self) -> bool:
        return self._expires_at is not None and time.time() > self._expires_at

    def _detach(self) -> Optional[RuntimeObfuscator]:
        # caller holds self._lock
        held = self._password
        self._password = None
        self._expires_at = None
        return held

    def get_password(self) -> RuntimeObfuscator:
        """Return the scattered password or raise if locked/expired.

        Pass the result straight to ``encrypt``/``decrypt``; it is rebuilt only
        for the duration of the call.
        """
        with self._lock:
            if self._password is None:
                raise RuntimeError("Session is locked")
            if not self._expired():
                return self._password
            # auto-lock on expiry
            held = self._detach()
        self._wipe(held)
        raise RuntimeError("Session expired and was locked")

    def extend(self, extra_seconds: int) -> None:
        """Extend session TTL by extra_seconds if unlocked."""
        with self._lock:
            if self._password is None:
                raise RuntimeError("Session is locked")
            self._expires_at = (self._expires_at or time.time()) + float(extra_seconds)

    def lock(self) -> None:
        """Wipe the scattered password and flush the attached protocol's cache."""
        with self._lock:
            held = self._detach()
        self._wipe(held)

    def _wipe(self, held: Optional[RuntimeObfuscator]) -> None:
        try:
            if held is not None:
                held.wipe()
        finally:
            if self._protocol is not None:
                self._protocol.wipe_derived_password_cache()
        logger.debug("password session locked")


# module-level default session
_default_session = PasswordSession()


def get_session() -> PasswordSession:
    return _default_session


def unlock(password: Union[bytes, str], ttl_seconds: int = 300) -> None:
    get_session().unlock(password, ttl_seconds=ttl_seconds)


def get_password() -> RuntimeObfuscator:
    return get_session().get_password()


def lock() -> None:
    get_session().lock()
