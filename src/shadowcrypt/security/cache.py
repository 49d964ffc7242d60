"""Thread-safe memo of stretched passwords keyed by (salt, password).

Key stretching is deliberately slow, so reading the same entry several times
in one session would otherwise pay the full cost on every read. Entries are
indexed by a SHA-512 digest of the length-prefixed salt and password; the
password itself is never kept as a dictionary key.
"""
from __future__ import annotations

import hashlib
import logging
import os
import struct
import threading
from typing import Callable, Dict, Optional

from .memory import wipe


logger = logging.getLogger(__name__)


def _entry_id(salt: bytes, password: bytes) -> bytes:
    h = hashlib.sha512()
    h.update(struct.pack(">I", len(salt)))
    h.update(salt)
    h.update(struct.pack(">I", len(password)))
    h.update(password)
    return h.digest()


class DerivedPasswordCache:
    __slots__ = ("enabled", "_entries", "_lock", "_generation", "_random_bytes")

    def __init__(self, enabled: bool = True, random_bytes: Callable[[int], bytes] = os.urandom):
        self.enabled = enabled
        self._entries: Dict[bytes, bytearray] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self._random_bytes = random_bytes

    @property
    def generation(self) -> int:
        """Counter bumped by every :meth:`wipe`; see :meth:`put`."""
        with self._lock:
            return self._generation

    def get(self, salt: bytes, password: bytes) -> Optional[bytearray]:
        """Return a copy of the cached value, or ``None`` on a miss."""
        if not self.enabled:
            return None
        entry_id = _entry_id(salt, password)
        with self._lock:
            value = self._entries.get(entry_id)
            return bytearray(value) if value is not None else None

    def put(self, salt: bytes, password: bytes, value: bytes, generation: Optional[int] = None) -> bool:
        """Store ``value`` for (salt, password).

        A ``generation`` captured before stretching that no longer matches the
        current one means the cache was wiped in between; the value is then
        dropped. Returns whether the value was stored.
        """
        if not self.enabled:
            return False
        entry_id = _entry_id(salt, password)
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("discarding stretched password computed before cache wipe")
                return False
            previous = self._entries.get(entry_id)
            if previous is not None:
                wipe(previous, self._random_bytes)
            self._entries[entry_id] = bytearray(value)
            return True

    def wipe(self) -> None:
        with self._lock:
            for value in self._entries.values():
                wipe(value, self._random_bytes)
            self._entries.clear()
            self._generation += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
