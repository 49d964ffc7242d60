"""Fingerprint sources identifying the installation an entry was written on.

Records are bound to the fingerprint: if it changes (other host, other user),
old records fail to authenticate. That is expected, not corruption.
"""
from __future__ import annotations

import getpass
import hashlib
import platform
from pathlib import Path
from typing import Optional, Protocol


MACHINE_ID_PATHS = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))


class EncryptionFingerprint(Protocol):
    def get_bytes(self) -> bytearray:
        ...


class StaticFingerprint:
    """Fingerprint supplied by the host, e.g. from its own device inventory."""

    def __init__(self, data: bytes):
        self._data = bytes(data)

    def get_bytes(self) -> bytearray:
        # fresh copy every call; the protocol wipes what it receives
        return bytearray(self._data)


def _read_machine_id() -> Optional[str]:
    for path in MACHINE_ID_PATHS:
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


class HostFingerprint:
    """
    Fingerprint derived from the local host.

    Components (host name, user name, OS, architecture, machine id when
    available, and ``additional_data``) are hashed with SHA-256 so the raw
    values are never carried around.
    """

    def __init__(self, additional_data: bytes = b""):
        self.additional_data = bytes(additional_data)

    def get_bytes(self) -> bytearray:
        h = hashlib.sha256()
        for part in (
            platform.node(),
            _current_user(),
            platform.system(),
            platform.machine(),
            _read_machine_id() or "",
        ):
            encoded = part.encode("utf-8")
            h.update(len(encoded).to_bytes(4, "big"))
            h.update(encoded)
        h.update(self.additional_data)
        return bytearray(h.digest())
