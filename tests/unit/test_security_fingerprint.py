"""Unit tests for fingerprint sources."""

from unittest.mock import patch

from shadowcrypt.security import fingerprint
from shadowcrypt.security.fingerprint import HostFingerprint, StaticFingerprint


# ==============================================================================
# Tests: Fingerprints
# ==============================================================================

def test_static_fingerprint_returns_fresh_copies():
    fp = StaticFingerprint(b"device")
    first = fp.get_bytes()
    first[:] = b"\x00" * len(first)

    assert fp.get_bytes() == bytearray(b"device")


def test_host_fingerprint_stable():
    fp = HostFingerprint()
    first, second = fp.get_bytes(), fp.get_bytes()
    assert isinstance(first, bytearray)
    assert len(first) == 32
    assert first == second


def test_host_fingerprint_additional_data():
    assert HostFingerprint(b"app-a").get_bytes() != HostFingerprint(b"app-b").get_bytes()


def test_host_fingerprint_changes_with_host():
    with patch.object(fingerprint.platform, "node", return_value="host-a"):
        a = HostFingerprint().get_bytes()
    with patch.object(fingerprint.platform, "node", return_value="host-b"):
        b = HostFingerprint().get_bytes()
    assert a != b


def test_machine_id_read(tmp_path):
    machine_id = tmp_path / "machine-id"
    machine_id.write_text("abc123\n", encoding="utf-8")
    with patch.object(fingerprint, "MACHINE_ID_PATHS", (tmp_path / "missing", machine_id)):
        assert fingerprint._read_machine_id() == "abc123"


def test_machine_id_missing(tmp_path):
    with patch.object(fingerprint, "MACHINE_ID_PATHS", (tmp_path / "missing",)):
        assert fingerprint._read_machine_id() is None
