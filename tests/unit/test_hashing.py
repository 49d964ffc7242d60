"""Unit tests for digest helpers."""

import pytest

from shadowcrypt.core.hashing import HkdfMessageDigest


def test_digest_is_hex_of_requested_length() -> None:
    out = HkdfMessageDigest(b"salt", length=20).derive(b"key1", "contentKey")
    assert len(out) == 40
    int(out, 16)


def test_digest_deterministic() -> None:
    digest = HkdfMessageDigest(b"salt")
    assert digest.derive(b"key1", "contentKey") == digest.derive(b"key1", "contentKey")


def test_digest_depends_on_message_usage_and_salt() -> None:
    base = HkdfMessageDigest(b"salt").derive(b"key1", "contentKey")
    assert HkdfMessageDigest(b"salt").derive(b"key2", "contentKey") != base
    assert HkdfMessageDigest(b"salt").derive(b"key1", "otherUsage") != base
    assert HkdfMessageDigest(b"pepper").derive(b"key1", "contentKey") != base


def test_digest_without_salt() -> None:
    assert len(HkdfMessageDigest().derive(b"key1", "contentKey")) == 40


def test_digest_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError, match="must be positive"):
        HkdfMessageDigest(length=0)
