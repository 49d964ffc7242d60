"""Unit tests for the buffer wiping helpers."""

import pytest

from shadowcrypt.security.memory import random_bytearray, wipe, wiped, xor_into


def test_wipe_zeroes_and_empties():
    buf = bytearray(b"secret")
    wipe(buf)
    assert buf == bytearray()


def test_wipe_overwrites_before_clearing():
    buf = bytearray(b"secret")
    writes = []

    def fake_random(n):
        writes.append(n)
        return b"\x00" * n

    wipe(buf, fake_random)
    assert writes == [6]
    assert len(buf) == 0


def test_wipe_ignores_immutable_and_none():
    data = b"immutable"
    wipe(data)
    wipe(None)
    assert data == b"immutable"


def test_wiped_context_clears_on_exit():
    with wiped(bytearray(b"key")) as buf:
        assert buf == bytearray(b"key")
    assert len(buf) == 0


def test_wiped_context_clears_on_error():
    with pytest.raises(KeyError):
        with wiped(bytearray(b"key")) as buf:
            raise KeyError("boom")
    assert len(buf) == 0


def test_xor_into():
    target = bytearray(b"\x0f\xf0")
    xor_into(target, b"\xff\xff")
    assert target == bytearray(b"\xf0\x0f")


def test_xor_into_length_mismatch():
    with pytest.raises(ValueError, match="same length"):
        xor_into(bytearray(b"ab"), b"a")


def test_random_bytearray():
    buf = random_bytearray(24)
    assert isinstance(buf, bytearray)
    assert len(buf) == 24
