"""
Unit tests for the runtime obfuscator and the ciphertext masker.
"""

import os
from unittest.mock import patch

import pytest

from shadowcrypt.security import obfuscation
from shadowcrypt.security.obfuscation import (
    MAX_LAYERS,
    HkdfXorObfuscator,
    RuntimeObfuscator,
    data_obfuscator,
)


def _fold(layers):
    out = bytearray(len(layers[0]))
    for layer in layers:
        for i, b in enumerate(layer):
            out[i] ^= b
    return bytes(out)


# ==============================================================================
# Tests: RuntimeObfuscator
# ==============================================================================

def test_get_bytes_returns_original():
    secret = b"correct horse battery staple"
    obf = RuntimeObfuscator(bytearray(secret))

    assert obf.get_bytes() == bytearray(secret)
    # repeated reads are independent copies
    first = obf.get_bytes()
    first[0] ^= 0xFF
    assert obf.get_bytes() == bytearray(secret)


def test_input_array_is_consumed():
    secret = b"password-material"
    array = bytearray(secret)
    obf = RuntimeObfuscator(array)

    assert obf._data[-1] is array
    assert bytes(array) != secret
    assert obf.get_bytes() == bytearray(secret)


def test_layer_count_bounds():
    counts = {RuntimeObfuscator(bytearray(b"abcdefgh")).layer_count for _ in range(300)}
    assert counts <= set(range(1, MAX_LAYERS + 1))
    assert min(counts) >= 1
    assert len(counts) > 1


@pytest.mark.parametrize("drawn, layers", [(0, 1), (8, 9)])
def test_layer_count_extremes(drawn, layers):
    with patch.object(obfuscation.secrets, "randbelow", return_value=drawn):
        obf = RuntimeObfuscator(bytearray(b"secret"))
    assert obf.layer_count == layers
    assert len(obf._data) == layers + 1
    assert obf.get_bytes() == bytearray(b"secret")


def test_layers_fold_to_original():
    secret = os.urandom(64)
    obf = RuntimeObfuscator(bytearray(secret))
    assert _fold(obf._data) == secret
    assert all(len(layer) == len(secret) for layer in obf._data)


def test_wipe_destroys_layers():
    secret = os.urandom(32)
    obf = RuntimeObfuscator(bytearray(secret))
    layers = list(obf._data)
    snapshot = [bytes(layer) for layer in layers]

    obf.wipe()

    assert obf.wiped
    assert len(obf) == 0
    assert all(len(layer) == 0 for layer in layers)
    assert _fold(snapshot) == secret
    with pytest.raises(RuntimeError, match="secret has been wiped"):
        obf.get_bytes()


def test_wipe_overwrites_before_release():
    secret = os.urandom(32)
    obf = RuntimeObfuscator(bytearray(secret))
    seen = []

    def spy(buf, random_bytes=None):
        seen.append(bytes(buf))
        buf[:] = random_bytes(len(buf))
        seen.append(bytes(buf))
        buf.clear()

    with patch.object(obfuscation, "wipe", side_effect=spy):
        obf.wipe()

    overwritten = seen[1::2]
    assert _fold(overwritten) != secret


def test_context_manager_wipes():
    with RuntimeObfuscator.from_bytes(b"temporary") as obf:
        assert obf.get_bytes() == bytearray(b"temporary")
    assert obf.wiped


def test_empty_secret():
    obf = RuntimeObfuscator(bytearray())
    assert obf.get_bytes() == bytearray()
    obf.wipe()
    assert obf.wiped


def test_requires_bytearray():
    with pytest.raises(TypeError):
        RuntimeObfuscator(b"immutable")


def test_repr_hides_secret():
    obf = RuntimeObfuscator.from_bytes(b"topsecret")
    assert "topsecret" not in repr(obf)


# ==============================================================================
# Tests: HkdfXorObfuscator
# ==============================================================================

@pytest.mark.parametrize("size", [0, 1, 15, 64, 1000, 70_000])
def test_mask_unmask_roundtrip(size):
    data = os.urandom(size)
    buf = bytearray(data)
    HkdfXorObfuscator(b"identifier" + b"fingerprint").obfuscate(buf)
    if size:
        assert bytes(buf) != data
    HkdfXorObfuscator(b"identifier" + b"fingerprint").deobfuscate(buf)
    assert bytes(buf) == data


def test_mask_is_deterministic():
    a, b = bytearray(b"\x00" * 48), bytearray(b"\x00" * 48)
    HkdfXorObfuscator(b"key").obfuscate(a)
    HkdfXorObfuscator(b"key").obfuscate(b)
    assert a == b


def test_mask_depends_on_key():
    a, b = bytearray(b"\x00" * 48), bytearray(b"\x00" * 48)
    HkdfXorObfuscator(b"key-a").obfuscate(a)
    HkdfXorObfuscator(b"key-b").obfuscate(b)
    assert a != b


def test_mask_prefix_consistent():
    # the keystream does not depend on the buffer length
    short, long = bytearray(16), bytearray(64)
    HkdfXorObfuscator(b"key").obfuscate(short)
    HkdfXorObfuscator(b"key").obfuscate(long)
    assert long[:16] == short


def test_clear_key():
    obf = HkdfXorObfuscator(b"key")
    key = obf._key
    obf.clear_key()

    assert len(key) == 0
    with pytest.raises(RuntimeError, match="key has been cleared"):
        obf.obfuscate(bytearray(b"data"))


def test_obfuscate_requires_bytearray():
    with pytest.raises(TypeError):
        HkdfXorObfuscator(b"key").obfuscate(b"immutable")


def test_data_obfuscator_scope_clears_key_and_material():
    material = bytearray(b"identifier-fingerprint")
    with data_obfuscator(material) as obf:
        buf = bytearray(b"payload")
        obf.obfuscate(buf)
    assert obf._key is None
    assert len(material) == 0


def test_data_obfuscator_scope_clears_on_error():
    material = bytearray(b"material")
    with pytest.raises(ValueError):
        with data_obfuscator(material) as obf:
            raise ValueError("boom")
    assert obf._key is None
    assert len(material) == 0
