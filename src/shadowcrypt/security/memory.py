"""Best-effort wiping of sensitive byte buffers.

Only ``bytearray`` instances can be overwritten in place; immutable ``bytes``
handed back by third-party primitives are copied into a ``bytearray`` as soon
as possible and the original reference dropped.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


def wipe(buf: Optional[bytearray], random_bytes: Optional[Callable[[int], bytes]] = None) -> None:
    """Overwrite ``buf`` in place with zeros (or random bytes) and empty it."""
    if not isinstance(buf, bytearray) or not buf:
        return
    if random_bytes is not None:
        buf[:] = random_bytes(len(buf))
    else:
        buf[:] = bytes(len(buf))
    buf.clear()


@contextmanager
def wiped(buf: bytearray) -> Iterator[bytearray]:
    """Yield ``buf`` and wipe it on scope exit, whatever the outcome."""
    try:
        yield buf
    finally:
        wipe(buf)


def xor_into(target: bytearray, key: bytes) -> None:
    """XOR ``key`` into ``target`` in place; both must be the same length."""
    if len(target) != len(key):
        raise ValueError("xor operands must have the same length")
    for i in range(len(target)):
        target[i] ^= key[i]


def random_bytearray(length: int, random_bytes: Callable[[int], bytes] = os.urandom) -> bytearray:
    return bytearray(random_bytes(length))
