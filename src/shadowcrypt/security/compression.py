"""Compressors applied to plaintext before encryption."""
import gzip
import zlib
from typing import Protocol


class Compressor(Protocol):
    def compress(self, data: bytes) -> bytes:
        ...

    def decompress(self, data: bytes) -> bytes:
        ...


class GzipCompressor:
    def __init__(self, level: int = 6):
        if not 0 <= level <= 9:
            raise ValueError("gzip compression level must be between 0 and 9")
        self.level = level

    def compress(self, data: bytes) -> bytes:
        # mtime=0 keeps the output deterministic for identical input
        return gzip.compress(bytes(data), compresslevel=self.level, mtime=0)

    def decompress(self, data: bytes) -> bytes:
        try:
            return gzip.decompress(bytes(data))
        except (OSError, EOFError, zlib.error) as e:
            raise ValueError(f"invalid gzip payload: {e}") from e


class NoCompression:
    def compress(self, data: bytes) -> bytes:
        return bytes(data)

    def decompress(self, data: bytes) -> bytes:
        return bytes(data)
