"""
Big endian byte reader/writer helpers for the ledger binary format.
"""

from __future__ import annotations

import struct


class DecodeError(ValueError):
    """Raised when ledger bytes cannot be decoded."""


class ByteReader:
    """
    Sequential reader over an immutable byte buffer.

    Every read checks bounds and raises DecodeError on truncated input, so
    callers never see IndexError or struct.error from untrusted data.
    """

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self.offset = 0

    def __len__(self) -> int:
        return len(self._data)

    def remaining(self) -> int:
        return len(self._data) - self.offset

    def is_end(self) -> bool:
        return self.offset >= len(self._data)

    def read_bytes(self, n: int) -> bytes:
        if n < 0 or self.remaining() < n:
            raise DecodeError(
                f"Unexpected end of data: need {n} bytes at offset {self.offset}, "
                f"{self.remaining()} left"
            )
        chunk = self._data[self.offset : self.offset + n]
        self.offset += n
        return chunk

    def peek_u8(self) -> int:
        if self.is_end():
            raise DecodeError(f"Unexpected end of data at offset {self.offset}")
        return self._data[self.offset]

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u16(self) -> int:
        return struct.unpack(">H", self.read_bytes(2))[0]

    def read_u32(self) -> int:
        return struct.unpack(">I", self.read_bytes(4))[0]

    def read_u64(self) -> int:
        return struct.unpack(">Q", self.read_bytes(8))[0]

    def sub_reader(self, n: int) -> ByteReader:
        """Consume n bytes and return a reader restricted to them."""
        return ByteReader(self.read_bytes(n))

    def expect_end(self) -> None:
        if not self.is_end():
            raise DecodeError(f"{self.remaining()} trailing bytes at offset {self.offset}")


def u8(value: int) -> bytes:
    return struct.pack(">B", value)


def u16(value: int) -> bytes:
    return struct.pack(">H", value)


def u32(value: int) -> bytes:
    return struct.pack(">I", value)


def u64(value: int) -> bytes:
    return struct.pack(">Q", value)
