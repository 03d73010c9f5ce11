"""Sparse address spaces and little-endian readers over them."""

from __future__ import annotations

import struct
from typing import Protocol


class TranslationFailure(Exception):
    """Raised when part of a requested range is not mapped.

    ``partial`` holds the bytes that could be read before the first gap.
    """

    def __init__(self, address: int, size: int, partial: bytes = b"") -> None:
        super().__init__(f"cannot read {size} bytes at {address:#x}")
        self.address = address
        self.size = size
        self.partial = partial


class Memory(Protocol):
    """Anything that can read a range of bytes from an address."""

    def read(self, address: int, size: int) -> bytes: ...


class SparseMemory:
    """An address space made of mapped byte regions.

    Later mappings take precedence over earlier ones where they overlap.
    """

    def __init__(self) -> None:
        self._regions: list[tuple[int, bytes]] = []

    def map(self, address: int, data: bytes) -> None:
        """Map ``data`` so that its first byte sits at ``address``."""
        if address < 0:
            raise ValueError("address must not be negative")
        if data:
            self._regions.append((address, bytes(data)))

    def _chunk_at(self, position: int, remaining: int) -> bytes | None:
        for start, data in reversed(self._regions):
            if start <= position < start + len(data):
                offset = position - start
                chunk = data[offset : offset + remaining]
                # A later region may shadow part of this chunk.
                end = position + len(chunk)
                for other_start, other_data in reversed(self._regions):
                    if (other_start, other_data) == (start, data):
                        break
                    if position < other_start < end:
                        end = other_start
                return chunk[: end - position]
        return None

    def read(self, address: int, size: int) -> bytes:
        """Return ``size`` bytes at ``address`` or raise TranslationFailure."""
        if address < 0 or size < 0:
            raise ValueError("address and size must not be negative")
        pieces: list[bytes] = []
        position = address
        remaining = size
        while remaining:
            chunk = self._chunk_at(position, remaining)
            if not chunk:
                raise TranslationFailure(address, size, b"".join(pieces))
            pieces.append(chunk)
            position += len(chunk)
            remaining -= len(chunk)
        return b"".join(pieces)


def _unpack(memory: Memory, address: int, fmt: str) -> int:
    size = struct.calcsize(fmt)
    (value,) = struct.unpack(fmt, memory.read(address, size))
    return value


def read_u8(memory: Memory, address: int) -> int:
    """Read an unsigned byte."""
    return _unpack(memory, address, "<B")


def read_u16(memory: Memory, address: int) -> int:
    """Read a little-endian unsigned 16-bit value."""
    return _unpack(memory, address, "<H")


def read_u32(memory: Memory, address: int) -> int:
    """Read a little-endian unsigned 32-bit value."""
    return _unpack(memory, address, "<I")


def read_u64(memory: Memory, address: int) -> int:
    """Read a little-endian unsigned 64-bit value."""
    return _unpack(memory, address, "<Q")


def read_cstring(memory: Memory, address: int, limit: int) -> str:
    """Read a NUL-terminated byte string of at most ``limit`` characters.

    Reading stops quietly at the terminator, at the limit, or at the first
    unreadable byte. Bytes are decoded one-to-one as Latin-1.
    """
    collected = bytearray()
    position = address
    while len(collected) < limit:
        try:
            byte = memory.read(position, 1)
        except TranslationFailure:
            break
        if byte == b"\x00":
            break
        collected += byte
        position += 1
    return collected.decode("latin-1")