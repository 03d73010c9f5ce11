"""Reading counted UTF-16 strings out of memory."""

from __future__ import annotations

import logging

from .memory import Memory, TranslationFailure, read_u16, read_u32, read_u64

MAX_STRING_LEN = 4096

_log = logging.getLogger(__name__)


def _read_utf16(memory: Memory, address: int, nbytes: int, second_try: bool) -> str:
    if address == 0 or nbytes <= 1:
        return ""
    if nbytes > MAX_STRING_LEN:
        _log.warning("asked to parse a UTF-16 string of length %d", nbytes)
        return ""
    if nbytes % 2 == 1:
        _log.warning("UTF-16 with odd length: %d at %#x", nbytes, address)
        nbytes -= 1

    try:
        raw = memory.read(address, nbytes)
    except TranslationFailure as failure:
        padded = failure.partial.ljust(nbytes, b"\x00")
        units = [int.from_bytes(padded[i : i + 2], "little") for i in range(0, nbytes, 2)]
        terminator = units.index(0) if 0 in units else len(units)
        if terminator == 0:
            return ""
        if nbytes != terminator * 2 and not second_try:
            return _read_utf16(memory, address, terminator * 2, True)
        return ""

    text = raw.decode("utf-16-le")
    return text.split("\x00", 1)[0]


def read_utf16_as_utf8(memory: Memory, address: int, nbytes: int) -> str:
    """Read ``nbytes`` of UTF-16LE text at ``address``.

    Returns an empty string for a null address, an over-long length or an
    unreadable buffer. If only a prefix is readable and it ends in a NUL,
    the prefix is tried once more on its own.
    """
    return _read_utf16(memory, address, nbytes, False)


class UnicodeString:
    """A counted UTF-16 string record: Length, MaximumLength, Buffer."""

    def __init__(self, memory: Memory, address: int, pointer_width: int) -> None:
        if pointer_width not in (4, 8):
            raise ValueError("invalid unicode string: pointer width must be 4 or 8")
        self.memory = memory
        self.address = address
        self.pointer_width = pointer_width

    def length(self) -> int:
        """Length of the string in bytes."""
        return read_u16(self.memory, self.address)

    def maximum_length(self) -> int:
        """Size of the buffer in bytes."""
        return read_u16(self.memory, self.address + 2)

    def _buffer_address(self) -> int:
        if self.pointer_width == 8:
            return read_u64(self.memory, self.address + 8)
        return read_u32(self.memory, self.address + 4)

    def as_utf8(self) -> str:
        """Decode the referenced buffer into text."""
        length = self.length()
        if length == 0:
            return ""
        return read_utf16_as_utf8(self.memory, self._buffer_address(), length)