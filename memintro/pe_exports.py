"""Reading the export table of a PE image that is mapped in memory."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .memory import TranslationFailure, read_cstring, read_u16, read_u32
from .pe import IMAGE_DIRECTORY_ENTRY_EXPORT, MemPE, PEError

_EXPORT_FORMAT = "<IIHHIIIIIII"
_EXPORT_SIZE = struct.calcsize(_EXPORT_FORMAT)

MAX_EXPORT_NAME_SIZE = 256


@dataclass(frozen=True)
class _ExportDirectory:
    characteristics: int
    time_date_stamp: int
    major_version: int
    minor_version: int
    name_rva: int
    base: int
    number_of_functions: int
    number_of_names: int
    address_of_functions: int
    address_of_names: int
    address_of_name_ordinals: int


class ExportTable:
    """The export directory of an image, or an empty table if it has none."""

    def __init__(self, pe: MemPE, directory: _ExportDirectory | None) -> None:
        self.pe = pe
        self._directory = directory

    @property
    def has_exports(self) -> bool:
        return self._directory is not None

    def name(self) -> str:
        """The module name recorded in the export directory."""
        if self._directory is None:
            return ""
        address = self.pe.image_base + self._directory.name_rva
        return read_cstring(self.pe.memory, address, MAX_EXPORT_NAME_SIZE - 1)

    def base(self) -> int:
        """The ordinal of the first entry of the address table."""
        return 0 if self._directory is None else self._directory.base

    def number_of_functions(self) -> int:
        """The number of entries in the export address table."""
        return 0 if self._directory is None else self._directory.number_of_functions

    def rva_by_index(self, index: int) -> int:
        """The relative address stored at ``index`` of the address table."""
        if not 0 <= index < self.number_of_functions():
            raise IndexError(f"no export table entry {index}")
        assert self._directory is not None
        address = self.pe.image_base + self._directory.address_of_functions + 4 * index
        try:
            return read_u32(self.pe.memory, address)
        except TranslationFailure as failure:
            raise PEError(f"failed to read export rva at {address:#x}") from failure

    def name_by_index(self, index: int, limit: int = MAX_EXPORT_NAME_SIZE) -> str | None:
        """The name of the export at ``index`` of the address table.

        Returns None when the entry is exported by ordinal only. ``limit``
        bounds the name size including its terminator.
        """
        if limit < 1:
            raise ValueError("limit must be positive")
        directory = self._directory
        if directory is None:
            return None
        ordinals = self.pe.image_base + directory.address_of_name_ordinals
        for name_index in range(directory.number_of_names):
            address = ordinals + 2 * name_index
            try:
                candidate = read_u16(self.pe.memory, address)
            except TranslationFailure as failure:
                raise PEError(f"failed to read name ordinal at {address:#x}") from failure
            if candidate == index:
                return self._name_at(name_index, limit)
        return None

    def _name_at(self, name_index: int, limit: int) -> str:
        assert self._directory is not None
        pointer = self.pe.image_base + self._directory.address_of_names + 4 * name_index
        try:
            rva = read_u32(self.pe.memory, pointer)
        except TranslationFailure as failure:
            raise PEError(f"failed to read name rva at {pointer:#x}") from failure

        start = self.pe.image_base + rva
        collected = bytearray()
        for position in range(start, start + limit - 1):
            try:
                byte = self.pe.memory.read(position, 1)
            except TranslationFailure:
                break
            if byte == b"\x00":
                return collected.decode("latin-1")
            collected += byte
        raise PEError(f"export name at {start:#x} is unterminated or unreadable")

    def index_by_ordinal(self, ordinal: int) -> int:
        """Convert an export ordinal into an address table index."""
        if self._directory is None:
            return 0
        if ordinal < self._directory.base:
            raise ValueError(
                f"ordinal {ordinal} is below the export base {self._directory.base}"
            )
        return ordinal - self._directory.base


def parse_exports(pe: MemPE) -> ExportTable:
    """Read the export directory of ``pe``.

    An image without an export directory yields an empty table.
    """
    entry = pe.data_directory(IMAGE_DIRECTORY_ENTRY_EXPORT)
    if entry.size == 0:
        return ExportTable(pe, None)
    address = pe.image_base + entry.virtual_address
    try:
        data = pe.memory.read(address, _EXPORT_SIZE)
    except TranslationFailure as failure:
        raise PEError(f"export table is not readable at {address:#x}") from failure
    return ExportTable(pe, _ExportDirectory(*struct.unpack(_EXPORT_FORMAT, data)))