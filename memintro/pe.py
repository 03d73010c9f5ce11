"""Parsing the headers of a PE image that is mapped in memory."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator

from .memory import Memory, TranslationFailure

IMAGE_DOS_SIGNATURE = 0x5A4D
IMAGE_NT_SIGNATURE = 0x4550

IMAGE_FILE_MACHINE_I386 = 0x014C
IMAGE_FILE_MACHINE_AMD64 = 0x8664

IMAGE_DIRECTORY_ENTRY_EXPORT = 0
IMAGE_DIRECTORY_ENTRY_DEBUG = 6
IMAGE_NUMBEROF_DIRECTORY_ENTRIES = 16

DOS_HEADER_SIZE = 64
_E_LFANEW_OFFSET = 0x3C
_SIGNATURE_SIZE = 4

_OPTIONAL32_FORMAT = "<HBBIIIIIIIII6HIIIIHHIIIIII"
_OPTIONAL64_FORMAT = "<HBBIIIIIQII6HIIIIHHQQQQII"
_DIRECTORY_FORMAT = "<II"
_SECTION_FORMAT = "<8sIIIIIIHHI"


class PEError(Exception):
    """Raised when an image or one of its headers cannot be read."""


@dataclass(frozen=True)
class FileHeader:
    """The COFF file header that follows the PE signature."""

    machine: int
    number_of_sections: int
    time_date_stamp: int
    pointer_to_symbol_table: int
    number_of_symbols: int
    size_of_optional_header: int
    characteristics: int

    FORMAT = "<HHIIIHH"
    SIZE = struct.calcsize(FORMAT)

    @classmethod
    def parse(cls, data: bytes) -> FileHeader:
        return cls(*struct.unpack(cls.FORMAT, data[: cls.SIZE]))


@dataclass(frozen=True)
class DataDirectory:
    """Location and size of one data directory, relative to the image base."""

    virtual_address: int
    size: int


@dataclass(frozen=True)
class OptionalHeader:
    """The optional header, in either its 32-bit or its 64-bit layout.

    ``base_of_data`` exists only in the 32-bit layout and is None otherwise.
    """

    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    base_of_data: int | None
    image_base: int
    section_alignment: int
    file_alignment: int
    major_operating_system_version: int
    minor_operating_system_version: int
    major_image_version: int
    minor_image_version: int
    major_subsystem_version: int
    minor_subsystem_version: int
    win32_version_value: int
    size_of_image: int
    size_of_headers: int
    checksum: int
    subsystem: int
    dll_characteristics: int
    size_of_stack_reserve: int
    size_of_stack_commit: int
    size_of_heap_reserve: int
    size_of_heap_commit: int
    loader_flags: int
    number_of_rva_and_sizes: int
    data_directories: tuple[DataDirectory, ...]

    @staticmethod
    def size_for(is32bit: bool) -> int:
        fields = _OPTIONAL32_FORMAT if is32bit else _OPTIONAL64_FORMAT
        return struct.calcsize(fields) + IMAGE_NUMBEROF_DIRECTORY_ENTRIES * struct.calcsize(
            _DIRECTORY_FORMAT
        )

    @classmethod
    def parse(cls, data: bytes, is32bit: bool) -> OptionalHeader:
        fields = _OPTIONAL32_FORMAT if is32bit else _OPTIONAL64_FORMAT
        fixed = struct.calcsize(fields)
        values = list(struct.unpack_from(fields, data))
        if not is32bit:
            values.insert(8, None)
        directories = tuple(
            DataDirectory(*entry)
            for entry in struct.iter_unpack(
                _DIRECTORY_FORMAT,
                data[fixed : fixed + IMAGE_NUMBEROF_DIRECTORY_ENTRIES * 8],
            )
        )
        return cls(*values, data_directories=directories)


@dataclass(frozen=True)
class SectionHeader:
    """One entry of the section table."""

    name: str
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int
    pointer_to_relocations: int
    pointer_to_linenumbers: int
    number_of_relocations: int
    number_of_linenumbers: int
    characteristics: int

    SIZE = struct.calcsize(_SECTION_FORMAT)

    @classmethod
    def parse(cls, data: bytes) -> SectionHeader:
        raw_name, *rest = struct.unpack(_SECTION_FORMAT, data[: cls.SIZE])
        name = raw_name.split(b"\x00", 1)[0].decode("latin-1")
        return cls(name, *rest)


class MemPE:
    """The headers of a PE image loaded at ``image_base`` in ``memory``.

    With ``force`` set, the DOS and NT signatures are not checked.
    """

    def __init__(self, memory: Memory, image_base: int, force: bool = False) -> None:
        self.memory = memory
        self.image_base = image_base

        try:
            dos = memory.read(image_base, DOS_HEADER_SIZE)
        except TranslationFailure as failure:
            raise PEError(f"DOS header is paged out at {image_base:#x}") from failure
        (self.dos_magic,) = struct.unpack_from("<H", dos, 0)
        (self.e_lfanew,) = struct.unpack_from("<i", dos, _E_LFANEW_OFFSET)
        if not force and self.dos_magic != IMAGE_DOS_SIGNATURE:
            raise PEError(f"bad DOS header magic {self.dos_magic:#x}")

        self.nt_header_address = image_base + self.e_lfanew
        try:
            nt = memory.read(self.nt_header_address, _SIGNATURE_SIZE + FileHeader.SIZE)
        except TranslationFailure as failure:
            raise PEError(
                f"failed to read NT headers at {self.nt_header_address:#x}"
            ) from failure
        (self.signature,) = struct.unpack_from("<I", nt, 0)
        if not force and self.signature != IMAGE_NT_SIGNATURE:
            raise PEError(f"bad NT headers signature {self.signature:#x}")
        self.file_header = FileHeader.parse(nt[_SIGNATURE_SIZE:])

        self.is32bit = self.is_i386()
        optional_address = self.nt_header_address + _SIGNATURE_SIZE + FileHeader.SIZE
        try:
            optional = memory.read(optional_address, OptionalHeader.size_for(self.is32bit))
        except TranslationFailure as failure:
            raise PEError(
                f"failed to read optional header at {optional_address:#x}"
            ) from failure
        self.optional_header = OptionalHeader.parse(optional, self.is32bit)

    def is_i386(self) -> bool:
        """True if the machine type says this is a 32-bit image."""
        return self.file_header.machine == IMAGE_FILE_MACHINE_I386

    def is_amd64(self) -> bool:
        """True if the machine type says this is a 64-bit image."""
        return self.file_header.machine == IMAGE_FILE_MACHINE_AMD64

    def entry_point_va(self) -> int:
        """The entry point relative address adjusted by the load address."""
        return self.image_base + self.optional_header.address_of_entry_point

    def base_of_code_va(self) -> int:
        """The start of code relative address adjusted by the load address."""
        return self.image_base + self.optional_header.base_of_code

    def data_directory(self, index: int) -> DataDirectory:
        """Return one of the data directory entries."""
        if not 0 <= index < len(self.optional_header.data_directories):
            raise IndexError(f"no data directory {index}")
        return self.optional_header.data_directories[index]

    def _section_table_address(self) -> int:
        return (
            self.nt_header_address
            + _SIGNATURE_SIZE
            + FileHeader.SIZE
            + self.file_header.size_of_optional_header
        )

    def section_header(self, index: int) -> SectionHeader:
        """Read the section header at ``index`` of the section table."""
        if not 0 <= index < self.file_header.number_of_sections:
            raise IndexError(f"no section {index}")
        address = self._section_table_address() + SectionHeader.SIZE * index
        try:
            data = self.memory.read(address, SectionHeader.SIZE)
        except TranslationFailure as failure:
            raise PEError(f"section header is not readable at {address:#x}") from failure
        return SectionHeader.parse(data)

    def sections(self) -> Iterator[SectionHeader]:
        """Yield every section header in table order."""
        for index in range(self.file_header.number_of_sections):
            yield self.section_header(index)