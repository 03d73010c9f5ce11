import struct

import pytest

from memintro.memory import SparseMemory
from memintro.pe import MemPE, PEError
from memintro.pe_exports import parse_exports

BASE = 0x400000
IMAGE_SIZE = 0x1000
OPTIONAL = 0x58
FUNCTIONS = [0x1000, 0x1010, 0x1020]


def build_image(directories=None):
    image = bytearray(IMAGE_SIZE)
    struct.pack_into("<H", image, 0, 0x5A4D)
    struct.pack_into("<i", image, 0x3C, 0x40)
    image[0x40:0x44] = b"PE\x00\x00"
    struct.pack_into("<HHIIIHH", image, 0x44, 0x14C, 0, 0, 0, 0, 224, 0)
    struct.pack_into("<H", image, OPTIONAL, 0x10B)
    struct.pack_into("<I", image, OPTIONAL + 92, 16)
    for index, (rva, size) in (directories or {}).items():
        struct.pack_into("<II", image, OPTIONAL + 96 + 8 * index, rva, size)
    return image


def exporting_image(address_of_functions=0x340):
    image = build_image({0: (0x200, 0x100)})
    struct.pack_into(
        "<IIHHIIIIIII", image, 0x200,
        0, 0, 0, 0, 0x300, 1, 3, 2, address_of_functions, 0x360, 0x370,
    )
    struct.pack_into("<III", image, 0x340, *FUNCTIONS)
    struct.pack_into("<II", image, 0x360, 0x380, 0x390)
    struct.pack_into("<HH", image, 0x370, 0, 2)
    image[0x300:0x30B] = b"sample.dll\x00"
    image[0x380:0x386] = b"alpha\x00"
    image[0x390:0x396] = b"gamma\x00"
    return image


def load(image):
    memory = SparseMemory()
    memory.map(BASE, bytes(image))
    return MemPE(memory, BASE)


@pytest.fixture
def table():
    return parse_exports(load(exporting_image()))


def test_name_and_counts(table):
    assert table.name() == "sample.dll"
    assert table.base() == 1
    assert table.number_of_functions() == 3


def test_rva_by_index(table):
    assert [table.rva_by_index(i) for i in range(3)] == FUNCTIONS


def test_rva_out_of_range(table):
    with pytest.raises(IndexError):
        table.rva_by_index(3)


def test_names_by_index(table):
    assert table.name_by_index(0) == "alpha"
    assert table.name_by_index(2) == "gamma"
    assert table.name_by_index(1) is None


def test_name_limit_too_small(table):
    with pytest.raises(PEError):
        table.name_by_index(0, 3)


def test_index_by_ordinal(table):
    assert table.index_by_ordinal(3) == 2
    assert table.index_by_ordinal(1) == 0
    with pytest.raises(ValueError):
        table.index_by_ordinal(0)


def test_no_exports():
    table = parse_exports(load(build_image()))
    assert table.has_exports is False
    assert table.name() == ""
    assert table.number_of_functions() == 0
    assert table.name_by_index(0) is None
    assert table.index_by_ordinal(5) == 0
    with pytest.raises(IndexError):
        table.rva_by_index(0)


def test_unreadable_export_directory():
    with pytest.raises(PEError):
        parse_exports(load(build_image({0: (0x2000, 40)})))


def test_unreadable_function_table():
    table = parse_exports(load(exporting_image(address_of_functions=0x5000)))
    with pytest.raises(PEError):
        table.rva_by_index(0)


def test_name_truncated_at_end_of_mapping():
    image = exporting_image()
    struct.pack_into("<I", image, 0x20C, 0xFFA)
    image[0xFFA:0x1000] = b"abcdef"
    table = parse_exports(load(image))
    assert table.name() == "abcdef"