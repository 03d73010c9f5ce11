import struct

from memintro.memory import SparseMemory
from memintro.pe import MemPE
from memintro.pe_debug import (
    codeview_guid,
    guid,
    parse_debug,
    pdb_name,
    tds_guid,
)

BASE = 0x400000
IMAGE_SIZE = 0x1000
OPTIONAL = 0x58


def build_image(directories=None, time_date_stamp=0, size_of_image=IMAGE_SIZE):
    image = bytearray(IMAGE_SIZE)
    struct.pack_into("<H", image, 0, 0x5A4D)
    struct.pack_into("<i", image, 0x3C, 0x40)
    image[0x40:0x44] = b"PE\x00\x00"
    struct.pack_into("<HHIIIHH", image, 0x44, 0x14C, 0, time_date_stamp, 0, 0, 224, 0)
    struct.pack_into("<H", image, OPTIONAL, 0x10B)
    struct.pack_into("<I", image, OPTIONAL + 56, size_of_image)
    struct.pack_into("<I", image, OPTIONAL + 92, 16)
    for index, (rva, size) in (directories or {}).items():
        struct.pack_into("<II", image, OPTIONAL + 96 + 8 * index, rva, size)
    return image


def write_entry(image, offset, debug_type, raw_rva):
    struct.pack_into("<IIHHIIII", image, offset, 0, 0, 0, 0, debug_type, 0x40, raw_rva, 0)


def rsds_image(raw_rva=0x500):
    image = build_image({6: (0x400, 28)})
    write_entry(image, 0x400, 2, raw_rva)
    record = (
        b"RSDS"
        + struct.pack("<IHH8B", 0x12345678, 0x9ABC, 0xDEF0, 1, 2, 3, 4, 5, 6, 7, 8)
        + struct.pack("<I", 1)
        + b"sample.pdb\x00"
    )
    image[0x500 : 0x500 + len(record)] = record
    return image


def nb10_image():
    image = build_image({6: (0x400, 28)})
    write_entry(image, 0x400, 2, 0x500)
    record = b"NB10" + struct.pack("<III", 0, 0xCAFEBABE, 1) + b"old.pdb\x00"
    image[0x500 : 0x500 + len(record)] = record
    return image


def load(image):
    memory = SparseMemory()
    memory.map(BASE, bytes(image))
    return MemPE(memory, BASE)


def test_parse_debug_finds_codeview():
    debug = parse_debug(load(rsds_image()))
    assert debug.has_codeview is True
    assert debug.complete is True
    assert debug.debug_type == 2
    assert debug.address_of_raw_data == 0x500


def test_parse_debug_without_directory():
    debug = parse_debug(load(build_image()))
    assert debug.has_codeview is False
    assert debug.complete is True


def test_rsds_guid_and_name():
    pe = load(rsds_image())
    assert guid(pe) == "123456789ABCDEF00102030405060708"
    assert pdb_name(pe) == "sample.pdb"


def test_nb10_guid_and_name():
    pe = load(nb10_image())
    assert guid(pe) == "CAFEBABE"
    assert pdb_name(pe) == "old.pdb"


def test_tds_guid():
    pe = load(build_image(time_date_stamp=0x5A5A0001, size_of_image=0x3000))
    assert tds_guid(pe) == "5A5A000100003000"


def test_guid_falls_back_to_tds():
    pe = load(build_image(time_date_stamp=0x11, size_of_image=0x2000))
    assert guid(pe) == tds_guid(pe)
    assert pdb_name(pe) == ""


def test_unmapped_raw_data():
    pe = load(rsds_image(raw_rva=0))
    debug = parse_debug(pe)
    assert codeview_guid(pe, debug) == ""
    assert pdb_name(pe) == ""


def test_unreadable_raw_data():
    pe = load(rsds_image(raw_rva=0x8000))
    assert guid(pe) == ""
    assert pdb_name(pe) == ""


def test_unsupported_signature():
    image = rsds_image()
    image[0x500:0x504] = b"XXXX"
    pe = load(image)
    assert guid(pe) == ""
    assert pdb_name(pe) == ""


def test_unreadable_entry_marks_incomplete():
    image = build_image({6: (0xFE4, 56)})
    write_entry(image, 0xFE4, 4, 0x500)
    debug = parse_debug(load(image))
    assert debug.complete is False
    assert debug.has_codeview is True
    assert debug.debug_type == 0
    assert debug.address_of_raw_data == 0


def test_codeview_found_before_unreadable_entry():
    image = build_image({6: (0xFE4, 56)})
    write_entry(image, 0xFE4, 2, 0x500)
    debug = parse_debug(load(image))
    assert debug.complete is True
    assert debug.debug_type == 2