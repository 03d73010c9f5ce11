"""Reading debug directories and PDB identifiers of a mapped PE image."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

from .memory import TranslationFailure, read_cstring, read_u32
from .pe import IMAGE_DIRECTORY_ENTRY_DEBUG, MemPE

IMAGE_DEBUG_TYPE_CODEVIEW = 2
IMAGE_DEBUG_TYPE_MISC = 4

CV_SIGNATURE_RSDS = 0x53445352
CV_SIGNATURE_NB10 = 0x3031424E

_DEBUG_FORMAT = "<IIHHIIII"
_DEBUG_SIZE = struct.calcsize(_DEBUG_FORMAT)
_MAX_PDB_NAME = 2048

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebugInfo:
    """The outcome of scanning the debug directory.

    ``has_codeview`` is set whenever the image has a debug directory at all.
    The remaining fields describe the selected entry: the first CodeView
    entry, or else the last entry examined (zeroed if it was unreadable).
    ``complete`` is false if any entry could not be read.
    """

    has_codeview: bool
    complete: bool
    characteristics: int = 0
    time_date_stamp: int = 0
    major_version: int = 0
    minor_version: int = 0
    debug_type: int = 0
    size_of_data: int = 0
    address_of_raw_data: int = 0
    pointer_to_raw_data: int = 0


def parse_debug(pe: MemPE) -> DebugInfo:
    """Scan the debug directory of ``pe`` for a CodeView entry."""
    entry = pe.data_directory(IMAGE_DIRECTORY_ENTRY_DEBUG)
    if entry.size == 0:
        return DebugInfo(has_codeview=False, complete=True)

    table = pe.image_base + entry.virtual_address
    fields: tuple[int, ...] = (0,) * 8
    complete = True
    for index in range(entry.size // _DEBUG_SIZE):
        address = table + index * _DEBUG_SIZE
        try:
            fields = struct.unpack(_DEBUG_FORMAT, pe.memory.read(address, _DEBUG_SIZE))
        except TranslationFailure:
            _log.warning("debug table isn't readable at %#x", address)
            fields = (0,) * 8
            complete = False
            continue
        debug_type = fields[4]
        if debug_type == IMAGE_DEBUG_TYPE_MISC:
            _log.warning("found a valid but unhandled debug info type")
        elif debug_type == IMAGE_DEBUG_TYPE_CODEVIEW:
            break
    return DebugInfo(True, complete, *fields)


def _codeview_address(pe: MemPE, debug: DebugInfo) -> int | None:
    if not debug.has_codeview:
        return None
    if debug.address_of_raw_data == 0:
        _log.warning("debug information is not mapped in")
        return None
    return pe.image_base + debug.address_of_raw_data


def _signature(pe: MemPE, address: int) -> int | None:
    try:
        return read_u32(pe.memory, address)
    except TranslationFailure:
        _log.warning("failed to parse CodeView header at %#x", address)
        return None


def codeview_guid(pe: MemPE, debug: DebugInfo) -> str:
    """The PDB identifier from the CodeView record, or an empty string."""
    address = _codeview_address(pe, debug)
    if address is None:
        return ""
    signature = _signature(pe, address)
    if signature is None:
        return ""

    if signature == CV_SIGNATURE_RSDS:
        try:
            raw = pe.memory.read(address + 4, 16)
        except TranslationFailure:
            _log.warning("failed to parse PDB 7.0 record at %#x", address)
            return ""
        data1, data2, data3 = struct.unpack_from("<IHH", raw)
        return f"{data1:08X}{data2:04X}{data3:04X}" + raw[8:].hex().upper()

    if signature == CV_SIGNATURE_NB10:
        try:
            stamp = read_u32(pe.memory, address + 8)
        except TranslationFailure:
            _log.warning("failed to parse PDB 2.0 record at %#x", address)
            return ""
        return f"{stamp:08X}"

    _log.warning("unsupported PDB info type: %#x", signature)
    return ""


def tds_guid(pe: MemPE) -> str:
    """An identifier made of the time stamp and the image size."""
    return f"{pe.file_header.time_date_stamp:08X}{pe.optional_header.size_of_image:08X}"


def guid(pe: MemPE) -> str:
    """The best available identifier: CodeView if present, else time stamp."""
    debug = parse_debug(pe)
    if debug.has_codeview:
        return codeview_guid(pe, debug)
    return tds_guid(pe)


def pdb_name(pe: MemPE) -> str:
    """The PDB file name from the CodeView record, or an empty string."""
    address = _codeview_address(pe, parse_debug(pe))
    if address is None:
        return ""
    signature = _signature(pe, address)
    if signature is None:
        return ""
    if signature == CV_SIGNATURE_RSDS:
        return read_cstring(pe.memory, address + 0x18, _MAX_PDB_NAME)
    if signature == CV_SIGNATURE_NB10:
        return read_cstring(pe.memory, address + 0x10, _MAX_PDB_NAME)
    _log.warning("unsupported CodeView type: %#x", signature)
    return ""