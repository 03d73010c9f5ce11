# memintro

memintro decodes Windows counted UTF-16 strings and the headers, exports and
debug records of Portable Executable (PE) images. It reads them from a
snapshot of an address space, so it needs no running system. You supply the
memory, and memintro decodes the structures in it.

## Memory

`memintro.memory.SparseMemory` stands for an address space. You fill it by
mapping byte ranges at chosen addresses. Where two mappings overlap, the later
one wins.

```python
from memintro.memory import SparseMemory, read_u32, read_cstring

mem = SparseMemory()
mem.map(0x1000, b"MZ\x90\x00hello\x00")
read_u32(mem, 0x1000)
read_cstring(mem, 0x1004, 256)   # "hello"
```

A read that touches an unmapped address raises `TranslationFailure`. Its
`partial` attribute holds the bytes read before the first gap. `read_u8`,
`read_u16`, `read_u32` and `read_u64` read little-endian unsigned values.
`read_cstring` stops at a NUL byte, at the limit, or at the first unreadable
byte, and it decodes bytes as Latin-1.

Any object with a `read(address, size) -> bytes` method that raises
`TranslationFailure` on a gap can take the place of `SparseMemory`.

## Counted UTF-16 strings

`memintro.ustring.UnicodeString(memory, address, pointer_width)` decodes a
`Length` / `MaximumLength` / `Buffer` record at `address`. Pass a
`pointer_width` of 8 for the 64-bit layout or 4 for the 32-bit one. Any other
width raises `ValueError`.

- `length()` and `maximum_length()` return the two size fields, in bytes.
- `as_utf8()` returns the text as a Python string, cut at the first NUL.

Reading the record's own fields raises `TranslationFailure` if they are not
mapped. The buffer is handled more gently: `read_utf16_as_utf8(memory,
address, nbytes)` returns `""` in each of these cases:

- a null address;
- a length of 0 or 1;
- a length over 4096 bytes;
- a buffer that cannot be read.

An odd length is rounded down. If only part of the buffer can be read and
that part holds a NUL, the read is tried once more, up to that NUL.

## PE images

```python
from memintro.pe import MemPE
from memintro.pe_exports import parse_exports
from memintro.pe_debug import guid, pdb_name

pe = MemPE(mem, image_base, False)
pe.is_amd64()
pe.entry_point_va()
for section in pe.sections():
    print(section.name, hex(section.virtual_address))

exports = parse_exports(pe)
print(exports.name())
for index in range(exports.number_of_functions()):
    print(exports.rva_by_index(index), exports.name_by_index(index, 256))

print(guid(pe), pdb_name(pe))
```

### Headers

`MemPE` exposes these attributes:

- `file_header`, a `FileHeader`;
- `optional_header`, an `OptionalHeader` in its 32-bit or 64-bit layout, chosen
  from the machine type;
- `dos_magic`, `e_lfanew` and `signature`.

`data_directory(index)` returns a `DataDirectory`. `section_header(index)`
returns a `SectionHeader`. `sections()` yields every section header in order.

`MemPE` raises `PEError` in these cases:

- the DOS, NT or optional header cannot be read;
- the DOS magic or NT signature is wrong, unless `force` is true.

An index out of range raises `IndexError`. An unreadable section header raises
`PEError`.

### Exports

`memintro.pe_exports.parse_exports(pe)` returns an `ExportTable`. An image
without an export directory gives an empty table, and `parse_exports` raises
`PEError` if the directory cannot be read. The table offers:

- `name()`, the module name;
- `base()`;
- `number_of_functions()`;
- `rva_by_index(index)`;
- `name_by_index(index, limit)`, which returns `None` for an entry that is
  exported by ordinal only;
- `index_by_ordinal(ordinal)`, which raises `ValueError` for an ordinal below
  the base.

### Debug information

`memintro.pe_debug.parse_debug(pe)` scans the debug directory and returns a
`DebugInfo` for the first CodeView entry it finds. If there is none, it
describes the last entry it looked at.

- `codeview_guid(pe, debug)` formats the identifier from an RSDS or NB10
  record.
- `tds_guid(pe)` builds one from the time stamp and the image size.
- `guid(pe)` uses the CodeView record whenever the image has a debug directory
  and falls back to `tds_guid` otherwise.
- `pdb_name(pe)` returns the PDB file name.

When a record is missing or cannot be read, these functions return `""` and
log a warning.

## What it does not do

memintro does not load snapshot files and does not translate virtual
addresses through page tables. You map the bytes yourself. It does not find
kernels, walk process or module lists, or resolve handle tables.

## Tests

```
pip install -e .[test]
pytest
```