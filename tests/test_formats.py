"""
hexlens Format Test Suite

Decodes synthetic but well-formed files with the built-in definitions:
1. BMP: header, info header versions, color table, pixel data
2. PNG: signature and chunks until the end of the file
3. PE: DOS stub as stray data, PE32 / PE32+ alternatives, tables
4. CFB: compound file header
5. Catalog: extension lookup and format info
"""

import struct
import sys
import os
import zlib

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from hexlens import STRAY_DATA_FIELD, ByteOrder, decode
from hexlens import catalog
from hexlens.catalog import NoFormatDefinitionAvailable
from hexlens.definition import to_uint
from hexlens.formats import bmp_format, cfb_format, pe_format, png_format
from hexlens.formats.cfb import CFB_SIGNATURE


def build_minimal_bmp(info_size: int = 40, colors: int = 0, pixels: bytes = b"\xff" * 16) -> bytes:
    """Construct a 2x2 32-bit BMP with an info header of `info_size` bytes."""
    info = bytearray(info_size)
    struct.pack_into("<IiiHHIIiiII", info, 0,
        info_size,    # Size
        2,            # Width
        2,            # Height
        1,            # Planes
        32,           # BitsPerPixel
        0,            # Compression: BI_RGB
        len(pixels),  # ImageSize
        2835,         # XPixelsPerMeter
        2835,         # YPixelsPerMeter
        colors,       # ColorTableColorCount
        0,            # ImportantColors
    )
    palette = b"".join(bytes([i, i, i, 0]) for i in range(colors))
    data_offset = 14 + info_size + len(palette)
    header = struct.pack("<2sIII", b"BM", data_offset + len(pixels), 0, data_offset)
    return header + bytes(info) + palette + pixels


def build_minimal_png() -> bytes:
    """Construct a minimal valid PNG (1x1 white pixel)."""
    signature = b"\x89PNG\r\n\x1a\n"

    def make_chunk(chunk_type: bytes, data: bytes) -> bytes:
        length = struct.pack(">I", len(data))
        crc = struct.pack(">I", zlib.crc32(chunk_type + data) & 0xFFFFFFFF)
        return length + chunk_type + data + crc

    # IHDR: 1x1, 8-bit RGB
    ihdr = make_chunk(b"IHDR", struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0))

    # IDAT: compressed scanline (filter byte 0 + RGB white)
    idat = make_chunk(b"IDAT", zlib.compress(b"\x00\xff\xff\xff"))

    iend = make_chunk(b"IEND", b"")

    return signature + ihdr + idat + iend


def build_minimal_pe(pe32_plus: bool = True, directories: int = 2) -> bytes:
    """Construct a minimal PE with one .text section and a few data directories."""
    e_lfanew = 128

    # DOS Header + stub
    dos = bytearray(e_lfanew)
    dos[0:2] = b"MZ"
    struct.pack_into("<I", dos, 0x3C, e_lfanew)

    standard_size = 24 if pe32_plus else 28
    windows_size = 88 if pe32_plus else 68
    opt_size = standard_size + windows_size + 8 * directories

    # COFF Header
    coff = struct.pack("<HHIIIHH",
        0x8664 if pe32_plus else 0x014C,  # Machine
        1,         # NumberOfSections
        0,         # TimeDateStamp
        0,         # PointerToSymbolTable
        0,         # NumberOfSymbols
        opt_size,  # SizeOfOptionalHeader
        0x22,      # Characteristics
    )

    # Optional Header
    opt = bytearray(opt_size)
    struct.pack_into("<H", opt, 0, 0x20B if pe32_plus else 0x10B)
    struct.pack_into("<I", opt, 16, 0x1000)  # AddressOfEntryPoint
    struct.pack_into("<I", opt, 20, 0x1000)  # BaseOfCode
    win = standard_size
    if pe32_plus:
        struct.pack_into("<Q", opt, win, 0x140000000)  # ImageBase
    else:
        struct.pack_into("<I", opt, 24, 0x2000)       # BaseOfData
        struct.pack_into("<I", opt, win, 0x400000)    # ImageBase
    shift = 4 if pe32_plus else 0
    struct.pack_into("<II", opt, win + 4 + shift, 0x1000, 0x200)  # Section/FileAlignment
    struct.pack_into("<H", opt, win + 20 + shift, 6)              # MajorSubsystemVersion
    struct.pack_into("<II", opt, win + 28 + shift, 0x3000, 0x200) # SizeOfImage, SizeOfHeaders
    struct.pack_into("<H", opt, win + 40 + shift, 3)              # Subsystem: console
    struct.pack_into("<I", opt, win + windows_size - 4, directories)
    if directories > 1:
        # Import Table
        struct.pack_into("<II", opt, win + windows_size + 8, 0x2000, 0x28)

    # Section Header (.text)
    section = bytearray(40)
    section[0:6] = b".text\x00"
    struct.pack_into("<I", section, 8, 0x100)         # VirtualSize
    struct.pack_into("<I", section, 12, 0x1000)       # VirtualAddress
    struct.pack_into("<I", section, 16, 0x200)        # SizeOfRawData
    struct.pack_into("<I", section, 20, 0x200)        # PointerToRawData
    struct.pack_into("<I", section, 36, 0x60000020)   # Characteristics (CODE|EXEC|READ)

    headers = bytes(dos) + b"PE\x00\x00" + coff + bytes(opt) + bytes(section)
    padding = b"\x00" * (0x200 - len(headers))
    code = b"\x90" * 10 + b"\xc3" + b"\x00" * (0x200 - 11)

    return headers + padding + code


def build_minimal_cfb() -> bytes:
    """Construct a bare version 3 compound file header."""
    header = bytearray(512)
    header[0:8] = CFB_SIGNATURE
    struct.pack_into("<HHHHH", header, 24,
        0x003E,  # MinorVersion
        3,       # MajorVersion
        0xFFFE,  # ByteOrder
        9,       # SectorShift: 512-byte sectors
        6,       # MiniSectorShift
    )
    struct.pack_into("<I", header, 44, 1)       # NumberOfFATSectors
    struct.pack_into("<I", header, 56, 0x1000)  # MiniStreamCutoffSize
    header[76:512] = b"\xff" * 436              # DIFAT: all free
    return bytes(header)


def uint(record, name: str, byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN) -> int:
    return to_uint(record.get_field_by_name(name).value, byte_order)


# ============================================================================
# 1. BMP
# ============================================================================

def test_bmp_header_and_info_header():
    data = build_minimal_bmp()
    result = decode(data, bmp_format())

    assert [r.name for r in result] == ["Header", "InfoHeader", "PixelData"]

    header = result[0]
    assert header.size == 14
    assert header.get_field_by_name("Signature").value_as_utf8 == "BM"
    assert header.get_field_by_name("Signature").value_description == "BMP or DIB File"
    assert uint(header, "FileSize") == len(data)

    info = result[1]
    assert info.size == uint(info, "Size") == 40
    assert info.get_field_by_name("Size").value_description == "BITMAPINFOHEADER"
    assert uint(info, "Image Width") == 2
    assert info.get_field_by_name("Red Channel Bitmask") is None

    pixels = result[2]
    assert pixels.size == 16
    assert pixels.get_field_by_name("Data").value == b"\xff" * 16
    assert result.complete


@pytest.mark.parametrize("info_size, optional_fields", [
    (0x34, 3),    # V2: RGB masks
    (0x38, 4),    # V3: + alpha mask
    (0x6C, 9),    # V4: + color space and gamma
    (0x7C, 13),   # V5: + intent and ICC profile
])
def test_bmp_info_header_versions(info_size, optional_fields):
    result = decode(build_minimal_bmp(info_size=info_size), bmp_format())
    info = result[1]
    assert info.size == uint(info, "Size") == info_size
    assert len(info.fields) == 11 + optional_fields
    assert info.get_field_by_name(STRAY_DATA_FIELD) is None
    assert result.complete


def test_bmp_unknown_info_header_becomes_stray_data():
    # OS/2 2.x header (64 bytes): no optional fields apply
    info = decode(build_minimal_bmp(info_size=64), bmp_format())[1]
    assert info.size == 64
    stray = info.get_field_by_name(STRAY_DATA_FIELD)
    assert stray is not None
    assert stray.size == 24


def test_bmp_color_table():
    result = decode(build_minimal_bmp(colors=3), bmp_format())
    names = [r.name for r in result]
    assert names == ["Header", "InfoHeader", "Color Table", "Color Table", "Color Table", "PixelData"]
    assert result[4].get_field_by_name("Red").value == b"\x02"
    assert result[5].offset == 14 + 40 + 12


def test_bmp_truncated_pixel_data():
    data = build_minimal_bmp()[:-6]
    result = decode(data, bmp_format())
    assert result[2].get_field_by_name("Data").size == 10
    assert result.warnings


# ============================================================================
# 2. PNG
# ============================================================================

def test_png_chunks():
    data = build_minimal_png()
    result = decode(data, png_format())

    assert [r.name for r in result] == ["Header", "Chunk", "Chunk", "Chunk"]
    assert result[0].get_field_by_name("Signature2").value_as_utf8 == "PNG"

    types = [r.get_field_by_name("Type").value_as_utf8 for r in result[1:]]
    assert types == ["IHDR", "IDAT", "IEND"]
    assert result[1].get_field_by_name("Type").value_description == "Image header"

    ihdr = result[1]
    assert uint(ihdr, "Size", ByteOrder.BIG_ENDIAN) == 13
    assert ihdr.size == 25
    assert result[3].get_field_by_name("Data").size == 0
    assert result.complete


def test_png_is_big_endian():
    assert png_format().byte_order == ByteOrder.BIG_ENDIAN


def test_png_trailing_data_is_read_as_chunks():
    # Bytes after IEND keep being read as chunks until the buffer ends
    result = decode(build_minimal_png() + b"\x00" * 12, png_format())
    assert len(result) == 5
    assert result.complete


# ============================================================================
# 3. PE
# ============================================================================

def test_pe32_plus_headers():
    data = build_minimal_pe(pe32_plus=True, directories=2)
    result = decode(data, pe_format())

    assert [r.name for r in result] == [
        "DOSHeader", "PESignature", "COFFHeader", "OptionalStandardHeader",
        "OptionalWinSpecificHeader", "DataDirectory", "DataDirectory", "SectionHeader",
    ]

    dos = result[0]
    assert dos.get_field_by_name("Signature").value == b"MZ"
    assert dos.size == 128
    assert dos.get_field_by_name(STRAY_DATA_FIELD).size == 64

    assert result[1].get_field_by_name("Signature").value_description == "PE signature"
    assert result[2].get_field_by_name("Machine").value_description == "x64"

    standard = result[3]
    assert standard.get_field_by_name("Magic").value_description == "PE32+"
    assert standard.get_field_by_name("BaseOfData") is None
    assert standard.size == 24

    windows = result[4]
    assert windows.size == 88
    assert windows.get_field_by_name("ImageBase").size == 8
    assert uint(windows, "ImageBase") == 0x140000000
    assert windows.get_field_by_name("Subsystem").value_description == "Windows console"

    assert uint(result[6], "VirtualAddress") == 0x2000
    assert result[7].get_field_by_name("Name").value.rstrip(b"\x00") == b".text"

    # Section data is not described
    assert result.unread_size == len(data) - result[7].offset - 40


def test_pe32_headers():
    result = decode(build_minimal_pe(pe32_plus=False, directories=0), pe_format())
    names = [r.name for r in result]
    assert "DataDirectory" not in names

    standard = result[3]
    assert standard.size == 28
    assert uint(standard, "BaseOfData") == 0x2000

    windows = result[4]
    assert windows.size == 68
    assert windows.get_field_by_name("ImageBase").size == 4
    assert uint(windows, "ImageBase") == 0x400000
    assert windows.get_field_by_name("SizeOfStackReserve").size == 4


def test_pe_matches_pefile():
    pefile = pytest.importorskip("pefile")
    data = build_minimal_pe(pe32_plus=True, directories=2)
    pe = pefile.PE(data=data, fast_load=True)
    result = decode(data, pe_format())

    coff, standard, windows = result[2], result[3], result[4]
    assert uint(coff, "Machine") == pe.FILE_HEADER.Machine
    assert uint(coff, "NumberOfSections") == pe.FILE_HEADER.NumberOfSections
    assert uint(standard, "AddressOfEntryPoint") == pe.OPTIONAL_HEADER.AddressOfEntryPoint
    assert uint(windows, "ImageBase") == pe.OPTIONAL_HEADER.ImageBase
    assert uint(windows, "FileAlignment") == pe.OPTIONAL_HEADER.FileAlignment
    assert uint(windows, "NumberOfRvaAndSizes") == pe.OPTIONAL_HEADER.NumberOfRvaAndSizes

    section = result[-1]
    assert uint(section, "PointerToRawData") == pe.sections[0].PointerToRawData
    assert section.offset == pe.sections[0].get_file_offset()


# ============================================================================
# 4. CFB
# ============================================================================

def test_cfb_header():
    result = decode(build_minimal_cfb(), cfb_format())
    assert len(result) == 1
    header = result[0]
    assert header.size == 512
    assert header.get_field_by_name("Signature").value_description == "Compound File Binary"
    assert header.get_field_by_name("MajorVersion").value_description == "Version 3 (512-byte sectors)"
    assert header.get_field_by_name("ByteOrder").value_description == "Little endian"
    assert uint(header, "SectorShift") == 9
    assert header.get_field_by_name("DIFAT").size == 436
    assert result.complete


# ============================================================================
# 5. Catalog
# ============================================================================

@pytest.mark.parametrize("file_name, format_name", [
    ("picture.bmp", "Bitmap"),
    ("PICTURE.DIB", "Bitmap"),
    ("image.png", "Portable Network Graphics"),
    ("notepad.exe", "Microsoft Portable Executable"),
    ("shell32.DLL", "Microsoft Portable Executable"),
    ("control.ocx", "Microsoft Portable Executable"),
    ("letter.doc", "Compound File Binary"),
    ("slides.ppt", "Compound File Binary"),
    ("/tmp/some.dir/report.xls", "Compound File Binary"),
])
def test_lookup_by_extension(file_name, format_name):
    assert catalog.lookup(file_name).name == format_name
    assert catalog.has_format(file_name)


def test_lookup_accepts_a_bare_extension():
    # `hexlens decode --as png` passes just the extension
    assert catalog.lookup("png").name == "Portable Network Graphics"
    assert catalog.get_format("EXE").name == "Microsoft Portable Executable"
    assert catalog.extension_of("png") == "png"
    assert catalog.extension_of("archive.tar.png") == "png"


def test_lookup_miss():
    assert catalog.lookup("archive.zip") is None
    assert catalog.lookup("README") is None
    assert not catalog.has_format("archive.zip")
    with pytest.raises(NoFormatDefinitionAvailable, match="zip"):
        catalog.get_format("archive.zip")


def test_lookup_returns_fresh_definitions():
    first = catalog.get_format("a.bmp")
    first.records[0].fields[0].set_description_for_value(b"XX", "changed")
    second = catalog.get_format("a.bmp")
    assert second.records[0].fields[0].get_description_for_value(b"XX") is None


def test_format_info():
    info = catalog.format_info("image.png")
    assert info.name == "Portable Network Graphics"
    assert info.byte_order == ByteOrder.BIG_ENDIAN
    assert info.specification_url.startswith("https://")


def test_extensions():
    assert catalog.extensions() == sorted(["bmp", "dib", "png", "exe", "dll", "ocx", "doc", "ppt", "xls"])


def test_catalog_and_decoder_end_to_end():
    data = build_minimal_bmp()
    records = decode(data, catalog.get_format("sample.bmp"))
    assert len(records) == 3
