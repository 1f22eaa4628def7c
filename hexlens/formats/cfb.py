"""
hexlens CFB Format

Microsoft Compound File Binary, the container behind legacy Office
documents. Only the 512-byte header is described.
"""

from __future__ import annotations

from hexlens.definition import FieldDefinition, FormatDefinition, RecordDefinition

CFB_SIGNATURE = bytes([0xD0, 0xCF, 0x11, 0xE0, 0xA1, 0xB1, 0x1A, 0xE1])


def cfb_format() -> FormatDefinition:
    signature = FieldDefinition("Signature", 8)
    signature.set_description_for_value(CFB_SIGNATURE, "Compound File Binary")

    major_version = FieldDefinition("MajorVersion", 2)
    major_version.set_description_for_value(b"\x03\x00", "Version 3 (512-byte sectors)")
    major_version.set_description_for_value(b"\x04\x00", "Version 4 (4096-byte sectors)")

    byte_order = FieldDefinition("ByteOrder", 2)
    byte_order.set_description_for_value(b"\xfe\xff", "Little endian")

    header = RecordDefinition("Header", 512, [
        signature,
        FieldDefinition("CLSID", 16),
        FieldDefinition("MinorVersion", 2),
        major_version,
        byte_order,
        FieldDefinition("SectorShift", 2),
        FieldDefinition("MiniSectorShift", 2),
        FieldDefinition("Reserved", 6),
        FieldDefinition("NumberOfDirectorySectors", 4),
        FieldDefinition("NumberOfFATSectors", 4),
        FieldDefinition("First Directory Sector Location", 4),
        FieldDefinition("TransactionSignatureNumber", 4),
        FieldDefinition("MiniStreamCutoffSize", 4),
        FieldDefinition("FirstMiniFATSectorLocation", 4),
        FieldDefinition("NumberOfMiniFATSectors", 4),
        FieldDefinition("FirstDIFATSectorLocation", 4),
        FieldDefinition("NumberOfDIFATSectors", 4),
        FieldDefinition("DIFAT", 436),
    ], description="Compound file header")

    return FormatDefinition(
        "Compound File Binary",
        [header],
        description="Microsoft's Compound File Binary format",
        specification_url=(
            "https://docs.microsoft.com/en-us/openspecs/windows_protocols/"
            "ms-cfb/53989ce4-7b05-4f8d-829b-d08d6148375b"
        ),
    )
