"""
hexlens PNG Format

An 8-byte signature followed by chunks until the end of the file. Chunk
lengths are big endian and count only the chunk's data.
"""

from __future__ import annotations

from hexlens.definition import (
    ByteOrder,
    FieldDefinition,
    FormatDefinition,
    RecordDefinition,
    Repeat,
    RepeatedRecordDefinition,
)

CHUNK_TYPES = {
    b"IHDR": "Image header",
    b"PLTE": "Palette",
    b"IDAT": "Image data",
    b"IEND": "Image trailer",
    b"tRNS": "Transparency",
    b"gAMA": "Image gamma",
    b"cHRM": "Primary chromaticities",
    b"sRGB": "Standard RGB color space",
    b"iCCP": "Embedded ICC profile",
    b"tEXt": "Textual data",
    b"zTXt": "Compressed textual data",
    b"iTXt": "International textual data",
    b"bKGD": "Background color",
    b"pHYs": "Physical pixel dimensions",
    b"sBIT": "Significant bits",
    b"sPLT": "Suggested palette",
    b"hIST": "Palette histogram",
    b"tIME": "Image last-modification time",
}


def png_format() -> FormatDefinition:
    high_bit = FieldDefinition("Signature1", 1)
    high_bit.set_description_for_value(b"\x89", "High bit set to detect 7-bit transmission")
    name = FieldDefinition("Signature2", 3)
    name.set_description_for_value(b"PNG", "PNG")

    header = RecordDefinition("Header", 8, [
        high_bit,
        name,
        FieldDefinition("LineEnding", 2),
        FieldDefinition("EOF", 1),
        FieldDefinition("LineEnding", 1),
    ], description="PNG signature")

    chunk_type = FieldDefinition("Type", 4)
    for value, label in CHUNK_TYPES.items():
        chunk_type.set_description_for_value(value, label)

    # Declared size covers the fixed part; Data is sized by the chunk itself
    chunk = RepeatedRecordDefinition("Chunk", 12, [
        FieldDefinition("Size", 4),
        chunk_type,
        FieldDefinition("Data", "Size"),
        FieldDefinition("CRC", 4),
    ], repeat=Repeat.UNTIL_EXHAUSTED, description="PNG chunk")

    return FormatDefinition(
        "Portable Network Graphics",
        [header, chunk],
        byte_order=ByteOrder.BIG_ENDIAN,
        description="Portable Network Graphics image",
        specification_url="https://www.w3.org/TR/png/",
    )
