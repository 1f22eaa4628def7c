"""
hexlens BMP Format

Windows bitmap: a 14-byte file header followed by a DIB info header whose
own Size field tells which header version is present. Later versions add
trailing fields, declared here as optional fields gated on that Size.
"""

from __future__ import annotations

from hexlens.definition import (
    Condition,
    FieldDefinition,
    FormatDefinition,
    OptionalFieldDefinition,
    RecordDefinition,
    RepeatedRecordDefinition,
)

# InfoHeader.Size markers, little endian
V2_INFO_HEADER_SIZE = bytes([0x34, 0x00, 0x00, 0x00])
V3_INFO_HEADER_SIZE = bytes([0x38, 0x00, 0x00, 0x00])
V4_INFO_HEADER_SIZE = bytes([0x6C, 0x00, 0x00, 0x00])
V5_INFO_HEADER_SIZE = bytes([0x7C, 0x00, 0x00, 0x00])


def _since(*versions: bytes) -> list[Condition]:
    return [Condition("Size", versions)]


def bmp_format() -> FormatDefinition:
    signature = FieldDefinition("Signature", 2)
    signature.set_description_for_value(b"BM", "BMP or DIB File")
    signature.set_description_for_value(b"BA", "OS/2 struct bitmap array")
    signature.set_description_for_value(b"CI", "OS/2 struct color icon")
    signature.set_description_for_value(b"CP", "OS/2 const color pointer")
    signature.set_description_for_value(b"IC", "OS/2 struct icon")
    signature.set_description_for_value(b"PT", "OS/2 pointer")

    header = RecordDefinition("Header", 14, [
        signature,
        FieldDefinition("FileSize", 4),
        FieldDefinition("reserved", 4),
        FieldDefinition("DataOffset", 4),
    ], description="Bitmap file header")

    size = FieldDefinition("Size", 4)
    size.set_description_for_value(bytes([0x0C, 0, 0, 0]), "BITMAPCOREHEADER")
    size.set_description_for_value(bytes([0x28, 0, 0, 0]), "BITMAPINFOHEADER")
    size.set_description_for_value(V2_INFO_HEADER_SIZE, "BITMAPV2INFOHEADER")
    size.set_description_for_value(V3_INFO_HEADER_SIZE, "BITMAPV3INFOHEADER")
    size.set_description_for_value(V4_INFO_HEADER_SIZE, "BITMAPV4HEADER")
    size.set_description_for_value(V5_INFO_HEADER_SIZE, "BITMAPV5HEADER")

    v2_and_later = (V2_INFO_HEADER_SIZE, V3_INFO_HEADER_SIZE, V4_INFO_HEADER_SIZE, V5_INFO_HEADER_SIZE)
    v3_and_later = v2_and_later[1:]
    v4_and_later = v2_and_later[2:]

    info_header = RecordDefinition("InfoHeader", "InfoHeader.Size", [
        size,
        FieldDefinition("Image Width", 4),
        FieldDefinition("Image Height", 4),
        FieldDefinition("Planes (Bits per pixel)", 2),
        FieldDefinition("BitsPerPixel", 2),
        FieldDefinition("Compression", 4),
        FieldDefinition("ImageSize", 4),
        FieldDefinition("XPixelsPerMeter", 4),
        FieldDefinition("YPixelsPerMeter", 4),
        FieldDefinition("ColorTableColorCount", 4),
        FieldDefinition("ImportantColors", 4),
        OptionalFieldDefinition("Red Channel Bitmask", 4, _since(*v2_and_later)),
        OptionalFieldDefinition("Green Channel Bitmask", 4, _since(*v2_and_later)),
        OptionalFieldDefinition("Blue Channel Bitmask", 4, _since(*v2_and_later)),
        OptionalFieldDefinition("Alpha Channel Bitmask", 4, _since(*v3_and_later)),
        OptionalFieldDefinition("Color Space Type", 4, _since(*v4_and_later)),
        OptionalFieldDefinition("Color Space Endpoints", 36, _since(*v4_and_later)),
        OptionalFieldDefinition("Gamma for Red Channel", 4, _since(*v4_and_later)),
        OptionalFieldDefinition("Gamma for Green Channel", 4, _since(*v4_and_later)),
        OptionalFieldDefinition("Gamma for Blue Channel", 4, _since(*v4_and_later)),
        OptionalFieldDefinition("Intent", 4, _since(V5_INFO_HEADER_SIZE)),
        OptionalFieldDefinition("ICC Profile Data", 4, _since(V5_INFO_HEADER_SIZE)),
        OptionalFieldDefinition("ICC Profile Size", 4, _since(V5_INFO_HEADER_SIZE)),
        OptionalFieldDefinition("reserved", 4, _since(V5_INFO_HEADER_SIZE)),
    ], description="DIB header")

    color_table = RepeatedRecordDefinition("Color Table", 4, [
        FieldDefinition("Blue", 1),
        FieldDefinition("Green", 1),
        FieldDefinition("Red", 1),
        FieldDefinition("reserved", 1),
    ], repeat="InfoHeader.ColorTableColorCount", description="Palette entry")

    pixel_data = RecordDefinition("PixelData", "InfoHeader.ImageSize", [
        FieldDefinition("Data", "InfoHeader.ImageSize"),
    ], description="Pixel array")

    return FormatDefinition(
        "Bitmap",
        [header, info_header, color_table, pixel_data],
        description="Windows and OS/2 bitmap image",
        specification_url="https://en.wikipedia.org/wiki/BMP_file_format",
    )
