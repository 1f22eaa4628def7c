"""
hexlens Format Catalog

Maps a file name to the FormatDefinition that decodes it, keyed on the
lower-cased extension. The table is plain data: add an entry to support
another extension.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, Optional

from hexlens.definition import ByteOrder, FormatDefinition
from hexlens.formats import bmp_format, cfb_format, pe_format, png_format

FORMATS: dict[str, Callable[[], FormatDefinition]] = {
    "bmp": bmp_format,
    "dib": bmp_format,
    "png": png_format,
    "exe": pe_format,
    "dll": pe_format,
    "ocx": pe_format,
    "doc": cfb_format,
    "ppt": cfb_format,
    "xls": cfb_format,
}


class NoFormatDefinitionAvailable(LookupError):
    """No definition is registered for the file's extension."""
    def __init__(self, file_name: str):
        super().__init__(
            f'No format definition available for extension: "{extension_of(file_name)}"'
        )
        self.file_name = file_name


@dataclass(frozen=True)
class FormatInfo:
    """Summary of a format for display next to the file."""
    name: str
    description: str
    specification_url: str
    byte_order: ByteOrder


def extension_of(file_name: str) -> str:
    """Lower-cased extension without the dot.

    A name without a dot is taken to be an extension already, so "png" and
    "image.png" both give "png".
    """
    name = PurePath(file_name).name
    return name.rsplit(".", 1)[-1].lower()


def extensions() -> list[str]:
    return sorted(FORMATS)


def lookup(file_name: str) -> Optional[FormatDefinition]:
    """The definition for `file_name`, or None when the extension is unknown.

    `file_name` may also be a bare extension such as "png", which is how
    the CLI's --as option picks a format.
    """
    factory = FORMATS.get(extension_of(file_name))
    if factory is None:
        return None
    return factory()


def has_format(file_name: str) -> bool:
    return extension_of(file_name) in FORMATS


def get_format(file_name: str) -> FormatDefinition:
    """Like lookup(), but a miss raises NoFormatDefinitionAvailable."""
    definition = lookup(file_name)
    if definition is None:
        raise NoFormatDefinitionAvailable(file_name)
    return definition


def format_info(file_name: str) -> FormatInfo:
    definition = get_format(file_name)
    return FormatInfo(
        name=definition.name,
        description=definition.description,
        specification_url=definition.specification_url,
        byte_order=definition.byte_order,
    )
