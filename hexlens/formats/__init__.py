"""
hexlens Built-in Formats

Each factory returns a fresh FormatDefinition, so value descriptions
added by a caller never leak into other decodes.
"""

from hexlens.formats.bmp import bmp_format
from hexlens.formats.png import png_format
from hexlens.formats.pe import pe_format
from hexlens.formats.cfb import cfb_format

__all__ = [
    "bmp_format",
    "png_format",
    "pe_format",
    "cfb_format",
]
