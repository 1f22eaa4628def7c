"""
hexlens - declarative binary format decoding and byte-range bookmarks

The Reader: format/record/field definitions walked against a byte buffer,
            with data-dependent sizes, optional fields and stray-data capture
The Index:  a containment forest of named bookmarks over byte ranges
"""

__version__ = "0.1.0"

from hexlens.selection import ByteRange
from hexlens.definition import (
    ByteOrder,
    Condition,
    FieldDefinition,
    FieldRef,
    FormatDefinition,
    OptionalFieldDefinition,
    RecordDefinition,
    Repeat,
    RepeatedRecordDefinition,
)
from hexlens.record import Field, Record, STRAY_DATA_FIELD
from hexlens.reader import DecodeResult, FormatReader, UndefinedFieldReference, decode
from hexlens.catalog import NoFormatDefinitionAvailable, get_format, lookup
from hexlens.bookmarks import (
    Bookmark,
    BookmarkIndex,
    BookmarkNode,
    BookmarkNotFound,
    DuplicateName,
    DuplicateRange,
    InvalidBookmarkName,
)
from hexlens.search import FindOption, find

__all__ = [
    "ByteRange",
    "ByteOrder",
    "Condition",
    "FieldDefinition",
    "FieldRef",
    "FormatDefinition",
    "OptionalFieldDefinition",
    "RecordDefinition",
    "Repeat",
    "RepeatedRecordDefinition",
    "Field",
    "Record",
    "STRAY_DATA_FIELD",
    "DecodeResult",
    "FormatReader",
    "UndefinedFieldReference",
    "decode",
    "NoFormatDefinitionAvailable",
    "get_format",
    "lookup",
    "Bookmark",
    "BookmarkIndex",
    "BookmarkNode",
    "BookmarkNotFound",
    "DuplicateName",
    "DuplicateRange",
    "InvalidBookmarkName",
    "FindOption",
    "find",
]
