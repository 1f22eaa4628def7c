"""
hexlens Decoded Records

Field and Record are what the reader produces: each pairs a shared,
read-only definition with the offset, size and raw value found in one
particular buffer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from hexlens.definition import FieldDefinition, RecordDefinition
from hexlens.selection import ByteRange

# Name of the pseudo-field covering record bytes no definition accounts for
STRAY_DATA_FIELD = "__StrayData__"


@dataclass(frozen=True)
class Field:
    """A decoded field.

    Attributes:
        definition: The FieldDefinition this field was read with
        offset: Absolute offset of the first byte in the buffer
        size: Number of bytes actually read (short when the buffer ran out)
        value: The raw bytes
    """
    definition: FieldDefinition
    offset: int
    size: int
    value: bytes

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def value_as_utf8(self) -> str:
        # One character per byte, the way the hex view renders text
        return self.value.decode("latin-1")

    @property
    def value_description(self) -> Optional[str]:
        return self.definition.get_description_for_value(self.value)

    @property
    def range(self) -> Optional[ByteRange]:
        if self.size == 0:
            return None
        return ByteRange.of_length(self.offset, self.size)

    def __repr__(self) -> str:
        return f"<Field {self.name!r} @{self.offset:#x} ({self.size} bytes)>"


@dataclass
class Record:
    """A decoded record: a contiguous, named group of fields."""
    definition: RecordDefinition
    offset: int
    fields: list[Field] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def size(self) -> int:
        return sum(f.size for f in self.fields)

    @property
    def range(self) -> Optional[ByteRange]:
        if self.size == 0:
            return None
        return ByteRange.of_length(self.offset, self.size)

    def get_field_by_name(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __repr__(self) -> str:
        return f"<Record {self.name!r} @{self.offset:#x} fields={len(self.fields)} size={self.size}>"
