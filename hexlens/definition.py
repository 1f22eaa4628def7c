"""
hexlens Definition Model

Declarative descriptions of a binary format: a FormatDefinition is an
ordered list of RecordDefinitions, each an ordered list of
FieldDefinitions. Nothing here reads bytes; the reader walks these
definitions against a buffer.

Sizes and repeat counts are either literal integers or a FieldRef, a
reference to a field decoded earlier whose value holds the number:

    FieldDefinition("Data", "Size")                  # same record
    RecordDefinition("PixelData", "InfoHeader.ImageSize", [...])

Key concepts:
- Optional fields: a FieldDefinition with conditions is only decoded when
  every referenced field currently holds one of the accepted byte values
- Repeated records: a RecordDefinition with a repeat count (literal,
  symbolic, or Repeat.UNTIL_EXHAUSTED)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence, Union


class ByteOrder(Enum):
    """Byte order used to turn a referenced field into a size or count."""
    BIG_ENDIAN = "big"
    LITTLE_ENDIAN = "little"


class Repeat(Enum):
    """Tagged repeat options that are not a plain count."""
    UNTIL_EXHAUSTED = "until_exhausted"  # Keep reading until the buffer ends


def to_uint(value: bytes, byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN) -> int:
    """Interpret raw bytes as an unsigned integer. Empty bytes read as 0."""
    return int.from_bytes(bytes(value), byte_order.value, signed=False)


@dataclass(frozen=True)
class FieldRef:
    """A symbolic reference to a decoded field.

    The name is either a bare field name, resolved inside the record being
    decoded, or a dotted "Record.Field" name resolved across records.
    """
    name: str

    def keys(self, record_name: str) -> Iterator[tuple[str, str]]:
        """Candidate (record, field) keys, in resolution order."""
        yield (record_name, self.name)
        record, dot, field_name = self.name.partition(".")
        if dot:
            yield (record, field_name)

    def __str__(self) -> str:
        return self.name


SizeSpec = Union[int, FieldRef]
RepeatSpec = Union[int, FieldRef, Repeat]


def _as_size(value: Union[int, str, FieldRef]) -> SizeSpec:
    if isinstance(value, str):
        return FieldRef(value)
    return value


@dataclass(frozen=True)
class Condition:
    """Gate for an optional field.

    Satisfied when the referenced field's raw value equals one of
    `values` byte for byte.
    """
    field: FieldRef
    values: tuple[bytes, ...]

    def __init__(self, field: Union[str, FieldRef], values: Iterable[bytes]) -> None:
        object.__setattr__(self, "field", FieldRef(field) if isinstance(field, str) else field)
        object.__setattr__(self, "values", tuple(bytes(v) for v in values))

    def accepts(self, value: bytes) -> bool:
        return bytes(value) in self.values


@dataclass
class FieldDefinition:
    """Prototype for a field.

    A field with `conditions` set is optional: it only occupies bytes when
    all of its conditions hold at decode time.
    """
    name: str
    size: SizeSpec
    conditions: Optional[tuple[Condition, ...]] = None
    description: Optional[str] = None
    _value_descriptions: dict[bytes, str] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.size = _as_size(self.size)
        if self.conditions is not None:
            self.conditions = tuple(self.conditions)

    @property
    def is_optional(self) -> bool:
        return self.conditions is not None

    def set_description_for_value(self, value: bytes, description: str) -> None:
        """Associate a human-readable label with an exact raw value.

        e.g. the BMP signature b"BM" is labelled "BMP or DIB File".
        """
        self._value_descriptions[bytes(value)] = description

    def get_description_for_value(self, value: bytes) -> Optional[str]:
        return self._value_descriptions.get(bytes(value))


def OptionalFieldDefinition(
    name: str,
    size: Union[int, str, FieldRef],
    conditions: Sequence[Condition],
    description: Optional[str] = None,
) -> FieldDefinition:
    """A FieldDefinition that is only decoded when `conditions` hold."""
    return FieldDefinition(name, size, tuple(conditions), description)


@dataclass
class RecordDefinition:
    """Prototype for a record, i.e. how to read one record's data.

    `size` is the declared size of the whole record. When it is larger
    than the fields account for, the remainder is read as stray data.
    A record with `repeat` set is read repeatedly.
    """
    name: str
    size: SizeSpec
    fields: list[FieldDefinition]
    description: Optional[str] = None
    repeat: Optional[RepeatSpec] = None

    def __post_init__(self) -> None:
        self.size = _as_size(self.size)
        if isinstance(self.repeat, str):
            self.repeat = FieldRef(self.repeat)
        self.fields = list(self.fields)

    @property
    def is_repeated(self) -> bool:
        return self.repeat is not None


def RepeatedRecordDefinition(
    name: str,
    size: Union[int, str, FieldRef],
    fields: Sequence[FieldDefinition],
    repeat: Union[int, str, FieldRef, Repeat],
    description: Optional[str] = None,
) -> RecordDefinition:
    """A RecordDefinition read `repeat` times in a row."""
    return RecordDefinition(name, size, list(fields), description, repeat)


@dataclass
class FormatDefinition:
    """A complete file format: ordered record definitions plus metadata."""
    name: str
    records: list[RecordDefinition]
    byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN
    description: str = ""
    specification_url: str = ""

    def __post_init__(self) -> None:
        self.records = list(self.records)

    def __repr__(self) -> str:
        return (
            f"<FormatDefinition {self.name!r} records={len(self.records)} "
            f"{self.byte_order.name}>"
        )
