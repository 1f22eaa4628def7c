"""
hexlens Format Reader

Walks a FormatDefinition against a byte buffer and produces decoded
Records. The whole buffer is decoded eagerly in one pass.

Resolution rules:
- A symbolic size, repeat count or condition names a field decoded
  earlier. A bare name is looked up in the current record first; a dotted
  "Record.Field" name is then looked up across records. The most recently
  decoded field under a name wins.
- Symbolic numbers are unsigned integers in the format's byte order.
- Slicing past the end of the buffer truncates instead of failing, so
  corrupt and partial files still decode as far as they go. Callers that
  need strict checking compare Field.size with what they expected.
- Record bytes not covered by any field become one "__StrayData__" field.
- Bytes left over after the last definition are reported as a warning.

Usage:
    result = decode(data, png_format())
    for record in result:
        print(record.name, record.size)
    if result.unread_size:
        print(result.warnings)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Union

from hexlens.definition import (
    ByteOrder,
    FieldDefinition,
    FieldRef,
    FormatDefinition,
    RecordDefinition,
    Repeat,
    SizeSpec,
    to_uint,
)
from hexlens.record import STRAY_DATA_FIELD, Field, Record

logger = logging.getLogger(__name__)


class UndefinedFieldReference(LookupError):
    """A size, count or condition names a field that has not been decoded."""
    def __init__(self, reference: FieldRef, record_name: str):
        super().__init__(
            f'Field with name "{reference}" does not exist '
            f'(referenced from record "{record_name}")'
        )
        self.reference = reference
        self.record_name = record_name


@dataclass(frozen=True)
class DecodeResult:
    """Everything one decode pass produced.

    Iterating, indexing and len() go straight to the records, so the
    result can be used wherever a list of records is expected.

    Attributes:
        records: Decoded records in buffer order
        buffer_size: Length of the decoded buffer
        unread_size: Bytes after the last record that no definition read
        warnings: Non-fatal diagnostics (truncation, unread data)
    """
    records: tuple[Record, ...]
    buffer_size: int
    unread_size: int = 0
    warnings: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        """Whether every byte of the buffer was accounted for."""
        return self.unread_size == 0

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> Record:
        return self.records[index]

    def __repr__(self) -> str:
        return (
            f"<DecodeResult records={len(self.records)} "
            f"unread={self.unread_size} warnings={len(self.warnings)}>"
        )


@dataclass
class _DecodeState:
    """Accumulator for one decode pass. Never shared between calls."""
    buffer: bytes
    byte_order: ByteOrder
    fields: dict[tuple[str, str], Field] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def lookup(self, reference: FieldRef, record_name: str) -> Field:
        for key in reference.keys(record_name):
            found = self.fields.get(key)
            if found is not None:
                return found
        raise UndefinedFieldReference(reference, record_name)

    def resolve(self, spec: SizeSpec, record_name: str) -> int:
        if isinstance(spec, FieldRef):
            return to_uint(self.lookup(spec, record_name).value, self.byte_order)
        return spec

    def slice(self, definition: FieldDefinition, offset: int, size: int) -> Field:
        value = self.buffer[offset:offset + size]
        if len(value) < size:
            self.warn(
                f"Field {definition.name!r} at {offset:#x} truncated: "
                f"expected {size} bytes, got {len(value)}"
            )
        return Field(definition, offset, len(value), value)


def _conditions_hold(state: _DecodeState, definition: FieldDefinition, record_name: str) -> bool:
    # Every condition must hold; within a condition any one value may match
    return all(
        condition.accepts(state.lookup(condition.field, record_name).value)
        for condition in definition.conditions
    )


def _read_record(
    state: _DecodeState,
    definition: RecordDefinition,
    offset: int,
) -> tuple[Record, int]:
    """Read one record at `offset`. Returns the record and bytes consumed."""
    record = Record(definition, offset)
    cursor = offset

    for field_definition in definition.fields:
        size = state.resolve(field_definition.size, definition.name)

        # Optional field whose conditions fail takes no space
        if field_definition.is_optional and not _conditions_hold(state, field_definition, definition.name):
            continue

        decoded = state.slice(field_definition, cursor, size)
        record.fields.append(decoded)
        state.fields[(definition.name, field_definition.name)] = decoded
        cursor += size

    # The record may declare more bytes than its fields cover, e.g. a newer
    # header version than the definition knows about
    field_total = cursor - offset
    record_size = state.resolve(definition.size, definition.name)
    if record_size > field_total:
        stray = FieldDefinition(STRAY_DATA_FIELD, record_size - field_total)
        logger.debug(
            "Record %r at %#x: %d stray bytes", definition.name, offset, stray.size,
        )
        record.fields.append(state.slice(stray, cursor, stray.size))

    return record, max(record_size, field_total)


def _read_repeated_records(
    state: _DecodeState,
    definition: RecordDefinition,
    offset: int,
) -> tuple[list[Record], int]:
    records: list[Record] = []
    if definition.repeat is Repeat.UNTIL_EXHAUSTED:
        limit = None
    else:
        limit = state.resolve(definition.repeat, definition.name)

    cursor = offset
    while limit is None or len(records) < limit:
        if cursor >= len(state.buffer):
            break
        record, consumed = _read_record(state, definition, cursor)
        records.append(record)
        cursor += consumed

        # Zero-size records never advance, whatever the count says
        if consumed == 0:
            state.warn(f"Record {definition.name!r} at {cursor:#x} consumed no bytes; stopping repeat")
            break

    return records, cursor - offset


class FormatReader:
    """Decodes buffers with one FormatDefinition.

    The reader holds no per-buffer state; each read() starts from scratch,
    so one reader can decode any number of buffers.
    """

    def __init__(self, format: FormatDefinition) -> None:
        self.format = format

    def read(self, buffer: Union[bytes, bytearray, memoryview]) -> DecodeResult:
        """Decode `buffer`.

        Raises:
            UndefinedFieldReference: a definition refers to a field that was
                never decoded. No partial result is returned.
        """
        state = _DecodeState(bytes(buffer), self.format.byte_order)
        records: list[Record] = []
        cursor = 0

        for definition in self.format.records:
            if definition.is_repeated:
                repeated, consumed = _read_repeated_records(state, definition, cursor)
                records.extend(repeated)
            else:
                record, consumed = _read_record(state, definition, cursor)
                records.append(record)
            cursor += consumed

        unread = max(len(state.buffer) - cursor, 0)
        if unread:
            state.warn(f"{self.format.name}: unread data size {unread} bytes at {cursor:#x}")

        logger.debug(
            "Decoded %d records from %d bytes as %s",
            len(records), len(state.buffer), self.format.name,
        )
        return DecodeResult(
            records=tuple(records),
            buffer_size=len(state.buffer),
            unread_size=unread,
            warnings=tuple(state.warnings),
        )

    def __repr__(self) -> str:
        return f"<FormatReader {self.format.name!r}>"


def decode(buffer: Union[bytes, bytearray, memoryview], format: FormatDefinition) -> DecodeResult:
    """Decode `buffer` with `format`. See FormatReader.read()."""
    return FormatReader(format).read(buffer)
