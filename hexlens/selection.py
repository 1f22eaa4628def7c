"""
hexlens Byte Ranges

A ByteRange is a closed interval [start, end] over byte offsets. It is the
selection the viewer hands around: what the user highlighted, what a decoded
field covers, and the key of every bookmark.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ByteRange:
    """A closed, normalized interval of byte offsets.

    Both ends are inclusive. Arguments may be given in either order;
    the stored range always satisfies start <= end.
    """
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            # Selections dragged backwards arrive reversed
            start, end = self.end, self.start
            object.__setattr__(self, "start", start)
            object.__setattr__(self, "end", end)

    @classmethod
    def of_length(cls, offset: int, length: int) -> ByteRange:
        """The range covering `length` bytes starting at `offset`."""
        if length < 1:
            raise ValueError(f"Cannot build a range of length {length}")
        return cls(offset, offset + length - 1)

    @property
    def from_offset(self) -> int:
        return self.start

    @property
    def to_offset(self) -> int:
        return self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def contains(self, other: ByteRange) -> bool:
        return self.start <= other.start and self.end >= other.end

    def contains_offset(self, offset: int) -> bool:
        return self.start <= offset <= self.end

    def __repr__(self) -> str:
        return f"<ByteRange [{self.start:#x}..{self.end:#x}] ({self.size} bytes)>"
