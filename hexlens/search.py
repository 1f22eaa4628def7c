"""
hexlens Search

Linear search for text or hex byte patterns in a buffer. Matches are
non-overlapping and reported left to right as closed ByteRanges.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Union

from hexlens.selection import ByteRange

_HEX_DIGITS = re.compile(rb"^[0-9a-fA-F]+$")
_WHITESPACE = re.compile(r"\s")


class FindOption(Enum):
    DEFAULT = "default"
    IGNORE_CASE = "ignore_case"      # ASCII letters only
    INTERPRET_AS_HEX = "hex"         # "4D 5A" searches for b"MZ"


class InvalidSearchPattern(ValueError):
    """The search text is empty or not a valid hex string."""


def hex_to_bytes(text: str) -> bytes:
    """Convert "6162", "61 62" or "162" (odd lengths are left-padded) to bytes."""
    digits = _WHITESPACE.sub("", text)
    if not digits or not _HEX_DIGITS.match(digits.encode("ascii", errors="replace")):
        raise InvalidSearchPattern(f'"{text}" is not a valid hexadecimal string')
    if len(digits) % 2:
        digits = "0" + digits
    return bytes.fromhex(digits)


def find(
    data: Union[bytes, bytearray, memoryview],
    text: str,
    option: FindOption = FindOption.DEFAULT,
    max_matches: Optional[int] = None,
) -> list[ByteRange]:
    """Find `text` in `data`.

    Args:
        data: Buffer to search
        text: Text (UTF-8 encoded before matching) or a hex string
        option: How to interpret and compare `text`
        max_matches: Stop after this many matches

    Returns:
        Matches in ascending offset order
    """
    if option == FindOption.INTERPRET_AS_HEX:
        pattern = hex_to_bytes(text)
    else:
        pattern = text.encode("utf-8")
    if not pattern:
        raise InvalidSearchPattern("Search text is empty")

    flags = re.IGNORECASE if option == FindOption.IGNORE_CASE else 0
    matcher = re.compile(re.escape(pattern), flags)

    matches: list[ByteRange] = []
    for match in matcher.finditer(bytes(data)):
        if max_matches is not None and len(matches) >= max_matches:
            break
        matches.append(ByteRange(match.start(), match.end() - 1))
    return matches
