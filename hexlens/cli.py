#!/usr/bin/env python3
"""
hexlens: binary file inspector

Command-line interface for decoding and annotating binary files.

Usage:
    hexlens formats                         List the formats hexlens can decode
    hexlens decode <file>                   Decode a file into records and fields
    hexlens bookmarks <file>                Bookmark every decoded record and field
    hexlens find <file> <pattern>           Search a file for text or hex bytes
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence

from hexlens import catalog
from hexlens.bookmarks import BookmarkIndex, BookmarkNode, DuplicateName, DuplicateRange
from hexlens.reader import DecodeResult, UndefinedFieldReference, decode
from hexlens.search import FindOption, InvalidSearchPattern, find


# ============================================================================
# Formatting helpers
# ============================================================================

class C:
    """ANSI colors."""
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    RESET = "\033[0m"

    @staticmethod
    def off():
        C.BOLD = C.DIM = C.RED = C.GREEN = C.YELLOW = C.CYAN = C.RESET = ""


def header(text: str) -> str:
    return f"\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}\n{C.BOLD}  {text}{C.RESET}\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}"


def ok(text: str) -> str:
    return f"  {C.GREEN}✓{C.RESET} {text}"


def warn(text: str) -> str:
    return f"  {C.YELLOW}⚠{C.RESET} {text}"


def fail(text: str) -> str:
    return f"  {C.RED}✗{C.RESET} {text}"


def filesize(n: int) -> str:
    if n > 1_000_000:
        return f"{n/1_000_000:.1f} MB"
    if n > 1_000:
        return f"{n/1_000:.1f} KB"
    return f"{n} B"


def hex_preview(value: bytes, limit: int = 16) -> str:
    text = " ".join(f"{b:02x}" for b in value[:limit])
    if len(value) > limit:
        text += " …"
    return text


# ============================================================================
# Commands
# ============================================================================

def _decode_file(args) -> tuple[bytes, DecodeResult]:
    data = Path(args.file).read_bytes()
    definition = catalog.get_format(args.format or args.file)
    print(header(f"{definition.name.upper()}: {args.file}"))
    print(f"  {C.DIM}Size: {filesize(len(data))}  |  Byte order: {definition.byte_order.name}{C.RESET}")
    return data, decode(data, definition)


def _print_warnings(result: DecodeResult) -> None:
    for message in result.warnings:
        print(warn(message))
    if result.complete:
        print(ok("Every byte accounted for"))


def cmd_formats(args):
    """List registered extensions and their formats."""
    print(header("FORMATS"))
    by_name: dict[str, list[str]] = {}
    infos = {}
    for ext in catalog.extensions():
        info = catalog.format_info(ext)
        by_name.setdefault(info.name, []).append(ext)
        infos[info.name] = info

    for name, exts in by_name.items():
        info = infos[name]
        print(f"\n  {C.BOLD}{name}{C.RESET}  {C.DIM}({', '.join(exts)}){C.RESET}")
        print(f"    {info.description}  [{info.byte_order.name}]")
        print(f"    {C.DIM}{info.specification_url}{C.RESET}")


def cmd_decode(args):
    """Decode a file with the definition for its extension."""
    _, result = _decode_file(args)

    for record in result:
        print(f"\n  {C.BOLD}{record.name}{C.RESET}  {C.CYAN}{record.offset:#08x}{C.RESET}  {filesize(record.size)}")
        for field in record:
            label = field.value_description
            desc = f"  {C.GREEN}{label}{C.RESET}" if label else ""
            print(f"    {C.DIM}{field.offset:#08x}{C.RESET} {field.name:32s} {field.size:>6}  "
                  f"{hex_preview(field.value, 32 if args.verbose else 8)}{desc}")

    print()
    print(f"  {len(result)} record(s)")
    _print_warnings(result)


def _print_node(node: BookmarkNode, depth: int) -> None:
    sel = node.bookmark.selection
    print(f"  {'  ' * depth}{C.CYAN}[{sel.start:#08x}..{sel.end:#08x}]{C.RESET} {node.bookmark.name}"
          f"{C.DIM}{'  ' + node.bookmark.description if node.bookmark.description else ''}{C.RESET}")
    for child in node.children:
        _print_node(child, depth + 1)


def cmd_bookmarks(args):
    """Decode a file and show the bookmark forest built from its records."""
    _, result = _decode_file(args)
    index = BookmarkIndex()
    index.add_records(result)

    print(f"\n  {C.BOLD}{len(index)} bookmark(s){C.RESET}\n")
    for node in index.tree():
        _print_node(node, 0)


def cmd_find(args):
    """Search a file for a text or hex pattern."""
    data = Path(args.file).read_bytes()
    if args.hex:
        option = FindOption.INTERPRET_AS_HEX
    elif args.ignore_case:
        option = FindOption.IGNORE_CASE
    else:
        option = FindOption.DEFAULT

    print(header(f"FIND: {args.pattern!r} in {args.file}"))
    matches = find(data, args.pattern, option, max_matches=args.limit)
    if not matches:
        print(fail("No matches"))
        return

    print(ok(f"{len(matches)} match(es)"))
    for match in matches:
        print(f"    {C.CYAN}{match.start:#08x}{C.RESET}  {hex_preview(data[match.start:match.end + 1])}")


# ============================================================================
# CLI setup
# ============================================================================

def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        prog="hexlens",
        description="hexlens: decode, search and bookmark binary files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
        examples:
          hexlens formats
          hexlens decode image.bmp
          hexlens decode firmware.bin --as exe -v
          hexlens bookmarks picture.png
          hexlens find notepad.exe "4D 5A" --hex
          hexlens find report.xls workbook -i -n 5
        """),
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--log-level", default="ERROR",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Library log level (default: ERROR)")

    sub = parser.add_subparsers(dest="command", help="Command to run")

    # formats
    sub.add_parser("formats", aliases=["fmt"], help="List supported formats")

    # decode
    p = sub.add_parser("decode", aliases=["dec"], help="Decode a file into records")
    p.add_argument("file", help="File to decode")
    p.add_argument("--as", dest="format", help="Decode as this extension instead of the file's")
    p.add_argument("-v", "--verbose", action="store_true", help="Show longer value previews")

    # bookmarks
    p = sub.add_parser("bookmarks", aliases=["bm"], help="Bookmark decoded records")
    p.add_argument("file", help="File to decode")
    p.add_argument("--as", dest="format", help="Decode as this extension instead of the file's")

    # find
    p = sub.add_parser("find", help="Search for text or hex bytes")
    p.add_argument("file", help="File to search")
    p.add_argument("pattern", help="Text, or hex digits with --hex")
    group = p.add_mutually_exclusive_group()
    group.add_argument("-i", "--ignore-case", action="store_true", help="Case-insensitive (ASCII)")
    group.add_argument("--hex", action="store_true", help="Interpret pattern as hex bytes")
    p.add_argument("-n", "--limit", type=int, default=None, help="Stop after N matches")

    args = parser.parse_args(argv)

    if args.no_color:
        C.off()
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        return

    # Dispatch
    commands = {
        "formats": cmd_formats, "fmt": cmd_formats,
        "decode": cmd_decode, "dec": cmd_decode,
        "bookmarks": cmd_bookmarks, "bm": cmd_bookmarks,
        "find": cmd_find,
    }

    handler = commands[args.command]
    try:
        handler(args)
    except FileNotFoundError as e:
        print(fail(f"File not found: {e}"))
        sys.exit(1)
    except (catalog.NoFormatDefinitionAvailable, UndefinedFieldReference,
            InvalidSearchPattern, DuplicateName, DuplicateRange) as e:
        print(fail(f"Error: {e}"))
        sys.exit(1)


if __name__ == "__main__":
    main()
