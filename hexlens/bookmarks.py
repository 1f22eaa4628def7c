"""
hexlens Bookmark Index

Named, described annotations over byte ranges, kept as an ordered forest
where containment decides nesting:

- No two bookmarks share a name (case-insensitive) or a range
- Siblings are ordered by their starting offset
- A bookmark whose range lies inside another's is placed under the most
  specific container. When several siblings contain it, the last one in
  offset order wins.

The forest is an arena: bookmarks live as nodes of a networkx DiGraph
addressed by stable integer ids, with edges from parent to child. A
bookmark never holds its parent or children directly; ask the index.
Each level keeps its child ids sorted by start as they are inserted, and
a range map sits beside the name map, so adding a bookmark never walks
the whole forest.

Usage:
    index = BookmarkIndex()
    index.add("Header", "File header", ByteRange(0, 13))
    index.add("Signature", "", ByteRange(0, 1))    # nested under Header
    index.tree()
"""

from __future__ import annotations

import itertools
import logging
from bisect import bisect_left, bisect_right
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import networkx as nx

from hexlens.record import Record
from hexlens.selection import ByteRange

logger = logging.getLogger(__name__)

MAX_LENGTH = 1024


class InvalidBookmarkName(ValueError):
    """Empty name, or a name or description longer than MAX_LENGTH."""


class DuplicateName(ValueError):
    def __init__(self, existing: Bookmark):
        super().__init__(f'Bookmark with name "{existing.name}" already exists')
        self.existing = existing


class DuplicateRange(ValueError):
    def __init__(self, existing: Bookmark):
        super().__init__(
            f'There is already a bookmark named "{existing.name}" with that selection'
        )
        self.existing = existing


class BookmarkNotFound(LookupError):
    def __init__(self, name: str):
        super().__init__(f'Bookmark with name "{name}" does not exist')
        self.name = name


@dataclass(frozen=True)
class Bookmark:
    """A named annotation over a byte range."""
    id: int
    name: str
    selection: ByteRange
    description: str = ""

    def __repr__(self) -> str:
        return f"<Bookmark {self.name!r} [{self.selection.start:#x}..{self.selection.end:#x}]>"


@dataclass(frozen=True)
class BookmarkNode:
    """One node of a forest snapshot: a bookmark and its ordered children."""
    bookmark: Bookmark
    children: tuple[BookmarkNode, ...] = ()

    @property
    def count(self) -> int:
        return 1 + sum(child.count for child in self.children)


def _bookmark_of(graph: nx.DiGraph, node: int) -> Bookmark:
    return graph.nodes[node]["bookmark"]


class _Siblings:
    """Ids of one level of the forest, kept in start order on insert.

    Equal starts keep insertion order. `reach[i]` is the furthest end
    among the first i + 1 siblings, which bounds the backward scan for a
    container.
    """
    __slots__ = ("ids", "starts", "ends", "reach")

    def __init__(self) -> None:
        self.ids: list[int] = []
        self.starts: list[int] = []
        self.ends: list[int] = []
        self.reach: list[int] = []

    def insert(self, node: int, selection: ByteRange) -> None:
        at = bisect_right(self.starts, selection.start)
        self.ids.insert(at, node)
        self.starts.insert(at, selection.start)
        self.ends.insert(at, selection.end)
        self.reach.insert(at, selection.end)
        self._refresh(at)

    def remove(self, node: int, selection: ByteRange) -> None:
        at = self.ids.index(node, bisect_left(self.starts, selection.start))
        del self.ids[at], self.starts[at], self.ends[at], self.reach[at]
        self._refresh(at)

    def last_containing(self, selection: ByteRange) -> Optional[int]:
        """The last sibling in start order whose range contains `selection`."""
        # Siblings starting after selection.start cannot contain it
        i = bisect_right(self.starts, selection.start) - 1
        while i >= 0 and self.reach[i] >= selection.end:
            if self.ends[i] >= selection.end:
                return self.ids[i]
            i -= 1
        return None

    def _refresh(self, at: int) -> None:
        reach = self.reach[at - 1] if at else -1
        for i in range(at, len(self.ids)):
            reach = max(reach, self.ends[i])
            if i > at and self.reach[i] == reach:
                break   # the rest of the prefix maxima are unchanged
            self.reach[i] = reach


def _forest() -> nx.DiGraph:
    return nx.DiGraph(roots=_Siblings())


def _siblings(graph: nx.DiGraph, parent: Optional[int]) -> _Siblings:
    if parent is None:
        return graph.graph["roots"]
    return graph.nodes[parent]["children"]


def _attach(graph: nx.DiGraph, parent: Optional[int], bookmark: Bookmark) -> None:
    graph.add_node(bookmark.id, bookmark=bookmark, children=_Siblings())
    if parent is not None:
        graph.add_edge(parent, bookmark.id)
    _siblings(graph, parent).insert(bookmark.id, bookmark.selection)


def _ordered(graph: nx.DiGraph, parent: Optional[int]) -> list[int]:
    """Children of `parent` (roots when None) by starting offset."""
    return _siblings(graph, parent).ids


def _preorder(graph: nx.DiGraph, parent: Optional[int] = None) -> Iterator[int]:
    for node in _ordered(graph, parent):
        yield node
        yield from _preorder(graph, node)


def _snapshot(graph: nx.DiGraph, parent: Optional[int] = None) -> tuple[BookmarkNode, ...]:
    return tuple(
        BookmarkNode(_bookmark_of(graph, node), _snapshot(graph, node))
        for node in _ordered(graph, parent)
    )


def _unique_labels(names: list[str]) -> list[str]:
    """Suffix names that occur more than once with their occurrence index."""
    totals = Counter(names)
    seen: Counter = Counter()
    labels = []
    for name in names:
        if totals[name] > 1:
            labels.append(f"{name}[{seen[name]}]")
            seen[name] += 1
        else:
            labels.append(name)
    return labels


class BookmarkIndex:
    """The bookmark forest.

    Every mutating call validates first and then applies its change in
    full, so the forest is consistent between calls. Not thread-safe:
    guard with one lock per index if shared.
    """

    def __init__(self) -> None:
        self._graph = _forest()
        self._ids = itertools.count()
        # lower-cased name -> node id
        self._names: dict[str, int] = {}
        self._ranges: dict[ByteRange, int] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def roots(self) -> list[Bookmark]:
        return [_bookmark_of(self._graph, n) for n in _ordered(self._graph, None)]

    def find_by_name(self, name: str) -> Optional[Bookmark]:
        node = self._names.get(name.lower())
        if node is None:
            return None
        return _bookmark_of(self._graph, node)

    def find_by_range(self, selection: ByteRange) -> Optional[Bookmark]:
        node = self._ranges.get(selection)
        if node is None:
            return None
        return _bookmark_of(self._graph, node)

    def find_by_offset_within(self, start: int, end: int) -> list[Bookmark]:
        """All bookmarks starting inside [start, end], in forest pre-order."""
        window = ByteRange(start, end)
        return [
            bookmark for bookmark in self
            if window.contains_offset(bookmark.selection.start)
        ]

    def parent(self, bookmark: Bookmark) -> Optional[Bookmark]:
        node = self._node_of(bookmark)
        for parent in self._graph.predecessors(node):
            return _bookmark_of(self._graph, parent)
        return None

    def children(self, bookmark: Bookmark) -> list[Bookmark]:
        node = self._node_of(bookmark)
        return [_bookmark_of(self._graph, n) for n in _ordered(self._graph, node)]

    def tree(self) -> tuple[BookmarkNode, ...]:
        """Snapshot of the forest as maintained by add() and delete()."""
        return _snapshot(self._graph)

    def to_tree(self) -> tuple[BookmarkNode, ...]:
        """Rebuild the forest from scratch, ignoring the maintained shape.

        Bookmarks are scanned by ascending start (wider ranges first on a
        tie) and each one's parent is the last bookmark scanned so far whose
        range contains it. For inputs where ranges either nest or are
        disjoint this gives the same shape as tree(). Unlike add(), it also
        nests bookmarks under containers that were added after them.
        """
        ordered = sorted(
            self,
            key=lambda b: (b.selection.start, -b.selection.end),
        )
        graph = _forest()
        # Anything later that fits in a popped bookmark also fits in the one
        # that popped it, which was scanned after it
        open_: list[Bookmark] = []
        for bookmark in ordered:
            while open_ and not open_[-1].selection.contains(bookmark.selection):
                open_.pop()
            _attach(graph, open_[-1].id if open_ else None, bookmark)
            open_.append(bookmark)
        return _snapshot(graph)

    def __iter__(self) -> Iterator[Bookmark]:
        """Every bookmark in forest pre-order."""
        for node in _preorder(self._graph):
            yield _bookmark_of(self._graph, node)

    def __len__(self) -> int:
        return self.count

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._names

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, name: str, description: str, selection: ByteRange) -> Bookmark:
        """Validate, then insert a bookmark at its place in the forest.

        Raises:
            InvalidBookmarkName: empty name, or name/description too long
            DuplicateName: a bookmark with this name (any case) exists
            DuplicateRange: a bookmark with exactly this range exists
        """
        description = description or ""
        if not name.strip():
            raise InvalidBookmarkName("Bookmark name is not valid")
        if len(name) > MAX_LENGTH:
            raise InvalidBookmarkName(
                f"Bookmark name is too long. Must be less than {MAX_LENGTH} characters"
            )
        if len(description) > MAX_LENGTH:
            raise InvalidBookmarkName(
                f"Bookmark description is too long. Must be less than {MAX_LENGTH} characters"
            )

        existing = self.find_by_name(name)
        if existing is not None:
            raise DuplicateName(existing)
        existing = self.find_by_range(selection)
        if existing is not None:
            raise DuplicateRange(existing)

        bookmark = Bookmark(next(self._ids), name, selection, description)
        parent = self._place(selection)

        _attach(self._graph, parent, bookmark)
        self._names[name.lower()] = bookmark.id
        self._ranges[selection] = bookmark.id

        logger.debug("Added %r under %r", bookmark, parent)
        return bookmark

    def add_records(self, records: Iterable[Record]) -> list[Bookmark]:
        """Bookmark decoded records and their fields.

        Records are named after their definition ("Record[i]" when a name
        repeats) and fields "Record.Field". Empty records and fields are
        skipped, as are fields that span their whole record.
        """
        records = list(records)
        added: list[Bookmark] = []
        for label, record in zip(_unique_labels([r.name for r in records]), records):
            record_range = record.range
            if record_range is None:
                continue
            added.append(self.add(label, record.definition.description or "", record_range))

            for field_label, field in zip(_unique_labels([f.name for f in record.fields]), record.fields):
                field_range = field.range
                if field_range is None or field_range == record_range:
                    continue
                added.append(self.add(
                    f"{label}.{field_label}",
                    field.definition.description or "",
                    field_range,
                ))
        return added

    def delete(self, name: str) -> list[Bookmark]:
        """Delete a bookmark together with all of its descendants.

        Returns the deleted bookmarks in pre-order.

        Raises:
            BookmarkNotFound: no bookmark has this name
        """
        node = self._names.get(name.lower())
        if node is None:
            raise BookmarkNotFound(name)

        parent = next(iter(self._graph.predecessors(node)), None)
        subtree = [node, *_preorder(self._graph, node)]
        removed = [_bookmark_of(self._graph, n) for n in subtree]

        _siblings(self._graph, parent).remove(node, removed[0].selection)
        self._graph.remove_nodes_from(subtree)
        for bookmark in removed:
            del self._names[bookmark.name.lower()]
            del self._ranges[bookmark.selection]

        logger.debug("Deleted %r and %d descendant(s)", removed[0], len(removed) - 1)
        return removed

    def clear(self) -> None:
        self._graph = _forest()
        self._names.clear()
        self._ranges.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _node_of(self, bookmark: Bookmark) -> int:
        if bookmark.id not in self._graph:
            raise BookmarkNotFound(bookmark.name)
        return bookmark.id

    def _place(self, selection: ByteRange) -> Optional[int]:
        """Id of the deepest bookmark that should contain `selection`."""
        parent: Optional[int] = None
        while True:
            inner = _siblings(self._graph, parent).last_containing(selection)
            if inner is None:
                return parent
            parent = inner

    def __repr__(self) -> str:
        return f"<BookmarkIndex: {self.count} bookmarks, {len(self.roots)} roots>"
