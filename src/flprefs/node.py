"""In-memory preferences tree.

A Node is one group: an ordered list of entries, an ordered list of child
groups and a weak reference back to its parent. The top node of a tree has no
parent; instead it knows the RootNode that owns the tree and its file.

Lookups by name scan linearly. Once a node holds more than
``index_threshold`` entries (or children) a name index is built on the next
lookup; appends keep it current, deletions drop it. The index is a cache
only: it never changes what a lookup returns.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING

from flprefs import codec
from flprefs.models import Entry

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import TextIO

    from flprefs.root import RootNode

DEFAULT_INDEX_THRESHOLD = 16


class Node:
    """A group of entries and child groups."""

    def __init__(
        self,
        name: str,
        parent: Node | None = None,
        *,
        index_threshold: int | None = None,
    ) -> None:
        self.name = name
        self.entries: list[Entry] = []
        self.children: list[Node] = []
        self.comments: list[str] = []    # comment lines above the group header
        self.tail: list[str] = []        # comment lines after the last entry
        if index_threshold is None:
            index_threshold = parent.index_threshold if parent else DEFAULT_INDEX_THRESHOLD
        self.index_threshold = index_threshold
        self._parent: weakref.ref[Node] | None = weakref.ref(parent) if parent else None
        self._root_node: weakref.ref[RootNode] | None = None
        self._dirty = False
        self._entry_index: dict[str, int] | None = None
        self._child_index: dict[str, Node] | None = None

    def __repr__(self) -> str:
        return f"Node({self.path!r}, entries={len(self.entries)}, children={len(self.children)})"

    # ------------------------------------------------------------------
    # Tree structure
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Node | None:
        return self._parent() if self._parent else None

    @property
    def top(self) -> Node:
        node = self
        while (parent := node.parent) is not None:
            node = parent
        return node

    @property
    def segments(self) -> list[str]:
        """Group names from below the top node down to this node."""
        names: list[str] = []
        node: Node | None = self
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = node.parent
        names.reverse()
        return names

    @property
    def path(self) -> str:
        """``"."`` for the top node, ``"./a/b"`` below it."""
        return "/".join([codec.TOP_PATH, *self.segments])

    def set_root(self, root_node: RootNode | None) -> None:
        self._root_node = weakref.ref(root_node) if root_node is not None else None

    def find_root(self) -> RootNode | None:
        """The RootNode owning this tree, or None for a detached subtree."""
        top = self.top
        return top._root_node() if top._root_node else None

    def add_child(self, name: str) -> Node:
        """Append a new, dirty child group. Does not check for duplicates."""
        child = Node(name, self)
        child._dirty = True
        self.children.append(child)
        if self._child_index is not None:
            self._child_index.setdefault(name, child)
        return child

    def child_named(self, name: str) -> Node | None:
        if self._child_index is None and len(self.children) > self.index_threshold:
            self._child_index = {}
            for child in self.children:
                self._child_index.setdefault(child.name, child)
        if self._child_index is not None:
            return self._child_index.get(name)
        for child in self.children:
            if child.name == name:
                return child
        return None

    def _split(self, path: str) -> tuple[Node, list[str]]:
        if path == codec.TOP_PATH:
            return self.top, []
        if path.startswith(codec.TOP_PATH + "/"):
            return self.top, path[2:].split("/")
        if not path:
            return self, []
        return self, path.split("/")

    def find(self, path: str) -> Node | None:
        """Walk an existing path. Returns None on any missing or empty segment.

        Paths are relative to this node unless they start with ``"."``.
        """
        start, names = self._split(path)
        return start.find_segments(names)

    def find_segments(self, names: Iterable[str]) -> Node | None:
        node: Node | None = self
        for name in names:
            if not name or node is None:
                return None
            node = node.child_named(name)
        return node

    def search(self, path: str, offset: int = 0) -> Node:
        """Walk a path starting at character ``offset``, creating missing groups."""
        start, names = self._split(path[offset:])
        return start.search_segments(names)

    def search_segments(self, names: Iterable[str]) -> Node:
        node = self
        for name in names:
            if not name:
                continue
            child = node.child_named(name)
            node = child if child is not None else node.add_child(name)
        return node

    @property
    def n_children(self) -> int:
        return len(self.children)

    def child(self, ix: int) -> str | None:
        node = self.child_node(ix)
        return node.name if node is not None else None

    def child_node(self, ix: int) -> Node | None:
        if 0 <= ix < len(self.children):
            return self.children[ix]
        return None

    def remove(self) -> bool:
        """Detach this group (and everything below it) from the tree."""
        parent = self.parent
        if parent is None:
            return False
        parent.children = [c for c in parent.children if c is not self]
        parent._child_index = None
        parent._dirty = True
        self._parent = None
        return True

    def delete_all_children(self) -> None:
        if not self.children:
            return
        for child in self.children:
            child._parent = None
        self.children = []
        self._child_index = None
        self._dirty = True

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    @property
    def n_entries(self) -> int:
        return len(self.entries)

    def entry(self, ix: int) -> Entry | None:
        if 0 <= ix < len(self.entries):
            return self.entries[ix]
        return None

    def get_entry(self, name: str) -> int:
        """Position of the named entry, or -1."""
        if self._entry_index is None and len(self.entries) > self.index_threshold:
            self._entry_index = {}
            for i, entry in enumerate(self.entries):
                self._entry_index.setdefault(entry.name, i)
        if self._entry_index is not None:
            return self._entry_index.get(name, -1)
        for i, entry in enumerate(self.entries):
            if entry.name == name:
                return i
        return -1

    def get(self, name: str) -> str | None:
        ix = self.get_entry(name)
        return self.entries[ix].value if ix >= 0 else None

    def set(self, name: str, value: str) -> None:
        """Create or change an entry. Only a real change marks the node dirty."""
        ix = self.get_entry(name)
        if ix >= 0:
            entry = self.entries[ix]
            if entry.value != value:
                entry.value = value
                self._dirty = True
            return
        self._append(Entry(name, value))
        self._dirty = True

    def set_line(self, line: str, comments: list[str] | None = None) -> bool:
        """Add an escaped ``name:value`` line read from a file.

        Leaves the dirty flag alone. A name seen twice keeps the later value.
        Returns False if the line cannot be decoded.
        """
        try:
            name, value = codec.parse_entry(line)
        except codec.CodecError:
            return False
        ix = self.get_entry(name)
        if ix >= 0:
            entry = self.entries[ix]
            entry.value = value
            entry.comments.extend(comments or [])
        else:
            self._append(Entry(name, value, list(comments or [])))
        return True

    def _append(self, entry: Entry) -> None:
        self.entries.append(entry)
        if self._entry_index is not None:
            self._entry_index.setdefault(entry.name, len(self.entries) - 1)

    def delete_entry(self, name: str) -> bool:
        """Remove an entry.

        Its comments move to the entry that followed it, or below the last
        entry when it was the last one.
        """
        ix = self.get_entry(name)
        if ix < 0:
            return False
        removed = self.entries.pop(ix)
        if ix < len(self.entries):
            self.entries[ix].comments[:0] = removed.comments
        else:
            self.tail[:0] = removed.comments
        self._entry_index = None
        self._dirty = True
        return True

    def delete_all_entries(self) -> None:
        if not self.entries:
            return
        self.entries = []
        self._entry_index = None
        self._dirty = True

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    @property
    def indexed(self) -> bool:
        return self._entry_index is not None or self._child_index is not None

    def drop_index(self) -> None:
        self._entry_index = None
        self._child_index = None

    # ------------------------------------------------------------------
    # Dirty tracking and output
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        """True if this node or any node below it changed since the last write."""
        return self._dirty or any(child.dirty for child in self.children)

    def mark_dirty(self) -> None:
        self._dirty = True

    def clear_dirty_flags(self) -> None:
        self._dirty = False
        for child in self.children:
            child.clear_dirty_flags()

    def write(self, f: TextIO) -> None:
        """Depth first: header, entries, tail comments, then child groups."""
        f.write("\n")
        for line in self.comments:
            f.write(line + "\n")
        f.write(codec.format_header(self.segments) + "\n")
        for entry in self.entries:
            for line in entry.comments:
                f.write(line + "\n")
            f.write(codec.format_entry(entry.name, entry.value) + "\n")
        for line in self.tail:
            f.write(line + "\n")
        for child in self.children:
            child.write(f)
