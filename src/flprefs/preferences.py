"""Preferences: the handle applications use to read and write settings.

    with Preferences.open(Root.USER_L, "acme.test", "demo") as app:
        win = app.child("window")
        width = win.get("width", 800)
        win.set("height", 600)

A handle is a light view of one group in a tree owned by a RootNode. Every
handle on a tree holds a reference to it; closing the last one (explicitly,
via ``with``, or when the handle is garbage collected) writes the file if
anything changed.

Keys may contain ``/``: ``app.set("window/width", 800)`` writes entry
``width`` in group ``window``. Writers create missing groups, readers never do.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from flprefs import codec, paths
from flprefs.context import default_context
from flprefs.models import Root
from flprefs.root import RootNode

if TYPE_CHECKING:
    from pathlib import Path

    from flprefs.context import PrefsContext
    from flprefs.node import Node

logger = logging.getLogger("flprefs.preferences")

_BYTES_TYPES = (bytes, bytearray, memoryview)


class Preferences:
    """Reference-counted cursor on one group of a preferences tree."""

    def __init__(self, node: Node, root_node: RootNode) -> None:
        self._node = node
        self._root_node = root_node
        root_node.retain()
        self._closed = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else self._node.path
        return f"<Preferences {self._root_node.filename or 'memory'} {state}>"

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        root: Root,
        vendor: str,
        application: str,
        *,
        context: PrefsContext | None = None,
    ) -> Preferences:
        """Open the top group of the (vendor, application) file of a scope.

        A missing or unreadable file gives an empty tree; ``get`` then returns
        the caller's defaults.
        """
        ctx = context or default_context()
        root_node = RootNode.for_scope(Root(root), vendor, application, context=ctx)
        root_node.read()
        return cls(root_node.top, root_node)

    @classmethod
    def open_path(
        cls,
        directory: Path | str,
        vendor: str,
        application: str,
        flags: Root = Root.C_LOCALE,
        *,
        context: PrefsContext | None = None,
    ) -> Preferences:
        """Open ``<directory>/<application>.prefs`` instead of a scope's file."""
        ctx = context or default_context()
        root_node = RootNode.for_path(directory, vendor, application, Root(flags), context=ctx)
        root_node.read()
        return cls(root_node.top, root_node)

    @classmethod
    def memory(cls, group: str, *, context: PrefsContext | None = None) -> Preferences:
        """A group of the context's memory-only tree. Never touches the disk."""
        ctx = context or default_context()
        root_node = ctx.runtime_root()
        return cls(root_node.top.search(group), root_node)

    @classmethod
    def from_id(cls, id_: int, *, context: PrefsContext | None = None) -> Preferences:
        """New handle on a group that is still open, without re-reading the file."""
        ctx = context or default_context()
        node = ctx.lookup(id_)
        root_node = node.find_root() if node is not None else None
        if node is None or root_node is None:
            msg = f"No open preferences group with id {id_}"
            raise KeyError(msg)
        return cls(node, root_node)

    @classmethod
    def remove_id(cls, id_: int, *, context: PrefsContext | None = None) -> bool:
        """Delete the group behind an id from its tree."""
        ctx = context or default_context()
        node = ctx.lookup(id_)
        return node.remove() if node is not None else False

    @classmethod
    def filename_for(
        cls,
        root: Root,
        vendor: str,
        application: str,
        *,
        context: PrefsContext | None = None,
    ) -> Path | None:
        """Where a scope's file would be, without opening it."""
        return paths.prefs_file(Root(root), vendor, application, context or default_context())

    def child(self, group: str | int) -> Preferences:
        """Handle on a subgroup by path (created if missing) or by position."""
        node = self._live_node()
        if isinstance(group, int):
            sub = node.child_node(group)
            if sub is None:
                msg = f"group index {group} out of range (0..{node.n_children - 1})"
                raise IndexError(msg)
        else:
            sub = node.search(group)
        return Preferences(sub, self._root_node)

    def copy(self) -> Preferences:
        return Preferences(self._live_node(), self._root_node)

    __copy__ = copy

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def close(self) -> int:
        """Release this handle. Returns -1 if the final write failed, else 0."""
        if self._closed:
            return 0
        self._closed = True
        return self._root_node.release()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> Preferences:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            self.close()

    def flush(self) -> int:
        """Write the whole tree now if anything changed. 0 on success, -1 on failure."""
        self._live_node()
        return self._root_node.flush()

    def dirty(self) -> bool:
        return self._live_node().top.dirty

    def _live_node(self) -> Node:
        if self._closed:
            msg = "operation on a closed Preferences handle"
            raise RuntimeError(msg)
        return self._node

    # ------------------------------------------------------------------
    # Identity and location
    # ------------------------------------------------------------------

    def name(self) -> str:
        return self._live_node().name

    def path(self) -> str:
        return self._live_node().path

    def id(self) -> int:
        return self._root_node.context.node_id(self._live_node())

    def root(self) -> Root:
        return self._root_node.root_type

    def filename(self) -> Path | None:
        return self._root_node.filename

    def get_userdata_path(self) -> Path | None:
        return self._root_node.get_path()

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def groups(self) -> list[str]:
        return [child.name for child in self._live_node().children]

    def group(self, ix: int) -> str | None:
        return self._live_node().child(ix)

    def group_exists(self, key: str) -> bool:
        return self._live_node().find(key) is not None

    def delete_group(self, key: str) -> bool:
        node = self._live_node().find(key)
        return node.remove() if node is not None else False

    def delete_all_groups(self) -> bool:
        self._live_node().delete_all_children()
        return True

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def _resolve(self, key: str) -> tuple[Node | None, str]:
        """Group and entry name for a key; never creates groups."""
        group, _, name = key.rpartition("/")
        node = self._live_node()
        return (node.find(group) if group else node), name

    def _resolve_or_create(self, key: str) -> tuple[Node, str]:
        group, _, name = key.rpartition("/")
        node = self._live_node()
        return (node.search(group) if group else node), name

    def _text(self, key: str) -> str | None:
        node, name = self._resolve(key)
        return node.get(name) if node is not None else None

    def entries(self) -> list[str]:
        return [entry.name for entry in self._live_node().entries]

    def entry(self, ix: int) -> str | None:
        entry = self._live_node().entry(ix)
        return entry.name if entry is not None else None

    def entry_exists(self, key: str) -> bool:
        node, name = self._resolve(key)
        return node is not None and node.get_entry(name) >= 0

    def delete_entry(self, key: str) -> bool:
        node, name = self._resolve(key)
        return node.delete_entry(name) if node is not None else False

    def delete_all_entries(self) -> bool:
        self._live_node().delete_all_entries()
        return True

    def clear(self) -> bool:
        """Delete every entry and subgroup of this group."""
        return self.delete_all_entries() and self.delete_all_groups()

    def size(self, key: str) -> int:
        """Length of the stored text of an entry, 0 if it does not exist."""
        text = self._text(key)
        return len(text) if text is not None else 0

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @property
    def _c_locale(self) -> bool:
        return self._root_node.root_type.locale_independent

    def set(self, key: str, value: Any, precision: int | None = None) -> bool:
        """Store a bool, int, float, str or bytes-like value.

        ``precision`` limits the significant digits written for floats.
        """
        if isinstance(value, bool):
            text = codec.format_int(int(value))
        elif isinstance(value, int):
            text = codec.format_int(value)
        elif isinstance(value, float):
            text = codec.format_float(value, precision, c_locale=self._c_locale)
        elif isinstance(value, str):
            text = value
        elif isinstance(value, _BYTES_TYPES):
            text = codec.encode_bytes(value)
        else:
            msg = f"cannot store {type(value).__name__} in preferences"
            raise TypeError(msg)
        node, name = self._resolve_or_create(key)
        node.set(name, text)
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """Read a value converted to the type of ``default``.

        With ``default=None`` the stored text is returned as is (or None).
        """
        if default is None:
            return self._text(key)
        if isinstance(default, bool):
            return bool(self.get_int(key, int(default)))
        if isinstance(default, int):
            return self.get_int(key, default)
        if isinstance(default, float):
            return self.get_float(key, default)
        if isinstance(default, str):
            return self.get_str(key, default)
        if isinstance(default, _BYTES_TYPES):
            return self.get_bytes(key, bytes(default))
        msg = f"unsupported default type {type(default).__name__}"
        raise TypeError(msg)

    def get_int(self, key: str, default: int = 0) -> int:
        text = self._text(key)
        if text is None:
            return default
        try:
            return codec.parse_int(text)
        except ValueError:
            logger.debug("entry %r is not an integer: %r", key, text)
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        text = self._text(key)
        if text is None:
            return default
        try:
            return codec.parse_float(text, c_locale=self._c_locale)
        except ValueError:
            logger.debug("entry %r is not a number: %r", key, text)
            return default

    def get_str(self, key: str, default: str = "", max_size: int | None = None) -> str:
        text = self._text(key)
        if text is None:
            text = default
        return text if max_size is None else text[:max_size]

    def get_bytes(self, key: str, default: bytes = b"", max_size: int | None = None) -> bytes:
        text = self._text(key)
        data = default
        if text is not None:
            try:
                data = codec.decode_bytes(text)
            except ValueError:
                logger.debug("entry %r is not binary data", key)
        return data if max_size is None else data[:max_size]
