"""PrefsContext: the state every preferences handle shares.

Instead of process-wide globals, handles take a context:

    ctx = PrefsContext(user_dir=tmp_path)
    prefs = Preferences.open(Root.USER_L, "acme.test", "demo", context=ctx)

The context holds the file access permissions, directory overrides, the
index threshold for new trees, the id registry that lets a live group be
re-wrapped in a new handle, and the runtime MEMORY root. ``default_context()``
builds one from ``flprefs.toml`` / the environment on first use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from flprefs.models import FileAccess
from flprefs.node import DEFAULT_INDEX_THRESHOLD
from flprefs.root import RootNode

if TYPE_CHECKING:
    from flprefs.config import PrefsConfig
    from flprefs.node import Node


@dataclass
class PrefsContext:
    """Registry for permissions, directories and live group ids."""

    file_access: FileAccess = FileAccess.ALL
    user_dir: Path | None = None
    system_dir: Path | None = None
    index_threshold: int = DEFAULT_INDEX_THRESHOLD

    _ids: dict[int, Node] = field(default_factory=dict, repr=False)
    _runtime: RootNode | None = field(default=None, repr=False)

    @classmethod
    def from_config(cls, cfg: PrefsConfig) -> PrefsContext:
        return cls(
            file_access=cfg.file_access,
            user_dir=cfg.user_dir,
            system_dir=cfg.system_dir,
            index_threshold=cfg.index_threshold,
        )

    # ------------------------------------------------------------------
    # Group ids
    # ------------------------------------------------------------------

    def node_id(self, node: Node) -> int:
        """Opaque id for a live group; stable while its tree stays open."""
        token = id(node)
        self._ids[token] = node
        return token

    def lookup(self, token: int) -> Node | None:
        """The group behind an id, or None if it was removed or its file closed."""
        node = self._ids.get(token)
        if node is None:
            return None
        if node.find_root() is None:
            del self._ids[token]
            return None
        return node

    def forget(self, root_node: RootNode) -> None:
        """Drop every id that points into ``root_node``'s tree."""
        stale = [
            token for token, node in self._ids.items()
            if node.find_root() in (root_node, None)
        ]
        for token in stale:
            del self._ids[token]

    # ------------------------------------------------------------------
    # Memory preferences
    # ------------------------------------------------------------------

    def runtime_root(self) -> RootNode:
        """Tree for memory-only preferences; lives as long as the context."""
        if self._runtime is None:
            self._runtime = RootNode.in_memory(context=self)
            self._runtime.retain()
        return self._runtime


_default: list[PrefsContext | None] = [None]


def default_context() -> PrefsContext:
    """Context built from the discovered flprefs.toml, created on first use."""
    if _default[0] is None:
        from flprefs.config import load_config
        _default[0] = PrefsContext.from_config(load_config())
    return _default[0]


def set_default_context(context: PrefsContext | None) -> None:
    """Replace (or with None, reset) the context used when none is passed."""
    _default[0] = context
