"""RootNode: one preferences file and the tree loaded from it.

Reading never fails hard: a missing file is a first run, an unreadable file
or a denied read leaves an empty tree, malformed lines are skipped. Writing
goes to ``<file>.tmp`` next to the target and is renamed over it, so a crash
never leaves a half written file behind. Failures are logged and reported as
-1; the tree and its dirty flags are left untouched so a later flush can
retry.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from flprefs import codec, paths
from flprefs.models import Root
from flprefs.node import Node

if TYPE_CHECKING:
    from flprefs.context import PrefsContext

logger = logging.getLogger("flprefs.root")

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"    # undecodable bytes in hand-edited files survive a rewrite


def _strip_blank(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


class RootNode:
    """Owns the file path and the top node of one preferences tree."""

    def __init__(
        self,
        root_type: Root,
        vendor: str,
        application: str,
        *,
        filename: Path | None,
        context: PrefsContext,
    ) -> None:
        self.root_type = root_type
        self.vendor = vendor
        self.application = application
        self.filename = filename
        self.context = context
        self.top = Node(codec.TOP_PATH, index_threshold=context.index_threshold)
        self.top.set_root(self)
        self.trailer: list[str] = []    # comment lines after the last entry
        self.refs = 0

    def __repr__(self) -> str:
        return f"RootNode({self.root_type!r}, {self.vendor!r}, {self.application!r}, filename={self.filename!r})"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def for_scope(cls, root: Root, vendor: str, application: str, *, context: PrefsContext) -> RootNode:
        filename = paths.prefs_file(root, vendor, application, context)
        return cls(root, vendor, application, filename=filename, context=context)

    @classmethod
    def for_path(
        cls,
        directory: Path | str,
        vendor: str,
        application: str,
        flags: Root,
        *,
        context: PrefsContext,
    ) -> RootNode:
        """Preferences stored in an explicit directory; access rules of USER files apply."""
        root_type = Root((int(flags) & ~int(Root.ROOT_MASK)) | int(Root.USER))
        filename = paths.prefs_file_in(directory, application)
        return cls(root_type, vendor, application, filename=filename, context=context)

    @classmethod
    def in_memory(cls, *, context: PrefsContext) -> RootNode:
        return cls(Root.MEMORY | Root.C_LOCALE, "", "", filename=None, context=context)

    # ------------------------------------------------------------------
    # Reference counting
    # ------------------------------------------------------------------

    def retain(self) -> None:
        self.refs += 1

    def release(self) -> int:
        """Drop one handle reference; the last one flushes the tree.

        Returns the result of that final flush (0 if nothing was written).
        """
        self.refs -= 1
        if self.refs > 0:
            return 0
        result = self.flush()
        self.context.forget(self)
        logger.debug("closed %s", self.filename or "memory preferences")
        return result

    def flush(self) -> int:
        if not self.top.dirty:
            return 0
        return self.write()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read(self) -> int:
        """Load the file into the (empty) tree. Returns 0, or -1 if it could not be read."""
        if self.filename is None or self.root_type & Root.CLEAR:
            return 0
        if not self.context.file_access.allows(self.root_type, write=False):
            logger.debug("reading %s not permitted", self.filename)
            return -1
        try:
            with self.filename.open(encoding=_ENCODING, errors=_ERRORS) as f:
                lines = [line.rstrip("\n") for line in f]
        except FileNotFoundError:
            logger.debug("no preferences file yet: %s", self.filename)
            return 0
        except OSError as exc:
            logger.warning("cannot read preferences %s: %s", self.filename, exc)
            return -1
        self._parse(lines)
        self.top.clear_dirty_flags()
        logger.debug("read %d lines from %s", len(lines), self.filename)
        return 0

    def _parse(self, lines: list[str]) -> None:
        node = self.top
        pending: list[str] = []
        in_file_header = bool(lines) and lines[0] == codec.FORMAT_LINE
        for lineno, line in enumerate(lines, 1):
            if in_file_header and codec.is_file_header(line):
                continue
            in_file_header = False

            if codec.is_comment(line):
                pending.append(line)
            elif codec.is_header(line):
                try:
                    segments = codec.parse_header(line)
                except codec.CodecError as exc:
                    logger.warning("%s:%d: skipping group header (%s)", self.filename, lineno, exc)
                    continue
                node = self.top.search_segments(segments)
                node.comments.extend(_strip_blank(pending))
                pending = []
            elif node.set_line(line, pending):
                pending = []
            else:
                logger.warning("%s:%d: skipping malformed line", self.filename, lineno)
        self.trailer = _strip_blank(pending)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write(self) -> int:
        """Serialize the whole tree. Returns 0 on success, -1 on failure."""
        if self.filename is None:
            return 0
        if not self.context.file_access.allows(self.root_type, write=True):
            logger.debug("writing %s not permitted", self.filename)
            return -1

        path = self.filename
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding=_ENCODING, errors=_ERRORS, newline="\n") as f:
                for line in codec.file_header(self.vendor, self.application):
                    f.write(line + "\n")
                self.top.write(f)
                if self.trailer:
                    f.write("\n")
                    for line in self.trailer:
                        f.write(line + "\n")
            if self.root_type.scope == Root.SYSTEM:
                tmp.chmod(0o644)
            tmp.replace(path)
        except (OSError, ValueError) as exc:
            logger.warning("cannot write preferences %s: %s", path, exc)
            with contextlib.suppress(OSError):
                tmp.unlink()
            return -1

        self.top.clear_dirty_flags()
        logger.debug("wrote %s", path)
        return 0

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def get_path(self) -> Path | None:
        """Userdata directory belonging to this file, created on demand."""
        if self.filename is None:
            return None
        return paths.userdata_dir(self.filename)
