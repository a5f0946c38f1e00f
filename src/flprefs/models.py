"""Data models shared by the preferences tree, the file codec and the handle."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field


class Root(enum.IntFlag):
    """Scope of a preferences database plus the flags that modify it."""

    SYSTEM = 0x0000
    USER = 0x0001
    MEMORY = 0x0002
    ROOT_MASK = 0x00FF
    CORE = 0x0100          # database belongs to the toolkit itself, not the app
    C_LOCALE = 0x1000      # numbers use '.' regardless of the current locale
    CLEAR = 0x2000         # ignore an existing file, start empty

    SYSTEM_L = SYSTEM | C_LOCALE
    USER_L = USER | C_LOCALE
    CORE_SYSTEM_L = CORE | SYSTEM_L
    CORE_USER_L = CORE | USER_L
    CORE_SYSTEM = CORE | SYSTEM
    CORE_USER = CORE | USER

    @property
    def scope(self) -> Root:
        return Root(self & Root.ROOT_MASK)

    @property
    def locale_independent(self) -> bool:
        return bool(self & Root.C_LOCALE)


class FileAccess(enum.IntFlag):
    """Which preference files may be read or written at all."""

    NONE = 0x0000
    USER_READ_OK = 0x0001
    USER_WRITE_OK = 0x0002
    USER_OK = USER_READ_OK | USER_WRITE_OK
    SYSTEM_READ_OK = 0x0004
    SYSTEM_WRITE_OK = 0x0008
    SYSTEM_OK = SYSTEM_READ_OK | SYSTEM_WRITE_OK
    APP_OK = SYSTEM_OK | USER_OK
    CORE_READ_OK = 0x0010
    CORE_WRITE_OK = 0x0020
    CORE_OK = CORE_READ_OK | CORE_WRITE_OK
    ALL_READ_OK = USER_READ_OK | SYSTEM_READ_OK | CORE_READ_OK
    ALL_WRITE_OK = USER_WRITE_OK | SYSTEM_WRITE_OK | CORE_WRITE_OK
    ALL = ALL_READ_OK | ALL_WRITE_OK

    @classmethod
    def from_names(cls, names: list[str] | str) -> FileAccess:
        """Combine flag names such as ``["USER_OK", "CORE_READ_OK"]``."""
        if isinstance(names, str):
            names = [names]
        flags = cls.NONE
        for name in names:
            try:
                flags |= cls[name.strip().upper()]
            except KeyError:
                msg = f"Unknown file access flag: {name!r}"
                raise ValueError(msg) from None
        return flags

    def allows(self, root: Root, *, write: bool) -> bool:
        """True if a file of scope ``root`` may be read (or written)."""
        scope = root.scope
        if scope == Root.MEMORY:
            return True
        if scope == Root.USER:
            need = FileAccess.USER_WRITE_OK if write else FileAccess.USER_READ_OK
        else:
            need = FileAccess.SYSTEM_WRITE_OK if write else FileAccess.SYSTEM_READ_OK
        if root & Root.CORE:
            need |= FileAccess.CORE_WRITE_OK if write else FileAccess.CORE_READ_OK
        return (self & need) == need


@dataclass
class Entry:
    """A single name/value pair inside a group.

    ``comments`` are the comment and blank lines that stood directly above the
    entry in the file; they are written back in the same place.
    """

    name: str
    value: str
    comments: list[str] = field(default_factory=list)


class Name(str):
    """A key built on the fly, e.g. ``prefs.set(Name("File%d", i), path)``.

    ``Name(7)`` gives ``"7"``; ``Name(fmt, *args)`` applies printf-style
    formatting. The result is an ordinary immutable string.
    """

    def __new__(cls, fmt: int | str, *args: object) -> Name:
        if isinstance(fmt, int) and not isinstance(fmt, bool):
            if args:
                msg = "Name(int) takes no format arguments"
                raise TypeError(msg)
            return super().__new__(cls, str(fmt))
        if not isinstance(fmt, str):
            msg = f"Name() expects a format string or an int, not {type(fmt).__name__}"
            raise TypeError(msg)
        return super().__new__(cls, fmt % args if args else fmt)


def new_uuid() -> str:
    """Generate a random UUID in the canonical upper-case text form."""
    return str(uuid.uuid4()).upper()
