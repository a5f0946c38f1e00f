"""Text codec for .prefs files.

A file is a sequence of lines:

    ; flprefs file format 1.0         # written by us, skipped on read
    ; vendor: acme.test
    ; application: demo

    [.]
    # a comment, kept with the entry below it
    name:value

    [./window]
    width:800

Names, values and group segments are escaped so that any text survives a
write/read cycle: ``\\\\``, ``\\n``, ``\\r``, ``\\t`` and ``\\xHH`` for the
remaining control characters, ``\\uXXXX`` for surrogates UTF-8 cannot encode.
Unknown escapes in hand-edited files are kept as literal text. Names
additionally escape ``:`` and a leading character that would make the line
look like a header or a comment. Binary payloads are stored as hex text.
"""

from __future__ import annotations

import locale
import math
import re

FORMAT_LINE = "; flprefs file format 1.0"
_HEADER_PREFIXES = (FORMAT_LINE, "; vendor:", "; application:")

COMMENT_CHARS = ("#", ";")
TOP_PATH = "."

_SIMPLE_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_SIMPLE_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "t": "\t"}
_ESCAPE_RE = re.compile(r"\\(x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|.)|\\$", re.DOTALL)


def _is_lone_surrogate(code: int) -> bool:
    """Surrogates UTF-8 cannot store; U+DC80..U+DCFF carry undecodable file bytes."""
    return 0xD800 <= code <= 0xDFFF and not 0xDC80 <= code <= 0xDCFF


class CodecError(ValueError):
    """Raised for a line that cannot be decoded."""


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------


def _escape(text: str, extra: str = "") -> str:
    out: list[str] = []
    for ch in text:
        code = ord(ch)
        if ch in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[ch])
        elif code < 0x20 or code == 0x7F or ch in extra:
            out.append(f"\\x{code:02x}")
        elif _is_lone_surrogate(code):
            out.append(f"\\u{code:04x}")
        else:
            out.append(ch)
    return "".join(out)


def unescape(text: str) -> str:
    """Inverse of the escape functions.

    Sequences the writer never produces (``C:\\Users`` typed by hand, a
    trailing backslash) are kept as literal text.
    """
    if "\\" not in text:
        return text

    def _sub(m: re.Match[str]) -> str:
        seq = m.group(1)
        if seq is None:
            return "\\"
        if seq[0] in "xu" and len(seq) > 1:
            return chr(int(seq[1:], 16))
        return _SIMPLE_UNESCAPES.get(seq, m.group(0))

    return _ESCAPE_RE.sub(_sub, text)


def escape_value(value: str) -> str:
    return _escape(value)


def escape_name(name: str) -> str:
    escaped = _escape(name, extra=":")
    if escaped[:1] in ("[", "#", ";", " "):
        escaped = f"\\x{ord(escaped[0]):02x}" + escaped[1:]
    return escaped


def escape_segment(segment: str) -> str:
    return _escape(segment, extra="[]/")


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


def is_comment(line: str) -> bool:
    """Comment or blank line: kept verbatim, never parsed as an entry."""
    return not line.strip() or line.startswith(COMMENT_CHARS)


def is_file_header(line: str) -> bool:
    return line.startswith(_HEADER_PREFIXES)


def file_header(vendor: str, application: str) -> list[str]:
    return [
        FORMAT_LINE,
        f"; vendor: {_escape(vendor)}",
        f"; application: {_escape(application)}",
    ]


def format_entry(name: str, value: str) -> str:
    return f"{escape_name(name)}:{escape_value(value)}"


def parse_entry(line: str) -> tuple[str, str]:
    """Split an escaped ``name:value`` line. Raises CodecError if malformed."""
    sep = line.find(":")
    if sep < 0:
        msg = "missing ':' separator"
        raise CodecError(msg)
    return unescape(line[:sep]), unescape(line[sep + 1:])


def format_header(segments: list[str]) -> str:
    """``["window", "pos"]`` becomes ``[./window/pos]``."""
    return "[" + "/".join([TOP_PATH, *(escape_segment(s) for s in segments)]) + "]"


def is_header(line: str) -> bool:
    return line.startswith("[")


def parse_header(line: str) -> list[str]:
    """Group segments below the top node for a ``[...]`` line.

    Headers written by hand without the leading ``./`` are accepted and taken
    relative to the top node.
    """
    stripped = line.rstrip()
    if not stripped.endswith("]") or len(stripped) < 2:
        msg = "unterminated group header"
        raise CodecError(msg)
    raw = stripped[1:-1].split("/")
    if raw and raw[0] == TOP_PATH:
        raw = raw[1:]
    segments = [unescape(s) for s in raw if s]
    return segments


# ---------------------------------------------------------------------------
# Typed values
# ---------------------------------------------------------------------------


def format_int(value: int) -> str:
    return str(int(value))


def parse_int(text: str) -> int:
    """Integer text; hand-edited floats such as ``"800.0"`` are truncated."""
    try:
        return int(text.strip(), 0)
    except ValueError:
        number = float(text)
        if math.isnan(number) or math.isinf(number):
            raise
        return int(number)


def format_float(value: float, precision: int | None = None, *, c_locale: bool = True) -> str:
    """Float to text.

    With ``c_locale`` the decimal point is always ``.``; Python's own float
    formatting never consults the locale. Without it the current numeric
    locale decides, which only round-trips on machines sharing that locale.
    """
    value = float(value)
    if c_locale:
        if precision is None:
            return repr(value)
        return f"{value:.{precision}g}"
    fmt = "%.17g" if precision is None else f"%.{precision}g"
    return locale.format_string(fmt, value)


def parse_float(text: str, *, c_locale: bool = True) -> float:
    if c_locale:
        return float(text)
    return locale.atof(text)


def encode_bytes(data: bytes | bytearray | memoryview) -> str:
    return bytes(data).hex()


def decode_bytes(text: str) -> bytes:
    """Raises ValueError for text that is not hex."""
    return bytes.fromhex(text)
