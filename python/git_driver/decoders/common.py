"""
Helpers shared by the text-protocol decoders.
"""

import re
from datetime import datetime, timezone
from typing import Tuple

from loguru import logger

from ..models import utc_now

FIELD_SEPARATOR = "|"
RECORD_SEPARATOR = "\x00"

_AHEAD_PATTERN = re.compile(r"ahead (\d+)")
_BEHIND_PATTERN = re.compile(r"behind (\d+)")
_OCTAL_ESCAPE = re.compile(r"[0-3][0-7]{2}")

_SIMPLE_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d",
)


def parse_tracking(clause: str) -> Tuple[int, int]:
    """
    Extract ahead/behind counts from a tracking clause.

    ``"ahead 2, behind 1"`` gives ``(2, 1)``; either part may be missing and
    an empty clause gives ``(0, 0)``. Surrounding brackets are ignored.
    """
    ahead = behind = 0
    if not clause:
        return ahead, behind
    if match := _AHEAD_PATTERN.search(clause):
        ahead = int(match.group(1))
    if match := _BEHIND_PATTERN.search(clause):
        behind = int(match.group(1))
    return ahead, behind


def unquote_path(path: str) -> str:
    """
    Undo git's C-style quoting of a path.

    Paths with special characters are emitted as ``"..."`` with backslash
    escapes and octal-escaped UTF-8 bytes. Unquoted paths are returned as-is.
    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path

    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out.extend(ch.encode("utf-8"))
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 2
        elif _OCTAL_ESCAPE.fullmatch(body[i + 1 : i + 4]):
            out.append(int(body[i + 1 : i + 4], 8))
            i += 4
        else:
            out.extend(nxt.encode("utf-8"))
            i += 2
    return out.decode("utf-8", errors="replace")


def parse_epoch(value: str) -> datetime:
    """Parse epoch seconds; unparseable input falls back to the current time."""
    try:
        return datetime.fromtimestamp(int(value.strip()), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.debug(f"Unparseable epoch timestamp {value!r}, using current time")
        return utc_now()


def parse_date(value: str) -> datetime:
    """
    Best-effort parse of the date formats git prints.

    Accepts epoch seconds, ``iso8601`` (``2024-01-15 10:30:00 +0100``),
    strict ISO and short dates. Anything else falls back to the current time.
    """
    text = value.strip()
    if text.isdigit():
        return parse_epoch(text)
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable date {value!r}, using current time")
        return utc_now()
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def non_empty_lines(text: str):
    """Yield the non-empty lines of ``text`` without line terminators."""
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line.strip():
            yield line
