"""
Porcelain status decoder.

Decodes the output of ``git status --porcelain=v1 -b``: an optional
``## branch...upstream [tracking]`` header followed by one ``XY path`` line
per changed path.
"""

import re
from typing import Optional, Tuple

from ..models import ChangeRecord, FileStatus, StatusRecord
from .common import non_empty_lines, parse_tracking, unquote_path

STATUS_ARGS = ("status", "--porcelain=v1", "-b")

BRANCH_MARKER = "## "
RENAME_TOKEN = " -> "

_BRANCH_PATTERN = re.compile(
    r"^(?P<branch>.+?)(?:\.\.\.(?P<upstream>\S+))?(?:\s+\[(?P<tracking>[^\]]*)\])?\s*$"
)
_UNBORN_PREFIXES = ("No commits yet on ", "Initial commit on ")
_DETACHED = "HEAD (no branch)"

_STAGED_STATUS = {
    "A": FileStatus.ADDED,
    "M": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "C": FileStatus.COPIED,
}
_UNSTAGED_STATUS = {
    "M": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
}


def parse_branch_header(line: str) -> Tuple[str, Optional[str], int, int]:
    """
    Parse a ``## ...`` branch header.

    Returns:
        (branch, upstream, ahead, behind). A header that does not match gives
        an empty branch name.
    """
    text = line[len(BRANCH_MARKER):] if line.startswith(BRANCH_MARKER) else line
    text = text.strip()

    for prefix in _UNBORN_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):].strip()
            break
    if text == _DETACHED:
        return "HEAD", None, 0, 0

    match = _BRANCH_PATTERN.match(text)
    if not match:
        return "", None, 0, 0

    ahead, behind = parse_tracking(match.group("tracking") or "")
    return match.group("branch"), match.group("upstream"), ahead, behind


def _split_rename(raw: str) -> Tuple[Optional[str], str]:
    # A quoted old path may itself contain " -> ", so skip past its closing quote.
    if raw.startswith('"'):
        i = 1
        while i < len(raw):
            if raw[i] == "\\":
                i += 2
                continue
            if raw[i] == '"':
                break
            i += 1
        rest = raw[i + 1:]
        if rest.startswith(RENAME_TOKEN):
            return raw[: i + 1], rest[len(RENAME_TOKEN):]
        return None, raw

    if RENAME_TOKEN in raw:
        old, new = raw.split(RENAME_TOKEN, 1)
        return old, new
    return None, raw


def _classify(flags: str) -> Tuple[FileStatus, bool]:
    staged_flag, unstaged_flag = flags[0], flags[1]

    if flags == "??":
        return FileStatus.UNTRACKED, False
    if flags == "!!":
        return FileStatus.IGNORED, False
    if staged_flag in _STAGED_STATUS:
        return _STAGED_STATUS[staged_flag], True
    if unstaged_flag in _UNSTAGED_STATUS:
        return _UNSTAGED_STATUS[unstaged_flag], False
    if staged_flag == "U" or unstaged_flag == "U":
        return FileStatus.CONFLICTED, False
    if unstaged_flag == "A":
        return FileStatus.ADDED, False
    # Type changes, and anything newer than this decoder.
    return FileStatus.MODIFIED, staged_flag == "T"


def decode_change(line: str) -> Optional[ChangeRecord]:
    """Decode one ``XY path`` line; lines shorter than 3 characters give None."""
    if len(line) < 3:
        return None

    old_raw, new_raw = _split_rename(line[3:])
    status, staged = _classify(line[:2])
    path = unquote_path(new_raw)
    old_path = unquote_path(old_raw) if old_raw else None
    if not old_path or old_path == path:
        old_path = None

    return ChangeRecord(path=path, status=status, staged=staged, old_path=old_path)


def decode_status(text: str) -> StatusRecord:
    """Decode a full porcelain status report."""
    branch, upstream, ahead, behind = "", None, 0, 0
    changes = []

    for index, line in enumerate(non_empty_lines(text)):
        if index == 0 and line.startswith("##"):
            branch, upstream, ahead, behind = parse_branch_header(line)
            continue
        change = decode_change(line)
        if change is not None:
            changes.append(change)

    return StatusRecord(
        current_branch=branch,
        upstream_branch=upstream,
        ahead_count=ahead,
        behind_count=behind,
        changes=tuple(changes),
    )
