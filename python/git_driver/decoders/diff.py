"""
Unified diff decoder.

``decode_diff`` handles the text of one file's change and ``decode_diff_all``
splits a multi-file diff on its ``diff --git`` boundaries first.
"""

import re
from typing import List, Optional, Tuple

from ..models import DiffHunk, DiffLine, DiffLineKind, FileDiff
from .common import unquote_path

HUNK_MARKER = "@@"
FILE_MARKER = "diff --git "
HEADER_PREFIXES = ("diff", "index", "+++", "---")
NULL_PATH = "/dev/null"

_HUNK_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
_GIT_HEADER_PATTERN = re.compile(r"^diff --git (?P<old>\"?a/.+?\"?) (?P<new>\"?b/.+?\"?)$")
_BINARY_PATTERN = re.compile(r"^Binary files (?P<old>.+) and (?P<new>.+) differ$")


def parse_hunk_header(line: str) -> Optional[Tuple[int, int, int, int, str]]:
    """
    Parse ``@@ -a[,b] +c[,d] @@ [section]``.

    Returns:
        (old_start, old_count, new_start, new_count, section) or None. An absent
        count is 1.
    """
    match = _HUNK_PATTERN.match(line)
    if not match:
        return None
    old_start, old_count, new_start, new_count, section = match.groups()
    return (
        int(old_start),
        int(old_count) if old_count is not None else 1,
        int(new_start),
        int(new_count) if new_count is not None else 1,
        section.strip(),
    )


def _strip_side(path: str, side: str) -> Optional[str]:
    path = unquote_path(path.split("\t", 1)[0].strip())
    if path == NULL_PATH:
        return None
    if path.startswith(side + "/"):
        return path[len(side) + 1:]
    return path


class _HunkBuilder:
    """Accumulates the lines of one hunk while tracking running line numbers."""

    def __init__(self, header: str, old_start: int, old_count: int, new_start: int, new_count: int):
        self.header = header
        self.old_start, self.old_count = old_start, old_count
        self.new_start, self.new_count = new_start, new_count
        self.old_line, self.new_line = old_start, new_start
        self.old_left, self.new_left = old_count, new_count
        self.lines: List[DiffLine] = []

    def _add(self, text: str) -> None:
        self.lines.append(DiffLine(DiffLineKind.ADDITION, text, new_line=self.new_line))
        self.new_line += 1
        self.new_left -= 1

    def _delete(self, text: str) -> None:
        self.lines.append(DiffLine(DiffLineKind.DELETION, text, old_line=self.old_line))
        self.old_line += 1
        self.old_left -= 1

    def _context(self, text: str) -> None:
        self.lines.append(
            DiffLine(DiffLineKind.CONTEXT, text, old_line=self.old_line, new_line=self.new_line)
        )
        self.old_line += 1
        self.new_line += 1
        self.old_left -= 1
        self.new_left -= 1

    def feed(self, line: str) -> None:
        lead, text = line[:1], line[1:]

        # Body lines first, so "---foo" removed from a file is not a header.
        if lead == "+" and self.new_left > 0:
            return self._add(text)
        if lead == "-" and self.old_left > 0:
            return self._delete(text)
        if lead == " " and (self.old_left > 0 or self.new_left > 0):
            return self._context(text)

        if line.startswith(HEADER_PREFIXES):
            self.lines.append(DiffLine(DiffLineKind.HEADER, line))
        elif lead == "+":
            self._add(text)
        elif lead == "-":
            self._delete(text)
        elif lead == " ":
            self._context(text)
        # Anything else, e.g. "\ No newline at end of file", is skipped.

    def build(self) -> DiffHunk:
        return DiffHunk(
            header=self.header,
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            lines=tuple(self.lines),
        )


def decode_diff(text: str, file_path: str = "") -> FileDiff:
    """
    Decode the unified diff of a single file.

    Preamble lines before the first hunk provide the old/new paths and the
    new, deleted and binary markers. ``file_path`` is used when the text
    names no path.
    """
    old_path: Optional[str] = None
    new_path: Optional[str] = None
    is_new = is_deleted = is_binary = False
    hunks: List[DiffHunk] = []
    current: Optional[_HunkBuilder] = None

    for line in text.split("\n"):
        line = line.rstrip("\r")

        if line.startswith(HUNK_MARKER):
            parsed = parse_hunk_header(line)
            if parsed is not None:
                if current is not None:
                    hunks.append(current.build())
                current = _HunkBuilder(line, *parsed[:4])
                continue

        if current is not None:
            current.feed(line)
            continue

        if line.startswith(FILE_MARKER):
            match = _GIT_HEADER_PATTERN.match(line)
            if match:
                old_path = _strip_side(match.group("old"), "a")
                new_path = _strip_side(match.group("new"), "b")
        elif line.startswith("new file mode"):
            is_new = True
        elif line.startswith("deleted file mode"):
            is_deleted = True
        elif line.startswith("rename from "):
            old_path = unquote_path(line[len("rename from "):])
        elif line.startswith("rename to "):
            new_path = unquote_path(line[len("rename to "):])
        elif line.startswith("--- "):
            side = _strip_side(line[4:], "a")
            if side is None:
                is_new = True
            else:
                old_path = side
        elif line.startswith("+++ "):
            side = _strip_side(line[4:], "b")
            if side is None:
                is_deleted = True
            else:
                new_path = side
        elif line.startswith("GIT binary patch"):
            is_binary = True
        elif binary := _BINARY_PATTERN.match(line):
            is_binary = True
            old_side = _strip_side(binary.group("old"), "a")
            new_side = _strip_side(binary.group("new"), "b")
            is_new = is_new or old_side is None
            is_deleted = is_deleted or new_side is None
            old_path = old_side or old_path
            new_path = new_side or new_path

    if current is not None:
        hunks.append(current.build())

    path = (new_path if not is_deleted else old_path) or new_path or old_path or file_path
    if old_path == path:
        old_path = None

    return FileDiff(
        path=path,
        old_path=old_path,
        is_binary=is_binary,
        is_new_file=is_new,
        is_deleted_file=is_deleted,
        hunks=() if is_binary else tuple(hunks),
    )


def split_file_diffs(text: str) -> List[str]:
    """Split multi-file diff text into one chunk per ``diff --git`` section."""
    chunks: List[List[str]] = []
    for line in text.split("\n"):
        if line.startswith(FILE_MARKER):
            chunks.append([line])
        elif chunks:
            chunks[-1].append(line)
    return ["\n".join(chunk) for chunk in chunks]


def decode_diff_all(text: str) -> List[FileDiff]:
    """Decode every file section of a multi-file diff."""
    return [decode_diff(chunk) for chunk in split_file_diffs(text)]
