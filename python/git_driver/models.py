#!/usr/bin/env python3
"""
Data models for the git driver.

Every record here is a plain immutable value produced from one invocation's
output. Records never hold a reference back to the process or dispatcher
that produced them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, Flag, auto
from typing import Any, Dict, List, Optional, Tuple


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class ResultCategory(Enum):
    """Classification of one dispatched git invocation."""

    SUCCESS = "success"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    INVALID_TARGET = "invalid_target"
    NETWORK_ERROR = "network_error"
    PERMISSION_DENIED = "permission_denied"
    CANCELLED = "cancelled"


class ProcessOutcome(Enum):
    """How a child process run ended."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    SPAWN_FAILED = "spawn_failed"


class FileStatus(Enum):
    """Status of one changed path in a porcelain status report."""

    UNTRACKED = "untracked"
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    CONFLICTED = "conflicted"
    IGNORED = "ignored"


class DiffLineKind(Enum):
    """Kind of a line inside a unified diff."""

    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"
    HEADER = "header"


class LogOptions(Flag):
    """Flags controlling which revisions a history query returns."""

    NONE = 0
    SHOW_MERGES = auto()
    FIRST_PARENT_ONLY = auto()
    FOLLOW_RENAMES = auto()
    SIMPLIFY_MERGES = auto()


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Raw result of running one child process to completion, timeout or cancellation."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    outcome: ProcessOutcome = ProcessOutcome.COMPLETED
    command: Tuple[str, ...] = ()
    duration: float = 0.0
    spawn_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome is ProcessOutcome.COMPLETED and self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.outcome is ProcessOutcome.TIMED_OUT

    @property
    def cancelled(self) -> bool:
        return self.outcome is ProcessOutcome.CANCELLED

    @property
    def command_str(self) -> str:
        return " ".join(self.command)


@dataclass(frozen=True, slots=True)
class OperationResult:
    """
    Classified result of a git invocation.

    The category is derived by the dispatcher from the exit code and output;
    callers never set it themselves.
    """

    category: ResultCategory
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    command: Tuple[str, ...] = ()
    duration: float = 0.0
    timed_out: bool = False
    timestamp: float = field(default_factory=time.time)

    def __bool__(self) -> bool:
        """Return whether the operation was successful."""
        return self.success

    @property
    def success(self) -> bool:
        return self.category is ResultCategory.SUCCESS

    @property
    def has_error(self) -> bool:
        return bool(self.stderr) or self.exit_code != 0

    @property
    def error_text(self) -> str:
        """Best available diagnostic for a failed operation."""
        if self.success:
            return ""
        return (self.stderr or self.stdout).strip()

    @property
    def command_str(self) -> str:
        return " ".join(self.command)

    def raise_for_status(self) -> "OperationResult":
        """Raise GitCommandError if the operation did not succeed."""
        if not self.success:
            from .exceptions import GitCommandError

            raise GitCommandError(
                list(self.command),
                self.exit_code,
                self.stderr.strip(),
                self.stdout.strip(),
                duration=self.duration,
                category=self.category.value,
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "command": list(self.command),
            "duration": self.duration,
            "timed_out": self.timed_out,
        }


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One changed path from a porcelain status report."""

    path: str
    status: FileStatus
    staged: bool = False
    old_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "old_path": self.old_path,
            "status": self.status.value,
            "staged": self.staged,
        }


@dataclass(frozen=True, slots=True)
class StatusRecord:
    """Decoded porcelain status: branch header plus per-path changes."""

    current_branch: str = ""
    upstream_branch: Optional[str] = None
    ahead_count: int = 0
    behind_count: int = 0
    changes: Tuple[ChangeRecord, ...] = ()

    @property
    def has_uncommitted_changes(self) -> bool:
        return any(c.status is not FileStatus.IGNORED for c in self.changes)

    @property
    def has_unstaged_changes(self) -> bool:
        return any(
            not c.staged and c.status is not FileStatus.UNTRACKED for c in self.changes
        )

    @property
    def has_staged_changes(self) -> bool:
        return any(c.staged for c in self.changes)

    @property
    def staged(self) -> List[ChangeRecord]:
        return [c for c in self.changes if c.staged]

    @property
    def unstaged(self) -> List[ChangeRecord]:
        return [c for c in self.changes if not c.staged]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_branch": self.current_branch,
            "upstream_branch": self.upstream_branch,
            "ahead_count": self.ahead_count,
            "behind_count": self.behind_count,
            "has_uncommitted_changes": self.has_uncommitted_changes,
            "has_unstaged_changes": self.has_unstaged_changes,
            "has_staged_changes": self.has_staged_changes,
            "changes": [c.to_dict() for c in self.changes],
        }


@dataclass(frozen=True, slots=True)
class RevisionRecord:
    """One commit from a log listing."""

    id: str
    short_id: str
    author_name: str
    author_email: str
    subject: str
    timestamp: datetime
    parents: Tuple[str, ...] = ()
    message: str = ""

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def epoch(self) -> int:
        return int(self.timestamp.timestamp())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "short_id": self.short_id,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "subject": self.subject,
            "message": self.message,
            "timestamp": _iso(self.timestamp),
            "parents": list(self.parents),
            "is_merge": self.is_merge,
        }


@dataclass(frozen=True, slots=True)
class RefRecord:
    """A local or remote-tracking branch."""

    name: str
    full_name: str
    is_remote: bool = False
    is_current: bool = False
    upstream: Optional[str] = None
    ahead_count: int = 0
    behind_count: int = 0
    last_commit: Optional[RevisionRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "full_name": self.full_name,
            "is_remote": self.is_remote,
            "is_current": self.is_current,
            "upstream": self.upstream,
            "ahead_count": self.ahead_count,
            "behind_count": self.behind_count,
            "last_commit": self.last_commit.to_dict() if self.last_commit else None,
        }


@dataclass(frozen=True, slots=True)
class DiffLine:
    """One classified line of a hunk. Header lines never carry line numbers."""

    kind: DiffLineKind
    text: str
    old_line: Optional[int] = None
    new_line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "text": self.text,
            "old_line": self.old_line,
            "new_line": self.new_line,
        }


@dataclass(frozen=True, slots=True)
class DiffHunk:
    """A contiguous block of a unified diff."""

    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: Tuple[DiffLine, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": self.header,
            "old_start": self.old_start,
            "old_count": self.old_count,
            "new_start": self.new_start,
            "new_count": self.new_count,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True, slots=True)
class FileDiff:
    """The decoded change of one file."""

    path: str = ""
    old_path: Optional[str] = None
    is_binary: bool = False
    is_new_file: bool = False
    is_deleted_file: bool = False
    hunks: Tuple[DiffHunk, ...] = ()

    @property
    def lines_added(self) -> int:
        return sum(
            1 for h in self.hunks for ln in h.lines if ln.kind is DiffLineKind.ADDITION
        )

    @property
    def lines_deleted(self) -> int:
        return sum(
            1 for h in self.hunks for ln in h.lines if ln.kind is DiffLineKind.DELETION
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "old_path": self.old_path,
            "is_binary": self.is_binary,
            "is_new_file": self.is_new_file,
            "is_deleted_file": self.is_deleted_file,
            "lines_added": self.lines_added,
            "lines_deleted": self.lines_deleted,
            "hunks": [h.to_dict() for h in self.hunks],
        }


@dataclass(frozen=True, slots=True)
class TagRecord:
    name: str
    commit_id: str
    message: str = ""
    is_annotated: bool = False
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "commit_id": self.commit_id,
            "message": self.message,
            "is_annotated": self.is_annotated,
            "timestamp": _iso(self.timestamp),
        }


@dataclass(frozen=True, slots=True)
class StashRecord:
    name: str
    message: str
    index: int
    timestamp: datetime
    branch: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "message": self.message,
            "index": self.index,
            "branch": self.branch,
            "timestamp": _iso(self.timestamp),
        }


@dataclass(frozen=True, slots=True)
class RemoteRecord:
    name: str
    url: str = ""
    push_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url, "push_url": self.push_url}


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Layout and state summary of an opened repository."""

    path: str
    working_directory: str
    git_directory: str
    is_bare: bool = False
    head: str = ""
    status: StatusRecord = field(default_factory=StatusRecord)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "working_directory": self.working_directory,
            "git_directory": self.git_directory,
            "is_bare": self.is_bare,
            "head": self.head,
            "status": self.status.to_dict(),
        }


def utc_now() -> datetime:
    """Current wall-clock time, used as the fallback for unparseable timestamps."""
    return datetime.now(timezone.utc)


__all__ = [
    "ResultCategory",
    "ProcessOutcome",
    "FileStatus",
    "DiffLineKind",
    "LogOptions",
    "ProcessResult",
    "OperationResult",
    "ChangeRecord",
    "StatusRecord",
    "RevisionRecord",
    "RefRecord",
    "DiffLine",
    "DiffHunk",
    "FileDiff",
    "TagRecord",
    "StashRecord",
    "RemoteRecord",
    "RepositoryInfo",
    "utc_now",
]
