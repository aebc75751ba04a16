#!/usr/bin/env python3
"""
Helpers for repository discovery, reference names, URLs and display text.

Nothing here spawns a process; these work on paths and strings only.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from functools import lru_cache, wraps
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from loguru import logger

from .exceptions import GitRepositoryNotFound, create_git_error_context

F = TypeVar("F", bound=Callable[..., Any])

GITDIR_PREFIX = "gitdir:"
BARE_MARKERS = ("HEAD", "objects", "refs")

INVALID_BRANCH_TOKENS = (" ", "~", "^", ":", "?", "*", "[", "\\", "..", "@{", "//")
REMOTE_REF_PREFIX = "refs/remotes/"
LOCAL_REF_PREFIX = "refs/heads/"

_HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{4,40}$")
_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_KNOWN_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")

_RELATIVE_UNITS = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("week", 7 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
)


def _read_gitdir_pointer(pointer: Path) -> Optional[Path]:
    try:
        with pointer.open("r", encoding="utf-8") as handle:
            first_line = handle.readline().strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Cannot read {pointer}: {e}")
        return None
    if not first_line.startswith(GITDIR_PREFIX):
        logger.debug(f"{pointer} is not a gitdir pointer")
        return None

    target = Path(first_line[len(GITDIR_PREFIX):].strip())
    if not target.is_absolute():
        target = pointer.parent / target
    return target if target.is_dir() else None


def resolve_git_dir(path: Union[str, Path]) -> Optional[Path]:
    """
    Locate the metadata directory of a repository.

    Args:
        path: Working tree or bare repository directory.

    Returns:
        Optional[Path]: The ``.git`` directory, the directory named by a
        ``.git`` pointer file (linked worktrees and submodules), ``path``
        itself for a bare layout, or None when ``path`` is not a repository.
    """
    root = Path(path)
    if not root.is_dir():
        return None

    marker = root / ".git"
    if marker.is_dir():
        return marker
    if marker.is_file():
        return _read_gitdir_pointer(marker)
    if all((root / entry).exists() for entry in BARE_MARKERS):
        return root
    return None


def is_valid_repository(path: Union[str, Path, None]) -> bool:
    """Check whether ``path`` is a working tree, linked worktree or bare repository."""
    if not path:
        return False
    return resolve_git_dir(path) is not None


def is_bare_layout(path: Union[str, Path]) -> bool:
    root = Path(path)
    return not (root / ".git").exists() and resolve_git_dir(root) == root


def ensure_repository(repo_path: Optional[Path], operation: str) -> Path:
    """
    Check that ``repo_path`` is set and still a repository.

    Raises:
        GitRepositoryNotFound: If it is not.
    """
    if repo_path is None:
        raise GitRepositoryNotFound(
            f"No repository is open for '{operation}'",
            context=create_git_error_context(function_name=operation),
        )
    if not is_valid_repository(repo_path):
        raise GitRepositoryNotFound(
            f"Directory {repo_path} is not a Git repository",
            repository_path=repo_path,
            context=create_git_error_context(repo_path=repo_path, function_name=operation),
        )
    return repo_path


def require_repository(func: F) -> F:
    """Decorator for façade methods that need an opened repository."""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        ensure_repository(getattr(self, "repository_path", None), func.__name__)
        return func(self, *args, **kwargs)

    return wrapper  # type: ignore


@lru_cache(maxsize=64)
def validate_git_reference(ref: str) -> bool:
    """
    Validate a branch or tag name against git's reference rules (simplified).

    Args:
        ref: The reference name to validate.

    Returns:
        bool: True if the reference name is valid.
    """
    if not ref or not isinstance(ref, str):
        return False

    invalid_patterns = [
        r"\.\.",
        r"@\{",
        r"^[./-]",
        r"[./]$",
        r"//",
        r"\.lock$",
        r"/\.",
        r"[\x00-\x1f\x7f~^:?*\[\\]",
        r"\s",
    ]
    if ref == "@":
        return False
    return not any(re.search(pattern, ref) for pattern in invalid_patterns)


def sanitize_branch_name(name: str) -> str:
    """Replace characters git rejects in branch names with ``-``."""
    result = name
    for token in INVALID_BRANCH_TOKENS:
        result = result.replace(token, "-")
    return result.strip("./")


def short_branch_name(full_name: str) -> str:
    for prefix in (LOCAL_REF_PREFIX, REMOTE_REF_PREFIX, "origin/"):
        if full_name.startswith(prefix):
            return full_name[len(prefix):]
    return full_name


def remote_from_branch(branch_name: str) -> str:
    """Return the remote part of ``origin/main`` or ``refs/remotes/origin/main``."""
    if branch_name.startswith(REMOTE_REF_PREFIX):
        branch_name = branch_name[len(REMOTE_REF_PREFIX):]
    remote, sep, _ = branch_name.partition("/")
    return remote if sep else ""


def shorten_hash(commit_id: str, length: int = 7) -> str:
    return commit_id[:length]


def is_valid_hash(commit_id: str) -> bool:
    return bool(commit_id) and _HASH_PATTERN.match(commit_id) is not None


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_PATTERN.match(email) is not None


def sanitize_commit_message(message: str) -> str:
    """
    Normalise a commit message: strip surrounding blank lines and trailing
    whitespace, and collapse runs of blank lines in the body.

    Returns:
        str: The cleaned message, or an empty string if nothing remains.
    """
    lines = [line.rstrip() for line in message.strip().splitlines()]
    cleaned = []
    for line in lines:
        if not line and cleaned and not cleaned[-1]:
            continue
        cleaned.append(line)
    return "\n".join(cleaned)


def format_author(name: str, email: str) -> str:
    if not name and not email:
        return "Unknown"
    if not name:
        return email
    if not email:
        return name
    return f"{name} <{email}>"


def format_relative_time(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe ``timestamp`` relative to ``now``, e.g. ``"3 days ago"``.

    Naive datetimes are taken as UTC. Future timestamps read ``"just now"``.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - timestamp).total_seconds())
    for unit, size in _RELATIVE_UNITS:
        count = seconds // size
        if count > 0:
            return f"{count} {unit}{'' if count == 1 else 's'} ago"
    return "just now"


def count_lines_added(diff: str) -> int:
    return sum(
        1 for line in diff.split("\n") if line.startswith("+") and not line.startswith("+++")
    )


def count_lines_removed(diff: str) -> int:
    return sum(
        1 for line in diff.split("\n") if line.startswith("-") and not line.startswith("---")
    )


def is_valid_git_url(url: str) -> bool:
    """
    Accept ssh (``git@host:path``, ``ssh://``), local (``file://``, absolute
    paths) and http(s) URLs that end in ``.git`` or point at a known host.
    """
    if not url:
        return False
    if url.startswith(("http://", "https://")):
        return ".git" in url or any(host in url for host in _KNOWN_HOSTS)
    return url.startswith(("git@", "ssh://", "git://", "file://", "/"))


def extract_repo_name_from_url(url: str) -> str:
    """``https://github.com/user/project.git`` and ``git@host:user/project`` give ``project``."""
    name = url.strip().rstrip("/")
    if name.endswith(".git"):
        name = name[: -len(".git")]
    # scp-like syntax uses ":" before the path.
    name = name.rsplit("/", 1)[-1]
    if ":" in name and "://" not in url:
        name = name.rsplit(":", 1)[-1]
    return name


__all__ = [
    "GITDIR_PREFIX",
    "resolve_git_dir",
    "is_valid_repository",
    "is_bare_layout",
    "ensure_repository",
    "require_repository",
    "validate_git_reference",
    "sanitize_branch_name",
    "short_branch_name",
    "remote_from_branch",
    "shorten_hash",
    "is_valid_hash",
    "is_valid_email",
    "sanitize_commit_message",
    "format_author",
    "format_relative_time",
    "count_lines_added",
    "count_lines_removed",
    "is_valid_git_url",
    "extract_repo_name_from_url",
]
