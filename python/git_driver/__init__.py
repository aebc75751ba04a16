"""
Git Driver

Runs the git executable as a subprocess under timeout and cancellation
control and decodes its text output into typed records.

Features:
- Process execution: non-blocking pipe polling, timeouts, per-invocation cancellation
- Command dispatch: result classification, per-repository write serialization
- Decoders: porcelain status, commit log, refs, unified diff, tags, stashes, remotes
- GitManager: named repository, change, history, branch, remote, diff, tag,
  stash and config operations

License:
    GPL-3.0-or-later

Version:
    1.0.0
"""

from .config import GitDriverConfig, load_config
from .dispatcher import GitCommandDispatcher, classify, repository_lock
from .exceptions import (
    ExecutorError,
    GitArgumentError,
    GitBranchError,
    GitCommandError,
    GitConfigError,
    GitException,
    GitRemoteError,
    GitRepositoryNotFound,
    GitStashError,
    GitTagError,
)
from .executor import CancellationToken, ProcessExecutor
from .manager import GitManager
from .models import (
    ChangeRecord,
    DiffHunk,
    DiffLine,
    DiffLineKind,
    FileDiff,
    FileStatus,
    LogOptions,
    OperationResult,
    ProcessOutcome,
    ProcessResult,
    RefRecord,
    RemoteRecord,
    RepositoryInfo,
    ResultCategory,
    RevisionRecord,
    StashRecord,
    StatusRecord,
    TagRecord,
)
from .utils import is_valid_repository

__version__ = "1.0.0"
__license__ = "GPL-3.0-or-later"

__all__ = [
    "GitManager",
    "GitCommandDispatcher",
    "ProcessExecutor",
    "CancellationToken",
    "GitDriverConfig",
    "load_config",
    "classify",
    "repository_lock",
    "is_valid_repository",
    "GitException",
    "GitArgumentError",
    "GitCommandError",
    "GitRepositoryNotFound",
    "GitBranchError",
    "GitRemoteError",
    "GitTagError",
    "GitStashError",
    "GitConfigError",
    "ExecutorError",
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
    "get_tool_info",
]


def get_tool_info() -> dict:
    """
    Return metadata about this package for tool discovery.

    Returns:
        Dict containing name, version, description, the public operations of
        GitManager, requirements and platform compatibility.
    """
    return {
        "name": "git_driver",
        "version": __version__,
        "description": "Git subprocess driver with typed output decoders",
        "license": __license__,
        "supported": True,
        "platform": ["windows", "linux", "macos"],
        "functions": sorted(
            name
            for name in dir(GitManager)
            if not name.startswith("_") and callable(getattr(GitManager, name))
        ),
        "requirements": ["loguru", "pydantic"],
        "capabilities": [
            "timeouts",
            "cancellation",
            "async_operations",
            "status_decoding",
            "log_decoding",
            "diff_decoding",
        ],
        "classes": {
            "GitManager": "Named git operations returning typed records",
            "ProcessExecutor": "Subprocess runner with timeout and cancellation",
            "GitCommandDispatcher": "git invocation and result classification",
        },
    }
