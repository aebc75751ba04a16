#!/usr/bin/env python3
"""
Exception types for the git driver.

The executor and decoders never raise for runtime failures; they degrade to
result values. These exceptions are for caller errors (bad arguments, no
repository, invalid configuration) and for callers that opt into raising via
``OperationResult.raise_for_status()``.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class GitErrorContext:
    """Context information for debugging git driver errors."""

    timestamp: float = field(default_factory=time.time)
    working_directory: Optional[Path] = None
    repository_path: Optional[Path] = None
    command: List[str] = field(default_factory=list)
    environment_vars: Dict[str, str] = field(default_factory=dict)
    git_version: Optional[str] = None
    additional_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp,
            "working_directory": (
                str(self.working_directory) if self.working_directory else None
            ),
            "repository_path": (
                str(self.repository_path) if self.repository_path else None
            ),
            "command": self.command,
            "environment_vars": self.environment_vars,
            "git_version": self.git_version,
            "additional_data": self.additional_data,
        }


class GitException(Exception):
    """
    Base exception for all git driver errors.

    Carries a stable error code and a context object so callers can log or
    serialize the failure without parsing the message.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        context: Optional[GitErrorContext] = None,
        original_error: Optional[Exception] = None,
        **extra_context: Any,
    ):
        super().__init__(message)
        self.error_code = error_code or self.__class__.__name__.upper()
        self.context = context or GitErrorContext()
        self.original_error = original_error
        self.extra_context = extra_context

        if extra_context:
            self.context.additional_data.update(extra_context)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to structured dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "error_code": self.error_code,
            "context": self.context.to_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
            "extra_context": self.extra_context,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={str(self)!r}, error_code={self.error_code!r})"


class GitCommandError(GitException):
    """Raised by ``raise_for_status`` when a git invocation did not succeed."""

    def __init__(
        self,
        command: List[str],
        return_code: int,
        stderr: str,
        stdout: Optional[str] = None,
        *,
        duration: Optional[float] = None,
        **kwargs: Any,
    ):
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
        self.stdout = stdout
        self.duration = duration

        command_str = " ".join(command)
        message = f"Git command failed: {command_str} (Return code: {return_code})"
        if stderr:
            message += f": {stderr}"

        super().__init__(
            message,
            error_code="GIT_COMMAND_FAILED",
            command=command,
            return_code=return_code,
            stderr=stderr,
            stdout=stdout,
            duration=duration,
            **kwargs,
        )


class GitRepositoryNotFound(GitException):
    """Raised when an operation needs a repository and none is usable."""

    def __init__(
        self, message: str, repository_path: Optional[Path] = None, **kwargs: Any
    ):
        self.repository_path = repository_path

        super().__init__(
            message,
            error_code="GIT_REPOSITORY_NOT_FOUND",
            repository_path=str(repository_path) if repository_path else None,
            **kwargs,
        )


class GitArgumentError(GitException):
    """Raised when a façade operation is given an unusable argument."""

    def __init__(self, message: str, argument: Optional[str] = None, **kwargs: Any):
        self.argument = argument

        super().__init__(
            message, error_code="GIT_INVALID_ARGUMENT", argument=argument, **kwargs
        )


class GitBranchError(GitException):
    """Raised for invalid branch arguments."""

    def __init__(self, message: str, branch_name: Optional[str] = None, **kwargs: Any):
        self.branch_name = branch_name

        super().__init__(
            message, error_code="GIT_BRANCH_ERROR", branch_name=branch_name, **kwargs
        )


class GitRemoteError(GitException):
    """Raised for invalid remote arguments."""

    def __init__(
        self,
        message: str,
        remote_name: Optional[str] = None,
        remote_url: Optional[str] = None,
        **kwargs: Any,
    ):
        self.remote_name = remote_name
        self.remote_url = remote_url

        super().__init__(
            message,
            error_code="GIT_REMOTE_ERROR",
            remote_name=remote_name,
            remote_url=remote_url,
            **kwargs,
        )


class GitTagError(GitException):
    """Raised for invalid tag arguments."""

    def __init__(self, message: str, tag_name: Optional[str] = None, **kwargs: Any):
        self.tag_name = tag_name

        super().__init__(
            message, error_code="GIT_TAG_ERROR", tag_name=tag_name, **kwargs
        )


class GitStashError(GitException):
    """Raised for invalid stash arguments."""

    def __init__(self, message: str, stash_index: Optional[int] = None, **kwargs: Any):
        self.stash_index = stash_index

        super().__init__(
            message, error_code="GIT_STASH_ERROR", stash_index=stash_index, **kwargs
        )


class GitConfigError(GitException):
    """Raised when driver configuration or a git config request is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs: Any,
    ):
        self.config_key = config_key
        self.config_value = config_value

        super().__init__(
            message,
            error_code="GIT_CONFIG_ERROR",
            config_key=config_key,
            config_value=config_value,
            **kwargs,
        )


class ExecutorError(GitException):
    """Raised when the executor is misused (for example after shutdown)."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, error_code="EXECUTOR_ERROR", **kwargs)


def create_git_error_context(
    working_dir: Optional[Path] = None,
    repo_path: Optional[Path] = None,
    command: Optional[List[str]] = None,
    git_version: Optional[str] = None,
    **extra: Any,
) -> GitErrorContext:
    """Create an error context; only GIT_* environment variables are captured."""
    return GitErrorContext(
        working_directory=working_dir or Path.cwd(),
        repository_path=repo_path,
        command=command or [],
        environment_vars={k: v for k, v in os.environ.items() if k.startswith("GIT_")},
        git_version=git_version,
        additional_data=extra,
    )


__all__ = [
    "GitException",
    "GitErrorContext",
    "create_git_error_context",
    "GitCommandError",
    "GitRepositoryNotFound",
    "GitArgumentError",
    "GitBranchError",
    "GitRemoteError",
    "GitTagError",
    "GitStashError",
    "GitConfigError",
    "ExecutorError",
]
