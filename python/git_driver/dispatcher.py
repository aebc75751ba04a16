#!/usr/bin/env python3
"""
Command dispatch for the git driver.

Turns an argument vector into a git invocation against the configured
repository directory and classifies the raw process result into an
``OperationResult``. Output content is never interpreted here beyond the
invalid-repository marker; decoding is left to ``git_driver.decoders``.
"""

from __future__ import annotations

import threading
import weakref
from contextlib import nullcontext
from pathlib import Path
from typing import TYPE_CHECKING, ContextManager, Dict, Optional, Sequence

from loguru import logger

from .executor import CancellationToken, PathLike, ProcessExecutor
from .models import OperationResult, ProcessOutcome, ProcessResult, ResultCategory

if TYPE_CHECKING:
    from .config import GitDriverConfig

INVALID_REPOSITORY_MARKER = "not a git repository"

_SPAWN_ERROR_CATEGORIES = {
    "ENOENT": ResultCategory.NOT_FOUND,
    "EACCES": ResultCategory.PERMISSION_DENIED,
    "EPERM": ResultCategory.PERMISSION_DENIED,
}

_locks_guard = threading.Lock()
_repository_locks: "weakref.WeakValueDictionary[str, threading.RLock]" = (
    weakref.WeakValueDictionary()
)


def repository_lock(path: PathLike) -> threading.RLock:
    """
    Return the process-wide lock for a repository directory.

    Mutating invocations hold this lock so two of them never run against the
    same directory at once; git's own index.lock would otherwise fail one.
    Locks are held weakly and dropped once no caller references them.
    """
    key = str(Path(path).resolve())
    with _locks_guard:
        lock = _repository_locks.get(key)
        if lock is None:
            lock = _repository_locks[key] = threading.RLock()
        return lock


def classify(result: ProcessResult) -> ResultCategory:
    """
    Derive the result category of one invocation.

    Exit code 0 is success. A non-zero exit mentioning an invalid repository
    in its combined output is an invalid target; any other non-zero exit is a
    generic failure rather than a guessed specific category.
    """
    if result.outcome is ProcessOutcome.CANCELLED:
        return ResultCategory.CANCELLED
    if result.outcome is ProcessOutcome.SPAWN_FAILED:
        return _SPAWN_ERROR_CATEGORIES.get(result.spawn_error or "", ResultCategory.FAILED)
    if result.outcome is ProcessOutcome.TIMED_OUT:
        return ResultCategory.FAILED
    if result.exit_code == 0:
        return ResultCategory.SUCCESS

    combined = f"{result.stdout}\n{result.stderr}".lower()
    if INVALID_REPOSITORY_MARKER in combined:
        return ResultCategory.INVALID_TARGET
    return ResultCategory.FAILED


class GitCommandDispatcher:
    """Builds and runs git invocations for one repository directory."""

    def __init__(
        self,
        repository_path: Optional[PathLike] = None,
        executor: Optional[ProcessExecutor] = None,
        git_executable: str = "git",
    ) -> None:
        self.repository_path = Path(repository_path) if repository_path else None
        self.executor = executor or ProcessExecutor()
        self.git_executable = git_executable

    @classmethod
    def from_config(
        cls, config: "GitDriverConfig", repository_path: Optional[PathLike] = None
    ) -> "GitCommandDispatcher":
        return cls(
            repository_path,
            executor=ProcessExecutor.from_config(config),
            git_executable=config.git_executable,
        )

    def run(
        self,
        args: Sequence[str],
        working_directory: Optional[PathLike] = None,
        *,
        mutating: bool = False,
        timeout_ms: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        """
        Run ``git <args>`` and classify the result.

        Args:
            args: Arguments after the git executable.
            working_directory: Overrides the repository directory for this call.
            mutating: Serialize against other mutating calls on the same directory.
            timeout_ms: Per-call timeout override.
            env: Extra environment variables for this call.
            cancel_token: Token to cancel this call from another thread.

        Returns:
            OperationResult: Classified result carrying stdout, stderr and exit code.
        """
        directory = working_directory or self.repository_path
        lock: ContextManager = (
            repository_lock(directory) if mutating and directory else nullcontext()
        )

        with lock:
            process_result = self.executor.execute(
                self.git_executable,
                list(args),
                directory,
                timeout_ms=timeout_ms,
                env=env,
                cancel_token=cancel_token,
            )

        category = classify(process_result)
        result = OperationResult(
            category=category,
            stdout=process_result.stdout,
            stderr=process_result.stderr,
            exit_code=process_result.exit_code,
            command=process_result.command,
            duration=process_result.duration,
            timed_out=process_result.timed_out,
        )

        if category is not ResultCategory.SUCCESS:
            logger.warning(
                f"git {' '.join(args)} -> {category.value} "
                f"(exit {result.exit_code}): {result.error_text}"
            )
        return result


__all__ = [
    "GitCommandDispatcher",
    "classify",
    "repository_lock",
    "INVALID_REPOSITORY_MARKER",
]
