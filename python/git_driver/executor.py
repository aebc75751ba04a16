#!/usr/bin/env python3
"""
Process execution for the git driver.

Runs an external program with its standard output and standard error each on
a dedicated pipe, polls both pipes without blocking, and enforces a wall-clock
timeout and cooperative cancellation. Knows nothing about git itself.

Failures to create pipes, spawn the child or enter the working directory are
reported as a ``ProcessResult`` with exit code -1 and never raised.
"""

from __future__ import annotations

import asyncio
import errno
import os
import queue
import shutil
import subprocess
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import (
    IO,
    TYPE_CHECKING,
    Callable,
    Dict,
    Optional,
    Sequence,
    Set,
    Union,
)

from loguru import logger

from .config import DEFAULT_POLL_INTERVAL_MS, DEFAULT_TIMEOUT_MS
from .exceptions import ExecutorError
from .models import ProcessOutcome, ProcessResult

if TYPE_CHECKING:
    from .config import GitDriverConfig

PathLike = Union[str, Path]
ResultCallback = Callable[[ProcessResult], None]

# Upper bound on chunks read from one pipe per poll, so a chatty child cannot
# starve the timeout and cancellation checks.
_MAX_CHUNKS_PER_POLL = 64
_FINAL_DRAIN_TIMEOUT = 0.5


class CancellationToken:
    """Cancellation flag for one invocation, settable from any thread."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


class _NonBlockingPipeReader:
    """Reads a pipe through a non-blocking file descriptor."""

    def __init__(self, pipe: IO[bytes], chunk_size: int) -> None:
        self._pipe = pipe
        self._fd = pipe.fileno()
        self._chunk_size = chunk_size
        self._buffer = bytearray()
        self._eof = False
        os.set_blocking(self._fd, False)

    def drain(self, final: bool = False) -> None:
        chunks = 0
        while not self._eof and (final or chunks < _MAX_CHUNKS_PER_POLL):
            try:
                chunk = os.read(self._fd, self._chunk_size)
            except BlockingIOError:
                return
            if not chunk:
                self._eof = True
                return
            self._buffer.extend(chunk)
            chunks += 1

    @property
    def data(self) -> bytes:
        return bytes(self._buffer)

    def close(self) -> None:
        self._pipe.close()


class _ThreadedPipeReader:
    """
    Reads a pipe on a helper thread.

    Used where pipes cannot be switched to non-blocking mode (Windows). The
    poll loop drains the queue the same way it drains a non-blocking pipe.
    """

    def __init__(self, pipe: IO[bytes], chunk_size: int) -> None:
        self._pipe = pipe
        self._chunk_size = chunk_size
        self._buffer = bytearray()
        self._queue: "queue.SimpleQueue[Optional[bytes]]" = queue.SimpleQueue()
        self._thread = threading.Thread(target=self._pump, daemon=True)
        self._thread.start()

    def _pump(self) -> None:
        try:
            while True:
                chunk = self._pipe.read1(self._chunk_size)  # type: ignore[attr-defined]
                if not chunk:
                    break
                self._queue.put(chunk)
        except (OSError, ValueError) as e:
            # ValueError: the pipe was closed by close() after a timeout.
            logger.debug(f"Pipe reader stopped: {e}")
        finally:
            self._queue.put(None)

    def drain(self, final: bool = False) -> None:
        if final:
            self._thread.join(_FINAL_DRAIN_TIMEOUT)
        while True:
            try:
                chunk = self._queue.get_nowait()
            except queue.Empty:
                return
            if chunk is None:
                return
            self._buffer.extend(chunk)

    @property
    def data(self) -> bytes:
        return bytes(self._buffer)

    def close(self) -> None:
        self._pipe.close()


def _supports_nonblocking_pipes() -> bool:
    return os.name != "nt"


class ProcessExecutor:
    """
    Runs child processes under timeout and cancellation control.

    Every invocation gets its own CancellationToken, so concurrent invocations
    on one executor can be cancelled independently; ``cancel()`` cancels all
    invocations currently in flight.
    """

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        read_chunk_size: int = 4096,
        kill_grace_ms: int = 2000,
        max_workers: int = 4,
        environment: Optional[Dict[str, str]] = None,
        encoding: str = "utf-8",
    ) -> None:
        self.timeout_ms = timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.read_chunk_size = read_chunk_size
        self.kill_grace_ms = kill_grace_ms
        self.max_workers = max_workers
        self.encoding = encoding
        self._environment: Dict[str, str] = dict(environment or {})
        self._pending_environment: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._active_tokens: Set[CancellationToken] = set()
        self._pool: Optional[ThreadPoolExecutor] = None
        self._closed = False

    @classmethod
    def from_config(cls, config: "GitDriverConfig") -> "ProcessExecutor":
        return cls(
            timeout_ms=config.timeout_ms,
            poll_interval_ms=config.poll_interval_ms,
            read_chunk_size=config.read_chunk_size,
            kill_grace_ms=config.kill_grace_ms,
            max_workers=config.max_workers,
            environment=config.environment,
        )

    # Environment overrides
    def set_environment_variable(self, name: str, value: str) -> None:
        """
        Add an override to the environment of the next spawned child.

        Pending overrides are consumed by the next invocation. Overrides that
        must apply to every child belong in the ``environment`` argument of
        the constructor or the per-call ``env``.
        """
        with self._lock:
            self._pending_environment[name] = value

    def clear_environment_variables(self) -> None:
        with self._lock:
            self._pending_environment.clear()

    @property
    def environment(self) -> Dict[str, str]:
        """Persistent overrides plus any pending for the next invocation."""
        with self._lock:
            return {**self._environment, **self._pending_environment}

    def _build_env(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        env = os.environ.copy()
        with self._lock:
            env.update(self._environment)
            env.update(self._pending_environment)
            self._pending_environment.clear()
        if extra:
            env.update(extra)
        return env

    # Cancellation
    def cancel(self) -> int:
        """
        Cancel every invocation currently running on this executor.

        Returns:
            int: Number of invocations that were signalled.
        """
        with self._lock:
            tokens = list(self._active_tokens)
        for token in tokens:
            token.cancel()
        if tokens:
            logger.info(f"Cancelling {len(tokens)} running process(es)")
        return len(tokens)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active_tokens)

    # Execution
    def execute(
        self,
        program: str,
        args: Optional[Sequence[str]] = None,
        working_directory: Optional[PathLike] = None,
        *,
        timeout_ms: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        """
        Run a program to completion, timeout or cancellation.

        Args:
            program: Program name (resolved through PATH) or path.
            args: Arguments passed to the program.
            working_directory: Directory the child runs in.
            timeout_ms: Overrides the executor's timeout for this invocation.
            env: Extra environment variables for this invocation only.
            cancel_token: Token the caller can use to cancel this invocation.

        Returns:
            ProcessResult: Captured output, exit code and outcome.
        """
        command = (program, *(args or ()))
        token = cancel_token or CancellationToken()
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        start = time.monotonic()

        logger.debug(
            f"Executing: {' '.join(command)}"
            + (f" in {working_directory}" if working_directory else "")
        )

        child_env = self._build_env(env)

        if working_directory is not None and not Path(working_directory).is_dir():
            return self._spawn_failure(
                command,
                start,
                f"Failed to change directory to {working_directory}",
                errno.ENOTDIR,
            )

        try:
            process = subprocess.Popen(
                list(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(working_directory) if working_directory is not None else None,
                env=child_env,
                **self._platform_popen_kwargs(),
            )
        except OSError as e:
            return self._spawn_failure(
                command, start, f"Failed to start {program}: {e.strerror or e}", e.errno
            )

        with self._lock:
            self._active_tokens.add(token)

        try:
            return self._poll(process, command, token, timeout_ms, start)
        finally:
            with self._lock:
                self._active_tokens.discard(token)

    def _poll(
        self,
        process: "subprocess.Popen[bytes]",
        command: tuple,
        token: CancellationToken,
        timeout_ms: int,
        start: float,
    ) -> ProcessResult:
        reader_cls = (
            _NonBlockingPipeReader if _supports_nonblocking_pipes() else _ThreadedPipeReader
        )
        readers = [
            reader_cls(process.stdout, self.read_chunk_size),
            reader_cls(process.stderr, self.read_chunk_size),
        ]
        timeout = timeout_ms / 1000.0
        interval = self.poll_interval_ms / 1000.0
        outcome = ProcessOutcome.COMPLETED

        try:
            while True:
                if token.cancelled:
                    outcome = ProcessOutcome.CANCELLED
                    break
                if time.monotonic() - start > timeout:
                    outcome = ProcessOutcome.TIMED_OUT
                    break

                exited = process.poll() is not None
                for reader in readers:
                    reader.drain()
                if exited:
                    for reader in readers:
                        reader.drain(final=True)
                    break

                time.sleep(interval)

            if outcome is not ProcessOutcome.COMPLETED:
                self._terminate(process)
        finally:
            for reader in readers:
                reader.close()

        duration = time.monotonic() - start

        if outcome is ProcessOutcome.TIMED_OUT:
            logger.warning(f"Process timed out after {timeout_ms} ms: {' '.join(command)}")
            return ProcessResult(
                exit_code=-1,
                stderr=f"Process timed out after {timeout_ms} ms",
                outcome=outcome,
                command=command,
                duration=duration,
            )
        if outcome is ProcessOutcome.CANCELLED:
            logger.warning(f"Process cancelled: {' '.join(command)}")
            return ProcessResult(
                exit_code=-1,
                stderr="Process was cancelled",
                outcome=outcome,
                command=command,
                duration=duration,
            )

        returncode = process.returncode
        # Negative return codes mean the child died from a signal.
        exit_code = returncode if returncode is not None and returncode >= 0 else -1
        stdout = readers[0].data.decode(self.encoding, errors="replace")
        stderr = readers[1].data.decode(self.encoding, errors="replace")

        if exit_code == 0:
            logger.debug(f"Process completed in {duration:.3f}s: {' '.join(command)}")
        else:
            logger.debug(
                f"Process exited with code {exit_code} in {duration:.3f}s: {' '.join(command)}"
            )

        return ProcessResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            outcome=outcome,
            command=command,
            duration=duration,
        )

    def _terminate(self, process: "subprocess.Popen[bytes]") -> None:
        if process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self.kill_grace_ms / 1000.0)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {process.pid} ignored termination, killing")
            process.kill()
            process.wait()

    @staticmethod
    def _platform_popen_kwargs() -> Dict[str, int]:
        if os.name == "nt":
            return {"creationflags": getattr(subprocess, "CREATE_NO_WINDOW", 0)}
        return {}

    @staticmethod
    def _spawn_failure(
        command: tuple, start: float, message: str, error_number: Optional[int]
    ) -> ProcessResult:
        logger.error(message)
        return ProcessResult(
            exit_code=-1,
            stderr=message,
            outcome=ProcessOutcome.SPAWN_FAILED,
            command=command,
            duration=time.monotonic() - start,
            spawn_error=errno.errorcode.get(error_number, "EIO") if error_number else "EIO",
        )

    # Background and async variants
    def _get_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise ExecutorError("Executor has been shut down")
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="git-driver"
                )
            return self._pool

    def execute_in_background(
        self,
        program: str,
        args: Optional[Sequence[str]] = None,
        working_directory: Optional[PathLike] = None,
        callback: Optional[ResultCallback] = None,
        **kwargs,
    ) -> "Future[ProcessResult]":
        """
        Run ``execute`` on a worker thread and deliver the result to ``callback``.

        There is no queueing or ordering between background invocations; each
        one can be cancelled through its own ``cancel_token`` keyword argument
        or all at once through ``cancel()``.
        """
        future = self._get_pool().submit(
            self.execute, program, args, working_directory, **kwargs
        )
        if callback is not None:
            future.add_done_callback(lambda f: callback(f.result()))
        return future

    async def execute_async(
        self,
        program: str,
        args: Optional[Sequence[str]] = None,
        working_directory: Optional[PathLike] = None,
        **kwargs,
    ) -> ProcessResult:
        """Coroutine wrapper around ``execute``; cancelling the task cancels the child."""
        token = kwargs.pop("cancel_token", None) or CancellationToken()
        try:
            return await asyncio.to_thread(
                self.execute, program, args, working_directory, cancel_token=token, **kwargs
            )
        except asyncio.CancelledError:
            token.cancel()
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Cancel running invocations and stop the background pool."""
        self.cancel()
        with self._lock:
            self._closed = True
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait)

    def __enter__(self) -> "ProcessExecutor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    @staticmethod
    def is_command_available(command: str) -> bool:
        return shutil.which(command) is not None


__all__ = ["ProcessExecutor", "CancellationToken", "PathLike"]
