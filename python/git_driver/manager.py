#!/usr/bin/env python3
"""
High level git operations.

``GitManager`` composes the command dispatcher and the decoders into named
operations. Queries return decoded records and fall back to an empty record
when git fails; mutations return the ``OperationResult`` of the invocation.
The most recent error text is kept per thread in ``last_error``.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from loguru import logger

from .config import GitDriverConfig
from .decoders import (
    ALL_REFS,
    DETAIL_FORMAT,
    LOCAL_REFS,
    LOG_FORMAT,
    REF_FORMAT,
    REMOTE_ARGS,
    STASH_FORMAT,
    STATUS_ARGS,
    TAG_FORMAT,
    TAG_REFS,
    decode_diff,
    decode_diff_all,
    decode_log,
    decode_refs,
    decode_remotes,
    decode_revision_detail,
    decode_stashes,
    decode_status,
    decode_tags,
)
from .dispatcher import GitCommandDispatcher
from .exceptions import (
    GitArgumentError,
    GitBranchError,
    GitConfigError,
    GitRemoteError,
    GitStashError,
    GitTagError,
)
from .executor import CancellationToken, ProcessExecutor
from .models import (
    FileDiff,
    LogOptions,
    OperationResult,
    RefRecord,
    RemoteRecord,
    RepositoryInfo,
    ResultCategory,
    RevisionRecord,
    StashRecord,
    StatusRecord,
    TagRecord,
)
from .utils import (
    ensure_repository,
    is_bare_layout,
    is_valid_email,
    is_valid_git_url,
    is_valid_repository,
    require_repository,
    resolve_git_dir,
    sanitize_commit_message,
    validate_git_reference,
)

PathLike = Union[str, Path]

# Remote operations must fail instead of waiting for credentials on a tty.
_NETWORK_ENV = {"GIT_TERMINAL_PROMPT": "0"}
_DIFF_FLAGS = ("--no-color", "--no-ext-diff")
UNKNOWN_BRANCH = "unknown"
DETACHED_PREFIX = "HEAD detached at "


def _local_result(category: ResultCategory, message: str = "") -> OperationResult:
    return OperationResult(
        category=category,
        stderr=message,
        exit_code=0 if category is ResultCategory.SUCCESS else 1,
    )


def _check_revision(revision: str, argument: str = "revision") -> str:
    # A leading "-" would be parsed by git as an option.
    if not revision or not revision.strip() or revision.startswith("-"):
        raise GitArgumentError(f"Invalid {argument}: {revision!r}", argument=argument)
    return revision


def _check_paths(paths: Sequence[PathLike]) -> List[str]:
    if isinstance(paths, (str, Path)):
        paths = [paths]
    return [str(p) for p in paths]


class GitManager:
    """
    Named git operations against one repository.

    Example:
        >>> manager = GitManager("/path/to/repo")
        >>> status = manager.get_status()
        >>> if status.has_staged_changes:
        ...     manager.commit("Update docs")
    """

    def __init__(
        self,
        repository_path: Optional[PathLike] = None,
        *,
        config: Optional[GitDriverConfig] = None,
        dispatcher: Optional[GitCommandDispatcher] = None,
    ):
        self.config = config or GitDriverConfig()
        self.dispatcher = dispatcher or GitCommandDispatcher.from_config(self.config)
        self._local = threading.local()
        if repository_path is not None:
            self.repository_path = repository_path

        logger.debug(f"Initialized GitManager with repository: {self.repository_path}")

    @property
    def repository_path(self) -> Optional[Path]:
        return self.dispatcher.repository_path

    @repository_path.setter
    def repository_path(self, path: Optional[PathLike]) -> None:
        self.dispatcher.repository_path = Path(path).resolve() if path else None

    @property
    def executor(self) -> ProcessExecutor:
        return self.dispatcher.executor

    @property
    def last_error(self) -> str:
        """Error text of the most recent operation run on the calling thread."""
        return getattr(self._local, "last_error", "")

    def _run(
        self,
        args: Sequence[str],
        *,
        mutating: bool = False,
        working_directory: Optional[PathLike] = None,
        timeout_ms: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        result = self.dispatcher.run(
            args,
            working_directory,
            mutating=mutating,
            timeout_ms=timeout_ms,
            env=env,
            cancel_token=cancel_token,
        )
        self._local.last_error = result.error_text
        return result

    def _remember(self, result: OperationResult) -> OperationResult:
        self._local.last_error = result.error_text
        return result

    # Repository operations
    def init_repository(self, path: PathLike, bare: bool = False) -> OperationResult:
        """
        Create a repository at ``path`` and open it on success.

        Args:
            path: Directory to initialise; created if missing.
            bare: Create a bare repository.
        """
        target = Path(path).resolve()
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create {target}: {e}")
            return self._remember(
                _local_result(ResultCategory.PERMISSION_DENIED, f"Cannot create {target}: {e}")
            )

        args = ["init"]
        if bare:
            args.append("--bare")
        args.append(str(target))

        logger.info(f"Initialising {'bare ' if bare else ''}repository at {target}")
        result = self._run(args, mutating=True, working_directory=target)
        if result:
            self.repository_path = target
        return result

    def clone_repository(
        self,
        url: str,
        path: PathLike,
        *,
        timeout_ms: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        """
        Clone ``url`` into ``path`` and open the clone on success.

        Returns:
            OperationResult: Result of the clone. A non-empty target directory
            fails without running git.
        """
        if not url or not url.strip():
            raise GitRemoteError("Clone URL cannot be empty", remote_url=url)

        target = Path(path).resolve()
        if target.exists() and not target.is_dir():
            logger.warning(f"Cannot clone: {target} exists and is not a directory")
            return self._remember(
                _local_result(
                    ResultCategory.FAILED, f"{target} exists and is not a directory"
                )
            )
        try:
            if target.exists() and any(target.iterdir()):
                logger.warning(
                    f"Cannot clone: directory {target} already exists and is not empty"
                )
                return self._remember(
                    _local_result(
                        ResultCategory.FAILED,
                        f"Directory {target} already exists and is not empty",
                    )
                )
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot prepare clone target {target}: {e}")
            return self._remember(
                _local_result(
                    ResultCategory.PERMISSION_DENIED,
                    f"Cannot prepare clone target {target}: {e}",
                )
            )

        logger.info(f"Cloning repository {url} to {target}")
        result = self._run(
            ["clone", "--progress", "--", url, str(target)],
            working_directory=target.parent,
            timeout_ms=timeout_ms,
            env=_NETWORK_ENV,
            cancel_token=cancel_token,
        )
        if result:
            self.repository_path = target
            logger.success(f"Repository cloned to {target}")
        return result

    def open_repository(self, path: PathLike) -> OperationResult:
        if not is_valid_repository(path):
            logger.warning(f"Not a valid git repository: {path}")
            return self._remember(
                _local_result(ResultCategory.INVALID_TARGET, "Not a valid git repository")
            )
        self.repository_path = path
        return self._remember(_local_result(ResultCategory.SUCCESS))

    @staticmethod
    def is_valid_repository(path: PathLike) -> bool:
        return is_valid_repository(path)

    @require_repository
    def get_repository_info(self) -> RepositoryInfo:
        path = self.repository_path
        bare = is_bare_layout(path)
        git_dir = resolve_git_dir(path)
        return RepositoryInfo(
            path=str(path),
            working_directory="" if bare else str(path),
            git_directory=str(git_dir) if git_dir else "",
            is_bare=bare,
            head=self.get_current_branch(),
            status=StatusRecord() if bare else self.get_status(),
        )

    @require_repository
    def get_status(self) -> StatusRecord:
        result = self._run(STATUS_ARGS)
        if not result:
            return StatusRecord()
        return decode_status(result.stdout)

    @require_repository
    def get_current_branch(self) -> str:
        """
        Name of the checked out branch.

        Falls back to ``symbolic-ref`` for git versions without
        ``branch --show-current``, reports ``HEAD detached at <id>`` for a
        detached HEAD, and ``unknown`` when nothing works.
        """
        result = self._run(["branch", "--show-current"])
        if result and result.stdout.strip():
            return result.stdout.strip()

        result = self._run(["symbolic-ref", "--short", "HEAD"])
        if result and result.stdout.strip():
            return result.stdout.strip()

        result = self._run(["rev-parse", "--short", "HEAD"])
        if result and result.stdout.strip():
            return DETACHED_PREFIX + result.stdout.strip()

        return UNKNOWN_BRANCH

    # Change management
    @require_repository
    def add_files(self, files: Sequence[PathLike]) -> OperationResult:
        paths = _check_paths(files)
        if not paths:
            return self._remember(_local_result(ResultCategory.SUCCESS))
        logger.info(f"Adding {len(paths)} path(s) to the index")
        return self._run(["add", "--", *paths], mutating=True)

    @require_repository
    def add_all_files(self) -> OperationResult:
        logger.info("Adding all changes to the index")
        return self._run(["add", "--all"], mutating=True)

    @require_repository
    def remove_files(self, files: Sequence[PathLike], cached: bool = False) -> OperationResult:
        """Remove paths from the index, and from the working tree unless ``cached``."""
        paths = _check_paths(files)
        if not paths:
            return self._remember(_local_result(ResultCategory.SUCCESS))
        args = ["rm"]
        if cached:
            args.append("--cached")
        logger.info(f"Removing {len(paths)} path(s)" + (" from the index" if cached else ""))
        return self._run([*args, "--", *paths], mutating=True)

    @require_repository
    def reset_files(self, files: Sequence[PathLike] = ()) -> OperationResult:
        """Unstage ``files``, or everything when none are given."""
        paths = _check_paths(files)
        args = ["reset", "HEAD"]
        if paths:
            args += ["--", *paths]
        return self._run(args, mutating=True)

    @require_repository
    def reset_hard(self, commit: str = "HEAD") -> OperationResult:
        _check_revision(commit, "commit")
        logger.warning(f"Hard reset to {commit}")
        return self._run(["reset", "--hard", commit], mutating=True)

    @require_repository
    def commit(self, message: str, amend: bool = False) -> OperationResult:
        """
        Commit the index.

        Args:
            message: Commit message; may be empty only when amending, in which
                case the previous message is kept.
            amend: Replace the tip commit instead of adding a new one.

        Raises:
            GitArgumentError: If the message is empty and ``amend`` is False.
        """
        message = sanitize_commit_message(message or "")
        args = ["commit"]
        if amend:
            args.append("--amend")
        if message:
            args += ["-m", message]
        elif amend:
            args.append("--no-edit")
        else:
            raise GitArgumentError("Commit message cannot be empty", argument="message")

        subject = message.splitlines()[0] if message else ""
        logger.info(
            f"{'Amending commit' if amend else 'Committing'}: "
            f"{subject[:50]}{'...' if len(subject) > 50 else ''}"
        )
        return self._run(args, mutating=True)

    def commit_with_files(self, message: str, files: Sequence[PathLike]) -> OperationResult:
        """Stage ``files`` then commit; the add result is returned if staging fails."""
        result = self.add_files(files)
        if not result:
            return result
        return self.commit(message)

    # History
    @require_repository
    def get_commit_history(
        self,
        max_count: int = 100,
        options: LogOptions = LogOptions.NONE,
        branch: str = "",
        file_path: str = "",
    ) -> List[RevisionRecord]:
        """
        List commits, newest first.

        Args:
            max_count: Upper bound on the number of commits; 0 or less means no limit.
            options: Which commits to include. Merge commits are left out
                unless ``LogOptions.SHOW_MERGES`` is set.
            branch: Revision to start from instead of HEAD.
            file_path: Restrict to commits touching this path.
        """
        args = ["log", f"--format={LOG_FORMAT}", "-z", "--no-color"]
        if max_count > 0:
            args.append(f"--max-count={max_count}")
        if LogOptions.FIRST_PARENT_ONLY in options:
            args.append("--first-parent")
        if LogOptions.SHOW_MERGES not in options:
            args.append("--no-merges")
        if LogOptions.SIMPLIFY_MERGES in options:
            args.append("--simplify-merges")
        if LogOptions.FOLLOW_RENAMES in options and file_path:
            args.append("--follow")
        if branch:
            args.append(_check_revision(branch, "branch"))
        if file_path:
            args += ["--", file_path]

        result = self._run(args)
        if not result:
            return []
        return decode_log(result.stdout)

    @require_repository
    def get_commit(self, commit_id: str) -> Optional[RevisionRecord]:
        """Fetch one commit including its full message, or None if it does not exist."""
        _check_revision(commit_id, "commit")
        result = self._run(
            ["show", "-s", "--no-color", f"--format={DETAIL_FORMAT}", commit_id]
        )
        if not result or not result.stdout:
            return None
        return decode_revision_detail(result.stdout)

    @require_repository
    def get_commit_range(self, from_commit: str, to_commit: str) -> List[RevisionRecord]:
        """Commits reachable from ``to_commit`` but not from ``from_commit``."""
        _check_revision(from_commit, "from_commit")
        _check_revision(to_commit, "to_commit")
        result = self._run(
            [
                "log",
                f"--format={LOG_FORMAT}",
                "-z",
                "--no-color",
                f"{from_commit}..{to_commit}",
            ]
        )
        if not result:
            return []
        return decode_log(result.stdout)

    # Branch operations
    @require_repository
    def get_branches(self, include_remote: bool = True) -> List[RefRecord]:
        current = self.get_current_branch()
        remotes = [r.name for r in self.get_remotes()] if include_remote else []
        refs = ALL_REFS if include_remote else LOCAL_REFS
        result = self._run(["for-each-ref", f"--format={REF_FORMAT}", *refs])
        if not result:
            return []
        return decode_refs(result.stdout, current_branch=current, remotes=remotes)

    @staticmethod
    def _check_branch(name: str) -> str:
        if not validate_git_reference(name):
            raise GitBranchError(f"Invalid branch name: {name!r}", branch_name=name)
        return name

    @require_repository
    def create_branch(self, name: str, start_point: str = "HEAD") -> OperationResult:
        self._check_branch(name)
        _check_revision(start_point, "start_point")
        logger.info(f"Creating branch '{name}' at {start_point}")
        return self._run(["branch", name, start_point], mutating=True)

    @require_repository
    def delete_branch(self, name: str, force: bool = False) -> OperationResult:
        self._check_branch(name)
        logger.info(f"Deleting branch '{name}'" + (" (force)" if force else ""))
        return self._run(["branch", "-D" if force else "-d", name], mutating=True)

    @require_repository
    def rename_branch(self, old_name: str, new_name: str) -> OperationResult:
        self._check_branch(old_name)
        self._check_branch(new_name)
        logger.info(f"Renaming branch '{old_name}' to '{new_name}'")
        return self._run(["branch", "-m", old_name, new_name], mutating=True)

    @require_repository
    def checkout_branch(self, name: str) -> OperationResult:
        _check_revision(name, "branch")
        logger.info(f"Checking out '{name}'")
        return self._run(["checkout", name], mutating=True)

    @require_repository
    def merge_branch(self, branch_name: str, no_fast_forward: bool = False) -> OperationResult:
        _check_revision(branch_name, "branch")
        args = ["merge"]
        if no_fast_forward:
            args.append("--no-ff")
        args.append(branch_name)

        logger.info(
            f"Merging '{branch_name}' into the current branch"
            + (" (no-ff)" if no_fast_forward else "")
        )
        result = self._run(args, mutating=True)
        if not result and "CONFLICT" in result.stdout:
            logger.warning(f"Merge conflicts detected while merging '{branch_name}'")
        return result

    @require_repository
    def rebase_branch(self, branch_name: str) -> OperationResult:
        _check_revision(branch_name, "branch")
        logger.info(f"Rebasing the current branch onto '{branch_name}'")
        return self._run(["rebase", branch_name], mutating=True)

    # Remote operations
    @require_repository
    def get_remotes(self) -> List[RemoteRecord]:
        result = self._run(REMOTE_ARGS)
        if not result:
            return []
        return decode_remotes(result.stdout)

    @staticmethod
    def _check_remote(name: str) -> str:
        if not validate_git_reference(name) or "/" in name:
            raise GitRemoteError(f"Invalid remote name: {name!r}", remote_name=name)
        return name

    @require_repository
    def add_remote(self, name: str, url: str) -> OperationResult:
        self._check_remote(name)
        if not url or not url.strip() or url.startswith("-"):
            raise GitRemoteError(
                f"Invalid remote URL: {url!r}", remote_name=name, remote_url=url
            )
        if not is_valid_git_url(url):
            logger.warning(f"Remote URL {url!r} does not look like a git URL")
        logger.info(f"Adding remote '{name}' -> {url}")
        return self._run(["remote", "add", name, url], mutating=True)

    @require_repository
    def remove_remote(self, name: str) -> OperationResult:
        self._check_remote(name)
        logger.info(f"Removing remote '{name}'")
        return self._run(["remote", "remove", name], mutating=True)

    @require_repository
    def rename_remote(self, old_name: str, new_name: str) -> OperationResult:
        self._check_remote(old_name)
        self._check_remote(new_name)
        logger.info(f"Renaming remote '{old_name}' to '{new_name}'")
        return self._run(["remote", "rename", old_name, new_name], mutating=True)

    @require_repository
    def fetch(
        self,
        remote: str = "origin",
        *,
        prune: bool = False,
        timeout_ms: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        self._check_remote(remote)
        args = ["fetch"]
        if prune:
            args.append("--prune")
        args.append(remote)
        logger.info(f"Fetching from {remote}")
        return self._run(
            args, timeout_ms=timeout_ms, env=_NETWORK_ENV, cancel_token=cancel_token
        )

    @require_repository
    def pull(
        self,
        remote: str = "origin",
        branch: str = "",
        *,
        timeout_ms: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        self._check_remote(remote)
        args = ["pull", remote]
        if branch:
            args.append(_check_revision(branch, "branch"))
        logger.info(f"Pulling from {remote}" + (f"/{branch}" if branch else ""))
        return self._run(
            args,
            mutating=True,
            timeout_ms=timeout_ms,
            env=_NETWORK_ENV,
            cancel_token=cancel_token,
        )

    @require_repository
    def push(
        self,
        remote: str = "origin",
        branch: str = "",
        force: bool = False,
        *,
        timeout_ms: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        self._check_remote(remote)
        args = ["push"]
        if force:
            args.append("--force")
        args.append(remote)
        if branch:
            args.append(_check_revision(branch, "branch"))
        logger.info(
            f"Pushing to {remote}"
            + (f"/{branch}" if branch else "")
            + (" (force)" if force else "")
        )
        return self._run(
            args, timeout_ms=timeout_ms, env=_NETWORK_ENV, cancel_token=cancel_token
        )

    # Diffs
    @require_repository
    def get_diff(self, file_path: str, staged: bool = False) -> FileDiff:
        args = ["diff", *_DIFF_FLAGS]
        if staged:
            args.append("--cached")
        result = self._run([*args, "--", file_path])
        if not result:
            return FileDiff(path=file_path)
        return decode_diff(result.stdout, file_path)

    @require_repository
    def get_diff_all(self, staged: bool = False) -> List[FileDiff]:
        args = ["diff", *_DIFF_FLAGS]
        if staged:
            args.append("--cached")
        result = self._run(args)
        if not result:
            return []
        return decode_diff_all(result.stdout)

    @require_repository
    def get_commit_diff(self, commit_id: str, file_path: str = "") -> FileDiff:
        """Change a commit made to one file (the first file when none is named)."""
        diffs = self.get_commit_diff_all(commit_id, file_path)
        return diffs[0] if diffs else FileDiff(path=file_path)

    @require_repository
    def get_commit_diff_all(self, commit_id: str, file_path: str = "") -> List[FileDiff]:
        _check_revision(commit_id, "commit")
        args = ["show", "--format=", *_DIFF_FLAGS, commit_id]
        if file_path:
            args += ["--", file_path]
        result = self._run(args)
        if not result:
            return []
        return decode_diff_all(result.stdout)

    @require_repository
    def get_diff_between_commits(
        self, from_commit: str, to_commit: str, file_path: str = ""
    ) -> FileDiff:
        _check_revision(from_commit, "from_commit")
        _check_revision(to_commit, "to_commit")
        args = ["diff", *_DIFF_FLAGS, from_commit, to_commit]
        if file_path:
            args += ["--", file_path]
        result = self._run(args)
        if not result:
            return FileDiff(path=file_path)
        diffs = decode_diff_all(result.stdout)
        return diffs[0] if diffs else FileDiff(path=file_path)

    # Tags
    @require_repository
    def get_tags(self) -> List[TagRecord]:
        result = self._run(
            ["for-each-ref", "--sort=-creatordate", f"--format={TAG_FORMAT}", TAG_REFS]
        )
        if not result:
            return []
        return decode_tags(result.stdout)

    @require_repository
    def create_tag(
        self, name: str, message: str = "", commit: str = "HEAD"
    ) -> OperationResult:
        """Create a tag at ``commit``; it is annotated when ``message`` is given."""
        if not validate_git_reference(name):
            raise GitTagError(f"Invalid tag name: {name!r}", tag_name=name)
        _check_revision(commit, "commit")

        if message:
            args = ["tag", "-a", name, "-m", message, commit]
        else:
            args = ["tag", name, commit]
        logger.info(f"Creating {'annotated ' if message else ''}tag '{name}' at {commit}")
        return self._run(args, mutating=True)

    @require_repository
    def delete_tag(self, name: str) -> OperationResult:
        if not validate_git_reference(name):
            raise GitTagError(f"Invalid tag name: {name!r}", tag_name=name)
        logger.info(f"Deleting tag '{name}'")
        return self._run(["tag", "-d", name], mutating=True)

    @require_repository
    def push_tags(
        self,
        remote: str = "origin",
        *,
        timeout_ms: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OperationResult:
        self._check_remote(remote)
        logger.info(f"Pushing tags to {remote}")
        return self._run(
            ["push", remote, "--tags"],
            timeout_ms=timeout_ms,
            env=_NETWORK_ENV,
            cancel_token=cancel_token,
        )

    # Stashes
    @require_repository
    def get_stashes(self) -> List[StashRecord]:
        result = self._run(["stash", "list", f"--format={STASH_FORMAT}"])
        if not result:
            return []
        return decode_stashes(result.stdout)

    @require_repository
    def stash(self, message: str = "", include_untracked: bool = False) -> OperationResult:
        args = ["stash", "push"]
        if include_untracked:
            args.append("--include-untracked")
        if message:
            args += ["-m", message]
        logger.info("Stashing changes" + (f": {message}" if message else ""))
        return self._run(args, mutating=True)

    def _stash_command(self, action: str, index: int) -> OperationResult:
        if index < 0:
            raise GitStashError(f"Invalid stash index: {index}", stash_index=index)
        logger.info(f"Stash {action} stash@{{{index}}}")
        return self._run(["stash", action, f"stash@{{{index}}}"], mutating=True)

    @require_repository
    def stash_pop(self, index: int = 0) -> OperationResult:
        return self._stash_command("pop", index)

    @require_repository
    def stash_apply(self, index: int = 0) -> OperationResult:
        return self._stash_command("apply", index)

    @require_repository
    def stash_drop(self, index: int = 0) -> OperationResult:
        return self._stash_command("drop", index)

    @require_repository
    def stash_clear(self) -> OperationResult:
        logger.info("Clearing all stashes")
        return self._run(["stash", "clear"], mutating=True)

    # Configuration
    def _config_scope(self, global_: bool, operation: str) -> List[str]:
        if global_:
            return ["--global"]
        ensure_repository(self.repository_path, operation)
        return []

    def set_config(self, key: str, value: str, global_: bool = False) -> OperationResult:
        """
        Set a git configuration value.

        Args:
            key: Dotted key such as ``user.name``.
            value: Value to store.
            global_: Write the user's global config instead of the repository's.

        Raises:
            GitConfigError: If the key is not of the form ``section.name``.
            GitRepositoryNotFound: If ``global_`` is False and no repository is open.
        """
        if not key or "." not in key.strip(".") or key.startswith("-"):
            raise GitConfigError(f"Invalid config key: {key!r}", config_key=key)
        scope = self._config_scope(global_, "set_config")
        logger.info(f"Setting {'global' if global_ else 'repository'} config {key}")
        return self._run(["config", *scope, key, value], mutating=True)

    def get_config(self, key: str, global_: bool = False) -> str:
        """Return a configuration value, or an empty string when it is unset."""
        if not key or key.startswith("-"):
            raise GitConfigError(f"Invalid config key: {key!r}", config_key=key)
        scope = self._config_scope(global_, "get_config")
        result = self._run(["config", *scope, "--get", key])
        return result.stdout.strip() if result else ""

    def set_user_info(self, name: str, email: str, global_: bool = False) -> OperationResult:
        if email and not is_valid_email(email):
            raise GitConfigError(
                f"Invalid email address: {email!r}",
                config_key="user.email",
                config_value=email,
            )

        result = _local_result(ResultCategory.SUCCESS)
        if name:
            result = self.set_config("user.name", name, global_)
            if not result:
                return result
        if email:
            result = self.set_config("user.email", email, global_)
        return result

    # Predicates
    def has_uncommitted_changes(self) -> bool:
        return self.get_status().has_uncommitted_changes

    def has_unstaged_changes(self) -> bool:
        return self.get_status().has_unstaged_changes

    def has_staged_changes(self) -> bool:
        return self.get_status().has_staged_changes

    # Async variants
    async def _run_async(
        self, func: Callable[..., OperationResult], *args: Any, **kwargs: Any
    ) -> OperationResult:
        token = kwargs.pop("cancel_token", None) or CancellationToken()
        try:
            result = await asyncio.to_thread(func, *args, cancel_token=token, **kwargs)
        except asyncio.CancelledError:
            token.cancel()
            raise
        # The worker thread recorded the error; mirror it for the awaiting thread.
        return self._remember(result)

    async def clone_repository_async(
        self, url: str, path: PathLike, **kwargs: Any
    ) -> OperationResult:
        return await self._run_async(self.clone_repository, url, path, **kwargs)

    async def fetch_async(self, remote: str = "origin", **kwargs: Any) -> OperationResult:
        return await self._run_async(self.fetch, remote, **kwargs)

    async def pull_async(
        self, remote: str = "origin", branch: str = "", **kwargs: Any
    ) -> OperationResult:
        return await self._run_async(self.pull, remote, branch, **kwargs)

    async def push_async(
        self, remote: str = "origin", branch: str = "", force: bool = False, **kwargs: Any
    ) -> OperationResult:
        return await self._run_async(self.push, remote, branch, force, **kwargs)

    def cancel(self) -> int:
        """Cancel every git invocation currently running for this manager's executor."""
        return self.executor.cancel()

    def close(self) -> None:
        self.executor.shutdown()

    def __enter__(self) -> "GitManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["GitManager", "UNKNOWN_BRANCH", "DETACHED_PREFIX"]
