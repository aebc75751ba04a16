"""
Tests for git_driver.manager.

The first half drives GitManager against a mocked dispatcher to check the
argument vectors it builds; the second half runs real git in a temporary
repository.
"""

import threading
from pathlib import Path

import pytest

from conftest import commit_file, failed, ok
from git_driver import get_tool_info
from git_driver.exceptions import (
    GitArgumentError,
    GitBranchError,
    GitConfigError,
    GitRemoteError,
    GitRepositoryNotFound,
    GitStashError,
    GitTagError,
)
from git_driver.manager import DETACHED_PREFIX, UNKNOWN_BRANCH, GitManager
from git_driver.models import FileStatus, LogOptions, ResultCategory


def last_args(dispatcher):
    return list(dispatcher.run.call_args.args[0])


# Argument building and validation


def test_operations_need_an_open_repository(mock_dispatcher):
    manager = GitManager(dispatcher=mock_dispatcher)

    with pytest.raises(GitRepositoryNotFound):
        manager.get_status()
    with pytest.raises(GitRepositoryNotFound):
        manager.commit("message")
    mock_dispatcher.run.assert_not_called()


def test_repository_path_is_resolved(mocked_manager, fake_repo):
    assert mocked_manager.repository_path == fake_repo.resolve()


def test_open_repository(mock_dispatcher, fake_repo, tmp_path):
    manager = GitManager(dispatcher=mock_dispatcher)

    result = manager.open_repository(tmp_path / "plain")
    assert result.category is ResultCategory.INVALID_TARGET
    assert manager.repository_path is None
    assert manager.last_error

    assert manager.open_repository(fake_repo)
    assert manager.repository_path == fake_repo.resolve()
    assert manager.last_error == ""


def test_get_status_decodes_output(mocked_manager, mock_dispatcher):
    mock_dispatcher.run.return_value = ok("## main\n M a.txt\n")

    status = mocked_manager.get_status()

    assert last_args(mock_dispatcher) == ["status", "--porcelain=v1", "-b"]
    assert mock_dispatcher.run.call_args.kwargs["mutating"] is False
    assert status.current_branch == "main"
    assert status.changes[0].status is FileStatus.MODIFIED


def test_failed_query_returns_empty_record(mocked_manager, mock_dispatcher):
    mock_dispatcher.run.return_value = failed("fatal: boom")

    assert mocked_manager.get_status().changes == ()
    assert mocked_manager.last_error == "fatal: boom"
    assert mocked_manager.get_commit_history() == []
    assert mocked_manager.get_tags() == []


def test_current_branch_fallbacks(mocked_manager, mock_dispatcher):
    mock_dispatcher.run.side_effect = [ok(""), failed(), ok("abc1234\n")]
    assert mocked_manager.get_current_branch() == DETACHED_PREFIX + "abc1234"

    mock_dispatcher.run.side_effect = [failed(), failed(), failed()]
    assert mocked_manager.get_current_branch() == UNKNOWN_BRANCH

    mock_dispatcher.run.side_effect = [failed(), ok("legacy\n")]
    assert mocked_manager.get_current_branch() == "legacy"


def test_add_files(mocked_manager, mock_dispatcher):
    assert mocked_manager.add_files([])
    mock_dispatcher.run.assert_not_called()

    mocked_manager.add_files(["a.txt", Path("dir/b.txt")])
    assert last_args(mock_dispatcher) == ["add", "--", "a.txt", str(Path("dir/b.txt"))]
    assert mock_dispatcher.run.call_args.kwargs["mutating"] is True


def test_remove_and_reset_files(mocked_manager, mock_dispatcher):
    mocked_manager.remove_files("a.txt", cached=True)
    assert last_args(mock_dispatcher) == ["rm", "--cached", "--", "a.txt"]

    mocked_manager.reset_files()
    assert last_args(mock_dispatcher) == ["reset", "HEAD"]

    mocked_manager.reset_files(["a.txt"])
    assert last_args(mock_dispatcher) == ["reset", "HEAD", "--", "a.txt"]


def test_commit_arguments(mocked_manager, mock_dispatcher):
    mocked_manager.commit("  Subject  \n\n\n\nbody  \n")
    assert last_args(mock_dispatcher) == ["commit", "-m", "Subject\n\nbody"]

    mocked_manager.commit("", amend=True)
    assert last_args(mock_dispatcher) == ["commit", "--amend", "--no-edit"]

    with pytest.raises(GitArgumentError):
        mocked_manager.commit("   ")


def test_commit_with_files_stops_when_staging_fails(mocked_manager, mock_dispatcher):
    mock_dispatcher.run.return_value = failed("fatal: pathspec 'x' did not match")

    result = mocked_manager.commit_with_files("message", ["x"])

    assert not result
    assert mock_dispatcher.run.call_count == 1


def test_history_arguments(mocked_manager, mock_dispatcher):
    mocked_manager.get_commit_history()
    args = last_args(mock_dispatcher)
    assert args[:4] == ["log", "--format=%H|%h|%an|%ae|%s|%ct|%P", "-z", "--no-color"]
    assert "--max-count=100" in args
    assert "--no-merges" in args

    mocked_manager.get_commit_history(
        max_count=5,
        options=LogOptions.SHOW_MERGES | LogOptions.FIRST_PARENT_ONLY | LogOptions.FOLLOW_RENAMES,
        branch="dev",
        file_path="src/x.py",
    )
    args = last_args(mock_dispatcher)
    assert "--no-merges" not in args
    assert "--first-parent" in args
    assert "--follow" in args
    assert args[-4:] == ["--follow", "dev", "--", "src/x.py"]

    mocked_manager.get_commit_history(max_count=0, options=LogOptions.FOLLOW_RENAMES)
    args = last_args(mock_dispatcher)
    assert not any(a.startswith("--max-count") for a in args)
    assert "--follow" not in args


def test_revisions_cannot_look_like_options(mocked_manager):
    with pytest.raises(GitArgumentError):
        mocked_manager.checkout_branch("--orphan")
    with pytest.raises(GitArgumentError):
        mocked_manager.get_commit("")
    with pytest.raises(GitArgumentError):
        mocked_manager.get_commit_history(branch="-p")


def test_named_argument_errors(mocked_manager):
    with pytest.raises(GitBranchError):
        mocked_manager.create_branch("bad name")
    with pytest.raises(GitRemoteError):
        mocked_manager.add_remote("up/stream", "https://example.com/r.git")
    with pytest.raises(GitRemoteError):
        mocked_manager.add_remote("origin", "--upload-pack=evil")
    with pytest.raises(GitTagError):
        mocked_manager.create_tag("v1..0")
    with pytest.raises(GitStashError):
        mocked_manager.stash_pop(-1)
    with pytest.raises(GitConfigError):
        mocked_manager.set_config("nodot", "x")
    with pytest.raises(GitConfigError):
        mocked_manager.set_user_info("Name", "not-an-email")


def test_clone_requires_url(mock_dispatcher, tmp_path):
    manager = GitManager(dispatcher=mock_dispatcher)

    with pytest.raises(GitRemoteError):
        manager.clone_repository("", tmp_path / "clone")


def test_clone_into_non_empty_directory(mock_dispatcher, tmp_path):
    target = tmp_path / "occupied"
    target.mkdir()
    (target / "file.txt").write_text("x")
    manager = GitManager(dispatcher=mock_dispatcher)

    result = manager.clone_repository("https://example.com/r.git", target)

    assert result.category is ResultCategory.FAILED
    assert "not empty" in manager.last_error
    mock_dispatcher.run.assert_not_called()


def test_clone_onto_a_file(mock_dispatcher, tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    manager = GitManager(dispatcher=mock_dispatcher)

    result = manager.clone_repository("https://example.com/r.git", target)

    assert result.category is ResultCategory.FAILED
    assert "not a directory" in manager.last_error
    mock_dispatcher.run.assert_not_called()


def test_clone_target_that_cannot_be_created(mock_dispatcher, tmp_path, mocker):
    mocker.patch.object(Path, "mkdir", side_effect=PermissionError("denied"))
    manager = GitManager(dispatcher=mock_dispatcher)

    result = manager.clone_repository("https://example.com/r.git", tmp_path / "a" / "clone")

    assert result.category is ResultCategory.PERMISSION_DENIED
    assert "denied" in manager.last_error
    mock_dispatcher.run.assert_not_called()


def test_clone_arguments(mock_dispatcher, tmp_path):
    manager = GitManager(dispatcher=mock_dispatcher)
    target = tmp_path / "clone"

    manager.clone_repository("https://example.com/r.git", target, timeout_ms=1000)

    call = mock_dispatcher.run.call_args
    assert list(call.args[0]) == [
        "clone",
        "--progress",
        "--",
        "https://example.com/r.git",
        str(target.resolve()),
    ]
    assert call.args[1] == target.resolve().parent
    assert call.kwargs["timeout_ms"] == 1000
    assert call.kwargs["env"] == {"GIT_TERMINAL_PROMPT": "0"}


def test_network_operations_disable_prompts(mocked_manager, mock_dispatcher):
    mocked_manager.fetch(prune=True)
    assert last_args(mock_dispatcher) == ["fetch", "--prune", "origin"]
    assert mock_dispatcher.run.call_args.kwargs["env"] == {"GIT_TERMINAL_PROMPT": "0"}

    mocked_manager.push("origin", "main", force=True)
    assert last_args(mock_dispatcher) == ["push", "--force", "origin", "main"]

    mocked_manager.pull("upstream", "dev")
    assert last_args(mock_dispatcher) == ["pull", "upstream", "dev"]
    assert mock_dispatcher.run.call_args.kwargs["mutating"] is True

    mocked_manager.push_tags()
    assert last_args(mock_dispatcher) == ["push", "origin", "--tags"]


def test_tag_and_stash_arguments(mocked_manager, mock_dispatcher):
    mocked_manager.create_tag("v1.0", "Release", "abc1234")
    assert last_args(mock_dispatcher) == ["tag", "-a", "v1.0", "-m", "Release", "abc1234"]

    mocked_manager.create_tag("v1.1")
    assert last_args(mock_dispatcher) == ["tag", "v1.1", "HEAD"]

    mocked_manager.stash("wip", include_untracked=True)
    assert last_args(mock_dispatcher) == ["stash", "push", "--include-untracked", "-m", "wip"]

    mocked_manager.stash_drop(2)
    assert last_args(mock_dispatcher) == ["stash", "drop", "stash@{2}"]


def test_global_config_needs_no_repository(mock_dispatcher):
    manager = GitManager(dispatcher=mock_dispatcher)

    manager.set_config("user.name", "Jane", global_=True)
    assert last_args(mock_dispatcher) == ["config", "--global", "user.name", "Jane"]

    with pytest.raises(GitRepositoryNotFound):
        manager.set_config("user.name", "Jane")


def test_get_config(mocked_manager, mock_dispatcher):
    mock_dispatcher.run.return_value = ok("Jane\n")
    assert mocked_manager.get_config("user.name") == "Jane"
    assert last_args(mock_dispatcher) == ["config", "--get", "user.name"]

    mock_dispatcher.run.return_value = failed("", exit_code=1)
    assert mocked_manager.get_config("user.missing") == ""


def test_last_error_is_per_thread(mocked_manager, mock_dispatcher):
    mock_dispatcher.run.return_value = failed("fatal: worker failure")
    seen = []

    def worker():
        mocked_manager.get_status()
        seen.append(mocked_manager.last_error)

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()

    assert seen == ["fatal: worker failure"]
    assert mocked_manager.last_error == ""


def test_cancel_and_close_delegate_to_executor(mocked_manager, mock_dispatcher):
    mock_dispatcher.executor.cancel.return_value = 2

    assert mocked_manager.cancel() == 2
    with mocked_manager:
        pass
    mock_dispatcher.executor.shutdown.assert_called_once()


def test_tool_info_lists_operations():
    info = get_tool_info()

    assert info["name"] == "git_driver"
    assert "get_status" in info["functions"]
    assert "clone_repository_async" in info["functions"]
    assert not any(name.startswith("_") for name in info["functions"])


# Real git


def test_init_and_repository_info(git_repo):
    info = git_repo.get_repository_info()

    assert not info.is_bare
    assert Path(info.git_directory).name == ".git"
    assert info.working_directory == str(git_repo.repository_path)
    assert info.head
    assert git_repo.is_valid_repository(git_repo.repository_path)


def test_init_bare(tmp_path, git_repo):
    manager = GitManager()
    try:
        assert manager.init_repository(tmp_path / "bare.git", bare=True)
        info = manager.get_repository_info()
        assert info.is_bare
        assert info.working_directory == ""
    finally:
        manager.close()


def test_status_of_new_files(git_repo):
    root = git_repo.repository_path
    (root / "a.txt").write_text("a\n")
    (root / "b.txt").write_text("b\n")
    git_repo.add_files(["a.txt"])

    status = git_repo.get_status()

    assert {(c.path, c.status, c.staged) for c in status.changes} == {
        ("a.txt", FileStatus.ADDED, True),
        ("b.txt", FileStatus.UNTRACKED, False),
    }
    assert git_repo.has_staged_changes()
    assert git_repo.has_uncommitted_changes()
    assert not git_repo.has_unstaged_changes()


def test_commit_and_history(git_repo):
    first = commit_file(git_repo, "a.txt", "one\n", "First commit")
    second = commit_file(git_repo, "a.txt", "one\ntwo\n", "Fix a|b handling")

    history = git_repo.get_commit_history()

    assert [r.subject for r in history] == ["Fix a|b handling", "First commit"]
    assert history[0].id == second
    assert history[0].parents == (first,)
    assert history[0].author_name == "Test User"
    assert history[0].author_email == "test@example.com"
    assert history[1].is_root
    assert len(git_repo.get_commit_history(max_count=1, file_path="a.txt")) == 1

    detail = git_repo.get_commit(second)
    assert detail.message == "Fix a|b handling"

    assert [r.id for r in git_repo.get_commit_range(first, second)] == [second]


def test_missing_commit(git_repo):
    commit_file(git_repo, "a.txt", "one\n", "First")

    assert git_repo.get_commit("0" * 40) is None
    assert git_repo.last_error


def test_amend(git_repo):
    commit_file(git_repo, "a.txt", "one\n", "Original")
    (git_repo.repository_path / "b.txt").write_text("b\n")
    git_repo.add_files(["b.txt"])

    assert git_repo.commit("", amend=True)

    history = git_repo.get_commit_history()
    assert len(history) == 1
    assert history[0].subject == "Original"


def test_diffs(git_repo):
    first = commit_file(git_repo, "a.txt", "one\n", "First")
    second = commit_file(git_repo, "a.txt", "one\ntwo\n", "Second")
    (git_repo.repository_path / "a.txt").write_text("one\ntwo\nthree\n")

    diff = git_repo.get_diff("a.txt")
    assert diff.path == "a.txt"
    assert diff.lines_added == 1
    assert diff.hunks[0].lines[-1].text == "three"
    assert diff.hunks[0].lines[-1].new_line == 3

    assert git_repo.get_diff("a.txt", staged=True).hunks == ()
    git_repo.add_files(["a.txt"])
    assert len(git_repo.get_diff_all(staged=True)) == 1

    assert git_repo.get_commit_diff(second, "a.txt").lines_added == 1
    assert git_repo.get_commit_diff_all(first)[0].is_new_file
    assert git_repo.get_diff_between_commits(first, second).lines_added == 1


def test_branches(git_repo):
    commit_file(git_repo, "a.txt", "one\n", "First")
    main = git_repo.get_current_branch()

    assert git_repo.create_branch("feature")
    refs = {r.name: r for r in git_repo.get_branches(include_remote=False)}
    assert set(refs) == {main, "feature"}
    assert refs[main].is_current
    assert not refs["feature"].is_current
    assert refs["feature"].last_commit.subject == "First"

    assert git_repo.checkout_branch("feature")
    assert git_repo.get_current_branch() == "feature"
    assert git_repo.rename_branch("feature", "feature2")
    assert git_repo.checkout_branch(main)
    assert git_repo.delete_branch("feature2")
    assert [r.name for r in git_repo.get_branches(include_remote=False)] == [main]


def test_merge_commits_are_hidden_by_default(git_repo):
    commit_file(git_repo, "a.txt", "one\n", "First")
    main = git_repo.get_current_branch()
    git_repo.create_branch("topic")
    git_repo.checkout_branch("topic")
    commit_file(git_repo, "b.txt", "b\n", "Topic work")
    git_repo.checkout_branch(main)

    assert git_repo.merge_branch("topic", no_fast_forward=True), git_repo.last_error

    default = git_repo.get_commit_history()
    with_merges = git_repo.get_commit_history(options=LogOptions.SHOW_MERGES)
    assert not any(r.is_merge for r in default)
    assert with_merges[0].is_merge
    assert len(with_merges) == len(default) + 1


def test_detached_head(git_repo):
    first = commit_file(git_repo, "a.txt", "one\n", "First")
    commit_file(git_repo, "a.txt", "two\n", "Second")

    assert git_repo.checkout_branch(first)

    assert git_repo.get_current_branch().startswith(DETACHED_PREFIX)


def test_failed_operation_sets_last_error(git_repo):
    commit_file(git_repo, "a.txt", "one\n", "First")

    result = git_repo.checkout_branch("does-not-exist")

    assert result.category is ResultCategory.FAILED
    assert result.exit_code != 0
    assert git_repo.last_error
    git_repo.get_status()
    assert git_repo.last_error == ""


def test_tags(git_repo):
    commit_id = commit_file(git_repo, "a.txt", "one\n", "First")

    assert git_repo.create_tag("v1.0")
    assert git_repo.create_tag("v2.0", "Release 2.0")

    tags = {t.name: t for t in git_repo.get_tags()}
    assert set(tags) == {"v1.0", "v2.0"}
    assert not tags["v1.0"].is_annotated
    assert tags["v2.0"].is_annotated
    assert tags["v2.0"].message == "Release 2.0"
    assert commit_id.startswith(tags["v2.0"].commit_id)
    assert commit_id.startswith(tags["v1.0"].commit_id)

    assert git_repo.delete_tag("v1.0")
    assert [t.name for t in git_repo.get_tags()] == ["v2.0"]


def test_stashes(git_repo):
    commit_file(git_repo, "a.txt", "one\n", "First")
    branch = git_repo.get_current_branch()
    (git_repo.repository_path / "a.txt").write_text("changed\n")

    assert git_repo.stash("wip")
    stashes = git_repo.get_stashes()
    assert len(stashes) == 1
    assert stashes[0].index == 0
    assert stashes[0].message == "wip"
    assert stashes[0].branch == branch
    assert not git_repo.has_uncommitted_changes()

    assert git_repo.stash_pop()
    assert git_repo.has_unstaged_changes()
    assert git_repo.get_stashes() == []


def test_remotes(git_repo):
    assert git_repo.add_remote("origin", "https://example.com/r.git")

    (origin,) = git_repo.get_remotes()
    assert origin.name == "origin"
    assert origin.url == origin.push_url == "https://example.com/r.git"

    assert git_repo.rename_remote("origin", "upstream")
    assert [r.name for r in git_repo.get_remotes()] == ["upstream"]
    assert git_repo.remove_remote("upstream")
    assert git_repo.get_remotes() == []


def test_config_round_trip(git_repo):
    assert git_repo.get_config("user.name") == "Test User"
    assert git_repo.set_user_info("Other User", "other@example.com")
    assert git_repo.get_config("user.email") == "other@example.com"
    assert git_repo.get_config("driver.missing") == ""


def test_clone_fetch_and_pull(git_repo, tmp_path):
    commit_file(git_repo, "a.txt", "one\n", "First")
    branch = git_repo.get_current_branch()

    clone = GitManager()
    try:
        result = clone.clone_repository(str(git_repo.repository_path), tmp_path / "clone")
        assert result, clone.last_error
        assert clone.repository_path == (tmp_path / "clone").resolve()
        assert [r.name for r in clone.get_remotes()] == ["origin"]

        refs = clone.get_branches()
        remote = [r for r in refs if r.is_remote]
        assert [r.name for r in remote] == [f"origin/{branch}"]
        assert [r.name for r in refs if r.is_current] == [branch]

        commit_file(git_repo, "b.txt", "b\n", "Second")
        assert clone.fetch(), clone.last_error
        assert clone.pull(), clone.last_error
        assert [r.subject for r in clone.get_commit_history()] == ["Second", "First"]
    finally:
        clone.close()


@pytest.mark.asyncio
async def test_async_clone_and_fetch(git_repo, tmp_path):
    commit_file(git_repo, "a.txt", "one\n", "First")

    clone = GitManager()
    try:
        result = await clone.clone_repository_async(
            str(git_repo.repository_path), tmp_path / "async_clone"
        )
        assert result, result.error_text
        assert await clone.fetch_async()
        assert clone.last_error == ""
    finally:
        clone.close()
