"""
Tests for git_driver.utils.
"""

from datetime import datetime, timedelta, timezone

import pytest

from git_driver.exceptions import GitRepositoryNotFound
from git_driver.utils import (
    count_lines_added,
    count_lines_removed,
    ensure_repository,
    extract_repo_name_from_url,
    format_author,
    format_relative_time,
    is_bare_layout,
    is_valid_email,
    is_valid_git_url,
    is_valid_hash,
    is_valid_repository,
    remote_from_branch,
    resolve_git_dir,
    sanitize_branch_name,
    sanitize_commit_message,
    short_branch_name,
    shorten_hash,
    validate_git_reference,
)


class TestRepositoryDetection:
    def test_working_tree(self, tmp_path):
        (tmp_path / ".git").mkdir()

        assert is_valid_repository(tmp_path)
        assert resolve_git_dir(tmp_path) == tmp_path / ".git"
        assert not is_bare_layout(tmp_path)

    def test_plain_directory(self, tmp_path):
        assert not is_valid_repository(tmp_path)

    def test_missing_directory_and_empty_path(self, tmp_path):
        assert not is_valid_repository(tmp_path / "missing")
        assert not is_valid_repository("")
        assert not is_valid_repository(None)

    def test_gitdir_pointer_file(self, tmp_path):
        real = tmp_path / "real" / ".git"
        real.mkdir(parents=True)
        worktree = tmp_path / "worktree"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: ../real/.git\n", encoding="utf-8")

        assert is_valid_repository(worktree)
        assert resolve_git_dir(worktree).resolve() == real.resolve()

    def test_absolute_gitdir_pointer(self, tmp_path):
        real = tmp_path / "modules" / "sub"
        real.mkdir(parents=True)
        worktree = tmp_path / "sub"
        worktree.mkdir()
        (worktree / ".git").write_text(f"gitdir: {real}\n", encoding="utf-8")

        assert resolve_git_dir(worktree) == real

    def test_dangling_gitdir_pointer(self, tmp_path):
        (tmp_path / ".git").write_text("gitdir: ../nowhere\n", encoding="utf-8")

        assert not is_valid_repository(tmp_path)

    def test_junk_git_file(self, tmp_path):
        (tmp_path / ".git").write_text("not a pointer\n", encoding="utf-8")

        assert not is_valid_repository(tmp_path)

    def test_bare_layout(self, tmp_path):
        (tmp_path / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        (tmp_path / "objects").mkdir()
        (tmp_path / "refs").mkdir()

        assert is_valid_repository(tmp_path)
        assert is_bare_layout(tmp_path)
        assert resolve_git_dir(tmp_path) == tmp_path

    def test_ensure_repository(self, tmp_path):
        (tmp_path / ".git").mkdir()
        assert ensure_repository(tmp_path, "get_status") == tmp_path

        with pytest.raises(GitRepositoryNotFound):
            ensure_repository(None, "get_status")
        with pytest.raises(GitRepositoryNotFound) as exc_info:
            ensure_repository(tmp_path / "missing", "get_status")
        assert exc_info.value.error_code == "GIT_REPOSITORY_NOT_FOUND"


@pytest.mark.parametrize(
    "ref, valid",
    [
        ("main", True),
        ("feature/login", True),
        ("release-1.2", True),
        ("", False),
        ("a..b", False),
        ("-flag", False),
        ("topic.lock", False),
        ("trailing/", False),
        ("with space", False),
        ("tilde~1", False),
        ("caret^", False),
        ("colon:x", False),
        ("a//b", False),
        ("x@{1}", False),
        ("@", False),
    ],
)
def test_validate_git_reference(ref, valid):
    assert validate_git_reference(ref) is valid


def test_sanitize_branch_name():
    assert sanitize_branch_name("my branch..name") == "my-branch-name"
    assert sanitize_branch_name("feature//x") == "feature-x"
    assert sanitize_branch_name("/feature/") == "feature"
    assert validate_git_reference(sanitize_branch_name("fix: a bug?"))


def test_branch_name_helpers():
    assert short_branch_name("refs/heads/main") == "main"
    assert short_branch_name("refs/remotes/origin/dev") == "origin/dev"
    assert short_branch_name("origin/dev") == "dev"
    assert short_branch_name("main") == "main"
    assert remote_from_branch("origin/main") == "origin"
    assert remote_from_branch("refs/remotes/upstream/x") == "upstream"
    assert remote_from_branch("main") == ""


def test_hash_helpers():
    assert shorten_hash("abcdef1234567890") == "abcdef1"
    assert shorten_hash("abc") == "abc"
    assert is_valid_hash("abc1")
    assert is_valid_hash("a" * 40)
    assert not is_valid_hash("abc")
    assert not is_valid_hash("xyz123")
    assert not is_valid_hash("a" * 41)


def test_is_valid_email():
    assert is_valid_email("test@example.com")
    assert not is_valid_email("not-an-email")
    assert not is_valid_email("")


def test_sanitize_commit_message():
    message = "\n\n  Subject line  \n\n\n\nBody   \n\n"

    assert sanitize_commit_message(message) == "Subject line\n\nBody"
    assert sanitize_commit_message("   \n ") == ""


def test_format_author():
    assert format_author("Jane", "jane@example.com") == "Jane <jane@example.com>"
    assert format_author("Jane", "") == "Jane"
    assert format_author("", "jane@example.com") == "jane@example.com"
    assert format_author("", "") == "Unknown"


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(hours=2), "2 hours ago"),
        (timedelta(days=3), "3 days ago"),
        (timedelta(days=14), "2 weeks ago"),
        (timedelta(days=60), "2 months ago"),
        (timedelta(days=400), "1 year ago"),
        (timedelta(days=-1), "just now"),
    ],
)
def test_format_relative_time(delta, expected):
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    assert format_relative_time(now - delta, now) == expected


def test_count_lines():
    diff = "--- a/x\n+++ b/x\n@@ -1 +1,2 @@\n-a\n+b\n+c\n"

    assert count_lines_added(diff) == 2
    assert count_lines_removed(diff) == 1


@pytest.mark.parametrize(
    "url, valid",
    [
        ("https://github.com/user/repo", True),
        ("https://example.com/repo.git", True),
        ("https://example.com/page", False),
        ("git@github.com:user/repo.git", True),
        ("ssh://git@host/repo", True),
        ("file:///srv/repo", True),
        ("/srv/repo", True),
        ("ftp://host/repo", False),
        ("", False),
    ],
)
def test_is_valid_git_url(url, valid):
    assert is_valid_git_url(url) is valid


@pytest.mark.parametrize(
    "url, name",
    [
        ("https://github.com/user/project.git", "project"),
        ("git@github.com:user/project.git", "project"),
        ("git@host:project.git", "project"),
        ("https://host/x/project/", "project"),
        ("/srv/repos/tool", "tool"),
    ],
)
def test_extract_repo_name_from_url(url, name):
    assert extract_repo_name_from_url(url) == name
