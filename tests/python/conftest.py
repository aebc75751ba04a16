"""
Shared fixtures for the git_driver tests.
"""

import shutil
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add the python directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "python"))

from git_driver.manager import GitManager  # noqa: E402
from git_driver.models import OperationResult, ResultCategory  # noqa: E402

PYTHON = sys.executable


def python_args(code: str):
    """Arguments that make the running interpreter execute ``code``."""
    return ["-c", code]


def ok(stdout: str = "") -> OperationResult:
    return OperationResult(category=ResultCategory.SUCCESS, stdout=stdout)


def failed(stderr: str = "fatal: boom", exit_code: int = 128) -> OperationResult:
    return OperationResult(category=ResultCategory.FAILED, stderr=stderr, exit_code=exit_code)


@pytest.fixture
def fake_repo(tmp_path: Path) -> Path:
    """A directory that passes the repository check without running git."""
    repo = tmp_path / "fake_repo"
    (repo / ".git").mkdir(parents=True)
    return repo


@pytest.fixture
def mock_dispatcher() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.repository_path = None
    dispatcher.run.return_value = ok()
    return dispatcher


@pytest.fixture
def mocked_manager(fake_repo: Path, mock_dispatcher: MagicMock) -> GitManager:
    """GitManager whose git invocations go to ``mock_dispatcher``."""
    return GitManager(fake_repo, dispatcher=mock_dispatcher)


@pytest.fixture
def git_repo(tmp_path: Path):
    """An initialised repository with a committer identity, driven by GitManager."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    manager = GitManager()
    result = manager.init_repository(tmp_path / "repo")
    assert result, result.error_text
    manager.set_config("user.name", "Test User")
    manager.set_config("user.email", "test@example.com")
    manager.set_config("commit.gpgsign", "false")
    manager.set_config("tag.gpgsign", "false")
    yield manager
    manager.close()


def commit_file(manager: GitManager, name: str, content: str, message: str) -> str:
    """Write, stage and commit one file; returns the new commit id."""
    (manager.repository_path / name).write_text(content, encoding="utf-8")
    assert manager.add_files([name]), manager.last_error
    assert manager.commit(message), manager.last_error
    return manager.get_commit_history(max_count=1)[0].id
