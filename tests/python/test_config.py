"""
Tests for git_driver.config.
"""

import json

import pytest

from git_driver.config import DEFAULT_TIMEOUT_MS, GitDriverConfig, load_config
from git_driver.exceptions import GitConfigError


def test_defaults():
    config = load_config(environ={})

    assert config == GitDriverConfig()
    assert config.git_executable == "git"
    assert config.timeout_ms == DEFAULT_TIMEOUT_MS
    assert config.log_level == "INFO"


def test_file_values(tmp_path):
    path = tmp_path / "git_driver.json"
    path.write_text(json.dumps({"timeout_ms": 5000, "environment": {"LANG": "C"}}))

    config = load_config(path, environ={})

    assert config.timeout_ms == 5000
    assert config.environment == {"LANG": "C"}


def test_precedence_file_then_environment_then_overrides(tmp_path):
    path = tmp_path / "git_driver.json"
    path.write_text(json.dumps({"timeout_ms": 5000, "git_executable": "/opt/git"}))
    environ = {"GIT_DRIVER_TIMEOUT_MS": "7000", "GIT_DRIVER_LOG_LEVEL": "debug"}

    config = load_config(path, environ=environ, git_executable="git3")

    assert config.timeout_ms == 7000
    assert config.log_level == "DEBUG"
    assert config.git_executable == "git3"


def test_none_overrides_are_ignored():
    config = load_config(environ={"GIT_DRIVER_TIMEOUT_MS": "900"}, timeout_ms=None)

    assert config.timeout_ms == 900


def test_empty_environment_values_are_ignored():
    assert load_config(environ={"GIT_DRIVER_GIT": ""}).git_executable == "git"


@pytest.mark.parametrize(
    "overrides",
    [
        {"timeout_ms": 0},
        {"poll_interval_ms": 5000},
        {"log_level": "LOUD"},
        {"git_executable": "   "},
        {"unknown_key": 1},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(GitConfigError) as exc_info:
        load_config(environ={}, **overrides)

    assert exc_info.value.error_code == "GIT_CONFIG_ERROR"


def test_invalid_environment_value():
    with pytest.raises(GitConfigError) as exc_info:
        load_config(environ={"GIT_DRIVER_TIMEOUT_MS": "soon"})

    assert exc_info.value.config_key == "timeout_ms"


def test_missing_file(tmp_path):
    with pytest.raises(GitConfigError, match="not found"):
        load_config(tmp_path / "missing.json", environ={})


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(GitConfigError):
        load_config(path, environ={})


def test_non_object_json(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]")

    with pytest.raises(GitConfigError, match="JSON object"):
        load_config(path, environ={})
