"""Pytest fixtures for rcfind tests."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

NAME = "myapp"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Provide a temporary project root, used as the stop directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def nested_dir(project_dir: Path) -> Path:
    """Provide project/a/b/c."""
    nested = project_dir / "a" / "b" / "c"
    nested.mkdir(parents=True)
    return nested


@pytest.fixture
def mock_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Provide a mock home directory and set HOME env var."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove rcfind-related environment variables."""
    env_vars = [
        "RCFIND_STOP_DIR",
        "RCFIND_CACHE",
        "RCFIND_IGNORE_EMPTY_SEARCH_PLACES",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def write_json() -> Callable[[Path, object], Path]:
    """Write a value as JSON, creating parent directories."""

    def _write(path: Path, value: object) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(value))
        return path

    return _write


@pytest.fixture
def no_fs_access(monkeypatch: pytest.MonkeyPatch) -> Callable[[], None]:
    """Make any later file check or read fail the test."""

    def _fail(path: str) -> None:
        raise AssertionError(f"unexpected filesystem access: {path}")

    def _install() -> None:
        monkeypatch.setattr("rcfind.searcher._is_file", _fail)
        monkeypatch.setattr("rcfind.searcher._read_text", _fail)

    return _install
