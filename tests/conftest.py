"""Shared test fixtures for the termbridge test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes import FakeConnection, ShellRecorder


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def shell_recorder() -> ShellRecorder:
    return ShellRecorder()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """An empty project root inside a parent that holds a 'secret' file."""
    root = tmp_path / "project"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("do not touch")
    return root
