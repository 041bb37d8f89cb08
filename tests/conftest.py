"""Shared fixtures for the jogger tests."""
import textwrap
from pathlib import Path

import pytest

from jogger.core.logger import init_logger


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep test output readable: warnings and above only."""
    init_logger("WARNING")
    yield


@pytest.fixture
def write_desktop():
    """Write a description file: write_desktop(directory, "foo", body) -> path."""
    def _write(directory: Path, name: str, body: str) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.desktop"
        path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
        return path
    return _write
