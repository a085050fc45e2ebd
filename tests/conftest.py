"""Pytest configuration and fixtures."""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

BASE_TIME = 1_700_000_000


@pytest.fixture
def temp_dirs():
    """Create temporary local and mirror directories for testing."""
    temp_root = Path(tempfile.mkdtemp())
    left = temp_root / "local"
    right = temp_root / "mirror"
    left.mkdir()
    right.mkdir()

    yield left, right

    # Cleanup
    shutil.rmtree(temp_root, ignore_errors=True)


@pytest.fixture
def make_file():
    """Return a helper that writes a file and pins its modification time."""

    def _make_file(root: Path, relative_path: str, mtime: float = BASE_TIME, content: str = "data"):
        path = root.joinpath(*relative_path.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        os.utime(path, (mtime, mtime))
        return path

    return _make_file


@pytest.fixture
def sync_root(tmp_path):
    """Create a shared-folder base with a sample config file."""
    root = tmp_path / "Dropbox"
    root.mkdir()
    (root / "dropsync.yaml").write_text(
        """
logging:
  level: DEBUG

apps:
  beta:
    path: /games/beta/saves
    dropbox_path: Saves/beta
    include_only: "*.sv"
  alpha:
    path: C:/alpha/saves
    dropbox_path: Saves/alpha
    my_laptop:
      path: D:/alpha/saves
  gamma:
    path: /games/gamma
    dropbox_path: Saves/gamma
    disabled: true
"""
    )
    return root
