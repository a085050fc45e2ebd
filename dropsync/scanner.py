"""Directory scanner producing tree snapshots."""

import fnmatch
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from dropsync.logging_setup import get_logger

logger = get_logger()

# Holds copies waiting to replace a path of the other type; never part of a snapshot
STAGING_DIRNAME = ".dropsync-staging"


class ScanError(OSError):
    """Raised when a root directory cannot be scanned."""

    pass


class Side(Enum):
    """Which root of an app entry a snapshot was taken from."""

    LOCAL = "local"
    MIRROR = "mirror"


@dataclass(frozen=True)
class FileRecord:
    """Metadata for a single file."""

    relative_path: str
    mtime: float
    size: int


@dataclass
class TreeSnapshot:
    """All files under one root, keyed by POSIX-style relative path."""

    root: Path
    side: Side
    files: Dict[str, FileRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.files = dict(sorted(self.files.items()))

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self.files

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.files.values())

    def get(self, relative_path: str) -> Optional[FileRecord]:
        """Get the record for a relative path, if present."""
        return self.files.get(relative_path)

    def paths(self) -> Set[str]:
        """Get the set of relative paths in this snapshot."""
        return set(self.files)

    def absolute(self, relative_path: str) -> Path:
        """Map a relative path back onto this snapshot's root."""
        return self.root.joinpath(*relative_path.split("/"))


class Scanner:
    """Scans a root directory into a TreeSnapshot."""

    def __init__(self, include_only: Optional[str] = None):
        """Initialize scanner.

        Args:
            include_only: Glob matched against each file's base name; files
                that do not match are invisible to the engine
        """
        self.include_only = include_only or None

    def is_included(self, filename: str) -> bool:
        """Check if a file's base name passes the inclusion glob."""
        if self.include_only is None:
            return True
        return fnmatch.fnmatch(filename, self.include_only)

    def scan(self, root: Path, side: Side = Side.LOCAL) -> TreeSnapshot:
        """Scan a directory tree.

        Directory symlinks are followed, but a directory reached a second
        time (a symlink cycle or a second link to the same target) is not
        descended into again.

        Args:
            root: Root directory to scan
            side: Which side of the app entry this root is

        Returns:
            TreeSnapshot of every included file under root

        Raises:
            ScanError: If root does not exist or cannot be read
        """
        root = Path(root)
        if not root.is_dir():
            raise ScanError(f"Directory does not exist: {root}")
        try:
            root_stat = root.stat()
            with os.scandir(root):
                pass
        except OSError as e:
            raise ScanError(f"Cannot read directory {root}: {e}") from e

        visited: Set[Tuple[int, int]] = {(root_stat.st_dev, root_stat.st_ino)}
        files: Dict[str, FileRecord] = {}

        def on_walk_error(error: OSError) -> None:
            logger.warning(f"Could not read directory {error.filename}: {error}")

        for dirpath, dirnames, filenames in os.walk(root, followlinks=True, onerror=on_walk_error):
            current = Path(dirpath)
            if current == root and STAGING_DIRNAME in dirnames:
                dirnames.remove(STAGING_DIRNAME)
            dirnames[:] = self._unvisited_dirs(current, dirnames, visited)

            for filename in filenames:
                if not self.is_included(filename):
                    continue

                file_path = current / filename
                relative_path = file_path.relative_to(root).as_posix()
                try:
                    stat_info = file_path.stat()
                except OSError as e:
                    logger.warning(f"Could not stat file {relative_path}: {e}")
                    continue

                files[relative_path] = FileRecord(
                    relative_path=relative_path,
                    mtime=stat_info.st_mtime,
                    size=stat_info.st_size,
                )

        logger.info(f"Scanned {len(files)} files in {root}")
        return TreeSnapshot(root=root, side=side, files=files)

    @staticmethod
    def _unvisited_dirs(
        parent: Path, dirnames: List[str], visited: Set[Tuple[int, int]]
    ) -> List[str]:
        """Filter subdirectories down to ones not yet walked, recording them."""
        keep = []
        for dirname in sorted(dirnames):
            try:
                stat_info = (parent / dirname).stat()
            except OSError as e:
                logger.warning(f"Could not stat directory {parent / dirname}: {e}")
                continue
            key = (stat_info.st_dev, stat_info.st_ino)
            if key in visited:
                logger.debug(f"Skipping already visited directory: {parent / dirname}")
                continue
            visited.add(key)
            keep.append(dirname)
        return keep
