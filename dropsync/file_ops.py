"""File operations layer for sync jobs."""

import os
import shutil
from pathlib import Path

from dropsync.logging_setup import get_logger

logger = get_logger()


class FileOpsError(Exception):
    """Raised when file operation fails."""

    pass


class FileOps:
    """Handles file copy, delete, and directory cleanup inside sync roots."""

    def copy_file(self, src: Path, dst: Path) -> None:
        """Copy file from source to destination, preserving its modification time.

        Missing parent directories of the destination are created.

        Args:
            src: Source file path
            dst: Destination file path

        Raises:
            FileOpsError: If copy fails
        """
        src_path = Path(src)
        dst_path = Path(dst)
        try:
            # Skip unnecessary work if source and destination point to same file
            try:
                if dst_path.exists() and src_path.samefile(dst_path):
                    logger.debug(f"Skipped copy; source and destination are identical: {src}")
                    return
            except OSError:
                pass

            if dst_path.is_dir():
                raise FileOpsError(f"Copy failed: destination is a directory: {dst}")

            dst_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(str(src_path), str(dst_path))

            if not dst_path.exists():
                raise FileOpsError(f"Copy verification failed: {dst}")

            logger.info(f"Copied file: {src} -> {dst}")
        except (OSError, shutil.Error) as e:
            logger.error(f"Failed to copy file {src} to {dst}: {e}")
            raise FileOpsError(f"Copy failed: {e}") from e

    def delete_file(self, path: Path) -> None:
        """Delete a file.

        Args:
            path: File to delete

        Raises:
            FileOpsError: If delete fails
        """
        file_path = Path(path)
        try:
            if not file_path.exists() and not file_path.is_symlink():
                logger.warning(f"File does not exist: {path}")
                return
            file_path.unlink()
            logger.info(f"Deleted file: {path}")
        except OSError as e:
            logger.error(f"Failed to delete file {path}: {e}")
            raise FileOpsError(f"Delete failed: {e}") from e

    def prune_empty_dirs(self, start: Path, root: Path) -> int:
        """Remove empty directories from ``start`` upwards, stopping at ``root``.

        The root itself is never removed.

        Returns:
            Number of directories removed
        """
        root = Path(root)
        current = Path(start)
        removed = 0
        while current != root and root in current.parents:
            try:
                if any(current.iterdir()):
                    break
                current.rmdir()
            except OSError as e:
                logger.debug(f"Could not prune directory {current}: {e}")
                break
            logger.info(f"Removed empty directory: {current}")
            removed += 1
            current = current.parent
        return removed

    def move_file(self, src: Path, dst: Path) -> None:
        """Move a file into place, replacing a file or an empty directory at ``dst``.

        Args:
            src: File to move
            dst: Final location

        Raises:
            FileOpsError: If ``dst`` is a non-empty directory or the move fails
        """
        src_path = Path(src)
        dst_path = Path(dst)
        try:
            if dst_path.is_dir():
                if any(dst_path.iterdir()):
                    raise FileOpsError(f"Move failed: {dst} is a non-empty directory")
                dst_path.rmdir()
            dst_path.parent.mkdir(parents=True, exist_ok=True)
            os.replace(src_path, dst_path)
            logger.info(f"Moved file: {src} -> {dst}")
        except OSError as e:
            logger.error(f"Failed to move file {src} to {dst}: {e}")
            raise FileOpsError(f"Move failed: {e}") from e

    def remove_tree(self, path: Path) -> None:
        """Remove a directory and everything below it, if it exists.

        Raises:
            FileOpsError: If removal fails
        """
        dir_path = Path(path)
        if not dir_path.exists():
            return
        try:
            shutil.rmtree(dir_path)
            logger.debug(f"Removed directory tree: {path}")
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}")
            raise FileOpsError(f"Remove failed: {e}") from e
