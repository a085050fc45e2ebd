"""Tests for file operations module."""

import os

import pytest

from dropsync.file_ops import FileOps, FileOpsError


class TestFileOps:
    """FileOps tests."""

    def test_copy_file(self, temp_dirs):
        """Test copying a file."""
        left, right = temp_dirs
        src_file = left / "source.txt"
        src_file.write_text("content")

        dst_file = right / "dest.txt"
        FileOps().copy_file(src_file, dst_file)

        assert dst_file.read_text() == "content"

    def test_copy_file_preserves_mtime(self, temp_dirs):
        left, right = temp_dirs
        src_file = left / "save.dat"
        src_file.write_text("content")
        os.utime(src_file, (1_600_000_000, 1_600_000_000))

        dst_file = right / "save.dat"
        FileOps().copy_file(src_file, dst_file)

        assert dst_file.stat().st_mtime == 1_600_000_000

    def test_copy_file_creates_directories(self, temp_dirs):
        """Test that copy_file creates destination directories."""
        left, right = temp_dirs
        src_file = left / "source.txt"
        src_file.write_text("content")

        dst_file = right / "subdir" / "nested" / "dest.txt"
        FileOps().copy_file(src_file, dst_file)

        assert dst_file.exists()

    def test_copy_overwrites(self, temp_dirs):
        left, right = temp_dirs
        (left / "a.txt").write_text("new")
        (right / "a.txt").write_text("old")

        FileOps().copy_file(left / "a.txt", right / "a.txt")

        assert (right / "a.txt").read_text() == "new"

    def test_copy_nonexistent_file(self, temp_dirs):
        """Test copying non-existent file raises error."""
        left, right = temp_dirs

        with pytest.raises(FileOpsError):
            FileOps().copy_file(left / "nonexistent.txt", right / "dest.txt")

    def test_delete_file(self, temp_dirs):
        left, _ = temp_dirs
        test_file = left / "delete_me.txt"
        test_file.write_text("content")

        FileOps().delete_file(test_file)

        assert not test_file.exists()

    def test_delete_missing_file_is_not_an_error(self, temp_dirs):
        left, _ = temp_dirs
        FileOps().delete_file(left / "missing.txt")

    def test_prune_empty_dirs_stops_at_root(self, temp_dirs):
        left, _ = temp_dirs
        nested = left / "a" / "b" / "c"
        nested.mkdir(parents=True)

        removed = FileOps().prune_empty_dirs(nested, left)

        assert removed == 3
        assert not (left / "a").exists()
        assert left.exists()

    def test_prune_keeps_non_empty_dirs(self, temp_dirs):
        left, _ = temp_dirs
        nested = left / "a" / "b"
        nested.mkdir(parents=True)
        (left / "a" / "keep.txt").write_text("x")

        removed = FileOps().prune_empty_dirs(nested, left)

        assert removed == 1
        assert (left / "a").exists()

    def test_prune_ignores_paths_outside_root(self, temp_dirs):
        left, right = temp_dirs
        (right / "empty").mkdir()

        assert FileOps().prune_empty_dirs(right / "empty", left) == 0
        assert (right / "empty").exists()

    def test_copy_refuses_directory_destination(self, temp_dirs):
        left, right = temp_dirs
        (left / "x").write_text("file")
        (right / "x" / "y").mkdir(parents=True)

        with pytest.raises(FileOpsError, match="directory"):
            FileOps().copy_file(left / "x", right / "x")

        assert (right / "x" / "y").is_dir()
        assert not (right / "x" / "x").exists()

    def test_move_file_replaces_file(self, temp_dirs):
        left, right = temp_dirs
        (left / "a.txt").write_text("new")
        (right / "a.txt").write_text("old")

        FileOps().move_file(left / "a.txt", right / "a.txt")

        assert (right / "a.txt").read_text() == "new"
        assert not (left / "a.txt").exists()

    def test_move_file_replaces_empty_directory(self, temp_dirs):
        left, right = temp_dirs
        (left / "x").write_text("file")
        (right / "x").mkdir()

        FileOps().move_file(left / "x", right / "x")

        assert (right / "x").read_text() == "file"

    def test_move_file_refuses_non_empty_directory(self, temp_dirs):
        left, right = temp_dirs
        (left / "x").write_text("file")
        (right / "x").mkdir()
        (right / "x" / "keep.txt").write_text("keep")

        with pytest.raises(FileOpsError):
            FileOps().move_file(left / "x", right / "x")

        assert (right / "x" / "keep.txt").exists()
        assert (left / "x").exists()

    def test_remove_tree(self, temp_dirs):
        left, _ = temp_dirs
        (left / "a" / "b").mkdir(parents=True)
        (left / "a" / "b" / "c.txt").write_text("x")

        FileOps().remove_tree(left / "a")
        FileOps().remove_tree(left / "a")

        assert not (left / "a").exists()
