"""Tests for planned filesystem operations and their executor."""

import logging
import os
import time

from config_sync.config.settings import MappingKind
from config_sync.sync.operations import (
    CopyFile,
    CopyTree,
    MakeDirs,
    OperationExecutor,
    RemovePath,
    Touch,
    plan_copy,
    plan_replace,
)


class TestPlanReplace:
    def test_directory_over_existing(self, tmp_path):
        src, dst = tmp_path / "src", tmp_path / "dst"
        src.mkdir()
        dst.mkdir()

        assert plan_replace(src, dst, MappingKind.DIRECTORY) == [
            RemovePath(dst),
            CopyTree(src, dst),
        ]

    def test_directory_into_missing_parent(self, tmp_path):
        src, dst = tmp_path / "src", tmp_path / "a" / "b" / "dst"
        src.mkdir()

        assert plan_replace(src, dst, MappingKind.DIRECTORY) == [
            MakeDirs(dst.parent),
            CopyTree(src, dst),
        ]

    def test_file_over_existing_is_a_plain_copy(self, tmp_path):
        src, dst = tmp_path / "src.conf", tmp_path / "dst.conf"
        src.write_text("new")
        dst.write_text("old")

        assert plan_replace(src, dst, MappingKind.FILE) == [CopyFile(src, dst)]

    def test_file_over_directory_removes_it(self, tmp_path):
        src, dst = tmp_path / "src.conf", tmp_path / "dst.conf"
        src.write_text("new")
        dst.mkdir()

        assert plan_replace(src, dst, MappingKind.FILE) == [RemovePath(dst), CopyFile(src, dst)]


class TestExecutor:
    def test_dry_run_changes_nothing(self, tmp_path, caplog):
        src, dst = tmp_path / "src", tmp_path / "dst"
        src.mkdir()
        (src / "a.txt").write_text("a")
        executor = OperationExecutor(dry_run=True)

        with caplog.at_level(logging.INFO, logger="config_sync"):
            descriptions = executor.execute_all(plan_replace(src, dst, MappingKind.DIRECTORY))

        assert descriptions == [f"copy directory: {src} -> {dst}"]
        assert not dst.exists()
        assert "[DRY RUN] Would copy directory" in caplog.text

    def test_directory_replace_is_not_a_merge(self, tmp_path):
        src, dst = tmp_path / "src", tmp_path / "dst"
        (src / "sub").mkdir(parents=True)
        (src / "sub" / "keep.txt").write_text("keep")
        dst.mkdir()
        (dst / "stale.txt").write_text("stale")

        OperationExecutor().execute_all(plan_replace(src, dst, MappingKind.DIRECTORY))

        assert (dst / "sub" / "keep.txt").read_text() == "keep"
        assert not (dst / "stale.txt").exists()

    def test_file_copy_creates_parents(self, tmp_path):
        src, dst = tmp_path / "src.conf", tmp_path / "x" / "y" / "dst.conf"
        src.write_text("content")

        OperationExecutor().execute_all(plan_replace(src, dst, MappingKind.FILE))

        assert dst.read_text() == "content"

    def test_symlinks_inside_trees_are_copied_as_links(self, tmp_path):
        src, dst = tmp_path / "src", tmp_path / "dst"
        src.mkdir()
        (src / "real.txt").write_text("real")
        os.symlink("real.txt", src / "link.txt")

        OperationExecutor().execute(CopyTree(src, dst))

        assert (dst / "link.txt").is_symlink()
        assert os.readlink(dst / "link.txt") == "real.txt"


def test_plan_copy_gives_fresh_mtime(tmp_path):
    src = tmp_path / "old"
    src.mkdir()
    (src / "f.txt").write_text("x")
    long_ago = time.time() - 90 * 86400
    os.utime(src, (long_ago, long_ago))
    dst = tmp_path / "backups" / "copy"

    operations = plan_copy(src, dst)
    OperationExecutor().execute_all(operations)

    assert operations[0] == MakeDirs(dst.parent)
    assert operations[-1] == Touch(dst)
    assert dst.stat().st_mtime > long_ago + 86400
