"""Tests for pull/push orchestration: backups, replace semantics, reporting."""

import logging
import shutil

import pytest

from config_sync.config.registry import MappingRegistry
from config_sync.config.settings import Direction, RunOptions
from config_sync.exceptions import BackupError, MappingValidationError
from config_sync.sync.engine import SyncEngine, SyncStatus
from config_sync.sync.operations import CopyTree


@pytest.fixture
def make_engine(registry, make_backup_manager):
    def _make(dry_run=False, reg=None, **kwargs):
        manager = make_backup_manager(dry_run=dry_run, **kwargs)
        return SyncEngine(reg or registry, manager, RunOptions(dry_run=dry_run))
    return _make


class TestPull:
    def test_copies_all_mappings(self, make_engine, system_configs, repo, digest):
        report = make_engine().run(Direction.PULL)

        assert report.ok
        assert (report.success_count, report.total_count) == (2, 2)
        assert report.exit_code == 0
        assert (repo / "tmux.conf").read_text() == "set -g mouse on\n"
        assert digest(repo / "claude" / "agents") == digest(system_configs / ".claude" / "agents")

    def test_no_backup_when_destination_is_new(self, make_engine, system_configs, backup_dir):
        report = make_engine().run(Direction.PULL)

        assert all(result.backup_path is None for result in report.results)
        assert not backup_dir.exists()

    def test_backup_before_overwrite(self, make_engine, system_configs, repo, backup_dir):
        (repo / "tmux.conf").write_text("old repo content\n")

        report = make_engine().run(Direction.PULL)

        tmux = report.results[0]
        assert tmux.backup_path.parent == backup_dir
        assert tmux.backup_path.name.startswith("tmux_repo_")
        assert tmux.backup_path.read_text() == "old repo content\n"
        assert (repo / "tmux.conf").read_text() == "set -g mouse on\n"

    def test_directory_replace_drops_stale_files(self, make_engine, system_configs, repo):
        stale = repo / "claude" / "agents" / "removed-upstream.md"
        stale.parent.mkdir(parents=True)
        stale.write_text("stale")

        make_engine().run(Direction.PULL)

        assert not stale.exists()
        assert (repo / "claude" / "agents" / "nested" / "helper.md").exists()

    def test_idempotent(self, make_engine, system_configs, repo, digest):
        make_engine().run(Direction.PULL)
        first = digest(repo)

        report = make_engine().run(Direction.PULL)

        assert report.ok
        assert digest(repo) == first
        assert digest(repo / "claude" / "agents") == digest(system_configs / ".claude" / "agents")


class TestPush:
    def test_repo_to_system_with_system_backup(self, make_engine, system_configs, repo, home):
        (repo / "tmux.conf").write_text("set -g status off\n")
        agents = repo / "claude" / "agents"
        agents.mkdir(parents=True)
        (agents / "planner.md").write_text("# planner\n")

        report = make_engine().run(Direction.PUSH)

        assert report.ok
        assert (home / ".tmux.conf").read_text() == "set -g status off\n"
        assert sorted(p.name for p in (home / ".claude" / "agents").iterdir()) == ["planner.md"]
        names = sorted(result.backup_path.name for result in report.results)
        assert names[0].startswith("agents_system_")
        assert names[1].startswith("tmux_system_")

    def test_creates_missing_system_parents(self, make_engine, repo, home):
        (repo / "tmux.conf").write_text("x")
        agents = repo / "claude" / "agents"
        agents.mkdir(parents=True)

        report = make_engine().run(Direction.PUSH)

        assert report.ok
        assert (home / ".claude" / "agents").is_dir()


class TestPerMappingFailures:
    def test_missing_source_is_skipped_and_run_continues(self, make_engine, home, repo):
        (home / ".tmux.conf").write_text("only tmux\n")

        report = make_engine().run(Direction.PULL)

        statuses = {result.name: result.status for result in report.results}
        assert statuses == {"tmux": SyncStatus.SUCCESS, "agents": SyncStatus.SKIPPED}
        assert (repo / "tmux.conf").exists()
        assert not report.ok
        assert report.exit_code == 1
        assert "does not exist" in report.skipped[0].reason
        assert str(home / ".claude" / "agents") in report.skipped[0].reason

    def test_backup_failure_fails_only_that_mapping(self, make_engine, system_configs, repo):
        (repo / "tmux.conf").write_text("keep me\n")
        engine = make_engine()

        def failing_backup(target, logical_name):
            raise BackupError("cannot create backup directory", target)
        engine.backup_manager.create_backup = failing_backup

        report = engine.run(Direction.PULL)

        by_name = {result.name: result for result in report.results}
        assert by_name["tmux"].status is SyncStatus.FAILED
        assert "Backup failed" in by_name["tmux"].reason
        assert (repo / "tmux.conf").read_text() == "keep me\n"
        assert by_name["agents"].status is SyncStatus.FAILED

    def test_transfer_failure_fails_only_that_mapping(self, make_engine, system_configs, repo,
                                                      monkeypatch):
        def broken_copytree(self):
            raise OSError("no space left on device")
        monkeypatch.setattr(CopyTree, "apply", broken_copytree)

        report = make_engine().run(Direction.PULL)

        by_name = {result.name: result for result in report.results}
        assert by_name["tmux"].status is SyncStatus.SUCCESS
        assert by_name["agents"].status is SyncStatus.FAILED
        assert "Transfer failed" in by_name["agents"].reason
        assert report.summary() == {
            'direction': 'pull', 'total': 2, 'successful': 1, 'skipped': 0,
            'failed': 1, 'backups_removed': 0,
        }


class TestValidation:
    def test_malformed_mapping_aborts_before_any_io(self, entries, repo, home, system_configs,
                                                    make_backup_manager, backup_dir, take_snapshot):
        registry = MappingRegistry(entries + ["bad:only-three:fields"], repo_root=repo, home=home)
        engine = SyncEngine(registry, make_backup_manager(), RunOptions())
        before = take_snapshot(repo.parent)

        with pytest.raises(MappingValidationError) as exc_info:
            engine.run(Direction.PULL)

        assert len(exc_info.value.errors) == 1
        assert take_snapshot(repo.parent) == before
        assert not backup_dir.exists()


class TestLogging:
    def test_per_mapping_debug_context(self, make_engine, system_configs, repo, caplog):
        with caplog.at_level(logging.DEBUG, logger="config_sync"):
            make_engine().run(Direction.PULL)

        assert (f"[mapping=tmux | direction=pull] Destination {repo / 'tmux.conf'} "
                f"writable via {repo}") in caplog.text


class TestDryRun:
    def test_no_filesystem_mutation(self, make_engine, system_configs, repo, take_snapshot, caplog):
        (repo / "tmux.conf").write_text("old\n")
        (repo / "claude" / "agents").mkdir(parents=True)
        before = take_snapshot(repo.parent)

        with caplog.at_level(logging.INFO, logger="config_sync"):
            report = make_engine(dry_run=True).run(Direction.PULL)

        assert take_snapshot(repo.parent) == before
        assert report.ok
        assert report.dry_run
        by_name = {result.name: result for result in report.results}
        assert by_name["tmux"].backup_path.name.startswith("tmux_repo_")
        assert by_name["tmux"].operations == [
            f"copy file: {system_configs / '.tmux.conf'} -> {repo / 'tmux.conf'}"
        ]
        assert by_name["agents"].operations[0] == f"remove: {repo / 'claude' / 'agents'}"
        assert "2 file(s)" in caplog.text
        assert "16 bytes" in caplog.text

    def test_dry_run_skips_cleanup(self, make_engine, system_configs, backup_dir):
        backup_dir.mkdir()
        for i in range(1, 4):
            (backup_dir / f"tmux_repo_2026010{i}_000000").write_text("x")

        report = make_engine(dry_run=True, max_count=1).run(Direction.PULL)

        assert report.removed_backups == []
        assert len(list(backup_dir.iterdir())) == 3


class TestRetentionAfterRun:
    def test_cleanup_runs_after_successful_sync(self, make_engine, system_configs, repo, backup_dir):
        (repo / "tmux.conf").write_text("v0\n")
        backup_dir.mkdir()
        for i in range(1, 4):
            (backup_dir / f"tmux_repo_2025010{i}_000000").write_text("x")

        report = make_engine(max_count=2).run(Direction.PULL)

        assert len(report.removed_backups) == 2
        assert len(list(backup_dir.iterdir())) == 2

    def test_no_cleanup_when_nothing_succeeded(self, make_engine, home, backup_dir):
        backup_dir.mkdir()
        for i in range(1, 4):
            (backup_dir / f"tmux_repo_2025010{i}_000000").write_text("x")

        report = make_engine(max_count=1).run(Direction.PULL)

        assert report.success_count == 0
        assert len(list(backup_dir.iterdir())) == 3
