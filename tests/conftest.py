"""Shared fixtures: isolated home, repository and backup directories."""

import hashlib
import logging
import os
from pathlib import Path

import pytest

from config_sync.config.registry import MappingRegistry
from config_sync.config.settings import RetentionPolicy, RunOptions
from config_sync.sync.backup_manager import BackupManager


@pytest.fixture(autouse=True)
def reset_package_logger():
    """setup_logging() binds handlers to the streams of the test that ran it."""
    yield
    logger = logging.getLogger("config_sync")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def home(tmp_path):
    d = tmp_path / "home"
    d.mkdir()
    return d


@pytest.fixture
def repo(tmp_path):
    d = tmp_path / "repo"
    d.mkdir()
    return d


@pytest.fixture
def backup_dir(tmp_path):
    # Not created: the backup manager must create it on demand
    return tmp_path / "backups"


@pytest.fixture
def system_configs(home):
    """A file config and a directory config on the system side."""
    (home / ".tmux.conf").write_text("set -g mouse on\n")
    agents = home / ".claude" / "agents"
    (agents / "nested").mkdir(parents=True)
    (agents / "reviewer.md").write_text("# reviewer\n")
    (agents / "nested" / "helper.md").write_text("# helper\n")
    return home


@pytest.fixture
def entries(home):
    return [
        f"tmux:{home}/.tmux.conf:tmux.conf:file",
        f"agents:{home}/.claude/agents:claude/agents:dir",
    ]


@pytest.fixture
def registry(entries, repo, home):
    reg = MappingRegistry(entries, repo_root=repo, home=home)
    assert reg.validate_all() == []
    return reg


@pytest.fixture
def make_backup_manager(backup_dir):
    def _make(dry_run=False, max_age_days=30, max_count=10, **kwargs):
        return BackupManager(
            backup_dir,
            RetentionPolicy(max_age_days=max_age_days, max_count=max_count),
            RunOptions(dry_run=dry_run),
            **kwargs,
        )
    return _make


def tree_digest(path: Path) -> str:
    """SHA-256 over relative names and contents of a file or directory."""
    h = hashlib.sha256()
    if path.is_file():
        h.update(path.read_bytes())
        return h.hexdigest()
    for root, dirs, files in os.walk(path):
        dirs.sort()
        for name in sorted(files):
            full = Path(root) / name
            h.update(str(full.relative_to(path)).encode())
            h.update(full.read_bytes())
    return h.hexdigest()


def snapshot(root: Path) -> dict:
    """Every entry below ``root`` with its type, content and mtime."""
    state = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            full = Path(dirpath) / name
            state[str(full.relative_to(root))] = ('dir', None, full.stat().st_mtime_ns)
        for name in filenames:
            full = Path(dirpath) / name
            state[str(full.relative_to(root))] = ('file', full.read_bytes(), full.stat().st_mtime_ns)
    return state


@pytest.fixture
def digest():
    return tree_digest


@pytest.fixture
def take_snapshot():
    return snapshot
