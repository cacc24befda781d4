"""Timestamped backups of managed paths, with retention cleanup."""

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config.settings import RetentionPolicy, RunOptions
from ..exceptions import BackupError
from ..utils.file_utils import FileHelper
from .operations import OperationExecutor, RemovePath, plan_copy

# Module logger
logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

BACKUP_NAME_PATTERN = re.compile(r'^(.+)_\d{8}_\d{6}$')


@dataclass
class BackupStats:
    """Aggregate information about the backup root."""
    count: int = 0
    total_size_bytes: int = 0
    oldest: Optional[datetime] = None
    newest: Optional[datetime] = None


class BackupManager:
    """Creates, lists and prunes backups in a single flat directory.

    Backups are named ``{logical_name}_{YYYYMMDD_HHMMSS}`` and mirror the
    type of what was copied: a plain file or a full directory tree.
    """

    def __init__(self, backup_dir: Path, retention: Optional[RetentionPolicy] = None,
                 options: Optional[RunOptions] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize backup manager.

        Args:
            backup_dir: Backup root directory
            retention: Age and count limits applied by cleanup()
            options: Run options (dry-run)
            clock: Source of the current time
        """
        self.backup_dir = Path(backup_dir)
        self.retention = retention or RetentionPolicy()
        self.options = options or RunOptions()
        self.clock = clock
        self.executor = OperationExecutor(dry_run=self.options.dry_run)

    def _backup_path_for(self, logical_name: str) -> Path:
        """Path for a new backup, advancing the timestamp past taken names."""
        moment = self.clock().replace(microsecond=0)
        candidate = self.backup_dir / f"{logical_name}_{moment.strftime(TIMESTAMP_FORMAT)}"
        while os.path.lexists(candidate):
            moment += timedelta(seconds=1)
            candidate = self.backup_dir / f"{logical_name}_{moment.strftime(TIMESTAMP_FORMAT)}"
        return candidate

    def create_backup(self, target: Path, logical_name: str) -> Optional[Path]:
        """Copy ``target`` into the backup root.

        Args:
            target: File or directory to back up
            logical_name: Name prefix, e.g. ``tmux_repo``

        Returns:
            Path of the backup (the planned path in dry-run mode), or None
            if there was nothing to back up

        Raises:
            BackupError: If the backup directory or the copy cannot be created
        """
        target = Path(target)
        if not os.path.lexists(target):
            logger.debug(f"Nothing to back up, {target} does not exist")
            return None

        backup_path = self._backup_path_for(logical_name)

        if self.options.dry_run:
            logger.info(f"[DRY RUN] Would create backup: {backup_path}")
            return backup_path

        logger.info(f"Creating backup: {backup_path}")
        try:
            self.executor.execute_all(plan_copy(target, backup_path))
        except OSError as e:
            raise BackupError(f"Failed to back up {target} to {backup_path}: {e}", target) from e

        if not self.verify_backup(target, backup_path):
            logger.warning(
                f"Backup integrity check failed for {backup_path}: "
                f"{FileHelper.entry_kind(target)} copied as {FileHelper.entry_kind(backup_path)}"
            )

        return backup_path

    def verify_backup(self, source: Path, backup_path: Path) -> bool:
        """Check that the backup has the same entry type as its source."""
        return FileHelper.entry_kind(Path(source)) == FileHelper.entry_kind(Path(backup_path))

    def list_backups(self) -> List[Path]:
        """All backups in the root, oldest first by modification time."""
        if not self.backup_dir.is_dir():
            return []

        entries = []
        for entry in self.backup_dir.iterdir():
            if not BACKUP_NAME_PATTERN.match(entry.name):
                continue
            try:
                mtime = entry.lstat().st_mtime
            except OSError as e:
                logger.warning(f"Cannot stat backup {entry}: {e}")
                continue
            entries.append((mtime, entry.name, entry))

        entries.sort()
        return [entry for _mtime, _name, entry in entries]

    def group_backups(self, backups: Optional[List[Path]] = None) -> Dict[str, List[Path]]:
        """Backups keyed by logical name (e.g. ``tmux_repo``), each oldest first."""
        groups: Dict[str, List[Path]] = {}
        for backup in self.list_backups() if backups is None else backups:
            logical_name = BACKUP_NAME_PATTERN.match(backup.name).group(1)
            groups.setdefault(logical_name, []).append(backup)
        return groups

    def cleanup_candidates(self) -> List[Path]:
        """Backups older than max_age_days or outside the newest max_count.

        The count limit applies to each logical name separately, so a busy
        mapping never pushes out the backups of a quiet one.
        """
        backups = self.list_backups()
        cutoff = (self.clock() - timedelta(days=self.retention.max_age_days)).timestamp()

        candidates = []
        for backup in backups:
            try:
                if backup.lstat().st_mtime < cutoff:
                    candidates.append(backup)
            except OSError:
                continue

        for group in self.group_backups(backups).values():
            excess = len(group) - self.retention.max_count
            if excess > 0:
                candidates.extend(group[:excess])

        # Union of both rules, keeping oldest-first order
        seen = set()
        unique = []
        for backup in candidates:
            if backup not in seen:
                seen.add(backup)
                unique.append(backup)
        unique.sort(key=backups.index)
        return unique

    def cleanup(self) -> List[Path]:
        """Remove backups selected by the retention policy.

        Removal failures are logged and skipped; the sweep always finishes.

        Returns:
            Paths removed, or the candidates in dry-run mode
        """
        candidates = self.cleanup_candidates()
        if not candidates:
            logger.debug("Retention cleanup: nothing to remove")
            return []

        removed = []
        for backup in candidates:
            try:
                self.executor.execute(RemovePath(backup))
                removed.append(backup)
            except OSError as e:
                logger.warning(f"Failed to remove old backup {backup}: {e}")

        if self.options.dry_run:
            logger.info(f"[DRY RUN] Retention cleanup would remove {len(removed)} backup(s)")
        else:
            logger.info(f"Retention cleanup: removed {len(removed)} old backup(s)")
        return removed

    def stats(self) -> BackupStats:
        """Count and total size of all backups. Never raises."""
        stats = BackupStats()
        try:
            backups = self.list_backups()
        except OSError as e:
            logger.warning(f"Cannot read backup directory {self.backup_dir}: {e}")
            return stats

        for backup in backups:
            stats.count += 1
            stats.total_size_bytes += FileHelper.get_path_size(backup)
            try:
                modified = datetime.fromtimestamp(backup.lstat().st_mtime)
            except OSError:
                continue
            if stats.oldest is None or modified < stats.oldest:
                stats.oldest = modified
            if stats.newest is None or modified > stats.newest:
                stats.newest = modified

        return stats
