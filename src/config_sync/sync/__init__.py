"""Sync engine, backups and rollback."""

from .backup_manager import BackupManager, BackupStats
from .engine import SyncEngine, SyncReport, SyncResult, SyncStatus
from .rollback import BackupIdentifier, RollbackEngine, parse_backup_name

__all__ = [
    "BackupManager", "BackupStats", "SyncEngine", "SyncReport", "SyncResult",
    "SyncStatus", "BackupIdentifier", "RollbackEngine", "parse_backup_name",
]
