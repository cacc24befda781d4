"""
Config Sync

Keeps named configuration files and directories in sync between their
live system locations and a version-controlled repository, with automatic
timestamped backups, retention cleanup and rollback.
"""

__version__ = "1.0.0"
__author__ = "Config Sync"
__description__ = "Two-way sync of configuration files with backup and rollback"

from .config.settings import SyncConfig
from .sync.engine import SyncEngine

__all__ = ["SyncConfig", "SyncEngine"]
