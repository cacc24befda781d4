"""
Exceptions for sync, backup and rollback operations.
"""

from pathlib import Path
from typing import List, Optional


class ConfigSyncError(Exception):
    """Base exception for config-sync operations."""

    pass


class MappingFormatError(ConfigSyncError):
    """A mapping declaration does not match name:system_path:repo_path:kind."""

    def __init__(self, entry: str, reason: str):
        self.entry = entry
        self.reason = reason
        super().__init__(f"Invalid mapping '{entry}': {reason}")


class MappingValidationError(ConfigSyncError):
    """One or more mapping declarations are malformed."""

    def __init__(self, errors: List[MappingFormatError]):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} invalid mapping(s) found")


class PathError(ConfigSyncError):
    """Precondition check on a source or destination path failed."""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(message)


class SourceMissingError(PathError):
    """Source path does not exist."""

    pass


class SourcePermissionError(PathError):
    """Source path exists but cannot be read."""

    pass


class SourceKindMismatchError(PathError):
    """Source is a file where a directory is declared, or the reverse."""

    pass


class DestinationNotWritableError(PathError):
    """No writable directory to create the destination in."""

    pass


class BackupError(ConfigSyncError):
    """Failed to create a backup copy."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class TransferError(ConfigSyncError):
    """Failed to remove or copy while replacing a destination."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class RollbackError(ConfigSyncError):
    """Rollback was aborted."""

    pass


class BackupNameParseError(RollbackError):
    """Backup name does not match {config}_{system|repo}_{YYYYMMDD_HHMMSS}."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Cannot parse backup name '{name}': expected "
            "<config>_<system|repo>_<YYYYMMDD>_<HHMMSS>"
        )


class MappingNotFoundError(RollbackError):
    """No mapping is declared under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No mapping named '{name}'")


class BackupMissingError(RollbackError):
    """Backup artifact is missing or unreadable."""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(message)


class NoBackupsFoundError(RollbackError):
    """No backups exist for the requested config."""

    pass
