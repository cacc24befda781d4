"""Restore a mapping's original location from a backup."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from ..config.registry import MappingRegistry
from ..config.settings import Location, MappingKind, RunOptions
from ..exceptions import (
    BackupError,
    BackupMissingError,
    BackupNameParseError,
    MappingValidationError,
    NoBackupsFoundError,
    RollbackError,
)
from ..utils.file_utils import FileHelper
from .backup_manager import BackupManager
from .operations import OperationExecutor, plan_replace

logger = logging.getLogger(__name__)

BACKUP_ID_PATTERN = re.compile(r'^(.+)_(system|repo)_(\d{8}_\d{6})$')

PREROLLBACK_SUFFIX = "prerollback"


@dataclass(frozen=True)
class BackupIdentifier:
    """What a backup filename says about its origin."""
    config_name: str
    location: Location
    timestamp: str  # YYYYMMDD_HHMMSS, fixed width

    @property
    def name(self) -> str:
        return f"{self.config_name}_{self.location.value}_{self.timestamp}"


def parse_backup_name(name: str) -> BackupIdentifier:
    """Split ``{config}_{system|repo}_{YYYYMMDD_HHMMSS}`` into its parts.

    Raises:
        BackupNameParseError: If the name does not follow that grammar
    """
    match = BACKUP_ID_PATTERN.match(name)
    if not match:
        raise BackupNameParseError(name)
    config_name, location, timestamp = match.groups()
    return BackupIdentifier(config_name, Location(location), timestamp)


@dataclass
class RollbackResult:
    backup_path: Path
    target_path: Path
    safety_backup: Optional[Path] = None
    operations: List[str] = field(default_factory=list)


class RollbackEngine:
    """Restores original locations from backups made by :class:`BackupManager`."""

    def __init__(self, registry: MappingRegistry, backup_manager: BackupManager,
                 options: Optional[RunOptions] = None):
        self.registry = registry
        self.backup_manager = backup_manager
        self.options = options or RunOptions()
        self.executor = OperationExecutor(dry_run=self.options.dry_run)

    def _ensure_registry(self) -> None:
        if not self.registry.is_valid:
            errors = self.registry.validate_all()
            if errors:
                raise MappingValidationError(errors)

    def _backup_path(self, backup: Union[str, Path]) -> Path:
        backup = Path(backup)
        if len(backup.parts) == 1:
            return self.backup_manager.backup_dir / backup
        return backup

    def restore(self, backup: Union[str, Path]) -> RollbackResult:
        """Replace the original location of ``backup`` with its content.

        Args:
            backup: Backup path, or a bare name inside the backup root

        Raises:
            RollbackError: If the name cannot be parsed, the mapping is
                unknown, the backup is unusable or the safety backup fails
        """
        backup_path = self._backup_path(backup)
        identifier = parse_backup_name(backup_path.name)
        self._ensure_registry()
        mapping = self.registry.get(identifier.config_name)
        target = mapping.path_for(identifier.location)

        self._check_backup(backup_path, mapping.kind)

        logger.info(f"Rolling back {mapping.name} ({identifier.location.value}) "
                    f"to {identifier.timestamp}: {backup_path} -> {target}")

        result = RollbackResult(backup_path=backup_path, target_path=target)

        # Never overwrite live state without a copy of it
        try:
            result.safety_backup = self.backup_manager.create_backup(
                target,
                f"{identifier.config_name}_{identifier.location.value}_{PREROLLBACK_SUFFIX}",
            )
        except BackupError as e:
            raise RollbackError(f"Safety backup of {target} failed, rollback aborted: {e}") from e

        for operation in plan_replace(backup_path, target, mapping.kind):
            try:
                result.operations.append(self.executor.execute(operation))
            except OSError as e:
                raise RollbackError(
                    f"Failed to {operation.describe()}: {e}"
                    + (f" (previous content saved in {result.safety_backup})"
                       if result.safety_backup else "")
                ) from e

        if self.options.dry_run:
            logger.info(f"[DRY RUN] Would restore {target} from {backup_path}")
        else:
            logger.info(f"Restored {target} from {backup_path}")
        return result

    def _check_backup(self, backup_path: Path, kind: MappingKind) -> None:
        if not backup_path.exists():
            raise BackupMissingError(f"Backup does not exist: {backup_path}", backup_path)
        if not os.access(backup_path, os.R_OK):
            raise BackupMissingError(f"Backup is not readable: {backup_path}", backup_path)

        actual = FileHelper.entry_kind(backup_path)
        expected = 'directory' if kind is MappingKind.DIRECTORY else 'file'
        if actual != expected:
            raise BackupMissingError(
                f"Backup is a {actual} but the mapping expects a {expected}: {backup_path}",
                backup_path,
            )

    def find_backups(self, config_name: str,
                     location: Optional[Location] = None) -> List[BackupIdentifier]:
        """Parseable backups of one config, optionally limited to one side.

        Safety backups taken before a rollback do not match the grammar and
        are never returned.
        """
        locations = [Location(location)] if location else [Location.SYSTEM, Location.REPO]
        found = []
        for path in self.backup_manager.list_backups():
            try:
                identifier = parse_backup_name(path.name)
            except BackupNameParseError:
                continue
            if identifier.config_name == config_name and identifier.location in locations:
                found.append(identifier)
        return found

    def restore_latest(self, config_name: str,
                       location: Optional[Location] = None) -> RollbackResult:
        """Restore the most recent backup of ``config_name``.

        Raises:
            MappingNotFoundError: If no mapping has that name
            NoBackupsFoundError: If there is nothing to restore
        """
        self._ensure_registry()
        self.registry.get(config_name)

        candidates = self.find_backups(config_name, location)
        if not candidates:
            where = f" ({Location(location).value})" if location else ""
            raise NoBackupsFoundError(f"No backups found for '{config_name}'{where}")

        # Timestamps are fixed-width and zero-padded, so string order is time order
        latest = max(candidates, key=lambda identifier: (identifier.timestamp, identifier.name))
        logger.info(f"Latest backup for {config_name}: {latest.name}")
        return self.restore(latest.name)
