"""Sync engine orchestrating validation, backup and replace for each mapping."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.registry import ConfigMapping, MappingRegistry
from ..config.settings import Direction, MappingKind, RunOptions
from ..exceptions import BackupError, MappingValidationError, PathError, TransferError
from ..utils.file_utils import FileHelper
from ..utils.logging import ContextualLogger
from .backup_manager import BackupManager
from .operations import OperationExecutor, plan_replace
from .validator import PathValidator

# Module logger
logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    """Outcome of syncing one mapping."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Tagged outcome for a single mapping."""
    name: str
    direction: Direction
    status: SyncStatus
    reason: Optional[str] = None
    source: Optional[Path] = None
    destination: Optional[Path] = None
    backup_path: Optional[Path] = None
    operations: List[str] = field(default_factory=list)


@dataclass
class SyncReport:
    """All per-mapping results of one run; counts derive from the list."""
    direction: Direction
    dry_run: bool = False
    results: List[SyncResult] = field(default_factory=list)
    removed_backups: List[Path] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.status is SyncStatus.SUCCESS)

    @property
    def skipped(self) -> List[SyncResult]:
        return [result for result in self.results if result.status is SyncStatus.SKIPPED]

    @property
    def failed(self) -> List[SyncResult]:
        return [result for result in self.results if result.status is SyncStatus.FAILED]

    @property
    def ok(self) -> bool:
        return self.success_count == self.total_count

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def summary(self) -> Dict[str, Any]:
        return {
            'direction': self.direction.value,
            'total': self.total_count,
            'successful': self.success_count,
            'skipped': len(self.skipped),
            'failed': len(self.failed),
            'backups_removed': len(self.removed_backups),
        }


class SyncEngine:
    """Copies every mapping in one direction, backing up what it overwrites."""

    def __init__(self, registry: MappingRegistry, backup_manager: BackupManager,
                 options: Optional[RunOptions] = None,
                 validator: Optional[PathValidator] = None):
        """Initialize sync engine.

        Args:
            registry: Declared mappings
            backup_manager: Backup manager sharing the same run options
            options: Run options (dry-run)
            validator: Precondition checker
        """
        self.registry = registry
        self.backup_manager = backup_manager
        self.options = options or RunOptions()
        self.validator = validator or PathValidator()
        self.executor = OperationExecutor(dry_run=self.options.dry_run)

    def run(self, direction: Direction) -> SyncReport:
        """Sync all mappings in declaration order.

        Raises:
            MappingValidationError: If any declaration is malformed; nothing
                on disk is touched in that case
        """
        direction = Direction(direction)
        errors = self.registry.validate_all()
        if errors:
            raise MappingValidationError(errors)

        report = SyncReport(direction=direction, dry_run=self.options.dry_run)
        for mapping in self.registry:
            report.results.append(self.sync(mapping, direction))

        if not self.options.dry_run and report.success_count > 0:
            report.removed_backups = self.backup_manager.cleanup()

        return report

    def sync(self, mapping: ConfigMapping, direction: Direction) -> SyncResult:
        """Validate, back up and replace one mapping. Never raises for I/O errors."""
        direction = Direction(direction)
        source = mapping.path_for(direction.source)
        destination = mapping.path_for(direction.destination)
        log = ContextualLogger(logger, {'mapping': mapping.name, 'direction': direction.value})

        result = SyncResult(
            name=mapping.name,
            direction=direction,
            status=SyncStatus.SUCCESS,
            source=source,
            destination=destination,
        )

        try:
            anchor = self.validator.validate(
                mapping.system_path, mapping.repo_path, direction, mapping.kind
            )
        except PathError as e:
            log.warning(f"Skipping: {e}")
            result.status = SyncStatus.SKIPPED
            result.reason = str(e)
            return result
        log.debug(f"Destination {destination} writable via {anchor}")

        self._describe_source(log, source, mapping.kind)

        try:
            result.backup_path = self.backup_manager.create_backup(
                destination, f"{mapping.name}_{direction.destination.value}"
            )
        except BackupError as e:
            log.error(f"Backup failed, not overwriting {destination}: {e}")
            result.status = SyncStatus.FAILED
            result.reason = f"Backup failed: {e}"
            return result

        try:
            result.operations = self._replace(source, destination, mapping.kind)
        except TransferError as e:
            log.error(str(e))
            result.status = SyncStatus.FAILED
            result.reason = f"Transfer failed: {e}"
            return result

        if self.options.dry_run:
            log.info(f"Would sync {source} -> {destination}")
        else:
            log.info(f"Synced {source} -> {destination}")
        return result

    def _describe_source(self, log: ContextualLogger, source: Path, kind: MappingKind) -> None:
        if kind is MappingKind.DIRECTORY:
            log.info(f"Source directory {source}: {FileHelper.count_files(source)} file(s)")
        else:
            size = FileHelper.get_path_size(source)
            log.info(f"Source file {source}: {FileHelper.format_file_size(size)} ({size} bytes)")

    def _replace(self, source: Path, destination: Path, kind: MappingKind) -> List[str]:
        """Replace ``destination`` with ``source``; remove-then-copy for directories."""
        descriptions = []
        for operation in plan_replace(source, destination, kind):
            try:
                descriptions.append(self.executor.execute(operation))
            except OSError as e:
                raise TransferError(f"Failed to {operation.describe()}: {e}", destination) from e
        return descriptions
