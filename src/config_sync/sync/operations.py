"""Planned filesystem mutations and the executor that applies them.

Every change the tool makes to disk is described first as one of the
operation values below. :class:`OperationExecutor` either applies the
operation or, in dry-run mode, only logs its description, so a dry run
and a real run always report the same plan.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

from ..config.settings import MappingKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CopyFile:
    source: Path
    destination: Path

    def describe(self) -> str:
        return f"copy file: {self.source} -> {self.destination}"

    def apply(self) -> None:
        # Content and mode only; the copy gets a fresh mtime like cp(1)
        shutil.copy(self.source, self.destination)


@dataclass(frozen=True)
class CopyTree:
    source: Path
    destination: Path

    def describe(self) -> str:
        return f"copy directory: {self.source} -> {self.destination}"

    def apply(self) -> None:
        shutil.copytree(self.source, self.destination, symlinks=True,
                        copy_function=shutil.copy)


@dataclass(frozen=True)
class RemovePath:
    path: Path

    def describe(self) -> str:
        return f"remove: {self.path}"

    def apply(self) -> None:
        if self.path.is_dir() and not self.path.is_symlink():
            shutil.rmtree(self.path)
        else:
            self.path.unlink()


@dataclass(frozen=True)
class MakeDirs:
    path: Path

    def describe(self) -> str:
        return f"create directory: {self.path}"

    def apply(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class Touch:
    path: Path

    def describe(self) -> str:
        return f"update modification time: {self.path}"

    def apply(self) -> None:
        os.utime(self.path, None, follow_symlinks=False)


Operation = Union[CopyFile, CopyTree, RemovePath, MakeDirs, Touch]


def plan_replace(source: Path, destination: Path, kind: MappingKind) -> List[Operation]:
    """Operations that replace ``destination`` with a copy of ``source``.

    Directories are removed and copied again in full, files are copied over.
    Nothing is merged. A crash between the remove and the copy leaves the
    destination missing; callers take a backup first.
    """
    operations: List[Operation] = []
    destination_exists = os.path.lexists(destination)

    if kind is MappingKind.DIRECTORY:
        if destination_exists:
            operations.append(RemovePath(destination))
        if not destination.parent.exists():
            operations.append(MakeDirs(destination.parent))
        operations.append(CopyTree(source, destination))
    else:
        if destination_exists and destination.is_dir() and not destination.is_symlink():
            operations.append(RemovePath(destination))
        if not destination.parent.exists():
            operations.append(MakeDirs(destination.parent))
        operations.append(CopyFile(source, destination))

    return operations


def plan_copy(source: Path, destination: Path) -> List[Operation]:
    """Operations that copy ``source`` to a new, unused ``destination``."""
    operations: List[Operation] = []
    if not destination.parent.exists():
        operations.append(MakeDirs(destination.parent))
    if source.is_dir():
        operations.append(CopyTree(source, destination))
    else:
        operations.append(CopyFile(source, destination))
    operations.append(Touch(destination))
    return operations


class OperationExecutor:
    """Applies planned operations, or only describes them in dry-run mode."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, operation: Operation) -> str:
        """Apply one operation and return its description.

        OSError from the underlying call propagates to the caller.
        """
        description = operation.describe()
        if self.dry_run:
            logger.info(f"[DRY RUN] Would {description}")
            return description

        logger.debug(f"Running {description}")
        operation.apply()
        return description

    def execute_all(self, operations: Iterable[Operation]) -> List[str]:
        return [self.execute(operation) for operation in operations]
