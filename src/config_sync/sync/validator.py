"""Read-only precondition checks before a transfer."""

import os
from pathlib import Path

from ..config.settings import Direction, MappingKind
from ..exceptions import (
    DestinationNotWritableError,
    SourceKindMismatchError,
    SourceMissingError,
    SourcePermissionError,
)
from ..utils.file_utils import FileHelper


class PathValidator:
    """Checks that one mapping can be transferred in one direction."""

    def validate(self, system_path: Path, repo_path: Path, direction: Direction,
                 kind: MappingKind = None) -> Path:
        """Raise a PathError if the transfer cannot proceed.

        Args:
            system_path: System-side path of the mapping
            repo_path: Repository-side path of the mapping
            direction: PULL reads system_path, PUSH reads repo_path
            kind: Declared mapping kind; checked against the source if given

        Returns:
            The existing directory new destination entries will be created under
        """
        if Direction(direction) is Direction.PULL:
            source, destination = Path(system_path), Path(repo_path)
        else:
            source, destination = Path(repo_path), Path(system_path)

        self._check_source(source, kind)
        return self._check_destination(destination)

    def _check_source(self, source: Path, kind: MappingKind = None) -> None:
        if not source.exists():
            raise SourceMissingError(f"Source does not exist: {source}", source)

        if not os.access(source, os.R_OK):
            raise SourcePermissionError(f"Source is not readable: {source}", source)

        if source.is_dir() and not os.access(source, os.X_OK):
            raise SourcePermissionError(f"Source directory cannot be traversed: {source}", source)

        if kind is MappingKind.DIRECTORY and not source.is_dir():
            raise SourceKindMismatchError(
                f"Mapping is declared 'dir' but source is a file: {source}", source
            )
        if kind is MappingKind.FILE and source.is_dir():
            raise SourceKindMismatchError(
                f"Mapping is declared 'file' but source is a directory: {source}", source
            )

    def _check_destination(self, destination: Path) -> Path:
        # The first existing ancestor is where new entries would be created
        anchor = FileHelper.nearest_existing_ancestor(destination.parent)

        if not anchor.is_dir():
            raise DestinationNotWritableError(
                f"Destination parent is not a directory: {anchor}", destination
            )
        if not os.access(anchor, os.W_OK | os.X_OK):
            raise DestinationNotWritableError(
                f"Destination is not writable (no write access to {anchor}): {destination}",
                destination,
            )
        return anchor
