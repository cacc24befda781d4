"""Registry of named system/repo mappings."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from ..exceptions import MappingFormatError, MappingNotFoundError
from .settings import Location, MappingKind

logger = logging.getLogger(__name__)

# Names end up in backup filenames
_NAME_PATTERN = re.compile(r'^[A-Za-z0-9._-]+$')
_KIND_ALIASES = {'file': MappingKind.FILE, 'dir': MappingKind.DIRECTORY}


@dataclass(frozen=True)
class ConfigMapping:
    """A named association between a system path and a repository path."""
    name: str
    system_path: Path
    repo_path: Path
    kind: MappingKind

    def path_for(self, location: Location) -> Path:
        return self.system_path if location is Location.SYSTEM else self.repo_path


def _expand(raw: str, base: Path) -> Path:
    path = Path(os.path.expandvars(raw)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


class MappingRegistry:
    """Holds the declared mappings in declaration order.

    Entries are raw ``name:system_path:repo_path:kind`` strings. Nothing is
    usable until :meth:`validate_all` has run without errors.
    """

    def __init__(self, entries: Sequence[str], repo_root: Optional[Path] = None,
                 home: Optional[Path] = None):
        self.entries = list(entries)
        self.repo_root = Path(repo_root) if repo_root else Path.cwd()
        self.home = Path(home) if home else Path.home()
        self._mappings: Dict[str, ConfigMapping] = {}
        self._validated = False

    @classmethod
    def from_config(cls, config) -> "MappingRegistry":
        """Build a registry from a :class:`SyncConfig`."""
        return cls(config.mappings, repo_root=config.repository_root)

    def validate_format(self, entry: str) -> ConfigMapping:
        """Parse one declaration, raising MappingFormatError if malformed."""
        fields = entry.split(':')
        if len(fields) != 4:
            raise MappingFormatError(
                entry, f"expected 4 fields name:system_path:repo_path:kind, got {len(fields)}"
            )

        name, system_raw, repo_raw, kind_raw = (field.strip() for field in fields)
        if not name:
            raise MappingFormatError(entry, "name is empty")
        if not _NAME_PATTERN.match(name):
            raise MappingFormatError(
                entry, f"name '{name}' may only contain letters, digits, '.', '-' and '_'"
            )
        if not system_raw:
            raise MappingFormatError(entry, "system path is empty")
        if not repo_raw:
            raise MappingFormatError(entry, "repo path is empty")

        kind = _KIND_ALIASES.get(kind_raw)
        if kind is None:
            raise MappingFormatError(entry, f"kind must be 'file' or 'dir', got '{kind_raw}'")

        return ConfigMapping(
            name=name,
            system_path=_expand(system_raw, self.home),
            repo_path=_expand(repo_raw, self.repo_root),
            kind=kind,
        )

    def validate_all(self) -> List[MappingFormatError]:
        """Validate every declaration.

        Returns the list of errors. The registry is populated only when the
        list is empty.
        """
        errors: List[MappingFormatError] = []
        parsed: Dict[str, ConfigMapping] = {}

        for entry in self.entries:
            try:
                mapping = self.validate_format(entry)
            except MappingFormatError as e:
                logger.error(str(e))
                errors.append(e)
                continue

            if mapping.name in parsed:
                error = MappingFormatError(entry, f"duplicate mapping name '{mapping.name}'")
                logger.error(str(error))
                errors.append(error)
                continue

            parsed[mapping.name] = mapping

        if errors:
            self._mappings = {}
            self._validated = False
        else:
            self._mappings = parsed
            self._validated = True
            logger.debug(f"Validated {len(parsed)} mapping(s)")

        return errors

    @property
    def is_valid(self) -> bool:
        return self._validated

    @property
    def mappings(self) -> List[ConfigMapping]:
        return list(self._mappings.values())

    def __iter__(self) -> Iterator[ConfigMapping]:
        return iter(self.mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    def get(self, name: str) -> ConfigMapping:
        """Get mapping by name."""
        mapping = self._mappings.get(name)
        if mapping is None:
            raise MappingNotFoundError(name)
        return mapping

    def resolve(self, name: str, location: Location) -> Path:
        """Return the system or repo path of the named mapping."""
        return self.get(name).path_for(Location(location))
