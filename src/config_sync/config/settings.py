"""Configuration settings and models for config-sync."""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator


DEFAULT_CONFIG_FILENAME = "config-sync.yaml"
DEFAULT_BACKUP_DIR = "~/.config-backups"

# The managed set shipped with the original dotfiles repository
DEFAULT_MAPPINGS = [
    "claude-md:~/.claude/claude.md:claude/claude.md:file",
    "claude-agents:~/.claude/agents:claude/agents:dir",
    "claude-commands:~/.claude/commands:claude/commands:dir",
    "tmux:~/.tmux.conf:tmux.conf:file",
    "ghostty:~/Library/Application Support/com.mitchellh.ghostty/config:ghostty-config:file",
]


class MappingKind(str, Enum):
    """Type of artifact a mapping manages."""
    FILE = "file"
    DIRECTORY = "dir"


class Location(str, Enum):
    """Side of a mapping."""
    SYSTEM = "system"
    REPO = "repo"


class Direction(str, Enum):
    """Transfer direction."""
    PULL = "pull"  # system -> repo
    PUSH = "push"  # repo -> system

    @property
    def source(self) -> Location:
        return Location.SYSTEM if self is Direction.PULL else Location.REPO

    @property
    def destination(self) -> Location:
        return Location.REPO if self is Direction.PULL else Location.SYSTEM


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation flags handed to every engine object."""
    dry_run: bool = False
    verbose: bool = False
    quiet: bool = False
    show_timestamps: bool = True

    def __post_init__(self):
        if self.verbose and self.quiet:
            raise ValueError("verbose and quiet are mutually exclusive")

    @property
    def log_level(self) -> str:
        if self.verbose:
            return "DEBUG"
        if self.quiet:
            return "WARNING"
        return "INFO"


class RetentionPolicy(BaseModel):
    """Backup retention limits."""
    max_age_days: int = 30
    max_count: int = 10

    @field_validator('max_age_days', 'max_count')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError('retention limits must be at least 1')
        return v


class SyncConfig(BaseModel):
    """Main configuration class."""
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    repo_root: Path = Path(".")
    log_file: Optional[Path] = None
    retention: RetentionPolicy = Field(default_factory=RetentionPolicy)
    mappings: List[str] = Field(default_factory=lambda: list(DEFAULT_MAPPINGS))

    @field_validator('mappings', mode='before')
    @classmethod
    def validate_mappings(cls, v):
        # Grammar errors are reported by MappingRegistry, not here
        if v is None:
            return []
        return [str(entry) for entry in v]

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "SyncConfig":
        """Load configuration from YAML file.

        A relative ``repo_root`` is taken relative to the file's directory.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        config = cls(**config_data)
        if not config.repo_root.expanduser().is_absolute():
            config.repo_root = config_path.parent.resolve() / config.repo_root
        return config

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode='json', exclude_none=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)

    @property
    def backup_root(self) -> Path:
        """Backup directory with ``~`` and environment variables expanded."""
        return Path(os.path.expandvars(str(self.backup_dir))).expanduser()

    @property
    def repository_root(self) -> Path:
        return Path(os.path.expandvars(str(self.repo_root))).expanduser().resolve()
