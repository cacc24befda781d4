"""Configuration management for config-sync."""

from .registry import ConfigMapping, MappingRegistry
from .settings import Direction, Location, MappingKind, RetentionPolicy, RunOptions, SyncConfig

__all__ = [
    "ConfigMapping", "MappingRegistry", "Direction", "Location", "MappingKind",
    "RetentionPolicy", "RunOptions", "SyncConfig",
]
