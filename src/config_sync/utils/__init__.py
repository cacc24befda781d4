"""Utility functions and helpers."""

from .logging import setup_logging
from .file_utils import FileHelper

__all__ = ["setup_logging", "FileHelper"]
