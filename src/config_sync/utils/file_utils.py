"""File utility functions."""

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict


class FileHelper:
    """Helper class for read-only file inspection."""

    @staticmethod
    def get_file_info(file_path: Path) -> Dict[str, Any]:
        """Get file or directory information.

        Args:
            file_path: Path to inspect

        Returns:
            Dictionary with name, size, modification time and entry kind
        """
        if not os.path.lexists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        stat = file_path.lstat()

        return {
            'name': file_path.name,
            'path': str(file_path),
            'size': FileHelper.get_path_size(file_path),
            'modified_time': datetime.fromtimestamp(stat.st_mtime),
            'is_file': file_path.is_file(),
            'is_dir': file_path.is_dir(),
            'kind': FileHelper.entry_kind(file_path),
        }

    @staticmethod
    def entry_kind(path: Path) -> str:
        """Return 'directory', 'file' or 'missing'.

        Symlinks are classified by what they point to.
        """
        if path.is_dir():
            return 'directory'
        if path.exists() or path.is_symlink():
            return 'file'
        return 'missing'

    @staticmethod
    def get_path_size(path: Path) -> int:
        """Size in bytes of a file, or the sum of all files below a directory."""
        if path.is_symlink() or not path.is_dir():
            try:
                return path.lstat().st_size
            except OSError:
                return 0

        total = 0
        for root, _dirs, files in os.walk(path):
            for name in files:
                try:
                    total += os.lstat(os.path.join(root, name)).st_size
                except OSError:
                    continue
        return total

    @staticmethod
    def count_files(path: Path) -> int:
        """Number of files below a directory (1 for a plain file)."""
        if not path.is_dir():
            return 1 if os.path.lexists(path) else 0
        return sum(len(files) for _root, _dirs, files in os.walk(path))

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"

    @staticmethod
    def nearest_existing_ancestor(path: Path) -> Path:
        """Walk up from ``path`` to the first directory entry that exists."""
        current = path
        while not os.path.lexists(current) and current != current.parent:
            current = current.parent
        return current
