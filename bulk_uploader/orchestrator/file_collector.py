"""File collection utilities for bulk uploads."""
from pathlib import Path
from typing import Iterable, List, Optional

from ..services.validation import get_file_extension


class FileCollector:
    """Collects candidate files from a directory."""

    @staticmethod
    def collect_files(folder: Path, allowed_types: Optional[Iterable[str]] = None) -> List[str]:
        """
        List regular files directly inside a folder.

        Args:
            folder: Directory to scan (not recursive)
            allowed_types: Extensions to keep; empty or None keeps everything

        Returns:
            Sorted filenames, relative to ``folder``
        """
        allowed = {t.lower().lstrip(".") for t in (allowed_types or [])}
        files = []
        for item in Path(folder).iterdir():
            if not item.is_file():
                continue
            if allowed and get_file_extension(item.name) not in allowed:
                continue
            files.append(item.name)
        return sorted(files)
