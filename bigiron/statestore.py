"""Directory-backed state storage shared by the image and instance stores."""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from bigiron.exceptions import StorageError
from bigiron.utils import ensure_directory


class DirectoryStore:
    """An existing directory on disk, created on first use."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        if not self.path.is_dir():
            try:
                ensure_directory(self.path)
            except OSError as exc:
                raise StorageError(f"Cannot create store directory {self.path}: {exc}") from exc

    def list_files(self) -> List[str]:
        """Names of the immediate entries, sorted."""
        try:
            return sorted(entry.name for entry in self.path.iterdir())
        except OSError as exc:
            raise StorageError(f"Cannot list {self.path}: {exc}") from exc

    def join(self, name: str) -> Path:
        return self.path / name
