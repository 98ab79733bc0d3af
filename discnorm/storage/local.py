"""Filesystem storage used by the pipeline and verification runners."""

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class PathProbe:
    """Existence and type of one path, gathered concurrently."""
    path: Path
    exists: bool
    is_file: bool
    is_directory: bool


class LocalStorage:
    """
    Narrow filesystem facade.

    Errors from the underlying calls are logged and re-raised unchanged.
    """

    def read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error(f"Storage error reading {path}: {e}")
            raise

    def write(self, path: Path, contents: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(contents)
        except OSError as e:
            logger.error(f"Storage error writing {path}: {e}")
            raise

    def list(
        self,
        directory: Path,
        recursive: bool = False,
        avoid_hidden_files: bool = False,
        include_directories: bool = False
    ) -> List[Path]:
        """
        List directory entries in sorted order.

        Args:
            directory: Directory to list
            recursive: Descend into subdirectories
            avoid_hidden_files: Skip entries whose name starts with '.'
            include_directories: Include directory entries themselves

        Returns:
            Paths of the listed entries
        """
        if not directory.is_dir():
            return []

        items: List[Path] = []
        for entry in sorted(directory.iterdir()):
            if avoid_hidden_files and entry.name.startswith('.'):
                continue
            if entry.is_dir():
                if include_directories:
                    items.append(entry)
                if recursive:
                    items.extend(self.list(
                        entry,
                        recursive=True,
                        avoid_hidden_files=avoid_hidden_files,
                        include_directories=include_directories
                    ))
            else:
                items.append(entry)
        return items

    def copy(self, source: Path, destination: Path) -> Path:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as e:
            logger.error(f"Storage error copying {source} to {destination}: {e}")
            raise
        return destination

    def move(self, source: Path, destination: Path) -> Path:
        if source == destination:
            return destination
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(destination))
        except OSError as e:
            logger.error(f"Storage error moving {source} to {destination}: {e}")
            raise
        return destination

    def remove(self, path: Path) -> None:
        """Remove a file or a directory tree; missing paths are ignored."""
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
        except OSError as e:
            logger.error(f"Storage error removing {path}: {e}")
            raise

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def is_directory(self, path: Path) -> bool:
        return path.is_dir()

    def size(self, path: Path) -> int:
        return path.stat().st_size

    def create_directory(self, path: Path) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        return path

    def create_temporary_directory(self, root: Optional[Path] = None) -> Path:
        """Create a fresh uniquely named directory under root (or the system temp dir)."""
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix='discnorm-', dir=str(root) if root else None))

    def _probe_one(self, path: Path) -> PathProbe:
        return PathProbe(
            path=path,
            exists=path.exists(),
            is_file=path.is_file(),
            is_directory=path.is_dir()
        )

    async def probe(self, paths: Iterable[Path]) -> List[PathProbe]:
        """Probe several paths concurrently; results keep input order."""
        return list(await asyncio.gather(
            *(asyncio.to_thread(self._probe_one, path) for path in paths)
        ))
