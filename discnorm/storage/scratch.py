"""Scoped ownership of temporary working directories."""

import logging
from pathlib import Path
from typing import List, Optional

from discnorm.storage.local import LocalStorage

logger = logging.getLogger(__name__)


class ScratchSpace:
    """
    Owns every temporary directory it creates and removes them on exit.

    Used as a context manager so removal happens on success, on exceptions,
    and on KeyboardInterrupt/SystemExit alike.

    Example:
        with ScratchSpace(settings.temp_dir) as scratch:
            work_dir = scratch.create_temporary_directory()
    """

    def __init__(self, root: Optional[Path] = None, storage: Optional[LocalStorage] = None):
        self.root = root
        self.storage = storage or LocalStorage()
        self.directories: List[Path] = []

    def create_temporary_directory(self) -> Path:
        directory = self.storage.create_temporary_directory(self.root)
        self.directories.append(directory)
        logger.debug(f"Created scratch directory: {directory}")
        return directory

    def cleanup(self) -> None:
        while self.directories:
            directory = self.directories.pop()
            try:
                self.storage.remove(directory)
            except OSError as e:
                logger.warning(f"Failed to remove scratch directory {directory}: {e}")

    def __enter__(self) -> 'ScratchSpace':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
