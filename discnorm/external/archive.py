"""
Archive handlers for 7z, rar, zip and ecm files.

Each handler extracts into a directory it is given, so ownership of the
output stays with the caller's scratch space.
"""

import asyncio
import logging
import time
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Type

from discnorm.errors import CommandTimeoutError, ExtractionError
from discnorm.external.command import DEFAULT_TIMEOUT_SECONDS, run_command
from discnorm.guard import guard_directory_exists, guard_file_exists
from discnorm.storage.local import LocalStorage

logger = logging.getLogger(__name__)


class Archive:
    """Base class for archive handlers."""

    extensions: tuple = ()

    def __init__(self, file_path: Path, binary: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.file_path = Path(file_path)
        self.binary = binary
        self.timeout = timeout
        self.storage = LocalStorage()

    async def extract(self, output_dir: Path) -> Path:
        """Extract into output_dir and return the directory holding the contents."""
        raise NotImplementedError

    async def verify(self) -> bool:
        raise NotImplementedError

    async def compress(self, contents_dir: Path) -> Path:
        """Pack contents_dir into self.file_path."""
        raise NotImplementedError

    def _flatten_single_directory(self, output_dir: Path) -> None:
        """Lift files out of subdirectories when the archive holds only folders."""
        entries = self.storage.list(output_dir, avoid_hidden_files=True, include_directories=True)
        files = [entry for entry in entries if entry.is_file()]
        directories = [entry for entry in entries if entry.is_dir()]

        if files or not directories:
            return

        for directory in directories:
            for item in self.storage.list(directory, include_directories=True):
                self.storage.move(item, output_dir / item.name)
            self.storage.remove(directory)

    def _check_extracted(self, output_dir: Path) -> Path:
        contents = self.storage.list(output_dir, recursive=True, avoid_hidden_files=True)
        if not contents:
            raise ExtractionError(f"Extraction of {self.file_path.name} produced no files")
        self._flatten_single_directory(output_dir)
        logger.info(
            f"Extracted {self.file_path.name}: "
            f"{', '.join(path.name for path in self.storage.list(output_dir, recursive=True, avoid_hidden_files=True))}"
        )
        return output_dir


class SevenZipArchive(Archive):
    """7-Zip archives via the 7z binary."""

    extensions = ('.7z',)

    async def extract(self, output_dir: Path) -> Path:
        guard_file_exists(self.file_path, error=ExtractionError)
        await run_command(
            [self.binary or '7z', 'x', str(self.file_path), f'-o{output_dir}', '-y'],
            timeout=self.timeout
        )
        return self._check_extracted(output_dir)

    async def verify(self) -> bool:
        guard_file_exists(self.file_path, error=ExtractionError)
        try:
            await run_command([self.binary or '7z', 't', str(self.file_path)], timeout=self.timeout)
        except ExtractionError as e:
            logger.warning(f"{self.file_path.name} failed verification: {e}")
            return False
        return True

    async def compress(self, contents_dir: Path) -> Path:
        guard_directory_exists(contents_dir, error=ExtractionError)
        items = [path.name for path in self.storage.list(contents_dir)]
        await run_command(
            [self.binary or '7z', 'a', str(self.file_path.resolve()), *items, '-y'],
            timeout=self.timeout,
            cwd=str(contents_dir)
        )
        return self.file_path


class RarArchive(Archive):
    """RAR archives via unrar (extract/verify) and rar (compress)."""

    extensions = ('.rar',)

    async def extract(self, output_dir: Path) -> Path:
        guard_file_exists(self.file_path, error=ExtractionError)
        await run_command(
            [self.binary or 'unrar', 'x', '-y', str(self.file_path), f'{output_dir}/'],
            timeout=self.timeout
        )
        return self._check_extracted(output_dir)

    async def verify(self) -> bool:
        guard_file_exists(self.file_path, error=ExtractionError)
        try:
            await run_command([self.binary or 'unrar', 't', str(self.file_path)], timeout=self.timeout)
        except ExtractionError as e:
            logger.warning(f"{self.file_path.name} failed verification: {e}")
            return False
        return True

    async def compress(self, contents_dir: Path) -> Path:
        guard_directory_exists(contents_dir, error=ExtractionError)
        items = [path.name for path in self.storage.list(contents_dir)]
        await run_command(
            ['rar', 'a', str(self.file_path.resolve()), *items],
            timeout=self.timeout,
            cwd=str(contents_dir)
        )
        return self.file_path


class ZipArchive(Archive):
    """Zip archives through the zipfile module."""

    extensions = ('.zip',)

    def _extract_all(self, output_dir: Path, deadline: float) -> None:
        """Extract member by member, stopping once the deadline has passed."""
        try:
            with zipfile.ZipFile(self.file_path) as archive:
                for member in archive.infolist():
                    if time.monotonic() > deadline:
                        raise CommandTimeoutError(
                            f"Extracting {self.file_path.name} timed out after {self.timeout} seconds",
                            returncode=-1
                        )
                    archive.extract(member, output_dir)
        except zipfile.BadZipFile as e:
            raise ExtractionError(f"Invalid zip file {self.file_path.name}: {e}")

    async def extract(self, output_dir: Path) -> Path:
        guard_file_exists(self.file_path, error=ExtractionError)
        # Awaited to completion so nothing writes to output_dir after a timeout
        await asyncio.to_thread(self._extract_all, output_dir, time.monotonic() + self.timeout)
        return self._check_extracted(output_dir)

    def _test(self) -> bool:
        try:
            with zipfile.ZipFile(self.file_path) as archive:
                return archive.testzip() is None
        except zipfile.BadZipFile:
            return False

    async def verify(self) -> bool:
        guard_file_exists(self.file_path, error=ExtractionError)
        return await asyncio.to_thread(self._test)

    def _write_all(self, contents_dir: Path) -> None:
        with zipfile.ZipFile(self.file_path, 'w', zipfile.ZIP_DEFLATED) as archive:
            for path in self.storage.list(contents_dir, recursive=True):
                archive.write(path, path.relative_to(contents_dir))

    async def compress(self, contents_dir: Path) -> Path:
        guard_directory_exists(contents_dir, error=ExtractionError)
        await asyncio.to_thread(self._write_all, contents_dir)
        return self.file_path


class EcmArchive(Archive):
    """ECM-encoded images via unecm; output drops the .ecm suffix."""

    extensions = ('.ecm',)

    def decoded_name(self) -> str:
        return self.file_path.stem

    async def extract(self, output_dir: Path) -> Path:
        guard_file_exists(self.file_path, error=ExtractionError)
        output_file = output_dir / self.decoded_name()
        await run_command(
            [self.binary or 'unecm', str(self.file_path), str(output_file)],
            timeout=self.timeout
        )
        guard_file_exists(output_file, f"unecm produced no output for {self.file_path.name}", ExtractionError)
        logger.info(f"Decoded {self.file_path.name} to {output_file.name}")
        return output_file

    async def verify(self) -> bool:
        guard_file_exists(self.file_path, error=ExtractionError)
        with open(self.file_path, 'rb') as f:
            return f.read(4) == b'ECM\x00'

    async def compress(self, contents_dir: Path) -> Path:
        guard_directory_exists(contents_dir, error=ExtractionError)
        sources = self.storage.list(contents_dir)
        if len(sources) != 1:
            raise ExtractionError(f"ECM encoding needs exactly one file, found {len(sources)}")
        await run_command(['ecm', str(sources[0]), str(self.file_path)], timeout=self.timeout)
        return self.file_path


ARCHIVE_TYPES: List[Type[Archive]] = [SevenZipArchive, RarArchive, ZipArchive, EcmArchive]

_BY_EXTENSION: Dict[str, Type[Archive]] = {
    extension: archive_type
    for archive_type in ARCHIVE_TYPES
    for extension in archive_type.extensions
}


def create_archive(file_path: Path, binary: Optional[str] = None,
                   timeout: float = DEFAULT_TIMEOUT_SECONDS) -> Archive:
    """
    Select the archive handler for a file by extension.

    Raises:
        ExtractionError: If no handler covers the extension
    """
    archive_type = _BY_EXTENSION.get(Path(file_path).suffix.lower())
    if archive_type is None:
        raise ExtractionError(f"No archive handler for {file_path}")
    return archive_type(file_path, binary=binary, timeout=timeout)
