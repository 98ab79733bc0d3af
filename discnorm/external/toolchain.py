"""
Toolchain facade over the external tools.

The pipeline and the verification runner only talk to this class, so tests
can swap in a fake with the same async methods.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from discnorm.config.loader import get_config_value
from discnorm.external import image
from discnorm.external.archive import create_archive
from discnorm.external.chd import ChdManager
from discnorm.external.command import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class Toolchain:
    """Binary names and the per-command time budget."""
    chdman: str = 'chdman'
    seven_zip: str = '7z'
    unrar: str = 'unrar'
    unecm: str = 'unecm'
    mdf2iso: str = 'mdf2iso'
    poweriso: str = 'poweriso'
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'Toolchain':
        return cls(
            chdman=get_config_value(config, 'tools.chdman', 'chdman'),
            seven_zip=get_config_value(config, 'tools.seven_zip', '7z'),
            unrar=get_config_value(config, 'tools.unrar', 'unrar'),
            unecm=get_config_value(config, 'tools.unecm', 'unecm'),
            mdf2iso=get_config_value(config, 'tools.mdf2iso', 'mdf2iso'),
            poweriso=get_config_value(config, 'tools.poweriso', 'poweriso'),
            timeout=get_config_value(config, 'tools.timeout_seconds', DEFAULT_TIMEOUT_SECONDS),
        )

    def _chd(self) -> ChdManager:
        return ChdManager(self.chdman, self.timeout)

    def _archive_binary(self, path: Path) -> Optional[str]:
        return {'.7z': self.seven_zip, '.rar': self.unrar, '.ecm': self.unecm}.get(path.suffix.lower())

    async def extract_archive(self, path: Path, dest: Path) -> Path:
        """Extract a 7z/rar/zip archive into dest; returns dest."""
        archive = create_archive(path, binary=self._archive_binary(path), timeout=self.timeout)
        return await archive.extract(dest)

    async def decode_ecm(self, path: Path, dest: Path) -> Path:
        """Decode an .ecm file into dest; returns the decoded file."""
        archive = create_archive(path, binary=self.unecm, timeout=self.timeout)
        return await archive.extract(dest)

    async def extract_chd(self, path: Path, dest: Path) -> Path:
        return await self._chd().extract(path, dest)

    async def create_chd(self, path: Path, dest: Path) -> Path:
        """Compress a cue/gdi into ``dest/<stem>.chd``."""
        return await self._chd().create(path, dest / f"{path.stem}.chd")

    async def verify_chd(self, path: Path) -> bool:
        return await self._chd().verify(path)

    async def convert_mdf_to_iso(self, path: Path, dest: Path) -> Path:
        return await image.convert_mdf_to_iso(path, dest, self.mdf2iso, self.timeout)

    async def convert_image_to_bin(self, path: Path, dest: Path) -> Path:
        return await image.convert_image_to_bin(path, dest, self.poweriso, self.timeout)
