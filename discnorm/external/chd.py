"""chdman wrapper: create, extract and verify CD CHD images."""

import logging
from pathlib import Path

from discnorm.errors import CommandError, ExtractionError
from discnorm.external.command import DEFAULT_TIMEOUT_SECONDS, run_command
from discnorm.guard import guard_file_exists

logger = logging.getLogger(__name__)


class ChdManager:
    """Drives the chdman binary."""

    def __init__(self, binary: str = 'chdman', timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.binary = binary
        self.timeout = timeout

    async def create(self, input_path: Path, output_path: Path) -> Path:
        """
        Compress a .cue/.gdi/.iso into a CHD.

        Returns:
            Path to the created CHD
        """
        guard_file_exists(input_path, error=ExtractionError)
        logger.info(f"Compressing {input_path.name} -> {output_path.name}")
        await run_command(
            [self.binary, 'createcd', '--force', '--input', str(input_path), '--output', str(output_path)],
            timeout=self.timeout
        )
        guard_file_exists(output_path, f"chdman did not create {output_path}", ExtractionError)
        return output_path

    async def extract(self, chd_path: Path, output_dir: Path) -> Path:
        """
        Extract a CD CHD to ``<stem>.cue`` + ``<stem>.bin`` in output_dir.

        Returns:
            Path to the extracted cue
        """
        guard_file_exists(chd_path, error=ExtractionError)
        cue_path = output_dir / f"{chd_path.stem}.cue"
        bin_path = output_dir / f"{chd_path.stem}.bin"
        logger.info(f"Extracting {chd_path.name} to {cue_path.name}")
        await run_command(
            [self.binary, 'extractcd', '--force', '--input', str(chd_path),
             '--output', str(cue_path), '--outputbin', str(bin_path)],
            timeout=self.timeout
        )
        guard_file_exists(cue_path, f"chdman did not create {cue_path}", ExtractionError)
        return cue_path

    async def verify(self, chd_path: Path) -> bool:
        """Run ``chdman verify``; False on a failed check."""
        guard_file_exists(chd_path, error=ExtractionError)
        try:
            await run_command([self.binary, 'verify', '--input', str(chd_path)], timeout=self.timeout)
        except CommandError as e:
            logger.warning(f"chdman verify failed for {chd_path.name}: {e}")
            return False
        return True
