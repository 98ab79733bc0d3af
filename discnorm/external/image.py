"""Disc image format converters (mdf2iso, poweriso)."""

import logging
from pathlib import Path

from discnorm.errors import ExtractionError
from discnorm.external.command import DEFAULT_TIMEOUT_SECONDS, run_command
from discnorm.guard import guard_file_exists

logger = logging.getLogger(__name__)


async def convert_mdf_to_iso(
    mdf_path: Path,
    output_dir: Path,
    binary: str = 'mdf2iso',
    timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> Path:
    """Convert an Alcohol 120% .mdf image to ``<stem>.iso`` in output_dir."""
    guard_file_exists(mdf_path, error=ExtractionError)
    iso_path = output_dir / f"{mdf_path.stem}.iso"
    logger.info(f"Converting {mdf_path.name} to ISO")
    await run_command([binary, str(mdf_path), str(iso_path)], timeout=timeout)
    guard_file_exists(iso_path, f"{binary} did not create {iso_path}", ExtractionError)
    return iso_path


async def convert_image_to_bin(
    image_path: Path,
    output_dir: Path,
    binary: str = 'poweriso',
    timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> Path:
    """Convert an .iso/.nrg image to ``<stem>.bin`` in output_dir with PowerISO."""
    guard_file_exists(image_path, error=ExtractionError)
    bin_path = output_dir / f"{image_path.stem}.bin"
    logger.info(f"Converting {image_path.name} to BIN")
    await run_command([binary, 'convert', str(image_path), '-o', str(bin_path)], timeout=timeout)
    guard_file_exists(bin_path, f"{binary} did not create {bin_path}", ExtractionError)
    return bin_path
