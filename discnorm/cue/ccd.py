"""CloneCD (.ccd) table-of-contents parser and CCD to CUE conversion."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from discnorm.errors import ParsingError

logger = logging.getLogger(__name__)

# Seconds removed from every track start to account for the lead-in pregap.
# PMin=0 with PSec 0 or 1 yields a negative seconds field; kept as-is.
PREGAP_SECONDS = 2

IMAGE_EXTENSIONS = ('.img', '.bin', '.iso')

DATA_TRACK_CONTROL = 0x04


class CcdParsingError(ParsingError):
    """CCD parsing errors."""
    pass


@dataclass
class CcdTocEntry:
    """One ``[Entry N]`` section of a CCD file."""
    point: int
    control: int
    session: int
    pmin: int
    psec: int
    pframe: int
    plba: int


def _parse_int(value: str) -> int:
    value = value.strip()
    if value.lower().startswith(('0x', '-0x')):
        return int(value, 16)
    return int(value, 10)


class CcdParser:
    """Line-based reader for CloneCD control files."""

    def __init__(self, ccd_path: Path):
        """Initialize parser with path to CCD file.

        Args:
            ccd_path: Path to .ccd file
        """
        self.ccd_path = ccd_path
        self.sections: Dict[str, Dict[str, str]] = {}

    def parse(self) -> List[CcdTocEntry]:
        """Parse the CCD file and return its TOC entries in file order.

        Returns:
            List of CcdTocEntry

        Raises:
            CcdParsingError: If the file is missing or holds bad numbers
        """
        if self.ccd_path.suffix.lower() != '.ccd':
            raise CcdParsingError(f"File must have .ccd extension: {self.ccd_path}")
        if not self.ccd_path.is_file():
            raise CcdParsingError(f"CCD file does not exist: {self.ccd_path}")

        current_section: Optional[Dict[str, str]] = None

        with open(self.ccd_path, 'r', encoding='utf-8', errors='ignore') as f:
            for line in f:
                line = line.strip()

                if not line or line.startswith(';'):
                    continue

                if line.startswith('[') and line.endswith(']'):
                    current_section = self.sections.setdefault(line[1:-1].strip(), {})
                    continue

                if current_section is not None and '=' in line:
                    key, value = line.split('=', 1)
                    current_section[key.strip().lower()] = value.strip()

        entries = []
        for name, values in self.sections.items():
            if not name.lower().startswith('entry'):
                continue
            try:
                entries.append(CcdTocEntry(
                    point=_parse_int(values.get('point', '0')),
                    control=_parse_int(values.get('control', '0x00')),
                    session=_parse_int(values.get('session', '1')),
                    pmin=_parse_int(values.get('pmin', '0')),
                    psec=_parse_int(values.get('psec', '0')),
                    pframe=_parse_int(values.get('pframe', '0')),
                    plba=_parse_int(values.get('plba', '0')),
                ))
            except ValueError as e:
                raise CcdParsingError(f"Invalid value in [{name}] of {self.ccd_path.name}: {e}")

        logger.debug(f"Parsed {len(entries)} TOC entries from {self.ccd_path.name}")
        return entries


def find_image_file(ccd_path: Path) -> Path:
    """
    Locate the image that belongs to a CCD file.

    Raises:
        CcdParsingError: If no .img, .bin or .iso sits next to the CCD
    """
    for extension in IMAGE_EXTENSIONS:
        candidate = ccd_path.with_suffix(extension)
        if candidate.is_file():
            return candidate
    raise CcdParsingError(f"No image file found for CCD: {ccd_path}")


def adjust_timestamp(pmin: int, psec: int, pframe: int) -> str:
    """Apply the pregap correction to an entry's start address."""
    if psec == 0:
        if pmin >= 1:
            pmin -= 1
            psec = 60
        else:
            pmin = 0
            psec = 0
    psec -= PREGAP_SECONDS
    return f"{pmin:02d}:{psec:02d}:{pframe:02d}"


def convert_ccd_to_cue(ccd_path: Path) -> str:
    """
    Convert a CCD file to CUE text referencing its image.

    Tracks start at the first entry with ``PLBA == 0``; every entry from
    there on becomes a track. Control 0x04 marks a data track.

    Args:
        ccd_path: Path to the .ccd file

    Returns:
        CUE sheet text (not written to disk)

    Raises:
        CcdParsingError: If the CCD is unreadable or has no image
    """
    entries = CcdParser(ccd_path).parse()
    image_file = find_image_file(ccd_path)

    lines = [f'FILE "{image_file.name}" BINARY']
    track_counter = 0
    begin = False

    for entry in entries:
        if entry.plba == 0:
            begin = True
        if not begin:
            continue

        track_counter += 1
        track_type = 'MODE1/2352' if entry.control == DATA_TRACK_CONTROL else 'AUDIO'
        timestamp = adjust_timestamp(entry.pmin, entry.psec, entry.pframe)

        lines.append(f'  TRACK {track_counter:02d} {track_type}')
        lines.append(f'    INDEX {entry.session:02d} {timestamp}')

    logger.info(f"Converted {ccd_path.name} to cue with {track_counter} track(s)")
    return '\n'.join(lines) + '\n'
