"""
CUE sheet data model, parser and serializer.

The grammar is line oriented and case-insensitive. Recognized lines either
update a metadata field or append a FILE/TRACK/INDEX entry; anything else is
ignored so that sheets carrying newer commands still load.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

from discnorm.cue.timecode import timestamp_to_sectors
from discnorm.errors import ParsingError

logger = logging.getLogger(__name__)


class CueParsingError(ParsingError):
    """CUE sheet parsing errors."""
    pass


@dataclass
class CueIndex:
    """INDEX entry within a track."""
    id: int
    timestamp: str                      # MM:SS:FF, not HH:MM:SS
    file_offset: Optional[int] = None   # Sector offset within the FILE, if known

    @property
    def sectors(self) -> int:
        """Sector offset of this index within its file."""
        if self.file_offset is not None:
            return self.file_offset
        return timestamp_to_sectors(self.timestamp)


@dataclass
class CueTrack:
    """TRACK entry (AUDIO, MODE1/2352, MODE2/2352, ...)."""
    number: int
    type: str
    indexes: List[CueIndex] = field(default_factory=list)
    sectors: Optional[int] = field(default=None, compare=False)


@dataclass
class CueFile:
    """FILE entry; insertion order is physical order on disc."""
    filename: str
    type: str = "BINARY"
    tracks: List[CueTrack] = field(default_factory=list)


@dataclass
class CueMetadata:
    """Disc-level pass-through metadata."""
    title: Optional[str] = None
    performer: Optional[str] = None
    songwriter: Optional[str] = None
    catalog: Optional[str] = None
    isrc: Optional[str] = None
    comment: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass
class CueSheet:
    """Parsed CUE sheet."""
    files: List[CueFile] = field(default_factory=list)
    metadata: CueMetadata = field(default_factory=CueMetadata)

    @property
    def tracks(self) -> List[CueTrack]:
        """All tracks across all files, in disc order."""
        return [track for cue_file in self.files for track in cue_file.tracks]

    def filenames(self) -> List[str]:
        return [cue_file.filename for cue_file in self.files]


_FILE_RE = re.compile(r'^FILE\s+(?:"([^"]+)"|(\S+))\s+(\w+)$', re.IGNORECASE)
_TRACK_RE = re.compile(r'^TRACK\s+(\d+)\s+(\w+(?:/\d+)?)$', re.IGNORECASE)
_INDEX_RE = re.compile(r'^INDEX\s+(\d+)\s+(\d{1,3}:\d{2}:\d{2})$', re.IGNORECASE)

# Metadata commands: (pattern, CueMetadata attribute)
_METADATA_PATTERNS = [
    (re.compile(r'^TITLE\s+"([^"]*)"$', re.IGNORECASE), 'title'),
    (re.compile(r'^PERFORMER\s+"([^"]*)"$', re.IGNORECASE), 'performer'),
    (re.compile(r'^SONGWRITER\s+"([^"]*)"$', re.IGNORECASE), 'songwriter'),
    (re.compile(r'^CATALOG\s+(\w+)$', re.IGNORECASE), 'catalog'),
    (re.compile(r'^ISRC\s+(\w+)$', re.IGNORECASE), 'isrc'),
    (re.compile(r'^REM\s+COMMENT\s+"([^"]*)"$', re.IGNORECASE), 'comment'),
]


def deserialize(content: str) -> CueSheet:
    """
    Parse CUE text into a CueSheet.

    Args:
        content: CUE file contents (LF or CRLF line endings)

    Returns:
        Parsed CueSheet

    Raises:
        CueParsingError: If TRACK/INDEX appear outside their parent entry,
            or if the sheet has no FILE entry or a FILE without tracks
    """
    sheet = CueSheet()
    current_file: Optional[CueFile] = None
    current_track: Optional[CueTrack] = None

    for line_num, raw_line in enumerate(content.splitlines(), 1):
        line = raw_line.strip()
        if not line:
            continue

        file_match = _FILE_RE.match(line)
        if file_match:
            filename = file_match.group(1) or file_match.group(2)
            current_file = CueFile(filename=filename, type=file_match.group(3).upper())
            sheet.files.append(current_file)
            current_track = None
            continue

        track_match = _TRACK_RE.match(line)
        if track_match:
            if current_file is None:
                raise CueParsingError(f"TRACK without a preceding FILE on line {line_num}")
            current_track = CueTrack(
                number=int(track_match.group(1)),
                type=track_match.group(2).upper()
            )
            current_file.tracks.append(current_track)
            continue

        index_match = _INDEX_RE.match(line)
        if index_match:
            if current_track is None:
                raise CueParsingError(f"INDEX without a preceding TRACK on line {line_num}")
            current_track.indexes.append(CueIndex(
                id=int(index_match.group(1)),
                timestamp=index_match.group(2)
            ))
            continue

        for pattern, attribute in _METADATA_PATTERNS:
            metadata_match = pattern.match(line)
            if metadata_match:
                setattr(sheet.metadata, attribute, metadata_match.group(1))
                break

    if not sheet.files:
        raise CueParsingError("Unable to parse any FILE entries from the cue sheet. Is it empty?")

    for cue_file in sheet.files:
        if not cue_file.tracks:
            raise CueParsingError(f"FILE entry has no tracks: {cue_file.filename}")

    return sheet


def serialize(sheet: CueSheet) -> str:
    """
    Serialize a CueSheet to CUE text (LF line endings).

    Metadata comes first followed by a blank line, then FILE blocks with
    TRACK indented two spaces and INDEX four.
    """
    lines: List[str] = []
    metadata = sheet.metadata

    if metadata.title is not None:
        lines.append(f'TITLE "{metadata.title}"')
    if metadata.performer is not None:
        lines.append(f'PERFORMER "{metadata.performer}"')
    if metadata.songwriter is not None:
        lines.append(f'SONGWRITER "{metadata.songwriter}"')
    if metadata.catalog is not None:
        lines.append(f'CATALOG {metadata.catalog}')
    if metadata.isrc is not None:
        lines.append(f'ISRC {metadata.isrc}')
    if metadata.comment is not None:
        lines.append(f'REM COMMENT "{metadata.comment}"')
    if lines:
        lines.append('')

    for cue_file in sheet.files:
        lines.append(f'FILE "{cue_file.filename}" {cue_file.type}')
        for track in cue_file.tracks:
            lines.append(f'  TRACK {track.number:02d} {track.type}')
            for index in track.indexes:
                lines.append(f'    INDEX {index.id:02d} {index.timestamp}')

    return '\n'.join(lines) + '\n'


def load_cue_sheet(cue_path: Path) -> CueSheet:
    """
    Read and parse a .cue file.

    Raises:
        CueParsingError: If the file is missing, not a .cue, or malformed
    """
    if cue_path.suffix.lower() != '.cue':
        raise CueParsingError(f"File must have .cue extension: {cue_path}")
    if not cue_path.is_file():
        raise CueParsingError(f"CUE file does not exist: {cue_path}")

    try:
        content = cue_path.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        raise CueParsingError(f"Failed to read CUE file {cue_path}: {e}")

    logger.debug(f"Loaded cue sheet: {cue_path.name}")
    return deserialize(content)


def write_cue_sheet(sheet: CueSheet, cue_path: Path) -> Path:
    """Serialize a CueSheet to disk and return the written path."""
    cue_path.write_text(serialize(sheet), encoding='utf-8', newline='\n')
    return cue_path
