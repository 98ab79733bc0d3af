"""Merged/split cue sheet generation and the single-bin cue template."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from discnorm.cue.sheet import CueFile, CueIndex, CueSheet, CueTrack, write_cue_sheet
from discnorm.cue.timecode import sectors_to_timestamp
from discnorm.guard import guard, guard_file_exists

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 2352


@dataclass
class BinFile:
    """A bin file on disk together with the tracks it holds."""
    filename: str
    size: int
    tracks: List[CueTrack] = field(default_factory=list)


def track_filename(prefix: str, track_number: int, track_count: int) -> str:
    """
    Redump-style filename for one track of a split disc.

    One track gets no suffix, up to nine tracks use ``Track N``, and ten or
    more zero-pad the number to two digits.

    Example:
        >>> track_filename("Game", 3, 12)
        'Game (Track 03).bin'
    """
    if track_count == 1:
        return f"{prefix}.bin"
    if track_count > 9:
        return f"{prefix} (Track {track_number:02d}).bin"
    return f"{prefix} (Track {track_number}).bin"


def generate_merged_cue_sheet(
    basename: str,
    files: List[BinFile],
    block_size: int = DEFAULT_BLOCK_SIZE
) -> CueSheet:
    """
    Build a cue sheet describing all tracks inside one ``<basename>.bin``.

    Each index is shifted by the cumulative sector count of every preceding
    file (``size // block_size``).

    Args:
        basename: Output name without extension
        files: Per-track bin files in disc order
        block_size: Bytes per sector

    Returns:
        CueSheet with a single FILE entry
    """
    merged = CueFile(filename=f"{basename}.bin", type="BINARY")
    sector_position = 0

    for bin_file in files:
        for track in bin_file.tracks:
            merged.tracks.append(CueTrack(
                number=track.number,
                type=track.type,
                indexes=[
                    CueIndex(
                        id=index.id,
                        timestamp=sectors_to_timestamp(sector_position + index.sectors),
                        file_offset=sector_position + index.sectors
                    )
                    for index in track.indexes
                ]
            ))
        sector_position += bin_file.size // block_size

    return CueSheet(files=[merged])


def generate_split_cue_sheet(basename: str, merged: BinFile) -> CueSheet:
    """
    Build a cue sheet with one FILE per track of a merged bin.

    Index offsets are made relative to the track's lowest index so each split
    file starts at sector zero.
    """
    sheet = CueSheet()
    track_count = len(merged.tracks)

    for track in merged.tracks:
        base_offset = min((index.sectors for index in track.indexes), default=0)
        sheet.files.append(CueFile(
            filename=track_filename(basename, track.number, track_count),
            type="BINARY",
            tracks=[CueTrack(
                number=track.number,
                type=track.type,
                indexes=[
                    CueIndex(
                        id=index.id,
                        timestamp=sectors_to_timestamp(index.sectors - base_offset),
                        file_offset=index.sectors - base_offset
                    )
                    for index in track.indexes
                ]
            )]
        ))

    return sheet


def single_bin_cue_sheet(bin_filename: str) -> CueSheet:
    """Single-track MODE2/2352 sheet referencing one bin."""
    return CueSheet(files=[CueFile(
        filename=bin_filename,
        type="BINARY",
        tracks=[CueTrack(
            number=1,
            type="MODE2/2352",
            indexes=[CueIndex(id=1, timestamp="00:00:00")]
        )]
    )])


def create_cue_file(bin_path: Path, cue_path: Optional[Path] = None) -> Path:
    """
    Write a single-track cue next to a lone bin file.

    Args:
        bin_path: Existing .bin file
        cue_path: Destination (default: ``<bin stem>.cue`` beside the bin)

    Returns:
        Path to the written cue

    Raises:
        GuardError: If the bin is missing or not a .bin
    """
    bin_path = guard_file_exists(bin_path, f"Bin file does not exist: {bin_path}")
    guard(bin_path.suffix.lower() == '.bin', f"Bin file must end with .bin: {bin_path}")

    if cue_path is None:
        cue_path = bin_path.with_suffix('.cue')

    write_cue_sheet(single_bin_cue_sheet(bin_path.name), cue_path)
    logger.debug(f"Created cue sheet {cue_path.name} for {bin_path.name}")
    return cue_path
