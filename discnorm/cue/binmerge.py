"""
Bin/track model read from a cue sheet plus the files on disk.

Merging concatenates per-track bins into one image; splitting cuts a single
image back into redump-named per-track bins.
"""

import logging
from pathlib import Path
from typing import List, Tuple

from discnorm.cue.generator import (
    DEFAULT_BLOCK_SIZE,
    BinFile,
    generate_split_cue_sheet,
    track_filename,
)
from discnorm.cue.sheet import CueParsingError, CueSheet, load_cue_sheet

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

_BLOCK_SIZES = {
    'AUDIO': 2352,
    'MODE1/2352': 2352,
    'MODE2/2352': 2352,
    'CDI/2352': 2352,
    'CDG': 2448,
    'MODE1/2048': 2048,
    'MODE2/2336': 2336,
    'CDI/2336': 2336,
}


def determine_block_size(track_type: str) -> int:
    """Bytes per sector for a TRACK type (2352 when unknown)."""
    return _BLOCK_SIZES.get(track_type.upper(), DEFAULT_BLOCK_SIZE)


def _first_offset(track) -> int:
    return min(index.sectors for index in track.indexes) if track.indexes else 0


def read_bin_files(cue_path: Path) -> Tuple[List[BinFile], int]:
    """
    Load a cue and attach on-disk sizes to each referenced bin.

    The block size is locked to the first track type that is not 2352 bytes
    per sector. For single-file sheets the sector length of every track is
    filled in so the image can be split.

    Args:
        cue_path: Path to the .cue file

    Returns:
        Tuple of (bin files with absolute filenames, block size)

    Raises:
        CueParsingError: If the cue is malformed or a bin is missing
    """
    sheet = load_cue_sheet(cue_path)
    block_size = DEFAULT_BLOCK_SIZE
    files: List[BinFile] = []
    missing: List[str] = []

    for cue_file in sheet.files:
        bin_path = cue_path.parent / cue_file.filename
        if not bin_path.is_file():
            missing.append(cue_file.filename)
            continue
        files.append(BinFile(
            filename=str(bin_path),
            size=bin_path.stat().st_size,
            tracks=cue_file.tracks
        ))

        for track in cue_file.tracks:
            if block_size == DEFAULT_BLOCK_SIZE:
                candidate = determine_block_size(track.type)
                if candidate != DEFAULT_BLOCK_SIZE:
                    block_size = candidate
                    logger.debug(f"Locked block size to {block_size}")

    if missing:
        raise CueParsingError(f"Bin files referenced by {cue_path.name} are missing: {', '.join(missing)}")

    if len(files) == 1:
        tracks = files[0].tracks
        next_offset = files[0].size // block_size
        for track in reversed(tracks):
            start = _first_offset(track)
            track.sectors = next_offset - start
            next_offset = start

    return files, block_size


def merge_bin_files(files: List[BinFile], destination: Path) -> Path:
    """Concatenate bins in order into destination."""
    with open(destination, 'wb') as out:
        for bin_file in files:
            with open(bin_file.filename, 'rb') as src:
                for chunk in iter(lambda: src.read(CHUNK_SIZE), b''):
                    out.write(chunk)

    logger.info(f"Merged {len(files)} bin files into {destination.name}")
    return destination


def split_bin_file(
    bin_file: BinFile,
    destination_dir: Path,
    basename: str,
    block_size: int = DEFAULT_BLOCK_SIZE
) -> CueSheet:
    """
    Write one bin per track of a merged image.

    Args:
        bin_file: Merged image with track sector lengths filled in
        destination_dir: Directory for the split bins
        basename: Name prefix for the per-track files
        block_size: Bytes per sector

    Returns:
        Cue sheet describing the split files

    Raises:
        CueParsingError: If a track has no known length
    """
    track_count = len(bin_file.tracks)

    with open(bin_file.filename, 'rb') as src:
        for track in bin_file.tracks:
            if track.sectors is None:
                raise CueParsingError(f"Track {track.number} has no known length")

            src.seek(_first_offset(track) * block_size)
            remaining = track.sectors * block_size
            target = destination_dir / track_filename(basename, track.number, track_count)

            with open(target, 'wb') as out:
                while remaining > 0:
                    chunk = src.read(min(CHUNK_SIZE, remaining))
                    if not chunk:
                        break
                    out.write(chunk)
                    remaining -= len(chunk)

            logger.debug(f"Wrote track {track.number} to {target.name}")

    return generate_split_cue_sheet(basename, bin_file)
