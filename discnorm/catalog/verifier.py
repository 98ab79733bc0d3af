"""
Verification of bin/cue dumps against a DAT catalog.

Exact verification requires every bin to match a catalog rom by SHA1, name
and size, all within one game. The combined-size lookup is a heuristic for
dumps that fail exact verification; its CLOSEST results are unconfirmed.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from discnorm.catalog.dat import Dat, Game, Rom
from discnorm.errors import CueMismatchError, VerificationError
from discnorm.scanner.hash_calculator import calculate_hash

logger = logging.getLogger(__name__)


class CueVerificationResult(Enum):
    """Outcome of comparing a dump's cue against the catalog."""
    NO_CUE_NEEDED = 'no_cue_needed'
    VERIFIED_EXACTLY = 'verified_exactly'
    MISMATCH = 'mismatch'


class MatchStatus(Enum):
    """Whether a size lookup hit exactly or only came closest."""
    MATCH = 'match'
    CLOSEST = 'closest'


@dataclass
class VerificationResult:
    """Game a dump verified against, with the matched roms."""
    game: Game
    cue_result: CueVerificationResult
    roms: List[Rom] = field(default_factory=list)


@dataclass
class GameMatch:
    """Result of a combined-size lookup."""
    game: Game
    status: MatchStatus
    difference: int = 0


def _list_files(directory: Path, extension: str) -> List[Path]:
    return sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() == extension
    )


def verify_bin_cue_against_dat(
    directory: Path,
    dat: Dat,
    allow_cue_mismatches: bool = True
) -> VerificationResult:
    """
    Verify the .bin files (and optional .cue) in a directory against a DAT.

    Args:
        directory: Directory holding one dump's bin/cue files
        dat: Loaded catalog
        allow_cue_mismatches: Downgrade a cue hash mismatch to a warning

    Returns:
        VerificationResult naming the matched game

    Raises:
        VerificationError: If a bin has no rom with equal hash, name and
            size, if bins span several games, or on a cue mismatch in
            strict mode
    """
    bin_files = _list_files(directory, '.bin')
    cue_files = _list_files(directory, '.cue')

    if not bin_files:
        raise VerificationError(f"No .bin files found in {directory}")

    verified_roms: List[Rom] = []
    for bin_file in bin_files:
        file_size = bin_file.stat().st_size
        file_sha1 = calculate_hash(bin_file, 'sha1')

        matching_rom = next(
            (
                rom for rom in dat.find_roms_by_sha1(file_sha1)
                if rom.name == bin_file.name and rom.size == file_size
            ),
            None
        )
        if matching_rom is None:
            raise VerificationError(
                f"No matching ROM found in DAT for {bin_file.name} (SHA1: {file_sha1})"
            )
        verified_roms.append(matching_rom)

    game = verified_roms[0].game
    if any(rom.game is not game for rom in verified_roms):
        games = sorted({rom.game.name for rom in verified_roms})
        raise VerificationError(f"ROMs belong to different games: {', '.join(games)}")

    missing = [
        rom.name for rom in game.bin_roms()
        if all(rom is not verified for verified in verified_roms)
    ]
    if missing:
        logger.warning(f'"{game.name}" is missing tracks: {", ".join(missing)}')

    cue_result = CueVerificationResult.NO_CUE_NEEDED
    if cue_files:
        cue_file = cue_files[0]
        cue_rom = next((rom for rom in game.roms if rom.name == cue_file.name), None)
        if cue_rom is not None:
            if calculate_hash(cue_file, 'sha1') == cue_rom.sha1hex:
                cue_result = CueVerificationResult.VERIFIED_EXACTLY
            else:
                cue_result = CueVerificationResult.MISMATCH

    if cue_result == CueVerificationResult.MISMATCH:
        message = f'"{game.name}" .bin files verified and complete, but .cue does not match Datfile'
        if not allow_cue_mismatches:
            raise CueMismatchError(message)
        logger.warning(message)
    else:
        logger.info(f'Dump verified correct and complete: "{game.name}"')

    return VerificationResult(game=game, cue_result=cue_result, roms=verified_roms)


def find_games_by_combined_bin_size(dat: Dat, size: int) -> List[GameMatch]:
    """
    Find games whose summed .bin rom size equals a dump's combined size.

    Every exact hit is returned with MATCH status. With no exact hit the
    single game with the smallest absolute difference (first in catalog
    order on ties) is returned with CLOSEST status.

    Args:
        dat: Loaded catalog
        size: Combined size in bytes of the dump's bin tracks

    Returns:
        List of GameMatch; empty only for an empty catalog
    """
    exact: List[GameMatch] = []
    closest: Optional[GameMatch] = None

    for game in dat.games:
        difference = abs(game.combined_bin_size() - size)
        if difference == 0:
            exact.append(GameMatch(game=game, status=MatchStatus.MATCH))
        elif closest is None or difference < closest.difference:
            closest = GameMatch(game=game, status=MatchStatus.CLOSEST, difference=difference)

    if exact:
        return exact
    return [closest] if closest is not None else []
