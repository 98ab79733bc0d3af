"""
DAT catalog package for discnorm.

Loads Redump-style DAT files and verifies dumps against them.
"""

from .dat import Dat, Game, Rom, load_dat, load_dat_from_path
from .verifier import (
    CueVerificationResult,
    GameMatch,
    MatchStatus,
    VerificationResult,
    find_games_by_combined_bin_size,
    verify_bin_cue_against_dat,
)

__all__ = [
    'Dat',
    'Game',
    'Rom',
    'load_dat',
    'load_dat_from_path',
    'CueVerificationResult',
    'GameMatch',
    'MatchStatus',
    'VerificationResult',
    'find_games_by_combined_bin_size',
    'verify_bin_cue_against_dat',
]
