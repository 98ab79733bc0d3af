"""
CUE sheet package for discnorm.

Parses and writes CUE sheets, generates merged/split sheets, and converts
CloneCD control files.
"""

from .sheet import CueFile, CueIndex, CueMetadata, CueSheet, CueTrack, deserialize, serialize
from .generator import BinFile, generate_merged_cue_sheet, generate_split_cue_sheet, track_filename
from .ccd import convert_ccd_to_cue

__all__ = [
    'CueFile',
    'CueIndex',
    'CueMetadata',
    'CueSheet',
    'CueTrack',
    'deserialize',
    'serialize',
    'BinFile',
    'generate_merged_cue_sheet',
    'generate_split_cue_sheet',
    'track_filename',
    'convert_ccd_to_cue',
]
