"""Grouping of source files into one entry per disc."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List

from discnorm.cue.sheet import CueParsingError, load_cue_sheet

logger = logging.getLogger(__name__)


def _references(file_name: str, cue_entry: str) -> bool:
    """True when a file is the cue's FILE entry or a wrapped form of it (``x.bin.ecm``)."""
    name = file_name.lower()
    entry = Path(cue_entry).name.lower()
    return name == entry or name.startswith(entry + '.')


def group_files_by_stem(files: Iterable[Path]) -> Dict[str, List[Path]]:
    """
    Group files by basename without extension, then fold groups whose files
    are named in another group's cue sheet into that cue's group.

    Args:
        files: Source files (any order)

    Returns:
        Ordered mapping of group name to its files, sorted by name
    """
    groups: Dict[str, List[Path]] = {}
    for path in sorted(files):
        groups.setdefault(path.stem, []).append(path)

    for name in list(groups):
        if name not in groups:
            continue

        for cue_path in [p for p in groups[name] if p.suffix.lower() == '.cue']:
            try:
                entries = load_cue_sheet(cue_path).filenames()
            except CueParsingError as e:
                logger.debug(f"Not using {cue_path.name} for grouping: {e}")
                continue

            for other in list(groups):
                if other == name:
                    continue
                if any(_references(path.name, entry) for path in groups[other] for entry in entries):
                    logger.debug(f"Grouping {other} with {name} (referenced by {cue_path.name})")
                    groups[name].extend(groups.pop(other))

    return {name: sorted(paths) for name, paths in sorted(groups.items())}
