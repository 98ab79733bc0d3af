"""Renames verified CHDs (and their sidecars) to the catalog game name."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from discnorm.errors import DiscnormError
from discnorm.storage.local import LocalStorage
from discnorm.workflow.metadata import METADATA_SUFFIX, metadata_path_for, read_metadata

logger = logging.getLogger(__name__)


@dataclass
class RenameResult:
    source: Path
    target: Optional[Path]
    renamed: bool
    reason: str = ""
    failed: bool = False


class RenameRunner:
    """
    Rename ``<stem>.chd`` + ``<stem>.metadata.json`` to the sidecar's game name.

    Sidecars with status 'match' are always used; 'partial' ones only when
    closest matches are accepted. 'none' is never renamed.
    """

    def __init__(
        self,
        source_dir: Path,
        force: bool = False,
        accept_closest_matches: bool = False,
        storage: Optional[LocalStorage] = None
    ):
        self.source_dir = source_dir
        self.force = force
        self.accept_closest_matches = accept_closest_matches
        self.storage = storage or LocalStorage()

    def _accepts(self, status: str) -> bool:
        if status == 'match':
            return True
        return status == 'partial' and self.accept_closest_matches

    def rename_one(self, chd_path: Path) -> RenameResult:
        sidecar = metadata_path_for(chd_path)
        if not sidecar.exists():
            logger.info(f"Skipping {chd_path.name} - no metadata found. Run verify command first.")
            return RenameResult(chd_path, None, False, "no metadata")

        metadata = read_metadata(sidecar)
        if metadata.game is None or not self._accepts(metadata.status):
            logger.info(f"Skipping {chd_path.name} - status {metadata.status} not accepted for renaming")
            return RenameResult(chd_path, None, False, f"status {metadata.status}")

        target = chd_path.with_name(f"{metadata.game.name}{chd_path.suffix}")
        if target == chd_path:
            return RenameResult(chd_path, target, False, "already named")

        if self.storage.exists(target) and not self.force:
            logger.info(f"Skipping {chd_path.name} - target {target.name} already exists (use --force to overwrite)")
            return RenameResult(chd_path, target, False, "target exists")

        self.storage.move(chd_path, target)
        self.storage.move(sidecar, target.with_name(f"{metadata.game.name}{METADATA_SUFFIX}"))
        logger.info(f"Renamed {chd_path.name} to {target.name}")
        return RenameResult(chd_path, target, True)

    def start(self) -> List[RenameResult]:
        results = []
        chd_files = [
            path for path in self.storage.list(self.source_dir, recursive=True, avoid_hidden_files=True)
            if path.suffix.lower() == '.chd'
        ]
        logger.info(f"Found {len(chd_files)} CHD file(s) in {self.source_dir}")

        for chd_path in chd_files:
            try:
                results.append(self.rename_one(chd_path))
            except (DiscnormError, OSError) as e:
                logger.error(f"Error processing {chd_path.name}: {e}")
                results.append(RenameResult(chd_path, None, False, str(e), failed=True))
        return results
