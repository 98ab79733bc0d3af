"""
Verification of CHD files against a DAT catalog.

Each CHD is checked with chdman, extracted, split into redump-style track
files, and verified by hash. Dumps that fail exact verification fall back to
the combined-size lookup; the outcome is written to a metadata sidecar.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from discnorm.catalog.dat import Dat, Game
from discnorm.catalog.verifier import (
    MatchStatus,
    find_games_by_combined_bin_size,
    verify_bin_cue_against_dat,
)
from discnorm.cue.binmerge import read_bin_files, split_bin_file
from discnorm.cue.generator import track_filename
from discnorm.cue.sheet import write_cue_sheet
from discnorm.errors import CueMismatchError, DiscnormError, VerificationError
from discnorm.external.toolchain import Toolchain
from discnorm.scanner.hash_calculator import calculate_hash, format_file_size
from discnorm.storage.local import LocalStorage
from discnorm.storage.scratch import ScratchSpace
from discnorm.workflow.metadata import (
    GameMetadata,
    MetadataFile,
    metadata_path_for,
    write_metadata,
)

logger = logging.getLogger(__name__)


@dataclass
class VerifySettings:
    temp_dir: Optional[Path] = None
    allow_cue_mismatches: bool = True


@dataclass
class ChdVerification:
    """Outcome for one CHD."""
    chd_path: Path
    metadata: MetadataFile
    metadata_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def status(self) -> str:
        return self.metadata.status


@dataclass
class _Dump:
    directory: Path
    bin_files: List[Path] = field(default_factory=list)

    def combined_size(self) -> int:
        return sum(path.stat().st_size for path in self.bin_files)


class VerificationRunner:
    """Verifies every CHD under a directory and writes sidecars."""

    def __init__(
        self,
        source_dir: Path,
        dat: Dat,
        toolchain: Toolchain,
        settings: Optional[VerifySettings] = None,
        storage: Optional[LocalStorage] = None
    ):
        self.source_dir = source_dir
        self.dat = dat
        self.toolchain = toolchain
        self.settings = settings or VerifySettings()
        self.storage = storage or LocalStorage()

    async def _prepare_dump(self, chd_path: Path, scratch: ScratchSpace) -> _Dump:
        """Extract a CHD and split a multi-track image into per-track bins."""
        extract_dir = scratch.create_temporary_directory()
        cue_path = await self.toolchain.extract_chd(chd_path, extract_dir)

        files, block_size = read_bin_files(cue_path)
        if len(files) != 1 or len(files[0].tracks) < 2:
            return _Dump(extract_dir, [Path(f.filename) for f in files])

        split_dir = scratch.create_temporary_directory()
        sheet = split_bin_file(files[0], split_dir, chd_path.stem, block_size)
        write_cue_sheet(sheet, split_dir / f"{chd_path.stem}.cue")
        logger.info(f"Split {chd_path.name} into {len(sheet.files)} track files")
        return _Dump(split_dir, [split_dir / name for name in sheet.filenames()])

    def _rename_for_game(self, dump: _Dump, stem: str, game: Game) -> None:
        """Rename track files and cue to the catalog's naming for game."""
        count = len(dump.bin_files)
        renamed = []
        for number, path in enumerate(dump.bin_files, 1):
            target = path.with_name(track_filename(game.name, number, count))
            renamed.append(self.storage.move(path, target))
        dump.bin_files = renamed

        cue_path = dump.directory / f"{stem}.cue"
        if cue_path.exists():
            text = cue_path.read_text(encoding='utf-8')
            for number in range(count, 0, -1):
                text = text.replace(
                    f'"{track_filename(stem, number, count)}"',
                    f'"{track_filename(game.name, number, count)}"'
                )
            new_cue_path = dump.directory / f"{game.name}.cue"
            new_cue_path.write_text(text, encoding='utf-8')
            if new_cue_path != cue_path:
                self.storage.remove(cue_path)

    def _candidate_by_hash(self, dump: _Dump) -> Optional[Game]:
        if not dump.bin_files:
            return None
        roms = self.dat.find_roms_by_sha1(calculate_hash(dump.bin_files[0], 'sha1'))
        return roms[0].game if roms else None

    def _verify_exact(self, chd_path: Path, dump: _Dump) -> MetadataFile:
        """Exact verification, retrying once under the hash-identified game's names."""
        try:
            result = verify_bin_cue_against_dat(
                dump.directory, self.dat, self.settings.allow_cue_mismatches
            )
        except CueMismatchError:
            raise
        except VerificationError:
            game = self._candidate_by_hash(dump)
            if game is None or game.name == chd_path.stem:
                raise
            logger.info(f"Track hash matches {game.name}; retrying with its file names")
            self._rename_for_game(dump, chd_path.stem, game)
            result = verify_bin_cue_against_dat(
                dump.directory, self.dat, self.settings.allow_cue_mismatches
            )

        return MetadataFile(
            status='match',
            message=f"Verified {len(result.roms)} track(s) by SHA1 ({result.cue_result.value})",
            game=GameMetadata.from_game(result.game)
        )

    def _closest(self, dump: _Dump, reason: str) -> MetadataFile:
        size = dump.combined_size()
        matches = find_games_by_combined_bin_size(self.dat, size)
        if not matches:
            return MetadataFile(status='none', message=f"{reason}; no size candidates in DAT")

        best = matches[0]
        if best.status == MatchStatus.MATCH:
            message = f"{reason}; combined size {format_file_size(size)} matches"
            if len(matches) > 1:
                message += f" {len(matches)} games, using first"
        else:
            message = f"{reason}; closest by combined size (difference {best.difference} bytes)"

        logger.warning(f"{best.game.name}: {message}")
        return MetadataFile(
            status='partial',
            message=f"[{best.status.value}] {message}",
            game=GameMetadata.from_game(best.game)
        )

    async def verify_chd(self, chd_path: Path) -> ChdVerification:
        """
        Verify one CHD and write its sidecar.

        Returns:
            ChdVerification with status 'match', 'partial' or 'none'
        """
        logger.info(f"Verifying dump file {chd_path.name}")
        error = None

        if not await self.toolchain.verify_chd(chd_path):
            metadata = MetadataFile(status='none', message="chdman verify failed")
            error = metadata.message
        else:
            try:
                with ScratchSpace(self.settings.temp_dir, self.storage) as scratch:
                    dump = await self._prepare_dump(chd_path, scratch)
                    try:
                        metadata = self._verify_exact(chd_path, dump)
                    except CueMismatchError as e:
                        logger.error(f"{chd_path.name}: {e}")
                        metadata = MetadataFile(status='none', message=str(e))
                        error = str(e)
                    except VerificationError as e:
                        metadata = self._closest(dump, str(e))
            except (DiscnormError, OSError) as e:
                logger.error(f"Failed to verify {chd_path.name}: {e}")
                metadata = MetadataFile(status='none', message=str(e))
                error = str(e)

        sidecar = write_metadata(metadata, metadata_path_for(chd_path))
        return ChdVerification(chd_path, metadata, sidecar, error)

    async def start(self) -> List[ChdVerification]:
        chd_files = [
            path for path in self.storage.list(self.source_dir, recursive=True, avoid_hidden_files=True)
            if path.suffix.lower() == '.chd'
        ]
        logger.info(f"Found {len(chd_files)} CHD file(s) in {self.source_dir}")

        results = []
        for chd_path in chd_files:
            results.append(await self.verify_chd(chd_path))
        return results
