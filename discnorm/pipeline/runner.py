"""
Conversion pipeline runners.

DiscRunner takes the source files of one disc through the extraction
fixpoint and compresses the result to CHD. DirectoryRunner groups a source
tree into discs and runs each one independently.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple

from discnorm.cue.generator import create_cue_file
from discnorm.errors import DiscnormError, FatalPipelineError
from discnorm.external.toolchain import Toolchain
from discnorm.guard import guard_file_does_not_exist
from discnorm.pipeline.handlers import (
    COMPRESSIBLE_EXTENSIONS,
    HANDLERS,
    HandlerContext,
    HandlerKind,
    is_processable,
)
from discnorm.scanner.file_groups import group_files_by_stem
from discnorm.storage.local import LocalStorage
from discnorm.storage.scratch import ScratchSpace

logger = logging.getLogger(__name__)


@dataclass
class PipelineSettings:
    """Per-run options threaded through the pipeline."""
    temp_dir: Optional[Path] = None
    overwrite: bool = False
    remove_source: bool = False


@dataclass
class ProcessingResult:
    """Output of one disc run."""
    status: bool
    files: List[Path] = field(default_factory=list)


@dataclass
class GroupResult:
    """Outcome for one group in directory mode."""
    name: str
    sources: List[Path]
    status: bool
    outputs: List[Path] = field(default_factory=list)
    skipped: bool = False
    error: Optional[str] = None


def _extension(path: Path) -> str:
    return path.suffix.lower().lstrip('.')


class DiscRunner:
    """Runs the sources of one disc through extraction and compression."""

    def __init__(
        self,
        name: str,
        source_files: Sequence[Path],
        output_dir: Path,
        toolchain: Toolchain,
        settings: Optional[PipelineSettings] = None,
        storage: Optional[LocalStorage] = None
    ):
        self.name = name
        self.source_files = list(source_files)
        self.output_dir = output_dir
        self.toolchain = toolchain
        self.settings = settings or PipelineSettings()
        self.storage = storage or LocalStorage()

    @property
    def output_path(self) -> Path:
        return self.output_dir / f"{self.name}.chd"

    def existing_outputs(self) -> List[Path]:
        """Published CHDs of an earlier run: ``<name>.chd`` and ``<name>.<i>.chd``."""
        pattern = re.compile(rf"{re.escape(self.name)}(\.\d+)?\.chd", re.IGNORECASE)
        return [path for path in self.storage.list(self.output_dir) if pattern.fullmatch(path.name)]

    async def extract_all(self, ctx: HandlerContext) -> List[Path]:
        """
        Apply handlers until a full pass makes no progress.

        Each pass works on an immutable snapshot and builds the next one.
        A file whose handler fails stays in the working set and is not
        retried.

        Returns:
            Sorted listing of the working directory after the fixpoint
        """
        pending: Tuple[Path, ...] = tuple(self.storage.list(ctx.working_dir))
        failed: Set[Path] = set()
        pass_number = 0

        while True:
            pass_number += 1
            progress = False
            next_files: List[Path] = []

            for path in pending:
                kind = HandlerKind.for_path(path)
                if kind is None or path in failed:
                    next_files.append(path)
                    continue

                logger.info(f"Extracting {path.name} ({kind.value})")
                try:
                    produced = await HANDLERS[kind](path, pending, ctx)
                except Exception as e:
                    logger.warning(f"Failed to extract file {path.name}: {e}")
                    failed.add(path)
                    next_files.append(path)
                    continue

                moved = [
                    self.storage.move(item, ctx.working_dir / item.name)
                    for item in produced
                ]
                if path not in moved:
                    self.storage.remove(path)
                logger.info(f"Extracted files: {', '.join(item.name for item in moved)}")
                next_files.extend(moved)
                progress = True

            pending = tuple(dict.fromkeys(next_files))
            if not progress:
                break

        listing = self.storage.list(ctx.working_dir)
        logger.debug(f"Fixpoint reached after {pass_number} pass(es): {', '.join(p.name for p in listing)}")
        return listing

    async def compress(self, files: List[Path], ctx: HandlerContext) -> List[Path]:
        """Compress every cue/gdi to CHD, or pass an existing CHD through."""
        passthrough = [path for path in files if _extension(path) == 'chd']
        if passthrough:
            logger.info(f"Using existing CHD without recompressing: {', '.join(p.name for p in passthrough)}")
            return passthrough

        candidates = [path for path in files if _extension(path) in COMPRESSIBLE_EXTENSIONS]
        bins = [path for path in files if _extension(path) == 'bin']
        if not candidates and len(bins) == 1:
            logger.info(f"No cue sheet found, creating one for {bins[0].name}")
            candidates = [create_cue_file(bins[0])]

        compress_dir = ctx.scratch.create_temporary_directory()
        outputs = []
        for candidate in candidates:
            try:
                outputs.append(await self.toolchain.create_chd(candidate, compress_dir))
            except Exception as e:
                logger.warning(f"Failed to compress file {candidate.name}: {e}")
        return outputs

    def _publish(self, outputs: List[Path]) -> List[Path]:
        """Move CHDs to the output directory as ``<name>.chd`` or ``<name>.<i>.chd``."""
        published = []
        for index, output in enumerate(outputs):
            if len(outputs) > 1:
                target = self.output_dir / f"{self.name}.{index}.chd"
            else:
                target = self.output_path

            if self.storage.exists(target) and not self.settings.overwrite:
                logger.error(f"Output file already exists, not replacing: {target}")
                continue

            published.append(self.storage.move(output, target))
            logger.info(f"Created {target}")
        return published

    async def start(self) -> ProcessingResult:
        """
        Run the disc through the pipeline.

        Returns:
            ProcessingResult with the published CHD paths

        Raises:
            FatalPipelineError: If the output already exists without
                overwrite, a source file is missing, or nothing could be
                compressed
        """
        if not self.settings.overwrite:
            guard_file_does_not_exist(
                self.output_path, f"Output file already exists: {self.output_path}", FatalPipelineError
            )
            existing = self.existing_outputs()
            if existing:
                raise FatalPipelineError(
                    f"Output files already exist: {', '.join(p.name for p in existing)}"
                )

        missing = [probe.path.name for probe in await self.storage.probe(self.source_files) if not probe.is_file]
        if missing:
            raise FatalPipelineError(f"Source files do not exist: {', '.join(missing)}")

        with ScratchSpace(self.settings.temp_dir, self.storage) as scratch:
            working_dir = scratch.create_temporary_directory()
            for source in self.source_files:
                self.storage.copy(source, working_dir / source.name)

            ctx = HandlerContext(
                toolchain=self.toolchain,
                storage=self.storage,
                scratch=scratch,
                working_dir=working_dir
            )
            files = await self.extract_all(ctx)
            outputs = await self.compress(files, ctx)

            if not outputs:
                raise FatalPipelineError(
                    f"No matching files found in {', '.join(p.name for p in files) or 'nothing'} "
                    f"for {', '.join(p.name for p in self.source_files)}"
                )

            self.storage.create_directory(self.output_dir)
            published = self._publish(outputs)

        return ProcessingResult(status=bool(published), files=published)


class DirectoryRunner:
    """Groups a source directory into discs and runs each independently."""

    def __init__(
        self,
        source_dir: Path,
        output_dir: Path,
        toolchain: Toolchain,
        settings: Optional[PipelineSettings] = None,
        storage: Optional[LocalStorage] = None
    ):
        self.source_dir = source_dir
        self.output_dir = output_dir
        self.toolchain = toolchain
        self.settings = settings or PipelineSettings()
        self.storage = storage or LocalStorage()

    def _remove_sources(self, sources: List[Path]) -> None:
        for source in sources:
            self.storage.remove(source)
        logger.info(f"Removed source files: {', '.join(p.name for p in sources)}")

    async def _run_group(self, name: str, sources: List[Path]) -> GroupResult:
        if not any(is_processable(path) for path in sources):
            logger.error(f"No matching extensions found for {', '.join(p.name for p in sources)}")
            return GroupResult(name, sources, status=False, skipped=True,
                               error="no processable files")

        runner = DiscRunner(name, sources, self.output_dir, self.toolchain, self.settings, self.storage)
        existing = runner.existing_outputs()
        if existing and not self.settings.overwrite:
            logger.info(f"Skipping {name} - output file {existing[0]} already exists")
            return GroupResult(name, sources, status=False, skipped=True,
                               error="output already exists")

        try:
            result = await runner.start()
        except (DiscnormError, OSError) as e:
            logger.error(f"Failed to process {name}: {e}")
            return GroupResult(name, sources, status=False, error=str(e))

        if result.status and self.settings.remove_source:
            self._remove_sources(sources)

        return GroupResult(name, sources, status=result.status, outputs=result.files,
                           error=None if result.status else "no output published")

    async def start(self) -> List[GroupResult]:
        """
        Process every disc group under the source directory.

        Returns:
            One GroupResult per group, in name order
        """
        files = self.storage.list(self.source_dir, recursive=True, avoid_hidden_files=True)
        groups = group_files_by_stem(files)
        logger.info(f"Found {len(groups)} group(s) in {self.source_dir}")

        results = []
        for name, sources in groups.items():
            logger.info(f"Processing {name}: {', '.join(p.name for p in sources)}")
            results.append(await self._run_group(name, sources))

        created = sum(len(result.outputs) for result in results)
        logger.info(f"Created {created} CHD file(s) from {len(results)} group(s)")
        return results
