"""
Extension handlers for the extraction fixpoint.

Every handler takes one file of the working set and produces files one step
closer to a compressible bin/cue set. Outputs are written to a fresh scratch
directory; the runner moves them into the working directory.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from discnorm.cue.ccd import convert_ccd_to_cue
from discnorm.cue.generator import create_cue_file
from discnorm.cue.sheet import CueParsingError, load_cue_sheet, write_cue_sheet
from discnorm.errors import ExtractionError
from discnorm.external.toolchain import Toolchain
from discnorm.guard import guard, guard_file_exists
from discnorm.storage.local import LocalStorage
from discnorm.storage.scratch import ScratchSpace

logger = logging.getLogger(__name__)


class HandlerKind(Enum):
    """File extensions the pipeline knows how to unwrap or transcode."""
    ECM = 'ecm'
    SEVEN_ZIP = '7z'
    RAR = 'rar'
    ZIP = 'zip'
    CHD = 'chd'
    CCD = 'ccd'
    MDF = 'mdf'
    ISO = 'iso'
    NRG = 'nrg'
    IMG = 'img'

    @classmethod
    def for_path(cls, path: Path) -> Optional['HandlerKind']:
        try:
            return cls(path.suffix.lower().lstrip('.'))
        except ValueError:
            return None


# Extensions chdman can compress directly
COMPRESSIBLE_EXTENSIONS = ('cue', 'gdi')


@dataclass
class HandlerContext:
    """Collaborators shared by all handlers of one disc run."""
    toolchain: Toolchain
    storage: LocalStorage
    scratch: ScratchSpace
    working_dir: Path

    def output_dir(self) -> Path:
        return self.scratch.create_temporary_directory()

    def working_cue_files(self) -> List[Path]:
        return [
            path for path in self.storage.list(self.working_dir)
            if path.suffix.lower() == '.cue'
        ]


Handler = Callable[[Path, Sequence[Path], HandlerContext], Awaitable[List[Path]]]


def _extracted_contents(ctx: HandlerContext, directory: Path) -> List[Path]:
    contents = ctx.storage.list(directory, recursive=True, avoid_hidden_files=True)
    guard(bool(contents), f"No files found in extracted directory: {directory}", ExtractionError)
    return contents


async def handle_ecm(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    """
    Decode ECM and name the output after the cue's matching FILE entry.

    A decoded name the cue already references is kept. Otherwise the file
    takes the one same-extension entry not yet in the working directory;
    with several such entries the name is ambiguous and left alone.
    """
    decoded = await ctx.toolchain.decode_ecm(source, ctx.output_dir())
    guard_file_exists(decoded, f"Extracted file missing, does not exist: {decoded}", ExtractionError)

    cue_files = [path for path in all_files if path.suffix.lower() == '.cue']
    cue_files.extend(path for path in ctx.working_cue_files() if path not in cue_files)
    present = {path.name for path in ctx.storage.list(ctx.working_dir)}

    for cue_path in cue_files:
        try:
            filenames = [Path(name).name for name in load_cue_sheet(cue_path).filenames()]
        except CueParsingError as e:
            logger.debug(f"Ignoring {cue_path.name} while naming {decoded.name}: {e}")
            continue

        if decoded.name in filenames:
            break

        missing = [
            name for name in filenames
            if name.lower().endswith(decoded.suffix.lower()) and name not in present
        ]
        if len(missing) == 1:
            target = decoded.with_name(missing[0])
            logger.info(f"Renaming decoded {decoded.name} to {target.name} to match {cue_path.name}")
            decoded = ctx.storage.move(decoded, target)
        elif missing:
            logger.warning(
                f"Cannot pick a name for {decoded.name} from {cue_path.name}: "
                f"{len(missing)} entries are unclaimed"
            )
        break

    return [decoded]


async def handle_archive(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    """Extract 7z/rar/zip archives."""
    extracted = await ctx.toolchain.extract_archive(source, ctx.output_dir())
    return _extracted_contents(ctx, extracted)


async def handle_chd(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    """Extract a CHD back to a cue/bin set."""
    cue_path = await ctx.toolchain.extract_chd(source, ctx.output_dir())
    guard_file_exists(cue_path, f"Extracted file missing, does not exist: {cue_path}", ExtractionError)
    return _extracted_contents(ctx, cue_path.parent)


async def handle_ccd(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    """Convert a CloneCD control file into a cue for its image."""
    cue_text = await asyncio.to_thread(convert_ccd_to_cue, source)
    cue_path = ctx.output_dir() / f"{source.stem}.cue"
    ctx.storage.write(cue_path, cue_text.encode('utf-8'))
    return [cue_path]


async def handle_mdf(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    return [await ctx.toolchain.convert_mdf_to_iso(source, ctx.output_dir())]


async def handle_iso(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    """Convert ISO to BIN and write a single-track cue beside it."""
    bin_path = await ctx.toolchain.convert_image_to_bin(source, ctx.output_dir())
    cue_path = create_cue_file(bin_path)
    return [bin_path, cue_path]


async def handle_nrg(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    return [await ctx.toolchain.convert_image_to_bin(source, ctx.output_dir())]


async def handle_img(source: Path, all_files: Sequence[Path], ctx: HandlerContext) -> List[Path]:
    """Rename .img to .bin and repoint cues in the working directory."""
    bin_path = ctx.storage.copy(source, ctx.output_dir() / f"{source.stem}.bin")

    for cue_path in ctx.working_cue_files():
        try:
            sheet = load_cue_sheet(cue_path)
        except CueParsingError as e:
            logger.debug(f"Not rewriting {cue_path.name}: {e}")
            continue

        changed = False
        for cue_file in sheet.files:
            if Path(cue_file.filename).name == source.name:
                cue_file.filename = bin_path.name
                changed = True
        if changed:
            write_cue_sheet(sheet, cue_path)
            logger.info(f"Updated {cue_path.name} to reference {bin_path.name}")

    return [bin_path]


HANDLERS: Dict[HandlerKind, Handler] = {
    HandlerKind.ECM: handle_ecm,
    HandlerKind.SEVEN_ZIP: handle_archive,
    HandlerKind.RAR: handle_archive,
    HandlerKind.ZIP: handle_archive,
    HandlerKind.CHD: handle_chd,
    HandlerKind.CCD: handle_ccd,
    HandlerKind.MDF: handle_mdf,
    HandlerKind.ISO: handle_iso,
    HandlerKind.NRG: handle_nrg,
    HandlerKind.IMG: handle_img,
}

_unhandled = set(HandlerKind) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"No handler registered for: {', '.join(sorted(k.value for k in _unhandled))}")


def is_processable(path: Path) -> bool:
    """True when a file can be unwrapped, compressed, or wrapped in a cue."""
    extension = path.suffix.lower().lstrip('.')
    return (
        HandlerKind.for_path(path) is not None
        or extension in COMPRESSIBLE_EXTENSIONS
        or extension == 'bin'
    )
