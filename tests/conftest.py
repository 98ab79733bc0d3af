"""
Shared pytest fixtures and utilities for the discnorm test suite.
"""

import hashlib
import shutil
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

import pytest
import yaml

from discnorm.errors import CommandError, ExtractionError


def sha1_of(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow+deep merge helper for fixture config dictionaries.
    """
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


class FakeToolchain:
    """
    In-process stand-in for the external tools.

    CHDs are plain files: ``create_chd`` writes ``CHD:`` followed by the cue
    text, and ``extract_chd`` writes back a single-track cue and the bytes
    after the prefix as the bin, unless ``chd_images`` supplies a cue text
    and image bytes for that CHD name.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.fail_extract: Set[str] = set()
        self.fail_create: Set[str] = set()
        self.bad_chds: Set[str] = set()
        self.chd_images: Dict[str, tuple] = {}

    def _record(self, method: str, path: Path) -> None:
        self.calls.append((method, path.name))

    def _maybe_fail(self, path: Path) -> None:
        if path.name in self.fail_extract:
            raise CommandError(f"simulated failure for {path.name}")

    def called(self, method: str) -> List[str]:
        return [name for called, name in self.calls if called == method]

    async def extract_archive(self, path: Path, dest: Path) -> Path:
        self._record('extract_archive', path)
        self._maybe_fail(path)
        if path.suffix.lower() != '.zip':
            raise ExtractionError(f"fake toolchain only extracts zip: {path.name}")
        with zipfile.ZipFile(path) as archive:
            archive.extractall(dest)
        return dest

    async def decode_ecm(self, path: Path, dest: Path) -> Path:
        self._record('decode_ecm', path)
        self._maybe_fail(path)
        output = dest / path.stem
        output.write_bytes(path.read_bytes())
        return output

    async def extract_chd(self, path: Path, dest: Path) -> Path:
        self._record('extract_chd', path)
        self._maybe_fail(path)
        cue_path = dest / f"{path.stem}.cue"
        bin_path = dest / f"{path.stem}.bin"
        if path.name in self.chd_images:
            cue_text, image = self.chd_images[path.name]
            bin_path.write_bytes(image)
            cue_path.write_text(cue_text.replace('{bin}', bin_path.name))
            return cue_path
        data = path.read_bytes()
        if not data.startswith(b'CHD:'):
            raise CommandError(f"not a chd: {path.name}")
        bin_path.write_bytes(data[4:])
        cue_path.write_text(
            f'FILE "{bin_path.name}" BINARY\n  TRACK 01 MODE2/2352\n    INDEX 01 00:00:00\n'
        )
        return cue_path

    async def create_chd(self, path: Path, dest: Path) -> Path:
        self._record('create_chd', path)
        if path.name in self.fail_create:
            raise CommandError(f"simulated compression failure for {path.name}")
        output = dest / f"{path.stem}.chd"
        output.write_bytes(b'CHD:' + path.read_bytes())
        return output

    async def verify_chd(self, path: Path) -> bool:
        self._record('verify_chd', path)
        return path.name not in self.bad_chds

    async def convert_mdf_to_iso(self, path: Path, dest: Path) -> Path:
        self._record('convert_mdf_to_iso', path)
        self._maybe_fail(path)
        output = dest / f"{path.stem}.iso"
        shutil.copyfile(path, output)
        return output

    async def convert_image_to_bin(self, path: Path, dest: Path) -> Path:
        self._record('convert_image_to_bin', path)
        self._maybe_fail(path)
        output = dest / f"{path.stem}.bin"
        shutil.copyfile(path, output)
        return output


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def write_dat(tmp_path: Path) -> Callable[..., Path]:
    """
    Write a DAT XML file from a compact description.

    Usage:
        path = write_dat({"Game": [("Game.bin", b"data")]})

    Rom entries are (name, bytes) or (name, size, sha1) tuples.
    """

    def _builder(games: Dict[str, list], system: str = "Test System",
                 name: str = "test.dat") -> Path:
        lines = [
            '<?xml version="1.0"?>',
            '<datafile>',
            f'  <header><name>{system}</name></header>',
        ]
        for game_name, roms in games.items():
            lines.append(f'  <game name="{game_name}">')
            lines.append(f'    <description>{game_name}</description>')
            for rom in roms:
                if len(rom) == 2:
                    rom_name, data = rom
                    size, sha1 = len(data), sha1_of(data)
                else:
                    rom_name, size, sha1 = rom
                lines.append(f'    <rom name="{rom_name}" size="{size}" sha1="{sha1}"/>')
            lines.append('  </game>')
        lines.append('</datafile>')

        path = tmp_path / name
        path.write_text('\n'.join(lines) + '\n')
        return path

    return _builder


SAMPLE_CCD = """[CloneCD]
Version=3

[Disc]
TocEntries=4
Sessions=1

[Session 1]
PreGapMode=1

[Entry 0]
Session=1
Point=0xa0
ADR=0x01
Control=0x04
PMin=1
PSec=0
PFrame=0
PLBA=-150

[Entry 1]
Session=1
Point=0xa2
ADR=0x01
Control=0x04
PMin=-1
PSec=57
PFrame=0
PLBA=-450

[Entry 2]
Session=1
Point=0x01
ADR=0x01
Control=0x04
PMin=0
PSec=2
PFrame=0
PLBA=0
"""


@pytest.fixture
def sample_ccd(tmp_path: Path) -> Path:
    """CloneCD control file with a data track at LBA 0, plus its image."""
    ccd = tmp_path / "Game.ccd"
    ccd.write_text(SAMPLE_CCD)
    (tmp_path / "Game.img").write_bytes(b"\0" * 2352)
    return ccd


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[[Optional[Dict[str, Any]]], Path]:
    """
    Create a config YAML in a temp directory.

    Usage:
        path = make_config({"tools": {"timeout_seconds": 60}})
    """

    def _builder(overrides: Optional[Dict[str, Any]] = None) -> Path:
        base = {
            "paths": {"temp_dir": str(tmp_path / "scratch")},
            "logging": {"level": "DEBUG", "console": True},
        }
        if overrides:
            base = merge_dicts(base, overrides)

        cfg_path = tmp_path / "discnorm.yaml"
        cfg_path.write_text(yaml.safe_dump(base))
        return cfg_path

    return _builder
