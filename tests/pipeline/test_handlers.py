"""Tests for the per-extension handlers."""

from pathlib import Path

import pytest

from discnorm.cue.sheet import load_cue_sheet
from discnorm.pipeline.handlers import (
    HANDLERS,
    HandlerContext,
    HandlerKind,
    handle_ccd,
    handle_ecm,
    handle_img,
    handle_iso,
    is_processable,
)
from discnorm.storage.local import LocalStorage
from discnorm.storage.scratch import ScratchSpace


@pytest.fixture
def ctx(tmp_path, fake_toolchain):
    working_dir = tmp_path / "work"
    working_dir.mkdir()
    scratch = ScratchSpace(tmp_path / "scratch")
    yield HandlerContext(
        toolchain=fake_toolchain,
        storage=LocalStorage(),
        scratch=scratch,
        working_dir=working_dir
    )
    scratch.cleanup()


@pytest.mark.unit
@pytest.mark.parametrize("name, kind", [
    ("Game.bin.ecm", HandlerKind.ECM),
    ("Game.7Z", HandlerKind.SEVEN_ZIP),
    ("Game.zip", HandlerKind.ZIP),
    ("Game.chd", HandlerKind.CHD),
    ("Game.img", HandlerKind.IMG),
    ("Game.cue", None),
    ("Game.bin", None),
])
def test_handler_kind_for_path(name, kind):
    assert HandlerKind.for_path(Path(name)) is kind


@pytest.mark.unit
def test_every_kind_has_a_handler():
    assert set(HANDLERS) == set(HandlerKind)


@pytest.mark.unit
@pytest.mark.parametrize("name, expected", [
    ("Game.cue", True),
    ("Game.gdi", True),
    ("Game.bin", True),
    ("Game.rar", True),
    ("Game.nrg", True),
    ("readme.txt", False),
    ("Game.sbi", False),
])
def test_is_processable(name, expected):
    assert is_processable(Path(name)) is expected


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_ccd_writes_cue(sample_ccd, ctx):
    produced = await handle_ccd(sample_ccd, [sample_ccd], ctx)

    assert [p.name for p in produced] == ["Game.cue"]
    assert load_cue_sheet(produced[0]).filenames() == ["Game.img"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_ecm_renames_to_cue_entry(ctx):
    cue = ctx.working_dir / "Game.cue"
    cue.write_text('FILE "Game (Track 1).bin" BINARY\n  TRACK 01 MODE2/2352\n    INDEX 01 00:00:00\n')
    ecm = ctx.working_dir / "image.bin.ecm"
    ecm.write_bytes(b"decoded")

    produced = await handle_ecm(ecm, [cue, ecm], ctx)

    assert [p.name for p in produced] == ["Game (Track 1).bin"]
    assert produced[0].read_bytes() == b"decoded"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_ecm_keeps_name_without_cue(ctx):
    ecm = ctx.working_dir / "image.bin.ecm"
    ecm.write_bytes(b"decoded")

    produced = await handle_ecm(ecm, [ecm], ctx)

    assert [p.name for p in produced] == ["image.bin"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_iso_adds_single_track_cue(ctx):
    iso = ctx.working_dir / "Game.iso"
    iso.write_bytes(b"\0" * 2048)

    produced = await handle_iso(iso, [iso], ctx)

    assert sorted(p.name for p in produced) == ["Game.bin", "Game.cue"]
    cue = next(p for p in produced if p.suffix == ".cue")
    assert load_cue_sheet(cue).filenames() == ["Game.bin"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_img_repoints_cue(ctx):
    cue = ctx.working_dir / "Game.cue"
    cue.write_text('FILE "Game.img" BINARY\n  TRACK 01 MODE1/2352\n    INDEX 01 00:00:00\n')
    img = ctx.working_dir / "Game.img"
    img.write_bytes(b"\0" * 2352)

    produced = await handle_img(img, [cue, img], ctx)

    assert [p.name for p in produced] == ["Game.bin"]
    assert load_cue_sheet(cue).filenames() == ["Game.bin"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_ecm_leaves_ambiguous_name_alone(ctx):
    cue = ctx.working_dir / "Game.cue"
    cue.write_text(
        'FILE "Game (Track 1).bin" BINARY\n  TRACK 01 MODE2/2352\n    INDEX 01 00:00:00\n'
        'FILE "Game (Track 2).bin" BINARY\n  TRACK 02 AUDIO\n    INDEX 01 00:00:00\n'
    )
    ecm = ctx.working_dir / "image.bin.ecm"
    ecm.write_bytes(b"decoded")

    produced = await handle_ecm(ecm, [cue, ecm], ctx)

    assert [p.name for p in produced] == ["image.bin"]
