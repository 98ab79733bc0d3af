"""Tests for reading, merging and splitting bin images."""

import pytest

from discnorm.cue.binmerge import (
    determine_block_size,
    merge_bin_files,
    read_bin_files,
    split_bin_file,
)
from discnorm.cue.generator import generate_merged_cue_sheet
from discnorm.cue.sheet import CueParsingError, serialize


def _write_split_dump(directory, sizes):
    """Write per-track bins of the given sector counts plus their cue."""
    lines = []
    for number, sectors in enumerate(sizes, 1):
        name = f"Game (Track {number}).bin"
        (directory / name).write_bytes(bytes([number]) * (sectors * 2352))
        track_type = "MODE2/2352" if number == 1 else "AUDIO"
        lines += [f'FILE "{name}" BINARY', f'  TRACK {number:02d} {track_type}', '    INDEX 01 00:00:00']
    cue_path = directory / "Game.cue"
    cue_path.write_text("\n".join(lines) + "\n")
    return cue_path


@pytest.mark.unit
@pytest.mark.parametrize("track_type, expected", [
    ("AUDIO", 2352),
    ("mode1/2048", 2048),
    ("MODE2/2336", 2336),
    ("CDG", 2448),
    ("SOMETHING", 2352),
])
def test_determine_block_size(track_type, expected):
    assert determine_block_size(track_type) == expected


@pytest.mark.unit
def test_read_bin_files_resolves_paths_and_sizes(tmp_path):
    cue_path = _write_split_dump(tmp_path, [10, 5])

    files, block_size = read_bin_files(cue_path)

    assert block_size == 2352
    assert [f.filename for f in files] == [
        str(tmp_path / "Game (Track 1).bin"),
        str(tmp_path / "Game (Track 2).bin"),
    ]
    assert [f.size for f in files] == [10 * 2352, 5 * 2352]


@pytest.mark.unit
def test_read_bin_files_reports_missing_bins(tmp_path):
    cue_path = _write_split_dump(tmp_path, [1, 1])
    (tmp_path / "Game (Track 2).bin").unlink()

    with pytest.raises(CueParsingError, match="Game \\(Track 2\\).bin"):
        read_bin_files(cue_path)


@pytest.mark.unit
def test_read_bin_files_locks_first_non_default_block_size(tmp_path):
    (tmp_path / "a.bin").write_bytes(b"\0" * 2048 * 4)
    cue_path = tmp_path / "a.cue"
    cue_path.write_text('FILE "a.bin" BINARY\n  TRACK 01 MODE1/2048\n    INDEX 01 00:00:00\n')

    files, block_size = read_bin_files(cue_path)

    assert block_size == 2048
    assert files[0].tracks[0].sectors == 4


@pytest.mark.unit
def test_merge_then_split_restores_tracks(tmp_path):
    source = tmp_path / "split"
    source.mkdir()
    cue_path = _write_split_dump(source, [10, 5, 3])
    files, block_size = read_bin_files(cue_path)

    merged_dir = tmp_path / "merged"
    merged_dir.mkdir()
    merge_bin_files(files, merged_dir / "Game.bin")
    (merged_dir / "Game.cue").write_text(serialize(generate_merged_cue_sheet("Game", files, block_size)))

    merged_files, _ = read_bin_files(merged_dir / "Game.cue")
    assert [t.sectors for t in merged_files[0].tracks] == [10, 5, 3]

    output = tmp_path / "output"
    output.mkdir()
    sheet = split_bin_file(merged_files[0], output, "Game", block_size)

    assert sheet.filenames() == ["Game (Track 1).bin", "Game (Track 2).bin", "Game (Track 3).bin"]
    for name in sheet.filenames():
        assert (output / name).read_bytes() == (source / name).read_bytes()


@pytest.mark.unit
def test_split_uses_redump_names_for_single_track(tmp_path):
    (tmp_path / "image.bin").write_bytes(b"\1" * 2352 * 2)
    cue_path = tmp_path / "image.cue"
    cue_path.write_text('FILE "image.bin" BINARY\n  TRACK 01 MODE2/2352\n    INDEX 01 00:00:00\n')
    files, block_size = read_bin_files(cue_path)

    output = tmp_path / "out"
    output.mkdir()
    sheet = split_bin_file(files[0], output, "Game", block_size)

    assert sheet.filenames() == ["Game.bin"]
    assert (output / "Game.bin").stat().st_size == 2352 * 2
