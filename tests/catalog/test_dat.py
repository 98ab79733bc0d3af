"""Tests for DAT catalog loading."""

import hashlib
import zipfile

import pytest

from discnorm.catalog.dat import DatParsingError, load_dat, load_dat_from_path


def sha1_of(data):
    return hashlib.sha1(data).hexdigest()


@pytest.mark.unit
def test_load_dat_builds_games_and_index(write_dat):
    path = write_dat({
        "Game A": [("Game A (Track 1).bin", b"track1"), ("Game A (Track 2).bin", b"track2"),
                   ("Game A.cue", b"cue")],
        "Game B": [("Game B.bin", b"other")],
    }, system="Sony - PlayStation")

    dat = load_dat(path)

    assert dat.system == "Sony - PlayStation"
    assert [g.name for g in dat.games] == ["Game A", "Game B"]
    game_a = dat.games[0]
    assert game_a.description == "Game A"
    assert len(game_a.bin_roms()) == 2
    assert game_a.combined_bin_size() == len(b"track1") + len(b"track2")

    roms = dat.find_roms_by_sha1(sha1_of(b"other"))
    assert len(roms) == 1
    assert roms[0].game is dat.games[1]
    assert roms[0].size == 5


@pytest.mark.unit
def test_duplicate_hashes_keep_every_rom(write_dat):
    path = write_dat({
        "Game (USA)": [("Game (USA).bin", b"same")],
        "Game (Europe)": [("Game (Europe).bin", b"same")],
    })

    dat = load_dat(path)

    roms = dat.find_roms_by_sha1(sha1_of(b"same"))
    assert [rom.game.name for rom in roms] == ["Game (USA)", "Game (Europe)"]


@pytest.mark.unit
def test_sha1_is_case_insensitive(write_dat):
    digest = sha1_of(b"data")
    dat = load_dat(write_dat({"Game": [("Game.bin", 4, digest.upper())]}))

    assert dat.games[0].roms[0].sha1hex == digest
    assert dat.find_roms_by_sha1(digest.upper())


@pytest.mark.unit
def test_combined_size_falls_back_to_all_roms(write_dat):
    dat = load_dat(write_dat({"Game": [("Game.iso", b"12345678")]}))
    assert dat.games[0].combined_bin_size() == 8


@pytest.mark.unit
def test_missing_file_raises(tmp_path):
    with pytest.raises(DatParsingError, match="not found"):
        load_dat(tmp_path / "missing.dat")


@pytest.mark.unit
def test_malformed_xml_raises(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_text("<datafile><header>")

    with pytest.raises(DatParsingError, match="Malformed"):
        load_dat(path)


@pytest.mark.unit
def test_wrong_root_raises(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_text("<gameList/>")

    with pytest.raises(DatParsingError, match="datafile"):
        load_dat(path)


@pytest.mark.unit
def test_missing_header_name_raises(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_text("<datafile><header/></datafile>")

    with pytest.raises(DatParsingError, match="header"):
        load_dat(path)


@pytest.mark.unit
def test_game_without_name_raises(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_text("<datafile><header><name>X</name></header><game/></datafile>")

    with pytest.raises(DatParsingError, match="<game> without a name attribute"):
        load_dat(path)


@pytest.mark.unit
def test_rom_without_sha1_raises(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_text(
        '<datafile><header><name>X</name></header>'
        '<game name="G"><rom name="G.bin" size="1"/></game></datafile>'
    )

    with pytest.raises(DatParsingError, match="sha1"):
        load_dat(path)


@pytest.mark.unit
def test_non_integer_size_raises(write_dat):
    path = write_dat({"Game": [("Game.bin", "big", "00")]})

    with pytest.raises(DatParsingError, match="not an integer"):
        load_dat(path)


@pytest.mark.unit
def test_load_from_zip(write_dat, tmp_path):
    dat_path = write_dat({"Game": [("Game.bin", b"data")]}, name="Sony.dat")
    zip_path = tmp_path / "Sony.zip"
    with zipfile.ZipFile(zip_path, "w") as archive:
        archive.write(dat_path, "Sony.dat")

    dat = load_dat_from_path(zip_path)

    assert [g.name for g in dat.games] == ["Game"]


@pytest.mark.unit
def test_zip_without_dat_raises(tmp_path):
    zip_path = tmp_path / "empty.zip"
    with zipfile.ZipFile(zip_path, "w") as archive:
        archive.writestr("readme.txt", "nothing here")

    with pytest.raises(DatParsingError, match="No .dat files"):
        load_dat_from_path(zip_path)


@pytest.mark.unit
def test_unsupported_extension_raises(tmp_path):
    with pytest.raises(DatParsingError, match="Unsupported file type"):
        load_dat_from_path(tmp_path / "catalog.json")
