import signal
import zipfile
from types import SimpleNamespace

import pytest

import discnorm.cli as cli


@pytest.fixture
def config_path(make_config):
    return make_config({"logging": {"console": False}})


@pytest.fixture
def patched_cli(monkeypatch, fake_toolchain):
    monkeypatch.setattr(cli, "Toolchain", SimpleNamespace(from_config=lambda config: fake_toolchain))
    monkeypatch.setattr(cli.signal, "signal", lambda *args: None)
    return fake_toolchain


def make_disc_zip(directory, name):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(f"{name}.cue", f'FILE "{name}.bin" BINARY\n  TRACK 01 MODE2/2352\n    INDEX 01 00:00:00\n')
        archive.writestr(f"{name}.bin", b"\0" * 2352)
    return path


def test_create_parser_includes_commands():
    parser = cli.create_parser()

    args = parser.parse_args(["compress", "-s", "in", "-o", "out", "-w", "-r"])
    assert args.command == "compress"
    assert args.overwrite is True
    assert args.remove_source is True

    args = parser.parse_args(["verify", "-s", "chd", "-d", "Sony.zip", "--strict-cue"])
    assert args.strict_cue is True
    assert args.accept_closest is False

    args = parser.parse_args(["rename", "-s", "chd", "-f"])
    assert args.force is True


def test_main_without_command_prints_help(capsys):
    assert cli.main([]) == 1
    assert "compress" in capsys.readouterr().out


def test_help_command(capsys):
    assert cli.main(["help"]) == 0
    assert cli.main(["help", "verify"]) == 0
    assert "--strict-cue" in capsys.readouterr().out


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert cli.__version__ in capsys.readouterr().out


def test_main_handles_missing_config(tmp_path, capsys):
    code = cli.main(["--config", str(tmp_path / "missing.yaml"), "rename", "-s", str(tmp_path)])

    assert code == 1
    assert "Configuration error" in capsys.readouterr().err


def test_main_handles_invalid_config(make_config, tmp_path, capsys):
    path = make_config({"tools": {"timeout_seconds": 0}})

    code = cli.main(["--config", str(path), "rename", "-s", str(tmp_path)])

    assert code == 1
    assert "timeout_seconds" in capsys.readouterr().err


def test_compress_directory(tmp_path, config_path, patched_cli):
    source = tmp_path / "dumps"
    make_disc_zip(source, "Game")
    (source / "readme.txt").write_text("skipped, not a failure")

    code = cli.main(["--config", str(config_path), "compress", "-s", str(source), "-o", str(tmp_path / "out")])

    assert code == 0
    assert (tmp_path / "out" / "Game.chd").exists()
    assert not (tmp_path / "out" / cli.COMPRESS_ERROR_LOG).exists()


def test_compress_reports_failed_group(tmp_path, config_path, patched_cli):
    source = tmp_path / "dumps"
    make_disc_zip(source, "Game")
    make_disc_zip(source, "Broken")
    patched_cli.fail_extract.add("Broken.zip")

    code = cli.main(["--config", str(config_path), "compress", "-s", str(source), "-o", str(tmp_path / "out")])

    assert code == 1
    assert (tmp_path / "out" / "Game.chd").exists()
    error_log = tmp_path / "out" / cli.COMPRESS_ERROR_LOG
    assert "Item: Broken" in error_log.read_text()


def test_compress_single_file_with_remove_source(tmp_path, config_path, patched_cli):
    source = make_disc_zip(tmp_path / "dumps", "Game")

    code = cli.main([
        "--config", str(config_path), "compress", "-s", str(source), "-o", str(tmp_path / "out"), "-r"
    ])

    assert code == 0
    assert (tmp_path / "out" / "Game.chd").exists()
    assert not source.exists()


def test_compress_missing_source(tmp_path, config_path, patched_cli):
    code = cli.main([
        "--config", str(config_path), "compress", "-s", str(tmp_path / "nothing"), "-o", str(tmp_path / "out")
    ])

    assert code == 1


def test_verify_then_rename(tmp_path, config_path, patched_cli, write_dat):
    chd_dir = tmp_path / "chd"
    chd_dir.mkdir()
    (chd_dir / "dump.chd").write_bytes(b"CHD:payload")
    dat = write_dat({"Solo (USA)": [("dump.bin", b"payload")]})

    assert cli.main(["--config", str(config_path), "verify", "-s", str(chd_dir), "-d", str(dat)]) == 0
    assert (chd_dir / "dump.metadata.json").exists()

    assert cli.main(["--config", str(config_path), "rename", "-s", str(chd_dir)]) == 0
    assert (chd_dir / "Solo (USA).chd").exists()
    assert (chd_dir / "Solo (USA).metadata.json").exists()


def test_verify_partial_needs_accept_closest(tmp_path, config_path, patched_cli, write_dat):
    chd_dir = tmp_path / "chd"
    chd_dir.mkdir()
    (chd_dir / "Solo.chd").write_bytes(b"CHD:payload")
    dat = write_dat({"Solo": [("Solo.bin", b"PAYLOAD")]})
    args = ["--config", str(config_path), "verify", "-s", str(chd_dir), "-d", str(dat)]

    assert cli.main(args) == 1
    assert cli.main(args + ["--accept-closest"]) == 0


def test_verify_with_unreadable_dat(tmp_path, config_path, patched_cli, capsys):
    code = cli.main([
        "--config", str(config_path), "verify", "-s", str(tmp_path), "-d", str(tmp_path / "missing.dat")
    ])

    assert code == 1
    assert "Fatal error" in capsys.readouterr().err


def test_sigterm_becomes_system_exit():
    with pytest.raises(SystemExit) as exc_info:
        cli._raise_system_exit(signal.SIGTERM, None)
    assert exc_info.value.code == 128 + signal.SIGTERM
