"""Tests for the notewave click command."""

from pathlib import Path

from click.testing import CliRunner

from notewave import __version__
from notewave.cli import main


def test_defaults_to_input_txt_and_output_wav() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("input.txt").write_text("240\n4 a4 c4 e4\n", encoding="utf-8")
        result = runner.invoke(main, [])
        assert result.exit_code == 0, result.output
        assert Path("output.wav").exists()
        assert "Done!" in result.output


def test_explicit_paths_and_rate(tmp_path: Path) -> None:
    source = tmp_path / "song.txt"
    source.write_text("60\n8 a4\n", encoding="utf-8")
    out = tmp_path / "song.wav"
    result = CliRunner().invoke(main, [str(source), str(out), "--rate", "8000"])
    assert result.exit_code == 0, result.output
    # an eighth at 60 BPM is half a second
    assert out.stat().st_size == 44 + 4_000 * 2


def test_parse_error_exits_non_zero(tmp_path: Path) -> None:
    source = tmp_path / "bad.txt"
    source.write_text("60\n4 q4\n", encoding="utf-8")
    result = CliRunner().invoke(main, [str(source), str(tmp_path / "bad.wav")])
    assert result.exit_code == 1
    assert "ERROR" in result.output
    assert "line 2" in result.output


def test_undecodable_input_exits_non_zero(tmp_path: Path) -> None:
    source = tmp_path / "latin1.txt"
    source.write_bytes(b"60\n# caf\xe9\n4 a4\n")
    result = CliRunner().invoke(main, [str(source), str(tmp_path / "latin1.wav")])
    assert result.exit_code == 1
    assert "ERROR" in result.output
    assert "UTF-8" in result.output


def test_missing_input_exits_non_zero(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, [str(tmp_path / "absent.txt")])
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
