"""End-to-end tests: transcripts rendered through the Interpreter."""

from pathlib import Path

import numpy as np
import pytest

from notewave.errors import (
    BufferEmpty,
    InvalidLength,
    InvalidRepeatToken,
    KeyNotFound,
    LineEmpty,
    VoltaNotFound,
)
from notewave.interpreter import Interpreter, is_comment, render_file
from notewave.score_models import RenderSettings
from notewave.wav_writer import HEADER, HEADER_SIZE


def _render(text: str, settings: RenderSettings | None = None) -> np.ndarray:
    chunks: list[np.ndarray] = []
    Interpreter(chunks.append, settings).run(text.splitlines())
    return np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.int16)


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text", ["", "# title", "tempo follows", "-- 4 a4", "a4 4"])
def test_comment_lines(text: str) -> None:
    assert is_comment(text)


@pytest.mark.parametrize("text", ["4 a4", "120", "(x 4 a4", "[x", "{x", "<x", "|:", ":|"])
def test_non_comment_lines(text: str) -> None:
    assert not is_comment(text)


def test_comments_and_blank_lines_render_nothing() -> None:
    with_comments = _render("# intro\n60\n\n   \nverse one\n4 a4\n# end | of song\n")
    plain = _render("60\n4 a4\n")
    assert np.array_equal(with_comments, plain)


def test_tempo_line_changes_frame_count() -> None:
    assert _render("60\n4 a4\n").size == 12_000
    assert _render("120\n4 a4\n").size == 6_000


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

@pytest.mark.integration
def test_whole_note_chord_at_four_bpm(tmp_path: Path) -> None:
    source = tmp_path / "input.txt"
    source.write_text("4\n1 a4 c4\n", encoding="utf-8")
    out = tmp_path / "output.wav"

    frames = render_file(source, out)

    # one whole note at 4 BPM lasts 60 s
    assert frames == 60 * 12_000
    fields = HEADER.unpack(out.read_bytes()[:HEADER_SIZE])
    assert fields[-1] == frames * 2
    samples = np.frombuffer(out.read_bytes()[HEADER_SIZE:], dtype="<i2")
    assert samples.size == frames
    assert np.any(samples != 0)
    assert np.max(np.abs(samples.astype(np.int32))) <= 2 * RenderSettings().amplitude


def test_capture_replay_merges_with_pitch() -> None:
    merged = _render("60\n(x 4 a4\n[x c4\n")
    expected = _render("60\n4 a4\n4 a4 c4\n")
    assert np.array_equal(merged, expected)


def test_capture_rotates_between_lines() -> None:
    rotated = _render("60\n(x 4 a4\n(x 4 c4\n[x\n[x\n[x\n")
    expected = _render("60\n4 a4\n4 c4\n4 a4\n4 c4\n4 a4\n")
    assert np.array_equal(rotated, expected)


def test_capture_octave_shift() -> None:
    shifted = _render("60\n(x 4 a4\n[x^8\n{x_8\n")
    expected = _render("60\n4 a4\n4 a5\n4 a3\n")
    assert np.array_equal(shifted, expected)


def test_pop_consumes_captures_in_order() -> None:
    popped = _render("60\n(x 4 a4\n(x 4 c4\n<x\n<x\n")
    expected = _render("60\n4 a4\n4 c4\n4 a4\n4 c4\n")
    assert np.array_equal(popped, expected)


def test_repeat_without_endings_closes_before_volta() -> None:
    with pytest.raises(VoltaNotFound) as excinfo:
        _render("60\n|:\n4 a4\n:| |2.\n")
    assert excinfo.value.token == "|2."


def test_repeat_with_two_endings() -> None:
    transcript = "60\n|:\n4 a4\n|1.\n4 b4\n:|\n|2.\n4 c4\n:|\n4 d4\n"
    expected = "60\n4 a4\n4 b4\n4 a4\n4 c4\n4 a4\n4 d4\n"
    assert np.array_equal(_render(transcript), _render(expected))


def test_repeat_markers_may_share_a_line() -> None:
    transcript = "60\n|:\n4 a4\n|1.\n4 b4\n:| |2.\n4 c4\n|\n"
    expected = "60\n4 a4\n4 b4\n4 a4\n4 c4\n"
    assert np.array_equal(_render(transcript), _render(expected))


def test_replayed_lines_keep_captured_content() -> None:
    transcript = "60\n(x 4 a4\n|:\n[x\n:|\n"
    expected = "60\n4 a4\n4 a4\n4 a4\n"
    assert np.array_equal(_render(transcript), _render(expected))


def test_long_notes_ring_into_the_next_line() -> None:
    samples = _render("60\n2 a4 4 c4\n4 e4\n")
    assert samples.size == 24_000
    alone = _render("60\n2 a4\n")
    # the second line starts a quarter in, while the half note still rings
    assert not np.array_equal(samples[12_000:], alone[12_000:])


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@pytest.mark.integration
def test_malformed_length_aborts_without_finalizing(tmp_path: Path) -> None:
    source = tmp_path / "input.txt"
    source.write_text("4\n1 a4\n4%\n", encoding="utf-8")
    out = tmp_path / "output.wav"

    with pytest.raises(InvalidLength) as excinfo:
        render_file(source, out)

    assert excinfo.value.line_number == 3
    assert excinfo.value.token == "4%"
    assert str(excinfo.value).startswith("line 3:")
    fields = HEADER.unpack(out.read_bytes()[:HEADER_SIZE])
    assert fields[1] == 0
    assert fields[-1] == 0


def test_replay_after_clear_fails() -> None:
    with pytest.raises(KeyNotFound) as excinfo:
        _render("60\n(x 4 a4\n{x\n[x\n")
    assert excinfo.value.line_number == 4


def test_replay_of_same_line_capture_fails() -> None:
    with pytest.raises(BufferEmpty):
        _render("60\n(x 4 a4 8 [x\n")


def test_line_without_notes_is_empty() -> None:
    with pytest.raises(LineEmpty):
        _render("60\n4 8\n")


def test_volta_without_repeat_start() -> None:
    with pytest.raises(VoltaNotFound) as excinfo:
        _render("60\n4 a4\n|1.\n")
    assert excinfo.value.token == "|1."


def test_junk_on_repeat_line() -> None:
    with pytest.raises(InvalidRepeatToken) as excinfo:
        _render("60\n|: 4 a4\n")
    assert excinfo.value.line_number == 2
