"""Unit tests for the LineAssembler token-pair state machine."""

from itertools import product

import pytest

from notewave.capture_store import CaptureStore
from notewave.errors import (
    BufferEmpty,
    InvalidPitch,
    InvalidTiming,
    InvalidTokenSequence,
    MalformedChord,
)
from notewave.line_assembler import TRANSITIONS, LineAssembler, TokenKind
from notewave.score_models import RenderContext, RenderSettings

A4 = 440.0
C4 = pytest.approx(261.6256, abs=1e-4)

# 60 BPM at 12 kHz: a quarter note (0.25 whole) lasts one second
QUARTER = 12_000


def _assembler(bpm: int = 60) -> LineAssembler:
    context = RenderContext(RenderSettings(sample_rate=12_000), bpm=bpm)
    return LineAssembler(context, CaptureStore())


def test_transition_table_covers_every_pair() -> None:
    sources = [kind for kind in TokenKind if kind is not TokenKind.END]
    assert set(TRANSITIONS) == set(product(sources, TokenKind))


def test_pitches_accumulate_into_one_chord() -> None:
    line = _assembler().assemble("4 a4 c4")
    assert len(line.chords) == 1
    chord = line.chords[0]
    assert chord.frequencies == (A4, C4)
    assert chord.length == chord.size == QUARTER


def test_length_closes_previous_chord() -> None:
    line = _assembler().assemble("4 a4 8 c4 e4")
    assert [len(chord.frequencies) for chord in line.chords] == [1, 2]
    assert line.size == QUARTER
    assert line.offset == QUARTER // 2


def test_staccato_chord_sounds_half_its_slot() -> None:
    chord = _assembler().assemble("4* a4").chords[0]
    assert chord.size == QUARTER
    assert chord.length == QUARTER // 2


def test_rest_occupies_a_slot() -> None:
    line = _assembler().assemble("2 \\ 4 a4")
    assert line.chords[0].frequencies == (0.0,)
    assert line.size == 2 * QUARTER
    assert line.offset == QUARTER


def test_trailing_length_adds_nothing() -> None:
    line = _assembler().assemble("4 a4 8")
    assert len(line.chords) == 1


def test_line_of_lengths_is_empty() -> None:
    assert _assembler().assemble("4 8").chords == ()


def test_declare_then_pitch_is_rejected() -> None:
    with pytest.raises(InvalidTokenSequence) as excinfo:
        _assembler().assemble("(x a4")
    assert excinfo.value.token == "(x"


def test_declare_at_end_of_line_is_rejected() -> None:
    with pytest.raises(InvalidTokenSequence):
        _assembler().assemble("4 a4 (x")


def test_unknown_token_is_rejected() -> None:
    with pytest.raises(InvalidPitch) as excinfo:
        _assembler().assemble("4 a4 %")
    assert excinfo.value.token == "%"


def test_tempo_must_be_set() -> None:
    with pytest.raises(InvalidTiming):
        _assembler(bpm=0).assemble("4 a4")


def test_declared_key_receives_the_next_closed_chord() -> None:
    assembler = _assembler()
    assembler.assemble("4 a4 (x 8 c4 e4")
    assembler.captures.update()
    (captured,) = assembler.captures.buffer("x")
    assert captured.frequencies == (C4, pytest.approx(329.6276, abs=1e-4))
    assert captured.size == QUARTER // 2


def test_replay_merges_with_following_pitch() -> None:
    assembler = _assembler()
    assembler.assemble("(x 4 a4")
    assembler.captures.update()
    line = assembler.assemble("[x c4")
    assert len(line.chords) == 1
    chord = line.chords[0]
    assert chord.frequencies == (A4, C4)
    assert chord.length == chord.size == QUARTER


def test_pitch_then_replay_stay_in_one_chord() -> None:
    assembler = _assembler()
    assembler.assemble("(x 4 a4")
    assembler.captures.update()
    line = assembler.assemble("4 c4 [x")
    assert [chord.frequencies for chord in line.chords] == [(C4, A4)]


def test_replay_with_mismatched_length_is_malformed() -> None:
    assembler = _assembler()
    assembler.assemble("(x 1 a4")
    assembler.captures.update()
    with pytest.raises(MalformedChord) as excinfo:
        assembler.assemble("4 c4 [x")
    assert excinfo.value.token == "[x"


def test_merge_order_does_not_change_frequencies() -> None:
    assembler = _assembler()
    assembler.assemble("(x 4 a4 c4 (y 4 e4")
    assembler.captures.update()
    forward = assembler.assemble("[x [y").chords[0]
    assembler.captures.update()
    backward = assembler.assemble("[y [x").chords[0]
    assert sorted(forward.frequencies) == sorted(backward.frequencies)
    assert (forward.length, forward.size) == (backward.length, backward.size)


def test_replay_sees_buffer_as_of_line_start() -> None:
    with pytest.raises(BufferEmpty):
        _assembler().assemble("(x 4 a4 8 [x")


def test_captured_chord_survives_later_lines() -> None:
    assembler = _assembler()
    assembler.assemble("(x 4 a4")
    assembler.captures.update()
    first = assembler.captures.buffer("x")[0]
    assembler.assemble("[x c4")
    assembler.captures.update()
    assert assembler.captures.buffer("x") == (first,)
    assert first.frequencies == (A4,)
