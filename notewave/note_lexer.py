"""NoteLexer: classifies transcript tokens as note lengths, pitches or rests."""

from __future__ import annotations

import re
from dataclasses import dataclass

import librosa

from notewave.errors import InvalidLength, InvalidPitch

# ── Token punctuation ───────────────────────────────────────────────────────
TIE = "+"
DOTTED = "."
STACCATO = "*"
REST = "\\"

# ── Piano key numbering ─────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
A4_KEY_NUMBER = 49  # 88-key piano: A0 = 1, A4 = 49, C8 = 88
KEY_TO_MIDI = 20    # key 49 (A4) is MIDI note 69

#: Semitone offset of each tone from A within octave 0, so that
#: key_number = offset + 12 * octave puts A4 on key 49.
TONE_OFFSETS: dict[str, int] = {
    "c": -8,
    "c#": -7, "db": -7,
    "d": -6,
    "d#": -5, "eb": -5,
    "e": -4,
    "f": -3,
    "f#": -2, "gb": -2,
    "g": -1,
    "g#": 0, "ab": 0,
    "a": 1,
    "a#": 2, "bb": 2,
    "b": 3,
}

_PLAIN_RE = re.compile(r"^(\d+)$", re.ASCII)
_DOTTED_RE = re.compile(r"^(\d+)\.$", re.ASCII)
_STACCATO_RE = re.compile(r"^(\d+)\*$", re.ASCII)
_TIE_RE = re.compile(r"^\d+(?:\+\d+)+$", re.ASCII)
_PITCH_RE = re.compile(r"^([a-gA-G][#b]?)(-?\d)$", re.ASCII)


@dataclass(frozen=True)
class Length:
    """
    A note length token.

    Attributes:
        beats:    Sounding duration in whole notes (``4`` → 0.25).
        staccato: The chord still occupies twice ``beats`` in the timeline.
    """

    beats: float
    staccato: bool = False

    @property
    def occupied_beats(self) -> float:
        return self.beats * 2 if self.staccato else self.beats


@dataclass(frozen=True)
class Pitch:
    """A pitch token resolved to Hz; 0.0 is a rest."""

    frequency: float

    @property
    def is_rest(self) -> bool:
        return self.frequency == 0.0


def key_number(tone: str, octave: int) -> int:
    """
    Convert a tone name and octave to a piano key number.

    Args:
        tone:   Lower-case tone with optional accidental, e.g. ``"c#"``.
        octave: Scientific octave number (4 for the Middle C octave).

    Returns:
        Key number where A4 = 49; may fall outside 1..88 for extreme octaves.
    """
    return TONE_OFFSETS[tone] + octave * SEMITONES_PER_OCTAVE


def _reciprocal(denominator: str, token: str) -> float:
    value = int(denominator)
    if value == 0:
        raise InvalidLength("note length has a zero denominator", token)
    return 1.0 / value


class NoteLexer:
    """
    Classifies tokens as Length, Pitch or neither.

    Frequencies follow twelve-tone equal temperament around A4 = 440 Hz and
    are memoized per key number for the lifetime of the lexer.
    """

    def __init__(self) -> None:
        self._frequencies: dict[int, float] = {}

    def classify(self, token: str) -> Length | Pitch | None:
        """
        Classify one whitespace-delimited token.

        Returns:
            Length for digit-led tokens, Pitch for letter-led tokens and the
            rest character, None for anything else.

        Raises:
            InvalidLength: A digit-led token is not a known length shape.
            InvalidPitch:  A letter-led token is not a known pitch shape.
        """
        if not token:
            return None
        first = token[0]
        if first.isascii() and first.isdigit():
            return self.length(token)
        if first.isascii() and first.isalpha():
            return self.pitch(token)
        if token == REST:
            return Pitch(0.0)
        return None

    def length(self, token: str) -> Length:
        if match := _PLAIN_RE.match(token):
            return Length(_reciprocal(match.group(1), token))
        if match := _DOTTED_RE.match(token):
            return Length(1.5 * _reciprocal(match.group(1), token))
        if match := _STACCATO_RE.match(token):
            return Length(0.5 * _reciprocal(match.group(1), token), staccato=True)
        if _TIE_RE.match(token):
            return Length(sum(_reciprocal(part, token) for part in token.split(TIE)))
        raise InvalidLength("invalid token as note length", token)

    def pitch(self, token: str) -> Pitch:
        match = _PITCH_RE.match(token)
        if match is None:
            raise InvalidPitch("invalid token as note pitch", token)
        tone = match.group(1)
        tone = tone[0].lower() + tone[1:]
        return Pitch(self.frequency(key_number(tone, int(match.group(2)))))

    def frequency(self, key: int) -> float:
        """Return the equal-tempered frequency of a piano key, memoized."""
        if key not in self._frequencies:
            self._frequencies[key] = float(librosa.midi_to_hz(key + KEY_TO_MIDI))
        return self._frequencies[key]
