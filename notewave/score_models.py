"""Data models shared by the assembler, the repeat engine and the synthesizer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from notewave.errors import InvalidTiming, MalformedChord

# Seconds per whole note at 1 BPM: 4 quarter beats × 60 s
SECONDS_PER_WHOLE_AT_ONE_BPM = 240.0
INT16_MAX = 32767


@dataclass(frozen=True)
class RenderSettings:
    """Output parameters fixed for a whole run."""

    sample_rate: int = 12_000
    max_voices: int = 8

    @property
    def amplitude(self) -> float:
        """Peak amplitude of a single tone, sized so max_voices tones never clip."""
        return INT16_MAX / self.max_voices


@dataclass
class RenderContext:
    """
    Ambient state threaded through the assembler and the synthesizer.

    Attributes:
        settings: Fixed output parameters.
        bpm:      Current tempo; 0 until the transcript sets one.
    """

    settings: RenderSettings = field(default_factory=RenderSettings)
    bpm: int = 0

    @property
    def sample_rate(self) -> int:
        return self.settings.sample_rate

    @property
    def amplitude(self) -> float:
        return self.settings.amplitude

    def frame_count(self, beats: float) -> int:
        """
        Convert a duration in whole notes to a number of frames.

        Raises:
            InvalidTiming: If the tempo has not been set yet.
        """
        if self.bpm <= 0:
            raise InvalidTiming("tempo is not set while timing a note")
        seconds = beats * SECONDS_PER_WHOLE_AT_ONE_BPM / self.bpm
        return int(seconds * self.sample_rate)


@dataclass(frozen=True)
class Chord:
    """
    Simultaneous frequencies sharing one duration.

    Attributes:
        length:      Frames the tone sounds for (drives the envelope).
        size:        Frames the chord occupies in the timeline. Equal to
                     ``length`` except under staccato, where it is twice it.
        frequencies: Hz per voice; 0.0 marks a rest placeholder.
    """

    length: int
    size: int
    frequencies: tuple[float, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.frequencies

    def scale(self, ratio: float) -> Chord:
        """Return a copy with every frequency multiplied by ``ratio``."""
        return replace(self, frequencies=tuple(freq * ratio for freq in self.frequencies))

    def merge(self, other: Chord) -> Chord:
        """
        Return a chord holding the frequencies of both operands.

        Raises:
            MalformedChord: If the operands differ in length or size.
        """
        if (self.length, self.size) != (other.length, other.size):
            raise MalformedChord(
                f"cannot merge a chord of {other.length}/{other.size} frames "
                f"into one of {self.length}/{self.size} frames"
            )
        return replace(self, frequencies=self.frequencies + other.frequencies)


class ChordBuilder:
    """The chord being assembled from the tokens of one line."""

    def __init__(self) -> None:
        self.length = 0
        self.size = 0
        self.frequencies: list[float] = []

    @property
    def is_empty(self) -> bool:
        return not self.frequencies

    @property
    def has_length(self) -> bool:
        return self.length > 0 or self.size > 0

    def set_length(self, length: int, size: int) -> None:
        self.length = length
        self.size = size

    def add(self, frequency: float) -> None:
        self.frequencies.append(frequency)

    def extend(self, chord: Chord) -> None:
        """
        Merge a replayed chord into this one.

        An empty builder with no length yet borrows the chord's length and
        size; otherwise both must match.
        """
        if self.is_empty and not self.has_length:
            self.set_length(chord.length, chord.size)
        merged = self.freeze().merge(chord)
        self.frequencies = list(merged.frequencies)

    def freeze(self) -> Chord:
        return Chord(length=self.length, size=self.size, frequencies=tuple(self.frequencies))


@dataclass(frozen=True)
class Line:
    """Chords that all start on the same frame."""

    chords: tuple[Chord, ...] = ()

    @property
    def offset(self) -> int:
        """Frames that no later line can still affect (the shortest chord)."""
        return min((chord.size for chord in self.chords), default=0)

    @property
    def size(self) -> int:
        """Frames the accumulator must hold for this line (the longest chord)."""
        return max((chord.size for chord in self.chords), default=0)
