"""WaveformSynthesizer: additive sine synthesis into a drainable sample accumulator."""

from __future__ import annotations

import logging

import numpy as np

from notewave.errors import InvalidTiming, LineEmpty
from notewave.score_models import Line, RenderContext

_LOGGER = logging.getLogger(__name__)

INT16_MIN = -32768
INT16_MAX = 32767


def envelope(x: np.ndarray) -> np.ndarray:
    """Raised-cosine decay from 1 at the note onset to 0 at its end."""
    return 0.5 + 0.5 * np.cos(np.pi * x)


class WaveformSynthesizer:
    """
    Accumulates superimposed tones and releases them front to back.

    The accumulator is kept in int32 so overlapping voices can exceed the
    16-bit range while folding; samples are saturated to int16 only when
    they are drained.

    Usage:

        synth.fold(line)
        samples = synth.drain(line.offset)
    """

    def __init__(self, context: RenderContext) -> None:
        self.context = context
        self._buffer: np.ndarray = np.zeros(0, dtype=np.int32)

    def __len__(self) -> int:
        return int(self._buffer.size)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _grow(self, size: int) -> None:
        if size > self._buffer.size:
            grown = np.zeros(size, dtype=np.int32)
            grown[: self._buffer.size] = self._buffer
            self._buffer = grown

    def _tone(self, frequency: float, length: int) -> np.ndarray:
        """
        Render one note of ``length`` frames, truncated toward zero.

        sample[i] = amplitude * envelope(i / length) * sin(2π f i / rate)
        """
        i = np.arange(length, dtype=np.float64)
        phase = 2.0 * np.pi * frequency * i / self.context.sample_rate
        wave = self.context.amplitude * envelope(i / length) * np.sin(phase)
        return np.trunc(wave).astype(np.int32)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fold(self, line: Line) -> None:
        """
        Add every sounding note of ``line`` onto the accumulator.

        All chords start at the front of the accumulator. Rests (0 Hz) only
        take up room.

        Raises:
            LineEmpty:     The line occupies no frames.
            InvalidTiming: A sounding note lasts zero frames or the tempo
                           is unset.
        """
        size = line.size
        if size == 0:
            raise LineEmpty("line occupies no frames")
        if self.context.bpm <= 0:
            raise InvalidTiming("tempo is not set while rendering a line")

        self._grow(max(size, *(chord.length for chord in line.chords)))
        for chord in line.chords:
            for frequency in chord.frequencies:
                if frequency == 0.0:
                    continue
                if chord.length == 0:
                    raise InvalidTiming(f"note at {frequency:.2f} Hz lasts zero frames")
                self._buffer[: chord.length] += self._tone(frequency, chord.length)

    def drain(self, count: int) -> np.ndarray:
        """Remove and return the first ``count`` samples as saturated int16."""
        count = min(count, self._buffer.size)
        head = self._buffer[:count]
        self._buffer = self._buffer[count:].copy()
        return np.clip(head, INT16_MIN, INT16_MAX).astype(np.int16)

    def drain_all(self) -> np.ndarray:
        """Flush whatever is still ringing at the end of the transcript."""
        _LOGGER.debug("flushing %d trailing samples", self._buffer.size)
        return self.drain(self._buffer.size)
