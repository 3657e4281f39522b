"""Interpreter: drives a transcript through assembly, repeats, synthesis and output."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from pathlib import Path

import numpy as np

from notewave.capture_store import CAPTURE_SIGILS, CaptureStore
from notewave.errors import ScoreError
from notewave.line_assembler import LineAssembler
from notewave.repeat_engine import RepeatEngine, is_repeat_line, parse_marker
from notewave.score_models import Line, RenderContext, RenderSettings
from notewave.synthesizer import WaveformSynthesizer
from notewave.wav_writer import WavWriter

_LOGGER = logging.getLogger(__name__)

REPEAT_SIGILS = "|:"
_TEMPO_RE = re.compile(r"^\d+$", re.ASCII)

SampleSink = Callable[[np.ndarray], None]


def is_comment(text: str) -> bool:
    """A line is ignored unless it opens with a digit, a capture or a repeat sigil."""
    if not text:
        return True
    first = text[0]
    if first.isascii() and first.isdigit():
        return False
    return first not in CAPTURE_SIGILS and first not in REPEAT_SIGILS


class Interpreter:
    """
    Stateful line-by-line reader of a transcript.

    Each chord line is rendered as soon as it is parsed: folded into the
    synthesizer and its resolved prefix handed to ``output``. While a
    repeat is open the same Line is also recorded, and ``:|`` replays the
    recorded Lines through ``emit`` so they take the identical path.
    """

    def __init__(self, output: SampleSink, settings: RenderSettings | None = None) -> None:
        """
        Args:
            output:   Receives int16 sample arrays in playback order.
            settings: Sample rate and voice ceiling; defaults to RenderSettings().
        """
        self.output = output
        self.context = RenderContext(settings if settings is not None else RenderSettings())
        self.captures = CaptureStore()
        self.repeats = RepeatEngine()
        self.assembler = LineAssembler(self.context, self.captures)
        self.synthesizer = WaveformSynthesizer(self.context)
        self.line_number = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse_repeat(self, text: str) -> None:
        for token in text.split():
            try:
                for marker in parse_marker(token):
                    self.repeats.apply(marker, self.emit)
            except ScoreError as exc:
                if exc.token is None:
                    exc.token = token
                raise

    def _parse_line(self, text: str) -> None:
        if is_comment(text):
            return
        if is_repeat_line(text):
            self._parse_repeat(text)
            return
        if _TEMPO_RE.match(text):
            self.context.bpm = int(text)
            _LOGGER.debug("tempo set to %d BPM", self.context.bpm)
            return

        line = self.assembler.assemble(text)
        self.emit(line)
        if self.repeats.recording:
            self.repeats.push(line)
        self.captures.update()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def emit(self, line: Line) -> None:
        """Fold ``line`` and flush the samples no later line can change."""
        self.synthesizer.fold(line)
        self.output(self.synthesizer.drain(line.offset))

    def feed(self, raw_line: str) -> None:
        """
        Interpret one raw input line.

        Raises:
            ScoreError: With ``line_number`` set to this line.
        """
        self.line_number += 1
        try:
            self._parse_line(raw_line.strip())
        except ScoreError as exc:
            exc.line_number = self.line_number
            raise

    def finish(self) -> None:
        """Flush the notes still ringing after the last line."""
        self.output(self.synthesizer.drain_all())

    def run(self, lines: Iterable[str]) -> None:
        for raw_line in lines:
            self.feed(raw_line)
        self.finish()


def render_file(
    input_path: str | Path,
    output_path: str | Path,
    settings: RenderSettings | None = None,
) -> int:
    """
    Render a transcript file to a WAV file.

    The WAV header is only finalized when the whole transcript rendered;
    on failure the partially written file keeps its placeholder sizes.

    Returns:
        Number of frames written.

    Raises:
        ScoreError: On the first malformed line.
        OSError:    If either file cannot be read or written.
    """
    settings = settings if settings is not None else RenderSettings()
    with open(input_path, "r", encoding="utf-8") as source:
        with WavWriter(output_path, settings.sample_rate) as writer:
            interpreter = Interpreter(writer.write, settings)
            interpreter.run(source)
    _LOGGER.info("rendered %d frames from %s", writer.frames_written, input_path)
    return writer.frames_written
