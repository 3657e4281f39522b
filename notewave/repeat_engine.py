"""RepeatEngine: records repeated sections and alternate endings, then replays them."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from notewave.errors import InvalidRepeatToken, VoltaEmpty, VoltaNotFound
from notewave.score_models import Line

_LOGGER = logging.getLogger(__name__)

REPEAT = "|"
PRE_VOLTA = 0

_VOLTA_START_RE = re.compile(r"^\|(\d+(?:\.\d+)*)\.?$", re.ASCII)

LineSink = Callable[[Line], None]


class MarkerKind(Enum):
    REPEAT_START = "|:"
    REPEAT_END = ":|"
    VOLTA_START = "|n."
    VOLTA_END = "|"


@dataclass(frozen=True)
class RepeatMarker:
    kind: MarkerKind
    indices: tuple[int, ...] = ()


def is_repeat_line(text: str) -> bool:
    return REPEAT in text


def parse_marker(token: str) -> list[RepeatMarker]:
    """
    Parse one repeat token.

    ``:|:`` closes a repeat and immediately opens the next one, so it yields
    two markers.

    Raises:
        InvalidRepeatToken: For anything that is not a repeat marker.
    """
    if token == "|":
        return [RepeatMarker(MarkerKind.VOLTA_END)]
    if token == "|:":
        return [RepeatMarker(MarkerKind.REPEAT_START)]
    if token == ":|":
        return [RepeatMarker(MarkerKind.REPEAT_END)]
    if token == ":|:":
        return [RepeatMarker(MarkerKind.REPEAT_END), RepeatMarker(MarkerKind.REPEAT_START)]

    match = _VOLTA_START_RE.match(token)
    if match is None:
        raise InvalidRepeatToken("invalid token as repeat", token)
    indices = tuple(int(part) for part in match.group(1).split("."))
    if PRE_VOLTA in indices:
        raise InvalidRepeatToken("volta numbers start at 1", token)
    return [RepeatMarker(MarkerKind.VOLTA_START, indices)]


def _describe(index: int) -> str:
    return "pre-volta" if index == PRE_VOLTA else f"volta no. {index}"


class RepeatEngine:
    """
    Records the lines of a repeat structure and replays them on ``:|``.

    Volta index 0 holds the repeated body; indices 1..N hold alternate
    endings. Indices named on the same volta-start marker (``|1.3.``)
    share one list of lines. ``current`` is the index lines are recorded
    into; ``ending`` is the pass through the structure being played live.

    Lines are played live by the caller as they are parsed. The engine
    only re-emits recorded lines, through the sink given to ``repeat``,
    so replayed material follows the same fold/drain/write path.
    """

    def __init__(self) -> None:
        self._voltas: dict[int, list[Line]] = {}
        self.current = PRE_VOLTA
        self.ending = 1

    @property
    def recording(self) -> bool:
        return bool(self._voltas)

    def volta(self, index: int) -> tuple[Line, ...]:
        lines = self._voltas.get(index)
        if lines is None:
            raise VoltaNotFound(f"{_describe(index)} is not found")
        return tuple(lines)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Open a new repeat: only the pre-volta is recorded."""
        if self.recording:
            _LOGGER.debug("repeat start discards an unfinished structure")
        self._voltas = {PRE_VOLTA: []}
        self.current = PRE_VOLTA
        self.ending = 1

    def start_voltas(self, indices: tuple[int, ...]) -> None:
        """
        Open the alternate endings named by ``indices`` and record into them.

        Raises:
            VoltaNotFound: No repeat is open.
        """
        if not self.recording:
            raise VoltaNotFound("pre-volta is not found while starting voltas")
        shared: list[Line] = []
        for index in indices:
            if index != self.current:
                self._voltas.setdefault(index, shared)
        self.current = indices[0]
        _LOGGER.debug("recording into volta %s", ".".join(map(str, indices)))

    def push(self, line: Line) -> None:
        """
        Append ``line`` to the volta being recorded.

        Raises:
            VoltaNotFound: The current index was never opened.
        """
        lines = self._voltas.get(self.current)
        if lines is None:
            raise VoltaNotFound(f"{_describe(self.current)} is not found while recording a line")
        lines.append(line)

    def clear(self) -> None:
        self._voltas = {}
        self.current = PRE_VOLTA
        self.ending = 1

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def _write(self, index: int, sink: LineSink) -> None:
        lines = self._voltas.get(index)
        if lines is None:
            raise VoltaNotFound(f"{_describe(index)} is not found while replaying")
        if not lines:
            raise VoltaEmpty(f"{_describe(index)} is empty while replaying")
        for line in tuple(lines):
            sink(line)

    def repeat(self, sink: LineSink) -> None:
        """
        Replay the structure for a ``:|`` marker.

        Emits the pre-volta, then moves on to the next ending. If that
        ending was already recorded (it shared a marker with an earlier
        one) it will not appear again in the input, so it is emitted here
        followed by the pre-volta once more. The session ends when it has
        no alternate endings at all.

        Raises:
            VoltaNotFound: No repeat is open.
            VoltaEmpty:    The pre-volta holds no lines.
        """
        if not self.recording:
            raise VoltaNotFound("pre-volta is not found while repeating")

        self._write(PRE_VOLTA, sink)
        self.ending += 1
        if self._voltas.get(self.ending):
            self._write(self.ending, sink)
            self._write(PRE_VOLTA, sink)
            self.ending += 1

        # Only a bare repeat closes itself. With endings the session stays
        # open after the last :| and keeps recording into the current volta
        # until a lone | or the next |: ends it.
        if len(self._voltas) == 1:
            self.clear()

    def apply(self, marker: RepeatMarker, sink: LineSink) -> None:
        """Dispatch one parsed marker."""
        if marker.kind is MarkerKind.REPEAT_START:
            self.start()
        elif marker.kind is MarkerKind.VOLTA_START:
            self.start_voltas(marker.indices)
        elif marker.kind is MarkerKind.REPEAT_END:
            self.repeat(sink)
        else:
            self.clear()
