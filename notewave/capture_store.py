"""CaptureStore: named, rotatable memories of previously built chords."""

from __future__ import annotations

import logging
import sys
from collections import deque
from dataclasses import dataclass
from enum import Enum

from notewave.errors import BufferEmpty, InvalidCaptureToken, KeyNotFound
from notewave.score_models import Chord

_LOGGER = logging.getLogger(__name__)

DECLARE = "("
CLOSING_BRACKETS: dict[str, str] = {"(": ")", "[": "]", "{": "}", "<": ">"}
CAPTURE_SIGILS = "".join(CLOSING_BRACKETS)

RAISE_OCTAVE = "^8"
LOWER_OCTAVE = "_8"


class ReplayAction(Enum):
    """What happens to a capture buffer at the next update after a replay."""

    SHIFT = "["  # rotate the front chord to the back
    CLEAR = "{"  # delete the whole buffer
    POP = "<"    # drop the front chord


@dataclass(frozen=True)
class Declare:
    key: str


@dataclass(frozen=True)
class Replay:
    key: str
    action: ReplayAction
    scale: float | None = None


def is_capture_token(token: str) -> bool:
    return bool(token) and token[0] in CAPTURE_SIGILS


class CaptureStore:
    """
    Cyclic chord buffers keyed by capture name.

    Mutations are two-phase: ``declare``, ``capture`` and ``replay`` only
    record what should happen, and ``update`` commits it once the current
    line is finished. A replay therefore always sees the buffers as they
    were when the line started.
    """

    def __init__(self) -> None:
        self._buffers: dict[str, deque[Chord]] = {}
        self._to_capture: set[str] = set()
        self._staged: list[tuple[str, Chord]] = []
        self._to_shift: set[str] = set()
        self._to_clear: set[str] = set()
        self._to_pop: set[str] = set()

    # ------------------------------------------------------------------
    # Token recognition
    # ------------------------------------------------------------------

    def recognize(self, token: str) -> Declare | Replay | None:
        """
        Parse a capture token such as ``(x``, ``[x]``, ``{bass_8`` or ``<x^8``.

        Returns:
            None when the token does not start with a capture sigil.

        Raises:
            InvalidCaptureToken: On a mismatched closing bracket, a key
                                 that is not purely alphabetic, or an
                                 octave suffix on a declaration.
        """
        if not is_capture_token(token):
            return None

        sigil, body = token[0], token[1:]
        scale: float | None = None
        if body.endswith(RAISE_OCTAVE):
            scale, body = 2.0, body[: -len(RAISE_OCTAVE)]
        elif body.endswith(LOWER_OCTAVE):
            scale, body = 0.5, body[: -len(LOWER_OCTAVE)]

        if body and body[-1] in CLOSING_BRACKETS.values():
            if body[-1] != CLOSING_BRACKETS[sigil]:
                raise InvalidCaptureToken("mismatched capture bracket", token)
            body = body[:-1]

        if not (body.isascii() and body.isalpha()):
            raise InvalidCaptureToken("capture key must be alphabetic", token)
        key = sys.intern(body)

        if sigil == DECLARE:
            if scale is not None:
                raise InvalidCaptureToken("cannot shift the octave of a declaration", token)
            return Declare(key)
        return Replay(key, ReplayAction(sigil), scale)

    # ------------------------------------------------------------------
    # Marking
    # ------------------------------------------------------------------

    def declare(self, key: str) -> None:
        """Mark ``key`` to receive the next chord that completes."""
        self._buffers.setdefault(key, deque())
        self._to_capture.add(key)

    def replay(self, key: str, action: ReplayAction, scale: float | None = None) -> Chord:
        """
        Return the front chord of ``key`` and schedule ``action`` for update.

        Raises:
            KeyNotFound: ``key`` was never declared (or has been cleared).
            BufferEmpty: ``key`` is declared but holds no committed chord.
        """
        buffer = self._buffers.get(key)
        if buffer is None:
            raise KeyNotFound("capture key not found", key)
        if not buffer:
            raise BufferEmpty("capture buffer is empty", key)

        if action is ReplayAction.SHIFT:
            self._to_shift.add(key)
        elif action is ReplayAction.CLEAR:
            self._to_clear.add(key)
        else:
            self._to_pop.add(key)

        front = buffer[0]
        return front.scale(scale) if scale is not None else front

    def capture(self, chord: Chord) -> None:
        """Stage ``chord`` for every pending declaration, then forget them."""
        for key in self._to_capture:
            self._staged.append((key, chord))
        self._to_capture.clear()

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def update(self) -> None:
        """
        Apply the intents gathered while parsing the current line.

        Clear wins over shift and pop, shift wins over pop. Staged captures
        are appended after the intents are applied.
        """
        for key in self._to_pop - self._to_shift - self._to_clear:
            buffer = self._buffers.get(key)
            if buffer:
                buffer.popleft()
        for key in self._to_shift - self._to_clear:
            buffer = self._buffers.get(key)
            if buffer:
                buffer.rotate(-1)
        for key in self._to_clear:
            self._buffers.pop(key, None)
            _LOGGER.debug("cleared capture %r", key)

        for key, chord in self._staged:
            self._buffers.setdefault(key, deque()).append(chord)
            _LOGGER.debug("captured %d frequencies into %r", len(chord.frequencies), key)

        self._staged.clear()
        self._to_capture.clear()
        self._to_shift.clear()
        self._to_clear.clear()
        self._to_pop.clear()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def __contains__(self, key: object) -> bool:
        return key in self._buffers

    def buffer(self, key: str) -> tuple[Chord, ...]:
        """Committed chords of ``key``, front first."""
        buffer = self._buffers.get(key)
        if buffer is None:
            raise KeyNotFound("capture key not found", key)
        return tuple(buffer)
