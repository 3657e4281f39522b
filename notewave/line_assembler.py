"""LineAssembler: turns the tokens of one transcript line into a Line of Chords."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Union

from notewave.capture_store import CaptureStore, Declare, Replay
from notewave.errors import InvalidPitch, InvalidTokenSequence, ScoreError
from notewave.note_lexer import Length, NoteLexer, Pitch
from notewave.score_models import Chord, ChordBuilder, Line, RenderContext

TokenValue = Union[Length, Pitch, Declare, Replay, None]


class TokenKind(Enum):
    LENGTH = "length"
    PITCH = "pitch"
    DECLARE = "declare"
    REPLAY = "replay"
    END = "end of line"


class Transition(Enum):
    CONTINUE = "continue"  # keep building the current chord
    CLOSE = "close"        # the current chord is complete
    REJECT = "reject"      # forbidden pair


_K = TokenKind
_T = Transition

#: (current kind, next kind) → what happens to the chord in progress.
TRANSITIONS: Final[dict[tuple[TokenKind, TokenKind], Transition]] = {
    (_K.LENGTH, _K.LENGTH): _T.CONTINUE,
    (_K.LENGTH, _K.PITCH): _T.CONTINUE,
    (_K.LENGTH, _K.DECLARE): _T.CONTINUE,
    (_K.LENGTH, _K.REPLAY): _T.CONTINUE,
    (_K.LENGTH, _K.END): _T.CONTINUE,

    (_K.PITCH, _K.LENGTH): _T.CLOSE,
    (_K.PITCH, _K.PITCH): _T.CONTINUE,
    (_K.PITCH, _K.DECLARE): _T.CLOSE,
    (_K.PITCH, _K.REPLAY): _T.CONTINUE,
    (_K.PITCH, _K.END): _T.CLOSE,

    (_K.REPLAY, _K.LENGTH): _T.CLOSE,
    (_K.REPLAY, _K.PITCH): _T.CONTINUE,
    (_K.REPLAY, _K.DECLARE): _T.CLOSE,
    (_K.REPLAY, _K.REPLAY): _T.CONTINUE,
    (_K.REPLAY, _K.END): _T.CLOSE,

    (_K.DECLARE, _K.LENGTH): _T.CONTINUE,
    (_K.DECLARE, _K.PITCH): _T.REJECT,
    (_K.DECLARE, _K.DECLARE): _T.CONTINUE,
    (_K.DECLARE, _K.REPLAY): _T.CONTINUE,
    (_K.DECLARE, _K.END): _T.REJECT,
}


@dataclass(frozen=True)
class Token:
    text: str
    kind: TokenKind
    value: TokenValue = None


END_OF_LINE = Token(text="", kind=TokenKind.END)


class LineAssembler:
    """
    One-token-lookahead state machine over a line of note tokens.

    Each token first applies its own effect to the chord in progress
    (length, pitch, replayed chord or capture declaration); the pair it
    forms with the next token then decides, via ``TRANSITIONS``, whether
    the chord keeps growing, is closed and captured, or is rejected.
    """

    def __init__(
        self,
        context: RenderContext,
        captures: CaptureStore,
        lexer: NoteLexer | None = None,
    ) -> None:
        self.context = context
        self.captures = captures
        self.lexer = lexer if lexer is not None else NoteLexer()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _classify(self, text: str) -> Token:
        capture = self.captures.recognize(text)
        if isinstance(capture, Declare):
            return Token(text, TokenKind.DECLARE, capture)
        if isinstance(capture, Replay):
            return Token(text, TokenKind.REPLAY, capture)

        note = self.lexer.classify(text)
        if isinstance(note, Length):
            return Token(text, TokenKind.LENGTH, note)
        if isinstance(note, Pitch):
            return Token(text, TokenKind.PITCH, note)
        raise InvalidPitch("invalid token as note", text)

    def _apply(self, token: Token, builder: ChordBuilder) -> None:
        value = token.value
        if isinstance(value, Length):
            builder.set_length(
                self.context.frame_count(value.beats),
                self.context.frame_count(value.occupied_beats),
            )
        elif isinstance(value, Pitch):
            if not builder.has_length:
                raise InvalidTokenSequence("pitch has no preceding length")
            builder.add(value.frequency)
        elif isinstance(value, Replay):
            builder.extend(self.captures.replay(value.key, value.action, value.scale))
        elif isinstance(value, Declare):
            self.captures.declare(value.key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def tokenize(self, text: str) -> list[Token]:
        """Classify every token of ``text`` before any of them takes effect."""
        return [self._classify(part) for part in text.split()]

    def assemble(self, text: str) -> Line:
        """
        Build a Line from one transcript line.

        Completed chords are handed to the capture store as they close;
        the caller is responsible for calling ``CaptureStore.update``.

        Raises:
            ScoreError: Any lexing, capture or sequencing failure, with
                        ``token`` set to the offending token.
        """
        tokens = self.tokenize(text)
        builder = ChordBuilder()
        chords: list[Chord] = []

        for token, following in zip(tokens, [*tokens[1:], END_OF_LINE]):
            try:
                self._apply(token, builder)
            except ScoreError as exc:
                if exc.token is None:
                    exc.token = token.text
                raise

            transition = TRANSITIONS[(token.kind, following.kind)]
            if transition is Transition.REJECT:
                raise InvalidTokenSequence(
                    f"{token.kind.value} cannot be followed by {following.kind.value}",
                    token.text,
                )
            if transition is Transition.CLOSE:
                chord = builder.freeze()
                self.captures.capture(chord)
                chords.append(chord)
                builder = ChordBuilder()

        return Line(tuple(chords))
