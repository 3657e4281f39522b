"""Exception hierarchy raised while interpreting a transcript."""

from __future__ import annotations


class NotewaveError(Exception):
    """Base error for the notewave package."""


class ScoreError(NotewaveError):
    """
    A transcript could not be interpreted.

    Attributes:
        token:       The offending token, when one can be singled out.
        line_number: 1-based input line; attached by the interpreter once
                     the error propagates out of the line being parsed.
    """

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.token = token
        self.line_number: int | None = None

    def __str__(self) -> str:
        text = self.message
        if self.token is not None:
            text = f"{text}: '{self.token}'"
        if self.line_number is not None:
            text = f"line {self.line_number}: {text}"
        return text


class InvalidLength(ScoreError):
    """Raised when a digit-led token is not a valid note length."""


class InvalidPitch(ScoreError):
    """Raised when a token is neither a valid pitch, a rest nor a capture."""


class InvalidCaptureToken(ScoreError):
    """Raised when a capture sigil wraps a malformed key."""


class KeyNotFound(ScoreError):
    """Raised when replaying a capture key that was never declared."""


class BufferEmpty(ScoreError):
    """Raised when replaying a declared capture that holds no chord yet."""


class InvalidRepeatToken(ScoreError):
    """Raised when a repeat line contains an unknown marker."""


class VoltaNotFound(ScoreError):
    """Raised when a repeat marker references a volta that was never opened."""


class VoltaEmpty(ScoreError):
    """Raised when a volta expected to hold lines is empty at replay time."""


class MalformedChord(ScoreError):
    """Raised when merging chords whose length or size differ."""


class LineEmpty(ScoreError):
    """Raised when a line of chords occupies no frames."""


class InvalidTiming(ScoreError):
    """Raised when a note cannot be timed (tempo unset or zero frames)."""


class InvalidTokenSequence(ScoreError):
    """Raised when two adjacent tokens form a forbidden pair."""
