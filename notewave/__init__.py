"""notewave: render a plain-text note transcript to a mono 16-bit WAV file."""

__version__ = "0.1.0"
