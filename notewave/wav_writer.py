"""WavWriter: streams 16-bit mono PCM samples into a RIFF/WAVE file."""

from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import BinaryIO

import numpy as np

_LOGGER = logging.getLogger(__name__)

# Canonical 44-byte header: RIFF chunk, 16-byte fmt chunk, data chunk header.
# The two size fields are written as 0 and patched by finish().
HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
HEADER_SIZE = HEADER.size          # 44
RIFF_SIZE_OFFSET = 4               # file size - 8
DATA_SIZE_OFFSET = 40              # number of sample bytes
RIFF_OVERHEAD = HEADER_SIZE - 8    # 36

FMT_CHUNK_SIZE = 16
FORMAT_PCM = 1
CHANNELS = 1
SAMPLE_WIDTH = 2                   # bytes per sample
BITS_PER_SAMPLE = SAMPLE_WIDTH * 8


class WavWriter:
    """
    Writes a mono 16-bit WAV file incrementally.

    The header goes out first with placeholder sizes; samples are appended
    as they are drained from the synthesizer; ``finish`` seeks back and
    writes the true sizes. Used as a context manager, the header is only
    patched when the block exits cleanly, so a failed render leaves a file
    that still advertises zero samples:

        with WavWriter("output.wav", sample_rate=12000) as writer:
            writer.write(samples)
    """

    def __init__(self, output_path: str | Path, sample_rate: int) -> None:
        """
        Args:
            output_path: Destination file path (e.g. "output.wav").
            sample_rate: Frames per second written into the fmt chunk.
        """
        self.output_path = Path(output_path)
        self.sample_rate = sample_rate
        self.frames_written = 0
        self._file: BinaryIO | None = None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _placeholder_header(self) -> bytes:
        byte_rate = self.sample_rate * CHANNELS * SAMPLE_WIDTH
        block_align = CHANNELS * SAMPLE_WIDTH
        return HEADER.pack(
            b"RIFF", 0, b"WAVE",
            b"fmt ", FMT_CHUNK_SIZE, FORMAT_PCM, CHANNELS,
            self.sample_rate, byte_rate, block_align, BITS_PER_SAMPLE,
            b"data", 0,
        )

    def _require_open(self) -> BinaryIO:
        if self._file is None:
            raise ValueError("WavWriter is not started.")
        return self._file

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def data_size(self) -> int:
        return self.frames_written * SAMPLE_WIDTH

    def start(self) -> None:
        """
        Open the output file and write the placeholder header.

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        self._file = open(self.output_path, "wb")
        self._file.write(self._placeholder_header())
        self.frames_written = 0

    def write(self, samples: np.ndarray) -> None:
        """Append int16 samples in little-endian order."""
        if samples.size == 0:
            return
        handle = self._require_open()
        handle.write(np.asarray(samples, dtype="<i2").tobytes())
        self.frames_written += int(samples.size)

    def finish(self) -> None:
        """Patch the RIFF and data sizes, then close the file."""
        handle = self._require_open()
        handle.seek(RIFF_SIZE_OFFSET)
        handle.write(struct.pack("<I", RIFF_OVERHEAD + self.data_size))
        handle.seek(DATA_SIZE_OFFSET)
        handle.write(struct.pack("<I", self.data_size))
        self.close()
        _LOGGER.debug("wrote %d frames to %s", self.frames_written, self.output_path)

    def close(self) -> None:
        """Close the file without touching the header."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "WavWriter":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.finish()
        else:
            self.close()
