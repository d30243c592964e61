"""
Chunk accumulator for streaming recognition.

Accepts PCM chunks of any size and slices them into fixed-size recognition
units. Unit boundaries depend only on the cumulative byte count, never on how
the producer happened to split its chunks. Whatever is left after the source
ends is handed out once by `flush_remainder()`.
"""

from typing import List, Optional

# 16 kHz mono, 16-bit = 32000 bytes/sec
SAMPLE_RATE = 16000
BYTES_PER_SAMPLE = 2
BYTES_PER_SECOND = SAMPLE_RATE * BYTES_PER_SAMPLE


def bytes_to_duration_ms(num_bytes: int) -> float:
    """Convert raw audio byte count to duration in milliseconds."""
    if num_bytes <= 0:
        return 0.0
    return (num_bytes / BYTES_PER_SECOND) * 1000.0


def duration_ms_to_bytes(ms: float) -> int:
    """Convert duration in ms to byte count for 16 kHz 16-bit mono (whole samples)."""
    n = int((ms / 1000.0) * BYTES_PER_SECOND)
    return n - (n % BYTES_PER_SAMPLE)


class ChunkAccumulator:
    """
    Single-run accumulation buffer.

    - `append(chunk)` concatenates the chunk and returns every complete unit
      of exactly `unit_size` bytes now available, oldest first.
    - After `append` returns, fewer than `unit_size` bytes are pending.
    - `flush_remainder()` returns the pending tail (or None if empty) and
      closes the accumulator.
    """

    def __init__(self, unit_size: int):
        """
        Args:
            unit_size: Recognition unit length in bytes. Must be a positive
                multiple of BYTES_PER_SAMPLE so no sample is split.
        """
        if unit_size <= 0 or unit_size % BYTES_PER_SAMPLE != 0:
            raise ValueError(
                f"unit_size must be a positive multiple of {BYTES_PER_SAMPLE} bytes, got {unit_size}"
            )
        self.unit_size = unit_size
        self._buffer = bytearray()
        self._total_appended = 0
        self._units_emitted = 0
        self._flushed = False

    def append(self, chunk: bytes) -> List[bytes]:
        """Append a raw audio chunk; return the complete units it produced (may be empty)."""
        if self._flushed:
            raise RuntimeError("ChunkAccumulator already flushed")
        if not chunk:
            return []
        self._buffer.extend(chunk)
        self._total_appended += len(chunk)

        units: List[bytes] = []
        while len(self._buffer) >= self.unit_size:
            units.append(bytes(self._buffer[:self.unit_size]))
            del self._buffer[:self.unit_size]
        self._units_emitted += len(units)
        return units

    def flush_remainder(self) -> Optional[bytes]:
        """
        Hand out the leftover bytes as a final, possibly undersized unit.
        Returns None if nothing is pending. Call once, after the source ends.
        """
        if self._flushed:
            raise RuntimeError("ChunkAccumulator already flushed")
        self._flushed = True
        if not self._buffer:
            return None
        remainder = bytes(self._buffer)
        self._buffer.clear()
        self._units_emitted += 1
        return remainder

    @property
    def pending_bytes(self) -> int:
        """Bytes waiting for the next unit."""
        return len(self._buffer)

    @property
    def units_emitted(self) -> int:
        return self._units_emitted

    def total_appended_bytes(self) -> int:
        """Total bytes ever appended (for stats)."""
        return self._total_appended
