"""
Per-run performance metrics for the transcription pipeline.

Counters and latency samples for one run; `snapshot()` returns the
JSON-serializable view written to the performance report.
"""

import threading
import time
from typing import Any, Dict, List, Optional

from streaming.audio_buffer import bytes_to_duration_ms


def _p95(samples: List[float]) -> Optional[float]:
    if not samples:
        return None
    sorted_s = sorted(samples)
    idx = max(0, int(0.95 * len(sorted_s)) - 1)
    return round(sorted_s[idx], 2)


class RunMetrics:
    """Thread-safe counters for one transcription run."""

    def __init__(self, unit_size: int = 0):
        self.unit_size = unit_size
        self._lock = threading.Lock()
        self._started_at = time.perf_counter()
        self._finished_at: Optional[float] = None
        self._unit_latency_ms: List[float] = []
        self._unit_count = 0
        self._non_empty_units = 0
        self._unit_failures = 0
        self._total_bytes = 0
        self._final_inference_ms: Optional[float] = None

    def record_bytes(self, n: int) -> None:
        """Call for every raw chunk observed from the source."""
        with self._lock:
            self._total_bytes += n

    def record_unit(self, inference_ms: float, empty: bool = False, failed: bool = False) -> None:
        """Call once per recognition unit, successful or not."""
        with self._lock:
            self._unit_count += 1
            self._unit_latency_ms.append(inference_ms)
            if failed:
                self._unit_failures += 1
            elif not empty:
                self._non_empty_units += 1

    def record_final(self, inference_ms: float) -> None:
        with self._lock:
            self._final_inference_ms = inference_ms

    def finish(self) -> None:
        """Stop the wall clock; later snapshots keep the same duration."""
        with self._lock:
            if self._finished_at is None:
                self._finished_at = time.perf_counter()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            latencies = list(self._unit_latency_ms)
            end = self._finished_at if self._finished_at is not None else time.perf_counter()
            elapsed = end - self._started_at
            total_bytes = self._total_bytes
            out = {
                "unit_size": self.unit_size,
                "total_chunks": self._unit_count,
                "non_empty_chunks": self._non_empty_units,
                "chunk_errors": self._unit_failures,
                "total_bytes": total_bytes,
                "final_inference_ms": self._final_inference_ms,
            }
        audio_seconds = bytes_to_duration_ms(total_bytes) / 1000.0
        out["audio_seconds"] = round(audio_seconds, 2)
        out["processing_seconds"] = round(elapsed, 2)
        out["real_time_factor"] = round(elapsed / audio_seconds, 3) if audio_seconds > 0 else None
        out["avg_chunk_latency_ms"] = round(sum(latencies) / len(latencies), 2) if latencies else None
        out["p95_chunk_latency_ms"] = _p95(latencies)
        return out
