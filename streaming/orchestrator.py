"""
Transcription orchestrator: Source -> ChunkAccumulator -> Engine.

Two recognition passes per run:
- incremental: one engine call per fixed-size unit (plus the flushed tail),
  results kept in emission order;
- final: one engine call over every raw byte the source produced, run only
  after the source is exhausted. It is not a join of the incremental texts.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from core.errors import (
    EngineFinalError,
    EngineUnitError,
    ScorerDomainError,
    SourceError,
    TranscriptionError,
)
from core.metrics import ScoreResult, score_transcript
from metrics.run_metrics import RunMetrics
from streaming.audio_buffer import ChunkAccumulator
from streaming.report import ReportSink

logger = logging.getLogger(__name__)


@dataclass
class UnitTranscript:
    """Recognition output for one unit; `error` is set instead of text on failure."""
    index: int
    text: str
    byte_offset: int
    byte_length: int
    inference_ms: float = 0.0
    error: Optional[str] = None
    is_final_unit: bool = False
    exception: Optional[EngineUnitError] = field(default=None, repr=False, compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "text": self.text,
            "byte_offset": self.byte_offset,
            "byte_length": self.byte_length,
            "inference_ms": self.inference_ms,
            "error": self.error,
            "empty": self.is_empty,
            "final_unit": self.is_final_unit,
        }


@dataclass
class TranscriptionResult:
    """Everything a run produced. final_transcript is None if the run aborted first."""
    incremental: List[UnitTranscript] = field(default_factory=list)
    final_transcript: Optional[str] = None
    total_bytes: int = 0
    metrics: Dict[str, Any] = field(default_factory=dict)
    score: Optional[ScoreResult] = None

    @property
    def incremental_texts(self) -> List[str]:
        return [u.text for u in self.incremental]

    @property
    def failed_units(self) -> List[UnitTranscript]:
        return [u for u in self.incremental if u.is_error]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incremental": [u.to_dict() for u in self.incremental],
            "final_transcript": self.final_transcript,
            "total_bytes": self.total_bytes,
            "metrics": self.metrics,
            "score": self.score.to_dict() if self.score else None,
        }


class TranscriptionOrchestrator:
    """
    Drives one or more transcription runs with an engine handle it does not own.

    Args:
        engine: Object with recognize(bytes) -> str.
        unit_size: Recognition unit size in bytes (positive multiple of 2).
        sink: Optional ReportSink receiving results as they are produced. It
            stays open across runs; closing it is up to the caller.
    """

    def __init__(self, engine: Any, unit_size: int, sink: Optional[ReportSink] = None):
        # Fail on a bad unit size before any audio is read
        ChunkAccumulator(unit_size)
        self.engine = engine
        self.unit_size = unit_size
        self.sink = sink or ReportSink()
        self.last_result: Optional[TranscriptionResult] = None

    def run(
        self,
        source: Iterable[bytes],
        reference: Optional[str] = None,
        source_name: Optional[str] = None,
        input_size_bytes: Optional[int] = None,
        sink: Optional[ReportSink] = None,
    ) -> TranscriptionResult:
        """
        Transcribe a PCM source.

        A sink passed to this call is closed when the run ends; the
        orchestrator's own sink is left open for later runs.

        Raises:
            SourceError: the source failed or produced no audio; exc.partial_result
                holds the units so far.
            EngineFinalError: the full-buffer pass failed.
            ScorerDomainError: reference given but has no words.
        """
        owns_sink = sink is not None
        sink = sink or self.sink
        accumulator = ChunkAccumulator(self.unit_size)
        run_metrics = RunMetrics(unit_size=self.unit_size)
        result = TranscriptionResult()
        self.last_result = result
        raw_chunks: List[bytes] = []

        try:
            sink.on_start(source_name, input_size_bytes)
            for chunk in self._read_source(source, result):
                if not chunk:
                    continue
                raw_chunks.append(chunk)
                result.total_bytes += len(chunk)
                run_metrics.record_bytes(len(chunk))
                for unit in accumulator.append(chunk):
                    self._recognize_unit(unit, result, run_metrics, sink)

            remainder = accumulator.flush_remainder()
            if remainder is not None:
                self._recognize_unit(remainder, result, run_metrics, sink, is_final_unit=True)

            result.final_transcript = self._recognize_full(b"".join(raw_chunks), result, run_metrics)
            sink.on_final(result.final_transcript)

            if reference is not None:
                try:
                    result.score = score_transcript(reference, result.final_transcript)
                except ScorerDomainError as e:
                    raise ScorerDomainError(str(e), partial_result=result) from e
                sink.on_score(result.score, reference, result.final_transcript)

            run_metrics.finish()
            result.metrics = run_metrics.snapshot()
            sink.on_metrics(result.metrics)
            logger.info(
                "Transcription finished: %d units (%d failed), %d bytes, %.2fs",
                len(result.incremental),
                len(result.failed_units),
                result.total_bytes,
                result.metrics["processing_seconds"],
            )
            return result
        except TranscriptionError as e:
            run_metrics.finish()
            result.metrics = run_metrics.snapshot()
            logger.error("Transcription aborted after %d units: %s", len(result.incremental), e)
            sink.on_error(e)
            raise
        finally:
            if owns_sink:
                sink.close()

    @staticmethod
    def _read_source(source: Iterable[bytes], result: TranscriptionResult) -> Iterator[bytes]:
        """Iterate the source, turning any producer failure into SourceError."""
        try:
            chunks = iter(source)
            while True:
                try:
                    chunk = next(chunks)
                except StopIteration:
                    return
                yield chunk
        except SourceError as e:
            raise SourceError(str(e), partial_result=result) from e
        except Exception as e:
            raise SourceError(f"PCM source failed: {e}", partial_result=result) from e

    def _recognize_unit(
        self,
        unit: bytes,
        result: TranscriptionResult,
        run_metrics: RunMetrics,
        sink: ReportSink,
        is_final_unit: bool = False,
    ) -> UnitTranscript:
        index = len(result.incremental) + 1
        last = result.incremental[-1] if result.incremental else None
        offset = last.byte_offset + last.byte_length if last else 0
        start = time.perf_counter()
        try:
            text = self.engine.recognize(unit)
            error = None
            unit_error = None
        except Exception as e:
            unit_error = EngineUnitError(str(e), unit_index=index)
            unit_error.__cause__ = e
            logger.warning("Error processing chunk %d: %s", index, e)
            text, error = "", str(e)
        inference_ms = round((time.perf_counter() - start) * 1000, 2)

        record = UnitTranscript(
            index=index,
            text=(text or "").strip(),
            byte_offset=offset,
            byte_length=len(unit),
            inference_ms=inference_ms,
            error=error,
            is_final_unit=is_final_unit,
            exception=unit_error,
        )
        result.incremental.append(record)
        run_metrics.record_unit(inference_ms, empty=record.is_empty, failed=record.is_error)
        if not record.is_error:
            logger.debug("Unit %d (%d bytes): %r", index, len(unit), record.text)
        sink.on_unit(record)
        return record

    def _recognize_full(self, audio: bytes, result: TranscriptionResult, run_metrics: RunMetrics) -> str:
        if not audio:
            raise SourceError("Source produced no audio", partial_result=result)
        start = time.perf_counter()
        try:
            text = self.engine.recognize(audio)
        except Exception as e:
            raise EngineFinalError(f"Final recognition pass failed: {e}", partial_result=result) from e
        run_metrics.record_final(round((time.perf_counter() - start) * 1000, 2))
        return (text or "").strip()
