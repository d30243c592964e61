"""
Report sinks: where incremental results, the final transcript, scoring and
performance metrics of a run end up.

Calls arrive per run in order: on_start, on_unit*, on_final, on_score?,
on_metrics. on_error replaces the tail when a run aborts. A sink may see
several runs; whoever created it calls close() once at the end.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def report_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp safe for file names (":" and "." replaced by "-")."""
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z").replace(":", "-").replace(".", "-")


class ReportSink:
    """No-op sink; subclasses override what they need."""

    def on_start(self, source_name: Optional[str], input_size_bytes: Optional[int] = None) -> None:
        pass

    def on_unit(self, unit: Any) -> None:
        pass

    def on_final(self, text: str) -> None:
        pass

    def on_score(self, score: Any, reference: str, hypothesis: str) -> None:
        pass

    def on_metrics(self, metrics: Dict[str, Any]) -> None:
        pass

    def on_error(self, error: BaseException) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "ReportSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class LoggingReportSink(ReportSink):
    """Report through the logging module; empty intermediate results are not shown."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_start(self, source_name, input_size_bytes=None):
        self.log.info("Starting transcription of %s", source_name or "<stream>")

    def on_unit(self, unit):
        if unit.is_error:
            self.log.warning("Chunk %d failed: %s", unit.index, unit.error)
        elif not unit.is_empty:
            self.log.info('Intermediate result %d: "%s"', unit.index, unit.text)

    def on_final(self, text):
        self.log.info("Complete transcription: %s", text)

    def on_score(self, score, reference, hypothesis):
        self.log.info("WER=%.4f Word Accuracy=%.2f%%", score.wer, score.accuracy)

    def on_metrics(self, metrics):
        self.log.info(
            "Chunks=%s errors=%s audio=%ss processing=%ss",
            metrics.get("total_chunks"),
            metrics.get("chunk_errors"),
            metrics.get("audio_seconds"),
            metrics.get("processing_seconds"),
        )

    def on_error(self, error):
        self.log.error("Transcription failed: %s", error)


class FileReportSink(ReportSink):
    """
    Write transcription_<ts>.txt and performance_<ts>.txt into report_dir.

    Whitespace-only chunk results are left out of the transcription file;
    failed chunks are written as error lines.
    """

    def __init__(self, report_dir: str = "reports", timestamp: Optional[str] = None):
        self.report_dir = report_dir
        self.timestamp = timestamp or report_timestamp()
        os.makedirs(report_dir, exist_ok=True)
        self.transcription_path = os.path.join(report_dir, f"transcription_{self.timestamp}.txt")
        self.performance_path = os.path.join(report_dir, f"performance_{self.timestamp}.txt")
        self._transcription = open(self.transcription_path, "w", encoding="utf-8")
        self._performance = open(self.performance_path, "w", encoding="utf-8")
        self._chunks_written = 0
        self._accuracy: Optional[float] = None
        self._run_succeeded = False

    def _finish_run(self):
        if self._run_succeeded:
            self._transcription.write("Transcription completed\n")
            self._run_succeeded = False

    def on_start(self, source_name, input_size_bytes=None):
        self._finish_run()
        self._accuracy = None
        self._transcription.write("Starting transcription...\n")
        self._transcription.write(f"Processing file: {source_name or '<stream>'}\n\n")
        if input_size_bytes is not None:
            self._transcription.write(f"Input File Size: {input_size_bytes / 1024 / 1024:.2f} MB\n\n")

    def on_unit(self, unit):
        if unit.is_error:
            self._transcription.write(f"Error processing chunk {unit.index}: {unit.error}\n")
            return
        if unit.is_empty:
            return
        self._chunks_written += 1
        label = "Final chunk" if unit.is_final_unit else f"Chunk {unit.index}"
        self._transcription.write(f'{label}: "{unit.text}"\n')

    def on_final(self, text):
        self._transcription.write("\n=== Complete Transcription ===\n")
        self._transcription.write(text + "\n")
        self._transcription.write("===========================\n\n")
        self._run_succeeded = True

    def on_score(self, score, reference, hypothesis):
        self._accuracy = score.accuracy
        self._transcription.write("\nAccuracy Metrics:\n")
        self._transcription.write(f'Reference text: "{reference}"\n')
        self._transcription.write(f'Transcribed text: "{hypothesis}"\n')
        self._transcription.write(f"Word Error Rate: {score.wer:.4f}\n")
        self._transcription.write(f"Word Accuracy: {score.accuracy:.2f}%\n\n")

    def on_metrics(self, metrics):
        self._performance.write("\nPerformance Metrics:\n")
        self._performance.write(f"Total Chunks: {metrics.get('total_chunks')}\n")
        self._performance.write(f"Non-empty Chunks: {metrics.get('non_empty_chunks')}\n")
        self._performance.write(f"Chunk Errors: {metrics.get('chunk_errors')}\n")
        self._performance.write(f"Audio Duration: {metrics.get('audio_seconds')} seconds\n")
        self._performance.write(f"Total Processing Time: {metrics.get('processing_seconds'):.2f} seconds\n")
        if metrics.get("real_time_factor") is not None:
            self._performance.write(f"Real-time Factor: {metrics['real_time_factor']}\n")
        if self._accuracy is not None:
            self._performance.write(f"Word Accuracy: {self._accuracy:.2f}%\n")

    def on_error(self, error):
        self._run_succeeded = False
        self._transcription.write(f"Error: {error}\n")

    def close(self):
        if not self._transcription.closed:
            self._finish_run()
        for handle in (self._transcription, self._performance):
            if not handle.closed:
                handle.close()
        logger.info("Wrote reports %s and %s", self.transcription_path, self.performance_path)
