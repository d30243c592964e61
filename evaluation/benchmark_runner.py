"""
Benchmark runner: transcribe a dataset and output a structured WER report.
"""
import json
import logging
import os
from typing import Any, Callable, Dict, Optional

from core.errors import TranscriptionError
from evaluation.asr_metrics import EvaluationReport, compute_wer_distribution

logger = logging.getLogger(__name__)


def _get_reference(item: Dict[str, Any]) -> str:
    return (item.get("reference") or item.get("text") or "").strip()


def _get_hypothesis(item: Dict[str, Any]) -> str:
    return (item.get("hypothesis") or item.get("transcript") or "").strip()


def run_benchmark(
    dataset_path: str,
    audio_base_dir: Optional[str] = None,
    transcribe_fn: Optional[Callable[[str], str]] = None,
    limit: Optional[int] = None,
) -> EvaluationReport:
    """
    Load dataset JSON, optionally transcribe each item, compute WER distribution.

    Items: {"id"?, "reference" | "text", "audio"?, "hypothesis" | "transcript"?}.
    transcribe_fn: audio_path -> final transcript. If None, hypotheses must be in the dataset.
    A failed transcription is scored as an empty hypothesis.
    """
    with open(dataset_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Dataset must be a list of items")
    items = data[:limit] if limit else data
    base_dir = audio_base_dir or os.environ.get("AUDIO_BASE_DIR", "")

    samples = []
    for i, item in enumerate(items):
        sid = str(item.get("id") or i)
        ref = _get_reference(item)
        if not ref:
            logger.warning("Skipping %s: no reference text", sid)
            continue
        hyp = _get_hypothesis(item)
        if not hyp and transcribe_fn:
            audio_path = item.get("audio") or ""
            if audio_path and not os.path.isabs(audio_path):
                audio_path = os.path.join(base_dir, audio_path)
            if audio_path and os.path.isfile(audio_path):
                try:
                    hyp = transcribe_fn(audio_path)
                except TranscriptionError as e:
                    logger.warning("Transcription failed for %s: %s", sid, e)
            else:
                logger.warning("Audio not found for %s: %s", sid, audio_path)
        samples.append({"reference": ref, "hypothesis": hyp or "", "id": sid})

    return compute_wer_distribution(samples)


def write_report(report: EvaluationReport, output_path: str) -> None:
    """Write evaluation report to JSON file."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2)
    logger.info("Wrote evaluation report to %s", output_path)
