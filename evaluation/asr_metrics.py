"""
WER distribution over many transcripts: mean, median, p95, worst cases.
Structured evaluation reports and failure/high-error logging.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.metrics import score_transcript

logger = logging.getLogger(__name__)

# Thresholds for logging
WER_HIGH_ERROR_THRESHOLD = 0.5  # log samples with WER >= 50%
WER_FAILURE_THRESHOLD = 1.0    # treat as failure (empty or completely wrong)


@dataclass
class SampleResult:
    """Single sample: reference, hypothesis, WER, accuracy, and optional id."""
    ref: str
    hyp: str
    wer: float
    accuracy: float
    sample_id: Optional[str] = None


@dataclass
class EvaluationReport:
    """Structured report: distribution stats, worst cases, failure/high-error lists."""
    n_samples: int = 0
    n_skipped: int = 0
    wer_mean: float = 0.0
    wer_median: float = 0.0
    wer_p95: float = 0.0
    accuracy_mean: float = 0.0
    worst_wer: List[Dict[str, Any]] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)      # WER >= 1.0
    high_error: List[Dict[str, Any]] = field(default_factory=list)    # WER >= 0.5
    all_wer: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_samples": self.n_samples,
            "n_skipped": self.n_skipped,
            "wer_mean": round(self.wer_mean, 4),
            "wer_median": round(self.wer_median, 4),
            "wer_p95": round(self.wer_p95, 4),
            "accuracy_mean": round(self.accuracy_mean, 2),
            "worst_wer": self.worst_wer,
            "failures": self.failures,
            "high_error": self.high_error,
        }


def _percentile(sorted_values: List[float], p: float) -> float:
    """p in [0, 100]. Linear interpolation between closest ranks."""
    if not sorted_values:
        return 0.0
    k = (len(sorted_values) - 1) * p / 100.0
    f = int(k)
    c = f + 1 if f + 1 < len(sorted_values) else f
    return sorted_values[f] + (k - f) * (sorted_values[c] - sorted_values[f]) if c != f else sorted_values[f]


def compute_wer_distribution(
    samples: List[Dict[str, Any]],
    reference_key: str = "reference",
    hypothesis_key: str = "hypothesis",
    sample_id_key: str = "id",
    high_wer_threshold: float = WER_HIGH_ERROR_THRESHOLD,
    failure_wer_threshold: float = WER_FAILURE_THRESHOLD,
    worst_n: int = 10,
) -> EvaluationReport:
    """
    Score each sample and build the distribution report.
    samples: list of {"reference": ref, "hypothesis": hyp, "id": optional id}.
    Samples whose reference has no words are skipped (WER undefined).
    """
    report = EvaluationReport()
    results: List[SampleResult] = []

    for i, item in enumerate(samples):
        ref = item.get(reference_key) or ""
        hyp = item.get(hypothesis_key) or ""
        sid = str(item.get(sample_id_key) or i)
        if not ref.strip():
            report.n_skipped += 1
            logger.warning("Skipping sample %s: empty reference", sid)
            continue
        score = score_transcript(ref, hyp)
        results.append(SampleResult(ref=ref, hyp=hyp, wer=score.wer, accuracy=score.accuracy, sample_id=sid))

    if not results:
        return report

    report.n_samples = len(results)
    report.all_wer = [r.wer for r in results]
    sorted_wer = sorted(report.all_wer)
    report.wer_mean = sum(report.all_wer) / report.n_samples
    report.wer_median = _percentile(sorted_wer, 50)
    report.wer_p95 = _percentile(sorted_wer, 95)
    report.accuracy_mean = sum(r.accuracy for r in results) / report.n_samples

    by_wer = sorted(results, key=lambda x: -x.wer)
    report.worst_wer = [
        {"sample_id": r.sample_id, "wer": round(r.wer, 4), "accuracy": r.accuracy, "ref": r.ref[:80], "hyp": r.hyp[:80]}
        for r in by_wer[:worst_n]
    ]

    report.failures = [
        {"sample_id": r.sample_id, "wer": round(r.wer, 4)}
        for r in results if r.wer >= failure_wer_threshold
    ]
    for r in report.failures:
        logger.warning("Failed transcript: %s WER=%.2f", r["sample_id"], r["wer"])

    report.high_error = [
        {"sample_id": r.sample_id, "wer": round(r.wer, 4)}
        for r in results if high_wer_threshold <= r.wer < failure_wer_threshold
    ]
    for r in report.high_error:
        logger.info("High error transcript: %s WER=%.2f", r["sample_id"], r["wer"])

    return report
