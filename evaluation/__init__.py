"""
Evaluation layer: WER distribution and benchmark runner.
"""
from evaluation.asr_metrics import (
    compute_wer_distribution,
    EvaluationReport,
)
from evaluation.benchmark_runner import run_benchmark, write_report

__all__ = [
    "compute_wer_distribution",
    "EvaluationReport",
    "run_benchmark",
    "write_report",
]
