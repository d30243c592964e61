"""
Run performance metrics.
"""

from metrics.run_metrics import RunMetrics

__all__ = [
    "RunMetrics",
]
