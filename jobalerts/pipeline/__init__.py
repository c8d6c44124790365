"""Sweep orchestration for job alerts."""

from .models import AlertRunStats, SweepAbortedError, SweepResult
from .runner import AlertSweep

__all__ = ["AlertSweep", "AlertRunStats", "SweepResult", "SweepAbortedError"]
