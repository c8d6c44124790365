"""Alert cadence rules and the periodic sweep trigger."""

from .cadence import CADENCE_INTERVALS, cadence_interval, due_before, is_due, watermark
from .service import SchedulerService

__all__ = [
    "CADENCE_INTERVALS",
    "cadence_interval",
    "due_before",
    "is_due",
    "watermark",
    "SchedulerService",
]
