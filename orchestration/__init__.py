from .indicators import IndicatorService, render_error
from .batch import BatchOutcome, BatchRunner, batch_indicators

__all__ = [
    "IndicatorService",
    "render_error",
    "BatchOutcome",
    "BatchRunner",
    "batch_indicators",
]
