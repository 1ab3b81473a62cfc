"""
Output size prediction.

A coarse closed-form hint shown before conversion runs. It has no
relation to the encoder's internals and never touches pixel data.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from webpify_shared.options import ConversionOptions

from .dimensions import OutputPlan, plan_dimensions

logger = logging.getLogger(__name__)

MIN_ESTIMATE_BYTES = 1024
LOSSLESS_BYTES_PER_PIXEL = 1.5
LOSSY_BYTES_PER_PIXEL = 0.4
DEFAULT_DEBOUNCE_SECONDS = 0.15


@dataclass(frozen=True)
class EstimateRecord:
    """Predicted output size for one queued image."""
    predicted_bytes: float
    output_width: int
    output_height: int


def estimate_size(pixels: int, quality: float, lossless: bool) -> float:
    """Predict encoded bytes for a planned pixel count."""
    if lossless:
        estimated = pixels * LOSSLESS_BYTES_PER_PIXEL
    else:
        quality_factor = 0.2 + quality * 0.8
        estimated = pixels * LOSSY_BYTES_PER_PIXEL * quality_factor
    return max(estimated, MIN_ESTIMATE_BYTES)


def estimate_for(width: int, height: int, options: ConversionOptions) -> EstimateRecord:
    """Plan the output size for a source and predict its bytes."""
    plan: OutputPlan = plan_dimensions(width, height, options.target_width)
    predicted = estimate_size(
        plan.output_width * plan.output_height, options.quality, options.lossless
    )
    return EstimateRecord(predicted, plan.output_width, plan.output_height)


def total_estimate(records: Iterable[EstimateRecord | None]) -> float:
    """Sum of predictions. Images without an estimate count as zero."""
    return sum(r.predicted_bytes for r in records if r is not None)


class EstimateDebouncer:
    """
    Run a callback once settings have been quiet for `delay` seconds.

    Each trigger() cancels the pending run and starts the timer again.
    """

    def __init__(self, callback: Callable[[], None], delay: float = DEFAULT_DEBOUNCE_SECONDS):
        self._callback = callback
        self._delay = delay
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self._callback()
        except Exception:
            logger.exception("Estimate refresh failed")
