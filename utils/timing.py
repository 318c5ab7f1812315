"""Step timing for shadow generation runs."""

import logging
import time
from contextlib import contextmanager
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class Timer:
    """
    Records how long each stage of a generation takes.

    Usage:
        timer = Timer(label="req-1")
        with timer.measure("project"):
            projector.project(...)

        timer.log_summary()
    """

    def __init__(self, label: Optional[str] = None):
        self.label = label
        self.steps: Dict[str, float] = {}

    @contextmanager
    def measure(self, step_name: str):
        """Context manager adding the duration of the block to a step."""
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self.steps[step_name] = self.steps.get(step_name, 0.0) + duration
            logger.debug(f"[{self.label}] {step_name}: {duration:.3f}s")

    def get_total(self) -> float:
        """Sum of all measured steps."""
        return sum(self.steps.values())

    def get_summary(self) -> Dict[str, float]:
        """Step durations plus a 'total' entry."""
        summary = dict(self.steps)
        summary["total"] = self.get_total()
        return summary

    def log_summary(self, level: int = logging.INFO) -> None:
        """Log all step durations on one line."""
        parts = [f"{k}: {v:.3f}s" for k, v in self.get_summary().items()]
        logger.log(level, f"[{self.label}] Timing: {', '.join(parts)}")
