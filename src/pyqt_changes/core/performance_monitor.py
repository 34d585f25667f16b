"""Cycle timing for pyqt-changes.

Slow update cycles are logged to the performance logger named in
ChangesConfig; every manager also keeps running statistics of its cycles.
"""

import time
import logging
from contextlib import contextmanager
from typing import Optional

from pyqt_changes.protocols import get_changes_config


def get_perf_logger() -> logging.Logger:
    """Return the performance logger named by the current config."""
    return logging.getLogger(get_changes_config().performance_logger_name)


class CycleStats:
    """Running duration statistics for one manager's processed cycles."""

    def __init__(self, label: str):
        self.label = label
        self.count = 0
        self.total_ms = 0.0
        self.max_ms = 0.0
        self.slow_count = 0

    @property
    def average_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    def record(self, elapsed_ms: float, threshold_ms: float) -> None:
        self.count += 1
        self.total_ms += elapsed_ms
        self.max_ms = max(self.max_ms, elapsed_ms)
        if elapsed_ms >= threshold_ms:
            self.slow_count += 1

    def summary(self) -> str:
        if not self.count:
            return f"{self.label}: no cycles processed"
        return (
            f"{self.label} - Cycles: {self.count}, Slow: {self.slow_count}, "
            f"Avg: {self.average_ms:.2f}ms, Max: {self.max_ms:.2f}ms"
        )


@contextmanager
def timer(operation_name: str, stats: Optional[CycleStats] = None,
          threshold_ms: Optional[float] = None, **context):
    """Time a cycle, record it in stats and log it when it is slow.

    Args:
        operation_name: Name logged for a slow cycle
        stats: CycleStats receiving the elapsed time
        threshold_ms: Slow-cycle threshold (defaults to ChangesConfig.performance_threshold_ms)
        **context: Extra key=value pairs for the log message

    Example:
        with timer("Change cycle", stats=self.cycle_stats, host="PersonWidget"):
            dispatcher.dispatch(batch, registry)
    """
    if threshold_ms is None:
        threshold_ms = get_changes_config().performance_threshold_ms

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if stats is not None:
            stats.record(elapsed_ms, threshold_ms)

        if elapsed_ms >= threshold_ms:
            details = ", ".join(f"{k}={v}" for k, v in context.items())
            suffix = f" ({details})" if details else ""
            get_perf_logger().debug(f"🐢 {operation_name}: {elapsed_ms:.2f}ms{suffix}")
