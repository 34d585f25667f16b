"""
Changes manager.

Attaches to a host component and turns each update cycle's raw field changes
into callback invocations followed by a single re-render.

Basic usage (no callbacks, just avoid re-rendering when nothing changed):
    class MyWidget(QWidget):
        def __init__(self):
            super().__init__()
            self.changes_manager = ChangesManager(host=self, rerender=self.update)

Grouped callbacks:
    class PersonWidget(QWidget):
        def __init__(self):
            super().__init__()
            self.name = ""
            self.surname = ""
            self.full_name = ""
            self._tracker = FieldChangeTracker()
            self.changes_manager = ChangesManager(
                host=self,
                rerender=self.update,
                callbacks=[
                    (["name", "surname"], self.compute_full_name),
                ],
            )

        def compute_full_name(self, batch):
            self.full_name = f"{self.name} {self.surname}"

        def set_person(self, name, surname):
            self.name, self.surname = name, surname
            self.changes_manager.process_cycle(
                self._tracker.collect_from(self, ("name", "surname"))
            )

If both name and surname change in one cycle, compute_full_name runs once.
"""

from collections.abc import Mapping
from typing import Any, Callable, List, Optional
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from pyqt_changes.core.debounce_timer import DebounceTimer
from pyqt_changes.core.field_change import ChangeBatch, FieldChange, build_change_batch
from pyqt_changes.core.performance_monitor import CycleStats, get_perf_logger, timer
from pyqt_changes.protocols import get_changes_config
from pyqt_changes.services.callback_registry import CallbacksDeclaration, Registry, build_registry
from pyqt_changes.services.field_change_dispatcher import FieldChangeDispatcher

logger = logging.getLogger(__name__)


class ChangesManager(QObject):
    """
    Per-host dispatcher of change cycles.

    Signals:
        cycle_processed(ChangeBatch): after handlers ran and the host re-rendered
        rerender_requested(): each time the re-render action is called
        error_occurred(Exception): a debounced cycle or re-render raised

    Errors in synchronous calls propagate to the caller. Errors raised when a
    debounce timer fires are logged and emitted as error_occurred instead,
    since raising into the Qt event loop aborts the application.
    """

    cycle_processed = pyqtSignal(object)
    rerender_requested = pyqtSignal()
    error_occurred = pyqtSignal(Exception)  # Full exception, caller decides

    def __init__(
        self,
        host: Any,
        rerender: Callable[[], Any],
        callbacks: Optional[CallbacksDeclaration] = None,
        debounce_delay_ms: Optional[int] = None,
        strict: Optional[bool] = None,
        on_cycle_processed: Optional[Callable[[ChangeBatch], Any]] = None,
        rerender_debounce_ms: Optional[int] = None,
        parent: Optional[QObject] = None,
    ):
        if parent is None and isinstance(host, QObject):
            parent = host
        super().__init__(parent)

        if not callable(rerender):
            raise TypeError(f"rerender must be callable, got {type(rerender).__name__}")
        if on_cycle_processed is not None and not callable(on_cycle_processed):
            raise TypeError(f"on_cycle_processed must be callable, got {type(on_cycle_processed).__name__}")

        config = get_changes_config()
        self._host = host
        self._rerender = rerender
        self._on_cycle_processed = on_cycle_processed
        self._strict = config.strict if strict is None else bool(strict)
        self._dispatcher = FieldChangeDispatcher.instance()
        self._registry = build_registry(callbacks)
        self.cycle_stats = CycleStats(f"{type(host).__name__} changes")

        if debounce_delay_ms is None:
            debounce_delay_ms = config.default_debounce_ms
        self._debounce_delay_ms = debounce_delay_ms or 0
        self._cycle_debounce: Optional[DebounceTimer] = None
        if self._debounce_delay_ms > 0:
            self._cycle_debounce = DebounceTimer(self._debounce_delay_ms, self._process_cycle,
                                                on_error=self.error_occurred.emit)

        if rerender_debounce_ms is None:
            rerender_debounce_ms = config.rerender_debounce_ms
        self._rerender_debounce = DebounceTimer(rerender_debounce_ms, self._request_rerender,
                                               on_error=self.error_occurred.emit)

        logger.debug(
            f"ChangesManager for {type(host).__name__}: {self._registry!r}, "
            f"strict={self._strict}, debounce={self._debounce_delay_ms}ms"
        )

    # ========== CONFIGURATION ==========

    @property
    def host(self) -> Any:
        return self._host

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def debounce_delay_ms(self) -> int:
        return self._debounce_delay_ms

    @property
    def has_pending_cycle(self) -> bool:
        return self._cycle_debounce is not None and self._cycle_debounce.is_pending

    def set_callbacks(self, callbacks: Optional[CallbacksDeclaration]) -> Registry:
        """Replace the whole callback registry. Malformed declarations leave the old one in place."""
        self._registry = build_registry(callbacks)
        logger.debug(f"ChangesManager for {type(self._host).__name__} reconfigured: {self._registry!r}")
        return self._registry

    # ========== CYCLE PROCESSING ==========

    def process_cycle(self, raw_changes: Optional[Mapping]) -> ChangeBatch:
        """
        Process one update cycle of raw field changes.

        Called once per host update. With a debounce delay the batch is still
        returned immediately, but only the last batch received within the delay
        window is processed.

        Returns:
            The ChangeBatch built from raw_changes
        """
        batch = build_change_batch(raw_changes, host=self._host)
        if self._cycle_debounce is not None:
            self._cycle_debounce.trigger(batch)
        else:
            self._process_cycle(batch)
        return batch

    def flush(self) -> None:
        """Process a pending debounced cycle now. Errors propagate to the caller."""
        if self.has_pending_cycle:
            self._cycle_debounce.force()

    def _process_cycle(self, batch: ChangeBatch) -> bool:
        if self._strict and not batch.has_changes:
            logger.debug(f"No field of {type(self._host).__name__} changed, skipping cycle")
            return False

        # Registry may be swapped by a handler; this cycle keeps the one it started with
        registry = self._registry
        with timer("Change cycle", stats=self.cycle_stats,
                   host=type(self._host).__name__, changed=len(batch.changed_fields)):
            self._dispatcher.dispatch(batch, registry)

        self.trigger_rerender_now()

        if self._on_cycle_processed is not None:
            self._on_cycle_processed(batch)
        self.cycle_processed.emit(batch)
        return True

    def report_performance(self) -> str:
        """Log and return a summary of this manager's cycle timings."""
        summary = self.cycle_stats.summary()
        get_perf_logger().info(summary)
        return summary

    # ========== MANUAL EXECUTION ==========

    def run_all_handlers_now(self, skip_validators: bool = False) -> List[Any]:
        """
        Run every registered handler once, synchronously.

        Handlers receive a batch reporting every registered field as present
        but unchanged (previous and current are the host's current value).
        Does not re-render.

        Args:
            skip_validators: Run handlers even if their validators would reject

        Returns:
            Handlers that ran
        """
        registry = self._registry
        changes = {}
        for name in registry.fields():
            value = getattr(self._host, name, None)
            changes[name] = FieldChange(previous_value=value, current_value=value,
                                        first_change=False, did_change=False)
        batch = ChangeBatch(changes, host=self._host)
        return self._dispatcher.dispatch(batch, registry, skip_validators=skip_validators,
                                         changed_only=False)

    # ========== RE-RENDER ==========

    def trigger_rerender_now(self) -> None:
        """Re-render immediately, superseding a pending debounced re-render."""
        self._rerender_debounce.cancel()
        self._request_rerender()

    def trigger_rerender_debounced(self) -> None:
        """Re-render once after rerender_debounce_ms, however often this is called before then."""
        self._rerender_debounce.trigger()

    def _request_rerender(self) -> None:
        logger.debug(f"Re-rendering {type(self._host).__name__}")
        self._rerender()
        self.rerender_requested.emit()
