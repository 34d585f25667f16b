"""Reusable trailing debounce timer."""

from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from PyQt6.QtCore import QTimer

logger = logging.getLogger(__name__)


class DebounceState(Enum):
    IDLE = "idle"
    PENDING = "pending"


class DebounceTimer:
    """
    Reusable trailing debounce timer.

    Restarts timer on each call. Handler fires only after delay_ms of inactivity,
    with the arguments of the last call. At most one trigger is pending at a time.

    A handler error raised from the timer is logged and passed to on_error,
    never raised into the Qt event loop. force() runs the handler in the
    caller and lets errors propagate.

    Usage:
        self._debounce = DebounceTimer(delay_ms=200, handler=self._do_update)

        def on_text_changed(self, text):
            self._debounce.trigger(text)  # Restarts timer, replaces pending args
    """

    def __init__(self, delay_ms: int, handler: Callable[..., Any],
                 on_error: Optional[Callable[[Exception], None]] = None):
        self._delay_ms = max(0, int(delay_ms))
        self._handler = handler
        self._on_error = on_error
        self._state = DebounceState.IDLE
        self._pending_args: Tuple = ()
        self._pending_kwargs: Dict[str, Any] = {}
        self._timer: Optional[QTimer] = None

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is DebounceState.PENDING

    def trigger(self, *args, **kwargs) -> None:
        """Trigger debounce — restarts timer."""
        if self._timer is None:
            self._timer = QTimer()
            self._timer.setSingleShot(True)
            self._timer.timeout.connect(self._fire)

        self._pending_args = args
        self._pending_kwargs = kwargs
        self._state = DebounceState.PENDING
        self._timer.start(self._delay_ms)

    __call__ = trigger

    def cancel(self) -> None:
        """Cancel pending trigger."""
        if self._timer is not None:
            self._timer.stop()
        self._clear()

    def force(self) -> None:
        """Cancel timer and fire handler immediately with the pending arguments."""
        args, kwargs = self._pending_args, self._pending_kwargs
        self.cancel()
        self._handler(*args, **kwargs)

    def _fire(self) -> None:
        if self._state is not DebounceState.PENDING:
            return
        args, kwargs = self._pending_args, self._pending_kwargs
        self._clear()
        name = getattr(self._handler, "__qualname__", self._handler)
        logger.debug(f"Debounced call to {name} fired after {self._delay_ms}ms")
        try:
            self._handler(*args, **kwargs)
        except Exception as e:
            # Raising out of a QTimer slot aborts the process
            logger.exception(f"Debounced call to {name} failed")
            if self._on_error is not None:
                self._on_error(e)

    def _clear(self) -> None:
        self._state = DebounceState.IDLE
        self._pending_args = ()
        self._pending_kwargs = {}


def debounce(handler: Callable[..., Any], delay_ms: int = 300,
             on_error: Optional[Callable[[Exception], None]] = None) -> DebounceTimer:
    """Wrap handler so rapid calls collapse into one trailing call."""
    return DebounceTimer(delay_ms=delay_ms, handler=handler, on_error=on_error)
