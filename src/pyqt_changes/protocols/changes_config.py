"""Base configuration for change management.

Provides application-wide defaults that ChangesManager falls back to when a
constructor argument is not given.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ChangesConfig:
    """Default behaviour for change managers.

    Applications can subclass this to provide custom configuration.

    Attributes:
        default_debounce_ms: Delay applied to process_cycle calls (None or 0 = synchronous)
        rerender_debounce_ms: Delay for trigger_rerender_debounced (0 = next event loop turn)
        strict: Skip a cycle entirely (no re-render) when nothing changed
        debug_dispatch: Trace every dispatch at info level
        performance_logger_name: Logger receiving slow-cycle timings
        performance_threshold_ms: Only cycles at least this slow are timed in the log
    """

    default_debounce_ms: Optional[int] = None
    rerender_debounce_ms: int = 0
    strict: bool = True
    debug_dispatch: bool = False
    performance_logger_name: str = "pyqt_changes.performance"
    performance_threshold_ms: float = 16.0


# Global config instance (set by application)
_changes_config: Optional[ChangesConfig] = None


def set_changes_config(config: Optional[ChangesConfig]) -> None:
    """Set the global change management configuration.

    Args:
        config: ChangesConfig instance, or None to restore defaults
    """
    global _changes_config
    _changes_config = config


def get_changes_config() -> ChangesConfig:
    """Get the current change management configuration.

    Returns:
        Current ChangesConfig or default if not set
    """
    if _changes_config is None:
        return ChangesConfig()
    return _changes_config
