"""
pyqt-changes: grouped, validated, debounced change callbacks for PyQt6 components.

A host component reports which of its fields changed in an update cycle;
the ChangesManager runs each interested callback once and re-renders once.

Architecture:
- Tier 1 (Core): change records, QTimer-backed debounce, timing helpers
- Tier 2 (Protocols): application-level configuration defaults
- Tier 3 (Services): callback registry, dispatcher, change tracker
- Tier 4 (Manager): ChangesManager bound to a host component

Key Features:
- Mapping or grouped-list callback declarations
- One invocation per callback per cycle, however many of its fields changed
- Validators gating callbacks across overlapping groups
- Strict mode skipping cycles where nothing changed
- Debounced cycle processing and re-rendering on the Qt event loop
"""

__version__ = "0.1.0"

from .core import RawChange, FieldChange, ChangeBatch, DebounceTimer, build_change_batch, try_field_change
from .protocols import ChangesConfig, set_changes_config, get_changes_config
from .services import CallbackConfig, Registry, build_registry, FieldChangeDispatcher, FieldChangeTracker
from .exceptions import PyQtChangesError, CallbacksConfigError
from .changes_manager import ChangesManager

__all__ = [
    "__version__",
    "RawChange",
    "FieldChange",
    "ChangeBatch",
    "DebounceTimer",
    "build_change_batch",
    "try_field_change",
    "ChangesConfig",
    "set_changes_config",
    "get_changes_config",
    "CallbackConfig",
    "Registry",
    "build_registry",
    "FieldChangeDispatcher",
    "FieldChangeTracker",
    "PyQtChangesError",
    "CallbacksConfigError",
    "ChangesManager",
]
