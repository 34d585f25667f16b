"""
Service layer for change management.

Callback registration, dispatch and change tracking.
"""

from .callback_registry import (
    CallbackConfig,
    CallbackEntry,
    Registry,
    build_registry,
    group_key,
    callable_identity,
    group_label,
    normalize_callback_config,
)
from .field_change_dispatcher import FieldChangeDispatcher
from .change_tracker import FieldChangeTracker

__all__ = [
    "CallbackConfig",
    "CallbackEntry",
    "Registry",
    "build_registry",
    "group_key",
    "callable_identity",
    "group_label",
    "normalize_callback_config",
    "FieldChangeDispatcher",
    "FieldChangeTracker",
]
