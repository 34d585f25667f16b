"""
Core change-management utilities.

Change records, debounce coalescing and timing helpers with no knowledge of
callback registration.
"""

from .field_change import (
    RawChange,
    FieldChange,
    ChangeBatch,
    same_value,
    did_field_change,
    to_field_change,
    build_change_batch,
    try_field_change,
)
from .debounce_timer import DebounceTimer, DebounceState, debounce
from .performance_monitor import timer, CycleStats

__all__ = [
    "RawChange",
    "FieldChange",
    "ChangeBatch",
    "same_value",
    "did_field_change",
    "to_field_change",
    "build_change_batch",
    "try_field_change",
    "DebounceTimer",
    "DebounceState",
    "debounce",
    "timer",
    "CycleStats",
]
