"""
Field change tracker.

Qt widgets do not hand their owner a per-cycle batch of changes, so a host
keeps a FieldChangeTracker and asks it to turn its current field values into
raw change notifications.

Usage:
    self._tracker = FieldChangeTracker()

    def set_person(self, name, surname):
        self.name, self.surname = name, surname
        changes = self._tracker.collect_from(self, ("name", "surname"))
        self.changes_manager.process_cycle(changes)
"""

from collections.abc import Iterable, Mapping
from typing import Any, Dict
import logging

from pyqt_changes.core.field_change import RawChange

logger = logging.getLogger(__name__)


class FieldChangeTracker:
    """Remembers the last value seen per field and reports raw changes."""

    def __init__(self):
        self._last_seen: Dict[str, Any] = {}

    def collect(self, values: Mapping) -> Dict[str, RawChange]:
        """
        Build raw changes for the reported values and remember them.

        A field never seen before is reported as a first change.
        """
        changes = {}
        for name, value in values.items():
            if name in self._last_seen:
                changes[name] = RawChange(previous_value=self._last_seen[name], current_value=value)
            else:
                changes[name] = RawChange(previous_value=None, current_value=value, first_change=True)
            self._last_seen[name] = value
        return changes

    def collect_from(self, host: Any, fields: Iterable[str]) -> Dict[str, RawChange]:
        """Same as collect(), reading each field from the host's attributes."""
        return self.collect({name: getattr(host, name) for name in fields})

    def last_seen(self, name: str, default: Any = None) -> Any:
        return self._last_seen.get(name, default)

    def forget(self, *fields: str) -> None:
        """Forget fields so their next report is a first change again."""
        for name in fields:
            self._last_seen.pop(name, None)

    def reset(self) -> None:
        logger.debug(f"Tracker reset, forgetting {len(self._last_seen)} field(s)")
        self._last_seen.clear()
