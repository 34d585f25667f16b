"""
Field change records.

Normalizes the raw per-field notifications a host reports for one update cycle
into immutable FieldChange records, and groups them into a read-only ChangeBatch.

A field "did change" only when it is not a first observation and its current
value is not the same value as its previous one. Same-value is identity, not
equality: immutable scalars of the same type compare by value (NaN is the same
as NaN, 0.0 is not the same as -0.0), everything else compares with ``is``.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterator, Optional, Tuple

# Types compared by value; all other values compare by identity
_SCALAR_TYPES = (bool, int, float, complex, str, bytes)


@dataclass(frozen=True)
class RawChange:
    """A change notification for one field, as reported by the host."""
    previous_value: Any
    current_value: Any
    first_change: bool = False


@dataclass(frozen=True)
class FieldChange:
    """Immutable, normalized change record for one field in one cycle."""
    previous_value: Any
    current_value: Any
    first_change: bool
    did_change: bool


def _same_float(a: float, b: float) -> bool:
    if math.isnan(a) and math.isnan(b):
        return True
    return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)


def same_value(a: Any, b: Any) -> bool:
    """Return True if a and b are the same value under identity semantics."""
    if a is b:
        return True
    if type(a) is not type(b) or not isinstance(a, _SCALAR_TYPES):
        return False
    if isinstance(a, float):
        return _same_float(a, b)
    if isinstance(a, complex):
        return _same_float(a.real, b.real) and _same_float(a.imag, b.imag)
    return a == b


def did_field_change(raw: Optional[RawChange]) -> bool:
    """Return True if the raw change really changed (first observations never do)."""
    if raw is None or raw.first_change:
        return False
    return not same_value(raw.current_value, raw.previous_value)


def to_field_change(raw: Optional[RawChange]) -> FieldChange:
    """Normalize one raw notification. An absent notification never changed."""
    if raw is None:
        return FieldChange(previous_value=None, current_value=None, first_change=False, did_change=False)
    return FieldChange(
        previous_value=raw.previous_value,
        current_value=raw.current_value,
        first_change=bool(raw.first_change),
        did_change=did_field_change(raw),
    )


class ChangeBatch(Mapping):
    """
    Read-only mapping of field name -> FieldChange for one update cycle.

    Only fields the host reported are present; unreported fields are never
    synthesized. The host component travels with the batch so handlers and
    validators receive it explicitly.

    Example:
        batch = build_change_batch({"surname": RawChange("", "quesada")}, host=widget)
        batch["surname"].did_change  # True
        "name" in batch              # False
    """

    def __init__(self, changes: Mapping, host: Any = None):
        self._changes = MappingProxyType(dict(changes))
        self.host = host

    def __getitem__(self, field_name: str) -> FieldChange:
        return self._changes[field_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def __repr__(self) -> str:
        return f"ChangeBatch({dict(self._changes)!r})"

    @property
    def changed_fields(self) -> Tuple[str, ...]:
        """Names of fields whose value really changed, in report order."""
        return tuple(name for name, change in self._changes.items() if change.did_change)

    @property
    def has_changes(self) -> bool:
        return any(change.did_change for change in self._changes.values())

    def did_change(self, field_name: str) -> bool:
        """True if field_name was reported and really changed."""
        change = self._changes.get(field_name)
        return change is not None and change.did_change


def build_change_batch(raw_changes: Optional[Mapping], host: Any = None) -> ChangeBatch:
    """Build the ChangeBatch for one cycle from the host's raw notifications."""
    raw_changes = raw_changes or {}
    return ChangeBatch(
        {name: to_field_change(raw) for name, raw in raw_changes.items()},
        host=host,
    )


def try_field_change(raw: Optional[RawChange], callback: Callable[[Any], None]) -> bool:
    """
    Call callback with the current value if the raw change really changed.

    Returns:
        True if the callback ran, False otherwise
    """
    if not did_field_change(raw):
        return False
    callback(raw.current_value)
    return True
