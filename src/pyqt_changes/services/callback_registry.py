"""
Callback registry builder.

Normalizes the two supported callback declaration shapes into one canonical
Registry of field groups.

Mapping form (each field is its own group):
    {
        "name": self.on_name_changed,
        "age": CallbackConfig(self.on_age_changed, validator=self.is_adult),
    }

List form (each entry declares a group; the callback runs once per cycle
however many of the group's fields changed):
    [
        (["name", "surname"], self.compute_full_name),
        (["age"], {"callback": self.on_age_changed, "validator": self.is_adult}),
    ]

Groups are keyed by the frozenset of their fields, so declaration order and
duplicates inside a group never matter. A later declaration for the same field
set replaces the earlier one.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple, Union
import inspect
import logging

from pyqt_changes.exceptions import CallbacksConfigError

logger = logging.getLogger(__name__)

GroupKey = FrozenSet[str]
ChangeCallback = Callable[[Any], None]
ChangeValidator = Callable[[Any], bool]

GROUP_LABEL_SEPARATOR = "|"


@dataclass(frozen=True)
class CallbackConfig:
    """A callback with an optional validator gating its execution."""
    callback: ChangeCallback
    validator: Optional[ChangeValidator] = None


@dataclass(frozen=True)
class CallbackEntry:
    """Canonical registration: a field group and what runs when it triggers."""
    fields: GroupKey
    callback: ChangeCallback
    validator: Optional[ChangeValidator] = None

    @property
    def key(self) -> GroupKey:
        return self.fields


CallbackDeclaration = Union[ChangeCallback, CallbackConfig, Mapping]
CallbacksDeclaration = Union[Mapping, Iterable]


def group_key(fields: Union[str, Iterable[str]]) -> GroupKey:
    """Canonical key for a field group. A bare string is a single field."""
    if isinstance(fields, str):
        return frozenset((fields,))
    return frozenset(fields)


def callable_identity(func: Callable) -> Tuple:
    """
    Identity token for a callback, independent of its __eq__ and __hash__.

    Bound methods are re-created on every attribute access, so they are
    identified by their instance and function: `self.on_x` read twice is one
    callback. Everything else is identified by the object itself.
    """
    if inspect.ismethod(func):
        return ("method", id(func.__self__), id(func.__func__))
    owner = getattr(func, "__self__", None)
    if inspect.isbuiltin(func) and owner is not None and not inspect.ismodule(owner):
        return ("builtin", id(owner), func.__name__)
    return ("object", id(func))


def group_label(key: GroupKey) -> str:
    """Stable human-readable form of a group key (sorted, '|'-joined)."""
    return GROUP_LABEL_SEPARATOR.join(sorted(key))


def normalize_callback_config(value: CallbackDeclaration) -> CallbackConfig:
    """
    Normalize a single callback declaration.

    Accepts a callable, a CallbackConfig, or a mapping with a 'callback'
    (or 'handler') key and an optional 'validator' key.

    Raises:
        CallbacksConfigError: If the declaration has neither shape
    """
    if isinstance(value, CallbackConfig):
        config = value
    elif callable(value):
        return CallbackConfig(callback=value)
    elif isinstance(value, Mapping):
        unknown = set(value) - {"callback", "handler", "validator"}
        if unknown:
            raise CallbacksConfigError(f"Unknown callback config keys: {sorted(unknown)}")
        callback = value.get("callback", value.get("handler"))
        config = CallbackConfig(callback=callback, validator=value.get("validator"))
    else:
        raise CallbacksConfigError(
            f"Callback declaration must be a callable or a callback/validator config, "
            f"got {type(value).__name__}"
        )

    if not callable(config.callback):
        raise CallbacksConfigError(f"Callback must be callable, got {type(config.callback).__name__}")
    if config.validator is not None and not callable(config.validator):
        raise CallbacksConfigError(f"Validator must be callable, got {type(config.validator).__name__}")
    return config


def _entries_from_mapping(callbacks: Mapping) -> List[CallbackEntry]:
    entries = []
    for field_name, declaration in callbacks.items():
        if not isinstance(field_name, str):
            raise CallbacksConfigError(f"Field names must be strings, got {type(field_name).__name__}")
        config = normalize_callback_config(declaration)
        entries.append(CallbackEntry(group_key(field_name), config.callback, config.validator))
    return entries


def _entries_from_groups(callbacks: Iterable) -> List[CallbackEntry]:
    entries = []
    for item in callbacks:
        try:
            fields, declaration = item
        except (TypeError, ValueError) as e:
            raise CallbacksConfigError(f"Group declarations must be (fields, callback) pairs, got {item!r}") from e

        if not isinstance(fields, (str, Iterable)):
            raise CallbacksConfigError(f"Group fields must be a name or names, got {type(fields).__name__}")
        key = group_key(fields)
        if not key:
            raise CallbacksConfigError("Group declares no fields")
        if not all(isinstance(name, str) for name in key):
            raise CallbacksConfigError(f"Field names must be strings, got {sorted(map(repr, key))}")

        config = normalize_callback_config(declaration)
        entries.append(CallbackEntry(key, config.callback, config.validator))
    return entries


class Registry:
    """
    Immutable group registry: GroupKey -> CallbackEntry, in registration order.

    Built once per configuration; a reconfiguration builds a new Registry.
    """

    def __init__(self, entries: Iterable[CallbackEntry] = ()):
        by_group: Dict[GroupKey, CallbackEntry] = {}
        for entry in entries:
            if entry.key in by_group:
                logger.debug(f"Group [{group_label(entry.key)}] redeclared, replacing previous callback")
            by_group[entry.key] = entry
        self._entries = MappingProxyType(by_group)

    @property
    def entries(self) -> Mapping:
        """GroupKey -> CallbackEntry."""
        return self._entries

    @property
    def group_fields(self) -> Mapping:
        """GroupKey -> field set."""
        return MappingProxyType({key: entry.fields for key, entry in self._entries.items()})

    def get(self, key: GroupKey) -> Optional[CallbackEntry]:
        return self._entries.get(key)

    def handlers(self) -> List[ChangeCallback]:
        """Distinct callbacks in registration order."""
        distinct = {}
        for entry in self._entries.values():
            distinct.setdefault(callable_identity(entry.callback), entry.callback)
        return list(distinct.values())

    def fields(self) -> Tuple[str, ...]:
        """Every registered field name, in registration order."""
        ordered: Dict[str, None] = {}
        for entry in self._entries.values():
            for name in sorted(entry.fields):
                ordered.setdefault(name, None)
        return tuple(ordered)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())

    def __contains__(self, fields) -> bool:
        return group_key(fields) in self._entries

    def __repr__(self) -> str:
        groups = ", ".join(f"[{group_label(key)}]" for key in self._entries)
        return f"Registry({groups})"


def build_registry(callbacks: Optional[CallbacksDeclaration]) -> Registry:
    """
    Build a Registry from either declaration shape.

    Raises:
        CallbacksConfigError: If any declaration is malformed
    """
    if callbacks is None:
        return Registry()

    if isinstance(callbacks, Mapping):
        entries = _entries_from_mapping(callbacks)
    elif isinstance(callbacks, Iterable) and not isinstance(callbacks, (str, bytes)):
        entries = _entries_from_groups(callbacks)
    else:
        raise CallbacksConfigError(
            f"Callbacks must be a mapping of field -> callback or a list of (fields, callback) pairs, "
            f"got {type(callbacks).__name__}"
        )

    registry = Registry(entries)
    logger.debug(f"Built {registry!r} from {len(entries)} declaration(s)")
    return registry
