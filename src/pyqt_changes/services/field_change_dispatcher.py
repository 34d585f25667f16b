"""
Unified Field Change Dispatcher.

Decides, for one update cycle, which registered callbacks run.
A callback reachable through several triggered groups runs once, and only
when every validator attached to it across those groups approves.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

from pyqt_changes.protocols import get_changes_config
from pyqt_changes.services.callback_registry import callable_identity, group_label

if TYPE_CHECKING:
    from pyqt_changes.core.field_change import ChangeBatch
    from pyqt_changes.services.callback_registry import Registry

logger = logging.getLogger(__name__)


def _name(func: Any) -> str:
    return getattr(func, "__qualname__", repr(func))


class FieldChangeDispatcher:
    """Singleton dispatcher for all change batches. Stateless."""

    _instance = None

    @classmethod
    def instance(cls) -> 'FieldChangeDispatcher':
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def collect_handlers(self, batch: 'ChangeBatch', registry: 'Registry',
                         changed_only: bool = True) -> List[Tuple[Any, List[Any]]]:
        """
        Aggregate validators per distinct handler over the triggered groups.

        A group triggers when any of its fields is in the batch with did_change.
        With changed_only=False every registered group triggers.

        Returns:
            (handler, validators) pairs in order of first trigger. Handlers and
            validators are deduplicated by identity, never by equality
        """
        debug = get_changes_config().debug_dispatch
        changed = set(batch.changed_fields)
        # identity token -> (handler, identity token -> validator)
        aggregation: Dict[Tuple, Tuple[Any, Dict[Tuple, Any]]] = {}

        for key, entry in registry.entries.items():
            if changed_only and changed.isdisjoint(entry.fields):
                continue

            if debug:
                logger.info(f"  🎯 Group [{group_label(key)}] triggered -> {_name(entry.callback)}")

            _, validators = aggregation.setdefault(callable_identity(entry.callback), (entry.callback, {}))
            if entry.validator is not None:
                validators.setdefault(callable_identity(entry.validator), entry.validator)

        return [(handler, list(validators.values())) for handler, validators in aggregation.values()]

    def dispatch(self, batch: 'ChangeBatch', registry: 'Registry',
                 skip_validators: bool = False, changed_only: bool = True) -> List[Any]:
        """
        Run every approved handler once with the full batch.

        Validator or handler exceptions propagate; handlers after the failing
        one do not run.

        Returns:
            Handlers that ran, in invocation order
        """
        debug = get_changes_config().debug_dispatch
        if debug:
            logger.info(f"🚀 DISPATCH: changed={list(batch.changed_fields)} over {registry!r}")

        aggregation = self.collect_handlers(batch, registry, changed_only=changed_only)
        invoked = []

        for handler, validators in aggregation:
            if not skip_validators and not self._validators_approve(validators, batch):
                if debug:
                    logger.info(f"  🚫 {_name(handler)} rejected by validator")
                continue

            try:
                handler(batch)
            except Exception:
                logger.debug(f"Handler {_name(handler)} raised, aborting remaining handlers", exc_info=True)
                raise
            invoked.append(handler)

        if debug:
            logger.info(f"  ✅ Invoked {len(invoked)} of {len(aggregation)} handler(s)")
        return invoked

    def _validators_approve(self, validators: List[Any], batch: 'ChangeBatch') -> bool:
        for validator in validators:
            if not validator(batch):
                logger.debug(f"Validator {_name(validator)} returned falsy")
                return False
        return True
