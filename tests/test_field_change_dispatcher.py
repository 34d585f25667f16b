"""Tests for the field change dispatcher."""

from dataclasses import dataclass, field
from typing import List

import pytest

from pyqt_changes.core import RawChange, build_change_batch
from pyqt_changes.protocols import ChangesConfig, set_changes_config
from pyqt_changes.services import CallbackConfig, FieldChangeDispatcher, build_registry


class Recorder:
    """Records handler calls; validators answer from a lookup."""

    def __init__(self, **answers):
        self.calls = []
        self.answers = answers

    def handler(self, name):
        def handle(batch):
            self.calls.append((name, batch))
        handle.__qualname__ = name
        return handle

    def validator(self, name):
        def validate(batch):
            self.calls.append((name, None))
            return self.answers[name]
        return validate


@dataclass
class FieldHandler:
    """Mutable dataclass handler: compares by value and is unhashable."""

    calls: List = field(default_factory=list)

    def __call__(self, batch):
        self.calls.append(batch)


@dataclass(frozen=True)
class Tag:
    """Frozen dataclass callable: equal instances hash alike."""

    label: str

    def __call__(self, batch):
        batch.host.append(self)
        return True


@pytest.fixture
def dispatcher():
    return FieldChangeDispatcher.instance()


def test_instance_is_singleton():
    assert FieldChangeDispatcher.instance() is FieldChangeDispatcher.instance()


def test_group_fires_once_with_full_batch(dispatcher):
    rec = Recorder()
    cb = rec.handler("cb")
    registry = build_registry([(["a", "b"], cb)])
    batch = build_change_batch({"a": RawChange(1, 2), "c": RawChange(1, 1)})

    invoked = dispatcher.dispatch(batch, registry)

    assert invoked == [cb]
    assert len(rec.calls) == 1
    assert set(rec.calls[0][1]) == {"a", "c"}


def test_handler_runs_once_when_all_group_fields_change(dispatcher):
    rec = Recorder()
    cb = rec.handler("cb")
    registry = build_registry([(["a", "b"], cb), (["a"], cb), (["b"], cb)])
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    dispatcher.dispatch(batch, registry)

    assert [name for name, _ in rec.calls] == ["cb"]


def test_unchanged_fields_do_not_trigger(dispatcher):
    rec = Recorder()
    registry = build_registry({"a": rec.handler("a"), "b": rec.handler("b")})
    batch = build_change_batch({
        "a": RawChange(1, 1),
        "b": RawChange(None, 5, first_change=True),
    })

    assert dispatcher.dispatch(batch, registry) == []
    assert rec.calls == []


def test_overlapping_groups_require_every_validator(dispatcher):
    rec = Recorder(v1=True, v2=False)
    cb = rec.handler("cb")
    registry = build_registry([
        (["a"], CallbackConfig(cb, validator=rec.validator("v1"))),
        (["a", "b"], CallbackConfig(cb, validator=rec.validator("v2"))),
    ])
    batch = build_change_batch({"a": RawChange(1, 2)})

    assert dispatcher.dispatch(batch, registry) == []
    assert [name for name, _ in rec.calls] == ["v1", "v2"]


def test_overlapping_groups_fire_once_when_validators_pass(dispatcher):
    rec = Recorder(v1=True, v2=True)
    cb = rec.handler("cb")
    registry = build_registry([
        (["a"], CallbackConfig(cb, validator=rec.validator("v1"))),
        (["b"], CallbackConfig(cb, validator=rec.validator("v2"))),
    ])
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    assert dispatcher.dispatch(batch, registry) == [cb]
    assert [name for name, _ in rec.calls] == ["v1", "v2", "cb"]


def test_validator_of_untriggered_group_is_ignored(dispatcher):
    rec = Recorder(veto=False)
    cb = rec.handler("cb")
    registry = build_registry([
        (["a"], cb),
        (["b"], CallbackConfig(cb, validator=rec.validator("veto"))),
    ])
    batch = build_change_batch({"a": RawChange(1, 2)})

    assert dispatcher.dispatch(batch, registry) == [cb]


def test_rejection_skips_only_that_handler(dispatcher):
    rec = Recorder(no=False)
    first = rec.handler("first")
    second = rec.handler("second")
    registry = build_registry({
        "a": CallbackConfig(first, validator=rec.validator("no")),
        "b": second,
    })
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    assert dispatcher.dispatch(batch, registry) == [second]


def test_handlers_run_in_registration_order(dispatcher):
    rec = Recorder()
    registry = build_registry({"b": rec.handler("b"), "a": rec.handler("a")})
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    dispatcher.dispatch(batch, registry)

    assert [name for name, _ in rec.calls] == ["b", "a"]


def test_bound_methods_of_same_instance_are_one_handler(dispatcher):
    class Host:
        def __init__(self):
            self.calls = 0

        def on_change(self, batch):
            self.calls += 1

    host = Host()
    registry = build_registry({"a": host.on_change, "b": host.on_change})
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    dispatcher.dispatch(batch, registry)

    assert host.calls == 1


def test_handler_error_aborts_remaining_handlers(dispatcher):
    rec = Recorder()

    def boom(batch):
        raise RuntimeError("boom")

    registry = build_registry({"a": boom, "b": rec.handler("b")})
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    with pytest.raises(RuntimeError, match="boom"):
        dispatcher.dispatch(batch, registry)
    assert rec.calls == []


def test_skip_validators_and_all_groups(dispatcher):
    rec = Recorder(no=False)
    cb = rec.handler("cb")
    registry = build_registry({"a": CallbackConfig(cb, validator=rec.validator("no"))})
    batch = build_change_batch({"a": RawChange(1, 1)})

    assert dispatcher.dispatch(batch, registry, skip_validators=True, changed_only=False) == [cb]
    assert [name for name, _ in rec.calls] == ["cb"]


def test_debug_dispatch_logs(dispatcher, caplog):
    set_changes_config(ChangesConfig(debug_dispatch=True))
    rec = Recorder()
    registry = build_registry([(["a", "b"], rec.handler("cb"))])
    batch = build_change_batch({"a": RawChange(1, 2)})

    with caplog.at_level("INFO", logger="pyqt_changes.services.field_change_dispatcher"):
        dispatcher.dispatch(batch, registry)

    assert "Group [a|b] triggered" in caplog.text


def test_unhashable_handler_runs_once(dispatcher):
    handler = FieldHandler()
    registry = build_registry([(["a"], handler), (["b"], handler)])
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    assert dispatcher.dispatch(batch, registry) == [handler]
    assert handler.calls == [batch]


def test_equal_but_distinct_handlers_both_run(dispatcher):
    first, second = FieldHandler(), FieldHandler()
    assert first == second
    registry = build_registry({"a": first, "b": second})
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    invoked = dispatcher.dispatch(batch, registry)

    assert len(invoked) == 2
    assert invoked[0] is first
    assert invoked[1] is second
    assert first.calls == [batch]
    assert second.calls == [batch]


def test_equal_frozen_handlers_are_not_merged(dispatcher):
    first, second = Tag("x"), Tag("x")
    registry = build_registry({"a": first, "b": second})
    seen = []
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)}, host=seen)

    dispatcher.dispatch(batch, registry)

    assert len(seen) == 2
    assert seen[0] is first
    assert seen[1] is second


def test_equal_but_distinct_validators_all_run(dispatcher):
    rec = Recorder()
    cb = rec.handler("cb")
    first, second = Tag("v"), Tag("v")
    registry = build_registry([
        (["a"], CallbackConfig(cb, validator=first)),
        (["b"], CallbackConfig(cb, validator=second)),
    ])
    seen = []
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)}, host=seen)

    assert dispatcher.dispatch(batch, registry) == [cb]
    assert len(seen) == 2


def test_validator_error_propagates(dispatcher):
    rec = Recorder()

    def broken(batch):
        raise KeyError("missing")

    registry = build_registry({
        "a": CallbackConfig(rec.handler("a"), validator=broken),
        "b": rec.handler("b"),
    })
    batch = build_change_batch({"a": RawChange(1, 2), "b": RawChange(1, 2)})

    with pytest.raises(KeyError, match="missing"):
        dispatcher.dispatch(batch, registry)
    assert rec.calls == []
