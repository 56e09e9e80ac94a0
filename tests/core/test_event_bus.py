"""Tests for EventBus."""

import logging

import pytest

from core.event_bus import EventBus
from core.events import AttributeDefined, BindingsReconciled
from core.models import BindingScope, ReconcileResult


# =============================================================================
# FIXTURES - lightweight in-memory stubs, no DB needed
# =============================================================================


@pytest.fixture
def _result():
    return ReconcileResult(scope=BindingScope.SKU, entity_id=7)


# =============================================================================
# SUBSCRIBE AND PUBLISH
# =============================================================================


class TestSubscribeAndPublish:

    def test_single_handler_receives_the_exact_event_object(self, _result):
        bus = EventBus()
        received = []
        bus.subscribe("BindingsReconciled", received.append)

        event = BindingsReconciled(result=_result)
        bus.publish(event)

        assert len(received) == 1
        assert received[0] is event

    def test_handler_can_read_payload_fields(self, _result):
        bus = EventBus()
        entity_ids = []
        bus.subscribe("BindingsReconciled", lambda e: entity_ids.append(e.result.entity_id))

        bus.publish(BindingsReconciled(result=_result))

        assert entity_ids == [7]

    def test_multiple_handlers_called_in_subscription_order(self, _result):
        bus = EventBus()
        order = []
        bus.subscribe("BindingsReconciled", lambda e: order.append("A"))
        bus.subscribe("BindingsReconciled", lambda e: order.append("B"))
        bus.subscribe("BindingsReconciled", lambda e: order.append("C"))

        bus.publish(BindingsReconciled(result=_result))

        assert order == ["A", "B", "C"]

    def test_type_isolation_only_matching_subscribers_called(self, _result):
        bus = EventBus()
        binding_calls = []
        attribute_calls = []
        bus.subscribe("BindingsReconciled", binding_calls.append)
        bus.subscribe("AttributeDefined", attribute_calls.append)

        bus.publish(BindingsReconciled(result=_result))

        assert len(binding_calls) == 1
        assert attribute_calls == []

    def test_no_subscribers_does_not_raise(self):
        bus = EventBus()
        bus.publish(AttributeDefined())

    def test_unknown_event_type_rejected(self):
        """Misspelt event names fail at subscribe time."""
        bus = EventBus()

        with pytest.raises(ValueError, match="BindingReconciled"):
            bus.subscribe("BindingReconciled", print)

    def test_base_event_types_accepted(self):
        """Category classes are catalog events too."""
        EventBus().subscribe("BindingEvent", print)


# =============================================================================
# HANDLER ERROR ISOLATION
# =============================================================================


class TestHandlerErrorIsolation:

    def test_handler_exception_does_not_propagate(self, _result):
        bus = EventBus()
        bus.subscribe("BindingsReconciled", lambda e: (_ for _ in ()).throw(RuntimeError("boom")))

        # Must not raise
        bus.publish(BindingsReconciled(result=_result))

    def test_handler_exception_is_logged_with_event_type_and_event_id(self, _result, caplog):
        bus = EventBus()

        def failing_handler(event):
            raise ValueError("projection refresh failed")

        bus.subscribe("BindingsReconciled", failing_handler)

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            event = BindingsReconciled(result=_result)
            bus.publish(event)

        assert "projection refresh failed" in caplog.text
        assert "failing_handler" in caplog.text
        assert event.event_id in caplog.text

    def test_handler_failure_log_carries_request_id(self, _result, caplog):
        bus = EventBus()
        bus.subscribe("BindingsReconciled", lambda e: (_ for _ in ()).throw(RuntimeError("down")))

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            bus.publish(BindingsReconciled(result=_result, request_id="req-42"))

        assert "request_id=req-42" in caplog.text

    def test_all_handlers_run_even_if_multiple_fail(self, _result):
        bus = EventBus()
        results = []

        bus.subscribe("BindingsReconciled", lambda e: (_ for _ in ()).throw(RuntimeError("fail 1")))
        bus.subscribe("BindingsReconciled", lambda e: results.append("survived_1"))
        bus.subscribe("BindingsReconciled", lambda e: (_ for _ in ()).throw(RuntimeError("fail 2")))
        bus.subscribe("BindingsReconciled", lambda e: results.append("survived_2"))

        bus.publish(BindingsReconciled(result=_result))

        assert results == ["survived_1", "survived_2"]


class TestServicePublishing:
    """A failing subscriber never undoes a committed change."""

    def test_reconcile_survives_failing_handler(self, reconciler, ctx, event_bus, color):
        from core.models import AttributeAssignment

        event_bus.subscribe("BindingsReconciled", lambda e: (_ for _ in ()).throw(RuntimeError("down")))

        result = reconciler.reconcile(
            ctx, BindingScope.SKU, 1,
            [AttributeAssignment(attribute_id=color.id, value_id=color.values[0].id)],
        )

        assert result.changed
        assert len(reconciler.list_bindings(BindingScope.SKU, 1)) == 1
