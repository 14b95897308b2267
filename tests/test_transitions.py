"""Tests for the status transition controller."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx

from kitchen_triage.errors import TransientFetchError, ValidationError
from kitchen_triage.models import OrderStatus
from kitchen_triage.store import SqliteOrderStore
from kitchen_triage.store.client import LocalOrderClient
from kitchen_triage.store.http_client import HttpOrderClient
from kitchen_triage.triage.capabilities import AutoConfirmer, Confirmer, Notifier, Renderer
from kitchen_triage.triage.engine import TriageEngine
from kitchen_triage.triage.transitions import (
    ALLOWED_TRANSITIONS,
    TransitionController,
    allowed_transitions,
    is_transition_allowed,
    next_actions,
)


class FakeClock:
    def __init__(self):
        self.current = datetime(2026, 3, 14, 10, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, minutes=1):
        self.current = self.current + timedelta(minutes=minutes)


class RecordingRenderer(Renderer):
    def __init__(self):
        self.calls = []

    def render(self, orders):
        self.calls.append({s.id: s.order.status for s in orders})


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages = []

    def notify(self, message, level="info"):
        self.messages.append((level, message))


class CountingClient(LocalOrderClient):
    """Local client that counts status writes and can be told to fail them."""

    def __init__(self, store, admin_key):
        super().__init__(store, admin_key)
        self.update_calls = []
        self.fail_with = None
        self.on_update = None

    async def update_status(self, order_id, status, admin_key):
        self.update_calls.append((order_id, status))
        if self.on_update is not None:
            self.on_update(order_id)
        if self.fail_with is not None:
            raise self.fail_with
        return await super().update_status(order_id, status, admin_key)


class RacingConfirmer(Confirmer):
    """Simulates a refresh that lands while the confirmation prompt is open."""

    def __init__(self, engine, status):
        self.engine = engine
        self.status = status

    async def confirm(self, message):
        for scored in self.engine.snapshot:
            self.engine.replace_order(scored.order.model_copy(update={"status": self.status}))
        return True


class TestTransitionTable:
    def test_next_actions_in_display_order(self):
        assert next_actions(OrderStatus.PLACED) == [OrderStatus.CONFIRMED, OrderStatus.CANCELLED]
        assert next_actions("CONFIRMED") == [OrderStatus.DISPATCHED, OrderStatus.CANCELLED]
        assert next_actions("DISPATCHED") == [OrderStatus.DELIVERED]
        assert next_actions("DELIVERED") == []
        assert next_actions("CANCELLED") == []

    def test_unknown_status_has_no_moves(self):
        assert allowed_transitions("PREPARING") == frozenset()
        assert not is_transition_allowed("PREPARING", "CONFIRMED")

    def test_skipping_ahead_is_not_allowed(self):
        assert not is_transition_allowed("PLACED", "DELIVERED")
        assert not is_transition_allowed("PLACED", "DISPATCHED")
        assert not is_transition_allowed("DISPATCHED", "CANCELLED")
        assert is_transition_allowed("CONFIRMED", "CANCELLED")


class TestTransitionController:
    def setup_method(self):
        self.clock = FakeClock()
        self.store = SqliteOrderStore(":memory:", clock=self.clock)
        self.client = CountingClient(self.store, admin_key="secret")
        self.renderer = RecordingRenderer()
        self.notifier = RecordingNotifier()
        self.engine = TriageEngine(
            client=self.client,
            renderer=self.renderer,
            notifier=self.notifier,
            admin_key="secret",
            now_fn=self.clock,
        )
        self.confirmer = AutoConfirmer(True)
        self.controller = TransitionController(self.engine, confirmer=self.confirmer)

    def teardown_method(self):
        self.store.close()

    def _place(self, status=OrderStatus.PLACED):
        order = self.store.create_order(
            customer={"name": "Asha", "phone": "9876543210", "address": "12 MG Road"},
            items=[{"id": "p1", "name": "Paneer Tikka", "qty": 2, "price": 150}],
            payment_method="UPI",
        )
        if status != OrderStatus.PLACED:
            self.store.update_status(order.id, status)
        self.clock.advance(1)
        return order

    def _refresh(self):
        assert asyncio.run(self.engine.refresh()) is True

    def _transition(self, order_id, status):
        return asyncio.run(self.controller.transition(order_id, status))

    def test_successful_transition(self):
        order = self._place()
        self._refresh()
        self.clock.advance(4)

        result = self._transition(order.id, "CONFIRMED")

        assert result.success is True
        assert result.store_called is True
        assert result.previous_status == OrderStatus.PLACED
        local = self.engine.find(order.id)
        assert local.status == OrderStatus.CONFIRMED
        assert local.updated_at == self.clock.current
        assert self.store.get_order(order.id).status == OrderStatus.CONFIRMED
        assert self.confirmer.prompts == [f"Move #{order.id} to CONFIRMED?"]
        assert self.notifier.messages[-1][0] == "success"

    def test_transition_rescores_order(self):
        order = self._place()
        self._refresh()
        self._transition(order.id, OrderStatus.CONFIRMED)
        assert self.engine.snapshot[0].explanation.status_score == 0.8

    def test_local_update_applied_before_store_write(self):
        order = self._place()
        self._refresh()
        seen = []
        self.client.on_update = lambda oid: seen.append(
            (self.engine.find(oid).status, self.renderer.calls[-1][oid])
        )

        self._transition(order.id, OrderStatus.CONFIRMED)
        assert seen == [(OrderStatus.CONFIRMED, OrderStatus.CONFIRMED)]

    def test_full_lifecycle(self):
        order = self._place()
        self._refresh()
        for status in (OrderStatus.CONFIRMED, OrderStatus.DISPATCHED, OrderStatus.DELIVERED):
            assert self._transition(order.id, status).success

        result = self._transition(order.id, OrderStatus.CANCELLED)
        assert result.success is False
        assert len(self.client.update_calls) == 3

    def test_every_illegal_move_is_rejected_without_store_call(self):
        orders = {status: self._place(status) for status in OrderStatus}
        self._refresh()
        targets = list(OrderStatus) + ["PREPARING", "placed", ""]

        for current, order in orders.items():
            for target in targets:
                if target in ALLOWED_TRANSITIONS[current]:
                    continue
                result = self._transition(order.id, target)
                assert result.success is False, (current, target)
                assert result.store_called is False
                assert self.engine.find(order.id).status == current

        assert self.client.update_calls == []
        assert self.confirmer.prompts == []

    def test_placed_to_delivered_rejected(self):
        order = self._place()
        self._refresh()

        result = self._transition(order.id, OrderStatus.DELIVERED)

        assert result.success is False
        assert "PLACED" in result.error and "DELIVERED" in result.error
        assert self.engine.find(order.id).status == OrderStatus.PLACED
        assert self.notifier.messages[-1][0] == "error"

    def test_unknown_order(self):
        self._place()
        self._refresh()
        result = self._transition("nope", OrderStatus.CONFIRMED)
        assert result.success is False
        assert "not found" in result.error
        assert self.client.update_calls == []

    def test_declined_confirmation_changes_nothing(self):
        order = self._place()
        self._refresh()
        before = self.engine.find(order.id)
        self.controller.confirmer = AutoConfirmer(False)

        result = self._transition(order.id, OrderStatus.CANCELLED)

        assert result.success is False
        assert result.error == "cancelled by user"
        assert self.engine.find(order.id) is before
        assert self.client.update_calls == []

    def test_status_rechecked_after_confirmation(self):
        order = self._place()
        self._refresh()
        self.controller.confirmer = RacingConfirmer(self.engine, OrderStatus.CANCELLED)

        result = self._transition(order.id, OrderStatus.CONFIRMED)

        assert result.success is False
        assert self.client.update_calls == []
        assert self.engine.find(order.id).status == OrderStatus.CANCELLED

    def test_failed_write_restores_status_and_timestamp(self):
        order = self._place()
        self._refresh()
        self.clock.advance(2)
        assert self._transition(order.id, OrderStatus.CONFIRMED).success
        before = self.engine.find(order.id)
        confirmed_at = before.updated_at

        self.clock.advance(10)
        self.client.fail_with = TransientFetchError("timeout")
        result = self._transition(order.id, OrderStatus.DISPATCHED)

        assert result.success is False
        assert result.store_called is True
        assert result.reverted_value == OrderStatus.CONFIRMED
        reverted = self.engine.find(order.id)
        assert reverted is before
        assert reverted.status == OrderStatus.CONFIRMED
        assert reverted.updated_at == confirmed_at
        assert self.engine.snapshot[0].explanation.status_score == 0.8
        assert self.renderer.calls[-1][order.id] == OrderStatus.CONFIRMED
        assert self.store.get_order(order.id).status == OrderStatus.CONFIRMED
        level, message = self.notifier.messages[-1]
        assert level == "error" and "timeout" in message

    def test_store_rejection_is_reverted(self):
        order = self._place()
        self._refresh()
        self.client.fail_with = ValidationError("Invalid status")

        result = self._transition(order.id, OrderStatus.CANCELLED)

        assert result.success is False
        assert result.reverted_value == OrderStatus.PLACED
        assert self.engine.find(order.id).status == OrderStatus.PLACED
        assert self.engine.find(order.id).updated_at is None

    def test_default_collaborators_come_from_engine(self):
        controller = TransitionController(self.engine)
        assert controller.client is self.client
        assert controller.notifier is self.notifier


class TestTransitionOverHttp:
    """Status writes through the HTTP client against a server that answers oddly."""

    def setup_method(self):
        self.clock = FakeClock()
        self.store = SqliteOrderStore(":memory:", clock=self.clock)
        self.order = self.store.create_order(
            customer={"name": "Asha", "phone": "9876543210", "address": "12 MG Road"},
            items=[{"id": "p1", "name": "Paneer Tikka", "qty": 2, "price": 150}],
            payment_method="UPI",
        )
        self.status_body = None
        self.notifier = RecordingNotifier()

    def teardown_method(self):
        self.store.close()

    def _handler(self, request):
        if request.method == "GET":
            return httpx.Response(200, json=[o.to_wire() for o in self.store.list_orders()])
        return httpx.Response(200, json=self.status_body)

    def _run(self, status):
        async def scenario():
            transport = httpx.MockTransport(self._handler)
            client = HttpOrderClient("http://kitchen.test", transport=transport)
            engine = TriageEngine(
                client=client,
                renderer=RecordingRenderer(),
                notifier=self.notifier,
                admin_key="secret",
                now_fn=self.clock,
            )
            try:
                assert await engine.refresh() is True
                controller = TransitionController(engine, confirmer=AutoConfirmer(True))
                result = await controller.transition(self.order.id, status)
                return result, engine.find(self.order.id)
            finally:
                await client.aclose()

        return asyncio.run(scenario())

    def test_null_status_response_is_reverted(self):
        result, local = self._run(OrderStatus.CONFIRMED)

        assert result.success is False
        assert result.store_called is True
        assert result.reverted_value == OrderStatus.PLACED
        assert local.status == OrderStatus.PLACED
        assert local.updated_at is None
        assert self.notifier.messages[-1][0] == "error"

    def test_list_status_response_is_reverted(self):
        self.status_body = ["CONFIRMED"]
        result, local = self._run(OrderStatus.CANCELLED)

        assert result.success is False
        assert local.status == OrderStatus.PLACED
