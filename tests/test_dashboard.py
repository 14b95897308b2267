"""Tests for dashboard wiring: login, shortcuts, debounced search and polling."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from kitchen_triage.config import Settings
from kitchen_triage.dashboard import Dashboard, build_client, build_dashboard
from kitchen_triage.errors import ConfigurationError
from kitchen_triage.models import OrderStatus, SchedulerConfig
from kitchen_triage.store import SqliteOrderStore
from kitchen_triage.store.client import LocalOrderClient
from kitchen_triage.store.http_client import HttpOrderClient
from kitchen_triage.triage.capabilities import (
    AutoConfirmer,
    InMemoryPreferenceStore,
    Notifier,
    Renderer,
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
        self.calls.append([s.id for s in orders])


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages = []

    def notify(self, message, level="info"):
        self.messages.append((level, message))


class TestDashboard:
    def setup_method(self):
        self.clock = FakeClock()
        self.store = SqliteOrderStore(":memory:", clock=self.clock)
        self.client = LocalOrderClient(self.store, admin_key="secret")
        self.renderer = RecordingRenderer()
        self.notifier = RecordingNotifier()
        self.preferences = InMemoryPreferenceStore()
        self.dashboard = self._make_dashboard()

    def teardown_method(self):
        self.store.close()

    def _make_dashboard(self, **overrides):
        kwargs = dict(
            client=self.client,
            renderer=self.renderer,
            notifier=self.notifier,
            confirmer=AutoConfirmer(True),
            preferences=self.preferences,
            config=SchedulerConfig(poll_interval_seconds=0.01, search_debounce_seconds=0.01),
            now_fn=self.clock,
        )
        kwargs.update(overrides)
        return Dashboard(**kwargs)

    def _place(self, item="Paneer Tikka"):
        order = self.store.create_order(
            customer={"name": "Asha", "phone": "9876543210", "address": "12 MG Road"},
            items=[{"id": "i1", "name": item, "qty": 1, "price": 200}],
            payment_method="COD",
        )
        self.clock.advance(1)
        return order

    def test_requires_client_and_renderer(self):
        with pytest.raises(ConfigurationError):
            Dashboard(client=None, renderer=self.renderer)
        with pytest.raises(ConfigurationError):
            Dashboard(client=self.client, renderer=None)

    def test_initial_paint_shows_empty_queue(self):
        assert self.renderer.calls == [[]]

    def test_login_requires_key(self):
        assert asyncio.run(self.dashboard.login("  ")) is False
        assert self.notifier.messages[-1] == ("error", "Admin key required")

    def test_login_loads_queue_and_remembers_key(self):
        order = self._place()
        assert asyncio.run(self.dashboard.login("secret")) is True
        assert self.dashboard.engine.visible_ids() == [order.id]
        assert self.preferences.get("admin_key") == "secret"

        restored = self._make_dashboard()
        assert restored.engine.admin_key == "secret"

    def test_login_with_wrong_key(self):
        self._place()
        assert asyncio.run(self.dashboard.login("wrong")) is False
        assert self.dashboard.engine.snapshot == ()

    def test_shortcuts_drive_transitions(self):
        order = self._place()
        asyncio.run(self.dashboard.login("secret"))

        result = asyncio.run(self.dashboard.handle_key(order.id, "C"))
        assert result.success
        assert self.store.get_order(order.id).status == OrderStatus.CONFIRMED

        result = asyncio.run(self.dashboard.handle_key(order.id, "l"))
        assert result.success is False
        assert self.store.get_order(order.id).status == OrderStatus.CONFIRMED

        assert asyncio.run(self.dashboard.handle_key(order.id, "d")).success
        assert asyncio.run(self.dashboard.handle_key(order.id, "l")).success
        assert self.store.get_order(order.id).status == OrderStatus.DELIVERED

    def test_unknown_shortcut_is_ignored(self):
        order = self._place()
        asyncio.run(self.dashboard.login("secret"))
        assert asyncio.run(self.dashboard.handle_key(order.id, "z")) is None

    def test_search_input_is_debounced(self):
        paneer = self._place("Paneer Tikka")
        self._place("Dal Makhani")
        asyncio.run(self.dashboard.login("secret"))
        renders = len(self.renderer.calls)

        async def scenario():
            for text in ("p", "pa", "pan", "paneer"):
                self.dashboard.search_input(text)
            assert self.dashboard.engine.search_text == ""
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert self.dashboard.engine.search_text == "paneer"
        assert self.dashboard.engine.visible_ids() == [paneer.id]
        assert len(self.renderer.calls) == renders + 1

    def test_submit_search_applies_immediately(self):
        self.dashboard.submit_search("Dal")
        assert self.dashboard.engine.search_text == "dal"

    def test_polling_picks_up_new_orders(self):
        asyncio.run(self.dashboard.login("secret"))

        async def scenario():
            assert self.dashboard.scheduler.start() is True
            self._place()
            await asyncio.sleep(0.1)
            await self.dashboard.close()

        asyncio.run(scenario())
        assert len(self.dashboard.engine.snapshot) == 1
        assert ("info", "Auto-refresh enabled") in self.notifier.messages
        assert ("info", "Auto-refresh disabled") in self.notifier.messages
        assert not self.dashboard.scheduler.is_running


class TestBuildDashboard:
    def _settings(self, tmp_path, **overrides):
        values = dict(
            ADMIN_KEY="secret",
            ORDERS_PATH=str(tmp_path / "order.json"),
            PREFERENCES_PATH=str(tmp_path / "prefs.json"),
        )
        values.update(overrides)
        return Settings(**values)

    def test_local_client_by_default(self, tmp_path):
        client = build_client(self._settings(tmp_path))
        assert isinstance(client, LocalOrderClient)

    def test_http_client_when_api_url_set(self, tmp_path):
        client = build_client(self._settings(tmp_path, API_BASE_URL="http://kitchen.test"))
        assert isinstance(client, HttpOrderClient)
        asyncio.run(client.aclose())

    def test_build_dashboard_end_to_end(self, tmp_path):
        settings = self._settings(tmp_path, POLL_INTERVAL_SECONDS=30)
        dashboard = build_dashboard(
            settings,
            renderer=RecordingRenderer(),
            confirmer=AutoConfirmer(True),
        )
        assert dashboard.scheduler.interval_seconds == 30

        store = dashboard.client.store
        order = store.create_order(
            customer={"name": "Asha", "phone": "9876543210", "address": "12 MG Road"},
            items=[{"id": "t1", "name": "Veg Thali", "qty": 1, "price": 180}],
            payment_method="UPI",
        )
        assert asyncio.run(dashboard.login("secret")) is True
        dashboard.engine.set_filter("PLACED")
        assert asyncio.run(dashboard.handle_key(order.id, "x")).success

        saved = json.loads((tmp_path / "prefs.json").read_text())
        assert saved == {"admin_key": "secret", "filter_status": "PLACED"}
        on_disk = json.loads((tmp_path / "order.json").read_text())
        assert on_disk[0]["status"] == "CANCELLED"
        asyncio.run(dashboard.close())
