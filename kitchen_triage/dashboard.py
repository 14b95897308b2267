"""
Admin dashboard — composition root for one triage session.

Wires the order client, triage engine, transition controller, polling
scheduler and search debouncer together. Fails fast with a
ConfigurationError when a required collaborator is missing; the dashboard
never runs partially wired.
"""

from datetime import datetime
from typing import Callable, Optional

from kitchen_triage.config import Settings, settings as default_settings
from kitchen_triage.errors import ConfigurationError
from kitchen_triage.models.order import OrderStatus
from kitchen_triage.models.triage import SchedulerConfig, TransitionResult
from kitchen_triage.scoring.scorer import PriorityScorer
from kitchen_triage.store import build_store
from kitchen_triage.store.client import LocalOrderClient, OrderClient
from kitchen_triage.store.http_client import HttpOrderClient
from kitchen_triage.triage.capabilities import (
    Confirmer,
    JsonPreferenceStore,
    Notifier,
    PreferenceStore,
    Renderer,
)
from kitchen_triage.triage.engine import TriageEngine
from kitchen_triage.triage.presenters import TextRenderer
from kitchen_triage.triage.scheduler import Debouncer, PollingScheduler
from kitchen_triage.triage.transitions import TransitionController

# Keyboard shortcuts on a focused order card
SHORTCUTS = {
    "c": OrderStatus.CONFIRMED,
    "d": OrderStatus.DISPATCHED,
    "l": OrderStatus.DELIVERED,
    "x": OrderStatus.CANCELLED,
}


class Dashboard:
    """One admin's dashboard instance."""

    def __init__(
        self,
        client: Optional[OrderClient],
        renderer: Optional[Renderer],
        notifier: Optional[Notifier] = None,
        confirmer: Optional[Confirmer] = None,
        preferences: Optional[PreferenceStore] = None,
        scorer: Optional[PriorityScorer] = None,
        config: Optional[SchedulerConfig] = None,
        admin_key: Optional[str] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        if client is None:
            raise ConfigurationError("Dashboard requires an order client")
        if renderer is None:
            raise ConfigurationError("Dashboard requires a renderer for the orders view")

        self.config = config or SchedulerConfig()
        self.client = client
        self.engine = TriageEngine(
            client=client,
            renderer=renderer,
            scorer=scorer,
            notifier=notifier,
            preferences=preferences,
            admin_key=admin_key,
            now_fn=now_fn,
        )
        self.transitions = TransitionController(
            self.engine, client=client, confirmer=confirmer, notifier=self.engine.notifier
        )
        self.scheduler = PollingScheduler(
            self.engine.refresh,
            interval_seconds=self.config.poll_interval_seconds,
            on_toggle=self._polling_toggled,
        )
        self.search_input = Debouncer(
            self.engine.set_search, delay_seconds=self.config.search_debounce_seconds
        )

        # Initial paint
        self.engine.render(force=True)

    def _polling_toggled(self, on: bool) -> None:
        self.engine.notifier.notify(
            "Auto-refresh enabled" if on else "Auto-refresh disabled", "info"
        )

    async def login(self, admin_key: str) -> bool:
        """Store the admin key and load the queue."""
        if not (admin_key or "").strip():
            self.engine.notifier.notify("Admin key required", "error")
            return False
        self.engine.set_admin_key(admin_key)
        return await self.engine.refresh()

    def submit_search(self, text: str) -> None:
        """Apply search text immediately (e.g. on Enter)."""
        self.search_input.flush(text)

    async def handle_key(self, order_id: str, key: str) -> Optional[TransitionResult]:
        """Keyboard shortcut on an order card: c, d, l or x."""
        target = SHORTCUTS.get((key or "").lower())
        if target is None:
            return None
        return await self.transitions.transition(order_id, target)

    async def close(self) -> None:
        self.scheduler.stop()
        self.search_input.cancel()
        await self.scheduler.wait_stopped()
        await self.client.aclose()


def build_client(settings: Settings) -> OrderClient:
    """HTTP client when API_BASE_URL is set, otherwise the local store."""
    if settings.API_BASE_URL:
        return HttpOrderClient(
            settings.API_BASE_URL, timeout=settings.REQUEST_TIMEOUT_SECONDS
        )
    return LocalOrderClient(build_store(settings), admin_key=settings.ADMIN_KEY)


def build_dashboard(
    settings: Optional[Settings] = None,
    renderer: Optional[Renderer] = None,
    **kwargs,
) -> Dashboard:
    """Dashboard wired from deployment settings."""
    settings = settings or default_settings
    kwargs.setdefault("preferences", JsonPreferenceStore(settings.PREFERENCES_PATH))
    kwargs.setdefault(
        "config", SchedulerConfig(poll_interval_seconds=settings.POLL_INTERVAL_SECONDS)
    )
    return Dashboard(
        client=build_client(settings),
        renderer=renderer or TextRenderer(),
        **kwargs,
    )
