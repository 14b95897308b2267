"""
Order Triage Engine — the admin session.

Holds the working copy of the order queue for one dashboard and derives the
visible queue from it:

  snapshot -> status filter -> text search -> sort -> renderer

Behavioral Contract:
- The snapshot is replaced by a single assignment, never mutated in place
- Every refresh and every status change re-scores the whole snapshot
- A failed refresh keeps the previous snapshot and view, and tells the admin
- Render passes are skipped when nothing visible could have changed
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple, Union

from kitchen_triage.errors import ConfigurationError, TriageError, ValidationError
from kitchen_triage.models.order import Order, OrderStatus
from kitchen_triage.models.priority import ScoredOrder
from kitchen_triage.models.triage import ALL_STATUSES, SortMode
from kitchen_triage.scoring.scorer import PriorityScorer
from kitchen_triage.store.client import OrderClient
from kitchen_triage.triage.capabilities import (
    InMemoryPreferenceStore,
    LoggingNotifier,
    Notifier,
    PreferenceStore,
    Renderer,
)

logger = logging.getLogger(__name__)

FILTER_PREFERENCE = "filter_status"
ADMIN_KEY_PREFERENCE = "admin_key"

def _local_now() -> datetime:
    return datetime.now().astimezone()


def _created(scored: ScoredOrder) -> datetime:
    return scored.order.placed_at


def _search_haystack(order: Order) -> List[str]:
    c = order.customer
    fields = [order.id, c.name, c.phone, c.address] + [i.name for i in order.items]
    return [str(f).lower() for f in fields if f]


_SORT_KEYS = {
    SortMode.PRIORITY: (lambda s: s.raw_score, True),
    SortMode.NEWEST: (_created, True),
    SortMode.OLDEST: (_created, False),
    SortMode.HIGHEST_VALUE: (lambda s: s.order.total, True),
}


def parse_filter(status: Optional[str]) -> str:
    """Resolve a filter value: ALL or a recognized status."""
    value = (status or ALL_STATUSES).strip().upper()
    if value == ALL_STATUSES:
        return value
    try:
        return OrderStatus(value).value
    except ValueError:
        raise ValidationError(f"Invalid status filter: {status!r}") from None


class TriageEngine:
    """
    One admin session's view of the order queue.

    Constructed per dashboard and passed by reference to the transition
    controller; nothing here is global.
    """

    def __init__(
        self,
        client: OrderClient,
        renderer: Renderer,
        scorer: Optional[PriorityScorer] = None,
        notifier: Optional[Notifier] = None,
        preferences: Optional[PreferenceStore] = None,
        admin_key: Optional[str] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        if client is None:
            raise ConfigurationError("Triage engine requires an order client")
        if renderer is None:
            raise ConfigurationError("Triage engine requires a renderer")

        self.client = client
        self.renderer = renderer
        self.scorer = scorer or PriorityScorer()
        self.notifier = notifier or LoggingNotifier()
        self.preferences = preferences or InMemoryPreferenceStore()
        self.now = now_fn or _local_now

        if admin_key is None:
            admin_key = self.preferences.get(ADMIN_KEY_PREFERENCE, "")
        self.admin_key: str = (admin_key or "").strip()

        try:
            self.filter_status = parse_filter(self.preferences.get(FILTER_PREFERENCE))
        except ValidationError:
            self.filter_status = ALL_STATUSES
        self.search_text = ""
        self.sort_mode = SortMode.PRIORITY

        self._snapshot: Tuple[ScoredOrder, ...] = ()
        self._last_render_hash = ""

    # --- Snapshot ---

    @property
    def snapshot(self) -> Tuple[ScoredOrder, ...]:
        """All orders of the session, in fetch order."""
        return self._snapshot

    @property
    def render_hash(self) -> str:
        """Content hash of the last render pass."""
        return self._last_render_hash

    def set_admin_key(self, admin_key: str) -> None:
        self.admin_key = (admin_key or "").strip()
        self.preferences.set(ADMIN_KEY_PREFERENCE, self.admin_key)

    async def refresh(self) -> bool:
        """
        Fetch the full order list, re-score it and replace the snapshot.

        Returns False when the fetch failed; the previous snapshot stays in
        place and the admin is notified.
        """
        if not self.admin_key:
            self.notifier.notify("Admin key required", "error")
            return False

        try:
            orders = await self.client.list_orders(self.admin_key)
        except TriageError as exc:
            logger.warning("Failed to fetch orders: %s", exc)
            self.notifier.notify(f"Failed to fetch orders: {exc}", "error")
            return False

        self._snapshot = tuple(self.scorer.score_all(orders, now=self.now()))
        self.render(force=True)
        return True

    def rescore(self, now: Optional[datetime] = None) -> None:
        """Re-annotate every order of the snapshot."""
        orders = [s.order for s in self._snapshot]
        self._snapshot = tuple(self.scorer.score_all(orders, now=now or self.now()))

    def find(self, order_id: str) -> Optional[Order]:
        for scored in self._snapshot:
            if str(scored.order.id) == str(order_id):
                return scored.order
        return None

    def replace_order(self, order: Order) -> bool:
        """
        Swap one order of the working copy for a new version and re-score.
        Returns False when the order is no longer in the snapshot.
        """
        orders = [s.order for s in self._snapshot]
        for i, existing in enumerate(orders):
            if str(existing.id) == str(order.id):
                orders[i] = order
                self._snapshot = tuple(self.scorer.score_all(orders, now=self.now()))
                return True
        return False

    # --- Filter / search / sort ---

    def set_filter(self, status: Optional[str]) -> None:
        self.filter_status = parse_filter(status)
        self.preferences.set(FILTER_PREFERENCE, self.filter_status)
        self.render()

    def set_search(self, text: Optional[str]) -> None:
        self.search_text = (text or "").lower()
        self.render()

    def set_sort(self, mode: Union[str, SortMode]) -> None:
        try:
            self.sort_mode = SortMode(mode)
        except ValueError:
            raise ValidationError(f"Invalid sort mode: {mode!r}") from None
        self.render()

    def visible_orders(self) -> List[ScoredOrder]:
        """Apply filter, then search, then a stable sort."""
        visible = list(self._snapshot)

        if self.filter_status != ALL_STATUSES:
            visible = [s for s in visible if s.order.status.value == self.filter_status]

        if self.search_text:
            needle = self.search_text
            visible = [
                s for s in visible
                if any(needle in hay for hay in _search_haystack(s.order))
            ]

        key, reverse = _SORT_KEYS[self.sort_mode]
        return sorted(visible, key=key, reverse=reverse)

    # --- Rendering ---

    def _compute_hash(self) -> str:
        content = {
            "key": self.admin_key,
            "orders": [
                [
                    s.order.id,
                    s.order.updated_at.isoformat() if s.order.updated_at else None,
                    s.order.status.value,
                    s.priority_score,
                ]
                for s in self._snapshot
            ],
            "filter": self.filter_status,
            "search": self.search_text,
            "sort": self.sort_mode.value,
        }
        return hashlib.sha256(json.dumps(content, sort_keys=True).encode()).hexdigest()

    def render(self, force: bool = False) -> bool:
        """Draw the visible queue. Returns False when the pass was skipped."""
        digest = self._compute_hash()
        if not force and digest == self._last_render_hash:
            logger.debug("Render skipped: content unchanged")
            return False
        self._last_render_hash = digest
        self.renderer.render(self.visible_orders())
        return True

    def visible_ids(self) -> Sequence[str]:
        return [s.order.id for s in self.visible_orders()]
