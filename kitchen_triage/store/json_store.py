"""
Flat JSON file order store.

The whole collection is held in memory and rewritten on every mutation.
An unreadable file is logged and treated as empty rather than crashing
the server.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from kitchen_triage.errors import NotFoundError, PersistenceError
from kitchen_triage.models.order import Customer, Order, OrderStatus
from kitchen_triage.store.base import (
    Clock,
    OrderStore,
    build_order,
    newest_first,
    parse_status,
)

logger = logging.getLogger(__name__)


class JsonFileOrderStore(OrderStore):
    """Orders persisted as a JSON array in a single file."""

    def __init__(self, path: Union[str, Path], clock: Optional[Clock] = None):
        super().__init__(clock)
        self.path = Path(path)
        self._lock = threading.Lock()
        self._orders: List[Order] = self._load()

    def _load(self) -> List[Order]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read %s: %s", self.path, exc)
            return []

        orders = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                orders.append(Order.model_validate(entry))
            except PydanticValidationError as exc:
                logger.warning("Skipping malformed order in %s: %s", self.path, exc)
        return orders

    def _write(self) -> None:
        payload = [o.to_wire() for o in self._orders]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            raise PersistenceError(f"Failed to persist orders to {self.path}") from exc

    def _index_of(self, order_id: str) -> int:
        for i, order in enumerate(self._orders):
            if order.id == order_id:
                return i
        raise NotFoundError(f"Order not found: {order_id}")

    def create_order(
        self,
        customer: Union[Mapping, Customer],
        items: Iterable,
        payment_method: str,
        notes: str = "",
    ) -> Order:
        order = build_order(customer, items, payment_method, notes, now=self._clock())
        with self._lock:
            self._orders.append(order)
            try:
                self._write()
            except PersistenceError:
                self._orders.pop()
                raise
        logger.info("Order %s placed (total %.2f)", order.id, order.total)
        return order

    def list_orders(self) -> List[Order]:
        with self._lock:
            return newest_first(self._orders)

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            return self._orders[self._index_of(order_id)]

    def update_status(self, order_id: str, status: Union[str, OrderStatus]) -> Order:
        new_status = parse_status(status)
        with self._lock:
            idx = self._index_of(order_id)
            previous = self._orders[idx]
            updated = previous.model_copy(
                update={"status": new_status, "updated_at": self._clock()}
            )
            self._orders[idx] = updated
            try:
                self._write()
            except PersistenceError:
                self._orders[idx] = previous
                raise
        return updated
