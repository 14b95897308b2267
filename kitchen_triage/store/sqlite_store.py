"""
SQL order store.

One row per order. Status and timestamps get their own columns for
ordering and lookups; the full order is kept as JSON in `order_json`.
Prototype: SQLite. A hosted Postgres table has the same shape.
"""

import logging
import sqlite3
import threading
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from kitchen_triage.errors import NotFoundError, PersistenceError
from kitchen_triage.models.order import Customer, Order, OrderStatus
from kitchen_triage.store.base import Clock, OrderStore, build_order, parse_status

logger = logging.getLogger(__name__)


class SqliteOrderStore(OrderStore):
    """Orders persisted in an `orders` table."""

    def __init__(self, db_path: str = ":memory:", clock: Optional[Clock] = None):
        super().__init__(clock)
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the orders table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                status TEXT NOT NULL DEFAULT 'PLACED',
                total REAL NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT,
                order_json TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_orders_created_at ON orders(created_at)
        """)
        self._conn.commit()

    def _deserialize(self, row: sqlite3.Row) -> Order:
        try:
            return Order.model_validate_json(row["order_json"])
        except PydanticValidationError as exc:
            raise PersistenceError(f"Stored order is unreadable: {exc}") from exc

    def _save(self, order: Order, insert: bool) -> None:
        params = (
            order.status.value,
            order.total,
            order.created_at.isoformat() if order.created_at else "",
            order.updated_at.isoformat() if order.updated_at else None,
            order.model_dump_json(by_alias=True),
            order.id,
        )
        try:
            self._execute_save(params, insert)
        except sqlite3.Error as exc:
            self._conn.rollback()
            logger.error("Failed to save order %s: %s", order.id, exc)
            raise PersistenceError(f"Failed to persist order {order.id}") from exc

    def _execute_save(self, params: tuple, insert: bool) -> None:
        if insert:
            self._conn.execute(
                """
                INSERT INTO orders (status, total, created_at, updated_at, order_json, id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                params,
            )
        else:
            self._conn.execute(
                """
                UPDATE orders SET status = ?, total = ?, created_at = ?,
                    updated_at = ?, order_json = ?
                WHERE id = ?
                """,
                params,
            )
        self._conn.commit()

    def create_order(
        self,
        customer: Union[Mapping, Customer],
        items: Iterable,
        payment_method: str,
        notes: str = "",
    ) -> Order:
        order = build_order(customer, items, payment_method, notes, now=self._clock())
        with self._lock:
            self._save(order, insert=True)
        logger.info("Order %s placed (total %.2f)", order.id, order.total)
        return order

    def list_orders(self) -> List[Order]:
        with self._lock:
            rows = self._conn.execute("""
                SELECT order_json FROM orders
                ORDER BY created_at = '' DESC, created_at DESC, rowid DESC
            """).fetchall()
        orders = []
        for row in rows:
            try:
                orders.append(self._deserialize(row))
            except PersistenceError as exc:
                logger.warning("Skipping malformed order row: %s", exc)
        return orders

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            row = self._conn.execute(
                "SELECT order_json FROM orders WHERE id = ?", (order_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Order not found: {order_id}")
        return self._deserialize(row)

    def update_status(self, order_id: str, status: Union[str, OrderStatus]) -> Order:
        new_status = parse_status(status)
        with self._lock:
            row = self._conn.execute(
                "SELECT order_json FROM orders WHERE id = ?", (order_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Order not found: {order_id}")
            updated = self._deserialize(row).model_copy(
                update={"status": new_status, "updated_at": self._clock()}
            )
            self._save(updated, insert=False)
        return updated

    def count(self) -> int:
        """Total number of stored orders."""
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM orders").fetchone()
        return row["cnt"]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
