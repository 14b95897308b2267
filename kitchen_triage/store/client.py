"""
Order clients — how an admin session reaches the order store.

The triage engine and the transition controller run on the asyncio loop
and only ever suspend on these calls. Every admin call carries the shared
admin key.
"""

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from typing import Iterable, List, Mapping, Optional, Union

from kitchen_triage.errors import UnauthorizedError
from kitchen_triage.models.order import Customer, Order, OrderStatus
from kitchen_triage.store.base import OrderStore

logger = logging.getLogger(__name__)


def check_admin_key(expected: Optional[str], supplied: Optional[str]) -> None:
    """Refuse when no key is configured or the supplied key does not match."""
    if not expected or not supplied or not secrets.compare_digest(
        expected.encode("utf-8"), supplied.encode("utf-8")
    ):
        reason = "no admin key configured" if not expected else "bad key"
        logger.warning("Rejected admin request: %s", reason)
        raise UnauthorizedError("Unauthorized")


class OrderClient(ABC):
    """Async view of an order store."""

    @abstractmethod
    async def create_order(
        self,
        customer: Union[Mapping, Customer],
        items: Iterable,
        payment_method: str,
        notes: str = "",
    ) -> Order:
        ...

    @abstractmethod
    async def list_orders(self, admin_key: str) -> List[Order]:
        ...

    @abstractmethod
    async def get_order(self, order_id: str, admin_key: str) -> Order:
        ...

    @abstractmethod
    async def update_status(
        self, order_id: str, status: Union[str, OrderStatus], admin_key: str
    ) -> Order:
        ...

    async def aclose(self) -> None:
        """Release transport resources."""


class LocalOrderClient(OrderClient):
    """
    Runs a blocking in-process store on a worker thread so the event loop
    never blocks on file or database I/O.
    """

    def __init__(self, store: OrderStore, admin_key: Optional[str]):
        self.store = store
        self._admin_key = admin_key

    async def create_order(
        self,
        customer: Union[Mapping, Customer],
        items: Iterable,
        payment_method: str,
        notes: str = "",
    ) -> Order:
        return await asyncio.to_thread(
            self.store.create_order, customer, list(items), payment_method, notes
        )

    async def list_orders(self, admin_key: str) -> List[Order]:
        check_admin_key(self._admin_key, admin_key)
        return await asyncio.to_thread(self.store.list_orders)

    async def get_order(self, order_id: str, admin_key: str) -> Order:
        check_admin_key(self._admin_key, admin_key)
        return await asyncio.to_thread(self.store.get_order, order_id)

    async def update_status(
        self, order_id: str, status: Union[str, OrderStatus], admin_key: str
    ) -> Order:
        check_admin_key(self._admin_key, admin_key)
        return await asyncio.to_thread(self.store.update_status, order_id, status)
