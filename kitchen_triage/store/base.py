"""
Order Store contract.

The store owns the durable copy of every order. It validates what it is
given, but it does not enforce the status transition table: once the
transition controller approves a change, `update_status` writes it
unconditionally.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from kitchen_triage.errors import ValidationError
from kitchen_triage.models.order import Customer, Order, OrderItem, OrderStatus

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(status: Union[str, OrderStatus]) -> OrderStatus:
    """Resolve a status value, raising ValidationError when it is not recognized."""
    try:
        return OrderStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid status: {status!r}") from None


def newest_first(orders: Iterable[Order]) -> List[Order]:
    """Sort by creation time, newest first. Orders without a timestamp count as just placed."""
    return sorted(orders, key=lambda o: o.placed_at, reverse=True)


def _normalize_item(raw: Union[Mapping, OrderItem]) -> OrderItem:
    if isinstance(raw, OrderItem):
        return raw
    if not isinstance(raw, Mapping) or raw.get("id") in (None, ""):
        raise ValidationError("Every item needs an id")
    item_id = str(raw["id"])
    quantity = raw.get("qty", raw.get("quantity"))
    return OrderItem(
        id=item_id,
        name=str(raw.get("name") or item_id),
        quantity=1 if quantity is None else quantity,
        price=raw.get("price") or 0,
    )


def build_order(
    customer: Union[Mapping, Customer, None],
    items: Optional[Iterable],
    payment_method: Optional[str],
    notes: Optional[str] = "",
    now: Optional[datetime] = None,
) -> Order:
    """
    Validate a checkout payload and build a new PLACED order.

    The total is computed once here and never recomputed afterwards.
    """
    items = list(items or [])
    if not items:
        raise ValidationError("Items are required")

    try:
        if isinstance(customer, Customer):
            cust = customer
        else:
            cust = Customer.model_validate(dict(customer or {}))
    except (TypeError, ValueError):
        raise ValidationError("Customer name, phone, and address are required") from None

    if not payment_method:
        raise ValidationError("Payment method is required")

    try:
        normalized = [_normalize_item(i) for i in items]
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed item: {exc.errors()[0]['msg']}") from None

    return Order(
        id=uuid4().hex,
        created_at=now or utc_now(),
        customer=cust,
        items=normalized,
        total=sum(i.amount for i in normalized),
        status=OrderStatus.PLACED,
        payment_method=str(payment_method),
        notes=notes or "",
    )


class OrderStore(ABC):
    """Durable collection of orders."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now

    @abstractmethod
    def create_order(
        self,
        customer: Union[Mapping, Customer],
        items: Iterable,
        payment_method: str,
        notes: str = "",
    ) -> Order:
        """Validate and persist a new order. Raises ValidationError."""

    @abstractmethod
    def list_orders(self) -> List[Order]:
        """All orders, newest first."""

    @abstractmethod
    def get_order(self, order_id: str) -> Order:
        """Fetch one order. Raises NotFoundError."""

    @abstractmethod
    def update_status(self, order_id: str, status: Union[str, OrderStatus]) -> Order:
        """Write a new status and stamp updated_at. Raises ValidationError, NotFoundError."""

    def close(self) -> None:
        """Release any resources held by the store."""
