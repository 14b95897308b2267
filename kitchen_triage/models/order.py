"""Order — the central entity of the ordering system."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def sanitize_phone(raw) -> str:
    """Keep digits only, at most the last 12 (country code + 10-digit number)."""
    return re.sub(r"\D", "", str(raw or ""))[-12:]


class Customer(BaseModel):
    """Who placed the order and where it goes. Immutable after creation."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)

    @field_validator("name", "address", mode="before")
    @classmethod
    def _strip(cls, value):
        return str(value).strip() if value is not None else ""

    @field_validator("phone", mode="before")
    @classmethod
    def _digits_only(cls, value):
        return sanitize_phone(value)


class OrderItem(BaseModel):
    """One line of an order, fixed at creation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    quantity: int = Field(default=1, ge=1, alias="qty")
    price: float = Field(default=0.0, ge=0)

    @property
    def amount(self) -> float:
        return self.quantity * self.price


class Order(BaseModel):
    """
    A placed customer request.

    Only `status` and `updated_at` ever change, and only through the status
    transition controller. Timestamps and totals are parsed leniently: a
    corrupt record degrades to "just placed" / zero instead of failing the
    whole batch it arrived in.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    customer: Customer
    items: List[OrderItem] = []
    total: float = Field(default=0.0, ge=0)
    status: OrderStatus = OrderStatus.PLACED
    payment_method: str = Field(default="", alias="paymentMethod")
    notes: str = ""

    @field_validator("created_at", "updated_at", mode="wrap")
    @classmethod
    def _lenient_timestamp(cls, value, handler):
        try:
            return handler(value)
        except PydanticValidationError:
            return None

    @field_validator("total", mode="wrap")
    @classmethod
    def _lenient_total(cls, value, handler):
        try:
            return handler(value)
        except PydanticValidationError:
            return 0.0

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_as_text(cls, value):
        return "" if value is None else str(value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def placed_at(self) -> datetime:
        """Timezone-aware creation time. A missing timestamp reads as just placed."""
        if self.created_at is None:
            return _LATEST
        ts = self.created_at
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

    def to_wire(self) -> dict:
        """Serialize with the camelCase names the JSON store and the API use."""
        return self.model_dump(mode="json", by_alias=True)
