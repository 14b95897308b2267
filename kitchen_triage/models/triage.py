"""Triage session vocabulary: sort modes, filters, transition outcomes, polling config."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from kitchen_triage.models.order import OrderStatus

ALL_STATUSES = "ALL"


class SortMode(str, Enum):
    PRIORITY = "AI"                 # highest priority score first
    NEWEST = "newest"
    OLDEST = "oldest"
    HIGHEST_VALUE = "highest-value"


class TransitionResult(BaseModel):
    """Outcome of one status transition attempt."""

    success: bool
    order_id: str
    requested_status: str
    previous_status: Optional[OrderStatus] = None
    reverted_value: Optional[OrderStatus] = None   # set when an optimistic apply was rolled back
    store_called: bool = False
    error: Optional[str] = None


class SchedulerConfig(BaseModel):
    """Polling and input-debounce timing for an admin dashboard."""

    poll_interval_seconds: float = Field(default=15.0, gt=0)
    search_debounce_seconds: float = Field(default=0.25, ge=0)
