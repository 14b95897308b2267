"""Kitchen triage data models."""

from kitchen_triage.models.order import (
    TERMINAL_STATUSES,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
)
from kitchen_triage.models.priority import (
    PriorityExplanation,
    PriorityWeights,
    ScoredOrder,
)
from kitchen_triage.models.triage import (
    ALL_STATUSES,
    SchedulerConfig,
    SortMode,
    TransitionResult,
)

__all__ = [
    "ALL_STATUSES",
    "Customer",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PriorityExplanation",
    "PriorityWeights",
    "SchedulerConfig",
    "ScoredOrder",
    "SortMode",
    "TERMINAL_STATUSES",
    "TransitionResult",
]
