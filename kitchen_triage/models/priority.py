"""Priority weights and the transient annotation the scorer attaches to an order."""

from typing import Dict, List

from pydantic import BaseModel, Field, model_validator

from kitchen_triage.models.order import TERMINAL_STATUSES, Order, OrderStatus


class PriorityWeights(BaseModel):
    """Tuning for the priority scorer. Defaults reproduce the kitchen's dashboard."""

    value: float = 0.5                          # weight of the normalized order value
    staleness: float = 0.3                      # weight of the normalized wait time
    value_reference: float = Field(default=1000.0, gt=0)       # basket size that scores 1.0
    staleness_cap_minutes: float = Field(default=90.0, gt=0)   # wait that scores 1.0
    status_urgency: Dict[OrderStatus, float] = {
        OrderStatus.PLACED: 5,
        OrderStatus.CONFIRMED: 4,
        OrderStatus.DISPATCHED: 2,
        OrderStatus.DELIVERED: 1,
        OrderStatus.CANCELLED: 0,
    }
    keyword_boost: float = Field(default=2.0, ge=0)
    rush_boost: float = Field(default=1.0, ge=0)
    keywords: List[str] = ["paneer", "thali", "dal", "sabzi"]
    rush_windows: List[str] = [                 # cron expressions, matched per minute
        "* 12-15 * * *",
        "* 19-22 * * *",
    ]

    @model_validator(mode="after")
    def _terminal_statuses_least_urgent(self):
        urgency = self.status_urgency
        if any(w < 0 for w in urgency.values()):
            raise ValueError("status urgency weights must be non-negative")
        live = [w for s, w in urgency.items() if s not in TERMINAL_STATUSES]
        terminal = [w for s, w in urgency.items() if s in TERMINAL_STATUSES]
        if live and terminal and max(terminal) > min(live):
            raise ValueError("terminal statuses must carry the lowest urgency")
        return self


class PriorityExplanation(BaseModel):
    """Every sub-score behind a priority score. The audit trail for the ranking."""

    value_score: float
    staleness_score: float
    status_score: float
    keyword_boost: float
    rush_boost: float
    minutes_since_placed: float


class ScoredOrder(BaseModel):
    """An order plus its derived priority. Never persisted."""

    order: Order
    priority_score: float           # rounded to 2 decimals for display
    raw_score: float                # full precision, used for sorting
    explanation: PriorityExplanation

    @property
    def id(self) -> str:
        return self.order.id
