"""
Priority Scorer — ranks the admin queue by urgency.

score = value * W_value + staleness * W_staleness + status_urgency
        + keyword_boost + rush_boost

Behavioral Contract:
- Pure: no I/O, no side effects, the current time is an explicit argument
- Never raises on a malformed order; a bad timestamp counts as "just placed"
  and a bad total counts as zero, so one corrupt record cannot blank the queue
- The explanation keeps every sub-score and the raw minutes elapsed
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from croniter import croniter

from kitchen_triage.models.order import Order
from kitchen_triage.models.priority import (
    PriorityExplanation,
    PriorityWeights,
    ScoredOrder,
)


def _is_rush_window(windows: Iterable[str], current_time: datetime) -> bool:
    """Check whether the current minute falls inside any configured rush window."""
    for window in windows:
        try:
            if croniter.match(window, current_time):
                return True
        except (ValueError, KeyError):
            # Invalid cron expression: window inactive
            continue
    return False


def _minutes_since(created_at: Optional[datetime], current_time: datetime) -> float:
    if created_at is None:
        return 0.0
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if current_time.tzinfo is None:
        current_time = current_time.replace(tzinfo=timezone.utc)
    return max(0.0, (current_time - created_at).total_seconds() / 60.0)


def _has_keyword(order: Order, keywords: Iterable[str]) -> bool:
    names = [item.name.lower() for item in order.items]
    return any(k.lower() in name for k in keywords if k for name in names)


class PriorityScorer:
    """Computes a priority score and explanation for one order at a time."""

    def __init__(self, weights: Optional[PriorityWeights] = None):
        self.weights = weights or PriorityWeights()

    def score(self, order: Order, now: Optional[datetime] = None) -> ScoredOrder:
        """Score a single order as of `now` (local wall clock by default)."""
        if now is None:
            now = datetime.now().astimezone()
        w = self.weights

        minutes = _minutes_since(order.created_at, now)
        value_score = min(1.0, max(0.0, order.total) / w.value_reference)
        staleness_score = min(1.0, minutes / w.staleness_cap_minutes)

        max_urgency = max(w.status_urgency.values(), default=0)
        raw_urgency = w.status_urgency.get(order.status, 0)
        status_score = raw_urgency / max_urgency if max_urgency > 0 else 0.0

        keyword_boost = w.keyword_boost if _has_keyword(order, w.keywords) else 0.0
        rush_boost = w.rush_boost if _is_rush_window(w.rush_windows, now) else 0.0

        raw = (
            value_score * w.value
            + staleness_score * w.staleness
            + status_score
            + keyword_boost
            + rush_boost
        )

        return ScoredOrder(
            order=order,
            priority_score=round(raw, 2),
            raw_score=raw,
            explanation=PriorityExplanation(
                value_score=value_score,
                staleness_score=staleness_score,
                status_score=status_score,
                keyword_boost=keyword_boost,
                rush_boost=rush_boost,
                minutes_since_placed=minutes,
            ),
        )

    def score_all(
        self, orders: Iterable[Order], now: Optional[datetime] = None
    ) -> List[ScoredOrder]:
        """Score a batch against one shared `now`, preserving input order."""
        if now is None:
            now = datetime.now().astimezone()
        return [self.score(o, now) for o in orders]


def explain_priority(explanation: PriorityExplanation) -> str:
    """Tooltip text for a scored order, e.g. `Value:0.50 | Age:0.33 (30m) | Status:1.00`."""
    parts = [
        f"Value:{explanation.value_score:.2f}",
        f"Age:{explanation.staleness_score:.2f} ({round(explanation.minutes_since_placed)}m)",
        f"Status:{explanation.status_score:.2f}",
    ]
    if explanation.keyword_boost:
        parts.append(f"Keywords:+{explanation.keyword_boost:g}")
    if explanation.rush_boost:
        parts.append(f"Rush:+{explanation.rush_boost:g}")
    return " | ".join(parts)
