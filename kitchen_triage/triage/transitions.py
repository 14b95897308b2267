"""
Status Transition Controller — the order lifecycle state machine.

    PLACED -> CONFIRMED -> DISPATCHED -> DELIVERED
       \\           \\
        +-----------+--> CANCELLED

DELIVERED and CANCELLED are terminal.

Every transition runs in three phases:
  1. apply locally   (capture the rollback value, stamp updated_at, re-score, render)
  2. persist remotely
  3. reconcile       (keep the store's copy on success, restore the rollback on failure)

Behavioral Contract:
- Illegal or unrecognized targets are rejected before any store call
- Every transition is confirmed by the admin before it is applied
- A failed persist restores status and updated_at exactly
"""

import logging
from typing import Dict, FrozenSet, Optional, Union

from kitchen_triage.errors import NotFoundError, TriageError, ValidationError
from kitchen_triage.models.order import OrderStatus
from kitchen_triage.models.triage import TransitionResult
from kitchen_triage.store.client import OrderClient
from kitchen_triage.triage.capabilities import Confirmer, ConsoleConfirmer, Notifier
from kitchen_triage.triage.engine import TriageEngine

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.DISPATCHED, OrderStatus.CANCELLED}),
    OrderStatus.DISPATCHED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Button order for the admin actions of each status
_ACTION_ORDER = [
    OrderStatus.CONFIRMED,
    OrderStatus.DISPATCHED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
]


def allowed_transitions(status: Union[str, OrderStatus]) -> FrozenSet[OrderStatus]:
    try:
        return ALLOWED_TRANSITIONS[OrderStatus(status)]
    except ValueError:
        return frozenset()


def is_transition_allowed(
    current: Union[str, OrderStatus], requested: Union[str, OrderStatus]
) -> bool:
    try:
        target = OrderStatus(requested)
    except ValueError:
        return False
    return target in allowed_transitions(current)


def next_actions(status: Union[str, OrderStatus]) -> list:
    """Allowed targets in display order."""
    allowed = allowed_transitions(status)
    return [s for s in _ACTION_ORDER if s in allowed]


class TransitionController:
    """Drives status changes for the orders of one triage session."""

    def __init__(
        self,
        engine: TriageEngine,
        client: Optional[OrderClient] = None,
        confirmer: Optional[Confirmer] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.engine = engine
        self.client = client or engine.client
        self.confirmer = confirmer or ConsoleConfirmer()
        self.notifier = notifier or engine.notifier

    def _reject(self, order_id: str, requested: str, error: TriageError,
                previous: Optional[OrderStatus] = None) -> TransitionResult:
        logger.info("Transition of %s to %s rejected: %s", order_id, requested, error)
        self.notifier.notify(str(error), "error")
        return TransitionResult(
            success=False,
            order_id=str(order_id),
            requested_status=str(requested),
            previous_status=previous,
            error=str(error),
        )

    async def transition(
        self, order_id: str, next_status: Union[str, OrderStatus]
    ) -> TransitionResult:
        """Move an order to `next_status` with an optimistic local update."""
        requested = next_status.value if isinstance(next_status, OrderStatus) else str(next_status)

        order = self.engine.find(order_id)
        if order is None:
            return self._reject(order_id, requested, NotFoundError(f"Order not found: {order_id}"))

        try:
            target = OrderStatus(requested)
        except ValueError:
            return self._reject(
                order_id, requested,
                ValidationError(f"Invalid status: {requested!r}"),
                previous=order.status,
            )

        if not is_transition_allowed(order.status, target):
            return self._reject(
                order_id, requested,
                ValidationError(
                    f"Cannot move order #{order_id} from {order.status.value} to {target.value}"
                ),
                previous=order.status,
            )

        if not await self.confirmer.confirm(f"Move #{order_id} to {target.value}?"):
            return TransitionResult(
                success=False,
                order_id=str(order_id),
                requested_status=requested,
                previous_status=order.status,
                error="cancelled by user",
            )

        # A refresh may have landed while the prompt was open
        order = self.engine.find(order_id) or order
        if not is_transition_allowed(order.status, target):
            return self._reject(
                order_id, requested,
                ValidationError(
                    f"Order #{order_id} is now {order.status.value}; cannot move to {target.value}"
                ),
                previous=order.status,
            )
        rollback = order
        previous_status = rollback.status

        # 1. Apply locally
        self.engine.replace_order(
            order.model_copy(update={"status": target, "updated_at": self.engine.now()})
        )
        self.engine.render(force=True)

        # 2. Persist remotely
        try:
            persisted = await self.client.update_status(order_id, target, self.engine.admin_key)
        except TriageError as exc:
            # 3a. Reconcile: restore the exact pre-transition copy
            self.engine.replace_order(rollback)
            self.engine.render(force=True)
            logger.warning(
                "Transition of %s to %s failed, reverted to %s: %s",
                order_id, target.value, previous_status.value, exc,
            )
            self.notifier.notify(f"Failed to update order #{order_id}: {exc}", "error")
            return TransitionResult(
                success=False,
                order_id=str(order_id),
                requested_status=requested,
                previous_status=previous_status,
                reverted_value=previous_status,
                store_called=True,
                error=str(exc),
            )

        # 3b. Reconcile: the store's copy is authoritative
        self.engine.replace_order(persisted)
        self.engine.render(force=True)
        logger.info(
            "Order %s moved %s -> %s at %s",
            order_id, previous_status.value, persisted.status.value,
            persisted.updated_at.isoformat() if persisted.updated_at else "-",
        )
        self.notifier.notify(f"Order #{order_id} → {target.value}", "success")
        return TransitionResult(
            success=True,
            order_id=str(order_id),
            requested_status=requested,
            previous_status=previous_status,
            store_called=True,
        )
