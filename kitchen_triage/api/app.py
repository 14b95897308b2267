"""
Kitchen order API — FastAPI endpoints.

Exposes the order store to the storefront and the admin dashboard:
- Order placement (customers)
- Order listing and lookup (admin)
- Status updates (admin)

Admin endpoints take the shared admin key as the `key` query parameter.
The status endpoint writes unconditionally; the transition table is
enforced by the dashboard's transition controller.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from kitchen_triage.config import Settings, settings as default_settings
from kitchen_triage.errors import (
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    ValidationError,
)
from kitchen_triage.store import build_store
from kitchen_triage.store.base import OrderStore
from kitchen_triage.store.client import check_admin_key

logger = logging.getLogger(__name__)


# --- Request Models ---

class OrderCreateRequest(BaseModel):
    items: list = []
    customer: Optional[dict] = None
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    notes: Optional[str] = ""


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


# --- Application Factory ---

def create_app(
    store: Optional[OrderStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or default_settings
    app = FastAPI(
        title=f"{settings.PROJECT_NAME} Orders API",
        version="0.1.0",
    )

    orders = store or build_store(settings)
    app.state.store = orders
    app.state.settings = settings

    def require_admin(key: Optional[str]) -> None:
        try:
            check_admin_key(settings.ADMIN_KEY, key)
        except UnauthorizedError:
            raise HTTPException(403, "Unauthorized") from None

    # === HEALTH ===

    @app.get("/api/health")
    def health_check():
        return {"ok": True}

    # === CUSTOMER ===

    @app.post("/api/order")
    def place_order(req: OrderCreateRequest):
        """Place a new order."""
        try:
            order = orders.create_order(
                customer=req.customer or {},
                items=req.items,
                payment_method=req.payment_method,
                notes=req.notes or "",
            )
        except ValidationError as exc:
            raise HTTPException(400, str(exc)) from None
        except PersistenceError:
            raise HTTPException(500, "Failed to persist order") from None
        return {"id": order.id, "order": order.to_wire()}

    # === ADMIN ===

    @app.get("/api/orders")
    def list_orders(key: Optional[str] = None):
        """All orders, newest first."""
        require_admin(key)
        return [o.to_wire() for o in orders.list_orders()]

    @app.get("/api/orders/{order_id}")
    def get_order(order_id: str, key: Optional[str] = None):
        """Get a specific order."""
        require_admin(key)
        try:
            return orders.get_order(order_id).to_wire()
        except NotFoundError:
            raise HTTPException(404, "Order not found") from None
        except PersistenceError:
            raise HTTPException(500, "Failed to read order") from None

    @app.patch("/api/orders/{order_id}/status")
    def update_status(order_id: str, req: StatusUpdateRequest, key: Optional[str] = None):
        """Write a new order status."""
        require_admin(key)
        try:
            order = orders.update_status(order_id, req.status or "")
        except ValidationError:
            raise HTTPException(400, "Invalid status") from None
        except NotFoundError:
            raise HTTPException(404, "Order not found") from None
        except PersistenceError:
            raise HTTPException(500, "Failed to persist order status") from None
        logger.info("Order %s status set to %s", order.id, order.status.value)
        return {"success": True, "order": order.to_wire()}

    return app


# Default application instance
app = create_app()
