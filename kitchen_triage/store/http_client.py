"""
HTTP order client — talks to the order API from an admin dashboard.

Status code mapping:
  400, 403 -> ValidationError (403 as UnauthorizedError)
  404      -> NotFoundError
  other non-2xx, transport failures, unreadable bodies -> TransientFetchError
"""

import logging
from typing import Iterable, List, Mapping, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from kitchen_triage.errors import (
    NotFoundError,
    TransientFetchError,
    UnauthorizedError,
    ValidationError,
)
from kitchen_triage.models.order import Customer, Order, OrderItem, OrderStatus
from kitchen_triage.store.client import OrderClient

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


def _order_path(order_id: str) -> str:
    return f"/api/orders/{quote(str(order_id), safe='')}"


class HttpOrderClient(OrderClient):
    """Order client backed by `httpx.AsyncClient`."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def _request(
        self,
        method: str,
        path: str,
        admin_key: Optional[str] = None,
        json: Optional[dict] = None,
    ):
        params = {"key": admin_key} if admin_key is not None else None
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 400:
            raise ValidationError(_error_detail(response))
        if response.status_code == 403:
            raise UnauthorizedError(_error_detail(response))
        if response.status_code == 404:
            raise NotFoundError(_error_detail(response))
        if response.is_error:
            raise TransientFetchError(
                f"HTTP {response.status_code} {_error_detail(response)}".strip()
            )
        try:
            return response.json()
        except ValueError:
            raise TransientFetchError("Invalid JSON response") from None

    def _expect_object(self, data) -> dict:
        if not isinstance(data, dict):
            raise TransientFetchError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def _parse_order(self, data) -> Order:
        try:
            return Order.model_validate(data)
        except PydanticValidationError as exc:
            raise TransientFetchError(f"Malformed order in response: {exc}") from exc

    async def create_order(
        self,
        customer: Union[Mapping, Customer],
        items: Iterable,
        payment_method: str,
        notes: str = "",
    ) -> Order:
        if isinstance(customer, Customer):
            customer = customer.model_dump()
        payload = {
            "customer": dict(customer),
            "items": [
                i.model_dump(by_alias=True) if isinstance(i, OrderItem) else dict(i)
                for i in items
            ],
            "paymentMethod": payment_method,
            "notes": notes,
        }
        data = self._expect_object(await self._request("POST", "/api/order", json=payload))
        return self._parse_order(data.get("order", data))

    async def list_orders(self, admin_key: str) -> List[Order]:
        data = await self._request("GET", "/api/orders", admin_key=admin_key)
        if not isinstance(data, list):
            raise TransientFetchError(f"Expected a JSON array, got {type(data).__name__}")
        orders = []
        for entry in data:
            try:
                orders.append(Order.model_validate(entry))
            except PydanticValidationError as exc:
                # One corrupt record must not blank the whole queue
                logger.warning("Skipping malformed order in listing: %s", exc)
        return orders

    async def get_order(self, order_id: str, admin_key: str) -> Order:
        data = await self._request("GET", _order_path(order_id), admin_key=admin_key)
        return self._parse_order(self._expect_object(data))

    async def update_status(
        self, order_id: str, status: Union[str, OrderStatus], admin_key: str
    ) -> Order:
        value = status.value if isinstance(status, OrderStatus) else str(status)
        data = await self._request(
            "PATCH",
            f"{_order_path(order_id)}/status",
            admin_key=admin_key,
            json={"status": value},
        )
        data = self._expect_object(data)
        if data.get("error"):
            raise ValidationError(str(data["error"]))
        return self._parse_order(data.get("order", data))

    async def aclose(self) -> None:
        await self._client.aclose()
