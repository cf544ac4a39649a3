"""
Async REST client for the EventDesk API.

Every endpoint answers with the envelope ``{code, success, data, description}``.
Network failures raise ``TransportError``; non-success answers raise
``ApiError`` (``AuthenticationError`` for 401). A ``null`` payload is returned
as ``None`` and is not an error.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from eventdesk.config import settings
from eventdesk.core.exceptions import ApiError, AuthenticationError, TransportError
from eventdesk.schemas.subscription import (
    CustomerDetails,
    PurchaseResult,
    SubscriptionPaymentSchema,
    SubscriptionPlanSchema,
    SubscriptionSchema,
)
from eventdesk.schemas.venue import BookingSchema, VenueSchema

logger = logging.getLogger(__name__)


class EventDeskClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = str(base_url or settings.api_base_url).rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout or settings.api_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "EventDeskClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise TransportError(f"Could not reach the server: {exc}") from exc

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        description = body.get("description") if isinstance(body, dict) else None
        if response.status_code == 401:
            raise AuthenticationError(description or "Authentication required", 401)
        if not response.is_success:
            logger.error("%s %s returned %s: %s", method, path, response.status_code, description or response.text)
            raise ApiError(description or f"Request failed with status {response.status_code}", response.status_code)
        if not isinstance(body, dict) or not body.get("success"):
            raise ApiError(description or "Malformed response from server", response.status_code)
        return body.get("data")

    async def get_current_subscription(self) -> Optional[SubscriptionSchema]:
        data = await self._request("GET", "/api/subscriptions/current")
        return SubscriptionSchema.model_validate(data) if data else None

    async def get_subscription_plans(self, plan_type: str | None = None) -> list[SubscriptionPlanSchema]:
        params = {"type": plan_type} if plan_type else None
        data = await self._request("GET", "/api/subscriptions/plans", params=params)
        return [SubscriptionPlanSchema.model_validate(item) for item in data or []]

    async def get_subscription_plan(self, plan_id: int) -> SubscriptionPlanSchema:
        data = await self._request("GET", f"/api/subscriptions/plans/{plan_id}")
        return SubscriptionPlanSchema.model_validate(data)

    async def cancel_subscription(self) -> SubscriptionSchema:
        data = await self._request("POST", "/api/subscriptions/cancel")
        return SubscriptionSchema.model_validate(data)

    async def get_subscription_payments(self, subscription_id: int) -> list[SubscriptionPaymentSchema]:
        data = await self._request("GET", f"/api/subscriptions/{subscription_id}/payments")
        return [SubscriptionPaymentSchema.model_validate(item) for item in data or []]

    async def has_active_subscription(self, plan_type: str) -> bool:
        data = await self._request("GET", f"/api/subscriptions/check-active/{plan_type}")
        return bool((data or {}).get("has_active_subscription"))

    async def purchase_subscription(self, plan_id: int, customer: CustomerDetails) -> PurchaseResult:
        data = await self._request(
            "POST",
            "/api/subscriptions/purchase",
            json={"plan_id": plan_id, "customer": customer.model_dump()},
        )
        return PurchaseResult.model_validate(data)

    async def get_venues(self) -> list[VenueSchema]:
        data = await self._request("GET", "/api/venues")
        return [VenueSchema.model_validate(item) for item in data or []]

    async def get_rentals(self) -> list[BookingSchema]:
        data = await self._request("GET", "/api/rentals")
        return [BookingSchema.model_validate(item) for item in data or []]
