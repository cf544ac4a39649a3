from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Optional

from eventdesk.client.api_client import EventDeskClient
from eventdesk.client.cancellation import CancellationWorkflow
from eventdesk.client.payments import PaymentHistoryCache, PaymentHistoryLoader
from eventdesk.client.status import StatusCard, SubscriptionState, build_status_card, resolve_status
from eventdesk.core.exceptions import AppError
from eventdesk.schemas.subscription import SubscriptionPaymentSchema, SubscriptionSchema
from eventdesk.services.notification_service import Notifier
from eventdesk.utils.dates import now_utc

logger = logging.getLogger(__name__)


class SubscriptionPanel:
    """The signed-in user's subscription: latest snapshot, status card, cancel and payment history.

    Status is always derived from the last fetched snapshot; a successful
    cancellation triggers a fresh fetch instead of patching the snapshot.
    """

    def __init__(
        self,
        client: EventDeskClient,
        role: str,
        notifier: Notifier | None = None,
        tz: tzinfo | None = None,
    ):
        self.client = client
        self.role = role
        self.tz = tz
        self.notifier = notifier or Notifier()
        self.payment_cache = PaymentHistoryCache()
        self.payments = PaymentHistoryLoader(client, self.notifier, self.payment_cache)
        self.cancellation = CancellationWorkflow(
            client,
            self.notifier,
            payment_cache=self.payment_cache,
            on_cancelled=self._after_cancel,
        )
        self.subscription: Optional[SubscriptionSchema] = None
        self.error: Optional[str] = None

    async def refresh(self) -> Optional[SubscriptionSchema]:
        try:
            self.subscription = await self.client.get_current_subscription()
            self.error = None
        except AppError as exc:
            logger.error("Error fetching subscription: %s", exc)
            self.error = "Failed to load subscription information"
        return self.subscription

    def state(self, now: datetime | None = None) -> SubscriptionState:
        return resolve_status(self.subscription, now or now_utc())

    def card(self, now: datetime | None = None) -> Optional[StatusCard]:
        return build_status_card(self.subscription, self.role, now or now_utc(), self.tz)

    async def cancel(self) -> Optional[SubscriptionSchema]:
        if self.subscription is None:
            return None
        return await self.cancellation.cancel(self.subscription.id)

    async def toggle_payments(self) -> list[SubscriptionPaymentSchema]:
        if self.subscription is None:
            return []
        return await self.payments.load_payments(self.subscription.id)

    async def _after_cancel(self, _updated: SubscriptionSchema) -> None:
        await self.refresh()
