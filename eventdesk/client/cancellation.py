from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from eventdesk.client.api_client import EventDeskClient
from eventdesk.client.payments import PaymentHistoryCache
from eventdesk.core.exceptions import AppError
from eventdesk.schemas.subscription import SubscriptionSchema
from eventdesk.services.notification_service import Notifier

logger = logging.getLogger(__name__)

CancelledCallback = Callable[[SubscriptionSchema], Union[Awaitable[Any], Any]]


class CancellationWorkflow:
    """Cancels the current subscription at the end of its billing period.

    Nothing changes locally until the server confirms. While a request is
    outstanding further calls are ignored.
    """

    def __init__(
        self,
        client: EventDeskClient,
        notifier: Notifier,
        payment_cache: PaymentHistoryCache | None = None,
        on_cancelled: CancelledCallback | None = None,
    ):
        self.client = client
        self.notifier = notifier
        self.payment_cache = payment_cache
        self.on_cancelled = on_cancelled
        self.in_flight = False

    async def cancel(self, subscription_id: int) -> Optional[SubscriptionSchema]:
        if self.in_flight:
            logger.info("Cancellation for subscription %s already in progress", subscription_id)
            return None

        self.in_flight = True
        try:
            updated = await self.client.cancel_subscription()
        except AppError as exc:
            logger.error("Error cancelling subscription %s: %s", subscription_id, exc)
            self.notifier.error("There was a problem cancelling your subscription. Please try again.")
            return None
        finally:
            self.in_flight = False

        self.notifier.notify(
            "Subscription cancelled",
            "Your subscription will remain active until the end of the current billing period.",
        )
        if self.payment_cache is not None:
            self.payment_cache.invalidate(subscription_id)
        if self.on_cancelled is not None:
            result = self.on_cancelled(updated)
            if inspect.isawaitable(result):
                await result
        return updated
