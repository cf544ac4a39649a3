"""
Lazily loaded subscription payment history.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from eventdesk.client.api_client import EventDeskClient
from eventdesk.core.exceptions import AppError
from eventdesk.schemas.subscription import SubscriptionPaymentSchema
from eventdesk.services.notification_service import Notifier

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "There was a problem loading your payment history. Please try again."


@dataclass
class CachedPayments:
    payments: list[SubscriptionPaymentSchema]
    stale: bool = False


@dataclass
class PaymentHistoryCache:
    """In-memory payment lists keyed by subscription id.

    Invalidation marks an entry stale but keeps its list, so a failed refresh
    still has the last good data to show.
    """

    entries: dict[int, CachedPayments] = field(default_factory=dict)

    def get(self, subscription_id: int) -> Optional[CachedPayments]:
        return self.entries.get(subscription_id)

    def store(self, subscription_id: int, payments: list[SubscriptionPaymentSchema]) -> None:
        self.entries[subscription_id] = CachedPayments(payments=list(payments))

    def is_fresh(self, subscription_id: int) -> bool:
        entry = self.entries.get(subscription_id)
        return entry is not None and not entry.stale

    def invalidate(self, subscription_id: int) -> None:
        entry = self.entries.get(subscription_id)
        if entry is not None:
            entry.stale = True

    def clear(self) -> None:
        self.entries.clear()


class PaymentHistoryLoader:
    """Fetches a subscription's payments once and then toggles their visibility."""

    def __init__(
        self,
        client: EventDeskClient,
        notifier: Notifier,
        cache: PaymentHistoryCache | None = None,
    ):
        self.client = client
        self.notifier = notifier
        self.cache = cache if cache is not None else PaymentHistoryCache()
        self.visible = False
        self.loading = False

    async def load_payments(self, subscription_id: int) -> list[SubscriptionPaymentSchema]:
        if self.cache.is_fresh(subscription_id):
            self.visible = not self.visible
            return self.cache.get(subscription_id).payments

        self.loading = True
        try:
            payments = await self.client.get_subscription_payments(subscription_id)
        except AppError as exc:
            logger.error("Error loading payment history for subscription %s: %s", subscription_id, exc)
            self.notifier.error(LOAD_ERROR_MESSAGE)
            entry = self.cache.get(subscription_id)
            return entry.payments if entry is not None else []
        finally:
            self.loading = False

        self.cache.store(subscription_id, payments)
        self.visible = True
        return self.cache.get(subscription_id).payments
