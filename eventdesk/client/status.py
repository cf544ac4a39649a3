"""
Subscription status resolution and the status card shown to event managers and venue owners.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import Optional

from eventdesk.schemas.subscription import SubscriptionSchema
from eventdesk.utils.dates import as_utc, format_long_date


class SubscriptionState(str, Enum):
    NONE = "none"
    ACTIVE = "active"
    EXPIRED = "expired"
    PENDING_CANCELLATION = "pending-cancellation"


def resolve_status(subscription: Optional[SubscriptionSchema], now: datetime) -> SubscriptionState:
    """Derive the display state of a subscription at ``now``.

    The end date must be strictly after ``now`` for access to remain, so a
    subscription ending exactly at ``now`` is expired. A "pending" record has
    not been paid for and resolves to ``NONE``.
    """
    if subscription is None:
        return SubscriptionState.NONE

    in_period = as_utc(subscription.end_date) > as_utc(now)
    if subscription.status == "active":
        return SubscriptionState.ACTIVE if in_period else SubscriptionState.EXPIRED
    if subscription.status == "cancelled":
        return SubscriptionState.PENDING_CANCELLATION if in_period else SubscriptionState.EXPIRED
    if subscription.status == "expired":
        return SubscriptionState.EXPIRED
    return SubscriptionState.NONE


@dataclass(frozen=True)
class RoleCapabilities:
    required_reason: str
    intro: str
    features: tuple[str, ...]
    grant: str


ROLE_CAPABILITIES: dict[str, RoleCapabilities] = {
    "eventManager": RoleCapabilities(
        required_reason="You need a subscription to create events and view sales reports",
        intro="As an event manager, you need an active subscription to access all features:",
        features=(
            "Create and manage events",
            "Access sales reports and analytics",
            "Track attendance and ticket validation",
        ),
        grant=(
            "Your subscription grants you access to event creation, sales analytics, "
            "and all event manager features."
        ),
    ),
    "center": RoleCapabilities(
        required_reason="You need a subscription to manage venues and view bookings",
        intro="As a venue owner, you need an active subscription to access all features:",
        features=(
            "Manage venues and availability",
            "Access booking reports and analytics",
            "Manage cashiers and staff accounts",
        ),
        grant=(
            "Your subscription grants you access to venue management, booking analytics, "
            "and all venue owner features."
        ),
    ),
}


@dataclass
class StatusCard:
    state: SubscriptionState
    title: str
    description: str
    action_label: str
    features: list[str] = field(default_factory=list)
    plan_name: Optional[str] = None
    warning: Optional[str] = None


def build_status_card(
    subscription: Optional[SubscriptionSchema],
    role: str,
    now: datetime,
    tz: tzinfo | None = None,
) -> Optional[StatusCard]:
    """Status card for a subscribing role; ``None`` for roles that never subscribe."""
    capabilities = ROLE_CAPABILITIES.get(role)
    if capabilities is None:
        return None

    state = resolve_status(subscription, now)
    if state is SubscriptionState.NONE or subscription is None:
        return StatusCard(
            state=state,
            title="Subscription Required",
            description=capabilities.required_reason,
            action_label="Subscribe Now",
            features=[capabilities.intro, *capabilities.features],
        )

    end_date = as_utc(subscription.end_date)
    if tz is not None:
        end_date = end_date.astimezone(tz)
    expiry = format_long_date(end_date)
    plan_name = subscription.plan.name if subscription.plan else subscription.metadata.get("plan_name")

    if state is SubscriptionState.ACTIVE:
        return StatusCard(
            state=state,
            title="Active Subscription",
            description=f"Your subscription is active until {expiry}",
            action_label="Manage Subscription",
            features=[capabilities.grant],
            plan_name=plan_name,
        )
    if state is SubscriptionState.PENDING_CANCELLATION:
        return StatusCard(
            state=state,
            title="Subscription Cancelling",
            description=f"Your subscription is active until {expiry}",
            action_label="Manage Subscription",
            features=[capabilities.grant],
            plan_name=plan_name,
            warning=f"Your subscription has been cancelled but will remain active until {expiry}.",
        )
    return StatusCard(
        state=state,
        title="Expired Subscription",
        description="Your subscription has expired",
        action_label="Renew Subscription",
        plan_name=plan_name,
    )
