"""
Subscription record store: plans, subscriptions and subscription payments.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from eventdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from eventdesk.models import Subscription, SubscriptionPayment, SubscriptionPlan, User
from eventdesk.schemas.subscription import (
    PlanCreate,
    PlanUpdate,
    SubscriptionPlanSchema,
    SubscriptionSchema,
)
from eventdesk.utils.dates import add_months, as_utc, now_utc

logger = logging.getLogger(__name__)

# "pending" rows await payment and never count as the user's subscription.
VISIBLE_STATUSES = ("active", "cancelled", "expired")
# Cancelled subscriptions keep access until their end date passes.
ACCESS_STATUSES = ("active", "cancelled")


def grants_access(subscription: Optional[Subscription], now: datetime | None = None) -> bool:
    """True while an active or cancelled subscription is inside its paid period."""
    if subscription is None or subscription.status not in ACCESS_STATUSES:
        return False
    return as_utc(subscription.end_date) > as_utc(now or now_utc())


def get_subscription_plans(
    db: Session,
    plan_type: Optional[str] = None,
    include_inactive: bool = False,
) -> list[SubscriptionPlan]:
    """Return plans, optionally limited to one plan type. Inactive plans only on request."""
    query = db.query(SubscriptionPlan)
    if not include_inactive:
        query = query.filter(SubscriptionPlan.is_active.is_(True))
    if plan_type:
        query = query.filter(SubscriptionPlan.type == plan_type)
    return query.order_by(SubscriptionPlan.price, SubscriptionPlan.id).all()


def get_subscription_plan(db: Session, plan_id: int) -> Optional[SubscriptionPlan]:
    return db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()


def _require_plan(db: Session, plan_id: int) -> SubscriptionPlan:
    plan = get_subscription_plan(db, plan_id)
    if not plan:
        raise NotFoundError(f"Subscription plan with ID {plan_id} not found")
    return plan


def create_subscription_plan(db: Session, data: PlanCreate) -> SubscriptionPlan:
    plan = SubscriptionPlan(**data.model_dump())
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("Created subscription plan %s (%s, %s)", plan.id, plan.name, plan.type)
    return plan


def update_subscription_plan(db: Session, plan_id: int, data: PlanUpdate) -> SubscriptionPlan:
    """Apply the fields that were sent; omitted fields keep their stored value."""
    plan = _require_plan(db, plan_id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(plan, key, value)
    db.commit()
    db.refresh(plan)
    logger.info("Updated subscription plan %s", plan.id)
    return plan


def toggle_subscription_plan_status(db: Session, plan_id: int) -> SubscriptionPlan:
    plan = _require_plan(db, plan_id)
    plan.is_active = not plan.is_active
    db.commit()
    db.refresh(plan)
    logger.info("Subscription plan %s is now %s", plan.id, "active" if plan.is_active else "inactive")
    return plan


def delete_subscription_plan(db: Session, plan_id: int, now: datetime | None = None) -> SubscriptionPlan:
    """Soft delete: the plan is deactivated so existing subscriptions keep their reference.

    Refused while any subscriber still has access through the plan.
    """
    plan = _require_plan(db, plan_id)
    subscribers = (
        db.query(Subscription)
        .filter(Subscription.plan_id == plan_id, Subscription.status.in_(ACCESS_STATUSES))
        .all()
    )
    if any(grants_access(subscription, now) for subscription in subscribers):
        raise ConflictError("Cannot delete a plan with active subscriptions")

    plan.is_active = False
    db.commit()
    db.refresh(plan)
    logger.info("Subscription plan %s deleted", plan.id)
    return plan


def get_user_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    """Return the user's most recent non-pending subscription."""
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.status.in_(VISIBLE_STATUSES),
        )
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )


def get_all_subscriptions(db: Session) -> list[dict[str, Any]]:
    """Every subscription with its user and plan, newest first. Admin dashboard use."""
    rows = (
        db.query(Subscription, User, SubscriptionPlan)
        .outerjoin(User, Subscription.user_id == User.id)
        .outerjoin(SubscriptionPlan, Subscription.plan_id == SubscriptionPlan.id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )
    return [
        {
            "subscription": serialize_subscription(sub).model_dump(mode="json"),
            "user": (
                {"id": user.id, "username": user.username, "name": user.name, "email": user.email, "role": user.role}
                if user
                else None
            ),
            "plan": SubscriptionPlanSchema.model_validate(plan).model_dump(mode="json") if plan else None,
        }
        for sub, user, plan in rows
    ]


def cancel_subscription_at_period_end(db: Session, subscription_id: int) -> Subscription:
    """Mark a subscription cancelled. The end date is kept so access lasts until it passes."""
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")

    subscription.status = "cancelled"
    _sync_user(db, subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription %s cancelled at period end (%s)", subscription.id, subscription.end_date)
    return subscription


def get_subscription_payments(db: Session, subscription_id: int) -> list[SubscriptionPayment]:
    return (
        db.query(SubscriptionPayment)
        .filter(SubscriptionPayment.subscription_id == subscription_id)
        .order_by(SubscriptionPayment.payment_date.desc().nulls_last(), SubscriptionPayment.id.desc())
        .all()
    )


def has_user_active_subscription_by_type(
    db: Session,
    user_id: int,
    plan_type: str,
    now: datetime | None = None,
) -> bool:
    subscription = get_user_subscription(db, user_id)
    if not grants_access(subscription, now):
        return False
    plan = get_subscription_plan(db, subscription.plan_id)
    return bool(plan and plan.type == plan_type)


def create_subscription_purchase(
    db: Session,
    user_id: int,
    plan_id: int,
    now: datetime | None = None,
) -> tuple[Subscription, str]:
    """Create a pending subscription and the payment session that will activate it."""
    plan = get_subscription_plan(db, plan_id)
    if not plan or not plan.is_active:
        raise NotFoundError(f"Subscription plan with ID {plan_id} not found")

    start_date = now or now_utc()
    if plan.billing_period == "monthly":
        end_date = add_months(start_date, 1)
    elif plan.billing_period == "yearly":
        end_date = add_months(start_date, 12)
    else:
        raise ValidationError(f"Unsupported billing period: {plan.billing_period}")

    session_id = f"sub_{secrets.token_urlsafe(16)}"
    subscription = Subscription(
        user_id=user_id,
        plan_id=plan.id,
        status="pending",
        start_date=start_date,
        end_date=end_date,
        payment_session_id=session_id,
        meta={
            "plan_name": plan.name,
            "plan_type": plan.type,
            "billing_period": plan.billing_period,
        },
    )
    db.add(subscription)
    db.flush()
    db.add(
        SubscriptionPayment(
            subscription_id=subscription.id,
            amount=plan.price,
            status="pending",
            payment_session_id=session_id,
            meta={"plan_name": plan.name},
        )
    )
    db.commit()
    db.refresh(subscription)
    logger.info("Created pending subscription %s for user %s on plan %s", subscription.id, user_id, plan.id)
    return subscription, session_id


def get_subscription_by_session(db: Session, payment_session_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.payment_session_id == payment_session_id).first()


def process_successful_payment(
    db: Session,
    payment_session_id: str,
    now: datetime | None = None,
) -> Optional[Subscription]:
    """Record the paid payment for a session and activate its subscription."""
    subscription = get_subscription_by_session(db, payment_session_id)
    if not subscription or subscription.status != "pending":
        return None

    paid_at = now or now_utc()
    payment = (
        db.query(SubscriptionPayment)
        .filter(SubscriptionPayment.payment_session_id == payment_session_id)
        .first()
    )
    if payment is None:
        plan = get_subscription_plan(db, subscription.plan_id)
        if not plan:
            return None
        payment = SubscriptionPayment(
            subscription_id=subscription.id,
            amount=plan.price,
            payment_session_id=payment_session_id,
        )
        db.add(payment)
    payment.status = "paid"
    payment.payment_date = paid_at

    subscription.status = "active"
    _sync_user(db, subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription %s activated by payment session %s", subscription.id, payment_session_id)
    return subscription


def renew_subscription(db: Session, subscription_id: int, end_date: datetime) -> Subscription:
    """Extend a subscription to ``end_date`` and make it active again."""
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")
    if as_utc(end_date) <= as_utc(subscription.start_date):
        raise ValidationError("Renewal end date must be after the subscription start date")

    subscription.end_date = end_date
    subscription.status = "active"
    subscription.payment_session_id = None
    _sync_user(db, subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription %s renewed until %s", subscription.id, end_date)
    return subscription


def expire_lapsed_subscriptions(db: Session, now: datetime | None = None) -> int:
    """Move active or cancelled subscriptions whose end date has passed to "expired"."""
    now = now or now_utc()
    candidates = db.query(Subscription).filter(Subscription.status.in_(ACCESS_STATUSES)).all()
    expired = 0
    for subscription in candidates:
        if not grants_access(subscription, now):
            subscription.status = "expired"
            _sync_user(db, subscription)
            expired += 1
    if expired:
        db.commit()
        logger.info("Expired %s lapsed subscriptions", expired)
    return expired


def serialize_subscription(
    row: Subscription,
    plan: Optional[SubscriptionPlan] = None,
) -> SubscriptionSchema:
    return SubscriptionSchema(
        id=row.id,
        user_id=row.user_id,
        plan_id=row.plan_id,
        status=row.status,
        start_date=row.start_date,
        end_date=row.end_date,
        metadata=row.meta or {},
        plan=SubscriptionPlanSchema.model_validate(plan) if plan else None,
    )


def _sync_user(db: Session, subscription: Subscription) -> None:
    """Mirror the subscription state onto the owning user row."""
    user = db.query(User).filter(User.id == subscription.user_id).first()
    if not user:
        return
    user.subscription_id = subscription.id
    user.subscription_status = subscription.status
    user.subscription_expires_at = subscription.end_date
