"""
Subscription API Routes
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eventdesk.api.dependencies import get_current_user, require_role
from eventdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from eventdesk.database import get_db
from eventdesk.schemas.subscription import (
    ActiveCheck,
    PlanCreate,
    PlanType,
    PlanUpdate,
    PurchaseRequest,
    RenewRequest,
    PurchaseResult,
    SubscriptionPaymentSchema,
    SubscriptionPlanSchema,
)
from eventdesk.services import subscription_service
from eventdesk.utils.api_response import success_response

router = APIRouter()


@router.get("/plans")
async def list_plans(
    plan_type: Optional[PlanType] = Query(default=None, alias="type"),
    db: Session = Depends(get_db),
):
    """Active plans, optionally filtered with ?type=eventManager|center"""
    plans = subscription_service.get_subscription_plans(db, plan_type)
    data = [SubscriptionPlanSchema.model_validate(p).model_dump(mode="json") for p in plans]
    return success_response(data, description="Subscription plans retrieved successfully")


@router.get("/plans/{plan_id}")
async def get_plan(plan_id: int, db: Session = Depends(get_db)):
    plan = subscription_service.get_subscription_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription plan not found")
    return success_response(
        SubscriptionPlanSchema.model_validate(plan).model_dump(mode="json"),
        description="Subscription plan retrieved successfully",
    )


@router.get("/current")
async def current_subscription(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's subscription with its plan embedded, or null."""
    subscription = subscription_service.get_user_subscription(db, user["id"])
    if not subscription:
        return success_response(None, description="User has no subscription")

    plan = subscription_service.get_subscription_plan(db, subscription.plan_id)
    data = subscription_service.serialize_subscription(subscription, plan).model_dump(mode="json")
    return success_response(data, description="Subscription retrieved successfully")


@router.get("/my-subscription")
async def current_subscription_alias(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Alias kept for older clients."""
    return await current_subscription(user, db)


@router.post("/cancel")
async def cancel_subscription(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = subscription_service.get_user_subscription(db, user["id"])
    if not subscription or subscription.status != "active":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active subscription found")

    try:
        updated = subscription_service.cancel_subscription_at_period_end(db, subscription.id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.description)

    return success_response(
        subscription_service.serialize_subscription(updated).model_dump(mode="json"),
        description=(
            "Subscription cancelled successfully. "
            "Access will remain until the end of the current billing period."
        ),
    )


@router.get("/check-active/{plan_type}")
async def check_active(
    plan_type: PlanType,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    active = subscription_service.has_user_active_subscription_by_type(db, user["id"], plan_type)
    return success_response(
        ActiveCheck(has_active_subscription=active).model_dump(),
        description="Subscription status checked successfully",
    )


@router.post("/purchase")
async def purchase(
    payload: PurchaseRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    existing = subscription_service.get_user_subscription(db, user["id"])
    if subscription_service.grants_access(existing):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already has an active subscription",
        )
    try:
        subscription, session_id = subscription_service.create_subscription_purchase(
            db, user["id"], payload.plan_id
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.description)

    result = PurchaseResult(
        subscription=subscription_service.serialize_subscription(subscription),
        session_id=session_id,
    )
    return success_response(
        result.model_dump(mode="json"),
        description="Subscription payment session created successfully",
    )


@router.post("/payment-success")
async def payment_success(
    session_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    pending = subscription_service.get_subscription_by_session(db, session_id)
    if pending is not None and pending.user_id != user["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    subscription = subscription_service.process_successful_payment(db, session_id)
    if not subscription:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found or payment already processed",
        )
    return success_response(
        subscription_service.serialize_subscription(subscription).model_dump(mode="json"),
        description="Subscription payment processed successfully",
    )


@router.get("/admin/all", dependencies=[Depends(require_role("admin"))])
async def list_all_subscriptions(db: Session = Depends(get_db)):
    return success_response(
        subscription_service.get_all_subscriptions(db),
        description="All subscriptions retrieved successfully",
    )


def _plan_payload(plan) -> Dict[str, Any]:
    return SubscriptionPlanSchema.model_validate(plan).model_dump(mode="json")


@router.get("/admin/plans", dependencies=[Depends(require_role("admin"))])
async def list_all_plans(db: Session = Depends(get_db)):
    """Every plan, inactive ones included."""
    plans = subscription_service.get_subscription_plans(db, include_inactive=True)
    return success_response(
        [_plan_payload(p) for p in plans],
        description="Subscription plans retrieved successfully",
    )


@router.post(
    "/admin/plans",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role("admin"))],
)
async def create_plan(payload: PlanCreate, db: Session = Depends(get_db)):
    plan = subscription_service.create_subscription_plan(db, payload)
    return success_response(
        _plan_payload(plan),
        code=status.HTTP_201_CREATED,
        description="Subscription plan created successfully",
    )


@router.put("/admin/plans/{plan_id}", dependencies=[Depends(require_role("admin"))])
async def update_plan(plan_id: int, payload: PlanUpdate, db: Session = Depends(get_db)):
    try:
        plan = subscription_service.update_subscription_plan(db, plan_id, payload)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.description)
    return success_response(_plan_payload(plan), description="Subscription plan updated successfully")


@router.post("/admin/plans/{plan_id}/toggle", dependencies=[Depends(require_role("admin"))])
async def toggle_plan(plan_id: int, db: Session = Depends(get_db)):
    try:
        plan = subscription_service.toggle_subscription_plan_status(db, plan_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.description)
    state = "activated" if plan.is_active else "deactivated"
    return success_response(_plan_payload(plan), description=f"Subscription plan {state} successfully")


@router.delete("/admin/plans/{plan_id}", dependencies=[Depends(require_role("admin"))])
async def delete_plan(plan_id: int, db: Session = Depends(get_db)):
    try:
        plan = subscription_service.delete_subscription_plan(db, plan_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.description)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.description)
    return success_response(_plan_payload(plan), description="Subscription plan deleted successfully")


@router.post("/admin/expire", dependencies=[Depends(require_role("admin"))])
async def expire_lapsed(db: Session = Depends(get_db)):
    expired = subscription_service.expire_lapsed_subscriptions(db)
    return success_response({"expired": expired}, description="Lapsed subscriptions expired")


@router.post("/admin/{subscription_id}/renew", dependencies=[Depends(require_role("admin"))])
async def renew(subscription_id: int, payload: RenewRequest, db: Session = Depends(get_db)):
    try:
        subscription = subscription_service.renew_subscription(db, subscription_id, payload.end_date)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.description)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.description)
    return success_response(
        subscription_service.serialize_subscription(subscription).model_dump(mode="json"),
        description="Subscription renewed successfully",
    )


@router.get("/{subscription_id}/payments")
async def list_payments(
    subscription_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = subscription_service.get_user_subscription(db, user["id"])
    if not subscription or subscription.id != subscription_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    payments = subscription_service.get_subscription_payments(db, subscription_id)
    data = [SubscriptionPaymentSchema.model_validate(p).model_dump(mode="json") for p in payments]
    return success_response(data, description="Subscription payments retrieved successfully")


@router.get("/payments/{subscription_id}")
async def list_payments_alias(
    subscription_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Alias kept for older clients."""
    return await list_payments(subscription_id, user, db)
