"""Shared API auth and access dependencies."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from eventdesk.core.security import get_current_user
from eventdesk.database import get_db
from eventdesk.services import subscription_service

__all__ = ["get_current_user", "require_role", "require_subscription"]


def require_role(*roles: str) -> Callable[..., Dict[str, Any]]:
    allowed = set(roles)

    def dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user["role"] not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return dependency


def require_subscription(plan_types: Iterable[str]) -> Callable[..., Dict[str, Any]]:
    """Reject callers without an active subscription of one of the given plan types (402)."""
    types = tuple(plan_types)

    def dependency(
        user: Dict[str, Any] = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> Dict[str, Any]:
        if user["role"] == "admin":
            return user
        if any(
            subscription_service.has_user_active_subscription_by_type(db, user["id"], plan_type)
            for plan_type in types
        ):
            return user
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="A subscription is required for this feature. Please subscribe to a plan.",
        )

    return dependency
