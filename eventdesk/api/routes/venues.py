"""
Venue and rental API Routes (venue owners)
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from eventdesk.api.dependencies import require_role, require_subscription
from eventdesk.database import get_db
from eventdesk.services import venue_service
from eventdesk.utils.api_response import success_response

venues_router = APIRouter()
rentals_router = APIRouter()


@venues_router.get("")
async def list_venues(
    user: Dict[str, Any] = Depends(require_role("center")),
    db: Session = Depends(get_db),
):
    """Venues owned by the caller"""
    venues = venue_service.list_owner_venues(db, user["id"])
    return success_response([v.model_dump(mode="json") for v in venues], description="Venues retrieved successfully")


@rentals_router.get(
    "",
    dependencies=[Depends(require_subscription(["center"]))],
)
async def list_rentals(
    user: Dict[str, Any] = Depends(require_role("center")),
    db: Session = Depends(get_db),
):
    """Rentals across the caller's venues"""
    rentals = venue_service.list_owner_rentals(db, user["id"])
    return success_response([r.model_dump(mode="json") for r in rentals], description="Rentals retrieved successfully")
