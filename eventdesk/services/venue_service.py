from __future__ import annotations

from sqlalchemy.orm import Session

from eventdesk.models import Rental, User, Venue
from eventdesk.schemas.venue import BookingSchema, VenueSchema


def list_owner_venues(db: Session, owner_id: int) -> list[VenueSchema]:
    rows = db.query(Venue).filter(Venue.owner_id == owner_id).order_by(Venue.name, Venue.id).all()
    return [VenueSchema.model_validate(row) for row in rows]


def list_owner_rentals(db: Session, owner_id: int) -> list[BookingSchema]:
    """Rentals across every venue the owner holds, earliest start first."""
    rows = (
        db.query(Rental, Venue.name, User.name)
        .join(Venue, Rental.venue_id == Venue.id)
        .outerjoin(User, Rental.customer_id == User.id)
        .filter(Venue.owner_id == owner_id)
        .order_by(Rental.start_time, Rental.id)
        .all()
    )
    return [
        BookingSchema(
            id=rental.id,
            venue_id=rental.venue_id,
            customer_id=rental.customer_id,
            start_time=rental.start_time,
            end_time=rental.end_time,
            status=rental.status,
            payment_status=rental.payment_status,
            total_price=rental.total_price,
            venue_name=venue_name,
            customer_name=rental.customer_name or customer_name,
        )
        for rental, venue_name, customer_name in rows
    ]
