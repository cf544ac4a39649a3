import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ.setdefault('DISPLAY_TIMEZONE', 'UTC')

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventdesk.core.security import create_access_token, hash_password
from eventdesk.database import get_db
from eventdesk.main import app
from eventdesk.models import Base, Rental, Subscription, SubscriptionPayment, SubscriptionPlan, User, Venue

NOW = datetime(2024, 3, 6, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def api(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id), {'username': user.username, 'role': user.role})
    return {'Authorization': f'Bearer {token}'}


def make_user(db, username='manager', role='eventManager', password='secret-pass') -> User:
    user = User(
        username=username,
        email=f'{username}@example.com',
        name=username.title(),
        role=role,
        password_hash=hash_password(password, iterations=1000),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_plan(db, name='Pro', plan_type='eventManager', price='25.00', billing_period='monthly', is_active=True):
    plan = SubscriptionPlan(
        name=name,
        description=f'{name} plan',
        type=plan_type,
        price=Decimal(price),
        billing_period=billing_period,
        features=['Unlimited events', 'Sales reports'],
        is_active=is_active,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


def make_subscription(db, user, plan, status='active', start=None, end=None) -> Subscription:
    start = start or NOW - timedelta(days=10)
    end = end or start + timedelta(days=30)
    subscription = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=status,
        start_date=start,
        end_date=end,
        meta={'plan_name': plan.name},
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def make_payment(db, subscription, amount='25.00', status='paid', paid_at=None) -> SubscriptionPayment:
    payment = SubscriptionPayment(
        subscription_id=subscription.id,
        amount=Decimal(amount),
        status=status,
        payment_date=paid_at,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def make_venue(db, owner, name='Main Hall') -> Venue:
    venue = Venue(
        name=name,
        location='Muscat',
        capacity=200,
        hourly_rate=Decimal('40.00'),
        facilities=['stage', 'parking'],
        owner_id=owner.id,
    )
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


def make_rental(db, venue, start, hours=2, status='confirmed', customer_name='Acme') -> Rental:
    rental = Rental(
        venue_id=venue.id,
        customer_name=customer_name,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        total_price=Decimal('80.00'),
        status=status,
    )
    db.add(rental)
    db.commit()
    db.refresh(rental)
    return rental
