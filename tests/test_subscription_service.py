from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import NOW, make_plan, make_subscription, make_user
from eventdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from eventdesk.schemas.subscription import PlanCreate, PlanUpdate
from eventdesk.services import subscription_service
from eventdesk.utils.dates import add_months, as_utc


def test_add_months_clamps_to_month_end():
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)
    assert add_months(datetime(2024, 11, 15), 2) == datetime(2025, 1, 15)
    assert add_months(datetime(2024, 2, 29), 12) == datetime(2025, 2, 28)


def test_yearly_purchase_runs_one_year(db_session):
    user = make_user(db_session)
    plan = make_plan(db_session, billing_period='yearly')
    subscription, session_id = subscription_service.create_subscription_purchase(
        db_session, user.id, plan.id, now=NOW
    )
    assert subscription.status == 'pending'
    assert session_id.startswith('sub_')
    assert as_utc(subscription.end_date) == datetime(2025, 3, 6, 12, 0, tzinfo=timezone.utc)
    assert subscription.meta['billing_period'] == 'yearly'


def test_purchase_of_unknown_plan_raises(db_session):
    user = make_user(db_session)
    with pytest.raises(NotFoundError):
        subscription_service.create_subscription_purchase(db_session, user.id, 42)


def test_cancel_unknown_subscription_raises(db_session):
    with pytest.raises(NotFoundError):
        subscription_service.cancel_subscription_at_period_end(db_session, 404)


def test_active_check_fails_once_end_date_reached(db_session):
    user = make_user(db_session, role='center')
    plan = make_plan(db_session, plan_type='center')
    make_subscription(db_session, user, plan, start=NOW - timedelta(days=30), end=NOW)

    assert not subscription_service.has_user_active_subscription_by_type(db_session, user.id, 'center', now=NOW)
    assert subscription_service.has_user_active_subscription_by_type(
        db_session, user.id, 'center', now=NOW - timedelta(seconds=1)
    )


def test_expire_lapsed_subscriptions(db_session):
    first = make_user(db_session, 'first')
    second = make_user(db_session, 'second')
    third = make_user(db_session, 'third')
    plan = make_plan(db_session)
    lapsed = make_subscription(db_session, first, plan, start=NOW - timedelta(days=40), end=NOW - timedelta(days=10))
    grace = make_subscription(db_session, second, plan, status='cancelled', end=NOW + timedelta(days=5))
    ended_grace = make_subscription(
        db_session, third, plan, status='cancelled', start=NOW - timedelta(days=31), end=NOW - timedelta(days=1)
    )

    assert subscription_service.expire_lapsed_subscriptions(db_session, now=NOW) == 2

    db_session.expire_all()
    assert lapsed.status == 'expired'
    assert grace.status == 'cancelled'
    assert ended_grace.status == 'expired'
    assert first.subscription_status == 'expired'


def test_current_subscription_prefers_latest(db_session):
    user = make_user(db_session)
    plan = make_plan(db_session)
    make_subscription(db_session, user, plan, status='expired', start=NOW - timedelta(days=70), end=NOW - timedelta(days=40))
    latest = make_subscription(db_session, user, plan)

    assert subscription_service.get_user_subscription(db_session, user.id).id == latest.id


def test_cancelled_subscription_keeps_access_until_end_date(db_session):
    user = make_user(db_session, role='center')
    plan = make_plan(db_session, plan_type='center')
    subscription = make_subscription(db_session, user, plan, status='cancelled', end=NOW + timedelta(days=5))

    assert subscription_service.grants_access(subscription, NOW)
    assert subscription_service.has_user_active_subscription_by_type(db_session, user.id, 'center', now=NOW)
    assert not subscription_service.has_user_active_subscription_by_type(
        db_session, user.id, 'center', now=NOW + timedelta(days=5)
    )


def test_access_statuses(db_session):
    user = make_user(db_session)
    plan = make_plan(db_session)
    future = NOW + timedelta(days=3)
    assert not subscription_service.grants_access(None, NOW)
    for status, expected in [('active', True), ('cancelled', True), ('pending', False), ('expired', False)]:
        subscription = make_subscription(db_session, user, plan, status=status, end=future)
        assert subscription_service.grants_access(subscription, NOW) is expected, status


def test_plan_create_update_and_toggle(db_session):
    plan = subscription_service.create_subscription_plan(
        db_session,
        PlanCreate(name='Venue Basic', description='Basic', type='center', price='12.5', billing_period='monthly'),
    )
    assert plan.is_active is True
    assert plan.price == Decimal('12.50')

    updated = subscription_service.update_subscription_plan(db_session, plan.id, PlanUpdate(price='19.99'))
    assert updated.price == Decimal('19.99')
    assert updated.name == 'Venue Basic'

    assert subscription_service.toggle_subscription_plan_status(db_session, plan.id).is_active is False
    assert subscription_service.toggle_subscription_plan_status(db_session, plan.id).is_active is True

    with pytest.raises(NotFoundError):
        subscription_service.update_subscription_plan(db_session, 999, PlanUpdate(name='Ghost'))


def test_plan_delete_refused_while_subscribers_have_access(db_session):
    user = make_user(db_session)
    plan = make_plan(db_session)
    subscription = make_subscription(db_session, user, plan, status='cancelled', end=NOW + timedelta(days=2))

    with pytest.raises(ConflictError):
        subscription_service.delete_subscription_plan(db_session, plan.id, now=NOW)

    deleted = subscription_service.delete_subscription_plan(db_session, plan.id, now=subscription.end_date)
    assert deleted.is_active is False
    assert subscription_service.get_subscription_plans(db_session) == []
    assert [p.id for p in subscription_service.get_subscription_plans(db_session, include_inactive=True)] == [plan.id]


def test_renew_reactivates_with_new_end_date(db_session):
    user = make_user(db_session)
    plan = make_plan(db_session)
    subscription = make_subscription(
        db_session, user, plan, status='expired', start=NOW - timedelta(days=40), end=NOW - timedelta(days=10)
    )
    new_end = NOW + timedelta(days=30)

    renewed = subscription_service.renew_subscription(db_session, subscription.id, new_end)

    assert renewed.status == 'active'
    assert as_utc(renewed.end_date) == new_end
    assert user.subscription_status == 'active'
    assert subscription_service.grants_access(renewed, NOW)


def test_renew_rejects_end_before_start(db_session):
    user = make_user(db_session)
    plan = make_plan(db_session)
    subscription = make_subscription(db_session, user, plan)

    with pytest.raises(ValidationError):
        subscription_service.renew_subscription(db_session, subscription.id, subscription.start_date)
    with pytest.raises(NotFoundError):
        subscription_service.renew_subscription(db_session, 404, NOW)
