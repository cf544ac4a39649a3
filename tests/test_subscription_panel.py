from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import auth_headers, make_payment, make_plan, make_subscription, make_user
from eventdesk.client.api_client import EventDeskClient
from eventdesk.client.status import SubscriptionState
from eventdesk.client.subscriptions import SubscriptionPanel
from eventdesk.main import app


def panel_for(user, role) -> SubscriptionPanel:
    token = auth_headers(user)['Authorization'].split(' ', 1)[1]
    client = EventDeskClient(base_url='http://testserver', token=token, transport=httpx.ASGITransport(app=app))
    return SubscriptionPanel(client, role=role, tz=timezone.utc)


@pytest.mark.asyncio
async def test_cancel_moves_panel_into_grace_period(api, db_session):
    now = datetime.now(timezone.utc)
    owner = make_user(db_session, 'owner', role='center')
    plan = make_plan(db_session, name='Venue Pro', plan_type='center')
    subscription = make_subscription(db_session, owner, plan, start=now - timedelta(days=10), end=now + timedelta(days=5))
    make_payment(db_session, subscription, paid_at=now - timedelta(days=10))

    panel = panel_for(owner, 'center')
    await panel.refresh()
    assert panel.state() is SubscriptionState.ACTIVE
    card = panel.card()
    assert card.action_label == 'Manage Subscription'
    assert card.plan_name == 'Venue Pro'

    payments = await panel.toggle_payments()
    assert [p.status for p in payments] == ['paid']

    updated = await panel.cancel()
    assert updated.status == 'cancelled'
    assert panel.subscription.status == 'cancelled'
    assert panel.state() is SubscriptionState.PENDING_CANCELLATION
    assert panel.card().warning.startswith('Your subscription has been cancelled but will remain active until')
    assert panel.payment_cache.is_fresh(subscription.id) is False

    refreshed = await panel.toggle_payments()
    assert [p.id for p in refreshed] == [p.id for p in payments]
    assert panel.payment_cache.is_fresh(subscription.id) is True

    await panel.client.aclose()


@pytest.mark.asyncio
async def test_panel_without_subscription_prompts_to_subscribe(api, db_session):
    manager = make_user(db_session, 'manager', role='eventManager')
    panel = panel_for(manager, 'eventManager')

    assert await panel.refresh() is None
    assert panel.state() is SubscriptionState.NONE
    assert panel.card().action_label == 'Subscribe Now'
    assert await panel.cancel() is None
    assert await panel.toggle_payments() == []

    await panel.client.aclose()


@pytest.mark.asyncio
async def test_panel_records_load_error():
    def handler(request):
        raise httpx.ConnectError('down')

    client = EventDeskClient(base_url='http://testserver', transport=httpx.MockTransport(handler))
    panel = SubscriptionPanel(client, role='center')
    assert await panel.refresh() is None
    assert panel.error == 'Failed to load subscription information'
    await client.aclose()
