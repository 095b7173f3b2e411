"""
Unit tests for the payment service.

Covered:
- parse_plan / plan_price / map_payment_status
- compute_payment_status: no subscription, paid, pending, overdue
- classify_reminder boundaries
- build_preference_payload
- handle_subscription_event and handle_mercadopago_payment against a mocked session
- MercadoPagoClient over httpx.MockTransport
"""

from datetime import datetime, timedelta

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.models.payment import (
    Payment,
    PaymentPreference,
    PaymentStatusEnum,
    Subscription,
    SubscriptionPlanEnum,
    SubscriptionStatusEnum,
)
from app.models.user import RoleEnum
from app.services.payment_service import (
    MercadoPagoClient,
    PaymentProviderError,
    build_preference_payload,
    classify_reminder,
    compute_payment_status,
    handle_mercadopago_payment,
    handle_subscription_event,
    invoice_number,
    map_payment_status,
    parse_plan,
    plan_price,
)
from tests.conftest import make_result, make_user

pytestmark = pytest.mark.unit

NOW = datetime(2025, 3, 10, 12, 0)


def make_subscription(**overrides) -> Subscription:
    values = dict(
        id=1, user_id=2, plan=SubscriptionPlanEnum.premium, status=SubscriptionStatusEnum.active,
        amount=49.99, currency="ARS", current_period_start=NOW - timedelta(days=20),
        current_period_end=NOW + timedelta(days=10), cancel_at_period_end=False,
    )
    values.update(overrides)
    return Subscription(**values)


def make_payment(status: PaymentStatusEnum, amount: float = 49.99) -> Payment:
    return Payment(id=3, subscription_id=1, user_id=2, amount=amount, currency="ARS", status=status,
                   created_at=NOW - timedelta(days=1))


def make_session(*results) -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    session.execute.side_effect = list(results)
    return session


# ---------------------------------------------------------------------------
# Plans and statuses
# ---------------------------------------------------------------------------

def test_parse_plan_is_case_insensitive():
    assert parse_plan("premium") == SubscriptionPlanEnum.premium
    assert parse_plan(" BASIC ") == SubscriptionPlanEnum.basic


def test_parse_plan_default_and_errors():
    assert parse_plan(None, SubscriptionPlanEnum.basic) == SubscriptionPlanEnum.basic
    with pytest.raises(ValueError, match="Plan requerido"):
        parse_plan("")
    with pytest.raises(ValueError, match="Plan inválido"):
        parse_plan("gold")


def test_plan_price_in_major_units():
    assert plan_price(SubscriptionPlanEnum.basic) == 29.99
    assert plan_price(SubscriptionPlanEnum.professional) == 99.99


@pytest.mark.parametrize("value,expected", [
    ("paid", PaymentStatusEnum.succeeded),
    ("PAID", PaymentStatusEnum.succeeded),
    ("overdue", PaymentStatusEnum.failed),
    ("whatever", PaymentStatusEnum.pending),
    (None, PaymentStatusEnum.pending),
])
def test_map_payment_status(value, expected):
    assert map_payment_status(value) == expected


def test_invoice_number_format():
    number = invoice_number(NOW)
    assert number.startswith("INV-20250310-")
    assert len(number.split("-")[-1]) == 6


# ---------------------------------------------------------------------------
# compute_payment_status
# ---------------------------------------------------------------------------

def test_status_without_subscription_is_pending_basic():
    status = compute_payment_status(None, None, NOW)

    assert status["status"] == "pending"
    assert status["amount"] == 0
    assert status["plan"] == "BASIC"
    assert status["due_date"] == (NOW + timedelta(days=30)).isoformat()


def test_status_paid_when_latest_payment_succeeded():
    status = compute_payment_status(make_subscription(), make_payment(PaymentStatusEnum.succeeded), NOW)

    assert status["status"] == "paid"
    assert status["last_payment"]["status"] == "SUCCEEDED"
    assert status["subscription_status"] == "ACTIVE"


def test_status_overdue_when_period_ended_without_payment():
    subscription = make_subscription(current_period_end=NOW - timedelta(days=2))

    assert compute_payment_status(subscription, None, NOW)["status"] == "overdue"
    assert compute_payment_status(subscription, make_payment(PaymentStatusEnum.failed), NOW)["status"] == "overdue"


def test_status_pending_payment_wins_over_due_date():
    subscription = make_subscription(current_period_end=NOW - timedelta(days=2))

    assert compute_payment_status(subscription, make_payment(PaymentStatusEnum.pending), NOW)["status"] == "pending"


# ---------------------------------------------------------------------------
# classify_reminder
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("delta,expected", [
    (timedelta(days=3), (3, "upcoming")),
    (timedelta(hours=5), (1, "upcoming")),
    (timedelta(0), (0, "overdue")),
    (timedelta(days=-7), (-7, "overdue")),
    (timedelta(days=-8), (-8, "urgent")),
])
def test_classify_reminder(delta, expected):
    assert classify_reminder(NOW + delta, NOW) == expected


# ---------------------------------------------------------------------------
# build_preference_payload
# ---------------------------------------------------------------------------

def test_preference_payload():
    trainer = make_user(1, RoleEnum.trainer)
    client = make_user(2, RoleEnum.client, name="Ana", email="ana@example.com")

    payload = build_preference_payload(trainer, client, 5000, "Cuota marzo", SubscriptionPlanEnum.premium, NOW)

    assert payload["items"] == [{"title": "Cuota marzo", "quantity": 1, "currency_id": "ARS", "unit_price": 5000.0}]
    assert payload["payer"] == {"name": "Ana", "email": "ana@example.com"}
    assert payload["external_reference"] == f"1-2-{int(NOW.timestamp() * 1000)}"
    assert payload["back_urls"]["success"].endswith("/payments/success")
    assert payload["notification_url"].endswith("/api/payments/webhook")
    assert payload["metadata"] == {"trainer_id": 1, "client_id": 2, "plan": "PREMIUM"}


# ---------------------------------------------------------------------------
# Subscription webhooks
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_event_without_subscription_id_is_ignored():
    session = make_session()

    assert await handle_subscription_event(session, {"type": "invoice.payment_succeeded", "data": {}}) == "ignored"
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_event_for_unknown_subscription():
    session = make_session(make_result(scalar=None))
    event = {"type": "invoice.payment_succeeded", "data": {"object": {"subscription": "sub_x"}}}

    assert await handle_subscription_event(session, event) == "unknown_subscription"


@pytest.mark.asyncio
async def test_payment_succeeded_renews_period():
    subscription = make_subscription(current_period_end=NOW - timedelta(days=1), status=SubscriptionStatusEnum.past_due)
    session = make_session(make_result(scalar=subscription))
    event = {"type": "invoice.payment_succeeded",
             "data": {"object": {"id": "in_1", "subscription": "sub_1", "amount_paid": 4999}}}

    assert await handle_subscription_event(session, event) == "processed"

    payment = session.add.call_args_list[0].args[0]
    assert payment.status == PaymentStatusEnum.succeeded
    assert payment.amount == 49.99
    assert subscription.status == SubscriptionStatusEnum.active
    assert subscription.current_period_end > datetime.utcnow() + timedelta(days=29)
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_payment_failed_marks_past_due():
    subscription = make_subscription()
    session = make_session(make_result(scalar=subscription))
    event = {"type": "invoice.payment_failed", "data": {"object": {"id": "in_2", "subscription": "sub_1"}}}

    assert await handle_subscription_event(session, event) == "processed"
    assert subscription.status == SubscriptionStatusEnum.past_due
    assert session.add.call_args.args[0].status == PaymentStatusEnum.failed


@pytest.mark.asyncio
async def test_subscription_updated_and_deleted():
    subscription = make_subscription()
    session = make_session(make_result(scalar=subscription), make_result(scalar=subscription))

    updated = {"type": "customer.subscription.updated",
               "data": {"object": {"id": "sub_1", "status": "past_due", "cancel_at_period_end": True}}}
    assert await handle_subscription_event(session, updated) == "processed"
    assert subscription.status == SubscriptionStatusEnum.past_due
    assert subscription.cancel_at_period_end is True

    deleted = {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_1"}}}
    assert await handle_subscription_event(session, deleted) == "processed"
    assert subscription.status == SubscriptionStatusEnum.cancelled


@pytest.mark.asyncio
async def test_unknown_event_type_is_ignored():
    session = make_session(make_result(scalar=make_subscription()))
    event = {"type": "charge.refunded", "data": {"object": {"id": "sub_1"}}}

    assert await handle_subscription_event(session, event) == "ignored"
    session.commit.assert_not_called()


# ---------------------------------------------------------------------------
# Mercado Pago payments
# ---------------------------------------------------------------------------

def make_preference(status: str = "pending") -> PaymentPreference:
    return PaymentPreference(id=1, trainer_id=1, client_id=2, preference_id="pref_1",
                             external_reference="1-2-1", amount=5000.0, status=status,
                             plan=SubscriptionPlanEnum.basic, description="Cuota")


@pytest.mark.asyncio
async def test_mercadopago_unknown_reference():
    session = make_session(make_result(scalar=None))

    assert await handle_mercadopago_payment(session, {"external_reference": "nope"}) == "unknown_reference"


@pytest.mark.asyncio
async def test_mercadopago_pending_payment_updates_preference():
    preference = make_preference()
    session = make_session(make_result(scalar=preference))

    result = await handle_mercadopago_payment(session, {"id": 99, "external_reference": "1-2-1",
                                                        "status": "in_process"})

    assert result == "in_process"
    assert preference.status == "in_process"
    assert preference.provider_payment_id == "99"


@pytest.mark.asyncio
async def test_mercadopago_approved_twice_is_processed_once():
    preference = make_preference(status="paid")
    session = make_session(make_result(scalar=preference))

    result = await handle_mercadopago_payment(session, {"id": 99, "external_reference": "1-2-1",
                                                        "status": "approved"})

    assert result == "already_processed"
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_mercadopago_approved_creates_subscription_and_payment():
    preference = make_preference()
    session = make_session(make_result(scalar=preference), make_result(scalar=None))

    result = await handle_mercadopago_payment(session, {"id": 99, "external_reference": "1-2-1",
                                                        "status": "approved", "transaction_amount": 5000})

    assert result == "processed"
    assert preference.status == "paid"
    added = [c.args[0] for c in session.add.call_args_list]
    subscription = next(o for o in added if isinstance(o, Subscription))
    payment = next(o for o in added if isinstance(o, Payment))
    assert subscription.user_id == 2
    assert payment.status == PaymentStatusEnum.succeeded
    assert payment.external_id == "99"


# ---------------------------------------------------------------------------
# MercadoPagoClient
# ---------------------------------------------------------------------------

def patched_httpx(handler):
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)
    return patch("app.services.payment_service.httpx.AsyncClient", side_effect=factory)


@pytest.mark.asyncio
async def test_unconfigured_client_raises():
    with pytest.raises(PaymentProviderError, match="no está configurado"):
        await MercadoPagoClient(access_token="").get_payment("1")


@pytest.mark.asyncio
async def test_create_preference_posts_with_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(201, json={"id": "pref_1", "init_point": "https://mp/checkout"})

    with patched_httpx(handler):
        result = await MercadoPagoClient(access_token="TEST-123", base_url="https://mp.test").create_preference({})

    assert result["id"] == "pref_1"
    assert seen == {"path": "/checkout/preferences", "auth": "Bearer TEST-123"}


@pytest.mark.asyncio
async def test_provider_error_status_raises():
    with patched_httpx(lambda request: httpx.Response(401, json={"message": "unauthorized"})):
        with pytest.raises(PaymentProviderError, match="401"):
            await MercadoPagoClient(access_token="bad", base_url="https://mp.test").get_payment("5")
