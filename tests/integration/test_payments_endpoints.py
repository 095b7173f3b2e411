"""
Integration tests for /api/payments/*.

Scenarios:
- POST /payments/create-subscription: invalid plan (400), already active (400), created (201)
- GET /payments/subscription: none is 404
- POST /payments/create-preference: unlinked client (403), provider failure (502), success
- POST /payments/webhook: invalid body (400), unknown type ignored,
  subscription events and Mercado Pago payments are dispatched

Mercado Pago is patched on the mercadopago_client singleton.
"""

from datetime import datetime, timedelta

import pytest
from unittest.mock import AsyncMock, patch

from app.models.payment import PaymentPreference, Subscription, SubscriptionPlanEnum, SubscriptionStatusEnum
from app.models.user import RoleEnum
from app.services.payment_service import PaymentProviderError, mercadopago_client
from tests.conftest import make_result, make_user

pytestmark = pytest.mark.integration


def make_subscription(status=SubscriptionStatusEnum.active) -> Subscription:
    now = datetime.utcnow()
    return Subscription(id=4, user_id=2, plan=SubscriptionPlanEnum.basic, status=status, amount=29.99,
                        currency="ARS", current_period_start=now, current_period_end=now + timedelta(days=30),
                        cancel_at_period_end=False)


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_subscription_invalid_plan(client_client, mock_db):
    response = await client_client.post("/api/payments/create-subscription", json={"plan": "gold"})

    assert response.status_code == 400
    assert response.json()["message"].startswith("Plan inválido")
    mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_create_subscription_when_already_active(client_client, mock_db):
    mock_db.execute.return_value = make_result(scalar=make_subscription())

    response = await client_client.post("/api/payments/create-subscription", json={"plan": "premium"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Ya tienes una suscripción activa"}


@pytest.mark.asyncio
async def test_create_subscription(client_client, mock_db):
    async def flush():
        for call in mock_db.add.call_args_list:
            if getattr(call.args[0], "id", None) is None:
                call.args[0].id = 10
    mock_db.flush.side_effect = flush

    response = await client_client.post("/api/payments/create-subscription", json={"plan": "premium"})

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["plan"] == "PREMIUM"
    assert data["status"] == "ACTIVE"
    assert data["amount"] == 49.99
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_read_subscription_missing(client_client):
    response = await client_client.get("/api/payments/subscription")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "No se encontró una suscripción"}


@pytest.mark.asyncio
async def test_cancel_subscription(client_client, mock_db):
    subscription = make_subscription()
    mock_db.execute.return_value = make_result(scalar=subscription)

    response = await client_client.post("/api/payments/cancel-subscription")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"
    assert subscription.cancel_at_period_end is True


# ---------------------------------------------------------------------------
# Mercado Pago preferences
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_preference_for_unlinked_client(trainer_client):
    response = await trainer_client.post("/api/payments/create-preference",
                                         json={"client_id": 20, "amount": 5000})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_preference_provider_failure(trainer_client, mock_links, mock_db):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)

    with patch.object(mercadopago_client, "create_preference",
                      AsyncMock(side_effect=PaymentProviderError("Mercado Pago no está configurado"))):
        response = await trainer_client.post("/api/payments/create-preference",
                                             json={"client_id": 20, "amount": 5000})

    assert response.status_code == 502
    assert response.json()["message"] == "Mercado Pago no está configurado"
    mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_preference_created(trainer_client, mock_links, mock_db):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)
    create = AsyncMock(return_value={"id": "pref_1", "init_point": "https://mp/checkout"})

    with patch.object(mercadopago_client, "create_preference", create):
        response = await trainer_client.post("/api/payments/create-preference",
                                             json={"client_id": 20, "amount": 5000, "plan": "basic"})

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["preference_id"] == "pref_1"
    assert data["external_reference"].startswith("1-20-")
    record = mock_db.add.call_args.args[0]
    assert isinstance(record, PaymentPreference)
    assert record.plan == SubscriptionPlanEnum.basic
    assert create.call_args.args[0]["items"][0]["unit_price"] == 5000.0


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_webhook_invalid_body(client):
    response = await client.post("/api/payments/webhook", content=b"not json",
                                 headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["message"] == "Cuerpo del webhook inválido"


@pytest.mark.asyncio
async def test_webhook_unknown_type_is_ignored(client):
    response = await client.post("/api/payments/webhook", json={"type": "ping"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "received": True, "result": "ignored"}


@pytest.mark.asyncio
async def test_webhook_subscription_event(client):
    handler = AsyncMock(return_value="processed")

    with patch("app.api.v1.payments.handle_subscription_event", handler):
        response = await client.post("/api/payments/webhook", json={
            "type": "invoice.payment_succeeded", "data": {"object": {"subscription": "sub_1"}},
        })

    assert response.json()["result"] == "processed"
    handler.assert_awaited_once()


@pytest.mark.asyncio
async def test_webhook_mercadopago_payment(client, mock_db):
    payment_info = {"id": 77, "status": "approved", "external_reference": "1-2-3"}
    handler = AsyncMock(return_value="processed")

    with patch.object(mercadopago_client, "get_payment", AsyncMock(return_value=payment_info)) as get_payment, \
            patch("app.api.v1.payments.handle_mercadopago_payment", handler):
        response = await client.post("/api/payments/webhook", json={"type": "payment", "data": {"id": 77}})

    assert response.json()["result"] == "processed"
    get_payment.assert_awaited_once_with("77")
    handler.assert_awaited_once_with(mock_db, payment_info)


@pytest.mark.asyncio
async def test_webhook_payment_without_id(client):
    response = await client.post("/api/payments/webhook", json={"type": "payment"})

    assert response.status_code == 400
    assert response.json()["message"] == "Falta el id del pago"
