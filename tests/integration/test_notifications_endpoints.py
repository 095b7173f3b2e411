"""
Integration tests for /api/notifications and /api/payment-reminders.

Scenarios:
- GET /notifications: list with unread count
- PUT /notifications/{id}/read: someone else's notification is 404
- POST /payment-reminders/send-manual-reminder/{id}: unlinked client (403),
  no subscription (404), email failure (500), sent
- POST /payment-reminders/run: clients are rejected, trainers get the counts

cron_service is patched on its singleton.
"""

from datetime import datetime, timedelta

import pytest
from unittest.mock import AsyncMock, patch

from app.models.notification import Notification, NotificationTypeEnum
from app.models.payment import Subscription, SubscriptionStatusEnum
from app.models.user import RoleEnum
from app.services.scheduler_service import cron_service
from tests.conftest import make_result, make_user

pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# /notifications
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_notifications_with_unread_count(client_client, mock_db):
    notification = Notification(id=1, user_id=2, title="Rutina asignada", message="m",
                                type=NotificationTypeEnum.routine_assigned, is_read=False,
                                created_at=datetime(2025, 5, 1))
    mock_db.execute.side_effect = [make_result(items=[notification]), make_result(count=1)]

    response = await client_client.get("/api/notifications/")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["unread_count"] == 1
    assert data["notifications"][0]["type"] == "ROUTINE_ASSIGNED"


@pytest.mark.asyncio
async def test_mark_foreign_notification_read_is_404(client_client):
    response = await client_client.put("/api/notifications/9/read")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Notificación no encontrada"}


# ---------------------------------------------------------------------------
# /payment-reminders
# ---------------------------------------------------------------------------

def make_subscription() -> Subscription:
    return Subscription(id=3, user_id=20, amount=29.99, status=SubscriptionStatusEnum.active,
                        current_period_end=datetime.utcnow() + timedelta(days=2))


@pytest.mark.asyncio
async def test_manual_reminder_unlinked_client(trainer_client):
    response = await trainer_client.post("/api/payment-reminders/send-manual-reminder/20")

    assert response.status_code == 403
    assert response.json()["message"] == "No tienes acceso a este cliente"


@pytest.mark.asyncio
async def test_manual_reminder_without_subscription(trainer_client, mock_links):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)

    response = await trainer_client.post("/api/payment-reminders/send-manual-reminder/20")

    assert response.status_code == 404
    assert response.json()["message"] == "El cliente no tiene una suscripción"


@pytest.mark.asyncio
async def test_manual_reminder_email_failure(trainer_client, mock_links, mock_db):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)
    mock_db.execute.return_value = make_result(scalar=make_subscription())

    with patch.object(cron_service, "send_manual_reminder", AsyncMock(return_value=False)):
        response = await trainer_client.post("/api/payment-reminders/send-manual-reminder/20")

    assert response.status_code == 500
    assert response.json()["message"] == "Error al enviar el recordatorio por email"


@pytest.mark.asyncio
async def test_manual_reminder_sent(trainer_client, trainer_fixture, mock_links, mock_db):
    client = make_user(20, RoleEnum.client)
    subscription = make_subscription()
    mock_links.get_linked_client.return_value = client
    mock_db.execute.return_value = make_result(scalar=subscription)
    send = AsyncMock(return_value=True)

    with patch.object(cron_service, "send_manual_reminder", send):
        response = await trainer_client.post("/api/payment-reminders/send-manual-reminder/20")

    assert response.status_code == 200
    assert response.json()["message"] == "Recordatorio de pago enviado exitosamente"
    send.assert_awaited_once_with(mock_db, trainer_fixture, client, subscription)


@pytest.mark.asyncio
async def test_run_reminders_is_not_for_clients(client_client):
    response = await client_client.post("/api/payment-reminders/run")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_run_reminders_returns_counts(trainer_client):
    counts = {"checked": 2, "sent": 1, "skipped": 1, "failed": 0}

    with patch.object(cron_service, "check_and_send_payment_reminders", AsyncMock(return_value=counts)):
        response = await trainer_client.post("/api/payment-reminders/run")

    assert response.json()["data"] == counts
