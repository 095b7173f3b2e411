"""
Integration tests for /api/trainer/*.

Scenarios:
- role guard: clients are rejected with 403
- GET /trainer/clients: linked clients with their profile
- POST /trainer/clients: new client (201, temporary password, welcome email),
  existing client linked (200), already linked (400), non-client email (400)
- GET/DELETE /trainer/clients/{id}: unlinked client is 404
- PUT /trainer/clients/{id}/payment: unlinked client is 403, bad status is 400,
  a UTC due date is stored naive and the client gets a SYSTEM notification
- DELETE /trainer/clients/{id}/routines/{rid}: nothing removed is 404

Strategy: repositories are AsyncMocks, the session is mock_db and the email
service is patched on its singleton.
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.models.notification import Notification, NotificationTypeEnum
from app.models.payment import Subscription
from app.models.user import RoleEnum
from app.services.email_service import email_service
from tests.conftest import make_result, make_user

pytestmark = pytest.mark.integration


def assign_ids_on_flush(mock_db, start: int = 50):
    """Give every object added so far an id, like a real flush would."""
    async def flush():
        for offset, call in enumerate(mock_db.add.call_args_list):
            obj = call.args[0]
            if getattr(obj, "id", None) is None:
                obj.id = start + offset
    mock_db.flush.side_effect = flush


# ---------------------------------------------------------------------------
# Role guard
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_client_cannot_list_trainer_clients(client_client):
    response = await client_client.get("/api/trainer/clients")

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "No tienes permiso para realizar esta acción"}


# ---------------------------------------------------------------------------
# GET /trainer/clients
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_clients_returns_linked_clients(trainer_client, mock_links, trainer_fixture):
    mock_links.list_clients.return_value = [
        make_user(20, RoleEnum.client, name="Ana"),
        make_user(21, RoleEnum.client, name="Beto"),
    ]

    response = await trainer_client.get("/api/trainer/clients")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [c["name"] for c in body["data"]] == ["Ana", "Beto"]
    assert body["data"][0]["profile"] is None
    mock_links.list_clients.assert_awaited_once_with(trainer_fixture.id)


# ---------------------------------------------------------------------------
# POST /trainer/clients
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_new_client_creates_user_link_and_routine(trainer_client, mock_repo, mock_links, mock_db):
    mock_repo.get_by_email.return_value = None
    assign_ids_on_flush(mock_db)
    send = AsyncMock(return_value={"success": True, "simulated": True})

    with patch.object(email_service, "send_welcome_email", send):
        response = await trainer_client.post("/api/trainer/clients", json={
            "name": "Nuevo Cliente",
            "email": "Nuevo@Example.com",
            "phone": "+54 11 5555 0000",
            "weight": 72.5,
        })

    assert response.status_code == 201
    body = response.json()
    assert body["email_sent"] is True
    assert body["data"]["client"]["email"] == "nuevo@example.com"
    assert body["data"]["routine"]["name"] == "Rutina Inicial"

    mock_links.create_link.assert_awaited_once()
    mock_db.commit.assert_awaited()
    temporary_password = send.call_args.kwargs["temporary_password"]
    assert len(temporary_password) == 12

    added = [call.args[0] for call in mock_db.add.call_args_list]
    client = added[0]
    assert client.role == RoleEnum.client
    assert client.client_profile.weight == 72.5
    assert client.password != temporary_password


@pytest.mark.asyncio
async def test_add_existing_client_links_it_with_200(trainer_client, mock_repo, mock_links):
    existing = make_user(30, RoleEnum.client, email="old@example.com")
    mock_repo.get_by_email.return_value = existing
    send = AsyncMock(return_value={"success": True})

    with patch.object(email_service, "send_welcome_email", send):
        response = await trainer_client.post("/api/trainer/clients", json={
            "name": "Old", "email": "old@example.com",
        })

    assert response.status_code == 200
    assert response.json()["data"]["client"]["id"] == 30
    mock_links.create_link.assert_awaited_once_with(1, 30)
    assert "temporary_password" not in send.call_args.kwargs


@pytest.mark.asyncio
async def test_add_already_linked_client_returns_400(trainer_client, mock_repo, mock_links):
    mock_repo.get_by_email.return_value = make_user(30, RoleEnum.client)
    mock_links.get_link.return_value = object()

    response = await trainer_client.post("/api/trainer/clients", json={
        "name": "Dup", "email": "client30@example.com",
    })

    assert response.status_code == 400
    assert response.json()["message"] == "Este cliente ya está asociado a tu cuenta"
    mock_links.create_link.assert_not_called()


@pytest.mark.asyncio
async def test_add_client_with_trainer_email_returns_400(trainer_client, mock_repo):
    mock_repo.get_by_email.return_value = make_user(40, RoleEnum.trainer)

    response = await trainer_client.post("/api/trainer/clients", json={
        "name": "Other", "email": "trainer40@example.com",
    })

    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Single client
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_unlinked_client_returns_404(trainer_client, mock_links):
    response = await trainer_client.get("/api/trainer/clients/99")

    assert response.status_code == 404
    assert response.json()["message"] == "Cliente no encontrado"


@pytest.mark.asyncio
async def test_get_linked_client_includes_payment_status(trainer_client, mock_links):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)

    response = await trainer_client.get("/api/trainer/clients/20")

    assert response.status_code == 200
    payment = response.json()["data"]["payment"]
    assert payment["status"] == "pending"
    assert payment["amount"] == 0


@pytest.mark.asyncio
async def test_remove_unlinked_client_returns_404(trainer_client, mock_links):
    response = await trainer_client.delete("/api/trainer/clients/99")

    assert response.status_code == 404
    mock_links.delete_link.assert_not_called()


# ---------------------------------------------------------------------------
# Client payment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_payment_of_unlinked_client_returns_403(trainer_client, mock_links):
    response = await trainer_client.put("/api/trainer/clients/99/payment", json={
        "amount": 5000, "status": "paid",
    })

    assert response.status_code == 403
    assert response.json()["message"] == "No tienes acceso a este cliente"


@pytest.mark.asyncio
async def test_update_payment_with_unknown_plan_returns_400(trainer_client, mock_links):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)

    response = await trainer_client.put("/api/trainer/clients/20/payment", json={
        "amount": 5000, "status": "paid", "plan": "gold",
    })

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_payment_with_utc_due_date(trainer_client, mock_links, mock_db):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)

    response = await trainer_client.put("/api/trainer/clients/20/payment", json={
        "status": "overdue", "due_date": "2025-01-01T00:00:00.000Z",
    })

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "overdue"
    assert data["subscription"]["current_period_end"] == "2025-01-01T00:00:00"

    subscription, notification = [c.args[0] for c in mock_db.add.call_args_list]
    assert isinstance(subscription, Subscription)
    assert subscription.current_period_end.tzinfo is None
    # Not a PAYMENT_REMINDER, so the daily reminder for this client is not suppressed
    assert isinstance(notification, Notification)
    assert notification.user_id == 20
    assert notification.type == NotificationTypeEnum.system


# ---------------------------------------------------------------------------
# Client routines
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unassign_missing_routine_returns_404(trainer_client, mock_links, mock_db):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)
    mock_db.execute.return_value = make_result()

    response = await trainer_client.delete("/api/trainer/clients/20/routines/7")

    assert response.status_code == 404
    mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_unassign_routine_commits(trainer_client, mock_links, mock_db):
    mock_links.get_linked_client.return_value = make_user(20, RoleEnum.client)
    result = make_result()
    result.rowcount = 2
    mock_db.execute.return_value = result

    response = await trainer_client.delete("/api/trainer/clients/20/routines/7")

    assert response.status_code == 200
    assert response.json()["data"] == {"removed": 2}
    mock_db.commit.assert_awaited_once()
