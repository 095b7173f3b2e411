"""
Integration tests for /api/whatsapp/*.

Scenarios:
- GET /whatsapp/webhook: challenge echoed for the right token, 403 otherwise
- POST /whatsapp/webhook: always 200; unknown phone gets the unauthorized text,
  trainer without a routine request gets help, a request generates and saves
  a routine, send failures are swallowed, messages without a sender are
  skipped and unexpected errors never escape
- POST /whatsapp/test-message: trainers only, fields required
- GET /whatsapp/status

The whatsapp_service singleton is patched so the Graph API is never called.
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.api.v1.whatsapp import UNAUTHORIZED_TEXT, PROCESSING_ERROR_TEXT
from app.models.exercise import Exercise
from app.models.routine import Routine
from app.models.user import RoleEnum
from app.services.whatsapp_service import WhatsAppError, whatsapp_service
from tests.conftest import make_result, make_user

pytestmark = pytest.mark.integration

PHONE = "5491155551234"


def webhook_body(text: str) -> dict:
    return {"entry": [{"changes": [{"value": {"messages": [
        {"from": PHONE, "id": "wamid.1", "timestamp": "1700000000", "type": "text", "text": {"body": text}},
    ]}}]}]}


@pytest.fixture
def sent():
    """Patched send/read calls; yields the send_text_message mock."""
    send = AsyncMock(return_value={"messages": [{"id": "wamid.out"}]})
    with patch.object(whatsapp_service, "send_text_message", send), \
            patch.object(whatsapp_service, "mark_message_as_read", AsyncMock()):
        yield send


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_verify_webhook_echoes_challenge(client):
    with patch.object(whatsapp_service, "verify_token", "secret"):
        response = await client.get("/api/whatsapp/webhook", params={
            "hub.mode": "subscribe", "hub.verify_token": "secret", "hub.challenge": "12345",
        })

    assert response.status_code == 200
    assert response.text == "12345"


@pytest.mark.asyncio
async def test_verify_webhook_wrong_token(client):
    with patch.object(whatsapp_service, "verify_token", "secret"):
        response = await client.get("/api/whatsapp/webhook", params={
            "hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "12345",
        })

    assert response.status_code == 403
    assert response.text == "Forbidden"


# ---------------------------------------------------------------------------
# Incoming messages
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invalid_json_is_acknowledged(client, sent):
    response = await client.post("/api/whatsapp/webhook", content=b"{",
                                 headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "processed": 0}


@pytest.mark.asyncio
async def test_unknown_phone_is_unauthorized(client, mock_repo, sent):
    mock_repo.get_trainer_by_phone.return_value = None

    response = await client.post("/api/whatsapp/webhook", json=webhook_body("rutina de fuerza"))

    assert response.json() == {"success": True, "processed": 1}
    sent.assert_awaited_once_with(PHONE, UNAUTHORIZED_TEXT)


@pytest.mark.asyncio
async def test_trainer_gets_help_for_unrelated_text(client, mock_repo, sent):
    mock_repo.get_trainer_by_phone.return_value = make_user(1, RoleEnum.trainer, name="Laura")

    await client.post("/api/whatsapp/webhook", json=webhook_body("hola"))

    assert sent.await_count == 1
    assert "¡Hola Laura!" in sent.call_args.args[1]


@pytest.mark.asyncio
async def test_routine_request_generates_and_saves(client, mock_repo, mock_db, sent):
    mock_repo.get_trainer_by_phone.return_value = make_user(1, RoleEnum.trainer)
    mock_db.execute.return_value = make_result(items=[
        Exercise(id=1, name="Sentadilla", muscles=["piernas"]),
        Exercise(id=2, name="Press banca", muscles=["pectorales"]),
    ])

    async def refresh(obj):
        obj.id = 77
    mock_db.refresh.side_effect = refresh

    response = await client.post("/api/whatsapp/webhook",
                                 json=webhook_body("Rutina de fuerza para avanzado, 4 días por semana"))

    assert response.status_code == 200
    routine = mock_db.add.call_args.args[0]
    assert isinstance(routine, Routine)
    assert routine.trainer_id == 1
    assert routine.days_per_week == 4
    texts = [c.args[1] for c in sent.call_args_list]
    assert len(texts) == 3
    assert texts[0].startswith("⏳ Generando rutina para: *ganar fuerza*")
    assert "*Sentadilla*" in texts[1]
    assert "ID de rutina: 77" in texts[2]


@pytest.mark.asyncio
async def test_send_failure_is_swallowed(client, mock_repo, mock_db):
    mock_repo.get_trainer_by_phone.return_value = make_user(1, RoleEnum.trainer)
    send = AsyncMock(side_effect=WhatsAppError("down"))

    with patch.object(whatsapp_service, "send_text_message", send), \
            patch.object(whatsapp_service, "mark_message_as_read", AsyncMock()):
        response = await client.post("/api/whatsapp/webhook", json=webhook_body("hola"))

    assert response.status_code == 200
    assert response.json()["processed"] == 1
    mock_db.rollback.assert_awaited_once()
    assert send.call_args.args == (PHONE, PROCESSING_ERROR_TEXT)


@pytest.mark.asyncio
async def test_message_without_sender_is_skipped(client, mock_repo, sent):
    body = {"entry": [{"changes": [{"value": {"messages": [
        {"id": "wamid.9", "timestamp": "1700000000", "type": "text", "text": {"body": "rutina de fuerza"}},
    ]}}]}]}

    response = await client.post("/api/whatsapp/webhook", json=body)

    assert response.status_code == 200
    assert response.json() == {"success": True, "processed": 0}
    mock_repo.get_trainer_by_phone.assert_not_called()
    sent.assert_not_called()


@pytest.mark.asyncio
async def test_unexpected_error_is_swallowed(client, mock_repo, mock_db, sent):
    mock_repo.get_trainer_by_phone.side_effect = RuntimeError("boom")

    response = await client.post("/api/whatsapp/webhook", json=webhook_body("hola"))

    assert response.status_code == 200
    assert response.json()["processed"] == 1
    mock_db.rollback.assert_awaited_once()
    sent.assert_awaited_once_with(PHONE, PROCESSING_ERROR_TEXT)


# ---------------------------------------------------------------------------
# Trainer tools
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_test_message_requires_fields(trainer_client):
    response = await trainer_client.post("/api/whatsapp/test-message", json={"to": PHONE})

    assert response.status_code == 400
    assert response.json()["message"] == "Número de destino y mensaje son requeridos"


@pytest.mark.asyncio
async def test_test_message_is_trainer_only(client_client):
    response = await client_client.post("/api/whatsapp/test-message", json={"to": PHONE, "message": "hola"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_test_message_sent(trainer_client, sent):
    response = await trainer_client.post("/api/whatsapp/test-message", json={"to": PHONE, "message": "hola"})

    assert response.status_code == 200
    assert response.json()["data"] == {"messages": [{"id": "wamid.out"}]}
    sent.assert_awaited_once_with(PHONE, "hola")


@pytest.mark.asyncio
async def test_status(trainer_client):
    response = await trainer_client.get("/api/whatsapp/status")

    assert response.status_code == 200
    assert set(response.json()["data"]) == {"configured", "api_version", "phone_number_id",
                                            "webhook_verify_token_set"}
