"""
Integration tests for /api/appointments and /api/reminders.

Scenarios:
- POST /appointments: end before start (400), missing counterpart (400),
  unknown counterpart (404), unlinked counterpart (403), overlapping appointment (409),
  created with reminders and a notification, offset datetimes stored as naive UTC
- DELETE /appointments/{id}: not a participant (404), cancelled
- GET /appointments/{id}/ics: participants only, calendar file with the client as attendee
- GET /appointments/trainer/{id}/availability: date required, bad format, busy slots
- PATCH /reminders/{id}/sent: only own reminders
"""

from datetime import datetime, timedelta, timezone

import pytest
from icalendar import Calendar
from unittest.mock import MagicMock

from app.models.appointment import Appointment, AppointmentStatusEnum, Reminder
from app.models.notification import Notification, NotificationTypeEnum
from app.models.user import RoleEnum
from tests.conftest import make_result, make_user

pytestmark = pytest.mark.integration

START = datetime(2025, 6, 2, 10, 0)


def appointment_payload(**overrides) -> dict:
    payload = {
        "title": "Evaluación inicial",
        "start_time": START.isoformat(),
        "end_time": (START + timedelta(hours=1)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def linked_client(mock_repo, mock_links):
    """Client 2 exists and is linked to trainer 1."""
    client = make_user(2, RoleEnum.client)
    mock_repo.get_by_id.return_value = client
    mock_links.get_link.return_value = MagicMock(trainer_id=1, client_id=2)
    return client


def make_appointment(**overrides) -> Appointment:
    values = dict(id=9, trainer_id=1, client_id=2, title="Sesión", start_time=START,
                  end_time=START + timedelta(hours=1), status=AppointmentStatusEnum.scheduled)
    values.update(overrides)
    return Appointment(**values)


# ---------------------------------------------------------------------------
# POST /appointments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_end_before_start_is_400(trainer_client):
    response = await trainer_client.post("/api/appointments/", json=appointment_payload(
        client_id=2, end_time=START.isoformat(),
    ))

    assert response.status_code == 400
    assert response.json()["message"] == "La hora de fin debe ser posterior a la de inicio"


@pytest.mark.asyncio
async def test_trainer_must_name_client(trainer_client):
    response = await trainer_client.post("/api/appointments/", json=appointment_payload())

    assert response.status_code == 400
    assert response.json()["message"] == "ID del cliente es requerido"


@pytest.mark.asyncio
async def test_client_must_name_trainer(client_client):
    response = await client_client.post("/api/appointments/", json=appointment_payload())

    assert response.status_code == 400
    assert response.json()["message"] == "ID del entrenador es requerido"


@pytest.mark.asyncio
async def test_overlapping_appointment_is_409(trainer_client, linked_client, mock_db):
    mock_db.execute.return_value = make_result(scalar=make_appointment())

    response = await trainer_client.post("/api/appointments/", json=appointment_payload(client_id=2))

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Ya existe una cita en ese horario"}
    mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_appointment_with_reminders(trainer_client, linked_client, mock_db):
    async def flush():
        appointment = mock_db.add.call_args_list[0].args[0]
        appointment.id = 40
    mock_db.flush.side_effect = flush

    response = await trainer_client.post("/api/appointments/", json=appointment_payload(
        client_id=2, reminders=[60, 30, 60],
    ))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["id"] == 40
    assert data["trainer_id"] == 1
    assert data["client_id"] == 2
    assert data["status"] == "SCHEDULED"

    added = [c.args[0] for c in mock_db.add.call_args_list]
    reminders = [o for o in added if isinstance(o, Reminder)]
    assert len(reminders) == 4
    assert {r.user_id for r in reminders} == {1, 2}
    assert {r.reminder_time for r in reminders} == {START - timedelta(minutes=30), START - timedelta(minutes=60)}
    assert all(r.appointment_id == 40 for r in reminders)

    notification = next(o for o in added if isinstance(o, Notification))
    assert notification.user_id == 2
    assert notification.type == NotificationTypeEnum.appointment
    assert notification.data == {"appointment_id": 40}
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_client_is_404(trainer_client, mock_repo, mock_db):
    mock_repo.get_by_id.return_value = None

    response = await trainer_client.post("/api/appointments/", json=appointment_payload(client_id=77))

    assert response.status_code == 404
    assert response.json()["message"] == "Cliente no encontrado"
    mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_trainer_is_404(client_client, mock_repo):
    # id 5 belongs to another client, not a trainer
    mock_repo.get_by_id.return_value = make_user(5, RoleEnum.client)

    response = await client_client.post("/api/appointments/", json=appointment_payload(trainer_id=5))

    assert response.status_code == 404
    assert response.json()["message"] == "Entrenador no encontrado"


@pytest.mark.asyncio
async def test_unlinked_trainer_is_403(client_client, mock_repo, mock_links, mock_db):
    mock_repo.get_by_id.return_value = make_user(8, RoleEnum.trainer)

    response = await client_client.post("/api/appointments/", json=appointment_payload(trainer_id=8))

    assert response.status_code == 403
    assert response.json()["message"] == "No existe un vínculo entre entrenador y cliente"
    mock_links.get_link.assert_awaited_once_with(8, 2)
    mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_offset_datetimes_are_stored_as_naive_utc(trainer_client, linked_client, mock_db):
    async def flush():
        mock_db.add.call_args_list[0].args[0].id = 41
    mock_db.flush.side_effect = flush

    response = await trainer_client.post("/api/appointments/", json={
        "title": "Sesión", "client_id": 2,
        "start_time": "2025-06-02T13:00:00.000Z",
        "end_time": "2025-06-02T11:00:00-03:00",
        "reminders": [30],
    })

    assert response.status_code == 201
    appointment = mock_db.add.call_args_list[0].args[0]
    assert appointment.start_time == datetime(2025, 6, 2, 13, 0)
    assert appointment.end_time == datetime(2025, 6, 2, 14, 0)
    assert appointment.start_time.tzinfo is None
    reminder = mock_db.add.call_args_list[1].args[0]
    assert reminder.reminder_time == datetime(2025, 6, 2, 12, 30)


# ---------------------------------------------------------------------------
# DELETE /appointments/{id}
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cancel_not_participant_is_404(client_client):
    response = await client_client.delete("/api/appointments/9")

    assert response.status_code == 404
    assert response.json()["message"] == "Cita no encontrada o sin permisos"


@pytest.mark.asyncio
async def test_cancel_appointment(client_client, mock_db):
    appointment = make_appointment()
    mock_db.execute.return_value = make_result(scalar=appointment)

    response = await client_client.delete("/api/appointments/9")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"
    assert appointment.status == AppointmentStatusEnum.cancelled
    # lookup plus the delete of pending reminders
    assert mock_db.execute.await_count == 2
    mock_db.commit.assert_awaited_once()


# ---------------------------------------------------------------------------
# GET /appointments/{id}/ics
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_export_ics_not_participant_is_404(client_client):
    response = await client_client.get("/api/appointments/9/ics")

    assert response.status_code == 404
    assert response.json()["message"] == "Cita no encontrada o sin permisos"


@pytest.mark.asyncio
async def test_export_ics(client_client, mock_db, mock_repo):
    mock_db.execute.return_value = make_result(scalar=make_appointment(title="Sesión de fuerza"))
    mock_repo.get_by_id.return_value = make_user(2, RoleEnum.client, email="ana@example.com", name="Ana")

    response = await client_client.get("/api/appointments/9/ics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert response.headers["content-disposition"] == \
        'attachment; filename="trainfit-9-2025-06-02-sesion-de-fuerza.ics"'
    event = Calendar.from_ical(response.content).walk("VEVENT")[0]
    assert str(event["SUMMARY"]) == "Sesión de fuerza"
    assert event.decoded("DTSTART") == START.replace(tzinfo=timezone.utc)
    assert "ana@example.com" in str(event["ATTENDEE"])
    mock_repo.get_by_id.assert_awaited_once_with(2)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_availability_requires_date(client_client):
    response = await client_client.get("/api/appointments/trainer/1/availability")

    assert response.status_code == 400
    assert response.json()["message"] == "Fecha es requerida"


@pytest.mark.asyncio
async def test_availability_bad_date(client_client):
    response = await client_client.get("/api/appointments/trainer/1/availability", params={"date": "02/06/2025"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_availability_lists_busy_slots(client_client, mock_db):
    mock_db.execute.return_value = make_result(items=[make_appointment()])

    response = await client_client.get("/api/appointments/trainer/1/availability", params={"date": "2025-06-02"})

    assert response.status_code == 200
    assert response.json()["data"] == {
        "date": "2025-06-02",
        "busy": [{"start_time": "2025-06-02T10:00:00", "end_time": "2025-06-02T11:00:00"}],
    }


# ---------------------------------------------------------------------------
# /reminders
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_mark_foreign_reminder_sent_is_404(client_client):
    response = await client_client.patch("/api/reminders/3/sent")

    assert response.status_code == 404
    assert response.json()["message"] == "Recordatorio no encontrado"


@pytest.mark.asyncio
async def test_mark_reminder_sent(client_client, mock_db):
    reminder = Reminder(id=3, user_id=2, title="Beber agua", reminder_time=START, type="custom", is_sent=False)
    mock_db.execute.return_value = make_result(scalar=reminder)

    response = await client_client.patch("/api/reminders/3/sent")

    assert response.status_code == 200
    assert response.json()["data"]["is_sent"] is True
    assert reminder.sent_at is not None
