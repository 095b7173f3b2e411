"""
iCalendar (.ics) export of appointments.

Appointment times are stored as naive UTC and written as UTC date-times, so
calendar clients show them in the reader's own zone.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from email.utils import parseaddr
from typing import Optional, Sequence

from icalendar import Alarm, Calendar, Event, vCalAddress, vText

from app.core.config import settings
from app.models.appointment import Appointment, AppointmentStatusEnum
from app.models.user import User
from app.services.objective_rules import normalize

logger = logging.getLogger(__name__)

PRODUCT_ID = "-//TrainFit//Sesiones de Entrenamiento//ES"
CALENDAR_NAME = "TrainFit - Sesiones de Entrenamiento"
DEFAULT_LOCATION = "TrainFit - Gimnasio"
ALARM_MINUTES = (30, 10)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


def event_description(appointment: Appointment, client: Optional[User]) -> str:
    description = appointment.description or "Sesión con tu entrenador"
    if client is not None:
        description += f"\n\nCliente: {client.name or client.email}"
    if appointment.type:
        description += f"\nModalidad: {appointment.type}"
    description += f"\n\nGenerado por TrainFit\nMás información: {settings.FRONTEND_URL}"
    return description


def ics_file_name(appointment: Appointment) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", normalize(appointment.title)).strip("-")
    return f"trainfit-{appointment.id}-{appointment.start_time:%Y-%m-%d}-{slug or 'cita'}.ics"


def build_appointment_calendar(
    appointment: Appointment,
    client: Optional[User] = None,
    alarm_minutes: Sequence[int] = ALARM_MINUTES,
) -> bytes:
    """A VCALENDAR with one VEVENT; cancelled appointments carry no alarms."""
    calendar = Calendar()
    calendar.add("prodid", PRODUCT_ID)
    calendar.add("version", "2.0")
    calendar.add("x-wr-calname", CALENDAR_NAME)

    cancelled = appointment.status == AppointmentStatusEnum.cancelled
    event = Event()
    event.add("uid", f"trainfit-{appointment.id}@trainfit.app")
    event.add("dtstamp", datetime.now(timezone.utc))
    event.add("dtstart", _as_utc(appointment.start_time))
    event.add("dtend", _as_utc(appointment.end_time))
    event.add("summary", appointment.title)
    event.add("description", event_description(appointment, client))
    event.add("location", appointment.location or DEFAULT_LOCATION)
    event.add("url", f"{settings.FRONTEND_URL}/appointments/{appointment.id}")
    event.add("status", "CANCELLED" if cancelled else "CONFIRMED")
    event.add("categories", ["TrainFit", appointment.type] if appointment.type else ["TrainFit"])

    organizer_name, organizer_email = parseaddr(settings.SMTP_FROM)
    organizer = vCalAddress(f"mailto:{organizer_email}")
    organizer.params["cn"] = vText(organizer_name or "TrainFit")
    event["organizer"] = organizer

    if client is not None and client.email:
        attendee = vCalAddress(f"mailto:{client.email}")
        attendee.params["cn"] = vText(client.name or client.email)
        attendee.params["role"] = vText("REQ-PARTICIPANT")
        attendee.params["rsvp"] = vText("TRUE")
        event.add("attendee", attendee, encode=0)

    if not cancelled:
        for minutes in alarm_minutes:
            alarm = Alarm()
            alarm.add("action", "DISPLAY")
            alarm.add("description", f"Recordatorio: {appointment.title} en {minutes} minutos")
            alarm.add("trigger", timedelta(minutes=-minutes))
            event.add_component(alarm)

    calendar.add_component(event)
    logger.debug("Calendar file built for appointment %s", appointment.id)
    return calendar.to_ical()
