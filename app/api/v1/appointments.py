import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_current_user, get_trainer_client_repository, get_user_repository
from app.core.responses import success_response
from app.models.appointment import Appointment, AppointmentStatusEnum, Reminder
from app.models.notification import NotificationTypeEnum
from app.models.user import User, RoleEnum
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.repositories.user_repository import UserRepository
from app.schemas.appointment import AppointmentCreate, AppointmentRead, AppointmentUpdate
from app.schemas.common import UTCDateTime
from app.services.ics_service import build_appointment_calendar, ics_file_name
from app.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["appointments"])


def appointment_data(appointment: Appointment) -> dict:
    return AppointmentRead.model_validate(appointment).model_dump(mode="json")


async def find_conflict(db: AsyncSession, trainer_id: int, start: datetime, end: datetime,
                        exclude_id: Optional[int] = None) -> Optional[Appointment]:
    """A non-cancelled appointment of the trainer overlapping [start, end)."""
    query = select(Appointment).where(
        Appointment.trainer_id == trainer_id,
        Appointment.status != AppointmentStatusEnum.cancelled,
        Appointment.start_time < end,
        Appointment.end_time > start,
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def ensure_counterpart(repo: UserRepository, links: TrainerClientRepository,
                            trainer_id: int, client_id: int, counterpart_id: int) -> User:
    """The other participant must exist with the expected role and be linked."""
    counterpart = await repo.get_by_id(counterpart_id)
    expected = RoleEnum.client if counterpart_id == client_id else RoleEnum.trainer
    if counterpart is None or counterpart.role != expected:
        detail = "Cliente no encontrado" if expected == RoleEnum.client else "Entrenador no encontrado"
        raise HTTPException(status_code=404, detail=detail)
    if await links.get_link(trainer_id, client_id) is None:
        raise HTTPException(status_code=403, detail="No existe un vínculo entre entrenador y cliente")
    return counterpart


async def get_participant_appointment(db: AsyncSession, appointment_id: int, user: User) -> Appointment:
    result = await db.execute(
        select(Appointment).where(
            Appointment.id == appointment_id,
            or_(Appointment.client_id == user.id, Appointment.trainer_id == user.id),
        )
    )
    appointment = result.scalar_one_or_none()
    if appointment is None:
        raise HTTPException(status_code=404, detail="Cita no encontrada o sin permisos")
    return appointment


@router.get("/")
async def list_appointments(
    start_date: Optional[UTCDateTime] = Query(None),
    end_date: Optional[UTCDateTime] = Query(None),
    status_filter: Optional[AppointmentStatusEnum] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Appointment).where(
        or_(Appointment.client_id == current_user.id, Appointment.trainer_id == current_user.id)
    )
    if start_date:
        query = query.where(Appointment.start_time >= start_date)
    if end_date:
        query = query.where(Appointment.start_time <= end_date)
    if status_filter:
        query = query.where(Appointment.status == status_filter)
    result = await db.execute(query.order_by(Appointment.start_time))
    return success_response([appointment_data(a) for a in result.scalars().all()])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    repo: UserRepository = Depends(get_user_repository),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    if data.end_time <= data.start_time:
        raise HTTPException(status_code=400, detail="La hora de fin debe ser posterior a la de inicio")

    if current_user.role == RoleEnum.trainer:
        if data.client_id is None:
            raise HTTPException(status_code=400, detail="ID del cliente es requerido")
        trainer_id, client_id = current_user.id, data.client_id
    else:
        if data.trainer_id is None:
            raise HTTPException(status_code=400, detail="ID del entrenador es requerido")
        trainer_id, client_id = data.trainer_id, current_user.id

    counterpart_id = client_id if current_user.id == trainer_id else trainer_id
    await ensure_counterpart(repo, links, trainer_id, client_id, counterpart_id)

    if await find_conflict(db, trainer_id, data.start_time, data.end_time) is not None:
        raise HTTPException(status_code=409, detail="Ya existe una cita en ese horario")

    appointment = Appointment(
        trainer_id=trainer_id,
        client_id=client_id,
        title=data.title,
        description=data.description,
        start_time=data.start_time,
        end_time=data.end_time,
        location=data.location,
        type=data.type,
        notes=data.notes,
        status=AppointmentStatusEnum.scheduled,
    )
    db.add(appointment)
    await db.flush()

    for minutes in sorted(set(data.reminders)):
        for user_id in (client_id, trainer_id):
            db.add(Reminder(
                user_id=user_id,
                appointment_id=appointment.id,
                title=f"Recordatorio: {data.title}",
                message=f"Tu cita \"{data.title}\" comienza en {minutes} minutos",
                reminder_time=data.start_time - timedelta(minutes=minutes),
                type="appointment",
            ))

    await notification_service.create_notification(
        db, counterpart_id,
        "Nueva cita programada",
        f"{current_user.name} programó la cita \"{data.title}\" para el "
        f"{data.start_time.strftime('%d/%m/%Y %H:%M')}",
        NotificationTypeEnum.appointment,
        {"appointment_id": appointment.id},
        commit=False,
    )
    await db.commit()
    await db.refresh(appointment)
    logger.info("Appointment %s created by user %s", appointment.id, current_user.id)
    return success_response(appointment_data(appointment), "Cita creada exitosamente")


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await get_participant_appointment(db, appointment_id, current_user)
    updates = data.model_dump(exclude_unset=True)

    start = updates.get("start_time", appointment.start_time)
    end = updates.get("end_time", appointment.end_time)
    if end <= start:
        raise HTTPException(status_code=400, detail="La hora de fin debe ser posterior a la de inicio")
    if ("start_time" in updates or "end_time" in updates) and \
            await find_conflict(db, appointment.trainer_id, start, end, exclude_id=appointment.id) is not None:
        raise HTTPException(status_code=409, detail="Ya existe una cita en ese horario")

    for field, value in updates.items():
        setattr(appointment, field, value)
    await db.commit()
    await db.refresh(appointment)
    return success_response(appointment_data(appointment), "Cita actualizada exitosamente")


@router.delete("/{appointment_id}")
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancels the appointment and drops its pending reminders."""
    appointment = await get_participant_appointment(db, appointment_id, current_user)
    appointment.status = AppointmentStatusEnum.cancelled
    await db.execute(
        delete(Reminder).where(Reminder.appointment_id == appointment.id, Reminder.is_sent.is_(False))
    )
    await db.commit()
    return success_response(appointment_data(appointment), "Cita cancelada exitosamente")


@router.get("/{appointment_id}/ics")
async def export_appointment_ics(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    repo: UserRepository = Depends(get_user_repository),
):
    """Download the appointment as an .ics file for any calendar app."""
    appointment = await get_participant_appointment(db, appointment_id, current_user)
    client = await repo.get_by_id(appointment.client_id)
    return Response(
        content=build_appointment_calendar(appointment, client),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{ics_file_name(appointment)}"'},
    )


@router.get("/trainer/{trainer_id}/availability")
async def trainer_availability(
    trainer_id: int,
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not date:
        raise HTTPException(status_code=400, detail="Fecha es requerida")
    try:
        day = datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail="Formato de fecha inválido, use YYYY-MM-DD")

    result = await db.execute(
        select(Appointment)
        .where(
            Appointment.trainer_id == trainer_id,
            Appointment.start_time >= day,
            Appointment.start_time < day + timedelta(days=1),
            Appointment.status != AppointmentStatusEnum.cancelled,
        )
        .order_by(Appointment.start_time)
    )
    busy = [
        {"start_time": a.start_time.isoformat(), "end_time": a.end_time.isoformat()}
        for a in result.scalars().all()
    ]
    return success_response({"date": date, "busy": busy})
