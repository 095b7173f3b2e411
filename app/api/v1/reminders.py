from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_current_user
from app.core.responses import success_response
from app.models.appointment import Reminder
from app.models.user import User
from app.schemas.appointment import ReminderCreate, ReminderRead

router = APIRouter(tags=["reminders"])


def reminder_data(reminder: Reminder) -> dict:
    return ReminderRead.model_validate(reminder).model_dump(mode="json")


async def get_own_reminder(db: AsyncSession, reminder_id: int, user: User) -> Reminder:
    result = await db.execute(
        select(Reminder).where(Reminder.id == reminder_id, Reminder.user_id == user.id)
    )
    reminder = result.scalar_one_or_none()
    if reminder is None:
        raise HTTPException(status_code=404, detail="Recordatorio no encontrado")
    return reminder


@router.get("/")
async def list_reminders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Reminder).where(Reminder.user_id == current_user.id).order_by(Reminder.reminder_time)
    )
    return success_response([reminder_data(r) for r in result.scalars().all()])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_reminder(
    data: ReminderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reminder = Reminder(user_id=current_user.id, is_sent=False, **data.model_dump())
    db.add(reminder)
    await db.commit()
    await db.refresh(reminder)
    return success_response(reminder_data(reminder), "Recordatorio creado exitosamente")


@router.patch("/{reminder_id}/sent")
async def mark_sent(
    reminder_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reminder = await get_own_reminder(db, reminder_id, current_user)
    reminder.is_sent = True
    reminder.sent_at = datetime.utcnow()
    await db.commit()
    return success_response(reminder_data(reminder), "Recordatorio marcado como enviado")


@router.delete("/{reminder_id}")
async def delete_reminder(
    reminder_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reminder = await get_own_reminder(db, reminder_id, current_user)
    await db.delete(reminder)
    await db.commit()
    return success_response(message="Recordatorio eliminado")
