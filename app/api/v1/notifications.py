from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_current_user
from app.core.responses import success_response
from app.models.notification import NotificationTypeEnum
from app.models.user import User
from app.schemas.notification import NotificationRead
from app.services.notification_service import notification_service

router = APIRouter(tags=["notifications"])


def serialize_notifications(notifications) -> list:
    return [NotificationRead.model_validate(n).model_dump(mode="json") for n in notifications]


@router.get("/")
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notifications = await notification_service.get_user_notifications(db, current_user.id, unread_only, limit)
    unread_count = await notification_service.get_unread_count(db, current_user.id)
    return success_response({
        "notifications": serialize_notifications(notifications),
        "unread_count": unread_count,
    })


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await notification_service.get_unread_count(db, current_user.id)
    return success_response({"count": count})


@router.put("/mark-all-read")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_as_read(db, current_user.id)
    return success_response({"updated": updated}, "Todas las notificaciones marcadas como leídas")


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.mark_as_read(db, notification_id, current_user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notificación no encontrada")
    return success_response(NotificationRead.model_validate(notification).model_dump(mode="json"),
                            "Notificación marcada como leída")


@router.post("/test", status_code=201)
async def create_test_notification(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.create_notification(
        db, current_user.id,
        "Notificación de prueba",
        "Esta es una notificación de prueba del sistema",
        NotificationTypeEnum.system,
    )
    await db.refresh(notification)
    return success_response(NotificationRead.model_validate(notification).model_dump(mode="json"),
                            "Notificación de prueba creada")
