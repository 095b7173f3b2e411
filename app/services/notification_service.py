import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, NotificationTypeEnum

logger = logging.getLogger(__name__)

CLEANUP_AFTER_DAYS = 30


class NotificationService:
    async def create_notification(
        self,
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: NotificationTypeEnum = NotificationTypeEnum.system,
        data: Optional[dict] = None,
        commit: bool = True,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            data=data,
            is_read=False,
            created_at=datetime.utcnow(),
        )
        db.add(notification)
        if commit:
            await db.commit()
        logger.debug("Notification %s created for user %s", type.value, user_id)
        return notification

    # ---------------------------------------------------------------------------
    # Domain events
    # ---------------------------------------------------------------------------

    async def notify_routine_assigned(self, db, trainer_id: int, client_name: str, routine_name: str,
                                      routine_id: int, commit: bool = True) -> Notification:
        return await self.create_notification(
            db, trainer_id,
            "Rutina asignada",
            f"Asignaste la rutina \"{routine_name}\" a {client_name}",
            NotificationTypeEnum.routine_assigned,
            {"routine_id": routine_id, "client_name": client_name},
            commit=commit,
        )

    async def notify_progress_update(self, db, trainer_id: int, client_name: str, progress_id: int,
                                     commit: bool = True) -> Notification:
        return await self.create_notification(
            db, trainer_id,
            "Nuevo progreso registrado",
            f"{client_name} registró un nuevo progreso",
            NotificationTypeEnum.progress_update,
            {"progress_id": progress_id, "client_name": client_name},
            commit=commit,
        )

    async def notify_new_client(self, db, trainer_id: int, client_name: str, client_id: int,
                                commit: bool = True) -> Notification:
        return await self.create_notification(
            db, trainer_id,
            "Nuevo cliente",
            f"{client_name} se agregó a tu lista de clientes",
            NotificationTypeEnum.new_client,
            {"client_id": client_id},
            commit=commit,
        )

    async def notify_payment_reminder(self, db, user_id: int, amount: float, due_date: datetime,
                                      days_difference: int, commit: bool = True) -> Notification:
        if days_difference > 0:
            message = f"Tu pago de ${amount:.2f} vence en {days_difference} día(s)"
        elif days_difference == 0:
            message = f"Tu pago de ${amount:.2f} vence hoy"
        else:
            message = f"Tu pago de ${amount:.2f} está vencido hace {abs(days_difference)} día(s)"
        return await self.create_notification(
            db, user_id,
            "Recordatorio de pago",
            message,
            NotificationTypeEnum.payment_reminder,
            {"amount": amount, "due_date": due_date.isoformat(), "days_difference": days_difference},
            commit=commit,
        )

    async def notify_goal_achieved(self, db, trainer_id: int, client_name: str, goal: str,
                                   commit: bool = True) -> Notification:
        return await self.create_notification(
            db, trainer_id,
            "¡Objetivo alcanzado!",
            f"{client_name} alcanzó su objetivo: {goal}",
            NotificationTypeEnum.goal_achieved,
            {"client_name": client_name, "goal": goal},
            commit=commit,
        )

    # ---------------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------------

    async def get_user_notifications(self, db: AsyncSession, user_id: int, unread_only: bool = False,
                                     limit: int = 50) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit)
        result = await db.execute(query)
        return result.scalars().all()

    async def get_unread_count(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_as_read(self, db: AsyncSession, notification_id: int, user_id: int) -> Optional[Notification]:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            return None
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        await db.commit()
        return notification

    async def mark_all_as_read(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.utcnow())
        )
        await db.commit()
        return result.rowcount or 0

    async def has_notification_since(self, db: AsyncSession, user_id: int, type: NotificationTypeEnum,
                                     since: datetime) -> bool:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.type == type,
                Notification.created_at >= since,
            )
        )
        return result.scalar_one() > 0

    async def cleanup_old_notifications(self, db: AsyncSession, days: int = CLEANUP_AFTER_DAYS) -> int:
        """Delete read notifications older than `days`."""
        cutoff = datetime.utcnow() - timedelta(days=days)
        result = await db.execute(
            delete(Notification).where(
                Notification.is_read.is_(True),
                Notification.created_at < cutoff,
            )
        )
        await db.commit()
        deleted = result.rowcount or 0
        logger.info("Cleaned up %s old notifications", deleted)
        return deleted


notification_service = NotificationService()
