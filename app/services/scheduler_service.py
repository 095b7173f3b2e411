"""
Background jobs.

* payment reminders, every day at 09:00
* cleanup of old read notifications, Sundays at 02:00
* due user reminders, every 5 minutes

Times are in SCHEDULER_TIMEZONE. Each job opens its own session and logs
failures without stopping the scheduler.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.db import AsyncSessionLocal
from app.models.appointment import Reminder
from app.models.notification import NotificationTypeEnum
from app.models.payment import Subscription, SubscriptionStatusEnum
from app.models.user import User
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.services.email_service import email_service
from app.services.notification_service import notification_service
from app.services.payment_service import classify_reminder

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 3
OVERDUE_WINDOW_DAYS = 7
DUE_REMINDERS_INTERVAL_MINUTES = 5


def reminder_titles(reminder_type: str, days_difference: int) -> tuple:
    """(client title, trainer title) for a payment reminder."""
    days = abs(days_difference)
    if reminder_type == "upcoming":
        return f"Pago próximo a vencer ({days} días)", "Cliente con pago próximo a vencer"
    if reminder_type == "overdue":
        return f"Pago vencido ({days} días)", "Cliente con pago vencido"
    return f"URGENTE: Pago vencido ({days} días)", "Cliente con pago vencido"


def client_display_name(user: User) -> str:
    return user.name or "Cliente"


def local_start_of_day(now: datetime, tz_name: str) -> datetime:
    """Midnight of `now` (naive UTC) in tz_name, returned as naive UTC."""
    local = now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


class CronService:
    def __init__(self, session_factory=AsyncSessionLocal, timezone: Optional[str] = None):
        self.session_factory = session_factory
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.scheduler: Optional[AsyncIOScheduler] = None

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    def start(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            return
        logger.info("Starting scheduler (timezone %s)", self.timezone)
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.scheduler.add_job(self.run_payment_reminders, "cron", hour=9, minute=0,
                               id="payment_reminders", replace_existing=True)
        self.scheduler.add_job(self.run_notification_cleanup, "cron", day_of_week="sun", hour=2, minute=0,
                               id="notification_cleanup", replace_existing=True)
        self.scheduler.add_job(self.run_due_reminders, "interval", minutes=DUE_REMINDERS_INTERVAL_MINUTES,
                               id="due_reminders", replace_existing=True)
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    # ---------------------------------------------------------------------------
    # Job entry points
    # ---------------------------------------------------------------------------

    async def run_payment_reminders(self) -> dict:
        logger.info("Running payment reminder check")
        try:
            async with self.session_factory() as db:
                return await self.check_and_send_payment_reminders(db)
        except Exception:
            logger.exception("Payment reminder job failed")
            return {"checked": 0, "sent": 0, "skipped": 0, "failed": 0}

    async def run_notification_cleanup(self) -> int:
        try:
            async with self.session_factory() as db:
                return await notification_service.cleanup_old_notifications(db)
        except Exception:
            logger.exception("Notification cleanup job failed")
            return 0

    async def run_due_reminders(self) -> int:
        try:
            async with self.session_factory() as db:
                return await self.send_due_reminders(db)
        except Exception:
            logger.exception("Due reminders job failed")
            return 0

    # ---------------------------------------------------------------------------
    # Payment reminders
    # ---------------------------------------------------------------------------

    async def find_subscriptions_needing_reminders(self, db: AsyncSession, now: datetime):
        """Active subscriptions due within 3 days or overdue by up to 7."""
        result = await db.execute(
            select(Subscription)
            .options(selectinload(Subscription.user))
            .where(
                Subscription.status == SubscriptionStatusEnum.active,
                Subscription.current_period_end >= now - timedelta(days=OVERDUE_WINDOW_DAYS),
                Subscription.current_period_end <= now + timedelta(days=UPCOMING_WINDOW_DAYS),
            )
        )
        return result.scalars().all()

    async def check_and_send_payment_reminders(self, db: AsyncSession, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        subscriptions = await self.find_subscriptions_needing_reminders(db, now)
        logger.info("%s subscriptions need a payment reminder", len(subscriptions))

        counts = {"checked": len(subscriptions), "sent": 0, "skipped": 0, "failed": 0}
        for subscription in subscriptions:
            try:
                outcome = await self.process_payment_reminder(db, subscription, now)
            except Exception:
                logger.exception("Payment reminder for subscription %s failed", subscription.id)
                await db.rollback()
                outcome = "failed"
            counts[outcome] += 1
        return counts

    async def process_payment_reminder(self, db: AsyncSession, subscription: Subscription, now: datetime) -> str:
        """Send one reminder; returns "sent", "skipped" or "failed"."""
        user = subscription.user
        due_date = subscription.current_period_end
        days_difference, reminder_type = classify_reminder(due_date, now)

        start_of_day = local_start_of_day(now, self.timezone)
        if await notification_service.has_notification_since(
            db, user.id, NotificationTypeEnum.payment_reminder, start_of_day
        ):
            logger.info("Payment reminder already sent today to %s", user.email)
            return "skipped"

        result = await email_service.send_payment_reminder_email(
            user.email, client_display_name(user), subscription.amount, due_date,
            days_difference, reminder_type,
        )
        if not result["success"]:
            logger.error("Payment reminder email to %s failed: %s", user.email, result.get("error"))
            return "failed"

        client_title, trainer_title = reminder_titles(reminder_type, days_difference)
        notification = await notification_service.notify_payment_reminder(
            db, user.id, subscription.amount, due_date, days_difference, commit=False
        )
        notification.title = client_title

        trainer = await TrainerClientRepository(db).get_trainer_for(user.id)
        if trainer is not None:
            if reminder_type == "upcoming":
                detail = f"que vence en {days_difference} días"
            else:
                detail = f"vencido hace {abs(days_difference)} días"
            await notification_service.create_notification(
                db, trainer.id, trainer_title,
                f"{client_display_name(user)} tiene un pago {detail}",
                NotificationTypeEnum.payment_reminder,
                {"client_id": user.id, "days_difference": days_difference},
                commit=False,
            )

        await db.commit()
        logger.info("Payment reminder sent to %s (%s)", user.email, reminder_type)
        return "sent"

    async def send_manual_reminder(self, db: AsyncSession, trainer: User, client: User,
                                   subscription: Subscription, now: Optional[datetime] = None) -> bool:
        """Trainer-triggered reminder; False when the email could not be sent."""
        now = now or datetime.utcnow()
        days_difference, reminder_type = classify_reminder(subscription.current_period_end, now)
        result = await email_service.send_payment_reminder_email(
            client.email, client_display_name(client), subscription.amount,
            subscription.current_period_end, days_difference, reminder_type,
        )
        if not result["success"]:
            return False

        await notification_service.create_notification(
            db, client.id,
            "Recordatorio de pago",
            f"Tu entrenador {trainer.name} te ha enviado un recordatorio de pago. "
            "Por favor, revisa tu email y realiza el pago correspondiente.",
            NotificationTypeEnum.payment_reminder,
            {"trainer_id": trainer.id},
            commit=False,
        )
        await notification_service.create_notification(
            db, trainer.id,
            "Recordatorio enviado",
            f"Recordatorio de pago enviado exitosamente a {client_display_name(client)}",
            NotificationTypeEnum.system,
            {"client_id": client.id},
            commit=False,
        )
        await db.commit()
        return True

    # ---------------------------------------------------------------------------
    # User reminders
    # ---------------------------------------------------------------------------

    async def send_due_reminders(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        result = await db.execute(
            select(Reminder)
            .where(Reminder.is_sent.is_(False), Reminder.reminder_time <= now)
            .order_by(Reminder.reminder_time)
        )
        reminders = result.scalars().all()
        for reminder in reminders:
            notification_type = (NotificationTypeEnum.appointment if reminder.appointment_id
                                 else NotificationTypeEnum.system)
            await notification_service.create_notification(
                db, reminder.user_id, reminder.title, reminder.message or reminder.title,
                notification_type,
                {"reminder_id": reminder.id, "appointment_id": reminder.appointment_id},
                commit=False,
            )
            reminder.is_sent = True
            reminder.sent_at = now

        if reminders:
            await db.commit()
            logger.info("Delivered %s due reminders", len(reminders))
        return len(reminders)


cron_service = CronService()
