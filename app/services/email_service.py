"""
Outgoing email.

HTML bodies are rendered from the Jinja2 templates in app/templates/email and
delivered with fastapi-mail. Without SMTP_HOST the service runs in simulation
mode: messages are logged and reported as sent.
"""
import asyncio
import logging
from datetime import datetime
from email.utils import parseaddr
from pathlib import Path
from typing import List, Optional

from aiosmtplib import SMTPException
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors
from fastapi_mail.schemas import MultipartSubtypeEnum
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
PLAIN_TEXT_FALLBACK = "Este mensaje requiere un cliente de correo con soporte HTML."

REMINDER_STYLES = {
    "upcoming": ("Tu pago vence pronto", "#1f6feb"),
    "overdue": ("Tu pago está vencido", "#d97706"),
    "urgent": ("URGENTE: pago vencido", "#dc2626"),
}


def payment_reminder_subject(reminder_type: str, days_difference: int) -> str:
    if reminder_type == "upcoming":
        if days_difference == 0:
            return "Recordatorio: tu pago vence hoy"
        return f"Recordatorio: tu pago vence en {days_difference} día(s)"
    if reminder_type == "overdue":
        return f"Pago vencido hace {abs(days_difference)} día(s)"
    return f"URGENTE: pago vencido hace {abs(days_difference)} días"


def _format_date(value) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    return str(value) if value else "-"


class EmailService:
    def __init__(self):
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    @property
    def is_configured(self) -> bool:
        return bool(settings.SMTP_HOST)

    def render(self, template_name: str, **context) -> str:
        return self.env.get_template(template_name).render(**context)

    def connection_config(self) -> ConnectionConfig:
        from_name, from_address = parseaddr(settings.SMTP_FROM)
        return ConnectionConfig(
            MAIL_USERNAME=settings.SMTP_USER,
            MAIL_PASSWORD=settings.SMTP_PASSWORD,
            MAIL_FROM=from_address,
            MAIL_FROM_NAME=from_name or None,
            MAIL_SERVER=settings.SMTP_HOST,
            MAIL_PORT=settings.SMTP_PORT,
            MAIL_STARTTLS=settings.SMTP_USE_TLS,
            MAIL_SSL_TLS=False,
            USE_CREDENTIALS=bool(settings.SMTP_USER),
        )

    def _build_message(self, to: str, subject: str, html: str, text: Optional[str]) -> MessageSchema:
        return MessageSchema(
            subject=subject,
            recipients=[to],
            body=html,
            alternative_body=text or PLAIN_TEXT_FALLBACK,
            subtype=MessageType.html,
            multipart_subtype=MultipartSubtypeEnum.alternative,
        )

    async def _deliver(self, message: MessageSchema) -> None:
        await FastMail(self.connection_config()).send_message(message)

    async def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> dict:
        if not self.is_configured:
            logger.info("[email simulation] to=%s subject=%s", to, subject)
            return {"success": True, "simulated": True}

        message = self._build_message(to, subject, html, text)
        try:
            await self._deliver(message)
        except (ConnectionErrors, SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return {"success": False, "simulated": False, "error": str(e)}

        logger.info("Email sent to %s: %s", to, subject)
        return {"success": True, "simulated": False}

    async def send_email_with_retry(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        max_attempts: Optional[int] = None,
        delay: Optional[float] = None,
    ) -> dict:
        """Retry with a linear backoff: delay, 2*delay, ..."""
        max_attempts = max_attempts or settings.EMAIL_MAX_RETRIES
        delay = settings.EMAIL_RETRY_DELAY_SECONDS if delay is None else delay

        result = {"success": False}
        for attempt in range(1, max_attempts + 1):
            result = await self.send_email(to, subject, html, text)
            if result["success"]:
                result["attempts"] = attempt
                return result
            if attempt < max_attempts:
                logger.warning("Email to %s failed (attempt %s/%s), retrying", to, attempt, max_attempts)
                await asyncio.sleep(delay * attempt)

        result["attempts"] = max_attempts
        return result

    # ---------------------------------------------------------------------------
    # Templated messages
    # ---------------------------------------------------------------------------

    async def send_welcome_email(self, to: str, name: str, temporary_password: Optional[str] = None,
                                 trainer_name: Optional[str] = None) -> dict:
        subject = "Bienvenido/a a TrainFit"
        html = self.render(
            "welcome.html",
            subject=subject,
            name=name,
            email=to,
            temporary_password=temporary_password,
            trainer_name=trainer_name,
            login_url=f"{settings.FRONTEND_URL}/login",
        )
        return await self.send_email_with_retry(to, subject, html)

    async def send_routine_assignment_email(self, to: str, client_name: str, trainer_name: str,
                                            routine_name: str, start_date, end_date,
                                            exercises: Optional[List[dict]] = None) -> dict:
        subject = f"Nueva rutina asignada: {routine_name}"
        html = self.render(
            "routine_assigned.html",
            subject=subject,
            client_name=client_name,
            trainer_name=trainer_name,
            routine_name=routine_name,
            start_date=_format_date(start_date),
            end_date=_format_date(end_date),
            exercises=exercises or [],
            routines_url=f"{settings.FRONTEND_URL}/client/routines",
        )
        return await self.send_email_with_retry(to, subject, html)

    async def send_payment_reminder_email(self, to: str, client_name: str, amount: float, due_date,
                                          days_difference: int, reminder_type: str) -> dict:
        heading, color = REMINDER_STYLES.get(reminder_type, REMINDER_STYLES["urgent"])
        subject = payment_reminder_subject(reminder_type, days_difference)
        if days_difference > 0:
            message = f"Tu cuota vence en {days_difference} día(s)."
        elif days_difference == 0:
            message = "Tu cuota vence hoy."
        else:
            message = f"Tu cuota está vencida hace {abs(days_difference)} día(s)."
        html = self.render(
            "payment_reminder.html",
            subject=subject,
            heading=heading,
            color=color,
            client_name=client_name,
            message=message,
            amount=amount,
            due_date=_format_date(due_date),
        )
        return await self.send_email_with_retry(to, subject, html)

    async def send_notification_email(self, to: str, title: str, message: str) -> dict:
        html = self.render("notification.html", subject=title, title=title, message=message)
        return await self.send_email(to, title, html)


email_service = EmailService()
