from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_trainer_client_repository
from app.core.rbac import require_trainer, require_trainer_or_admin, ensure_linked_client
from app.core.responses import success_response
from app.models.user import User
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.services.payment_service import get_subscription
from app.services.scheduler_service import cron_service

router = APIRouter(tags=["payment-reminders"])


@router.post("/send-manual-reminder/{client_id}")
async def send_manual_reminder(
    client_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    client = await ensure_linked_client(links, current_user, client_id, status_code=403)
    subscription = await get_subscription(db, client_id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="El cliente no tiene una suscripción")

    sent = await cron_service.send_manual_reminder(db, current_user, client, subscription)
    if not sent:
        raise HTTPException(status_code=500, detail="Error al enviar el recordatorio por email")
    return success_response(message="Recordatorio de pago enviado exitosamente")


@router.post("/run")
async def run_payment_reminders(
    current_user: User = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Run the daily payment reminder check right away."""
    counts = await cron_service.check_and_send_payment_reminders(db)
    return success_response(counts, "Verificación de recordatorios ejecutada")
