import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_user_repository
from app.core.rbac import require_trainer
from app.core.responses import success_response
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.client import WhatsAppTestMessage
from app.services.ai_routine_service import ai_routine_service, GOAL_LABELS, LEVEL_LABELS
from app.services.exercise_selection_service import load_catalog
from app.services.whatsapp_service import whatsapp_service, WhatsAppError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["whatsapp"])

UNAUTHORIZED_TEXT = (
    "❌ Lo siento, solo los entrenadores autorizados pueden usar este bot. "
    "Por favor contacta al administrador."
)
GENERATION_FAILED_TEXT = (
    "❌ Lo siento, no pude generar la rutina en este momento. Por favor intenta de nuevo más tarde."
)
PROCESSING_ERROR_TEXT = (
    "❌ Ocurrió un error procesando tu solicitud. Por favor intenta de nuevo más tarde."
)


def help_text(trainer_name: str) -> str:
    return (
        f"👋 ¡Hola {trainer_name}! Soy el bot de TrainFit.\n\n"
        "Para generar una rutina, envía un mensaje como:\n\n"
        "• \"Necesito una rutina para perder peso, nivel principiante\"\n"
        "• \"Rutina de masa muscular para intermedio\"\n"
        "• \"Rutina de fuerza para avanzado, 4 días por semana\"\n\n"
        "¿En qué puedo ayudarte? 💪"
    )


def generating_text(objective: dict) -> str:
    return (
        f"⏳ Generando rutina para: *{GOAL_LABELS[objective['goal']]}*\n"
        f"Nivel: *{LEVEL_LABELS[objective['level']]}*\n"
        f"Frecuencia: *{objective['frequency']} días/semana*\n\n"
        "Por favor espera un momento..."
    )


def saved_text(routine_id: int) -> str:
    return (
        "✅ *Rutina guardada exitosamente*\n\n"
        f"ID de rutina: {routine_id}\n"
        "Puedes encontrarla en tu panel de TrainFit para asignarla a tus clientes.\n\n"
        "¿Necesitas otra rutina? Solo envíame otro mensaje! 🚀"
    )


async def process_bot_message(db: AsyncSession, repo: UserRepository, message: dict) -> str:
    """Answer one incoming text; returns what happened for logging."""
    sender = message["from"]
    if message.get("id"):
        await whatsapp_service.mark_message_as_read(message["id"])

    trainer = await repo.get_trainer_by_phone(sender)
    if trainer is None:
        await whatsapp_service.send_text_message(sender, UNAUTHORIZED_TEXT)
        return "unauthorized"

    objective = ai_routine_service.process_training_objective(message["text"])
    if objective is None:
        await whatsapp_service.send_text_message(sender, help_text(trainer.name or "Entrenador"))
        return "help"

    await whatsapp_service.send_text_message(sender, generating_text(objective))

    routine = ai_routine_service.generate_routine(await load_catalog(db), objective)
    if routine is None:
        await whatsapp_service.send_text_message(sender, GENERATION_FAILED_TEXT)
        return "failed"

    saved = await ai_routine_service.save_routine(db, routine, trainer.id)
    await whatsapp_service.send_text_message(sender, ai_routine_service.format_routine_for_whatsapp(routine))
    await whatsapp_service.send_text_message(sender, saved_text(saved.id))
    logger.info("WhatsApp routine %s generated for trainer %s", saved.id, trainer.id)
    return "generated"


@router.get("/webhook")
async def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    echoed = whatsapp_service.verify_webhook(mode, token, challenge)
    if echoed is None:
        return PlainTextResponse("Forbidden", status_code=403)
    return PlainTextResponse(echoed)


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    repo: UserRepository = Depends(get_user_repository),
):
    """Meta retries anything that is not a 200, so failures are logged and swallowed here."""
    try:
        body = await request.json()
    except ValueError:
        logger.warning("WhatsApp webhook with invalid JSON body")
        return {"success": True, "processed": 0}

    messages = whatsapp_service.process_incoming_message(body if isinstance(body, dict) else {})
    for message in messages:
        try:
            outcome = await process_bot_message(db, repo, message)
            logger.info("WhatsApp message %s from %s: %s", message.get("id"), message["from"], outcome)
        except Exception:
            logger.exception("Error processing WhatsApp message %s from %s", message.get("id"), message["from"])
            await db.rollback()
            try:
                await whatsapp_service.send_text_message(message["from"], PROCESSING_ERROR_TEXT)
            except WhatsAppError:
                logger.error("Could not deliver the error reply to %s", message.get("from"))
    return {"success": True, "processed": len(messages)}


@router.post("/test-message")
async def send_test_message(
    data: WhatsAppTestMessage,
    current_user: User = Depends(require_trainer),
):
    if not data.to or not data.message:
        raise HTTPException(status_code=400, detail="Número de destino y mensaje son requeridos")
    try:
        result = await whatsapp_service.send_text_message(data.to, data.message)
    except WhatsAppError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return success_response(result, "Mensaje de prueba enviado")


@router.get("/status")
async def whatsapp_status(current_user: User = Depends(require_trainer)):
    return success_response(whatsapp_service.status())
