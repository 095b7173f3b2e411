import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_current_user, get_trainer_client_repository
from app.core.rbac import require_trainer, ensure_linked_client
from app.core.responses import success_response
from app.models.payment import Payment, PaymentPreference, SubscriptionStatusEnum
from app.models.user import User
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.schemas.payment import CreateSubscriptionRequest, PreferenceCreate
from app.services.payment_service import (
    PaymentProviderError,
    build_preference_payload,
    create_subscription,
    get_subscription,
    handle_mercadopago_payment,
    handle_subscription_event,
    mercadopago_client,
    parse_plan,
    serialize_payment,
    serialize_subscription,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


async def get_own_subscription(db: AsyncSession, user: User):
    subscription = await get_subscription(db, user.id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="No se encontró una suscripción")
    return subscription


# ==========================
# SUBSCRIPTIONS
# ==========================

@router.post("/create-subscription", status_code=status.HTTP_201_CREATED)
async def create_subscription_endpoint(
    data: CreateSubscriptionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        plan = parse_plan(data.plan)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    existing = await get_subscription(db, current_user.id)
    if existing is not None and existing.status == SubscriptionStatusEnum.active:
        raise HTTPException(status_code=400, detail="Ya tienes una suscripción activa")

    try:
        subscription = await create_subscription(db, current_user, plan)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not create subscription for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Error al crear la suscripción")
    return success_response(serialize_subscription(subscription), "Suscripción creada exitosamente")


@router.get("/subscription")
async def read_subscription(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await get_own_subscription(db, current_user)
    return success_response(serialize_subscription(subscription))


@router.post("/cancel-subscription")
async def cancel_subscription(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await get_own_subscription(db, current_user)
    subscription.cancel_at_period_end = True
    subscription.status = SubscriptionStatusEnum.cancelled
    await db.commit()
    logger.info("Subscription %s cancelled by user %s", subscription.id, current_user.id)
    return success_response(serialize_subscription(subscription), "Suscripción cancelada")


@router.get("/history")
async def payment_history(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await get_own_subscription(db, current_user)
    result = await db.execute(
        select(Payment).where(Payment.subscription_id == subscription.id).order_by(Payment.created_at.desc())
    )
    return success_response([serialize_payment(p) for p in result.scalars().all()])


# ==========================
# MERCADO PAGO
# ==========================

@router.post("/create-preference", status_code=status.HTTP_201_CREATED)
async def create_preference(
    data: PreferenceCreate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    client = await ensure_linked_client(links, current_user, data.client_id, status_code=status.HTTP_403_FORBIDDEN)
    try:
        plan = parse_plan(data.plan) if data.plan else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    description = data.description or "Cuota de entrenamiento personal"
    payload = build_preference_payload(current_user, client, data.amount, description, plan)
    try:
        preference = await mercadopago_client.create_preference(payload)
    except PaymentProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))

    record = PaymentPreference(
        trainer_id=current_user.id,
        client_id=client.id,
        preference_id=preference["id"],
        external_reference=payload["external_reference"],
        amount=data.amount,
        description=description,
        plan=plan,
        status="pending",
        init_point=preference.get("init_point"),
        metadata_json=payload["metadata"],
    )
    db.add(record)
    await db.commit()
    return success_response(
        {
            "preference_id": preference["id"],
            "init_point": preference.get("init_point"),
            "sandbox_init_point": preference.get("sandbox_init_point"),
            "external_reference": payload["external_reference"],
        },
        "Preferencia de pago creada",
    )


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Mercado Pago notifications and Stripe-style subscription events."""
    try:
        event = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Cuerpo del webhook inválido")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Cuerpo del webhook inválido")

    event_type = event.get("type") or request.query_params.get("type") or request.query_params.get("topic")
    logger.info("Payment webhook received: %s", event_type)

    if event_type == "payment":
        payment_id = (event.get("data") or {}).get("id") or request.query_params.get("data.id")
        if not payment_id:
            raise HTTPException(status_code=400, detail="Falta el id del pago")
        try:
            payment_info = await mercadopago_client.get_payment(str(payment_id))
        except PaymentProviderError as e:
            raise HTTPException(status_code=502, detail=str(e))
        result = await handle_mercadopago_payment(db, payment_info)
    elif event_type and "." in event_type:
        result = await handle_subscription_event(db, event)
    else:
        result = "ignored"

    return {"success": True, "received": True, "result": result}
