"""
Subscriptions, payments and invoices, plus the Mercado Pago checkout client.

Amounts are stored in currency units (ARS); plan prices are kept in cents.
"""
import logging
import math
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.payment import (
    Invoice,
    Payment,
    PaymentPreference,
    PaymentStatusEnum,
    Subscription,
    SubscriptionPlanEnum,
    SubscriptionStatusEnum,
)
from app.models.user import User

logger = logging.getLogger(__name__)

BILLING_PERIOD_DAYS = 30
CURRENCY = "ARS"

PLAN_PRICES_CENTS = {
    SubscriptionPlanEnum.basic: 2999,
    SubscriptionPlanEnum.premium: 4999,
    SubscriptionPlanEnum.professional: 9999,
}

# Status values accepted from the trainer dashboard
PAYMENT_STATUS_MAP = {
    "paid": PaymentStatusEnum.succeeded,
    "succeeded": PaymentStatusEnum.succeeded,
    "pending": PaymentStatusEnum.pending,
    "overdue": PaymentStatusEnum.failed,
}


class PaymentProviderError(Exception):
    pass


def parse_plan(value: Optional[str], default: Optional[SubscriptionPlanEnum] = None) -> SubscriptionPlanEnum:
    if not value:
        if default is None:
            raise ValueError("Plan requerido")
        return default
    try:
        return SubscriptionPlanEnum(value.strip().upper())
    except ValueError:
        raise ValueError(f"Plan inválido. Valores permitidos: {', '.join(p.value for p in SubscriptionPlanEnum)}")


def plan_price(plan: SubscriptionPlanEnum) -> float:
    return PLAN_PRICES_CENTS[plan] / 100


def map_payment_status(value: Optional[str]) -> PaymentStatusEnum:
    return PAYMENT_STATUS_MAP.get((value or "").lower(), PaymentStatusEnum.pending)


def serialize_payment(payment: Optional[Payment]) -> Optional[dict]:
    if payment is None:
        return None
    return {
        "id": payment.id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status.value if payment.status else None,
        "description": payment.description,
        "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        "created_at": payment.created_at.isoformat() if payment.created_at else None,
    }


def serialize_subscription(subscription: Subscription) -> dict:
    return {
        "id": subscription.id,
        "user_id": subscription.user_id,
        "plan": subscription.plan.value,
        "status": subscription.status.value,
        "amount": subscription.amount,
        "currency": subscription.currency,
        "current_period_start": subscription.current_period_start.isoformat()
        if subscription.current_period_start else None,
        "current_period_end": subscription.current_period_end.isoformat()
        if subscription.current_period_end else None,
        "cancel_at_period_end": subscription.cancel_at_period_end,
    }


def compute_payment_status(subscription: Optional[Subscription], latest_payment: Optional[Payment],
                           now: Optional[datetime] = None) -> dict:
    """paid / pending / overdue as shown to trainers and clients."""
    now = now or datetime.utcnow()
    if subscription is None:
        return {
            "status": "pending",
            "amount": 0,
            "due_date": (now + timedelta(days=BILLING_PERIOD_DAYS)).isoformat(),
            "plan": SubscriptionPlanEnum.basic.value,
            "last_payment": None,
        }

    due_date = subscription.current_period_end or now
    if latest_payment is not None and latest_payment.status == PaymentStatusEnum.succeeded:
        status = "paid"
    elif latest_payment is not None and latest_payment.status == PaymentStatusEnum.pending:
        status = "pending"
    elif due_date < now:
        status = "overdue"
    else:
        status = "pending"

    return {
        "status": status,
        "amount": latest_payment.amount if latest_payment is not None else subscription.amount,
        "due_date": due_date.isoformat(),
        "plan": subscription.plan.value,
        "subscription_status": subscription.status.value,
        "last_payment": serialize_payment(latest_payment),
    }


def classify_reminder(due_date: datetime, now: Optional[datetime] = None) -> Tuple[int, str]:
    """Whole days until due (ceil) and the reminder kind: upcoming, overdue or urgent."""
    now = now or datetime.utcnow()
    days_difference = math.ceil((due_date - now).total_seconds() / 86400)
    if days_difference > 0:
        return days_difference, "upcoming"
    if days_difference >= -7:
        return days_difference, "overdue"
    return days_difference, "urgent"


def invoice_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    return f"INV-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


# ---------------------------------------------------------------------------
# Persistence helpers
# ---------------------------------------------------------------------------

async def get_subscription(db: AsyncSession, user_id: int) -> Optional[Subscription]:
    result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
    return result.scalar_one_or_none()


async def get_latest_payment(db: AsyncSession, subscription_id: int) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.subscription_id == subscription_id)
        .order_by(Payment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_payment_status(db: AsyncSession, user_id: int) -> dict:
    subscription = await get_subscription(db, user_id)
    latest = await get_latest_payment(db, subscription.id) if subscription else None
    return compute_payment_status(subscription, latest)


def create_invoice(db: AsyncSession, subscription: Subscription, payment: Optional[Payment]) -> Invoice:
    invoice = Invoice(
        number=invoice_number(),
        user_id=subscription.user_id,
        subscription_id=subscription.id,
        payment_id=payment.id if payment is not None else None,
        amount=payment.amount if payment is not None else subscription.amount,
        currency=subscription.currency or CURRENCY,
        status="paid" if payment is not None and payment.status == PaymentStatusEnum.succeeded else "issued",
        issued_at=datetime.utcnow(),
        due_date=subscription.current_period_end,
        paid_at=payment.paid_at if payment is not None else None,
    )
    db.add(invoice)
    return invoice


async def upsert_client_payment(
    db: AsyncSession,
    trainer_id: int,
    client_id: int,
    amount: Optional[float],
    status: Optional[str],
    due_date: Optional[datetime],
    plan: Optional[str],
) -> Tuple[Subscription, Optional[Payment]]:
    """Trainer-side update of a client's subscription and latest payment."""
    now = datetime.utcnow()
    period_end = due_date or now + timedelta(days=BILLING_PERIOD_DAYS)
    subscription = await get_subscription(db, client_id)

    if subscription is None:
        subscription = Subscription(
            user_id=client_id,
            trainer_id=trainer_id,
            plan=parse_plan(plan, SubscriptionPlanEnum.basic),
            status=SubscriptionStatusEnum.active,
            amount=amount or 0,
            currency=CURRENCY,
            current_period_start=now,
            current_period_end=period_end,
        )
        db.add(subscription)
        await db.flush()
    else:
        subscription.trainer_id = trainer_id
        subscription.status = SubscriptionStatusEnum.active
        subscription.current_period_end = period_end
        if plan:
            subscription.plan = parse_plan(plan)
        if amount is not None:
            subscription.amount = amount

    payment = None
    if amount is not None:
        payment_status = map_payment_status(status)
        payment = await get_latest_payment(db, subscription.id)
        if payment is None:
            payment = Payment(
                subscription_id=subscription.id,
                user_id=client_id,
                amount=amount,
                currency=CURRENCY,
                status=payment_status,
                description="Cuota mensual",
                created_at=now,
            )
            db.add(payment)
        else:
            payment.amount = amount
            payment.status = payment_status
        payment.paid_at = now if payment_status == PaymentStatusEnum.succeeded else None

    await db.commit()
    return subscription, payment


async def create_subscription(db: AsyncSession, user: User, plan: SubscriptionPlanEnum) -> Subscription:
    """Start (or restart) the user's subscription with a pending first payment."""
    now = datetime.utcnow()
    price = plan_price(plan)
    subscription = await get_subscription(db, user.id)
    if subscription is None:
        subscription = Subscription(user_id=user.id, currency=CURRENCY)
        db.add(subscription)

    subscription.plan = plan
    subscription.status = SubscriptionStatusEnum.active
    subscription.amount = price
    subscription.current_period_start = now
    subscription.current_period_end = now + timedelta(days=BILLING_PERIOD_DAYS)
    subscription.cancel_at_period_end = False
    await db.flush()

    payment = Payment(
        subscription_id=subscription.id,
        user_id=user.id,
        amount=price,
        currency=CURRENCY,
        status=PaymentStatusEnum.pending,
        description=f"Suscripción {plan.value}",
        created_at=now,
    )
    db.add(payment)
    await db.flush()
    create_invoice(db, subscription, payment)
    await db.commit()
    logger.info("Subscription %s (%s) started for user %s", subscription.id, plan.value, user.id)
    return subscription


async def record_successful_payment(db: AsyncSession, subscription: Subscription, amount: float,
                                    external_id: Optional[str], description: str) -> Payment:
    """Mark a period as paid: SUCCEEDED payment, renewed period, paid invoice."""
    now = datetime.utcnow()
    payment = Payment(
        subscription_id=subscription.id,
        user_id=subscription.user_id,
        amount=amount,
        currency=subscription.currency or CURRENCY,
        status=PaymentStatusEnum.succeeded,
        description=description,
        external_id=external_id,
        paid_at=now,
        created_at=now,
    )
    db.add(payment)
    subscription.status = SubscriptionStatusEnum.active
    period_start = max(subscription.current_period_end or now, now)
    subscription.current_period_start = period_start
    subscription.current_period_end = period_start + timedelta(days=BILLING_PERIOD_DAYS)
    await db.flush()
    create_invoice(db, subscription, payment)
    return payment


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------

async def handle_subscription_event(db: AsyncSession, event: dict) -> str:
    """Stripe-style events keyed by the subscription's external id."""
    event_type = event.get("type", "")
    obj = (event.get("data") or {}).get("object") or {}
    external_id = obj.get("subscription") or obj.get("id")
    if not external_id:
        return "ignored"

    result = await db.execute(select(Subscription).where(Subscription.external_id == external_id))
    subscription = result.scalar_one_or_none()
    if subscription is None:
        logger.warning("Webhook %s for unknown subscription %s", event_type, external_id)
        return "unknown_subscription"

    if event_type == "invoice.payment_succeeded":
        amount = (obj.get("amount_paid") or 0) / 100 or subscription.amount
        await record_successful_payment(db, subscription, amount, obj.get("id"), "Pago de suscripción")
    elif event_type == "invoice.payment_failed":
        db.add(Payment(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            amount=(obj.get("amount_due") or 0) / 100 or subscription.amount,
            currency=subscription.currency or CURRENCY,
            status=PaymentStatusEnum.failed,
            description="Pago de suscripción rechazado",
            external_id=obj.get("id"),
            created_at=datetime.utcnow(),
        ))
        subscription.status = SubscriptionStatusEnum.past_due
    elif event_type == "customer.subscription.updated":
        status = (obj.get("status") or "").upper()
        if status in {s.value for s in SubscriptionStatusEnum}:
            subscription.status = SubscriptionStatusEnum(status)
        subscription.cancel_at_period_end = bool(obj.get("cancel_at_period_end", subscription.cancel_at_period_end))
        if obj.get("current_period_end"):
            subscription.current_period_end = datetime.utcfromtimestamp(obj["current_period_end"])
    elif event_type == "customer.subscription.deleted":
        subscription.status = SubscriptionStatusEnum.cancelled
    else:
        return "ignored"

    await db.commit()
    logger.info("Processed %s for subscription %s", event_type, subscription.id)
    return "processed"


async def handle_mercadopago_payment(db: AsyncSession, payment_info: dict) -> str:
    """Apply a Mercado Pago payment lookup to the stored preference."""
    reference = payment_info.get("external_reference")
    result = await db.execute(
        select(PaymentPreference).where(PaymentPreference.external_reference == reference)
    )
    preference = result.scalar_one_or_none()
    if preference is None:
        logger.warning("Mercado Pago payment for unknown reference %s", reference)
        return "unknown_reference"

    status = payment_info.get("status")
    preference.provider_payment_id = str(payment_info.get("id"))
    if status != "approved":
        preference.status = status or preference.status
        await db.commit()
        return status or "pending"
    if preference.status == "paid":
        return "already_processed"

    preference.status = "paid"
    subscription = await get_subscription(db, preference.client_id)
    if subscription is None:
        subscription = Subscription(
            user_id=preference.client_id,
            trainer_id=preference.trainer_id,
            plan=preference.plan or SubscriptionPlanEnum.basic,
            status=SubscriptionStatusEnum.active,
            amount=preference.amount,
            currency=CURRENCY,
            current_period_start=datetime.utcnow(),
            current_period_end=datetime.utcnow(),
        )
        db.add(subscription)
        await db.flush()

    amount = payment_info.get("transaction_amount") or preference.amount
    await record_successful_payment(db, subscription, amount, preference.provider_payment_id,
                                    preference.description or "Pago Mercado Pago")
    await db.commit()
    logger.info("Mercado Pago payment %s approved for client %s", preference.provider_payment_id,
                preference.client_id)
    return "processed"


# ---------------------------------------------------------------------------
# Mercado Pago API
# ---------------------------------------------------------------------------

def build_preference_payload(trainer: User, client: User, amount: float, description: str,
                             plan: Optional[SubscriptionPlanEnum], now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    external_reference = f"{trainer.id}-{client.id}-{int(now.timestamp() * 1000)}"
    return {
        "items": [
            {
                "title": description,
                "quantity": 1,
                "currency_id": CURRENCY,
                "unit_price": float(amount),
            }
        ],
        "payer": {"name": client.name, "email": client.email},
        "back_urls": {
            "success": f"{settings.FRONTEND_URL}/payments/success",
            "failure": f"{settings.FRONTEND_URL}/payments/failure",
            "pending": f"{settings.FRONTEND_URL}/payments/pending",
        },
        "auto_return": "approved",
        "external_reference": external_reference,
        "notification_url": f"{settings.BACKEND_URL}/api/payments/webhook",
        "metadata": {
            "trainer_id": trainer.id,
            "client_id": client.id,
            "plan": plan.value if plan else None,
        },
    }


class MercadoPagoClient:
    def __init__(self, access_token: str = None, base_url: str = None):
        self.access_token = access_token if access_token is not None else settings.MERCADOPAGO_ACCESS_TOKEN
        self.base_url = base_url or settings.MERCADOPAGO_API_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    async def _request(self, method: str, path: str, json: dict = None) -> dict:
        if not self.is_configured:
            raise PaymentProviderError("Mercado Pago no está configurado")
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=20.0) as client:
                response = await client.request(
                    method, path, json=json,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Mercado Pago %s %s failed: %s %s", method, path, e.response.status_code, e.response.text)
            raise PaymentProviderError(f"Error de Mercado Pago: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Mercado Pago request failed: %s", e)
            raise PaymentProviderError("No se pudo conectar con Mercado Pago") from e

    async def create_preference(self, payload: dict) -> dict:
        return await self._request("POST", "/checkout/preferences", json=payload)

    async def get_payment(self, payment_id: str) -> dict:
        return await self._request("GET", f"/v1/payments/{payment_id}")


mercadopago_client = MercadoPagoClient()
