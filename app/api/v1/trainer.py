import logging
from collections import Counter
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy import select, func, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db import get_db
from app.core.dependencies import get_trainer_client_repository, get_user_repository
from app.core.rbac import require_trainer, ensure_linked_client
from app.core.responses import success_response
from app.models.notification import NotificationTypeEnum
from app.models.payment import Payment, PaymentStatusEnum, Subscription
from app.models.progress import Progress
from app.models.routine import Routine, RoutineAssignment
from app.models.trainer_client import TrainerClient
from app.models.user import User, RoleEnum, ClientProfile, TrainerProfile
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.repositories.user_repository import UserRepository
from app.schemas.client import ClientCreate, ClientUpdate
from app.schemas.payment import ClientPaymentUpdate
from app.schemas.progress import ProgressRead
from app.schemas.user import ClientProfileRead, TrainerProfileRead, TrainerProfileUpdate, UserRead
from app.services.auth_service import auth_service, generate_temporary_password
from app.services.email_service import email_service
from app.services.notification_service import notification_service
from app.services.payment_service import (
    compute_payment_status,
    get_latest_payment,
    get_payment_status,
    serialize_payment,
    serialize_subscription,
    upsert_client_payment,
)
from app.api.v1.clients import serialize_assignment
from app.api.v1.notifications import serialize_notifications
from app.schemas.notification import NotificationRead

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trainer"])

PROFILE_FIELDS = ("birth_date", "gender", "height", "weight", "goals", "medical_conditions", "fitness_level")


def serialize_client(client: User, subscription=None) -> dict:
    data = UserRead.model_validate(client).model_dump(mode="json")
    profile = client.client_profile
    data["profile"] = ClientProfileRead.model_validate(profile).model_dump(mode="json") if profile else None
    if subscription is not None:
        data["subscription"] = serialize_subscription(subscription)
    return data


# ==========================
# CLIENTS
# ==========================

@router.get("/clients")
async def list_clients(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    clients = await links.list_clients(current_user.id)
    subscriptions = {}
    if clients:
        result = await db.execute(
            select(Subscription).where(Subscription.user_id.in_([c.id for c in clients]))
        )
        subscriptions = {s.user_id: s for s in result.scalars().all()}
    return success_response([serialize_client(c, subscriptions.get(c.id)) for c in clients])


@router.post("/clients", status_code=status.HTTP_201_CREATED)
async def add_client(
    data: ClientCreate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    repo: UserRepository = Depends(get_user_repository),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    """Link an existing client or create a new one with a temporary password."""
    existing = await repo.get_by_email(data.email)
    if existing is not None:
        if existing.role != RoleEnum.client:
            raise HTTPException(status_code=400, detail="El email pertenece a un usuario que no es cliente")
        if await links.get_link(current_user.id, existing.id) is not None:
            raise HTTPException(status_code=400, detail="Este cliente ya está asociado a tu cuenta")

        await links.create_link(current_user.id, existing.id)
        await notification_service.notify_new_client(db, current_user.id, existing.name, existing.id)
        email_result = await email_service.send_welcome_email(
            existing.email, existing.name, trainer_name=current_user.name
        )
        return JSONResponse(status_code=200, content=success_response(
            {"client": UserRead.model_validate(existing).model_dump(mode="json")},
            "Cliente asociado exitosamente a tu cuenta",
            email_sent=email_result["success"],
        ))

    temporary_password = generate_temporary_password()
    profile_values = data.model_dump(include=set(PROFILE_FIELDS), exclude_unset=True)
    client = User(
        name=data.name,
        email=data.email.lower(),
        password=auth_service.hash_password(temporary_password),
        role=RoleEnum.client,
        phone=data.phone,
        is_active=True,
    )
    client.client_profile = ClientProfile(phone=data.phone, **profile_values)

    try:
        db.add(client)
        await db.flush()
        await links.create_link(current_user.id, client.id, commit=False)
        routine = Routine(
            name="Rutina Inicial",
            description="Rutina inicial para nuevo cliente",
            trainer_id=current_user.id,
            client_id=client.id,
            exercises=[],
        )
        db.add(routine)
        await notification_service.notify_new_client(db, current_user.id, client.name, client.id, commit=False)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not create client %s for trainer %s", data.email, current_user.id)
        raise HTTPException(status_code=500, detail="Error al crear el cliente")

    email_result = await email_service.send_welcome_email(
        client.email, client.name, temporary_password=temporary_password, trainer_name=current_user.name
    )
    logger.info("Trainer %s created client %s", current_user.id, client.id)
    return success_response(
        {
            "client": UserRead.model_validate(client).model_dump(mode="json"),
            "routine": {"id": routine.id, "name": routine.name},
        },
        "Cliente agregado exitosamente",
        email_sent=email_result["success"],
        email_error=email_result.get("error"),
    )


@router.get("/clients/{client_id}")
async def get_client(
    client_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    client = await ensure_linked_client(links, current_user, client_id)
    data = serialize_client(client)
    data["payment"] = await get_payment_status(db, client_id)
    return success_response(data)


@router.put("/clients/{client_id}")
async def update_client(
    client_id: int,
    data: ClientUpdate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    client = await ensure_linked_client(links, current_user, client_id)
    updates = data.model_dump(exclude_unset=True)

    # name / is_active live on the user; phone on both
    for field in ("name", "is_active"):
        value = updates.pop(field, None)
        if value is not None:
            setattr(client, field, value)
    if updates.get("phone") is not None:
        client.phone = updates["phone"]

    if updates:
        profile = client.client_profile
        if profile is None:
            profile = ClientProfile(user_id=client.id)
            client.client_profile = profile
        for field, value in updates.items():
            setattr(profile, field, value)

    await db.commit()
    return success_response(serialize_client(client), "Cliente actualizado exitosamente")


@router.delete("/clients/{client_id}")
async def remove_client(
    client_id: int,
    current_user: User = Depends(require_trainer),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    link = await links.get_link(current_user.id, client_id)
    if link is None:
        raise HTTPException(status_code=404, detail="Cliente no encontrado")
    await links.delete_link(link)
    return success_response(message="Cliente eliminado de tu lista")


# ==========================
# CLIENT PAYMENT
# ==========================

@router.get("/clients/{client_id}/payment")
async def get_client_payment(
    client_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    await ensure_linked_client(links, current_user, client_id)
    return success_response(await get_payment_status(db, client_id))


@router.put("/clients/{client_id}/payment")
async def update_client_payment(
    client_id: int,
    data: ClientPaymentUpdate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    await ensure_linked_client(links, current_user, client_id, status_code=status.HTTP_403_FORBIDDEN)
    try:
        subscription, payment = await upsert_client_payment(
            db, current_user.id, client_id, data.amount, data.status, data.due_date, data.plan
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await notification_service.create_notification(
        db, client_id,
        "Información de pago actualizada",
        "Tu entrenador actualizó la información de tu pago",
        NotificationTypeEnum.system,
        {"subscription_id": subscription.id},
    )
    return success_response(
        {
            "subscription": serialize_subscription(subscription),
            "payment": serialize_payment(payment),
            "status": compute_payment_status(subscription, payment)["status"],
        },
        "Información de pago actualizada",
    )


# ==========================
# CLIENT ROUTINES & PROGRESS
# ==========================

@router.get("/clients/{client_id}/routines")
async def client_routines(
    client_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    await ensure_linked_client(links, current_user, client_id)
    result = await db.execute(
        select(RoutineAssignment)
        .options(selectinload(RoutineAssignment.routine))
        .where(RoutineAssignment.client_id == client_id, RoutineAssignment.trainer_id == current_user.id)
        .order_by(RoutineAssignment.assigned_date.desc())
    )
    return success_response([serialize_assignment(a) for a in result.scalars().all()])


@router.delete("/clients/{client_id}/routines/{routine_id}")
async def unassign_client_routine(
    client_id: int,
    routine_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    await ensure_linked_client(links, current_user, client_id)
    result = await db.execute(
        delete(RoutineAssignment).where(
            RoutineAssignment.client_id == client_id,
            RoutineAssignment.routine_id == routine_id,
            RoutineAssignment.trainer_id == current_user.id,
        )
    )
    if not result.rowcount:
        raise HTTPException(status_code=404, detail="Asignación no encontrada")
    await db.commit()
    return success_response({"removed": result.rowcount}, "Rutina desasignada del cliente")


@router.post("/clients/{client_id}/routines/{routine_id}/resend-email")
async def resend_routine_email(
    client_id: int,
    routine_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    client = await ensure_linked_client(links, current_user, client_id)
    result = await db.execute(
        select(RoutineAssignment)
        .options(selectinload(RoutineAssignment.routine))
        .where(
            RoutineAssignment.client_id == client_id,
            RoutineAssignment.routine_id == routine_id,
            RoutineAssignment.trainer_id == current_user.id,
        )
        .order_by(RoutineAssignment.assigned_date.desc())
        .limit(1)
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Asignación no encontrada")

    email_result = await email_service.send_routine_assignment_email(
        client.email, client.name, current_user.name, assignment.routine.name,
        assignment.start_date, assignment.end_date, assignment.routine.exercises,
    )
    if not email_result["success"]:
        raise HTTPException(status_code=500, detail="Error al enviar el email de la rutina")
    return success_response({"email_sent": True}, "Email de rutina reenviado exitosamente")


@router.get("/clients/{client_id}/progress")
async def client_progress(
    client_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    await ensure_linked_client(links, current_user, client_id)
    result = await db.execute(
        select(Progress).where(Progress.client_id == client_id).order_by(Progress.recorded_at.desc())
    )
    return success_response([ProgressRead.model_validate(p).model_dump(mode="json") for p in result.scalars().all()])


# ==========================
# DASHBOARD & ANALYTICS
# ==========================

@router.get("/dashboard")
async def dashboard(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    now = datetime.utcnow()
    clients = await links.list_clients(current_user.id)

    routines_count = (await db.execute(
        select(func.count(Routine.id)).where(Routine.trainer_id == current_user.id)
    )).scalar_one()
    active_assignments = (await db.execute(
        select(func.count(RoutineAssignment.id)).where(
            RoutineAssignment.trainer_id == current_user.id,
            RoutineAssignment.end_date >= now,
        )
    )).scalar_one()
    unread = await notification_service.get_unread_count(db, current_user.id)

    recent = await db.execute(
        select(RoutineAssignment)
        .options(selectinload(RoutineAssignment.routine))
        .where(RoutineAssignment.trainer_id == current_user.id)
        .order_by(RoutineAssignment.assigned_date.desc())
        .limit(5)
    )
    return success_response({
        "stats": {
            "total_clients": len(clients),
            "total_routines": routines_count,
            "active_assignments": active_assignments,
            "unread_notifications": unread,
        },
        "recent_clients": [serialize_client(c) for c in clients[:5]],
        "recent_assignments": [serialize_assignment(a) for a in recent.scalars().all()],
    })


def month_keys(now: datetime, months: int = 6) -> list:
    keys = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


@router.get("/analytics")
async def analytics(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.utcnow()
    months = month_keys(now)

    links_result = await db.execute(select(TrainerClient).where(TrainerClient.trainer_id == current_user.id))
    links = links_result.scalars().all()
    per_month = Counter(link.created_at.strftime("%Y-%m") for link in links if link.created_at)

    objectives_result = await db.execute(
        select(Routine.training_objective, func.count(RoutineAssignment.id))
        .join(Routine, Routine.id == RoutineAssignment.routine_id)
        .where(RoutineAssignment.trainer_id == current_user.id)
        .group_by(Routine.training_objective)
    )
    assignments_by_objective = {objective or "sin_objetivo": count for objective, count in objectives_result.all()}

    client_ids = [link.client_id for link in links]
    revenue = 0.0
    status_breakdown = {"paid": 0, "pending": 0, "overdue": 0}
    if client_ids:
        revenue_result = await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.user_id.in_(client_ids),
                Payment.status == PaymentStatusEnum.succeeded,
            )
        )
        revenue = float(revenue_result.scalar_one())

        subs_result = await db.execute(select(Subscription).where(Subscription.user_id.in_(client_ids)))
        subscriptions = {s.user_id: s for s in subs_result.scalars().all()}
        for client_id in client_ids:
            subscription = subscriptions.get(client_id)
            latest = await get_latest_payment(db, subscription.id) if subscription else None
            status_breakdown[compute_payment_status(subscription, latest, now)["status"]] += 1

    return success_response({
        "clients_per_month": [{"month": m, "count": per_month.get(m, 0)} for m in months],
        "assignments_by_objective": assignments_by_objective,
        "revenue": revenue,
        "payment_status": status_breakdown,
    })


# ==========================
# PROFILE
# ==========================

async def get_trainer_profile(db: AsyncSession, user_id: int):
    result = await db.execute(select(TrainerProfile).where(TrainerProfile.user_id == user_id))
    return result.scalar_one_or_none()


@router.get("/profile")
async def read_trainer_profile(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_trainer_profile(db, current_user.id)
    return success_response({
        "user": UserRead.model_validate(current_user).model_dump(mode="json"),
        "profile": TrainerProfileRead.model_validate(profile).model_dump(mode="json") if profile else None,
    })


@router.put("/profile")
async def update_trainer_profile(
    data: TrainerProfileUpdate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_trainer_profile(db, current_user.id)
    if profile is None:
        profile = TrainerProfile(user_id=current_user.id)
        db.add(profile)

    updates = data.model_dump(exclude_unset=True)
    name = updates.pop("name", None)
    if name:
        current_user.name = name
    for field, value in updates.items():
        setattr(profile, field, value)
    if "phone" in updates:
        current_user.phone = updates["phone"]

    await db.commit()
    await db.refresh(profile)
    return success_response(TrainerProfileRead.model_validate(profile).model_dump(mode="json"),
                            "Perfil actualizado exitosamente")


# ==========================
# NOTIFICATIONS
# ==========================

@router.get("/notifications")
async def trainer_notifications(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    notifications = await notification_service.get_user_notifications(db, current_user.id)
    return success_response(serialize_notifications(notifications))


@router.get("/notifications/unread")
async def trainer_unread_notifications(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    notifications = await notification_service.get_user_notifications(db, current_user.id, unread_only=True)
    return success_response(serialize_notifications(notifications), count=len(notifications))


@router.put("/notifications/mark-all-read")
async def trainer_mark_all_read(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_as_read(db, current_user.id)
    return success_response({"updated": updated}, "Todas las notificaciones marcadas como leídas")


@router.put("/notifications/{notification_id}/read")
async def trainer_mark_read(
    notification_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.mark_as_read(db, notification_id, current_user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notificación no encontrada")
    return success_response(NotificationRead.model_validate(notification).model_dump(mode="json"))


@router.post("/notifications/test", status_code=201)
async def trainer_test_notification(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.create_notification(
        db, current_user.id,
        "Notificación de prueba",
        "El sistema de notificaciones funciona correctamente",
        NotificationTypeEnum.system,
    )
    await db.refresh(notification)
    return success_response(NotificationRead.model_validate(notification).model_dump(mode="json"),
                            "Notificación de prueba creada")
