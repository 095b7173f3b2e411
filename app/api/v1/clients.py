import logging
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db import get_db
from app.core.dependencies import get_trainer_client_repository
from app.core.rbac import require_client, ensure_self
from app.core.responses import success_response
from app.models.progress import Progress
from app.models.routine import RoutineAssignment
from app.models.user import User, ClientProfile
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.schemas.progress import ProgressCreate, ProgressRead
from app.schemas.user import ClientProfileRead, ClientProfileUpdate
from app.services import s3_service
from app.services.notification_service import notification_service
from app.services.payment_service import get_payment_status
from app.api.v1.notifications import serialize_notifications

logger = logging.getLogger(__name__)

router = APIRouter(tags=["clients"])


async def get_client_profile(db: AsyncSession, user_id: int):
    result = await db.execute(select(ClientProfile).where(ClientProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def profile_image_url(key):
    if not key:
        return None
    try:
        return await s3_service.generate_presigned_url(key)
    except (BotoCoreError, ClientError) as e:
        logger.error("Could not sign profile image %s: %s", key, e)
        return None


def serialize_assignment(assignment: RoutineAssignment) -> dict:
    routine = assignment.routine
    return {
        "id": assignment.id,
        "routine_id": assignment.routine_id,
        "assigned_date": assignment.assigned_date.isoformat() if assignment.assigned_date else None,
        "start_date": assignment.start_date.isoformat(),
        "end_date": assignment.end_date.isoformat(),
        "training_objectives": assignment.training_objectives,
        "pyramidal_reps": assignment.pyramidal_reps,
        "notes": assignment.notes,
        "routine": {
            "id": routine.id,
            "name": routine.name,
            "description": routine.description,
            "exercises": routine.exercises or [],
            "training_objective": routine.training_objective,
            "level": routine.level,
            "days_per_week": routine.days_per_week,
        } if routine is not None else None,
    }


# ==========================
# PROFILE
# ==========================

@router.get("/{user_id}/profile")
async def read_profile(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    profile = await get_client_profile(db, user_id)
    data = {
        "id": current_user.id,
        "name": current_user.name,
        "email": current_user.email,
        "profile": ClientProfileRead.model_validate(profile).model_dump(mode="json") if profile else None,
        "profile_image_url": await profile_image_url(profile.profile_image) if profile else None,
    }
    return success_response(data)


@router.put("/{user_id}/profile")
async def update_profile(
    user_id: int,
    data: ClientProfileUpdate,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    profile = await get_client_profile(db, user_id)
    if profile is None:
        profile = ClientProfile(user_id=user_id)
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
    return success_response(ClientProfileRead.model_validate(profile).model_dump(mode="json"),
                            "Perfil actualizado exitosamente")


@router.post("/{user_id}/profile/upload-image")
async def upload_profile_image(
    user_id: int,
    file: UploadFile = File(...),
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    try:
        s3_key, content_type, size = await s3_service.upload_profile_image(user_id, file)
    except (BotoCoreError, ClientError) as e:
        logger.error("Profile image upload failed for user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail="No se pudo subir la imagen")

    profile = await get_client_profile(db, user_id)
    if profile is None:
        profile = ClientProfile(user_id=user_id)
        db.add(profile)
    previous_key = profile.profile_image
    profile.profile_image = s3_key
    await db.commit()

    if previous_key and previous_key != s3_key:
        try:
            await s3_service.delete_file(previous_key)
        except (BotoCoreError, ClientError) as e:
            logger.warning("Could not delete previous profile image %s: %s", previous_key, e)

    return success_response(
        {
            "profile_image": s3_key,
            "profile_image_url": await profile_image_url(s3_key),
            "content_type": content_type,
            "size": size,
        },
        "Imagen de perfil actualizada",
    )


# ==========================
# ROUTINES
# ==========================

@router.get("/{user_id}/assigned-routines")
async def assigned_routines(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    result = await db.execute(
        select(RoutineAssignment)
        .options(selectinload(RoutineAssignment.routine))
        .where(RoutineAssignment.client_id == user_id, RoutineAssignment.end_date >= datetime.utcnow())
        .order_by(RoutineAssignment.assigned_date.desc())
    )
    assignments = result.scalars().all()
    return success_response([serialize_assignment(a) for a in assignments])


@router.delete("/{user_id}/assigned-routines/{assignment_id}")
async def remove_assigned_routine(
    user_id: int,
    assignment_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    result = await db.execute(
        select(RoutineAssignment).where(
            RoutineAssignment.id == assignment_id,
            RoutineAssignment.client_id == user_id,
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Asignación no encontrada")

    await db.delete(assignment)
    await db.commit()
    return success_response(message="Rutina eliminada de tus asignaciones")


# ==========================
# PROGRESS
# ==========================

@router.get("/{user_id}/progress")
async def list_progress(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    result = await db.execute(
        select(Progress).where(Progress.client_id == user_id).order_by(Progress.recorded_at.desc())
    )
    entries = result.scalars().all()
    return success_response([ProgressRead.model_validate(p).model_dump(mode="json") for p in entries])


@router.post("/{user_id}/progress", status_code=201)
async def add_progress(
    user_id: int,
    data: ProgressCreate,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    ensure_self(current_user, user_id)
    values = data.model_dump(exclude_unset=True)
    values["recorded_at"] = values.get("recorded_at") or datetime.utcnow()
    entry = Progress(client_id=user_id, **values)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    trainer = await links.get_trainer_for(user_id)
    if trainer is not None:
        await notification_service.notify_progress_update(db, trainer.id, current_user.name, entry.id)

    return success_response(ProgressRead.model_validate(entry).model_dump(mode="json"),
                            "Progreso registrado exitosamente")


# ==========================
# PAYMENTS & NOTIFICATIONS
# ==========================

@router.get("/{user_id}/payment-status")
async def payment_status(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    return success_response(await get_payment_status(db, user_id))


@router.get("/{user_id}/notifications")
async def client_notifications(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    notifications = await notification_service.get_user_notifications(db, user_id)
    return success_response(serialize_notifications(notifications))


@router.get("/{user_id}/notifications/unread-count")
async def client_unread_count(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    return success_response({"count": await notification_service.get_unread_count(db, user_id)})


@router.put("/{user_id}/notifications/mark-all-read")
async def client_mark_all_read(
    user_id: int,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    ensure_self(current_user, user_id)
    updated = await notification_service.mark_all_as_read(db, user_id)
    return success_response({"updated": updated}, "Todas las notificaciones marcadas como leídas")
