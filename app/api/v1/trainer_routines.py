import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db import get_db
from app.core.dependencies import get_trainer_client_repository
from app.core.rbac import require_trainer, ensure_linked_client
from app.core.responses import success_response
from app.models.notification import NotificationTypeEnum
from app.models.routine import Routine, RoutineAssignment
from app.models.user import User
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.schemas.routine import (
    RoutineAssignRequest,
    RoutineAssignmentRead,
    RoutineCreate,
    RoutineRead,
    RoutineUpdate,
)
from app.services.email_service import email_service
from app.services.notification_service import notification_service
from app.api.v1.clients import serialize_assignment

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trainer-routines"])

DEFAULT_ASSIGNMENT_DAYS = 30


def routine_data(routine: Routine) -> dict:
    return RoutineRead.model_validate(routine).model_dump(mode="json")


async def get_owned_routine(db: AsyncSession, routine_id: int, trainer_id: int) -> Routine:
    result = await db.execute(
        select(Routine).where(Routine.id == routine_id, Routine.trainer_id == trainer_id)
    )
    routine = result.scalar_one_or_none()
    if routine is None:
        raise HTTPException(status_code=404, detail="Rutina no encontrada")
    return routine


# ==========================
# ASSIGNMENTS
# ==========================

@router.post("/assign", status_code=status.HTTP_201_CREATED)
async def assign_routine(
    data: RoutineAssignRequest,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    client = await ensure_linked_client(links, current_user, data.client_id)
    routine = await get_owned_routine(db, data.routine_id, current_user.id)

    start_date = data.start_date or datetime.utcnow()
    end_date = data.end_date or start_date + timedelta(days=DEFAULT_ASSIGNMENT_DAYS)
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="La fecha de fin no puede ser anterior a la de inicio")

    assignment = RoutineAssignment(
        routine_id=routine.id,
        client_id=client.id,
        trainer_id=current_user.id,
        assigned_date=datetime.utcnow(),
        start_date=start_date,
        end_date=end_date,
        training_objectives=data.training_objectives,
        pyramidal_reps=data.pyramidal_reps,
        notes=data.notes,
    )
    try:
        db.add(assignment)
        await db.flush()
        await notification_service.create_notification(
            db, client.id,
            "¡Nueva rutina asignada!",
            f"{current_user.name} te asignó la rutina \"{routine.name}\"",
            NotificationTypeEnum.routine_assigned,
            {"routine_id": routine.id, "assignment_id": assignment.id},
            commit=False,
        )
        await notification_service.notify_routine_assigned(
            db, current_user.id, client.name, routine.name, routine.id, commit=False
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not assign routine %s to client %s", routine.id, client.id)
        raise HTTPException(status_code=500, detail="Error al asignar la rutina")

    email_result = await email_service.send_routine_assignment_email(
        client.email, client.name, current_user.name, routine.name, start_date, end_date, routine.exercises,
    )
    return success_response(
        RoutineAssignmentRead.model_validate(assignment).model_dump(mode="json"),
        "Rutina asignada exitosamente",
        email_sent=email_result["success"],
    )


@router.get("/assignments")
async def list_assignments(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(RoutineAssignment)
        .options(selectinload(RoutineAssignment.routine))
        .where(RoutineAssignment.trainer_id == current_user.id)
        .order_by(RoutineAssignment.assigned_date.desc())
    )
    return success_response([serialize_assignment(a) for a in result.scalars().all()])


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(RoutineAssignment).where(
            RoutineAssignment.id == assignment_id,
            RoutineAssignment.trainer_id == current_user.id,
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Asignación no encontrada")
    await db.delete(assignment)
    await db.commit()
    return success_response(message="Asignación eliminada")


# ==========================
# ROUTINES
# ==========================

@router.get("/")
async def list_routines(
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Routine).where(Routine.trainer_id == current_user.id).order_by(Routine.created_at.desc())
    )
    return success_response([routine_data(r) for r in result.scalars().all()])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_routine(
    data: RoutineCreate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    if data.client_id is not None:
        await ensure_linked_client(links, current_user, data.client_id)

    routine = Routine(trainer_id=current_user.id, **data.model_dump())
    db.add(routine)
    await db.commit()
    await db.refresh(routine)
    logger.info("Trainer %s created routine %s", current_user.id, routine.id)
    return success_response(routine_data(routine), "Rutina creada exitosamente")


@router.get("/{routine_id}")
async def get_routine(
    routine_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    routine = await get_owned_routine(db, routine_id, current_user.id)
    return success_response(routine_data(routine))


@router.put("/{routine_id}")
async def update_routine(
    routine_id: int,
    data: RoutineUpdate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    routine = await get_owned_routine(db, routine_id, current_user.id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(routine, field, value)
    await db.commit()
    await db.refresh(routine)
    return success_response(routine_data(routine), "Rutina actualizada exitosamente")


@router.delete("/{routine_id}")
async def delete_routine(
    routine_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    routine = await get_owned_routine(db, routine_id, current_user.id)
    await db.delete(routine)
    await db.commit()
    return success_response(message="Rutina eliminada exitosamente")
