from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db import get_db
from app.core.dependencies import get_current_user
from app.core.responses import success_response
from app.models.routine import Routine, RoutineAssignment
from app.models.user import User
from app.schemas.routine import TemplateGenerateRequest
from app.services.exercise_selection_service import load_catalog
from app.services.routine_service import enrich_exercises
from app.services.routine_template_service import TemplateValidationError, build_template

router = APIRouter(tags=["routines"])


@router.post("/templates")
async def generate_template(
    data: TemplateGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Build a routine template from the objective rules and the exercise catalog."""
    catalog = await load_catalog(db)
    try:
        template = build_template(catalog, data.objetivo, data.dias, data.nivel, data.genero)
    except TemplateValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return success_response(template, "Plantilla generada exitosamente")


@router.get("/{routine_id}")
async def routine_details(
    routine_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Routine)
        .options(selectinload(Routine.trainer))
        .where(
            Routine.id == routine_id,
            or_(Routine.trainer_id == current_user.id, Routine.client_id == current_user.id),
        )
    )
    routine = result.scalar_one_or_none()
    assignment = None

    if routine is None:
        result = await db.execute(
            select(RoutineAssignment)
            .options(selectinload(RoutineAssignment.routine).selectinload(Routine.trainer))
            .where(
                RoutineAssignment.routine_id == routine_id,
                RoutineAssignment.client_id == current_user.id,
                RoutineAssignment.end_date >= datetime.utcnow(),
            )
            .order_by(RoutineAssignment.assigned_date.desc())
            .limit(1)
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise HTTPException(status_code=404, detail="Rutina no encontrada o no asignada")
        routine = assignment.routine

    trainer = routine.trainer
    data = {
        "id": routine.id,
        "name": routine.name,
        "description": routine.description,
        "training_objective": routine.training_objective,
        "level": routine.level,
        "days_per_week": routine.days_per_week,
        "trainer": {"id": trainer.id, "name": trainer.name, "email": trainer.email} if trainer else None,
        "exercises": await enrich_exercises(db, routine.exercises),
        "created_at": routine.created_at.isoformat() if routine.created_at else None,
    }
    if assignment is not None:
        data.update({
            "assignment_id": assignment.id,
            "assigned_date": assignment.assigned_date.isoformat() if assignment.assigned_date else None,
            "start_date": assignment.start_date.isoformat(),
            "end_date": assignment.end_date.isoformat(),
        })
    return success_response(data)
