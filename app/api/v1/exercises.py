from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.rbac import require_trainer
from app.core.responses import success_response
from app.models.exercise import Exercise
from app.models.user import User
from app.schemas.exercise import ExerciseCreate, ExerciseRead, ExerciseUpdate
from app.services.objective_rules import normalize

router = APIRouter(tags=["exercises"])


def exercise_data(exercise: Exercise) -> dict:
    return ExerciseRead.model_validate(exercise).model_dump(mode="json")


def matches_filters(exercise: Exercise, search: Optional[str], muscle: Optional[str], type_: Optional[str]) -> bool:
    if search and normalize(search) not in normalize(exercise.name) \
            and normalize(search) not in normalize(exercise.description):
        return False
    if muscle and not any(normalize(muscle) in normalize(m) for m in exercise.muscles or []):
        return False
    if type_ and normalize(type_) != normalize(exercise.type):
        return False
    return True


async def get_own_exercise(db: AsyncSession, exercise_id: int, user: User) -> Exercise:
    exercise = await db.get(Exercise, exercise_id)
    if exercise is None:
        raise HTTPException(status_code=404, detail="Ejercicio no encontrado")
    if exercise.created_by != user.id:
        raise HTTPException(status_code=403, detail="Solo puedes modificar ejercicios creados por ti")
    return exercise


@router.get("/")
async def list_exercises(
    search: Optional[str] = Query(None),
    muscle: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Exercise).order_by(Exercise.name))
    exercises = [ex for ex in result.scalars().all() if matches_filters(ex, search, muscle, type)]
    return success_response([exercise_data(ex) for ex in exercises], count=len(exercises))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_exercise(
    data: ExerciseCreate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    exercise = Exercise(created_by=current_user.id, **data.model_dump())
    db.add(exercise)
    await db.commit()
    await db.refresh(exercise)
    return success_response(exercise_data(exercise), "Ejercicio creado exitosamente")


@router.put("/{exercise_id}")
async def update_exercise(
    exercise_id: int,
    data: ExerciseUpdate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    exercise = await get_own_exercise(db, exercise_id, current_user)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(exercise, field, value)
    await db.commit()
    await db.refresh(exercise)
    return success_response(exercise_data(exercise), "Ejercicio actualizado exitosamente")


@router.delete("/{exercise_id}")
async def delete_exercise(
    exercise_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    exercise = await get_own_exercise(db, exercise_id, current_user)
    await db.delete(exercise)
    await db.commit()
    return success_response(message="Ejercicio eliminado exitosamente")
