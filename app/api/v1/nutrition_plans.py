from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_trainer_client_repository
from app.core.rbac import require_trainer, ensure_linked_client
from app.core.responses import success_response
from app.models.nutrition_plan import NutritionPlan
from app.models.user import User
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.schemas.nutrition import NutritionPlanCreate, NutritionPlanRead, NutritionPlanUpdate

router = APIRouter(tags=["nutrition-plans"])


def plan_data(plan: NutritionPlan) -> dict:
    return NutritionPlanRead.model_validate(plan).model_dump(mode="json")


async def get_own_plan(db: AsyncSession, plan_id: int, trainer_id: int) -> NutritionPlan:
    result = await db.execute(
        select(NutritionPlan).where(NutritionPlan.id == plan_id, NutritionPlan.trainer_id == trainer_id)
    )
    plan = result.scalar_one_or_none()
    if plan is None:
        raise HTTPException(status_code=404, detail="Plan nutricional no encontrado")
    return plan


@router.get("/")
async def list_plans(
    client_id: Optional[int] = Query(None),
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    query = select(NutritionPlan).where(NutritionPlan.trainer_id == current_user.id)
    if client_id is not None:
        query = query.where(NutritionPlan.client_id == client_id)
    result = await db.execute(query.order_by(NutritionPlan.created_at.desc()))
    return success_response([plan_data(p) for p in result.scalars().all()])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_plan(
    data: NutritionPlanCreate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
    links: TrainerClientRepository = Depends(get_trainer_client_repository),
):
    await ensure_linked_client(links, current_user, data.client_id)
    plan = NutritionPlan(trainer_id=current_user.id, is_active=True, **data.model_dump())
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    return success_response(plan_data(plan), "Plan nutricional creado exitosamente")


@router.put("/{plan_id}")
async def update_plan(
    plan_id: int,
    data: NutritionPlanUpdate,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    plan = await get_own_plan(db, plan_id, current_user.id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(plan, field, value)
    await db.commit()
    await db.refresh(plan)
    return success_response(plan_data(plan), "Plan nutricional actualizado exitosamente")


@router.delete("/{plan_id}")
async def delete_plan(
    plan_id: int,
    current_user: User = Depends(require_trainer),
    db: AsyncSession = Depends(get_db),
):
    plan = await get_own_plan(db, plan_id, current_user.id)
    await db.delete(plan)
    await db.commit()
    return success_response(message="Plan nutricional eliminado exitosamente")
