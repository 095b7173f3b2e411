from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_current_user
from app.core.rbac import require_trainer_or_admin
from app.core.responses import success_response
from app.models.routine import RoutineTemplate
from app.models.user import User
from app.schemas.routine import (
    DuplicateTemplateRequest,
    RoutineTemplateCreate,
    RoutineTemplateRead,
    RoutineTemplateUpdate,
)

router = APIRouter(tags=["routine-templates"])


def template_data(template: RoutineTemplate) -> dict:
    return RoutineTemplateRead.model_validate(template).model_dump(mode="json")


async def get_visible_template(db: AsyncSession, template_id: int, user: User) -> RoutineTemplate:
    result = await db.execute(
        select(RoutineTemplate).where(
            RoutineTemplate.id == template_id,
            RoutineTemplate.is_active.is_(True),
            or_(RoutineTemplate.is_preset.is_(True), RoutineTemplate.created_by == user.id),
        )
    )
    template = result.scalar_one_or_none()
    if template is None:
        raise HTTPException(status_code=404, detail="Plantilla no encontrada")
    return template


def ensure_creator(template: RoutineTemplate, user: User) -> None:
    if template.created_by != user.id:
        raise HTTPException(status_code=403, detail="Solo el creador puede modificar esta plantilla")


@router.get("/")
async def list_templates(
    training_objective: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    days_per_week: Optional[int] = Query(None),
    gender: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(RoutineTemplate).where(
        RoutineTemplate.is_active.is_(True),
        or_(RoutineTemplate.is_preset.is_(True), RoutineTemplate.created_by == current_user.id),
    )
    if training_objective:
        query = query.where(RoutineTemplate.training_objective == training_objective)
    if level:
        query = query.where(RoutineTemplate.level == level)
    if days_per_week:
        query = query.where(RoutineTemplate.days_per_week == days_per_week)
    if gender:
        query = query.where(RoutineTemplate.gender.in_([gender, "unisex"]))

    result = await db.execute(query.order_by(RoutineTemplate.is_preset.desc(), RoutineTemplate.name))
    return success_response([template_data(t) for t in result.scalars().all()])


@router.get("/preset")
async def preset_template(
    objetivo: Optional[str] = Query(None),
    genero: Optional[str] = Query(None),
    nivel: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not objetivo or not genero or not nivel:
        raise HTTPException(status_code=400, detail="Se requieren los parámetros: objetivo, genero, nivel")

    result = await db.execute(
        select(RoutineTemplate)
        .where(
            RoutineTemplate.is_preset.is_(True),
            RoutineTemplate.is_active.is_(True),
            RoutineTemplate.training_objective == objetivo.lower(),
            RoutineTemplate.level == nivel.lower(),
            RoutineTemplate.gender.in_([genero.lower(), "unisex"]),
        )
        .limit(1)
    )
    template = result.scalar_one_or_none()
    if template is None:
        raise HTTPException(
            status_code=404,
            detail="No se encontró una rutina prediseñada que coincida con los criterios especificados",
        )
    return success_response(template_data(template))


@router.get("/{template_id}")
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(template_data(await get_visible_template(db, template_id, current_user)))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_template(
    data: RoutineTemplateCreate,
    current_user: User = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    template = RoutineTemplate(created_by=current_user.id, is_preset=False, is_active=True, **data.model_dump())
    db.add(template)
    await db.commit()
    await db.refresh(template)
    return success_response(template_data(template), "Plantilla creada exitosamente")


@router.put("/{template_id}")
async def update_template(
    template_id: int,
    data: RoutineTemplateUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await get_visible_template(db, template_id, current_user)
    ensure_creator(template, current_user)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(template, field, value)
    await db.commit()
    await db.refresh(template)
    return success_response(template_data(template), "Plantilla actualizada exitosamente")


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await get_visible_template(db, template_id, current_user)
    ensure_creator(template, current_user)
    template.is_active = False
    await db.commit()
    return success_response(message="Plantilla eliminada exitosamente")


@router.post("/{template_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_template(
    template_id: int,
    data: Optional[DuplicateTemplateRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    source = await get_visible_template(db, template_id, current_user)
    name = data.name if data is not None and data.name else f"{source.name} (Copia)"
    copy = RoutineTemplate(
        name=name,
        description=source.description,
        training_objective=source.training_objective,
        level=source.level,
        days_per_week=source.days_per_week,
        gender=source.gender,
        split_type=source.split_type,
        days=list(source.days or []),
        is_preset=False,
        is_active=True,
        created_by=current_user.id,
    )
    db.add(copy)
    await db.commit()
    await db.refresh(copy)
    return success_response(template_data(copy), "Plantilla duplicada exitosamente")
