import logging
import random

from sqlalchemy import select, func

from app.core.config import settings
from app.core.base import Base
from app.core.db import engine, AsyncSessionLocal
from app.core.initial_exercises import INITIAL_EXERCISES

# Every model has to be imported before create_all
import app.models  # noqa: F401
from app.models.exercise import Exercise
from app.models.routine import RoutineTemplate
from app.services.objective_rules import OBJECTIVE_RULES
from app.services.routine_template_service import VALID_LEVELS, build_template

logger = logging.getLogger(__name__)

PRESET_DAYS = 3


async def seed_exercises(session) -> int:
    """Load the starter exercise catalog into an empty exercises table."""
    result = await session.execute(select(func.count(Exercise.id)))
    existing = result.scalar_one()
    if existing:
        logger.info("Exercise catalog already has %s entries, skipping seed", existing)
        return 0

    for data in INITIAL_EXERCISES:
        session.add(Exercise(**data))
    await session.commit()
    logger.info("Seeded %s exercises", len(INITIAL_EXERCISES))
    return len(INITIAL_EXERCISES)


async def seed_preset_templates(session) -> int:
    """One unisex preset per objective and level, built from the exercise catalog."""
    result = await session.execute(select(func.count(RoutineTemplate.id)).where(RoutineTemplate.is_preset.is_(True)))
    if result.scalar_one():
        return 0

    catalog = (await session.execute(select(Exercise).order_by(Exercise.id))).scalars().all()
    # Fixed seed so presets are stable across fresh databases
    rng = random.Random(42)
    created = 0
    for objective in OBJECTIVE_RULES:
        for level in VALID_LEVELS:
            template = build_template(catalog, objective, PRESET_DAYS, level, "unisex", rng=rng)
            session.add(RoutineTemplate(
                name=f"{template['objective_name']} - {level.capitalize()}",
                description=f"Rutina prediseñada de {template['objective_name'].lower()} "
                            f"para nivel {level}, {PRESET_DAYS} días por semana",
                training_objective=objective,
                level=level,
                days_per_week=PRESET_DAYS,
                gender="unisex",
                split_type=template["split"],
                days=template["days"],
                is_preset=True,
                is_active=True,
            ))
            created += 1
    await session.commit()
    logger.info("Seeded %s preset routine templates", created)
    return created


async def init_database():
    """Create the schema and seed reference data."""
    async with engine.begin() as conn:
        if settings.RESET_DATABASE:
            logger.warning("RESET_DATABASE=true, dropping all tables")
            await conn.run_sync(Base.metadata.drop_all)

        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    async with AsyncSessionLocal() as session:
        await seed_exercises(session)
        await seed_preset_templates(session)
