"""Load the initial exercise catalog and preset templates: python -m app.ops.seed_exercises"""
import asyncio
import logging

from app.core.database import seed_exercises, seed_preset_templates
from app.core.db import AsyncSessionLocal
from app.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def run() -> None:
    async with AsyncSessionLocal() as session:
        exercises = await seed_exercises(session)
        templates = await seed_preset_templates(session)
    logger.info("Seed finished: %s exercises, %s templates", exercises, templates)


if __name__ == "__main__":
    configure_logging()
    asyncio.run(run())
