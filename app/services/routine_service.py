import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.exercise import Exercise

logger = logging.getLogger(__name__)

ENRICHED_FIELDS = ("description", "type", "equipment", "difficulty", "muscles", "image_url", "video_url")


def parse_weight_range(weight) -> Optional[tuple]:
    """'40-60' or '40,5-60' -> (40.0, 60.0); None for anything else."""
    if not isinstance(weight, str) or "-" not in weight:
        return None
    parts = weight.split("-")
    if len(parts) != 2:
        return None
    try:
        return tuple(float(p.strip().replace(",", ".")) for p in parts)
    except ValueError:
        return None


def weights_per_series(exercise: dict) -> Optional[List[float]]:
    """Spread a weight range linearly over the exercise's sets."""
    if isinstance(exercise.get("weights_per_series"), list):
        return exercise["weights_per_series"]
    bounds = parse_weight_range(exercise.get("weight"))
    if bounds is None:
        return None
    low, high = bounds
    try:
        sets = int(exercise["sets"])
    except (KeyError, TypeError, ValueError):
        # unknown set count: just the bounds
        return [round(low, 1), round(high, 1)]
    if sets <= 0:
        return []
    if sets == 1:
        return [round(low, 1)]
    step = (high - low) / (sets - 1)
    return [round(low + step * i, 1) for i in range(sets)]


def _find_in_catalog(exercise: dict, by_id: dict, catalog: Sequence[Exercise]) -> Optional[Exercise]:
    exercise_id = exercise.get("exercise_id") or exercise.get("id")
    if isinstance(exercise_id, int) and exercise_id in by_id:
        return by_id[exercise_id]
    name = (exercise.get("name") or "").lower()
    if not name:
        return None
    return next((ex for ex in catalog if name in ex.name.lower()), None)


async def enrich_exercises(db: AsyncSession, exercises) -> List[dict]:
    """Fill routine exercises with catalog data (by id, then by name) and per-set weights."""
    if not isinstance(exercises, list):
        return []
    result = await db.execute(select(Exercise))
    catalog = result.scalars().all()
    by_id = {ex.id: ex for ex in catalog}

    enriched = []
    for exercise in exercises:
        if not isinstance(exercise, dict):
            continue
        item = dict(exercise)
        match = _find_in_catalog(item, by_id, catalog)
        for field in ENRICHED_FIELDS:
            catalog_value = getattr(match, field, None) if match is not None else None
            item[field] = catalog_value or item.get(field)
        item["weights_per_series"] = weights_per_series(item)
        enriched.append(item)
    return enriched
