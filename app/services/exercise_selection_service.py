"""
Exercise selection for one training day of a routine template.

The selection runs over an in-memory catalog (the rows of the exercises
table) so that the ranking rules can be applied uniformly to muscles, names
and types regardless of the database dialect.
"""
import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.exercise import Exercise
from app.services.objective_rules import (
    get_exercise_priority,
    get_muscle_quotas_for_day,
    get_muscle_terms,
    get_objective_rules,
    is_multiarticular,
    normalize,
    split_type_for_days,
)

logger = logging.getLogger(__name__)

MAX_EXERCISES_PER_DAY = 10
CANDIDATES_PER_SLOT = 5

WEIGHT_BY_LEVEL = {
    "principiante": "Ligero",
    "intermedio": "Moderado",
    "avanzado": "Pesado",
}

FALLBACK_EXERCISES: Dict[str, List[str]] = {
    "pectorales": ["Flexiones", "Press de pecho"],
    "dorsales": ["Remo", "Dominadas asistidas"],
    "piernas": ["Sentadillas", "Zancadas"],
    "hombros": ["Elevaciones laterales", "Press de hombros"],
    "biceps": ["Curl de bíceps", "Martillo"],
    "triceps": ["Fondos", "Extensiones"],
    "core": ["Plancha", "Crunch"],
}
DEFAULT_FALLBACK = ["Ejercicio funcional"]
DEFAULT_MOBILITY = ["Calentamiento articular", "Estiramiento dinámico"]
DEFAULT_FINISHERS = ["Plancha", "Abdominales"]

MOBILITY_NAME_KEYWORDS = ("estiramiento", "calentamiento")
FINISHER_KEYWORDS = ("core", "abdominales", "plancha", "abdominal")


class ExerciseSelectionError(ValueError):
    pass


async def load_catalog(db: AsyncSession) -> Sequence[Exercise]:
    result = await db.execute(select(Exercise).order_by(Exercise.id))
    return result.scalars().all()


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _muscles(exercise: Exercise) -> List[str]:
    return [normalize(m) for m in (exercise.muscles or [])]


def matches_terms(exercise: Exercise, terms: Iterable[str]) -> bool:
    muscles = _muscles(exercise)
    name = normalize(exercise.name)
    type_ = normalize(exercise.type)
    for term in (normalize(t) for t in terms):
        if any(term in m for m in muscles):
            return True
        if term in name or (type_ and term in type_):
            return True
    return False


def passes_gender_filter(exercise: Exercise, genero: str) -> bool:
    if not genero or genero == "unisex":
        return True
    exercise_gender = normalize(getattr(exercise, "gender", None))
    if exercise_gender in ("", "unisex", genero):
        return True
    return genero in [normalize(o) for o in (exercise.objectives or [])]


def is_mobility_exercise(exercise: Exercise) -> bool:
    if any("movilidad" in m for m in _muscles(exercise)) or "movilidad" in normalize(exercise.type):
        return True
    name = normalize(exercise.name)
    return any(keyword in name for keyword in MOBILITY_NAME_KEYWORDS)


def is_finisher_exercise(exercise: Exercise) -> bool:
    muscles = _muscles(exercise)
    name = normalize(exercise.name)
    return any(k in muscles or k in name for k in FINISHER_KEYWORDS)


# ---------------------------------------------------------------------------
# Ranking and prescription
# ---------------------------------------------------------------------------

def priority_score(exercise_name: str, rules: dict) -> int:
    priorities = rules["priority"]
    category = get_exercise_priority(exercise_name)
    return priorities.index(category) if category in priorities else len(priorities)


def rank_exercises(exercises: Iterable[Exercise], rules: dict) -> List[Exercise]:
    """Stable sort by priority score, multiarticular movements first on ties."""
    return sorted(
        exercises,
        key=lambda ex: (priority_score(ex.name, rules), 0 if is_multiarticular(ex.name) else 1),
    )


def rest_time_for(rules: dict, nivel: str) -> str:
    rep_max = rules["rep_range"]["max"]
    if rep_max <= 6:
        rest = "3 min"
    elif rep_max <= 12:
        rest = "2 min"
    else:
        rest = "90 seg"
    if nivel == "principiante" and rest == "90 seg":
        rest = "2 min"
    return rest


def rep_range_label(rules: dict) -> str:
    return f"{rules['rep_range']['min']}-{rules['rep_range']['max']}"


def _exercise_entry(exercise: Exercise, category: str, muscle_group: Optional[str], **prescription) -> dict:
    return {
        "id": exercise.id,
        "name": exercise.name,
        "description": exercise.description,
        "type": exercise.type,
        "equipment": exercise.equipment,
        "difficulty": exercise.difficulty,
        "muscles": list(exercise.muscles or []),
        "image_url": exercise.image_url,
        "video_url": exercise.video_url,
        "category": category,
        "muscle_group": muscle_group,
        "priority": get_exercise_priority(exercise.name),
        **prescription,
    }


def _placeholder_entry(name: str, key: str, category: str, muscle_group: Optional[str], **prescription) -> dict:
    return {
        "id": key,
        "name": name,
        "description": None,
        "type": category,
        "equipment": "Peso corporal",
        "difficulty": None,
        "muscles": [muscle_group] if muscle_group else [],
        "image_url": None,
        "video_url": None,
        "category": category,
        "muscle_group": muscle_group,
        "priority": get_exercise_priority(name),
        **prescription,
    }


def _main_prescription(rules: dict, nivel: str, rng: random.Random) -> dict:
    series = rules["series_range"]
    reps = rep_range_label(rules)
    rest = rest_time_for(rules, nivel)
    return {
        "sets": rng.randint(series["min"], series["max"]),
        "reps": reps,
        "weight": WEIGHT_BY_LEVEL.get(nivel, "Moderado"),
        "rest_time": rest,
        "notes": f"{rules['name']}: {reps} repeticiones, descanso {rest}",
    }


MOBILITY_PRESCRIPTION = {
    "sets": 1,
    "reps": "10-15",
    "weight": "Peso corporal",
    "rest_time": "30 seg",
    "notes": "Movimientos controlados para preparar las articulaciones",
}

FINISHER_PRESCRIPTION = {
    "sets": 3,
    "reps": "15-20",
    "weight": "Peso corporal",
    "rest_time": "45 seg",
    "notes": "Mantener la técnica hasta la última repetición",
}


# ---------------------------------------------------------------------------
# Day selection
# ---------------------------------------------------------------------------

def select_exercises_for_day(
    catalog: Sequence[Exercise],
    objetivo: str,
    split_day: int,
    nivel: str,
    genero: str = "unisex",
    dias: int = 3,
    rng: Optional[random.Random] = None,
) -> List[dict]:
    """
    Pick the exercises for one day: a mobility warm-up, the main block
    driven by the muscle quotas of the objective, a core finisher and,
    if room is left, extra exercises for the same muscle groups.
    """
    rng = rng or random.Random()
    rules = get_objective_rules(objetivo)
    if not rules:
        raise ExerciseSelectionError(f"Objetivo no válido: {objetivo}")

    split_type = split_type_for_days(dias)
    quotas = get_muscle_quotas_for_day(objetivo, split_type, split_day)
    if not quotas:
        raise ExerciseSelectionError(f"No hay cuotas para el día {split_day} del objetivo {objetivo}")

    used_ids = set()

    # 1. Mobility
    mobility = next((ex for ex in catalog if is_mobility_exercise(ex)), None)
    if mobility is not None:
        used_ids.add(mobility.id)
        warmup = _exercise_entry(mobility, "movilidad", "movilidad", **MOBILITY_PRESCRIPTION)
    else:
        warmup = _placeholder_entry(DEFAULT_MOBILITY[0], "default_movilidad_0", "movilidad", "movilidad",
                                    **MOBILITY_PRESCRIPTION)

    # 2. Main block
    ranked_by_group: Dict[str, List[Exercise]] = {}
    main: List[dict] = []
    for muscle_group, count in quotas.items():
        if count <= 0:
            continue
        terms = get_muscle_terms(muscle_group)
        candidates = [
            ex for ex in catalog
            if ex.id not in used_ids and matches_terms(ex, terms) and passes_gender_filter(ex, genero)
        ]
        ranked = rank_exercises(candidates[: count * CANDIDATES_PER_SLOT], rules)
        ranked_by_group[muscle_group] = rank_exercises(candidates, rules)

        if ranked:
            for exercise in ranked[:count]:
                used_ids.add(exercise.id)
                main.append(_exercise_entry(exercise, "principal", muscle_group,
                                            **_main_prescription(rules, nivel, rng)))
        else:
            logger.debug("No catalog exercises for %s, using fallbacks", muscle_group)
            names = FALLBACK_EXERCISES.get(muscle_group, DEFAULT_FALLBACK)
            for index, name in enumerate(names[:count]):
                main.append(_placeholder_entry(name, f"fallback_{muscle_group}_{index}", "principal",
                                               muscle_group, **_main_prescription(rules, nivel, rng)))

    # Leave room for the warm-up and the finisher
    main = main[: MAX_EXERCISES_PER_DAY - 2]

    # 3. Finisher
    finisher_exercise = next(
        (ex for ex in catalog if ex.id not in used_ids and is_finisher_exercise(ex)), None
    )
    if finisher_exercise is not None:
        used_ids.add(finisher_exercise.id)
        finisher = _exercise_entry(finisher_exercise, "finisher", "core", **FINISHER_PRESCRIPTION)
    else:
        finisher = _placeholder_entry(DEFAULT_FINISHERS[0], "default_finisher_0", "finisher", "core",
                                      **FINISHER_PRESCRIPTION)

    selected = [warmup, *main, finisher]

    # 4. Fill up, cycling through the day's muscle groups
    groups = [g for g, count in quotas.items() if count > 0]
    while len(selected) < MAX_EXERCISES_PER_DAY and groups:
        added = False
        for muscle_group in groups:
            if len(selected) >= MAX_EXERCISES_PER_DAY:
                break
            extra = next((ex for ex in ranked_by_group.get(muscle_group, []) if ex.id not in used_ids), None)
            if extra is None:
                continue
            used_ids.add(extra.id)
            selected.insert(len(selected) - 1, _exercise_entry(
                extra, "principal", muscle_group, **_main_prescription(rules, nivel, rng)
            ))
            added = True
        if not added:
            break

    selected = selected[:MAX_EXERCISES_PER_DAY]
    for order, entry in enumerate(selected, start=1):
        entry["order"] = order
    return selected
