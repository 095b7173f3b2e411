import logging
import random
from typing import List, Optional, Sequence

from app.models.exercise import Exercise
from app.services.exercise_selection_service import (
    ExerciseSelectionError,
    select_exercises_for_day,
)
from app.services.objective_rules import OBJECTIVE_RULES, get_split_names

logger = logging.getLogger(__name__)

VALID_LEVELS = ("principiante", "intermedio", "avanzado")
VALID_DAYS = (2, 3)
VALID_GENDERS = ("masculino", "femenino", "unisex")

DAY_NAMES = {
    2: ["Upper (Tren Superior)", "Lower (Tren Inferior)"],
    3: ["Push (Empuje)", "Pull (Tirón)", "Legs (Piernas)"],
}

FALLBACK_DAY_EXERCISES = ["Sentadillas", "Flexiones", "Remo", "Plancha"]


class TemplateValidationError(ValueError):
    pass


def validate_template_request(objetivo: str, dias: int, nivel: str, genero: str) -> None:
    if objetivo not in OBJECTIVE_RULES:
        raise TemplateValidationError(
            f"Objetivo inválido. Valores permitidos: {', '.join(OBJECTIVE_RULES)}"
        )
    if nivel not in VALID_LEVELS:
        raise TemplateValidationError(f"Nivel inválido. Valores permitidos: {', '.join(VALID_LEVELS)}")
    if dias not in VALID_DAYS:
        raise TemplateValidationError("Días inválidos. Solo se permiten 2 o 3 días por semana")
    if genero not in VALID_GENDERS:
        raise TemplateValidationError(f"Género inválido. Valores permitidos: {', '.join(VALID_GENDERS)}")


def _fallback_day(day_number: int, error: str) -> dict:
    exercises = [
        {
            "id": f"fallback_day{day_number}_{index}",
            "name": name,
            "category": "principal",
            "muscles": [],
            "order": index + 1,
            "sets": 3,
            "reps": "10-12",
            "weight": "Peso corporal",
            "rest_time": "60 seg",
        }
        for index, name in enumerate(FALLBACK_DAY_EXERCISES)
    ]
    return {
        "day": day_number,
        "name": f"Día {day_number} (Fallback)",
        "exercises": exercises,
        "error": error,
    }


def template_stats(days: List[dict]) -> dict:
    by_category = {"movilidad": 0, "principal": 0, "finisher": 0}
    muscle_groups = []
    total = 0
    for day in days:
        for exercise in day["exercises"]:
            total += 1
            category = exercise.get("category")
            if category in by_category:
                by_category[category] += 1
            group = exercise.get("muscle_group")
            if group and group not in muscle_groups:
                muscle_groups.append(group)
    return {
        "total_exercises": total,
        "exercises_by_category": by_category,
        "muscle_groups": muscle_groups,
    }


def build_template(
    catalog: Sequence[Exercise],
    objetivo: str,
    dias: int,
    nivel: str,
    genero: str = "unisex",
    rng: Optional[random.Random] = None,
) -> dict:
    """Generate a full routine template, one entry per training day."""
    validate_template_request(objetivo, dias, nivel, genero)
    rng = rng or random.Random()

    days = []
    for day_number, day_name in enumerate(DAY_NAMES[dias], start=1):
        try:
            exercises = select_exercises_for_day(
                catalog, objetivo, day_number, nivel, genero=genero, dias=dias, rng=rng
            )
            days.append({"day": day_number, "name": day_name, "exercises": exercises})
        except ExerciseSelectionError as e:
            logger.warning("Template day %s for %s failed: %s", day_number, objetivo, e)
            days.append(_fallback_day(day_number, str(e)))

    split = get_split_names(objetivo, dias)
    return {
        "objective": objetivo,
        "objective_name": OBJECTIVE_RULES[objetivo]["name"],
        "level": nivel,
        "days_per_week": dias,
        "gender": genero,
        "split": split["name"],
        "split_days": split["days"],
        "days": days,
        "stats": template_stats(days),
    }
