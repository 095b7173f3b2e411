"""
Keyword-driven routine generation for the WhatsApp bot.

Trainers describe what they need in free text ("rutina de fuerza para
avanzado, 4 días por semana"); the text is reduced to a goal, a level and a
weekly frequency, and the routine is assembled from the exercise catalog.
"""
import logging
import random
import re
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.exercise import Exercise
from app.models.routine import Routine
from app.services.exercise_selection_service import select_exercises_for_day
from app.services.objective_rules import get_muscle_quotas_for_day, get_split_names, normalize, split_type_for_days

logger = logging.getLogger(__name__)

GOAL_KEYWORDS = [
    ("lose_weight", ("perder peso", "adelgazar")),
    ("gain_muscle", ("masa muscular", "volumen")),
    ("strength", ("fuerza",)),
    ("endurance", ("resistencia", "cardio")),
]
ROUTINE_REQUEST_KEYWORDS = ("rutina", "entrenamiento", "entrenar", "tonificar", "plan")

GOAL_LABELS = {
    "lose_weight": "perder peso",
    "gain_muscle": "ganar masa muscular",
    "strength": "ganar fuerza",
    "endurance": "mejorar resistencia",
    "tone": "tonificar",
}
LEVEL_LABELS = {
    "beginner": "principiante",
    "intermediate": "intermedio",
    "advanced": "avanzado",
}
# goal -> objective key used by routine templates
GOAL_TO_OBJECTIVE = {
    "lose_weight": "quema-grasa",
    "gain_muscle": "hipertrofia",
    "strength": "fuerza",
    "endurance": "resistencia-cardio",
    "tone": "hipertrofia",
}

FREQUENCY_PATTERN = re.compile(r"(\d+)\s*(d[ií]as?|veces?)\s*(por\s*semana|a\s*la\s*semana|semana)", re.IGNORECASE)


def _prescription(goal: str, level: str) -> dict:
    if goal == "lose_weight":
        return {"sets": 3 if level == "beginner" else 4,
                "reps": "12-15" if level == "beginner" else "15-20",
                "rest_seconds": 45}
    if goal == "gain_muscle":
        return {"sets": {"beginner": 3, "intermediate": 4}.get(level, 5),
                "reps": "8-12" if level == "beginner" else "6-10",
                "rest_seconds": 90 if level == "beginner" else 120}
    if goal == "strength":
        return {"sets": 3 if level == "beginner" else 5,
                "reps": "5-8" if level == "beginner" else "3-5",
                "rest_seconds": 120 if level == "beginner" else 180}
    if goal == "endurance":
        return {"sets": 2 if level == "beginner" else 3, "reps": "15-25", "rest_seconds": 45}
    return {"sets": 3 if level == "beginner" else 4, "reps": "10-15", "rest_seconds": 60}


class AIRoutineService:
    def process_training_objective(self, message: str) -> Optional[dict]:
        """Parse a free-text request; None when it does not look like one."""
        text = (message or "").lower()
        plain = normalize(text)

        goal = None
        for candidate, keywords in GOAL_KEYWORDS:
            if any(normalize(k) in plain for k in keywords):
                goal = candidate
                break
        if goal is None:
            if not any(k in plain for k in ROUTINE_REQUEST_KEYWORDS):
                return None
            goal = "tone"

        level = "intermediate"
        if "principiante" in plain or "novato" in plain:
            level = "beginner"
        elif "avanzado" in plain or "experto" in plain:
            level = "advanced"

        frequency = 3
        match = FREQUENCY_PATTERN.search(text)
        if match:
            frequency = max(1, min(int(match.group(1)), 7))

        return {
            "goal": goal,
            "level": level,
            "frequency": frequency,
            "duration": 4,
        }

    def generate_routine(self, catalog: Sequence[Exercise], objective: dict,
                         rng: Optional[random.Random] = None) -> Optional[dict]:
        """One training day per requested weekly session, cycling through the objective's split."""
        if not catalog:
            logger.warning("Exercise catalog is empty, cannot generate routine")
            return None

        goal, level = objective["goal"], objective["level"]
        frequency = objective["frequency"]
        objetivo = GOAL_TO_OBJECTIVE[goal]
        nivel = LEVEL_LABELS[level]
        split_type = split_type_for_days(frequency)
        split_days = get_split_names(objetivo, frequency)["days"]
        prescription = _prescription(goal, level)
        rng = rng or random.Random()

        days = []
        exercises = []
        for day_number in range(1, frequency + 1):
            split_day = (day_number - 1) % len(split_days) + 1
            if not get_muscle_quotas_for_day(objetivo, split_type, split_day):
                logger.warning("No muscle quotas for %s day %s", objetivo, split_day)
                continue
            selected = select_exercises_for_day(catalog, objetivo, split_day, nivel, dias=frequency, rng=rng)
            for entry in selected:
                entry["day"] = day_number
                entry["muscle_groups"] = entry["muscles"] or ["general"]
                if entry["category"] == "principal":
                    entry["sets"] = prescription["sets"]
                    entry["reps"] = prescription["reps"]
                    entry["rest_seconds"] = prescription["rest_seconds"]
                    entry["rest_time"] = f"{prescription['rest_seconds']} seg"
                    entry["notes"] = f"{prescription['reps']} repeticiones, descanso {entry['rest_time']}"
            days.append({"day": day_number, "name": split_days[split_day - 1], "exercises": selected})
            exercises.extend(selected)

        goal_label = GOAL_LABELS[goal]
        level_label = LEVEL_LABELS[level]
        return {
            "name": f"Rutina {goal_label} - {level_label}",
            "description": f"Rutina personalizada para {goal_label}, nivel {level_label}, "
                           f"{frequency} días por semana",
            "duration": f"{objective['duration']} semanas",
            "objective": objetivo,
            "level": level_label,
            "days_per_week": frequency,
            "days": days,
            "exercises": exercises,
        }

    async def save_routine(self, db: AsyncSession, routine: dict, trainer_id: int,
                           client_id: Optional[int] = None) -> Routine:
        saved = Routine(
            name=routine["name"],
            description=routine["description"],
            trainer_id=trainer_id,
            client_id=client_id,
            exercises=routine["exercises"],
            training_objective=routine.get("objective"),
            level=routine.get("level"),
            days_per_week=routine.get("days_per_week"),
        )
        db.add(saved)
        await db.commit()
        await db.refresh(saved)
        logger.info("Bot routine %s saved for trainer %s (%s exercises)",
                    saved.id, trainer_id, len(routine["exercises"]))
        return saved

    def format_routine_for_whatsapp(self, routine: dict) -> str:
        lines = [
            f"🏋️ *{routine['name']}*",
            "",
            f"📝 *Descripción:* {routine['description']}",
            f"⏱️ *Duración:* {routine['duration']}",
            "",
        ]
        for day in routine["days"]:
            lines.append(f"📅 *Día {day['day']} - {day['name']}*")
            for exercise in day["exercises"]:
                lines.append(f"{exercise['order']}. *{exercise['name']}*: {exercise['sets']} x {exercise['reps']}, "
                             f"descanso {exercise['rest_time']}")
            lines.append("")
        lines.append("✅ *¡Rutina generada automáticamente por TrainFit Bot!*")
        return "\n".join(lines)


ai_routine_service = AIRoutineService()
