"""
Static rule tables for template-based routine generation.

Each training objective defines rep/series ranges, the split used for two and
three training days, how many exercises every muscle group gets on each day,
and the order in which exercise categories are preferred.
"""
import unicodedata
from typing import Dict, List, Optional

TWO_DAYS = "two_days"
THREE_DAYS = "three_days"

OBJECTIVE_RULES: Dict[str, dict] = {
    "fuerza": {
        "name": "Fuerza",
        "rep_range": {"min": 3, "max": 6},
        "series_range": {"min": 3, "max": 5},
        "splits": {
            TWO_DAYS: {"name": "Upper/Lower", "days": ["Tren Superior", "Tren Inferior"]},
            THREE_DAYS: {"name": "Push/Pull/Legs", "days": ["Empuje", "Tirón", "Piernas"]},
        },
        "muscle_quotas": {
            TWO_DAYS: {
                1: {"pectorales": 2, "dorsales": 2, "hombros": 2, "biceps": 1, "triceps": 1},
                2: {"piernas": 3, "gluteos": 2, "isquios": 2, "core": 1},
            },
            THREE_DAYS: {
                1: {"pectorales": 3, "hombros": 2, "triceps": 2, "core": 1},
                2: {"dorsales": 3, "biceps": 2, "trapecio": 1, "core": 1},
                3: {"piernas": 3, "gluteos": 2, "isquios": 2, "gemelos": 1},
            },
        },
        "priority": ["multiarticular", "compuesto", "aislamiento"],
        "estimated_weight": {"beginner": 0.6, "intermediate": 0.75, "advanced": 0.85},
    },
    "hipertrofia": {
        "name": "Hipertrofia",
        "rep_range": {"min": 8, "max": 15},
        "series_range": {"min": 3, "max": 4},
        "splits": {
            TWO_DAYS: {"name": "Upper/Lower", "days": ["Tren Superior", "Tren Inferior"]},
            THREE_DAYS: {"name": "Push/Pull/Legs", "days": ["Empuje", "Tirón", "Piernas"]},
        },
        "muscle_quotas": {
            TWO_DAYS: {
                1: {"pectorales": 2, "dorsales": 2, "hombros": 2, "biceps": 2, "triceps": 2},
                2: {"piernas": 3, "gluteos": 2, "isquios": 2, "gemelos": 1},
            },
            THREE_DAYS: {
                1: {"pectorales": 3, "hombros": 2, "triceps": 3, "core": 1},
                2: {"dorsales": 3, "biceps": 3, "trapecio": 1, "core": 1},
                3: {"piernas": 3, "gluteos": 2, "isquios": 2, "gemelos": 1},
            },
        },
        "priority": ["compuesto", "multiarticular", "aislamiento"],
        "estimated_weight": {"beginner": 0.5, "intermediate": 0.65, "advanced": 0.75},
    },
    "resistencia-cardio": {
        "name": "Resistencia Cardiovascular",
        "rep_range": {"min": 15, "max": 25},
        "series_range": {"min": 2, "max": 4},
        "splits": {
            TWO_DAYS: {"name": "Circuito/Cardio", "days": ["Circuito Funcional", "Cardio + Core"]},
            THREE_DAYS: {"name": "Funcional/Cardio/Resistencia", "days": ["Funcional", "Cardio", "Resistencia"]},
        },
        "muscle_quotas": {
            TWO_DAYS: {
                1: {"piernas": 2, "pectorales": 1, "dorsales": 1, "core": 3, "cardio": 3},
                2: {"cardio": 5, "core": 3, "movilidad": 2},
            },
            THREE_DAYS: {
                1: {"piernas": 2, "pectorales": 1, "dorsales": 1, "core": 3, "funcional": 3},
                2: {"cardio": 6, "core": 2, "movilidad": 2},
                3: {"piernas": 2, "gluteos": 1, "core": 3, "resistencia": 4},
            },
        },
        "priority": ["funcional", "cardio", "core"],
        "estimated_weight": {"beginner": 0.4, "intermediate": 0.5, "advanced": 0.6},
    },
    "potencia": {
        "name": "Potencia",
        "rep_range": {"min": 3, "max": 8},
        "series_range": {"min": 3, "max": 5},
        "splits": {
            TWO_DAYS: {"name": "Explosivo/Técnico", "days": ["Potencia Explosiva", "Técnica + Core"]},
            THREE_DAYS: {"name": "Potencia/Velocidad/Técnica", "days": ["Potencia", "Velocidad", "Técnica"]},
        },
        "muscle_quotas": {
            TWO_DAYS: {
                1: {"piernas": 3, "potencia": 3, "pliometria": 2, "core": 2},
                2: {"tecnica": 3, "core": 3, "movilidad": 2, "estabilidad": 2},
            },
            THREE_DAYS: {
                1: {"piernas": 3, "potencia": 4, "pliometria": 2, "core": 1},
                2: {"velocidad": 4, "agilidad": 2, "coordinacion": 2, "core": 2},
                3: {"tecnica": 3, "estabilidad": 3, "movilidad": 2, "core": 2},
            },
        },
        "priority": ["pliometrico", "explosivo", "tecnico"],
        "estimated_weight": {"beginner": 0.3, "intermediate": 0.45, "advanced": 0.6},
    },
    "quema-grasa": {
        "name": "Quema de Grasa",
        "rep_range": {"min": 12, "max": 20},
        "series_range": {"min": 3, "max": 4},
        "splits": {
            TWO_DAYS: {"name": "HIIT/Circuito", "days": ["HIIT + Fuerza", "Circuito Metabólico"]},
            THREE_DAYS: {"name": "HIIT/Metabólico/Funcional", "days": ["HIIT", "Metabólico", "Funcional"]},
        },
        "muscle_quotas": {
            TWO_DAYS: {
                1: {"piernas": 2, "pectorales": 1, "dorsales": 1, "hiit": 3, "core": 3},
                2: {"metabolico": 4, "cardio": 3, "core": 2, "funcional": 1},
            },
            THREE_DAYS: {
                1: {"hiit": 5, "piernas": 2, "core": 3},
                2: {"metabolico": 4, "cardio": 3, "funcional": 3},
                3: {"funcional": 4, "core": 3, "movilidad": 2, "estiramiento": 1},
            },
        },
        "priority": ["metabolico", "hiit", "funcional"],
        "estimated_weight": {"beginner": 0.4, "intermediate": 0.55, "advanced": 0.65},
    },
}

# Keywords searched in exercise names, in category order
EXERCISE_PRIORITIES: Dict[str, List[str]] = {
    "multiarticular": ["sentadilla", "peso muerto", "press banca", "dominadas", "press militar"],
    "compuesto": ["remo", "fondos", "hip thrust", "zancadas", "pull ups"],
    "aislamiento": ["curl", "extensiones", "elevaciones", "abdominales", "gemelos"],
    "funcional": ["burpees", "mountain climbers", "jumping jacks", "bear crawl"],
    "cardio": ["correr", "bicicleta", "elíptica", "remo cardio", "step"],
    "core": ["plancha", "crunch", "russian twist", "dead bug", "bird dog"],
    "pliometrico": ["saltos", "box jump", "jump squat", "clap push up"],
    "explosivo": ["clean", "snatch", "push press", "kettlebell swing"],
    "tecnico": ["movilidad", "activación", "corrección postural"],
    "metabolico": ["circuito", "tabata", "emom", "amrap"],
    "hiit": ["sprint", "intervals", "battle ropes", "bike intervals"],
}

MUSCLE_GROUP_MAPPING: Dict[str, List[str]] = {
    "pectorales": ["pectorales", "pecho"],
    "dorsales": ["dorsales", "espalda", "lat"],
    "hombros": ["hombros", "deltoides"],
    "biceps": ["biceps"],
    "triceps": ["triceps"],
    "piernas": ["piernas", "cuadriceps", "femoral"],
    "gluteos": ["gluteos"],
    "isquios": ["isquios", "isquiotibiales"],
    "gemelos": ["gemelos", "pantorrillas"],
    "core": ["core", "abdominales", "abs"],
    "trapecio": ["trapecio", "traps"],
    "cardio": ["cardio", "cardiovascular"],
    "funcional": ["funcional", "functional"],
    "movilidad": ["movilidad", "flexibility"],
    "potencia": ["potencia", "power"],
    "pliometria": ["pliometria", "plyometric"],
    "velocidad": ["velocidad", "speed"],
    "agilidad": ["agilidad", "agility"],
    "coordinacion": ["coordinacion", "coordination"],
    "tecnica": ["tecnica", "technique"],
    "estabilidad": ["estabilidad", "stability"],
    "metabolico": ["metabolico", "metabolic"],
    "hiit": ["hiit", "interval"],
    "resistencia": ["resistencia", "endurance"],
    "estiramiento": ["estiramiento", "stretching"],
}

LEVEL_KEYS = {
    "principiante": "beginner",
    "intermedio": "intermediate",
    "avanzado": "advanced",
}


def normalize(text: Optional[str]) -> str:
    """Lowercase and strip accents so 'Glúteos' matches 'gluteos'."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def get_objective_rules(objective: str) -> Optional[dict]:
    return OBJECTIVE_RULES.get(objective)


def split_type_for_days(days: int) -> str:
    return TWO_DAYS if days == 2 else THREE_DAYS


def get_muscle_quotas_for_day(objective: str, split_type: str, day_number: int) -> Optional[Dict[str, int]]:
    rules = get_objective_rules(objective)
    if not rules:
        return None
    return rules["muscle_quotas"].get(split_type, {}).get(day_number)


def get_split_names(objective: str, days: int) -> Optional[dict]:
    rules = get_objective_rules(objective)
    if not rules:
        return None
    return rules["splits"][split_type_for_days(days)]


def get_muscle_terms(muscle_group: str) -> List[str]:
    return MUSCLE_GROUP_MAPPING.get(muscle_group, [muscle_group])


def is_multiarticular(exercise_name: str) -> bool:
    name = normalize(exercise_name)
    return any(normalize(keyword) in name for keyword in EXERCISE_PRIORITIES["multiarticular"])


def get_exercise_priority(exercise_name: str) -> str:
    """First priority category whose keywords appear in the name."""
    name = normalize(exercise_name)
    for category, keywords in EXERCISE_PRIORITIES.items():
        if any(normalize(keyword) in name for keyword in keywords):
            return category
    return "aislamiento"
