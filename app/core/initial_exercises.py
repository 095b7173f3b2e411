"""
Starter exercise catalog loaded into an empty database.

`muscles` and `type` are matched against the muscle-group synonyms of the
objective rules, `objectives` lists the training objectives the exercise
is typically programmed for.
"""


def _exercise(name, description, type_, equipment, difficulty, muscles, objectives):
    return {
        "name": name,
        "description": description,
        "type": type_,
        "equipment": equipment,
        "difficulty": difficulty,
        "muscles": muscles,
        "objectives": objectives,
        "gender": "unisex",
    }


INITIAL_EXERCISES = [
    # Multiarticulares / fuerza
    _exercise("Sentadilla con barra", "Ejercicio compuesto fundamental para el tren inferior",
              "Compuesto", "Barra olímpica", "Intermedio",
              ["Piernas", "Cuádriceps", "Glúteos", "Isquiotibiales"], ["fuerza", "hipertrofia"]),
    _exercise("Press banca", "Ejercicio básico para pecho, hombros y tríceps",
              "Compuesto", "Barra olímpica", "Intermedio",
              ["Pectorales", "Deltoides", "Tríceps"], ["fuerza", "hipertrofia"]),
    _exercise("Peso muerto", "Ejercicio fundamental para el desarrollo de fuerza general",
              "Compuesto", "Barra olímpica", "Avanzado",
              ["Espalda", "Glúteos", "Isquiotibiales", "Trapecio"], ["fuerza", "hipertrofia"]),
    _exercise("Press militar", "Empuje vertical para hombros y core",
              "Compuesto", "Barra olímpica", "Intermedio",
              ["Hombros", "Deltoides", "Tríceps", "Core"], ["fuerza", "hipertrofia"]),
    _exercise("Dominadas", "Tracción vertical con el peso corporal",
              "Compuesto", "Barra de dominadas", "Avanzado",
              ["Dorsales", "Espalda", "Bíceps"], ["fuerza", "hipertrofia"]),
    _exercise("Remo con barra", "Tracción horizontal para la espalda media",
              "Compuesto", "Barra olímpica", "Intermedio",
              ["Dorsales", "Espalda", "Bíceps", "Trapecio"], ["fuerza", "hipertrofia"]),
    _exercise("Hip thrust", "Extensión de cadera con barra para glúteos",
              "Compuesto", "Barra olímpica", "Intermedio",
              ["Glúteos", "Isquiotibiales"], ["fuerza", "hipertrofia"]),
    _exercise("Zancadas con mancuernas", "Trabajo unilateral de piernas",
              "Compuesto", "Mancuernas", "Principiante",
              ["Piernas", "Cuádriceps", "Glúteos"], ["hipertrofia", "quema-grasa"]),
    _exercise("Fondos en paralelas", "Empuje con peso corporal para pecho y tríceps",
              "Compuesto", "Paralelas", "Intermedio",
              ["Pectorales", "Tríceps"], ["fuerza", "hipertrofia"]),
    _exercise("Peso muerto rumano", "Bisagra de cadera con énfasis en isquiotibiales",
              "Compuesto", "Barra olímpica", "Intermedio",
              ["Isquiotibiales", "Glúteos"], ["fuerza", "hipertrofia"]),

    # Aislamiento / hipertrofia
    _exercise("Press inclinado con mancuernas", "Desarrollo del pecho superior",
              "Aislado", "Mancuernas", "Intermedio",
              ["Pectorales", "Deltoides"], ["hipertrofia"]),
    _exercise("Curl de bíceps con mancuernas", "Aislamiento de bíceps",
              "Aislado", "Mancuernas", "Principiante",
              ["Bíceps"], ["hipertrofia"]),
    _exercise("Extensiones de tríceps en polea", "Aislamiento de tríceps",
              "Aislado", "Polea", "Principiante",
              ["Tríceps"], ["hipertrofia"]),
    _exercise("Elevaciones laterales", "Aislamiento del deltoides medio",
              "Aislado", "Mancuernas", "Principiante",
              ["Hombros", "Deltoides"], ["hipertrofia"]),
    _exercise("Jalón al pecho", "Tracción vertical en polea",
              "Aislado", "Polea", "Principiante",
              ["Dorsales", "Bíceps"], ["hipertrofia"]),
    _exercise("Encogimientos con mancuernas", "Aislamiento del trapecio superior",
              "Aislado", "Mancuernas", "Principiante",
              ["Trapecio"], ["hipertrofia", "fuerza"]),
    _exercise("Elevación de gemelos de pie", "Aislamiento de pantorrillas",
              "Aislado", "Máquina", "Principiante",
              ["Gemelos", "Pantorrillas"], ["hipertrofia", "fuerza"]),
    _exercise("Curl femoral tumbado", "Aislamiento de isquiotibiales",
              "Aislado", "Máquina", "Principiante",
              ["Isquiotibiales"], ["hipertrofia"]),

    # Core
    _exercise("Plancha", "Isométrico de estabilidad del core",
              "Isométrico", "Peso corporal", "Principiante",
              ["Core", "Abdominales"], ["fuerza", "quema-grasa", "resistencia-cardio"]),
    _exercise("Crunch abdominal", "Flexión de tronco para el recto abdominal",
              "Aislado", "Peso corporal", "Principiante",
              ["Core", "Abdominales"], ["hipertrofia", "quema-grasa"]),
    _exercise("Russian twist", "Rotación de tronco para oblicuos",
              "Aislado", "Disco", "Intermedio",
              ["Core", "Abdominales"], ["quema-grasa", "resistencia-cardio"]),
    _exercise("Dead bug", "Control lumbopélvico",
              "Estabilidad", "Peso corporal", "Principiante",
              ["Core", "Estabilidad"], ["potencia", "resistencia-cardio"]),

    # Cardio / funcional / metabólico
    _exercise("Burpees", "Ejercicio funcional de cuerpo completo",
              "Funcional", "Peso corporal", "Intermedio",
              ["Cuerpo completo", "Funcional", "Cardio"], ["resistencia-cardio", "quema-grasa"]),
    _exercise("Mountain climbers", "Cardio en posición de plancha",
              "Cardio", "Peso corporal", "Principiante",
              ["Core", "Hombros", "Cardio"], ["resistencia-cardio", "quema-grasa"]),
    _exercise("Jumping jacks", "Calentamiento cardiovascular",
              "Cardio", "Peso corporal", "Principiante",
              ["Cardio", "Cuerpo completo"], ["resistencia-cardio", "quema-grasa"]),
    _exercise("Bicicleta estática", "Trabajo aeróbico de bajo impacto",
              "Cardio", "Bicicleta", "Principiante",
              ["Cardio", "Piernas", "Resistencia"], ["resistencia-cardio", "quema-grasa"]),
    _exercise("Circuito tabata", "Circuito metabólico 20/10",
              "Metabólico", "Peso corporal", "Avanzado",
              ["Metabólico", "Cuerpo completo"], ["quema-grasa"]),
    _exercise("Sprint intervals", "Series cortas a máxima intensidad",
              "HIIT", "Cinta", "Avanzado",
              ["HIIT", "Cardio", "Piernas"], ["quema-grasa", "resistencia-cardio"]),
    _exercise("Battle ropes", "Ondas con cuerdas para acondicionamiento",
              "HIIT", "Cuerdas", "Intermedio",
              ["HIIT", "Hombros", "Core"], ["quema-grasa"]),
    _exercise("Bear crawl", "Desplazamiento cuadrupedal",
              "Funcional", "Peso corporal", "Intermedio",
              ["Funcional", "Core", "Hombros"], ["resistencia-cardio", "quema-grasa"]),

    # Potencia
    _exercise("Box jump", "Salto al cajón",
              "Pliométrico", "Cajón", "Intermedio",
              ["Piernas", "Pliometría", "Potencia"], ["potencia"]),
    _exercise("Jump squat", "Sentadilla con salto",
              "Pliométrico", "Peso corporal", "Intermedio",
              ["Piernas", "Pliometría", "Potencia"], ["potencia", "quema-grasa"]),
    _exercise("Kettlebell swing", "Extensión explosiva de cadera",
              "Explosivo", "Kettlebell", "Intermedio",
              ["Potencia", "Glúteos", "Isquiotibiales"], ["potencia", "quema-grasa"]),
    _exercise("Power clean", "Levantamiento olímpico desde el suelo",
              "Explosivo", "Barra olímpica", "Avanzado",
              ["Potencia", "Piernas", "Trapecio"], ["potencia"]),
    _exercise("Escalera de agilidad", "Patrones rápidos de pies",
              "Técnico", "Escalera", "Principiante",
              ["Agilidad", "Velocidad", "Coordinación"], ["potencia"]),

    # Movilidad
    _exercise("Estiramiento de isquiotibiales", "Estiramiento estático de cadena posterior",
              "Estiramiento", "Peso corporal", "Principiante",
              ["Isquiotibiales", "Movilidad", "Estiramiento"], ["movilidad"]),
    _exercise("Gato-camello", "Movilidad de columna",
              "Movilidad", "Peso corporal", "Principiante",
              ["Columna", "Movilidad"], ["movilidad"]),
    _exercise("Rotaciones de hombros", "Movilidad articular de hombros",
              "Movilidad", "Peso corporal", "Principiante",
              ["Hombros", "Movilidad"], ["movilidad"]),
]
