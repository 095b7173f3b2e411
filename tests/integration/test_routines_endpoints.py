"""
Integration tests for /api/routines and /api/routine-templates.

Scenarios:
- POST /routines/templates: generated from the catalog, invalid objective is 400
- GET /routines/{id}: not owned and not assigned is 404
- GET /routine-templates/preset: missing parameters (400), no match (404)
- POST /routine-templates: clients are rejected with 403
"""

import pytest

from app.models.exercise import Exercise
from tests.conftest import make_result

pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# POST /routines/templates
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_template_from_catalog(trainer_client, mock_db):
    mock_db.execute.return_value = make_result(items=[
        Exercise(id=1, name="Estiramiento dinámico", muscles=["movilidad"], type="movilidad",
                 gender="unisex", objectives=[]),
        Exercise(id=2, name="Press banca", muscles=["pectorales"], gender="unisex", objectives=[]),
    ])

    response = await trainer_client.post("/api/routines/templates", json={
        "objetivo": "fuerza", "dias": 3, "nivel": "intermedio",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Plantilla generada exitosamente"
    assert body["data"]["split"] == "Push/Pull/Legs"
    assert len(body["data"]["days"]) == 3
    assert body["data"]["days"][0]["exercises"][0]["name"] == "Estiramiento dinámico"


@pytest.mark.asyncio
async def test_generate_template_invalid_objective(client_client):
    response = await client_client.post("/api/routines/templates", json={
        "objetivo": "yoga", "dias": 3, "nivel": "intermedio",
    })

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"].startswith("Objetivo inválido")


@pytest.mark.asyncio
async def test_generate_template_missing_fields(client_client):
    response = await client_client.post("/api/routines/templates", json={"objetivo": "fuerza"})

    assert response.status_code == 400
    assert response.json()["message"] == "Datos inválidos"


# ---------------------------------------------------------------------------
# GET /routines/{id}
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_routine_not_visible_is_404(client_client):
    response = await client_client.get("/api/routines/99")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Rutina no encontrada o no asignada"}


# ---------------------------------------------------------------------------
# /routine-templates
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_preset_requires_all_parameters(trainer_client):
    response = await trainer_client.get("/api/routine-templates/preset", params={"objetivo": "fuerza"})

    assert response.status_code == 400
    assert response.json()["message"] == "Se requieren los parámetros: objetivo, genero, nivel"


@pytest.mark.asyncio
async def test_preset_without_match_is_404(trainer_client):
    response = await trainer_client.get("/api/routine-templates/preset", params={
        "objetivo": "fuerza", "genero": "unisex", "nivel": "intermedio",
    })

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_client_cannot_create_template(client_client, mock_db):
    response = await client_client.post("/api/routine-templates/", json={
        "name": "Mi plantilla", "training_objective": "fuerza", "level": "intermedio", "days_per_week": 3,
    })

    assert response.status_code == 403
    mock_db.add.assert_not_called()
