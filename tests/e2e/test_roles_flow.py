"""
E2E tests of role boundaries through real JWTs.

Scenarios:
1. a client token cannot reach trainer endpoints; a trainer token can
2. a trainer token messages a client, who then sees the unread message
3. admins pass trainer-or-admin guards but not trainer-only ones

Strategy: the anonymous client fixture (real get_current_user); the user
returned by UserRepository.get_by_id decides who the token belongs to.
"""

import pytest

from app.models.user import RoleEnum
from tests.conftest import make_auth_headers, make_result, make_user

pytestmark = pytest.mark.e2e


@pytest.mark.asyncio
async def test_client_token_is_rejected_by_trainer_endpoints(client, mock_repo, client_fixture):
    mock_repo.get_by_id.return_value = client_fixture
    headers = make_auth_headers(client_fixture)

    for path in ("/api/trainer/clients", "/api/whatsapp/status", "/api/trainer/routines/"):
        response = await client.get(path, headers=headers)
        assert response.status_code == 403, path


@pytest.mark.asyncio
async def test_trainer_token_lists_clients(client, mock_repo, mock_links, trainer_fixture):
    mock_repo.get_by_id.return_value = trainer_fixture
    mock_links.list_clients.return_value = [make_user(20, RoleEnum.client, name="Ana")]

    response = await client.get("/api/trainer/clients", headers=make_auth_headers(trainer_fixture))

    assert response.status_code == 200
    assert response.json()["data"][0]["name"] == "Ana"
    mock_links.list_clients.assert_awaited_once_with(trainer_fixture.id)


@pytest.mark.asyncio
async def test_trainer_messages_client_who_sees_it_unread(client, mock_repo, mock_db, trainer_fixture,
                                                           client_fixture):
    # Token owner lookups first, then the receiver lookup
    mock_repo.get_by_id.side_effect = [trainer_fixture, client_fixture]

    async def flush():
        mock_db.add.call_args_list[0].args[0].id = 1
    mock_db.flush.side_effect = flush

    sent = await client.post("/api/messages/send", headers=make_auth_headers(trainer_fixture),
                             json={"receiver_id": client_fixture.id, "content": "¿Cómo va la rutina?"})
    assert sent.status_code == 201
    notification = mock_db.add.call_args_list[1].args[0]
    assert notification.user_id == client_fixture.id

    mock_repo.get_by_id.side_effect = None
    mock_repo.get_by_id.return_value = client_fixture
    mock_db.execute.return_value = make_result(count=1)
    unread = await client.get("/api/messages/unread-count", headers=make_auth_headers(client_fixture))
    assert unread.json()["data"] == {"count": 1}


@pytest.mark.asyncio
async def test_admin_guards(client, mock_repo, admin_fixture):
    mock_repo.get_by_id.return_value = admin_fixture
    headers = make_auth_headers(admin_fixture)

    trainer_only = await client.get("/api/trainer/clients", headers=headers)
    assert trainer_only.status_code == 403

    # trainer-or-admin: validation runs after the role check passes
    create = await client.post("/api/routine-templates/", headers=headers, json={"name": ""})
    assert create.status_code == 400
    assert create.json()["message"] == "Datos inválidos"
