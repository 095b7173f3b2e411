"""
Shared fixtures for the TrainFit backend tests.

Strategy:
- The test FastAPI app is built from api_router only: no lifespan, so no
  database, scheduler or MinIO connections.
- UserRepository and TrainerClientRepository are replaced with AsyncMocks
  (mock_repo, mock_links).
- Endpoints that talk to the session directly get mock_db through get_db;
  get_current_user is overridden with the user of the chosen role.
- Real JWTs are issued with auth_service.create_access_token() where the
  token middleware itself is under test.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from datetime import datetime
from typing import AsyncGenerator

from app.api.router import api_router
from app.core.db import get_db
from app.core.dependencies import get_current_user, get_user_repository, get_trainer_client_repository
from app.core.exceptions import register_exception_handlers
from app.models.user import User, RoleEnum
from app.repositories.trainer_client_repository import TrainerClientRepository
from app.repositories.user_repository import UserRepository
from app.services.auth_service import auth_service

# Importing app.main runs configure_logging() (dictConfig), which replaces the
# root logger's handlers. Import it once at collection time so that happens
# before pytest's caplog handler is attached inside a test.
import app.main  # noqa: F401


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def create_test_app() -> FastAPI:
    """Test app without lifespan hooks."""
    test_app = FastAPI(title="TrainFit Test App")
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix="/api")
    return test_app


def make_auth_headers(user: User) -> dict:
    """Authorization header with a valid JWT for the given user."""
    access_token = auth_service.create_access_token(
        data={"sub": str(user.id), "role": user.role.value}
    )
    return {"Authorization": f"Bearer {access_token}"}


def make_user(id: int, role: RoleEnum, email: str = None, name: str = None, password: str = "h") -> User:
    return User(
        id=id,
        name=name or f"{role.value.title()} {id}",
        email=email or f"{role.value.lower()}{id}@example.com",
        password=password,
        role=role,
        is_active=True,
        created_at=datetime(2025, 1, 1),
    )


def make_result(scalar=None, items=None, count=0) -> MagicMock:
    """Stand-in for the object session.execute() resolves to."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = count
    result.scalars.return_value.all.return_value = items or []
    result.scalars.return_value.first.return_value = (items or [None])[0]
    result.rowcount = 0
    return result


async def _client_for(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def _override(app: FastAPI, user, mock_repo, mock_links, mock_db) -> FastAPI:
    app.dependency_overrides[get_user_repository] = lambda: mock_repo
    app.dependency_overrides[get_trainer_client_repository] = lambda: mock_links
    app.dependency_overrides[get_db] = lambda: mock_db
    if user is not None:
        app.dependency_overrides[get_current_user] = lambda: user
    return app


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@pytest.fixture
def trainer_fixture() -> User:
    return make_user(1, RoleEnum.trainer, email="trainer@example.com", name="Laura Trainer",
                     password=auth_service.hash_password("trainer123"))


@pytest.fixture
def client_fixture() -> User:
    return make_user(2, RoleEnum.client, email="client@example.com", name="Carlos Client",
                     password=auth_service.hash_password("client123"))


@pytest.fixture
def admin_fixture() -> User:
    return make_user(3, RoleEnum.admin, email="admin@example.com", name="Admin")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_repo() -> AsyncMock:
    """UserRepository replacement for auth and lookups."""
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_links() -> AsyncMock:
    """TrainerClientRepository replacement; no links by default."""
    links = AsyncMock(spec=TrainerClientRepository)
    links.get_link.return_value = None
    links.get_linked_client.return_value = None
    links.get_trainer_for.return_value = None
    links.list_clients.return_value = []
    return links


@pytest.fixture
def mock_db() -> AsyncMock:
    """
    Session replacement for handlers that use get_db directly.
    execute() resolves to an empty result; add() stays synchronous.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.execute.return_value = make_result()
    session.get.return_value = None
    return session


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(mock_repo, mock_links, mock_db) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous client; the token middleware runs for real against mock_repo."""
    app = _override(create_test_app(), None, mock_repo, mock_links, mock_db)
    async for ac in _client_for(app):
        yield ac


@pytest.fixture
async def trainer_client(trainer_fixture, mock_repo, mock_links, mock_db) -> AsyncGenerator[AsyncClient, None]:
    app = _override(create_test_app(), trainer_fixture, mock_repo, mock_links, mock_db)
    async for ac in _client_for(app):
        yield ac


@pytest.fixture
async def client_client(client_fixture, mock_repo, mock_links, mock_db) -> AsyncGenerator[AsyncClient, None]:
    app = _override(create_test_app(), client_fixture, mock_repo, mock_links, mock_db)
    async for ac in _client_for(app):
        yield ac


@pytest.fixture
async def admin_client(admin_fixture, mock_repo, mock_links, mock_db) -> AsyncGenerator[AsyncClient, None]:
    app = _override(create_test_app(), admin_fixture, mock_repo, mock_links, mock_db)
    async for ac in _client_for(app):
        yield ac
