"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from arqflow.core.auth import ClerkUser, require_auth
from tests.support import ORG_ID, TODAY

_TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class AuthState:
    """Mutable caller identity for the ``require_auth`` override.

    The real ``require_org_member`` still runs on top of it, so a caller
    without an organization gets its 403.
    """

    def __init__(self):
        self.user = ClerkUser(user_id="user_ana", organization_id=ORG_ID, claims={})

    def act_as(self, user_id: str, organization_id: str | None) -> None:
        self.user = ClerkUser(user_id=user_id, organization_id=organization_id, claims={})


@pytest.fixture
def auth_state() -> AuthState:
    return AuthState()


@pytest.fixture
def api_client(auth_state):
    """FastAPI test client with a fresh in-memory database.

    Initializes the global database via init_db inside the TestClient's
    own event loop so route handlers can use get_session_factory().
    """
    from fastapi.middleware.cors import CORSMiddleware

    from arqflow.api.routes import api_router
    from arqflow.api.routes.projects import get_time_entry_service
    from arqflow.core.config import get_settings
    from arqflow.db import close_db, get_session_factory, init_db
    from arqflow.main import register_exception_handlers
    from arqflow.services.time_entry_service import TimeEntryService

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB in TestClient's event loop."""
        # Reset global so init_db creates a fresh engine in THIS loop
        import arqflow.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(_TEST_DB_URL)
        yield
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="ArqFlow - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[require_auth] = lambda: auth_state.user
    app.dependency_overrides[get_time_entry_service] = lambda: TimeEntryService(
        get_session_factory(), today=lambda: TODAY
    )

    with TestClient(app) as client:
        yield client
