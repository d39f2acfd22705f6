"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from src.db.turso import TursoClient
from src.main import app, initialize_search

APP_STATE_KEYS = (
    "db",
    "channel_repo",
    "history_repo",
    "search_service",
    "suggestion_service",
    "saved_search_service",
)


@pytest.fixture
async def db_client(tmp_path: Path) -> AsyncIterator[TursoClient]:
    """Create a temp file database client for testing."""
    db_path = tmp_path / "test_search.db"
    client = TursoClient(url=f"file:{db_path}")
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
async def client(db_client: TursoClient) -> AsyncIterator[AsyncClient]:
    """Create async test client for FastAPI app with database."""
    app.state.db = db_client
    await initialize_search(app, db_client)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await app.state.search_service.wait_for_background_tasks()
    # Clean up app state
    for key in APP_STATE_KEYS:
        if hasattr(app.state, key):
            delattr(app.state, key)
