"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.router import api_router
from src.config import settings
from src.db.turso import TursoClient
from src.repositories.channel_repo import ChannelRepository
from src.repositories.file_repo import FileRepository
from src.repositories.history_repo import SearchHistoryRepository
from src.repositories.message_repo import MessageRepository
from src.repositories.saved_search_repo import SavedSearchRepository
from src.repositories.user_repo import UserRepository
from src.search.saved_searches import SavedSearchService
from src.search.search_service import SearchService
from src.search.searchers import (
    ChannelSearcher,
    DirectMessageSearcher,
    FileSearcher,
    MessageSearcher,
    UserSearcher,
)
from src.search.suggestions import SuggestionService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def initialize_search(app: FastAPI, db: TursoClient) -> None:
    """Create search stores and services and register them in app state.

    Users and channels are initialized first because message and file
    lookups join against them.
    """
    user_repo = UserRepository(db)
    channel_repo = ChannelRepository(db)
    message_repo = MessageRepository(db)
    file_repo = FileRepository(db)
    history_repo = SearchHistoryRepository(db)
    saved_search_repo = SavedSearchRepository(db)

    for repo in (
        user_repo,
        channel_repo,
        message_repo,
        file_repo,
        history_repo,
        saved_search_repo,
    ):
        await repo.initialize()
    logger.info("Search stores initialized")

    app.state.channel_repo = channel_repo
    app.state.history_repo = history_repo

    app.state.search_service = SearchService(
        searchers=[
            MessageSearcher(message_repo, user_repo, channel_repo),
            DirectMessageSearcher(message_repo, user_repo, channel_repo),
            FileSearcher(file_repo, message_repo, user_repo, channel_repo),
            ChannelSearcher(channel_repo),
            UserSearcher(user_repo),
        ],
        history_repo=history_repo,
    )
    app.state.suggestion_service = SuggestionService(
        history_repo, channel_repo, user_repo
    )
    app.state.saved_search_service = SavedSearchService(saved_search_repo)
    logger.info("Search services initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Initialize database connection
    - Initialize search stores and services

    Shutdown:
    - Flush pending history writes
    - Close database connection
    """
    logger.info("Starting Workspace Search...")

    db = TursoClient()
    await db.connect()
    app.state.db = db
    logger.info(f"Database connected: {db.url}")

    await initialize_search(app, db)

    yield

    logger.info("Shutting down Workspace Search...")
    await app.state.search_service.wait_for_background_tasks()
    await db.close()
    logger.info("Database connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Federated search over workspace messages, files, channels and users",
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
