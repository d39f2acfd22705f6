"""Search API endpoints for federated workspace search.

Provides endpoints for search, suggestions, search history and saved
searches. The caller is identified by the X-User-Id header, which the
authentication layer in front of this service sets.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from src.config import settings
from src.repositories.channel_repo import ChannelRepository
from src.repositories.history_repo import SearchHistoryRepository
from src.search.exceptions import (
    SavedSearchNotFoundError,
    SearchCancelledError,
    SearchPermissionError,
    SearchValidationError,
)
from src.search.saved_searches import SavedSearchService
from src.search.schemas import (
    DateRange,
    MessageType,
    SavedSearch,
    SavedSearchCreate,
    SavedSearchUpdate,
    SearchFilters,
    SearchHistoryEntry,
    SearchOptions,
    SearchResponse,
    SearchScope,
    SortBy,
    SortOrder,
)
from src.search.search_service import SearchService
from src.search.suggestions import SuggestionService

search_router = APIRouter(prefix="/search", tags=["search"])


class SuggestionsResponse(BaseModel):
    """Response for the suggestions endpoint."""

    suggestions: list[str] = Field(description="Ordered autocomplete suggestions")


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = Field(description="Whether the operation succeeded")


class ClearHistoryResponse(SuccessResponse):
    """Response for clearing search history."""

    deleted: int = Field(description="Number of history entries removed")


# Dependency functions
async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> str:
    """Identity of the caller, as set by the authentication layer."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id


def get_search_service(request: Request) -> SearchService:
    """Get SearchService from app state."""
    if not hasattr(request.app.state, "search_service"):
        raise HTTPException(status_code=500, detail="SearchService not initialized")
    return request.app.state.search_service


def get_suggestion_service(request: Request) -> SuggestionService:
    """Get SuggestionService from app state."""
    if not hasattr(request.app.state, "suggestion_service"):
        raise HTTPException(
            status_code=500, detail="SuggestionService not initialized"
        )
    return request.app.state.suggestion_service


def get_saved_search_service(request: Request) -> SavedSearchService:
    """Get SavedSearchService from app state."""
    if not hasattr(request.app.state, "saved_search_service"):
        raise HTTPException(
            status_code=500, detail="SavedSearchService not initialized"
        )
    return request.app.state.saved_search_service


def get_history_repo(request: Request) -> SearchHistoryRepository:
    """Get SearchHistoryRepository from app state."""
    if not hasattr(request.app.state, "history_repo"):
        raise HTTPException(
            status_code=500, detail="SearchHistoryRepository not initialized"
        )
    return request.app.state.history_repo


def get_channel_repo(request: Request) -> ChannelRepository:
    """Get ChannelRepository from app state."""
    if not hasattr(request.app.state, "channel_repo"):
        raise HTTPException(status_code=500, detail="ChannelRepository not initialized")
    return request.app.state.channel_repo


def _saved_search_http_error(error: Exception) -> HTTPException:
    if isinstance(error, SavedSearchNotFoundError):
        return HTTPException(status_code=404, detail="Saved search not found")
    return HTTPException(status_code=403, detail="Not authorized")


@search_router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(default="", description="Search query with optional operators"),
    scope: SearchScope = Query(default="all", description="Domains to search"),
    limit: int = Query(
        default=settings.search_default_limit,
        ge=0,
        le=settings.search_max_limit,
        description="Page size",
    ),
    offset: int = Query(default=0, ge=0, description="Page offset"),
    sort_by: SortBy = Query(default="relevance"),
    sort_order: SortOrder = Query(default="desc"),
    channels: list[str] | None = Query(default=None, description="Channel ids"),
    users: list[str] | None = Query(default=None, description="Sender ids"),
    file_types: list[str] | None = Query(default=None),
    has_attachments: bool | None = Query(default=None),
    message_types: list[MessageType] | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service),
    channel_repo: ChannelRepository = Depends(get_channel_repo),
) -> SearchResponse:
    """Search messages, direct messages, files, channels and users.

    Supports from:@user, in:#channel, has:file, before:/after: dates,
    "exact phrases" and NOT exclusions inside the query string.
    Message search is restricted to the caller's channels.
    """
    filters = SearchFilters(
        channels=channels or [],
        users=users or [],
        file_types=file_types or [],
        has_attachments=has_attachments,
        message_types=message_types or [],
        date_range=(
            DateRange(start=date_from, end=date_to)
            if date_from or date_to
            else None
        ),
    )
    user_channel_ids = await channel_repo.get_member_channel_ids(user_id)

    options = SearchOptions(
        query=q,
        filters=filters,
        scope=scope,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
        user_id=user_id,
        user_channel_ids=user_channel_ids,
    )
    try:
        return await search_service.search(options)
    except SearchValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SearchCancelledError as e:
        raise HTTPException(status_code=504, detail=str(e)) from e


@search_router.get("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    q: str = Query(default="", description="Partially typed query"),
    user_id: str = Depends(get_current_user_id),
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
) -> SuggestionsResponse:
    """Autocomplete suggestions from history, channels and users."""
    suggestions = await suggestion_service.suggest(user_id, q)
    return SuggestionsResponse(suggestions=suggestions)


@search_router.get("/history", response_model=list[SearchHistoryEntry])
async def get_history(
    limit: int = Query(default=settings.history_default_limit, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    history_repo: SearchHistoryRepository = Depends(get_history_repo),
) -> list[SearchHistoryEntry]:
    """The caller's most recent searches, newest first."""
    return await history_repo.list_for_user(user_id, limit)


@search_router.delete("/history", response_model=ClearHistoryResponse)
async def clear_history(
    user_id: str = Depends(get_current_user_id),
    history_repo: SearchHistoryRepository = Depends(get_history_repo),
) -> ClearHistoryResponse:
    """Delete the caller's search history."""
    deleted = await history_repo.clear_for_user(user_id)
    return ClearHistoryResponse(success=True, deleted=deleted)


@search_router.get("/saved", response_model=list[SavedSearch])
async def list_saved_searches(
    user_id: str = Depends(get_current_user_id),
    service: SavedSearchService = Depends(get_saved_search_service),
) -> list[SavedSearch]:
    """The caller's saved searches, pinned first then most recently used."""
    return await service.list_for_user(user_id)


@search_router.post("/saved", response_model=SavedSearch)
async def save_search(
    body: SavedSearchCreate,
    user_id: str = Depends(get_current_user_id),
    service: SavedSearchService = Depends(get_saved_search_service),
) -> SavedSearch:
    """Save a named search for the caller."""
    return await service.save(user_id, body)


@search_router.patch("/saved/{saved_search_id}", response_model=SavedSearch)
async def update_saved_search(
    saved_search_id: str,
    body: SavedSearchUpdate,
    user_id: str = Depends(get_current_user_id),
    service: SavedSearchService = Depends(get_saved_search_service),
) -> SavedSearch:
    """Update a saved search the caller owns."""
    try:
        return await service.update(saved_search_id, user_id, body)
    except (SavedSearchNotFoundError, SearchPermissionError) as e:
        raise _saved_search_http_error(e) from e


@search_router.delete("/saved/{saved_search_id}", response_model=SuccessResponse)
async def delete_saved_search(
    saved_search_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SavedSearchService = Depends(get_saved_search_service),
) -> SuccessResponse:
    """Delete a saved search the caller owns."""
    try:
        await service.delete(saved_search_id, user_id)
    except (SavedSearchNotFoundError, SearchPermissionError) as e:
        raise _saved_search_http_error(e) from e
    return SuccessResponse(success=True)


@search_router.post("/saved/{saved_search_id}/use", response_model=SavedSearch)
async def use_saved_search(
    saved_search_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SavedSearchService = Depends(get_saved_search_service),
) -> SavedSearch:
    """Record a use of a saved search and return the updated counter."""
    try:
        return await service.mark_used(saved_search_id, user_id)
    except (SavedSearchNotFoundError, SearchPermissionError) as e:
        raise _saved_search_http_error(e) from e
