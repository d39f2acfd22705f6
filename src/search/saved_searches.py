"""Saved search management with ownership checks."""

from typing import TYPE_CHECKING

import structlog

from src.db.sql import utcnow
from src.search.exceptions import SavedSearchNotFoundError, SearchPermissionError
from src.search.schemas import SavedSearch, SavedSearchCreate, SavedSearchUpdate

if TYPE_CHECKING:
    from src.repositories.saved_search_repo import SavedSearchRepository

logger = structlog.get_logger()

# Columns that may be cleared by sending null
NULLABLE_FIELDS = frozenset({"filters"})


class SavedSearchService:
    """CRUD and usage bookkeeping for saved searches.

    Every mutation checks that the caller owns the saved search before
    anything is written.
    """

    def __init__(self, repo: "SavedSearchRepository"):
        self._repo = repo

    async def save(self, user_id: str, data: SavedSearchCreate) -> SavedSearch:
        """Save a search for a user; usage starts at zero."""
        saved = await self._repo.create(user_id, data)
        logger.info("saved search created", saved_search_id=saved.id, user_id=user_id)
        return saved

    async def list_for_user(self, user_id: str) -> list[SavedSearch]:
        """A user's saved searches, pinned first then most recently used."""
        return await self._repo.list_for_user(user_id)

    async def update(
        self,
        saved_search_id: str,
        user_id: str,
        updates: SavedSearchUpdate,
    ) -> SavedSearch:
        """Apply a partial update to a saved search the caller owns.

        Raises:
            SavedSearchNotFoundError: No such saved search
            SearchPermissionError: Caller is not the owner
        """
        current = await self._get_owned(saved_search_id, user_id)

        fields = {
            name: getattr(updates, name)
            for name in updates.model_fields_set
            if getattr(updates, name) is not None or name in NULLABLE_FIELDS
        }
        if not fields:
            return current

        updated = await self._repo.update(saved_search_id, fields)
        if updated is None:
            raise SavedSearchNotFoundError(saved_search_id)
        logger.info(
            "saved search updated",
            saved_search_id=saved_search_id,
            fields=sorted(fields),
        )
        return updated

    async def delete(self, saved_search_id: str, user_id: str) -> None:
        """Delete a saved search the caller owns.

        Raises:
            SavedSearchNotFoundError: No such saved search
            SearchPermissionError: Caller is not the owner
        """
        await self._get_owned(saved_search_id, user_id)
        if not await self._repo.delete(saved_search_id):
            raise SavedSearchNotFoundError(saved_search_id)
        logger.info("saved search deleted", saved_search_id=saved_search_id)

    async def mark_used(self, saved_search_id: str, user_id: str) -> SavedSearch:
        """Record one use of a saved search.

        Reads the current count and writes count + 1 with the current
        time as last_used_at, so the returned record carries the
        post-increment value.

        Raises:
            SavedSearchNotFoundError: No such saved search
            SearchPermissionError: Caller is not the owner
        """
        current = await self._get_owned(saved_search_id, user_id)
        updated = await self._repo.update(
            saved_search_id,
            {
                "usage_count": current.usage_count + 1,
                "last_used_at": utcnow(),
            },
        )
        if updated is None:
            raise SavedSearchNotFoundError(saved_search_id)
        return updated

    async def _get_owned(self, saved_search_id: str, user_id: str) -> SavedSearch:
        saved = await self._repo.get(saved_search_id)
        if saved is None:
            raise SavedSearchNotFoundError(saved_search_id)
        if saved.user_id != user_id:
            logger.warning(
                "saved search access denied",
                saved_search_id=saved_search_id,
                user_id=user_id,
            )
            raise SearchPermissionError(saved_search_id, user_id)
        return saved
