"""Repository for per-user search history.

One row per search call. Rows are never updated; frequency is derived
by counting rows.
"""

import logging

from src.db.sql import (
    format_timestamp,
    matches,
    parse_timestamp,
    prefix_pattern,
    utcnow,
)
from src.db.turso import TursoClient
from src.search.schemas import SearchFilters, SearchHistoryEntry

logger = logging.getLogger(__name__)


def _row_to_entry(row: dict) -> SearchHistoryEntry:
    return SearchHistoryEntry(
        id=row["id"],
        user_id=row["user_id"],
        query=row["query"],
        filters=(
            SearchFilters.model_validate_json(row["filters"])
            if row["filters"]
            else None
        ),
        scope=row["scope"],
        created_at=parse_timestamp(row["created_at"]),
    )


class SearchHistoryRepository:
    """Repository for the search_history table."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create search_history table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS search_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                query TEXT NOT NULL,
                filters TEXT,
                scope TEXT NOT NULL DEFAULT 'all',
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_search_history_user
            ON search_history(user_id, id)
            """,
            ]
        )

    async def add_entry(
        self,
        user_id: str,
        query: str,
        filters: SearchFilters | None = None,
        scope: str = "all",
    ) -> SearchHistoryEntry:
        """Record one search call.

        Args:
            user_id: User who searched
            query: Raw query, operators included
            filters: Caller filters used for the search
            scope: Search scope

        Returns:
            The stored history entry
        """
        created_at = utcnow()
        result = await self._db.execute(
            """
            INSERT INTO search_history (user_id, query, filters, scope, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                user_id,
                query,
                filters.model_dump_json() if filters else None,
                scope,
                format_timestamp(created_at),
            ],
        )
        return SearchHistoryEntry(
            id=result.last_insert_rowid,
            user_id=user_id,
            query=query,
            filters=filters,
            scope=scope,
            created_at=created_at,
        )

    async def list_for_user(
        self, user_id: str, limit: int = 20
    ) -> list[SearchHistoryEntry]:
        """Most recent history entries for a user, newest first."""
        rows = await self._db.fetch_all(
            """
            SELECT id, user_id, query, filters, scope, created_at
            FROM search_history
            WHERE user_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            [user_id, limit],
        )
        return [_row_to_entry(row) for row in rows]

    async def find_recent_queries(
        self, user_id: str, prefix: str, limit: int = 5
    ) -> list[str]:
        """Distinct past queries starting with a prefix, most recent first.

        The prefix comparison is case-insensitive.
        """
        result = await self._db.execute(
            f"""
            SELECT query, MAX(id) AS last_id
            FROM search_history
            WHERE user_id = ? AND {matches('query')}
            GROUP BY query
            ORDER BY last_id DESC
            LIMIT ?
            """,
            [user_id, prefix_pattern(prefix), limit],
        )
        return [row[0] for row in result.rows]

    async def clear_for_user(self, user_id: str) -> int:
        """Delete all history for a user.

        Returns:
            Number of rows deleted
        """
        result = await self._db.execute(
            "DELETE FROM search_history WHERE user_id = ?",
            [user_id],
        )
        deleted = result.rows_affected
        logger.debug(f"Cleared {deleted} history entries for user {user_id}")
        return deleted
