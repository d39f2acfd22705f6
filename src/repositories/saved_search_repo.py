"""Repository for named, reusable saved searches."""

import logging
from typing import Any
from uuid import uuid4

from src.db.sql import format_timestamp, parse_timestamp, utcnow
from src.db.turso import TursoClient
from src.search.schemas import SavedSearch, SavedSearchCreate, SearchFilters

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = frozenset(
    {"name", "query", "filters", "scope", "is_pinned", "usage_count", "last_used_at"}
)

SELECT_COLUMNS = """
    id, user_id, name, query, filters, scope, is_pinned,
    usage_count, last_used_at, created_at, updated_at
"""


def _row_to_saved_search(row: dict) -> SavedSearch:
    return SavedSearch(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        query=row["query"],
        filters=(
            SearchFilters.model_validate_json(row["filters"])
            if row["filters"]
            else None
        ),
        scope=row["scope"],
        is_pinned=bool(row["is_pinned"]),
        usage_count=row["usage_count"] or 0,
        last_used_at=parse_timestamp(row["last_used_at"]),
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


def _to_column_value(column: str, value: Any) -> Any:
    if column == "filters":
        return value.model_dump_json() if value is not None else None
    if column == "is_pinned":
        return int(bool(value))
    if column == "last_used_at":
        return format_timestamp(value) if value is not None else None
    return value


class SavedSearchRepository:
    """Repository for the saved_searches table."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create saved_searches table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS saved_searches (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                query TEXT NOT NULL,
                filters TEXT,
                scope TEXT NOT NULL DEFAULT 'all',
                is_pinned INTEGER NOT NULL DEFAULT 0,
                usage_count INTEGER NOT NULL DEFAULT 0,
                last_used_at TEXT,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_saved_searches_user
            ON saved_searches(user_id)
            """,
            ]
        )

    async def create(self, user_id: str, data: SavedSearchCreate) -> SavedSearch:
        """Insert a saved search owned by user_id.

        Args:
            user_id: Owner
            data: Name, query, filters, scope and pin state

        Returns:
            The stored saved search with usage_count 0
        """
        saved_search_id = str(uuid4())
        now = format_timestamp(utcnow())
        await self._db.execute(
            """
            INSERT INTO saved_searches
                (id, user_id, name, query, filters, scope, is_pinned,
                 usage_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,
            [
                saved_search_id,
                user_id,
                data.name,
                data.query,
                _to_column_value("filters", data.filters),
                data.scope,
                _to_column_value("is_pinned", data.is_pinned),
                now,
                now,
            ],
        )
        saved = await self.get(saved_search_id)
        if saved is None:
            msg = f"Saved search {saved_search_id} vanished after insert"
            raise RuntimeError(msg)
        return saved

    async def get(self, saved_search_id: str) -> SavedSearch | None:
        """Get a saved search by id, or None if not found."""
        rows = await self._db.fetch_all(
            f"SELECT {SELECT_COLUMNS} FROM saved_searches WHERE id = ?",
            [saved_search_id],
        )
        return _row_to_saved_search(rows[0]) if rows else None

    async def list_for_user(self, user_id: str) -> list[SavedSearch]:
        """Saved searches for a user: pinned first, then most recently used."""
        rows = await self._db.fetch_all(
            f"""
            SELECT {SELECT_COLUMNS}
            FROM saved_searches
            WHERE user_id = ?
            ORDER BY is_pinned DESC,
                     last_used_at IS NULL,
                     last_used_at DESC,
                     created_at DESC,
                     id
            """,
            [user_id],
        )
        return [_row_to_saved_search(row) for row in rows]

    async def update(
        self, saved_search_id: str, fields: dict[str, Any]
    ) -> SavedSearch | None:
        """Update columns of a saved search.

        Args:
            saved_search_id: Saved search to update
            fields: Column name to new value; unknown columns are rejected

        Returns:
            The updated saved search, or None if it does not exist
        """
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            msg = f"Cannot update saved search columns: {sorted(unknown)}"
            raise ValueError(msg)

        columns = sorted(fields)
        assignments = [f"{column} = ?" for column in columns]
        params = [_to_column_value(column, fields[column]) for column in columns]
        assignments.append("updated_at = ?")
        params.append(format_timestamp(utcnow()))
        params.append(saved_search_id)

        set_sql = ", ".join(assignments)
        result = await self._db.execute(
            f"UPDATE saved_searches SET {set_sql} WHERE id = ?",
            params,
        )
        if result.rows_affected == 0:
            return None
        return await self.get(saved_search_id)

    async def delete(self, saved_search_id: str) -> bool:
        """Delete a saved search.

        Returns:
            True if a row was deleted, False if not found
        """
        result = await self._db.execute(
            "DELETE FROM saved_searches WHERE id = ?",
            [saved_search_id],
        )
        return result.rows_affected > 0
