"""Repository for channel lookups and memberships."""

import logging
from typing import Any

from src.db.sql import (
    contains_pattern,
    equals_pattern,
    matches,
    not_matches,
    placeholders,
    prefix_pattern,
)
from src.db.turso import TursoClient
from src.search.schemas import SearchFilters, SearchOperators

logger = logging.getLogger(__name__)


class ChannelRepository:
    """Repository for the channels and channel_members tables."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create channel tables if they don't exist."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS channels (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                purpose TEXT,
                tier TEXT,
                is_private INTEGER DEFAULT 0,
                is_archived INTEGER DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
            """,
                """
            CREATE TABLE IF NOT EXISTS channel_members (
                channel_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                joined_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (channel_id, user_id)
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_channel_members_user
            ON channel_members(user_id)
            """,
            ]
        )

    async def search_channels(
        self,
        query: str,
        operators: SearchOperators,
        filters: SearchFilters,
        *,
        limit: int = 500,
    ) -> list[dict]:
        """Find channels by name, description or purpose.

        Args:
            query: Free text matched against name, description and purpose
            operators: Parsed query operators (only exclusions apply)
            filters: Caller-supplied filters (tier and archived state apply)
            limit: Maximum rows

        Returns:
            Channel rows ordered by name
        """
        clauses: list[str] = []
        params: list[Any] = []

        if query:
            clauses.append(
                f"({matches('name')} OR {matches('description')} "
                f"OR {matches('purpose')})"
            )
            pattern = contains_pattern(query)
            params.extend([pattern, pattern, pattern])

        for term in operators.exclude:
            clauses.append(
                f"{not_matches('name')} AND {not_matches('description')} "
                f"AND {not_matches('purpose')}"
            )
            pattern = contains_pattern(term)
            params.extend([pattern, pattern, pattern])

        if filters.channel_tier:
            clauses.append("tier = ?")
            params.append(filters.channel_tier)

        if filters.is_archived is not None:
            clauses.append("is_archived = ?")
            params.append(int(filters.is_archived))

        where_sql = " AND ".join(clauses) if clauses else "1 = 1"
        params.append(limit)

        return await self._db.fetch_all(
            f"""
            SELECT id, name, description, purpose, tier,
                   is_private, is_archived, created_at
            FROM channels
            WHERE {where_sql}
            ORDER BY name, id
            LIMIT ?
            """,
            params,
        )

    async def resolve_channel_ids(self, names: list[str]) -> list[str]:
        """Resolve channel names (or ids) to channel ids.

        Names are compared case-insensitively. Unknown names are dropped.

        Args:
            names: Channel names as typed after in:#

        Returns:
            Matching channel ids, possibly empty
        """
        if not names:
            return []

        name_sql = " OR ".join(matches("name") for _ in names)
        result = await self._db.execute(
            f"""
            SELECT id FROM channels
            WHERE {name_sql}
            OR id IN ({placeholders(names)})
            ORDER BY id
            """,
            [*(equals_pattern(n) for n in names), *names],
        )
        return [row[0] for row in result.rows]

    async def find_names_by_prefix(self, prefix: str, limit: int = 3) -> list[str]:
        """Distinct channel names starting with a prefix (case-insensitive)."""
        result = await self._db.execute(
            f"""
            SELECT DISTINCT name FROM channels
            WHERE {matches('name')}
            ORDER BY name
            LIMIT ?
            """,
            [prefix_pattern(prefix), limit],
        )
        return [row[0] for row in result.rows]

    async def get_member_channel_ids(self, user_id: str) -> list[str]:
        """Ids of the channels a user belongs to."""
        result = await self._db.execute(
            """
            SELECT channel_id FROM channel_members
            WHERE user_id = ?
            ORDER BY channel_id
            """,
            [user_id],
        )
        return [row[0] for row in result.rows]
