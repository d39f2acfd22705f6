"""Repository for workspace user lookups."""

import logging
from typing import Any

from src.db.sql import (
    contains_pattern,
    equals_pattern,
    matches,
    not_matches,
    prefix_pattern,
)
from src.db.turso import TursoClient
from src.search.schemas import SearchFilters, SearchOperators

logger = logging.getLogger(__name__)

FULL_NAME_SQL = "TRIM(COALESCE(first_name, '') || ' ' || COALESCE(last_name, ''))"


class UserRepository:
    """Repository for the users table."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create users table if not exists."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                username TEXT,
                first_name TEXT,
                last_name TEXT,
                email TEXT,
                phone TEXT,
                is_admin INTEGER DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

    async def search_users(
        self,
        query: str,
        operators: SearchOperators,
        filters: SearchFilters,
        *,
        limit: int = 500,
    ) -> list[dict]:
        """Find users by first name, last name, email or full name.

        Args:
            query: Free text matched against the name and email columns
            operators: Parsed query operators (only exclusions apply)
            filters: Caller-supplied filters (admin status applies)
            limit: Maximum rows

        Returns:
            User rows ordered by full name
        """
        clauses: list[str] = []
        params: list[Any] = []

        if query:
            clauses.append(
                f"({matches('first_name')} OR {matches('last_name')} "
                f"OR {matches('email')} OR {matches(FULL_NAME_SQL)})"
            )
            pattern = contains_pattern(query)
            params.extend([pattern] * 4)

        for term in operators.exclude:
            clauses.append(f"{not_matches(FULL_NAME_SQL)} AND {not_matches('email')}")
            pattern = contains_pattern(term)
            params.extend([pattern, pattern])

        if filters.is_admin is not None:
            clauses.append("is_admin = ?")
            params.append(int(filters.is_admin))

        where_sql = " AND ".join(clauses) if clauses else "1 = 1"
        params.append(limit)

        return await self._db.fetch_all(
            f"""
            SELECT id, username, first_name, last_name, email, phone,
                   is_admin, created_at
            FROM users
            WHERE {where_sql}
            ORDER BY {FULL_NAME_SQL}, id
            LIMIT ?
            """,
            params,
        )

    async def resolve_user_ids(self, names: list[str]) -> list[str]:
        """Resolve from: identifiers to user ids.

        An identifier matches a user id, username, first name or last name
        exactly (case-insensitive), or the start of an email address.
        Unknown identifiers are dropped.

        Args:
            names: Identifiers as typed after from:@

        Returns:
            Matching user ids, possibly empty
        """
        if not names:
            return []

        conditions: list[str] = []
        params: list[Any] = []
        for name in names:
            conditions.append(
                f"(id = ? OR {matches('username')} OR {matches('first_name')} "
                f"OR {matches('last_name')} OR {matches('email')})"
            )
            exact = equals_pattern(name)
            params.extend([name, exact, exact, exact, prefix_pattern(name)])

        where_sql = " OR ".join(conditions)
        result = await self._db.execute(
            f"""
            SELECT id FROM users
            WHERE {where_sql}
            ORDER BY id
            """,
            params,
        )
        return [row[0] for row in result.rows]

    async def find_full_names_containing(
        self, fragment: str, limit: int = 3
    ) -> list[str]:
        """Distinct "First Last" names containing a fragment anywhere."""
        result = await self._db.execute(
            f"""
            SELECT DISTINCT {FULL_NAME_SQL} AS full_name
            FROM users
            WHERE {matches(FULL_NAME_SQL)}
            AND {FULL_NAME_SQL} != ''
            ORDER BY full_name
            LIMIT ?
            """,
            [contains_pattern(fragment), limit],
        )
        return [row[0] for row in result.rows]

