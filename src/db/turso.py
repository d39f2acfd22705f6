"""Turso/libSQL database client wrapper."""

import logging
from typing import Any

from libsql_client import Client, ResultSet, create_client

from src.config import settings

logger = logging.getLogger(__name__)


class TursoClient:
    """Wrapper for Turso/libSQL async client.

    Supports both cloud Turso (with auth token) and local SQLite files.
    The search stores only read through ``fetch_all`` and write through
    ``execute``.
    """

    def __init__(
        self,
        url: str | None = None,
        auth_token: str | None = None,
    ):
        """Initialize client with connection parameters.

        Args:
            url: Database URL. Defaults to settings or local file.
            auth_token: Auth token for Turso cloud. Defaults to settings.
        """
        self.url = url or settings.turso_database_url or "file:search.db"
        self.auth_token = auth_token or settings.turso_auth_token
        self._client: Client | None = None

    async def connect(self) -> None:
        """Establish database connection."""
        if self._client is not None:
            return

        if self.auth_token and self.url.startswith("libsql://"):
            self._client = create_client(
                url=self.url,
                auth_token=self.auth_token,
            )
        else:
            self._client = create_client(url=self.url)

        logger.info(f"Connected to database: {self.url}")

    def _require_client(self) -> Client:
        if not self._client:
            msg = "Not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client

    async def execute(
        self,
        sql: str,
        params: list[Any] | None = None,
    ) -> ResultSet:
        """Execute a SQL statement.

        Args:
            sql: SQL query with ? placeholders
            params: Query parameters

        Returns:
            ResultSet with rows and metadata
        """
        client = self._require_client()
        return await client.execute(sql, params or [])

    async def fetch_all(
        self,
        sql: str,
        params: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a query and return rows keyed by column name.

        Args:
            sql: SQL query with ? placeholders
            params: Query parameters

        Returns:
            One dict per row, keyed by the result column names
        """
        result = await self.execute(sql, params)
        columns = list(result.columns)
        return [
            {column: row[index] for index, column in enumerate(columns)}
            for row in result.rows
        ]

    async def execute_batch(self, statements: list[str]) -> None:
        """Execute multiple SQL statements in a batch.

        Args:
            statements: List of SQL statements
        """
        client = self._require_client()
        await client.batch(statements)

    async def close(self) -> None:
        """Close the database connection."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("Database connection closed")

    async def is_healthy(self) -> bool:
        """Check if database connection is healthy."""
        try:
            if not self._client:
                return False
            result = await self._client.execute("SELECT 1")
            return len(result.rows) == 1
        except Exception:
            return False
