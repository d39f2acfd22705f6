"""Repository for file upload lookups."""

import logging
from typing import Any

from src.db.sql import (
    contains_pattern,
    format_timestamp,
    matches,
    not_matches,
    placeholders,
)
from src.db.turso import TursoClient
from src.search.schemas import SearchFilters, SearchOperators

logger = logging.getLogger(__name__)


class FileRepository:
    """Repository for the file_uploads table.

    Uploads may be linked to the message that carried them through
    message_id, which is how channel-scoped file search is resolved.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create file_uploads table and indexes if they don't exist."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS file_uploads (
                id TEXT PRIMARY KEY,
                user_id TEXT,
                message_id TEXT,
                file_name TEXT NOT NULL,
                file_type TEXT,
                file_size INTEGER,
                mime_type TEXT,
                file_url TEXT,
                uploaded_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_file_uploads_message
            ON file_uploads(message_id)
        """)

    async def search_files(
        self,
        query: str,
        operators: SearchOperators,
        filters: SearchFilters,
        *,
        uploader_ids: list[str] | None = None,
        message_ids: list[str] | None = None,
        limit: int = 500,
    ) -> list[dict]:
        """Find uploads by file name or file type.

        Args:
            query: Free text matched against file name and file type
            operators: Parsed query operators
            filters: Caller-supplied filters
            uploader_ids: User ids resolved from from: operators
            message_ids: Restrict to uploads linked to these messages
            limit: Maximum rows

        Returns:
            Upload rows joined with uploader names, newest first
        """
        if message_ids is not None and not message_ids:
            return []

        clauses: list[str] = []
        params: list[Any] = []

        if query:
            clauses.append(f"({matches('f.file_name')} OR {matches('f.file_type')})")
            pattern = contains_pattern(query)
            params.extend([pattern, pattern])

        for term in operators.exclude:
            clauses.append(
                f"{not_matches('f.file_name')} AND {not_matches('f.file_type')}"
            )
            pattern = contains_pattern(term)
            params.extend([pattern, pattern])

        if filters.file_types:
            clauses.append(
                f"LOWER(f.file_type) IN ({placeholders(filters.file_types)})"
            )
            params.extend(t.lower() for t in filters.file_types)

        if uploader_ids:
            clauses.append(f"f.user_id IN ({placeholders(uploader_ids)})")
            params.extend(uploader_ids)
        if filters.users:
            clauses.append(f"f.user_id IN ({placeholders(filters.users)})")
            params.extend(filters.users)

        if message_ids:
            clauses.append(f"f.message_id IN ({placeholders(message_ids)})")
            params.extend(message_ids)

        if operators.before:
            clauses.append("f.uploaded_at <= ?")
            params.append(format_timestamp(operators.before))
        if operators.after:
            clauses.append("f.uploaded_at >= ?")
            params.append(format_timestamp(operators.after))
        if filters.date_range:
            if filters.date_range.start:
                clauses.append("f.uploaded_at >= ?")
                params.append(format_timestamp(filters.date_range.start))
            if filters.date_range.end:
                clauses.append("f.uploaded_at <= ?")
                params.append(format_timestamp(filters.date_range.end))

        where_sql = " AND ".join(clauses) if clauses else "1 = 1"
        params.append(limit)

        return await self._db.fetch_all(
            f"""
            SELECT f.id, f.file_name, f.file_type, f.file_size, f.mime_type,
                   f.file_url, f.message_id, f.user_id,
                   u.first_name AS uploader_first_name,
                   u.last_name AS uploader_last_name,
                   u.email AS uploader_email,
                   f.uploaded_at
            FROM file_uploads f
            LEFT JOIN users u ON f.user_id = u.id
            WHERE {where_sql}
            ORDER BY f.uploaded_at DESC, f.id
            LIMIT ?
            """,
            params,
        )
