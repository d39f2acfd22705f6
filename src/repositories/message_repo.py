"""Repository for channel messages and direct messages.

The message store is the single point where parsed operators and
caller filters are composed into one WHERE clause; both are ANDed.
"""

import logging
from typing import Any

from src.db.sql import (
    contains_pattern,
    format_timestamp,
    matches,
    not_matches,
    phrase_match,
    phrase_pattern,
    placeholders,
)
from src.db.turso import TursoClient
from src.search.schemas import SearchFilters, SearchOperators

logger = logging.getLogger(__name__)


def _attachment_clause(alias: str) -> str:
    return f"({alias}.file_ids IS NOT NULL AND {alias}.file_ids NOT IN ('', '[]'))"


def _shared_conditions(
    alias: str,
    query: str,
    operators: SearchOperators,
    filters: SearchFilters,
) -> tuple[list[str], list[Any]]:
    """WHERE clauses common to channel messages and direct messages."""
    clauses: list[str] = []
    params: list[Any] = []

    if query:
        # Exact mode narrows to word-bounded hits; searchers re-check in Python
        if operators.exact:
            match, pattern = phrase_match, phrase_pattern(query)
        else:
            match, pattern = matches, contains_pattern(query)
        clauses.append(
            f"({match(f'{alias}.content')} OR {match(f'{alias}.formatted_content')})"
        )
        params.extend([pattern, pattern])

    for term in operators.exclude:
        clauses.append(
            f"{not_matches(f'{alias}.content')} "
            f"AND {not_matches(f'{alias}.formatted_content')}"
        )
        pattern = contains_pattern(term)
        params.extend([pattern, pattern])

    if operators.before:
        clauses.append(f"{alias}.created_at <= ?")
        params.append(format_timestamp(operators.before))
    if operators.after:
        clauses.append(f"{alias}.created_at >= ?")
        params.append(format_timestamp(operators.after))

    if filters.date_range:
        if filters.date_range.start:
            clauses.append(f"{alias}.created_at >= ?")
            params.append(format_timestamp(filters.date_range.start))
        if filters.date_range.end:
            clauses.append(f"{alias}.created_at <= ?")
            params.append(format_timestamp(filters.date_range.end))

    for tag in operators.has:
        if tag in ("file", "attachment"):
            clauses.append(_attachment_clause(alias))
        elif tag == "link":
            clauses.append(f"LOWER({alias}.content) LIKE '%http%'")
        elif tag == "reaction":
            clauses.append(f"{alias}.reaction_count > 0")
        else:
            logger.debug(f"Ignoring unknown has: tag {tag!r}")

    if filters.has_attachments is True:
        clauses.append(_attachment_clause(alias))
    elif filters.has_attachments is False:
        clauses.append(f"NOT {_attachment_clause(alias)}")

    if filters.users:
        clauses.append(f"{alias}.sender_id IN ({placeholders(filters.users)})")
        params.extend(filters.users)

    return clauses, params


class MessageRepository:
    """Repository for message and direct message lookups.

    Owns the messages and direct_messages tables. Lookups join the users
    and channels tables, so those repositories must be initialized too.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create message tables and indexes if they don't exist."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                channel_id TEXT NOT NULL,
                sender_id TEXT,
                content TEXT NOT NULL,
                formatted_content TEXT,
                parent_id TEXT,
                file_ids TEXT,
                reaction_count INTEGER DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_channel
            ON messages(channel_id, created_at)
        """)
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS direct_messages (
                id TEXT PRIMARY KEY,
                sender_id TEXT NOT NULL,
                receiver_id TEXT NOT NULL,
                content TEXT NOT NULL,
                formatted_content TEXT,
                file_ids TEXT,
                reaction_count INTEGER DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_direct_messages_participants
            ON direct_messages(sender_id, receiver_id)
        """)

    async def search_messages(
        self,
        query: str,
        operators: SearchOperators,
        filters: SearchFilters,
        *,
        channel_ids: list[str] | None = None,
        sender_ids: list[str] | None = None,
        accessible_channel_ids: list[str] | None = None,
        limit: int = 500,
    ) -> list[dict]:
        """Find channel messages matching text, operators and filters.

        Args:
            query: Free text matched against content and formatted content
            operators: Parsed query operators
            filters: Caller-supplied filters
            channel_ids: Channel ids resolved from in: operators
            sender_ids: User ids resolved from from: operators
            accessible_channel_ids: Caller's channel allowlist, None for no limit
            limit: Maximum rows

        Returns:
            Message rows joined with sender and channel names, newest first
        """
        if accessible_channel_ids is not None and not accessible_channel_ids:
            return []

        clauses, params = _shared_conditions("m", query, operators, filters)

        if channel_ids:
            clauses.append(f"m.channel_id IN ({placeholders(channel_ids)})")
            params.extend(channel_ids)
        if sender_ids:
            clauses.append(f"m.sender_id IN ({placeholders(sender_ids)})")
            params.extend(sender_ids)
        if filters.channels:
            clauses.append(f"m.channel_id IN ({placeholders(filters.channels)})")
            params.extend(filters.channels)
        if accessible_channel_ids:
            clauses.append(
                f"m.channel_id IN ({placeholders(accessible_channel_ids)})"
            )
            params.extend(accessible_channel_ids)

        message_types = set(filters.message_types)
        if "thread" in message_types and "regular" not in message_types:
            clauses.append("m.parent_id IS NOT NULL")
        elif "regular" in message_types and "thread" not in message_types:
            clauses.append("m.parent_id IS NULL")

        where_sql = " AND ".join(clauses) if clauses else "1 = 1"
        params.append(limit)

        return await self._db.fetch_all(
            f"""
            SELECT m.id, m.content, m.formatted_content, m.channel_id,
                   c.name AS channel_name, m.sender_id,
                   u.first_name AS sender_first_name,
                   u.last_name AS sender_last_name,
                   u.email AS sender_email,
                   m.parent_id, m.file_ids, m.created_at
            FROM messages m
            LEFT JOIN users u ON m.sender_id = u.id
            LEFT JOIN channels c ON m.channel_id = c.id
            WHERE {where_sql}
            ORDER BY m.created_at DESC, m.id
            LIMIT ?
            """,
            params,
        )

    async def search_direct_messages(
        self,
        query: str,
        operators: SearchOperators,
        filters: SearchFilters,
        *,
        user_id: str,
        sender_ids: list[str] | None = None,
        limit: int = 500,
    ) -> list[dict]:
        """Find direct messages the user sent or received.

        The participant restriction is always applied, whatever the
        filters say.

        Args:
            query: Free text matched against content and formatted content
            operators: Parsed query operators
            filters: Caller-supplied filters
            user_id: Requesting user; must be sender or receiver
            sender_ids: User ids resolved from from: operators
            limit: Maximum rows

        Returns:
            Direct message rows joined with sender names, newest first
        """
        clauses, params = _shared_conditions("d", query, operators, filters)

        clauses.append("(d.sender_id = ? OR d.receiver_id = ?)")
        params.extend([user_id, user_id])

        if sender_ids:
            clauses.append(f"d.sender_id IN ({placeholders(sender_ids)})")
            params.extend(sender_ids)

        where_sql = " AND ".join(clauses)
        params.append(limit)

        return await self._db.fetch_all(
            f"""
            SELECT d.id, d.content, d.formatted_content, d.sender_id,
                   d.receiver_id,
                   u.first_name AS sender_first_name,
                   u.last_name AS sender_last_name,
                   u.email AS sender_email,
                   d.file_ids, d.created_at
            FROM direct_messages d
            LEFT JOIN users u ON d.sender_id = u.id
            WHERE {where_sql}
            ORDER BY d.created_at DESC, d.id
            LIMIT ?
            """,
            params,
        )

    async def find_attachment_message_ids(self, channel_ids: list[str]) -> list[str]:
        """Ids of messages in the given channels that carry an attachment.

        Args:
            channel_ids: Channels to look in

        Returns:
            Message ids, empty if no channel was given
        """
        if not channel_ids:
            return []

        attachment_sql = _attachment_clause("messages")
        result = await self._db.execute(
            f"""
            SELECT id FROM messages
            WHERE channel_id IN ({placeholders(channel_ids)})
            AND {attachment_sql}
            """,
            list(channel_ids),
        )
        return [row[0] for row in result.rows]
