"""Per-domain searchers for federated search.

Each searcher turns a parsed query, the caller's options and a row cap
into scored results for one entity domain by calling its store. Scores
and highlights are computed here, against the domain's own text, so the
orchestrator only has to merge.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from src.db.sql import load_json, parse_timestamp
from src.search.schemas import (
    BaseSearchResult,
    ChannelResult,
    DirectMessageResult,
    FileResult,
    MessageResult,
    ParsedQuery,
    ResultAuthor,
    ResultChannel,
    SearchDomain,
    SearchOptions,
    UserResult,
)
from src.search.scoring import calculate_score, get_context, get_highlights

if TYPE_CHECKING:
    from src.repositories.channel_repo import ChannelRepository
    from src.repositories.file_repo import FileRepository
    from src.repositories.message_repo import MessageRepository
    from src.repositories.user_repo import UserRepository

logger = structlog.get_logger()


def display_name(
    first_name: str | None, last_name: str | None, fallback: str | None
) -> str:
    """Join first and last name, falling back when both are blank."""
    name = f"{first_name or ''} {last_name or ''}".strip()
    return name or fallback or ""


def matches_phrase(text: str | None, phrase: str) -> bool:
    """Whether text contains the phrase on word boundaries (case-insensitive)."""
    if not text or not phrase:
        return False
    pattern = rf"(?<!\w){re.escape(phrase)}(?!\w)"
    return re.search(pattern, text, re.IGNORECASE) is not None


def _timestamp(value: str | None) -> datetime:
    return parse_timestamp(value) or datetime.now(UTC)


def _author(row: dict, prefix: str, id_key: str) -> ResultAuthor | None:
    author_id = row.get(id_key)
    if not author_id:
        return None
    return ResultAuthor(
        id=author_id,
        name=display_name(
            row.get(f"{prefix}_first_name"),
            row.get(f"{prefix}_last_name"),
            row.get(f"{prefix}_email") or author_id,
        ),
    )


class DomainSearcher(ABC):
    """Base class for the searcher of one entity domain."""

    domain: SearchDomain

    @abstractmethod
    async def search(
        self,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        """Search this domain.

        Args:
            parsed: Base query and operators from the query parser
            options: Caller options (filters, user, channel allowlist)
            max_rows: Maximum rows to fetch from the store

        Returns:
            Scored results in store order
        """


class _SenderResolvingSearcher(DomainSearcher):
    """Shared name resolution for domains that honour from:/in:."""

    def __init__(
        self,
        user_repo: "UserRepository",
        channel_repo: "ChannelRepository",
    ):
        self._users = user_repo
        self._channels = channel_repo

    async def _resolve(self, parsed: ParsedQuery) -> tuple[list[str], list[str]]:
        """Resolve from: names to user ids and in: names to channel ids.

        Unresolved names add no restriction, so both lists may be empty.
        """
        ops = parsed.operators
        sender_ids, channel_ids = await asyncio.gather(
            self._users.resolve_user_ids(ops.from_) if ops.from_ else _empty(),
            self._channels.resolve_channel_ids(ops.in_) if ops.in_ else _empty(),
        )
        if ops.from_ and not sender_ids:
            logger.debug("unresolved sender operators", names=ops.from_)
        if ops.in_ and not channel_ids:
            logger.debug("unresolved channel operators", names=ops.in_)
        return sender_ids, channel_ids


async def _empty() -> list[str]:
    return []


def _keep_exact(rows: list[dict], parsed: ParsedQuery) -> list[dict]:
    if not parsed.operators.exact or not parsed.base_query:
        return rows
    phrase = parsed.base_query
    return [
        row
        for row in rows
        if matches_phrase(row.get("content"), phrase)
        or matches_phrase(row.get("formatted_content"), phrase)
    ]


class MessageSearcher(_SenderResolvingSearcher):
    """Searches channel messages, restricted to the caller's channels."""

    domain = SearchDomain.MESSAGES

    def __init__(
        self,
        message_repo: "MessageRepository",
        user_repo: "UserRepository",
        channel_repo: "ChannelRepository",
    ):
        super().__init__(user_repo, channel_repo)
        self._messages = message_repo

    async def search(
        self,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        message_types = set(options.filters.message_types)
        if message_types and not message_types & {"regular", "thread"}:
            return []

        sender_ids, channel_ids = await self._resolve(parsed)
        rows = await self._messages.search_messages(
            parsed.base_query,
            parsed.operators,
            options.filters,
            channel_ids=channel_ids or None,
            sender_ids=sender_ids or None,
            accessible_channel_ids=options.user_channel_ids,
            limit=max_rows,
        )
        query = parsed.base_query
        return [
            MessageResult(
                id=row["id"],
                content=row["content"],
                context=get_context(row["content"], query),
                author=_author(row, "sender", "sender_id"),
                channel=(
                    ResultChannel(id=row["channel_id"], name=row["channel_name"])
                    if row.get("channel_name")
                    else None
                ),
                timestamp=_timestamp(row["created_at"]),
                highlights=get_highlights(row["content"], query),
                score=calculate_score(row["content"], query),
                thread_id=row.get("parent_id"),
                metadata={"file_ids": load_json(row.get("file_ids"), [])},
            )
            for row in _keep_exact(rows, parsed)
        ]


class DirectMessageSearcher(_SenderResolvingSearcher):
    """Searches direct messages the caller sent or received."""

    domain = SearchDomain.DIRECT_MESSAGES

    def __init__(
        self,
        message_repo: "MessageRepository",
        user_repo: "UserRepository",
        channel_repo: "ChannelRepository",
    ):
        super().__init__(user_repo, channel_repo)
        self._messages = message_repo

    async def search(
        self,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        message_types = set(options.filters.message_types)
        if message_types and "dm" not in message_types:
            return []

        sender_ids, channel_ids = await self._resolve(parsed)
        # Direct messages live outside channels
        if channel_ids or options.filters.channels:
            return []

        rows = await self._messages.search_direct_messages(
            parsed.base_query,
            parsed.operators,
            options.filters,
            user_id=options.user_id,
            sender_ids=sender_ids or None,
            limit=max_rows,
        )
        query = parsed.base_query
        return [
            DirectMessageResult(
                id=row["id"],
                content=row["content"],
                context=get_context(row["content"], query),
                author=_author(row, "sender", "sender_id"),
                timestamp=_timestamp(row["created_at"]),
                highlights=get_highlights(row["content"], query),
                score=calculate_score(row["content"], query),
                receiver_id=row.get("receiver_id"),
                metadata={"file_ids": load_json(row.get("file_ids"), [])},
            )
            for row in _keep_exact(rows, parsed)
        ]


class FileSearcher(_SenderResolvingSearcher):
    """Searches file uploads by name and type.

    A channel restriction (caller filter and/or in: operator) is resolved
    to the attachment-carrying messages of those channels first; uploads
    are then limited to that message set.
    """

    domain = SearchDomain.FILES

    def __init__(
        self,
        file_repo: "FileRepository",
        message_repo: "MessageRepository",
        user_repo: "UserRepository",
        channel_repo: "ChannelRepository",
    ):
        super().__init__(user_repo, channel_repo)
        self._files = file_repo
        self._messages = message_repo

    async def search(
        self,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        uploader_ids, operator_channel_ids = await self._resolve(parsed)

        channel_ids = self._effective_channels(
            options.filters.channels, operator_channel_ids
        )
        message_ids: list[str] | None = None
        if channel_ids is not None:
            message_ids = (
                await self._messages.find_attachment_message_ids(channel_ids)
                if channel_ids
                else []
            )
            if not message_ids:
                return []

        rows = await self._files.search_files(
            parsed.base_query,
            parsed.operators,
            options.filters,
            uploader_ids=uploader_ids or None,
            message_ids=message_ids,
            limit=max_rows,
        )
        query = parsed.base_query
        return [
            FileResult(
                id=row["id"],
                title=row["file_name"],
                content=row["file_name"],
                author=_author(row, "uploader", "user_id"),
                timestamp=_timestamp(row["uploaded_at"]),
                highlights=get_highlights(row["file_name"], query),
                score=calculate_score(row["file_name"], query),
                url=row.get("file_url"),
                file_type=row.get("file_type"),
                file_size=row.get("file_size"),
                mime_type=row.get("mime_type"),
                metadata={"message_id": row.get("message_id")},
            )
            for row in rows
        ]

    @staticmethod
    def _effective_channels(
        filter_ids: list[str], operator_ids: list[str]
    ) -> list[str] | None:
        """Channel set both restrictions agree on; None when neither applies."""
        if filter_ids and operator_ids:
            allowed = set(operator_ids)
            return [c for c in filter_ids if c in allowed]
        if filter_ids:
            return list(filter_ids)
        if operator_ids:
            return list(operator_ids)
        return None


class ChannelSearcher(DomainSearcher):
    """Searches channels by name, description and purpose."""

    domain = SearchDomain.CHANNELS

    def __init__(self, channel_repo: "ChannelRepository"):
        self._channels = channel_repo

    async def search(
        self,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        query = parsed.base_query
        if not query:
            return []

        rows = await self._channels.search_channels(
            query, parsed.operators, options.filters, limit=max_rows
        )
        results: list[BaseSearchResult] = []
        for row in rows:
            text = " ".join(
                part
                for part in (row["name"], row.get("description"), row.get("purpose"))
                if part
            )
            results.append(
                ChannelResult(
                    id=row["id"],
                    title=row["name"],
                    content=row.get("description") or row.get("purpose") or "",
                    timestamp=_timestamp(row["created_at"]),
                    highlights=get_highlights(text, query),
                    score=calculate_score(text, query),
                    tier=row.get("tier"),
                    is_private=bool(row.get("is_private")),
                    is_archived=bool(row.get("is_archived")),
                )
            )
        return results


class UserSearcher(DomainSearcher):
    """Searches users by name and email."""

    domain = SearchDomain.USERS

    def __init__(self, user_repo: "UserRepository"):
        self._users = user_repo

    async def search(
        self,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        query = parsed.base_query
        if not query:
            return []

        rows = await self._users.search_users(
            query, parsed.operators, options.filters, limit=max_rows
        )
        results: list[BaseSearchResult] = []
        for row in rows:
            name = display_name(row.get("first_name"), row.get("last_name"), None)
            text = " ".join(part for part in (name, row.get("email")) if part)
            results.append(
                UserResult(
                    id=row["id"],
                    title=name or row.get("email") or row["id"],
                    content=row.get("email") or "",
                    timestamp=_timestamp(row.get("created_at")),
                    highlights=get_highlights(text, query),
                    score=calculate_score(text, query),
                    email=row.get("email"),
                    is_admin=bool(row.get("is_admin")),
                    metadata={"username": row.get("username")},
                )
            )
        return results
