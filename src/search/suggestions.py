"""Autocomplete suggestions for the search box."""

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.config import settings

if TYPE_CHECKING:
    from src.repositories.channel_repo import ChannelRepository
    from src.repositories.history_repo import SearchHistoryRepository
    from src.repositories.user_repo import UserRepository

logger = structlog.get_logger()


class SuggestionService:
    """Builds suggestions from history, channel names and user names.

    Order is fixed: the user's recent matching queries, then
    ``in:#channel`` completions, then ``from:@First Last`` completions.
    Duplicates are dropped by exact string, keeping the first.
    """

    def __init__(
        self,
        history_repo: "SearchHistoryRepository",
        channel_repo: "ChannelRepository",
        user_repo: "UserRepository",
    ):
        self._history = history_repo
        self._channels = channel_repo
        self._users = user_repo

    async def suggest(self, user_id: str, prefix: str) -> list[str]:
        """Suggestions for a partially typed query.

        Args:
            user_id: User typing the query
            prefix: Text typed so far

        Returns:
            Ordered, deduplicated suggestions; empty for short prefixes
        """
        if not prefix or len(prefix) < settings.suggestion_min_prefix_length:
            return []

        history, channel_names, user_names = await asyncio.gather(
            self._history.find_recent_queries(
                user_id, prefix, limit=settings.suggestion_history_limit
            ),
            self._channels.find_names_by_prefix(
                prefix, limit=settings.suggestion_channel_limit
            ),
            self._users.find_full_names_containing(
                prefix, limit=settings.suggestion_user_limit
            ),
        )

        suggestions = [
            *history,
            *(f"in:#{name}" for name in channel_names),
            *(f"from:@{name}" for name in user_names),
        ]
        unique = list(dict.fromkeys(suggestions))
        logger.debug(
            "built search suggestions",
            user_id=user_id,
            prefix=prefix,
            count=len(unique),
        )
        return unique
