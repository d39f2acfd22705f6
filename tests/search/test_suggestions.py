"""Tests for SuggestionService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.search.suggestions import SuggestionService


@pytest.fixture
def repos() -> tuple[MagicMock, MagicMock, MagicMock]:
    history_repo = MagicMock()
    history_repo.find_recent_queries = AsyncMock(return_value=[])
    channel_repo = MagicMock()
    channel_repo.find_names_by_prefix = AsyncMock(return_value=[])
    user_repo = MagicMock()
    user_repo.find_full_names_containing = AsyncMock(return_value=[])
    return history_repo, channel_repo, user_repo


@pytest.mark.asyncio
async def test_short_prefix_returns_nothing(repos) -> None:
    """Prefixes below the minimum length do not hit any store."""
    history_repo, channel_repo, user_repo = repos
    service = SuggestionService(history_repo, channel_repo, user_repo)

    assert await service.suggest("u1", "g") == []
    assert await service.suggest("u1", "") == []
    history_repo.find_recent_queries.assert_not_awaited()
    channel_repo.find_names_by_prefix.assert_not_awaited()
    user_repo.find_full_names_containing.assert_not_awaited()


@pytest.mark.asyncio
async def test_sources_in_fixed_order(repos) -> None:
    history_repo, channel_repo, user_repo = repos
    history_repo.find_recent_queries.return_value = ["general update", "gen"]
    channel_repo.find_names_by_prefix.return_value = ["general", "genomics"]
    user_repo.find_full_names_containing.return_value = ["Gene Smith"]
    service = SuggestionService(history_repo, channel_repo, user_repo)

    suggestions = await service.suggest("u1", "gen")

    assert suggestions == [
        "general update",
        "gen",
        "in:#general",
        "in:#genomics",
        "from:@Gene Smith",
    ]


@pytest.mark.asyncio
async def test_duplicates_keep_first_occurrence(repos) -> None:
    history_repo, channel_repo, user_repo = repos
    history_repo.find_recent_queries.return_value = ["in:#general", "general"]
    channel_repo.find_names_by_prefix.return_value = ["general"]
    service = SuggestionService(history_repo, channel_repo, user_repo)

    suggestions = await service.suggest("u1", "general")

    assert suggestions == ["in:#general", "general"]


@pytest.mark.asyncio
async def test_limits_come_from_settings(repos) -> None:
    history_repo, channel_repo, user_repo = repos
    service = SuggestionService(history_repo, channel_repo, user_repo)

    await service.suggest("u1", "ja")

    history_repo.find_recent_queries.assert_awaited_once_with("u1", "ja", limit=5)
    channel_repo.find_names_by_prefix.assert_awaited_once_with("ja", limit=3)
    user_repo.find_full_names_containing.assert_awaited_once_with("ja", limit=3)
