"""Tests for SearchHistoryRepository and SavedSearchRepository."""

from datetime import UTC, datetime

import pytest

from src.db.turso import TursoClient
from src.repositories.history_repo import SearchHistoryRepository
from src.repositories.saved_search_repo import SavedSearchRepository
from src.search.schemas import SavedSearchCreate, SearchFilters


@pytest.fixture
async def history_repo(db_client: TursoClient) -> SearchHistoryRepository:
    repo = SearchHistoryRepository(db_client)
    await repo.initialize()
    return repo


@pytest.fixture
async def saved_repo(db_client: TursoClient) -> SavedSearchRepository:
    repo = SavedSearchRepository(db_client)
    await repo.initialize()
    return repo


class TestSearchHistoryRepository:
    """Tests for search history persistence."""

    @pytest.mark.asyncio
    async def test_add_and_list_newest_first(
        self, history_repo: SearchHistoryRepository
    ) -> None:
        filters = SearchFilters(channels=["ch-1"])
        first = await history_repo.add_entry("u1", "budget", filters, "messages")
        await history_repo.add_entry("u1", "budget report")
        await history_repo.add_entry("u2", "other")

        entries = await history_repo.list_for_user("u1")

        assert [e.query for e in entries] == ["budget report", "budget"]
        assert entries[1].id == first.id
        assert entries[1].filters == filters
        assert entries[1].scope == "messages"
        assert entries[0].filters is None
        assert entries[0].created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_repeated_searches_are_separate_rows(
        self, history_repo: SearchHistoryRepository
    ) -> None:
        await history_repo.add_entry("u1", "budget")
        await history_repo.add_entry("u1", "budget")

        assert len(await history_repo.list_for_user("u1")) == 2

    @pytest.mark.asyncio
    async def test_find_recent_queries_is_distinct(
        self, history_repo: SearchHistoryRepository
    ) -> None:
        await history_repo.add_entry("u1", "budget")
        await history_repo.add_entry("u1", "budget report")
        await history_repo.add_entry("u1", "roadmap")
        await history_repo.add_entry("u1", "budget")
        await history_repo.add_entry("u2", "budget secret")

        queries = await history_repo.find_recent_queries("u1", "BUD")

        assert queries == ["budget", "budget report"]

    @pytest.mark.asyncio
    async def test_clear_for_user(self, history_repo: SearchHistoryRepository) -> None:
        await history_repo.add_entry("u1", "budget")
        await history_repo.add_entry("u1", "roadmap")
        await history_repo.add_entry("u2", "budget")

        deleted = await history_repo.clear_for_user("u1")

        assert deleted == 2
        assert await history_repo.list_for_user("u1") == []
        assert len(await history_repo.list_for_user("u2")) == 1


class TestSavedSearchRepository:
    """Tests for saved search persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, saved_repo: SavedSearchRepository) -> None:
        filters = SearchFilters(users=["user-jane"])
        saved = await saved_repo.create(
            "u1",
            SavedSearchCreate(
                name="Jane's updates", query="from:@jane", filters=filters
            ),
        )

        fetched = await saved_repo.get(saved.id)

        assert fetched == saved
        assert saved.usage_count == 0
        assert saved.is_pinned is False
        assert saved.last_used_at is None
        assert saved.filters == filters
        assert saved.created_at is not None

    @pytest.mark.asyncio
    async def test_get_missing(self, saved_repo: SavedSearchRepository) -> None:
        assert await saved_repo.get("missing") is None

    @pytest.mark.asyncio
    async def test_list_pinned_then_recently_used(
        self, saved_repo: SavedSearchRepository
    ) -> None:
        never_used = await saved_repo.create(
            "u1", SavedSearchCreate(name="a", query="alpha")
        )
        pinned = await saved_repo.create(
            "u1", SavedSearchCreate(name="b", query="beta", is_pinned=True)
        )
        used = await saved_repo.create("u1", SavedSearchCreate(name="c", query="gamma"))
        await saved_repo.update(
            used.id, {"last_used_at": datetime(2024, 1, 1, tzinfo=UTC)}
        )
        await saved_repo.create("u2", SavedSearchCreate(name="d", query="delta"))

        listed = await saved_repo.list_for_user("u1")

        assert [s.id for s in listed] == [pinned.id, used.id, never_used.id]

    @pytest.mark.asyncio
    async def test_update_columns(self, saved_repo: SavedSearchRepository) -> None:
        saved = await saved_repo.create("u1", SavedSearchCreate(name="a", query="q"))

        updated = await saved_repo.update(
            saved.id, {"usage_count": 4, "is_pinned": True, "name": "renamed"}
        )

        assert updated is not None
        assert updated.usage_count == 4
        assert updated.is_pinned is True
        assert updated.name == "renamed"

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_columns(
        self, saved_repo: SavedSearchRepository
    ) -> None:
        with pytest.raises(ValueError):
            await saved_repo.update("any", {"user_id": "someone-else"})

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(
        self, saved_repo: SavedSearchRepository
    ) -> None:
        assert await saved_repo.update("missing", {"name": "x"}) is None

    @pytest.mark.asyncio
    async def test_delete(self, saved_repo: SavedSearchRepository) -> None:
        saved = await saved_repo.create("u1", SavedSearchCreate(name="a", query="q"))

        assert await saved_repo.delete(saved.id) is True
        assert await saved_repo.delete(saved.id) is False
        assert await saved_repo.get(saved.id) is None
