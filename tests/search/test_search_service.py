"""Tests for the federated SearchService."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.search.exceptions import SearchCancelledError, SearchValidationError
from src.search.schemas import (
    BaseSearchResult,
    ChannelResult,
    MessageResult,
    ParsedQuery,
    SearchDomain,
    SearchFilters,
    SearchOptions,
    UserResult,
)
from src.search.search_service import SearchService, sort_results
from src.search.searchers import DomainSearcher

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class StubSearcher(DomainSearcher):
    """Domain searcher returning canned results and recording calls."""

    def __init__(
        self,
        domain: SearchDomain,
        results: list[BaseSearchResult] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.domain = domain
        self.results = results or []
        self.error = error
        self.delay = delay
        self.calls: list[tuple[ParsedQuery, SearchOptions, int]] = []

    async def search(self, parsed, options, max_rows):
        self.calls.append((parsed, options, max_rows))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.results)


def _message(id: str, score: float = 1.0, minutes: int = 0) -> MessageResult:
    return MessageResult(
        id=id,
        content=f"message {id}",
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        score=score,
    )


def _searchers(**results) -> dict[SearchDomain, StubSearcher]:
    return {
        domain: StubSearcher(domain, results.get(domain.value, []))
        for domain in SearchDomain
    }


@pytest.fixture
def history_repo() -> MagicMock:
    repo = MagicMock()
    repo.add_entry = AsyncMock()
    return repo


def _service(
    searchers: dict[SearchDomain, StubSearcher],
    history_repo: MagicMock,
    **kwargs,
) -> SearchService:
    kwargs.setdefault("max_domain_rows", 50)
    kwargs.setdefault("max_limit", 100)
    return SearchService(list(searchers.values()), history_repo, **kwargs)


class TestFanOut:
    """Tests for scope handling and merging."""

    @pytest.mark.asyncio
    async def test_all_scope_merges_every_domain(self, history_repo: MagicMock) -> None:
        searchers = _searchers(
            messages=[_message("msg-1")],
            channels=[
                ChannelResult(id="ch-1", title="general", timestamp=BASE_TIME)
            ],
            users=[UserResult(id="user-1", title="Jane", timestamp=BASE_TIME)],
        )
        service = _service(searchers, history_repo)

        response = await service.search(SearchOptions(query="general", user_id="u1"))

        assert response.total == 3
        assert {r.type for r in response.results} == {"message", "channel", "user"}
        for searcher in searchers.values():
            assert len(searcher.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("scope", "expected"),
        [
            ("messages", {SearchDomain.MESSAGES, SearchDomain.DIRECT_MESSAGES}),
            ("files", {SearchDomain.FILES}),
            ("channels", {SearchDomain.CHANNELS}),
            ("users", {SearchDomain.USERS}),
        ],
    )
    async def test_scope_limits_domains(
        self, history_repo: MagicMock, scope: str, expected: set[SearchDomain]
    ) -> None:
        searchers = _searchers()
        service = _service(searchers, history_repo)

        await service.search(SearchOptions(query="x", scope=scope, user_id="u1"))

        called = {domain for domain, s in searchers.items() if s.calls}
        assert called == expected

    @pytest.mark.asyncio
    async def test_query_is_parsed_once_for_all_domains(
        self, history_repo: MagicMock
    ) -> None:
        searchers = _searchers()
        service = _service(searchers, history_repo)

        await service.search(
            SearchOptions(query="budget from:@jane", user_id="u1")
        )

        parsed_queries = [s.calls[0][0] for s in searchers.values()]
        assert all(p.base_query == "budget" for p in parsed_queries)
        assert all(p.operators.from_ == ["jane"] for p in parsed_queries)

    @pytest.mark.asyncio
    async def test_row_cap_covers_requested_page(self, history_repo: MagicMock) -> None:
        searchers = _searchers()
        service = _service(searchers, history_repo, max_domain_rows=50)

        await service.search(
            SearchOptions(query="x", limit=40, offset=30, user_id="u1")
        )

        assert searchers[SearchDomain.MESSAGES].calls[0][2] == 70


class TestPagination:
    """Tests for ranking and pagination of the merged set."""

    @pytest.mark.asyncio
    async def test_second_page_of_messages(self, history_repo: MagicMock) -> None:
        messages = [_message(f"msg-{i}", score=100 - i) for i in range(1, 26)]
        searchers = _searchers(messages=messages)
        service = _service(searchers, history_repo)

        response = await service.search(
            SearchOptions(
                query="status", scope="messages", limit=10, offset=10, user_id="u1"
            )
        )

        assert response.total == 25
        assert [r.id for r in response.results] == [
            f"msg-{i}" for i in range(11, 21)
        ]

    @pytest.mark.asyncio
    async def test_offset_past_end_is_empty(self, history_repo: MagicMock) -> None:
        searchers = _searchers(messages=[_message("msg-1")])
        service = _service(searchers, history_repo)

        response = await service.search(
            SearchOptions(query="x", offset=5, user_id="u1")
        )

        assert response.results == []
        assert response.total == 1

    @pytest.mark.asyncio
    async def test_zero_limit_still_reports_total(self, history_repo: MagicMock) -> None:
        searchers = _searchers(messages=[_message("msg-1"), _message("msg-2")])
        service = _service(searchers, history_repo)

        response = await service.search(
            SearchOptions(query="x", limit=0, user_id="u1")
        )

        assert response.results == []
        assert response.total == 2


class TestSortResults:
    """Tests for sort_results."""

    def test_relevance_is_highest_first(self) -> None:
        results = [_message("a", 1.0), _message("b", 3.0), _message("c", 2.0)]

        assert [r.id for r in sort_results(results)] == ["b", "c", "a"]

    def test_relevance_ignores_sort_order(self) -> None:
        results = [_message("a", 1.0), _message("b", 3.0)]

        ranked = sort_results(results, "relevance", "asc")

        assert [r.id for r in ranked] == ["b", "a"]

    def test_date_descending_and_ascending(self) -> None:
        results = [
            _message("old", minutes=0),
            _message("new", minutes=10),
            _message("mid", minutes=5),
        ]

        assert [r.id for r in sort_results(results, "date", "desc")] == [
            "new",
            "mid",
            "old",
        ]
        assert [r.id for r in sort_results(results, "date", "asc")] == [
            "old",
            "mid",
            "new",
        ]

    def test_ties_keep_input_order(self) -> None:
        results = [_message("first", 5.0), _message("second", 5.0)]

        assert [r.id for r in sort_results(results)] == ["first", "second"]


class TestDegradation:
    """Tests for failing, slow and cancelled domains."""

    @pytest.mark.asyncio
    async def test_failing_domain_contributes_nothing(
        self, history_repo: MagicMock
    ) -> None:
        searchers = _searchers(users=[UserResult(id="u", timestamp=BASE_TIME)])
        searchers[SearchDomain.MESSAGES].error = RuntimeError("store down")
        service = _service(searchers, history_repo)

        response = await service.search(SearchOptions(query="x", user_id="u1"))

        assert response.total == 1
        assert response.results[0].id == "u"

    @pytest.mark.asyncio
    async def test_slow_domain_is_dropped(self, history_repo: MagicMock) -> None:
        searchers = _searchers(
            messages=[_message("late")],
            users=[UserResult(id="u", timestamp=BASE_TIME)],
        )
        searchers[SearchDomain.MESSAGES].delay = 1.0
        service = _service(searchers, history_repo, domain_timeout=0.05)

        response = await service.search(SearchOptions(query="x", user_id="u1"))

        assert [r.id for r in response.results] == ["u"]

    @pytest.mark.asyncio
    async def test_deadline_cancels_search(self, history_repo: MagicMock) -> None:
        searchers = _searchers(messages=[_message("late")])
        searchers[SearchDomain.MESSAGES].delay = 1.0
        service = _service(searchers, history_repo, domain_timeout=5.0)

        with pytest.raises(SearchCancelledError):
            await service.search(SearchOptions(query="x", user_id="u1"), timeout=0.05)


class TestHistory:
    """Tests for history recording."""

    @pytest.mark.asyncio
    async def test_history_recorded_once_for_empty_result(
        self, history_repo: MagicMock
    ) -> None:
        service = _service(_searchers(), history_repo)
        filters = SearchFilters(channels=["ch-1"])

        response = await service.search(
            SearchOptions(query="nothing", filters=filters, user_id="u1")
        )
        await service.wait_for_background_tasks()

        assert response.total == 0
        history_repo.add_entry.assert_awaited_once_with(
            "u1", "nothing", filters, "all"
        )

    @pytest.mark.asyncio
    async def test_history_failure_does_not_fail_search(
        self, history_repo: MagicMock
    ) -> None:
        history_repo.add_entry.side_effect = RuntimeError("disk full")
        searchers = _searchers(messages=[_message("msg-1")])
        service = _service(searchers, history_repo)

        response = await service.search(SearchOptions(query="x", user_id="u1"))
        await service.wait_for_background_tasks()

        assert response.total == 1


class TestValidation:
    """Tests for option validation."""

    @pytest.mark.asyncio
    async def test_limit_above_maximum(self, history_repo: MagicMock) -> None:
        service = _service(_searchers(), history_repo, max_limit=100)

        with pytest.raises(SearchValidationError):
            await service.search(SearchOptions(query="x", limit=101, user_id="u1"))

    @pytest.mark.asyncio
    async def test_negative_offset(self, history_repo: MagicMock) -> None:
        service = _service(_searchers(), history_repo)
        options = SearchOptions(query="x", user_id="u1").model_copy(
            update={"offset": -1}
        )

        with pytest.raises(SearchValidationError):
            await service.search(options)

    @pytest.mark.asyncio
    async def test_unknown_scope(self, history_repo: MagicMock) -> None:
        searchers = _searchers()
        service = _service(searchers, history_repo)
        options = SearchOptions(query="x", user_id="u1").model_copy(
            update={"scope": "everything"}
        )

        with pytest.raises(SearchValidationError):
            await service.search(options)

        assert all(not s.calls for s in searchers.values())
        history_repo.add_entry.assert_not_awaited()
