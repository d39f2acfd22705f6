"""Federated search across messages, direct messages, files, channels and users.

Parses the query once, fans out to the domain searchers in scope
concurrently, merges and ranks their results, paginates the merged set
and records the search in the caller's history.
"""

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.config import settings
from src.search.exceptions import SearchCancelledError, SearchValidationError
from src.search.query_parser import parse_search_query
from src.search.schemas import (
    SCOPE_DOMAINS,
    BaseSearchResult,
    ParsedQuery,
    SearchDomain,
    SearchOptions,
    SearchResponse,
)

if TYPE_CHECKING:
    from src.repositories.history_repo import SearchHistoryRepository
    from src.search.searchers import DomainSearcher

logger = structlog.get_logger()

SORT_FIELDS = ("relevance", "date")
SORT_ORDERS = ("asc", "desc")


def sort_results(
    results: list[BaseSearchResult],
    sort_by: str = "relevance",
    sort_order: str = "desc",
) -> list[BaseSearchResult]:
    """Stable sort of merged results.

    Relevance is always highest score first; date honours sort_order.
    Ties keep their per-domain order.
    """
    if sort_by == "date":
        return sorted(
            results, key=lambda r: r.timestamp, reverse=sort_order == "desc"
        )
    return sorted(results, key=lambda r: r.score, reverse=True)


class SearchService:
    """Federated search over every workspace domain.

    Domains are independent and read-only: they run concurrently and a
    domain that errors or times out contributes no results instead of
    failing the call. History is written in the background and its
    failure is only logged.
    """

    def __init__(
        self,
        searchers: list["DomainSearcher"],
        history_repo: "SearchHistoryRepository",
        domain_timeout: float | None = None,
        max_domain_rows: int | None = None,
        max_limit: int | None = None,
        strip_invalid_dates: bool | None = None,
    ):
        """Initialize search service.

        Args:
            searchers: One searcher per domain
            history_repo: Store that receives one history row per search
            domain_timeout: Seconds before a domain is dropped
            max_domain_rows: Rows fetched per domain before merging
            max_limit: Largest page size a caller may request
            strip_invalid_dates: Drop unparseable before:/after: tokens
        """
        self._searchers: dict[SearchDomain, DomainSearcher] = {
            s.domain: s for s in searchers
        }
        self._history = history_repo
        self._domain_timeout = domain_timeout or settings.search_domain_timeout_seconds
        self._max_domain_rows = max_domain_rows or settings.search_domain_max_rows
        self._max_limit = max_limit or settings.search_max_limit
        self._strip_invalid_dates = (
            settings.search_strip_invalid_dates
            if strip_invalid_dates is None
            else strip_invalid_dates
        )
        self._background_tasks: set[asyncio.Task] = set()

    async def search(
        self,
        options: SearchOptions,
        timeout: float | None = None,
    ) -> SearchResponse:
        """Run one federated search.

        Args:
            options: Query, filters, scope, pagination, sort and caller
            timeout: Overall deadline in seconds; None for no deadline

        Returns:
            SearchResponse with one page of results and the merged total

        Raises:
            SearchValidationError: Options are malformed
            SearchCancelledError: The deadline passed before all domains finished
        """
        self._validate(options)
        parsed = parse_search_query(
            options.query, strip_invalid_dates=self._strip_invalid_dates
        )
        logger.debug(
            "parsed search query",
            base_query=parsed.base_query,
            operators=parsed.operators.model_dump(exclude_defaults=True),
        )

        self._record_history(options)

        domains = [d for d in SCOPE_DOMAINS[options.scope] if d in self._searchers]
        max_rows = max(self._max_domain_rows, options.offset + options.limit)

        try:
            async with asyncio.timeout(timeout):
                per_domain = await asyncio.gather(
                    *(
                        self._search_domain(domain, parsed, options, max_rows)
                        for domain in domains
                    )
                )
        except TimeoutError as e:
            logger.warning(
                "search deadline exceeded",
                user_id=options.user_id,
                scope=options.scope,
                timeout=timeout,
            )
            msg = f"Search did not complete within {timeout} seconds"
            raise SearchCancelledError(msg) from e

        merged = [result for results in per_domain for result in results]
        ranked = sort_results(merged, options.sort_by, options.sort_order)
        page = ranked[options.offset : options.offset + options.limit]

        logger.info(
            "search completed",
            user_id=options.user_id,
            scope=options.scope,
            domains=[d.value for d in domains],
            total=len(ranked),
            returned=len(page),
        )

        return SearchResponse(query=options.query, results=page, total=len(ranked))

    def _validate(self, options: SearchOptions) -> None:
        if options.limit < 0 or options.offset < 0:
            msg = "limit and offset must not be negative"
            raise SearchValidationError(msg)
        if options.limit > self._max_limit:
            msg = f"limit must not exceed {self._max_limit}"
            raise SearchValidationError(msg)
        if options.scope not in SCOPE_DOMAINS:
            msg = f"Unknown search scope: {options.scope}"
            raise SearchValidationError(msg)
        if options.sort_by not in SORT_FIELDS:
            msg = f"Unknown sort field: {options.sort_by}"
            raise SearchValidationError(msg)
        if options.sort_order not in SORT_ORDERS:
            msg = f"Unknown sort order: {options.sort_order}"
            raise SearchValidationError(msg)

    async def _search_domain(
        self,
        domain: SearchDomain,
        parsed: ParsedQuery,
        options: SearchOptions,
        max_rows: int,
    ) -> list[BaseSearchResult]:
        """Run one domain, degrading to no results on error or timeout."""
        searcher = self._searchers[domain]
        try:
            return await asyncio.wait_for(
                searcher.search(parsed, options, max_rows),
                timeout=self._domain_timeout,
            )
        except TimeoutError:
            logger.warning(
                "search domain timed out",
                domain=domain.value,
                timeout=self._domain_timeout,
            )
        except Exception as e:
            logger.warning(
                "search domain failed",
                domain=domain.value,
                error=str(e),
                error_type=type(e).__name__,
            )
        return []

    def _record_history(self, options: SearchOptions) -> None:
        """Schedule the history write without blocking the response."""
        task = asyncio.create_task(self._write_history(options))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _write_history(self, options: SearchOptions) -> None:
        try:
            await self._history.add_entry(
                options.user_id,
                options.query,
                options.filters,
                options.scope,
            )
        except Exception as e:
            logger.warning(
                "search history write failed",
                user_id=options.user_id,
                error=str(e),
            )

    async def wait_for_background_tasks(self) -> None:
        """Wait for pending history writes, e.g. on shutdown."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
