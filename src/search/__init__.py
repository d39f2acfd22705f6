"""Search module for federated workspace search.

Provides the query parser, relevance scoring, per-domain searchers,
the federated search service, suggestions and saved searches.
"""

from src.search.exceptions import (
    SavedSearchNotFoundError,
    SearchCancelledError,
    SearchError,
    SearchPermissionError,
    SearchValidationError,
)
from src.search.query_parser import parse_search_query
from src.search.saved_searches import SavedSearchService
from src.search.schemas import (
    ParsedQuery,
    SavedSearch,
    SavedSearchCreate,
    SavedSearchUpdate,
    SearchDomain,
    SearchFilters,
    SearchHistoryEntry,
    SearchOperators,
    SearchOptions,
    SearchResponse,
    SearchResult,
)
from src.search.scoring import calculate_score, get_context, get_highlights
from src.search.search_service import SearchService, sort_results
from src.search.searchers import (
    ChannelSearcher,
    DirectMessageSearcher,
    DomainSearcher,
    FileSearcher,
    MessageSearcher,
    UserSearcher,
)
from src.search.suggestions import SuggestionService

__all__ = [
    "ChannelSearcher",
    "DirectMessageSearcher",
    "DomainSearcher",
    "FileSearcher",
    "MessageSearcher",
    "ParsedQuery",
    "SavedSearch",
    "SavedSearchCreate",
    "SavedSearchNotFoundError",
    "SavedSearchService",
    "SavedSearchUpdate",
    "SearchCancelledError",
    "SearchDomain",
    "SearchError",
    "SearchFilters",
    "SearchHistoryEntry",
    "SearchOperators",
    "SearchOptions",
    "SearchPermissionError",
    "SearchResponse",
    "SearchResult",
    "SearchService",
    "SearchValidationError",
    "SuggestionService",
    "UserSearcher",
    "calculate_score",
    "get_context",
    "get_highlights",
    "parse_search_query",
    "sort_results",
]
