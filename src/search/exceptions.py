"""Exceptions raised by the search core."""


class SearchError(Exception):
    """Base class for search errors surfaced to callers."""


class SearchValidationError(SearchError, ValueError):
    """Search options rejected before any domain is queried."""


class SearchPermissionError(SearchError):
    """Caller does not own the saved search it tried to change."""

    def __init__(self, saved_search_id: str, user_id: str):
        self.saved_search_id = saved_search_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is not allowed to modify saved search {saved_search_id}"
        )


class SavedSearchNotFoundError(SearchError):
    """Saved search does not exist."""

    def __init__(self, saved_search_id: str):
        self.saved_search_id = saved_search_id
        super().__init__(f"Saved search {saved_search_id} not found")


class SearchCancelledError(SearchError):
    """Search exceeded the caller's deadline; no partial result is returned."""
