"""Schemas for federated workspace search.

Value objects passed between the query parser, the domain searchers,
the orchestrator and the persistence layer. Results are a tagged union
keyed on ``type`` so the merge stage can work on the shared projection
while each domain keeps its own payload.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SearchScope = Literal["all", "messages", "files", "channels", "users"]
SortBy = Literal["relevance", "date"]
SortOrder = Literal["asc", "desc"]
MessageType = Literal["regular", "thread", "dm"]


class SearchDomain(str, Enum):
    """Entity domains a search can fan out to."""

    MESSAGES = "messages"
    DIRECT_MESSAGES = "dms"
    FILES = "files"
    CHANNELS = "channels"
    USERS = "users"


SCOPE_DOMAINS: dict[str, tuple[SearchDomain, ...]] = {
    "all": (
        SearchDomain.MESSAGES,
        SearchDomain.DIRECT_MESSAGES,
        SearchDomain.FILES,
        SearchDomain.CHANNELS,
        SearchDomain.USERS,
    ),
    "messages": (SearchDomain.MESSAGES, SearchDomain.DIRECT_MESSAGES),
    "files": (SearchDomain.FILES,),
    "channels": (SearchDomain.CHANNELS,),
    "users": (SearchDomain.USERS,),
}


class SearchOperators(BaseModel):
    """Structured operators extracted from a raw query string."""

    from_: list[str] = Field(
        default_factory=list,
        alias="from",
        description="Sender identifiers from from:@user",
    )
    in_: list[str] = Field(
        default_factory=list,
        alias="in",
        description="Channel names or ids from in:#channel",
    )
    has: list[str] = Field(
        default_factory=list,
        description="Tags from has:file, has:link, has:attachment, has:reaction",
    )
    before: datetime | None = Field(default=None, description="Inclusive upper bound")
    after: datetime | None = Field(default=None, description="Inclusive lower bound")
    exact: bool = Field(default=False, description="Quoted-phrase mode")
    exclude: list[str] = Field(
        default_factory=list,
        description="Terms following NOT (or a leading hyphen)",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def has_tag(self, *tags: str) -> bool:
        """Whether any of the given has: tags was requested."""
        wanted = {t.lower() for t in tags}
        return any(tag.lower() in wanted for tag in self.has)


class ParsedQuery(BaseModel):
    """Base free-text query plus the operators stripped out of it."""

    base_query: str = Field(default="", description="Free text used for matching")
    operators: SearchOperators = Field(default_factory=SearchOperators)


class DateRange(BaseModel):
    """Inclusive date range filter."""

    start: datetime | None = None
    end: datetime | None = None


class SearchFilters(BaseModel):
    """Caller-supplied restrictions, ANDed with parsed operators."""

    channels: list[str] = Field(default_factory=list, description="Channel ids")
    users: list[str] = Field(default_factory=list, description="Sender user ids")
    date_range: DateRange | None = None
    file_types: list[str] = Field(default_factory=list)
    has_attachments: bool | None = None
    message_types: list[MessageType] = Field(default_factory=list)
    is_archived: bool | None = None
    channel_tier: str | None = None
    is_admin: bool | None = None


class ResultAuthor(BaseModel):
    """Author projection attached to a result."""

    id: str
    name: str


class ResultChannel(BaseModel):
    """Channel projection attached to a result."""

    id: str
    name: str


class BaseSearchResult(BaseModel):
    """Shared projection every result variant carries."""

    id: str
    content: str = ""
    title: str | None = None
    context: str | None = None
    author: ResultAuthor | None = None
    channel: ResultChannel | None = None
    timestamp: datetime
    highlights: list[str] = Field(default_factory=list)
    score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)


class MessageResult(BaseSearchResult):
    """Channel message hit."""

    type: Literal["message"] = "message"
    thread_id: str | None = None


class DirectMessageResult(BaseSearchResult):
    """Direct message hit."""

    type: Literal["dm"] = "dm"
    receiver_id: str | None = None


class FileResult(BaseSearchResult):
    """File upload hit."""

    type: Literal["file"] = "file"
    url: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    mime_type: str | None = None


class ChannelResult(BaseSearchResult):
    """Channel hit."""

    type: Literal["channel"] = "channel"
    tier: str | None = None
    is_private: bool = False
    is_archived: bool = False


class UserResult(BaseSearchResult):
    """User hit."""

    type: Literal["user"] = "user"
    email: str | None = None
    is_admin: bool = False


SearchResult = Annotated[
    MessageResult | DirectMessageResult | FileResult | ChannelResult | UserResult,
    Field(discriminator="type"),
]


class SearchOptions(BaseModel):
    """Everything a single federated search call needs."""

    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    scope: SearchScope = "all"
    limit: int = Field(default=20, ge=0)
    offset: int = Field(default=0, ge=0)
    sort_by: SortBy = "relevance"
    sort_order: SortOrder = "desc"
    user_id: str
    user_channel_ids: list[str] | None = Field(
        default=None,
        description="Channels the caller belongs to; None means unrestricted",
    )


class SearchResponse(BaseModel):
    """One page of merged results plus the pre-pagination total."""

    query: str = Field(description="Original search query")
    results: list[SearchResult] = Field(default_factory=list)
    total: int = Field(description="Size of the merged set before pagination")


class SearchHistoryEntry(BaseModel):
    """One recorded search call."""

    id: int
    user_id: str
    query: str
    filters: SearchFilters | None = None
    scope: str = "all"
    created_at: datetime


class SavedSearch(BaseModel):
    """A named, reusable search owned by one user."""

    id: str
    user_id: str
    name: str
    query: str
    filters: SearchFilters | None = None
    scope: SearchScope = "all"
    is_pinned: bool = False
    usage_count: int = 0
    last_used_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SavedSearchCreate(BaseModel):
    """Fields accepted when saving a search."""

    name: str = Field(min_length=1)
    query: str = Field(min_length=1)
    filters: SearchFilters | None = None
    scope: SearchScope = "all"
    is_pinned: bool = False


class SavedSearchUpdate(BaseModel):
    """Partial update for a saved search; unset fields are left alone."""

    name: str | None = Field(default=None, min_length=1)
    query: str | None = Field(default=None, min_length=1)
    filters: SearchFilters | None = None
    scope: SearchScope | None = None
    is_pinned: bool | None = None
