"""Repository layer for data persistence.

Provides repository classes for the stores federated search reads from
(messages, files, channels, users) and the stores it writes to
(search history, saved searches). Repositories encapsulate data access
logic and provide a clean interface for the service layer.
"""

from src.repositories.channel_repo import ChannelRepository
from src.repositories.file_repo import FileRepository
from src.repositories.history_repo import SearchHistoryRepository
from src.repositories.message_repo import MessageRepository
from src.repositories.saved_search_repo import SavedSearchRepository
from src.repositories.user_repo import UserRepository

__all__ = [
    "ChannelRepository",
    "FileRepository",
    "MessageRepository",
    "SavedSearchRepository",
    "SearchHistoryRepository",
    "UserRepository",
]
