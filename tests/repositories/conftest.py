"""Fixtures for repository tests backed by a temp file database."""

import pytest

from src.db.turso import TursoClient
from src.repositories.channel_repo import ChannelRepository
from src.repositories.file_repo import FileRepository
from src.repositories.message_repo import MessageRepository
from src.repositories.user_repo import UserRepository

USERS = [
    ("user-jane", "jdoe", "Jane", "Doe", "jane@example.com", 0),
    ("user-bob", "bsmith", "Bob", "Smith", "bob@example.com", 1),
    ("user-me", "me", "Morgan", "Lee", "morgan@example.com", 0),
]

CHANNELS = [
    ("ch-general", "general", "Company-wide announcements", None, "core", 0, 0),
    ("ch-eng", "engineering", "Engineering team", "Ship it", "core", 0, 0),
    ("ch-old", "old-projects", "Archived work", None, "misc", 0, 1),
]

MEMBERS = [
    ("ch-general", "user-me"),
    ("ch-eng", "user-me"),
    ("ch-general", "user-jane"),
]

MESSAGES = [
    # id, channel, sender, content, parent, file_ids, reactions, created_at
    ("m1", "ch-general", "user-jane", "Hello team, sales are up", None, None, 2,
     "2024-01-10 09:00:00"),
    ("m2", "ch-general", "user-bob", "Sales deal was rejected", None, None, 0,
     "2024-01-11 09:00:00"),
    ("m3", "ch-eng", "user-jane", "Deploy notes attached", None, '["f1"]', 0,
     "2024-01-12 09:00:00"),
    ("m4", "ch-eng", "user-bob", "Reply in thread: see https://example.com",
     "m3", None, 1, "2024-01-13 09:00:00"),
    ("m5", "ch-old", "user-jane", "Q3 budget hit 100% of plan", None, "[]", 0,
     "2024-01-14 09:00:00"),
]

DIRECT_MESSAGES = [
    ("d1", "user-jane", "user-me", "hello Morgan, about sales", None,
     "2024-01-10 10:00:00"),
    ("d2", "user-me", "user-bob", "hello Bob", None, "2024-01-11 10:00:00"),
    ("d3", "user-jane", "user-bob", "hello Bob from Jane", None,
     "2024-01-12 10:00:00"),
]

FILES = [
    ("f1", "user-jane", "m3", "deploy-notes.pdf", "pdf", 2048, "application/pdf",
     "https://files.example.com/f1", "2024-01-12 09:00:00"),
    ("f2", "user-bob", None, "sales-report.xlsx", "xlsx", 4096,
     "application/vnd.ms-excel", "https://files.example.com/f2",
     "2024-01-15 09:00:00"),
]


@pytest.fixture
async def seeded_db(db_client: TursoClient) -> TursoClient:
    """Database with every search table created and seeded."""
    for repo in (
        UserRepository(db_client),
        ChannelRepository(db_client),
        MessageRepository(db_client),
        FileRepository(db_client),
    ):
        await repo.initialize()

    for row in USERS:
        await db_client.execute(
            """
            INSERT INTO users (id, username, first_name, last_name, email, is_admin)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            list(row),
        )
    for row in CHANNELS:
        await db_client.execute(
            """
            INSERT INTO channels
                (id, name, description, purpose, tier, is_private, is_archived)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            list(row),
        )
    for row in MEMBERS:
        await db_client.execute(
            "INSERT INTO channel_members (channel_id, user_id) VALUES (?, ?)",
            list(row),
        )
    for row in MESSAGES:
        await db_client.execute(
            """
            INSERT INTO messages
                (id, channel_id, sender_id, content, parent_id, file_ids,
                 reaction_count, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            list(row),
        )
    for row in DIRECT_MESSAGES:
        await db_client.execute(
            """
            INSERT INTO direct_messages
                (id, sender_id, receiver_id, content, file_ids, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            list(row),
        )
    for row in FILES:
        await db_client.execute(
            """
            INSERT INTO file_uploads
                (id, user_id, message_id, file_name, file_type, file_size,
                 mime_type, file_url, uploaded_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            list(row),
        )
    return db_client
