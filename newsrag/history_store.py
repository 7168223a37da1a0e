"""Per-session conversation transcripts with Redis and SQLite backends."""

from __future__ import annotations

import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import redis

from .config import config
from .errors import PersistenceError
from .models import Message

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = config.get_logger(__name__)

HISTORY_KEY_PREFIX = "chat_history:"

ConversationBackend = Literal["redis", "sqlite"]


def history_key(session_id: str) -> str:
    """Storage key holding the transcript for ``session_id``."""  # noqa: DOC201
    return f"{HISTORY_KEY_PREFIX}{session_id}"


class ConversationStore(ABC):
    """Append-only, ordered message log per session."""

    backend: str

    def append(self, session_id: str, message: Message) -> None:
        """Add ``message`` to the tail of the session transcript."""
        self.extend(session_id, [message])

    @abstractmethod
    def extend(self, session_id: str, messages: Sequence[Message]) -> None:
        """Append several messages in one atomic write."""

    @abstractmethod
    def read_all(self, session_id: str) -> list[Message]:
        """Return the transcript oldest first; empty if it does not exist."""

    @abstractmethod
    def clear(self, session_id: str) -> None:
        """Delete the transcript. Clearing a missing session is not an error."""

    def close(self) -> None:  # noqa: B027
        """Release backend resources."""


class RedisConversationStore(ConversationStore):
    """Transcripts stored as Redis lists of JSON-encoded messages."""

    backend = "redis"

    def __init__(self, client: redis.Redis | None = None) -> None:
        """Connect to Redis.

        Args:
            client: Pre-built client. If None, one is built from the REDIS_*
                settings with ``decode_responses`` enabled.
        """
        if client is None:
            client = redis.Redis(
                host=config.REDIS_HOST,
                port=config.REDIS_PORT,
                username=config.REDIS_USERNAME,
                password=config.REDIS_PASSWORD,
                decode_responses=True,
            )
        self.client = client

    def ping(self) -> None:
        """Fail fast at startup if Redis is unreachable.

        Raises:
            PersistenceError: If the server does not answer.
        """
        try:
            self.client.ping()
        except redis.RedisError as exc:
            msg = f"Redis is unreachable: {exc}"
            raise PersistenceError(msg) from exc
        logger.info("Connected to Redis")

    def extend(self, session_id: str, messages: Sequence[Message]) -> None:
        if not messages:
            return
        values = [json.dumps(message.to_dict()) for message in messages]
        try:
            # A single multi-value RPUSH is atomic.
            self.client.rpush(history_key(session_id), *values)
        except redis.RedisError as exc:
            msg = f"Failed to append to session {session_id}: {exc}"
            raise PersistenceError(msg) from exc

    def read_all(self, session_id: str) -> list[Message]:
        try:
            items = self.client.lrange(history_key(session_id), 0, -1)
        except redis.RedisError as exc:
            msg = f"Failed to read session {session_id}: {exc}"
            raise PersistenceError(msg) from exc

        try:
            return [Message.from_dict(json.loads(item)) for item in items]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            msg = f"Corrupt transcript for session {session_id}"
            raise PersistenceError(msg) from exc

    def clear(self, session_id: str) -> None:
        try:
            self.client.delete(history_key(session_id))
        except redis.RedisError as exc:
            msg = f"Failed to clear session {session_id}: {exc}"
            raise PersistenceError(msg) from exc

    def close(self) -> None:
        self.client.close()


class SQLiteConversationStore(ConversationStore):
    """Transcripts stored as rows in a local SQLite database."""

    backend = "sqlite"

    def __init__(self, db_path: Path) -> None:
        """Open the database file and ensure the schema exists."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()

    def _create_tables(self) -> None:
        """Create the messages table and its lookup index if missing."""
        with sqlite3.connect(str(self.db_path)) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    history_key TEXT NOT NULL,
                    sender TEXT NOT NULL CHECK(sender IN ('user','bot')),
                    text TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_key ON messages(history_key)"
            )
            conn.commit()

    def extend(self, session_id: str, messages: Sequence[Message]) -> None:
        if not messages:
            return
        key = history_key(session_id)
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                conn.executemany(
                    "INSERT INTO messages (history_key, sender, text) VALUES (?, ?, ?)",
                    [(key, message.sender, message.text) for message in messages],
                )
        except sqlite3.Error as exc:
            msg = f"Failed to append to session {session_id}: {exc}"
            raise PersistenceError(msg) from exc

    def read_all(self, session_id: str) -> list[Message]:
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT sender, text FROM messages WHERE history_key = ? "
                    "ORDER BY id",
                    (history_key(session_id),),
                )
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to read session {session_id}: {exc}"
            raise PersistenceError(msg) from exc
        return [Message(sender=sender, text=text) for sender, text in rows]

    def clear(self, session_id: str) -> None:
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                conn.execute(
                    "DELETE FROM messages WHERE history_key = ?",
                    (history_key(session_id),),
                )
        except sqlite3.Error as exc:
            msg = f"Failed to clear session {session_id}: {exc}"
            raise PersistenceError(msg) from exc


def get_conversation_store(
    store: ConversationBackend = "redis",
    *,
    db_path: Path | None = None,
    client: redis.Redis | None = None,
) -> ConversationStore:
    """Return a configured conversation store instance.

    Raises:
        ValueError: If an unsupported backend is requested.
    """  # noqa: DOC201
    backend = store.lower()

    if backend == "redis":
        return RedisConversationStore(client=client)

    if backend == "sqlite":
        return SQLiteConversationStore(
            db_path=db_path if db_path is not None else config.CONVERSATION_DB_PATH,
        )

    msg = f"Unsupported conversation store backend: {store}"
    raise ValueError(msg)
