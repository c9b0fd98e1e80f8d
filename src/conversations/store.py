"""ConversationStore — aiosqlite persistence and session continuity.

A user has at most one active conversation. A new message joins it while
the conversation has seen activity within ``SESSION_IDLE_WINDOW``;
otherwise the old conversation is closed and a fresh one opened.
"""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite

from src.config import settings
from src.conversations.models import (
    Conversation,
    ExtractedProfile,
    Message,
    Role,
    make_id,
    make_session_id,
    to_iso,
    utcnow,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

SESSION_IDLE_WINDOW = timedelta(minutes=30)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        session_id TEXT NOT NULL,
        title TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        message_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        last_message_at TEXT NOT NULL,
        extracted_profile TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_conversations_user
        ON conversations (user_id, is_active, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        conversation_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL,
        model TEXT,
        tokens_used INTEGER,
        response_time REAL,
        opportunities_referenced TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_messages_conversation
        ON messages (conversation_id, created_at)
    """,
)

_CONVERSATION_COLUMNS = (
    "id, user_id, session_id, title, is_active, message_count, "
    "created_at, updated_at, last_message_at, extracted_profile"
)
_MESSAGE_COLUMNS = (
    "id, conversation_id, user_id, role, content, created_at, "
    "model, tokens_used, response_time, opportunities_referenced"
)


class ConversationStore:
    """Persists conversations and messages in SQLite.

    Singleton accessed via ``ConversationStore.get()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: ConversationStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False
        self._user_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def get(cls) -> ConversationStore:
        """Return the shared ConversationStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            for statement in _CREATE_TABLES:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
        return db

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        # Entries drop out once no coroutine holds or awaits the lock.
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    @staticmethod
    async def _fetch_active(db: aiosqlite.Connection, user_id: str) -> Conversation | None:
        cursor = await db.execute(
            f"SELECT {_CONVERSATION_COLUMNS} FROM conversations "
            "WHERE user_id = ? AND is_active = 1 "
            "ORDER BY created_at DESC, rowid DESC LIMIT 1",
            (user_id,),
        )
        row = await cursor.fetchone()
        return Conversation.from_row(row) if row else None

    @staticmethod
    async def _open_new(
        db: aiosqlite.Connection,
        user_id: str,
        now: datetime,
        previous: Conversation | None,
        message_count: int,
        title: str | None = None,
    ) -> Conversation:
        if previous is not None:
            await db.execute(
                "UPDATE conversations SET is_active = 0 WHERE id = ?", (previous.id,)
            )
            logger.info("Closed conversation %s for %s", previous.id, user_id)

        conversation = Conversation(
            id=make_id(),
            user_id=user_id,
            session_id=make_session_id(now),
            title=title,
            is_active=True,
            message_count=message_count,
            created_at=now,
            updated_at=now,
            last_message_at=now,
        )
        await db.execute(
            f"INSERT INTO conversations ({_CONVERSATION_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            conversation.to_row(),
        )
        logger.info("Opened conversation %s (%s) for %s", conversation.id, conversation.session_id, user_id)
        return conversation

    # -- Session continuity ----------------------------------------------------

    async def create_or_update(
        self, user_id: str, message: str, now: datetime | None = None
    ) -> Conversation:
        """Attach an inbound message to the user's current conversation.

        Continues the active conversation when its last message is less
        than ``SESSION_IDLE_WINDOW`` old; otherwise deactivates it and
        opens a new one with ``message_count == 1``. The check and the
        writes run under a per-user lock inside one transaction.
        """
        now = now or utcnow()
        async with self._lock_for(user_id):
            db = await self._connect()
            try:
                await db.execute("BEGIN IMMEDIATE")
                active = await self._fetch_active(db, user_id)

                if active is not None and now - active.last_message_at < SESSION_IDLE_WINDOW:
                    active.message_count += 1
                    active.last_message_at = now
                    active.updated_at = now
                    await db.execute(
                        "UPDATE conversations SET message_count = ?, last_message_at = ?, "
                        "updated_at = ? WHERE id = ?",
                        (active.message_count, to_iso(now), to_iso(now), active.id),
                    )
                    await db.commit()
                    logger.debug("Continuing conversation %s: %s", active.id, message[:80])
                    return active

                conversation = await self._open_new(db, user_id, now, active, message_count=1)
                await db.commit()
                return conversation
            except Exception:
                await db.rollback()
                raise
            finally:
                await db.close()

    async def create_conversation(
        self, user_id: str, title: str | None = None, now: datetime | None = None
    ) -> Conversation:
        """Explicitly start a new chat, closing the current one."""
        now = now or utcnow()
        async with self._lock_for(user_id):
            db = await self._connect()
            try:
                await db.execute("BEGIN IMMEDIATE")
                active = await self._fetch_active(db, user_id)
                conversation = await self._open_new(
                    db, user_id, now, active, message_count=0, title=title
                )
                await db.commit()
                return conversation
            except Exception:
                await db.rollback()
                raise
            finally:
                await db.close()

    # -- Conversation queries --------------------------------------------------

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Fetch a conversation by ID, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
            return Conversation.from_row(row) if row else None
        finally:
            await db.close()

    async def get_active_conversation(self, user_id: str) -> Conversation | None:
        db = await self._connect()
        try:
            return await self._fetch_active(db, user_id)
        finally:
            await db.close()

    async def get_user_conversations(self, user_id: str, limit: int = 10) -> list[Conversation]:
        """Return a user's conversations, newest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cursor.fetchall()
            return [Conversation.from_row(row) for row in rows]
        finally:
            await db.close()

    async def update_title(self, conversation_id: str, title: str) -> bool:
        """Set a conversation's title. Returns True if a row was updated."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE conversations SET title = ?, updated_at = ? WHERE id = ?",
                (title, to_iso(utcnow()), conversation_id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def update_profile(self, conversation_id: str, profile: ExtractedProfile) -> bool:
        """Attach extracted profile facts. Returns True if a row was updated."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE conversations SET extracted_profile = ?, updated_at = ? WHERE id = ?",
                (json.dumps(asdict(profile)), to_iso(utcnow()), conversation_id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    # -- Messages --------------------------------------------------------------

    async def add_message(
        self,
        conversation_id: str,
        user_id: str,
        role: Role,
        content: str,
        *,
        model: str | None = None,
        tokens_used: int | None = None,
        response_time: float | None = None,
        opportunities_referenced: list[str] | None = None,
        now: datetime | None = None,
    ) -> Message:
        """Append a message record.

        Conversation counters and timestamps are left to
        ``create_or_update``.
        """
        message = Message(
            id=make_id(),
            conversation_id=conversation_id,
            user_id=user_id,
            role=role,
            content=content,
            created_at=now or utcnow(),
            model=model,
            tokens_used=tokens_used,
            response_time=response_time,
            opportunities_referenced=opportunities_referenced or [],
        )
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO messages ({_MESSAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                message.to_row(),
            )
            await db.commit()
            return message
        finally:
            await db.close()

    async def get_conversation_messages(
        self, conversation_id: str, limit: int = 100, *, latest: bool = False
    ) -> list[Message]:
        """Return a conversation's messages, oldest first.

        With *latest*, the window is the last *limit* messages instead of
        the first.
        """
        order = "DESC" if latest else "ASC"
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE conversation_id = ? "
                f"ORDER BY created_at {order}, rowid {order} LIMIT ?",
                (conversation_id, limit),
            )
            rows = await cursor.fetchall()
            if latest:
                rows.reverse()
            return [Message.from_row(row) for row in rows]
        finally:
            await db.close()

    async def get_user_recent_messages(self, user_id: str, limit: int = 50) -> list[Message]:
        """Return a user's latest messages across conversations, newest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cursor.fetchall()
            return [Message.from_row(row) for row in rows]
        finally:
            await db.close()
