"""Conversation and message data models."""

from __future__ import annotations

import json
import secrets
import string
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

Role = Literal["user", "assistant", "system"]

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_iso(ts: datetime) -> str:
    return ts.astimezone(UTC).isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


def make_id() -> str:
    """Generate a new record ID."""
    return uuid.uuid4().hex


def make_session_id(now: datetime) -> str:
    """Session IDs look like ``session_<epoch ms>_<9 random chars>``."""
    suffix = "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(9))
    return f"session_{int(now.timestamp() * 1000)}_{suffix}"


@dataclass
class ExtractedProfile:
    """Profile facts gleaned from a conversation."""

    year: str | None = None
    interests: list[str] = field(default_factory=list)
    goals: str | None = None
    major: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtractedProfile:
        return cls(
            year=data.get("year"),
            interests=list(data.get("interests") or []),
            goals=data.get("goals"),
            major=data.get("major"),
        )


@dataclass
class Conversation:
    """A bounded run of messages for one user.

    Attributes:
        id: Unique identifier (UUID hex).
        user_id: Owner of the conversation.
        session_id: Client-facing session identifier.
        is_active: Whether this is the user's current conversation. Once
            cleared it is never set again.
        message_count: Number of user turns attached by the session manager.
        created_at / updated_at / last_message_at: UTC timestamps.
        title: Optional display title.
        extracted_profile: Optional profile facts for this conversation.
    """

    id: str
    user_id: str
    session_id: str
    is_active: bool = True
    message_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_message_at: datetime = field(default_factory=utcnow)
    title: str | None = None
    extracted_profile: ExtractedProfile | None = None

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``conversations`` column order."""
        return (
            self.id,
            self.user_id,
            self.session_id,
            self.title,
            int(self.is_active),
            self.message_count,
            to_iso(self.created_at),
            to_iso(self.updated_at),
            to_iso(self.last_message_at),
            json.dumps(asdict(self.extracted_profile)) if self.extracted_profile else None,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Conversation:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            user_id=row[1],
            session_id=row[2],
            title=row[3],
            is_active=bool(row[4]),
            message_count=row[5],
            created_at=from_iso(row[6]),
            updated_at=from_iso(row[7]),
            last_message_at=from_iso(row[8]),
            extracted_profile=ExtractedProfile.from_dict(json.loads(row[9])) if row[9] else None,
        )


@dataclass
class Message:
    """A single stored chat message."""

    id: str
    conversation_id: str
    user_id: str
    role: Role
    content: str
    created_at: datetime = field(default_factory=utcnow)
    model: str | None = None
    tokens_used: int | None = None
    response_time: float | None = None
    opportunities_referenced: list[str] = field(default_factory=list)

    def to_row(self) -> tuple:
        return (
            self.id,
            self.conversation_id,
            self.user_id,
            self.role,
            self.content,
            to_iso(self.created_at),
            self.model,
            self.tokens_used,
            self.response_time,
            json.dumps(self.opportunities_referenced),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Message:
        return cls(
            id=row[0],
            conversation_id=row[1],
            user_id=row[2],
            role=row[3],
            content=row[4],
            created_at=from_iso(row[5]),
            model=row[6],
            tokens_used=row[7],
            response_time=row[8],
            opportunities_referenced=json.loads(row[9]) if row[9] else [],
        )

    def to_api_message(self) -> dict[str, str]:
        """Format for the Claude API."""
        return {"role": self.role, "content": self.content}
