"""Data models for long-term personalization memory."""

from enum import StrEnum

from pydantic import BaseModel, Field


class MemoryCategory(StrEnum):
    PROFILE = "profile"
    INTERESTS = "interests"
    GOALS = "goals"
    PREFERENCES = "preferences"
    INTERACTIONS = "interactions"
    PROGRESS = "progress"


class MemoryEntry(BaseModel):
    """A memory written to or read back from the store.

    ``id`` and ``score`` are only populated for entries read from Mem0.
    ``timestamp`` is milliseconds since the epoch.
    """

    content: str
    category: MemoryCategory
    user_id: str
    source: str = "explicit"
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    timestamp: int = 0
    id: str = ""
    score: float = 0.0


class PersonalizedContext(BaseModel):
    """Memories partitioned by category for prompt personalization."""

    profile: list[MemoryEntry] = Field(default_factory=list)
    recent_interests: list[MemoryEntry] = Field(default_factory=list)
    goals: list[MemoryEntry] = Field(default_factory=list)
    preferences: list[MemoryEntry] = Field(default_factory=list)
    recent_interactions: list[MemoryEntry] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.profile
            or self.recent_interests
            or self.goals
            or self.preferences
            or self.recent_interactions
        )
