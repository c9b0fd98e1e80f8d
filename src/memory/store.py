"""Per-user personalization memory backed by Mem0.

Supports two modes controlled by environment variables:
- Hosted (default): Set MEM0_API_KEY. Uses Mem0's cloud platform.
- Disabled: No MEM0_API_KEY. Writes become no-ops and reads return empty
  results. The assistant still works, just without personalization.

Every operation is best-effort. Transport failures and timeouts are
logged and mapped to ``None``, ``[]`` or ``False``; nothing here raises
into the reply path.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import Any

from src.config import settings
from src.memory.models import MemoryCategory, MemoryEntry, PersonalizedContext

logger = logging.getLogger(__name__)

RECENT_INTERESTS_LIMIT = 5
RECENT_INTERACTIONS_LIMIT = 3

YEAR_TOKENS = {
    "first-year": "first-year",
    "first year": "first-year",
    "sophomore": "sophomore",
    "junior": "junior",
    "senior": "senior",
    "grad": "grad student",
}

GENERIC_GREETING = "Hey! Ready to discover some opportunities at Dartmouth?"
RETURNING_GREETING = "Good to see you again! What opportunities should we discover today?"


class MemoryStore:
    """Singleton memory store.

    Get the shared instance via ``MemoryStore.get()``.
    """

    _instance: "MemoryStore | None" = None

    def __init__(self) -> None:
        self._client: Any = None
        self._enabled = False
        self._timeout = settings.memory_timeout_seconds
        self._init_backend()

    def _init_backend(self) -> None:
        if settings.mem0_api_key:
            try:
                from mem0 import AsyncMemoryClient

                self._client = AsyncMemoryClient(api_key=settings.mem0_api_key)
                self._enabled = True
                logger.info("Memory store: hosted mode (Mem0 cloud)")
            except Exception:
                logger.exception("Failed to init Mem0 client")
        else:
            logger.warning(
                "Memory store disabled — set MEM0_API_KEY to enable personalization"
            )

    @classmethod
    def get(cls) -> "MemoryStore":
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    # -- Write ---------------------------------------------------------------

    async def add_memory(self, entry: MemoryEntry) -> dict | None:
        """Store a memory for ``entry.user_id``.

        Returns:
            The Mem0 result, or None if disabled or the write failed.
        """
        if not self._enabled:
            return None

        metadata = {
            "category": entry.category.value,
            "source": entry.source,
            "confidence": entry.confidence,
            "timestamp": entry.timestamp or int(time.time() * 1000),
        }

        try:
            result = await self._call(
                self._client.add(entry.content, user_id=entry.user_id, metadata=metadata)
            )
            logger.debug(
                "Stored memory [%s/%s] for %s: %s",
                entry.source, entry.category, entry.user_id, entry.content[:80],
            )
            return result
        except Exception:
            logger.exception("Failed to store memory for %s", entry.user_id)
            return None

    async def update_memory(self, memory_id: str, content: str) -> dict | None:
        """Replace the text of a memory. Returns None on failure."""
        if not self._enabled:
            return None

        try:
            result = await self._call(self._client.update(memory_id, text=content))
            logger.info("Updated memory: %s", memory_id)
            return result
        except Exception:
            logger.exception("Failed to update memory %s", memory_id)
            return None

    async def delete_memory(self, memory_id: str) -> bool:
        """Delete a memory by ID.

        Returns True if successful.
        """
        if not self._enabled:
            return False

        try:
            await self._call(self._client.delete(memory_id))
            logger.info("Deleted memory: %s", memory_id)
            return True
        except Exception:
            logger.exception("Failed to delete memory %s", memory_id)
            return False

    # -- Read ----------------------------------------------------------------

    async def get_user_memories(self, user_id: str) -> list[MemoryEntry]:
        """Retrieve every memory stored for a user."""
        if not self._enabled:
            return []

        try:
            raw = await self._call(self._client.get_all(filters={"user_id": user_id}))
            return self._normalize(raw, user_id)
        except Exception:
            logger.exception("Failed to fetch memories for %s", user_id)
            return []

    async def search_memories(
        self,
        user_id: str,
        query: str | None = None,
        limit: int = 10,
    ) -> list[MemoryEntry]:
        """Search a user's memories, or list them all when no query is given."""
        if not query:
            return await self.get_user_memories(user_id)
        if not self._enabled:
            return []

        try:
            raw = await self._call(
                self._client.search(query, filters={"user_id": user_id}, top_k=limit)
            )
            return self._normalize(raw, user_id)
        except Exception:
            logger.exception("Memory search failed for %s", user_id)
            return []

    # -- Personalization -----------------------------------------------------

    async def build_personalized_context(self, user_id: str) -> PersonalizedContext:
        """Partition a user's memories for prompt building.

        Interest and interaction lists are newest first and capped. Any
        failure yields an empty context.
        """
        try:
            memories = await self.get_user_memories(user_id)
            newest_first = sorted(memories, key=lambda m: m.timestamp, reverse=True)

            def of(category: MemoryCategory) -> list[MemoryEntry]:
                return [m for m in newest_first if m.category == category]

            return PersonalizedContext(
                profile=of(MemoryCategory.PROFILE),
                recent_interests=of(MemoryCategory.INTERESTS)[:RECENT_INTERESTS_LIMIT],
                goals=of(MemoryCategory.GOALS),
                preferences=of(MemoryCategory.PREFERENCES),
                recent_interactions=of(MemoryCategory.INTERACTIONS)[
                    :RECENT_INTERACTIONS_LIMIT
                ],
            )
        except Exception:
            logger.exception("Failed to build personalized context for %s", user_id)
            return PersonalizedContext()

    async def generate_personalized_greeting(self, user_id: str) -> str:
        """Pick an opening line based on what we remember about the user."""
        try:
            context = await self.build_personalized_context(user_id)
            if not context.profile:
                return GENERIC_GREETING

            profile_text = context.profile[0].content.lower()
            interest = context.recent_interests[0].content if context.recent_interests else ""

            year = next((label for token, label in YEAR_TOKENS.items() if token in profile_text), "")
            if year:
                suffix = f" interested in {interest}" if interest else ""
                return (
                    f"Hey! I remember you're a {year}{suffix}. "
                    "What would you like to explore today?"
                )
            if interest:
                return f"Welcome back! Ready to dive deeper into {interest}, or explore something new?"
            return RETURNING_GREETING
        except Exception:
            logger.exception("Failed to generate personalized greeting")
            return GENERIC_GREETING

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _normalize(raw: Any, user_id: str) -> list[MemoryEntry]:
        """Normalize Mem0 results into MemoryEntry list.

        Entries tagged with a category we do not recognise are dropped.
        """
        if isinstance(raw, dict):
            items = raw.get("results", [])
        elif isinstance(raw, list):
            items = raw
        else:
            items = []

        entries = []
        for item in items:
            if not isinstance(item, dict):
                continue
            meta = item.get("metadata", {}) or {}
            try:
                category = MemoryCategory(meta.get("category", ""))
            except ValueError:
                logger.debug("Skipping memory %s with category %r", item.get("id"), meta.get("category"))
                continue
            try:
                entries.append(
                    MemoryEntry(
                        id=item.get("id", ""),
                        content=item.get("memory", ""),
                        category=category,
                        user_id=item.get("user_id") or user_id,
                        source=meta.get("source", "unknown"),
                        confidence=min(max(float(meta.get("confidence", 1.0)), 0.0), 1.0),
                        timestamp=int(meta.get("timestamp", 0) or 0),
                        score=float(item.get("score", 0.0) or 0.0),
                    )
                )
            except (TypeError, ValueError):
                logger.warning("Skipping malformed memory %s", item.get("id"))
        return entries
