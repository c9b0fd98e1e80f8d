"""Automatic insight extraction from user messages.

After a memory-worthy message, a background task runs a fixed set of
pattern triggers over the text and stores whatever they find. Triggers
are independent: one message can produce a profile entry, an interest, a
goal and a preference all at once.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass

from src.chat.classifier import Classification, skip_memory
from src.config import settings
from src.memory.models import MemoryCategory, MemoryEntry
from src.memory.store import MemoryStore

logger = logging.getLogger(__name__)

EXTRACTION_SOURCE = "conversation_extraction"
INTERACTION_SOURCE = "interaction_analysis"

APPRECIATES_HELP = "User appreciates helpful responses"
APPRECIATES_HUMOR = "User appreciates humor and casual tone"


@dataclass(frozen=True)
class _ProfileTrigger:
    pattern: re.Pattern[str]
    category: MemoryCategory
    group: int = 0


_PROFILE_TRIGGERS = (
    _ProfileTrigger(
        re.compile(r"(first.year|sophomore|junior|senior|grad)", re.IGNORECASE),
        MemoryCategory.PROFILE,
    ),
    _ProfileTrigger(
        re.compile(r"(major|studying|interested in) ([^.!?]+)", re.IGNORECASE),
        MemoryCategory.INTERESTS,
        group=2,
    ),
    _ProfileTrigger(
        re.compile(r"(international|first.gen|first generation)", re.IGNORECASE),
        MemoryCategory.PROFILE,
    ),
)

_GOAL_PATTERNS = (
    re.compile(r"\bi want to\b", re.IGNORECASE),
    re.compile(r"\bi hope to\b", re.IGNORECASE),
    re.compile(r"\bi plan to\b", re.IGNORECASE),
    re.compile(r"\bmy goal is\b", re.IGNORECASE),
    re.compile(r"\blooking for\b", re.IGNORECASE),
)

_GRATITUDE = re.compile(r"thank|helpful", re.IGNORECASE)
_HUMOR = re.compile(r"\blol\b|haha|[\U0001F604\U0001F602\U0001F60A]", re.IGNORECASE)

# Strong references to in-flight extraction tasks so they are not collected early.
_background_tasks: set[asyncio.Task] = set()


def find_insights(user_id: str, message: str) -> list[MemoryEntry]:
    """Run every trigger over *message* and return the entries to store."""
    now = int(time.time() * 1000)
    entries: list[MemoryEntry] = []

    def entry(content: str, category: MemoryCategory, source: str, confidence: float) -> MemoryEntry:
        return MemoryEntry(
            content=content,
            category=category,
            user_id=user_id,
            source=source,
            confidence=confidence,
            timestamp=now,
        )

    for trigger in _PROFILE_TRIGGERS:
        match = trigger.pattern.search(message)
        if match:
            content = match.group(trigger.group).strip()
            entries.append(entry(content, trigger.category, EXTRACTION_SOURCE, 0.8))

    # The whole message is the goal; one per message is enough.
    for pattern in _GOAL_PATTERNS:
        if pattern.search(message):
            entries.append(entry(message.strip(), MemoryCategory.GOALS, EXTRACTION_SOURCE, 0.7))
            break

    if _GRATITUDE.search(message):
        entries.append(
            entry(APPRECIATES_HELP, MemoryCategory.PREFERENCES, INTERACTION_SOURCE, 0.6)
        )

    if _HUMOR.search(message):
        entries.append(
            entry(APPRECIATES_HUMOR, MemoryCategory.PREFERENCES, INTERACTION_SOURCE, 0.7)
        )

    return entries


async def extract_conversation_insights(
    user_id: str,
    message: str,
    store: MemoryStore | None = None,
) -> list[MemoryEntry]:
    """Extract insights from a user message and save them.

    Returns the entries that were submitted. Store failures are absorbed
    by the store itself; anything else is logged and swallowed so the
    reply path never notices.
    """
    store = store or MemoryStore.get()
    try:
        entries = find_insights(user_id, message)
        for item in entries:
            await store.add_memory(item)
        if entries:
            logger.info("Extracted %d insights for %s", len(entries), user_id)
        return entries
    except Exception:
        logger.exception("Insight extraction failed (non-fatal)")
        return []


def schedule_insight_extraction(
    user_id: str,
    message: str,
    classification: Classification,
    store: MemoryStore | None = None,
) -> asyncio.Task | None:
    """Start background extraction if the classification calls for it.

    Must be called from a running event loop. Returns the task, or None
    when extraction is skipped.
    """
    if not settings.memory_extraction_enabled or skip_memory(classification):
        logger.debug("Skipping memory extraction (%s)", classification.type)
        return None

    task = asyncio.create_task(extract_conversation_insights(user_id, message, store))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
