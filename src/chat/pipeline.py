"""Per-turn orchestration of the chat context pipeline.

A submitted line is first offered to the slash-command parser. A consumed
command emits zero or more chat messages, which then run as ordinary
turns. Each turn is classified, attached to the user's conversation,
personalized from memory, optionally grounded with search, and answered.
Memory extraction runs in the background when the classifier allows it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.chat.classifier import Classification, classify
from src.chat.prompt import build_system_prompt
from src.commands.registry import build_default_commands
from src.commands.suggestions import CommandSuggestions
from src.config import settings
from src.conversations.analytics import AnalyticsStore
from src.conversations.models import Conversation
from src.conversations.store import ConversationStore
from src.llm.client import Reply, generate_reply
from src.memory.extraction import schedule_insight_extraction
from src.memory.store import MemoryStore
from src.retrieval.search import SearchResponse, search

logger = logging.getLogger(__name__)

ReplyFn = Callable[[list[dict[str, Any]], Any], Awaitable[Reply]]
SearchFn = Callable[[str], Awaitable[SearchResponse]]


@dataclass
class OutboundMessage:
    """A chat message emitted by a command handler."""

    text: str
    search_query: str | None = None


@dataclass
class TurnResult:
    conversation: Conversation
    classification: Classification
    reply: str
    search: SearchResponse | None = None
    memory_task: asyncio.Task | None = None


class ChatPipeline:
    """Drives one user's chat input and turns.

    Implements the ``ChatSurface`` protocol for command handlers.
    """

    def __init__(
        self,
        user_id: str,
        *,
        conversations: ConversationStore | None = None,
        memory: MemoryStore | None = None,
        analytics: AnalyticsStore | None = None,
        reply_fn: ReplyFn = generate_reply,
        search_fn: SearchFn = search,
    ) -> None:
        self.user_id = user_id
        self.input_text = ""
        self._conversations = conversations or ConversationStore.get()
        self._memory = memory or MemoryStore.get()
        self._analytics = analytics or AnalyticsStore.get()
        self._reply_fn = reply_fn
        self._search_fn = search_fn
        self._outbox: list[OutboundMessage] = []
        self.commands = CommandSuggestions(build_default_commands(self), self.set_input)

    # -- ChatSurface -----------------------------------------------------------

    def send_message(self, text: str, search_query: str | None = None) -> None:
        self._outbox.append(OutboundMessage(text=text, search_query=search_query))

    def set_input(self, value: str) -> None:
        self.input_text = value

    # -- Input events ----------------------------------------------------------

    def on_input_change(self, value: str) -> None:
        self.input_text = value
        self.commands.handle_input_change(value)

    def on_key_down(self, key: str) -> bool:
        """Forward a key press. Returns True if default handling must be skipped."""
        return self.commands.handle_key_down(key)

    async def greeting(self) -> str:
        return await self._memory.generate_personalized_greeting(self.user_id)

    async def submit(self, text: str | None = None) -> list[TurnResult]:
        """Submit *text* (or the current input) and run the resulting turns.

        Raises whatever search or reply generation raises; memory problems
        never surface here.
        """
        text = self.input_text if text is None else text

        if self.commands.execute_command(text):
            pending, self._outbox = self._outbox, []
            return [await self._run_turn(m.text, m.search_query) for m in pending]

        self.set_input("")
        self.commands.close()
        if not text.strip():
            return []
        return [await self._run_turn(text)]

    # -- Turn ------------------------------------------------------------------

    async def _run_turn(self, text: str, search_query: str | None = None) -> TurnResult:
        classification = classify(text)
        logger.info(
            "Turn for %s classified as %s (%.2f)",
            self.user_id, classification.type, classification.confidence,
        )

        conversation = await self._conversations.create_or_update(self.user_id, text)
        await self._conversations.add_message(conversation.id, self.user_id, "user", text)
        memory_task = schedule_insight_extraction(
            self.user_id, text, classification, self._memory
        )

        context = await self._memory.build_personalized_context(self.user_id)
        found = await self._search_fn(search_query) if search_query else None

        history = await self._conversations.get_conversation_messages(
            conversation.id, limit=settings.conversation_history_limit, latest=True
        )
        system = build_system_prompt(context, found)

        started = time.monotonic()
        reply = await self._reply_fn([m.to_api_message() for m in history], system)
        elapsed = time.monotonic() - started

        await self._conversations.add_message(
            conversation.id,
            self.user_id,
            "assistant",
            reply.text,
            model=reply.model,
            tokens_used=reply.tokens_used,
            response_time=elapsed,
        )
        await self._analytics.track_chat_message(self.user_id, reply.tokens_used, elapsed)

        return TurnResult(
            conversation=conversation,
            classification=classification,
            reply=reply.text,
            search=found,
            memory_task=memory_task,
        )
