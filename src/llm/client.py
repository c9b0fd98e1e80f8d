"""Async Claude API client for reply generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import anthropic

from src.config import settings

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


@dataclass
class Reply:
    text: str
    model: str
    tokens_used: int = 0


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


async def generate_reply(
    messages: list[dict[str, Any]],
    system: str | list[dict[str, Any]],
    *,
    model: str | None = None,
) -> Reply:
    """Single Claude call over the conversation history.

    Errors from the API propagate; a failed reply is visible to the user.
    """
    client = _get_client()
    model = model or settings.claude_model
    response = await client.messages.create(
        model=model,
        max_tokens=settings.reply_max_tokens,
        system=system,
        messages=messages,
    )

    text = "".join(block.text for block in response.content if block.type == "text")
    usage = getattr(response, "usage", None)
    tokens = (usage.input_tokens + usage.output_tokens) if usage else 0
    logger.info("Reply from %s: %d chars, %d tokens", model, len(text), tokens)
    return Reply(text=text, model=model, tokens_used=tokens)
