"""Slash-command registry and built-in commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class ChatSurface(Protocol):
    """The chat UI as seen by command handlers."""

    def send_message(self, text: str, search_query: str | None = None) -> None:
        """Emit a chat message. ``search_query`` marks a search intent."""

    def set_input(self, value: str) -> None:
        """Replace the text in the input box."""


@dataclass(frozen=True)
class Command:
    """A slash command.

    Attributes:
        id: Stable identifier.
        trigger: The typed token, including the slash (``"/search"``).
        description: One-line help shown in suggestions.
        icon: Icon tag for the suggestion list.
        handler: Called with the trimmed argument string and the raw input.
    """

    id: str
    trigger: str
    description: str
    icon: str
    handler: Callable[[str, str], None]


SEARCH_MESSAGE = (
    "I need current information about: {query}. Please search official Dartmouth sources."
)
HELP_MESSAGE = "Show me all available commands and how to use them effectively."
SAVE_MESSAGE = "Please help me save the last opportunity we discussed to my bookmarks."


def build_default_commands(surface: ChatSurface) -> list[Command]:
    """Return the built-in commands bound to *surface*, in display order."""

    def search(args: str, raw: str) -> None:
        if not args:
            logger.debug("Ignoring /search without a query")
            return
        surface.send_message(SEARCH_MESSAGE.format(query=args), search_query=args)

    def help_(args: str, raw: str) -> None:
        surface.send_message(HELP_MESSAGE)

    def save(args: str, raw: str) -> None:
        surface.send_message(SAVE_MESSAGE)

    return [
        Command(
            id="search",
            trigger="/search",
            description="Search current Dartmouth information",
            icon="search",
            handler=search,
        ),
        Command(
            id="help",
            trigger="/help",
            description="Show available commands and tips",
            icon="help",
            handler=help_,
        ),
        Command(
            id="save",
            trigger="/save",
            description="Save the last opportunity mentioned",
            icon="bookmark",
            handler=save,
        ),
    ]
