"""Command suggestion state machine for a live text input.

The state is a small immutable value (idle, or suggesting with a filter
and a highlighted index). Transitions are pure functions of
``(state, event)``; ``CommandSuggestions`` wires them to a command list
and the chat surface. Everything is synchronous, one event at a time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from src.commands.registry import Command

logger = logging.getLogger(__name__)

_SUGGEST_RE = re.compile(r"/(\w*)", re.ASCII)
_EXECUTE_RE = re.compile(r"/(\w+)(.*)", re.ASCII)


class Key(StrEnum):
    DOWN = "ArrowDown"
    UP = "ArrowUp"
    ENTER = "Enter"
    ESCAPE = "Escape"


@dataclass(frozen=True)
class SuggestionState:
    visible: bool = False
    filter: str = ""
    index: int = 0


IDLE = SuggestionState()


@dataclass(frozen=True)
class KeyOutcome:
    """Result of a key press while suggestions may be open.

    ``handled`` means the default key action (e.g. submit) must not run.
    ``selected`` is the command chosen with Enter, if any.
    """

    state: SuggestionState
    handled: bool
    selected: Command | None = None


def on_input_change(state: SuggestionState, value: str) -> SuggestionState:
    """Enter suggesting for a bare ``/token``; anything else closes it."""
    match = _SUGGEST_RE.fullmatch(value)
    if match:
        return SuggestionState(visible=True, filter=match.group(1), index=0)
    return IDLE


def filter_commands(commands: Sequence[Command], text: str) -> list[Command]:
    """Commands whose trigger or description contains *text*, ignoring case."""
    if not text:
        return list(commands)
    needle = text.lower()
    return [
        c for c in commands
        if needle in c.trigger.lower() or needle in c.description.lower()
    ]


def on_key(state: SuggestionState, key: str, items: Sequence[Command]) -> KeyOutcome:
    """Apply a key press to the suggestion state.

    *items* is the currently filtered list the index points into.
    """
    if not state.visible:
        return KeyOutcome(state, handled=False)

    count = len(items)
    if key == Key.DOWN:
        index = (state.index + 1) % count if count else 0
        return KeyOutcome(replace(state, index=index), handled=True)
    if key == Key.UP:
        index = (state.index - 1) % count if count else 0
        return KeyOutcome(replace(state, index=index), handled=True)
    if key == Key.ENTER:
        if 0 <= state.index < count:
            return KeyOutcome(IDLE, handled=True, selected=items[state.index])
        return KeyOutcome(state, handled=False)
    if key == Key.ESCAPE:
        return KeyOutcome(IDLE, handled=True)
    return KeyOutcome(state, handled=False)


class CommandSuggestions:
    """Suggestion and execution controller for one chat input."""

    def __init__(self, commands: Sequence[Command], set_input: Callable[[str], None]) -> None:
        self._commands = list(commands)
        self._set_input = set_input
        self.state = IDLE

    @property
    def is_visible(self) -> bool:
        return self.state.visible

    @property
    def selected_index(self) -> int:
        return self.state.index

    @property
    def commands(self) -> list[Command]:
        """Commands currently shown in the suggestion list."""
        return filter_commands(self._commands, self.state.filter)

    def handle_input_change(self, value: str) -> None:
        self.state = on_input_change(self.state, value)

    def handle_key_down(self, key: str) -> bool:
        """Process a key press. Returns True if the key was consumed."""
        outcome = on_key(self.state, key, self.commands)
        if outcome.selected is not None:
            self._complete(outcome.selected)
        else:
            self.state = outcome.state
        return outcome.handled

    def select_command(self, index: int) -> None:
        """Complete the command at *index* of the visible list."""
        items = self.commands
        if 0 <= index < len(items):
            self._complete(items[index])

    def close(self) -> None:
        self.state = IDLE

    def execute_command(self, text: str) -> bool:
        """Run a submitted slash command.

        Returns True when the text was a known command and has been
        consumed, False when it should be sent as ordinary chat.
        """
        match = _EXECUTE_RE.fullmatch(text)
        if not match:
            return False

        trigger = f"/{match.group(1)}"
        command = next((c for c in self._commands if c.trigger == trigger), None)
        if command is None:
            logger.debug("Unknown command %s, treating as chat", trigger)
            return False

        logger.info("Executing command %s", trigger)
        command.handler(match.group(2).strip(), text)
        self._set_input("")
        self.state = IDLE
        return True

    def _complete(self, command: Command) -> None:
        self._set_input(command.trigger + " ")
        self.state = IDLE
