"""Slash commands and live input suggestions."""

from src.commands.registry import ChatSurface, Command, build_default_commands
from src.commands.suggestions import CommandSuggestions, Key, SuggestionState

__all__ = [
    "ChatSurface",
    "Command",
    "CommandSuggestions",
    "Key",
    "SuggestionState",
    "build_default_commands",
]
