"""Tests for slash-command parsing and the suggestion state machine."""

from dataclasses import dataclass, field

import pytest

from src.commands.registry import HELP_MESSAGE, SAVE_MESSAGE, Command, build_default_commands
from src.commands.suggestions import (
    IDLE,
    CommandSuggestions,
    Key,
    SuggestionState,
    filter_commands,
    on_input_change,
    on_key,
)


@dataclass
class FakeSurface:
    """Records what command handlers emit."""

    sent: list[tuple[str, str | None]] = field(default_factory=list)
    input: str = ""

    def send_message(self, text: str, search_query: str | None = None) -> None:
        self.sent.append((text, search_query))

    def set_input(self, value: str) -> None:
        self.input = value


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def suggestions(surface: FakeSurface) -> CommandSuggestions:
    return CommandSuggestions(build_default_commands(surface), surface.set_input)


# -- pure transitions ----------------------------------------------------------


def test_input_change_enters_suggesting() -> None:
    state = on_input_change(IDLE, "/se")
    assert state == SuggestionState(visible=True, filter="se", index=0)


def test_bare_slash_shows_everything() -> None:
    state = on_input_change(IDLE, "/")
    assert state.visible and state.filter == ""


@pytest.mark.parametrize(
    "value", ["/search foo", "hello", "", " /help", "/a-b", "/se\n", "/s\u00e9"]
)
def test_other_shapes_exit_suggesting(value: str) -> None:
    state = on_input_change(SuggestionState(True, "x", 2), value)
    assert state == IDLE


def test_input_change_resets_index() -> None:
    state = on_input_change(SuggestionState(True, "s", 2), "/sa")
    assert state.index == 0


def test_filter_matches_trigger_or_description(surface: FakeSurface) -> None:
    commands = build_default_commands(surface)
    assert [c.trigger for c in filter_commands(commands, "se")] == ["/search"]
    assert [c.trigger for c in filter_commands(commands, "TIPS")] == ["/help"]
    assert len(filter_commands(commands, "")) == 3
    assert filter_commands(commands, "zzz") == []


def test_keys_ignored_when_idle(surface: FakeSurface) -> None:
    items = build_default_commands(surface)
    outcome = on_key(IDLE, Key.DOWN, items)
    assert outcome.handled is False
    assert outcome.state == IDLE


def test_down_and_up_wrap(surface: FakeSurface) -> None:
    items = build_default_commands(surface)
    state = SuggestionState(True, "", 2)
    assert on_key(state, Key.DOWN, items).state.index == 0
    assert on_key(SuggestionState(True, "", 0), Key.UP, items).state.index == 2


def test_enter_selects_highlighted(surface: FakeSurface) -> None:
    items = build_default_commands(surface)
    outcome = on_key(SuggestionState(True, "", 1), Key.ENTER, items)
    assert outcome.handled
    assert outcome.selected is items[1]
    assert outcome.state == IDLE


def test_enter_with_no_items_is_not_handled() -> None:
    state = SuggestionState(True, "zzz", 0)
    outcome = on_key(state, Key.ENTER, [])
    assert outcome.handled is False
    assert outcome.selected is None


def test_navigation_with_no_items_keeps_index() -> None:
    state = SuggestionState(True, "zzz", 0)
    assert on_key(state, Key.DOWN, []).state.index == 0
    assert on_key(state, Key.UP, []).state.index == 0


def test_escape_closes(surface: FakeSurface) -> None:
    outcome = on_key(SuggestionState(True, "s", 0), Key.ESCAPE, build_default_commands(surface))
    assert outcome.handled
    assert outcome.state == IDLE


def test_other_keys_not_handled(surface: FakeSurface) -> None:
    state = SuggestionState(True, "s", 0)
    outcome = on_key(state, "a", build_default_commands(surface))
    assert outcome.handled is False
    assert outcome.state == state


# -- controller ----------------------------------------------------------------


def test_typing_se_then_enter_completes_search(
    suggestions: CommandSuggestions, surface: FakeSurface
) -> None:
    suggestions.handle_input_change("/se")
    assert suggestions.is_visible
    assert [c.trigger for c in suggestions.commands] == ["/search"]

    assert suggestions.handle_key_down(Key.DOWN) is True
    assert suggestions.selected_index == 0

    assert suggestions.handle_key_down(Key.ENTER) is True
    assert surface.input == "/search "
    assert not suggestions.is_visible
    assert surface.sent == []


def test_escape_leaves_input_alone(suggestions: CommandSuggestions, surface: FakeSurface) -> None:
    surface.input = "/he"
    suggestions.handle_input_change("/he")
    assert suggestions.handle_key_down(Key.ESCAPE) is True
    assert surface.input == "/he"
    assert not suggestions.is_visible


def test_select_command_by_index(suggestions: CommandSuggestions, surface: FakeSurface) -> None:
    suggestions.handle_input_change("/")
    suggestions.select_command(2)
    assert surface.input == "/save "
    assert not suggestions.is_visible


def test_execute_search_passes_trimmed_argument(surface: FakeSurface) -> None:
    received: list[tuple[str, str]] = []
    commands = [
        Command("search", "/search", "Search", "search", lambda a, r: received.append((a, r))),
    ]
    ctl = CommandSuggestions(commands, surface.set_input)
    surface.input = "/search quantum computing labs"

    assert ctl.execute_command("/search quantum computing labs") is True
    assert received == [("quantum computing labs", "/search quantum computing labs")]
    assert surface.input == ""
    assert not ctl.is_visible


def test_execute_search_emits_search_intent(
    suggestions: CommandSuggestions, surface: FakeSurface
) -> None:
    assert suggestions.execute_command("/search   quantum computing labs ") is True
    text, query = surface.sent[0]
    assert query == "quantum computing labs"
    assert "quantum computing labs" in text


def test_execute_search_without_query_sends_nothing(
    suggestions: CommandSuggestions, surface: FakeSurface
) -> None:
    assert suggestions.execute_command("/search") is True
    assert surface.sent == []


def test_execute_help_and_save(suggestions: CommandSuggestions, surface: FakeSurface) -> None:
    assert suggestions.execute_command("/help") is True
    assert suggestions.execute_command("/save") is True
    assert surface.sent == [(HELP_MESSAGE, None), (SAVE_MESSAGE, None)]


def test_unknown_command_is_chat(suggestions: CommandSuggestions, surface: FakeSurface) -> None:
    surface.input = "/unknowncmd foo"
    assert suggestions.execute_command("/unknowncmd foo") is False
    assert surface.input == "/unknowncmd foo"
    assert surface.sent == []


def test_plain_text_is_chat(suggestions: CommandSuggestions) -> None:
    assert suggestions.execute_command("what is /search") is False
    assert suggestions.execute_command("/") is False


def test_multiline_text_is_chat(suggestions: CommandSuggestions, surface: FakeSurface) -> None:
    assert suggestions.execute_command("/search\n") is False
    assert suggestions.execute_command("/search labs\nand deadlines") is False
    assert surface.sent == []
