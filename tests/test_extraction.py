"""Tests for automatic insight extraction."""

from unittest.mock import AsyncMock

import pytest

from src.chat.classifier import classify
from src.memory.extraction import (
    APPRECIATES_HELP,
    APPRECIATES_HUMOR,
    extract_conversation_insights,
    find_insights,
    schedule_insight_extraction,
)
from src.memory.models import MemoryCategory
from src.memory.store import MemoryStore

# -- find_insights -------------------------------------------------------------


def test_profile_interest_and_single_goal() -> None:
    message = "I am a first-year interested in biology and I want to find research"
    entries = find_insights("u1", message)

    assert len(entries) >= 2
    goals = [e for e in entries if e.category == MemoryCategory.GOALS]
    assert len(goals) == 1
    assert goals[0].content == message
    assert goals[0].confidence == 0.7

    profile = [e for e in entries if e.category == MemoryCategory.PROFILE]
    assert profile[0].content == "first-year"
    assert profile[0].confidence == 0.8
    assert profile[0].source == "conversation_extraction"

    interests = [e for e in entries if e.category == MemoryCategory.INTERESTS]
    assert interests[0].content == "biology and I want to find research"


def test_multiple_goal_phrases_yield_one_goal() -> None:
    entries = find_insights("u1", "I want to intern, I plan to apply, my goal is a lab")
    assert sum(e.category == MemoryCategory.GOALS for e in entries) == 1


def test_independent_profile_triggers_all_fire() -> None:
    entries = find_insights("u1", "As an international junior studying economics.")
    profile = [e.content for e in entries if e.category == MemoryCategory.PROFILE]
    assert profile == ["junior", "international"]
    interests = [e.content for e in entries if e.category == MemoryCategory.INTERESTS]
    assert interests == ["economics"]


def test_gratitude_preference() -> None:
    entries = find_insights("u1", "Thanks, that was helpful")
    prefs = [e for e in entries if e.category == MemoryCategory.PREFERENCES]
    assert len(prefs) == 1
    assert prefs[0].content == APPRECIATES_HELP
    assert prefs[0].confidence == 0.6


def test_humor_preference() -> None:
    entries = find_insights("u1", "haha nice \U0001F602")
    prefs = [e for e in entries if e.category == MemoryCategory.PREFERENCES]
    assert [p.content for p in prefs] == [APPRECIATES_HUMOR]
    assert prefs[0].confidence == 0.7


def test_nothing_to_extract() -> None:
    assert find_insights("u1", "what time is it") == []


def test_entries_are_scoped_to_user() -> None:
    entries = find_insights("alice", "I'm a senior")
    assert entries and all(e.user_id == "alice" for e in entries)


# -- extract_conversation_insights ---------------------------------------------


async def test_extract_writes_every_entry(memory_store: MemoryStore) -> None:
    memory_store._client.add.return_value = {"id": "x"}
    entries = await extract_conversation_insights(
        "u1", "I am a sophomore studying physics, thank you", memory_store
    )

    assert memory_store._client.add.await_count == len(entries) == 3


async def test_extract_survives_store_failures(memory_store: MemoryStore) -> None:
    memory_store._client.add.side_effect = RuntimeError("down")
    entries = await extract_conversation_insights("u1", "I'm a junior", memory_store)
    assert len(entries) == 1


async def test_extract_swallows_unexpected_errors() -> None:
    store = AsyncMock(spec=MemoryStore)
    store.add_memory.side_effect = RuntimeError("unexpected")
    assert await extract_conversation_insights("u1", "I'm a junior", store) == []


# -- schedule_insight_extraction -----------------------------------------------


async def test_schedule_skips_low_value_messages(memory_store: MemoryStore) -> None:
    assert schedule_insight_extraction("u1", "ok", classify("ok"), memory_store) is None
    memory_store._client.add.assert_not_called()


async def test_schedule_runs_in_background(memory_store: MemoryStore) -> None:
    text = "I am a senior interested in law"
    task = schedule_insight_extraction("u1", text, classify(text), memory_store)

    assert task is not None
    entries = await task
    assert len(entries) == 2
    assert memory_store._client.add.await_count == 2


async def test_schedule_respects_setting(
    memory_store: MemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("src.config.settings.memory_extraction_enabled", False)
    text = "I am a senior interested in law"
    assert schedule_insight_extraction("u1", text, classify(text), memory_store) is None
