"""Tests for system prompt assembly."""

from src.chat.prompt import PERSONA, build_system_prompt, format_memory_insights
from src.memory.models import MemoryCategory, MemoryEntry, PersonalizedContext
from src.retrieval.search import SearchResponse, SearchResult


def _entry(content: str, category: MemoryCategory) -> MemoryEntry:
    return MemoryEntry(content=content, category=category, user_id="u1")


def test_persona_only_without_context() -> None:
    blocks = build_system_prompt()
    assert len(blocks) == 1
    assert blocks[0]["text"] == PERSONA
    assert blocks[0]["cache_control"] == {"type": "ephemeral"}


def test_empty_memory_adds_nothing() -> None:
    assert format_memory_insights(PersonalizedContext()) == ""
    assert len(build_system_prompt(PersonalizedContext())) == 1


def test_memory_insights_block() -> None:
    ctx = PersonalizedContext(
        profile=[_entry("first-year", MemoryCategory.PROFILE)],
        recent_interests=[_entry("biology", MemoryCategory.INTERESTS)],
    )
    blocks = build_system_prompt(ctx)
    text = blocks[1]["text"]
    assert "- Profile: first-year" in text
    assert "- Recent interests: biology" in text
    assert "- Goals mentioned: none" in text
    assert "cache_control" not in blocks[1]


def test_search_findings_block() -> None:
    response = SearchResponse(
        query="q",
        confidence=0.7,
        answer="Apply by May.",
        results=[
            SearchResult(
                title="UGAR Grants",
                url="https://ugar.dartmouth.edu/grants",
                content="Funding for research.",
                score=0.9,
                source_domain="ugar.dartmouth.edu",
                is_official=True,
            )
        ],
    )
    text = build_system_prompt(None, response)[-1]["text"]
    assert "confidence 0.70" in text
    assert "Summary: Apply by May." in text
    assert "[official] UGAR Grants (https://ugar.dartmouth.edu/grants)" in text


def test_search_without_results_says_so() -> None:
    text = build_system_prompt(None, SearchResponse(query="q", confidence=0.0))[-1]["text"]
    assert "No results were found" in text
