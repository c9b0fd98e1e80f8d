"""System prompt assembly with memory insights and search findings."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.memory.models import MemoryEntry, PersonalizedContext
    from src.retrieval.search import SearchResponse

PERSONA = """\
You are a friendly, knowledgeable assistant helping Dartmouth students discover \
academic opportunities like research positions, grants, internships, and programs.

PERSONALITY & TONE:
- Warm, encouraging, and peer-like (like a helpful upperclassman)
- Always lead with reassurance for nervous or anxious students
- No emojis unless the student uses them first

KEY PRINCIPLES:
1. Reassurance first when a student sounds intimidated
2. Concrete next steps, not just information
3. Ask a clarifying question instead of assuming
4. Point to official pages and verified contacts
5. Explain how things work at Dartmouth specifically

IMPORTANT:
- Always say "confirm details on official pages"
- Don't promise outcomes or guarantee acceptance
- Clarify you're not an official Dartmouth resource"""

MAX_SNIPPET_CHARS = 500


def _join(entries: list[MemoryEntry]) -> str:
    return ", ".join(e.content for e in entries) or "none"


def format_memory_insights(context: PersonalizedContext) -> str:
    """Render remembered facts for the system prompt, or "" when empty."""
    if context.is_empty:
        return ""
    return (
        "# Memory Insights\n\n"
        f"- Profile: {_join(context.profile)}\n"
        f"- Recent interests: {_join(context.recent_interests)}\n"
        f"- Goals mentioned: {_join(context.goals)}\n"
        f"- Communication preferences: {_join(context.preferences)}\n"
        f"- Recent interactions: {_join(context.recent_interactions)}\n\n"
        "Adjust recommendations and tone to this context and reference past "
        "conversations naturally. For first-years, favor beginner-friendly "
        "opportunities; for international students, highlight visa-friendly programs."
    )


def format_search_findings(response: SearchResponse) -> str:
    """Render search results so the reply can cite them."""
    lines = [f"# Search Findings (confidence {response.confidence:.2f})\n"]
    if response.answer:
        lines.append(f"Summary: {response.answer}\n")
    if not response.results:
        lines.append("No results were found. Say so and suggest where to look instead.")
    for result in response.results:
        tag = "official" if result.is_official else "unofficial"
        lines.append(f"- [{tag}] {result.title} ({result.url})")
        if result.content:
            lines.append(f"  {result.content[:MAX_SNIPPET_CHARS]}")
    return "\n".join(lines)


def build_system_prompt(
    context: PersonalizedContext | None = None,
    search: SearchResponse | None = None,
) -> list[dict]:
    """Assemble the system prompt as Claude content blocks.

    The persona block is marked for prompt caching; personalization and
    search findings follow as separate uncached blocks.
    """
    blocks: list[dict] = [
        {"type": "text", "text": PERSONA, "cache_control": {"type": "ephemeral"}},
    ]

    memory_text = format_memory_insights(context) if context is not None else ""
    if memory_text:
        blocks.append({"type": "text", "text": memory_text})

    if search is not None:
        blocks.append({"type": "text", "text": format_search_findings(search)})

    return blocks
