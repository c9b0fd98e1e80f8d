"""Heuristic message classification that gates memory processing.

Rules are evaluated in order and the first match wins. Every rule is a
plain lexicon test over the trimmed, lower-cased message, so the result is
deterministic and classification never fails.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

MEMORY_CONFIDENCE_FLOOR = 0.6


class MessageType(StrEnum):
    SIMPLE_GREETING = "simple_greeting"
    ACKNOWLEDGMENT = "acknowledgment"
    PROFILE_SHARING = "profile_sharing"
    GOAL_SETTING = "goal_setting"
    OPPORTUNITY_REQUEST = "opportunity_request"
    SUBSTANTIVE_QUESTION = "substantive_question"
    FOLLOW_UP = "follow_up"


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one inbound message."""

    type: MessageType
    confidence: float
    should_process_memory: bool
    reasoning: str


GREETINGS = ("hi", "hello", "hey", "yo", "sup", "what's up", "whats up")
ACKNOWLEDGMENTS = (
    "ok", "okay", "thanks", "thank you", "got it",
    "cool", "nice", "great", "awesome", "alright",
)
PROFILE_KEYWORDS = (
    "i am", "i'm", "my major", "my year", "first year", "sophomore", "junior",
    "senior", "international student", "from", "studying", "majoring in",
    "interested in",
)
GOAL_KEYWORDS = (
    "want to", "hoping to", "goal", "plan to", "looking for", "trying to",
    "interested in finding", "need help with", "career", "future",
)
OPPORTUNITY_KEYWORDS = (
    "research", "internship", "job", "position", "program", "grant",
    "funding", "opportunity", "application", "deadline", "requirement",
)
COMPLEXITY_CONNECTIVES = ("because", "however", "although", "specifically")


def _is_greeting(text: str) -> bool:
    return any(text == g or text.startswith(g + " ") for g in GREETINGS)


def _is_acknowledgment(text: str) -> bool:
    return any(text == a or text.endswith(" " + a) for a in ACKNOWLEDGMENTS)


def _contains_any(keywords: tuple[str, ...]) -> Callable[[str], bool]:
    return lambda text: any(k in text for k in keywords)


def _is_substantive(text: str) -> bool:
    return len(text.split()) >= 10 or any(c in text for c in COMPLEXITY_CONNECTIVES)


def _is_short(text: str) -> bool:
    return len(text.split()) <= 3


_RULES: list[tuple[Callable[[str], bool], Classification]] = [
    (
        _is_greeting,
        Classification(
            MessageType.SIMPLE_GREETING, 0.95, False,
            "Simple greeting detected - no personal information to extract",
        ),
    ),
    (
        _is_acknowledgment,
        Classification(
            MessageType.ACKNOWLEDGMENT, 0.90, False,
            "Simple acknowledgment - no new information to process",
        ),
    ),
    (
        _contains_any(PROFILE_KEYWORDS),
        Classification(
            MessageType.PROFILE_SHARING, 0.85, True,
            "Contains profile information that should be remembered",
        ),
    ),
    (
        _contains_any(GOAL_KEYWORDS),
        Classification(
            MessageType.GOAL_SETTING, 0.80, True,
            "Contains goal or aspiration information",
        ),
    ),
    (
        _contains_any(OPPORTUNITY_KEYWORDS),
        Classification(
            MessageType.OPPORTUNITY_REQUEST, 0.75, True,
            "Opportunity request may contain preferences or context to remember",
        ),
    ),
    (
        _is_substantive,
        Classification(
            MessageType.SUBSTANTIVE_QUESTION, 0.70, True,
            "Longer or complex message likely contains contextual information",
        ),
    ),
    (
        _is_short,
        Classification(
            MessageType.ACKNOWLEDGMENT, 0.60, False,
            "Very short message unlikely to contain meaningful context",
        ),
    ),
]

_DEFAULT = Classification(
    MessageType.FOLLOW_UP, 0.65, True,
    "Medium-length message may contain context worth preserving",
)


def classify(message: str) -> Classification:
    """Classify a user message to decide whether memory work is worthwhile."""
    text = message.strip().lower()
    for predicate, outcome in _RULES:
        if predicate(text):
            return outcome
    return _DEFAULT


def skip_memory(classification: Classification) -> bool:
    """True when memory extraction should not run for this message."""
    return (
        not classification.should_process_memory
        or classification.confidence < MEMORY_CONFIDENCE_FLOOR
    )
