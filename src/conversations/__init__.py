"""Conversation persistence, session continuity, and usage analytics."""

from src.conversations.analytics import AnalyticsStore
from src.conversations.models import Conversation, ExtractedProfile, Message
from src.conversations.store import SESSION_IDLE_WINDOW, ConversationStore

__all__ = [
    "SESSION_IDLE_WINDOW",
    "AnalyticsStore",
    "Conversation",
    "ConversationStore",
    "ExtractedProfile",
    "Message",
]
