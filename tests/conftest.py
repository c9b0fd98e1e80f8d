"""Shared test fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from src.conversations.analytics import AnalyticsStore
from src.conversations.store import ConversationStore
from src.memory.store import MemoryStore


@pytest.fixture
def conversations(tmp_path: Path) -> ConversationStore:
    """Create a ConversationStore backed by a temp database."""
    return ConversationStore(db_path=tmp_path / "test.db")


@pytest.fixture
def analytics(tmp_path: Path) -> AnalyticsStore:
    """Create an AnalyticsStore backed by a temp database."""
    return AnalyticsStore(db_path=tmp_path / "test.db")


@pytest.fixture
def memory_store() -> MemoryStore:
    """Create a MemoryStore with a mocked Mem0 client."""
    s = MemoryStore.__new__(MemoryStore)
    s._client = AsyncMock()
    s._enabled = True
    s._timeout = 1.0
    return s


@pytest.fixture
def disabled_memory_store() -> MemoryStore:
    """Create a disabled MemoryStore."""
    s = MemoryStore.__new__(MemoryStore)
    s._client = None
    s._enabled = False
    s._timeout = 1.0
    return s
