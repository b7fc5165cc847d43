"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from collab.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from collab.tracker import Tracker

    return Tracker(storage)


@pytest.fixture
def settings():
    """Settings with no pause between reactive rounds."""
    from collab.config import Settings

    return Settings(round_pause=0.0, db_path=":memory:")


@pytest.fixture
def completion():
    """Factory for Completion objects."""
    from collab.llm import Completion, TokenUsage

    def make(text: str = "Test response", input_tokens: int = 10, output_tokens: int = 5):
        return Completion(text=text, usage=TokenUsage(input_tokens, output_tokens))

    return make


@pytest.fixture
def mock_llm(completion):
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value=completion())
    return llm


@pytest.fixture
def environment():
    """Create an empty Environment."""
    from collab.event_bus import Environment

    return Environment()


@pytest.fixture
def analyst(mock_llm, settings):
    """Technical worker backed by the mock LLM."""
    from collab.models import ANALYST
    from collab.workers import Worker

    return Worker(ANALYST, mock_llm, settings)


@pytest.fixture
def advisor(mock_llm, settings):
    """Practical worker backed by the mock LLM."""
    from collab.models import ADVISOR
    from collab.workers import Worker

    return Worker(ADVISOR, mock_llm, settings)


@pytest.fixture
def orchestrator(analyst, advisor, settings, tracker):
    """Orchestrator with both default workers and no coordinator."""
    from collab.orchestration import Orchestrator

    return Orchestrator(workers=[analyst, advisor], settings=settings, tracker=tracker)
