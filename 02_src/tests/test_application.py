"""Tests for Application."""

from unittest.mock import patch

import pytest

from collab.app import Application
from collab.config import Settings
from collab.knowledge import NullKnowledgeBase, SQLiteKnowledgeBase
from collab.llm import LLMProvider, MockLLMProvider


@pytest.fixture
async def app():
    application = Application(Settings(db_path=":memory:", round_pause=0.0))
    await application.start()
    yield application
    await application.stop()


class TestApplicationStart:
    """Tests for Application.start()."""

    @pytest.mark.asyncio
    async def test_start_initializes_components(self, app):
        """Test that start initializes all components."""
        assert app._storage is not None
        assert app._tracker is not None
        assert app._llm is not None
        assert app._orchestrator is not None

    @pytest.mark.asyncio
    async def test_default_workers_registered(self, app):
        """Test that the default team joins the bus."""
        assert app.orchestrator.environment.worker_ids == ["analyst", "advisor"]

    @pytest.mark.asyncio
    async def test_mock_provider_without_api_key(self, app):
        """Test the offline fallback when no key is configured."""
        assert isinstance(app._llm, MockLLMProvider)

    @pytest.mark.asyncio
    async def test_real_provider_with_api_key(self):
        """Test that a configured key selects the Anthropic provider."""
        application = Application(Settings(db_path=":memory:", api_key="test_key"))
        with patch("collab.llm.llm_provider.anthropic.AsyncAnthropic"):
            await application.start()
        try:
            assert isinstance(application._llm, LLMProvider)
        finally:
            await application.stop()

    @pytest.mark.asyncio
    async def test_properties_require_start(self):
        """Test that components are unavailable before start()."""
        application = Application(Settings(db_path=":memory:"))
        with pytest.raises(RuntimeError):
            application.storage
        with pytest.raises(RuntimeError):
            application.orchestrator


class TestApplicationProcessRequest:
    """Tests for Application.process_request()."""

    @pytest.mark.asyncio
    async def test_request_is_persisted(self, app):
        """Test that processed requests are stored with their traces."""
        result = await app.process_request("What is X?")

        records = await app.storage.get_collaborations()
        assert [r.task_id for r in records] == [result.task_id]
        assert records[0].request == "What is X?"

        events = await app.storage.get_trace_events(event_types=["request_completed"])
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_concurrent_mode(self, app):
        """Test that the mode is passed through."""
        result = await app.process_request(
            "How should I compare two databases?", mode="concurrent"
        )
        assert result.mode.value == "concurrent"
        assert sorted(result.participating_workers) == ["advisor", "analyst"]


class TestApplicationReset:
    """Tests for Application.reset()."""

    @pytest.mark.asyncio
    async def test_reset_clears_data(self, app):
        """Test that reset clears storage and bus history."""
        await app.process_request("What is X?")

        await app.reset()

        assert await app.storage.get_trace_events() == []
        assert await app.storage.get_collaborations() == []
        assert app.orchestrator.environment.history() == []
        assert app.orchestrator.environment.worker_ids == ["analyst", "advisor"]


class TestApplicationKnowledge:
    """Tests for knowledge base wiring."""

    @pytest.mark.asyncio
    async def test_default_knowledge_base(self, app):
        """Test that start() creates an empty writable knowledge base."""
        assert isinstance(app.knowledge, SQLiteKnowledgeBase)
        assert await app.knowledge.count() == 0

    @pytest.mark.asyncio
    async def test_directory_loaded_into_worker_prompts(self, tmp_path, mock_llm):
        """Test that documents from the configured directory reach the workers."""
        (tmp_path / "notes.md").write_text("X is the unknown quantity")
        application = Application(
            Settings(db_path=":memory:", knowledge_dir=tmp_path), llm_provider=mock_llm
        )
        await application.start()
        try:
            await application.process_request("What is X?")
        finally:
            await application.stop()

        systems = [c.kwargs["system"] for c in mock_llm.complete.call_args_list]
        assert any("[Source: notes.md]" in s for s in systems)
        assert application._knowledge is None

    @pytest.mark.asyncio
    async def test_injected_knowledge_is_read_only(self):
        """Test that an injected non-writable knowledge base is not exposed for indexing."""
        application = Application(Settings(db_path=":memory:"), knowledge=NullKnowledgeBase())
        await application.start()
        try:
            with pytest.raises(RuntimeError):
                application.knowledge
        finally:
            await application.stop()
