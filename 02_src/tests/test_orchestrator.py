"""Tests for Orchestrator."""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

import pytest

from collab.config import Settings
from collab.coordination import Coordinator
from collab.errors import CompletionError, RoutingWarning, WorkerNotFoundError
from collab.models import (
    ADVISOR,
    ANALYST,
    COORDINATOR,
    Analysis,
    CauseBy,
    CollaborationMode,
    TaskAssignmentSpec,
)
from collab.orchestration import Orchestrator
from collab.workers import Worker


def _analysis(*pairs: tuple[str, str]) -> Analysis:
    return Analysis(
        original_query="q",
        task_assignments=[TaskAssignmentSpec(description=d, worker=w) for d, w in pairs],
    )


def _llm(**kwargs) -> Mock:
    llm = Mock()
    llm.complete = AsyncMock(**kwargs)
    return llm


class TestOrchestratorRegistry:
    """Tests for worker registration."""

    def test_register_attaches_to_environment(self, orchestrator):
        """Test that registered workers join the bus in order."""
        assert orchestrator.environment.worker_ids == ["analyst", "advisor"]
        assert [w.worker_id for w in orchestrator.workers] == ["analyst", "advisor"]

    def test_unregister(self, orchestrator):
        """Test removal from both registry and bus."""
        assert orchestrator.unregister_worker("advisor") is True
        assert orchestrator.unregister_worker("advisor") is False
        assert orchestrator.environment.worker_ids == ["analyst"]


class TestSequential:
    """Tests for the sequential strategy."""

    @pytest.mark.asyncio
    async def test_simple_request(self, orchestrator):
        """Test a one-subtask request end to end."""
        result = await orchestrator.process_request("What is X?")

        assert result.mode == CollaborationMode.SEQUENTIAL
        assert result.final_response == "Test response"
        assert result.participating_workers == ["analyst"]
        assert result.total_tokens == 15
        assert len(result.subtask_results) == 1

    @pytest.mark.asyncio
    async def test_priority_order(self, orchestrator, mock_llm):
        """Test that subtasks run one after another in priority order."""
        result = await orchestrator.process_request(
            "q", analysis=_analysis(("second-first", "advisor"), ("then", "analyst"))
        )

        temperatures = [c.kwargs["temperature"] for c in mock_llm.complete.call_args_list]
        assert temperatures == [ADVISOR.temperature, ANALYST.temperature]
        assert [r.worker_id for r in result.subtask_results] == ["advisor", "analyst"]
        assert result.total_tokens == 30

    @pytest.mark.asyncio
    async def test_unknown_worker_fails_before_any_call(self, orchestrator, mock_llm):
        """Test that an unregistered worker aborts before any completion."""
        with pytest.raises(WorkerNotFoundError, match="ghost"):
            await orchestrator.process_request(
                "q", analysis=_analysis(("a", "analyst"), ("b", "ghost"))
            )

        mock_llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_worker_failure_aborts(self, orchestrator, mock_llm, storage):
        """Test that a failing worker fails the whole request."""
        mock_llm.complete = AsyncMock(side_effect=CompletionError("down"))

        with pytest.raises(CompletionError):
            await orchestrator.process_request("What is X?")

        events = await storage.get_trace_events(event_types=["request_failed"])
        assert len(events) == 1
        assert events[0].data["error_type"] == "CompletionError"

    @pytest.mark.asyncio
    async def test_trace_events(self, orchestrator, storage):
        """Test that the request lifecycle is tracked."""
        await orchestrator.process_request("What is X?")

        types = {e.event_type for e in await storage.get_trace_events()}
        assert {
            "request_received",
            "breakdown_created",
            "subtask_completed",
            "request_completed",
        } <= types


class TestConcurrent:
    """Tests for the concurrent strategy."""

    @pytest.mark.asyncio
    async def test_all_subtasks_complete(self, orchestrator):
        """Test that every subtask produces a result."""
        result = await orchestrator.process_request(
            "q",
            mode="concurrent",
            analysis=_analysis(("a", "analyst"), ("b", "advisor")),
        )

        assert result.mode == CollaborationMode.CONCURRENT
        assert sorted(result.participating_workers) == ["advisor", "analyst"]
        assert result.total_tokens == 30

    @pytest.mark.asyncio
    async def test_failure_cancels_outstanding(self, settings, completion):
        """Test all-or-nothing: one failure cancels the other call."""
        cancelled = asyncio.Event()

        async def never_finishes(**kwargs):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return completion()

        analyst = Worker(ANALYST, _llm(side_effect=CompletionError("down")), settings)
        advisor = Worker(ADVISOR, _llm(side_effect=never_finishes), settings)
        orchestrator = Orchestrator(workers=[analyst, advisor], settings=settings)

        with pytest.raises(CompletionError):
            await orchestrator.process_request(
                "q",
                mode=CollaborationMode.CONCURRENT,
                analysis=_analysis(("b", "advisor"), ("a", "analyst")),
            )

        assert cancelled.is_set()


class TestReactive:
    """Tests for the round-based reactive strategy."""

    @pytest.mark.asyncio
    async def test_stops_after_quiet_round(self, orchestrator):
        """Test that two responders in round 1 and silence in round 2 end after two rounds."""
        with pytest.warns(RoutingWarning):
            result = await orchestrator.process_request("What is X?", mode="reactive")

        assert result.rounds == 2
        assert [r.subtask_id for r in result.subtask_results] == [
            "analyst-round1",
            "advisor-round1",
        ]
        assert all(i.success for i in result.interactions)
        assert [i.to for i in result.interactions] == ["coordinator", "coordinator"]

        history = result.message_history
        assert len(history) == 3
        assert history[0].cause_by == CauseBy.TASK_ASSIGNMENT
        assert history[0].sent_from == "coordinator"

    @pytest.mark.asyncio
    async def test_wall_clock_covers_executed_rounds(self, mock_llm, tracker, storage):
        """Test that processing time includes exactly one inter-round pause."""
        settings = Settings(round_pause=0.05)
        orchestrator = Orchestrator(
            workers=[Worker(ANALYST, mock_llm, settings), Worker(ADVISOR, mock_llm, settings)],
            settings=settings,
            tracker=tracker,
        )

        with pytest.warns(RoutingWarning):
            result = await orchestrator.process_request("What is X?", mode="reactive")

        assert result.processing_time >= 50
        rounds = await storage.get_trace_events(event_types=["round_completed"])
        assert len(rounds) == 2

    @pytest.mark.asyncio
    async def test_round_cap(self, settings, mock_llm):
        """Test that an endless exchange is stopped at the round cap."""
        workers = [
            Worker(ANALYST, mock_llm, settings),
            Worker(ADVISOR, mock_llm, settings),
            Worker(COORDINATOR, mock_llm, settings),
        ]
        orchestrator = Orchestrator(workers=workers, settings=settings)

        result = await orchestrator.process_request("What is X?", mode="reactive")

        assert result.rounds == settings.max_rounds
        assert result.subtask_results[-1].subtask_id.endswith(f"round{settings.max_rounds}")

    @pytest.mark.asyncio
    async def test_failing_worker_isolated(self, settings, completion):
        """Test that one worker's failure does not stop the others."""
        analyst = Worker(ANALYST, _llm(side_effect=CompletionError("down")), settings)
        advisor = Worker(ADVISOR, _llm(return_value=completion("advice")), settings)
        orchestrator = Orchestrator(workers=[analyst, advisor], settings=settings)

        with pytest.warns(RoutingWarning):
            result = await orchestrator.process_request("What is X?", mode="reactive")

        assert [r.worker_id for r in result.subtask_results] == ["advisor"]
        failed = [i for i in result.interactions if not i.success]
        assert len(failed) == 1
        assert failed[0].from_worker == "analyst"
        assert failed[0].to == "error"
        assert failed[0].message.cause_by == CauseBy.ERROR
        assert result.final_response == "advice"

    @pytest.mark.asyncio
    async def test_failed_final_round_leaves_bus_idle(self, completion):
        """Test that a worker failing in the last round still reports idle."""
        settings = Settings(round_pause=0.0, max_rounds=1)
        analyst = Worker(ANALYST, _llm(side_effect=CompletionError("down")), settings)
        advisor = Worker(ADVISOR, _llm(return_value=completion("advice")), settings)
        orchestrator = Orchestrator(workers=[analyst, advisor], settings=settings)

        with pytest.warns(RoutingWarning):
            result = await orchestrator.process_request("What is X?", mode="reactive")

        assert result.rounds == 1
        assert orchestrator.environment.is_idle()
        assert orchestrator.status()["environment"]["is_idle"] is True

    @pytest.mark.asyncio
    async def test_unknown_worker_recorded(self, orchestrator):
        """Test that subtasks for unregistered workers become failed interactions."""
        with pytest.warns(RoutingWarning):
            result = await orchestrator.process_request(
                "q", mode="reactive", analysis=_analysis(("a", "ghost"))
            )

        failed = [i for i in result.interactions if not i.success]
        assert len(failed) == 1
        assert "Worker not found: ghost" in failed[0].message.content
        assert len(result.subtask_results) == 2


class TestCoordinatorIntegration:
    """Tests with the coordinator analyzing and summarizing."""

    @pytest.mark.asyncio
    async def test_analysis_and_summary(self, settings, completion):
        """Test the AI-assisted path from analysis to coordinated answer."""
        analysis = {
            "complexity": "complex",
            "taskAssignments": [
                {"description": "explain", "assignedAgent": "analyst"},
                {"description": "advise", "assignedAgent": "advisor"},
            ],
        }
        llm = _llm(
            side_effect=[
                completion(json.dumps(analysis)),
                completion("analysis text"),
                completion("advice text"),
                completion("Conclusion\nDone."),
            ]
        )
        orchestrator = Orchestrator(
            workers=[Worker(ANALYST, llm, settings), Worker(ADVISOR, llm, settings)],
            settings=settings,
            coordinator=Coordinator(llm, [ANALYST, ADVISOR], settings),
        )

        result = await orchestrator.process_request("How do caches work?")

        assert result.coordinator_summary == "Done."
        assert result.final_response.startswith("# Coordinated answer")
        assert [r.result for r in result.subtask_results] == ["analysis text", "advice text"]

    @pytest.mark.asyncio
    async def test_malformed_assignment_fields_still_answer(self, settings, completion):
        """Test that non-string assignment fields are dropped instead of failing the request."""
        analysis = {
            "complexity": "simple",
            "taskAssignments": [{"description": "a", "assignedAgent": ["analyst"]}],
        }
        llm = _llm(side_effect=[completion(json.dumps(analysis)), completion("answer")])
        orchestrator = Orchestrator(
            workers=[Worker(ANALYST, llm, settings), Worker(ADVISOR, llm, settings)],
            settings=settings,
            coordinator=Coordinator(llm, [ANALYST, ADVISOR], settings),
        )

        result = await orchestrator.process_request("What is X?")

        assert result.final_response == "answer"
        assert result.participating_workers == ["analyst"]

    @pytest.mark.asyncio
    async def test_summary_failure_falls_back(self, settings, completion):
        """Test that a failing summary still returns the heuristic merge."""
        llm = _llm(
            side_effect=[
                completion("not json"),
                completion("The principle is locality."),
                completion("I recommend LRU."),
                CompletionError("down"),
            ]
        )
        orchestrator = Orchestrator(
            workers=[Worker(ANALYST, llm, settings), Worker(ADVISOR, llm, settings)],
            settings=settings,
            coordinator=Coordinator(llm, [ANALYST, ADVISOR], settings),
        )

        result = await orchestrator.process_request("How do caches work?")

        assert result.coordinator_summary is None
        assert "## Analysis - Analyst" in result.final_response


class TestOrchestratorState:
    """Tests for status and cleanup."""

    @pytest.mark.asyncio
    async def test_status_and_cleanup(self, orchestrator):
        """Test that cleanup clears history but keeps registrations."""
        with pytest.warns(RoutingWarning):
            await orchestrator.process_request("What is X?", mode="reactive")

        status = orchestrator.status()
        assert status["environment"]["message_count"] == 3
        assert [w["worker_id"] for w in status["workers"]] == ["analyst", "advisor"]

        orchestrator.cleanup()

        assert orchestrator.environment.history() == []
        assert orchestrator.environment.worker_ids == ["analyst", "advisor"]
        assert all(w["memory_size"] == 0 for w in orchestrator.status()["workers"])
