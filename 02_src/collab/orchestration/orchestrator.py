"""Orchestrator: runs a request through assignment, a collaboration strategy and aggregation."""

import asyncio
import time
from dataclasses import asdict
from typing import Any, Iterable, Sequence

from ..aggregation import ResultAggregator
from ..config import Settings
from ..coordination import Coordinator, TaskAssigner
from ..errors import WorkerNotFoundError
from ..event_bus import Environment
from ..logging_config import get_logger
from ..models import (
    BROADCAST,
    COORDINATOR,
    AgentInteraction,
    Analysis,
    AnalysisError,
    CauseBy,
    ChatTurn,
    CollaborationMode,
    CollaborationResult,
    Message,
    Subtask,
    SubtaskResult,
    TaskBreakdown,
)
from ..tracker import ITracker, NullTracker
from ..workers import Worker

logger = get_logger(__name__)

ACTOR = "orchestrator"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class Orchestrator:
    """Drives one request to a CollaborationResult.

    Sequential and concurrent strategies call workers directly and are
    all-or-nothing. The reactive strategy goes through the message bus and
    isolates failures per worker and round.
    """

    def __init__(
        self,
        workers: Iterable[Worker] = (),
        settings: Settings | None = None,
        environment: Environment | None = None,
        coordinator: Coordinator | None = None,
        assigner: TaskAssigner | None = None,
        aggregator: ResultAggregator | None = None,
        tracker: ITracker | None = None,
    ):
        self._settings = settings or Settings()
        self._environment = environment or Environment(self._settings.history_size)
        self._coordinator = coordinator
        self._assigner = assigner
        self._aggregator = aggregator or ResultAggregator()
        self._tracker = tracker or NullTracker()
        self._workers: dict[str, Worker] = {}

        for worker in workers:
            self.register_worker(worker)

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def workers(self) -> list[Worker]:
        """Registered workers in registration order."""
        return list(self._workers.values())

    @property
    def coordinator_id(self) -> str:
        return self._coordinator.coordinator_id if self._coordinator else COORDINATOR.id

    # Registry

    def register_worker(self, worker: Worker) -> None:
        self._workers[worker.worker_id] = worker
        worker.attach(self._environment)
        self._sync_workers()

    def unregister_worker(self, worker_id: str) -> bool:
        worker = self._workers.pop(worker_id, None)
        if worker is None:
            return False
        self._environment.unregister(worker_id)
        self._sync_workers()
        return True

    def _sync_workers(self) -> None:
        configs = [w.config for w in self._workers.values()]
        self._aggregator.set_workers({c.id: c for c in configs})
        if self._coordinator is not None:
            self._coordinator.set_workers(configs)

    def _get_worker(self, worker_id: str) -> Worker:
        worker = self._workers.get(worker_id)
        if worker is None:
            raise WorkerNotFoundError(worker_id)
        return worker

    def _assigner_for_request(self) -> TaskAssigner:
        if self._assigner is not None:
            return self._assigner
        return TaskAssigner.for_workers([w.config for w in self._workers.values()])

    # Entry point

    async def process_request(
        self,
        text: str,
        history: Sequence[ChatTurn] = (),
        mode: CollaborationMode | str | None = None,
        analysis: Analysis | AnalysisError | None = None,
    ) -> CollaborationResult:
        """Analyze, assign, execute and aggregate one request."""
        mode = CollaborationMode(mode or self._settings.default_mode)
        await self._tracker.track(
            "request_received", ACTOR, {"text": text, "mode": mode.value}
        )

        try:
            breakdown = await self._assigner_for_request().decompose(
                text, history, analyzer=self._coordinator, analysis=analysis
            )
            await self._tracker.track(
                "breakdown_created",
                ACTOR,
                {
                    "task_id": breakdown.task_id,
                    "strategy": breakdown.strategy.value,
                    "subtasks": [
                        {
                            "id": s.id,
                            "worker": s.assigned_worker,
                            "priority": s.priority,
                        }
                        for s in breakdown.ordered()
                    ],
                },
            )

            if mode == CollaborationMode.SEQUENTIAL:
                result = await self._run_sequential(breakdown, history)
            elif mode == CollaborationMode.CONCURRENT:
                result = await self._run_concurrent(breakdown, history)
            else:
                result = await self._run_reactive(breakdown)
        except Exception as e:
            logger.error("Request failed: %s", e, extra={"mode": mode.value})
            await self._tracker.track(
                "request_failed",
                ACTOR,
                {"text": text, "mode": mode.value, "error": str(e), "error_type": type(e).__name__},
            )
            raise

        await self._tracker.track(
            "request_completed",
            ACTOR,
            {
                "task_id": result.task_id,
                "mode": result.mode.value,
                "participating_workers": result.participating_workers,
                "total_tokens": result.total_tokens,
                "processing_time": result.processing_time,
                "rounds": result.rounds,
            },
        )
        logger.info(
            "Request %s completed in %dms (%d tokens)",
            result.task_id,
            result.processing_time,
            result.total_tokens,
            extra={"task_id": result.task_id, "mode": result.mode.value},
        )
        return result

    # Sequential

    async def _run_sequential(
        self, breakdown: TaskBreakdown, history: Sequence[ChatTurn]
    ) -> CollaborationResult:
        subtasks = breakdown.ordered()
        for subtask in subtasks:
            self._get_worker(subtask.assigned_worker)

        results = []
        for subtask in subtasks:
            results.append(await self._execute_subtask(breakdown, subtask, history))

        return await self._finish(breakdown, results, CollaborationMode.SEQUENTIAL)

    # Concurrent

    async def _run_concurrent(
        self, breakdown: TaskBreakdown, history: Sequence[ChatTurn]
    ) -> CollaborationResult:
        subtasks = breakdown.ordered()
        for subtask in subtasks:
            self._get_worker(subtask.assigned_worker)

        tasks = [
            asyncio.create_task(self._execute_subtask(breakdown, subtask, history))
            for subtask in subtasks
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return await self._finish(breakdown, list(results), CollaborationMode.CONCURRENT)

    async def _execute_subtask(
        self,
        breakdown: TaskBreakdown,
        subtask: Subtask,
        history: Sequence[ChatTurn],
    ) -> SubtaskResult:
        worker = self._get_worker(subtask.assigned_worker)
        started = time.perf_counter()
        completion = await worker.process_task(subtask.description, history)
        elapsed = _elapsed_ms(started)

        subtask.completed = True
        subtask.result = completion.text
        result = SubtaskResult(
            subtask_id=subtask.id,
            worker_id=worker.worker_id,
            result=completion.text,
            tokens=completion.usage.total_tokens,
            processing_time=elapsed,
        )
        await self._tracker.track(
            "subtask_completed",
            worker.worker_id,
            {
                "task_id": breakdown.task_id,
                "subtask_id": subtask.id,
                "tokens": result.tokens,
                "processing_time": elapsed,
            },
        )
        return result

    # Reactive

    async def _run_reactive(self, breakdown: TaskBreakdown) -> CollaborationResult:
        started = time.perf_counter()
        results: list[SubtaskResult] = []
        interactions: list[AgentInteraction] = []

        for subtask in breakdown.ordered():
            if subtask.assigned_worker not in self._workers:
                interactions.append(
                    self._failed_interaction(
                        subtask.assigned_worker, WorkerNotFoundError(subtask.assigned_worker)
                    )
                )

        self._environment.publish(
            Message(
                content=breakdown.original_query,
                send_to=frozenset([BROADCAST]),
                role="user",
                cause_by=CauseBy.TASK_ASSIGNMENT,
                metadata={"task_id": breakdown.task_id},
            ),
            sender=self.coordinator_id,
        )

        rounds = 0
        for round_number in range(1, self._settings.max_rounds + 1):
            if round_number > 1:
                await asyncio.sleep(self._settings.round_pause)
            rounds = round_number

            responses = 0
            for worker in self.workers:
                if worker.observe() == 0:
                    continue
                try:
                    reply = await worker.react()
                except Exception as e:
                    logger.warning(
                        "Worker %s failed in round %d: %s",
                        worker.worker_id,
                        round_number,
                        e,
                        extra={"worker_id": worker.worker_id},
                    )
                    interactions.append(self._failed_interaction(worker.worker_id, e))
                    continue

                worker.publish(reply)
                responses += 1
                response_time = int(reply.metadata.get("response_time", 0))
                results.append(
                    SubtaskResult(
                        subtask_id=f"{worker.worker_id}-round{round_number}",
                        worker_id=worker.worker_id,
                        result=reply.content,
                        tokens=int(reply.metadata.get("tokens", 0)),
                        processing_time=response_time,
                    )
                )
                interactions.append(
                    AgentInteraction(
                        from_worker=worker.worker_id,
                        to=", ".join(sorted(reply.send_to)),
                        message=reply,
                        response_time=response_time,
                        success=True,
                    )
                )

            await self._tracker.track(
                "round_completed",
                ACTOR,
                {"task_id": breakdown.task_id, "round": round_number, "responses": responses},
            )
            if responses == 0:
                logger.info("No responses in round %d; stopping", round_number)
                break

        return await self._finish(
            breakdown,
            results,
            CollaborationMode.REACTIVE,
            processing_time=_elapsed_ms(started),
            rounds=rounds,
            message_history=self._environment.history(),
            interactions=interactions,
        )

    def _failed_interaction(self, worker_id: str, error: Exception) -> AgentInteraction:
        message = Message(
            content=str(error),
            sent_from=worker_id,
            send_to=frozenset([self.coordinator_id]),
            role="system",
            cause_by=CauseBy.ERROR,
            metadata={"error_type": type(error).__name__},
        )
        return AgentInteraction(
            from_worker=worker_id,
            to="error",
            message=message,
            response_time=0,
            success=False,
        )

    # Aggregation

    async def _finish(
        self,
        breakdown: TaskBreakdown,
        results: list[SubtaskResult],
        mode: CollaborationMode,
        processing_time: int | None = None,
        **extra: Any,
    ) -> CollaborationResult:
        summarizer = self._coordinator if len(results) > 1 else None
        final_response, summary = await self._aggregator.compose(breakdown, results, summarizer)

        for interaction in extra.get("interactions", ()):
            if not interaction.success:
                await self._tracker.track(
                    "interaction_failed",
                    interaction.from_worker,
                    {"task_id": breakdown.task_id, "error": interaction.message.content},
                )

        if processing_time is None:
            processing_time = sum(r.processing_time for r in results)

        return CollaborationResult(
            task_id=breakdown.task_id,
            subtask_results=results,
            final_response=final_response,
            participating_workers=self._aggregator.participants(results),
            total_tokens=sum(r.tokens for r in results),
            processing_time=processing_time,
            mode=mode,
            coordinator_summary=summary.synthesized_conclusion if summary else None,
            **extra,
        )

    # State

    def status(self) -> dict[str, Any]:
        return {
            "environment": self._environment.status(),
            "workers": [asdict(w.status()) for w in self._workers.values()],
            "default_mode": self._settings.default_mode,
        }

    def cleanup(self) -> None:
        """Clear bus history and every worker's state. Registrations are kept."""
        for worker in self._workers.values():
            worker.cleanup()
        self._environment.clear()
        for worker in self._workers.values():
            self._environment.register(worker)
