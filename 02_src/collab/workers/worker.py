"""Worker implementation: an expert that answers subtasks and talks over the bus."""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Sequence

from ..config import Settings
from ..event_bus import IEnvironment, Mailbox
from ..knowledge import IKnowledgeBase
from ..llm import Completion, ILLMProvider
from ..logging_config import get_logger
from ..models import BROADCAST, CauseBy, ChatTurn, Message, WorkerConfig, WorkerStatus

logger = get_logger(__name__)

DEFAULT_WATCH = frozenset(
    {CauseBy.USER_REQUIREMENT, CauseBy.AGENT_RESPONSE, CauseBy.TASK_ASSIGNMENT}
)


@dataclass
class WorkerContext:
    """Per-worker mutable state. Only the owning worker touches it."""

    mailbox: Mailbox
    memory: deque[Message]
    news: list[Message] = field(default_factory=list)
    watch: set[CauseBy] = field(default_factory=lambda: set(DEFAULT_WATCH))
    is_idle: bool = True


class Worker:
    """Expert worker.

    Two ways to use it: ``process_task`` answers a subtask directly, and the
    ``observe``/``react`` cycle answers whatever arrived in the mailbox.
    """

    def __init__(
        self,
        config: WorkerConfig,
        llm_provider: ILLMProvider,
        settings: Settings | None = None,
        knowledge: IKnowledgeBase | None = None,
        environment: IEnvironment | None = None,
    ):
        settings = settings or Settings()
        self._config = config
        self._llm = llm_provider
        self._knowledge = knowledge
        self._max_tokens = config.max_tokens or settings.max_tokens
        self._context_window = settings.context_window
        self._context = WorkerContext(
            mailbox=Mailbox(settings.mailbox_size),
            memory=deque(maxlen=settings.memory_limit),
        )
        self._reacting = False
        self._environment: IEnvironment | None = None

        if environment is not None:
            self.attach(environment)

    @property
    def worker_id(self) -> str:
        return self._config.id

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> WorkerConfig:
        return self._config

    @property
    def context(self) -> WorkerContext:
        return self._context

    @property
    def is_idle(self) -> bool:
        return self._context.is_idle

    def attach(self, environment: IEnvironment) -> None:
        """Join an environment, leaving the previous one if any."""
        if self._environment is not None:
            self._environment.unregister(self.worker_id)
        self._environment = environment
        environment.register(self)

    # Direct task processing

    async def process_task(
        self, description: str, history: Sequence[ChatTurn] = ()
    ) -> Completion:
        """Answer a subtask. Completion errors propagate to the caller."""
        knowledge_context = ""
        if self._knowledge is not None:
            knowledge_context = await self._knowledge.retrieve_context(description)

        messages = [turn.to_dict() for turn in history]
        messages.append({"role": "user", "content": description})

        completion = await self._llm.complete(
            messages=messages,
            system=self.build_system_prompt(description, knowledge_context),
            max_tokens=self._max_tokens,
            temperature=self._config.temperature,
        )
        logger.debug(
            "Worker %s completed task (%d tokens)",
            self.worker_id,
            completion.usage.total_tokens,
            extra={"worker_id": self.worker_id},
        )
        return completion

    def build_system_prompt(self, description: str, knowledge_context: str = "") -> str:
        config = self._config
        prompt = (
            f"{config.personality}\n\n"
            f"My specialization: {config.specialization or config.specialty.value}\n"
            f"My main capabilities: {', '.join(config.capabilities)}\n\n"
            f"Current task: {description}\n\n"
            "Give the most valuable answer this expertise allows.\n"
            "- For analysis tasks, provide in-depth analysis and insight\n"
            "- For advice tasks, provide practical, workable solutions\n"
            "- Stay professional but friendly and play to your strengths"
        )
        if knowledge_context:
            prompt += f"\n\nRelevant background knowledge:\n{knowledge_context}"
        return prompt

    # Mailbox protocol

    def receive(self, message: Message) -> None:
        """Called by the bus to deliver a message."""
        self._context.mailbox.push(message)
        logger.debug("Worker %s received message: %.30s", self.worker_id, message.content)

    def is_interested(self, message: Message) -> bool:
        """Interest predicate: addressed to me, a watched event kind, or a broadcast."""
        return (
            message.addressed_to(self.worker_id, self.name)
            or message.cause_by in self._context.watch
            or message.is_broadcast
        )

    def observe(self) -> int:
        """Drain the mailbox and keep interesting messages as news."""
        ctx = self._context
        ctx.news = []

        for message in ctx.mailbox.pop_all():
            if self.is_interested(message):
                ctx.news.append(message)
                ctx.memory.append(message)

        ctx.is_idle = not ctx.news
        if ctx.news:
            logger.info("Worker %s observed %d new messages", self.worker_id, len(ctx.news))
        return len(ctx.news)

    async def react(self) -> Message:
        """Respond to the most important news item.

        Raises RuntimeError without news or while another react is in flight.
        Completion failures propagate and are not retried here; the news is
        consumed either way so a failed worker reports idle.
        """
        ctx = self._context
        if not ctx.news:
            raise RuntimeError(f"Worker {self.worker_id} has no news to respond to")
        if self._reacting:
            raise RuntimeError(f"Worker {self.worker_id} is already responding")

        self._reacting = True
        ctx.is_idle = False
        try:
            primary = self.select_primary_message()
            started = time.perf_counter()
            context = self.build_context(exclude=primary)
            completion = await self.process_task(primary.content, context)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
        finally:
            self._reacting = False
            ctx.news = []
            ctx.is_idle = True

        reply = Message(
            content=completion.text,
            role="assistant",
            cause_by=CauseBy.AGENT_RESPONSE,
            sent_from=self.worker_id,
            send_to=frozenset([primary.sent_from or BROADCAST]),
            metadata={
                "response_time": elapsed_ms,
                "tokens": completion.usage.total_tokens,
                "reply_to": primary.id,
            },
        )
        return reply

    def select_primary_message(self) -> Message:
        """Direct message > task assignment > anything; most recent wins within a tier."""
        news = self._context.news
        if not news:
            raise RuntimeError(f"Worker {self.worker_id} has no news to respond to")

        for message in reversed(news):
            if message.addressed_to(self.worker_id, self.name):
                return message
        for message in reversed(news):
            if message.cause_by == CauseBy.TASK_ASSIGNMENT:
                return message
        return news[-1]

    def build_context(self, exclude: Message | None = None) -> list[ChatTurn]:
        """Recent memory as a neutral user/assistant transcript.

        ``exclude`` is dropped before the window is taken; react() sends the
        primary message itself as the final user turn.
        """
        if self._context_window <= 0:
            return []
        memory = [m for m in self._context.memory if exclude is None or m.id != exclude.id]
        recent = memory[-self._context_window :]
        return [
            ChatTurn(role="user" if m.role == "user" else "assistant", content=m.content)
            for m in recent
        ]

    # Publishing

    def publish(self, message: Message) -> bool:
        """Publish through the environment; the bus stamps this worker as sender."""
        if self._environment is None:
            logger.warning("Worker %s is not attached to an environment", self.worker_id)
            return False
        return self._environment.publish(message, sender=self.worker_id)

    def send(
        self,
        content: str,
        target_id: str,
        cause_by: CauseBy = CauseBy.DIRECT_COMMUNICATION,
    ) -> bool:
        return self.publish(
            Message(content=content, send_to=frozenset([target_id]), cause_by=cause_by)
        )

    def broadcast(self, content: str, cause_by: CauseBy = CauseBy.BROADCAST) -> bool:
        return self.publish(
            Message(content=content, send_to=frozenset([BROADCAST]), cause_by=cause_by)
        )

    def conversation_with(self, other_id: str) -> list[Message]:
        if self._environment is None:
            return []
        return self._environment.conversation_between(self.worker_id, other_id)

    # State

    def status(self) -> WorkerStatus:
        ctx = self._context
        return WorkerStatus(
            worker_id=self.worker_id,
            name=self.name,
            is_idle=ctx.is_idle,
            mailbox_size=ctx.mailbox.size(),
            memory_size=len(ctx.memory),
            watching=sorted(c.value for c in ctx.watch),
        )

    def cleanup(self) -> None:
        """Forget everything: mailbox, memory and news."""
        ctx = self._context
        ctx.mailbox.clear()
        ctx.memory.clear()
        ctx.news = []
        ctx.is_idle = True
