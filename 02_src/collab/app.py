"""Application bootstrap and lifecycle management."""

from typing import Protocol, Sequence

from .aggregation import ResultAggregator
from .config import Settings
from .coordination import Coordinator
from .event_bus import Environment
from .knowledge import IKnowledgeBase, SQLiteKnowledgeBase
from .llm import ILLMProvider, LLMProvider, MockLLMProvider
from .logging_config import get_logger
from .models import (
    DEFAULT_WORKERS,
    ChatTurn,
    CollaborationMode,
    CollaborationResult,
    WorkerConfig,
)
from .orchestration import Orchestrator
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .workers import Worker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Clear stored traces and in-memory collaboration state."""
        ...

    async def process_request(
        self,
        text: str,
        history: Sequence[ChatTurn] = (),
        mode: CollaborationMode | str | None = None,
    ) -> CollaborationResult:
        """Run a request and persist its summary."""
        ...

    @property
    def storage(self) -> IStorage:
        ...

    @property
    def orchestrator(self) -> Orchestrator:
        ...

    @property
    def knowledge(self) -> SQLiteKnowledgeBase:
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        llm_provider: ILLMProvider | None = None,
        workers: tuple[WorkerConfig, ...] = DEFAULT_WORKERS,
        knowledge: IKnowledgeBase | None = None,
    ):
        self._settings = settings or Settings.from_env()
        self._worker_configs = workers
        self._knowledge = knowledge
        self._owns_knowledge = False

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._llm: ILLMProvider | None = llm_provider
        self._orchestrator: Orchestrator | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def _create_llm(self) -> ILLMProvider:
        if self._settings.api_key:
            return LLMProvider(api_key=self._settings.api_key, model=self._settings.model)
        logger.warning("ANTHROPIC_API_KEY not set, using mock completion provider")
        return MockLLMProvider()

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._settings.db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. LLMProvider (no internal dependencies)
        if self._llm is None:
            self._llm = self._create_llm()
        logger.info("LLM provider initialized")

        # 4. Knowledge base (shares the database file with storage)
        if self._knowledge is None:
            knowledge = SQLiteKnowledgeBase(
                self._settings.db_path, top_k=self._settings.knowledge_top_k
            )
            await knowledge.init()
            if self._settings.knowledge_dir:
                # Directory contents replace the previous index
                await knowledge.clear()
                await knowledge.load_directory(self._settings.knowledge_dir)
            self._knowledge = knowledge
            self._owns_knowledge = True
        logger.info("Knowledge base initialized")

        # 5. Workers and coordinator (depend on LLM and knowledge)
        workers = [
            Worker(config, self._llm, self._settings, knowledge=self._knowledge)
            for config in self._worker_configs
        ]
        coordinator = Coordinator(self._llm, self._worker_configs, self._settings)

        # 6. Orchestrator (depends on everything above)
        self._orchestrator = Orchestrator(
            workers=workers,
            settings=self._settings,
            environment=Environment(self._settings.history_size),
            coordinator=coordinator,
            aggregator=ResultAggregator(),
            tracker=self._tracker,
        )
        logger.info(
            "Orchestrator started with workers: %s",
            ", ".join(w.worker_id for w in workers),
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._orchestrator:
            self._orchestrator.cleanup()
            self._orchestrator = None
        if self._owns_knowledge and isinstance(self._knowledge, SQLiteKnowledgeBase):
            await self._knowledge.close()
            self._knowledge = None
            self._owns_knowledge = False
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Clear stored traces and in-memory collaboration state."""
        if self._orchestrator:
            self._orchestrator.cleanup()
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")
        logger.info("Reset complete")

    async def process_request(
        self,
        text: str,
        history: Sequence[ChatTurn] = (),
        mode: CollaborationMode | str | None = None,
    ) -> CollaborationResult:
        """Run a request and persist its summary."""
        result = await self.orchestrator.process_request(text, history=history, mode=mode)
        await self.storage.save_collaboration(text, result)
        return result

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def orchestrator(self) -> Orchestrator:
        """Get orchestrator instance."""
        if not self._orchestrator:
            raise RuntimeError("Application not started")
        return self._orchestrator

    @property
    def knowledge(self) -> SQLiteKnowledgeBase:
        """Get the writable knowledge base."""
        if not isinstance(self._knowledge, SQLiteKnowledgeBase):
            raise RuntimeError("Knowledge base not available")
        return self._knowledge
