"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "collab.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_project_path(env_value: PathLike | None) -> Path | None:
    """Resolve an optional path relative to the project root."""
    if not env_value:
        return None
    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass(frozen=True)
class Settings:
    """Explicit configuration passed to the orchestrator, workers and providers."""

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = 1024
    default_mode: str = "sequential"
    max_rounds: int = 3
    round_pause: float = 0.2
    mailbox_size: int = 1000
    memory_limit: int = 100
    history_size: int = 10000
    context_window: int = 5
    db_path: PathLike = DEFAULT_DB_PATH
    knowledge_dir: PathLike | None = None
    knowledge_top_k: int = 3
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            model=os.getenv("LLM_MODEL", DEFAULT_MODEL),
            max_tokens=_env_int("LLM_MAX_TOKENS", 1024),
            default_mode=os.getenv("COLLAB_MODE", "sequential"),
            max_rounds=_env_int("COLLAB_MAX_ROUNDS", 3),
            round_pause=_env_float("COLLAB_ROUND_PAUSE", 0.2),
            mailbox_size=_env_int("COLLAB_MAILBOX_SIZE", 1000),
            memory_limit=_env_int("COLLAB_MEMORY_LIMIT", 100),
            history_size=_env_int("COLLAB_HISTORY_SIZE", 10000),
            context_window=_env_int("COLLAB_CONTEXT_WINDOW", 5),
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
            knowledge_dir=resolve_project_path(os.getenv("COLLAB_KNOWLEDGE_DIR")),
            knowledge_top_k=_env_int("COLLAB_KNOWLEDGE_TOP_K", 3),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
