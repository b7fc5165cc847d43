"""Collaboration request API routes."""

from typing import Any, Literal

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import IApplication
from ...errors import AssignmentError, CollabError, CompletionError, WorkerNotFoundError
from ...logging_config import get_logger
from ...models import ChatTurn, CollaborationMode

logger = get_logger(__name__)


class HistoryTurn(BaseModel):
    """One prior conversation turn."""

    role: Literal["user", "assistant"]
    content: str


class CollaborationRequest(BaseModel):
    """Request model for a collaboration request."""

    text: str = Field(..., min_length=1)
    history: list[HistoryTurn] = Field(default_factory=list)
    mode: CollaborationMode | None = None


class SubtaskResultResponse(BaseModel):
    subtask_id: str
    worker_id: str
    result: str
    tokens: int
    processing_time: int


class CollaborationResponse(BaseModel):
    """Response model for a processed request."""

    task_id: str
    final_response: str
    mode: CollaborationMode
    participating_workers: list[str]
    total_tokens: int
    processing_time: int
    rounds: int
    coordinator_summary: str | None = None
    subtask_results: list[SubtaskResultResponse]
    message_history: list[dict[str, Any]] = Field(default_factory=list)
    interactions: list[dict[str, Any]] = Field(default_factory=list)


def status_code_for(error: CollabError) -> int:
    """HTTP status for a collaboration error."""
    if isinstance(error, AssignmentError):
        return 422
    if isinstance(error, WorkerNotFoundError):
        return 409
    if isinstance(error, CompletionError):
        return 502
    return 500


def create_requests_router(app: IApplication) -> APIRouter:
    """Create collaboration request router."""
    router = APIRouter(prefix="/api", tags=["requests"])

    @router.post("/requests", response_model=CollaborationResponse)
    async def process_request(request: CollaborationRequest) -> dict:
        """Run a request through the worker team."""
        history = [ChatTurn(role=t.role, content=t.content) for t in request.history]
        try:
            result = await app.process_request(
                request.text, history=history, mode=request.mode
            )
        except CollabError as e:
            raise HTTPException(status_code=status_code_for(e), detail=str(e))
        except Exception as e:
            logger.error("Unhandled error processing request: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

        return result.to_dict()

    return router
