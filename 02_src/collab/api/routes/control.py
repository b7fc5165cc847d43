"""Control API routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import IApplication


class StatusResponse(BaseModel):
    """Response model for reset."""

    status: str


class WorkerStatusResponse(BaseModel):
    worker_id: str
    name: str
    is_idle: bool
    mailbox_size: int
    memory_size: int
    watching: list[str]


class SystemStatusResponse(BaseModel):
    """Response model for system status."""

    environment: dict[str, Any]
    workers: list[WorkerStatusResponse]
    default_mode: str


def create_control_router(app: IApplication) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api", tags=["control"])

    @router.post("/control/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset system data between test runs."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/status", response_model=SystemStatusResponse)
    async def get_status() -> dict:
        """Bus and per-worker status."""
        try:
            return app.orchestrator.status()
        except RuntimeError as e:
            raise HTTPException(status_code=503, detail=str(e))

    return router
