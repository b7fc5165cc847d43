"""Observability API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import IApplication


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


class CollaborationRecordResponse(BaseModel):
    """Response model for a stored collaboration."""

    task_id: str
    request: str
    mode: str
    final_response: str
    participating_workers: list[str]
    total_tokens: int
    processing_time: int
    rounds: int
    created_at: datetime


def create_observability_router(app: IApplication) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Filter by event type"),
        actor: str | None = Query(None, description="Filter by actor"),
    ) -> list[dict]:
        """Get trace events with optional filters."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
            except ValueError:
                raise HTTPException(
                    status_code=400, detail="Invalid after timestamp format"
                )

        event_types = [event_type] if event_type else None

        try:
            events = await app.storage.get_trace_events(
                after=after_dt,
                event_types=event_types,
                actor=actor,
                limit=limit,
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in events
        ]

    @router.get("/collaborations", response_model=list[CollaborationRecordResponse])
    async def get_collaborations(
        limit: int = Query(100, ge=1, le=1000),
    ) -> list[dict]:
        """Get the most recent collaboration records."""
        try:
            records = await app.storage.get_collaborations(limit=limit)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [
            {
                "task_id": r.task_id,
                "request": r.request,
                "mode": r.mode,
                "final_response": r.final_response,
                "participating_workers": r.participating_workers,
                "total_tokens": r.total_tokens,
                "processing_time": r.processing_time,
                "rounds": r.rounds,
                "created_at": r.created_at.isoformat(),
            }
            for r in records
        ]

    return router
