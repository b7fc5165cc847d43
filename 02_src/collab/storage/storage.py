"""SQLite storage implementation for traces and collaboration records."""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import CollaborationResult, TraceEvent


@dataclass
class CollaborationRecord:
    """Summary row for one processed request."""

    task_id: str
    request: str
    mode: str
    final_response: str
    participating_workers: list[str]
    total_tokens: int
    processing_time: int
    rounds: int
    created_at: datetime


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _format_ts(ts: datetime) -> str:
    """UTC, fixed-width ISO text so string order matches time order."""
    ts = ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)
    return ts.isoformat(timespec="microseconds")


class IStorage(Protocol):
    """Persistent storage for observability data (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Collaborations
    async def save_collaboration(self, request: str, result: CollaborationResult) -> None:
        """Save the summary of a processed request."""
        ...

    async def get_collaborations(self, limit: int = 100) -> list[CollaborationRecord]:
        """Get collaboration records (newest first)."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, ensure_ascii=False, default=str),
                _format_ts(event.timestamp),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(_format_ts(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC, rowid DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # Collaborations
    async def save_collaboration(self, request: str, result: CollaborationResult) -> None:
        """Save the summary of a processed request."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO collaborations
            (task_id, request, mode, final_response, participating_workers,
             total_tokens, processing_time, rounds, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                result.task_id,
                request,
                result.mode.value,
                result.final_response,
                json.dumps(result.participating_workers),
                result.total_tokens,
                result.processing_time,
                result.rounds,
                _format_ts(datetime.now(timezone.utc)),
            ),
        )
        await conn.commit()

    async def get_collaborations(self, limit: int = 100) -> list[CollaborationRecord]:
        """Get collaboration records (newest first)."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT task_id, request, mode, final_response, participating_workers,
                   total_tokens, processing_time, rounds, created_at
            FROM collaborations
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = await cursor.fetchall()

        return [
            CollaborationRecord(
                task_id=row[0],
                request=row[1],
                mode=row[2],
                final_response=row[3],
                participating_workers=json.loads(row[4]),
                total_tokens=row[5],
                processing_time=row[6],
                rounds=row[7],
                created_at=_parse_ts(row[8]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()
        await conn.execute("DELETE FROM trace_events")
        await conn.execute("DELETE FROM collaborations")
        await conn.commit()
