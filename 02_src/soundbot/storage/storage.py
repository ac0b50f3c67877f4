"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..logging_config import get_logger
from ..models import TraceEvent, UserConversationState
from ..models.conversation import RESET_VALUE

logger = get_logger(__name__)

# Columns that set_user_state() may write.
STATE_COLUMNS = ("target_mood", "target_location")


class IStateStore(Protocol):
    """Per-user answers for the conversation flow."""

    async def get_user_state(self, user_id: str) -> UserConversationState:
        """Return the stored answers; an absent record reads as all-unset."""
        ...

    async def set_user_state(
        self, user_id: str, updates: dict, insert_defaults: dict
    ) -> None:
        """Update the listed columns, or insert a record with the defaults."""
        ...

    async def reset_user_state(self, user_id: str) -> None:
        """Set both answers to -1."""
        ...


class IStorage(IStateStore, Protocol):
    """Persistent storage for all system data (SQLite)."""

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

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


def _check_columns(values: dict) -> None:
    unknown = set(values) - set(STATE_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown user state columns: {sorted(unknown)}")


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
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

    # User state
    async def get_user_state(self, user_id: str) -> UserConversationState:
        """Return the stored answers; an absent record reads as all-unset."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT target_mood, target_location
            FROM user_states
            WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return UserConversationState(user_id=user_id)

        return UserConversationState(
            user_id=user_id, target_mood=row[0], target_location=row[1]
        )

    async def set_user_state(
        self, user_id: str, updates: dict, insert_defaults: dict
    ) -> None:
        """
        Write answers for a user.

        If a record exists only the columns named in `updates` change;
        otherwise a new record is inserted from `insert_defaults` (columns
        not listed there stay NULL).
        """
        conn = self._require_conn()
        _check_columns(updates)
        _check_columns(insert_defaults)

        cursor = await conn.execute(
            "SELECT 1 FROM user_states WHERE user_id = ? LIMIT 1",
            (user_id,),
        )
        exists = await cursor.fetchone() is not None

        if exists:
            if not updates:
                return
            assignments = ", ".join(f"{column} = ?" for column in updates)
            await conn.execute(
                f"""
                UPDATE user_states
                SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE user_id = ?
                """,
                (*updates.values(), user_id),
            )
        else:
            columns = ["user_id", *insert_defaults]
            placeholders = ", ".join("?" * len(columns))
            await conn.execute(
                f"""
                INSERT INTO user_states ({', '.join(columns)})
                VALUES ({placeholders})
                """,
                (user_id, *insert_defaults.values()),
            )

        await conn.commit()
        logger.debug("Stored state for %s: %s", user_id, updates if exists else insert_defaults)

    async def reset_user_state(self, user_id: str) -> None:
        """Set both answers to -1."""
        cleared = {column: RESET_VALUE for column in STATE_COLUMNS}
        await self.set_user_state(user_id, cleared, cleared)

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
                json.dumps(event.data),
                event.timestamp.isoformat(),
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
            if after.tzinfo is None:
                after = after.replace(tzinfo=timezone.utc)
            conditions.append("timestamp > ?")
            params.append(after.isoformat())
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
            ORDER BY timestamp DESC
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
                timestamp=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        for table in ("user_states", "trace_events"):
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
