"""Append-only archetype history stores.

A user has at most one *current* assignment (``valid_until IS NULL``).
Recording a new assignment stamps the current one with the new
``assigned_at`` (never earlier than the old row's own) and inserts the
replacement as a single atomic step, so two concurrent recomputations can
never leave two current rows behind.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    case,
    create_engine,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from devflow_analytics.models import ArchetypeAssignment

logger = logging.getLogger(__name__)


class ArchetypeConflictError(RuntimeError):
    """Raised when a supersede-and-insert would leave two current records."""


class ArchetypeHistoryStore(Protocol):
    def current(self, user_id: str) -> ArchetypeAssignment | None: ...

    def history(self, user_id: str) -> list[ArchetypeAssignment]: ...

    def supersede_and_insert(self, assignment: ArchetypeAssignment) -> ArchetypeAssignment: ...


# ── In-memory ───────────────────────────────────────────────────────────────


def _detached(assignment: ArchetypeAssignment, **changes: Any) -> ArchetypeAssignment:
    """Copy with its own metric dicts, so callers cannot edit stored history."""
    return replace(
        assignment,
        trigger_metrics=copy.deepcopy(assignment.trigger_metrics),
        scores=dict(assignment.scores),
        **changes,
    )


class InMemoryArchetypeStore:
    """Thread-safe store for tests and single-process use."""

    def __init__(self) -> None:
        self._rows: list[ArchetypeAssignment] = []
        self._lock = threading.Lock()
        self._next_id = 1

    def current(self, user_id: str) -> ArchetypeAssignment | None:
        with self._lock:
            for row in reversed(self._rows):
                if row.user_id == user_id and row.valid_until is None:
                    return _detached(row)
        return None

    def history(self, user_id: str) -> list[ArchetypeAssignment]:
        """All assignments for *user_id*, oldest first."""
        with self._lock:
            return [_detached(r) for r in self._rows if r.user_id == user_id]

    def supersede_and_insert(self, assignment: ArchetypeAssignment) -> ArchetypeAssignment:
        with self._lock:
            for row in self._rows:
                if row.user_id == assignment.user_id and row.valid_until is None:
                    row.valid_until = max(row.assigned_at, assignment.assigned_at)
            stored = _detached(assignment, id=self._next_id, valid_until=None)
            self._next_id += 1
            self._rows.append(stored)
            return _detached(stored)


# ── SQL ─────────────────────────────────────────────────────────────────────

metadata = MetaData()

archetype_history = Table(
    "archetype_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("archetype", String(32), nullable=False),
    Column("confidence_score", Float, nullable=False),
    Column("trigger_metrics", JSON, nullable=False),
    Column("scores", JSON, nullable=False),
    Column("assigned_at", DateTime, nullable=False),
    Column("valid_until", DateTime, nullable=True),
)

# One current row per user.
Index(
    "ux_archetype_history_current",
    archetype_history.c.user_id,
    unique=True,
    sqlite_where=archetype_history.c.valid_until.is_(None),
    postgresql_where=archetype_history.c.valid_until.is_(None),
)


def _to_db(value: datetime | None) -> datetime | None:
    """Naive UTC for storage."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _row_to_assignment(row: Any) -> ArchetypeAssignment:
    return ArchetypeAssignment(
        id=row.id,
        user_id=row.user_id,
        archetype_key=row.archetype,
        confidence_score=row.confidence_score,
        trigger_metrics=dict(row.trigger_metrics or {}),
        scores=dict(row.scores or {}),
        assigned_at=_from_db(row.assigned_at),
        valid_until=_from_db(row.valid_until),
    )


class SQLArchetypeStore:
    """SQLAlchemy-backed store (SQLite or Postgres)."""

    def __init__(self, db_url: str | None = None, engine: Engine | None = None) -> None:
        if engine is None:
            if not db_url:
                raise ValueError("Database URL is required")
            engine = create_engine(db_url, echo=False)
        self.engine: Engine = engine

    def ensure_tables(self) -> None:
        metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def current(self, user_id: str) -> ArchetypeAssignment | None:
        stmt = (
            select(archetype_history)
            .where(archetype_history.c.user_id == user_id)
            .where(archetype_history.c.valid_until.is_(None))
            .order_by(archetype_history.c.assigned_at.desc())
            .limit(1)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _row_to_assignment(row) if row is not None else None

    def history(self, user_id: str) -> list[ArchetypeAssignment]:
        """All assignments for *user_id*, oldest first."""
        stmt = (
            select(archetype_history)
            .where(archetype_history.c.user_id == user_id)
            .order_by(archetype_history.c.assigned_at, archetype_history.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_assignment(r) for r in rows]

    def supersede_and_insert(self, assignment: ArchetypeAssignment) -> ArchetypeAssignment:
        """Close the user's current row and insert *assignment* in one transaction.

        The partial unique index rejects a second current row if another
        writer slipped in between; that surfaces as ``ArchetypeConflictError``.
        """
        stamp = _to_db(assignment.assigned_at)
        try:
            with self.engine.begin() as conn:
                closed = conn.execute(
                    update(archetype_history)
                    .where(archetype_history.c.user_id == assignment.user_id)
                    .where(archetype_history.c.valid_until.is_(None))
                    .values(valid_until=case(
                        (archetype_history.c.assigned_at > stamp, archetype_history.c.assigned_at),
                        else_=stamp,
                    ))
                ).rowcount
                result = conn.execute(
                    archetype_history.insert().values(
                        user_id=assignment.user_id,
                        archetype=assignment.archetype_key,
                        confidence_score=assignment.confidence_score,
                        trigger_metrics=assignment.trigger_metrics,
                        scores=assignment.scores,
                        assigned_at=stamp,
                        valid_until=None,
                    )
                )
                new_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ArchetypeConflictError(
                f"Concurrent archetype update for user {assignment.user_id}"
            ) from exc

        logger.info(
            "Archetype for %s -> %s (superseded %d)",
            assignment.user_id,
            assignment.archetype_key,
            closed,
        )
        return _detached(assignment, id=new_id, valid_until=None)
