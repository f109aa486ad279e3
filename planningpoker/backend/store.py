"""Persistence interfaces and implementations for session and roster data."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
import threading
from typing import Any, Protocol

from planningpoker.backend.errors import PersistenceError
from planningpoker.backend.models import Participant, SessionRecord, SessionStatus


class PokerStore(Protocol):
    def get_current_session(self) -> SessionRecord | None:
        """Return the latest session by id, or None before initialization."""

    def create_session(self, now: datetime) -> SessionRecord:
        """Insert a fresh session in the waiting status."""

    def update_session_status(self, session_id: int, status: SessionStatus, now: datetime) -> SessionRecord | None:
        """Persist a new status and return the updated record."""

    def get_participant(self, participant_id: str) -> Participant | None:
        """Return a participant by id regardless of session."""

    def list_participants(self, session_id: int) -> list[Participant]:
        """Return the roster of a session ordered by join time."""

    def count_participants(self, session_id: int) -> int:
        """Return the roster size of a session."""

    def insert_participant(self, participant: Participant) -> bool:
        """Insert a participant unless the id already exists."""

    def touch_participant(self, participant_id: str, now: datetime) -> bool:
        """Refresh last activity; False when the id is unknown."""

    def delete_participant(self, participant_id: str) -> int:
        """Remove a participant and return the number of rows removed."""

    def set_vote(self, participant_id: str, vote: str, now: datetime) -> bool:
        """Store a vote and refresh activity; False when the id is unknown."""

    def clear_votes(self, session_id: int) -> int:
        """Null every vote in a session and return the number of rows touched."""

    def delete_session_participants(self, session_id: int) -> int:
        """Remove the whole roster of a session and return the count."""

    def delete_inactive_participants(self, cutoff: datetime) -> int:
        """Remove participants whose last activity precedes cutoff."""

    def ping(self) -> None:
        """Raise PersistenceError when the store is unreachable."""


@dataclass
class InMemoryPokerStore:
    """Process-local store; each method holds one lock so every call is atomic."""

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[int, SessionRecord] = {}
        self._participants: dict[str, Participant] = {}

    def get_current_session(self) -> SessionRecord | None:
        with self._lock:
            if not self._sessions:
                return None
            return self._sessions[max(self._sessions)]

    def create_session(self, now: datetime) -> SessionRecord:
        with self._lock:
            session_id = max(self._sessions, default=0) + 1
            record = SessionRecord(
                session_id=session_id,
                status=SessionStatus.WAITING,
                created_at=now,
                last_activity=now,
            )
            self._sessions[session_id] = record
            return record

    def update_session_status(self, session_id: int, status: SessionStatus, now: datetime) -> SessionRecord | None:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            updated = replace(record, status=status, last_activity=now)
            self._sessions[session_id] = updated
            return updated

    def get_participant(self, participant_id: str) -> Participant | None:
        with self._lock:
            return self._participants.get(participant_id)

    def list_participants(self, session_id: int) -> list[Participant]:
        with self._lock:
            roster = [p for p in self._participants.values() if p.session_id == session_id]
        return sorted(roster, key=lambda participant: participant.created_at)

    def count_participants(self, session_id: int) -> int:
        with self._lock:
            return sum(1 for p in self._participants.values() if p.session_id == session_id)

    def insert_participant(self, participant: Participant) -> bool:
        with self._lock:
            if participant.participant_id in self._participants:
                return False
            self._participants[participant.participant_id] = participant
            return True

    def touch_participant(self, participant_id: str, now: datetime) -> bool:
        with self._lock:
            participant = self._participants.get(participant_id)
            if participant is None:
                return False
            self._participants[participant_id] = replace(participant, last_activity=now)
            return True

    def delete_participant(self, participant_id: str) -> int:
        with self._lock:
            return 1 if self._participants.pop(participant_id, None) is not None else 0

    def set_vote(self, participant_id: str, vote: str, now: datetime) -> bool:
        with self._lock:
            participant = self._participants.get(participant_id)
            if participant is None:
                return False
            self._participants[participant_id] = replace(participant, current_vote=vote, last_activity=now)
            return True

    def clear_votes(self, session_id: int) -> int:
        with self._lock:
            touched = 0
            for participant_id, participant in self._participants.items():
                if participant.session_id == session_id:
                    self._participants[participant_id] = replace(participant, current_vote=None)
                    touched += 1
            return touched

    def delete_session_participants(self, session_id: int) -> int:
        with self._lock:
            doomed = [pid for pid, p in self._participants.items() if p.session_id == session_id]
            for participant_id in doomed:
                del self._participants[participant_id]
            return len(doomed)

    def delete_inactive_participants(self, cutoff: datetime) -> int:
        with self._lock:
            doomed = [pid for pid, p in self._participants.items() if p.last_activity < cutoff]
            for participant_id in doomed:
                del self._participants[participant_id]
            return len(doomed)

    def ping(self) -> None:
        return None


_PARTICIPANT_COLUMNS = "id, nickname, current_vote, session_id, created_at, last_activity"
_SESSION_COLUMNS = "id, status, created_at, last_activity"


def _session_from_row(row: tuple) -> SessionRecord:
    session_id, status, created_at, last_activity = row
    return SessionRecord(
        session_id=int(session_id),
        status=SessionStatus(status),
        created_at=created_at,
        last_activity=last_activity,
    )


def _participant_from_row(row: tuple) -> Participant:
    participant_id, nickname, current_vote, session_id, created_at, last_activity = row
    return Participant(
        participant_id=participant_id,
        nickname=nickname,
        current_vote=current_vote,
        session_id=int(session_id),
        created_at=created_at,
        last_activity=last_activity,
    )


@dataclass
class PostgresPokerStore:
    """PostgreSQL store; every method is a single statement in its own transaction."""

    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        import psycopg

        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    yield cur
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError("Database operation failed", details={"error": type(exc).__name__}) from exc

    def get_current_session(self) -> SessionRecord | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM poker_sessions ORDER BY id DESC LIMIT 1")
            row = cur.fetchone()
        return None if row is None else _session_from_row(row)

    def create_session(self, now: datetime) -> SessionRecord:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO poker_sessions (status, created_at, last_activity)
                VALUES (%s, %s, %s)
                RETURNING {_SESSION_COLUMNS}
                """,
                (SessionStatus.WAITING.value, now, now),
            )
            row = cur.fetchone()
        return _session_from_row(row)

    def update_session_status(self, session_id: int, status: SessionStatus, now: datetime) -> SessionRecord | None:
        with self._cursor() as cur:
            cur.execute(
                f"""
                UPDATE poker_sessions
                SET status = %s, last_activity = %s
                WHERE id = %s
                RETURNING {_SESSION_COLUMNS}
                """,
                (status.value, now, session_id),
            )
            row = cur.fetchone()
        return None if row is None else _session_from_row(row)

    def get_participant(self, participant_id: str) -> Participant | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_PARTICIPANT_COLUMNS} FROM participants WHERE id = %s", (participant_id,))
            row = cur.fetchone()
        return None if row is None else _participant_from_row(row)

    def list_participants(self, session_id: int) -> list[Participant]:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {_PARTICIPANT_COLUMNS} FROM participants WHERE session_id = %s ORDER BY created_at ASC",
                (session_id,),
            )
            rows = cur.fetchall()
        return [_participant_from_row(row) for row in rows]

    def count_participants(self, session_id: int) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM participants WHERE session_id = %s", (session_id,))
            row = cur.fetchone()
        return int(row[0]) if row else 0

    def insert_participant(self, participant: Participant) -> bool:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO participants ({_PARTICIPANT_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
                """,
                (
                    participant.participant_id,
                    participant.nickname,
                    participant.current_vote,
                    participant.session_id,
                    participant.created_at,
                    participant.last_activity,
                ),
            )
            return cur.rowcount == 1

    def touch_participant(self, participant_id: str, now: datetime) -> bool:
        with self._cursor() as cur:
            cur.execute("UPDATE participants SET last_activity = %s WHERE id = %s", (now, participant_id))
            return cur.rowcount > 0

    def delete_participant(self, participant_id: str) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM participants WHERE id = %s", (participant_id,))
            return cur.rowcount

    def set_vote(self, participant_id: str, vote: str, now: datetime) -> bool:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE participants SET current_vote = %s, last_activity = %s WHERE id = %s",
                (vote, now, participant_id),
            )
            return cur.rowcount > 0

    def clear_votes(self, session_id: int) -> int:
        with self._cursor() as cur:
            cur.execute("UPDATE participants SET current_vote = NULL WHERE session_id = %s", (session_id,))
            return cur.rowcount

    def delete_session_participants(self, session_id: int) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM participants WHERE session_id = %s", (session_id,))
            return cur.rowcount

    def delete_inactive_participants(self, cutoff: datetime) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM participants WHERE last_activity < %s", (cutoff,))
            return cur.rowcount

    def ping(self) -> None:
        with self._cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()

    def apply_schema(self, schema_sql: str) -> None:
        with self._cursor() as cur:
            cur.execute(schema_sql)


def create_store(database_url: str | None) -> PokerStore:
    if database_url:
        return PostgresPokerStore(database_url=database_url)
    return InMemoryPokerStore()
