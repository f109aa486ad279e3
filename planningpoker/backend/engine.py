"""Session registry and the voting state machine."""

from __future__ import annotations

from dataclasses import dataclass
import threading

from planningpoker.backend.errors import PersistenceError, ValidationError
from planningpoker.backend.logging import get_logger
from planningpoker.backend.models import Clock, SessionRecord, SessionStatus, utc_now
from planningpoker.backend.roster import Roster
from planningpoker.backend.store import PokerStore

logger = get_logger(__name__)


class SessionRegistry:
    """Holds the reference to the one current session.

    The reference is loaded lazily from the store (creating a waiting session
    on an empty store) and replaced atomically after every successful
    status write, so readers never observe a status older than the last
    committed transition.
    """

    def __init__(self, store: PokerStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()
        self._current: SessionRecord | None = None

    def current(self) -> SessionRecord:
        with self._lock:
            if self._current is None:
                self._current = self._load_or_create()
            return self._current

    def refresh(self) -> SessionRecord:
        with self._lock:
            self._current = self._load_or_create()
            return self._current

    def swap(self, record: SessionRecord) -> SessionRecord:
        with self._lock:
            previous = self._current
            self._current = record
        return previous if previous is not None else record

    def _load_or_create(self) -> SessionRecord:
        record = self._store.get_current_session()
        if record is not None:
            return record
        record = self._store.create_session(now=self._clock())
        logger.info("session.created", session_id=record.session_id)
        return record


@dataclass(frozen=True)
class TransitionRule:
    clear_votes: bool
    cleanup_stale: bool


# Keyed by target only: any status may move to any status.
TRANSITIONS: dict[SessionStatus, TransitionRule] = {
    SessionStatus.VOTING: TransitionRule(clear_votes=True, cleanup_stale=False),
    SessionStatus.ENDED: TransitionRule(clear_votes=False, cleanup_stale=False),
    SessionStatus.WAITING: TransitionRule(clear_votes=True, cleanup_stale=True),
}


@dataclass(frozen=True)
class TransitionResult:
    session: SessionRecord
    previous_status: SessionStatus
    votes_cleared: int
    stale_removed: int


class SessionStateMachine:
    def __init__(self, store: PokerStore, registry: SessionRegistry, roster: Roster, clock: Clock = utc_now) -> None:
        self._store = store
        self._registry = registry
        self._roster = roster
        self._clock = clock

    def transition(self, target: SessionStatus | str) -> TransitionResult:
        """Move the current session to ``target`` and apply the cascade for it."""
        try:
            status = SessionStatus(target)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown session status {target!r}",
                details={"allowed": [s.value for s in SessionStatus]},
            ) from exc
        rule = TRANSITIONS[status]

        with self._roster.exclusive():
            current = self._registry.current()
            updated = self._store.update_session_status(current.session_id, status, now=self._clock())
            if updated is None:
                raise PersistenceError(
                    "Current session is missing from the store",
                    details={"session_id": current.session_id},
                )
            self._registry.swap(updated)
            votes_cleared = self._roster.clear_votes(updated.session_id) if rule.clear_votes else 0
            stale_removed = self._roster.cleanup_stale() if rule.cleanup_stale else 0

        logger.info(
            "session.transition",
            session_id=updated.session_id,
            from_status=current.status.value,
            to_status=status.value,
            votes_cleared=votes_cleared,
            stale_removed=stale_removed,
        )
        return TransitionResult(
            session=updated,
            previous_status=current.status,
            votes_cleared=votes_cleared,
            stale_removed=stale_removed,
        )

    def start(self) -> TransitionResult:
        return self.transition(SessionStatus.VOTING)

    def end(self) -> TransitionResult:
        return self.transition(SessionStatus.ENDED)

    def reset(self) -> TransitionResult:
        return self.transition(SessionStatus.WAITING)
