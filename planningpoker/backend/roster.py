"""Roster operations: joining, leaving, voting and vote/participant cleanup."""

from __future__ import annotations

from collections.abc import Collection, Iterator
from contextlib import contextmanager
from datetime import timedelta
import random
import threading
from typing import TYPE_CHECKING
import uuid

from planningpoker.backend.errors import CapacityExceededError, NotFoundError, PersistenceError, ValidationError
from planningpoker.backend.logging import get_logger
from planningpoker.backend.models import (
    VOTE_DECK,
    Clock,
    JoinResult,
    Participant,
    SessionRecord,
    utc_now,
)
from planningpoker.backend.store import PokerStore

if TYPE_CHECKING:
    from planningpoker.backend.engine import SessionRegistry

logger = get_logger(__name__)

NICKNAMES: tuple[str, ...] = (
    "Clever Penguin", "Swift Fox", "Bold Badger", "Wise Owl", "Curious Cat",
    "Brave Bear", "Smart Squirrel", "Quick Rabbit", "Calm Koala", "Eager Eagle",
    "Gentle Giraffe", "Happy Hippo", "Jolly Jaguar", "Kind Kangaroo", "Lucky Llama",
    "Mighty Moose", "Noble Narwhal", "Optimistic Otter", "Playful Panda", "Quiet Quail",
    "Radiant Raccoon", "Serene Swan", "Tranquil Tiger", "Unique Unicorn", "Vibrant Vulture",
    "Witty Wolf", "Xenial Xerus", "Yielding Yak", "Zealous Zebra", "Amazing Antelope",
)

MAX_SUFFIX_ATTEMPTS = 100
MAX_PARTICIPANT_ID_LENGTH = 128


def assign_nickname(existing: Collection[str], rng: random.Random, timestamp_ms: int) -> str:
    """Pick a curated nickname that is not in ``existing``.

    Collisions get a numeric suffix ("Wise Owl 1", "Wise Owl 2", ...). After
    MAX_SUFFIX_ATTEMPTS suffixes the millisecond timestamp is used instead,
    bumped until it is free, so the search always terminates.
    """
    base = rng.choice(NICKNAMES)
    if base not in existing:
        return base
    for counter in range(1, MAX_SUFFIX_ATTEMPTS + 1):
        candidate = f"{base} {counter}"
        if candidate not in existing:
            return candidate
    suffix = timestamp_ms
    while f"{base} {suffix}" in existing:
        suffix += 1
    return f"{base} {suffix}"


def generate_participant_id(timestamp_ms: int) -> str:
    return f"user_{timestamp_ms}_{uuid.uuid4().hex[:9]}"


def normalize_vote(value: object) -> str:
    """Return the deck token for ``value`` or raise ValidationError."""
    if isinstance(value, bool):
        token = None
    elif isinstance(value, int):
        token = str(value)
    elif isinstance(value, str):
        token = value.strip()
    else:
        token = None
    if token is None or token not in VOTE_DECK:
        raise ValidationError(
            "Invalid vote",
            details={"vote": str(value), "allowed": list(VOTE_DECK)},
        )
    return token


def _clean_requested_id(requested_id: str | None) -> str | None:
    if requested_id is None:
        return None
    cleaned = requested_id.strip()
    if not cleaned:
        return None
    if len(cleaned) > MAX_PARTICIPANT_ID_LENGTH:
        raise ValidationError(
            "Participant id is too long",
            details={"max_length": MAX_PARTICIPANT_ID_LENGTH},
        )
    return cleaned


class Roster:
    """Participant operations scoped to the current session.

    Writes that read before they write (join, vote, the state machine's
    cascades) run under one re-entrant lock, so the capacity check and the
    insert in ``join`` behave as a unit even when the store only makes single
    statements atomic.
    """

    def __init__(
        self,
        store: PokerStore,
        registry: SessionRegistry,
        max_participants: int = 50,
        retention: timedelta = timedelta(hours=24),
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self.max_participants = max_participants
        self.retention = retention
        self._clock = clock
        self._rng = rng if rng is not None else random.Random()
        self._lock = threading.RLock()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._lock:
            yield

    def join(self, requested_id: str | None = None) -> JoinResult:
        participant_id = _clean_requested_id(requested_id)
        with self._lock:
            session = self._registry.current()
            now = self._clock()
            if participant_id is not None:
                existing = self._store.get_participant(participant_id)
                if existing is not None and existing.session_id == session.session_id:
                    self._store.touch_participant(participant_id, now=now)
                    logger.info("roster.rejoined", participant_id=participant_id, nickname=existing.nickname)
                    return JoinResult(participant_id=participant_id, nickname=existing.nickname, rejoined=True)
                if existing is not None:
                    # Left over from a historical session.
                    self._store.delete_participant(participant_id)

            roster = self._store.list_participants(session.session_id)
            if len(roster) >= self.max_participants:
                logger.warning("roster.capacity_exceeded", session_id=session.session_id, limit=self.max_participants)
                raise CapacityExceededError(self.max_participants)

            timestamp_ms = int(now.timestamp() * 1000)
            if participant_id is None:
                participant_id = generate_participant_id(timestamp_ms)
            nickname = assign_nickname({p.nickname for p in roster}, self._rng, timestamp_ms)
            inserted = self._store.insert_participant(
                Participant(
                    participant_id=participant_id,
                    nickname=nickname,
                    current_vote=None,
                    session_id=session.session_id,
                    created_at=now,
                    last_activity=now,
                )
            )
            if not inserted:
                raise PersistenceError("Participant id already taken", details={"participant_id": participant_id})

        logger.info("roster.joined", participant_id=participant_id, nickname=nickname, session_id=session.session_id)
        return JoinResult(participant_id=participant_id, nickname=nickname)

    def leave(self, participant_id: str) -> None:
        removed = self._store.delete_participant(participant_id)
        if removed:
            logger.info("roster.left", participant_id=participant_id)

    def vote(self, participant_id: str, value: object) -> str:
        token = normalize_vote(value)
        with self._lock:
            if not self._store.set_vote(participant_id, token, now=self._clock()):
                raise NotFoundError("Participant", participant_id)
        return token

    def snapshot(self) -> tuple[SessionRecord, list[Participant]]:
        """Return the current session and its roster as one consistent read."""
        with self._lock:
            session = self._registry.current()
            return session, self._store.list_participants(session.session_id)

    def clear_votes(self, session_id: int) -> int:
        with self._lock:
            return self._store.clear_votes(session_id)

    def clear_all(self, session_id: int) -> int:
        with self._lock:
            removed = self._store.delete_session_participants(session_id)
        logger.info("roster.cleared", session_id=session_id, removed=removed)
        return removed

    def cleanup_stale(self, retention: timedelta | None = None) -> int:
        window = retention if retention is not None else self.retention
        removed = self._store.delete_inactive_participants(self._clock() - window)
        if removed:
            logger.info("roster.stale_removed", removed=removed, retention_hours=window.total_seconds() / 3600)
        return removed
