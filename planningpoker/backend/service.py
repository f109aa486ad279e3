"""Service facade exposing every participant and host operation."""

from __future__ import annotations

from collections.abc import Callable
import random
import time
from typing import Any

from planningpoker.backend import projections
from planningpoker.backend.config import BackendSettings
from planningpoker.backend.engine import SessionRegistry, SessionStateMachine
from planningpoker.backend.errors import PersistenceError
from planningpoker.backend.logging import get_logger
from planningpoker.backend.models import (
    Clock,
    FinalVote,
    HostView,
    JoinResult,
    ParticipantView,
    SessionRecord,
    SessionStatus,
    VoteTally,
    utc_now,
)
from planningpoker.backend.roster import Roster
from planningpoker.backend.security import HostAuthority
from planningpoker.backend.store import PokerStore

logger = get_logger(__name__)


class PlanningPokerService:
    def __init__(
        self,
        store: PokerStore,
        settings: BackendSettings,
        clock: Clock = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self._clock = clock
        self.registry = SessionRegistry(store, clock=clock)
        self.roster = Roster(
            store,
            self.registry,
            max_participants=settings.max_users_per_session,
            retention=settings.user_retention,
            clock=clock,
            rng=rng,
        )
        self.machine = SessionStateMachine(store, self.registry, self.roster, clock=clock)
        self.host_gate = HostAuthority(
            password=settings.host_password,
            server_salt=settings.server_salt,
            timeout_seconds=settings.host_session_timeout_seconds,
            clock=monotonic,
        )

    def startup(self) -> SessionRecord:
        """Load (or create) the current session and drop stale participants."""
        session = self.registry.refresh()
        self.roster.cleanup_stale()
        logger.info(
            "service.started",
            session_id=session.session_id,
            status=session.status.value,
            store=type(self.store).__name__,
            max_users_per_session=self.settings.max_users_per_session,
            user_cleanup_hours=self.settings.user_cleanup_hours,
            host_session_timeout_seconds=self.settings.host_session_timeout_seconds,
        )
        return session

    # Participant operations

    def join(self, user_id: str | None = None) -> JoinResult:
        return self.roster.join(user_id)

    def leave(self, user_id: str) -> None:
        self.roster.leave(user_id)

    def vote(self, user_id: str, vote: object) -> str:
        return self.roster.vote(user_id, vote)

    def session_status(self) -> SessionStatus:
        return self.registry.current().status

    def participants(self) -> list[ParticipantView]:
        session, roster = self.roster.snapshot()
        return projections.participant_view(session.status, roster)

    def vote_count(self) -> VoteTally:
        _, roster = self.roster.snapshot()
        return projections.vote_tally(roster)

    def final_votes(self) -> list[FinalVote]:
        session, roster = self.roster.snapshot()
        return projections.final_votes(session.status, roster)

    # Host operations

    def host_login(self, password: str) -> str:
        return self.host_gate.login(password)

    def host_logout(self, token: str | None) -> None:
        self.host_gate.logout(token)

    def host_start(self, token: str | None) -> SessionRecord:
        self.host_gate.authenticate(token)
        return self.machine.start().session

    def host_end(self, token: str | None) -> SessionRecord:
        self.host_gate.authenticate(token)
        return self.machine.end().session

    def host_reset(self, token: str | None) -> SessionRecord:
        self.host_gate.authenticate(token)
        return self.machine.reset().session

    def host_clear_users(self, token: str | None) -> int:
        self.host_gate.authenticate(token)
        return self.roster.clear_all(self.registry.current().session_id)

    def host_status(self, token: str | None) -> HostView:
        self.host_gate.authenticate(token)
        session, roster = self.roster.snapshot()
        return projections.host_view(session.status, roster)

    def host_distribution(self, token: str | None) -> dict[str, int]:
        self.host_gate.authenticate(token)
        _, roster = self.roster.snapshot()
        return projections.vote_distribution(roster)

    # Maintenance

    def sweep_host_tokens(self) -> int:
        return self.host_gate.sweep_expired()

    def cleanup_stale_participants(self) -> int:
        return self.roster.cleanup_stale()

    def health(self) -> dict[str, Any]:
        timestamp = self._clock().isoformat()
        try:
            self.store.ping()
        except PersistenceError as exc:
            logger.error("health.database_unreachable", error=exc.message, details=exc.details)
            return {"status": "unhealthy", "database": "error", "timestamp": timestamp}
        return {"status": "healthy", "database": "connected", "timestamp": timestamp}
