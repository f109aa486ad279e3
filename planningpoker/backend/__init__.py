"""Backend package for the planning poker service."""

from .config import BackendSettings, load_settings
from .engine import SessionRegistry, SessionStateMachine
from .errors import (
    CapacityExceededError,
    NotFoundError,
    PersistenceError,
    PokerError,
    UnauthorizedError,
    ValidationError,
)
from .models import VOTE_DECK, SessionStatus
from .roster import Roster
from .security import ExpiringTokenCache, HostAuthority, generate_token, hash_token
from .service import PlanningPokerService
from .store import InMemoryPokerStore, PokerStore, PostgresPokerStore, create_store

__all__ = [
    "BackendSettings",
    "CapacityExceededError",
    "create_store",
    "ExpiringTokenCache",
    "generate_token",
    "hash_token",
    "HostAuthority",
    "InMemoryPokerStore",
    "load_settings",
    "NotFoundError",
    "PersistenceError",
    "PlanningPokerService",
    "PokerError",
    "PokerStore",
    "PostgresPokerStore",
    "Roster",
    "SessionRegistry",
    "SessionStateMachine",
    "SessionStatus",
    "UnauthorizedError",
    "ValidationError",
    "VOTE_DECK",
]
