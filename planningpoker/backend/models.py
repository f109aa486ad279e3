"""Domain records for the voting session, its roster and read views."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class SessionStatus(str, Enum):
    WAITING = "waiting"
    VOTING = "voting"
    ENDED = "ended"


UNKNOWN_VOTE = "?"

VOTE_DECK: tuple[str, ...] = ("0", "1", "2", "3", "5", "8", "13", "21", "34", "55", "89", UNKNOWN_VOTE)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionRecord:
    session_id: int
    status: SessionStatus
    created_at: datetime
    last_activity: datetime


@dataclass(frozen=True)
class Participant:
    participant_id: str
    nickname: str
    current_vote: str | None
    session_id: int
    created_at: datetime
    last_activity: datetime

    @property
    def has_vote(self) -> bool:
        return self.current_vote is not None


@dataclass(frozen=True)
class JoinResult:
    participant_id: str
    nickname: str
    rejoined: bool = False


@dataclass(frozen=True)
class ParticipantView:
    nickname: str
    has_voted: bool


@dataclass(frozen=True)
class VoteTally:
    total: int
    voted: int


@dataclass(frozen=True)
class FinalVote:
    nickname: str
    vote: str


@dataclass(frozen=True)
class HostParticipant:
    participant_id: str
    nickname: str
    current_vote: str | None


@dataclass(frozen=True)
class HostView:
    status: SessionStatus
    votes: list[FinalVote]
    all_users: list[HostParticipant]
