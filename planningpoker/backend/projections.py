"""Client-visible views derived from the session status and its roster."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from planningpoker.backend.models import (
    UNKNOWN_VOTE,
    FinalVote,
    HostParticipant,
    HostView,
    Participant,
    ParticipantView,
    SessionStatus,
    VoteTally,
)


def participant_view(status: SessionStatus, roster: Iterable[Participant]) -> list[ParticipantView]:
    """Vote progress is only revealed while voting is open."""
    show_progress = status == SessionStatus.VOTING
    return [
        ParticipantView(nickname=participant.nickname, has_voted=show_progress and participant.has_vote)
        for participant in roster
    ]


def vote_tally(roster: Iterable[Participant]) -> VoteTally:
    participants = list(roster)
    return VoteTally(total=len(participants), voted=sum(1 for p in participants if p.has_vote))


def final_votes(status: SessionStatus, roster: Iterable[Participant]) -> list[FinalVote]:
    if status != SessionStatus.ENDED:
        return []
    return [
        FinalVote(nickname=participant.nickname, vote=participant.current_vote)
        for participant in roster
        if participant.current_vote is not None
    ]


def vote_sort_key(token: str) -> tuple[int, int]:
    if token == UNKNOWN_VOTE:
        return (1, 0)
    return (0, int(token))


def vote_distribution(roster: Iterable[Participant]) -> dict[str, int]:
    """Histogram of cast votes, numeric tokens ascending and "?" last."""
    counts = Counter(p.current_vote for p in roster if p.current_vote is not None)
    return {token: counts[token] for token in sorted(counts, key=vote_sort_key)}


def host_view(status: SessionStatus, roster: Iterable[Participant]) -> HostView:
    participants = list(roster)
    return HostView(
        status=status,
        votes=final_votes(status, participants),
        all_users=[
            HostParticipant(
                participant_id=participant.participant_id,
                nickname=participant.nickname,
                current_vote=participant.current_vote,
            )
            for participant in participants
        ],
    )
