from datetime import datetime, timedelta, timezone

from planningpoker.backend.models import Participant, SessionStatus
from planningpoker.backend.store import InMemoryPokerStore, PostgresPokerStore, create_store

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _participant(participant_id: str, session_id: int = 1, minutes: int = 0, vote: str | None = None) -> Participant:
    at = T0 + timedelta(minutes=minutes)
    return Participant(
        participant_id=participant_id,
        nickname=f"Nick {participant_id}",
        current_vote=vote,
        session_id=session_id,
        created_at=at,
        last_activity=at,
    )


def test_create_store_returns_postgres_store_when_database_url_present() -> None:
    store = create_store(database_url="postgresql://local")

    assert isinstance(store, PostgresPokerStore)


def test_create_store_returns_in_memory_store_when_database_url_missing() -> None:
    store = create_store(database_url=None)

    assert isinstance(store, InMemoryPokerStore)


def test_in_memory_current_session_is_latest_by_id() -> None:
    store = InMemoryPokerStore()

    assert store.get_current_session() is None

    first = store.create_session(now=T0)
    second = store.create_session(now=T0)

    assert first.status == SessionStatus.WAITING
    assert store.get_current_session() == second
    assert second.session_id == first.session_id + 1


def test_in_memory_update_session_status_refreshes_activity() -> None:
    store = InMemoryPokerStore()
    session = store.create_session(now=T0)

    updated = store.update_session_status(session.session_id, SessionStatus.VOTING, now=T0 + timedelta(minutes=5))

    assert updated is not None
    assert updated.status == SessionStatus.VOTING
    assert updated.last_activity == T0 + timedelta(minutes=5)
    assert updated.created_at == T0
    assert store.update_session_status(99, SessionStatus.ENDED, now=T0) is None


def test_in_memory_insert_participant_ignores_duplicate_id() -> None:
    store = InMemoryPokerStore()

    assert store.insert_participant(_participant("a")) is True
    assert store.insert_participant(_participant("a", minutes=3)) is False
    assert store.count_participants(1) == 1


def test_in_memory_list_participants_is_scoped_and_ordered_by_join_time() -> None:
    store = InMemoryPokerStore()
    store.insert_participant(_participant("late", minutes=10))
    store.insert_participant(_participant("early", minutes=1))
    store.insert_participant(_participant("elsewhere", session_id=2))

    roster = store.list_participants(1)

    assert [p.participant_id for p in roster] == ["early", "late"]


def test_in_memory_set_vote_updates_vote_and_activity_together() -> None:
    store = InMemoryPokerStore()
    store.insert_participant(_participant("a"))
    later = T0 + timedelta(hours=2)

    assert store.set_vote("a", "8", now=later) is True
    assert store.set_vote("ghost", "8", now=later) is False

    participant = store.get_participant("a")
    assert participant is not None
    assert participant.current_vote == "8"
    assert participant.last_activity == later
    assert store.get_participant("ghost") is None


def test_in_memory_clear_votes_only_touches_given_session() -> None:
    store = InMemoryPokerStore()
    store.insert_participant(_participant("a", vote="3"))
    store.insert_participant(_participant("b", vote="5"))
    store.insert_participant(_participant("c", session_id=2, vote="8"))

    touched = store.clear_votes(1)

    assert touched == 2
    assert [p.current_vote for p in store.list_participants(1)] == [None, None]
    assert store.list_participants(2)[0].current_vote == "8"


def test_in_memory_delete_operations_report_counts() -> None:
    store = InMemoryPokerStore()
    store.insert_participant(_participant("a"))
    store.insert_participant(_participant("b"))
    store.insert_participant(_participant("c", session_id=2))

    assert store.delete_participant("a") == 1
    assert store.delete_participant("a") == 0
    assert store.delete_session_participants(1) == 1
    assert store.count_participants(1) == 0
    assert store.count_participants(2) == 1


def test_in_memory_delete_inactive_participants_uses_strict_cutoff() -> None:
    store = InMemoryPokerStore()
    store.insert_participant(_participant("old", minutes=0))
    store.insert_participant(_participant("edge", minutes=30))
    store.insert_participant(_participant("new", minutes=60))

    removed = store.delete_inactive_participants(T0 + timedelta(minutes=30))

    assert removed == 1
    assert [p.participant_id for p in store.list_participants(1)] == ["edge", "new"]


def test_in_memory_touch_participant_refreshes_activity() -> None:
    store = InMemoryPokerStore()
    store.insert_participant(_participant("a"))

    assert store.touch_participant("a", now=T0 + timedelta(hours=1)) is True
    assert store.touch_participant("ghost", now=T0) is False
    assert store.get_participant("a").last_activity == T0 + timedelta(hours=1)
