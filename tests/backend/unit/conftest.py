from __future__ import annotations

from datetime import datetime, timedelta, timezone
import random
from typing import Any

import pytest

from planningpoker.backend.config import BackendSettings
from planningpoker.backend.engine import SessionRegistry
from planningpoker.backend.roster import Roster
from planningpoker.backend.service import PlanningPokerService
from planningpoker.backend.store import InMemoryPokerStore


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class FakeMonotonic:
    def __init__(self) -> None:
        self.seconds = 1000.0

    def __call__(self) -> float:
        return self.seconds

    def advance(self, seconds: float) -> None:
        self.seconds += seconds


def make_settings(**overrides: Any) -> BackendSettings:
    values: dict[str, Any] = {
        "host_password": "s3cret",
        "server_salt": "test-salt",
        "database_url": None,
        "host": "127.0.0.1",
        "port": 3000,
    }
    values.update(overrides)
    return BackendSettings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def store() -> InMemoryPokerStore:
    return InMemoryPokerStore()


@pytest.fixture
def registry(store: InMemoryPokerStore, clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(store, clock=clock)


@pytest.fixture
def roster(store: InMemoryPokerStore, registry: SessionRegistry, clock: FakeClock) -> Roster:
    return Roster(store, registry, max_participants=50, retention=timedelta(hours=24), clock=clock, rng=random.Random(3))


@pytest.fixture
def service(store: InMemoryPokerStore, clock: FakeClock, monotonic: FakeMonotonic) -> PlanningPokerService:
    return PlanningPokerService(
        store=store,
        settings=make_settings(),
        clock=clock,
        monotonic=monotonic,
        rng=random.Random(11),
    )
