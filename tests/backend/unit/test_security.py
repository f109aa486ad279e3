import pytest
from structlog.testing import capture_logs

from planningpoker.backend.errors import UnauthorizedError
from planningpoker.backend.security import (
    ExpiringTokenCache,
    HostAuthority,
    generate_token,
    hash_token,
    password_matches,
)


def test_hash_token_is_deterministic_for_same_inputs() -> None:
    hashed_first = hash_token("host-token", "local-dev-salt")
    hashed_second = hash_token("host-token", "local-dev-salt")

    assert hashed_first == hashed_second
    assert len(hashed_first) == 64
    assert hash_token("host-token", "other-salt") != hashed_first


def test_generate_token_returns_non_empty_random_value() -> None:
    first = generate_token()
    second = generate_token()

    assert first
    assert second
    assert first != second


def test_password_matches_only_exact_secret() -> None:
    assert password_matches("admin123", "admin123") is True
    assert password_matches("admin12", "admin123") is False
    assert password_matches("admin1234", "admin123") is False
    assert password_matches("", "admin123") is False


def test_expiring_cache_slides_window_on_touch(monotonic) -> None:
    cache = ExpiringTokenCache(ttl_seconds=60, clock=monotonic)
    cache.add("k")

    monotonic.advance(59)
    assert cache.touch("k") is True
    monotonic.advance(59)
    assert cache.touch("k") is True
    monotonic.advance(61)
    assert cache.touch("k") is False
    assert len(cache) == 0


def test_expiring_cache_accepts_key_exactly_at_ttl(monotonic) -> None:
    cache = ExpiringTokenCache(ttl_seconds=60, clock=monotonic)
    cache.add("k")

    monotonic.advance(60)

    assert cache.touch("k") is True


def test_expiring_cache_sweep_removes_only_expired(monotonic) -> None:
    cache = ExpiringTokenCache(ttl_seconds=60, clock=monotonic)
    cache.add("old")
    monotonic.advance(30)
    cache.add("fresh")
    monotonic.advance(31)

    removed = cache.sweep()

    assert removed == 1
    assert cache.touch("fresh") is True
    assert cache.touch("old") is False


def test_host_login_rejects_wrong_password(monotonic) -> None:
    gate = HostAuthority(password="s3cret", server_salt="salt", timeout_seconds=60, clock=monotonic)

    with capture_logs() as logs:
        with pytest.raises(UnauthorizedError):
            gate.login("guess")

    assert gate.active_tokens == 0
    assert logs[0]["event"] == "host.login_failed"
    assert "guess" not in str(logs)


def test_host_token_is_accepted_until_idle_timeout(monotonic) -> None:
    gate = HostAuthority(password="s3cret", server_salt="salt", timeout_seconds=60, clock=monotonic)
    token = gate.login("s3cret")

    grant = gate.authenticate(token)
    monotonic.advance(45)
    gate.authenticate(token)
    monotonic.advance(45)
    gate.authenticate(token)
    monotonic.advance(61)

    assert grant.token_hash == hash_token(token, "salt")
    with pytest.raises(UnauthorizedError):
        gate.authenticate(token)


def test_host_authenticate_rejects_unknown_and_missing_tokens(monotonic) -> None:
    gate = HostAuthority(password="s3cret", server_salt="salt", timeout_seconds=60, clock=monotonic)
    gate.login("s3cret")

    with pytest.raises(UnauthorizedError):
        gate.authenticate("made-up")
    with pytest.raises(UnauthorizedError):
        gate.authenticate(None)
    with pytest.raises(UnauthorizedError):
        gate.authenticate("")


def test_host_logout_revokes_token_and_is_idempotent(monotonic) -> None:
    gate = HostAuthority(password="s3cret", server_salt="salt", timeout_seconds=60, clock=monotonic)
    token = gate.login("s3cret")

    gate.logout(token)
    gate.logout(token)
    gate.logout(None)

    with pytest.raises(UnauthorizedError):
        gate.authenticate(token)


def test_host_sweep_expired_drops_abandoned_tokens(monotonic) -> None:
    gate = HostAuthority(password="s3cret", server_salt="salt", timeout_seconds=60, clock=monotonic)
    gate.login("s3cret")
    gate.login("s3cret")
    monotonic.advance(61)
    live = gate.login("s3cret")

    removed = gate.sweep_expired()

    assert removed == 2
    assert gate.active_tokens == 1
    gate.authenticate(live)
