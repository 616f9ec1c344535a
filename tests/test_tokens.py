from __future__ import annotations

import threading

import pytest

from lyric_sync.auth.tokens import TOKEN_URL, TokenManager
from lyric_sync.errors import AuthError
from lyric_sync.net.transport import HttpTransport
from tests.mocks.spotify_mock import FakeHttp, FakeResponse


def test_first_call_refreshes(tokens, http):
    assert tokens.is_stale()
    assert tokens.ensure_fresh() == "access-1"
    assert http.count(TOKEN_URL) == 1
    form = http.calls[0][2]["data"]
    assert form == {
        "grant_type": "refresh_token",
        "refresh_token": "refresh-1",
        "client_id": "cid",
        "client_secret": "secret",
    }


def test_fresh_token_is_reused(tokens, http, clock):
    tokens.ensure_fresh()
    clock.advance(3599)
    tokens.ensure_fresh()
    assert http.count(TOKEN_URL) == 1


def test_token_goes_stale_after_an_hour(tokens, http, clock):
    http.queue(TOKEN_URL, FakeResponse(200, {"access_token": "access-2"}))
    tokens.ensure_fresh()
    clock.advance(3600)
    assert tokens.is_stale()
    assert tokens.ensure_fresh() == "access-2"
    assert tokens.credentials.last_refreshed_at == clock.now


def test_rotated_refresh_token_is_kept(tokens, http):
    http.replace(TOKEN_URL, FakeResponse(200, {"access_token": "a", "refresh_token": "refresh-2"}))
    tokens.refresh()
    assert tokens.credentials.refresh_token == "refresh-2"


def test_failed_refresh_raises_and_next_call_retries(tokens, http):
    http.replace(TOKEN_URL, FakeResponse(400), FakeResponse(200, {"access_token": "access-3"}))
    with pytest.raises(AuthError) as exc:
        tokens.ensure_fresh()
    assert exc.value.status == 400
    assert tokens.credentials.access_token is None

    assert tokens.ensure_fresh() == "access-3"


def test_response_without_access_token_is_auth_error(tokens, http):
    http.replace(TOKEN_URL, FakeResponse(200, {"token_type": "Bearer"}))
    with pytest.raises(AuthError):
        tokens.ensure_fresh()


def test_concurrent_callers_share_one_refresh(credentials, clock):
    entered = threading.Event()
    release = threading.Event()

    class SlowHttp(FakeHttp):
        def post(self, url, **kwargs):
            entered.set()
            release.wait(5)
            return super().post(url, **kwargs)

    http = SlowHttp().queue(TOKEN_URL, FakeResponse(200, {"access_token": "shared"}))
    manager = TokenManager(credentials, HttpTransport(http), clock=clock)

    results: list[str] = []
    threads = [threading.Thread(target=lambda: results.append(manager.ensure_fresh())) for _ in range(5)]
    for t in threads:
        t.start()
    assert entered.wait(5)
    release.set()
    for t in threads:
        t.join(5)

    assert results == ["shared"] * 5
    assert http.count(TOKEN_URL) == 1


def test_supplied_access_token_used_without_refresh(credentials, http, clock):
    credentials.access_token = "from-env"
    manager = TokenManager(credentials, HttpTransport(http), clock=clock)

    assert not manager.is_stale()
    assert manager.ensure_fresh() == "from-env"
    assert http.count(TOKEN_URL) == 0

    clock.advance(3600)
    assert manager.ensure_fresh() == "access-1"
    assert http.count(TOKEN_URL) == 1


def test_invalidate_forces_refresh(tokens, http):
    http.queue(TOKEN_URL, FakeResponse(200, {"access_token": "access-2"}))
    tokens.ensure_fresh()
    tokens.invalidate()
    assert tokens.is_stale()
    assert tokens.ensure_fresh() == "access-2"
