from __future__ import annotations

import pytest

from lyric_sync.auth.tokens import Credentials, TokenManager
from lyric_sync.net.transport import HttpTransport
from tests.mocks.spotify_mock import FakeHttp, FakeResponse


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def http() -> FakeHttp:
    fake = FakeHttp()
    fake.queue("https://accounts.spotify.com/api/token", FakeResponse(200, {"access_token": "access-1"}))
    return fake


@pytest.fixture
def transport(http) -> HttpTransport:
    return HttpTransport(http, timeout_s=1.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(client_id="cid", client_secret="secret", refresh_token="refresh-1", cookie="sp_dc=abc")


@pytest.fixture
def tokens(credentials, transport, clock) -> TokenManager:
    return TokenManager(credentials, transport, ttl_s=3600, clock=clock)
