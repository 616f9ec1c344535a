from __future__ import annotations

import pytest

from lyric_sync.errors import RateLimited, TransportError
from lyric_sync.net.transport import HttpTransport
from tests.mocks.spotify_mock import NETWORK_DOWN, FakeHttp, FakeResponse

URL = "https://example.test/thing"


def _transport(*responses) -> tuple[HttpTransport, FakeHttp]:
    http = FakeHttp().queue(URL, *responses)
    return HttpTransport(http, timeout_s=3.0), http


def test_get_returns_decoded_body():
    tr, http = _transport(FakeResponse(200, {"a": 1}))
    assert tr.get(URL) == {"a": 1}
    assert http.calls[0][2]["timeout"] == 3.0


def test_forbidden_get_means_no_lyrics():
    tr, _ = _transport(FakeResponse(403, {"error": "nope"}))
    assert tr.get(URL) == {"lines": []}


def test_forbidden_get_can_be_an_error():
    tr, _ = _transport(FakeResponse(403))
    with pytest.raises(TransportError) as exc:
        tr.get(URL, forbidden_as_empty=False)
    assert exc.value.status == 403


@pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
def test_other_errors_surface_with_status(status):
    tr, _ = _transport(FakeResponse(status))
    with pytest.raises(TransportError) as exc:
        tr.get(URL)
    assert exc.value.status == status


def test_rate_limit_carries_retry_after():
    tr, _ = _transport(FakeResponse(429, headers={"Retry-After": "7"}))
    with pytest.raises(RateLimited) as exc:
        tr.get(URL)
    assert exc.value.status == 429
    assert exc.value.retry_after_s == 7.0


def test_network_failure_has_no_status():
    tr, _ = _transport(NETWORK_DOWN)
    with pytest.raises(TransportError) as exc:
        tr.get(URL)
    assert exc.value.status is None
    assert exc.value.cause is NETWORK_DOWN


def test_no_content_is_empty_dict():
    tr, _ = _transport(FakeResponse(204))
    assert tr.get(URL) == {}


def test_post_sends_form_body():
    tr, http = _transport(FakeResponse(200, {"ok": True}))
    assert tr.post(URL, {"grant_type": "x"}) == {"ok": True}
    method, _url, kwargs = http.calls[0]
    assert method == "POST"
    assert kwargs["data"] == {"grant_type": "x"}


def test_bearer_is_consulted_before_sending():
    class Bearer:
        calls = 0

        def ensure_fresh(self) -> str:
            Bearer.calls += 1
            return "tok"

    tr, http = _transport(FakeResponse(200, {}))
    tr.get(URL, {"X-Test": "1"}, bearer=Bearer())
    headers = http.calls[0][2]["headers"]
    assert headers == {"X-Test": "1", "Authorization": "Bearer tok"}
    assert Bearer.calls == 1
