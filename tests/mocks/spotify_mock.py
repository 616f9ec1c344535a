from __future__ import annotations

import json
from collections import defaultdict, deque
from typing import Any

import requests


class FakeResponse:
    """Just enough of requests.Response for HttpTransport."""

    def __init__(self, status_code: int = 200, body: Any = None, headers: dict[str, str] | None = None):
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = "OK" if status_code < 400 else "Error"
        self.content = b"" if body is None else json.dumps(body).encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content)


class FakeHttp:
    """
    Scripted stand-in for requests.Session.

    Responses are queued per URL prefix; the last queued response for a
    prefix keeps being returned once the queue runs dry. Queue an exception
    instance to simulate a network failure.
    """

    def __init__(self):
        self._routes: dict[str, deque[Any]] = defaultdict(deque)
        self._sticky: dict[str, Any] = {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def queue(self, url_prefix: str, *responses: Any) -> "FakeHttp":
        self._routes[url_prefix].extend(responses)
        return self

    def replace(self, url_prefix: str, *responses: Any) -> "FakeHttp":
        self._routes[url_prefix] = deque(responses)
        self._sticky.pop(url_prefix, None)
        return self

    def count(self, url_prefix: str) -> int:
        return sum(1 for _method, url, _kw in self.calls if url.startswith(url_prefix))

    def _respond(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        prefix = max((p for p in self._routes if url.startswith(p)), key=len, default=None)
        if prefix is None:
            raise AssertionError(f"unexpected {method} {url}")
        q = self._routes[prefix]
        resp = q.popleft() if q else self._sticky.get(prefix)
        if resp is None:
            raise AssertionError(f"no response left for {method} {url}")
        self._sticky[prefix] = resp
        if isinstance(resp, Exception):
            raise resp
        return resp

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("POST", url, **kwargs)

    def close(self) -> None:
        pass


def player_body(track_id: str | None = "A", *, playing: bool = True, progress_ms: int = 0, duration_ms: int = 180000):
    item = None if track_id is None else {"id": track_id, "name": f"Song {track_id}", "duration_ms": duration_ms}
    return {"is_playing": playing, "progress_ms": progress_ms, "item": item}


def timed_body(*lines: tuple[int, str]):
    return {"lines": [{"time": t, "words": [{"string": w} for w in text.split()]} for t, text in lines]}


def untimed_body(*texts: str):
    return {"lines": [{"words": [{"string": w} for w in text.split()]} for text in texts]}


NETWORK_DOWN = requests.ConnectionError("network down")
