from __future__ import annotations

import logging
from typing import Any, Protocol

import requests

from lyric_sync.errors import RateLimited, TransportError

logger = logging.getLogger(__name__)


class TokenSource(Protocol):
    def ensure_fresh(self) -> str: ...


class HttpTransport:
    """
    Thin wrapper over a requests.Session that turns every outcome into either
    a decoded JSON body or a TransportError.
    """

    def __init__(self, session: requests.Session | None = None, *, timeout_s: float = 10.0):
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        params: dict[str, str] | None = None,
        bearer: TokenSource | None = None,
        forbidden_as_empty: bool = True,
    ) -> dict[str, Any]:
        hdrs = self._headers(headers, bearer)
        try:
            r = self.session.get(url, headers=hdrs, params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise TransportError(None, e) from e

        # the lyrics endpoint answers 403 for tracks without lyrics
        if r.status_code == 403 and forbidden_as_empty:
            logger.debug("GET %s -> 403, treating as empty", url)
            return {"lines": []}
        return self._decode(r, "GET", url)

    def post(
        self,
        url: str,
        params: dict[str, str],
        *,
        headers: dict[str, str] | None = None,
        bearer: TokenSource | None = None,
    ) -> dict[str, Any]:
        """POST `params` as a form body."""
        hdrs = self._headers(headers, bearer)
        try:
            r = self.session.post(url, data=params, headers=hdrs, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise TransportError(None, e) from e
        return self._decode(r, "POST", url)

    def close(self) -> None:
        self.session.close()

    @staticmethod
    def _headers(headers: dict[str, str] | None, bearer: TokenSource | None) -> dict[str, str]:
        out = dict(headers or {})
        if bearer is not None:
            # refresh (if due) happens before the request is sent
            out["Authorization"] = f"Bearer {bearer.ensure_fresh()}"
        return out

    @staticmethod
    def _decode(r: requests.Response, method: str, url: str) -> dict[str, Any]:
        if r.status_code == 429:
            retry_after = _parse_retry_after(r.headers.get("Retry-After"))
            logger.warning("%s %s rate limited (retry after %ss)", method, url, retry_after)
            raise RateLimited(retry_after, f"{method} {url}")
        if not 200 <= r.status_code < 300:
            raise TransportError(r.status_code, f"{method} {url}: {r.reason or ''}".rstrip(": "))

        # 204 from the player endpoint when nothing is active
        if not r.content:
            return {}
        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(r.status_code, f"invalid JSON from {url}") from e
        if not isinstance(data, dict):
            raise TransportError(r.status_code, f"unexpected body from {url}")
        return data


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
