from __future__ import annotations


class LyricSyncError(RuntimeError):
    pass


class ConfigError(LyricSyncError):
    pass


class AuthError(LyricSyncError):
    def __init__(self, status: int | None, message: str):
        super().__init__(f"{status} {message}" if status is not None else message)
        self.status = status
        self.message = message


class TransportError(LyricSyncError):
    def __init__(self, status: int | None, cause: object):
        super().__init__(f"HTTP {status}: {cause}" if status is not None else str(cause))
        self.status = status
        self.cause = cause


class RateLimited(TransportError):
    def __init__(self, retry_after_s: float | None, cause: object = "rate limited"):
        super().__init__(429, cause)
        self.retry_after_s = retry_after_s


class SessionStopped(LyricSyncError):
    pass
