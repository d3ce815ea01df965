"""Errors raised by the test session engine and its remote client."""


class LearnhubError(Exception):
    """Base class for learnhub errors."""


class RemoteError(LearnhubError):
    """The remote progress service rejected or failed a call."""

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class NotFound(RemoteError):
    status_code = 404


class Forbidden(RemoteError):
    status_code = 403


class AttemptsExhausted(RemoteError):
    status_code = 409


class RemoteUnavailable(RemoteError):
    """Transport failure or server-side error; worth retrying."""


class SessionInitError(LearnhubError):
    """
    A session could not be started. Fatal to the session: a fresh
    ``init`` call is required.
    """

    def __init__(self, message: str, reason: str = "unknown") -> None:
        super().__init__(message)
        self.reason = reason


class SyncError(LearnhubError):
    """A flush to the remote service failed; answers stay pending."""


class SessionNotActive(LearnhubError):
    """The operation needs an active session."""
