"""
Session Errors

Exception taxonomy shared by the registry, sessions and capability facades.
Callers match on these types to decide whether to retry, abandon a session or
inspect a diagnostic artifact.
"""

from typing import Any, Optional


class SessionError(Exception):
    """Base class for all session lifecycle errors."""


class SessionCreationError(SessionError):
    """The driver could not provide a browsing context for a new session."""

    def __init__(self, session_id: str, message: str):
        self.session_id = session_id
        super().__init__(f"Failed to create session '{session_id}': {message}")


class DuplicateSessionError(SessionCreationError):
    """A session with the requested id is already registered."""

    def __init__(self, session_id: str):
        super().__init__(session_id, "id already in use")


class SessionNotActiveError(SessionError):
    """A capability was requested while the session is not active."""

    def __init__(self, session_id: str, status: Any):
        self.session_id = session_id
        self.status = status
        status_value = getattr(status, 'value', status)
        super().__init__(f"Session '{session_id}' is not active (status: {status_value})")


class SessionNotFoundError(SessionError):
    """No session is registered under the given id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found")


class InvalidSessionTransitionError(SessionError):
    """The requested status change is not an edge of the state machine."""

    def __init__(self, session_id: str, current: Any, target: Any):
        self.session_id = session_id
        self.current = current
        self.target = target
        super().__init__(
            f"Session '{session_id}' cannot move from "
            f"{getattr(current, 'value', current)} to {getattr(target, 'value', target)}"
        )


class RetryExhaustedError(SessionError):
    """Raised instead of the last error when a retry executor wraps failures."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Action failed after {attempts} attempt(s): {last_error}")


class CleanupError(SessionError):
    """A cleanup callback failed. Collected and logged, never propagated."""

    def __init__(self, callback_name: str, original: BaseException):
        self.callback_name = callback_name
        self.original = original
        super().__init__(f"Cleanup callback '{callback_name}' failed: {original}")


class StateFileError(SessionError):
    """A persisted session state document could not be read or applied."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid session state file {path}: {reason}")


class ConfigError(ValueError):
    """Configuration values failed validation."""


class AssertionFailedError(AssertionError):
    """A page assertion did not hold."""

    def __init__(self, message: str, expected: Any = None, actual: Optional[Any] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)
