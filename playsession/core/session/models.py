"""
Session Data Model

Status, counters, captured failures, and the serializable snapshot/state
document written by ``save_state``.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from dataclasses_json import LetterCase, dataclass_json

# Version of the persisted state document layout.
STATE_FORMAT_VERSION = 1


class SessionStatus(Enum):
    """Session lifecycle states."""
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.CLOSED, SessionStatus.ERROR)


class DialogPolicy(Enum):
    """What to do with a JavaScript dialog nobody handled."""
    ACCEPT = "accept"
    DISMISS = "dismiss"
    IGNORE = "ignore"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class SessionMetrics:
    pages_visited: int = 0
    actions_performed: int = 0
    assertions_passed: int = 0
    assertions_failed: int = 0


@dataclass
class ErrorRecord:
    """A failure captured during the session."""
    error_type: str
    message: str
    timestamp: float = field(default_factory=time.time)
    url: Optional[str] = None
    screenshot_path: Optional[str] = None

    @classmethod
    def from_exception(cls, error: BaseException, url: Optional[str] = None) -> 'ErrorRecord':
        return cls(error_type=type(error).__name__, message=str(error), url=url)

    def describe(self) -> str:
        return f"{self.error_type}: {self.message}"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class SessionSnapshot:
    """Point-in-time copy of a session's bookkeeping."""
    id: str
    status: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    current_url: Optional[str] = None
    screenshots: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    metrics: SessionMetrics = field(default_factory=SessionMetrics)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class SessionStateDocument(SessionSnapshot):
    """Snapshot plus browser storage, as written to disk."""
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    local_storage: Dict[str, str] = field(default_factory=dict)
    version: int = STATE_FORMAT_VERSION

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot, cookies: List[Dict[str, Any]],
                      local_storage: Dict[str, str]) -> 'SessionStateDocument':
        return cls(
            id=snapshot.id,
            status=snapshot.status,
            start_time=snapshot.start_time,
            end_time=snapshot.end_time,
            duration=snapshot.duration,
            current_url=snapshot.current_url,
            screenshots=list(snapshot.screenshots),
            errors=list(snapshot.errors),
            metadata=dict(snapshot.metadata),
            metrics=replace(snapshot.metrics),
            cookies=list(cookies),
            local_storage=dict(local_storage),
        )
