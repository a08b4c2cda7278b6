"""
Session Lifecycle Module

Session state machine, registry, events, cleanup, retry and state persistence.
"""

from .cleanup import CleanupChain
from .events import (
    ActionFailedEvent,
    ConsoleErrorEvent,
    DialogEvent,
    DownloadEvent,
    EventBus,
    NavigatedEvent,
    NewPageEvent,
    PageErrorEvent,
    SessionClosedEvent,
    SessionEvent,
    SessionEventType,
    StatusChangedEvent,
)
from .models import (
    STATE_FORMAT_VERSION,
    DialogPolicy,
    ErrorRecord,
    SessionMetrics,
    SessionSnapshot,
    SessionStateDocument,
    SessionStatus,
)
from .registry import SessionOptions, SessionRegistry, generate_session_id
from .retry import RetryExecutor
from .session import Session
from .storage import SessionStateStore

__all__ = [
    'CleanupChain',
    'ActionFailedEvent', 'ConsoleErrorEvent', 'DialogEvent', 'DownloadEvent', 'EventBus',
    'NavigatedEvent', 'NewPageEvent', 'PageErrorEvent', 'SessionClosedEvent', 'SessionEvent',
    'SessionEventType', 'StatusChangedEvent',
    'STATE_FORMAT_VERSION', 'DialogPolicy', 'ErrorRecord', 'SessionMetrics', 'SessionSnapshot',
    'SessionStateDocument', 'SessionStatus',
    'SessionOptions', 'SessionRegistry', 'generate_session_id',
    'RetryExecutor',
    'Session',
    'SessionStateStore',
]
