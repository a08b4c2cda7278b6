"""
Core Module

Browser driving and session lifecycle management.
"""

from .browser import BrowserDriver, BrowserOptions, DrivenContext, PlaywrightDriver
from .session import (
    DialogPolicy,
    RetryExecutor,
    Session,
    SessionEventType,
    SessionOptions,
    SessionRegistry,
    SessionStatus,
)

__all__ = [
    'BrowserDriver', 'BrowserOptions', 'DrivenContext', 'PlaywrightDriver',
    'DialogPolicy', 'RetryExecutor', 'Session', 'SessionEventType', 'SessionOptions',
    'SessionRegistry', 'SessionStatus',
]
