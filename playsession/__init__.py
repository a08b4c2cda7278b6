"""
playsession: Browser Session Lifecycle Management

Creates, tracks, pauses, retries, persists and tears down Playwright-driven
browser sessions, concurrently and safely.

Key Components:
- Core: Browser driver, session state machine, registry, events, cleanup, retry
- Actions: Navigation, element, input and assertion helpers bound to a session
- Config: Layered configuration (defaults, YAML, .env, environment)
- Utils: Logging setup, file persistence, screenshots
"""

# Core components
from .core.browser import BrowserDriver, BrowserOptions, DrivenContext, PlaywrightDriver
from .core.session import (
    CleanupChain,
    DialogPolicy,
    EventBus,
    RetryExecutor,
    Session,
    SessionEventType,
    SessionOptions,
    SessionRegistry,
    SessionSnapshot,
    SessionStatus,
)

# Capability facades
from .actions import AssertionHelpers, ElementActions, InputActions, NavigationActions

# Configuration
from .config import FrameworkConfig

# Errors
from .exceptions import (
    AssertionFailedError,
    CleanupError,
    ConfigError,
    DuplicateSessionError,
    InvalidSessionTransitionError,
    RetryExhaustedError,
    SessionCreationError,
    SessionError,
    SessionNotActiveError,
    SessionNotFoundError,
    StateFileError,
)

# Utilities
from .utils import ScreenshotHelper, setup_logging

__version__ = "1.0.0"

__all__ = [
    # Core
    'BrowserDriver', 'BrowserOptions', 'DrivenContext', 'PlaywrightDriver',
    'CleanupChain', 'DialogPolicy', 'EventBus', 'RetryExecutor', 'Session', 'SessionEventType',
    'SessionOptions', 'SessionRegistry', 'SessionSnapshot', 'SessionStatus',

    # Actions
    'AssertionHelpers', 'ElementActions', 'InputActions', 'NavigationActions',

    # Configuration
    'FrameworkConfig',

    # Errors
    'AssertionFailedError', 'CleanupError', 'ConfigError', 'DuplicateSessionError',
    'InvalidSessionTransitionError', 'RetryExhaustedError', 'SessionCreationError', 'SessionError',
    'SessionNotActiveError', 'SessionNotFoundError', 'StateFileError',

    # Utilities
    'ScreenshotHelper', 'setup_logging',
]
