"""
Utilities

Logging setup, file persistence and screenshot capture shared by the session core.
"""

from .files import FilePersistence
from .logging_config import FATAL, SessionLoggerAdapter, get_session_logger, setup_logging
from .screenshots import ScreenshotCapability, ScreenshotHelper, sanitize_filename

__all__ = [
    'FilePersistence',
    'FATAL', 'SessionLoggerAdapter', 'get_session_logger', 'setup_logging',
    'ScreenshotCapability', 'ScreenshotHelper', 'sanitize_filename',
]
