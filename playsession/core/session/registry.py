"""
Session Registry

Creates, tracks and tears down sessions. The registry exclusively owns the
``id -> Session`` map; a session appears in it only once creation fully
succeeded and leaves it when it closes.
"""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from ...config import ConfigProvider, FrameworkConfig
from ...exceptions import DuplicateSessionError, SessionCreationError, SessionNotFoundError
from ...utils.files import FilePersistence
from ...utils.screenshots import ScreenshotCapability, ScreenshotHelper
from ..browser.driver import BrowserDriver
from ..browser.options import BrowserOptions
from .models import DialogPolicy, SessionStatus
from .session import Session
from .storage import SessionStateStore

logger = logging.getLogger(__name__)


@dataclass
class SessionOptions:
    """Per-session creation options. ``None`` toggles fall back to configuration."""
    session_id: Optional[str] = None
    browser: Optional[BrowserOptions] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    dialog_policy: Optional[DialogPolicy] = None
    screenshot_on_error: Optional[bool] = None
    highlight_interactions: Optional[bool] = None


def generate_session_id() -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"session_{timestamp}_{uuid.uuid4().hex[:8]}"


class SessionRegistry:
    """
    Registry of live sessions backed by one browser driver.

    Args:
        driver: Provides and releases driven browser contexts
        config: Configuration provider; defaults to ``FrameworkConfig()``
        screenshots: Screenshot capability handed to every session; when omitted
            one is built from config unless ``screenshots.enabled`` is false
        files: File persistence used for session state documents
        keep_failed_sessions: Keep sessions whose close failed in the registry
            for inspection (``close_all`` still clears them)
    """

    def __init__(self, driver: BrowserDriver, config: Optional[ConfigProvider] = None,
                 screenshots: Optional[ScreenshotCapability] = None,
                 files: Optional[FilePersistence] = None,
                 keep_failed_sessions: Optional[bool] = None):
        self.driver = driver
        self.config = config if config is not None else FrameworkConfig()
        if screenshots is None and self.config.get("screenshots.enabled", True):
            screenshots = ScreenshotHelper.from_config(self.config)
        self.screenshots = screenshots
        self.state_store = SessionStateStore(
            files or FilePersistence(),
            driver,
            directory=self.config.get("paths.states", "session_states"),
        )
        if keep_failed_sessions is None:
            keep_failed_sessions = bool(self.config.get("session.keep_failed_sessions", False))
        self.keep_failed_sessions = keep_failed_sessions

        self._sessions: Dict[str, Session] = {}
        self._reserved: Set[str] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _reserve(self, requested: Optional[str]) -> str:
        with self._lock:
            if requested is None:
                session_id = generate_session_id()
                while session_id in self._sessions or session_id in self._reserved:
                    session_id = generate_session_id()
            else:
                session_id = requested
                if session_id in self._sessions or session_id in self._reserved:
                    raise DuplicateSessionError(session_id)
            self._reserved.add(session_id)
            return session_id

    def _release_reservation(self, session_id: str) -> None:
        with self._lock:
            self._reserved.discard(session_id)

    def _resolve_dialog_policy(self, options: SessionOptions) -> DialogPolicy:
        if options.dialog_policy is not None:
            return DialogPolicy(options.dialog_policy)
        return DialogPolicy(self.config.get("session.dialog_policy", DialogPolicy.ACCEPT.value))

    async def create(self, options: Optional[SessionOptions] = None) -> Session:
        """
        Create and register a new session.

        Raises:
            DuplicateSessionError: The requested id is already in use
            SessionCreationError: The driver could not provide a context
        """
        options = options or SessionOptions()
        session_id = self._reserve(options.session_id)
        browser_options = options.browser or BrowserOptions.from_config(self.config)

        logger.info(f"🚀 Creating session {session_id} ({browser_options.browser_type})")
        try:
            driven = await self.driver.create_context(session_id, browser_options)
        except Exception as e:
            self._release_reservation(session_id)
            logger.error(f"❌ Failed to create session {session_id}: {e}")
            raise SessionCreationError(session_id, str(e)) from e

        screenshot_on_error = options.screenshot_on_error
        if screenshot_on_error is None:
            screenshot_on_error = bool(self.config.get("screenshots.on_error", True))
        highlight = options.highlight_interactions
        if highlight is None:
            highlight = bool(self.config.get("session.highlight_interactions", False))

        try:
            session = Session(
                session_id,
                driven,
                self.driver,
                registry=self,
                browser_options=browser_options,
                metadata=options.metadata,
                screenshots=self.screenshots,
                state_store=self.state_store,
                dialog_policy=self._resolve_dialog_policy(options),
                screenshot_on_error=screenshot_on_error,
                highlight_interactions=highlight,
                timeouts=self.config.get("timeouts", {}),
                base_url=self.config.get("environment.base_url"),
            )
            session.bridge_driver_events()
        except Exception as e:
            self._release_reservation(session_id)
            try:
                await self.driver.close_context(session_id)
            except Exception as close_error:
                logger.warning(f"Could not release context of failed session {session_id}: {close_error}")
            raise SessionCreationError(session_id, str(e)) from e

        with self._lock:
            self._reserved.discard(session_id)
            self._sessions[session_id] = session

        logger.info(f"✅ Session {session_id} created")
        return session

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def all(self) -> Tuple[Session, ...]:
        with self._lock:
            return tuple(self._sessions.values())

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    # ------------------------------------------------------------------
    # Removal and teardown
    # ------------------------------------------------------------------

    def remove(self, session_id: str, failed: bool = False) -> bool:
        """Drop ``session_id`` from the map. Returns True if it was registered."""
        if failed and self.keep_failed_sessions:
            logger.warning(f"Keeping failed session {session_id} registered for inspection")
            return False
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def close(self, session_id: str) -> SessionStatus:
        session = self.require(session_id)
        await session.close()
        return session.status

    async def close_all(self) -> Dict[str, SessionStatus]:
        """
        Close every registered session concurrently, then release the driver.

        Every close is awaited even if some fail. Returns each session's final
        status keyed by id.
        """
        sessions = self.all()
        logger.info(f"🧹 Closing {len(sessions)} session(s)")

        results = await asyncio.gather(*(s.close() for s in sessions), return_exceptions=True)
        for session, result in zip(sessions, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error closing session {session.id}: {result}")

        with self._lock:
            self._sessions.clear()
            self._reserved.clear()

        try:
            await self.driver.close()
        except Exception as e:
            logger.error(f"Error shutting down browser driver: {e}")

        statuses = {session.id: session.status for session in sessions}
        failed = sum(1 for status in statuses.values() if status is SessionStatus.ERROR)
        if failed:
            logger.warning(f"⚠️ {failed} session(s) closed with errors")
        return statuses
