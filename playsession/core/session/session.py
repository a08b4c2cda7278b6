"""
Session

One isolated automation unit: a driven browser context plus its bookkeeping
(status, metrics, metadata, errors, screenshots), its event bus and its
cleanup chain.

Status transitions::

    active <-> paused
    active | paused -> closed   (close succeeded)
    active | paused -> error    (cleanup or release failed, or unrecoverable fault)
"""

import asyncio
import inspect
import threading
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from ...exceptions import (
    InvalidSessionTransitionError,
    SessionCreationError,
    SessionNotActiveError,
)
from ...utils.logging_config import get_session_logger
from ..browser.driver import DrivenContext
from ..browser.options import BrowserOptions
from .cleanup import CleanupCallback, CleanupChain
from .events import (
    ActionFailedEvent,
    ConsoleErrorEvent,
    DialogEvent,
    DownloadEvent,
    EventBus,
    EventHandler,
    NavigatedEvent,
    NewPageEvent,
    PageErrorEvent,
    SessionClosedEvent,
    SessionEventType,
    StatusChangedEvent,
)
from .models import (
    DialogPolicy,
    ErrorRecord,
    SessionMetrics,
    SessionSnapshot,
    SessionStateDocument,
    SessionStatus,
)
from .retry import RetryExecutor

if TYPE_CHECKING:
    from ...actions import AssertionHelpers, ElementActions, InputActions, NavigationActions
    from ...utils.screenshots import ScreenshotCapability
    from ..browser.driver import BrowserDriver
    from .registry import SessionRegistry
    from .storage import SessionStateStore


Action = Callable[['Session'], Any]


class Session:
    """
    A live automation session.

    Sessions are created by ``SessionRegistry.create``; constructing one
    directly skips registration and event wiring.
    """

    def __init__(self, session_id: str, driven: DrivenContext, driver: 'BrowserDriver',
                 registry: Optional['SessionRegistry'] = None,
                 browser_options: Optional[BrowserOptions] = None,
                 metadata: Optional[Mapping[str, Any]] = None,
                 screenshots: Optional['ScreenshotCapability'] = None,
                 state_store: Optional['SessionStateStore'] = None,
                 dialog_policy: DialogPolicy = DialogPolicy.ACCEPT,
                 screenshot_on_error: bool = True,
                 highlight_interactions: bool = False,
                 timeouts: Optional[Mapping[str, int]] = None,
                 base_url: Optional[str] = None):
        self.id = session_id
        self.browser_options = browser_options or BrowserOptions()
        self.dialog_policy = dialog_policy
        self.screenshot_on_error = screenshot_on_error
        self.highlight_interactions = highlight_interactions
        self.timeouts: Dict[str, int] = dict(timeouts or {})
        self.base_url = base_url

        self.start_time = time.time()
        self.end_time: Optional[float] = None
        self.duration: Optional[float] = None

        self._driven = driven
        self._driver = driver
        self._registry = registry
        self._screenshots = screenshots
        self._state_store = state_store

        self._status = SessionStatus.ACTIVE
        self._metadata: Dict[str, Any] = dict(metadata or {})
        self._metrics = SessionMetrics()
        self._errors: List[ErrorRecord] = []
        self._screenshot_paths: List[str] = []
        self._current_url: Optional[str] = None
        self._capabilities: Dict[str, Any] = {}
        self._close_started = False

        self._lock = threading.RLock()
        self._restart_lock = asyncio.Lock()

        self.events = EventBus(name=session_id)
        self.cleanup = CleanupChain(owner=session_id)
        self.logger = get_session_logger(__name__, session_id)

    def __repr__(self) -> str:
        return f"<Session id={self.id!r} status={self._status.value}>"

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def metrics(self) -> SessionMetrics:
        with self._lock:
            return replace(self._metrics)

    @property
    def metadata(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._metadata)

    @property
    def errors(self) -> List[ErrorRecord]:
        with self._lock:
            return list(self._errors)

    @property
    def screenshots(self) -> List[str]:
        with self._lock:
            return list(self._screenshot_paths)

    @property
    def current_url(self) -> Optional[str]:
        with self._lock:
            return self._current_url

    def update_metadata(self, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Dict[str, Any]:
        """Merge ``values`` into the metadata: new keys are added, existing keys overwritten."""
        with self._lock:
            if values:
                self._metadata.update(values)
            self._metadata.update(kwargs)
            return dict(self._metadata)

    def _increment(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self._metrics, counter, getattr(self._metrics, counter) + amount)

    def record_error(self, record: ErrorRecord) -> None:
        with self._lock:
            self._errors.append(record)

    def record_assertion(self, passed: bool, description: str = "") -> None:
        self._increment('assertions_passed' if passed else 'assertions_failed')
        if not passed:
            self.logger.warning(f"Assertion failed: {description}")

    def add_screenshot(self, path: str) -> None:
        with self._lock:
            self._screenshot_paths.append(path)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                id=self.id,
                status=self._status.value,
                start_time=self.start_time,
                end_time=self.end_time,
                duration=self.duration,
                current_url=self._current_url,
                screenshots=list(self._screenshot_paths),
                errors=[record.describe() for record in self._errors],
                metadata=dict(self._metadata),
                metrics=replace(self._metrics),
            )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _set_status(self, status: SessionStatus) -> None:
        with self._lock:
            previous = self._status
            if previous is status:
                return
            self._status = status
        self.logger.debug(f"Status {previous.value} -> {status.value}")
        self.events.emit(StatusChangedEvent(self.id, previous, status))

    def ensure_active(self) -> None:
        status = self.status
        if status is not SessionStatus.ACTIVE:
            raise SessionNotActiveError(self.id, status)

    def pause(self) -> None:
        with self._lock:
            current = self._status
            if current.is_terminal:
                raise SessionNotActiveError(self.id, current)
            if current is not SessionStatus.ACTIVE:
                raise InvalidSessionTransitionError(self.id, current, SessionStatus.PAUSED)
            self._status = SessionStatus.PAUSED
        self.logger.info("⏸️ Session paused")
        self.events.emit(StatusChangedEvent(self.id, current, SessionStatus.PAUSED))

    def resume(self) -> None:
        with self._lock:
            current = self._status
            if current.is_terminal:
                raise SessionNotActiveError(self.id, current)
            if current is not SessionStatus.PAUSED:
                raise InvalidSessionTransitionError(self.id, current, SessionStatus.ACTIVE)
            self._status = SessionStatus.ACTIVE
        self.logger.info("▶️ Session resumed")
        self.events.emit(StatusChangedEvent(self.id, current, SessionStatus.ACTIVE))

    def mark_error(self, reason: str) -> None:
        """Move a non-terminal session to ``error`` after an unrecoverable fault."""
        with self._lock:
            if self._status.is_terminal:
                return
        self.logger.error(f"Session failed: {reason}")
        self.record_error(ErrorRecord(error_type="SessionFault", message=reason, url=self.current_url))
        self._set_status(SessionStatus.ERROR)

    # ------------------------------------------------------------------
    # Capabilities (all require an active session)
    # ------------------------------------------------------------------

    def driven_context(self) -> DrivenContext:
        self.ensure_active()
        with self._lock:
            return self._driven

    def page(self) -> Any:
        return self.driven_context().page

    def context(self) -> Any:
        return self.driven_context().context

    def browser(self) -> Any:
        return self.driven_context().browser

    def _capability(self, name: str, factory: Callable[['Session'], Any]) -> Any:
        self.ensure_active()
        with self._lock:
            if name not in self._capabilities:
                self._capabilities[name] = factory(self)
            return self._capabilities[name]

    def navigation(self) -> 'NavigationActions':
        from ...actions.navigation import NavigationActions
        return self._capability('navigation', NavigationActions)

    def elements(self) -> 'ElementActions':
        from ...actions.elements import ElementActions
        return self._capability('elements', ElementActions)

    def input(self) -> 'InputActions':
        from ...actions.input import InputActions
        return self._capability('input', InputActions)

    def assertions(self) -> 'AssertionHelpers':
        from ...actions.assertions import AssertionHelpers
        return self._capability('assertions', AssertionHelpers)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: SessionEventType, handler: EventHandler) -> Callable[[], bool]:
        return self.events.on(event_type, handler)

    def on_cleanup(self, callback: CleanupCallback, name: Optional[str] = None) -> None:
        self.cleanup.add(callback, name)

    def bridge_driver_events(self) -> None:
        """Subscribe once to the driver's raw events for the current context."""
        with self._lock:
            driven = self._driven
        self._driver.on_navigated(driven, self._handle_navigated)
        self._driver.on_page_error(driven, self._handle_page_error)
        self._driver.on_console(driven, self._handle_console)
        self._driver.on_dialog(driven, self._handle_dialog)
        self._driver.on_download(driven, self._handle_download)
        self._driver.on_new_page(driven, self._handle_new_page)

    def _handle_navigated(self, url: str) -> None:
        with self._lock:
            self._current_url = url
            self._metrics.pages_visited += 1
        self.events.emit(NavigatedEvent(self.id, url))

    def _handle_page_error(self, message: str) -> None:
        self.record_error(ErrorRecord(error_type="PageError", message=message, url=self.current_url))
        self.logger.warning(f"Page error: {message}")
        self.events.emit(PageErrorEvent(self.id, message))

    def _handle_console(self, message_type: str, text: str) -> None:
        if message_type != 'error':
            return
        self.logger.debug(f"Console error: {text}")
        self.events.emit(ConsoleErrorEvent(self.id, text))

    async def _handle_dialog(self, dialog: Any) -> None:
        event = DialogEvent(
            self.id,
            dialog_type=getattr(dialog, 'type', ''),
            message=getattr(dialog, 'message', ''),
            default_value=getattr(dialog, 'default_value', '') or '',
        )
        await self.events.dispatch(event)

        decision = event.decision or self.dialog_policy.value
        try:
            if decision == DialogPolicy.ACCEPT.value:
                if event.prompt_text is not None:
                    await dialog.accept(event.prompt_text)
                else:
                    await dialog.accept()
            elif decision == DialogPolicy.DISMISS.value:
                await dialog.dismiss()
            self.logger.debug(f"Dialog '{event.message}' handled: {decision}")
        except Exception as e:
            self.logger.warning(f"Could not {decision} dialog: {e}")

    def _handle_download(self, suggested_filename: str, download: Any) -> None:
        self.logger.info(f"⬇️ Download started: {suggested_filename}")
        self.events.emit(DownloadEvent(self.id, suggested_filename, download))

    def _handle_new_page(self, page: Any) -> None:
        self.events.emit(NewPageEvent(self.id, page))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, action: Action, description: Optional[str] = None) -> Any:
        """
        Run ``action(session)`` against this session.

        The session must be active. Every call counts as one performed action.
        On failure the error is recorded, a diagnostic screenshot is taken when
        enabled, and the original exception is re-raised.
        """
        self.ensure_active()
        self._increment('actions_performed')
        label = description or getattr(action, '__name__', 'action')

        try:
            result = action(self)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            record = ErrorRecord.from_exception(e, url=self.current_url)
            self.logger.error(f"❌ {label} failed: {e}")
            if self.screenshot_on_error:
                record.screenshot_path = await self._capture_error_screenshot(label, e)
            self.record_error(record)
            self.events.emit(ActionFailedEvent(self.id, label, e, record.screenshot_path))
            raise

    async def execute_with_retry(self, action: Action, max_retries: int = 3, delay_ms: float = 1000,
                                 backoff: bool = True, description: Optional[str] = None) -> Any:
        """Run ``action`` through ``execute`` with bounded retries; see RetryExecutor."""
        label = description or getattr(action, '__name__', 'action')
        executor = RetryExecutor(max_retries=max_retries, delay_ms=delay_ms, backoff=backoff)
        return await executor.run(lambda: self.execute(action, label), description=f"[{self.id}] {label}")

    async def _capture_error_screenshot(self, tag: str, error: BaseException) -> Optional[str]:
        if self._screenshots is None or not self.is_active:
            return None
        try:
            path = await self._screenshots.capture_error(self.page(), tag, error)
        except Exception as e:
            self.logger.warning(f"Error screenshot for {tag} failed: {e}")
            return None
        if path:
            self.add_screenshot(path)
        return path

    async def take_screenshot(self, description: str = "screenshot") -> str:
        """Capture the current page and record the artifact path."""
        if self._screenshots is None:
            raise RuntimeError(f"Session '{self.id}' has no screenshot capability")
        path = await self._screenshots.capture(self.page(), description)
        self.add_screenshot(path)
        return path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _require_state_store(self) -> 'SessionStateStore':
        if self._state_store is None:
            raise RuntimeError(f"Session '{self.id}' has no state store")
        return self._state_store

    async def save_state(self, path: Optional[str] = None) -> str:
        """Save snapshot, cookies and local storage. Returns the written path."""
        self.ensure_active()
        return await self._require_state_store().save(self, path)

    async def load_state(self, path: str) -> SessionStateDocument:
        """Reapply cookies and local storage saved at ``path`` onto the current context."""
        self.ensure_active()
        return await self._require_state_store().load(self, path)

    # ------------------------------------------------------------------
    # Restart and close
    # ------------------------------------------------------------------

    async def restart(self) -> None:
        """
        Replace the driven context with a fresh one under the same id.

        Metrics, metadata, subscribers and status are preserved.
        """
        async with self._restart_lock:
            status = self.status
            if status.is_terminal:
                raise SessionNotActiveError(self.id, status)

            self.logger.info("🔄 Restarting session")
            try:
                await self._driver.close_context(self.id)
            except Exception as e:
                self.logger.warning(f"Error releasing context before restart: {e}")

            try:
                driven = await self._driver.create_context(self.id, self.browser_options)
            except Exception as e:
                self.mark_error(f"restart could not create a new context: {e}")
                raise SessionCreationError(self.id, str(e)) from e

            with self._lock:
                self._driven = driven
                self._capabilities.clear()
            self.bridge_driver_events()
            self.logger.info("✅ Session restarted")

    async def close(self) -> None:
        """
        Tear the session down.

        Runs cleanup callbacks, releases the driven context, removes the session
        from its registry and emits a final ``closed`` event. Failures are logged
        and leave the session in ``error`` instead of ``closed``; nothing is raised.
        A session already in ``error`` is torn down the same way and stays ``error``.
        """
        with self._lock:
            if self._close_started:
                self.logger.debug("close() ignored: session already closing or closed")
                return
            self._close_started = True
            faulted = self._status is SessionStatus.ERROR
            self.end_time = time.time()
            self.duration = self.end_time - self.start_time

        self.logger.info("🧹 Closing session...")
        failed = faulted
        try:
            failures = await self.cleanup.run()
            if failures:
                failed = True
            await self._driver.close_context(self.id)
        except Exception as e:
            failed = True
            self.logger.error(f"Error releasing session resources: {e}")

        self._set_status(SessionStatus.ERROR if failed else SessionStatus.CLOSED)

        try:
            if self._registry is not None:
                self._registry.remove(self.id, failed=failed)
        finally:
            snapshot = self.snapshot()
            if failed:
                self.logger.warning(f"⚠️ Session closed with errors after {self.duration:.1f}s")
            else:
                self.logger.info(f"✅ Session closed after {self.duration:.1f}s")
            self.events.emit(SessionClosedEvent(self.id, snapshot))
            self.events.clear()
            with self._lock:
                self._capabilities.clear()
