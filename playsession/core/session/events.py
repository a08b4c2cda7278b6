"""
Session Events

Tagged event payloads and the per-session publish/subscribe bus. Handlers run
synchronously in registration order; one failing handler is logged and never
stops the others or reaches the publisher.
"""

import asyncio
import inspect
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional

logger = logging.getLogger(__name__)


class SessionEventType(Enum):
    NAVIGATED = "navigated"
    PAGE_ERROR = "page_error"
    CONSOLE_ERROR = "console_error"
    DIALOG = "dialog"
    DOWNLOAD = "download"
    NEW_PAGE = "new_page"
    ACTION_FAILED = "action_failed"
    STATUS_CHANGED = "status_changed"
    CLOSED = "closed"


@dataclass
class SessionEvent:
    """Base payload. Every concrete event names its type in ``event_type``."""
    session_id: str

    event_type: ClassVar[SessionEventType]


@dataclass
class NavigatedEvent(SessionEvent):
    url: str
    event_type: ClassVar[SessionEventType] = SessionEventType.NAVIGATED


@dataclass
class PageErrorEvent(SessionEvent):
    message: str
    event_type: ClassVar[SessionEventType] = SessionEventType.PAGE_ERROR


@dataclass
class ConsoleErrorEvent(SessionEvent):
    text: str
    event_type: ClassVar[SessionEventType] = SessionEventType.CONSOLE_ERROR


@dataclass
class DialogEvent(SessionEvent):
    """
    A JavaScript dialog opened. Subscribers may call ``accept()`` or
    ``dismiss()`` to override the session's dialog policy for this dialog.
    """
    dialog_type: str
    message: str
    default_value: str = ""
    decision: Optional[str] = None
    prompt_text: Optional[str] = None
    event_type: ClassVar[SessionEventType] = SessionEventType.DIALOG

    def accept(self, prompt_text: Optional[str] = None) -> None:
        self.decision = "accept"
        self.prompt_text = prompt_text

    def dismiss(self) -> None:
        self.decision = "dismiss"
        self.prompt_text = None


@dataclass
class DownloadEvent(SessionEvent):
    suggested_filename: str
    download: Any = None
    event_type: ClassVar[SessionEventType] = SessionEventType.DOWNLOAD


@dataclass
class NewPageEvent(SessionEvent):
    page: Any
    event_type: ClassVar[SessionEventType] = SessionEventType.NEW_PAGE


@dataclass
class ActionFailedEvent(SessionEvent):
    description: str
    error: BaseException
    screenshot_path: Optional[str] = None
    event_type: ClassVar[SessionEventType] = SessionEventType.ACTION_FAILED


@dataclass
class StatusChangedEvent(SessionEvent):
    previous: Any
    current: Any
    event_type: ClassVar[SessionEventType] = SessionEventType.STATUS_CHANGED


@dataclass
class SessionClosedEvent(SessionEvent):
    snapshot: Any
    event_type: ClassVar[SessionEventType] = SessionEventType.CLOSED


EventHandler = Callable[[SessionEvent], Any]


class EventBus:
    """Per-session synchronous publish/subscribe with fault-isolated handlers."""

    def __init__(self, name: str = ""):
        self.name = name
        self._handlers: Dict[SessionEventType, List[EventHandler]] = {}
        self._lock = threading.RLock()
        self._pending: set = set()

    def on(self, event_type: SessionEventType, handler: EventHandler) -> Callable[[], bool]:
        """Subscribe ``handler`` to ``event_type``. Returns a callable that unsubscribes it."""
        event_type = SessionEventType(event_type)
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
        return lambda: self.off(event_type, handler)

    def off(self, event_type: SessionEventType, handler: EventHandler) -> bool:
        event_type = SessionEventType(event_type)
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def handler_count(self, event_type: SessionEventType) -> int:
        with self._lock:
            return len(self._handlers.get(SessionEventType(event_type), []))

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    def emit(self, event: SessionEvent) -> int:
        """
        Deliver ``event`` to every handler registered for its type.

        Returns:
            Number of handlers that completed without raising
        """
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))

        delivered = 0
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    self._schedule(result, event)
                delivered += 1
            except Exception as e:
                self._log_failure(handler, event, e)
        return delivered

    async def dispatch(self, event: SessionEvent) -> int:
        """
        Like ``emit``, but awaits handlers that return an awaitable before moving
        on, so async subscribers can influence the payload (e.g. a dialog decision).
        """
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))

        delivered = 0
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                self._log_failure(handler, event, e)
        return delivered

    def _log_failure(self, handler: EventHandler, event: SessionEvent, error: Exception) -> None:
        logger.error(
            f"Event handler {getattr(handler, '__name__', handler)!r} failed "
            f"for {event.event_type.value} on {self.name or event.session_id}: {error}",
            exc_info=True,
        )

    def _schedule(self, awaitable: Any, event: SessionEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Async handler for {event.event_type.value} dropped: no running event loop")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(awaitable)
        self._pending.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.error(f"Async event handler failed for {event.event_type.value}: {error}")

        task.add_done_callback(_done)
