"""
Cleanup Chain

Deferred release callbacks registered by collaborators and run once, in
registration order, when a session closes. Best effort: a failing callback is
recorded and the rest still run.
"""

import inspect
import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

from ...exceptions import CleanupError

logger = logging.getLogger(__name__)

CleanupCallback = Callable[[], Any]


class CleanupChain:
    def __init__(self, owner: str = ""):
        self.owner = owner
        self._callbacks: List[Tuple[str, CleanupCallback]] = []
        self._lock = threading.Lock()

    def add(self, callback: CleanupCallback, name: Optional[str] = None) -> None:
        """Append ``callback``; it may be a plain function or return an awaitable."""
        if not callable(callback):
            raise TypeError("cleanup callback must be callable")
        label = name or getattr(callback, '__name__', repr(callback))
        with self._lock:
            self._callbacks.append((label, callback))

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    async def run(self) -> List[CleanupError]:
        """
        Execute and drop every registered callback.

        Returns:
            One CleanupError per failed callback, in execution order
        """
        with self._lock:
            callbacks, self._callbacks = self._callbacks, []

        failures: List[CleanupError] = []
        for label, callback in callbacks:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
                logger.debug(f"Cleanup '{label}' done for {self.owner}")
            except Exception as e:
                failure = CleanupError(label, e)
                failures.append(failure)
                logger.error(f"🧹 {failure} (session {self.owner})")

        return failures
