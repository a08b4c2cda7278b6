"""
Navigation Actions

Page navigation bound to one session. Every call resolves the page through
the session, so a session that is no longer active fails fast.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

if TYPE_CHECKING:
    from ..core.session.session import Session

logger = logging.getLogger(__name__)


class NavigationActions:
    """
    Navigation helpers for a session's current page.

    Relative URLs are resolved against the session's ``base_url``. Calls without
    an explicit timeout use the session's ``navigation`` timeout. Only URLs
    reached through ``goto`` are kept in ``history()``; the session's
    ``current_url`` follows every main-frame navigation.
    """

    def __init__(self, session: 'Session'):
        self.session = session
        self._history: List[str] = []

    def _options(self, timeout: Optional[float], **kwargs: Any) -> Dict[str, Any]:
        if timeout is None:
            timeout = self.session.timeouts.get('navigation')
        if timeout is not None:
            kwargs['timeout'] = timeout
        return kwargs

    def resolve_url(self, url: str) -> str:
        """Resolve a relative URL against the session's base URL."""
        base_url = self.session.base_url
        if base_url and not urlparse(url).scheme:
            return urljoin(base_url, url)
        return url

    async def goto(self, url: str, wait_until: str = "domcontentloaded",
                   timeout: Optional[float] = None) -> Optional[int]:
        """
        Navigate to ``url``.

        Returns:
            HTTP status of the main response, or None when there was none
            (same-document navigation, ``about:`` pages)
        """
        page = self.session.page()
        target = self.resolve_url(url)
        logger.info(f"🌐 [{self.session.id}] Navigating to {target}")
        response = await page.goto(target, **self._options(timeout, wait_until=wait_until))
        self._history.append(target)
        return response.status if response is not None else None

    async def back(self, wait_until: str = "domcontentloaded", timeout: Optional[float] = None) -> None:
        await self.session.page().go_back(**self._options(timeout, wait_until=wait_until))

    async def forward(self, wait_until: str = "domcontentloaded", timeout: Optional[float] = None) -> None:
        await self.session.page().go_forward(**self._options(timeout, wait_until=wait_until))

    async def reload(self, wait_until: str = "domcontentloaded", timeout: Optional[float] = None) -> None:
        await self.session.page().reload(**self._options(timeout, wait_until=wait_until))

    def current_url(self) -> str:
        return self.session.page().url

    async def title(self) -> str:
        return await self.session.page().title()

    async def wait_for_url(self, url: Any, timeout: Optional[float] = None) -> None:
        await self.session.page().wait_for_url(url, **self._options(timeout))

    async def set_viewport(self, width: int, height: int) -> None:
        await self.session.page().set_viewport_size({'width': width, 'height': height})

    async def clear_cookies(self) -> None:
        await self.session.context().clear_cookies()

    async def clear_local_storage(self) -> None:
        await self.session.page().evaluate("() => window.localStorage.clear()")

    def history(self) -> List[str]:
        return list(self._history)
