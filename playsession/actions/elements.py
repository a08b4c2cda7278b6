"""
Element Actions

Locator-based element interaction bound to one session.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from ..core.session.session import Session

logger = logging.getLogger(__name__)

HIGHLIGHT_SCRIPT = """
(el) => {
    const original = el.getAttribute('style') || '';
    el.setAttribute('style', original + '; outline: 2px solid red !important; background-color: rgba(255,0,0,0.1) !important;');
    setTimeout(() => el.setAttribute('style', original), 2000);
}
"""


class ElementActions:
    def __init__(self, session: 'Session'):
        self.session = session

    def _timeout(self, timeout: Optional[float], **kwargs: Any) -> Dict[str, Any]:
        if timeout is None:
            timeout = self.session.timeouts.get('element')
        if timeout is not None:
            kwargs['timeout'] = timeout
        return kwargs

    def locator(self, selector: str) -> Any:
        return self.session.page().locator(selector)

    async def _prepare(self, selector: str) -> Any:
        locator = self.locator(selector)
        if self.session.highlight_interactions:
            await self.highlight(locator)
        return locator

    async def highlight(self, locator: Any) -> None:
        """Outline the element for two seconds. Purely visual; failures are ignored."""
        try:
            await locator.evaluate(HIGHLIGHT_SCRIPT)
        except Exception as e:
            logger.debug(f"Highlight skipped: {e}")

    async def click(self, selector: str, timeout: Optional[float] = None) -> None:
        locator = await self._prepare(selector)
        logger.debug(f"🖱️ [{self.session.id}] Click {selector}")
        await locator.click(**self._timeout(timeout))

    async def double_click(self, selector: str, timeout: Optional[float] = None) -> None:
        locator = await self._prepare(selector)
        await locator.dblclick(**self._timeout(timeout))

    async def hover(self, selector: str, timeout: Optional[float] = None) -> None:
        locator = await self._prepare(selector)
        await locator.hover(**self._timeout(timeout))

    async def get_text(self, selector: str) -> str:
        text = await self.locator(selector).text_content()
        return (text or "").strip()

    async def get_attribute(self, selector: str, name: str) -> Optional[str]:
        return await self.locator(selector).get_attribute(name)

    async def is_visible(self, selector: str) -> bool:
        return await self.locator(selector).is_visible()

    async def count(self, selector: str) -> int:
        return await self.locator(selector).count()

    async def wait_for(self, selector: str, state: str = "visible", timeout: Optional[float] = None) -> None:
        await self.locator(selector).wait_for(**self._timeout(timeout, state=state))
