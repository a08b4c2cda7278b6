"""
Input Actions

Text entry, key presses and form controls bound to one session.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

if TYPE_CHECKING:
    from ..core.session.session import Session

logger = logging.getLogger(__name__)


class InputActions:
    def __init__(self, session: 'Session'):
        self.session = session

    def _locator(self, selector: str):
        return self.session.page().locator(selector)

    def _timeout(self, **kwargs: Any) -> Dict[str, Any]:
        timeout = self.session.timeouts.get('action')
        if timeout is not None:
            kwargs['timeout'] = timeout
        return kwargs

    async def fill(self, selector: str, text: str, clear_first: bool = True) -> None:
        """
        Set the value of an input.

        Args:
            selector: Target input
            text: Value to enter
            clear_first: Replace the existing value; when False the text is appended
        """
        locator = self._locator(selector)
        logger.debug(f"⌨️ [{self.session.id}] Fill {selector}")
        if clear_first:
            await locator.fill(text, **self._timeout())
        else:
            await locator.press("End", **self._timeout())
            await locator.press_sequentially(text, **self._timeout())

    async def type_text(self, selector: str, text: str, delay_ms: float = 50) -> None:
        """Type key by key, the way a person would."""
        await self._locator(selector).press_sequentially(text, **self._timeout(delay=delay_ms))

    async def press(self, selector: str, key: str) -> None:
        await self._locator(selector).press(key, **self._timeout())

    async def clear(self, selector: str) -> None:
        await self._locator(selector).fill("", **self._timeout())

    async def select_option(self, selector: str, value: Union[str, List[str]]) -> List[str]:
        return await self._locator(selector).select_option(value, **self._timeout())

    async def check(self, selector: str) -> None:
        await self._locator(selector).check(**self._timeout())

    async def uncheck(self, selector: str) -> None:
        await self._locator(selector).uncheck(**self._timeout())

    async def value(self, selector: str) -> Optional[str]:
        return await self._locator(selector).input_value()
