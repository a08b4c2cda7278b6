"""
Assertion Helpers

Page assertions that record their outcome into the session metrics and raise
AssertionFailedError when they do not hold.
"""

import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import AssertionFailedError

if TYPE_CHECKING:
    from ..core.session.session import Session

logger = logging.getLogger(__name__)


class AssertionHelpers:
    def __init__(self, session: 'Session'):
        self.session = session

    def _check(self, passed: bool, description: str, expected: Any, actual: Any) -> None:
        self.session.record_assertion(passed, description)
        if not passed:
            raise AssertionFailedError(
                f"{description}: expected {expected!r}, got {actual!r}",
                expected=expected,
                actual=actual,
            )
        logger.debug(f"✅ [{self.session.id}] {description}")

    async def assert_title(self, expected: str, exact: bool = True) -> None:
        actual = await self.session.page().title()
        passed = actual == expected if exact else expected in actual
        self._check(passed, "Page title", expected, actual)

    async def assert_url_contains(self, fragment: str) -> None:
        actual = self.session.page().url
        self._check(fragment in actual, "URL contains", fragment, actual)

    async def assert_text(self, selector: str, expected: str, exact: bool = False) -> None:
        actual = (await self.session.page().locator(selector).text_content() or "").strip()
        passed = actual == expected if exact else expected in actual
        self._check(passed, f"Text of {selector}", expected, actual)

    async def assert_visible(self, selector: str, visible: bool = True) -> None:
        actual = await self.session.page().locator(selector).is_visible()
        self._check(actual == visible, f"Visibility of {selector}", visible, actual)

    async def assert_count(self, selector: str, expected: int) -> None:
        actual = await self.session.page().locator(selector).count()
        self._check(actual == expected, f"Count of {selector}", expected, actual)
