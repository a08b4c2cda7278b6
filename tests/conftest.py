"""Shared fixtures: an in-memory browser driver and a registry built on it."""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from playsession.config import FrameworkConfig
from playsession.core.browser.driver import DrivenContext
from playsession.core.session import SessionRegistry
from playsession.utils.files import FilePersistence
from playsession.utils.screenshots import ScreenshotHelper


class FakeResponse:
    def __init__(self, status: int = 200):
        self.status = status


class FakeLocator:
    def __init__(self, page: 'FakePage', selector: str):
        self.page = page
        self.selector = selector

    @property
    def _element(self) -> Dict[str, Any]:
        return self.page.elements.setdefault(self.selector, {})

    def _record_timeout(self, action: str, kwargs: Dict[str, Any]) -> None:
        if 'timeout' in kwargs:
            self.page.timeouts.append((action, kwargs['timeout']))

    async def evaluate(self, script: str) -> None:
        self.page.calls.append(('highlight', self.selector))

    async def click(self, **kwargs) -> None:
        self._record_timeout('click', kwargs)
        self.page.calls.append(('click', self.selector))

    async def dblclick(self, **kwargs) -> None:
        self._record_timeout('dblclick', kwargs)
        self.page.calls.append(('dblclick', self.selector))

    async def hover(self, **kwargs) -> None:
        self._record_timeout('hover', kwargs)
        self.page.calls.append(('hover', self.selector))

    async def fill(self, text: str, **kwargs) -> None:
        self._record_timeout('fill', kwargs)
        self._element['value'] = text

    async def press(self, key: str, **kwargs) -> None:
        self._record_timeout('press', kwargs)
        self.page.calls.append(('press', self.selector, key))

    async def press_sequentially(self, text: str, delay: float = 0, **kwargs) -> None:
        self._record_timeout('press_sequentially', kwargs)
        self._element['value'] = self._element.get('value', '') + text

    async def input_value(self) -> str:
        return self._element.get('value', '')

    async def text_content(self) -> Optional[str]:
        return self._element.get('text')

    async def is_visible(self) -> bool:
        return self._element.get('visible', False)

    async def count(self) -> int:
        return self._element.get('count', 0)

    async def check(self, **kwargs) -> None:
        self._record_timeout('check', kwargs)
        self._element['checked'] = True

    async def wait_for(self, state: str = 'visible', **kwargs) -> None:
        self._record_timeout('wait_for', kwargs)
        self.page.calls.append(('wait_for', self.selector, state))


class FakePage:
    """Stands in for a Playwright page; raw events are fired by the tests."""

    def __init__(self):
        self.url = "about:blank"
        self.page_title = ""
        self.elements: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Any] = []
        self.timeouts: List[Any] = []
        self.goto_calls: List[Dict[str, Any]] = []
        self.screenshots: List[str] = []
        self.handlers: Dict[str, Any] = {}
        self.fail_screenshots = False
        self.status_code = 200

    async def goto(self, url: str, **kwargs) -> FakeResponse:
        self.goto_calls.append(dict(kwargs, url=url))
        self.url = url
        self.fire('navigated', url)
        return FakeResponse(self.status_code)

    async def title(self) -> str:
        return self.page_title

    async def screenshot(self, path: str, **kwargs) -> None:
        if self.fail_screenshots:
            raise RuntimeError("screenshot failed")
        self.screenshots.append(path)

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def fire(self, name: str, *args: Any) -> Any:
        handler = self.handlers.get(name)
        if handler is not None:
            return handler(*args)
        return None


class FakeDialog:
    def __init__(self, dialog_type: str = "confirm", message: str = "Are you sure?", default_value: str = ""):
        self.type = dialog_type
        self.message = message
        self.default_value = default_value
        self.outcome: Optional[str] = None
        self.prompt_text: Optional[str] = None

    async def accept(self, prompt_text: Optional[str] = None) -> None:
        self.outcome = "accepted"
        self.prompt_text = prompt_text

    async def dismiss(self) -> None:
        self.outcome = "dismissed"


class FakeDriver:
    """In-memory BrowserDriver. Keeps cookies and local storage per page."""

    def __init__(self):
        self.contexts: Dict[str, DrivenContext] = {}
        self.created: List[str] = []
        self.released: List[str] = []
        self.fail_create: Optional[Exception] = None
        self.fail_close: Optional[Exception] = None
        self.closed = False
        self.storage: Dict[int, Dict[str, Any]] = {}

    async def create_context(self, session_id, options) -> DrivenContext:
        if self.fail_create is not None:
            raise self.fail_create
        driven = DrivenContext(browser=object(), context=object(), page=FakePage())
        self.contexts[session_id] = driven
        self.created.append(session_id)
        return driven

    async def close_context(self, session_id) -> None:
        self.released.append(session_id)
        self.contexts.pop(session_id, None)
        if self.fail_close is not None:
            raise self.fail_close

    def _subscribe(self, driven: DrivenContext, name: str, callback) -> None:
        driven.page.handlers[name] = callback

    def on_navigated(self, driven, callback) -> None:
        self._subscribe(driven, 'navigated', callback)

    def on_page_error(self, driven, callback) -> None:
        self._subscribe(driven, 'page_error', callback)

    def on_console(self, driven, callback) -> None:
        self._subscribe(driven, 'console', callback)

    def on_dialog(self, driven, callback) -> None:
        self._subscribe(driven, 'dialog', callback)

    def on_download(self, driven, callback) -> None:
        self._subscribe(driven, 'download', callback)

    def on_new_page(self, driven, callback) -> None:
        self._subscribe(driven, 'new_page', callback)

    def _storage(self, driven: DrivenContext) -> Dict[str, Any]:
        return self.storage.setdefault(id(driven.page), {'cookies': [], 'local_storage': {}})

    async def export_storage(self, driven):
        store = self._storage(driven)
        return list(store['cookies']), dict(store['local_storage'])

    async def import_storage(self, driven, cookies, local_storage) -> None:
        store = self._storage(driven)
        store['cookies'] = list(cookies)
        store['local_storage'].update(local_storage)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def config(tmp_path):
    return FrameworkConfig.from_dict({
        'screenshots': {'path': str(tmp_path / 'screenshots')},
        'paths': {'states': str(tmp_path / 'session_states')},
    })


@pytest.fixture
def registry(driver, config, tmp_path):
    return SessionRegistry(
        driver,
        config=config,
        screenshots=ScreenshotHelper(directory=str(tmp_path / 'screenshots')),
        files=FilePersistence(),
    )


def browser_tests_enabled() -> bool:
    return os.environ.get('PLAYSESSION_BROWSER_TESTS') == '1'
