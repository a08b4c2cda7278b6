"""
Playwright Driver

Launches one browser per session through Playwright's async API, opens an
isolated context and page, forwards raw page events, and tears everything down
again on request.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from playwright.async_api import Playwright, async_playwright

from .driver import Cookie, DrivenContext, StorageDump
from .options import BrowserOptions

logger = logging.getLogger(__name__)

READ_LOCAL_STORAGE_JS = "() => Object.assign({}, window.localStorage)"

WRITE_LOCAL_STORAGE_JS = """
(items) => {
    for (const [key, value] of Object.entries(items)) {
        window.localStorage.setItem(key, value);
    }
}
"""

SEED_LOCAL_STORAGE_TEMPLATE = """
(() => {{
    const items = {items};
    for (const [key, value] of Object.entries(items)) {{
        if (window.localStorage.getItem(key) === null) {{
            window.localStorage.setItem(key, value);
        }}
    }}
}})();
"""


class PlaywrightDriver:
    """
    BrowserDriver implementation backed by Playwright.

    The Playwright runtime is started lazily on the first ``create_context``
    call and stopped by ``close()``.
    """

    def __init__(self, playwright: Optional[Playwright] = None):
        self._playwright = playwright
        self._owns_playwright = playwright is None
        self._contexts: Dict[str, DrivenContext] = {}
        self._start_lock: Optional[asyncio.Lock] = None

    async def _ensure_started(self) -> Playwright:
        if self._start_lock is None:
            self._start_lock = asyncio.Lock()
        async with self._start_lock:
            if self._playwright is None:
                logger.info("🚀 Starting Playwright...")
                self._playwright = await async_playwright().start()
            return self._playwright

    def _resolve_launcher(self, playwright: Playwright, options: BrowserOptions) -> Tuple[Any, Dict[str, Any]]:
        launch_options: Dict[str, Any] = {
            'headless': options.resolve_headless(),
            'slow_mo': options.slow_mo,
        }
        if options.args:
            launch_options['args'] = list(options.args)
        if options.downloads_path:
            launch_options['downloads_path'] = options.downloads_path
        launch_options.update(options.launch_options)

        browser_type = options.browser_type.lower()
        if browser_type in ('chrome', 'msedge', 'edge'):
            launch_options['channel'] = 'msedge' if browser_type in ('msedge', 'edge') else 'chrome'
            return playwright.chromium, launch_options
        if browser_type == 'firefox':
            return playwright.firefox, launch_options
        if browser_type == 'webkit':
            return playwright.webkit, launch_options
        return playwright.chromium, launch_options

    async def create_context(self, session_id: str, options: BrowserOptions) -> DrivenContext:
        """Launch a browser, open a context and page for ``session_id``."""
        if session_id in self._contexts:
            raise RuntimeError(f"Driver already holds a context for session '{session_id}'")

        playwright = await self._ensure_started()
        launcher, launch_options = self._resolve_launcher(playwright, options)

        browser = await launcher.launch(**launch_options)
        try:
            context = await browser.new_context(**options.context_options())
            context.set_default_timeout(options.timeout)
            page = await context.new_page()
        except Exception:
            await browser.close()
            raise

        driven = DrivenContext(browser=browser, context=context, page=page)
        self._contexts[session_id] = driven
        logger.debug(f"Opened {options.browser_type} context for session {session_id}")
        return driven

    async def close_context(self, session_id: str) -> None:
        """
        Close page, context and browser of a session.

        Every step is attempted; the first failure is re-raised afterwards.
        """
        driven = self._contexts.pop(session_id, None)
        if driven is None:
            return

        first_error: Optional[BaseException] = None
        steps = (
            ('page', lambda: driven.page.close(run_before_unload=True)),
            ('context', driven.context.close),
            ('browser', driven.browser.close),
        )
        for name, close in steps:
            try:
                await close()
            except Exception as e:
                logger.warning(f"Error closing {name} for session {session_id}: {e}")
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error

    def on_navigated(self, driven: DrivenContext, callback: Callable[[str], Any]) -> None:
        page = driven.page

        def handler(frame):
            if frame == page.main_frame:
                callback(frame.url)

        page.on('framenavigated', handler)

    def on_page_error(self, driven: DrivenContext, callback: Callable[[str], Any]) -> None:
        driven.page.on('pageerror', lambda error: callback(str(error)))

    def on_console(self, driven: DrivenContext, callback: Callable[[str, str], Any]) -> None:
        driven.page.on('console', lambda message: callback(message.type, message.text))

    def on_dialog(self, driven: DrivenContext, callback: Callable[[Any], Awaitable[None]]) -> None:
        driven.page.on('dialog', callback)

    def on_download(self, driven: DrivenContext, callback: Callable[[str, Any], Any]) -> None:
        driven.page.on('download', lambda download: callback(download.suggested_filename, download))

    def on_new_page(self, driven: DrivenContext, callback: Callable[[Any], Any]) -> None:
        driven.context.on('page', callback)

    async def export_storage(self, driven: DrivenContext) -> Tuple[List[Cookie], StorageDump]:
        cookies = await driven.context.cookies()
        try:
            local_storage = await driven.page.evaluate(READ_LOCAL_STORAGE_JS)
        except Exception as e:
            # about:blank and similar pages have no storage origin
            logger.debug(f"Local storage unavailable on {driven.page.url}: {e}")
            local_storage = {}
        return list(cookies), dict(local_storage or {})

    async def import_storage(self, driven: DrivenContext, cookies: List[Cookie],
                             local_storage: StorageDump) -> None:
        if cookies:
            await driven.context.add_cookies(cookies)
        if not local_storage:
            return

        if driven.page.url.startswith(('http://', 'https://')):
            await driven.page.evaluate(WRITE_LOCAL_STORAGE_JS, local_storage)
        else:
            # No origin yet: seed storage on the next document instead.
            await driven.context.add_init_script(
                SEED_LOCAL_STORAGE_TEMPLATE.format(items=json.dumps(local_storage))
            )

    async def close(self) -> None:
        """Close every remaining context and stop Playwright if this driver started it."""
        for session_id in list(self._contexts):
            try:
                await self.close_context(session_id)
            except Exception as e:
                logger.warning(f"Error releasing context for session {session_id}: {e}")

        if self._playwright is not None and self._owns_playwright:
            await self._playwright.stop()
            self._playwright = None
            logger.info("✅ Playwright stopped")
