"""
Browser Launch Options

What a driver needs to launch a browser and open an isolated context for one
session.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class BrowserOptions:
    """Configuration for one session's browser, context and page."""
    browser_type: str = 'chromium'  # chromium, chrome, msedge, firefox, webkit
    headless: Optional[bool] = None  # None: HEADLESS env var, then True
    slow_mo: int = 0
    viewport_width: int = 1280
    viewport_height: int = 800
    timeout: int = 30000  # milliseconds
    args: List[str] = field(default_factory=list)
    ignore_https_errors: bool = False
    downloads_path: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    user_agent: Optional[str] = None
    launch_options: Dict[str, Any] = field(default_factory=dict)

    def resolve_headless(self, environ: Optional[Mapping[str, str]] = None) -> bool:
        """Explicit option wins, then the HEADLESS environment variable, then True."""
        if self.headless is not None:
            return bool(self.headless)
        env = os.environ if environ is None else environ
        value = env.get('HEADLESS')
        if value is not None:
            return value.strip().lower() in ('1', 'true')
        return True

    def context_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``Browser.new_context``."""
        options: Dict[str, Any] = {
            'viewport': {'width': self.viewport_width, 'height': self.viewport_height},
            'ignore_https_errors': self.ignore_https_errors,
            'accept_downloads': True,
        }
        if self.locale:
            options['locale'] = self.locale
        if self.timezone:
            options['timezone_id'] = self.timezone
        if self.user_agent:
            options['user_agent'] = self.user_agent
        return options

    @classmethod
    def from_config(cls, config) -> 'BrowserOptions':
        """Build options from the ``browser`` section of a config provider."""
        viewport = config.get("browser.viewport", {}) or {}
        return cls(
            browser_type=config.get("browser.type", "chromium"),
            headless=config.get("browser.headless", None),
            slow_mo=config.get("browser.slow_mo", 0),
            viewport_width=viewport.get("width", 1280),
            viewport_height=viewport.get("height", 800),
            timeout=config.get("browser.timeout", 30000),
            args=list(config.get("browser.args", []) or []),
            ignore_https_errors=config.get("browser.ignore_https_errors", False),
            downloads_path=config.get("paths.downloads", None),
            locale=config.get("browser.locale", None),
            timezone=config.get("browser.timezone", None),
        )
