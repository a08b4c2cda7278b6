"""
Screenshot Capture

Writes page screenshots to a per-run directory with descriptive, filesystem-safe
names. Error captures never raise: a failed diagnostic must not hide the
failure that triggered it.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class ScreenshotCapability(Protocol):
    async def capture(self, page: Any, description: str) -> str:
        ...

    async def capture_error(self, page: Any, tag: str, error: BaseException) -> Optional[str]:
        ...


def sanitize_filename(text: str, limit: int = 50) -> str:
    """Keep alphanumerics, dashes and underscores; spaces become underscores."""
    if not text:
        return ""
    safe_chars = "".join(c for c in text if c.isalnum() or c in (' ', '-', '_'))
    return safe_chars.strip().replace(' ', '_')[:limit]


class ScreenshotHelper:
    """
    Captures screenshots of a Playwright page.

    Args:
        directory: Folder screenshots are written to
        full_page: Capture the whole scrollable page instead of the viewport
        image_type: ``png`` or ``jpeg``
    """

    def __init__(self, directory: str = "screenshots", full_page: bool = False,
                 image_type: str = "png"):
        self.directory = Path(directory)
        self.full_page = full_page
        self.image_type = image_type

    @classmethod
    def from_config(cls, config) -> 'ScreenshotHelper':
        return cls(
            directory=config.get("screenshots.path", "screenshots"),
            full_page=config.get("screenshots.full_page", False),
            image_type=config.get("screenshots.format", "png"),
        )

    def _build_path(self, prefix: str, details: str = "") -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        filename = f"{timestamp}_{sanitize_filename(prefix) or 'screenshot'}"
        safe_details = sanitize_filename(details)
        if safe_details:
            filename += f"_{safe_details}"
        return self.directory / f"{filename}.{self.image_type}"

    async def capture(self, page: Any, description: str, full_page: Optional[bool] = None) -> str:
        """
        Capture a screenshot of ``page``.

        Returns:
            Path of the written file

        Raises:
            Whatever the page raises; callers decide whether a capture failure matters.
        """
        path = self._build_path(description)
        path.parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(
            path=str(path),
            full_page=self.full_page if full_page is None else full_page,
            type=self.image_type,
        )
        logger.info(f"📸 Screenshot captured: {path.name}")
        return str(path)

    async def capture_error(self, page: Any, tag: str, error: BaseException) -> Optional[str]:
        """
        Capture a full-page diagnostic screenshot for ``error``.

        Returns:
            Path to saved screenshot or None if capture failed
        """
        try:
            path = self._build_path(f"error_{tag}", type(error).__name__)
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=True, type=self.image_type)
            logger.info(f"📸 Error screenshot captured: {path.name}")
            return str(path)
        except Exception as e:
            logger.error(f"Failed to capture error screenshot: {e}")
            return None
