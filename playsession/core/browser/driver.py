"""
Browser Driver Capability

The interface the session core consumes to obtain and release driven browsing
contexts and to receive raw page events. ``PlaywrightDriver`` is the shipped
implementation; tests substitute an in-memory one.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Protocol, Tuple

from .options import BrowserOptions

Cookie = Dict[str, Any]
StorageDump = Dict[str, str]


@dataclass
class DrivenContext:
    """The browser, isolated context and page owned by one session."""
    browser: Any
    context: Any
    page: Any


class BrowserDriver(Protocol):
    async def create_context(self, session_id: str, options: BrowserOptions) -> DrivenContext:
        ...

    async def close_context(self, session_id: str) -> None:
        ...

    def on_navigated(self, driven: DrivenContext, callback: Callable[[str], Any]) -> None:
        ...

    def on_page_error(self, driven: DrivenContext, callback: Callable[[str], Any]) -> None:
        ...

    def on_console(self, driven: DrivenContext, callback: Callable[[str, str], Any]) -> None:
        ...

    def on_dialog(self, driven: DrivenContext, callback: Callable[[Any], Awaitable[None]]) -> None:
        ...

    def on_download(self, driven: DrivenContext, callback: Callable[[str, Any], Any]) -> None:
        ...

    def on_new_page(self, driven: DrivenContext, callback: Callable[[Any], Any]) -> None:
        ...

    async def export_storage(self, driven: DrivenContext) -> Tuple[List[Cookie], StorageDump]:
        ...

    async def import_storage(self, driven: DrivenContext, cookies: List[Cookie],
                             local_storage: StorageDump) -> None:
        ...

    async def close(self) -> None:
        ...
