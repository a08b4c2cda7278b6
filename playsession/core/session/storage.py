"""
Session State Storage

Saves a session snapshot together with the browser's cookies and local storage
into one JSON document, and applies a saved document back onto a live context.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ...exceptions import StateFileError
from ...utils.files import FilePersistence
from .models import STATE_FORMAT_VERSION, SessionStateDocument

if TYPE_CHECKING:
    from ..browser.driver import BrowserDriver
    from .session import Session

logger = logging.getLogger(__name__)


class SessionStateStore:
    """
    Persists session state documents.

    Args:
        files: File persistence collaborator
        driver: Browser driver used to export and import storage
        directory: Default folder for documents saved without an explicit path
    """

    def __init__(self, files: FilePersistence, driver: 'BrowserDriver', directory: str = "session_states"):
        self.files = files
        self.driver = driver
        self.directory = Path(directory)

    def default_path(self, session_id: str) -> Path:
        return self.directory / f"{session_id}_state.json"

    async def save(self, session: 'Session', path: Optional[str] = None) -> str:
        """Write ``session``'s snapshot and browser storage. Returns the written path."""
        driven = session.driven_context()
        cookies, local_storage = await self.driver.export_storage(driven)

        document = SessionStateDocument.from_snapshot(session.snapshot(), cookies, local_storage)
        target = Path(path) if path else self.default_path(session.id)
        written = await self.files.write_file(target, document.to_json(indent=2, default=str))

        logger.info(
            f"💾 Saved state for session {session.id}: {len(cookies)} cookie(s), "
            f"{len(local_storage)} storage key(s) -> {written}"
        )
        return written

    async def read(self, path: str) -> SessionStateDocument:
        """Read and validate a document without applying it."""
        if not self.files.exists(path):
            raise StateFileError(str(path), "not found")
        try:
            raw = await self.files.read_file(path)
        except OSError as e:
            raise StateFileError(str(path), f"unreadable: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateFileError(str(path), f"not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise StateFileError(str(path), "document must be a JSON object")
        for key in ('id', 'status', 'startTime'):
            if key not in data:
                raise StateFileError(str(path), f"missing '{key}'")

        version = data.get('version', 1)
        if not isinstance(version, int) or version > STATE_FORMAT_VERSION:
            raise StateFileError(str(path), f"unsupported format version {version!r}")
        if not isinstance(data.get('cookies', []), list):
            raise StateFileError(str(path), "'cookies' must be a list")
        if not isinstance(data.get('localStorage', {}), dict):
            raise StateFileError(str(path), "'localStorage' must be an object")

        document = SessionStateDocument.from_dict(data)
        document.version = version
        return document

    async def load(self, session: 'Session', path: str) -> SessionStateDocument:
        """Apply the cookies and local storage stored at ``path`` onto ``session``."""
        document = await self.read(path)
        driven = session.driven_context()
        await self.driver.import_storage(driven, document.cookies, document.local_storage)

        logger.info(
            f"📂 Loaded state into session {session.id} from {path} "
            f"(saved by {document.id}): {len(document.cookies)} cookie(s), "
            f"{len(document.local_storage)} storage key(s)"
        )
        return document
