"""
File Persistence

Async text file access used for session state documents.
"""

import logging
from pathlib import Path
from typing import Union

import aiofiles

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FilePersistence:
    """Reads and writes UTF-8 files without blocking the event loop."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    async def write_file(self, path: PathLike, content: str) -> str:
        """Write ``content`` to ``path``, creating parent directories. Returns the path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, 'w', encoding=self.encoding) as f:
            await f.write(content)
        logger.debug(f"Wrote {len(content)} characters to {target}")
        return str(target)

    async def read_file(self, path: PathLike) -> str:
        async with aiofiles.open(Path(path), 'r', encoding=self.encoding) as f:
            return await f.read()

    def exists(self, path: PathLike) -> bool:
        return Path(path).is_file()
