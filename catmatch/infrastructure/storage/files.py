"""
Local filesystem storage for uploaded files.

Blocking file IO runs in worker threads so the event loop stays free.
"""

import asyncio
from pathlib import Path

from catmatch.config import get_logger, get_settings
from catmatch.core.exceptions import FileStorageError
from catmatch.core.interfaces.storage import IFileStore

logger = get_logger(__name__)


class LocalFileStore(IFileStore):
    """Stores upload bytes as flat files under one directory."""

    def __init__(self, root: Path):
        self.root = root

    def _path(self, stored_filename: str) -> Path:
        path = self.root / stored_filename
        # Stored names are generated, never user paths
        if path.parent != self.root or stored_filename in ("", ".", ".."):
            raise FileStorageError(stored_filename, "invalid stored filename")
        return path

    async def save(self, stored_filename: str, content: bytes) -> None:
        path = self._path(stored_filename)

        def _write() -> None:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".part")
            tmp_path.write_bytes(content)
            tmp_path.replace(path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise FileStorageError(stored_filename, str(e)) from e
        logger.debug("file_saved", stored_filename=stored_filename, size=len(content))

    async def read(self, stored_filename: str) -> bytes:
        path = self._path(stored_filename)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise FileStorageError(stored_filename, "file is missing") from e
        except OSError as e:
            raise FileStorageError(stored_filename, str(e)) from e

    async def delete(self, stored_filename: str) -> bool:
        path = self._path(stored_filename)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise FileStorageError(stored_filename, str(e)) from e
        logger.debug("file_deleted", stored_filename=stored_filename)
        return True


_file_store: LocalFileStore | None = None


def get_file_store() -> LocalFileStore:
    """Get singleton file store rooted at the configured uploads directory."""
    global _file_store
    if _file_store is None:
        _file_store = LocalFileStore(get_settings().storage.uploads_dir)
    return _file_store


def reset_file_store() -> None:
    global _file_store
    _file_store = None
