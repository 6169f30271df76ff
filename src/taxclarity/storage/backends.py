"""
Storage backends.

- JsonFileStorage: one file per key in a data directory (production)
- MemoryStorage: in-process dict (tests, previews)
- NullStorage: persists nothing
"""

import asyncio
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class JsonFileStorage:
    """
    File-per-key storage under a directory.

    Writes go to a temp file that replaces the target, so a crash mid-write
    leaves the previous value intact. File I/O runs in a worker thread to
    keep the event loop free.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    async def get_item(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, self.path_for(key))

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self.path_for(key), value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self.path_for(key).unlink, missing_ok=True)

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    @staticmethod
    def _write(path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)
        logger.debug(f"Wrote {len(value)} chars to {path}")

    def __repr__(self) -> str:
        return f"JsonFileStorage({str(self.directory)!r})"


class MemoryStorage:
    """Dict-backed storage. Survives as long as the instance does."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    async def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class NullStorage:
    """Never returns data and discards writes."""

    async def get_item(self, key: str) -> str | None:
        return None

    async def set_item(self, key: str, value: str) -> None:
        return None

    async def remove_item(self, key: str) -> None:
        return None
