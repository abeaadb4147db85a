from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("storage")


class JsonStorage(Generic[T]):
    """Durable JSON document on disk (token lists, honeypot sets)."""

    def __init__(self, folder: str | Path, file_name: str):
        self._path = Path(folder) / file_name

    @property
    def path(self) -> Path:
        return self._path

    def _read_sync(self) -> T | None:
        if not self._path.exists():
            return None
        return json.loads(self._path.read_text(encoding="utf-8"))

    def _write_sync(self, item: Any) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(item), encoding="utf-8")
        tmp_path.replace(self._path)

    async def read(self) -> T | None:
        return await asyncio.to_thread(self._read_sync)

    async def write(self, item: T) -> None:
        await asyncio.to_thread(self._write_sync, item)

    async def append(self, item: Any) -> None:
        """Append to a list document, creating it when missing."""

        def _append() -> None:
            current = self._read_sync()
            if current is None:
                current = []
            if not isinstance(current, list):
                raise TypeError(f"Cannot append to non-list document {self._path}")
            current.append(item)
            self._write_sync(current)

        await asyncio.to_thread(_append)

    async def delete(self) -> None:
        await asyncio.to_thread(self._path.unlink, True)
