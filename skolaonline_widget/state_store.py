#!/usr/bin/env python3
"""
Key/value state stores for the widget.

The sync core only talks to the ``StateStore`` interface. Every
read-modify-write goes through ``transaction()``, which holds the store's lock
for the whole block and commits the modified mapping at once, so token
rotation, cursor moves and cache writes never interleave.
"""

import abc
import asyncio
import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from skolaonline_widget import logger

class StateStore(abc.ABC):
    """Interface of a persisted key/value mapping with atomic transactions."""

    def __init__(self):
        self._lock = asyncio.Lock()

    @abc.abstractmethod
    def _read(self) -> Dict[str, Any]:
        """Return the full persisted mapping."""
        pass

    @abc.abstractmethod
    def _write(self, data: Dict[str, Any]) -> None:
        """Replace the full persisted mapping."""
        pass

    def get(self, key: str, default: Any = None) -> Any:
        """Read a single value outside of a transaction."""
        return self._read().get(key, default)

    def snapshot(self) -> Dict[str, Any]:
        """Return a copy of all values."""
        return dict(self._read())

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Atomic read-modify-write block.

        Yields a mutable copy of the mapping. The copy is written back when the
        block exits normally; an exception discards every change.
        """
        async with self._lock:
            data = dict(self._read())
            yield data
            self._write(data)

    async def set(self, key: str, value: Any) -> None:
        async with self.transaction() as data:
            data[key] = value

    async def remove(self, key: str) -> None:
        async with self.transaction() as data:
            data.pop(key, None)

    async def clear(self) -> None:
        async with self.transaction() as data:
            data.clear()

class InMemoryStateStore(StateStore):
    """Process-local store, used when embedding the core and in tests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__()
        self._data: Dict[str, Any] = dict(initial or {})

    def _read(self) -> Dict[str, Any]:
        return self._data

    def _write(self, data: Dict[str, Any]) -> None:
        self._data = dict(data)

class JsonFileStateStore(StateStore):
    """
    Store backed by a JSON file.

    Writes go to a temporary file in the same directory followed by
    ``os.replace`` so a reader never sees a half written file.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} does not hold an object, ignoring it")
            return {}
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise
        logger.debug(f"State saved to {self.path}")

    def __repr__(self):
        return f"<JsonFileStateStore(path={self.path})>"
