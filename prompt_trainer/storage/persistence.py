"""
Persistence Adapters - Key/value slots over a local durable store

Each slot holds one JSON-serializable value. SessionStore is the only
writer; adapters know nothing about what the slots contain.
"""

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger


HISTORY_SLOT = "promptHistory"
TEMPLATES_SLOT = "promptTemplates"
FAVORITES_SLOT = "favorites"
DRAFT_SLOT = "currentPrompt"


class PersistenceAdapter(ABC):
    """Load/save/remove named slots"""

    async def connect(self):
        """Open any underlying connection"""

    async def disconnect(self):
        """Release any underlying connection"""

    @abstractmethod
    async def load(self, key: str) -> Optional[Any]:
        """Return the decoded value of a slot, or None if it was never written"""

    @abstractmethod
    async def save(self, key: str, value: Any):
        """Overwrite a slot"""

    @abstractmethod
    async def remove(self, *keys: str):
        """Delete slots in one call; missing slots are ignored"""


class MemoryPersistence(PersistenceAdapter):
    """Process-local store; values are kept serialized so reads never alias writes"""

    def __init__(self):
        self.slots: Dict[str, str] = {}

    async def load(self, key: str) -> Optional[Any]:
        raw = self.slots.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def save(self, key: str, value: Any):
        self.slots[key] = json.dumps(value)

    async def remove(self, *keys: str):
        for key in keys:
            self.slots.pop(key, None)


class JsonFilePersistence(PersistenceAdapter):
    """
    One JSON file per slot inside a data directory

    Writes go to a temporary file first and are moved into place with
    os.replace, so a slot file is always either the old or the new value.
    """

    def __init__(self, data_dir: str = ".prompt_trainer"):
        self.data_dir = Path(data_dir)

    async def connect(self):
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    async def load(self, key: str) -> Optional[Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self._read(key))

    async def save(self, key: str, value: Any):
        serialized = json.dumps(value, indent=2)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self._write(key, serialized))

    async def remove(self, *keys: str):
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self._unlink(keys))

    def _read(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, key: str, serialized: str):
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialized)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _unlink(self, keys):
        # Every slot is moved aside before any is deleted
        moved = []
        try:
            for key in keys:
                path = self._path(key)
                aside = self.data_dir / f".{key}.removing"
                try:
                    os.replace(path, aside)
                except FileNotFoundError:
                    continue
                moved.append((aside, path))
        except OSError:
            for aside, path in reversed(moved):
                os.replace(aside, path)
            raise

        for aside, _ in moved:
            aside.unlink()


def build_persistence(settings) -> PersistenceAdapter:
    """Pick the adapter named by settings.storage_backend"""
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryPersistence()
    if backend == "redis":
        from prompt_trainer.storage.redis_store import RedisPersistence
        return RedisPersistence(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
        )
    if backend != "file":
        logger.warning(f"Unknown storage backend '{backend}', using file storage")
    return JsonFilePersistence(settings.data_dir)
