"""
Redis Persistence - Session slots in a local Redis

Keys are namespaced under `prompt_trainer:` and hold JSON strings with no
TTL. If the server is unreachable at connect time the adapter degrades to
a no-op store and says so in the log.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from loguru import logger

from prompt_trainer.storage.persistence import PersistenceAdapter


KEY_PREFIX = "prompt_trainer:"


class RedisPersistence(PersistenceAdapter):
    """Redis-backed slot store"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        client: Optional[Redis] = None,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.db = db
        self.client: Optional[Redis] = client

    async def connect(self):
        """Connect to Redis"""
        if self.client is not None:
            return
        try:
            self.client = await redis.from_url(
                f"redis://{self.host}:{self.port}/{self.db}",
                password=self.password,
                decode_responses=True,
            )
            await self.client.ping()
        except Exception as e:
            logger.warning(f"Redis connection failed: {e}. Session state will not persist.")
            self.client = None

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.client:
            await self.client.aclose()
            self.client = None

    def key(self, slot: str) -> str:
        return f"{KEY_PREFIX}{slot}"

    async def load(self, key: str) -> Optional[Any]:
        if not self.client:
            return None
        raw = await self.client.get(self.key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def save(self, key: str, value: Any):
        if not self.client:
            logger.warning(f"Redis unavailable, dropped write to '{key}'")
            return
        await self.client.set(self.key(key), json.dumps(value))

    async def remove(self, *keys: str):
        if not self.client or not keys:
            return
        # Single DEL so the slots disappear together
        await self.client.delete(*[self.key(k) for k in keys])

    async def health_check(self) -> bool:
        """Check Redis connection health"""
        if not self.client:
            return False
        try:
            await self.client.ping()
            return True
        except Exception:
            return False
