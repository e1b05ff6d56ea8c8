"""
Redis key-value storage implementation.

Suitable when several agent processes on one machine share local state.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """
    Redis implementation of the KeyValueStore protocol.

    Multi-key writes go through a MULTI/EXEC pipeline so they apply
    atomically.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "memory_agent:",
        client: Optional[redis.Redis] = None,
    ):
        """
        Initialize the Redis store.

        Args:
            host: Redis host
            port: Redis port
            db: Redis database number
            key_prefix: Prefix for Redis keys (default: "memory_agent:")
            client: Pre-built asyncio Redis client
        """
        self.client = client or redis.Redis(host=host, port=port, db=db, decode_responses=True)
        self._key_prefix = key_prefix

        logger.info(f"RedisKeyValueStore initialized (host={host}:{port}, db={db})")

    def _get_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def ping(self) -> bool:
        """Check the connection, raising redis.ConnectionError if it is down."""
        try:
            return await self.client.ping()
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def get(self, keys: List[str]) -> Dict[str, Any]:
        if not keys:
            return {}

        raw_values = await self.client.mget([self._get_key(key) for key in keys])

        values = {}
        for key, raw in zip(keys, raw_values):
            if raw is None:
                continue
            try:
                values[key] = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to deserialize value for key {key}: {e}")
        return values

    async def set(self, values: Mapping[str, Any]) -> None:
        if not values:
            return

        encoded = {self._get_key(key): json.dumps(value) for key, value in values.items()}
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.mset(encoded)
            await pipe.execute()

        logger.debug(f"Stored keys: {sorted(values)}")

    async def clear(self) -> None:
        keys = [key async for key in self.client.scan_iter(match=f"{self._key_prefix}*")]
        if keys:
            await self.client.delete(*keys)
        logger.info(f"Cleared {len(keys)} keys")

    async def close(self) -> None:
        await self.client.aclose()
