import asyncio
import logging
import secrets
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import ConnectionPool

from passbridge.core.config import settings

logger = logging.getLogger(__name__)

# Delete the key only if it still holds our token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class AsyncRedisManager:
    """Lazily connected Redis client used for pass creation locks."""

    def __init__(self):
        self.pool: Optional[ConnectionPool] = None
        self.redis: Optional[redis.Redis] = None
        self._connection_lock = asyncio.Lock()

    async def initialize(self):
        async with self._connection_lock:
            if self.pool is not None:
                return
            pool = ConnectionPool(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                decode_responses=True,
                # Lock calls sit in front of the provider request; fail fast
                socket_connect_timeout=2,
                socket_timeout=2,
                max_connections=10,
                health_check_interval=30,
            )
            client = redis.Redis(connection_pool=pool)
            try:
                await client.ping()
            except Exception as e:
                logger.error(f"Failed to connect to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}: {e}")
                await pool.disconnect()
                raise
            self.pool, self.redis = pool, client
            logger.info("Redis connection pool initialized")

    async def _client(self) -> redis.Redis:
        if self.redis is None:
            await self.initialize()
        return self.redis

    async def close(self):
        async with self._connection_lock:
            if self.redis is not None:
                await self.redis.aclose()
                self.redis = None
            if self.pool is not None:
                await self.pool.disconnect()
                self.pool = None
            logger.info("Redis connection pool closed")

    async def ping(self) -> bool:
        try:
            client = await self._client()
            return bool(await client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def acquire_lock(self, key: str, ttl: int) -> Optional[str]:
        """
        Try to take an exclusive lock.

        Args:
            key: Lock key
            ttl: Seconds after which the lock expires on its own

        Returns:
            Token to release the lock with, or None if someone else holds it
        """
        client = await self._client()
        token = secrets.token_hex(16)
        acquired = await client.set(key, token, nx=True, ex=ttl)
        return token if acquired else None

    async def release_lock(self, key: str, token: str) -> bool:
        client = await self._client()
        released = await client.eval(RELEASE_LOCK_SCRIPT, 1, key, token)
        if not released:
            logger.warning(f"Lock {key} expired before release")
        return bool(released)


redis_manager = AsyncRedisManager()
