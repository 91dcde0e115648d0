"""Redis async client management.

The client connects lazily, so ``connect`` sends a single PING to observe
whether the cache is reachable. A Redis error is never fatal: the service is
marked degraded and the client's own retry logic handles reconnection.
Errors after startup surface through ``check_health``, which the readiness
endpoint runs on every request: a failed PING moves the service to degraded
and a passing one moves it back to ready.
"""

from __future__ import annotations

import redis.asyncio as redis
from redis.exceptions import RedisError

from config import RedisConfig
from services.base import ConnectionState, DatastoreService


class RedisService(DatastoreService):
    """Key-value cache backed by one async Redis client."""

    name = "redis"
    critical = False
    usable_states = frozenset({ConnectionState.READY, ConnectionState.DEGRADED})

    def _create(self, config: RedisConfig) -> redis.Redis:
        return redis.Redis(
            host=config.host,
            port=config.port,
            password=config.password.get_secret_value() if config.password else None,
            db=config.db,
            decode_responses=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    async def _connect(self) -> ConnectionState:
        try:
            await self._handle.ping()
        except (RedisError, OSError) as e:
            self.last_error = e
            self.logger.error("Redis connection error: %s", e)
            return ConnectionState.DEGRADED
        self.logger.info("Redis cache connected")
        return ConnectionState.READY

    async def _close(self, handle: redis.Redis) -> None:
        await handle.aclose()
        self.logger.info("Redis client closed")

    def get_client(self) -> redis.Redis:
        """Return the raw client for direct use."""
        return self._require_handle()

    async def health_check(self) -> bool:
        """Return True if Redis responds to PING."""
        try:
            return await self.get_client().ping()
        except Exception:
            return False
